from flask import Blueprint, current_app, jsonify, request

from textshare.notes.schemas import AccessIn, NoteIn, NoteOut, SavedOut, UnlockedNoteOut
from textshare.notes.store import NoteStore

bp = Blueprint("notes", __name__)

note_in = NoteIn()
access_in = AccessIn()
saved_out = SavedOut()
note_out = NoteOut()
unlocked_out = UnlockedNoteOut()


def _store() -> NoteStore:
    return current_app.extensions["note_store"]


@bp.post("")
def save_note():
    payload = request.get_json(silent=True) or {}
    data = note_in.load(payload)
    name = _store().upsert(
        data["name"],
        data["content"],
        password=data.get("password"),
        expires_in_hours=data.get("expires_in"),
    )
    return jsonify(saved_out.dump({"message": "Note saved successfully", "name": name})), 201


@bp.get("/<name>")
def get_note(name):
    view = _store().fetch_public(name)
    return jsonify(note_out.dump(view)), 200


@bp.post("/<name>/access")
def access_note(name):
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}
    data = access_in.load(payload)
    view = _store().fetch_with_challenge(name, data["password"])
    return jsonify(unlocked_out.dump(view)), 200
