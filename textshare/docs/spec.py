# textshare/docs/spec.py
from apispec import APISpec
from apispec.ext.marshmallow import MarshmallowPlugin
from marshmallow import Schema, fields

from textshare.notes.schemas import AccessIn, NoteIn, NoteOut, SavedOut, UnlockedNoteOut


class ErrorBodySchema(Schema):
    code = fields.String(required=True)
    message = fields.String(required=True)
    details = fields.Dict()


class ErrorSchema(Schema):
    error = fields.Nested(ErrorBodySchema, required=True)


def _ref(name: str):
    return {"$ref": f"#/components/schemas/{name}"}


def _json(name: str, description: str):
    return {"description": description, "content": {"application/json": {"schema": _ref(name)}}}


_NAME_PARAM = {"in": "path", "name": "name", "required": True, "schema": {"type": "string"}}


def build_spec():
    spec = APISpec(
        title="TextShare API",
        version="1.0.0",
        openapi_version="3.0.3",
        info={"description": "Named, optionally protected, optionally expiring text notes."},
        plugins=[MarshmallowPlugin()],
    )

    # Composants
    spec.components.schema("NoteIn", schema=NoteIn)
    spec.components.schema("AccessIn", schema=AccessIn)
    spec.components.schema("Saved", schema=SavedOut)
    spec.components.schema("NoteOut", schema=NoteOut)
    spec.components.schema("UnlockedNote", schema=UnlockedNoteOut)
    spec.components.schema("Error", schema=ErrorSchema)

    spec.path(
        path="/api/notes",
        operations={
            "post": {
                "summary": "Create or update a note by name",
                "requestBody": {"required": True, "content": {"application/json": {"schema": _ref("NoteIn")}}},
                "responses": {
                    "201": _json("Saved", "Saved"),
                    "400": _json("Error", "Missing or invalid fields"),
                    "503": _json("Error", "Store unavailable, retry later"),
                },
            }
        },
    )

    spec.path(
        path="/api/notes/{name}",
        operations={
            "get": {
                "summary": "Fetch a note (content withheld when protected)",
                "parameters": [_NAME_PARAM],
                "responses": {
                    "200": _json("NoteOut", "Note"),
                    "404": _json("Error", "Not found or expired"),
                },
            }
        },
    )

    spec.path(
        path="/api/notes/{name}/access",
        operations={
            "post": {
                "summary": "Unlock a protected note with its password",
                "parameters": [_NAME_PARAM],
                "requestBody": {"required": True, "content": {"application/json": {"schema": _ref("AccessIn")}}},
                "responses": {
                    "200": _json("UnlockedNote", "Unlocked note"),
                    "400": _json("Error", "Note is not password protected"),
                    "401": _json("Error", "Invalid password"),
                    "404": _json("Error", "Not found or expired"),
                },
            }
        },
    )

    return spec.to_dict()
