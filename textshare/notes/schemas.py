from marshmallow import EXCLUDE, Schema, ValidationError, fields, pre_load, validate

from textshare.notes.models import MAX_EXPIRES_HOURS, NAME_MAX_LENGTH, PASSWORD_MAX_BYTES

# Valeurs "falsy" envoyées par le client web quand l'option n'est pas cochée
_NOT_SUPPLIED = ("", None, 0, "0")


def _max_bytes(value):
    # limite en octets UTF-8, pas en caractères
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValidationError(f"Longer than maximum length {PASSWORD_MAX_BYTES} bytes.")


class NoteIn(Schema):
    class Meta:
        unknown = EXCLUDE

    name = fields.String(required=True, validate=validate.Length(min=1, max=NAME_MAX_LENGTH))
    content = fields.String(required=True, validate=validate.Length(min=1))
    password = fields.String(load_only=True, validate=_max_bytes)
    expires_in = fields.Integer(
        data_key="expiresIn", validate=validate.Range(min=1, max=MAX_EXPIRES_HOURS)
    )

    @pre_load
    def _normalize(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if isinstance(data.get("name"), str):
            data["name"] = data["name"].strip()
        for key in ("password", "expiresIn"):
            if key in data and data[key] in _NOT_SUPPLIED:
                del data[key]
        return data


class AccessIn(Schema):
    class Meta:
        unknown = EXCLUDE

    # aucune validation de forme: la note est résolue avant (404 > 400 > 401),
    # et toute valeur qui n'est pas une chaîne échoue au challenge
    password = fields.Raw(load_default=None, allow_none=True, load_only=True)


class SavedOut(Schema):
    message = fields.String(required=True)
    name = fields.String(required=True)


class NoteOut(Schema):
    name = fields.String(required=True)
    content = fields.String(required=True, allow_none=True)
    has_password = fields.Boolean(required=True, data_key="hasPassword")
    created_at = fields.DateTime(required=True, data_key="createdAt")
    expires_at = fields.DateTime(required=True, allow_none=True, data_key="expiresAt")


class UnlockedNoteOut(Schema):
    name = fields.String(required=True)
    content = fields.String(required=True)
    created_at = fields.DateTime(required=True, data_key="createdAt")
    expires_at = fields.DateTime(required=True, allow_none=True, data_key="expiresAt")
