import uuid
from sqlalchemy import func
from passlib.hash import bcrypt
from textshare.extensions import db


NAME_MAX_LENGTH = 200
MAX_EXPIRES_HOURS = 87600  # 10 ans
# bcrypt ignore tout ce qui dépasse 72 octets
PASSWORD_MAX_BYTES = 72


class Note(db.Model):
    __tablename__ = "notes"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    # clé publique (slug d'URL), unique
    name = db.Column(db.String(NAME_MAX_LENGTH), unique=True, nullable=False, index=True)
    content = db.Column(db.Text, nullable=False)
    # NULL = note publique, pas de challenge
    password_hash = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now(), nullable=False)
    # index utilisé par la purge périodique
    expires_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    @property
    def has_password(self) -> bool:
        return self.password_hash is not None

    # helper mot de passe (le hash est calculé par le store)
    def check_password(self, raw_password, hasher=bcrypt) -> bool:
        # tout ce qui n'est pas une chaîne non vide est un échec, jamais une erreur
        if not self.password_hash or not isinstance(raw_password, str) or not raw_password:
            return False
        if len(raw_password.encode("utf-8")) > PASSWORD_MAX_BYTES:
            return False
        return hasher.verify(raw_password, self.password_hash)
