"""Note Store: seule source de vérité pour les notes.

Toutes les règles métier vivent ici : unicité par nom, upsert par nom,
hachage/vérification du mot de passe, expiration paresseuse à la lecture.
Le store est construit explicitement par la factory (voir ``create_app``)
avec la session SQLAlchemy à utiliser ; il ne dépend pas de Flask.
"""
import contextlib
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from passlib.hash import bcrypt
from sqlalchemy import delete, select
from sqlalchemy.exc import (
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)

from textshare.common.errors import (
    InvalidPassword,
    NoteNotFound,
    NoteNotProtected,
    NoteValidationError,
    StoreUnavailable,
)
from textshare.notes.models import MAX_EXPIRES_HOURS, PASSWORD_MAX_BYTES, Note

log = logging.getLogger("textshare.notes")

# erreurs "réessayables" : timeout, pool épuisé, connexion perdue
_UNAVAILABLE = (OperationalError, InterfaceError, PoolTimeoutError)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite rend des datetimes naïfs (stockés en UTC) ; Postgres des datetimes aware."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class NoteView:
    name: str
    content: Optional[str]
    has_password: bool
    created_at: datetime
    expires_at: Optional[datetime]

    @classmethod
    def from_note(cls, note: Note, reveal: bool) -> "NoteView":
        return cls(
            name=note.name,
            content=note.content if reveal else None,
            has_password=note.has_password,
            created_at=as_utc(note.created_at),
            expires_at=as_utc(note.expires_at),
        )


class NoteStore:
    def __init__(
        self,
        session,
        bcrypt_rounds: int = 10,
        retry_after: int = 5,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session = session
        self.hasher = bcrypt.using(rounds=bcrypt_rounds)
        self.retry_after = retry_after
        self.clock = clock

    # --- Helpers ---
    def _rollback(self) -> None:
        try:
            self.session.rollback()
        except SQLAlchemyError:
            log.warning("rollback_failed", exc_info=True)

    @contextlib.contextmanager
    def _guard(self):
        """Convertit les pannes de persistance en StoreUnavailable (503)."""
        try:
            yield
        except _UNAVAILABLE as exc:
            self._rollback()
            raise StoreUnavailable(retry_after=self.retry_after) from exc

    def _is_expired(self, note: Note, now: datetime) -> bool:
        return note.expires_at is not None and now > as_utc(note.expires_at)

    def _find(self, name: str, for_update: bool = False) -> Optional[Note]:
        stmt = select(Note).filter_by(name=name)
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def _discard(self, note: Note) -> None:
        """Suppression best-effort d'une note expirée découverte à la lecture."""
        name = note.name
        try:
            self.session.delete(note)
            self.session.commit()
        except SQLAlchemyError:
            self._rollback()
            log.warning("note_expiry_delete_failed", extra={"note_name": name}, exc_info=True)
            return
        log.info("note_expired", extra={"note_name": name})

    def _live_note(self, name: str) -> Note:
        name = (name or "").strip()
        with self._guard():
            note = self._find(name)
        if note is None:
            raise NoteNotFound()
        if self._is_expired(note, self.clock()):
            self._discard(note)
            raise NoteNotFound("Note has expired and been deleted.")
        return note

    def _write(self, name, content, password_hash, expires_at, now) -> bool:
        note = self._find(name, for_update=True)
        created = note is None or self._is_expired(note, now)
        if note is None:
            note = Note(name=name)
            self.session.add(note)
        if created:
            # une note expirée non purgée est remplacée comme une nouvelle
            note.created_at = now
            note.password_hash = password_hash
            note.expires_at = expires_at
        else:
            if password_hash is not None:
                note.password_hash = password_hash
            if expires_at is not None:
                note.expires_at = expires_at
        note.content = content
        self.session.commit()
        return created

    # --- Opérations ---
    def upsert(
        self,
        name: str,
        content: str,
        password: Optional[str] = None,
        expires_in_hours: Optional[int] = None,
    ) -> str:
        name = (name or "").strip()
        if not name or not content:
            raise NoteValidationError("Name and content are required.")
        if expires_in_hours is not None and not 1 <= expires_in_hours <= MAX_EXPIRES_HOURS:
            raise NoteValidationError(
                f"expiresIn must be between 1 and {MAX_EXPIRES_HOURS} hours.",
                details={"expiresIn": expires_in_hours},
            )
        if password and len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
            raise NoteValidationError(
                f"password must be at most {PASSWORD_MAX_BYTES} bytes.",
                details={"password": ["too long"]},
            )

        now = self.clock()
        expires_at = now + timedelta(hours=expires_in_hours) if expires_in_hours else None
        # hachage hors transaction : le verrou de ligne reste court
        password_hash = self.hasher.hash(password) if password else None

        with self._guard():
            try:
                created = self._write(name, content, password_hash, expires_at, now)
            except IntegrityError:
                # création concurrente du même nom : on rejoue en mise à jour
                self._rollback()
                created = self._write(name, content, password_hash, expires_at, now)

        log.info(
            "note_saved",
            extra={
                "note_name": name,
                "is_new": created,
                "protected": password_hash is not None,
                "expires_at": expires_at.isoformat() if expires_at else None,
            },
        )
        return name

    def fetch_public(self, name: str) -> NoteView:
        note = self._live_note(name)
        # contenu retenu tant que le challenge n'est pas passé
        return NoteView.from_note(note, reveal=not note.has_password)

    def fetch_with_challenge(self, name: str, password) -> NoteView:
        note = self._live_note(name)
        if not note.has_password:
            raise NoteNotProtected()
        if not note.check_password(password, self.hasher):
            raise InvalidPassword()
        return NoteView.from_note(note, reveal=True)

    def purge_expired(self) -> int:
        """Purge en masse des notes expirées (équivalent d'un index TTL)."""
        now = self.clock()
        stmt = (
            delete(Note)
            .where(Note.expires_at.is_not(None), Note.expires_at < now)
            .execution_options(synchronize_session=False)
        )
        with self._guard():
            result = self.session.execute(stmt)
            self.session.commit()
        count = result.rowcount or 0
        log.info("note_purge", extra={"deleted": count})
        return count
