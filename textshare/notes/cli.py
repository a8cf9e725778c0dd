import click
from flask import current_app
from flask.cli import AppGroup

from textshare.extensions import db

notes_cli = AppGroup(
    "notes",
    help="Note store maintenance. Run `flask notes init-db` once to create the schema.",
)


@notes_cli.command("init-db")
def init_db():
    """Create the notes schema (no migrations are shipped; Flask-Migrate
    only serves `flask db` for later schema changes)."""
    db.create_all()
    click.echo("Tables created.")


@notes_cli.command("purge-expired")
def purge_expired():
    """Supprime immédiatement toutes les notes expirées."""
    deleted = current_app.extensions["note_store"].purge_expired()
    click.echo(f"Purged {deleted} expired note(s).")
