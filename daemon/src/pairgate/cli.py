"""CLI entry point for pairgate."""

import asyncio
from pathlib import Path

import click

from pairgate import __version__
from pairgate.config import load_config
from pairgate.errors import DataDirLocked, StorageError
from pairgate.formatting import format_time_ago, format_time_until, utc_now
from pairgate.lock import DataDirLock
from pairgate.logging import setup_logging
from pairgate.sessions.models import Session
from pairgate.sessions.persistence import SessionPersistence
from pairgate.sessions.store import SessionStore


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Path to config file.",
)
@click.pass_context
def main(ctx: click.Context, config: Path | None) -> None:
    """pairgate - Pair devices and manage their session tokens."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = load_config(config)
    ctx.obj["logger"] = setup_logging(ctx.obj["config"])


def _open_store(ctx: click.Context) -> SessionStore:
    config = ctx.obj["config"]
    persistence = SessionPersistence(config.sessions_file)
    return SessionStore(persistence, config.sessions)


def _read_sessions(ctx: click.Context) -> list[Session]:
    """Live sessions from the sessions file. Never writes the file."""
    config = ctx.obj["config"]
    loaded = asyncio.run(SessionPersistence(config.sessions_file).load())
    now = utc_now()
    return [s for s in loaded if not s.is_expired(now)]


def _resolve(sessions: list[Session], session_id: str) -> Session:
    """Find a session by full ID or unique prefix (like git short hashes)."""
    for s in sessions:
        if s.id == session_id:
            return s

    matches = [s for s in sessions if s.id.startswith(session_id)]
    if len(matches) == 0:
        click.echo(f"Error: Session '{session_id}' not found.", err=True)
        raise SystemExit(1)
    if len(matches) > 1:
        click.echo(f"Error: Ambiguous session ID '{session_id}'. Matches:", err=True)
        for s in matches:
            click.echo(f"  {s.id[:8]} - {s.device_name}", err=True)
        raise SystemExit(1)
    return matches[0]


@main.command()
def version() -> None:
    """Show version."""
    click.echo(f"pairgate version {__version__}")


@main.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show pairing settings and session count."""
    config = ctx.obj["config"]
    count = len(_read_sessions(ctx))

    click.echo(f"Sessions file: {config.sessions_file}")
    click.echo(f"Sessions: {count}/{config.sessions.max_count}")
    click.echo(f"Pairing code length: {config.pairing.code_length}")
    click.echo(f"Pairing code expiry: {config.pairing.code_expiry_seconds}s")
    click.echo(f"Sliding expiry: {'on' if config.sessions.sliding_expiry else 'off'}")


@main.group()
def sessions() -> None:
    """Session management commands."""
    pass


@sessions.command("list")
@click.option("--full", is_flag=True, help="Show full session IDs")
@click.pass_context
def sessions_list(ctx: click.Context, full: bool) -> None:
    """List active sessions."""
    all_sessions = _read_sessions(ctx)

    if not all_sessions:
        click.echo("No active sessions.")
        return

    click.echo(f"{'ID':<12} {'DEVICE':<20} {'CREATED':<12} {'LAST USED':<16} {'EXPIRES'}")
    click.echo("-" * 76)

    # Most recently used first
    for s in sorted(all_sessions, key=lambda s: s.last_used_at, reverse=True):
        session_id_display = s.id if full else s.id[:8]
        click.echo(
            f"{session_id_display:<12} "
            f"{s.device_name:<20} "
            f"{s.created_at.date().isoformat():<12} "
            f"{format_time_ago(s.last_used_at):<16} "
            f"{format_time_until(s.expires_at)}"
        )


@sessions.command("show")
@click.argument("session_id")
@click.pass_context
def sessions_show(ctx: click.Context, session_id: str) -> None:
    """Show one session. Accepts a unique ID prefix."""
    session = _resolve(_read_sessions(ctx), session_id)

    click.echo(f"ID:         {session.id}")
    click.echo(f"Device:     {session.device_name}")
    click.echo(f"Created:    {session.created_at.isoformat()}")
    click.echo(f"Last used:  {format_time_ago(session.last_used_at)}")
    click.echo(f"Expires:    {session.expires_at.isoformat()}")
    click.echo(f"Address:    {session.origin_address or '-'}")
    click.echo(f"User agent: {session.user_agent or '-'}")


@sessions.command("revoke")
@click.argument("session_id", required=False)
@click.option("--all", "revoke_all", is_flag=True, help="Revoke all sessions")
@click.option("--force", "-f", is_flag=True, help="Skip confirmation")
@click.pass_context
def sessions_revoke(
    ctx: click.Context,
    session_id: str | None,
    revoke_all: bool,
    force: bool,
) -> None:
    """Revoke a session.

    Refused while a pairgate service holds the data directory lock.
    Use the short SESSION_ID from 'pairgate sessions list' (e.g., 0e49b502),
    or use --all to revoke every session.
    """

    async def _revoke():
        store = _open_store(ctx)
        await store.load()
        all_sessions = await store.all()

        if revoke_all:
            if not all_sessions:
                click.echo("No sessions to revoke.")
                return

            if not force:
                if not click.confirm(f"Revoke all {len(all_sessions)} sessions?"):
                    click.echo("Aborted.")
                    return

            count = await store.revoke_all()
            click.echo(f"Revoked {count} sessions.")

        elif session_id:
            session = _resolve(all_sessions, session_id)

            if not force:
                last_used = format_time_ago(session.last_used_at)
                if not click.confirm(
                    f"Revoke session '{session.device_name}' (last used {last_used})?"
                ):
                    click.echo("Aborted.")
                    return

            await store.revoke(session.id)
            click.echo("Session revoked.")

        else:
            click.echo("Error: Specify a session ID or use --all", err=True)
            raise SystemExit(1)

    try:
        with DataDirLock(ctx.obj["config"].lock_file):
            asyncio.run(_revoke())
    except DataDirLocked as e:
        click.echo(f"Error: {e}. Stop it before revoking sessions.", err=True)
        raise SystemExit(1)
    except StorageError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
