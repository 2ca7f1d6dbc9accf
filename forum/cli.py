"""Operator commands for the forum database.

Usage:
    forum-admin init-db
    forum-admin stats --json
    forum-admin top-users --limit 10
    forum-admin audit-uploads --show-limit 0
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import click
from rich.console import Console
from rich.table import Table
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from forum.db.connection import (
    create_engine,
    ensure_sqlite_directory,
    get_database_url,
    init_db,
    session_scope,
)
from forum.db.models import Comment, Favorite, Followship, Like, Restaurant, User
from forum.db.repositories import UserRepository
from forum.schemas.users import TopUser
from forum.services.profile_service import rank_by_followers
from forum.settings import get_settings

console = Console()

T = TypeVar("T")

UPLOAD_PREFIX = "/upload/"
COUNTED_TABLES = (
    ("users", User),
    ("restaurants", Restaurant),
    ("comments", Comment),
    ("favorites", Favorite),
    ("likes", Like),
    ("followships", Followship),
)


async def collect_engagement_stats(session: AsyncSession) -> dict[str, int]:
    """Row counts for every table the forum owns or reads."""

    stats: dict[str, int] = {}
    for label, model in COUNTED_TABLES:
        result = await session.execute(select(func.count()).select_from(model))
        stats[label] = int(result.scalar_one())
    return stats


async def load_ranking(session: AsyncSession, *, limit: int | None) -> list[TopUser]:
    users = await UserRepository(session).list_users_with_followers()
    return rank_by_followers(users, followed_ids=set(), limit=limit)


async def find_missing_uploads(
    session: AsyncSession, upload_dir: Path
) -> list[tuple[int, str, str]]:
    """Users whose locally stored avatar no longer exists on disk."""

    result = await session.execute(
        select(User.id, User.name, User.image)
        .where(User.image.startswith(UPLOAD_PREFIX))
        .order_by(User.id)
    )
    missing: list[tuple[int, str, str]] = []
    for user_id, name, image in result.all():
        if not (upload_dir / image.removeprefix(UPLOAD_PREFIX)).exists():
            missing.append((user_id, name, image))
    return missing


def _run(database_url: str | None, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
    """Open a dedicated engine, run ``work`` in one session and dispose it."""

    async def _main() -> T:
        engine = create_engine(database_url)
        try:
            async with session_scope(engine) as session:
                return await work(session)
        finally:
            await engine.dispose()

    return asyncio.run(_main())


@click.group()
@click.option(
    "--database-url",
    default=None,
    help="Async SQLAlchemy URL; defaults to DATABASE_URL / USE_SQLITE.",
)
@click.pass_context
def cli(ctx: click.Context, database_url: str | None) -> None:
    """Maintenance commands for the restaurant forum."""
    ctx.obj = {"database_url": database_url}


@cli.command("init-db")
@click.pass_context
def init_db_command(ctx: click.Context) -> None:
    """Create all tables from the ORM metadata (SQLite development mode)."""
    url = ctx.obj["database_url"] or get_database_url()
    ensure_sqlite_directory(url)

    async def _main() -> None:
        engine = create_engine(url)
        try:
            await init_db(engine)
        finally:
            await engine.dispose()

    asyncio.run(_main())
    console.print(f"[green]Tables created[/green] for {url.split('://', 1)[0]}")


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def stats(ctx: click.Context, as_json: bool) -> None:
    """Print row counts for users, restaurants and engagement relations."""
    counts = _run(ctx.obj["database_url"], collect_engagement_stats)

    if as_json:
        click.echo(json.dumps(counts, sort_keys=True))
        return

    table = Table("Table", "Rows", title="Forum engagement")
    for label, value in counts.items():
        table.add_row(label, f"{value:,}")
    console.print(table)


@cli.command("top-users")
@click.option("--limit", type=click.IntRange(min=1), default=10, show_default=True)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def top_users(ctx: click.Context, limit: int, as_json: bool) -> None:
    """Show the users with the most followers."""
    ranking = _run(
        ctx.obj["database_url"], lambda session: load_ranking(session, limit=limit)
    )

    if as_json:
        click.echo(json.dumps([entry.model_dump() for entry in ranking]))
        return

    table = Table("#", "User", "Email", "Followers", title="Top users")
    for position, entry in enumerate(ranking, start=1):
        table.add_row(str(position), entry.name, entry.email, str(entry.follower_count))
    console.print(table)


@cli.command("audit-uploads")
@click.option(
    "--show-limit",
    type=int,
    default=20,
    show_default=True,
    help="Number of rows to display (0 shows all).",
)
@click.pass_context
def audit_uploads(ctx: click.Context, show_limit: int) -> None:
    """Flag users whose local avatar file is missing from UPLOAD_DIR."""
    upload_dir = Path(get_settings().upload_dir)
    missing = _run(
        ctx.obj["database_url"],
        lambda session: find_missing_uploads(session, upload_dir),
    )

    console.print(f"[bold]Avatars missing on disk:[/bold] {len(missing)}")
    if not missing:
        return

    table = Table("User ID", "Name", "Image", title=f"Missing under {upload_dir}")
    rows = missing if show_limit == 0 else missing[:show_limit]
    for user_id, name, image in rows:
        table.add_row(str(user_id), name, image)
    console.print(table)
    if show_limit and len(missing) > show_limit:
        console.print(
            f"... {len(missing) - show_limit} additional entries not shown. "
            "Use --show-limit 0 to display all."
        )


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
