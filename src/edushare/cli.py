"""CLI entry point for the edushare content platform."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console()


@click.group()
@click.version_option(version="0.1.0")
@click.option("--user", "-u", "user_id", default=None, help="Acting user id")
@click.option("--email", default=None, help="Acting user email")
@click.pass_context
def main(ctx: click.Context, user_id: str | None, email: str | None) -> None:
    """edushare: educational content upload and moderation."""
    from edushare.config import get_settings
    from edushare.log import setup_logging
    from edushare.session import SessionContext

    settings = get_settings()
    setup_logging(settings.log_level)
    ctx.obj = {
        "settings": settings,
        "session": SessionContext(
            user_id=user_id or settings.user_id,
            email=email or settings.user_email,
        ),
    }


# ---------------------------------------------------------------------------
# upload: submit a file through moderation and tagging
# ---------------------------------------------------------------------------


@main.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--title", "-t", required=True, help="Content title (min 5 chars)")
@click.option("--description", "-d", required=True, help="Description (min 20 chars)")
@click.option("--tag", "tags", multiple=True, help="Tag (repeatable, max 5)")
@click.option("--paid", is_flag=True, help="Put the content behind the paywall")
@click.option("--mime-type", default=None, help="Override the guessed MIME type")
@click.pass_context
def upload(
    ctx: click.Context,
    file_path: str,
    title: str,
    description: str,
    tags: tuple[str, ...],
    paid: bool,
    mime_type: str | None,
) -> None:
    """Upload a file; it is moderated and tagged before it goes public."""
    from edushare.content.submission import SubmissionRequest
    from edushare.llm.client import ClaudeClient
    from edushare.moderation.classifier import ContentClassifier
    from edushare.moderation.pipeline import SubmissionPipeline
    from edushare.moderation.tagger import ContentTagger
    from edushare.storage.blobs import storage_from_settings
    from edushare.storage.records import ContentRecordStore

    settings = ctx.obj["settings"]
    session = _require_user(ctx)
    _check_api_key(settings)

    client = ClaudeClient(settings)
    storage = storage_from_settings(settings)
    store = ContentRecordStore(settings.db_path)

    path = Path(file_path)
    request = SubmissionRequest(
        title=title,
        description=description,
        filename=path.name,
        data=path.read_bytes(),
        is_paid=paid,
        tags=list(tags),
        mime_type=mime_type,
    )

    try:
        with console.status("[bold green]Uploading...") as status:
            pipeline = SubmissionPipeline(
                settings,
                storage,
                store,
                ContentClassifier(client),
                ContentTagger(client),
                on_stage=lambda stage: status.update(f"[bold green]{stage.value.capitalize()}..."),
            )
            outcome = pipeline.run(request, session)
    finally:
        storage.close()

    _notify(outcome.notification.title, outcome.notification.message, outcome.notification.level)
    if outcome.record:
        _print_record(outcome.record)
    if not outcome.ok:
        raise SystemExit(1)


@main.command()
@click.argument("record_id")
@click.pass_context
def status(ctx: click.Context, record_id: str) -> None:
    """Show moderation progress of one of your submissions."""
    from edushare.moderation.live import LiveProgressView
    from edushare.storage.records import ContentRecordStore

    store = ContentRecordStore(ctx.obj["settings"].db_path)
    session = _require_user(ctx)

    with LiveProgressView(store, record_id) as view:
        if view.record is None or not session.owns(view.record.owner_id):
            _notify("Content Not Found", f"No content with id {record_id}", "error")
            raise SystemExit(1)
        console.print(f"Stage: [bold]{view.stage.value}[/bold]")
        console.print(f"Status: {view.status.value}")
        if view.finished and view.reason:
            console.print(f"Reason: {view.reason}")
        if view.tags:
            console.print(f"Tags: {', '.join(view.tags)}")


# ---------------------------------------------------------------------------
# mine / edit / archive / delete: owner actions
# ---------------------------------------------------------------------------


@main.command()
@click.pass_context
def mine(ctx: click.Context) -> None:
    """List your content that is not archived."""
    session = _require_user(ctx)
    with _library(ctx.obj["settings"]) as library:
        records = library.my_content(session)

    if not records:
        console.print("[yellow]You haven't uploaded any content yet.[/yellow]")
        return

    table = Table(title="My Content")
    table.add_column("ID", width=32)
    table.add_column("Title", width=40)
    table.add_column("Status", width=9)
    table.add_column("Tags", width=30)
    for r in records:
        table.add_row(r.id, r.title[:40], r.status.value, ", ".join(r.tags))
    console.print(table)


@main.command()
@click.argument("record_id")
@click.option("--title", "-t", default=None, help="New title")
@click.option("--description", "-d", default=None, help="New description")
@click.option("--tag", "tags", multiple=True, help="Replace tags (repeatable, max 5)")
@click.option("--paid/--free", default=None, help="Change the paywall flag")
@click.pass_context
def edit(
    ctx: click.Context,
    record_id: str,
    title: str | None,
    description: str | None,
    tags: tuple[str, ...],
    paid: bool | None,
) -> None:
    """Edit title, description, tags or paywall flag of your content."""
    from edushare.content.submission import EditRequest
    from edushare.errors import EdushareError

    session = _require_user(ctx)

    with _library(ctx.obj["settings"]) as library:
        try:
            current = library.owned(session, record_id)
            record = library.edit(
                session,
                record_id,
                EditRequest(
                    title=title if title is not None else current.title,
                    description=description if description is not None else current.description,
                    tags=list(tags) if tags else current.tags,
                    is_paid=paid if paid is not None else current.is_paid,
                ),
            )
        except EdushareError as e:
            _fail(e)

    _notify("Update Successful!", "Your content has been updated.")
    _print_record(record)


@main.command()
@click.argument("record_id")
@click.pass_context
def archive(ctx: click.Context, record_id: str) -> None:
    """Hide content from public view without deleting it."""
    from edushare.errors import EdushareError

    session = _require_user(ctx)
    with _library(ctx.obj["settings"]) as library:
        try:
            library.archive(session, record_id)
        except EdushareError as e:
            _fail(e)
    _notify("Content Archived", "The content has been moved to your archive.")


@main.command()
@click.argument("record_id")
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt")
@click.pass_context
def delete(ctx: click.Context, record_id: str, yes: bool) -> None:
    """Permanently delete content and its file."""
    from edushare.errors import EdushareError

    if not yes:
        click.confirm(
            "This will delete the content and its associated files. Continue?",
            abort=True,
        )

    session = _require_user(ctx)
    with _library(ctx.obj["settings"]) as library:
        try:
            library.delete(session, record_id)
        except EdushareError as e:
            _fail(e)
    _notify("Content Deleted", "The content has been permanently deleted.")


# ---------------------------------------------------------------------------
# browse / show / topics: public catalogue
# ---------------------------------------------------------------------------


@main.command()
@click.option("--tag", default=None, help="Only content with this tag")
@click.pass_context
def browse(ctx: click.Context, tag: str | None) -> None:
    """List approved content."""
    with _library(ctx.obj["settings"]) as library:
        records = library.browse(tag=tag)
    if not records:
        console.print("[yellow]No content found.[/yellow]")
        return

    table = Table(title="Approved Content")
    table.add_column("ID", width=32)
    table.add_column("Title", width=40)
    table.add_column("Type", width=6)
    table.add_column("Paid", width=4)
    table.add_column("Tags", width=30)
    for r in records:
        table.add_row(
            r.id,
            r.title[:40],
            r.content_kind.value,
            "yes" if r.is_paid else "",
            ", ".join(r.tags),
        )
    console.print(table)


@main.command()
@click.argument("record_id")
@click.pass_context
def show(ctx: click.Context, record_id: str) -> None:
    """Show one approved content item."""
    from edushare.errors import EdushareError

    session = ctx.obj["session"]
    with _library(ctx.obj["settings"]) as library:
        try:
            view = library.view(record_id, session if session.user_id else None)
        except EdushareError as e:
            _fail(e)

    _print_record(view.record)
    if view.locked:
        console.print("[yellow]Please log in or sign up to view this content.[/yellow]")
    else:
        console.print(f"File: {view.record.file_url}")


@main.command()
@click.pass_context
def topics(ctx: click.Context) -> None:
    """List every tag used by approved content."""
    from edushare.users import get_profile

    settings = ctx.obj["settings"]
    session = ctx.obj["session"]
    with _library(settings) as library:
        all_topics = library.all_topics()
    if not all_topics:
        console.print("[yellow]No topics yet.[/yellow]")
        return

    followed: set[str] = set()
    if session.user_id:
        profile = get_profile(settings.db_path, session.user_id)
        if profile:
            followed = set(profile.followed_topics)

    for t in all_topics:
        marker = "[green]*[/green]" if t in followed else " "
        console.print(f"  {marker} {t}")


# ---------------------------------------------------------------------------
# user: profile provisioning and followed topics
# ---------------------------------------------------------------------------


@main.group()
def user() -> None:
    """Manage user profiles."""


@user.command("provision")
@click.option("--name", "display_name", default=None, help="Display name")
@click.pass_context
def provision(ctx: click.Context, display_name: str | None) -> None:
    """Create the acting user's profile if it does not exist yet."""
    from edushare.errors import EdushareError
    from edushare.users import provision_user

    settings = ctx.obj["settings"]
    session = ctx.obj["session"]
    try:
        profile, created = provision_user(
            settings.db_path, session.user_id, session.email, display_name
        )
    except EdushareError as e:
        _fail(e)

    if created:
        _notify("Profile Created", f"User document created for {profile.uid}.")
    else:
        _notify("Profile Exists", f"User document already exists for {profile.uid}.")


@user.command("follow")
@click.argument("topic")
@click.pass_context
def follow(ctx: click.Context, topic: str) -> None:
    """Follow a topic."""
    from edushare.errors import EdushareError
    from edushare.users import follow_topic

    try:
        profile = follow_topic(ctx.obj["settings"].db_path, _require_user(ctx).user_id, topic)
    except EdushareError as e:
        _fail(e)
    console.print(f"Following: {', '.join(profile.followed_topics)}")


@user.command("unfollow")
@click.argument("topic")
@click.pass_context
def unfollow(ctx: click.Context, topic: str) -> None:
    """Stop following a topic."""
    from edushare.errors import EdushareError
    from edushare.users import unfollow_topic

    try:
        profile = unfollow_topic(ctx.obj["settings"].db_path, _require_user(ctx).user_id, topic)
    except EdushareError as e:
        _fail(e)
    console.print(f"Following: {', '.join(profile.followed_topics) or '(nothing)'}")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@contextmanager
def _library(settings: object) -> Iterator:
    """Yield a ContentLibrary and close its storage client afterwards."""
    from edushare.content.library import ContentLibrary
    from edushare.storage.blobs import storage_from_settings
    from edushare.storage.records import ContentRecordStore

    storage = storage_from_settings(settings)
    try:
        yield ContentLibrary(settings, ContentRecordStore(settings.db_path), storage)
    finally:
        storage.close()


def _check_api_key(settings: object) -> None:
    """Exit with a helpful message if the API key is not set."""
    if not getattr(settings, "anthropic_api_key", ""):
        console.print(
            "[bold red]Error:[/bold red] ANTHROPIC_API_KEY not set.\n"
            "Add it to your environment or the project's .env file."
        )
        raise SystemExit(1)


def _require_user(ctx: click.Context):
    session = ctx.obj["session"]
    if not session.user_id:
        console.print(
            "[bold red]Error:[/bold red] You must be logged in. "
            "Pass --user or set EDUSHARE_USER_ID."
        )
        raise SystemExit(1)
    return session


_LEVEL_STYLES = {"success": "green", "warning": "yellow", "error": "red"}


def _notify(title: str, message: str, level: str = "success") -> None:
    style = _LEVEL_STYLES.get(level, "white")
    console.print(Panel(message, title=f"[bold]{title}[/bold]", border_style=style))


def _fail(error: Exception) -> None:
    _notify(getattr(error, "title", "Error"), str(error), "error")
    raise SystemExit(1)


def _print_record(record: object) -> None:
    lines = [
        f"[bold]{record.title}[/bold]",
        record.description,
        "",
        f"Status: {record.status.value}",
    ]
    if record.reason:
        lines.append(f"Reason: {record.reason}")
    if record.tags:
        lines.append(f"Tags: {', '.join(record.tags)}")
    console.print(Panel("\n".join(lines), subtitle=record.id))
