#!/usr/bin/env python3
"""
Command line front end for the calendar client.

Events are kept in a local JSON store and signed with the offline dummy
signer, so every command works without relays or a signer app.
"""

import asyncio
import json
import logging
import sys
from datetime import date, datetime
from typing import Any, List, Optional, Tuple

import click

from nostrcal.config import Settings, load_settings
from nostrcal.domain import DAY_CODES, Event
from nostrcal.drafts import (
    CalendarAvailabilityBlockDraft,
    CalendarAvailabilityDraft,
    EventDraft,
)
from nostrcal.occurrence import EnrichedEvent, events_on_day
from nostrcal.registry import default_registry
from nostrcal.repos.local.events import LocalEventRepository
from nostrcal.repos.memory.signer import DUMMY_PUBKEY, DummySigner
from nostrcal.usecase import (
    DiscoverEventsUseCase,
    DiscoveryFilter,
    EnrichEventsUseCase,
    ListEventRSVPsUseCase,
    PublishDraftUseCase,
)
from nostrcal.validation import NostrCalError, validate_time_range

logger = logging.getLogger(__name__)


class CliContext:
    """Settings plus the collaborators every command needs."""

    def __init__(self, settings: Settings, store_path: Optional[str]):
        self.settings = settings
        self.event_repo = LocalEventRepository(
            default_registry(), store_path or settings.store_path
        )
        self.signer = DummySigner(pubkey=settings.pubkey or DUMMY_PUBKEY)

    @property
    def pubkey(self) -> str:
        return self.signer.pubkey


def _fail(message: str) -> None:
    click.echo(message, err=True)
    sys.exit(1)


def _publish(ctx: CliContext, draft: EventDraft, as_json: bool) -> None:
    use_case = PublishDraftUseCase(ctx.event_repo, ctx.signer)
    try:
        signed: Event = asyncio.run(use_case.execute(draft))
    except NostrCalError as e:
        logger.error(f"Publishing failed: {e}", exc_info=True)
        _fail(f"Publishing failed: {e}")
        return
    if as_json:
        click.echo(json.dumps(signed.model_dump(), indent=2))
    else:
        click.echo(f"Published kind {signed.kind} event {signed.id}")
        click.echo(f"Address: {signed.address}")


def _parse_block(value: str) -> Tuple[str, str, str]:
    parts = [part.strip() for part in value.split(",")]
    if len(parts) != 3:
        raise click.BadParameter(
            f"Expected DAY,HH:MM,HH:MM but got {value!r}"
        )
    day = parts[0].upper()
    if day not in DAY_CODES:
        raise click.BadParameter(
            f"Unknown day {parts[0]!r}, expected one of {','.join(DAY_CODES)}"
        )
    return day, parts[1], parts[2]


def _format_enriched(item: EnrichedEvent) -> str:
    start = item.start_datetime
    end = item.end_datetime
    when = start.strftime("%Y-%m-%d %H:%M") if start else "?"
    if end is not None and end != start:
        when += f" - {end.strftime('%Y-%m-%d %H:%M')}"
    title = item.title or "Untitled Event"
    if not item.is_rsvp:
        return f"{when}  {title}"
    rsvp: Any = item.original_event
    status = rsvp.status.value if rsvp.status else "rsvp"
    if item.parent_event is None:
        return f"{when}  [{status}] {rsvp.event_address or 'unknown event'}"
    return f"{when}  [{status}] {title}"


@click.group()
@click.option(
    "--config",
    "config_path",
    default=None,
    help="Path to the YAML settings file.",
    type=click.Path(),
)
@click.option(
    "--store",
    "store_path",
    default=None,
    help="Path to the JSON event store (overrides the settings).",
    type=click.Path(),
)
@click.pass_context
def main(
    click_ctx: click.Context,
    config_path: Optional[str],
    store_path: Optional[str],
) -> None:
    """Manage calendar events, availability and busy blocks."""
    try:
        settings = load_settings(config_path)
    except NostrCalError as e:
        _fail(f"Error loading configuration: {e}")
        return
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    click_ctx.obj = CliContext(settings, store_path)


@main.group()
def availability() -> None:
    """Availability templates."""


@availability.command("create")
@click.option("--calendar", "calendar_address", required=True,
              help="Address of the calendar, kind:pubkey:identifier.")
@click.option("--title", required=True)
@click.option("--block", "blocks", multiple=True, required=True,
              help="Weekly opening as DAY,HH:MM,HH:MM. Repeatable.")
@click.option("--tz", "time_zone", default=None, help="IANA time zone.")
@click.option("--duration", default="PT30M", show_default=True)
@click.option("--amount", type=int, default=None,
              help="Price in satoshis.")
@click.option("--description", default="")
@click.option("--identifier", default=None)
@click.option("--json", "as_json", is_flag=True)
@click.pass_obj
def create_availability(
    ctx: CliContext,
    calendar_address: str,
    title: str,
    blocks: Tuple[str, ...],
    time_zone: Optional[str],
    duration: str,
    amount: Optional[int],
    description: str,
    identifier: Optional[str],
    as_json: bool,
) -> None:
    """Create and publish an availability template."""
    schedule: List[Tuple[str, str, str]] = [_parse_block(b) for b in blocks]
    draft = CalendarAvailabilityDraft.create(
        calendar_address=calendar_address,
        title=title,
        schedule_blocks=schedule,
        time_zone=time_zone,
        duration=duration,
        amount=amount,
        description=description,
        identifier=identifier,
    )
    _publish(ctx, draft, as_json)


@main.group()
def busy() -> None:
    """Busy blocks."""


@busy.command("create")
@click.option("--start", required=True, type=click.DateTime(
    formats=["%Y-%m-%dT%H:%M", "%Y-%m-%dT%H:%M:%S"]))
@click.option("--end", required=True, type=click.DateTime(
    formats=["%Y-%m-%dT%H:%M", "%Y-%m-%dT%H:%M:%S"]))
@click.option("--description", default="")
@click.option("--json", "as_json", is_flag=True)
@click.pass_obj
def create_busy(
    ctx: CliContext,
    start: datetime,
    end: datetime,
    description: str,
    as_json: bool,
) -> None:
    """Create and publish a busy block. Times are in the configured zone."""
    tz = ctx.settings.tzinfo
    start_time, end_time = start.replace(tzinfo=tz), end.replace(tzinfo=tz)
    try:
        validate_time_range(start_time, end_time)
    except NostrCalError as e:
        _fail(f"Invalid busy block: {e}")
        return
    draft = CalendarAvailabilityBlockDraft.create(
        start_time=start_time, end_time=end_time, description=description
    )
    _publish(ctx, draft, as_json)


@main.command("day")
@click.argument("day", required=False, type=click.DateTime(
    formats=["%Y-%m-%d"]))
@click.option("--pubkey", default=None,
              help="Whose calendar to show (defaults to your own).")
@click.pass_obj
def show_day(
    ctx: CliContext, day: Optional[datetime], pubkey: Optional[str]
) -> None:
    """List events and RSVPs that occur on DAY (default: today)."""
    tz = ctx.settings.tzinfo
    target: date = day.date() if day else datetime.now(tz).date()
    use_case = EnrichEventsUseCase(ctx.event_repo, tz=tz)
    enriched = asyncio.run(
        use_case.execute(
            pubkey=pubkey or ctx.pubkey, limit=ctx.settings.query_limit
        )
    )
    items = events_on_day(enriched, target)
    click.echo(f"Events on {target.isoformat()}: {len(items)}")
    for item in items:
        click.echo(_format_enriched(item))


@main.command()
@click.option("--search", default="", help="Text to look for.")
@click.option(
    "--period",
    type=click.Choice([f.value for f in DiscoveryFilter]),
    default=DiscoveryFilter.ALL.value,
    show_default=True,
)
@click.option("--limit", type=int, default=None)
@click.pass_obj
def discover(
    ctx: CliContext, search: str, period: str, limit: Optional[int]
) -> None:
    """List public events, most recent first."""
    tz = ctx.settings.tzinfo
    use_case = DiscoverEventsUseCase(ctx.event_repo, tz=tz)
    models = asyncio.run(
        use_case.execute(
            search_query=search,
            period=DiscoveryFilter(period),
            limit=limit or ctx.settings.discovery_page_size,
        )
    )
    if not models:
        click.echo("No events found")
        return
    for model in models:
        item = EnrichedEvent.regular(model, tz=tz)
        click.echo(_format_enriched(item))


@main.command()
@click.argument("event_address")
@click.pass_obj
def rsvps(ctx: CliContext, event_address: str) -> None:
    """List RSVPs answering EVENT_ADDRESS."""
    use_case = ListEventRSVPsUseCase(ctx.event_repo)
    answers = asyncio.run(use_case.execute(event_address))
    click.echo(f"RSVPs ({len(answers)})")
    for rsvp in answers:
        status = rsvp.status.value if rsvp.status else "unknown"
        line = f"{rsvp.pubkey[:12]}  {status}"
        if rsvp.note:
            line += f"  {rsvp.note}"
        click.echo(line)


if __name__ == "__main__":
    main()
