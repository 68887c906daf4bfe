import functools
import json
import logging
import os

import click

from . import __version__
from .api.records import get_records_summary
from .config import Config
from .core.constants import SORT_OPTIONS
from .core.filters import FilterCriteria
from .core.loader import TranscriptLoadError, load_transcripts
from .core.view import ViewController, ViewMode
from .utils.export import write_export
from .utils.formatting import render_record
from .utils.logging import setup_logging
from .utils.read_state import ReadStateStore

# Set up logging
setup_logging()
logger = logging.getLogger(__name__)


def get_read_store(cfg: Config) -> ReadStateStore:
    return ReadStateStore(cfg.get("read_state_file") or None)


def view_options(func):
    """Options shared by every command that works on a loaded transcript file."""
    options = [
        click.argument("file", type=click.Path(dir_okay=False)),
        click.option("--view", type=click.Choice([m.value for m in ViewMode]), help="Segment or conversation view"),
        click.option("--gap", type=click.FloatRange(min=0), help="Re-segment with this inactivity gap (minutes)"),
        click.option("--resegment", is_flag=True, help="Re-segment using the configured gap_minutes"),
        click.option("--search", default="", help="Search conversation id, customer id and message text"),
        click.option("--from", "date_from", type=click.DateTime(formats=["%Y-%m-%d"]), help="Earliest start date"),
        click.option("--to", "date_to", type=click.DateTime(formats=["%Y-%m-%d"]), help="Latest start date"),
        click.option("--language", help="Only this language"),
        click.option("--country", help="Only this country"),
        click.option("--min-messages", type=int, help="Minimum message count"),
        click.option("--max-messages", type=int, help="Maximum message count"),
        click.option("--min-duration", type=float, help="Minimum duration in minutes"),
        click.option("--max-duration", type=float, help="Maximum duration in minutes"),
        click.option("--sort", "sort_by", type=click.Choice(SORT_OPTIONS), help="Sort order"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_controller(cfg: Config, file, view, gap, resegment, sort_by, **filters) -> ViewController:
    """Load a transcript file and apply the requested view transitions."""
    try:
        raw = load_transcripts(file)
    except TranscriptLoadError as e:
        click.echo(f"Error parsing JSON: {e}", err=True)
        raise click.exceptions.Exit(1)

    view = view or cfg.get("default_view")
    if resegment and gap is None:
        gap = cfg.get("gap_minutes")
    if gap is not None and view == ViewMode.CONVERSATION.value:
        raise click.UsageError("--gap/--resegment cannot be combined with --view conversation")

    criteria = FilterCriteria(
        search=filters["search"] or "",
        date_from=filters["date_from"].date() if filters["date_from"] else None,
        date_to=filters["date_to"].date() if filters["date_to"] else None,
        language=filters["language"],
        country=filters["country"],
        min_messages=filters["min_messages"],
        max_messages=filters["max_messages"],
        min_duration=filters["min_duration"],
        max_duration=filters["max_duration"],
    )
    sort_by = sort_by or cfg.get("default_sort")
    if sort_by not in SORT_OPTIONS:
        click.echo(f"⚠️  Unknown sort option '{sort_by}' in configuration, using date-desc", err=True)
        sort_by = "date-desc"

    controller = ViewController.from_raw(raw, criteria=criteria, sort_by=sort_by, page_size=cfg.get("page_size"))

    transition = None
    if gap is not None:
        try:
            transition = controller.resegment(gap)
        except ValueError as e:
            # --gap is range-checked by click; a bad value can only come from configuration
            raise click.BadParameter(f"{e} (check the gap_minutes setting)", param_hint="--resegment") from e
    elif view == ViewMode.CONVERSATION.value:
        transition = controller.show_conversations()

    if transition is not None:
        if transition.warning:
            click.echo(f"⚠️  {transition.warning}", err=True)
        controller = transition.controller

    return controller


def with_controller(func):
    """Turn the shared view options into a ready ViewController argument."""

    @view_options
    @functools.wraps(func)
    def wrapper(file, view, gap, resegment, sort_by, **kwargs):
        filter_keys = (
            "search",
            "date_from",
            "date_to",
            "language",
            "country",
            "min_messages",
            "max_messages",
            "min_duration",
            "max_duration",
        )
        filters = {key: kwargs.pop(key) for key in filter_keys}
        cfg = Config()
        controller = build_controller(cfg, file, view, gap, resegment, sort_by, **filters)
        return func(controller, cfg, **kwargs)

    return wrapper


@click.group()
def cli():
    """Convoscope - Support Chat Transcript Explorer"""
    pass


@cli.command()
@with_controller
@click.option("--page", type=int, default=1, help="Page to show (1-indexed)")
@click.option("--expand", is_flag=True, help="Show messages and mark shown conversations as read")
def show(controller, cfg, page, expand):
    """List segments or conversations"""
    store = get_read_store(cfg)
    label = "Segments" if controller.mode is ViewMode.SEGMENT else "Conversations"

    click.echo(f"{label} ({len(controller.displayed):,})")
    if controller.is_filtered:
        click.echo(f"Filtered from {len(controller.active):,} total")
    else:
        click.echo(f"Showing all {label.lower()}")
    click.echo("")

    page_info = controller.page(page)
    if not page_info["records"]:
        click.echo(f"🔍 No {label.lower()} found. Try adjusting your filters")
        return

    for record in page_info["records"]:
        click.echo(render_record(record, controller.mode.value, store.is_read(record.conversation_id), expand))
        click.echo("")
        if expand and not store.is_read(record.conversation_id):
            store.mark_read(record.conversation_id)

    click.echo(
        f"Showing {page_info['start_index'] + 1:,}-{page_info['end_index']:,} of {page_info['total']:,} "
        f"(page {page_info['page']}/{page_info['total_pages']})"
    )


@cli.command()
@with_controller
@click.option("--json", "as_json", is_flag=True, help="Output in JSON format")
def stats(controller, cfg, as_json):
    """Show summary statistics"""
    records_summary = get_records_summary(list(controller.displayed))
    options = controller.filter_options

    summary = {"view": controller.mode.value, **controller.stats}
    summary["user_messages"] = records_summary["user_messages"]
    summary["agent_messages"] = records_summary["agent_messages"]
    summary["by_language"] = records_summary["by_language"]
    summary["languages"] = options["languages"]
    summary["countries"] = options["countries"]
    summary["date_from"] = options["date_from"].isoformat() if options["date_from"] else None
    summary["date_to"] = options["date_to"].isoformat() if options["date_to"] else None

    if as_json:
        click.echo(json.dumps(summary, indent=2))
        return

    click.echo(f"View: {summary['view']}")
    click.echo(f"  Segments:      {summary['segments']:,}")
    click.echo(f"  Conversations: {summary['conversations']:,}")
    click.echo(f"  Customers:     {summary['customers']:,}")
    click.echo(f"  Messages:      {summary['messages']:,}")
    click.echo(f"    👤 User:     {summary['user_messages']:,}")
    click.echo(f"    🎧 Agent:    {summary['agent_messages']:,}")
    if summary["by_language"]:
        languages = ", ".join(f"{lang}: {count}" for lang, count in sorted(summary["by_language"].items()))
        click.echo(f"  Languages:     {languages}")
    if summary["date_from"]:
        click.echo(f"  Date range:    {summary['date_from']} to {summary['date_to']}")


@cli.command()
@with_controller
@click.option("--format", "fmt", type=click.Choice(["json", "csv"]), default="json", help="Export format")
@click.option("-o", "--output", type=click.Path(dir_okay=False), help="Output file (default: timestamped name)")
def export(controller, cfg, fmt, output):
    """Export the filtered records to JSON or CSV"""
    path = write_export(controller.displayed, fmt, output)
    click.echo(f"✅ Exported {len(controller.displayed):,} records to {path}")


@cli.group()
def read():
    """Manage read/unread conversation markers"""
    pass


@read.command("mark")
@click.argument("conversation_ids", nargs=-1, required=True)
def mark_read(conversation_ids):
    """Mark conversations as read"""
    store = get_read_store(Config())
    for conversation_id in conversation_ids:
        store.mark_read(conversation_id)
    click.echo(f"📖 Marked {len(conversation_ids)} conversation(s) as read")


@read.command("unmark")
@click.argument("conversation_ids", nargs=-1, required=True)
def mark_unread(conversation_ids):
    """Mark conversations as unread"""
    store = get_read_store(Config())
    for conversation_id in conversation_ids:
        store.mark_unread(conversation_id)
    click.echo(f"📩 Marked {len(conversation_ids)} conversation(s) as unread")


@read.command("toggle")
@click.argument("conversation_id")
def toggle_read(conversation_id):
    """Flip the read state of a conversation"""
    store = get_read_store(Config())
    if store.toggle(conversation_id):
        click.echo(f"📖 {conversation_id} marked as read")
    else:
        click.echo(f"📩 {conversation_id} marked as unread")


@read.command("list")
def list_read():
    """List conversations marked as read"""
    store = get_read_store(Config())
    read_ids = store.all()
    if not read_ids:
        click.echo("No conversations marked as read")
        return
    for conversation_id in read_ids:
        click.echo(conversation_id)


@read.command("clear")
@click.option("--yes", is_flag=True, help="Don't ask for confirmation")
def clear_read(yes):
    """Mark all conversations as unread"""
    if not yes and not click.confirm(
        "Are you sure you want to clear all read status? This will mark all conversations as unread."
    ):
        click.echo("Aborted")
        return
    store = get_read_store(Config())
    store.clear()
    click.echo("✅ Cleared read status")


@cli.command()
def version():
    """Show version information"""
    click.echo(f"convoscope v{__version__}")


@cli.group()
def config():
    """Manage configuration settings"""
    pass


@config.command("show")
@click.option("--json", "as_json", is_flag=True, help="Output in JSON format")
def show_config(as_json):
    """Show current configuration"""
    cfg = Config()
    config_data = cfg.get_all()

    if as_json:
        click.echo(json.dumps(config_data, indent=2))
    else:
        click.echo("Current configuration:")
        file_config = cfg._load_config_file()
        for key, value in sorted(config_data.items()):
            # Show source of value
            env_key = Config.ENV_MAPPINGS.get(key, key.upper())
            if os.getenv(env_key) is not None:
                source = " (from environment)"
            elif key in file_config:
                source = " (from config file)"
            else:
                source = " (default)"
            click.echo(f"  {key}: {value}{source}")


@config.command("set")
@click.argument("key")
@click.argument("value")
def set_config(key, value):
    """Set a configuration value"""
    cfg = Config()

    # Validate key
    if key not in Config.DEFAULTS:
        click.echo(f"Error: Unknown configuration key '{key}'")
        click.echo(f"Valid keys: {', '.join(sorted(Config.DEFAULTS.keys()))}")
        return

    try:
        parsed = cfg._parse_value(value, key)
    except ValueError:
        kind = "a number" if isinstance(Config.DEFAULTS[key], float) else "an integer"
        click.echo(f"Error: {key} must be {kind}")
        return

    if key == "gap_minutes" and not parsed >= 0:
        click.echo("Error: gap_minutes must not be negative")
        return
    if key == "page_size" and parsed < 1:
        click.echo("Error: page_size must be at least 1")
        return
    if key == "default_sort" and parsed not in SORT_OPTIONS:
        click.echo(f"Error: default_sort must be one of: {', '.join(SORT_OPTIONS)}")
        return
    if key == "default_view" and parsed not in [m.value for m in ViewMode]:
        click.echo("Error: default_view must be 'segment' or 'conversation'")
        return

    cfg.set(key, parsed)
    click.echo(f"✅ Set {key} = {parsed}")


@config.command("unset")
@click.argument("key")
def unset_config(key):
    """Remove a configuration value"""
    cfg = Config()
    cfg.unset(key)
    click.echo(f"✅ Removed {key} from config file")


@cli.command(name="help")
def show_help():
    """Show detailed help and usage examples"""
    click.echo(
        """Convoscope - Support Chat Transcript Explorer

Usage Examples:

  # List segments as stored in the file
  convoscope show transcripts.json

  # Merge segments into full conversations
  convoscope show transcripts.json --view conversation

  # Re-segment with a 10 minute inactivity gap
  convoscope show transcripts.json --gap 10

  # Filter and sort
  convoscope show transcripts.json --language en --min-messages 5 --sort duration-desc

  # Show messages of page 2 (marks the shown conversations as read)
  convoscope show transcripts.json --page 2 --expand

  # Summary statistics
  convoscope stats transcripts.json --json

  # Export the filtered set
  convoscope export transcripts.json --format csv -o export.csv

  # Read markers
  convoscope read mark <conversation_id>
  convoscope read clear --yes

  # Configuration
  convoscope config show
  convoscope config set gap_minutes 15

Configuration Keys:
  gap_minutes      - Gap used by --resegment (default: 30)
  page_size        - Records per page (default: 50)
  default_sort     - Sort order when --sort is not given (default: date-desc)
  default_view     - segment or conversation (default: segment)
  log_level        - Logging level (default: WARNING)
  read_state_file  - Read markers file (default: ~/.convoscope/read_conversations.json)
"""
    )
