"""
Command Line Interface for MusicDiary.

This module is the terminal front end: record a memory song, browse the
timeline or the month calendar, give feedback on an analysis, share or
delete a record, and manage configuration.
"""

import logging
import sys
from datetime import date
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

from musicdiary import __version__
from musicdiary.ai.analyzer import GeminiAnalysisProvider
from musicdiary.ai.client import AIClient
from musicdiary.composer import CreationStatus, RecordComposer
from musicdiary.config import (
    APIKeyManager,
    AppConfig,
    ConfigError,
    get_config,
    load_config,
)
from musicdiary.core.calendar import build_month_grid, records_for_day, weekday_headers
from musicdiary.core.export import copy_to_clipboard
from musicdiary.core.models import MOOD_MAX, MOOD_MIN, Feedback, Language, MemoryRecord
from musicdiary.core.storage import JSONFileStorage
from musicdiary.core.store import MemoryStore
from musicdiary.core.tags import EMOTION_TAGS, find_tag
from musicdiary.core.timeline import format_record_date, mood_percent, timeline, youtube_search_url
from musicdiary.i18n import t
from musicdiary.utils.logging import level_for, setup_logging

logger = logging.getLogger(__name__)

console = Console()


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def print_header(text: str) -> None:
    """Print a styled header."""
    console.print()
    console.print(Panel(text, style="bold blue", expand=False))
    console.print()


def print_success(text: str) -> None:
    """Print green success message."""
    console.print(f"[bold green]✓[/bold green] {text}")


def print_warning(text: str) -> None:
    """Print yellow warning message."""
    console.print(f"[bold yellow]⚠[/bold yellow] {text}")


def print_error(text: str) -> None:
    """Print red error message."""
    console.print(f"[bold red]✗[/bold red] {text}")


def print_info_panel(title: str, content: str, border_style: str = "blue") -> None:
    """Print info panel box."""
    console.print(Panel(content, title=title, border_style=border_style))


def confirm(prompt: str, default: bool = False) -> bool:
    """Prompt for yes/no confirmation."""
    return Confirm.ask(prompt, default=default, console=console)


def feedback_label(record: MemoryRecord) -> str:
    if record.user_feedback is None:
        return "-"
    return "👍" if record.user_feedback == Feedback.CORRECT else "👎"


def rich_color(hex_color: str) -> str:
    """Rich only accepts six-digit hex colors; expand ``#abc`` to ``#aabbcc``."""
    digits = hex_color.lstrip("#")
    if len(digits) == 3:
        digits = "".join(c * 2 for c in digits)
    return f"#{digits.lower()}"


def mood_side(record: MemoryRecord, language: Language) -> str:
    return t("quiet", language) if record.mood_score < 0 else t("active", language)


def print_record(record: MemoryRecord, language: Language) -> None:
    """Print one record as a detail panel."""
    analysis = record.analysis
    color = rich_color(analysis.mood_color)
    lines = [
        f"[bold]{escape(record.song.title)}[/bold] / {escape(record.song.artist)}",
        f"{format_record_date(record, language)}",
        "",
        f"Mood: {record.mood_score:+d} {mood_side(record, language)} ({mood_percent(record)}%)  "
        f"[{color}]■[/] {analysis.mood_color}",
        f"Tags: {escape(', '.join(record.mood_tags)) or '-'}",
        f"Emotion: [bold]{escape(analysis.inferred_emotion)}[/bold]  Feedback: {feedback_label(record)}",
        "",
        escape(analysis.analysis_text),
    ]
    if record.content:
        lines += ["", f"[dim]{escape(record.content)}[/dim]"]
    lines += [
        "",
        f"Artwork: {'yes' if record.has_image else 'none'}",
        f"Listen: {youtube_search_url(record.song)}",
    ]
    console.print(
        Panel("\n".join(lines), title=f"ID {record.id}", border_style=color)
    )


def print_records_table(records: list[MemoryRecord], language: Language, title: str) -> None:
    table = Table(title=title)
    table.add_column("Date", style="cyan")
    table.add_column("Song")
    table.add_column("Artist")
    table.add_column("Mood", justify="right")
    table.add_column("Emotion", style="magenta")
    table.add_column("Tags")
    table.add_column("Feedback", justify="center")
    table.add_column("ID", style="dim")

    for record in records:
        table.add_row(
            format_record_date(record, language),
            escape(record.song.title),
            escape(record.song.artist),
            f"{record.mood_score:+d}",
            escape(record.analysis.inferred_emotion),
            escape(", ".join(record.mood_tags)),
            feedback_label(record),
            record.id,
        )

    console.print(table)


def open_store(ctx: click.Context) -> MemoryStore:
    """Build the store for this invocation and load the saved collection."""
    cfg: AppConfig = ctx.obj["config"]
    store = MemoryStore(
        JSONFileStorage(ctx.obj["data_dir"]),
        storage_key=cfg.storage.storage_key,
    )
    store.load()
    return store


def resolve_language(ctx: click.Context, lang: str | None) -> Language:
    return Language(lang or ctx.obj["config"].default_language)


def warn_if_write_failed(store: MemoryStore, language: Language) -> None:
    if store.last_write_error is not None:
        print_warning(t("write_failed", language))


lang_option = click.option(
    "--lang",
    type=click.Choice(["ja", "en"]),
    default=None,
    help="Display language (defaults to the configured language)",
)


# =============================================================================
# MAIN CLI GROUP
# =============================================================================


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--debug", is_flag=True, help="Enable debug mode")
@click.option("--config", "config_path", type=click.Path(path_type=Path), help="Custom config file")
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory holding the diary data",
)
@click.pass_context
def cli(ctx, verbose, debug, config_path, data_dir):
    """
    MusicDiary - a life log of music and emotions.

    Record the song that stayed with you today, and let Gemini reflect on
    the mood it carried.
    """
    setup_logging(level_for(verbose, debug))

    cfg = load_config(config_path) if config_path else get_config()

    ctx.ensure_object(dict)
    ctx.obj["config"] = cfg
    ctx.obj["data_dir"] = data_dir or cfg.storage.data_dir
    ctx.obj["verbose"] = verbose or cfg.verbose
    ctx.obj["debug"] = debug or cfg.debug


# =============================================================================
# ADD COMMAND - Record creation
# =============================================================================


@cli.command()
@click.option("--title", "-t", required=True, help="Song title")
@click.option("--artist", "-a", required=True, help="Artist name")
@click.option(
    "--date",
    "record_date",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Date of the memory (YYYY-MM-DD, defaults to today)",
)
@click.option(
    "--mood",
    type=click.IntRange(MOOD_MIN, MOOD_MAX),
    default=0,
    show_default=True,
    help="Mood score from -50 (quiet) to +50 (active)",
)
@click.option("--tag", "tags", multiple=True, help="Emotion tag (up to 3, see 'musicdiary tags')")
@click.option("--note", default="", help="Diary text")
@lang_option
@click.pass_context
def add(ctx, title, artist, record_date, mood, tags, note, lang):
    """
    Record a memory song and analyze it.

    Example:
        musicdiary add -t "Fly Me to the Moon" -a "Sample Artist" --mood 30 --tag Nostalgic
    """
    language = resolve_language(ctx, lang)
    store = open_store(ctx)
    provider = GeminiAnalysisProvider(AIClient(config=ctx.obj["config"]))

    composer = RecordComposer(store, provider, language=language)
    composer.inputs.song_title = title
    composer.inputs.artist_name = artist
    composer.inputs.mood_score = mood
    composer.inputs.diary_text = note
    if record_date is not None:
        composer.inputs.record_date = record_date.date()

    for text in tags:
        tag = find_tag(text)
        if tag is None:
            print_error(f"Unknown tag: {text}")
            sys.exit(1)
        label = tag.label(language)
        if label not in composer.inputs.tags and not composer.toggle_tag(label):
            print_warning(f"Tag ignored (3 already selected): {label}")

    print_header(f"🎵 {t('title_record', language)}")

    with console.status(t("step_analyzing", language)) as status:

        def on_progress(state, message):
            if message:
                status.update(message)

        composer.on_progress = on_progress
        result = composer.submit()

    if result.status == CreationStatus.REJECTED:
        print_error(t("missing_song", language))
        sys.exit(1)

    if result.status == CreationStatus.FAILED:
        print_error(result.message)
        sys.exit(1)

    print_success(t("saved", language))
    if result.used_fallback:
        print_warning(t("fallback_notice", language))
    if result.write_failed:
        print_warning(t("write_failed", language))

    print_record(result.record, language)


# =============================================================================
# BROWSING COMMANDS
# =============================================================================


@cli.command("list")
@lang_option
@click.pass_context
def list_records(ctx, lang):
    """Show the timeline, most recent first."""
    language = resolve_language(ctx, lang)
    records = timeline(open_store(ctx))

    if not records:
        print_info_panel(t("empty_title", language), t("empty_desc", language))
        return

    print_records_table(records, language, title=t("timeline", language))


@cli.command()
@click.option("--year", type=int, default=None, help="Year (defaults to this year)")
@click.option("--month", type=click.IntRange(1, 12), default=None, help="Month (defaults to this month)")
@click.option("--day", type=click.IntRange(1, 31), default=None, help="Also list the records of this day")
@lang_option
@click.pass_context
def calendar(ctx, year, month, day, lang):
    """Show a month as a calendar grid."""
    language = resolve_language(ctx, lang)
    today = date.today()
    year = year or today.year
    month = month or today.month
    records = open_store(ctx).records

    grid = build_month_grid(records, year, month, today=today)

    table = Table(title=f"{year}-{month:02d}", show_lines=True)
    for header in weekday_headers(language):
        table.add_column(header, justify="center", min_width=4)

    for row in grid.rows():
        cells = []
        for cell in row:
            if cell is None:
                cells.append("")
                continue
            text = f"[bold]{cell.day}[/bold]" if cell.is_today else str(cell.day)
            if cell.records:
                color = rich_color(cell.records[0].analysis.mood_color)
                text += f"\n[{color}]♪{len(cell.records)}[/]"
            cells.append(text)
        table.add_row(*cells)

    console.print(table)

    if day is not None:
        day_records = records_for_day(records, year, month, day)
        if not day_records:
            print_info_panel(t("empty_title", language), t("empty_desc", language))
            return
        print_records_table(day_records, language, title=f"{year}-{month:02d}-{day:02d}")


@cli.command()
@click.argument("record_id")
@lang_option
@click.pass_context
def show(ctx, record_id, lang):
    """Show one record in full."""
    language = resolve_language(ctx, lang)
    record = open_store(ctx).get(record_id)

    if record is None:
        print_error(t("not_found", language))
        sys.exit(1)

    print_record(record, language)


@cli.command()
@lang_option
def tags(lang):
    """List the emotion tags."""
    table = Table(title="Emotion Tags")
    table.add_column("ID", style="cyan")
    if lang:
        table.add_column("Label")
    else:
        table.add_column("日本語")
        table.add_column("English")

    for tag in EMOTION_TAGS:
        if lang:
            table.add_row(tag.id, tag.label(lang))
        else:
            table.add_row(tag.id, tag.ja, tag.en)

    console.print(table)


# =============================================================================
# RECORD MUTATION COMMANDS
# =============================================================================


@cli.command()
@click.argument("record_id")
@click.option("--correct", "verdict", flag_value="correct", help="The inferred emotion fits")
@click.option("--incorrect", "verdict", flag_value="incorrect", help="The inferred emotion is off")
@lang_option
@click.pass_context
def feedback(ctx, record_id, verdict, lang):
    """Mark the inferred emotion of a record as correct or incorrect."""
    if verdict is None:
        raise click.UsageError("Pass --correct or --incorrect")

    language = resolve_language(ctx, lang)
    store = open_store(ctx)
    record = store.set_feedback(record_id, verdict == "correct")

    if record is None:
        print_error(t("not_found", language))
        sys.exit(1)

    print_success(f"{record.analysis.inferred_emotion}: {feedback_label(record)}")
    warn_if_write_failed(store, language)


@cli.command()
@click.argument("record_id")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@lang_option
@click.pass_context
def delete(ctx, record_id, yes, lang):
    """Delete a record."""
    language = resolve_language(ctx, lang)
    store = open_store(ctx)

    if not yes and not confirm(t("confirm_delete", language)):
        return

    if store.delete(record_id):
        print_success(f"Deleted {record_id}")
    else:
        print_warning(t("not_found", language))
    warn_if_write_failed(store, language)


@cli.command()
@click.argument("record_id")
@lang_option
@click.pass_context
def share(ctx, record_id, lang):
    """Print a short shareable summary of a record."""
    language = resolve_language(ctx, lang)
    record = open_store(ctx).get(record_id)

    if record is None:
        print_error(t("not_found", language))
        sys.exit(1)

    if not copy_to_clipboard(record, click.echo):
        print_error(t("error_msg", language))
        sys.exit(1)


# =============================================================================
# CONFIG COMMANDS
# =============================================================================


@cli.group()
def config():
    """Manage configuration settings."""
    pass


@config.command("show")
@click.pass_context
def show_config(ctx):
    """Display current configuration."""
    cfg: AppConfig = ctx.obj["config"]
    key_configured = APIKeyManager().get_key() is not None

    table = Table(title="Settings")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("AI Mode", cfg.ai.mode.value)
    table.add_row("Analysis Model", cfg.ai.analysis_model)
    table.add_row("Image Model", cfg.ai.image_model)
    table.add_row("API Key", "[CONFIGURED]" if key_configured else "[red]not set[/red]")
    table.add_row("Data Directory", str(ctx.obj["data_dir"]))
    table.add_row("Storage Key", cfg.storage.storage_key)
    table.add_row("Language", cfg.default_language)

    console.print(table)


@config.command("set-key")
def set_key():
    """Store the Gemini API key in the system keyring."""
    print_header("🔑 Set Gemini API Key")

    api_key = click.prompt("Enter your Gemini API key", hide_input=True)

    try:
        APIKeyManager().store_key(api_key)
    except ConfigError as e:
        print_error(str(e))
        sys.exit(1)

    print_success("API key configured successfully")


@config.command("clear-key")
@click.option("--force", is_flag=True, help="Skip confirmation")
def clear_key(force):
    """Remove the stored API key."""
    if not force and not confirm("Remove API key?"):
        return

    try:
        removed = APIKeyManager().delete_key()
    except ConfigError as e:
        print_error(str(e))
        sys.exit(1)

    if removed:
        print_success("API key removed")
    else:
        print_warning("No stored API key found")


# =============================================================================
# VERSION COMMAND
# =============================================================================


@cli.command()
@click.pass_context
def version(ctx):
    """Show version and AI status."""
    cfg: AppConfig = ctx.obj["config"]
    console.print(f"MusicDiary [bold]{__version__}[/bold] - {t('subtitle', cfg.default_language)}")
    console.print(f"Python: {sys.version.split()[0]}")

    if AIClient(config=cfg).is_available():
        console.print("  [green]✓[/green] Gemini API")
    else:
        console.print("  [yellow]○[/yellow] Gemini API (configure with: musicdiary config set-key)")


def main():
    """Entry point for the console script."""
    cli()


if __name__ == "__main__":
    main()
