"""mention-markup CLI - decode, encode and interactively edit mention markup."""

import json
import logging
import sys
from pathlib import Path
from typing import Any

import click
import yaml
from pydantic import ValidationError

from .console import console
from .console import render_segments
from .console import spans_table
from .controller import MentionController
from .errors import PreconditionError
from .logging_setup import init_json_logging
from .markup import encode_markup
from .models import MentionObject
from .models import MentionSpan
from .models import MentionSyntax
from .settings import SettingsManager
from .settings import load_mentions
from .syntax import SyntaxRegistry
from .utils.error_format import escape_markup
from .utils.error_format import format_error_message

logger = logging.getLogger(__name__)

# Errors reported to the user instead of a traceback
USER_ERRORS = (PreconditionError, ValidationError, yaml.YAMLError, OSError, ValueError, KeyError)


def _fail(error: BaseException) -> None:
    console.print(f"[red]Error:[/red] {escape_markup(format_error_message(error))}")
    sys.exit(1)


def _read_input(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _span_payload(span: MentionSpan) -> dict[str, Any]:
    return {
        "id": span.id,
        "display_name": span.display_name,
        "start": span.start,
        "end": span.end,
        "trigger": span.syntax.starting_character,
    }


def _controller_payload(controller: MentionController) -> dict[str, Any]:
    composing = controller.is_composing()
    return {
        "text": controller.text,
        "markup": controller.export_markup(),
        "spans": [_span_payload(span) for span in controller.spans],
        "composing": composing,
        "search_text": controller.get_search_text() if composing else None,
    }


def _print_controller(controller: MentionController) -> None:
    console.print(render_segments(controller.segments()))
    if controller.spans:
        console.print(spans_table(controller.spans))
    if controller.is_composing():
        syntax = controller.get_search_syntax()
        console.print(
            f"[dim]Composing[/dim] {escape_markup(syntax.starting_character)}"
            f"[bold]{escape_markup(controller.get_search_text())}[/bold]"
        )
    console.print(f"[dim]Markup:[/dim] {escape_markup(controller.export_markup())}")


def _load_lookup(mentions_file: str | None) -> dict[str, MentionObject]:
    if mentions_file is None:
        return {}
    return load_mentions(Path(mentions_file))


@click.group()
@click.version_option(package_name="mention-markup")
@click.option(
    "--settings-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Project settings directory (default: .mention-markup)",
)
@click.option("--log-level", default=None, help="Log level for the JSONL log (default: from settings)")
@click.pass_context
def cli(ctx, settings_dir: Path | None, log_level: str | None):
    """Decode, encode and edit text containing mention markup.

    Examples:
        mention-markup decode message.txt --mentions people.yaml
        mention-markup replay message.txt steps.yaml
        mention-markup edit --mentions people.yaml
    """
    settings = SettingsManager(settings_dir)
    logging_config = settings.get_logging_config()
    init_json_logging(path=logging_config.get("path"), level=log_level or logging_config.get("level"))

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


def _registry(ctx) -> SyntaxRegistry:
    settings: SettingsManager = ctx.obj["settings"]
    try:
        return SyntaxRegistry(settings.get_syntaxes())
    except ValidationError as e:
        _fail(e)


@cli.command()
@click.argument("markup_file")
@click.option("--mentions", "mentions_file", type=click.Path(exists=True), help="YAML file of known mentions")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of formatted output")
@click.pass_context
def decode(ctx, markup_file: str, mentions_file: str | None, as_json: bool):
    """Decode MARKUP_FILE ("-" for stdin) into display text and mention spans."""
    registry = _registry(ctx)
    try:
        mentions = _load_lookup(mentions_file)
        controller = MentionController(registry)
        controller.load_markup(_read_input(markup_file), mentions.get)
    except USER_ERRORS as e:
        _fail(e)

    if as_json:
        click.echo(json.dumps(_controller_payload(controller), ensure_ascii=False, indent=2))
        return
    _print_controller(controller)


@cli.command()
@click.argument("input_file")
@click.pass_context
def encode(ctx, input_file: str):
    """Encode a JSON buffer description into markup.

    INPUT_FILE ("-" for stdin) holds {"text": ..., "spans": [{"id",
    "display_name", "start", "end", "trigger"}]}.
    """
    registry = _registry(ctx)
    try:
        data = json.loads(_read_input(input_file))
        spans = []
        for entry in data.get("spans", []):
            syntax = registry.for_trigger(entry["trigger"])
            if syntax is None:
                raise ValueError(f"No syntax registered for trigger {entry['trigger']!r}")
            spans.append(
                MentionSpan(
                    id=entry["id"],
                    display_name=entry["display_name"],
                    start=entry["start"],
                    end=entry["end"],
                    syntax=syntax,
                )
            )
    except USER_ERRORS as e:
        _fail(e)

    spans.sort(key=lambda span: span.start)
    click.echo(encode_markup(data["text"], spans))


def _run_step(controller: MentionController, step: dict[str, Any], mentions: dict[str, MentionObject]) -> None:
    if "text" in step:
        controller.apply_edit(step["text"])
    elif "insert" in step:
        at = step["insert"]["at"]
        controller.apply_edit(controller.text[:at] + step["insert"]["text"] + controller.text[at:])
    elif "delete" in step:
        at = step["delete"]["at"]
        length = step["delete"].get("length", 1)
        controller.apply_edit(controller.text[:at] + controller.text[at + length :])
    elif "commit" in step:
        target = step["commit"]
        if isinstance(target, dict):
            mention = MentionObject(**{k: str(v) if k == "id" else v for k, v in target.items()})
        else:
            mention = mentions[str(target)]
        controller.commit_mention(mention)
    elif "cancel" in step:
        controller.cancel_composition()
    else:
        raise ValueError(f"Unknown replay step: {step!r}")


@cli.command()
@click.argument("markup_file")
@click.argument("script_file", type=click.Path(exists=True))
@click.option("--mentions", "mentions_file", type=click.Path(exists=True), help="YAML file of known mentions")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of formatted output")
@click.pass_context
def replay(ctx, markup_file: str, script_file: str, mentions_file: str | None, as_json: bool):
    """Load MARKUP_FILE, apply the edits in SCRIPT_FILE and show the result.

    SCRIPT_FILE is a YAML list of steps, each one of:
    text (full new buffer), insert {at, text}, delete {at, length},
    commit (mention id or {id, display_name}), cancel.
    """
    registry = _registry(ctx)
    events: list[str] = []

    def record(syntax: MentionSyntax | None, search: str | None) -> None:
        events.append("cancelled" if syntax is None else f"{syntax.starting_character}:{search}")

    try:
        mentions = _load_lookup(mentions_file)
        steps = yaml.safe_load(Path(script_file).read_text(encoding="utf-8")) or []
        controller = MentionController(registry, on_composition_changed=record)
        controller.load_markup(_read_input(markup_file), mentions.get)
        for step in steps:
            _run_step(controller, step, mentions)
    except USER_ERRORS as e:
        _fail(e)

    if as_json:
        payload = _controller_payload(controller)
        payload["composition_events"] = events
        click.echo(json.dumps(payload, ensure_ascii=False, indent=2))
        return
    _print_controller(controller)


@cli.command()
@click.option("--markup", "markup_file", type=click.Path(exists=True), help="Markup to start from")
@click.option("--mentions", "mentions_file", type=click.Path(exists=True), help="YAML file of known mentions")
@click.pass_context
def edit(ctx, markup_file: str | None, mentions_file: str | None):
    """Edit text interactively; Tab inserts the highlighted mention.

    Prints the resulting markup when the input is submitted.
    """
    from .prompt import create_prompt_session

    registry = _registry(ctx)
    try:
        mentions = _load_lookup(mentions_file)
        controller = MentionController(registry)
        if markup_file:
            controller.load_markup(_read_input(markup_file), mentions.get)
    except USER_ERRORS as e:
        _fail(e)

    session, _binding = create_prompt_session(controller, mentions)
    try:
        session.prompt(default=controller.text)
    except (EOFError, KeyboardInterrupt):
        console.print("[yellow]Cancelled[/yellow]")
        return

    _print_controller(controller)


@cli.group(name="syntax")
def syntax_group():
    """Manage mention syntaxes in settings."""
    pass


@syntax_group.command(name="list")
@click.pass_context
def syntax_list(ctx):
    """Show the syntaxes in effect (local > project > user)."""
    from rich.table import Table

    registry = _registry(ctx)
    table = Table(title="Mention Syntaxes", show_header=True, header_style="bold cyan")
    table.add_column("Trigger", style="green")
    table.add_column("Prefix", style="yellow")
    table.add_column("Suffix", style="yellow")
    table.add_column("Pattern", style="white")
    table.add_column("Missing text", style="white")
    for syntax in registry:
        table.add_row(
            escape_markup(syntax.starting_character),
            escape_markup(syntax.prefix),
            escape_markup(syntax.suffix),
            escape_markup(syntax.pattern),
            escape_markup(syntax.missing_text),
        )
    console.print(table)


@syntax_group.command(name="add")
@click.argument("starting_character")
@click.option("--missing-text", required=True, help="Display name for unknown ids")
@click.option("--prefix", default=None, help="Markup prefix")
@click.option("--suffix", default=None, help="Markup suffix")
@click.option("--pattern", default=None, help="Regular expression for ids")
@click.option("--scope", type=click.Choice(["local", "project", "user"]), default="project")
@click.pass_context
def syntax_add(ctx, starting_character: str, missing_text: str, prefix, suffix, pattern, scope: str):
    """Add or replace the syntax for STARTING_CHARACTER."""
    overrides = {"prefix": prefix, "suffix": suffix, "pattern": pattern}
    try:
        syntax = MentionSyntax(
            starting_character=starting_character,
            missing_text=missing_text,
            **{key: value for key, value in overrides.items() if value is not None},
        )
        ctx.obj["settings"].add_syntax(syntax, scope=scope)
    except USER_ERRORS as e:
        _fail(e)
    console.print(f"[green]✓ Added syntax[/green] {escape_markup(starting_character)} ({scope})")


@syntax_group.command(name="remove")
@click.argument("starting_character")
@click.option("--scope", type=click.Choice(["local", "project", "user"]), default="project")
@click.pass_context
def syntax_remove(ctx, starting_character: str, scope: str):
    """Remove the syntax for STARTING_CHARACTER from one scope."""
    if ctx.obj["settings"].remove_syntax(starting_character, scope=scope):
        console.print(f"[green]✓ Removed syntax[/green] {escape_markup(starting_character)} ({scope})")
    else:
        console.print(f"[yellow]No {scope} syntax for[/yellow] {escape_markup(starting_character)}")


if __name__ == "__main__":
    cli()
