"""CLI commands for myday-voice.

Provides subcommands for parsing, executing and reviewing voice commands.
Spoken input is replaced by typed text (``TypedCapture``).

Commands:
    myday-voice parse     - Parse a transcript and show what would be created
    myday-voice say       - Run a full listen -> confirm -> execute cycle
    myday-voice history   - Show recent voice commands
    myday-voice undo      - Undo the item a command created
    myday-voice stats     - Show usage analytics
    myday-voice learn     - Teach a phrase -> entity correction
    myday-voice patterns  - Show learned patterns
    myday-voice purge     - Delete expired (or old) command records
    myday-voice evaluate  - Score the parser against labelled examples
"""

from __future__ import annotations

import argparse
import asyncio
import json
import uuid
from dataclasses import dataclass
from datetime import date
from pathlib import Path

from rich.console import Console
from rich.table import Table

from .config import AppConfig
from .core.analytics import CommandAnalytics
from .core.capture import TypedCapture
from .core.commandlog import CommandLog, CommandLogStore, CommandNotFoundError, Outcome
from .core.domain import LocalDomainStore
from .core.executor import Executor, ExtractedField
from .core.intent import CommandParser, ConfidenceFusion, IntentClassifier
from .core.intent.taxonomy import EntityType, IntentType, ParsedCommand
from .core.learning import PatternStore
from .core.ledger import AuditLog, NothingToUndoError, UndoLedger
from .core.lifecycle import CommandLifecycle
from .core.privacy import codec_for
from .core.training import evaluate, load_training_file

console = Console()

DEFAULT_USER = "local"

_OUTCOME_STYLES = {
    Outcome.PENDING: "yellow",
    Outcome.SUCCESS: "green",
    Outcome.FAILED: "red",
    Outcome.CANCELLED: "dim",
    Outcome.UNDONE: "magenta",
}


# =============================================================================
# Wiring
# =============================================================================


@dataclass
class Services:
    """Everything a command needs, built from one configuration."""

    config: AppConfig
    parser: CommandParser
    store: CommandLogStore
    domain: LocalDomainStore
    audit: AuditLog
    executor: Executor
    ledger: UndoLedger
    analytics: CommandAnalytics
    patterns: PatternStore


def build_services(config: AppConfig) -> Services:
    """Wire the core components onto a data directory."""
    data_dir = config.data_dir
    patterns = PatternStore(data_dir)
    parser = CommandParser(
        classifier=IntentClassifier(**config.classifier.to_kwargs()),
        fusion=ConfidenceFusion(config.fusion.to_weights()),
        patterns=patterns if config.auto_apply_patterns else None,
    )
    store = CommandLogStore(
        data_dir, codec=codec_for(config), retention_days=config.retention_days
    )
    domain = LocalDomainStore(data_dir)
    collaborators = domain.collaborators()
    audit = AuditLog(data_dir)
    return Services(
        config=config,
        parser=parser,
        store=store,
        domain=domain,
        audit=audit,
        executor=Executor(collaborators, store=store, audit=audit, language=config.language),
        ledger=UndoLedger(store, collaborators, audit=audit),
        analytics=CommandAnalytics(data_dir),
        patterns=patterns,
    )


def load_services(args: argparse.Namespace) -> Services:
    data_dir = Path(args.data_dir) if args.data_dir else None
    return build_services(AppConfig.load(data_dir))


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}") from e


def _format_value(value: object) -> str:
    if value is None:
        return "-"
    if isinstance(value, list):
        return ", ".join(str(v) for v in value) if value else "-"
    return str(value)


def _print_parsed(parsed: ParsedCommand, fields: dict[str, ExtractedField]) -> None:
    intent = parsed.intent_type.value.replace("_", " ").title()
    console.print(
        f"[bold]{intent}[/bold] "
        f"[dim](intent {parsed.intent.confidence:.2f}, overall {parsed.overall_confidence:.2f})[/dim]"
    )

    if parsed.entities:
        table = Table(title="Entities")
        table.add_column("Type", style="cyan")
        table.add_column("Heard")
        table.add_column("Value")
        table.add_column("Conf", justify="right")
        for entity in parsed.entities:
            table.add_row(
                entity.type.value.title(),
                _format_value(entity.value),
                _format_value(entity.normalized_value),
                f"{entity.confidence:.2f}",
            )
        console.print(table)

    if fields:
        table = Table(title="Will create")
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        table.add_column("Source", style="dim")
        for name, extracted in fields.items():
            source = "default" if extracted.is_default else "heard"
            table.add_row(name, _format_value(extracted.value), source)
        console.print(table)
    else:
        console.print("[yellow]Nothing can be created from this command.[/yellow]")


# =============================================================================
# Commands
# =============================================================================


def parse_text(args: argparse.Namespace) -> int:
    """Parse a transcript without executing it.

    Args:
        args: Parsed arguments (text, date, json)

    Returns:
        Exit code (0 for success)
    """
    services = load_services(args)
    transcript = " ".join(args.text)
    parsed = services.parser.parse(transcript, reference_date=args.date, user_id=args.user)

    if args.json:
        console.print_json(json.dumps(parsed.to_dict()))
        return 0

    _print_parsed(parsed, services.executor.preview(parsed))
    return 0


async def _say(services: Services, args: argparse.Namespace) -> int:
    transcript = " ".join(args.text) if args.text else None
    capture = TypedCapture(reader=(lambda: transcript) if transcript else None)
    lifecycle = CommandLifecycle(
        capture,
        services.parser,
        services.executor,
        store=services.store,
        analytics=services.analytics,
        user_id=args.user,
        session_id=str(uuid.uuid4()),
        language=services.config.language,
    )

    if transcript is None:
        console.print("[dim]Type your command:[/dim]")
    parsed = await lifecycle.listen()
    if parsed is None:
        console.print(f"[red]✗[/red] {lifecycle.error_message}")
        return 1

    _print_parsed(parsed, services.executor.preview(parsed))

    if not args.yes:
        answer = console.input("Create this? \\[y/N] ").strip().lower()
        if answer not in ("y", "yes"):
            await lifecycle.cancel()
            console.print("[dim]Cancelled.[/dim]")
            return 0

    result = await lifecycle.confirm()
    if not result.success:
        console.print(f"[red]✗[/red] {result.error}")
        return 1

    console.print(f"[green]✓[/green] Created {result.created_item}")
    if result.command_id:
        console.print(f"[dim]Undo with: myday-voice undo {result.command_id[:8]}[/dim]")
    return 0


def say(args: argparse.Namespace) -> int:
    """Run one command cycle from typed text.

    Args:
        args: Parsed arguments (text, yes)

    Returns:
        Exit code (0 for success or cancellation)
    """
    return asyncio.run(_say(load_services(args), args))


def show_history(args: argparse.Namespace) -> int:
    """Show recent voice commands.

    Args:
        args: Parsed arguments (limit, intent, outcome, search)

    Returns:
        Exit code (0 for success)
    """
    services = load_services(args)
    if args.search or args.intent or args.outcome:
        logs = services.store.search(
            args.search or "",
            user_id=args.user,
            intent=IntentType(args.intent.upper()) if args.intent else None,
            outcome=Outcome(args.outcome.upper()) if args.outcome else None,
        )
    else:
        logs = services.store.list_recent(args.user, limit=args.limit)
    logs = logs[: args.limit]

    if not logs:
        console.print("[dim]No voice commands yet.[/dim]")
        return 0

    table = Table(title="Voice Commands")
    table.add_column("ID", style="dim")
    table.add_column("When", style="dim")
    table.add_column("Intent", style="cyan")
    table.add_column("Title")
    table.add_column("Conf", justify="right")
    table.add_column("Outcome")

    for log in logs:
        style = _OUTCOME_STYLES[log.outcome]
        table.add_row(
            log.id[:8],
            log.created_at.strftime("%Y-%m-%d %H:%M"),
            log.intent_type.value.replace("CREATE_", "").lower(),
            log.extracted_title or log.transcript[:40],
            f"{log.overall_confidence:.2f}",
            f"[{style}]{log.outcome.value.lower()}[/{style}]",
        )

    console.print(table)
    return 0


def _resolve_command(store: CommandLogStore, user_id: str, prefix: str) -> CommandLog:
    """Find one of the user's commands by full id or unique id prefix."""
    try:
        log = store.get(prefix)
    except CommandNotFoundError:
        log = None
    # Other users' commands are reported as missing
    if log is not None and log.user_id == user_id:
        return log

    matches = [c for c in store.search("", user_id=user_id) if c.id.startswith(prefix)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise CommandNotFoundError(f"Command not found: {prefix}")
    raise CommandNotFoundError(f"Ambiguous command id '{prefix}' ({len(matches)} matches)")


def undo_command(args: argparse.Namespace) -> int:
    """Undo the item a voice command created.

    Args:
        args: Parsed arguments (command_id)

    Returns:
        Exit code (0 for success)
    """
    services = load_services(args)
    try:
        log = _resolve_command(services.store, args.user, args.command_id)
        undone = services.ledger.undo(log.id)
    except CommandNotFoundError as e:
        console.print(f"[red]✗[/red] {e}")
        return 1
    except NothingToUndoError as e:
        console.print(f"[yellow]{e}[/yellow]")
        return 1

    console.print(f"[green]✓[/green] Undid {undone.created_item} ({undone.id[:8]})")
    return 0


def show_stats(args: argparse.Namespace) -> int:
    """Show usage analytics for the current user.

    Args:
        args: Parsed arguments

    Returns:
        Exit code (0 for success)
    """
    services = load_services(args)
    analytics = services.analytics
    metrics = analytics.user_metrics(args.user, services.patterns)

    if not metrics.total_commands:
        console.print("[dim]No commands tracked yet.[/dim]")
        return 0

    console.print(f"[bold]Commands:[/bold] {metrics.total_commands}")
    console.print(f"[bold]Success rate:[/bold] {metrics.success_rate:.1f}%")
    console.print(f"[bold]Average confidence:[/bold] {metrics.average_confidence:.2f}")
    if metrics.most_used_intent is not None:
        console.print(f"[bold]Most used:[/bold] {metrics.most_used_intent.value}")
    console.print(f"[bold]Learned patterns:[/bold] {metrics.learned_patterns}")
    console.print()

    table = Table(title="Intents")
    table.add_column("Intent", style="cyan")
    table.add_column("Count", justify="right")
    table.add_column("Share", justify="right")
    table.add_column("Avg conf", justify="right")
    averages = analytics.average_confidence_by_intent()
    for share in analytics.intent_distribution():
        avg = averages.get(share.intent)
        table.add_row(
            share.intent.value,
            str(share.count),
            f"{share.percentage:.1f}%",
            f"{avg:.2f}" if avg is not None else "-",
        )
    console.print(table)

    failures = analytics.top_failure_reasons(limit=5)
    if failures:
        table = Table(title="Top failure reasons")
        table.add_column("Reason")
        table.add_column("Count", justify="right")
        for failure in failures:
            table.add_row(failure.reason, str(failure.count))
        console.print(table)

    peaks = analytics.peak_usage_hours()[:3]
    if peaks:
        hours = ", ".join(f"{p.hour:02d}:00 ({p.count})" for p in peaks)
        console.print(f"[bold]Busiest hours:[/bold] {hours}")

    return 0


def learn_pattern(args: argparse.Namespace) -> int:
    """Record a phrase -> entity correction.

    Args:
        args: Parsed arguments (phrase, entity_type, value)

    Returns:
        Exit code (0 for success)
    """
    services = load_services(args)
    try:
        entity_type = EntityType(args.entity_type.upper())
    except ValueError:
        choices = ", ".join(t.value.lower() for t in EntityType)
        console.print(f"[red]✗[/red] Unknown entity type '{args.entity_type}' ({choices})")
        return 1

    pattern = services.patterns.learn_from_correction(
        args.user, args.phrase, entity_type, args.value
    )
    status = "[green]auto-applied[/green]" if pattern.auto_apply else "[dim]not yet applied[/dim]"
    console.print(
        f"[green]✓[/green] '{pattern.phrase_pattern}' -> "
        f"{entity_type.value.lower()}={pattern.maps_to_value} "
        f"(seen {pattern.frequency_count}x, {status})"
    )
    return 0


def show_patterns(args: argparse.Namespace) -> int:
    """Show the current user's learned patterns."""
    services = load_services(args)
    patterns = services.patterns.user_patterns(args.user)

    if not patterns:
        console.print("[dim]No learned patterns yet.[/dim]")
        return 0

    table = Table(title="Learned Patterns")
    table.add_column("Phrase", style="cyan")
    table.add_column("Type")
    table.add_column("Value")
    table.add_column("Seen", justify="right")
    table.add_column("Conf", justify="right")
    table.add_column("Auto")

    for pattern in patterns:
        table.add_row(
            pattern.phrase_pattern,
            pattern.maps_to_entity_type.value.lower(),
            _format_value(pattern.maps_to_value),
            str(pattern.frequency_count),
            f"{pattern.confidence_score:.2f}",
            "[green]yes[/green]" if pattern.auto_apply else "no",
        )

    console.print(table)
    return 0


def purge_logs(args: argparse.Namespace) -> int:
    """Delete expired command records, or all older than N days."""
    services = load_services(args)
    if args.older_than is not None:
        removed = services.store.purge_older_than(args.older_than)
    else:
        removed = services.store.purge_expired()
    console.print(f"[green]✓[/green] Removed {removed} command record(s)")
    return 0


def evaluate_examples(args: argparse.Namespace) -> int:
    """Score the parser against a labelled examples file.

    Args:
        args: Parsed arguments (file, date)

    Returns:
        Exit code (0 for success, 1 if the file has no examples)
    """
    services = load_services(args)
    examples = load_training_file(Path(args.file))
    if not examples:
        console.print(f"[yellow]No examples found in {args.file}[/yellow]")
        return 1

    report = evaluate(services.parser, examples, args.date or date.today())

    console.print(f"[bold]Examples:[/bold] {report.total} ({report.labelled} with an intent)")
    console.print(f"[bold]Intent accuracy:[/bold] {report.intent_accuracy:.1f}%")

    if report.field_agreement:
        table = Table(title="Field agreement")
        table.add_column("Field", style="cyan")
        table.add_column("Matched", justify="right")
        table.add_column("Compared", justify="right")
        for name, (hits, compared) in sorted(report.field_agreement.items()):
            table.add_row(name, str(hits), str(compared))
        console.print(table)

    if report.mismatches:
        console.print()
        console.print("[bold]Intent mismatches:[/bold]")
        for transcript, expected, actual in report.mismatches[:10]:
            console.print(f"  [dim]{transcript}[/dim]: expected {expected}, got {actual}")

    return 0


# =============================================================================
# Parser
# =============================================================================


def create_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="myday-voice",
        description="myday-voice: turn spoken commands into tasks, events and notes",
    )
    parser.add_argument(
        "--data-dir",
        "-d",
        dest="data_dir",
        default=None,
        help="Data directory (default: $MYDAY_VOICE_DATA_DIR or ~/.myday-voice)",
    )
    parser.add_argument(
        "--user",
        "-u",
        default=DEFAULT_USER,
        help=f"User id commands are recorded under (default: {DEFAULT_USER})",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # =========================================================================
    # parse / say
    # =========================================================================
    parse_parser = subparsers.add_parser("parse", help="Parse a transcript")
    parse_parser.add_argument("text", nargs="+", help="Transcript text")
    parse_parser.add_argument(
        "--date",
        type=_parse_date,
        default=None,
        help="Reference date for relative expressions (default: today)",
    )
    parse_parser.add_argument("--json", action="store_true", help="Print the parse as JSON")
    parse_parser.set_defaults(func=parse_text)

    say_parser = subparsers.add_parser("say", help="Parse, confirm and execute a command")
    say_parser.add_argument("text", nargs="*", help="Transcript text (prompted if omitted)")
    say_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation")
    say_parser.set_defaults(func=say)

    # =========================================================================
    # history / undo
    # =========================================================================
    history_parser = subparsers.add_parser("history", help="Show recent voice commands")
    history_parser.add_argument(
        "--limit",
        "-n",
        type=int,
        default=20,
        help="Maximum commands to show (default: 20)",
    )
    history_parser.add_argument("--intent", "-i", help="Filter by intent (e.g. create_task)")
    history_parser.add_argument("--outcome", "-o", help="Filter by outcome (e.g. failed)")
    history_parser.add_argument("--search", "-s", help="Search transcripts and titles")
    history_parser.set_defaults(func=show_history)

    undo_parser = subparsers.add_parser("undo", help="Undo the item a command created")
    undo_parser.add_argument("command_id", help="Command id (or unique prefix)")
    undo_parser.set_defaults(func=undo_command)

    # =========================================================================
    # stats / learn / patterns
    # =========================================================================
    stats_parser = subparsers.add_parser("stats", help="Show usage analytics")
    stats_parser.set_defaults(func=show_stats)

    learn_parser = subparsers.add_parser("learn", help="Teach a phrase -> entity correction")
    learn_parser.add_argument("phrase", help="Phrase as it appears in transcripts")
    learn_parser.add_argument("entity_type", help="Entity type (tag, priority, location, ...)")
    learn_parser.add_argument("value", help="Value the phrase should produce")
    learn_parser.set_defaults(func=learn_pattern)

    patterns_parser = subparsers.add_parser("patterns", help="Show learned patterns")
    patterns_parser.set_defaults(func=show_patterns)

    # =========================================================================
    # purge / evaluate
    # =========================================================================
    purge_parser = subparsers.add_parser("purge", help="Delete expired command records")
    purge_parser.add_argument(
        "--older-than",
        type=int,
        default=None,
        metavar="DAYS",
        help="Delete every record older than DAYS instead",
    )
    purge_parser.set_defaults(func=purge_logs)

    evaluate_parser = subparsers.add_parser(
        "evaluate", help="Score the parser against labelled examples"
    )
    evaluate_parser.add_argument("file", help="Examples file")
    evaluate_parser.add_argument(
        "--date",
        type=_parse_date,
        default=None,
        help="Reference date for relative expressions (default: today)",
    )
    evaluate_parser.set_defaults(func=evaluate_examples)

    return parser


def run_cli(args: list[str] | None = None) -> int:
    """Run the CLI.

    Args:
        args: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not hasattr(parsed, "func"):
        parser.print_help()
        return 0

    try:
        return parsed.func(parsed)
    except KeyboardInterrupt:
        console.print("\n[dim]Cancelled.[/dim]")
        return 130
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1


__all__ = [
    "Services",
    "build_services",
    "create_parser",
    "run_cli",
    "parse_text",
    "say",
    "show_history",
    "undo_command",
    "show_stats",
    "learn_pattern",
    "show_patterns",
    "purge_logs",
    "evaluate_examples",
]
