"""Click CLI: loads config, builds the provider and registry, runs board meetings."""

import asyncio
import logging
import os
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from boardroom.errors import OrchestrationError
from boardroom.healthcheck import check_provider
from boardroom.inbox import MemoInbox
from boardroom.meeting import run_board_meeting
from boardroom.memo import load_memo
from boardroom.models import Memo, MemoOption, RunState
from boardroom.output import JsonRecordSink, print_reviews, print_synthesis, save_to_file
from boardroom.personas import PersonaRegistry
from boardroom.providers.base import CompletionProvider
from boardroom.providers.openai_provider import OpenAIResponsesProvider
from config.config_loader import AppConfig, ConfigurationError, load_config

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

_STATE_LABELS: dict[RunState, str] = {
    RunState.NORMALIZE: "Secretary normalizing memo...",
    RunState.PARALLEL_REVIEW: "Board members reviewing in parallel...",
    RunState.SYNTHESIZE: "Strategist synthesizing...",
    RunState.COMPLETE: "Board meeting complete",
    RunState.FAILED: "Board meeting failed",
}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _parse_options(values: tuple[str, ...]) -> tuple[MemoOption, ...]:
    """Parse ``--option ID:TEXT`` values; bare text gets a 1-based numeric id."""
    options: list[MemoOption] = []
    for index, value in enumerate(values, start=1):
        option_id, sep, description = value.partition(":")
        if sep and option_id.strip() and description.strip():
            options.append(MemoOption(id=option_id.strip(), description=description.strip()))
        else:
            options.append(MemoOption(id=str(index), description=value.strip()))
    return tuple(options)


def _parse_constraints(values: tuple[str, ...]) -> dict[str, str]:
    """Parse ``--constraint KEY=VALUE`` values."""
    constraints: dict[str, str] = {}
    for value in values:
        key, sep, text = value.partition("=")
        if not sep or not key.strip():
            raise click.BadParameter(f"expected KEY=VALUE, got {value!r}", param_hint="--constraint")
        constraints[key.strip().lower().replace(" ", "_")] = text.strip()
    return constraints


def _build_memo(
    decision: str | None,
    memo_file: str | None,
    options: tuple[str, ...],
    constraints: tuple[str, ...],
    context: tuple[str, ...],
) -> Memo:
    """Memo from --file, or from the DECISION argument plus flags."""
    if memo_file:
        return load_memo(Path(memo_file))
    if not decision:
        raise click.UsageError("Provide a DECISION argument, --file, or --inbox.")
    return Memo(
        decision_required=decision,
        context=context,
        options=_parse_options(options),
        constraints=_parse_constraints(constraints),
    )


async def _run_single(
    memo: Memo,
    config: AppConfig,
    provider: CompletionProvider,
    registry: PersonaRegistry,
    output_dir: Path,
    slug_override: str | None = None,
) -> Path:
    """Run one board meeting and return the saved report path."""
    reviewers = [p.id for p in registry.reviewers()]
    console.print(f"\n[bold cyan]AI Board[/bold cyan] | {len(reviewers)} board members, model {provider.model_string()}")
    console.print(f"Board: {', '.join(reviewers)}")
    decision = memo.decision_required
    console.print(f"Decision: [italic]{decision[:80]}{'...' if len(decision) > 80 else ''}[/italic]\n")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Starting board meeting...", total=None)

        def on_state_change(state: RunState) -> None:
            progress.update(task, description=_STATE_LABELS[state])

        result = await run_board_meeting(
            memo,
            provider=provider,
            registry=registry,
            board=config.board,
            sink=JsonRecordSink(output_dir / "records"),
            on_state_change=on_state_change,
        )

    print_reviews(result)
    print_synthesis(result)

    saved_path = save_to_file(result, output_dir, slug_override=slug_override)
    console.print(f"\n[dim]Saved to: {saved_path}[/dim]")
    return saved_path


async def _run_inbox(
    config: AppConfig,
    provider: CompletionProvider,
    registry: PersonaRegistry,
    inbox: MemoInbox,
    output_dir: Path,
) -> int:
    """Hold one board meeting per queued memo, oldest first. Returns the failure count."""
    inbox.prepare()
    queued = inbox.pending()
    if not queued:
        click.echo(f"No memos in {inbox.directory}.")
        return 0

    failures = 0
    for memo_path in queued:
        try:
            memo = load_memo(memo_path)
            report = await _run_single(memo, config, provider, registry, output_dir, slug_override=memo_path.stem)
        except Exception as exc:
            failures += 1
            logger.error("Memo %s failed: %s", memo_path.name, exc)
            inbox.archive(memo_path, failed=True)
            continue
        archived = inbox.archive(memo_path)
        click.echo(f"{memo_path.name}: report {report}, memo archived as {archived.name}")

    logger.info("Inbox done: %d memos, %d failed", len(queued), failures)
    return failures


@click.command()
@click.argument("decision", required=False)
@click.option("--file", "memo_file", type=click.Path(exists=True), help="Read the memo from a .md/.yaml/.json file")
@click.option("--option", "options", multiple=True, help="Option as ID:DESCRIPTION (repeatable)")
@click.option("--constraint", "constraints", multiple=True, help="Constraint as KEY=VALUE, e.g. risk_tolerance=medium")
@click.option("--context", "context", multiple=True, help="Context line (repeatable)")
@click.option("--output", "output_path", default=None, help="Output directory (default: from config)")
@click.option("--settings", "settings_path", type=click.Path(), default=None, help="Path to settings.yaml")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.option("--inbox", "use_inbox", is_flag=True, default=False, help="Process all memo files in the inbox folder")
@click.option("--inbox-dir", "inbox_dir_override", default=None,
              help="Override inbox folder path (default: from config)")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the API connectivity check at startup")
def main(
    decision: str | None,
    memo_file: str | None,
    options: tuple[str, ...],
    constraints: tuple[str, ...],
    context: tuple[str, ...],
    output_path: str | None,
    settings_path: str | None,
    verbose: bool,
    use_inbox: bool,
    inbox_dir_override: str | None,
    skip_health_check: bool,
) -> None:
    """AI Board -- a personal board of advisors for one decision.

    \b
    Examples:
      boardroom "Should I take the new job offer?" --option A:Accept --option B:Decline
      boardroom "Rewrite the billing service?" --constraint risk_tolerance=low --constraint time="Q3"
      boardroom --file memo.md
      boardroom --inbox --inbox-dir ./my_queue
    """
    # Model replies can contain non-ASCII punctuation that breaks legacy Windows consoles.
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")

    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config(Path(settings_path), env=os.environ) if settings_path else load_config(env=os.environ)
        registry = PersonaRegistry.from_config(config)
        provider = OpenAIResponsesProvider(config.llm)
    except ConfigurationError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    effective_output = Path(output_path) if output_path else config.output.dir

    if not skip_health_check:
        console.print("\n[bold]Checking provider...[/bold]")
        ok, err = asyncio.run(check_provider(provider))
        if not ok:
            short_err = err.splitlines()[0][:120] if err else "unknown error"
            console.print(f"  [red]FAIL[/red] {provider.name()}: {short_err}")
            sys.exit(1)
        console.print(f"  [green]OK  [/green] {provider.name()} ({provider.model_string()})")

    if use_inbox:
        inbox = MemoInbox.from_config(config.inbox, Path(inbox_dir_override) if inbox_dir_override else None)
        failures = asyncio.run(_run_inbox(config, provider, registry, inbox, effective_output))
        if failures:
            sys.exit(1)
        return

    try:
        memo = _build_memo(decision, memo_file, options, constraints, context)
    except ValueError as exc:
        console.print(f"[bold red]Memo error:[/bold red] {exc}")
        sys.exit(1)

    try:
        asyncio.run(_run_single(memo, config, provider, registry, effective_output))
    except OrchestrationError as exc:
        console.print(f"[bold red]Board meeting failed[/bold red] in {exc.phase.value} ({exc.persona_id}): {exc.cause}")
        sys.exit(1)


if __name__ == "__main__":
    main()
