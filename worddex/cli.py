"""
Command-line interface for WordDex.

Provides commands for:
- Detecting the language/script of a text
- Parsing ruby-annotated text
- Translating text through the orchestrator
- Inspecting and updating usage counters
- Listing subscription plans and API keys

Usage:
    worddex classify "東京に行きます"
    worddex parse "漢字(かんじ)です"
    worddex translate "Привет" --force ru --backend anthropic
    worddex usage show --tier FREE
    worddex usage hit flashcard --id card-1
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from worddex import __version__
from worddex import config
from worddex.pipeline import PipelineConfig, TranslationOrchestrator
from worddex.ruby import parse as parse_ruby
from worddex.script import AUTO, classify as classify_text, clean_text, resolve_label
from worddex.storage import JsonFileStore
from worddex.subscription import PLAN_LIMITS, UNLIMITED, StaticSubscription, SubscriptionGate, Tier
from worddex.usage import CounterKind, UsageCounter

app = typer.Typer(
    name="worddex",
    help="WordDex: language detection, ruby readings and usage limits for flashcard translation",
    add_completion=False,
)
console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{config.APP_NAME} v{__version__}")
        raise typer.Exit()


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def _fmt_limit(value: int) -> str:
    return "unlimited" if value >= UNLIMITED else str(value)


def _build_gate(state_file: Optional[Path], tier: str) -> SubscriptionGate:
    store = JsonFileStore(state_file or config.STATE_FILE)
    return SubscriptionGate(UsageCounter(store), StaticSubscription(tier.upper()))


def _parse_kind(kind: str) -> CounterKind:
    try:
        return CounterKind(kind)
    except ValueError:
        console.print(f"[red]Error:[/] Unknown counter '{kind}'")
        console.print(f"Available counters: {', '.join(k.value for k in CounterKind)}")
        raise typer.Exit(1)


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(
        False, "--verbose",
        help="Enable debug logging",
    ),
):
    """WordDex: detect, annotate and translate foreign-language text."""
    setup_logging(verbose)


@app.command()
def classify(
    text: str = typer.Argument(..., help="Text to classify"),
    no_clean: bool = typer.Option(
        False, "--no-clean",
        help="Skip OCR whitespace cleanup",
    ),
):
    """Show which scripts are present and the detected language."""
    source = text if no_clean else clean_text(text)
    signature = classify_text(source)

    table = Table(title="Script Signature")
    table.add_column("Script", style="cyan")
    table.add_column("Present")
    for script, present in signature.to_dict().items():
        table.add_row(script, "[green]✓[/]" if present else "[dim]-[/]")

    console.print(table)
    console.print(f"\nDetected language: [bold]{resolve_label(signature)}[/]")


@app.command()
def parse(
    text: str = typer.Argument(..., help="Text with inline readings, e.g. 漢字(かんじ)"),
):
    """Split annotated text into base/reading pairs."""
    annotated = parse_ruby(text)

    table = Table(title="Annotated Words")
    table.add_column("#", style="dim")
    table.add_column("Base", style="cyan")
    table.add_column("Reading", style="green")
    for i, word in enumerate(annotated, 1):
        table.add_row(str(i), escape(word.base), escape(word.reading or "-"))
    console.print(table)

    issues = annotated.issues()
    for issue in issues:
        console.print(f"[yellow]![/] {issue.kind} at {issue.position}: {escape(issue.message)}")


@app.command()
def translate(
    text: str = typer.Argument(..., help="Text to translate"),
    target: str = typer.Option(
        config.DEFAULT_TARGET_LANGUAGE, "--target", "-t",
        help="Target language code",
    ),
    force: str = typer.Option(
        AUTO, "--force", "-f",
        help="Forced source language code, or 'auto'",
    ),
    backend: str = typer.Option(
        "dummy", "--backend", "-b",
        help="Translation backend (dummy, anthropic, claude-haiku, openai, gpt-4o-mini)",
    ),
    model: Optional[str] = typer.Option(
        None, "--model", "-m",
        help="Model name for LLM backends",
    ),
    timeout: float = typer.Option(
        config.DEFAULT_TIMEOUT, "--timeout",
        help="Seconds to wait for the translator",
    ),
    tier: Optional[str] = typer.Option(
        None, "--tier",
        help="Meter the call against this tier's daily API limit (FREE, PREMIUM)",
    ),
    state_file: Optional[Path] = typer.Option(
        None, "--state-file",
        help="Counter state file used with --tier",
    ),
):
    """Translate text, validating it against the forced language first."""
    translator_kwargs = {"model": model} if model else {}
    pipeline_config = PipelineConfig(
        target_language=target,
        forced_language=force,
        translator_backend=backend,
        translator_kwargs=translator_kwargs,
        timeout=timeout,
    )

    try:
        gate = _build_gate(state_file, tier) if tier else None
        orchestrator = TranslationOrchestrator(pipeline_config, gate=gate)
    except ValueError as e:
        console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(1)

    with console.status("Translating..."):
        outcome = asyncio.run(orchestrator.submit(text))

    console.print(f"[dim]Detected:[/] {outcome.detected_language}")
    if not outcome.succeeded:
        console.print(f"[red]✗[/] {escape(outcome.message or '')}")
        raise typer.Exit(1)

    console.print(f"[bold green]Translation:[/] {escape(outcome.translated_text)}")
    if outcome.words:
        readings = " ".join(
            f"{escape(w.base)}[dim]({escape(w.reading)})[/]" if w.reading else escape(w.base)
            for w in outcome.words
        )
        console.print(f"[bold cyan]Readings:[/] {readings}")
    for warning in outcome.warnings:
        console.print(f"[yellow]![/] {escape(warning)}")


@app.command()
def usage(
    action: str = typer.Argument(..., help="Action: show, hit, reset"),
    kind: Optional[str] = typer.Argument(None, help="Counter: ocr, flashcard, swipeRight, swipeLeft, apiCall"),
    item_id: Optional[str] = typer.Option(
        None, "--id",
        help="Item id, counted once per window",
    ),
    tier: str = typer.Option(
        Tier.FREE.value, "--tier",
        help="Subscription tier (FREE, PREMIUM)",
    ),
    state_file: Optional[Path] = typer.Option(
        None, "--state-file",
        help="Counter state file (default: ~/.worddex/usage_state.json)",
    ),
):
    """Show, increment or reset usage counters.

    Examples:
        worddex usage show
        worddex usage hit flashcard --id card-1
        worddex usage reset ocr
    """
    try:
        gate = _build_gate(state_file, tier)
    except ValueError:
        console.print(f"[red]Error:[/] Unknown tier '{tier}'")
        raise typer.Exit(1)

    if action == "show":
        async def collect():
            rows = []
            for k in CounterKind:
                rows.append((
                    k,
                    await gate.counter.count(k),
                    gate.ceiling(k),
                    await gate.remaining(k),
                    await gate.counter.streak(k),
                ))
            return rows

        table = Table(title=f"Usage ({gate.limits().tier.value})")
        table.add_column("Counter", style="cyan")
        table.add_column("Count", justify="right")
        table.add_column("Limit", justify="right")
        table.add_column("Remaining", justify="right", style="green")
        table.add_column("Streak")
        for k, count, ceiling, remaining, streak in asyncio.run(collect()):
            table.add_row(
                k.value,
                str(count),
                _fmt_limit(ceiling),
                "unlimited" if ceiling >= UNLIMITED else str(remaining),
                "[green]✓[/]" if streak else "-",
            )
        console.print(table)

    elif action == "hit":
        if not kind:
            console.print("[red]Error:[/] Counter name required")
            raise typer.Exit(1)
        counter_kind = _parse_kind(kind)

        async def hit():
            allowed = await gate.record(counter_kind, item_id)
            return allowed, await gate.counter.count(counter_kind), await gate.remaining(counter_kind)

        allowed, count, remaining = asyncio.run(hit())
        if not allowed:
            console.print(f"[red]✗[/] Daily {counter_kind.value} limit reached ({count} used)")
            raise typer.Exit(1)
        left = "unlimited" if gate.ceiling(counter_kind) >= UNLIMITED else str(remaining)
        console.print(f"[green]✓[/] {counter_kind.value}: {count} used, {left} remaining")

    elif action == "reset":
        if not kind:
            console.print("[red]Error:[/] Counter name required")
            raise typer.Exit(1)
        counter_kind = _parse_kind(kind)
        asyncio.run(gate.counter.reset(counter_kind))
        console.print(f"[green]✓[/] {counter_kind.value} counter reset")

    else:
        console.print(f"[red]Error:[/] Unknown action '{action}'. Use: show, hit, reset")
        raise typer.Exit(1)


@app.command()
def plans():
    """List subscription tiers and their daily limits."""
    table = Table(title="Subscription Plans")
    table.add_column("Tier", style="cyan")
    table.add_column("OCR scans", justify="right")
    table.add_column("Flashcards", justify="right")
    table.add_column("Decks", justify="right")
    table.add_column("API calls", justify="right")
    table.add_column("Streak at", justify="right")

    for limits in PLAN_LIMITS.values():
        table.add_row(
            limits.tier.value,
            _fmt_limit(limits.ocr_ceiling),
            _fmt_limit(limits.flashcard_ceiling),
            str(limits.max_decks),
            str(limits.api_calls_per_day),
            str(limits.swipe_streak_threshold),
        )
    console.print(table)


@app.command()
def keys(
    action: str = typer.Argument(..., help="Action: list, set, delete"),
    service: Optional[str] = typer.Argument(None, help="Service name (anthropic, openai)"),
):
    """Manage translator API keys.

    Examples:
        worddex keys list
        worddex keys set anthropic
    """
    from worddex.keys import SERVICES, KeyManager

    km = KeyManager()

    if action == "list":
        table = Table(title="API Keys Status")
        table.add_column("Service", style="cyan")
        table.add_column("Status")
        table.add_column("Source", style="yellow")
        table.add_column("Value", style="dim")
        for info in km.list_keys():
            status = "[green]✓ Set[/]" if info.is_set else "[red]✗ Not set[/]"
            table.add_row(info.service, status, info.source, info.masked_value or "-")
        console.print(table)
        console.print("\n[dim]Priority: env > keychain[/]")

    elif action in ("set", "delete"):
        if not service:
            console.print("[red]Error:[/] Service name required")
            console.print(f"Available services: {', '.join(SERVICES)}")
            raise typer.Exit(1)

        if action == "set":
            key = typer.prompt(f"Enter API key for {service}", hide_input=True)
            km.set_key(service, key)
            console.print(f"[green]✓[/] API key for {service} saved to keychain")
        elif km.delete_key(service):
            console.print(f"[green]✓[/] API key for {service} deleted")
        else:
            console.print(f"[yellow]No stored key for {service}[/]")

    else:
        console.print(f"[red]Error:[/] Unknown action '{action}'. Use: list, set, delete")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
