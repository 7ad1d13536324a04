"""Mycelium CLI — a terminal host for the Mycelial suggestion engine."""

import asyncio
import sys

import click

from mycelium.analyzer import AnalysisError, ContextAnalyzer
from mycelium.engine import MyceliumEngine
from mycelium.executor import SuggestionExecutor
from mycelium.formatting import (
    format_analysis_compact, format_analysis_json, format_logs, format_message,
    format_route_compact, format_route_json, format_status, format_suggestions,
)
from mycelium.logging_setup import configure_logging
from mycelium.models import SuggestionType, Tools
from mycelium.providers import GenAIProvider
from mycelium.router import route as route_for

RETRIEVAL_CHOICES = {"web": Tools.WEB_SEARCH, "functions": Tools.FUNCTION_TOOLS}

CHAT_HELP = """Type a message to plant a spore. Then pick a growth path by number.
Commands: /toggle  /log  /status  /help  /quit""".strip()


def _get_provider() -> GenAIProvider:
    """Build the provider, exiting with a clear message if it can't be configured."""
    try:
        return GenAIProvider()
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose):
    """Mycelium — conversation with proposed growth paths."""
    configure_logging(verbose)


@cli.command()
@click.argument("suggestion_type")
@click.option("--retrieval", default="web", type=click.Choice(list(RETRIEVAL_CHOICES)))
@click.option("--format", "-f", "fmt", default="compact",
              type=click.Choice(["compact", "json"]))
def route(suggestion_type, retrieval, fmt):
    """Show the model route for a suggestion category."""
    config = route_for(suggestion_type, RETRIEVAL_CHOICES[retrieval])
    if fmt == "json":
        click.echo(format_route_json(config))
    else:
        try:
            label = SuggestionType(suggestion_type)
        except ValueError:
            label = f"{suggestion_type} (fallback)"
        click.echo(format_route_compact(label, config))


@cli.command()
@click.argument("text")
@click.option("--format", "-f", "fmt", default="compact",
              type=click.Choice(["compact", "json"]))
def analyze(text, fmt):
    """Analyze a single input against an empty history."""
    analyzer = ContextAnalyzer(_get_provider())
    try:
        analysis = asyncio.run(analyzer.analyze([], text))
    except AnalysisError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if fmt == "json":
        click.echo(format_analysis_json(analysis))
    else:
        click.echo(format_analysis_compact(analysis))


@cli.command()
@click.option("--dormant", is_flag=True, help="Start with the engine off (standard replies)")
@click.option("--retrieval", default="web", type=click.Choice(list(RETRIEVAL_CHOICES)),
              help="Tool kind for Expand/Connect paths")
def chat(dormant, retrieval):
    """Interactive session."""
    provider = _get_provider()
    engine = MyceliumEngine(
        analyzer=ContextAnalyzer(provider),
        executor=SuggestionExecutor(provider, retrieval=RETRIEVAL_CHOICES[retrieval]),
        active=not dormant,
    )
    click.echo(CHAT_HELP)
    click.echo(format_status(engine.state))
    asyncio.run(_chat_loop(engine))


async def _chat_loop(engine: MyceliumEngine) -> None:
    while True:
        try:
            line = click.prompt("", prompt_suffix="> ", default="", show_default=False)
        except click.Abort:
            break
        line = line.strip()
        if not line:
            continue

        if line in ("/quit", "/exit"):
            break
        if line == "/help":
            click.echo(CHAT_HELP)
            continue
        if line == "/toggle":
            engine.toggle()
            click.echo(format_status(engine.state))
            continue
        if line == "/log":
            click.echo(format_logs(engine.state.logs))
            continue
        if line == "/status":
            click.echo(format_status(engine.state))
            continue

        suggestions = engine.state.current_suggestions
        if line.isdigit() and suggestions:
            index = int(line) - 1
            if not 0 <= index < len(suggestions):
                click.echo(f"Pick a path between 1 and {len(suggestions)}.", err=True)
                continue
            message = await engine.select_suggestion(suggestions[index].id)
            click.echo(format_message(message))
            continue

        await _submit(engine, line)


async def _submit(engine: MyceliumEngine, line: str) -> None:
    seen = len(engine.messages)
    await engine.submit_input(line)

    # Dormant path appends the reply directly.
    for message in engine.messages[seen + 1:]:
        click.echo(format_message(message))

    state = engine.state
    if state.current_suggestions:
        click.echo(format_suggestions(state.current_suggestions))
    elif state.is_active and state.logs:
        click.echo(format_logs(state.logs[-1:]), err=True)
