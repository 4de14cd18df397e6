"""chatbridge CLI - ask models with automatic tool calling."""

import asyncio
import importlib
import logging
from typing import Any, Iterable, Optional

import click
from rich.logging import RichHandler

from .config import ConfigManager
from .cost import calc_cost
from .errors import ChatError, ToolConfigurationError
from .messages import ChatRole, Content, dump_transcript
from .output import console, render_cost, render_error, render_json, render_transcript
from .providers.registry import find_provider_for_model
from .resolver import create_resolver
from .tools.catalog import ToolCatalog, tools_from


def load_target(target: str) -> Any:
    """Import ``module`` or ``module:attribute`` (dotted attributes allowed)."""
    module_name, _, attribute = target.partition(":")
    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(f"cannot import {module_name}: {e}") from e

    for part in filter(None, attribute.split(".")):
        try:
            obj = getattr(obj, part)
        except AttributeError:
            raise click.BadParameter(f"{target} has no attribute {part}") from None
    return obj


def load_catalog(targets: Iterable[str]) -> ToolCatalog:
    wrappers = []
    for target in targets:
        try:
            wrappers.extend(tools_from(load_target(target)))
        except ToolConfigurationError as e:
            raise click.BadParameter(f"{target}: {e}") from e
    try:
        return ToolCatalog(wrappers)
    except ToolConfigurationError as e:
        raise click.BadParameter(str(e)) from e


@click.group()
@click.option("--config", "config_path", help="Path to config.yaml")
@click.option("--verbose", "-v", is_flag=True, help="Log provider and tool activity")
@click.pass_context
def cli(ctx, config_path: Optional[str], verbose: bool):
    """chatbridge - one contract over many chat models, with tool calling."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )


@cli.command()
@click.argument("prompt", nargs=-1, required=True)
@click.option("--provider", "-p", help="Provider to use (openai, gemini)")
@click.option("--system", "-s", help="System prompt")
@click.option("--tools", "-t", "targets", multiple=True, help="module[:object] exposing @ai_tool functions")
@click.option("--timeout", type=float, help="Seconds allowed for the whole resolution")
@click.option("--json", "as_json", is_flag=True, help="Print the transcript as JSON")
@click.pass_context
def ask(ctx, prompt, provider, system, targets, timeout, as_json):
    """Ask a model, executing any tools it requests."""
    config = ConfigManager(ctx.obj["config_path"])
    catalog = load_catalog(targets)

    try:
        chat = config.create_provider(provider, tools=catalog.definitions)
    except (KeyError, ValueError) as e:
        raise click.UsageError(str(e.args[0] if e.args else e)) from e

    resolver = create_resolver(
        chat, catalog,
        timeout=timeout if timeout is not None else config.get_resolver_timeout(),
    )

    messages = []
    if system:
        messages.append(Content(ChatRole.SYSTEM, system))
    messages.append(Content(ChatRole.USER, " ".join(prompt)))

    async def run():
        async with chat:
            return await resolver.send(messages)

    try:
        entries, cost = asyncio.run(run())
    except ChatError as e:
        render_error(str(e))
        ctx.exit(1)

    if as_json:
        click.echo(dump_transcript(entries, indent=2))
    else:
        render_transcript(entries, cost)


@cli.command()
@click.argument("targets", nargs=-1, required=True)
@click.option("--schema", is_flag=True, help="Emit the JSON Schema form")
def tools(targets, schema):
    """List the tools exposed by TARGETS (module[:object])."""
    catalog = load_catalog(targets)
    render_json([
        d.to_json_schema() if schema else d.to_json()
        for d in catalog.definitions
    ])


@cli.command()
@click.argument("model")
@click.option("--input", "input_tokens", type=int, default=0, help="Input tokens")
@click.option("--output", "output_tokens", type=int, default=0, help="Output tokens")
@click.option("--thought", "thought_tokens", type=int, default=0, help="Reasoning tokens")
@click.pass_context
def cost(ctx, model, input_tokens, output_tokens, thought_tokens):
    """Price a call to MODEL from the provider rate tables."""
    try:
        provider_cls = find_provider_for_model(model)
    except KeyError:
        raise click.BadParameter(f"no rate table lists {model}", param_hint="MODEL") from None
    rate = provider_cls.RATE_TABLE[provider_cls.model_name(model)]

    unit = ConfigManager(ctx.obj["config_path"]).get_cost_unit()
    console.print(render_cost(calc_cost(rate, input_tokens, output_tokens, thought_tokens, unit)))


@cli.command()
@click.pass_context
def config(ctx):
    """Show configuration location and enabled providers."""
    manager = ConfigManager(ctx.obj["config_path"])
    console.print(f"config: {manager.config_path}")
    console.print(f"default provider: {manager.get_default_provider()}")
    enabled = manager.get_enabled_providers()
    console.print(f"enabled: {', '.join(enabled) if enabled else '(none)'}")


if __name__ == "__main__":
    cli()
