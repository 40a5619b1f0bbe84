"""Click CLI: orchestrates config loading, provider selection, analysis, and output."""

import asyncio
import logging
import sys
import time
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from config.config_loader import AppConfig, load_api_config, load_config
from tradecouncil.council import AllProvidersFailedError
from tradecouncil.healthcheck import run_health_checks
from tradecouncil.manager import COUNCIL, PROVIDER_CLASSES, AiManager
from tradecouncil.models import Part, TextPart
from tradecouncil.output import AnalysisReport, print_verdict, save_to_file
from tradecouncil.parts import image_part, load_parts_file
from tradecouncil.providers.base import AIProvider, ProviderError
from tradecouncil.strategy import Strategy, load_strategy

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

_DEFAULT_RULES = (
    "You are a disciplined technical analyst. Identify the asset, timeframe, key levels "
    "and at most one trade setup with entry, stop loss and take profit."
)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _determine_provider(config: AppConfig, provider_arg: str | None, strategy: Strategy) -> str:
    """CLI flag > strategy frontmatter > config default."""
    if provider_arg:
        return provider_arg
    if strategy.provider:
        return strategy.provider
    return config.defaults.preferred_provider


def _build_prompt(
    prompt_text: str,
    image_paths: list[Path],
    extra_parts: list[Part] | None = None,
) -> str | list[Part]:
    """Plain text when there are no charts, otherwise text followed by image parts."""
    if not image_paths and not extra_parts:
        return prompt_text
    parts: list[Part] = [TextPart(text=prompt_text)]
    parts.extend(image_part(p) for p in image_paths)
    parts.extend(extra_parts or [])
    return parts


def _providers_to_check(manager: AiManager) -> dict[str, AIProvider]:
    if manager.preferred_provider == COUNCIL:
        return manager.council_members()
    return {manager.preferred_provider: manager.build_provider(manager.preferred_provider)}


def _check_providers(manager: AiManager, prompt: str) -> None:
    """Run health checks and ask the user whether to continue on failures."""
    providers = _providers_to_check(manager)
    if not providers:
        return

    console.print("\n[bold]Checking providers...[/bold]")
    results: dict[str, tuple[bool, str]] = asyncio.run(run_health_checks(providers, prompt))

    failed_names: list[str] = []
    for name in sorted(results):
        ok, err = results[name]
        if ok:
            console.print(f"  [green]OK  [/green] {name}")
        else:
            short_err = err.splitlines()[0][:120] if err else "unknown error"
            console.print(f"  [red]FAIL[/red] {name}: {escape(short_err)}")
            failed_names.append(name)

    if not failed_names:
        console.print()
        return

    if len(failed_names) == len(results):
        console.print("\n[bold red]Error:[/bold red] No providers passed the health check.")
        sys.exit(1)

    console.print(f"\n[yellow]{len(failed_names)} provider(s) failed:[/yellow] {', '.join(failed_names)}")
    if not click.confirm("Continue anyway?", default=True):
        sys.exit(0)
    console.print()


async def _run_analysis(
    manager: AiManager,
    strategy: Strategy,
    user_prompt: str | list[Part],
    model: str | None,
) -> tuple[str, int]:
    """Run the analysis behind a spinner. Returns (text, total_tokens)."""
    label = "Convening council..." if manager.preferred_provider == COUNCIL else "Analyzing..."
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(label, total=None)
        response = await manager.generate_content(strategy.rules, user_prompt, model)
    return response.text, response.usage.total_token_count


@click.command()
@click.argument("prompt", required=False)
@click.option("--strategy", "strategy_file", type=click.Path(exists=True, dir_okay=False),
              help="Markdown strategy rules used as the system instruction")
@click.option("--image", "images", multiple=True, type=click.Path(exists=True, dir_okay=False),
              help="Chart image to attach (repeatable)")
@click.option("--parts-file", type=click.Path(exists=True, dir_okay=False),
              help="JSON array of prompt parts (text / inlineData) to append")
@click.option("--provider", default=None, type=click.Choice([*PROVIDER_CLASSES, COUNCIL]),
              help="Provider or 'council' (default: strategy frontmatter, then config)")
@click.option("--model", default=None, help="Model override for single-provider mode")
@click.option("--output", "output_path", default=None, help="Output directory (default: from config)")
@click.option("--no-save", is_flag=True, default=False, help="Do not write a markdown report")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the API connectivity check at startup")
def main(
    prompt: str | None,
    strategy_file: str | None,
    images: tuple[str, ...],
    parts_file: str | None,
    provider: str | None,
    model: str | None,
    output_path: str | None,
    no_save: bool,
    verbose: bool,
    skip_health_check: bool,
) -> None:
    """Trade Council -- multi-model chart and trade-setup analysis.

    \b
    Examples:
      tradecouncil "BTC/USD 4h, price 90450, looking for a long" --provider gemini
      tradecouncil "Analyze this chart" --image chart.png --strategy rules.md
      tradecouncil "Analyze this chart" --image chart.png --provider council
    """
    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except FileNotFoundError as exc:
        console.print(f"[bold red]Config error:[/bold red] {escape(str(exc))}")
        sys.exit(1)

    if strategy_file:
        try:
            strategy = load_strategy(Path(strategy_file))
        except ValueError as exc:
            console.print(f"[bold red]Strategy error:[/bold red] {escape(str(exc))}")
            sys.exit(1)
    else:
        strategy = Strategy(name="default", rules=_DEFAULT_RULES)

    image_paths = [Path(p) for p in images]
    has_attachments = bool(image_paths or parts_file)
    prompt_text = prompt or ("Analyze the attached chart." if has_attachments else "")
    if not prompt_text:
        console.print("[bold red]Error:[/bold red] Provide a PROMPT argument, an --image or a --parts-file.")
        sys.exit(1)

    effective_provider = _determine_provider(config, provider, strategy)
    effective_model = model or strategy.model
    effective_output = Path(output_path) if output_path else config.defaults.output_dir

    try:
        manager = AiManager(
            api_config=load_api_config(config),
            preferred_provider=effective_provider,
            models=config.models,
            prompts=config.prompts,
        )
        extra_parts = load_parts_file(Path(parts_file)) if parts_file else None
        user_prompt = _build_prompt(prompt_text, image_paths, extra_parts)
        if not skip_health_check:
            _check_providers(manager, config.prompts.health_check)

        console.print(f"\n[bold cyan]Trade Council[/bold cyan]: {effective_provider} ({escape(strategy.name)})")
        start = time.monotonic()
        text, total_tokens = asyncio.run(_run_analysis(manager, strategy, user_prompt, effective_model))
    except (ProviderError, AllProvidersFailedError, ValueError) as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        sys.exit(1)

    report = AnalysisReport(
        prompt=prompt_text,
        strategy_name=strategy.name,
        provider=effective_provider,
        text=text,
        total_tokens=total_tokens,
        duration_sec=time.monotonic() - start,
        images=[p.name for p in image_paths],
    )
    print_verdict(report)

    if not no_save:
        saved_path = save_to_file(report, effective_output)
        console.print(f"\n[dim]Saved to: {saved_path}[/dim]")


if __name__ == "__main__":
    main()
