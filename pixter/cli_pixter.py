"""CLI commands for Pixter."""

import logging
import random
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from pixter.config import GameConfig, load_config
from pixter.errors import ConfigError, GatewayUnavailable, ValidationError
from pixter.game import PixterGame
from pixter.heuristic import HeuristicJudge
from pixter.remote import build_gateways
from shared.adapters.openrouter_adapter import _load_model_mappings, has_api_key
from shared.utils.logging import setup_logging

app = typer.Typer(help="Pixter: describe it, render it, guess it")
console = Console()


def _load_config_or_exit(config_path: Optional[Path]) -> GameConfig:
    try:
        return load_config(config_path)
    except ConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def play(
    name1: Optional[str] = typer.Option(None, "--name1", help="Name of player 1"),
    name2: Optional[str] = typer.Option(None, "--name2", help="Name of player 2"),
    target_score: Optional[int] = typer.Option(None, "--target-score", "-t", help="Points needed to win"),
    policy: Optional[str] = typer.Option(
        None, "--policy", "-p", help="Scoring policy: 'target' (first to N) or 'penalty' (wrong guesses cost points)"
    ),
    max_rounds: Optional[int] = typer.Option(None, "--max-rounds", help="Stop after this many rounds"),
    seed: Optional[int] = typer.Option(None, help="Random seed for the starting player"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file"),
    mock: bool = typer.Option(False, "--mock", help="Use the placeholder image and local judge"),
    log_path: str = typer.Option("logs/pixter", help="Directory for log files"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
):
    """Play a hot-seat match on this terminal.

    The describer types a description and the image is generated. The
    guesser then has a limited number of guesses to describe what they see.
    Roles swap every round.
    """
    log_dir = Path(log_path)
    setup_logging(log_dir, verbose)
    logger = logging.getLogger(__name__)

    config = _load_config_or_exit(config_path)
    if name1 is not None:
        config.player_names[0] = name1
    if name2 is not None:
        config.player_names[1] = name2
    if target_score is not None:
        if target_score < 1:
            console.print("[red]Error: --target-score must be at least 1[/red]")
            raise typer.Exit(1)
        config.target_score = target_score
    if policy is not None:
        config.scoring.policy = policy

    rng = random.Random(seed)
    if seed is not None:
        logger.info(f"Random seed set to: {seed}")

    try:
        game = PixterGame(
            config=config,
            rng=rng,
            mock=True if mock else None,
            image_dir=log_dir / "images",
            max_rounds=max_rounds,
        )
    except ConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    run_id = f"{datetime.utcnow().strftime('%Y-%m-%dT%H-%M-%S')}_pixter_{game.game_id}"
    game.init_controllog(log_dir, run_id)
    game.play()


@app.command()
def generate(
    description: str = typer.Argument(..., help="What the image should show"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file"),
    mock: bool = typer.Option(False, "--mock", help="Use the placeholder generator"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
):
    """Generate one image and print its reference."""
    setup_logging(None, verbose)
    config = _load_config_or_exit(config_path)
    generator, _ = build_gateways(config, mock=True if mock else None)

    if not description.strip():
        console.print("[red]Error: description must not be empty[/red]")
        raise typer.Exit(1)

    try:
        image = generator.generate(description)
    except GatewayUnavailable as e:
        console.print(f"[red]Failed to generate image: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Model:[/green] {image.model_tag}")
    console.print(image.image_ref, soft_wrap=True)


@app.command()
def judge(
    original: str = typer.Argument(..., help="Original description"),
    guess: str = typer.Argument(..., help="Guess to judge"),
    heuristic: bool = typer.Option(False, "--heuristic", help="Use the local word-overlap judge"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
):
    """Judge a single guess against an original description."""
    setup_logging(None, verbose)
    if not original.strip() or not guess.strip():
        console.print("[red]Error: both original and guess are required[/red]")
        raise typer.Exit(1)

    if heuristic:
        judge_gateway = HeuristicJudge()
    else:
        config = _load_config_or_exit(config_path)
        _, judge_gateway = build_gateways(config)

    try:
        verdict = judge_gateway.judge(original, guess)
    except (GatewayUnavailable, ValidationError) as e:
        console.print(f"[red]Failed to judge: {e}[/red]")
        raise typer.Exit(1)

    label = "[green]correct[/green]" if verdict.correct else "[red]incorrect[/red]"
    console.print(f"Verdict: {label}")
    if verdict.closeness is not None:
        console.print(f"Closeness: {verdict.closeness:.2f}")
    if verdict.rationale:
        console.print(f"Rationale: {verdict.rationale}")


@app.command()
def list_models():
    """List configured image and judge models."""
    mappings = _load_model_mappings()
    if not mappings:
        console.print("[red]No model mappings found[/red]")
        raise typer.Exit(1)

    table = Table(title="Available Models")
    table.add_column("CLI Name", style="cyan", min_width=15)
    table.add_column("Use", style="green")
    table.add_column("OpenRouter Model ID", style="magenta", min_width=30)

    total = 0
    for section in ("image", "judge"):
        for model_name, model_id in sorted((mappings.get(section) or {}).items()):
            table.add_row(model_name, section, model_id)
            total += 1

    console.print(table)
    console.print(f"\n✨ Total: {total} models available")


@app.command()
def health(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file"),
):
    """Show whether remote models will be used and which ones."""
    config = _load_config_or_exit(config_path)
    mock = config.gateways.mock or not has_api_key()

    console.print(f"[bold]Status:[/bold] ok")
    console.print(f"[bold]Mode:[/bold] {'mock' if mock else 'remote'}")
    if not has_api_key():
        console.print("[yellow]OPENROUTER_API_KEY not set[/yellow]")
    console.print(f"[bold]Image models:[/bold] {', '.join(config.gateways.image_models)}")
    console.print(f"[bold]Judge model:[/bold] {config.gateways.judge_model}")
    console.print(f"[bold]Fallback:[/bold] {'on' if config.gateways.fallback else 'off'}")
    console.print(f"[bold]Rules:[/bold] {config.build_policy().describe()}, {config.max_attempts} guesses per round")
