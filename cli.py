"""Command-line interface for Pixter.

This is the unified CLI entry point:
- `pixter play` - Play a hot-seat match in the terminal
- `pixter generate` / `pixter judge` - Exercise a single gateway call
- `pixter list-models` / `pixter health` - Inspect the configured models
"""

from rich.console import Console

from pixter.cli_pixter import app

console = Console()


@app.callback(no_args_is_help=True)
def main():
    """Pixter - a two-player image guessing game.

    Examples:

        # Play with remote models (needs OPENROUTER_API_KEY)
        uv run pixter play --name1 Ada --name2 Bob

        # Play offline with the placeholder image and local judge
        uv run pixter play --mock --target-score 3

        # Check a single verdict
        uv run pixter judge "a red bicycle" "a blue bicycle" --heuristic
    """
    pass


@app.command()
def version():
    """Show version information."""
    from pixter import __version__ as pixter_version
    from shared import __version__ as shared_version

    console.print("[bold]Pixter[/bold]")
    console.print(f"  pixter: {pixter_version}")
    console.print(f"  shared: {shared_version}")


if __name__ == "__main__":
    app()
