"""Interactive hot-seat session for Pixter.

PixterGame drives a Match from the terminal: it collects descriptions and
guesses, shows images and verdicts, and records the session through
controllog.
"""

import base64
import logging
import random
import time
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from rich.console import Console
from rich.table import Table

from pixter.config import GameConfig
from pixter.errors import GatewayUnavailable, InvalidTransition, ValidationError
from pixter.gateways import GenerationGateway, JudgmentGateway
from pixter.match import PLAYER_IDS, Match
from pixter.remote import build_gateways
from pixter.round import Attempt, Round, RoundOutcome
from shared import controllog as cl

console = Console()
logger = logging.getLogger(__name__)

GIVE_UP_COMMAND = "/giveup"
QUIT_COMMAND = "/quit"

OUTCOME_LABELS = {
    RoundOutcome.CORRECT: "[green]Correct![/green]",
    RoundOutcome.MAX_ATTEMPTS_REACHED: "[yellow]Out of attempts[/yellow]",
    RoundOutcome.GAVE_UP: "[yellow]Gave up[/yellow]",
    RoundOutcome.PENDING: "[dim]Unfinished[/dim]",
}


class QuitGame(Exception):
    """Raised when a player types the quit command."""


def format_round_points(points: Optional[Dict[int, int]], name1: str, name2: str) -> str:
    """Summarize who scored in a round, e.g. 'This round: Erna +1'."""
    if not points:
        return ""
    p1 = points.get(1, 0)
    p2 = points.get(2, 0)

    def signed(v: int) -> str:
        return f"+{v}" if v >= 0 else f"{v}"

    if p1 != 0 and p2 == 0:
        return f"This round: {name1} {signed(p1)}"
    if p2 != 0 and p1 == 0:
        return f"This round: {name2} {signed(p2)}"
    if p1 == 0 and p2 == 0:
        return "This round: no points"
    return f"This round: {name1} {signed(p1)}, {name2} {signed(p2)}"


class PixterGame:
    """A single match played by two people sharing one terminal."""

    # Version for tracking rule changes in recorded sessions
    VERSION = "1.0.0"

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        generator: Optional[GenerationGateway] = None,
        judge: Optional[JudgmentGateway] = None,
        rng: Optional[random.Random] = None,
        input_fn: Optional[Callable[[str], str]] = None,
        quiet: bool = False,
        mock: Optional[bool] = None,
        image_dir: Optional[Path] = None,
        max_rounds: Optional[int] = None,
    ):
        self.config = config or GameConfig()
        if generator is None or judge is None:
            built_generator, built_judge = build_gateways(self.config, mock=mock, on_call=self.record_model_call)
            generator = generator or built_generator
            judge = judge or built_judge

        self.match = Match(generator, judge, config=self.config, rng=rng)
        self.input_fn = input_fn or console.input
        self.quiet = quiet
        self.image_dir = Path(image_dir) if image_dir else None
        self.max_rounds = max_rounds

        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None
        self.total_cost: float = 0.0
        self.quit_early = False

        # Generate unique game ID
        self.game_id = str(uuid.uuid4())[:8]

        # Controllog state
        self._controllog_initialized = False
        self._run_id: Optional[str] = None
        self._task_id: Optional[str] = None

    def _print(self, *args, **kwargs):
        """Print to console unless in quiet mode."""
        if not self.quiet:
            console.print(*args, **kwargs)

    def _name(self, player_id: int) -> str:
        return self.match.players[player_id].name

    def _read(self, prompt: str) -> str:
        text = self.input_fn(prompt).strip()
        if text.lower() == QUIT_COMMAND:
            raise QuitGame()
        return text

    def init_controllog(self, log_path: Path, run_id: str) -> None:
        """Initialize controllog SDK for session analytics."""
        try:
            cl.init(project_id="pixter", log_dir=log_path)
            self._controllog_initialized = True
            self._run_id = run_id
            self._task_id = f"game:{self.game_id}"
            logger.info(f"Controllog initialized for game {self.game_id}")
        except OSError as e:
            logger.warning(f"Failed to initialize controllog: {e}")
            self._controllog_initialized = False

    def _emit(self, builder: Callable[..., Any], **kwargs) -> None:
        if not self._controllog_initialized:
            return
        try:
            builder(task_id=self._task_id, project_id="pixter", run_id=self._run_id, **kwargs)
        except Exception as e:
            logger.debug(f"Failed to emit {builder.__name__}: {e}")

    def record_model_call(self, call_type: str, metadata: Dict[str, Any]) -> None:
        """Track cost of a remote call and log it to controllog."""
        self.total_cost += metadata.get("openrouter_cost", 0.0) or 0.0
        self._emit(
            cl.model_call,
            provider="openrouter",
            model=metadata.get("model_id", "unknown"),
            call_type=call_type,
            wall_ms=int(metadata.get("latency_ms", 0)),
            prompt_tokens=metadata.get("input_tokens", 0) or 0,
            completion_tokens=metadata.get("output_tokens", 0) or 0,
            cost_money=metadata.get("openrouter_cost"),
            payload={"game_id": self.game_id},
        )

    def display_scoreboard(self, title: str = "Scores") -> None:
        table = Table(title=title)
        table.add_column("Player", style="bold")
        table.add_column("Score", justify="right")
        table.add_column("Role")
        for pid in PLAYER_IDS:
            player = self.match.players[pid]
            if self.match.is_over or self.match.describer_id is None:
                role = ""
            else:
                role = "describer" if pid == self.match.describer_id else "guesser"
            table.add_row(f"[{player.color}]{player.name}[/{player.color}]", str(self.match.scores[pid]), role)
        self._print(table)

    def _show_image(self, round: Round, round_number: int) -> None:
        image_ref = round.image_ref or ""
        if image_ref.startswith("data:") and self.image_dir is not None:
            path = self.save_image(image_ref, self.image_dir / f"{self.game_id}_round{round_number}.png")
            self._print(f"[cyan]Image saved to:[/cyan] {path} [dim]({round.model_tag})[/dim]")
        elif image_ref.startswith("data:"):
            self._print(f"[cyan]Image:[/cyan] inline image, {len(image_ref)} bytes [dim]({round.model_tag})[/dim]")
        else:
            self._print(f"[cyan]Image:[/cyan] {image_ref} [dim]({round.model_tag})[/dim]")

    @staticmethod
    def save_image(data_uri: str, path: Path) -> Path:
        """Decode a base64 data URI and write it to `path`."""
        _, _, encoded = data_uri.partition(",")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(base64.b64decode(encoded))
        return path

    def _describe_phase(self, round: Round, round_number: int) -> None:
        describer = self._name(round.describer_id)
        guesser = self._name(round.guesser_id)
        self._print(f"\n[bold]{describer}[/bold] describes, [bold]{guesser}[/bold] looks away.")

        while not round.has_image:
            text = self._read(f"{describer}, describe an image: ")
            self._print("[dim]Generating image...[/dim]")
            try:
                round.submit_description(text)
            except ValidationError as e:
                self._print(f"[red]{e}[/red]")
            except GatewayUnavailable as e:
                logger.warning(f"Generation failed: {e}")
                self._print(f"[red]{e}. Try again.[/red]")

        self._show_image(round, round_number)

    def _confirm_give_up(self) -> bool:
        answer = self._read("Are you sure you want to give up? The round will end with no points. (y/n): ")
        return answer.lower() in ("y", "yes")

    def _show_attempt(self, attempt: Attempt, round: Round) -> None:
        closeness = f" closeness {attempt.closeness:.2f}" if attempt.closeness is not None else ""
        if attempt.correct:
            self._print(f"[green]✓ {attempt.guess_text!r} is correct![/green][dim]{closeness}[/dim]")
        else:
            self._print(
                f"[yellow]✗ {attempt.guess_text!r} is not it.[/yellow][dim]{closeness}"
                f" ({round.attempts_left} attempt(s) left)[/dim]"
            )
        if attempt.rationale:
            self._print(f"[dim]  {attempt.rationale}[/dim]")

    def _guess_phase(self, round: Round) -> None:
        guesser = self._name(round.guesser_id)
        while not round.is_terminal and not round.is_frozen:
            text = self._read(
                f"{guesser}, what do you see? ({round.attempts_left} left, {GIVE_UP_COMMAND} to give up): "
            )
            if text.lower() == GIVE_UP_COMMAND:
                if self._confirm_give_up():
                    round.give_up()
                continue

            self._print("[dim]Judging guess...[/dim]")
            try:
                attempt = round.submit_guess(text)
            except ValidationError as e:
                self._print(f"[red]{e}[/red]")
                continue
            except GatewayUnavailable as e:
                logger.warning(f"Judgment failed: {e}")
                self._print(f"[red]{e}. Try again.[/red]")
                continue

            if attempt is None:
                self._print("[dim]Same as your last guess, ignored.[/dim]")
                continue
            self._show_attempt(attempt, round)

    def _round_summary(self, round: Round, round_number: int) -> Dict[str, Any]:
        points = self.match.round_points(round)
        self._print(f"\n{OUTCOME_LABELS[round.outcome]} The description was: [bold]{round.description}[/bold]")
        summary = format_round_points(points, self._name(1), self._name(2))
        self._print(summary)

        self._emit(
            cl.round_complete,
            game_id=self.game_id,
            round_number=round_number,
            describer=self._name(round.describer_id),
            guesser=self._name(round.guesser_id),
            outcome=round.outcome.value,
            attempts=len(round.attempts),
            points=points[round.guesser_id],
        )
        return {"round": round_number, "points": points, **round.to_dict()}

    def play(self) -> Dict[str, Any]:
        """Play a complete match and return results."""
        self.start_time = time.time()
        round = self.match.start()
        logger.info(f"Starting Pixter game {self.game_id}")

        self._emit(
            cl.state_move,
            from_="NEW",
            to="WIP",
            payload={"game_id": self.game_id, "player_1": self._name(1), "player_2": self._name(2)},
        )

        self._print("[bold]🎨 Pixter![/bold]")
        self._print(f"[green]Game ID:[/green] {self.game_id}")
        self._print(f"[green]Rules:[/green] {self.match.policy.describe()}, {self.config.max_attempts} guesses per round")
        self._print(f"[dim]Type {QUIT_COMMAND} at any prompt to stop.[/dim]")

        rounds = []
        stop_reason: Optional[str] = None
        try:
            while True:
                round_number = len(rounds) + 1
                self._print(f"\n[bold cyan]{'=' * 60}[/bold cyan]")
                self._print(f"[bold cyan]Round {round_number}[/bold cyan]")
                self._print(f"[bold cyan]{'=' * 60}[/bold cyan]")

                self._describe_phase(round, round_number)
                self._guess_phase(round)
                rounds.append(self._round_summary(round, round_number))

                if self.match.is_over:
                    break
                self.display_scoreboard()
                if self.max_rounds is not None and round_number >= self.max_rounds:
                    stop_reason = "round_limit"
                    break
                round = self.match.advance_round()
        except QuitGame:
            self.quit_early = True
            stop_reason = "quit"
            self._print("\n[yellow]Game stopped.[/yellow]")
        except InvalidTransition as e:
            logger.error(f"Unexpected state transition: {e}")
            raise

        self.end_time = time.time()
        duration = self.end_time - self.start_time

        winner_id = self.match.winner_id
        end_reason = self.match.end_reason.value if self.match.end_reason else stop_reason
        result = {
            "game_id": self.game_id,
            "version": self.VERSION,
            "player_1": self._name(1),
            "player_2": self._name(2),
            "score_1": self.match.scores[1],
            "score_2": self.match.scores[2],
            "policy": self.match.policy.name,
            "end_reason": end_reason,
            "winner_id": winner_id,
            "winner": self._name(winner_id) if winner_id else None,
            "rounds_played": len(rounds),
            "rounds": rounds,
            "duration": duration,
            "cost": self.total_cost,
        }

        self._print(f"\n[bold]{'=' * 60}[/bold]")
        self._print("[bold]GAME RESULTS[/bold]")
        self._print(f"[bold]{'=' * 60}[/bold]")
        self.display_scoreboard(title="Final Scores")
        if winner_id:
            self._print(f"\n[bold]🏆 WINNER: {result['winner']}![/bold]")
        elif self.match.is_over:
            self._print("\n[bold yellow]DRAW![/bold yellow]")
        self._print(f"\nRounds: {len(rounds)} | Duration: {duration:.1f}s | Cost: ${self.total_cost:.4f}")

        self._emit(
            cl.match_complete,
            game_id=self.game_id,
            player_1=self._name(1),
            player_2=self._name(2),
            score_1=self.match.scores[1],
            score_2=self.match.scores[2],
            end_reason=end_reason,
            winner=result["winner"],
            rounds_played=len(rounds),
            wall_ms=int(duration * 1000),
        )
        self._emit(
            cl.state_move,
            from_="WIP",
            to="DONE",
            payload={"game_id": self.game_id, "end_reason": end_reason},
        )

        logger.info(f"Game completed. Winner: {result['winner']}, Scores: {self.match.scores}")
        return result
