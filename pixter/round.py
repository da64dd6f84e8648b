"""Round controller: one description → image → guesses → verdict cycle."""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

from pixter.errors import (
    Busy,
    GatewayUnavailable,
    GenerationFailed,
    InvalidTransition,
    JudgmentFailed,
    ValidationError,
)
from pixter.gateways import GenerationGateway, JudgmentGateway
from pixter.heuristic import normalize_text

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3


def _clamp_closeness(closeness: Optional[float]) -> Optional[float]:
    if closeness is None:
        return None
    return min(1.0, max(0.0, float(closeness)))


class RoundOutcome(str, Enum):
    PENDING = "pending"
    CORRECT = "correct"
    MAX_ATTEMPTS_REACHED = "max_attempts"
    GAVE_UP = "give_up"

    @property
    def is_terminal(self) -> bool:
        return self is not RoundOutcome.PENDING


@dataclass(frozen=True)
class Attempt:
    """A single judged guess."""
    guess_text: str
    correct: bool
    rationale: Optional[str] = None
    closeness: Optional[float] = None


class Round:
    """State machine for a single round.

    The describer submits a description, which is rendered by the generation
    gateway. The guesser then gets up to `max_attempts` judged guesses. The
    round ends on the first correct guess, after the last allowed wrong
    guess, or when the guesser gives up.

    Gateway calls hold a per-round busy flag; any other mutating call made
    while one is outstanding raises `Busy`. State is only written after a
    gateway call returns, so a failed or abandoned call leaves the round
    exactly as it was.
    """

    def __init__(
        self,
        describer_id: int,
        guesser_id: int,
        generator: GenerationGateway,
        judge: JudgmentGateway,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        on_attempt: Optional[Callable[["Round", Attempt], None]] = None,
        on_complete: Optional[Callable[["Round"], None]] = None,
    ):
        if describer_id == guesser_id:
            raise ValueError("Describer and guesser must be different players")
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

        self.describer_id = describer_id
        self.guesser_id = guesser_id
        self.generator = generator
        self.judge = judge
        self.max_attempts = max_attempts

        self.description = ""
        self.image_ref: Optional[str] = None
        self.model_tag: Optional[str] = None
        self.outcome = RoundOutcome.PENDING
        self._attempts: List[Attempt] = []

        self._on_attempt = on_attempt
        self._on_complete = on_complete
        self._busy = threading.Lock()
        self._frozen = False

    @property
    def attempts(self) -> Tuple[Attempt, ...]:
        return tuple(self._attempts)

    @property
    def attempts_left(self) -> int:
        return self.max_attempts - len(self._attempts)

    @property
    def has_image(self) -> bool:
        return self.image_ref is not None

    @property
    def is_terminal(self) -> bool:
        return self.outcome.is_terminal

    @property
    def is_busy(self) -> bool:
        return self._busy.locked()

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Refuse all further mutation. Used when the match ends mid-round."""
        self._frozen = True

    def _acquire(self) -> None:
        if not self._busy.acquire(blocking=False):
            raise Busy("A generation or judgment call is already in progress for this round")

    def _require_open(self, action: str) -> None:
        if self._frozen:
            raise InvalidTransition(f"Cannot {action}: the match is over")
        if self.outcome.is_terminal:
            raise InvalidTransition(f"Cannot {action}: round already ended ({self.outcome.value})")

    def submit_description(self, text: str) -> str:
        """Render the describer's text. Returns the image reference."""
        self._acquire()
        try:
            self._require_open("submit a description")
            if self.image_ref is not None:
                raise InvalidTransition("Cannot submit a description: image already generated")
            if not text or not text.strip():
                raise ValidationError("Description must not be empty")

            try:
                image = self.generator.generate(text)
            except GatewayUnavailable:
                raise
            except Exception as e:
                raise GenerationFailed(f"Failed to generate image: {e}") from e

            self.description = text
            self.image_ref = image.image_ref
            self.model_tag = image.model_tag
            logger.info(f"Image generated for describer {self.describer_id} (model={image.model_tag})")
            return image.image_ref
        finally:
            self._busy.release()

    def submit_guess(self, text: str) -> Optional[Attempt]:
        """Judge a guess and record it.

        Returns the new Attempt, or None when the guess repeats the previous
        attempt (after normalization) and was ignored.
        """
        self._acquire()
        try:
            self._require_open("guess")
            if self.image_ref is None:
                raise InvalidTransition("Cannot guess before an image has been generated")
            if not text or not text.strip():
                raise ValidationError("Guess must not be empty")

            if self._attempts and normalize_text(self._attempts[-1].guess_text) == normalize_text(text):
                logger.debug(f"Ignoring duplicate guess: {text!r}")
                return None

            try:
                verdict = self.judge.judge(self.description, text)
            except GatewayUnavailable:
                raise
            except Exception as e:
                raise JudgmentFailed(f"Failed to judge guess: {e}") from e

            attempt = Attempt(
                guess_text=text,
                correct=verdict.correct,
                rationale=verdict.rationale,
                closeness=_clamp_closeness(verdict.closeness),
            )
            self._attempts.append(attempt)

            if attempt.correct:
                self.outcome = RoundOutcome.CORRECT
            elif len(self._attempts) >= self.max_attempts:
                self.outcome = RoundOutcome.MAX_ATTEMPTS_REACHED

            logger.info(
                f"Attempt {len(self._attempts)}/{self.max_attempts} by player {self.guesser_id}: "
                f"correct={attempt.correct} closeness={attempt.closeness} outcome={self.outcome.value}"
            )
        finally:
            self._busy.release()

        self._notify(attempt)
        return attempt

    def give_up(self) -> None:
        """End the round without a correct guess. No score consequence."""
        self._acquire()
        try:
            self._require_open("give up")
            if self.image_ref is None:
                raise InvalidTransition("Cannot give up before an image has been generated")
            self.outcome = RoundOutcome.GAVE_UP
            logger.info(f"Player {self.guesser_id} gave up after {len(self._attempts)} attempt(s)")
        finally:
            self._busy.release()

        if self._on_complete is not None:
            self._on_complete(self)

    def _notify(self, attempt: Attempt) -> None:
        if self._on_attempt is not None:
            self._on_attempt(self, attempt)
        if self.outcome.is_terminal and self._on_complete is not None:
            self._on_complete(self)

    def to_dict(self) -> dict:
        return {
            "describer_id": self.describer_id,
            "guesser_id": self.guesser_id,
            "description": self.description,
            "image_ref": self.image_ref,
            "model_tag": self.model_tag,
            "outcome": self.outcome.value,
            "attempts": [
                {
                    "guess": a.guess_text,
                    "correct": a.correct,
                    "rationale": a.rationale,
                    "closeness": a.closeness,
                }
                for a in self._attempts
            ],
        }
