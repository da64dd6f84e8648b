"""Scoring policies for Pixter.

This module is the single source of truth for how attempts and round
outcomes translate into score changes and when a match ends. The match
controller only ever asks the configured policy.

Two policies are available:
- target: +1 to the guesser per correct round, first to the target wins
- penalty: -10 to the guesser per wrong attempt, a correct guess ends the
  match, and so does any score falling to the floor (-100)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Optional

from pixter.errors import ConfigError
from pixter.round import Attempt, RoundOutcome


class EndReason(str, Enum):
    TARGET_REACHED = "target_reached"
    CORRECT_GUESS = "correct_guess"
    FLOOR_REACHED = "floor_reached"


@dataclass(frozen=True)
class MatchEnd:
    """Why a match ended and who won (None for a draw)."""
    reason: EndReason
    winner_id: Optional[int]


def leader(scores: Dict[int, int]) -> Optional[int]:
    """Player with the strictly highest score, None on a tie."""
    ranked = sorted(scores.items(), key=lambda item: item[1], reverse=True)
    if len(ranked) > 1 and ranked[0][1] == ranked[1][1]:
        return None
    return ranked[0][0] if ranked else None


class ScoringPolicy(ABC):
    """Score deltas and termination rules. Deltas always go to the guesser."""

    name = ""

    def attempt_delta(self, attempt: Attempt) -> int:
        """Score change applied as soon as an attempt is recorded."""
        return 0

    def outcome_delta(self, outcome: RoundOutcome) -> int:
        """Score change applied once the round reaches a terminal outcome."""
        return 0

    def round_delta(self, attempts: Iterable[Attempt], outcome: RoundOutcome) -> int:
        """Total change for the guesser over a whole round."""
        total = sum(self.attempt_delta(a) for a in attempts)
        if outcome.is_terminal:
            total += self.outcome_delta(outcome)
        return total

    @abstractmethod
    def check_end(
        self,
        scores: Dict[int, int],
        guesser_id: int,
        outcome: Optional[RoundOutcome] = None,
    ) -> Optional[MatchEnd]:
        """Evaluate termination after a score mutation.

        `outcome` is the round outcome when called at the end of a round and
        None when called after an individual attempt.
        """
        pass

    def describe(self) -> str:
        return self.name


class TargetScorePolicy(ScoringPolicy):
    """Only the guesser scores: +points_per_correct per correct round."""

    name = "target"

    DEFAULT_TARGET = 10
    POINTS_PER_CORRECT = 1

    def __init__(self, target_score: int = DEFAULT_TARGET, points_per_correct: int = POINTS_PER_CORRECT):
        if target_score < 1:
            raise ConfigError(f"target_score must be at least 1, got {target_score}")
        if points_per_correct < 1:
            raise ConfigError(f"points_per_correct must be at least 1, got {points_per_correct}")
        self.target_score = target_score
        self.points_per_correct = points_per_correct

    def outcome_delta(self, outcome: RoundOutcome) -> int:
        return self.points_per_correct if outcome is RoundOutcome.CORRECT else 0

    def check_end(self, scores, guesser_id, outcome=None):
        if any(score >= self.target_score for score in scores.values()):
            return MatchEnd(EndReason.TARGET_REACHED, leader(scores))
        return None

    def describe(self) -> str:
        return f"first to {self.target_score} (+{self.points_per_correct} per correct guess)"


class PenaltyFloorPolicy(ScoringPolicy):
    """Wrong attempts cost the guesser; a correct guess or the floor ends the match."""

    name = "penalty"

    WRONG_GUESS_PENALTY = 10
    FLOOR = -100

    def __init__(self, penalty: int = WRONG_GUESS_PENALTY, floor: int = FLOOR):
        if penalty < 0:
            raise ConfigError(f"penalty must not be negative, got {penalty}")
        self.penalty = penalty
        self.floor = floor

    def attempt_delta(self, attempt: Attempt) -> int:
        return 0 if attempt.correct else -self.penalty

    def check_end(self, scores, guesser_id, outcome=None):
        # Only the guesser is penalized, so both players can never cross the
        # floor on the same mutation.
        if any(score <= self.floor for score in scores.values()):
            return MatchEnd(EndReason.FLOOR_REACHED, leader(scores))
        if outcome is RoundOutcome.CORRECT:
            return MatchEnd(EndReason.CORRECT_GUESS, guesser_id)
        return None

    def describe(self) -> str:
        return f"-{self.penalty} per wrong guess, first correct guess wins, floor {self.floor}"


POLICIES = {
    TargetScorePolicy.name: TargetScorePolicy,
    PenaltyFloorPolicy.name: PenaltyFloorPolicy,
}


def build_policy(
    name: str = TargetScorePolicy.name,
    target_score: int = TargetScorePolicy.DEFAULT_TARGET,
    points_per_correct: int = TargetScorePolicy.POINTS_PER_CORRECT,
    penalty: int = PenaltyFloorPolicy.WRONG_GUESS_PENALTY,
    floor: int = PenaltyFloorPolicy.FLOOR,
) -> ScoringPolicy:
    """Create a scoring policy by name."""
    if name == TargetScorePolicy.name:
        return TargetScorePolicy(target_score=target_score, points_per_correct=points_per_correct)
    if name == PenaltyFloorPolicy.name:
        return PenaltyFloorPolicy(penalty=penalty, floor=floor)
    raise ConfigError(f"Unknown scoring policy '{name}'. Choose from: {', '.join(POLICIES)}")
