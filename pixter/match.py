"""Match controller: scores, turn order and termination across rounds."""

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence

from pixter.config import DEFAULT_PLAYER_NAMES, GameConfig
from pixter.errors import InvalidTransition, ValidationError
from pixter.game_engine import EndReason, MatchEnd, ScoringPolicy
from pixter.gateways import GenerationGateway, JudgmentGateway
from pixter.round import Attempt, Round

logger = logging.getLogger(__name__)

PLAYER_IDS = (1, 2)
PLAYER_COLORS = {1: "#d94a4a", 2: "#4a72d9"}


class MatchStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    OVER = "over"


@dataclass
class Player:
    id: int
    name: str
    color: str


class Match:
    """A full game between two players with alternating roles.

    The match owns the current Round and replaces it wholesale at every round
    boundary. Score changes are delegated to the configured ScoringPolicy:
    per-attempt deltas are applied as soon as the round records an attempt,
    outcome deltas once the round is terminal. The random source deciding
    the first describer is injected so tests can pass a seeded one.
    """

    def __init__(
        self,
        generator: GenerationGateway,
        judge: JudgmentGateway,
        config: Optional[GameConfig] = None,
        rng: Optional[random.Random] = None,
        policy: Optional[ScoringPolicy] = None,
    ):
        self.generator = generator
        self.judge = judge
        self.config = config or GameConfig()
        self.policy = policy or self.config.build_policy()
        self.rng = rng or random.Random()

        self.players: Dict[int, Player] = self._make_players(self.config.player_names)
        self.scores: Dict[int, int] = {pid: self.config.baseline for pid in PLAYER_IDS}
        self.status = MatchStatus.NOT_STARTED
        self.describer_id: Optional[int] = None
        self.current_round: Optional[Round] = None
        self.end: Optional[MatchEnd] = None
        self.completed_rounds: List[Round] = []
        self._outcome_applied = False

    @staticmethod
    def _make_players(names: Sequence[str]) -> Dict[int, Player]:
        if len(names) != len(PLAYER_IDS):
            raise ValidationError(f"Exactly {len(PLAYER_IDS)} player names are required, got {len(names)}")
        players = {}
        for pid, name, default in zip(PLAYER_IDS, names, DEFAULT_PLAYER_NAMES):
            players[pid] = Player(id=pid, name=(name or "").strip() or default, color=PLAYER_COLORS[pid])
        return players

    @property
    def guesser_id(self) -> Optional[int]:
        if self.describer_id is None:
            return None
        return other_player(self.describer_id)

    @property
    def winner_id(self) -> Optional[int]:
        return self.end.winner_id if self.end else None

    @property
    def end_reason(self) -> Optional[EndReason]:
        return self.end.reason if self.end else None

    @property
    def is_over(self) -> bool:
        return self.status is MatchStatus.OVER

    def rename_player(self, player_id: int, name: str) -> None:
        """Change a display name. Names are fixed while a match is running."""
        if self.status is MatchStatus.IN_PROGRESS:
            raise InvalidTransition("Player names cannot change during a match")
        if player_id not in self.players:
            raise ValueError(f"Unknown player id: {player_id}")
        self.players[player_id].name = name.strip() or DEFAULT_PLAYER_NAMES[player_id - 1]

    def start(
        self,
        player_names: Optional[Sequence[str]] = None,
        config: Optional[GameConfig] = None,
    ) -> Round:
        """Begin a new match and return its first round."""
        config = config or self.config
        players = self._make_players(config.player_names if player_names is None else player_names)
        policy = config.build_policy() if config is not self.config else self.policy
        self.config = config
        self.policy = policy
        if self.current_round is not None:
            self.current_round.freeze()

        self.players = players
        self.scores = {pid: self.config.baseline for pid in PLAYER_IDS}
        self.end = None
        self.completed_rounds = []
        self.describer_id = self.rng.choice(PLAYER_IDS)
        self.status = MatchStatus.IN_PROGRESS

        logger.info(
            f"Match started: {self.players[1].name} vs {self.players[2].name}, "
            f"policy={self.policy.describe()}, first describer={self.describer_id}"
        )
        return self._new_round()

    def reset(self) -> None:
        """Return to NOT_STARTED with baseline scores."""
        if self.current_round is not None:
            self.current_round.freeze()
        self.scores = {pid: self.config.baseline for pid in PLAYER_IDS}
        self.status = MatchStatus.NOT_STARTED
        self.describer_id = None
        self.current_round = None
        self.end = None
        self.completed_rounds = []
        self._outcome_applied = False
        logger.info("Match reset")

    def _new_round(self) -> Round:
        self._outcome_applied = False
        self.current_round = Round(
            describer_id=self.describer_id,
            guesser_id=other_player(self.describer_id),
            generator=self.generator,
            judge=self.judge,
            max_attempts=self.config.max_attempts,
            on_attempt=self._on_attempt,
            on_complete=self.apply_round_outcome,
        )
        return self.current_round

    def _on_attempt(self, round: Round, attempt: Attempt) -> None:
        if round is not self.current_round or self.status is not MatchStatus.IN_PROGRESS:
            return
        delta = self.policy.attempt_delta(attempt)
        if not delta:
            return
        self.scores[round.guesser_id] += delta
        logger.info(f"Player {round.guesser_id} score {delta:+d} -> {self.scores[round.guesser_id]}")

        end = self.policy.check_end(self.scores, round.guesser_id)
        if end is not None:
            self._finish(end)

    def apply_round_outcome(self, round: Optional[Round] = None) -> bool:
        """Score a terminal round and evaluate the end of the match.

        Rounds created by this match call this automatically when they end;
        later calls for the same round do nothing and return False.
        """
        round = round or self.current_round
        if round is None or round is not self.current_round:
            raise InvalidTransition("Only the current round can be scored")
        if not round.is_terminal:
            raise InvalidTransition("Round has not ended yet")
        if self._outcome_applied:
            return False
        self._outcome_applied = True

        if self.status is not MatchStatus.IN_PROGRESS:
            return False

        delta = self.policy.outcome_delta(round.outcome)
        self.scores[round.guesser_id] += delta
        self.completed_rounds.append(round)
        logger.info(
            f"Round {len(self.completed_rounds)} ended ({round.outcome.value}); "
            f"player {round.guesser_id} {delta:+d}, scores={self.scores}"
        )

        end = self.policy.check_end(self.scores, round.guesser_id, round.outcome)
        if end is not None:
            self._finish(end)
        return True

    def _finish(self, end: MatchEnd) -> None:
        self.status = MatchStatus.OVER
        self.end = end
        if self.current_round is not None:
            if self.current_round not in self.completed_rounds:
                self.completed_rounds.append(self.current_round)
            self.current_round.freeze()
        logger.info(f"Match over: reason={end.reason.value}, winner={end.winner_id}, scores={self.scores}")

    def advance_round(self) -> Round:
        """Swap roles and start the next round."""
        if self.status is not MatchStatus.IN_PROGRESS:
            raise InvalidTransition(f"Cannot advance: match is {self.status.value}")
        if self.current_round is None or not self.current_round.is_terminal:
            raise InvalidTransition("Cannot advance: current round has not ended")

        self.apply_round_outcome(self.current_round)
        if self.status is not MatchStatus.IN_PROGRESS:
            raise InvalidTransition("Cannot advance: match is over")

        self.describer_id = other_player(self.describer_id)
        return self._new_round()

    def round_points(self, round: Optional[Round] = None) -> Dict[int, int]:
        """Score change per player caused by a round."""
        round = round or self.current_round
        points = {pid: 0 for pid in PLAYER_IDS}
        if round is not None:
            points[round.guesser_id] = self.policy.round_delta(round.attempts, round.outcome)
        return points

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "players": {pid: p.name for pid, p in self.players.items()},
            "scores": dict(self.scores),
            "describer_id": self.describer_id,
            "guesser_id": self.guesser_id,
            "policy": self.policy.name,
            "end_reason": self.end_reason.value if self.end_reason else None,
            "winner_id": self.winner_id,
            "rounds_played": len(self.completed_rounds),
            "current_round": self.current_round.to_dict() if self.current_round else None,
        }


def other_player(player_id: int) -> int:
    if player_id not in PLAYER_IDS:
        raise ValueError(f"Unknown player id: {player_id}")
    return PLAYER_IDS[1] if player_id == PLAYER_IDS[0] else PLAYER_IDS[0]
