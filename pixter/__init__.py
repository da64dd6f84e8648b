"""Pixter: a two-player describe-and-guess game played through generated images.

One player describes, an image model renders the description, the other
player describes what they see, and a judge decides whether it matches.
- Rounds: up to 3 guesses, ending on a correct guess, the last wrong guess,
  or giving up
- Roles swap every round
- Default scoring: +1 to the guesser per correct round, first to 10 wins
"""

from pixter.game_engine import EndReason, PenaltyFloorPolicy, ScoringPolicy, TargetScorePolicy
from pixter.match import Match, MatchStatus, Player
from pixter.round import Attempt, Round, RoundOutcome

__version__ = "0.1.0"

__all__ = [
    "Attempt",
    "EndReason",
    "Match",
    "MatchStatus",
    "PenaltyFloorPolicy",
    "Player",
    "Round",
    "RoundOutcome",
    "ScoringPolicy",
    "TargetScorePolicy",
]
