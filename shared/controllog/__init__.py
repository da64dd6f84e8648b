"""Controllable logging SDK (events + balanced postings).

Designed to be embedded now and easily extracted into a standalone library.
This provides double-entry accounting for:
- Time and token usage of model calls (resource.time_ms, resource.tokens)
- Cost tracking (resource.money)
- State transitions (truth.state)
- Points scored (value.utility)
"""

from .sdk import init, event, post, new_id
from .builders import (
    state_move,
    model_call,
    round_complete,
    match_complete,
)

__all__ = [
    "init",
    "event",
    "post",
    "new_id",
    "state_move",
    "model_call",
    "round_complete",
    "match_complete",
]
