"""Error taxonomy for Pixter.

Every error is scoped to the single operation that raised it and leaves the
round and match state exactly as it was before the call.
"""


class PixterError(Exception):
    """Base class for all Pixter errors."""


class ValidationError(PixterError):
    """Input rejected before any gateway call (e.g. empty description)."""


class GatewayUnavailable(PixterError):
    """A generation or judgment call failed or timed out. Safe to retry."""


class GenerationFailed(GatewayUnavailable):
    """The image generation gateway could not produce an image."""


class JudgmentFailed(GatewayUnavailable):
    """The judgment gateway could not produce a verdict."""


class Busy(PixterError):
    """Another gateway call is still outstanding on the same round."""


class InvalidTransition(PixterError):
    """Operation not allowed in the current round or match state."""


class ConfigError(PixterError):
    """Configuration file missing, unreadable, or invalid."""
