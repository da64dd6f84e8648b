"""Gateway contracts for image generation and judging.

The round controller only depends on these two interfaces. Concrete gateways
live in `pixter.heuristic` (local, deterministic) and `pixter.remote`
(OpenRouter-backed).
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from pixter.errors import GatewayUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratedImage:
    """Result of a successful generation call."""
    image_ref: str  # URL or data URI
    model_tag: str


@dataclass(frozen=True)
class Judgment:
    """Verdict for a single guess. Rationale and closeness are optional."""
    correct: bool
    rationale: Optional[str] = None
    closeness: Optional[float] = None


class GenerationGateway(ABC):
    """Turns a description into an image reference."""

    @abstractmethod
    def generate(self, description: str) -> GeneratedImage:
        """Generate an image. Raises GenerationFailed on failure."""
        pass


class JudgmentGateway(ABC):
    """Decides whether a guess matches the original description."""

    @abstractmethod
    def judge(self, original: str, guess: str) -> Judgment:
        """Judge a guess. Raises JudgmentFailed on failure."""
        pass


class FallbackImageGenerator(GenerationGateway):
    """Uses `fallback` whenever `primary` is unavailable."""

    def __init__(self, primary: GenerationGateway, fallback: GenerationGateway):
        self.primary = primary
        self.fallback = fallback

    def generate(self, description: str) -> GeneratedImage:
        try:
            return self.primary.generate(description)
        except GatewayUnavailable as e:
            logger.warning(f"[generate-image] primary generator failed, using fallback: {e}")
            return self.fallback.generate(description)


class FallbackJudge(JudgmentGateway):
    """Uses `fallback` whenever `primary` is unavailable."""

    def __init__(self, primary: JudgmentGateway, fallback: JudgmentGateway):
        self.primary = primary
        self.fallback = fallback

    def judge(self, original: str, guess: str) -> Judgment:
        try:
            return self.primary.judge(original, guess)
        except GatewayUnavailable as e:
            logger.warning(f"[judge] primary judge failed, using fallback: {e}")
            return self.fallback.judge(original, guess)
