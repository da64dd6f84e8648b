"""Local word-overlap judge and placeholder image generator.

These need no network access, so they double as the mock gateways and as the
fallback when a remote call fails.
"""

import logging
import re
from typing import Set, Tuple
from urllib.parse import quote

from pixter.gateways import GeneratedImage, GenerationGateway, Judgment, JudgmentGateway

logger = logging.getLogger(__name__)

_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")

# Minimum shared words for the heuristic to call a guess correct
MIN_OVERLAP = 3

PLACEHOLDER_URL = "https://dummyimage.com/1024x1024/233143/ffffff.png&text={text}"


def normalize_text(text: str) -> str:
    """Trim, collapse inner whitespace and lower-case."""
    return " ".join(text.split()).lower()


def tokenize(text: str) -> Set[str]:
    """Lower-case alphanumeric word set."""
    return {token for token in _TOKEN_SPLIT.split(str(text).lower()) if token}


def compute_closeness(original: str, guess: str) -> Tuple[float, int]:
    """Jaccard index over word sets.

    Returns (closeness, overlap) where overlap is the size of the word
    intersection. An empty union counts as 1 so two empty strings score 0.
    """
    a = tokenize(original)
    b = tokenize(guess)
    overlap = len(a & b)
    union = len(a | b) or 1
    return overlap / union, overlap


def heuristic_verdict(original: str, guess: str, rationale_prefix: str = "") -> Judgment:
    closeness, overlap = compute_closeness(original, guess)
    correct = overlap >= MIN_OVERLAP or normalize_text(original) == normalize_text(guess)
    return Judgment(
        correct=correct,
        rationale=f"{rationale_prefix}overlap_words={overlap}",
        closeness=closeness,
    )


class HeuristicJudge(JudgmentGateway):
    """Deterministic judge: correct on 3+ shared words or an exact match."""

    def __init__(self, rationale_prefix: str = ""):
        self.rationale_prefix = rationale_prefix

    def judge(self, original: str, guess: str) -> Judgment:
        verdict = heuristic_verdict(original, guess, self.rationale_prefix)
        logger.debug(f"Heuristic verdict for {guess!r}: {verdict}")
        return verdict


class PlaceholderImageGenerator(GenerationGateway):
    """Returns a placeholder image URL with the description embedded as text."""

    def __init__(self, model_tag: str = "mock", label_prefix: str = ""):
        self.model_tag = model_tag
        self.label_prefix = label_prefix

    def generate(self, description: str) -> GeneratedImage:
        text = quote(self.label_prefix + description[:40], safe="")
        return GeneratedImage(image_ref=PLACEHOLDER_URL.format(text=text), model_tag=self.model_tag)
