"""OpenRouter-backed gateways and gateway assembly from configuration."""

import json
import logging
from typing import Callable, List, Optional, Tuple

import requests

from pixter.config import GameConfig
from pixter.errors import GenerationFailed, JudgmentFailed
from pixter.gateways import (
    FallbackImageGenerator,
    FallbackJudge,
    GeneratedImage,
    GenerationGateway,
    Judgment,
    JudgmentGateway,
)
from pixter.heuristic import HeuristicJudge, PlaceholderImageGenerator, compute_closeness
from shared.adapters.openrouter_adapter import OpenRouterAdapter, has_api_key
from shared.prompt_manager import PromptManager

logger = logging.getLogger(__name__)

JUDGE_SYSTEM_PROMPT = "pixter/prompts/judge.md"
JUDGE_USER_PROMPT = "pixter/prompts/judge_user.md"

# HTTP failures plus the errors a malformed response body raises while parsing
REMOTE_ERRORS = (requests.RequestException, ValueError, KeyError, TypeError, AttributeError)

# Called after each successful remote call with (call_type, metadata)
CallListener = Callable[[str, dict], None]


class OpenRouterImageGenerator(GenerationGateway):
    """Generates images with the first configured model that returns one."""

    def __init__(
        self,
        adapter: OpenRouterAdapter,
        models: List[str],
        on_call: Optional[CallListener] = None,
    ):
        if not models:
            raise ValueError("At least one image model is required")
        self.adapter = adapter
        self.models = list(models)
        self.on_call = on_call

    def generate(self, description: str) -> GeneratedImage:
        last_error: Optional[Exception] = None
        for model in self.models:
            try:
                image_url, metadata = self.adapter.generate_image(model, description)
            except REMOTE_ERRORS as e:
                last_error = e
                logger.warning(f"[generate-image] model {model} failed: {e}")
                continue

            if not image_url:
                last_error = GenerationFailed(f"No image content from model {model}")
                continue

            if self.on_call is not None:
                self.on_call("generate", metadata)
            return GeneratedImage(image_ref=image_url, model_tag=model)

        raise GenerationFailed(f"All image models failed: {last_error}")


class OpenRouterJudge(JudgmentGateway):
    """Asks a chat model for a JSON verdict; closeness comes from word overlap."""

    def __init__(
        self,
        adapter: OpenRouterAdapter,
        model: str,
        prompt_manager: Optional[PromptManager] = None,
        on_call: Optional[CallListener] = None,
    ):
        self.adapter = adapter
        self.model = model
        self.prompt_manager = prompt_manager or PromptManager()
        self.on_call = on_call

    def build_messages(self, original: str, guess: str) -> List[dict]:
        system = self.prompt_manager.load_prompt(JUDGE_SYSTEM_PROMPT)
        user = self.prompt_manager.load_prompt(JUDGE_USER_PROMPT, {"original": original, "guess": guess})
        return [
            {"role": "system", "content": system.strip()},
            {"role": "user", "content": user.strip()},
        ]

    def judge(self, original: str, guess: str) -> Judgment:
        try:
            content, metadata = self.adapter.call_model_with_metadata(
                self.model,
                self.build_messages(original, guess),
                response_format={"type": "json_object"},
            )
        except REMOTE_ERRORS as e:
            raise JudgmentFailed(f"Judge model {self.model} failed: {e}") from e

        logger.debug(f"Raw judge response: {content}")
        if self.on_call is not None:
            self.on_call("judge", metadata)

        correct, rationale = parse_verdict(content)
        closeness, _ = compute_closeness(original, guess)
        return Judgment(correct=correct, rationale=rationale, closeness=closeness)


def parse_verdict(content: str) -> Tuple[bool, str]:
    """Parse `{"correct": bool, "rationale": str}`. Garbage counts as incorrect."""
    try:
        parsed = json.loads(content or "{}")
    except json.JSONDecodeError:
        logger.warning("Judge response was not valid JSON, treating as incorrect")
        parsed = {}
    if not isinstance(parsed, dict):
        parsed = {}
    return bool(parsed.get("correct")), parsed.get("rationale") or "model"


def build_gateways(
    config: GameConfig,
    mock: Optional[bool] = None,
    on_call: Optional[CallListener] = None,
) -> Tuple[GenerationGateway, JudgmentGateway]:
    """Assemble the generator and judge described by `config`.

    Mock mode (explicit, configured, or no API key available) uses the local
    placeholder generator and word-overlap judge. Otherwise the OpenRouter
    gateways are used, wrapped with local fallbacks when enabled.
    """
    gateway_config = config.gateways
    use_mock = gateway_config.mock if mock is None else mock
    if not use_mock and not has_api_key():
        logger.warning("OPENROUTER_API_KEY not set, falling back to mock gateways")
        use_mock = True

    if use_mock:
        logger.info("Using mock gateways")
        return PlaceholderImageGenerator(), HeuristicJudge()

    adapter = OpenRouterAdapter(timeout=gateway_config.request_timeout)
    generator: GenerationGateway = OpenRouterImageGenerator(adapter, gateway_config.image_models, on_call)
    judge: JudgmentGateway = OpenRouterJudge(adapter, gateway_config.judge_model, on_call=on_call)

    if gateway_config.fallback:
        generator = FallbackImageGenerator(
            generator, PlaceholderImageGenerator(model_tag="mock-fallback", label_prefix="mock: ")
        )
        judge = FallbackJudge(judge, HeuristicJudge(rationale_prefix="fallback_"))

    logger.info(f"Using OpenRouter gateways (image={gateway_config.image_models}, judge={gateway_config.judge_model})")
    return generator, judge
