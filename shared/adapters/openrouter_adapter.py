"""OpenRouter API adapter for model calls.

Two styles are offered:
- Function-based `chat()` for direct chat-completions calls
- Class-based `OpenRouterAdapter` that resolves CLI model names from
  model_mappings.yml and returns content plus call metadata

Both text (judging) and image-output models go through the same
chat-completions endpoint; image models are asked for the "image" modality.
"""

import logging
import os
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import requests
import yaml

from ..utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)

OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"

MODEL_SECTIONS = ("image", "judge")


def _get_shared_inputs_path() -> Path:
    """Get path to shared/inputs directory."""
    return Path(__file__).parent.parent / "inputs"


def _load_model_mappings(mappings_file: Optional[Path] = None) -> Dict[str, Any]:
    """Load model mappings from YAML configuration file."""
    if mappings_file is None:
        mappings_file = _get_shared_inputs_path() / "model_mappings.yml"

    try:
        with open(mappings_file, "r") as f:
            data = yaml.safe_load(f) or {}
        return data.get("models", {})
    except FileNotFoundError:
        logger.warning(f"Model mappings file not found: {mappings_file}")
        return {}
    except yaml.YAMLError as e:
        logger.error(f"Error loading model mappings: {e}")
        return {}


def _get_api_key() -> str:
    """Get OpenRouter API key from environment."""
    api_key = os.getenv("OPENROUTER_API_KEY")
    if not api_key:
        raise ValueError("OPENROUTER_API_KEY environment variable not set")
    return api_key


def has_api_key() -> bool:
    return bool(os.getenv("OPENROUTER_API_KEY"))


def flatten_mappings(mappings: Dict[str, Any]) -> Dict[str, str]:
    """Flatten sectioned mappings to a simple name->id dict."""
    flat: Dict[str, str] = {}
    for section in MODEL_SECTIONS:
        flat.update(mappings.get(section) or {})
    # Also include any flat entries
    for k, v in mappings.items():
        if k not in MODEL_SECTIONS and isinstance(v, str):
            flat[k] = v
    return flat


def resolve_model_id(model_name: str, mappings: Optional[Dict[str, Any]] = None) -> str:
    """Resolve a CLI model name to an OpenRouter model ID.

    Unknown names are assumed to already be full model IDs
    (e.g. "openai/gpt-4o-mini").
    """
    if mappings is None:
        mappings = _load_model_mappings()
    return flatten_mappings(mappings).get(model_name, model_name)


@retry_with_backoff(max_retries=3, base_delay=2.0, exceptions=(requests.RequestException,))
def chat(messages: List[Dict], model: str, timeout: int = 120, **options: Any) -> Dict:
    """
    Call OpenRouter Chat Completions API (function-based API).

    Args:
        messages: List of message objects with 'role' and 'content'
        model: OpenRouter model ID (e.g., 'openai/gpt-4o-mini')
        timeout: Request timeout in seconds
        **options: Extra payload fields (response_format, modalities, ...)

    Returns:
        Raw API response JSON including usage and cost info

    Raises:
        requests.RequestException: On API errors
    """
    headers = {
        "Authorization": f"Bearer {_get_api_key()}",
        "Content-Type": "application/json",
        "X-Title": "Pixter",
    }

    payload = {
        "model": model,
        "messages": messages,
        "usage": {
            "include": True  # Request cost and usage information
        },
    }
    payload.update(options)

    response = requests.post(OPENROUTER_URL, json=payload, headers=headers, timeout=timeout)

    # Check for OpenRouter-specific errors before raising
    if not response.ok:
        try:
            error_data = response.json()
            error_msg = error_data.get("error", {}).get("message", "")

            if "data policy" in error_msg.lower() and response.status_code == 404:
                logger.error(f"[OpenRouter] Data policy configuration required for model: {model}")
                detailed_msg = (
                    f"OpenRouter data policy error for model '{model}': {error_msg}\n"
                    f"Configure your data policy settings at: https://openrouter.ai/settings/privacy"
                )
                error = requests.HTTPError(detailed_msg)
                error.response = response
                raise error
        except requests.HTTPError:
            raise
        except (ValueError, KeyError, AttributeError):
            # If we can't parse the error JSON, fall through to default handling
            pass

    response.raise_for_status()
    return response.json()


def _extract_metadata(response_data: Dict, model_id: str, latency_ms: float) -> Dict[str, Any]:
    usage = response_data.get("usage", {}) or {}
    metadata = {
        "model_id": model_id,
        "latency_ms": latency_ms,
        "input_tokens": usage.get("prompt_tokens", 0),
        "output_tokens": usage.get("completion_tokens", 0),
        "total_tokens": usage.get("total_tokens", 0),
        "openrouter_cost": usage.get("cost", 0.0) or 0.0,
        "upstream_cost": 0.0,
    }
    cost_details = usage.get("cost_details", {})
    if cost_details and cost_details.get("upstream_inference_cost") is not None:
        metadata["upstream_cost"] = float(cost_details["upstream_inference_cost"])
    return metadata


def _first_message(response_data: Dict) -> Dict[str, Any]:
    choices = response_data.get("choices") or []
    if not choices:
        return {}
    return choices[0].get("message", {}) or {}


class OpenRouterAdapter:
    """Class-based adapter for calling models through OpenRouter.

    Caches model mappings and exposes one method per kind of call. Errors
    from the HTTP layer propagate as `requests.RequestException`; callers
    decide how to recover.
    """

    def __init__(self, model_mappings_file: Optional[str] = None, timeout: int = 120):
        self.api_key = _get_api_key()
        self.timeout = timeout

        if model_mappings_file:
            self.model_mappings = _load_model_mappings(Path(model_mappings_file))
        else:
            self.model_mappings = _load_model_mappings()

        logger.info(f"Loaded model mappings with {len(self._flatten_mappings())} models")

    def _flatten_mappings(self) -> Dict[str, str]:
        return flatten_mappings(self.model_mappings)

    def resolve_model(self, model_name: str) -> str:
        """Resolve CLI model name to OpenRouter model ID."""
        model_id = self._flatten_mappings().get(model_name)
        if model_id is None:
            logger.warning(f"Model '{model_name}' not found in mappings, using as-is")
            return model_name
        return model_id

    def call_model_with_metadata(
        self,
        model_name: str,
        messages: List[Dict],
        response_format: Optional[Dict] = None,
    ) -> Tuple[str, Dict]:
        """Call a text model and return (content, metadata)."""
        model_id = self.resolve_model(model_name)
        logger.debug(f"Calling model {model_id} (from {model_name}) with {len(messages)} message(s)")

        options: Dict[str, Any] = {"temperature": 0.0}
        if response_format:
            options["response_format"] = response_format

        start_time = time.time()
        response_data = chat(messages, model_id, timeout=self.timeout, **options)
        latency_ms = (time.time() - start_time) * 1000

        content = _first_message(response_data).get("content") or ""
        metadata = _extract_metadata(response_data, model_id, latency_ms)

        logger.info(
            f"Model call completed. Tokens: {metadata['total_tokens']}, "
            f"Latency: {latency_ms:.1f}ms"
        )
        return content, metadata

    def generate_image(self, model_name: str, prompt: str) -> Tuple[Optional[str], Dict]:
        """Ask an image-output model for one image.

        Returns (image_url, metadata). The URL is usually a base64 data URI;
        it is None when the model answered without an image.
        """
        model_id = self.resolve_model(model_name)
        messages = [{"role": "user", "content": prompt}]

        start_time = time.time()
        response_data = chat(messages, model_id, timeout=self.timeout, modalities=["image", "text"])
        latency_ms = (time.time() - start_time) * 1000

        message = _first_message(response_data)
        image_url = None
        for image in message.get("images") or []:
            image_url = (image.get("image_url") or {}).get("url")
            if image_url:
                break

        metadata = _extract_metadata(response_data, model_id, latency_ms)
        if image_url is None:
            logger.warning(f"[OpenRouter] Model {model_id} returned no image content")
        else:
            logger.info(f"Image generated by {model_id} in {latency_ms:.1f}ms")
        return image_url, metadata

    def get_available_models(self, section: Optional[str] = None) -> List[str]:
        """Get list of available model names, optionally for one section."""
        if section is not None:
            return list((self.model_mappings.get(section) or {}).keys())
        return list(self._flatten_mappings().keys())
