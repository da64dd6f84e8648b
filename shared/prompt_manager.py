"""Prompt template loading with {{VARIABLE}} hydration."""

import logging
import re
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# Prompt paths are resolved relative to the project root
PROJECT_ROOT = Path(__file__).parent.parent

_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")


class PromptManager:
    """Loads markdown prompt files and fills in {{KEY}} placeholders.

    Context keys are matched case-insensitively against the upper-case
    placeholder names, so {"guess": ...} fills {{GUESS}}.
    """

    def __init__(self, base_dir: Optional[Path] = None):
        self.base_dir = Path(base_dir) if base_dir else PROJECT_ROOT
        self._cache: Dict[str, str] = {}

    def _read(self, prompt_file: str) -> str:
        path = Path(prompt_file)
        if not path.is_absolute():
            path = self.base_dir / path
        key = str(path)
        if key not in self._cache:
            with open(path, "r") as f:
                self._cache[key] = f.read()
        return self._cache[key]

    def load_prompt(self, prompt_file: str, context: Optional[Dict[str, Any]] = None) -> str:
        template = self._read(prompt_file)
        return self.hydrate(template, context or {})

    @staticmethod
    def hydrate(template: str, context: Dict[str, Any]) -> str:
        # Single pass over the template; substituted values are never rescanned
        values = {key.upper(): str(value) for key, value in context.items()}
        prompt = _PLACEHOLDER.sub(lambda m: values.get(m.group(1), m.group(0)), template)
        if any(m.group(1) not in values for m in _PLACEHOLDER.finditer(template)):
            logger.debug("Prompt still contains unreplaced placeholders")
        return prompt
