"""Configuration loading for Pixter.

Defaults live in `pixter/inputs/config.yml`. A user file passed with
`--config` is merged over them section by section, then environment
overrides are applied.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from pixter.errors import ConfigError
from pixter.game_engine import ScoringPolicy, build_policy

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "inputs" / "config.yml"

DEFAULT_PLAYER_NAMES = ("Jonas the Red", "Erna the Blue")


@dataclass
class ScoringConfig:
    policy: str = "target"
    points_per_correct: int = 1
    penalty: int = 10
    floor: int = -100


@dataclass
class GatewayConfig:
    image_models: List[str] = field(default_factory=lambda: ["gemini-flash-image", "gpt-image-mini"])
    judge_model: str = "gpt-4o-mini"
    request_timeout: int = 120
    fallback: bool = True
    mock: bool = False


@dataclass
class GameConfig:
    """Everything needed to configure a match and its gateways."""
    player_names: List[str] = field(default_factory=lambda: list(DEFAULT_PLAYER_NAMES))
    target_score: int = 10
    max_attempts: int = 3
    baseline: int = 0
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    gateways: GatewayConfig = field(default_factory=GatewayConfig)

    def __post_init__(self):
        if self.target_score < 1:
            raise ConfigError(f"target_score must be at least 1, got {self.target_score}")
        if self.max_attempts < 1:
            raise ConfigError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if len(self.player_names) != 2:
            raise ConfigError(f"Exactly two player names are required, got {len(self.player_names)}")

    def build_policy(self) -> ScoringPolicy:
        return build_policy(
            self.scoring.policy,
            target_score=self.target_score,
            points_per_correct=self.scoring.points_per_correct,
            penalty=self.scoring.penalty,
            floor=self.scoring.floor,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GameConfig":
        """Create a GameConfig from the parsed YAML structure."""
        match = data.get("match", {}) or {}
        scoring = data.get("scoring", {}) or {}
        gateways = data.get("gateways", {}) or {}
        players = data.get("players") or list(DEFAULT_PLAYER_NAMES)

        try:
            return cls(
                player_names=[str(name) for name in players],
                target_score=int(match.get("target_score", 10)),
                max_attempts=int(match.get("max_attempts", 3)),
                baseline=int(match.get("baseline", 0)),
                scoring=ScoringConfig(
                    policy=str(scoring.get("policy", "target")),
                    points_per_correct=int(scoring.get("points_per_correct", 1)),
                    penalty=int(scoring.get("penalty", 10)),
                    floor=int(scoring.get("floor", -100)),
                ),
                gateways=GatewayConfig(
                    image_models=list(gateways.get("image_models") or GatewayConfig().image_models),
                    judge_model=str(gateways.get("judge_model", "gpt-4o-mini")),
                    request_timeout=int(gateways.get("request_timeout", 120)),
                    fallback=_flag(gateways, "fallback", True),
                    mock=_flag(gateways, "mock", False),
                ),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration value: {e}") from e


def _flag(section: Dict[str, Any], key: str, default: bool) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"{key} must be true or false, got {value!r}")
    return value


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Could not parse config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level")
    return data


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def _apply_env(config: GameConfig) -> GameConfig:
    if os.getenv("PIXTER_MOCK") == "1":
        config.gateways.mock = True

    # Preferred image model goes first, without duplicating an existing entry
    preferred = os.getenv("PIXTER_IMAGE_MODEL")
    if preferred:
        models = [preferred] + config.gateways.image_models
        config.gateways.image_models = list(dict.fromkeys(models))
    return config


def load_config(path: Optional[Path] = None) -> GameConfig:
    """Load the default config, merge an optional user file, apply env overrides."""
    data = _read_yaml(DEFAULT_CONFIG_PATH)
    if path is not None:
        data = _merge(data, _read_yaml(Path(path)))
        logger.info(f"Loaded config overrides from {path}")

    return _apply_env(GameConfig.from_dict(data))
