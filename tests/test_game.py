"""Tests for the interactive Pixter session."""

import base64
import json
import random
import tempfile
from pathlib import Path
from unittest.mock import Mock

import pytest

from pixter.config import GameConfig, ScoringConfig
from pixter.errors import GenerationFailed
from pixter.game import PixterGame, format_round_points
from pixter.gateways import GeneratedImage
from pixter.heuristic import HeuristicJudge, PlaceholderImageGenerator


class FixedRandom(random.Random):
    """Random source whose choice() always picks the first player."""

    def choice(self, seq):
        return seq[0]


def scripted(*lines):
    """Input function that replays `lines` and records the prompts it saw."""
    it = iter(lines)
    prompts = []

    def input_fn(prompt):
        prompts.append(prompt)
        return next(it)

    input_fn.prompts = prompts
    return input_fn


def make_game(*lines, generator=None, **config_kwargs):
    config_kwargs.setdefault("player_names", ["Ada", "Bob"])
    config = GameConfig(**config_kwargs)
    return PixterGame(
        config=config,
        generator=generator or PlaceholderImageGenerator(),
        judge=HeuristicJudge(),
        rng=FixedRandom(0),
        input_fn=scripted(*lines),
        quiet=True,
    )


class TestPixterGame:
    """Test cases for complete scripted sessions."""

    def test_win_on_target(self):
        """Test a one-point match won on the second guess."""
        game = make_game("a red bicycle", "a blue bicycle", "a red bicycle", target_score=1)
        result = game.play()

        assert result["end_reason"] == "target_reached"
        assert result["winner"] == "Bob"
        assert result["winner_id"] == 2
        assert result["score_1"] == 0
        assert result["score_2"] == 1
        assert result["rounds_played"] == 1
        assert result["rounds"][0]["outcome"] == "correct"
        assert len(result["rounds"][0]["attempts"]) == 2

    def test_roles_swap_between_rounds(self):
        """Test that the second round is described by the other player."""
        game = make_game(
            "a red bicycle", "a red bicycle",
            "a green tree on a hill", "green tree on hill",
            target_score=2,
        )
        game.max_rounds = 2
        result = game.play()

        assert result["end_reason"] == "round_limit"
        assert result["rounds_played"] == 2
        assert result["score_1"] == 1
        assert result["score_2"] == 1
        prompts = game.input_fn.prompts
        assert prompts[0].startswith("Ada, describe")
        assert prompts[2].startswith("Bob, describe")

    def test_give_up_with_confirmation(self):
        """Test that a declined give-up keeps the round going."""
        game = make_game("a cat", "/giveup", "n", "/giveup", "yes")
        game.max_rounds = 1
        result = game.play()

        assert result["end_reason"] == "round_limit"
        assert result["winner"] is None
        assert result["rounds"][0]["outcome"] == "give_up"
        assert result["rounds"][0]["attempts"] == []

    def test_out_of_attempts(self):
        game = make_game("a cat on a sofa", "dog", "bird", "fish")
        game.max_rounds = 1
        result = game.play()

        assert result["rounds"][0]["outcome"] == "max_attempts"
        assert result["score_2"] == 0

    def test_invalid_input_is_reprompted(self):
        """Test that empty descriptions and repeated guesses do not count."""
        game = make_game("   ", "a cat", "dog", "dog", "DOG ", "bird", "fish")
        game.max_rounds = 1
        result = game.play()

        guesses = [a["guess"] for a in result["rounds"][0]["attempts"]]
        assert guesses == ["dog", "bird", "fish"]

    def test_quit(self):
        game = make_game("a cat", "/quit")
        result = game.play()

        assert game.quit_early
        assert result["end_reason"] == "quit"
        assert result["rounds_played"] == 0

    def test_generation_failure_retried(self):
        """Test that a failed generation lets the describer try again."""
        generator = Mock()
        generator.generate.side_effect = [
            GenerationFailed("model down"),
            GeneratedImage(image_ref="https://img.example/cat.png", model_tag="mock"),
        ]
        game = make_game("a cat", "a cat", "a cat", generator=generator, target_score=1)
        result = game.play()

        assert generator.generate.call_count == 2
        assert result["rounds"][0]["image_ref"] == "https://img.example/cat.png"
        assert result["winner"] == "Bob"

    def test_penalty_floor(self):
        """Test that the match stops as soon as the floor is reached."""
        game = make_game(
            "a cat", "dog", "bird",
            scoring=ScoringConfig(policy="penalty", penalty=10, floor=-20),
        )
        result = game.play()

        assert result["end_reason"] == "floor_reached"
        assert result["winner"] == "Ada"
        assert result["score_2"] == -20
        assert result["rounds"][0]["points"] == {1: 0, 2: -20}

    def test_record_model_call_tracks_cost(self):
        game = make_game()
        game.record_model_call("judge", {"model_id": "openai/gpt-4o-mini", "openrouter_cost": 0.01})
        game.record_model_call("generate", {"model_id": "google/gemini-2.5-flash-image", "openrouter_cost": None})
        assert game.total_cost == pytest.approx(0.01)

    def test_controllog_events(self):
        """Test that a session records its lifecycle through controllog."""
        log_dir = Path(tempfile.mkdtemp())
        game = make_game("a red bicycle", "a red bicycle", target_score=1)
        game.init_controllog(log_dir, "test_run")
        game.play()

        lines = (log_dir / "controllog" / "events.jsonl").read_text().splitlines()
        events = [json.loads(line) for line in lines]
        own = [e for e in events if e["run_id"] == "test_run"]
        assert [e["kind"] for e in own] == ["state_move", "round_complete", "match_complete", "state_move"]
        assert own[2]["payload_json"]["winner"] == "Bob"


class TestHelpers:
    def test_save_image(self):
        path = Path(tempfile.mkdtemp()) / "images" / "round1.png"
        data_uri = "data:image/png;base64," + base64.b64encode(b"\x89PNG").decode()
        assert PixterGame.save_image(data_uri, path) == path
        assert path.read_bytes() == b"\x89PNG"

    def test_format_round_points(self):
        assert format_round_points({1: 0, 2: 1}, "Ada", "Bob") == "This round: Bob +1"
        assert format_round_points({1: 0, 2: -10}, "Ada", "Bob") == "This round: Bob -10"
        assert format_round_points({1: 0, 2: 0}, "Ada", "Bob") == "This round: no points"
        assert format_round_points({1: 2, 2: 1}, "Ada", "Bob") == "This round: Ada +2, Bob +1"
        assert format_round_points(None, "Ada", "Bob") == ""
