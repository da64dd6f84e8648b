"""Tests for the command-line interface."""

import os
from unittest.mock import patch

from typer.testing import CliRunner

from cli import app

runner = CliRunner()


class TestCli:
    """Test cases for the offline CLI commands."""

    def test_judge_heuristic(self):
        result = runner.invoke(app, ["judge", "a red bicycle", "a red bicycle", "--heuristic"])
        assert result.exit_code == 0
        assert "correct" in result.output
        assert "overlap_words=3" in result.output

    def test_judge_requires_text(self):
        result = runner.invoke(app, ["judge", " ", "a cat", "--heuristic"])
        assert result.exit_code == 1

    def test_generate_mock(self):
        result = runner.invoke(app, ["generate", "a red bicycle", "--mock"])
        assert result.exit_code == 0
        assert "dummyimage.com" in result.output

    def test_list_models(self):
        result = runner.invoke(app, ["list-models"])
        assert result.exit_code == 0
        assert "gpt-4o-mini" in result.output
        assert "Total: 8 models" in result.output

    def test_health_without_key(self):
        with patch.dict(os.environ, {}, clear=True):
            result = runner.invoke(app, ["health"])
        assert result.exit_code == 0
        assert "mock" in result.output
        assert "OPENROUTER_API_KEY not set" in result.output

    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output
