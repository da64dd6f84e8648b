"""Shared infrastructure for Pixter.

This module contains the plumbing that is independent of the game rules:
- controllog: Double-entry accounting SDK for structured event logging
- adapters: OpenRouter API adapter for model calls
- prompt_manager: Prompt templates with {{VARIABLE}} hydration
- utils: Common utilities (retry, logging)
"""

__version__ = "0.1.0"
