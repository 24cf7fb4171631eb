# tests/conftest.py
#
# Project-wide fixtures for pytest. Also puts the project root on sys.path so
# `termwise` and `main` import without installing the project.

import sys
import os

import pytest

project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)


class FakeClock:
    """Manually advanced replacement for time.monotonic."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def base_config():
    """A configuration mirroring config/default_config.json with AI pointed at a dummy host."""
    return {
        "suggestions": {
            "max_results": 20,
            "fuzzy_enabled": True,
            "fuzzy_min_exact_candidates": 5,
            "fuzzy_min_query_length": 2,
        },
        "caches": {"path_ttl_seconds": 30, "ai_ttl_seconds": 300, "ai_max_entries": 100},
        "ai": {"enabled": True, "host": "http://localhost:11434", "model": "test-model",
               "timeout_seconds": 10, "max_tokens": 100, "temperature": 0.1},
        "prompts": {"translator": {"system": "sys", "user_template": "Q: {phrase}"}},
        "package_sources": {"bin_dirs": [], "cache_file": None},
        "validation": {"builtins": ["cd", "cursor"], "max_command_length": 200},
    }
