"""
Kernel test configuration.

Tests never depend on the environment: settings are pinned to their
defaults for every test, and individual tests opt into strict keys.
"""

import pytest

from foldstate import config


@pytest.fixture(autouse=True)
def default_settings(monkeypatch):
    monkeypatch.setattr(config.settings, "VISIBILITY_LEVEL", 2)
    monkeypatch.setattr(config.settings, "STRICT_KEYS", False)


@pytest.fixture
def strict_keys(monkeypatch):
    monkeypatch.setattr(config.settings, "STRICT_KEYS", True)
