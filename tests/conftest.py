"""Shared test fixtures for macos-keychain tests."""

import os
import pathlib

import pytest

REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]


@pytest.fixture
def repo_root() -> pathlib.Path:
    return REPO_ROOT


@pytest.fixture(autouse=True)
def _clear_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep MACOS_KEYCHAIN_* variables from the outer shell out of tests."""
    for key in list(os.environ):
        if key.startswith("MACOS_KEYCHAIN_") and key != "MACOS_KEYCHAIN_LIVE_TESTS":
            monkeypatch.delenv(key)
