from __future__ import annotations

import logging

import pytest

from patchbay.config import ConfigurationError
from patchbay.config.logging import LOG_LEVEL_ENV, resolve_log_level


def test_level_defaults_to_info(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(LOG_LEVEL_ENV, raising=False)

    assert resolve_log_level() == logging.INFO


def test_level_from_env_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(LOG_LEVEL_ENV, "debug")

    assert resolve_log_level() == logging.DEBUG
    assert resolve_log_level(logging.ERROR) == logging.ERROR


def test_unknown_level_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(LOG_LEVEL_ENV, "chatty")

    with pytest.raises(ConfigurationError):
        resolve_log_level()
