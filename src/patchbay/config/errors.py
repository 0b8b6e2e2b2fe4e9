"""Errors raised while reading patchbay settings."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """A ``PATCHBAY_*`` setting holds a value patchbay cannot use."""

    def __init__(self, message: str, *, setting: str | None = None) -> None:
        super().__init__(message)
        self.setting = setting
