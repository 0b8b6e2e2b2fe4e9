"""ShortID formatting and pool defaults."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_int, optional_env_str

DEFAULT_SHORT_ID_PREFIX = "E-"
DEFAULT_SHORT_ID_WIDTH = 5
DEFAULT_MAX_RANGE_SIZE = 10_000


@dataclass(frozen=True, slots=True)
class IdentityConfig:
    display_prefix: str = DEFAULT_SHORT_ID_PREFIX
    display_width: int = DEFAULT_SHORT_ID_WIDTH
    max_range_size: int = DEFAULT_MAX_RANGE_SIZE


def get_identity_config() -> IdentityConfig:
    return IdentityConfig(
        display_prefix=optional_env_str("PATCHBAY_SHORT_ID_PREFIX", DEFAULT_SHORT_ID_PREFIX),
        display_width=optional_env_int(
            "PATCHBAY_SHORT_ID_WIDTH", DEFAULT_SHORT_ID_WIDTH, minimum=1
        ),
        max_range_size=optional_env_int(
            "PATCHBAY_MAX_RANGE_SIZE", DEFAULT_MAX_RANGE_SIZE, minimum=1
        ),
    )
