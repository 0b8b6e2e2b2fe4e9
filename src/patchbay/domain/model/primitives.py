"""Domain primitives: shortID display format and range expressions.

ShortIDs are stored as plain integers. Humans see them as a prefix followed by the
number zero-padded to a minimum width (``E-00001``); longer numbers are shown
unpadded (``E-123456``).
"""

from __future__ import annotations

import re
from functools import cache

from patchbay.config.identity import (
    DEFAULT_MAX_RANGE_SIZE,
    DEFAULT_SHORT_ID_PREFIX,
    DEFAULT_SHORT_ID_WIDTH,
)
from patchbay.domain.errors import InvalidRangeExpressionError, InvalidShortIdError

type ShortId = int


def format_short_id(
    short_id: ShortId,
    *,
    prefix: str = DEFAULT_SHORT_ID_PREFIX,
    width: int = DEFAULT_SHORT_ID_WIDTH,
) -> str:
    return f"{prefix}{short_id:0{width}d}"


def parse_short_id(value: str, *, prefix: str = DEFAULT_SHORT_ID_PREFIX) -> ShortId:
    """Normalise ``E-00012``, ``e-12``, ``00012`` or ``12`` to the integer ``12``."""

    text = value.strip()
    if text[: len(prefix)].upper() == prefix.upper():
        text = text[len(prefix) :].strip()
    if not (text.isascii() and text.isdigit()):
        raise InvalidShortIdError(f"Invalid shortID: {value!r}")
    short_id = int(text)
    if short_id <= 0:
        raise InvalidShortIdError(f"ShortID must be positive: {value!r}")
    return short_id


@cache
def _range_part_pattern(prefix: str) -> re.Pattern[str]:
    token = rf"(?:{re.escape(prefix)}\s*)?\d+"
    return re.compile(
        rf"(?P<start>{token})(?:\s*-\s*(?P<end>{token}))?",
        re.IGNORECASE | re.ASCII,
    )


def parse_range_expression(
    expression: str,
    *,
    prefix: str = DEFAULT_SHORT_ID_PREFIX,
    max_size: int = DEFAULT_MAX_RANGE_SIZE,
) -> list[ShortId]:
    """Expand ``"100-120, 135, E-00200-E-00210"`` into a sorted, de-duplicated list.

    Raises ``InvalidRangeExpressionError`` for malformed parts, descending ranges,
    empty expressions, or expansions larger than ``max_size``.
    """

    pattern = _range_part_pattern(prefix)
    result: set[ShortId] = set()
    parts = [part.strip() for part in expression.split(",") if part.strip()]
    if not parts:
        raise InvalidRangeExpressionError("Empty shortID range expression")

    for part in parts:
        match = pattern.fullmatch(part)
        if match is None:
            raise InvalidRangeExpressionError(f"Invalid range part: {part!r}")
        try:
            start = parse_short_id(match.group("start"), prefix=prefix)
            end_token = match.group("end")
            end = parse_short_id(end_token, prefix=prefix) if end_token else start
        except InvalidShortIdError as exc:
            raise InvalidRangeExpressionError(f"Invalid range part: {part!r}") from exc
        if start > end:
            raise InvalidRangeExpressionError(
                f"Invalid range {part!r}: start must not exceed end"
            )
        span = end - start + 1
        if span > max_size or (
            len(result) + span > max_size and len(result.union(range(start, end + 1))) > max_size
        ):
            raise InvalidRangeExpressionError(
                f"Range expression expands to more than {max_size} shortIDs"
            )
        result.update(range(start, end + 1))

    return sorted(result)
