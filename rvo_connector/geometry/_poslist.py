"""GML ``posList`` text parsing."""

from __future__ import annotations

import logging
import math

logger = logging.getLogger("rvo_connector.geometry")


def parse_position_list(text: object) -> list[list[float]]:
    """Parse ``"x1 y1 x2 y2 ..."`` into ``[[x1, y1], [x2, y2], ...]``.

    Values are paired left to right. A trailing unpaired value is dropped.
    Empty input, non-string input, or any non-numeric token yields ``[]``.
    """
    if not isinstance(text, str):
        return []
    tokens = text.split()
    if not tokens:
        return []

    values: list[float] = []
    for token in tokens:
        try:
            value = float(token)
        except ValueError:
            logger.warning("Unparseable posList token %r; ignoring position list", token)
            return []
        if not math.isfinite(value):
            logger.warning("Non-finite posList value %r; ignoring position list", token)
            return []
        values.append(value)

    if len(values) % 2:
        logger.debug("posList has odd value count %d; dropping trailing value", len(values))

    return [[values[i], values[i + 1]] for i in range(0, len(values) - 1, 2)]
