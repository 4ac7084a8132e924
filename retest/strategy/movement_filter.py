"""Max movement filter — vetoes entries after an excessive intraday excursion.

Collects the high and low of every closed bar of the day and answers two
questions before an order is released:

- **Open to furthest**: how far has price travelled from the entry price?
- **Highest to lowest**: how wide is the day's range so far?

Both are compared against a currency threshold.  The queries never raise:
a computation failure is logged and treated as "no veto".
"""

import logging

import numpy as np

logger = logging.getLogger("retest")


class MovementFilter:
    """Buffer of interleaved high/low samples with two veto queries."""

    def __init__(self) -> None:
        self._samples: list[float] = []

    @property
    def samples(self) -> list[float]:
        """Copy of the sample buffer, oldest-first."""
        return list(self._samples)

    def __len__(self) -> int:
        return len(self._samples)

    # ── Mutation ─────────────────────────────────────────────────────────

    def add(self, high: float, low: float) -> None:
        """Append a bar's high and low.

        Raises:
            ValueError: If either value is negative.  The buffer is left
                untouched.
        """
        if high < 0 or low < 0:
            raise ValueError(
                f"High and Low values must be non-negative, got high={high}, low={low}"
            )
        logger.debug("Adding high: %s, low: %s", high, low)
        self._samples.append(high)
        self._samples.append(low)

    def reset(self) -> None:
        self._samples.clear()

    # ── Distances ────────────────────────────────────────────────────────

    def furthest_from(self, anchor: float) -> float:
        """Distance from *anchor* to the sample furthest away from it.

        Ties resolve to the first such sample in buffer order.  Returns
        ``0.0`` on an empty buffer.
        """
        if not self._samples:
            logger.error("[ERROR] barData is empty.")
            return 0.0

        values = np.asarray(self._samples, dtype=float)
        distances = np.abs(values - anchor)
        idx = int(np.argmax(distances))
        furthest = float(values[idx])
        distance = float(distances[idx])
        logger.debug("[MAX MOVEMENT OPEN TO HIGHEST] : Entry: %s", anchor)
        logger.debug("[MAX MOVEMENT OPEN TO HIGHEST] : Furthest value: %s", furthest)
        logger.debug("[MAX MOVEMENT OPEN TO HIGHEST] : Distance: %s", distance)
        return distance

    def high_to_low_range(self) -> float:
        """Distance between the highest and lowest sample (``0.0`` if empty)."""
        if not self._samples:
            logger.error("[ERROR] barData is empty.")
            return 0.0

        values = np.asarray(self._samples, dtype=float)
        distance = float(values.max() - values.min())
        logger.debug("[MAX MOVEMENT] : Distance between highest and lowest: %s", distance)
        return distance

    # ── Vetoes ───────────────────────────────────────────────────────────

    def is_out_of_max_move_from_open(
        self,
        enabled: bool,
        current_close: float,
        max_distance: float,
        entry_price: float,
    ) -> bool:
        """Return True if any sample lies further than *max_distance* from the entry.

        Args:
            enabled: Filter switch; ``False`` never vetoes.
            current_close: Latest close.  Accepted for call-site symmetry,
                the distance is always anchored on *entry_price*.
            max_distance: Allowed distance in account currency.
            entry_price: The day's retest level.
        """
        if not enabled or not self._samples:
            return False

        try:
            distance = self.furthest_from(entry_price)
        except Exception as exc:
            logger.error("[ERROR] Failed to calculate distance: %s", exc)
            return False

        if distance > max_distance:
            logger.info("[MAX MOVEMENT OPEN TO HIGHEST] : TRADE STOPPED : %s", distance)
            return True
        return False

    def is_out_of_max_move_high_to_lowest(
        self,
        enabled: bool,
        max_distance: float,
    ) -> bool:
        """Return True if the day's high-low range exceeds *max_distance*."""
        if not enabled or not self._samples:
            return False

        try:
            distance = self.high_to_low_range()
        except Exception as exc:
            logger.error("[ERROR] Failed to calculate distance: %s", exc)
            return False

        if distance > max_distance:
            logger.info("[MAX MOVEMENT HIGHEST TO LOWEST] : TRADE STOPPED : %s", distance)
            return True
        return False
