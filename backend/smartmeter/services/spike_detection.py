"""Trailing-average power spike detection.

A reading is a spike when its power exceeds ``ratio`` times the mean power
of the device's most recent readings (at most ``window`` of them, and at
least ``min_history`` are required before any decision is made).
"""
import logging
from typing import Optional, Sequence, Tuple

from smartmeter.schemas import SpikeEvent

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 10
DEFAULT_MIN_HISTORY = 5
DEFAULT_RATIO = 1.5


def classify(
    powers: Sequence[float],
    current_power: float,
    min_history: int = DEFAULT_MIN_HISTORY,
    ratio: float = DEFAULT_RATIO,
) -> Optional[Tuple[float, float]]:
    """Return ``(average_power, threshold)`` if ``current_power`` is a spike, else None."""
    if len(powers) < min_history:
        return None
    average_power = sum(powers) / len(powers)
    threshold = average_power * ratio
    # A zero baseline gives a zero threshold, so any positive reading is a spike.
    if current_power > threshold:
        return average_power, threshold
    return None


class SpikeDetector:
    def __init__(self, reading_store, window: int = DEFAULT_WINDOW,
                 min_history: int = DEFAULT_MIN_HISTORY, ratio: float = DEFAULT_RATIO):
        self.reading_store = reading_store
        self.window = window
        self.min_history = min_history
        self.ratio = ratio

    def evaluate(self, device_id: str, current_power: float, owner_id: int,
                 exclude_id: Optional[int] = None) -> Optional[SpikeEvent]:
        """Check ``current_power`` against the device's recent history.

        Raises StorageUnavailable when the history cannot be loaded.
        """
        readings = self.reading_store.recent_readings(device_id, self.window, exclude_id=exclude_id)
        if len(readings) < self.min_history:
            logger.debug("Insufficient history for %s (%d readings)", device_id, len(readings))
            return None

        result = classify([r.power for r in readings], current_power, self.min_history, self.ratio)
        if result is None:
            return None

        average_power, threshold = result
        logger.info("Power spike on %s: %.2fW > %.2fW", device_id, current_power, threshold)
        return SpikeEvent(
            device_id=device_id,
            owner_id=owner_id,
            current_power=current_power,
            average_power=average_power,
            threshold=threshold,
            ratio=self.ratio,
        )
