"""Walking / standing classification from heading and acceleration samples."""

import math
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, Optional, Sequence

import numpy as np

from campusnav.utils.logger import get_logger

logger = get_logger(__name__)


class MovementStatus(Enum):
    """Coarse motion state of the user."""
    STATIONARY = "stationary"
    MOVING = "moving"


@dataclass(frozen=True)
class SensorReading:
    """Raw sample from the phone's sensors."""
    heading: float  # Compass heading in degrees
    acceleration: Sequence[float]  # Linear acceleration (x, y, z) in m/s^2
    timestamp: Optional[float] = None


@dataclass(frozen=True)
class MovementSample:
    """Normalized motion state handed to the presentation layer."""
    status: MovementStatus
    bearing: float  # Degrees in [0, 360)
    speed: float

    @property
    def is_moving(self) -> bool:
        return self.status == MovementStatus.MOVING


# Emitted whenever sensors are missing or produce garbage
NEUTRAL_SAMPLE = MovementSample(status=MovementStatus.STATIONARY, bearing=0.0, speed=0.0)


class MovementFeed:
    """
    Classifies a stream of sensor readings as moving or stationary.

    Uses the mean linear-acceleration magnitude over a short window against
    a fixed threshold. Output only paces spoken feedback; navigation never
    depends on it.
    """

    def __init__(
        self,
        acceleration_threshold: float = 1.2,
        window_size: int = 10,
        speed_gain: float = 0.5
    ):
        """
        Initialize movement feed.

        Args:
            acceleration_threshold: Mean magnitude (m/s^2) above which the user is walking.
            window_size: Number of recent readings averaged.
            speed_gain: Scale from mean magnitude to the reported speed estimate.
        """
        self.acceleration_threshold = acceleration_threshold
        self.speed_gain = speed_gain
        self._magnitudes: Deque[float] = deque(maxlen=max(1, window_size))

        self._latest = NEUTRAL_SAMPLE
        self._sensor_available = True

        logger.info(
            f"[MOTION] Movement feed initialized (threshold={acceleration_threshold}m/s^2, "
            f"window={window_size})"
        )

    def update(self, reading: Optional[SensorReading]) -> MovementSample:
        """
        Fold one reading into the window.

        Args:
            reading: Sensor reading, or None if the sensor produced nothing.

        Returns:
            Current movement sample (neutral if the reading is unusable).
        """
        if reading is None or not self._is_valid(reading):
            return self._fallback()

        if not self._sensor_available:
            logger.info("[MOTION] Sensor data available again")
            self._sensor_available = True

        magnitude = float(np.linalg.norm(np.asarray(reading.acceleration, dtype=float)))
        self._magnitudes.append(magnitude)

        mean_magnitude = float(np.mean(self._magnitudes))
        if mean_magnitude >= self.acceleration_threshold:
            status = MovementStatus.MOVING
            speed = mean_magnitude * self.speed_gain
        else:
            status = MovementStatus.STATIONARY
            speed = 0.0

        if status != self._latest.status:
            logger.debug(f"[MOTION] {self._latest.status.value} -> {status.value}")

        self._latest = MovementSample(
            status=status,
            bearing=reading.heading % 360.0,
            speed=speed,
        )
        return self._latest

    def _fallback(self) -> MovementSample:
        """Neutral sample; warn once per outage."""
        if self._sensor_available:
            logger.warning("[MOTION] Sensor unavailable, reporting stationary")
            self._sensor_available = False
        self._magnitudes.clear()
        self._latest = NEUTRAL_SAMPLE
        return self._latest

    @staticmethod
    def _is_valid(reading: SensorReading) -> bool:
        try:
            values = [float(v) for v in reading.acceleration]
            heading = float(reading.heading)
        except (TypeError, ValueError):
            return False
        if len(values) != 3:
            return False
        return all(math.isfinite(v) for v in values) and math.isfinite(heading)

    @property
    def latest(self) -> MovementSample:
        """Most recent movement sample."""
        return self._latest

    @property
    def sensor_available(self) -> bool:
        """False while readings are missing or invalid."""
        return self._sensor_available

    def reset(self) -> None:
        """Forget the window and return to the neutral sample."""
        self._magnitudes.clear()
        self._latest = NEUTRAL_SAMPLE
        self._sensor_available = True
