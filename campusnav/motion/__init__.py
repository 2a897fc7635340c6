"""Movement classification from phone sensors."""

from .movement_feed import (
    NEUTRAL_SAMPLE,
    MovementFeed,
    MovementSample,
    MovementStatus,
    SensorReading,
)
from .simulated_source import SimulatedSensorSource

__all__ = [
    "NEUTRAL_SAMPLE",
    "MovementFeed",
    "MovementSample",
    "MovementStatus",
    "SensorReading",
    "SimulatedSensorSource",
]
