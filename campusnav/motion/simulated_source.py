"""Synthetic sensor readings for running without a phone attached."""

import time
from typing import Optional

import numpy as np

from .movement_feed import SensorReading


class SimulatedSensorSource:
    """
    Produces a slowly drifting heading and alternating walk/stand phases.

    Development convenience only; plugs in wherever a real sensor source
    would.
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        drift_deg_per_read: float = 2.0,
        walk_reads: int = 30,
        stand_reads: int = 20,
        start_heading: float = 0.0
    ):
        """
        Args:
            seed: Seed for the random generator (None = nondeterministic).
            drift_deg_per_read: Standard deviation of heading drift per reading.
            walk_reads: Readings per walking phase.
            stand_reads: Readings per standing phase.
            start_heading: Initial heading in degrees.
        """
        self._rng = np.random.default_rng(seed)
        self.drift_deg_per_read = drift_deg_per_read
        self.walk_reads = walk_reads
        self.stand_reads = stand_reads
        self._heading = start_heading % 360.0
        self._count = 0

    @property
    def walking(self) -> bool:
        """Whether the current phase simulates walking."""
        cycle = self.walk_reads + self.stand_reads
        return (self._count % cycle) < self.walk_reads

    def read(self) -> Optional[SensorReading]:
        """Next synthetic reading."""
        self._heading = (self._heading + self._rng.normal(0.0, self.drift_deg_per_read)) % 360.0

        if self.walking:
            # Step impacts: roughly 2 m/s^2 forward/vertical bounce
            acceleration = self._rng.normal([0.0, 1.5, 1.5], 0.3)
        else:
            acceleration = self._rng.normal([0.0, 0.0, 0.0], 0.05)

        self._count += 1
        return SensorReading(
            heading=float(self._heading),
            acceleration=tuple(float(a) for a in acceleration),
            timestamp=time.monotonic(),
        )
