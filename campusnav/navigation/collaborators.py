"""Interfaces of the external services the navigator depends on."""

from typing import List, Optional, Protocol, Sequence, runtime_checkable

from .nav_types import ArrivalVerdict, DetectionResult, Role
from campusnav.motion.movement_feed import SensorReading


@runtime_checkable
class ImageClassifier(Protocol):
    """
    Identify which campus node an image shows.
    Returns None when nothing usable was recognised.
    """

    def classify(self, image_bytes: bytes, role: Role) -> Optional[DetectionResult]: ...


@runtime_checkable
class ArrivalVerifier(Protocol):
    """Judge whether an image was taken at the named destination."""

    def verify_arrival(self, image_bytes: bytes, destination_name: str) -> ArrivalVerdict: ...


@runtime_checkable
class InstructionGenerator(Protocol):
    """Write walking instructions for a sequence of node names."""

    def instructions(self, path_node_names: Sequence[str], verbose: bool) -> List[str]: ...


@runtime_checkable
class SpeechSynthesizer(Protocol):
    """Turn text into audio bytes; None if synthesis failed."""

    def speak(self, text: str) -> Optional[bytes]: ...


@runtime_checkable
class SensorSource(Protocol):
    """Latest heading/acceleration reading; None if the sensor is unavailable."""

    def read(self) -> Optional[SensorReading]: ...
