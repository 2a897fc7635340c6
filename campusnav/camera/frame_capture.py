"""Single-frame capture and image loading for classifier calls."""

from pathlib import Path
from typing import Optional

import cv2
import numpy as np

from campusnav.utils.logger import get_logger

logger = get_logger(__name__)


class FrameCaptureError(Exception):
    """Exception raised for camera and image errors."""
    pass


def encode_jpeg(frame: np.ndarray, quality: int = 80) -> bytes:
    """
    Encode a BGR frame as JPEG.

    Args:
        frame: Image array (BGR or grayscale).
        quality: JPEG quality (1-100).

    Returns:
        JPEG bytes.

    Raises:
        FrameCaptureError: If encoding fails.
    """
    ok, buffer = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), quality])
    if not ok:
        raise FrameCaptureError("JPEG encoding failed")
    return buffer.tobytes()


def load_image(path: Path, quality: int = 80) -> bytes:
    """
    Read an image file and re-encode it as JPEG.

    Args:
        path: Any image format OpenCV can read.
        quality: JPEG quality (1-100).

    Returns:
        JPEG bytes.

    Raises:
        FrameCaptureError: If the file is missing or not an image.
    """
    path = Path(path)
    if not path.exists():
        raise FrameCaptureError(f"Image not found: {path}")

    frame = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if frame is None:
        raise FrameCaptureError(f"Could not decode image: {path}")

    return encode_jpeg(frame, quality)


class FrameCapture:
    """Grabs single frames from a camera on demand."""

    def __init__(self, device_index: int = 0, jpeg_quality: int = 80):
        """
        Initialize frame capture.

        Args:
            device_index: OpenCV camera index.
            jpeg_quality: JPEG quality for captured frames.
        """
        self.device_index = device_index
        self.jpeg_quality = jpeg_quality
        self.cap: Optional[cv2.VideoCapture] = None

    def open(self) -> None:
        """
        Open the camera.

        Raises:
            FrameCaptureError: If the camera cannot be opened.
        """
        self.cap = cv2.VideoCapture(self.device_index)
        if not self.cap.isOpened():
            self.cap.release()
            self.cap = None
            raise FrameCaptureError(f"Could not open camera {self.device_index}")
        logger.info(f"Camera {self.device_index} opened")

    def capture(self) -> bytes:
        """
        Grab one frame as JPEG.

        Raises:
            FrameCaptureError: If the camera is closed or the read fails.
        """
        if self.cap is None:
            raise FrameCaptureError("Camera not opened")

        ret, frame = self.cap.read()
        if not ret or frame is None:
            raise FrameCaptureError("Failed to read frame")

        return encode_jpeg(frame, self.jpeg_quality)

    def close(self) -> None:
        """Release the camera."""
        if self.cap is not None:
            self.cap.release()
            self.cap = None
            logger.info("Camera released")

    def __enter__(self) -> "FrameCapture":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
