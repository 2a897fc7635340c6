"""Camera capture and image loading."""

from .frame_capture import FrameCapture, FrameCaptureError, encode_jpeg, load_image

__all__ = ["FrameCapture", "FrameCaptureError", "encode_jpeg", "load_image"]
