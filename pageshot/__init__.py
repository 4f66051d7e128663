from .browser import Browser
from .capture import Capture, capture
from .result import CaptureResult
from .config import CaptureConfig, ImageFormat

__all__ = ["Browser", "Capture", "capture", "CaptureConfig", "CaptureResult", "ImageFormat"]
