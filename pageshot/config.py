from enum import Enum
from typing import Optional
from dataclasses import dataclass, field

from pageshot import defaults


class ImageFormat(str, Enum):
    PNG = "png"
    JPEG = "jpeg"

    @classmethod
    def parse(cls, value):
        """
        Accepts "png", "jpeg" or "jpg" (case-insensitive).

        Examples:
            >>> ImageFormat.parse("JPG")
            <ImageFormat.JPEG: 'jpeg'>
        """
        if isinstance(value, cls):
            return value
        value = str(value).strip().lower()
        if value == "jpg":
            value = "jpeg"
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unsupported image format: {value!r} (expected png, jpeg or jpg)")


@dataclass(frozen=True)
class CaptureConfig:
    url: str
    output: str = defaults.output
    width: int = defaults.width
    height: int = defaults.height
    full_page: bool = False
    quality: int = defaults.quality
    format: ImageFormat = ImageFormat.PNG
    base64: bool = False
    delay: float = defaults.delay
    timeout: Optional[float] = None
    chrome_path: Optional[str] = None
    # the format as the user spelled it, echoed back in the result
    requested_format: Optional[str] = field(default=None, repr=False)

    def __post_init__(self):
        if self.requested_format is None:
            requested = self.format.value if isinstance(self.format, ImageFormat) else str(self.format)
            object.__setattr__(self, "requested_format", requested)
        # frozen, so normalize through object.__setattr__
        object.__setattr__(self, "format", ImageFormat.parse(self.format))
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Viewport must be positive, got {self.width}x{self.height}")
        if not 1 <= self.quality <= 100:
            raise ValueError(f"Quality must be between 1 and 100, got {self.quality}")
        if self.delay < 0:
            raise ValueError(f"Delay must not be negative, got {self.delay}")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"Timeout must be positive, got {self.timeout}")

    @property
    def capture_quality(self):
        """
        Quality sent with the screenshot request. Only JPEG honors the configured value.
        """
        if self.format == ImageFormat.JPEG:
            return self.quality
        return defaults.png_quality
