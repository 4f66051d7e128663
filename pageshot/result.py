
class CaptureResult:
    """
    Outcome of a single capture. Starts out as an echo of the config with size 0.
    """

    def __init__(self, config):
        self.success = False
        self.url = config.url
        self.width = config.width
        self.height = config.height
        self.full_page = config.full_page
        self.format = config.requested_format
        self.quality = config.quality
        self.size = 0
        self.base64_data = None
        self.file_path = None
        self.error = None

    def succeed(self, base64_data=None, file_path=None):
        if (base64_data is None) == (file_path is None):
            raise ValueError("A successful capture has exactly one of base64_data or file_path")
        self.success = True
        self.base64_data = base64_data
        self.file_path = file_path
        self.error = None
        return self

    def fail(self, error):
        """
        Terminal failure. Keeps whatever size is already known.
        """
        self.success = False
        self.base64_data = None
        self.file_path = None
        self.error = str(error)
        return self

    def json(self):
        j = {
            "success": self.success,
            "url": self.url,
            "width": self.width,
            "height": self.height,
            "full_page": self.full_page,
            "format": self.format,
            "quality": self.quality,
            "size": self.size,
        }
        if self.base64_data is not None:
            j["base64_data"] = self.base64_data
        if self.file_path is not None:
            j["file_path"] = self.file_path
        if self.error is not None:
            j["error"] = self.error
        return j

    def __str__(self):
        return f"CaptureResult(url={repr(self.url)}, success={self.success}, size={self.size})"

    def __repr__(self):
        return str(self)
