class PageShotError(Exception):
    pass


class DevToolsProtocolError(PageShotError):
    pass


class BrowserNotFoundError(PageShotError):
    pass


class CaptureError(PageShotError):
    """
    A failed capture step. `step` is the human-readable prefix shown in the result's error field.
    """

    step = "Capture failed"

    def __str__(self):
        return f"{self.step}: {super().__str__()}"


class LaunchError(CaptureError):
    step = "Failed to launch browser"


class NewPageError(CaptureError):
    step = "Failed to create new page"


class NavigationError(CaptureError):
    step = "Failed to navigate to URL"


class NavigationWaitError(CaptureError):
    step = "Failed to wait for navigation"


class ScreenshotError(CaptureError):
    step = "Failed to capture screenshot"


class FileWriteError(CaptureError):
    step = "Failed to save screenshot to file"
