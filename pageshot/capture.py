import base64
import asyncio
from contextlib import suppress

from pageshot.browser import Browser
from pageshot.base import PageShotBase
from pageshot.result import CaptureResult
from pageshot.helpers import describe_exception
from pageshot.errors import (
    CaptureError,
    LaunchError,
    NewPageError,
    NavigationError,
    NavigationWaitError,
    ScreenshotError,
    FileWriteError,
)


class Capture(PageShotBase):
    """
    Drives one browser through a single screenshot:

        launch -> new page -> navigate -> wait for load -> settle -> screenshot -> export

    Each step either succeeds or raises its own `CaptureError`, which `run()` turns into a failed
    `CaptureResult`. Nothing past the failing step is attempted and nothing is retried.
    """

    def __init__(self, config, browser=None):
        super().__init__()
        self.config = config
        if browser is None:
            browser = Browser(chrome_path=config.chrome_path, width=config.width, height=config.height)
        self.browser = browser
        self.tab = None

    async def run(self):
        result = CaptureResult(self.config)
        self.log.debug(f"Capturing {self.config.url} as {self.config.format.value}")
        try:
            blob = await self.take_screenshot()
            result.size = len(blob)
            return self.export(blob, result)
        except CaptureError as e:
            self.log.debug(f"Capture of {self.config.url} failed: {e}")
            return result.fail(e)
        finally:
            with suppress(Exception):
                await self.browser.stop()

    async def take_screenshot(self):
        config = self.config
        await self._step(LaunchError, self.browser.start())
        self.tab = await self._step(NewPageError, self.browser.new_tab())
        await self._step(NavigationError, self.tab.navigate(config.url))
        await self._step(NavigationWaitError, self.tab.wait_for_navigation())
        # not adaptive: always wait the full delay
        await asyncio.sleep(config.delay)
        return await self._step(
            ScreenshotError,
            self.tab.screenshot(format=config.format, quality=config.capture_quality, full_page=config.full_page),
        )

    def export(self, blob, result):
        if self.config.base64:
            return result.succeed(base64_data=base64.b64encode(blob).decode())
        try:
            with open(self.config.output, "wb") as f:
                f.write(blob)
        except (OSError, ValueError) as e:
            raise FileWriteError(describe_exception(e)) from e
        return result.succeed(file_path=self.config.output)

    async def _step(self, error_class, coro):
        """
        Awaits one step, bounded by the configured timeout, and converts any failure into `error_class`.
        """
        timeout = self.config.timeout
        if timeout is None:
            try:
                return await coro
            except Exception as e:
                raise error_class(describe_exception(e)) from e
        try:
            return await asyncio.wait_for(coro, timeout=timeout)
        except asyncio.TimeoutError as e:
            raise error_class(f"timed out after {timeout:g} seconds") from e
        except Exception as e:
            raise error_class(describe_exception(e)) from e


async def capture(config, browser=None):
    """
    Takes a screenshot according to `config` and returns a `CaptureResult`.

    Capture failures never raise; they come back as `success=False` with an `error` naming the step.
    """
    return await Capture(config, browser=browser).run()
