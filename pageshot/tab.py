import base64
import asyncio
from contextlib import suppress

from pageshot.base import PageShotBase
from pageshot.config import ImageFormat
from pageshot.errors import PageShotError, DevToolsProtocolError


class Tab(PageShotBase):
    def __init__(self, browser):
        super().__init__()
        self.browser = browser
        self.tab_id = None
        self.session_id = None
        self.url = None
        self._page_loaded_future = None
        self._incoming_event_queue = asyncio.Queue()
        self._event_handler_task = None
        self._closed = False

    async def create(self):
        if self.tab_id is None:
            # Create a new page/tab
            response = await self.browser.request("Target.createTarget", url="about:blank")
            self.tab_id = response["targetId"]
            self.browser.tabs[self.tab_id] = self
        if self.session_id is None:
            response = await self.browser.request("Target.attachToTarget", targetId=self.tab_id, flatten=True)
            self.session_id = response["sessionId"]
            self.browser.event_queues[self.session_id] = self._incoming_event_queue
        self._event_handler_task = asyncio.create_task(self.handle_events())
        # Enable the Page domain to receive events
        await self.request("Page.enable")

    def request(self, method, **kwargs):
        if self.session_id is None:
            raise PageShotError("You must call create() before making a request")
        return self.browser.request(method, sessionId=self.session_id, **kwargs)

    async def handle_events(self):
        while not self._closed:
            try:
                event = await self._incoming_event_queue.get()
            except (RuntimeError, asyncio.CancelledError):
                break
            self.handle_event(event)

    def handle_event(self, event):
        event_method = event.get("method")
        # page is finished loading
        if event_method == "Page.loadEventFired":
            self.log.debug(f"Load event fired for {self.url}")
            if self._page_loaded_future is not None and not self._page_loaded_future.done():
                self._page_loaded_future.set_result(None)

    async def navigate(self, url):
        """
        Starts loading `url`. The load future is armed before navigating so a fast load event isn't missed.
        """
        self.url = url
        self._page_loaded_future = asyncio.get_running_loop().create_future()
        response = await self.request("Page.navigate", url=url)
        error_text = response.get("errorText", "")
        if error_text:
            raise DevToolsProtocolError(f"{error_text} ({url})")
        # same-document navigations have no loader and fire no load event
        if not response.get("loaderId") and not self._page_loaded_future.done():
            self._page_loaded_future.set_result(None)
        return response

    async def wait_for_navigation(self):
        if self._page_loaded_future is None:
            raise PageShotError("You must call navigate() before waiting for navigation")
        await self._page_loaded_future

    async def screenshot(self, format=ImageFormat.PNG, quality=100, full_page=False):
        """
        Captures the page and returns the raw image bytes.
        """
        format = ImageFormat.parse(format)
        kwargs = {"format": format.value, "quality": int(quality), "captureBeyondViewport": bool(full_page)}
        if full_page:
            kwargs["clip"] = await self.get_content_size()
        response = await self.request("Page.captureScreenshot", **kwargs)
        return base64.b64decode(response["data"])

    async def get_content_size(self):
        metrics = await self.request("Page.getLayoutMetrics")
        # cssContentSize is in CSS pixels; older versions only report contentSize
        content_size = metrics.get("cssContentSize") or metrics.get("contentSize", {})
        return {
            "x": 0,
            "y": 0,
            "width": content_size.get("width", self.browser.width),
            "height": content_size.get("height", self.browser.height),
            "scale": 1,
        }

    def abort(self, error):
        if self._page_loaded_future is not None and not self._page_loaded_future.done():
            self._page_loaded_future.set_exception(error)

    def stop_events(self):
        self._closed = True
        task = self._event_handler_task
        if task is not None and not task.done():
            task.cancel()
            return task

    async def close(self):
        # Remove the tab from the browser's tabs and sessions
        self.browser.tabs.pop(self.tab_id, None)
        self.browser.event_queues.pop(self.session_id, None)
        task = self.stop_events()
        if task is not None:
            with suppress(asyncio.CancelledError):
                await task
        if self.tab_id is not None:
            await self.browser.request("Target.closeTarget", targetId=self.tab_id)
