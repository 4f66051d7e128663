import io
import time
import httpx
import orjson
import pytest
import asyncio
import websockets
from PIL import Image
from werkzeug import Response

from pageshot.browser import Browser
from pageshot.helpers import which_chrome
from pageshot.errors import DevToolsProtocolError


requires_chrome = pytest.mark.skipif(which_chrome() is None, reason="Chrome/Chromium is not installed")


@pytest.fixture
def temp_dir(tmp_path):
    yield tmp_path


@pytest.fixture
def pageshot_httpserver(make_httpserver):
    httpserver = make_httpserver
    httpserver.clear()

    def page_response(request):
        response = Response(html_body)
        response.headers.add("Content-Type", "text/html")
        return response

    httpserver.expect_request("/").respond_with_handler(page_response)

    # loop until the server is ready
    while 1:
        response = httpx.get(httpserver.url_for("/"))
        if response.status_code == 200:
            break
        time.sleep(0.1)

    return httpserver


def image_bytes(format="PNG", size=(4, 3)):
    buf = io.BytesIO()
    Image.new("RGB", size, color=(255, 0, 0)).save(buf, format=format)
    return buf.getvalue()


def open_image(blob):
    return Image.open(io.BytesIO(blob))


class FakeWebSocket:
    """
    In-memory DevTools connection. Every sent command is answered with whatever `responder(request)` returns
    (a list of messages, possibly empty to leave the command hanging).
    """

    def __init__(self, responder=None):
        if responder is None:
            responder = DevToolsResponder()
        self.responder = responder
        self.sent = []
        self.incoming = asyncio.Queue()
        self.closed = False

    async def send(self, message):
        request = orjson.loads(message)
        self.sent.append(request)
        for reply in self.responder(request):
            self.feed(reply)

    async def recv(self):
        message = await self.incoming.get()
        if isinstance(message, BaseException):
            raise message
        return orjson.dumps(message)

    def feed(self, message):
        self.incoming.put_nowait(message)

    def drop(self):
        self.feed(websockets.ConnectionClosed(None, None))

    async def close(self):
        self.closed = True

    def sent_methods(self):
        return [r["method"] for r in self.sent]


class DevToolsResponder:
    """
    Answers the handful of commands a capture sends, the way Chrome would.
    """

    def __init__(self, navigate_result=None, results=None, hang=()):
        if navigate_result is None:
            navigate_result = {"frameId": "F1", "loaderId": "L1"}
        self.navigate_result = navigate_result
        self.results = dict(results or {})
        self.hang = set(hang)

    def __call__(self, request):
        method = request["method"]
        if method in self.hang:
            return []
        if method == "Target.createTarget":
            result = {"targetId": "T1"}
        elif method == "Target.attachToTarget":
            result = {"sessionId": "S1"}
        elif method == "Page.navigate":
            result = self.navigate_result
        else:
            result = self.results.get(method, {})
        if "error" in result:
            return [{"id": request["id"], "error": result["error"]}]
        return [{"id": request["id"], "result": result}]


async def fake_browser_connection(responder=None):
    """
    A real Browser wired to a FakeWebSocket instead of a Chrome process, with its message handler running.
    """
    browser = Browser()
    browser.websocket = FakeWebSocket(responder)
    await browser._start_message_handler()
    return browser


class FakeTab:
    def __init__(self, browser):
        self.browser = browser
        self.url = None
        self.screenshot_kwargs = None

    async def navigate(self, url):
        self.url = url
        await self.browser.step("navigate")

    async def wait_for_navigation(self):
        await self.browser.step("wait_for_navigation")

    async def screenshot(self, **kwargs):
        self.screenshot_kwargs = kwargs
        await self.browser.step("screenshot")
        return self.browser.blob


class FakeBrowser:
    """
    Stands in for the Chrome-backed Browser. `fail_at` makes the named step raise, `hang_at` makes it block forever.
    """

    def __init__(self, blob=None, fail_at=None, hang_at=None):
        if blob is None:
            blob = image_bytes()
        self.blob = blob
        self.fail_at = fail_at
        self.hang_at = hang_at
        self.steps = []
        self.tab = None
        self.stopped = False

    async def step(self, name):
        self.steps.append(name)
        if name == self.fail_at:
            raise DevToolsProtocolError(f"{name} exploded")
        if name == self.hang_at:
            await asyncio.Event().wait()

    async def start(self):
        await self.step("start")

    async def new_tab(self):
        await self.step("new_tab")
        self.tab = FakeTab(self)
        return self.tab

    async def stop(self):
        self.stopped = True


html_body = """
<html>
    <head>
        <title>frankie</title>
        <style>
            body { background-color: rgb(0, 128, 0); margin: 0; }
            #tall { height: 3000px; }
        </style>
        <script>
            // when the page loads, add a <p> element to the body
            window.addEventListener("load", function() {
                document.body.innerHTML += "<p>hello frank</p>";
            });
        </script>
    </head>
    <body><div id="tall"></div></body>
</html>
"""
