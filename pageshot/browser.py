import os
import re
import httpx
import atexit
import orjson
import shutil
import asyncio
import tempfile
import websockets
from pathlib import Path
from contextlib import suppress
from subprocess import Popen, PIPE

from pageshot.tab import Tab
from pageshot import defaults
from pageshot.base import PageShotBase
from pageshot.helpers import possible_chrome_binaries, repr_params
from pageshot.errors import BrowserNotFoundError, DevToolsProtocolError, PageShotError


class Browser(PageShotBase):
    """
    A headless Chrome subprocess driven over the DevTools protocol.

    `start()` launches Chrome, connects to its websocket and spawns the background task that drains
    incoming messages. Command responses are handed back to `request()` callers; page events are routed
    to the tab that owns the session.
    """

    base_chrome_flags = [
        "--disable-features=MediaRouter",
        "--disable-client-side-phishing-detection",
        "--disable-default-apps",
        "--hide-scrollbars",
        "--mute-audio",
        "--no-default-browser-check",
        "--no-first-run",
        "--deny-permission-prompts",
        "--headless=new",
        "--enable-automation",
    ]

    def __init__(
        self,
        chrome_path=None,
        width=defaults.width,
        height=defaults.height,
        port=defaults.debugging_port,
    ):
        super().__init__()
        atexit.register(self.cleanup)
        self.chrome_process = None
        self.chrome_path = chrome_path
        self.chrome_version_regex = re.compile(r"[A-za-z][A-Za-z ]+([\d\.]+)")
        self.version = None
        self.port = int(port)
        self.temp_dir = tempfile.mkdtemp(prefix=".pageshot-")
        self.width = int(width)
        self.height = int(height)

        self.chrome_flags = self.base_chrome_flags + [
            f"--remote-debugging-port={self.port}",
            f"--user-data-dir={self.temp_dir}",
            f"--window-size={self.width},{self.height}",
        ]
        if os.geteuid() == 0:
            self.log.info("Running as root, adding --no-sandbox")
            self.chrome_flags += ["--no-sandbox"]

        self.websocket_uri = None
        self.websocket = None
        self.pending_requests = {}
        self.tabs = {}
        self.event_queues = {}

        self._closed = False
        self._commands = {}
        self._current_message_id = 0
        self._message_id_lock = asyncio.Lock()
        self._message_handler_task = None

    @property
    def base_url(self):
        return f"http://127.0.0.1:{self.port}"

    async def start(self):
        await self.detect_chrome_path()
        await self._start_chrome()
        await self._start_message_handler()

    async def new_tab(self):
        tab = Tab(self)
        await tab.create()
        return tab

    async def handle_event(self, event):
        # response to a specific request
        if "id" in event:
            message_id = event["id"]
            future = self.pending_requests.pop(message_id, None)
            if future is not None and not future.done():
                if "error" in event:
                    future.set_exception(DevToolsProtocolError(f"{event['error']}"))
                else:
                    future.set_result(event.get("result", {}))

        # browser events are distributed to the owning session
        elif "method" in event:
            method = event["method"]
            session_id = event.get("sessionId", None)
            if session_id:
                try:
                    event_queue = self.event_queues[session_id]
                    await event_queue.put(event)
                except KeyError:
                    if method not in ["Inspector.detached", "Page.frameDetached"]:
                        self.log.debug(f"No handler for event {method} in session {session_id}")
        else:
            self.log.debug(f"Unknown message: {event}")

    async def request(self, command, sessionId=None, **params):
        message_id = await self._next_message_id()
        future = asyncio.get_running_loop().create_future()
        self.pending_requests[message_id] = future
        try:
            request = self._build_request(command, message_id, **params)
            if sessionId:
                request["sessionId"] = sessionId
            await self._send_request(request)
            return await future
        except DevToolsProtocolError as e:
            raise DevToolsProtocolError(f"Error sending command: {command}({repr_params(params)}): {e}") from e
        finally:
            self.pending_requests.pop(message_id, None)

    def _build_request(self, command, message_id, **params):
        # make sure command is supported
        domain, subcommand = command.split(".")
        if self._commands:
            if domain not in self._commands:
                raise DevToolsProtocolError(
                    f"domain {domain} not supported (supported domains: {','.join(self._commands.keys())})"
                )
            supported_commands = self._commands[domain]
            if subcommand not in supported_commands:
                raise DevToolsProtocolError(
                    f"command {subcommand} not supported for domain {domain} (supported commands: {','.join(sorted(supported_commands))})"
                )
        return {"id": message_id, "method": command, "params": params}

    async def _send_request(self, request):
        if self.websocket is None or self._closed:
            raise PageShotError("You must call start() on the browser before making a request")
        self.log.debug(f"SENDING REQUEST: {request['method']} (id={request['id']})")
        await self.websocket.send(orjson.dumps(request).decode("utf-8"))

    async def detect_chrome_path(self):
        # enumerate chrome path
        if self.chrome_path is None:
            for i in possible_chrome_binaries:
                chrome_path = shutil.which(i)
                if chrome_path:
                    # run chrome_path --version
                    process = await asyncio.create_subprocess_exec(chrome_path, "--version", stdout=PIPE, stderr=PIPE)
                    stdout, stderr = await process.communicate()

                    if process.returncode != 0:
                        self.log.error(f"Failed to get version for {chrome_path}: {stderr.decode().strip()}")
                        continue

                    version_output = stdout.decode().strip()
                    match = self.chrome_version_regex.search(version_output)
                    if match:
                        self.log.info(f"Found Chrome version {match.group(1)}")
                        self.version = match.group(1)
                        self.chrome_path = chrome_path
                        break
                    else:
                        self.log.error(f"Version output did not match expected format: {version_output}")

        if not self.chrome_path:
            raise BrowserNotFoundError(
                f"Chrome executable not found (tried: {', '.join(possible_chrome_binaries)}); use --chrome to specify one"
            )

    async def _start_chrome(self):
        # start chrome process
        if self.chrome_process is None:
            chrome_command = [self.chrome_path] + self.chrome_flags
            self.log.debug("Executing chrome command: " + " ".join(chrome_command))
            self.chrome_process = Popen(chrome_command, stdout=PIPE, stderr=PIPE)

        # loop until chrome reports the port it bound
        while self.websocket_uri is None:
            # if chrome process has exited, raise an exception
            return_code = self.chrome_process.poll()
            if return_code is not None:
                raise PageShotError(
                    f"Chrome process exited with code {return_code}\n{self.chrome_process.stderr.read().decode()}"
                )
            active_port = self.read_devtools_active_port()
            if active_port is None:
                self.log.debug("Waiting for Chrome to write DevToolsActivePort...")
                await asyncio.sleep(0.1)
                continue
            self.port, websocket_path = active_port
            self.websocket_uri = f"ws://127.0.0.1:{self.port}{websocket_path}"

        # enumerate supported CDP commands
        async with httpx.AsyncClient() as client:
            await self._enum_commands(client)

        # connect to chrome
        self.websocket = await websockets.connect(self.websocket_uri, max_size=500_000_000)

    def read_devtools_active_port(self):
        """
        Returns (port, websocket path) from the DevToolsActivePort file Chrome writes into its profile
        directory, or None if it isn't there (or isn't complete) yet.
        """
        try:
            lines = (Path(self.temp_dir) / "DevToolsActivePort").read_text().splitlines()
        except OSError:
            return None
        if len(lines) < 2 or not lines[0].strip().isdigit() or not lines[1].strip():
            return None
        return int(lines[0].strip()), lines[1].strip()

    async def _enum_commands(self, client):
        self._protocol = (await client.get(f"{self.base_url}/json/protocol")).json()
        self._commands = {}
        for domain in self._protocol["domains"]:
            domain_name = domain["domain"]
            commands = set(command["name"] for command in domain.get("commands", []))
            self._commands[domain_name] = commands

    async def _start_message_handler(self):
        self._message_handler_task = asyncio.create_task(self._message_handler())

    async def _message_handler(self):
        """Background task that drains the websocket until it closes"""
        try:
            while self.websocket and not self._closed:
                message = await self.websocket.recv()
                await self.handle_event(orjson.loads(message))
        except websockets.ConnectionClosed as e:
            self.log.debug(f"WebSocket connection closed: {e}")
        except Exception as e:
            self.log.debug(f"Message handler stopped: {e}")
        finally:
            # unblock anyone still waiting on a dead connection
            if not self._closed:
                self._abort_waiters(DevToolsProtocolError("DevTools connection closed"))

    def _abort_waiters(self, error):
        for future in list(self.pending_requests.values()):
            if not future.done():
                future.set_exception(error)
        self.pending_requests.clear()
        for tab in list(self.tabs.values()):
            tab.abort(error)

    async def stop(self):
        if not self._closed:
            self.log.debug("STOPPING BROWSER")
            self._closed = True
            for tab in list(self.tabs.values()):
                tab.stop_events()
            if self.websocket:
                with suppress(Exception):
                    await self.websocket.close()
            if self._message_handler_task is not None:
                self._message_handler_task.cancel()
                with suppress(asyncio.CancelledError):
                    await self._message_handler_task
            if self.chrome_process:
                with suppress(Exception):
                    self.chrome_process.terminate()
                    await asyncio.get_running_loop().run_in_executor(None, self.chrome_process.wait, 5)
        self.cleanup()

    def cleanup(self):
        with suppress(Exception):
            self.chrome_process.terminate()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    async def _next_message_id(self):
        async with self._message_id_lock:
            message_id = int(self._current_message_id)
            self._current_message_id += 1
        return message_id

    def __del__(self):
        self.cleanup()
