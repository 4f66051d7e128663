#!/usr/bin/env python3

import sys
import typer
import orjson
import uvloop
import logging
from typing import Annotated, Optional
from rich.console import Console

from pageshot import defaults
from pageshot.capture import capture
from pageshot.helpers import is_cancellation
from pageshot.config import CaptureConfig, ImageFormat


stdout = Console(emoji=False)
stderr = Console(stderr=True)
log = logging.getLogger(__name__)


def format_type(value):
    try:
        ImageFormat.parse(value)
        return value
    except ValueError as e:
        raise typer.BadParameter(str(e))


def timeout_type(value):
    if value is not None and value <= 0:
        raise typer.BadParameter("Timeout must be a positive number of seconds.")
    return value


app = typer.Typer(add_completion=False)


@app.command(help="Screenshot a URL with headless Chrome and print the result as JSON")
def screenshot(
    url: Annotated[str, typer.Option("-u", "--url", help="URL to take a screenshot of", metavar="URL")],
    output: Annotated[
        str, typer.Option("-o", "--output", help="Output file path (ignored with --base64)", metavar="PATH")
    ] = defaults.output,
    width: Annotated[
        int, typer.Option("-w", "--width", min=1, help="Viewport width", rich_help_panel="Screenshots")
    ] = defaults.width,
    height: Annotated[
        int, typer.Option("-H", "--height", min=1, help="Viewport height", rich_help_panel="Screenshots")
    ] = defaults.height,
    full_page: Annotated[
        bool,
        typer.Option("-f", "--full-page", help="Capture beyond the visible viewport", rich_help_panel="Screenshots"),
    ] = False,
    quality: Annotated[
        int,
        typer.Option(
            "-q", "--quality", min=1, max=100, help="JPEG quality (1-100)", rich_help_panel="Screenshots"
        ),
    ] = defaults.quality,
    image_format: Annotated[
        str,
        typer.Option(
            "-F",
            "--format",
            callback=format_type,
            help="Image format: png, jpeg or jpg",
            metavar="FORMAT",
            rich_help_panel="Screenshots",
        ),
    ] = defaults.image_format,
    base64: Annotated[
        bool,
        typer.Option("-b", "--base64", help="Return base64 encoded data instead of saving to a file"),
    ] = False,
    delay: Annotated[
        float,
        typer.Option(
            "--delay",
            min=0,
            help=f"Delay after the page loads, before capturing (default: {defaults.delay:.1f} seconds)",
            metavar="SECONDS",
            rich_help_panel="Performance",
        ),
    ] = defaults.delay,
    timeout: Annotated[
        Optional[float],
        typer.Option(
            "--timeout",
            callback=timeout_type,
            help="Give up on any single browser step after this many seconds (default: wait forever)",
            metavar="SECONDS",
            rich_help_panel="Performance",
        ),
    ] = None,
    chrome_path: Annotated[Optional[str], typer.Option("-c", "--chrome", help="Path to Chrome executable")] = None,
    debug: Annotated[bool, typer.Option("-d", "--debug", help="Enable debug logging (to stderr)")] = False,
):
    # enable debugging if requested
    if debug:
        logging.getLogger("pageshot").setLevel(logging.DEBUG)

    config = CaptureConfig(
        url=url,
        output=output,
        width=width,
        height=height,
        full_page=full_page,
        quality=quality,
        format=image_format,
        base64=base64,
        delay=delay,
        timeout=timeout,
        chrome_path=chrome_path,
    )

    result = uvloop.run(capture(config))
    if not result.success:
        log.info(f"Screenshot of {url} failed: {result.error}")

    # the exit code is 0 either way; callers check "success"
    output_json = orjson.dumps(result.json(), option=orjson.OPT_INDENT_2).decode()
    stdout.print(output_json, highlight=False, markup=False, emoji=False, soft_wrap=True)


def main():
    try:
        app()
    except BaseException as e:
        if is_cancellation(e):
            sys.exit(1)
        elif not isinstance(e, SystemExit):
            stderr.print_exception(show_locals=True)
            sys.exit(1)
        raise


if __name__ == "__main__":
    main()
