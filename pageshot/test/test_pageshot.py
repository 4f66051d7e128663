import pytest
import logging

from pageshot import Browser, CaptureConfig, capture
from pageshot.errors import DevToolsProtocolError
from pageshot.test.helpers import *

logging.getLogger().setLevel(logging.DEBUG)


@requires_chrome
@pytest.mark.asyncio
async def test_screenshot(pageshot_httpserver):
    url = pageshot_httpserver.url_for("/")

    browser = Browser(width=800, height=600)
    try:
        await browser.start()
        tab = await browser.new_tab()
        await tab.navigate(url)
        await tab.wait_for_navigation()

        image = open_image(await tab.screenshot(format="png", quality=90))
        assert image.format == "PNG"
        assert image.width == 800
        # background color from the page's stylesheet
        r, g, b = image.convert("RGB").getpixel((10, 10))
        assert g > 100 and r < 50 and b < 50

        image = open_image(await tab.screenshot(format="jpeg", quality=50))
        assert image.format == "JPEG"

        # full page capture extends past the viewport
        image = open_image(await tab.screenshot(format="png", full_page=True))
        assert image.height > 600

        await tab.close()
    finally:
        await browser.stop()


@requires_chrome
@pytest.mark.asyncio
async def test_navigation_error():
    browser = Browser()
    try:
        await browser.start()
        tab = await browser.new_tab()
        with pytest.raises(DevToolsProtocolError, match="ERR_CONNECTION_REFUSED"):
            await tab.navigate("http://127.0.0.1:1/")
    finally:
        await browser.stop()


@requires_chrome
@pytest.mark.asyncio
async def test_capture(pageshot_httpserver, temp_dir):
    url = pageshot_httpserver.url_for("/")
    output = temp_dir / "screenshot.png"

    result = await capture(CaptureConfig(url=url, output=str(output), width=1024, height=768, delay=0.5, timeout=30))
    assert result.success, result.error
    assert result.file_path == str(output)
    assert output.is_file()
    assert output.stat().st_size == result.size
    assert open_image(output.read_bytes()).format == "PNG"

    # unreachable url
    result = await capture(CaptureConfig(url="http://127.0.0.1:1/", output=str(temp_dir / "nope.png"), timeout=30))
    json_out = result.json()
    assert json_out["success"] is False
    assert json_out["error"].startswith("Failed to navigate to URL: ")
    assert json_out["size"] == 0
    assert "base64_data" not in json_out
    assert "file_path" not in json_out
    assert not (temp_dir / "nope.png").exists()


@pytest.mark.asyncio
async def test_launch_failure(temp_dir):
    missing = temp_dir / "no-such-chrome"
    result = await capture(CaptureConfig(url="https://example.com", chrome_path=str(missing), base64=True))
    assert not result.success
    assert result.error.startswith("Failed to launch browser: ")
    assert result.size == 0
