"""
Page rendering and rasterization.

A PageRenderer opens one isolated Playwright page per conversion, loads the
styled document, hands the page to a rasterizer and always closes it. Two
rasterizers share it: paginated A4 PDF and full-height PNG capture.
"""

import logging
import math
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Dict, Optional

from playwright.async_api import Page

from .browser import BrowserSessionManager
from .markdown_helpers import markdown_to_html
from .models import ConversionRequest, OutputFormat, RenderOptions, StyledDocument
from .template import build_styled_document

logger = logging.getLogger(__name__)

# Paginated output
PDF_PAGE_FORMAT = "A4"
PDF_MARGINS = {"top": "20mm", "bottom": "20mm", "left": "15mm", "right": "15mm"}

# Full-capture output
PNG_VIEWPORT_WIDTH = 900
PNG_INITIAL_HEIGHT = 100
PNG_BOTTOM_PADDING = 40


class RenderError(Exception):
    """Rendering failed inside the browser pipeline."""


class PageRenderer:
    """Loads styled documents into short-lived pages of the shared browser."""

    def __init__(self, session_manager: BrowserSessionManager, load_timeout_ms: int = 30000):
        self.session_manager = session_manager
        self.load_timeout_ms = load_timeout_ms

    @asynccontextmanager
    async def open_surface(self, document: StyledDocument) -> AsyncIterator[Page]:
        """
        Yield a page with the document loaded and the network idle.

        The page belongs to this call only and is closed on every exit path.
        """
        browser = await self.session_manager.acquire()
        page = await browser.new_page()
        try:
            page.set_default_timeout(self.load_timeout_ms)
            # networkidle waits for the web font stylesheet referenced by the theme
            await page.set_content(
                document.html,
                wait_until="networkidle",
                timeout=self.load_timeout_ms,
            )
            yield page
        finally:
            await page.close()


async def rasterize_pdf(page: Page) -> bytes:
    """Print the page to fixed-size A4 pages with backgrounds."""
    return await page.pdf(
        format=PDF_PAGE_FORMAT,
        print_background=True,
        margin=PDF_MARGINS,
    )


async def rasterize_png(page: Page) -> bytes:
    """
    Capture the whole page as one PNG sized to its content.

    The content height is unknown until the document is laid out, so the
    viewport is set once to measure and once more to the measured height.
    """
    await page.set_viewport_size({"width": PNG_VIEWPORT_WIDTH, "height": PNG_INITIAL_HEIGHT})

    body = await page.query_selector("body")
    box = await body.bounding_box() if body is not None else None
    height = math.ceil(box["height"]) if box else 0

    await page.set_viewport_size(
        {"width": PNG_VIEWPORT_WIDTH, "height": height + PNG_BOTTOM_PADDING}
    )
    return await page.screenshot(type="png", full_page=True, omit_background=False)


RASTERIZERS: Dict[OutputFormat, Callable[[Page], Awaitable[bytes]]] = {
    OutputFormat.PDF: rasterize_pdf,
    OutputFormat.PNG: rasterize_png,
}


async def convert_markdown(
    renderer: PageRenderer,
    markdown: str,
    output_format: OutputFormat = OutputFormat.PDF,
    options: Optional[RenderOptions] = None,
) -> bytes:
    """
    Convert markdown to PDF or PNG bytes.

    Args:
        renderer: Page renderer bound to the shared browser session
        markdown: Markdown source
        output_format: OutputFormat.PDF or OutputFormat.PNG
        options: Render options (defaults resolved when None)

    Returns:
        Binary output of the requested format

    Raises:
        RenderError: Browser launch, page load or capture failed
    """
    request = ConversionRequest(
        markdown=markdown,
        output_format=output_format,
        options=options or RenderOptions.resolve(),
    )
    return await convert_request(renderer, request)


async def convert_request(renderer: PageRenderer, request: ConversionRequest) -> bytes:
    """Run one ConversionRequest through template building and rasterization."""
    content_html = markdown_to_html(request.markdown)
    document = build_styled_document(content_html, request.options)
    rasterize = RASTERIZERS[request.output_format]

    try:
        async with renderer.open_surface(document) as page:
            output = await rasterize(page)
    except Exception as e:
        raise RenderError(f"{request.output_format.value} rendering failed: {e}") from e

    logger.info(f"Rendered {request.output_format.value} ({len(output)} bytes)")
    return output
