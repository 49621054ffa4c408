"""
Render Service - FastAPI application for markdown conversion.

Provides a single conversion endpoint that accepts multipart uploads or
JSON and returns a PDF or PNG rendered by Playwright/Chromium.
"""

import logging
from datetime import datetime
from typing import Optional, Tuple

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from .browser import BrowserSessionManager
from .config import get_settings, log_config_on_startup
from .models import (
    ConversionRequest,
    ConvertJSONRequest,
    ErrorResponse,
    HealthResponse,
    OutputFormat,
    RenderOptions,
)
from .renderer import PageRenderer, convert_request

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Render Service",
    version="0.1.0",
    description="Markdown to PDF / PNG conversion using Playwright/Chromium"
)

# One shared browser per process, handed to the renderer explicitly
app.state.session_manager = BrowserSessionManager(
    headless=settings.playwright_headless,
    launch_args=settings.browser_args_list,
)
app.state.renderer = PageRenderer(
    app.state.session_manager,
    load_timeout_ms=settings.playwright_timeout_ms,
)

# Browser readiness state
_browser_ready = False
_browser_error: Optional[str] = None

# In-flight conversions (informational, reported by /health)
_active_renders = 0

GENERIC_FAILURE_MESSAGE = "Conversion failed. Please try again."


class InputError(Exception):
    """Request content failed validation; reported to the caller as 400."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ============================================================================
# Startup / Shutdown
# ============================================================================

@app.on_event("startup")
async def validate_browser_on_startup():
    """
    Launch the shared browser on startup.

    This ensures the service won't report as healthy if Chromium can't
    actually be started. The browser stays up for later conversions.
    """
    global _browser_ready, _browser_error

    log_config_on_startup()

    if not settings.validate_browser_on_startup:
        _browser_ready = True
        return

    logger.info("Render Service starting - launching shared Chromium...")
    try:
        await app.state.session_manager.acquire()
        _browser_ready = True
        _browser_error = None
        logger.info("✅ Shared Chromium ready")
    except Exception as e:
        _browser_error = str(e)
        logger.error(f"❌ Chromium launch failed: {_browser_error}")
        logger.error("Conversions will fail until this is resolved.")


@app.on_event("shutdown")
async def close_browser_on_shutdown():
    """Close the shared browser on shutdown."""
    await app.state.session_manager.close()


# ============================================================================
# Health Check Endpoint
# ============================================================================

def _browser_status(session_manager: BrowserSessionManager) -> Tuple[bool, Optional[str]]:
    """Live browser readiness, falling back to the startup result before any launch."""
    if session_manager.is_ready:
        return True, None
    if session_manager.launch_count == 0:
        # Nothing launched yet: either startup validation is off or it failed
        return _browser_ready, _browser_error
    return False, "Chromium disconnected; it will be relaunched on the next conversion"


@app.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """
    Health check endpoint for container orchestration.

    Returns HTTP 503 while no connected browser is held: the startup launch
    failed and nothing has relaunched it yet, or the browser has died.
    """
    browser_ready, browser_error = _browser_status(request.app.state.session_manager)
    if not browser_ready:
        raise HTTPException(
            status_code=503,
            detail={
                "status": "unhealthy",
                "timestamp": datetime.utcnow().isoformat(),
                "active_renders": _active_renders,
                "browser_ready": False,
                "browser_error": browser_error,
                "message": "Render service is unhealthy - Chromium not available"
            }
        )

    return HealthResponse(
        status="healthy",
        timestamp=datetime.utcnow(),
        active_renders=_active_renders,
        browser_ready=True,
        browser_error=None
    )


# ============================================================================
# Request Parsing
# ============================================================================

async def _parse_multipart(request: Request) -> ConversionRequest:
    try:
        # Starlette caps non-file parts at 1MB by default; only the file upload has the 5MB rule
        form = await request.form(max_part_size=settings.max_form_field_bytes)
    except Exception as e:
        logger.warning(f"Failed to parse multipart body: {e}")
        raise InputError("Invalid request body")

    file = form.get("file")
    text = form.get("markdown")
    raw_format = form.get("format")
    output_format = OutputFormat.parse(raw_format if isinstance(raw_format, str) else None)
    prevent_image_split = form.get("preventImageSplit") != "false"

    markdown = ""
    # A zero-byte file counts as absent and the text field is used instead
    if isinstance(file, UploadFile) and file.size:
        if file.size > settings.max_upload_bytes:
            max_mb = settings.max_upload_bytes // (1024 * 1024)
            raise InputError(f"File too large (max {max_mb}MB)")
        markdown = (await file.read()).decode("utf-8", errors="replace")
    elif isinstance(text, str) and text:
        markdown = text

    return ConversionRequest(
        markdown=markdown,
        output_format=output_format,
        options=RenderOptions.resolve(prevent_image_split),
    )


async def _parse_json(request: Request) -> ConversionRequest:
    try:
        body = await request.json()
        payload = ConvertJSONRequest.model_validate(body)
    except (ValueError, ValidationError) as e:
        logger.warning(f"Failed to parse JSON body: {e}")
        raise InputError("Invalid request body")

    return ConversionRequest(
        markdown=payload.markdown or "",
        output_format=OutputFormat.parse(payload.format if isinstance(payload.format, str) else None),
        options=RenderOptions.resolve(payload.preventImageSplit is not False),
    )


async def parse_conversion_request(request: Request) -> ConversionRequest:
    """
    Build a ConversionRequest from a multipart or JSON body.

    Raises:
        InputError: Oversized file, empty content or malformed body
    """
    content_type = request.headers.get("content-type", "")
    if "multipart/form-data" in content_type:
        conversion = await _parse_multipart(request)
    else:
        conversion = await _parse_json(request)

    if not conversion.markdown.strip():
        raise InputError("No markdown content provided")
    return conversion


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


# ============================================================================
# Conversion Endpoint
# ============================================================================

@app.post("/api/convert")
async def convert(request: Request):
    """
    Convert markdown to PDF or PNG.

    Accepts multipart/form-data (file, markdown, format, preventImageSplit)
    or JSON (markdown, format, preventImageSplit).

    Returns:
        Binary PDF/PNG as an attachment named document.<ext>

    Errors:
        400 with {"error": ...} for invalid input,
        500 with a generic {"error": ...} for rendering failures
    """
    global _active_renders

    try:
        conversion = await parse_conversion_request(request)
    except InputError as e:
        return _error_response(400, e.message)

    output_format = conversion.output_format
    logger.info(
        f"Starting {output_format.value} conversion "
        f"({len(conversion.markdown)} chars, prevent_image_split={conversion.options.prevent_image_split})"
    )

    _active_renders += 1
    try:
        output = await convert_request(request.app.state.renderer, conversion)
    except Exception:
        logger.exception("Conversion error")
        return _error_response(500, GENERIC_FAILURE_MESSAGE)
    finally:
        _active_renders -= 1

    return Response(
        content=output,
        media_type=output_format.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{output_format.filename}"',
            "Content-Length": str(len(output)),
        }
    )
