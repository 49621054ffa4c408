"""
Render Service - Markdown to PDF / PNG conversion.

This service turns markdown into a styled HTML document and rasterizes it
with Playwright/Chromium, either as a paginated A4 PDF or as a single
full-height PNG. A shared browser process is reused across requests.
"""

__version__ = "0.1.0"
