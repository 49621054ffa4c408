"""
Command-line entry point for the render service.

Usage:
    python -m render_service serve --port 3000
    python -m render_service convert notes.md --format png --output notes.png
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .browser import BrowserSessionManager
from .config import get_settings
from .models import OutputFormat, RenderOptions
from .renderer import PageRenderer, RenderError, convert_markdown

logger = logging.getLogger(__name__)


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("render_service.app:app", host=args.host, port=args.port)
    return 0


async def _convert_file(source: Path, output: Path, output_format: OutputFormat, options: RenderOptions) -> int:
    settings = get_settings()
    manager = BrowserSessionManager(
        headless=settings.playwright_headless,
        launch_args=settings.browser_args_list,
    )
    renderer = PageRenderer(manager, load_timeout_ms=settings.playwright_timeout_ms)
    try:
        data = await convert_markdown(
            renderer,
            source.read_text(encoding="utf-8"),
            output_format,
            options,
        )
    finally:
        await manager.close()

    output.write_bytes(data)
    logger.info(f"Wrote {output} ({len(data)} bytes)")
    return 0


def _convert(args: argparse.Namespace) -> int:
    source = Path(args.input)
    if not source.is_file():
        logger.error(f"Input file not found: {source}")
        return 1

    output_format = OutputFormat(args.format)
    output = Path(args.output) if args.output else source.with_suffix(f".{output_format.value}")
    options = RenderOptions.resolve(not args.allow_image_split)

    try:
        return asyncio.run(_convert_file(source, output, output_format, options))
    except RenderError as e:
        logger.error(f"Conversion failed: {e}")
        return 1


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="render_service",
        description="Convert markdown to PDF or PNG with headless Chromium"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP conversion service")
    serve.add_argument("--host", default=settings.host, help="Bind address")
    serve.add_argument("--port", type=int, default=settings.port, help="Bind port")
    serve.set_defaults(func=_serve)

    convert = subparsers.add_parser("convert", help="Convert a markdown file locally")
    convert.add_argument("input", help="Path to the markdown file")
    convert.add_argument(
        "--format",
        choices=[f.value for f in OutputFormat],
        default=OutputFormat.PDF.value,
        help="Output format (default: pdf)"
    )
    convert.add_argument("--output", "-o", help="Output path (default: input with new extension)")
    convert.add_argument(
        "--allow-image-split",
        action="store_true",
        help="Do not keep images, tables and code blocks on a single page"
    )
    convert.set_defaults(func=_convert)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=getattr(logging, get_settings().log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
