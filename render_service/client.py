"""
Conversion client with a single-slot result cache.

Talks to the render service's /api/convert endpoint over httpx and keeps the
most recent dual-format (PDF + PNG) result keyed by a fingerprint of the
input and style settings. Previewing or downloading again without changing
the input is served from that bundle instead of reconverting.

Usage:
    async with ConversionClient("http://localhost:3000") as client:
        client.set_markdown("# Hi")
        bundle = await client.download_all()
        await client.preview(OutputFormat.PNG)   # served from the bundle
"""

import asyncio
import json
import logging
import tempfile
import webbrowser
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple, Union

import httpx

from .models import OutputFormat

logger = logging.getLogger(__name__)

# Preview files are kept around this long so the viewer can load them
PREVIEW_RELEASE_SECONDS = 60

PREVIEW_BLOCKED_MESSAGE = "Preview was blocked by your browser. Please allow pop-ups and try again."
NO_CONTENT_MESSAGE = "Please provide markdown content"


class ConversionClientError(Exception):
    """A conversion request failed; the message is meant for the user."""


class PreviewBlockedError(ConversionClientError):
    """The preview viewer could not be opened."""


@dataclass(frozen=True)
class CachedBundle:
    """Both outputs of one dual-format conversion and the input they belong to."""
    fingerprint: str
    pdf: bytes
    png: bytes

    def output_for(self, output_format: OutputFormat) -> bytes:
        return self.pdf if output_format is OutputFormat.PDF else self.png


@dataclass(frozen=True)
class _Payload:
    """Snapshot of the input taken when a conversion is issued."""
    markdown: Optional[str]
    file: Optional[Tuple[str, bytes]]
    prevent_image_split: bool


class ConversionClient:
    """
    Client-side collaborator for the conversion endpoint.

    Holds the current input (pasted text or an uploaded file), the style
    settings, the preview format and at most one CachedBundle. Any change to
    the input or to a style setting drops the bundle; changing the preview
    format does not.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        http_client: Optional[httpx.AsyncClient] = None,
        opener: Callable[[str], bool] = webbrowser.open,
        timeout: float = 120.0,
    ):
        """
        Initialize the client.

        Args:
            base_url: Render service base URL
            http_client: Optional preconfigured client (not closed by aclose())
            opener: Opens a preview URL; returns False when it could not
            timeout: Request timeout in seconds
        """
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._opener = opener

        self._markdown = ""
        self._file: Optional[Path] = None
        self._use_file = False
        self.prevent_image_split = True
        self.output_format = OutputFormat.PDF

        self._bundle: Optional[CachedBundle] = None
        self._pending_releases: Dict[Path, asyncio.TimerHandle] = {}

    async def __aenter__(self) -> "ConversionClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Release outstanding preview files and close the HTTP client."""
        for path, handle in list(self._pending_releases.items()):
            handle.cancel()
            self._release(path)
        if self._owns_http_client:
            await self._http.aclose()

    # ------------------------------------------------------------------
    # Input state
    # ------------------------------------------------------------------

    @property
    def bundle(self) -> Optional[CachedBundle]:
        return self._bundle

    def invalidate(self) -> None:
        """Drop the cached bundle."""
        if self._bundle is not None:
            logger.debug("Dropping cached conversion bundle")
        self._bundle = None

    def set_markdown(self, text: str) -> None:
        """Use pasted markdown text as the source."""
        self._markdown = text
        self._use_file = False
        self.invalidate()

    def set_file(self, path: Union[str, Path]) -> None:
        """Use an uploaded markdown file as the source."""
        self._file = Path(path)
        self._use_file = True
        self.invalidate()

    def set_prevent_image_split(self, enabled: bool) -> None:
        self.prevent_image_split = enabled
        self.invalidate()

    def set_format(self, output_format: Union[str, OutputFormat]) -> None:
        """Change the preview format; the bundle holds both formats and is kept."""
        self.output_format = OutputFormat(output_format)

    def fingerprint(self) -> str:
        """
        Key describing everything that affects the rendered output.

        Uploaded files are identified by name, size and modification time;
        pasted input by its literal text.
        """
        if self._use_file and self._file is not None:
            try:
                stat = self._file.stat()
            except OSError as e:
                raise ConversionClientError(f"Cannot read {self._file.name}: {e.strerror}") from e
            source = {
                "source": "upload",
                "name": self._file.name,
                "size": stat.st_size,
                "mtime": int(stat.st_mtime * 1000),
            }
        else:
            source = {"source": "paste", "text": self._markdown}
        source["preventImageSplit"] = self.prevent_image_split
        return json.dumps(source, sort_keys=True)

    def _cached_output(self, output_format: OutputFormat) -> Optional[bytes]:
        bundle = self._bundle
        if bundle is not None and bundle.fingerprint == self.fingerprint():
            logger.debug(f"Serving {output_format.value} from cached bundle")
            return bundle.output_for(output_format)
        return None

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def _snapshot(self) -> _Payload:
        if self._use_file and self._file is not None:
            try:
                content = self._file.read_bytes()
            except OSError as e:
                raise ConversionClientError(f"Cannot read {self._file.name}: {e.strerror}") from e
            return _Payload(
                markdown=None,
                file=(self._file.name, content),
                prevent_image_split=self.prevent_image_split,
            )
        if not self._markdown.strip():
            raise ConversionClientError(NO_CONTENT_MESSAGE)
        return _Payload(
            markdown=self._markdown,
            file=None,
            prevent_image_split=self.prevent_image_split,
        )

    async def _post(self, payload: _Payload, output_format: OutputFormat) -> bytes:
        data = {
            "format": output_format.value,
            "preventImageSplit": "true" if payload.prevent_image_split else "false",
        }
        if payload.file is not None:
            name, content = payload.file
            files = {"file": (name, content, "text/markdown")}
        else:
            # No filename, so it is sent as a plain multipart field
            files = {"markdown": (None, payload.markdown.encode("utf-8"))}

        try:
            response = await self._http.post("/api/convert", data=data, files=files)
        except httpx.HTTPError as e:
            raise ConversionClientError(str(e) or "Something went wrong") from e

        if not response.is_success:
            try:
                message = response.json().get("error")
            except ValueError:
                message = None
            raise ConversionClientError(message or "Conversion failed")

        return response.content

    async def convert(self, output_format: Optional[OutputFormat] = None) -> bytes:
        """Run one conversion of the current input, bypassing the cache."""
        return await self._post(self._snapshot(), output_format or self.output_format)

    async def download_all(self) -> CachedBundle:
        """
        Convert to PDF and PNG in parallel and cache both together.

        The previous bundle is dropped first. A failure in either half
        raises and leaves no bundle behind.
        """
        self.invalidate()
        fingerprint = self.fingerprint()
        payload = self._snapshot()

        pdf, png = await asyncio.gather(
            self._post(payload, OutputFormat.PDF),
            self._post(payload, OutputFormat.PNG),
        )
        bundle = CachedBundle(fingerprint=fingerprint, pdf=pdf, png=png)
        self._bundle = bundle
        return bundle

    async def download(
        self,
        dest_dir: Union[str, Path],
        output_format: Optional[OutputFormat] = None,
    ) -> Path:
        """Write document.<ext> into dest_dir, from the cache when it matches."""
        output_format = output_format or self.output_format
        output = self._cached_output(output_format)
        if output is None:
            output = await self.convert(output_format)

        target = Path(dest_dir) / output_format.filename
        target.write_bytes(output)
        return target

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------

    async def preview(self, output_format: Optional[OutputFormat] = None) -> Path:
        """
        Open the output in a viewer.

        Served from the cached bundle when its fingerprint matches the
        current input; otherwise converted (and not cached).

        Raises:
            PreviewBlockedError: The opener refused; the preview file is
                removed immediately.
        """
        output_format = output_format or self.output_format
        output = self._cached_output(output_format)
        if output is None:
            output = await self.convert(output_format)

        with tempfile.NamedTemporaryFile(
            prefix="document-", suffix=f".{output_format.value}", delete=False
        ) as handle:
            handle.write(output)
            path = Path(handle.name)

        opened = await asyncio.to_thread(self._opener, path.as_uri())
        if not opened:
            self._release(path)
            raise PreviewBlockedError(PREVIEW_BLOCKED_MESSAGE)

        loop = asyncio.get_running_loop()
        self._pending_releases[path] = loop.call_later(
            PREVIEW_RELEASE_SECONDS, self._release, path
        )
        return path

    def _release(self, path: Path) -> None:
        self._pending_releases.pop(path, None)
        path.unlink(missing_ok=True)
