"""
Shared models for the render service.

Dataclasses describe the conversion pipeline's internal values; Pydantic
models define the HTTP request/response payloads.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class OutputFormat(str, Enum):
    """Output formats produced by the rasterizers."""
    PDF = "pdf"
    PNG = "png"

    @classmethod
    def parse(cls, value: Optional[str]) -> "OutputFormat":
        """Anything other than exactly "png" falls back to PDF."""
        return cls.PNG if value == "png" else cls.PDF

    @property
    def media_type(self) -> str:
        return "application/pdf" if self is OutputFormat.PDF else "image/png"

    @property
    def filename(self) -> str:
        return f"document.{self.value}"


@dataclass(frozen=True)
class RenderOptions:
    """Fully resolved style-affecting options."""
    prevent_image_split: bool = True

    @classmethod
    def resolve(cls, prevent_image_split: Optional[bool] = None) -> "RenderOptions":
        """Fill in defaults so no undefined styling state reaches the template."""
        if prevent_image_split is None:
            prevent_image_split = True
        return cls(prevent_image_split=bool(prevent_image_split))


@dataclass(frozen=True)
class ConversionRequest:
    """One request yields exactly one rasterization."""
    markdown: str
    output_format: OutputFormat = OutputFormat.PDF
    options: RenderOptions = field(default_factory=RenderOptions)


@dataclass(frozen=True)
class StyledDocument:
    """Complete HTML document with embedded styles, ready for rasterization."""
    html: str

    def __str__(self) -> str:
        return self.html


# ============================================================================
# Request/Response Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Error payload returned for 400/500 responses."""
    error: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    timestamp: datetime
    active_renders: int
    browser_ready: bool = True
    browser_error: Optional[str] = None


class ConvertJSONRequest(BaseModel):
    """JSON body accepted by /api/convert."""
    markdown: Optional[str] = Field(None, description="Markdown source")
    format: Any = Field("pdf", description="Output format: 'pdf' or 'png'")
    preventImageSplit: Any = Field(
        True,
        description="Keep images and other blocks on one page; only an explicit false disables it"
    )
