"""
Unit tests for render service endpoints.

Tests health check and /api/convert for multipart and JSON bodies,
validation failures and rendering failures, with Playwright mocked.
"""

import asyncio
from unittest.mock import AsyncMock

from .conftest import PNG_SIGNATURE


class TestHealthEndpoint:
    """Tests for /health endpoint."""

    def test_health_check_returns_200(self, client):
        """Test that health check returns 200 OK when the browser is ready."""
        response = client.get("/health")
        assert response.status_code == 200

    def test_health_check_returns_correct_structure(self, client):
        """Test that health check returns expected fields."""
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert "timestamp" in data
        assert data["browser_ready"] is True
        assert data["active_renders"] == 0

    def test_health_check_returns_503_when_browser_unavailable(self, client_browser_unavailable):
        """Test that health check returns 503 when Chromium could not start."""
        response = client_browser_unavailable.get("/health")
        assert response.status_code == 503
        data = response.json()["detail"]
        assert data["status"] == "unhealthy"
        assert data["browser_ready"] is False
        assert "Chromium not available" in data["browser_error"]

    def test_health_recovers_after_failed_startup(self, client_browser_unavailable, mock_session_manager):
        """Test that a later successful launch clears the startup failure."""
        assert client_browser_unavailable.get("/health").status_code == 503

        mock_session_manager.is_ready = True
        mock_session_manager.launch_count = 1

        response = client_browser_unavailable.get("/health")
        assert response.status_code == 200
        assert response.json()["browser_ready"] is True
        assert response.json()["browser_error"] is None

    def test_health_reports_disconnected_browser(self, client, mock_session_manager):
        """Test that a browser dying after startup turns health to 503."""
        mock_session_manager.is_ready = False

        response = client.get("/health")
        assert response.status_code == 503
        data = response.json()["detail"]
        assert data["browser_ready"] is False
        assert "disconnected" in data["browser_error"]

    def test_health_ready_before_lazy_launch(self, client, mock_session_manager):
        """Test that with startup validation off, an unlaunched browser is not unhealthy."""
        mock_session_manager.is_ready = False
        mock_session_manager.launch_count = 0

        assert client.get("/health").status_code == 200


class TestConvertJSON:
    """Tests for /api/convert with JSON bodies."""

    def test_png_conversion(self, client, pages):
        """Scenario A: "# Hi" as PNG."""
        response = client.post("/api/convert", json={"markdown": "# Hi", "format": "png"})

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert len(response.content) > 0
        assert response.content[:8] == PNG_SIGNATURE
        assert response.headers["content-disposition"] == 'attachment; filename="document.png"'
        assert response.headers["content-length"] == str(len(response.content))

    def test_pdf_conversion(self, client):
        """Scenario B: "# Hi" as PDF."""
        response = client.post("/api/convert", json={"markdown": "# Hi", "format": "pdf"})

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF-")
        assert response.headers["content-disposition"] == 'attachment; filename="document.pdf"'
        assert response.headers["content-length"] == str(len(response.content))

    def test_unknown_format_defaults_to_pdf(self, client):
        """Test that any format other than "png" yields PDF."""
        for fmt in ("jpeg", None, 42):
            response = client.post("/api/convert", json={"markdown": "# Hi", "format": fmt})
            assert response.status_code == 200
            assert response.headers["content-type"] == "application/pdf"

    def test_empty_markdown_rejected(self, client, mock_session_manager):
        """Scenario D: empty markdown is a 400 and never renders."""
        response = client.post("/api/convert", json={"markdown": ""})

        assert response.status_code == 400
        assert response.json() == {"error": "No markdown content provided"}
        mock_session_manager.acquire.assert_not_awaited()

    def test_whitespace_markdown_rejected_for_every_format(self, client, mock_session_manager):
        """Test that whitespace-only content is rejected regardless of format."""
        for fmt in ("pdf", "png"):
            response = client.post("/api/convert", json={"markdown": "  \n\t ", "format": fmt})
            assert response.status_code == 400
            assert response.json() == {"error": "No markdown content provided"}
        mock_session_manager.acquire.assert_not_awaited()

    def test_missing_markdown_rejected(self, client):
        """Test that a body without markdown is rejected."""
        response = client.post("/api/convert", json={"format": "png"})
        assert response.status_code == 400
        assert response.json() == {"error": "No markdown content provided"}

    def test_malformed_body_rejected(self, client, mock_session_manager):
        """Test that a body that is not JSON is a 400."""
        response = client.post(
            "/api/convert",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid request body"}
        mock_session_manager.acquire.assert_not_awaited()

    def test_prevent_image_split_defaults_true(self, client, pages):
        """Test that safety CSS is applied unless explicitly false."""
        for value in (True, "false", None, 0):
            client.post("/api/convert", json={"markdown": "x", "preventImageSplit": value})
        client.post("/api/convert", json={"markdown": "x"})

        for page in pages:
            assert "max-height: 200mm" in page.set_content.await_args.args[0]

    def test_prevent_image_split_false(self, client, pages):
        """Test that preventImageSplit=false drops the safety CSS."""
        client.post("/api/convert", json={"markdown": "x", "preventImageSplit": False})
        assert "max-height: 200mm" not in pages[0].set_content.await_args.args[0]


class TestConvertMultipart:
    """Tests for /api/convert with multipart bodies."""

    def test_file_upload(self, client, pages):
        """Test conversion of an uploaded file."""
        response = client.post(
            "/api/convert",
            data={"format": "png"},
            files={"file": ("notes.md", b"# From file", "text/markdown")},
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert "<h1>From file</h1>" in pages[0].set_content.await_args.args[0]

    def test_markdown_field(self, client, pages):
        """Test conversion of the markdown text field."""
        response = client.post(
            "/api/convert",
            data={"markdown": "# From field", "format": "pdf"},
            files={"file": ("empty.md", b"", "text/markdown")},
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert "<h1>From field</h1>" in pages[0].set_content.await_args.args[0]

    def test_large_markdown_field_accepted(self, client, pages):
        """Test that pasted text over the parser's 1MB default part size converts."""
        markdown = "# Big\n\n" + "lorem ipsum " * 180000

        response = client.post(
            "/api/convert",
            data={"markdown": markdown, "format": "pdf"},
            files={"file": ("empty.md", b"", "text/markdown")},
        )

        assert len(markdown) > 2 * 1024 * 1024
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert "<h1>Big</h1>" in pages[0].set_content.await_args.args[0]

    def test_file_preferred_over_markdown_field(self, client, pages):
        """Test that a non-empty file wins over the text field."""
        client.post(
            "/api/convert",
            data={"markdown": "# Field"},
            files={"file": ("a.md", b"# File", "text/markdown")},
        )
        html = pages[0].set_content.await_args.args[0]
        assert "<h1>File</h1>" in html
        assert "Field" not in html

    def test_oversized_file_rejected(self, client, mock_session_manager):
        """Scenario C: a 6 MiB upload is a 400 and never renders."""
        big = b"a" * (6 * 1024 * 1024)
        response = client.post(
            "/api/convert",
            data={"format": "pdf"},
            files={"file": ("big.md", big, "text/markdown")},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "File too large (max 5MB)"}
        mock_session_manager.acquire.assert_not_awaited()

    def test_empty_content_rejected(self, client, mock_session_manager):
        """Test that an empty multipart submission is a 400."""
        response = client.post(
            "/api/convert",
            data={"markdown": "   ", "format": "png"},
            files={"file": ("empty.md", b"", "text/markdown")},
        )
        assert response.status_code == 400
        assert response.json() == {"error": "No markdown content provided"}
        mock_session_manager.acquire.assert_not_awaited()

    def test_prevent_image_split_string_flag(self, client, pages):
        """Test that only the exact string "false" disables the safety CSS."""
        for value in ("false", "False", "0"):
            client.post(
                "/api/convert",
                data={"markdown": "x", "preventImageSplit": value},
                files={"file": ("empty.md", b"", "text/markdown")},
            )

        htmls = [page.set_content.await_args.args[0] for page in pages]
        assert "max-height: 200mm" not in htmls[0]
        assert "max-height: 200mm" in htmls[1]
        assert "max-height: 200mm" in htmls[2]


class TestConvertFailures:
    """Tests for rendering failures."""

    def test_browser_failure_returns_generic_500(self, client, mock_session_manager):
        """Test that launch errors are hidden behind a generic message."""
        mock_session_manager.acquire.side_effect = RuntimeError("/opt/chromium: permission denied")

        response = client.post("/api/convert", json={"markdown": "# Hi"})

        assert response.status_code == 500
        assert response.json() == {"error": "Conversion failed. Please try again."}
        assert "chromium" not in response.text

    def test_capture_failure_closes_page(self, client, mock_browser, page_factory):
        """Test that a capture error is a 500 and the page is closed."""
        page = page_factory()
        page.screenshot.side_effect = asyncio.TimeoutError()
        mock_browser.new_page = AsyncMock(return_value=page)

        response = client.post("/api/convert", json={"markdown": "# Hi", "format": "png"})

        assert response.status_code == 500
        page.close.assert_awaited_once()

    def test_active_renders_reset_after_failure(self, client, mock_session_manager):
        """Test that the in-flight counter is decremented on failure."""
        mock_session_manager.acquire.side_effect = RuntimeError("boom")
        client.post("/api/convert", json={"markdown": "# Hi"})

        assert client.get("/health").json()["active_renders"] == 0


class TestIdempotence:
    """Tests that repeated conversions are consistent."""

    def test_same_request_twice(self, client):
        """Test that identical requests give identical content type and magic bytes."""
        for fmt, media_type, magic in (
            ("pdf", "application/pdf", b"%PDF-"),
            ("png", "image/png", PNG_SIGNATURE),
        ):
            first = client.post("/api/convert", json={"markdown": "# Hi", "format": fmt})
            second = client.post("/api/convert", json={"markdown": "# Hi", "format": fmt})
            for response in (first, second):
                assert response.headers["content-type"] == media_type
                assert response.content.startswith(magic)
