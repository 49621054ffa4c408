"""
Pytest fixtures for render service tests.

Playwright is never launched: pages, browsers and the session manager are
replaced by mocks that return format-correct fake output.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient


PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
FAKE_PDF = b"%PDF-1.4 fake pdf content"
FAKE_PNG = PNG_SIGNATURE + b"fake png content"


def make_page(pdf: bytes = FAKE_PDF, png: bytes = FAKE_PNG, height: float = 480.2):
    """Create a mock Playwright page."""
    page = MagicMock()
    page.set_content = AsyncMock()
    page.pdf = AsyncMock(return_value=pdf)
    page.screenshot = AsyncMock(return_value=png)
    page.set_viewport_size = AsyncMock()
    page.close = AsyncMock()

    body = MagicMock()
    body.bounding_box = AsyncMock(
        return_value={"x": 0, "y": 0, "width": 900, "height": height}
    )
    page.query_selector = AsyncMock(return_value=body)
    return page


@pytest.fixture
def page_factory():
    return make_page


@pytest.fixture
def pages():
    """Every page opened by the mock browser, in order."""
    return []


@pytest.fixture
def mock_browser(pages):
    """Connected mock browser whose new_page() records created pages."""
    browser = MagicMock()
    browser.is_connected.return_value = True

    async def new_page():
        page = make_page()
        pages.append(page)
        return page

    browser.new_page = AsyncMock(side_effect=new_page)
    return browser


@pytest.fixture
def mock_session_manager(mock_browser):
    """Session manager stand-in that hands out the mock browser."""
    manager = MagicMock()
    manager.acquire = AsyncMock(return_value=mock_browser)
    manager.close = AsyncMock()
    manager.is_ready = True
    manager.launch_count = 1
    return manager


@pytest.fixture
def renderer(mock_session_manager):
    from render_service.renderer import PageRenderer
    return PageRenderer(mock_session_manager, load_timeout_ms=5000)


@pytest.fixture
def client(renderer, mock_session_manager):
    """Create test client with the browser marked as ready and a mocked renderer."""
    import render_service.app as app_module

    app_module._browser_ready = True
    app_module._browser_error = None
    original_manager = app_module.app.state.session_manager
    original_renderer = app_module.app.state.renderer
    app_module.app.state.session_manager = mock_session_manager
    app_module.app.state.renderer = renderer
    yield TestClient(app_module.app)
    app_module.app.state.session_manager = original_manager
    app_module.app.state.renderer = original_renderer


@pytest.fixture
def client_browser_unavailable(mock_session_manager):
    """Create test client whose startup launch failed and nothing has relaunched."""
    import render_service.app as app_module

    mock_session_manager.is_ready = False
    mock_session_manager.launch_count = 0
    app_module._browser_ready = False
    app_module._browser_error = "Test: Chromium not available"
    original_manager = app_module.app.state.session_manager
    app_module.app.state.session_manager = mock_session_manager
    yield TestClient(app_module.app)
    app_module.app.state.session_manager = original_manager
    app_module._browser_ready = True
    app_module._browser_error = None
