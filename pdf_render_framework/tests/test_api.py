from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from pdf_render_framework.api.main import app
from pdf_render_framework.core.exceptions import (
    BinaryNotFoundError,
    ConfigurationError,
    ProtocolError,
    RenderError,
    StorageError,
    UnreachableError,
)

client = TestClient(app)

ROUTES = "pdf_render_framework.api.routes.render_routes"
RENDER_URL = "/api/v1/render/pdf"


@pytest.fixture
def render_manager():
    """Replaces the RenderManager used by the route with a mock rendering canned bytes."""
    with patch(f"{ROUTES}.RenderManager") as manager_cls:
        manager_cls.return_value.generate_pdf_buffer = AsyncMock(return_value=b"%PDF-1.4 rendered")
        yield manager_cls


def test_read_root():
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["message"] == "Welcome to the PDF Render Framework API"


def test_render_pdf_returns_pdf_bytes(render_manager):
    response = client.post(RENDER_URL, json={"url": "http://example.com"})

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content == b"%PDF-1.4 rendered"
    assert 'filename="example_com.pdf"' in response.headers["content-disposition"]
    render_manager.return_value.generate_pdf_buffer.assert_awaited_once_with("http://example.com/")


def test_render_pdf_applies_request_overrides(render_manager):
    response = client.post(RENDER_URL, json={
        "url": "https://example.com/report",
        "landscape": True,
        "paper_width": 8.5,
        "scale": 0.8,
    })

    assert response.status_code == 200
    options = render_manager.call_args.kwargs["options"]
    assert options.landscape is True
    assert options.paper_width == "8.5"
    assert options.scale == 0.8


def test_render_pdf_rejects_invalid_url():
    response = client.post(RENDER_URL, json={"url": "not a url"})
    assert response.status_code == 422
    assert response.json()["detail"] == "Request validation failed"


def test_render_pdf_rejects_unknown_fields():
    response = client.post(RENDER_URL, json={"url": "http://example.com", "margins": 0})
    assert response.status_code == 422


@pytest.mark.parametrize("error,status_code", [
    (BinaryNotFoundError(), 503),
    (UnreachableError("localhost", 9222, 30000), 503),
    (RenderError("navigating", ProtocolError("net::ERR_NAME_NOT_RESOLVED")), 502),
    (StorageError("disk full"), 500),
])
def test_render_errors_map_to_status_codes(render_manager, error, status_code):
    render_manager.return_value.generate_pdf_buffer.side_effect = error

    response = client.post(RENDER_URL, json={"url": "http://example.com"})

    assert response.status_code == status_code
    assert error.message in response.json()["detail"]


def test_invalid_renderer_options_are_a_bad_request():
    with patch(f"{ROUTES}.RendererOptions.from_config",
               side_effect=ConfigurationError("Invalid renderer options: scale")):
        response = client.post(RENDER_URL, json={"url": "http://example.com"})

    assert response.status_code == 400
    assert "Invalid renderer options" in response.json()["detail"]
