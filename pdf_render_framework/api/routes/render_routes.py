"""
API routes for PDF rendering in the PDF Render Framework.

Errors raised by the render manager are not caught here; they are mapped to
HTTP responses by the global exception handlers in `api/main.py`.
"""
from urllib.parse import urlparse

from fastapi import APIRouter, status
from fastapi.responses import Response

from pdf_render_framework.api.models import RenderPdfRequest, ErrorResponse
from pdf_render_framework.components.renderer.options import RendererOptions
from pdf_render_framework.core.config import config_manager  # Global configuration instance
from pdf_render_framework.core.logger import get_logger
from pdf_render_framework.core.manager import RenderManager

logger = get_logger(__name__)  # Module-level logger

router = APIRouter()


def _download_name(url: str) -> str:
    domain = urlparse(url).netloc.replace('.', '_').replace('-', '_').replace(':', '_')
    return f"{domain or 'render'}.pdf"


@router.post(
    "/pdf",
    status_code=status.HTTP_200_OK,
    response_class=Response,
    responses={
        200: {"content": {"application/pdf": {}}, "description": "The rendered PDF."},
        502: {"model": ErrorResponse, "description": "The page could not be rendered."},
        503: {"model": ErrorResponse, "description": "The browser engine is unavailable."},
    },
    summary="Render a URL to PDF",
)
async def render_pdf_endpoint(request: RenderPdfRequest):
    """
    Renders the requested URL with a fresh engine and returns the PDF bytes.

    Options given in the request override the configured renderer settings for
    this render only.
    """
    url = str(request.url)
    options = RendererOptions.from_config(config_manager, **request.option_overrides())
    manager = RenderManager(config=config_manager, options=options)

    data = await manager.generate_pdf_buffer(url)
    logger.info(f"Rendered {url} ({len(data)} bytes)")
    return Response(
        content=data,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{_download_name(url)}"'},
    )
