"""
Renderer component for the PDF Render Framework.

This sub-package turns a URL into PDF bytes: it translates user options into
print parameters, sequences the page through its readiness stages and owns
the engine used to do so.
"""
from .jobs import RenderJob, RenderStage, VirtualTimeBudget, CustomEventSignal
from .options import RendererOptions
from .print_options import build_print_options, clamp_scale
from .readiness_controller import ReadinessController, PaintSettleWaiter
from .pdf_renderer import PdfRenderer

__all__ = [
    "RenderJob",
    "RenderStage",
    "VirtualTimeBudget",
    "CustomEventSignal",
    "RendererOptions",
    "build_print_options",
    "clamp_scale",
    "ReadinessController",
    "PaintSettleWaiter",
    "PdfRenderer",
]
