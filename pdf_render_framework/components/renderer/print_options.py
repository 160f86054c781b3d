"""
Translates `RendererOptions` into `Page.printToPDF` parameters.
"""
from typing import Any, Dict, Optional

from pdf_render_framework.components.renderer.options import RendererOptions
from pdf_render_framework.core.exceptions import ConfigurationError
from pdf_render_framework.core.logger import get_logger

logger = get_logger(__name__)

MIN_SCALE = 0.1
MAX_SCALE = 2.0


def clamp_scale(scale: float) -> float:
    """Keeps `scale` within what the engine accepts, warning when it had to be adjusted."""
    if scale < MIN_SCALE:
        logger.warning(f"scale cannot be lower than {MIN_SCALE}, using {MIN_SCALE}")
        return MIN_SCALE
    if scale > MAX_SCALE:
        logger.warning(f"scale cannot be higher than {MAX_SCALE:g}, using {MAX_SCALE:g}")
        return MAX_SCALE
    return scale


def parse_dimension(name: str, value: str) -> float:
    """Parses a paper dimension given as a decimal string (inches)."""
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a decimal number, got '{value}'.")


def _set_if(params: Dict[str, Any], key: str, value: Optional[Any]) -> None:
    if value is not None:
        params[key] = value


def build_print_options(options: RendererOptions) -> Dict[str, Any]:
    """
    Builds the protocol-native print parameters for one job.

    Only explicitly set fields are included, so anything left unset keeps the
    engine's own default. `no_margins` always zeroes all four margins.

    Raises:
        ConfigurationError: If a paper dimension is not a decimal number.
    """
    params: Dict[str, Any] = {}

    if options.landscape is not None:
        params["landscape"] = bool(options.landscape)

    if options.no_margins:
        params["marginTop"] = 0
        params["marginBottom"] = 0
        params["marginLeft"] = 0
        params["marginRight"] = 0

    if options.include_background is not None:
        params["printBackground"] = bool(options.include_background)

    if options.prefer_css_page_size is not None:
        params["preferCSSPageSize"] = bool(options.prefer_css_page_size)

    if options.paper_width is not None:
        params["paperWidth"] = parse_dimension("paper_width", options.paper_width)

    if options.paper_height is not None:
        params["paperHeight"] = parse_dimension("paper_height", options.paper_height)

    _set_if(params, "pageRanges", options.page_ranges)

    if options.display_header_footer is not None:
        params["displayHeaderFooter"] = bool(options.display_header_footer)

    _set_if(params, "headerTemplate", options.header_template)
    _set_if(params, "footerTemplate", options.footer_template)

    if options.scale is not None:
        params["scale"] = clamp_scale(options.scale)

    return params
