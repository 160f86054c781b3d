from typing import Dict, Any, Optional
from pydantic import BaseModel, ConfigDict, Field, HttpUrl

# --- Request Models ---

class RenderPdfRequest(BaseModel):
    """
    Request model for rendering a single URL to PDF.

    Layout fields left unset fall back to the configured renderer options.
    """
    model_config = ConfigDict(extra="forbid")

    url: HttpUrl
    landscape: Optional[bool] = None
    no_margins: Optional[bool] = None
    include_background: Optional[bool] = None
    prefer_css_page_size: Optional[bool] = None
    paper_width: Optional[float] = Field(default=None, gt=0)
    paper_height: Optional[float] = Field(default=None, gt=0)
    page_ranges: Optional[str] = None
    scale: Optional[float] = None
    display_header_footer: Optional[bool] = None
    header_template: Optional[str] = None
    footer_template: Optional[str] = None
    js_time_budget_ms: Optional[int] = Field(default=None, ge=0)
    animation_time_budget_ms: Optional[int] = Field(default=None, ge=0)
    delay_until_custom_event: Optional[bool] = None
    custom_event_name: Optional[str] = None

    def option_overrides(self) -> Dict[str, Any]:
        """Returns the explicitly set renderer options, excluding the URL."""
        return self.model_dump(exclude={"url"}, exclude_none=True)


# --- Response Models ---

class ErrorResponse(BaseModel):
    """Body returned by the global exception handlers."""
    detail: str
