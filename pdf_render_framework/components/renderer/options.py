"""
Immutable renderer options.

`RendererOptions` gathers every user-facing setting of a renderer: where the
engine comes from, how long each readiness stage may take, how the PDF is
laid out and which diagnostics are collected. Instances are frozen; each
renderer keeps its own copy and derives per-job values from it.
"""
from typing import Any, Optional, Tuple, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from pdf_render_framework.components.renderer.jobs import (
    CustomEventSignal,
    ScriptWaitPolicy,
    VirtualTimeBudget,
    DEFAULT_ANIMATION_TIME_BUDGET_MS,
    DEFAULT_CUSTOM_EVENT_NAME,
    DEFAULT_JS_TIME_BUDGET_MS,
)
from pdf_render_framework.core.exceptions import ConfigurationError

if TYPE_CHECKING:
    from pdf_render_framework.core.config import ConfigurationManager

CONFIG_SECTION = "components.pdf_renderer"


class RendererOptions(BaseModel):
    """Settings for one renderer. Unset layout fields keep the engine's own defaults."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    # Logging
    print_logs: bool = False
    print_errors: bool = True

    # Engine
    chrome_binary: Optional[str] = None
    chrome_options: Tuple[str, ...] = ()
    remote_host: Optional[str] = None
    remote_port: int = 9222
    window_size: Optional[Tuple[int, int]] = None
    port_wait_timeout_ms: int = Field(default=30000, gt=0)

    # Readiness
    js_time_budget_ms: int = Field(default=DEFAULT_JS_TIME_BUDGET_MS, ge=0)
    animation_time_budget_ms: int = Field(default=DEFAULT_ANIMATION_TIME_BUDGET_MS, ge=0)
    delay_until_custom_event: bool = False
    custom_event_name: str = DEFAULT_CUSTOM_EVENT_NAME

    # Layout
    no_margins: bool = False
    landscape: Optional[bool] = None
    include_background: Optional[bool] = None
    prefer_css_page_size: Optional[bool] = None
    paper_width: Optional[str] = None
    paper_height: Optional[str] = None
    page_ranges: Optional[str] = None
    scale: Optional[float] = None
    display_header_footer: Optional[bool] = None
    header_template: Optional[str] = None
    footer_template: Optional[str] = None

    # Diagnostics
    trace_output: Optional[str] = None
    log_network_requests: bool = False
    log_console: bool = False

    @field_validator("paper_width", "paper_height", mode="before")
    @classmethod
    def _number_to_str(cls, value: Any) -> Any:
        # YAML turns `8.5` into a float; keep the string form.
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @property
    def script_wait_policy(self) -> ScriptWaitPolicy:
        if self.delay_until_custom_event:
            return CustomEventSignal(event_name=self.custom_event_name)
        return VirtualTimeBudget(budget_ms=self.js_time_budget_ms)

    @classmethod
    def from_config(cls, config: Optional['ConfigurationManager'] = None, **overrides: Any) -> 'RendererOptions':
        """
        Builds options from the `components.pdf_renderer` section of the configuration.

        Args:
            config (Optional[ConfigurationManager]): Source of defaults. None means built-in defaults only.
            **overrides: Values taking precedence over the configuration.

        Raises:
            ConfigurationError: If the merged settings fail validation.
        """
        settings = {}
        if config is not None:
            section = config.get(CONFIG_SECTION, {}) or {}
            if not isinstance(section, dict):
                raise ConfigurationError(f"'{CONFIG_SECTION}' must be a mapping, got {type(section).__name__}.")
            settings.update({k: v for k, v in section.items() if v is not None})
        settings.update(overrides)
        try:
            return cls(**settings)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid renderer options: {e}")
