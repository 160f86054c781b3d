"""
Value types describing a single render job and the stages it moves through.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Union

DEFAULT_JS_TIME_BUDGET_MS = 5000
DEFAULT_ANIMATION_TIME_BUDGET_MS = 5000
DEFAULT_CUSTOM_EVENT_NAME = "renderReady"


class RenderStage(str, Enum):
    """Stages of a render job, in the order they run."""
    IDLE = "idle"
    NAVIGATING = "navigating"
    AWAITING_LOAD = "awaiting_load"
    AWAITING_SCRIPT = "awaiting_script"
    AWAITING_ANIMATION_SETTLE = "awaiting_animation_settle"
    CAPTURING = "capturing"
    DONE = "done"


@dataclass(frozen=True)
class VirtualTimeBudget:
    """Let the engine fast-forward its clock by `budget_ms`, pausing while fetches are pending."""
    budget_ms: int = DEFAULT_JS_TIME_BUDGET_MS


@dataclass(frozen=True)
class CustomEventSignal:
    """Wait until the page dispatches the DOM event `event_name`."""
    event_name: str = DEFAULT_CUSTOM_EVENT_NAME


ScriptWaitPolicy = Union[VirtualTimeBudget, CustomEventSignal]


@dataclass(frozen=True)
class RenderJob:
    """
    Everything the readiness controller needs to turn one URL into a PDF.

    Attributes:
        url (str): Page to render.
        print_options (Dict[str, Any]): Protocol-native `Page.printToPDF` parameters.
        script_wait (ScriptWaitPolicy): How to decide the page's scripts are done.
        animation_time_budget_ms (int): Ceiling for the animation-settle stage.
    """
    url: str
    print_options: Dict[str, Any] = field(default_factory=dict)
    script_wait: ScriptWaitPolicy = field(default_factory=VirtualTimeBudget)
    animation_time_budget_ms: int = DEFAULT_ANIMATION_TIME_BUDGET_MS

    @property
    def delay_until_custom_event(self) -> bool:
        return isinstance(self.script_wait, CustomEventSignal)
