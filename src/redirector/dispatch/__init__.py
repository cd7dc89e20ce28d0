# Dispatch engine
from .engine import (
    CYCLE_RESET_THRESHOLD,
    DispatchOutcome,
    dispatch,
    is_eligible,
    record_dispatch,
    reset_cycle,
    select_page,
)
from .urls import TRACKING_PARAM, build_redirect_url

__all__ = [
    "CYCLE_RESET_THRESHOLD",
    "DispatchOutcome",
    "dispatch",
    "is_eligible",
    "record_dispatch",
    "reset_cycle",
    "select_page",
    "TRACKING_PARAM",
    "build_redirect_url",
]
