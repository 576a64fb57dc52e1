"""Utility modules"""

from .logging import log_monitor_event, setup_logging
from .rounding import round_half_up

__all__ = ["log_monitor_event", "round_half_up", "setup_logging"]
