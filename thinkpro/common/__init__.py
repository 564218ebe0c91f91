"""
Common Utilities

Shared infrastructure used across the ThinkPro backend: logging, error
taxonomy, the injectable clock and authentication helpers.
"""

from thinkpro.common.logger import app_logger, get_logger
from thinkpro.common.clock import Clock, SystemClock, FrozenClock

__all__ = [
    'app_logger',
    'get_logger',
    'Clock',
    'SystemClock',
    'FrozenClock',
]
