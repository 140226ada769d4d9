"""
FORMCOACH Shared Module

Common utilities used across the evaluation core.
"""

from .utils import setup_logger, resolve_log_level, log_execution_time, get_now, get_now_iso

__all__ = [
    'setup_logger',
    'resolve_log_level',
    'log_execution_time',
    'get_now',
    'get_now_iso',
]
