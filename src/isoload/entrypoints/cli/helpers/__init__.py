"""CLI helpers for isoload.

Utilities used by the command-line interface: NAME=LEVEL parsing for logger
overrides and stderr message emitters with emoji to ASCII fallbacks.
"""

from .log_level_parser import parse_log_level
from .messages import error, success, warn

__all__ = ["error", "parse_log_level", "success", "warn"]
