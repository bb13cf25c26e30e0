"""SimChain utility helpers."""

from .log import init_logging, set_level, get_logger, sympy_to_text

__all__ = ["init_logging", "set_level", "get_logger", "sympy_to_text"]
