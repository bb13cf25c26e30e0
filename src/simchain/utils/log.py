# -*- coding: utf-8 -*-
#
# Copyright (C) 2025 Sangwook Lee @ Plusgenie Limited
# This file is part of SimChain (simulation chain sweeps).
#
# SimChain is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# SimChain is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with SimChain.  If not, see <https://www.gnu.org/licenses/>.
#
# Module: simchain.utils.log
# Purpose: Single, shared Loguru initializer for all modules.

from __future__ import annotations

import os
import sys
from typing import Optional

from loguru import logger

_INITIALIZED = False


def init_logging(
    level: Optional[str] = None,
    *,
    colorize: bool = True,
    backtrace: bool = False,
    diagnose: bool = False,
) -> logger.__class__:
    """
    Initialize one Loguru sink globally.

    Log level priority:
      1) `level` arg
      2) env SIMCHAIN_LOG_LEVEL
      3) env SIMCHAIN_DEBUG -> DEBUG
      4) default INFO

    Env knobs:
      - SIMCHAIN_LOG_LEVEL: INFO|DEBUG|WARNING|ERROR|CRITICAL
      - SIMCHAIN_DEBUG: if set (any non-empty), forces DEBUG (unless `level` provided)
    """
    # -------- choose level --------
    env_level = os.getenv("SIMCHAIN_LOG_LEVEL")
    if level:
        level_final = str(level).upper()
    elif env_level:
        level_final = env_level.upper()
    elif os.getenv("SIMCHAIN_DEBUG"):
        level_final = "DEBUG"
    else:
        level_final = "INFO"

    # -------- reset + add sink --------
    logger.remove()
    logger.add(
        sys.stderr,
        level=level_final,
        colorize=colorize,
        backtrace=backtrace,
        diagnose=diagnose,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <7}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
    )

    logger.debug("Logging initialized at level {}", level_final)
    global _INITIALIZED
    _INITIALIZED = True
    return logger


def set_level(level: str) -> None:
    """Re-initialize logging with a different level."""
    init_logging(level=level)


def get_logger(level: Optional[str] = None) -> logger.__class__:
    """
    Convenience accessor so callers can do:

        from simchain.utils.log import init_logging, get_logger
        init_logging()  # once, in entrypoint
        log = get_logger()
        log.info("Hello")
    """
    global _INITIALIZED
    if level:
        init_logging(level=level)
    elif not _INITIALIZED:
        init_logging()
    return logger


# --- helpers to format SymPy expressions for logs --------------------------------

def sympy_to_text(expr) -> str:
    """
    Best-effort textual representation of a SymPy expression for logs.
    Honors SIMCHAIN_SYMPY_LATEX=1 to prefer LaTeX (wrapped in $...$).
    Falls back to sstr()/str().
    """
    import sympy as sp

    if os.getenv("SIMCHAIN_SYMPY_LATEX", "0") == "1":
        return f"${sp.latex(expr)}$"
    from sympy.printing import sstr

    return sstr(expr)
