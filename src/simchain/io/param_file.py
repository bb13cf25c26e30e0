# -*- coding: utf-8 -*-
# Author: Sangwook Lee (aladdin@plusgenie.com)
# Date: 2026-10-19
#
# Plain-text simulation parameter files:
#
#   % comment
#   InitCondFile      ics/snap_000
#   TimeMax           1.0e-2
#   ComovingIntegrationOn  0
#
# One `Name value` pair per line, separated by whitespace. Everything after
# `%` is ignored. Values are parsed as int, then float, else string.

from __future__ import annotations

import os
from typing import Any, Dict, Mapping

from ..core.errors import ConfigurationError
from ..core.param_value import ParamValue
from simchain.utils.log import get_logger

log = get_logger()

COMMENT = "%"


def parse_param_text(text: str, source: str = "<string>") -> Dict[str, ParamValue]:
    params: Dict[str, ParamValue] = {}
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.split(COMMENT, 1)[0].strip()
        if not line:
            continue
        parts = line.split(None, 1)
        if len(parts) != 2:
            raise ConfigurationError(f"{source}:{lineno}: expected 'Name value', got {raw.strip()!r}")
        name, value = parts
        if name in params:
            raise ConfigurationError(f"{source}:{lineno}: parameter {name!r} defined twice")
        params[name] = ParamValue.from_str(value)
    return params


def read_param_file(path: str) -> Dict[str, ParamValue]:
    path = os.path.expanduser(os.path.expandvars(path))
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Parameter file not found: {path}")
    with open(path) as f:
        params = parse_param_text(f.read(), source=path)
    log.debug("Read {} parameters from {}", len(params), path)
    return params


def format_value(value: Any) -> str:
    if isinstance(value, (tuple, list)):
        return " ".join(format_value(v) for v in value)
    if isinstance(value, ParamValue):
        return str(value)
    return str(ParamValue.from_raw(value))


def write_param_file(path: str, params: Mapping[str, Any]) -> str:
    """Write `params` in insertion order; float values keep their original text."""
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    width = max((len(k) for k in params), default=0)
    with open(path, "w") as f:
        for name, value in params.items():
            f.write(f"{name:<{width}}  {format_value(value)}\n")
    log.debug("Wrote {} parameters to {}", len(params), path)
    return path
