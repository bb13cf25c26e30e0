# -*- coding: utf-8 -*-

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

# Author: Sangwook Lee (aladdin@plusgenie.com)
# Date: 2026-10-19
#
# Tagged scalar used for every simulation parameter (base configs,
# substitutions and injected cascade values).

from __future__ import annotations

import functools
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from .errors import MalformedSpecError

Scalar = Union[str, int, float, bool]


class ParamKind(str, Enum):
    STR = "str"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"


_KIND_ORDER = {ParamKind.STR: 0, ParamKind.INT: 1, ParamKind.FLOAT: 2, ParamKind.BOOL: 3}


class FloatLiteral(float):
    """A float that remembers the literal text it was parsed from (TOML parse_float hook)."""

    text: str

    def __new__(cls, text: str) -> "FloatLiteral":
        obj = super().__new__(cls, text)
        obj.text = text
        return obj


def _same_number(x: float, y: float) -> bool:
    if math.isnan(x) and math.isnan(y):
        return True
    return x == y


@functools.total_ordering
@dataclass(frozen=True)
class ParamValue:
    """
    One parameter value: string, integer, float (with original text) or boolean.

    Floats keep the text they were read from so writing a parameter file back
    does not reformat `1.0e-3` as `0.001`. Equality and ordering are
    structural over (kind, value, text).
    """

    kind: ParamKind
    value: Scalar
    text: Optional[str] = None

    def __post_init__(self) -> None:
        kind = ParamKind(self.kind)
        object.__setattr__(self, "kind", kind)
        v = self.value
        if kind == ParamKind.BOOL:
            if not isinstance(v, bool):
                raise MalformedSpecError(f"bool parameter needs a bool, got {v!r}")
        elif kind == ParamKind.INT:
            if isinstance(v, bool) or not isinstance(v, int):
                raise MalformedSpecError(f"int parameter needs an int, got {v!r}")
        elif kind == ParamKind.FLOAT:
            if isinstance(v, bool) or not isinstance(v, (int, float)):
                raise MalformedSpecError(f"float parameter needs a number, got {v!r}")
            num = float(v)
            object.__setattr__(self, "value", num)
            if self.text is None:
                object.__setattr__(self, "text", repr(num))
            else:
                try:
                    parsed = float(self.text)
                except ValueError as exc:
                    raise MalformedSpecError(f"float text {self.text!r} is not a number") from exc
                if not _same_number(parsed, num):
                    raise MalformedSpecError(
                        f"float text {self.text!r} does not match value {num!r}"
                    )
        elif not isinstance(v, str):
            raise MalformedSpecError(f"str parameter needs a str, got {v!r}")
        if kind != ParamKind.FLOAT and self.text is not None:
            raise MalformedSpecError("only float parameters carry original text")

    # -- constructors -----------------------------------------------------

    @classmethod
    def string(cls, value: str) -> "ParamValue":
        return cls(ParamKind.STR, value)

    @classmethod
    def integer(cls, value: int) -> "ParamValue":
        return cls(ParamKind.INT, value)

    @classmethod
    def floating(cls, value: float, text: Optional[str] = None) -> "ParamValue":
        return cls(ParamKind.FLOAT, value, text)

    @classmethod
    def boolean(cls, value: bool) -> "ParamValue":
        return cls(ParamKind.BOOL, value)

    @classmethod
    def from_raw(cls, raw: Any) -> "ParamValue":
        """Convert a native scalar (as produced by the TOML/JSON readers)."""
        if isinstance(raw, ParamValue):
            return raw
        if isinstance(raw, bool):
            return cls.boolean(raw)
        if isinstance(raw, int):
            return cls.integer(raw)
        if isinstance(raw, float):
            return cls.floating(raw, getattr(raw, "text", None))
        if isinstance(raw, str):
            return cls.string(raw)
        raise MalformedSpecError(f"Unsupported parameter value {raw!r} ({type(raw).__name__})")

    @classmethod
    def from_str(cls, text: str) -> "ParamValue":
        """Parse parameter-file text: integer, then float, else string."""
        s = text.strip()
        try:
            return cls.integer(int(s))
        except ValueError:
            pass
        try:
            return cls.floating(float(s), s)
        except ValueError:
            return cls.string(s)

    # -- accessors --------------------------------------------------------

    def to_native(self) -> Scalar:
        return self.value

    def as_float(self) -> float:
        if self.kind not in (ParamKind.INT, ParamKind.FLOAT):
            raise MalformedSpecError(f"parameter {self} is not numeric")
        return float(self.value)

    def __str__(self) -> str:
        if self.kind == ParamKind.FLOAT:
            return str(self.text)
        if self.kind == ParamKind.BOOL:
            return "true" if self.value else "false"
        return str(self.value)

    def _sort_key(self) -> tuple:
        return (_KIND_ORDER[self.kind], self.value, self.text or "")

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ParamValue):
            return NotImplemented
        return self._sort_key() < other._sort_key()
