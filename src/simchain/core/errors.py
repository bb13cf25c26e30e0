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

"""Exception hierarchy for :mod:`simchain`.

Every error derives from :class:`SimChainError` and from the built-in
exception a caller would naturally catch (``ValueError`` for bad input,
``RuntimeError`` for file-level problems, ``ArithmeticError`` for numeric
domain violations).
"""
from __future__ import annotations

from typing import Optional


class SimChainError(Exception):
    """Base exception for simulation chain errors."""


# ---------------------------------------------------------------------------
# Configuration errors (sweep specification)
# ---------------------------------------------------------------------------

class ConfigurationError(SimChainError, ValueError):
    """Malformed campaign configuration or substitution specification."""


class MalformedSpecError(ConfigurationError):
    """Unparsable scalar, empty group, unknown combination mode, etc."""


class InconsistentLengthError(ConfigurationError):
    """Parameter lists that must co-vary have different lengths."""


class UnknownParameterError(ConfigurationError):
    """A substitution names a parameter the base parameter set does not define."""


# ---------------------------------------------------------------------------
# Cascade consistency errors
# ---------------------------------------------------------------------------

class CascadeError(SimChainError, ValueError):
    """Cascade linking failed; carries the offending stage index when known."""

    def __init__(self, message: str, stage_index: Optional[int] = None) -> None:
        if stage_index is not None:
            message = f"stage {stage_index}: {message}"
        super().__init__(message)
        self.stage_index = stage_index


class StageCountMismatchError(CascadeError):
    """Number of substitution sets does not match the number of cascade stages."""


class ReservedKeyCollisionError(CascadeError):
    """A parameter injected by the cascade linker is already set for a stage."""

    def __init__(self, key: str, stage_index: int) -> None:
        super().__init__(
            f"parameter {key!r} would be overwritten by cascade settings",
            stage_index=stage_index,
        )
        self.key = key


class ConversionError(CascadeError):
    """Elapsed time between two instants of incompatible kinds was requested."""


class MissingCosmologyError(ConversionError):
    """A scale-factor based conversion was requested without a cosmology."""


# ---------------------------------------------------------------------------
# Physical model / spatial / file errors
# ---------------------------------------------------------------------------

class NumericDomainError(SimChainError, ArithmeticError):
    """Non-physical input (negative density parameter, a <= 0, z <= -1, ...)."""


class EmptyReferenceSetError(SimChainError, ValueError):
    """Nearest-neighbour remap requested with no reference points."""


class SnapshotError(SimChainError, RuntimeError):
    """Snapshot file, attribute or dataset could not be read or written."""


__all__ = [
    "SimChainError",
    "ConfigurationError",
    "MalformedSpecError",
    "InconsistentLengthError",
    "UnknownParameterError",
    "CascadeError",
    "StageCountMismatchError",
    "ReservedKeyCollisionError",
    "ConversionError",
    "MissingCosmologyError",
    "NumericDomainError",
    "EmptyReferenceSetError",
    "SnapshotError",
]
