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
# Physical instants and elapsed time between them. This module provides:
#   - Instant representations (absolute time, redshift, scale factor)
#   - The flat-LCDM closed-form age integral t(a)
#   - elapsed_seconds() between two instants, optionally with a cosmology

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from .errors import ConversionError, MalformedSpecError, MissingCosmologyError, NumericDomainError

# ---- Physical constants ----
HUBBLE_H1 = 3.2407789e-18   # s^-1, H0 for h = 1 (100 km/s/Mpc)
YEAR_S = 3.156e7            # s

_UNIT_IN_YEARS = {"yr": 1.0, "kyr": 1.0e3, "Myr": 1.0e6, "Gyr": 1.0e9}


@dataclass(frozen=True)
class AbsoluteTime:
    """Physical time in seconds."""
    seconds: float


@dataclass(frozen=True)
class Redshift:
    """Cosmological redshift z (dimensionless, z > -1)."""
    z: float


@dataclass(frozen=True)
class ScaleFactor:
    """Scale factor a (dimensionless, a = 1 today)."""
    a: float


Instant = Union[AbsoluteTime, Redshift, ScaleFactor]


@dataclass(frozen=True)
class Cosmology:
    """Flat-LCDM background (all dimensionless)."""
    omega_lambda: float
    omega_0: float
    hubble_param: float

    def hubble_rate_s(self) -> float:
        """H0 in s^-1."""
        return HUBBLE_H1 * self.hubble_param


def instant_from_raw(raw: Any) -> Instant:
    """
    Parse an instant from its campaign-file form.

    Accepted: an Instant, or a one-entry table `{time = ...}`,
    `{redshift = ...}` or `{scale_factor = ...}`.
    """
    if isinstance(raw, (AbsoluteTime, Redshift, ScaleFactor)):
        return raw
    if not isinstance(raw, Mapping) or len(raw) != 1:
        raise MalformedSpecError(
            f"An instant must be one of {{time=..}}, {{redshift=..}}, {{scale_factor=..}}; got {raw!r}"
        )
    (tag, value), = raw.items()
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedSpecError(f"Instant value for {tag!r} must be a number, got {value!r}")
    tag_norm = str(tag).strip().lower()
    if tag_norm in ("time", "absolute_time", "seconds"):
        return AbsoluteTime(float(value))
    if tag_norm in ("redshift", "z"):
        return Redshift(float(value))
    if tag_norm in ("scale_factor", "scalefactor", "a"):
        return ScaleFactor(float(value))
    raise MalformedSpecError(f"Unknown instant kind {tag!r}")


def redshift_to_scale_factor(z: float) -> float:
    """a = 1 / (1 + z)."""
    if z <= -1.0:
        raise NumericDomainError(f"Redshift must be > -1, got {z}")
    return 1.0 / (1.0 + z)


def _scale_factor_of(instant: Instant) -> Optional[float]:
    if isinstance(instant, ScaleFactor):
        return instant.a
    if isinstance(instant, Redshift):
        return redshift_to_scale_factor(instant.z)
    return None


def age_in_hubble_times(a: float, cosmology: Cosmology) -> float:
    r"""
    Cosmic time since a = 0 in units of 1/H0 for flat LCDM:
    \[
        t(a) = \frac{2}{3\sqrt{\Omega_\Lambda}}
               \ln\!\Big(\sqrt{\Omega_\Lambda/\Omega_0}\,a^{3/2}
               + \sqrt{1 + (\Omega_\Lambda/\Omega_0)\,a^3}\Big).
    \]
    With x = sqrt(OmegaLambda/Omega0) a^1.5 the log term is asinh(x), which is
    evaluated directly to stay accurate for small a.
    """
    if a <= 0.0 or not math.isfinite(a):
        raise NumericDomainError(f"Scale factor a must be finite and > 0, got {a}")
    ol, o0 = cosmology.omega_lambda, cosmology.omega_0
    if not (ol > 0.0 and o0 > 0.0):
        raise NumericDomainError(
            f"Age integral needs OmegaLambda > 0 and Omega0 > 0 (got {ol}, {o0}): "
            "log argument is not real"
        )
    x = math.sqrt(ol / o0) * a ** 1.5
    return (2.0 / (3.0 * math.sqrt(ol))) * math.asinh(x)


def time_between_scale_factors_s(a1: float, a2: float, cosmology: Cosmology) -> float:
    """Elapsed physical time t(a2) - t(a1) in seconds."""
    if cosmology.hubble_param <= 0.0:
        raise NumericDomainError(f"HubbleParam must be > 0, got {cosmology.hubble_param}")
    diff_h = age_in_hubble_times(a2, cosmology) - age_in_hubble_times(a1, cosmology)
    return diff_h / cosmology.hubble_rate_s()


def elapsed_seconds(
    start: Instant,
    end: Instant,
    cosmology: Optional[Cosmology] = None,
) -> float:
    """
    Elapsed seconds from `start` to `end` (negative if `end` is earlier).

    AbsoluteTime pairs subtract directly. Redshifts are converted to scale
    factors; scale-factor pairs need a cosmology. Mixing absolute time with a
    redshift/scale factor is a ConversionError.
    """
    if isinstance(start, AbsoluteTime) and isinstance(end, AbsoluteTime):
        return end.seconds - start.seconds
    a1, a2 = _scale_factor_of(start), _scale_factor_of(end)
    if a1 is None or a2 is None:
        raise ConversionError(
            f"Cannot convert between {type(start).__name__} and {type(end).__name__}"
        )
    if cosmology is None:
        raise MissingCosmologyError(
            f"Elapsed time from {start} to {end} needs a cosmology (OmegaLambda, Omega0, HubbleParam)"
        )
    return time_between_scale_factors_s(a1, a2, cosmology)


def seconds_to_unit(seconds: float, unit: str, year_in_s: float = YEAR_S) -> float:
    """Convert seconds to `s`, `yr`, `kyr`, `Myr` or `Gyr`."""
    if unit == "s":
        return seconds
    try:
        years = _UNIT_IN_YEARS[unit]
    except KeyError as exc:
        raise MalformedSpecError(f"Unknown time unit {unit!r}") from exc
    return seconds / (year_in_s * years)


def describe(instant: Instant) -> str:
    if isinstance(instant, AbsoluteTime):
        return f"t={instant.seconds:.6g} s"
    if isinstance(instant, Redshift):
        return f"z={instant.z:.6g}"
    return f"a={instant.a:.6g}"
