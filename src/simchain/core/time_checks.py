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

# -*- coding: utf-8 -*-
"""
Consistency checks for the cosmological time model.

  T1. Cosmology sanity: OmegaLambda > 0, Omega0 > 0, HubbleParam > 0;
      warn when OmegaLambda + Omega0 is not close to 1 (the closed form assumes
      a flat universe).
  T2. Symbolic check: the closed-form age integral t(a), differentiated with
      SymPy, must equal 1 / (a E(a)) with E(a) = sqrt(Omega0 a^-3 + OmegaLambda).

check_cosmology(...) -> None (raises NumericDomainError)
age_integral_residual(...) -> float (max relative residual on a grid)
"""

from __future__ import annotations

from typing import Iterable, Optional

import numpy as np
from sympy import Rational, diff, lambdify, sqrt, symbols
from sympy import log as sp_log

from .cosmo_time import Cosmology
from .errors import NumericDomainError
from simchain.utils.log import get_logger, sympy_to_text

log = get_logger()

_a, _OL, _O0 = symbols("a Omega_Lambda Omega_0", positive=True)


def age_integral_expr():
    """Closed-form t(a) in Hubble times, as written in the campaign notes."""
    return (2 / (3 * sqrt(_OL))) * sp_log(
        sqrt(_OL / _O0) * _a ** Rational(3, 2) + sqrt(1 + (_OL / _O0) * _a ** 3)
    )


def check_cosmology(cosmology: Cosmology, flat_tol: float = 1e-3) -> None:
    for name, val in (
        ("OmegaLambda", cosmology.omega_lambda),
        ("Omega0", cosmology.omega_0),
        ("HubbleParam", cosmology.hubble_param),
    ):
        if not val > 0.0:
            raise NumericDomainError(f"{name} must be > 0, got {val}")
    total = cosmology.omega_lambda + cosmology.omega_0
    if abs(total - 1.0) > flat_tol:
        log.warning(
            "OmegaLambda + Omega0 = {} is not flat; the closed-form age integral assumes flat LCDM",
            total,
        )


def age_integral_residual(
    cosmology: Cosmology,
    a_grid: Optional[Iterable[float]] = None,
) -> float:
    """
    Max relative difference between d t(a)/da (symbolic) and 1/(a E(a)) on `a_grid`.

    A value near machine precision confirms the closed form matches the
    Friedmann equation for this cosmology.
    """
    check_cosmology(cosmology)
    grid = np.asarray(
        list(a_grid) if a_grid is not None else np.geomspace(1e-4, 10.0, 64), dtype=float
    )
    if np.any(grid <= 0.0):
        raise NumericDomainError("Scale factor grid must be > 0.")

    t_expr = age_integral_expr()
    dt_da = diff(t_expr, _a)
    log.debug("Age integral t(a) = {}", sympy_to_text(t_expr))

    f = lambdify((_a, _OL, _O0), dt_da, modules="numpy")
    lhs = np.asarray(f(grid, cosmology.omega_lambda, cosmology.omega_0), dtype=float)
    rhs = 1.0 / (grid * np.sqrt(cosmology.omega_0 * grid ** -3 + cosmology.omega_lambda))
    residual = float(np.max(np.abs(lhs - rhs) / np.abs(rhs)))
    log.debug("Age integral derivative residual: {:.3e}", residual)
    return residual
