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

"""
Nearest-neighbour transfer of per-cell fields between snapshots.

Precondition: reference and target describe the same physical field in the
same units and coordinate frame. Only geometry is used for matching; particle
ordering and ids are ignored, and units are not checked.
"""
from __future__ import annotations

from typing import Tuple

import numpy as np

from .errors import EmptyReferenceSetError
from .kd_tree import KdTree, as_points, nearest_brute_force
from simchain.utils.log import get_logger

log = get_logger()

DEFAULT_LEAF_SIZE = 8
DEFAULT_BRUTE_FORCE_MAX_PAIRS = 4096


def nearest_indices(
    reference_coords,
    target_coords,
    *,
    leaf_size: int = DEFAULT_LEAF_SIZE,
    brute_force_max_pairs: int = DEFAULT_BRUTE_FORCE_MAX_PAIRS,
) -> np.ndarray:
    """
    Index of the nearest reference point for each target point.

    Small problems (N*M <= brute_force_max_pairs) use the naive O(N*M) search;
    larger ones build a k-d tree, O((N + M) log N).
    """
    if np.size(reference_coords) == 0:
        raise EmptyReferenceSetError("Cannot remap from an empty reference set.")
    ref = as_points(reference_coords, "reference coordinates")
    tgt = as_points(target_coords, "target coordinates")
    n, m = ref.shape[0], tgt.shape[0]
    if m == 0:
        return np.empty(0, dtype=np.int64)
    if n * m <= brute_force_max_pairs:
        log.debug("Nearest-neighbour search (brute force): N={}, M={}", n, m)
        return nearest_brute_force(ref, tgt)
    log.debug("Nearest-neighbour search (k-d tree, leaf_size={}): N={}, M={}", leaf_size, n, m)
    return KdTree(ref, leaf_size=leaf_size).query(tgt)


def remap_field(
    reference_coords,
    reference_field,
    target_coords,
    *,
    leaf_size: int = DEFAULT_LEAF_SIZE,
    brute_force_max_pairs: int = DEFAULT_BRUTE_FORCE_MAX_PAIRS,
) -> np.ndarray:
    """
    Copy each target point's field row from its nearest reference point.

    Shapes: reference_coords (N, 3), reference_field (N, K) or (N,),
    target_coords (M, 3) -> (M, K) or (M,). No interpolation: every output row
    is one of the reference rows.
    """
    if np.size(reference_coords) == 0:
        raise EmptyReferenceSetError("Cannot remap from an empty reference set.")
    field = np.asarray(reference_field)
    n_ref = as_points(reference_coords, "reference coordinates").shape[0]
    if field.ndim == 0 or field.shape[0] != n_ref:
        raise ValueError(
            f"reference_field has {field.shape[0] if field.ndim else 0} rows, expected {n_ref}"
        )
    idx = nearest_indices(
        reference_coords,
        target_coords,
        leaf_size=leaf_size,
        brute_force_max_pairs=brute_force_max_pairs,
    )
    return field[idx]


def remap_abundances_and_energies(
    reference_coords,
    reference_abundances,
    reference_energies,
    target_coords,
    target_energies,
    *,
    leaf_size: int = DEFAULT_LEAF_SIZE,
    brute_force_max_pairs: int = DEFAULT_BRUTE_FORCE_MAX_PAIRS,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Carry chemical state from a finished stage onto the next stage's cells.

    Abundances are copied from the nearest reference cell; the internal energy
    of each target cell is raised to the nearest reference energy if that is
    larger, never lowered.
    """
    ref_abund = np.asarray(reference_abundances, dtype=float)
    ref_energy = np.asarray(reference_energies, dtype=float).reshape(-1)
    tgt_energy = np.asarray(target_energies, dtype=float).reshape(-1)
    if np.size(reference_coords) == 0:
        raise EmptyReferenceSetError("Cannot remap from an empty reference set.")
    n_ref = as_points(reference_coords, "reference coordinates").shape[0]
    n_tgt = as_points(target_coords, "target coordinates").shape[0]
    if ref_abund.shape[0] != n_ref or ref_energy.shape[0] != n_ref:
        raise ValueError("reference abundances/energies must have one row per reference point")
    if tgt_energy.shape[0] != n_tgt:
        raise ValueError("target energies must have one entry per target point")

    idx = nearest_indices(
        reference_coords,
        target_coords,
        leaf_size=leaf_size,
        brute_force_max_pairs=brute_force_max_pairs,
    )
    abundances = ref_abund[idx]
    energies = np.maximum(tgt_energy, ref_energy[idx])
    log.debug(
        "Remapped {} abundance rows; {} cells took the reference energy",
        n_tgt,
        int(np.count_nonzero(ref_energy[idx] > tgt_energy)),
    )
    return abundances, energies
