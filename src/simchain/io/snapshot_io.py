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
HDF5 snapshot access.

Snapshots follow the usual Gadget/Arepo layout: a `Header` group whose
attributes hold `Time`, `OmegaLambda`, `Omega0` and `HubbleParam`, and one
group per particle type holding datasets such as `PartType0/Coordinates`.
"""
from __future__ import annotations

import glob
import os
import shutil
from typing import List, Optional

import h5py
import numpy as np

from ..config.settings import SimChainSettings, SnapshotLayout
from ..core.errors import SnapshotError
from ..core.remap import remap_abundances_and_energies
from simchain.utils.log import get_logger

log = get_logger()


def _scalar(value) -> float:
    arr = np.asarray(value)
    if arr.size != 1:
        raise SnapshotError(f"Expected a scalar header attribute, got shape {arr.shape}")
    return float(arr.reshape(-1)[0])


def read_header_attr(path: str, name: str, header_group: str = "Header") -> float:
    """Scalar header attribute; KeyError when the attribute is absent."""
    if not os.path.isfile(path):
        raise SnapshotError(f"Snapshot not found: {path}")
    with h5py.File(path, "r") as handle:
        if header_group not in handle:
            raise KeyError(name)
        attrs = handle[header_group].attrs
        if name not in attrs:
            raise KeyError(name)
        return _scalar(attrs[name])


def read_dataset(path: str, dataset: str) -> np.ndarray:
    if not os.path.isfile(path):
        raise SnapshotError(f"Snapshot not found: {path}")
    with h5py.File(path, "r") as handle:
        if dataset not in handle:
            raise SnapshotError(f"Dataset {dataset!r} missing in {path}")
        return np.asarray(handle[dataset][...])


def write_dataset(handle: "h5py.File", dataset: str, data: np.ndarray) -> None:
    """Replace `dataset` in an open file (created, with parent groups, if absent)."""
    if dataset in handle:
        del handle[dataset]
    handle.create_dataset(dataset, data=data)


class Hdf5AnchorReader:
    """AnchorReader over HDF5 snapshot files or folders of snapshot chunks."""

    def __init__(self, base_folder: str = ".", layout: Optional[SnapshotLayout] = None) -> None:
        self.base_folder = base_folder
        self.layout = layout or SnapshotLayout()

    def _path(self, anchor: str) -> str:
        return anchor if os.path.isabs(anchor) else os.path.join(self.base_folder, anchor)

    def anchor_files(self, anchor: str) -> List[str]:
        path = self._path(anchor)
        if os.path.isdir(path):
            files = sorted(glob.glob(os.path.join(path, f"*{self.layout.suffix}")))
            log.debug("Anchor {} is a folder with {} snapshot files", anchor, len(files))
            return files
        if os.path.isfile(path):
            return [path]
        raise SnapshotError(f"Anchor snapshot not found: {path}")

    def header_attr(self, path: str, name: str) -> float:
        return read_header_attr(path, name, self.layout.header_group)


def latest_snapshot(folder: str, pattern: str = "snap_*.hdf5") -> str:
    """Last snapshot in `folder` by name (snap_000, snap_001, ...)."""
    files = sorted(glob.glob(os.path.join(folder, pattern)))
    if not files:
        raise SnapshotError(f"No snapshots matching {pattern!r} in {folder}")
    return files[-1]


def copy_abundances(
    previous_output: str,
    coordinates_snapshot: str,
    output: str,
    settings: Optional[SimChainSettings] = None,
) -> str:
    """
    Write `output`: a copy of `coordinates_snapshot` whose abundances and
    internal energies are carried over from the nearest cells of
    `previous_output`.

    `previous_output` may be a snapshot file or a run output folder, in which
    case its latest snapshot is used.
    """
    settings = settings or SimChainSettings()
    layout = settings.snapshot
    if os.path.isdir(previous_output):
        previous_output = latest_snapshot(previous_output, layout.snapshot_glob)
    log.info("Carrying abundances from {} onto {}", previous_output, coordinates_snapshot)

    ref_coords = read_dataset(previous_output, layout.coordinates)
    ref_abund = read_dataset(previous_output, layout.abundances)
    ref_energy = read_dataset(previous_output, layout.energies)
    tgt_coords = read_dataset(coordinates_snapshot, layout.coordinates)
    tgt_energy = read_dataset(coordinates_snapshot, layout.energies)

    abundances, energies = remap_abundances_and_energies(
        ref_coords,
        ref_abund,
        ref_energy,
        tgt_coords,
        tgt_energy,
        leaf_size=settings.remap.leaf_size,
        brute_force_max_pairs=settings.remap.brute_force_max_pairs,
    )

    out_dir = os.path.dirname(os.path.abspath(output))
    os.makedirs(out_dir, exist_ok=True)
    # written next to `output` and moved into place only once complete
    partial = output + ".partial"
    try:
        shutil.copyfile(coordinates_snapshot, partial)
        with h5py.File(partial, "r+") as handle:
            write_dataset(handle, layout.abundances, abundances.astype(ref_abund.dtype, copy=False))
            write_dataset(handle, layout.energies, energies.astype(tgt_energy.dtype, copy=False))
        os.replace(partial, output)
    except OSError as exc:
        raise SnapshotError(f"Could not write {output}: {exc}") from exc
    finally:
        if os.path.exists(partial):
            os.remove(partial)
    log.success("Snapshot with carried-over abundances written: {}", output)
    return output
