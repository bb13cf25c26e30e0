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
Cascade linker.

A cascade is an ordered chain of runs where run i continues the physical state
of anchor snapshot i. For each stage the linker injects:

  - the input-path list (anchor files, relative to the campaign base folder),
  - the stage duration up to the next anchor (or the final instant),
  - for comoving runs, the anchor scale factor and Hubble parameter.

Injected keys must not already be set by the sweep; a collision raises
ReservedKeyCollisionError naming the key and stage. Stages must be consumed in
order: stage i starts from the output of stage i-1.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple, Union

from simchain.config.settings import SimChainSettings
from .cosmo_time import (
    AbsoluteTime,
    Cosmology,
    Instant,
    ScaleFactor,
    describe,
    elapsed_seconds,
    instant_from_raw,
    seconds_to_unit,
)
from .errors import (
    ConversionError,
    MalformedSpecError,
    NumericDomainError,
    ReservedKeyCollisionError,
    SnapshotError,
    StageCountMismatchError,
)
from .param_value import ParamValue
from .substitutions import CombinationMode, SubstitutionSpec, expand
from .time_checks import check_cosmology
from simchain.utils.log import get_logger

log = get_logger()

StageValue = Union[ParamValue, Tuple[ParamValue, ...]]


@dataclass(frozen=True)
class CascadeSpec:
    """Ordered anchor snapshots, final instant and whether anchors are comoving."""

    anchors: Tuple[str, ...]
    final_instant: Instant
    comoving: bool = False

    def __post_init__(self) -> None:
        anchors = tuple(str(a) for a in self.anchors)
        if not anchors:
            raise MalformedSpecError("A cascade needs at least one anchor snapshot.")
        object.__setattr__(self, "anchors", anchors)

    @property
    def stage_count(self) -> int:
        return len(self.anchors)

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "CascadeSpec":
        """Parse the `[cascade]` table of a campaign file."""
        snapshots = raw.get("snapshots", raw.get("anchors"))
        if not isinstance(snapshots, (list, tuple)) or not all(isinstance(s, str) for s in snapshots):
            raise MalformedSpecError("cascade.snapshots must be a list of snapshot paths.")
        if "final_time" not in raw:
            raise MalformedSpecError("cascade.final_time is required.")
        comoving = raw.get("comoving", raw.get("original_simulation_comoving", False))
        if not isinstance(comoving, bool):
            raise MalformedSpecError(f"cascade.comoving must be a bool, got {comoving!r}")
        return cls(tuple(snapshots), instant_from_raw(raw["final_time"]), comoving)


class AnchorReader(Protocol):
    """Snapshot metadata access needed by the linker."""

    def anchor_files(self, anchor: str) -> List[str]:
        """Snapshot files making up `anchor` (a file, or a folder of chunk files)."""
        ...

    def header_attr(self, path: str, name: str) -> float:
        """Scalar header attribute; raises KeyError when absent."""
        ...


@dataclass(frozen=True)
class StageSpan:
    begin: Instant
    end: Instant
    seconds: float


@dataclass(frozen=True)
class StageConfiguration:
    """Final parameters of one cascade stage (read-only)."""

    index: int
    params: Mapping[str, Any]
    span: StageSpan
    files: Tuple[str, ...] = ()

    def __getitem__(self, key: str) -> Any:
        return self.params[key]


# ---------------------------------------------------------------------------
# Stage list helpers
# ---------------------------------------------------------------------------

def insert_or_fail(
    stages: Sequence[Mapping[str, Any]],
    stage_index: int,
    key: str,
    value: Any,
) -> List[Dict[str, Any]]:
    """
    Return a new stage list with `key = value` set for stage `stage_index`.

    Raises ReservedKeyCollisionError if that stage already defines `key`.
    """
    if key in stages[stage_index]:
        raise ReservedKeyCollisionError(key, stage_index)
    out = [dict(s) for s in stages]
    out[stage_index][key] = value
    return out


def broadcast_stages(base_configs: Sequence[Mapping[str, Any]], stage_count: int) -> List[Dict[str, Any]]:
    """A single base config is repeated for every stage; otherwise lengths must match."""
    if len(base_configs) == 1:
        return [dict(base_configs[0]) for _ in range(stage_count)]
    if len(base_configs) != stage_count:
        raise StageCountMismatchError(
            "Number of substitution sims and number of cascade files do not match: "
            f"{len(base_configs)} vs {stage_count}"
        )
    return [dict(c) for c in base_configs]


# ---------------------------------------------------------------------------
# Snapshot metadata
# ---------------------------------------------------------------------------

def _files_for(reader: AnchorReader, spec: CascadeSpec, i: int) -> List[str]:
    files = list(reader.anchor_files(spec.anchors[i]))
    if not files:
        raise SnapshotError(f"stage {i}: no snapshot files found for anchor {spec.anchors[i]!r}")
    return files


def _read_attr(reader: AnchorReader, path: str, name: str, stage_index: int) -> float:
    try:
        return float(reader.header_attr(path, name))
    except KeyError as exc:
        raise SnapshotError(f"stage {stage_index}: header attribute {name!r} missing in {path}") from exc


def read_cosmology(reader: AnchorReader, path: str) -> Optional[Cosmology]:
    """Cosmology from snapshot header; None if any of the three attributes is absent."""
    try:
        return Cosmology(
            omega_lambda=float(reader.header_attr(path, "OmegaLambda")),
            omega_0=float(reader.header_attr(path, "Omega0")),
            hubble_param=float(reader.header_attr(path, "HubbleParam")),
        )
    except KeyError as exc:
        log.debug("No cosmology in {} ({}); comoving conversion disabled", path, exc)
        return None


def read_anchor_instants(
    spec: CascadeSpec,
    reader: AnchorReader,
    snapshot_time_in_s: float = 1.0,
) -> List[Instant]:
    """Anchor instants followed by the final instant (stage_count + 1 entries)."""
    instants: List[Instant] = []
    for i in range(spec.stage_count):
        representative = _files_for(reader, spec, i)[0]
        value = _read_attr(reader, representative, "Time", i)
        if spec.comoving:
            instants.append(ScaleFactor(value))
        else:
            instants.append(AbsoluteTime(value * snapshot_time_in_s))
    instants.append(spec.final_instant)
    assert len(instants) == spec.stage_count + 1
    return instants


# ---------------------------------------------------------------------------
# Linking
# ---------------------------------------------------------------------------

def _stage_seconds(i: int, begin: Instant, end: Instant, cosmology: Optional[Cosmology]) -> float:
    try:
        return elapsed_seconds(begin, end, cosmology)
    except ConversionError as exc:
        raise type(exc)(str(exc), stage_index=i) from exc
    except NumericDomainError as exc:
        raise NumericDomainError(f"stage {i}: {exc}") from exc


def link_cascade(
    base_configs: Sequence[Mapping[str, Any]],
    spec: CascadeSpec,
    reader: AnchorReader,
    *,
    base_folder: str = ".",
    settings: Optional[SimChainSettings] = None,
) -> List[StageConfiguration]:
    """
    Merge cascade-derived parameters into the per-stage configurations.

    `base_configs` has length 1 (broadcast to every stage) or exactly
    `spec.stage_count`. The result is ordered like the anchors and is the
    authoritative stage sequence; nothing is returned if any stage fails.
    """
    settings = settings or SimChainSettings()
    keys = settings.cascade_keys
    time_cfg = settings.time

    stages = broadcast_stages(base_configs, spec.stage_count)
    instants = read_anchor_instants(spec, reader, time_cfg.snapshot_time_in_s)
    files_per_stage = [_files_for(reader, spec, i) for i in range(spec.stage_count)]
    cosmology = read_cosmology(reader, files_per_stage[0][0]) if spec.comoving else None
    if cosmology is not None:
        check_cosmology(cosmology)

    spans: List[StageSpan] = []
    for i, (begin, end) in enumerate(zip(instants, instants[1:])):
        files = files_per_stage[i]
        seconds = _stage_seconds(i, begin, end, cosmology)
        duration = seconds_to_unit(seconds, time_cfg.unit, time_cfg.year_in_s)
        log.info("stage {}: {} -> {} ({:.5f} {})", i, describe(begin), describe(end), duration, time_cfg.unit)
        spans.append(StageSpan(begin, end, seconds))

        rel_paths = tuple(
            ParamValue.string(os.path.relpath(f, base_folder)) for f in files
        )
        stages = insert_or_fail(stages, i, keys.input_paths, rel_paths)
        stages = insert_or_fail(stages, i, keys.final_time, ParamValue.string(f"{duration} {time_cfg.unit}"))
        if spec.comoving:
            a = _read_attr(reader, files[0], "Time", i)
            stages = insert_or_fail(stages, i, keys.scale_factor, ParamValue.floating(a))
            try:
                h = float(reader.header_attr(files[0], "HubbleParam"))
            except KeyError:
                log.debug("stage {}: no HubbleParam in {}; {} not injected", i, files[0], keys.hubble_param)
            else:
                stages = insert_or_fail(stages, i, keys.hubble_param, ParamValue.floating(h))

    return [
        StageConfiguration(
            index=i,
            params=MappingProxyType(stage),
            span=spans[i],
            files=tuple(files_per_stage[i]),
        )
        for i, stage in enumerate(stages)
    ]


def cascade_substitutions(
    substitutions: SubstitutionSpec,
    mode: CombinationMode,
    spec: CascadeSpec,
    reader: AnchorReader,
    *,
    base_folder: str = ".",
    settings: Optional[SimChainSettings] = None,
) -> List[StageConfiguration]:
    """Expand the sweep and link it to the cascade in one step."""
    runs = expand(substitutions, mode)
    return link_cascade(runs, spec, reader, base_folder=base_folder, settings=settings)
