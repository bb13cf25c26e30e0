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
Substitution expander: declarative sweep specification -> ordered per-run maps.

Three combination modes are supported:

  none     every list-valued parameter has the same length L; the lists are
           zipped into L runs (scalars are broadcast).
  all      every parameter is its own axis; runs are the cartesian product over
           axes sorted by parameter name.
  grouped  caller-declared groups of names co-vary as one axis each; names not
           listed in any group become singleton axes, appended in sorted order,
           unless the name is a list exactly as long as the number of declared
           combinations, in which case it co-varies with them.

The first axis varies slowest, so `a=[1,2], b=[3,4]` in `all` mode yields
(1,3), (1,4), (2,3), (2,4).
"""
from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import InconsistentLengthError, MalformedSpecError, UnknownParameterError
from .param_value import ParamValue
from simchain.utils.log import get_logger

log = get_logger()

SpecEntry = Union[ParamValue, Tuple[ParamValue, ...]]
Substitution = Dict[str, ParamValue]


@dataclass(frozen=True)
class SubstitutionSpec:
    """Parameter name -> single value, or ordered tuple of values (varies across runs)."""

    entries: Mapping[str, SpecEntry] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "SubstitutionSpec":
        """Build from native TOML/JSON values; rejects tables, nested and empty lists."""
        if not isinstance(raw, Mapping):
            raise MalformedSpecError("Substitutions must be a table of name -> value(s).")
        entries: Dict[str, SpecEntry] = {}
        for name, value in raw.items():
            if not isinstance(name, str) or not name:
                raise MalformedSpecError(f"Invalid parameter name: {name!r}")
            if isinstance(value, (list, tuple)):
                if len(value) == 0:
                    raise MalformedSpecError(f"Parameter {name!r} has an empty value list.")
                items = []
                for item in value:
                    if isinstance(item, (list, tuple, dict)):
                        raise MalformedSpecError(f"Parameter {name!r}: nested lists/tables are not allowed.")
                    items.append(ParamValue.from_raw(item))
                entries[name] = tuple(items)
            elif isinstance(value, Mapping):
                raise MalformedSpecError(f"Parameter {name!r}: tables are not valid values.")
            else:
                entries[name] = ParamValue.from_raw(value)
        return cls(entries)

    @property
    def names(self) -> List[str]:
        return list(self.entries)

    def is_varying(self, name: str) -> bool:
        return isinstance(self.entries[name], tuple)

    def length_of(self, name: str) -> Optional[int]:
        value = self.entries[name]
        return len(value) if isinstance(value, tuple) else None

    def __len__(self) -> int:
        return len(self.entries)


class CombinationKind(str, Enum):
    NONE = "none"
    ALL = "all"
    GROUPED = "grouped"


@dataclass(frozen=True)
class CombinationMode:
    kind: CombinationKind = CombinationKind.NONE
    groups: Tuple[Tuple[str, ...], ...] = ()

    @classmethod
    def none(cls) -> "CombinationMode":
        return cls(CombinationKind.NONE)

    @classmethod
    def all(cls) -> "CombinationMode":
        return cls(CombinationKind.ALL)

    @classmethod
    def grouped(cls, groups: Iterable[Iterable[str]]) -> "CombinationMode":
        return cls(CombinationKind.GROUPED, tuple(tuple(g) for g in groups))

    @classmethod
    def from_tag(cls, tag: str, groups: Optional[Sequence[Sequence[str]]] = None) -> "CombinationMode":
        """Parse the campaign-file tag (`none` | `all` | `grouped`)."""
        try:
            kind = CombinationKind(str(tag).strip().lower())
        except ValueError as exc:
            raise MalformedSpecError(
                f"Unrecognized combination mode {tag!r}; expected none, all or grouped."
            ) from exc
        if kind != CombinationKind.GROUPED and groups:
            raise MalformedSpecError(f"Groups are only valid with combination mode 'grouped', not {tag!r}.")
        if kind == CombinationKind.GROUPED:
            if groups is None:
                raise MalformedSpecError("Combination mode 'grouped' needs a list of groups.")
            for g in groups:
                if isinstance(g, (str, bytes)) or not isinstance(g, Sequence):
                    raise MalformedSpecError(f"Each group must be a list of names, got {g!r}.")
            return cls.grouped(groups)
        return cls(kind)


# ---------------------------------------------------------------------------
# Axis construction
# ---------------------------------------------------------------------------

def _common_length(spec: SubstitutionSpec, names: Iterable[str], what: str) -> int:
    """Common list length of the varying members; 1 when none of them vary."""
    length: Optional[int] = None
    first: Optional[str] = None
    for name in names:
        n = spec.length_of(name)
        if n is None:
            continue
        if length is None:
            length, first = n, name
        elif n != length:
            raise InconsistentLengthError(
                f"Found different lengths of parameter lists in {what}: "
                f"{first!r} has {length}, {name!r} has {n}."
            )
    return 1 if length is None else length


def _validate_groups(spec: SubstitutionSpec, groups: Sequence[Sequence[str]]) -> None:
    seen: Dict[str, int] = {}
    for gi, group in enumerate(groups):
        if len(group) == 0:
            raise MalformedSpecError(f"Group {gi} is empty.")
        for name in group:
            if name not in spec.entries:
                raise MalformedSpecError(f"Group {gi} names unknown parameter {name!r}.")
            if name in seen:
                raise MalformedSpecError(
                    f"Parameter {name!r} appears in groups {seen[name]} and {gi}; groups must be disjoint."
                )
            seen[name] = gi


@dataclass(frozen=True)
class Axes:
    """Combinatorial layout: ordered axes plus names zipped along the declared groups."""

    groups: Tuple[Tuple[str, ...], ...]
    lengths: Tuple[int, ...]
    declared: int = 0
    zipped: Tuple[str, ...] = ()

    @property
    def size(self) -> int:
        n = 1
        for length in self.lengths:
            n *= length
        return n


def parameter_groups(spec: SubstitutionSpec, mode: CombinationMode) -> Axes:
    """
    Ordered combinatorial axes for `all` / `grouped` mode.

    In `grouped` mode an ungrouped list whose length equals the number of
    combinations of the declared groups co-varies with those combinations;
    any other ungrouped name becomes its own singleton axis.
    """
    if mode.kind == CombinationKind.ALL:
        groups = tuple((name,) for name in sorted(spec.names))
        lengths = tuple(_common_length(spec, g, f"group {list(g)}") for g in groups)
        return Axes(groups, lengths, declared=len(groups))
    if mode.kind != CombinationKind.GROUPED:
        raise MalformedSpecError(f"Combination mode {mode.kind.value!r} has no parameter groups.")

    _validate_groups(spec, mode.groups)
    listed = {name for g in mode.groups for name in g}
    groups = [tuple(sorted(g)) for g in mode.groups]
    lengths = [_common_length(spec, g, f"group {list(g)}") for g in groups]
    declared_size = 1
    for length in lengths:
        declared_size *= length

    zipped: List[str] = []
    for name in sorted(spec.names):
        if name in listed:
            continue
        n = spec.length_of(name)
        if n is not None and groups and n == declared_size:
            zipped.append(name)
        else:
            groups.append((name,))
            lengths.append(1 if n is None else n)
    if zipped:
        log.info(
            "Ungrouped {} co-vary with the declared groups ({} combinations)",
            zipped,
            declared_size,
        )
    return Axes(tuple(groups), tuple(lengths), declared=len(mode.groups), zipped=tuple(zipped))


# ---------------------------------------------------------------------------
# Expansion
# ---------------------------------------------------------------------------

def _resolve(spec: SubstitutionSpec, name: str, index: int) -> ParamValue:
    value = spec.entries[name]
    if isinstance(value, tuple):
        assert 0 <= index < len(value), f"combination index {index} out of range for {name!r}"
        return value[index]
    return value


def _expand_zipped(spec: SubstitutionSpec) -> List[Substitution]:
    length = _common_length(spec, spec.names, "zipped substitutions")
    return [{name: _resolve(spec, name, i) for name in spec.names} for i in range(length)]


def _declared_index(multi_index: Tuple[int, ...], axes: Axes) -> int:
    """Row-major position within the declared groups only."""
    flat = 0
    for i in range(axes.declared):
        flat = flat * axes.lengths[i] + multi_index[i]
    return flat


def _expand_cartesian(spec: SubstitutionSpec, mode: CombinationMode) -> List[Substitution]:
    axes = parameter_groups(spec, mode)
    axis_of = {name: ai for ai, axis in enumerate(axes.groups) for name in axis}
    log.debug("Cartesian axes {} with lengths {}", axes.groups, axes.lengths)

    result: List[Substitution] = []
    for multi_index in itertools.product(*(range(n) for n in axes.lengths)):
        zipped_index = _declared_index(multi_index, axes)
        run: Substitution = {}
        for name in spec.names:
            if name in axis_of:
                run[name] = _resolve(spec, name, multi_index[axis_of[name]])
            else:
                run[name] = _resolve(spec, name, zipped_index)
        result.append(run)
    assert len(result) == axes.size
    return result


def expand(spec: SubstitutionSpec, mode: CombinationMode) -> List[Substitution]:
    """
    Expand a substitution specification into concrete per-run maps.

    Every map contains every parameter name. The result is deterministic for a
    given (spec, mode): `all` orders axes by name, `grouped` keeps the declared
    group order and appends ungrouped singleton axes sorted by name.

    Raises
    ------
    InconsistentLengthError
        Lists that must co-vary (all of them in `none` mode, one group otherwise)
        differ in length.
    MalformedSpecError
        Empty, overlapping or unknown groups.
    """
    if mode.kind == CombinationKind.NONE:
        runs = _expand_zipped(spec)
    else:
        runs = _expand_cartesian(spec, mode)
    log.debug("Expanded {} parameters into {} runs ({} mode)", len(spec), len(runs), mode.kind.value)
    return runs


def apply_substitutions(
    base: Mapping[str, ParamValue],
    substitution: Mapping[str, Any],
    reserved: Iterable[str] = (),
) -> Dict[str, Any]:
    """
    Return a copy of `base` with `substitution` applied.

    Every substituted key must already exist in the base parameter set, except
    the `reserved` ones (parameters the cascade linker injects).
    """
    allowed_new = set(reserved)
    result: Dict[str, Any] = dict(base)
    for key, value in substitution.items():
        if key not in base and key not in allowed_new:
            raise UnknownParameterError(
                f"Found parameter in substitutions that does not appear in parameter files: {key}"
            )
        result[key] = value
    return result
