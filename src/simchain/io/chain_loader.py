# -*- coding: utf-8 -*-
# Author: Sangwook Lee (aladdin@plusgenie.com)
# Date: 2026-10-19

from __future__ import annotations

import hashlib
import json
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..core.cascade import CascadeSpec, StageConfiguration
from ..core.errors import MalformedSpecError
from ..core.param_value import FloatLiteral, ParamValue
from ..core.substitutions import CombinationMode, SubstitutionSpec
from simchain.utils.log import get_logger

log = get_logger()

# TOML loader (3.11+: tomllib; else fall back to tomli)
try:  # Python 3.11+
    import tomllib as _toml  # type: ignore[attr-defined]
except ImportError:  # pragma: no cover
    try:
        import tomli as _toml  # type: ignore
    except ImportError:  # pragma: no cover
        _toml = None


# --- TOML loader helpers ---
def _require_toml():
    if _toml is None:
        raise RuntimeError("No TOML parser available. Use Python 3.11+ or install 'tomli'.")

def _load_toml(path: str) -> Dict[str, Any]:
    """Parse a TOML file; floats come back as FloatLiteral so their text survives."""
    path = os.path.expanduser(os.path.expandvars(path))
    _require_toml()
    if not os.path.isfile(path):
        raise FileNotFoundError(f"TOML not found: {path}")
    with open(path, "rb") as f:
        try:
            data = _toml.load(f, parse_float=FloatLiteral)  # type: ignore
        except _toml.TOMLDecodeError as exc:  # type: ignore
            raise MalformedSpecError(f"Invalid TOML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError("Top-level TOML must be a table/object.")
    log.debug("Loaded TOML from {}", os.path.abspath(path))
    return data


@dataclass(frozen=True)
class CampaignConfig:
    substitutions: SubstitutionSpec
    mode: CombinationMode
    cascade: Optional[CascadeSpec]
    base_folder: str
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_cascade(self) -> bool:
        return self.cascade is not None


def _resolve_relative(base_folder: str, path: str) -> str:
    path = os.path.expanduser(os.path.expandvars(path))
    return path if os.path.isabs(path) else os.path.normpath(os.path.join(base_folder, path))


def _parse_sweep(sweep: Mapping[str, Any]) -> tuple[SubstitutionSpec, CombinationMode]:
    if not isinstance(sweep, Mapping):
        raise MalformedSpecError("[sweep] must be a table.")
    subs_raw = sweep.get("substitutions", {})
    substitutions = SubstitutionSpec.from_raw(subs_raw)
    tag = sweep.get("combination", "none")
    if not isinstance(tag, str):
        raise MalformedSpecError(f"sweep.combination must be a string, got {tag!r}")
    groups = sweep.get("groups")
    if groups is not None and not isinstance(groups, list):
        raise MalformedSpecError("sweep.groups must be a list of lists of names.")
    mode = CombinationMode.from_tag(tag, groups)
    return substitutions, mode


# --- Campaign resolver ---
def resolve_campaign(config_path: str) -> CampaignConfig:
    """
    Load a campaign TOML and build a CampaignConfig.

    Expected tables (both optional):
      [sweep]                combination = "none" | "all" | "grouped", groups = [[..], ..]
      [sweep.substitutions]  name = value | [values]
      [cascade]              snapshots = [..], final_time = {redshift|time|scale_factor = ..},
                             comoving = bool

    Snapshot paths are resolved relative to the folder holding the campaign
    file, which is also the base folder for injected input paths.
    """
    data = _load_toml(config_path)
    base_folder = os.path.dirname(os.path.abspath(config_path))

    substitutions, mode = _parse_sweep(data.get("sweep", {}))

    cascade: Optional[CascadeSpec] = None
    cascade_raw = data.get("cascade")
    if cascade_raw is not None:
        if not isinstance(cascade_raw, Mapping):
            raise MalformedSpecError("[cascade] must be a table.")
        spec = CascadeSpec.from_raw(cascade_raw)
        cascade = CascadeSpec(
            tuple(_resolve_relative(base_folder, a) for a in spec.anchors),
            spec.final_instant,
            spec.comoving,
        )

    meta_key = json.dumps(
        {"sweep": data.get("sweep", {}), "cascade": data.get("cascade", {})},
        sort_keys=True,
        default=str,
    )
    meta_hash = hashlib.sha1(meta_key.encode("utf-8")).hexdigest()
    meta: Dict[str, Any] = {
        "created_at": datetime.now().isoformat(timespec="seconds"),
        "hash": meta_hash[:12],
        "files": {"config": os.path.abspath(config_path)},
    }
    log.info(
        "Campaign {}: {} substitution parameters, mode={}, cascade={}",
        meta["hash"],
        len(substitutions),
        mode.kind.value,
        "yes" if cascade is not None else "no",
    )
    return CampaignConfig(
        substitutions=substitutions,
        mode=mode,
        cascade=cascade,
        base_folder=base_folder,
        meta=meta,
    )


# --- Stage dump ---
def _native(value: Any) -> Any:
    if isinstance(value, ParamValue):
        return value.to_native()
    if isinstance(value, (tuple, list)):
        return [_native(v) for v in value]
    return value


def stage_to_dict(stage: Any) -> Dict[str, Any]:
    """JSON-ready dict for a StageConfiguration or a plain parameter map."""
    if isinstance(stage, StageConfiguration):
        return {
            "index": stage.index,
            "seconds": stage.span.seconds,
            "files": list(stage.files),
            "params": {k: _native(v) for k, v in stage.params.items()},
        }
    return {"params": {k: _native(v) for k, v in stage.items()}}


def dump_stages(run_dir: str, stages: Sequence[Any], meta: Optional[Dict[str, Any]] = None) -> str:
    """
    Write the expanded or linked stages to stages.json in run_dir.
    Returns the file path.
    """
    pj = os.path.join(run_dir, "stages.json")
    payload: Dict[str, Any] = {
        "meta": dict(meta or {}),
        "stages": [stage_to_dict(s) for s in stages],
    }
    os.makedirs(run_dir, exist_ok=True)
    with open(pj, "w") as f:
        json.dump(payload, f, indent=2)
    log.success("stages.json written: {}", pj)
    return pj


def load_stages(path: str) -> List[Dict[str, Any]]:
    """Read back the stage list written by dump_stages."""
    with open(path) as f:
        payload = json.load(f)
    return list(payload.get("stages", []))
