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
simchain command line.

  simchain expand CAMPAIGN [--base PARAMFILE] [--outdir DIR]
      Expand the sweep (and link the cascade, if the campaign has one), write
      stages.json and, with --base, one parameter file per run.

  simchain copy-abundances PREVIOUS_OUTPUT COORDINATES_SNAPSHOT OUTPUT
      Carry chemical abundances from a finished run onto new initial conditions.
"""
from __future__ import annotations

import argparse
import os
from typing import List, Optional

from pydantic import ValidationError

from simchain.config.settings import SimChainSettings
from simchain.core.cascade import StageConfiguration, link_cascade
from simchain.core.errors import SimChainError
from simchain.core.substitutions import apply_substitutions, expand
from simchain.io.chain_loader import dump_stages, resolve_campaign
from simchain.io.param_file import read_param_file, write_param_file
from simchain.io.snapshot_io import Hdf5AnchorReader, copy_abundances
from simchain.utils.log import init_logging, get_logger

log = get_logger()

PARAM_FILE_NAME = "param.txt"


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="simchain",
        description="Parameter sweeps and cascades of simulation runs.",
    )
    ap.add_argument("--log-level", type=str, default=None, help="Override SIMCHAIN_LOG_LEVEL.")
    sub = ap.add_subparsers(dest="command", required=True)

    ex = sub.add_parser("expand", help="Expand a campaign into per-run configurations.")
    ex.add_argument("campaign", help="Campaign TOML file.")
    ex.add_argument("--base", type=str, default=None, help="Base parameter file the substitutions apply to.")
    ex.add_argument("--outdir", type=str, default=None,
                    help="Output folder (default: runs/<campaign hash>).")

    ca = sub.add_parser("copy-abundances", help="Carry abundances onto a new snapshot.")
    ca.add_argument("previous_output", help="Finished run: snapshot file or output folder.")
    ca.add_argument("coordinates_snapshot", help="Snapshot providing the new cell positions.")
    ca.add_argument("output", help="Snapshot file to write.")
    return ap


def _run_expand(args, settings: SimChainSettings) -> int:
    cfg = resolve_campaign(args.campaign)
    outdir = os.path.abspath(args.outdir or os.path.join("runs", cfg.meta["hash"]))

    runs = expand(cfg.substitutions, cfg.mode)
    if cfg.cascade is not None:
        reader = Hdf5AnchorReader(cfg.base_folder, settings.snapshot)
        stages: List = link_cascade(
            runs, cfg.cascade, reader, base_folder=cfg.base_folder, settings=settings
        )
    else:
        stages = runs

    if args.base:
        base = read_param_file(args.base)
        reserved = settings.cascade_keys.all()
        for i, stage in enumerate(stages):
            params = stage.params if isinstance(stage, StageConfiguration) else stage
            merged = apply_substitutions(base, params, reserved=reserved)
            write_param_file(os.path.join(outdir, f"{i:03d}", PARAM_FILE_NAME), merged)
        log.info("Wrote {} parameter files under {}", len(stages), outdir)

    meta = dict(cfg.meta)
    meta["settings"] = settings.to_params_dict()
    dump_stages(outdir, stages, meta)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    init_logging(args.log_level)

    try:
        settings = SimChainSettings()
    except ValidationError as exc:
        log.error("SimChainSettings validation failed: {}", exc)
        return 2

    try:
        if args.command == "expand":
            return _run_expand(args, settings)
        copy_abundances(args.previous_output, args.coordinates_snapshot, args.output, settings)
        return 0
    except (SimChainError, FileNotFoundError) as exc:
        log.error("{}", exc)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
