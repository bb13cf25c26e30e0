import json
import os
import subprocess
import sys
import textwrap

import h5py

from simchain.cli.chain_cli import main

from conftest import REPO


def _env():
    env = dict(os.environ)
    src = str(REPO / "src")
    env["PYTHONPATH"] = src + os.pathsep + env.get("PYTHONPATH", "")
    return env


def test_expand_via_module(tmp_path, sample_campaign_toml):
    outdir = tmp_path / "out"
    proc = subprocess.run(
        [sys.executable, "-m", "simchain.cli.chain_cli", "expand", str(sample_campaign_toml),
         "--outdir", str(outdir)],
        capture_output=True, text=True, env=_env(), timeout=120,
    )
    assert proc.returncode == 0, proc.stderr
    payload = json.loads((outdir / "stages.json").read_text())
    assert [s["params"]["a"] for s in payload["stages"]] == [1, 2, 3]
    assert payload["meta"]["settings"]["cascade_keys"]["final_time"] == "simulation/final_time"


def test_expand_writes_param_files(tmp_path, sample_campaign_toml):
    base = tmp_path / "base.txt"
    base.write_text("a 0\nb none\nc 0.5\nTimeMax 1.0e-2\n")
    outdir = tmp_path / "out"

    rc = main(["expand", str(sample_campaign_toml), "--base", str(base), "--outdir", str(outdir)])

    assert rc == 0
    text = (outdir / "002" / "param.txt").read_text()
    assert "TimeMax  1.0e-2" in text
    assert text.split("\n")[0].split() == ["a", "3"]


def test_expand_unknown_parameter_exits_2(tmp_path, sample_campaign_toml):
    base = tmp_path / "base.txt"
    base.write_text("a 0\n")
    rc = main(["expand", str(sample_campaign_toml), "--base", str(base), "--outdir", str(tmp_path / "o")])
    assert rc == 2


def test_expand_cascade(tmp_path, make_snapshot):
    make_snapshot("snap_000.hdf5", [[0, 0, 0]], header={"Time": 0.0})
    make_snapshot("snap_001.hdf5", [[0, 0, 0]], header={"Time": 3.156e10})
    campaign = tmp_path / "cascade.toml"
    campaign.write_text(textwrap.dedent(
        """\
        [sweep.substitutions]
        Seed = [1, 2]

        [cascade]
        snapshots = ["snap_000.hdf5", "snap_001.hdf5"]
        final_time = { time = 9.468e10 }
    """
    ))
    rc = main(["expand", str(campaign), "--outdir", str(tmp_path / "out")])
    assert rc == 0
    stages = json.loads((tmp_path / "out" / "stages.json").read_text())["stages"]
    assert [s["params"]["input/paths"] for s in stages] == [["snap_000.hdf5"], ["snap_001.hdf5"]]
    assert [s["params"]["simulation/final_time"] for s in stages] == ["1.0 kyr", "2.0 kyr"]


def test_copy_abundances_command(tmp_path, make_snapshot):
    prev = make_snapshot("prev.hdf5", [[0, 0, 0]], abundances=[[1.0, 0.0]], energies=[5.0])
    ics = make_snapshot("ics.hdf5", [[1, 1, 1], [2, 2, 2]], energies=[1.0, 9.0])
    out = str(tmp_path / "out.hdf5")
    assert main(["copy-abundances", prev, ics, out]) == 0
    with h5py.File(out, "r") as handle:
        assert handle["PartType0/InternalEnergy"][...].tolist() == [5.0, 9.0]


def test_copy_abundances_missing_input_exits_2(tmp_path):
    rc = main(["copy-abundances", str(tmp_path / "a.hdf5"), str(tmp_path / "b.hdf5"), str(tmp_path / "c.hdf5")])
    assert rc == 2


def test_missing_campaign_file_exits_2(tmp_path):
    assert main(["expand", str(tmp_path / "nope.toml")]) == 2


def test_missing_base_file_exits_2(tmp_path, sample_campaign_toml):
    rc = main(["expand", str(sample_campaign_toml), "--base", str(tmp_path / "nope.txt"),
               "--outdir", str(tmp_path / "o")])
    assert rc == 2
