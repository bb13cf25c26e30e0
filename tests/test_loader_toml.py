import json
import os
import textwrap

import pytest

from simchain.core.cosmo_time import Redshift
from simchain.core.errors import MalformedSpecError
from simchain.core.param_value import ParamValue
from simchain.core.substitutions import CombinationKind, expand
from simchain.io.chain_loader import dump_stages, load_stages, resolve_campaign


def test_resolve_campaign_minimal(sample_campaign_toml):
    cfg = resolve_campaign(str(sample_campaign_toml))

    assert cfg.mode.kind == CombinationKind.GROUPED
    assert cfg.mode.groups == (("a", "b"),)
    assert cfg.cascade is None
    assert cfg.base_folder == os.path.dirname(os.path.abspath(sample_campaign_toml))
    assert len(cfg.meta["hash"]) == 12

    runs = expand(cfg.substitutions, cfg.mode)
    assert len(runs) == 3
    # float literal text survives the TOML round trip
    assert str(runs[0]["c"]) == "1.0e-3"


def test_missing_sweep_means_single_empty_run(tmp_path):
    p = tmp_path / "empty.toml"
    p.write_text("")
    cfg = resolve_campaign(str(p))
    assert cfg.mode.kind == CombinationKind.NONE
    assert expand(cfg.substitutions, cfg.mode) == [{}]


def test_cascade_table_paths_relative_to_campaign(tmp_path):
    p = tmp_path / "cascade.toml"
    p.write_text(textwrap.dedent(
        """\
        [cascade]
        snapshots = ["prev/snap_005.hdf5", "prev/out"]
        final_time = { redshift = 6.0 }
        comoving = true
    """
    ))
    cfg = resolve_campaign(str(p))
    assert cfg.cascade.anchors == (
        str(tmp_path / "prev" / "snap_005.hdf5"),
        str(tmp_path / "prev" / "out"),
    )
    assert cfg.cascade.final_instant == Redshift(6.0)
    assert cfg.cascade.comoving


@pytest.mark.parametrize(
    "body",
    [
        '[sweep]\ncombination = "some"\n',
        '[sweep]\ncombination = "all"\ngroups = [["a"]]\n[sweep.substitutions]\na = [1]\n',
        '[sweep.substitutions]\na = []\n',
        '[sweep.substitutions]\na = [[1, 2]]\n',
        '[sweep]\ncombination = "grouped"\ngroups = [["a"], ["a"]]\n[sweep.substitutions]\na = [1]\n',
    ],
)
def test_malformed_campaigns(tmp_path, body):
    p = tmp_path / "bad.toml"
    p.write_text(body)
    with pytest.raises(MalformedSpecError):
        cfg = resolve_campaign(str(p))
        expand(cfg.substitutions, cfg.mode)


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        resolve_campaign(str(tmp_path / "nope.toml"))


def test_dump_stages_writes_native_values(tmp_run):
    stages = [{"a": ParamValue.integer(1), "paths": (ParamValue.string("x"), ParamValue.string("y"))}]
    path = dump_stages(str(tmp_run), stages, {"hash": "abc"})
    with open(path) as f:
        payload = json.load(f)
    assert payload["meta"] == {"hash": "abc"}
    assert payload["stages"][0]["params"] == {"a": 1, "paths": ["x", "y"]}
    assert load_stages(path) == payload["stages"]
