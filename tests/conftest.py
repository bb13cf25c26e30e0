import os, pathlib, textwrap

import h5py
import numpy as np
import pytest

HERE = pathlib.Path(__file__).resolve().parent
REPO = HERE.parent


@pytest.fixture
def tmp_run(tmp_path):
    d = tmp_path / "run"
    d.mkdir()
    return d


@pytest.fixture
def sample_campaign_toml(tmp_path):
    p = tmp_path / "campaign.toml"
    p.write_text(textwrap.dedent(
        """\
        [sweep]
        combination = "grouped"
        groups = [["a", "b"]]

        [sweep.substitutions]
        a = [1, 2, 3]
        b = ["x", "y", "z"]
        c = 1.0e-3
    """
    ))
    return p


class FakeAnchorReader:
    """In-memory AnchorReader: anchor -> files, file -> header attributes."""

    def __init__(self, anchors, headers):
        self.anchors = dict(anchors)
        self.headers = dict(headers)

    def anchor_files(self, anchor):
        return list(self.anchors.get(anchor, []))

    def header_attr(self, path, name):
        return self.headers[path][name]


@pytest.fixture
def fake_reader_factory():
    def make(times, *, comoving_attrs=None, base="/sims"):
        anchors = {}
        headers = {}
        for i, t in enumerate(times):
            anchor = f"{base}/snap_{i:03d}.hdf5"
            anchors[anchor] = [anchor]
            attrs = {"Time": t}
            if comoving_attrs is not None:
                attrs.update(comoving_attrs)
            headers[anchor] = attrs
        return FakeAnchorReader(anchors, headers), list(anchors)
    return make


@pytest.fixture
def make_snapshot(tmp_path):
    """Write a small HDF5 snapshot with h5py and return its path."""

    def make(name, coords, *, abundances=None, energies=None, header=None):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        coords = np.asarray(coords, dtype=float)
        with h5py.File(path, "w") as handle:
            hdr = handle.create_group("Header")
            for k, v in (header or {}).items():
                hdr.attrs[k] = v
            part = handle.create_group("PartType0")
            part.create_dataset("Coordinates", data=coords)
            if abundances is not None:
                part.create_dataset("ChemicalAbundances", data=np.asarray(abundances, dtype=float))
            if energies is not None:
                part.create_dataset("InternalEnergy", data=np.asarray(energies, dtype=float))
        return str(path)
    return make
