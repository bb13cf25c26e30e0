import textwrap

import pytest

from simchain.core.errors import ConfigurationError
from simchain.core.param_value import ParamKind, ParamValue
from simchain.io.param_file import parse_param_text, read_param_file, write_param_file


SAMPLE = textwrap.dedent(
    """\
    % Arepo-style parameter file
    InitCondFile   ics/snap_000     % relative to run folder
    TimeMax        1.0e-2
    MaxSizeTimestep 5

    ComovingIntegrationOn 0
    """
)


def test_parse_param_text():
    params = parse_param_text(SAMPLE)
    assert list(params) == ["InitCondFile", "TimeMax", "MaxSizeTimestep", "ComovingIntegrationOn"]
    assert params["InitCondFile"] == ParamValue.string("ics/snap_000")
    assert params["TimeMax"].kind == ParamKind.FLOAT
    assert params["MaxSizeTimestep"] == ParamValue.integer(5)


def test_round_trip_keeps_float_text(tmp_run):
    src = tmp_run / "param.txt"
    src.write_text(SAMPLE)
    params = read_param_file(str(src))
    params["Extra"] = (ParamValue.string("a.hdf5"), ParamValue.string("b.hdf5"))

    out = write_param_file(str(tmp_run / "out" / "param.txt"), params)
    text = open(out).read()
    assert "1.0e-2" in text
    assert "a.hdf5 b.hdf5" in text
    assert read_param_file(out)["TimeMax"] == params["TimeMax"]


@pytest.mark.parametrize("text", ["LonelyKey\n", "A 1\nA 2\n"])
def test_malformed_lines(text):
    with pytest.raises(ConfigurationError):
        parse_param_text(text)


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_param_file(str(tmp_path / "nope.txt"))
