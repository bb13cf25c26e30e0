import math

import pytest

from simchain.core.cosmo_time import (
    YEAR_S,
    AbsoluteTime,
    Cosmology,
    Redshift,
    ScaleFactor,
    age_in_hubble_times,
    elapsed_seconds,
    instant_from_raw,
    redshift_to_scale_factor,
    seconds_to_unit,
)
from simchain.core.errors import ConversionError, MalformedSpecError, MissingCosmologyError, NumericDomainError

LCDM = Cosmology(omega_lambda=0.7, omega_0=0.3, hubble_param=0.7)
GYR_S = 1e9 * YEAR_S


def test_absolute_times_subtract():
    assert elapsed_seconds(AbsoluteTime(10.0), AbsoluteTime(25.0)) == 15.0
    assert elapsed_seconds(AbsoluteTime(25.0), AbsoluteTime(10.0)) == -15.0


def test_age_today_is_about_13_5_gyr():
    t0 = age_in_hubble_times(1.0, LCDM) / LCDM.hubble_rate_s()
    assert 13.0 < t0 / GYR_S < 14.0


def test_elapsed_between_scale_factors_is_positive_gyr_scale():
    dt = elapsed_seconds(ScaleFactor(0.5), ScaleFactor(1.0), LCDM)
    assert 5.0 < dt / GYR_S < 10.0


def test_elapsed_is_antisymmetric():
    forward = elapsed_seconds(ScaleFactor(0.2), ScaleFactor(0.9), LCDM)
    backward = elapsed_seconds(ScaleFactor(0.9), ScaleFactor(0.2), LCDM)
    assert forward == pytest.approx(-backward, rel=1e-12)


def test_elapsed_increases_with_end_scale_factor():
    ends = [0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0]
    dts = [elapsed_seconds(ScaleFactor(0.01), ScaleFactor(a), LCDM) for a in ends]
    assert all(math.isfinite(d) for d in dts)
    assert all(b > a for a, b in zip(dts, dts[1:]))


def test_redshift_equals_scale_factor():
    via_z = elapsed_seconds(Redshift(3.0), Redshift(1.0), LCDM)
    via_a = elapsed_seconds(ScaleFactor(0.25), ScaleFactor(0.5), LCDM)
    assert via_z == pytest.approx(via_a, rel=1e-12)
    mixed = elapsed_seconds(ScaleFactor(0.25), Redshift(1.0), LCDM)
    assert mixed == pytest.approx(via_a, rel=1e-12)


def test_small_scale_factor_is_matter_dominated():
    # t(a) -> (2/3) a^1.5 / sqrt(Omega0) for a << 1
    a = 1e-6
    expected = (2.0 / 3.0) * a ** 1.5 / math.sqrt(LCDM.omega_0)
    assert age_in_hubble_times(a, LCDM) == pytest.approx(expected, rel=1e-6)


def test_mixed_kinds_raise_conversion_error():
    with pytest.raises(ConversionError):
        elapsed_seconds(AbsoluteTime(0.0), Redshift(1.0), LCDM)
    with pytest.raises(ConversionError):
        elapsed_seconds(ScaleFactor(0.5), AbsoluteTime(1.0), LCDM)


def test_scale_factors_without_cosmology():
    with pytest.raises(MissingCosmologyError):
        elapsed_seconds(ScaleFactor(0.5), ScaleFactor(1.0))


@pytest.mark.parametrize(
    "a, cosmo",
    [
        (0.0, LCDM),
        (-1.0, LCDM),
        (0.5, Cosmology(0.0, 1.0, 0.7)),
        (0.5, Cosmology(0.7, -0.3, 0.7)),
    ],
)
def test_domain_errors(a, cosmo):
    with pytest.raises(NumericDomainError):
        age_in_hubble_times(a, cosmo)


def test_redshift_domain():
    assert redshift_to_scale_factor(0.0) == 1.0
    with pytest.raises(NumericDomainError):
        redshift_to_scale_factor(-1.0)


def test_instant_from_raw():
    assert instant_from_raw({"redshift": 6}) == Redshift(6.0)
    assert instant_from_raw({"scale_factor": 0.5}) == ScaleFactor(0.5)
    assert instant_from_raw({"time": 3.0}) == AbsoluteTime(3.0)
    with pytest.raises(MalformedSpecError):
        instant_from_raw({"redshift": 1, "time": 2})
    with pytest.raises(MalformedSpecError):
        instant_from_raw({"epoch": 1})


def test_seconds_to_unit():
    assert seconds_to_unit(YEAR_S * 1e3, "kyr") == pytest.approx(1.0)
    assert seconds_to_unit(12.0, "s") == 12.0
    with pytest.raises(MalformedSpecError):
        seconds_to_unit(1.0, "fortnight")
