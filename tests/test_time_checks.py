import pytest

from simchain.core.cosmo_time import Cosmology
from simchain.core.errors import NumericDomainError
from simchain.core.time_checks import age_integral_residual, check_cosmology


def test_closed_form_matches_friedmann_equation():
    res = age_integral_residual(Cosmology(0.7, 0.3, 0.7))
    assert res < 1e-10


def test_residual_on_custom_grid():
    res = age_integral_residual(Cosmology(0.69, 0.31, 0.68), a_grid=[0.01, 0.1, 1.0])
    assert res < 1e-10


def test_check_cosmology_rejects_non_positive():
    with pytest.raises(NumericDomainError):
        check_cosmology(Cosmology(0.7, 0.3, 0.0))
    with pytest.raises(NumericDomainError):
        age_integral_residual(Cosmology(0.7, 0.3, 0.7), a_grid=[0.0, 1.0])


def test_check_cosmology_accepts_non_flat():
    # warns only
    check_cosmology(Cosmology(0.5, 0.3, 0.7))


def test_symbolic_age_matches_numeric_age():
    from sympy import lambdify

    from simchain.core.cosmo_time import age_in_hubble_times
    from simchain.core.time_checks import _a, _O0, _OL, age_integral_expr

    cosmo = Cosmology(0.7, 0.3, 0.7)
    f = lambdify((_a, _OL, _O0), age_integral_expr(), modules="numpy")
    for a in (0.01, 0.5, 1.0, 3.0):
        assert float(f(a, 0.7, 0.3)) == pytest.approx(age_in_hubble_times(a, cosmo), rel=1e-12)
