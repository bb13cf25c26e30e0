import numpy as np
import pytest

from simchain.core.errors import EmptyReferenceSetError
from simchain.core.remap import nearest_indices, remap_abundances_and_energies, remap_field

REF = [[0.0, 0.0, 0.0], [10.0, 0.0, 0.0]]


def test_remap_field_two_points():
    field = np.array([[1.0, 2.0], [3.0, 4.0]])
    out = remap_field(REF, field, [[1, 0, 0], [9, 0, 0], [5.1, 0, 0]])
    assert out.tolist() == [[1.0, 2.0], [3.0, 4.0], [3.0, 4.0]]


def test_each_target_snaps_to_nearer_reference():
    out = remap_field(REF, [[1], [2]], [[1, 0, 0], [9, 0, 0]])
    assert out.tolist() == [[1], [2]]


def test_remap_one_dimensional_field():
    out = remap_field(REF, np.array([7.0, 8.0]), [[11, 0, 0]])
    assert out.tolist() == [8.0]


def test_every_output_row_is_a_reference_row():
    rng = np.random.default_rng(3)
    ref = rng.uniform(size=(300, 3))
    field = rng.uniform(size=(300, 4))
    tgt = rng.uniform(size=(100, 3))
    out = remap_field(ref, field, tgt, brute_force_max_pairs=0)
    rows = {tuple(r) for r in field.tolist()}
    assert all(tuple(r) in rows for r in out.tolist())


def test_tree_and_brute_force_paths_agree():
    rng = np.random.default_rng(11)
    ref = rng.normal(size=(200, 3))
    tgt = rng.normal(size=(150, 3))
    naive = nearest_indices(ref, tgt, brute_force_max_pairs=10**9)
    tree = nearest_indices(ref, tgt, brute_force_max_pairs=0, leaf_size=4)
    assert np.array_equal(naive, tree)


def test_empty_reference_set():
    with pytest.raises(EmptyReferenceSetError):
        remap_field(np.empty((0, 3)), np.empty((0, 2)), [[0, 0, 0]])
    with pytest.raises(EmptyReferenceSetError):
        nearest_indices([], [[0, 0, 0]])


def test_empty_targets():
    out = remap_field(REF, np.array([[1.0], [2.0]]), np.empty((0, 3)))
    assert out.shape == (0, 1)


def test_field_length_must_match_reference():
    with pytest.raises(ValueError):
        remap_field(REF, np.array([1.0, 2.0, 3.0]), [[0, 0, 0]])


def test_abundances_copied_and_energy_never_lowered():
    ref_abund = np.array([[0.1, 0.9], [0.5, 0.5]])
    ref_energy = np.array([100.0, 1.0])
    tgt = [[1, 0, 0], [9, 0, 0]]
    tgt_energy = np.array([50.0, 20.0])

    abund, energy = remap_abundances_and_energies(REF, ref_abund, ref_energy, tgt, tgt_energy)

    assert abund.tolist() == [[0.1, 0.9], [0.5, 0.5]]
    assert energy.tolist() == [100.0, 20.0]
