"""
Tests for the spoke state store.
"""

import numpy as np
import pytest

from spoke.state import APPLIED_INPUTS, CONSTRAINT_FORCE_INPUTS, State, speed_permutation


def test_permutation_independent_first():
    perm = speed_permutation((0, 2, 5))
    assert perm.tolist() == [1, 3, 4, 6, 7, 8, 9, 10, 11, 0, 2, 5]


def test_permutation_ignores_given_order():
    assert speed_permutation((5, 0, 2)).tolist() == speed_permutation((0, 2, 5)).tolist()


def test_permutation_matrix_reorders_speeds(state):
    P = state.permutation_matrix()
    assert np.array_equal(P.T @ state.u, state.u[state.permutation])
    # orthogonal
    assert np.allclose(P @ P.T, np.eye(12))


def test_partitioned_speeds(state):
    assert np.array_equal(state.independent_speeds(), state.u[[1, 3, 4, 6, 7, 8, 9, 10, 11]])
    assert np.array_equal(state.dependent_speed_values(), state.u[[0, 2, 5]])


def test_zero_state_has_gravity_input(parameters):
    s = State.zero(parameters)
    assert np.all(s.q == 0.0)
    assert np.all(s.u == 0.0)
    assert s.inputs[21] == parameters.gravity
    assert s.dependent_coordinate == 2
    assert s.dependent_speeds == (0, 2, 5)


def test_input_split(parameters):
    s = State.zero(parameters)
    s.inputs[:] = np.arange(22)
    assert s.constraint_force_inputs().tolist() == [4, 5, 6, 14, 15, 16, 20]
    applied = s.all_inputs_except_constraint_forces()
    assert applied.tolist() == list(APPLIED_INPUTS)
    assert len(applied) == 15
    assert set(APPLIED_INPUTS).isdisjoint(CONSTRAINT_FORCE_INPUTS)


def test_set_dependent_speeds_recomputes_permutation(state):
    state.set_dependent_speeds([4, 1, 3])
    assert state.dependent_speeds == (1, 3, 4)
    assert state.permutation[-3:].tolist() == [1, 3, 4]
    assert state.is_dependent_index(3)
    assert not state.is_dependent_index(0)


@pytest.mark.parametrize("indices", [(0, 0, 1), (0, 1), (0, 1, 2, 3), (0, 1, 12), (-1, 0, 1)])
def test_invalid_dependent_speeds_rejected(state, indices):
    with pytest.raises(ValueError):
        state.set_dependent_speeds(indices)


def test_invalid_dependent_coordinate_rejected(state):
    with pytest.raises(ValueError):
        state.set_dependent_coordinate(8)


def test_vector_lengths_validated():
    with pytest.raises(ValueError):
        State(q=np.zeros(7), u=np.zeros(12))
    with pytest.raises(ValueError):
        State(q=np.zeros(8), u=np.zeros(11))
    with pytest.raises(ValueError):
        State(q=np.zeros(8), u=np.zeros(12), inputs=np.zeros(21))


def test_copy_is_independent(state):
    other = state.copy()
    other.q[2] = 1.0
    other.u[0] = 7.0
    other.set_dependent_speeds((1, 3, 4))
    assert state.q[2] != 1.0
    assert state.u[0] != 7.0
    assert state.dependent_speeds == (0, 2, 5)


def test_state_vector(state):
    x = state.vector()
    assert x.shape == (20,)
    assert np.array_equal(x[:8], state.q)
    assert np.array_equal(x[8:], state.u)
