"""
Tests for the evaluator contract: tensor layout, contact geometry and the
construction-time dimension check.
"""

import math

import numpy as np
import pytest

from spoke.evaluator import ModelEvaluator, check_evaluator, flatten_tensor, front_contact_height, front_contact_height_dq, tensor_offset, tensor_slice, unflatten_tensor
from synthetic import SyntheticEvaluator


def _finite_difference(f, q, h=1e-6):
    grad = np.zeros(len(q))
    for i in range(len(q)):
        qp, qm = q.copy(), q.copy()
        qp[i] += h
        qm[i] -= h
        grad[i] = (f(qp) - f(qm)) / (2 * h)
    return grad


# ---- Tensor layout --------------------------------------------------------- #


class TestTensorLayout:
    def test_offsets(self):
        assert tensor_offset(0, 0, 0) == 0
        assert tensor_offset(1, 0, 0) == 1
        assert tensor_offset(0, 1, 0) == 3
        assert tensor_offset(0, 0, 1) == 36
        assert tensor_offset(2, 11, 2) == 107

    def test_offsets_cover_every_entry_once(self):
        offsets = {tensor_offset(r, j, k) for r in range(3) for j in range(12) for k in range(3)}
        assert offsets == set(range(108))

    def test_unflatten_agrees_with_offsets(self):
        raw = np.arange(108, dtype=float)
        tensor = unflatten_tensor(raw)
        assert tensor.shape == (3, 12, 3)
        for r in range(3):
            for j in range(12):
                for k in range(3):
                    assert tensor[r, j, k] == tensor_slice(raw, r, j, k)

    def test_flatten_inverts_unflatten(self):
        raw = np.random.default_rng(3).standard_normal(108)
        assert np.array_equal(flatten_tensor(unflatten_tensor(raw)), raw)

    def test_wrong_size_rejected(self):
        with pytest.raises(ValueError):
            unflatten_tensor(np.zeros(100))


# ---- Contact geometry ------------------------------------------------------ #


class TestContactGeometry:
    def test_reference_pose_on_ground(self, parameters):
        q = np.zeros(8)
        q[2] = math.pi / 10.0
        assert abs(front_contact_height(q, parameters)) < 1e-12

    def test_front_wheel_below_ground_when_unpitched(self, parameters):
        # pitch 0 pushes the front wheel down through the ground plane
        assert front_contact_height(np.zeros(8), parameters) > 0.0

    def test_gradient_matches_finite_difference(self, parameters):
        q = np.array([0.3, 0.1, 0.35, 0.4, 1.0, 2.0, 3.0, 4.0])
        grad = front_contact_height_dq(q, parameters)
        fd = _finite_difference(lambda x: front_contact_height(x, parameters), q)
        assert np.allclose(grad, fd, atol=1e-8)

    def test_gradient_zero_outside_lean_pitch_steer(self, parameters):
        q = np.array([0.3, 0.1, 0.35, 0.4, 1.0, 2.0, 3.0, 4.0])
        grad = front_contact_height_dq(q, parameters)
        assert np.all(grad[[0, 4, 5, 6, 7]] == 0.0)

    def test_mirror_symmetry(self, parameters):
        q = np.array([0.0, 0.2, 0.3, 0.5, 0.0, 0.0, 0.0, 0.0])
        mirrored = q.copy()
        mirrored[[1, 3]] *= -1
        assert math.isclose(front_contact_height(q, parameters), front_contact_height(mirrored, parameters), abs_tol=1e-15)

    def test_upright_gradient_only_in_pitch(self, parameters):
        q = np.zeros(8)
        q[2] = math.pi / 10.0
        grad = front_contact_height_dq(q, parameters)
        assert abs(grad[1]) < 1e-15
        assert abs(grad[3]) < 1e-15
        # equals minus the wheelbase at the reference pitch
        assert math.isclose(grad[2], -1.02, rel_tol=1e-12)


# ---- Contract check -------------------------------------------------------- #


class _WrongJacobian(SyntheticEvaluator):
    def f_v_du(self, q):
        return super().f_v_du(q)[:, :11]


class _WrongDimensions(SyntheticEvaluator):
    o = 13


class _WrongTensor(SyntheticEvaluator):
    def f_v_dudq(self, q):
        return unflatten_tensor(super().f_v_dudq(q))


class TestCheckEvaluator:
    def test_synthetic_evaluator_passes(self, evaluator):
        check_evaluator(evaluator)

    def test_wrong_shape_fails_fast(self, parameters):
        with pytest.raises(ValueError, match="f_v_du"):
            check_evaluator(_WrongJacobian(parameters))

    def test_wrong_dimensions_fail_fast(self, parameters):
        with pytest.raises(ValueError, match="dimensions"):
            check_evaluator(_WrongDimensions(parameters))

    def test_unflattened_tensor_rejected(self, parameters):
        with pytest.raises(ValueError, match="f_v_dudq"):
            check_evaluator(_WrongTensor(parameters))

    def test_non_evaluator_rejected(self):
        with pytest.raises(ValueError):
            check_evaluator(object())

    def test_parameters_type_checked(self):
        with pytest.raises(ValueError):
            SyntheticEvaluator("benchmark")

    def test_base_class_is_abstract(self, parameters):
        with pytest.raises(TypeError):
            ModelEvaluator(parameters)
