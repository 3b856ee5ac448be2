"""Contract with the numerically evaluated model equations.

The closed-form equations of motion are generated elsewhere; this module
defines what the solver layer expects from them, implements the one piece
that is pure geometry (the front wheel contact constraint), and pins down the
flattening layout of the velocity-constraint Jacobian derivative tensor.
"""

from __future__ import annotations

import abc
import math
from typing import Tuple

import numpy as np

from .parameters import BicycleParameters

# =============================================================================
# MODEL TOPOLOGY
# =============================================================================

N_COORDINATES = 8  # n
N_SPEEDS = 12  # o
N_CONSTRAINTS = 3  # m
N_INPUTS = 22  # s
N_MIN = 3  # coordinates the velocity constraints depend on

COORDINATE_NAMES = ("yaw", "lean", "pitch", "steer", "rear_wheel", "front_wheel", "rear_contact_x", "rear_contact_y")
SPEED_NAMES = ("yaw_rate", "lean_rate", "pitch_rate", "steer_rate", "rear_wheel_rate", "front_wheel_rate", "rear_contact_x_rate", "rear_contact_y_rate", "rear_contact_z_rate", "front_contact_x_rate", "front_contact_y_rate", "front_contact_z_rate")
INPUT_NAMES = (
    "rear_wheel_torque",
    "rear_x_torque",
    "rear_y_torque",
    "rear_z_torque",
    "rear_longitudinal_force",
    "rear_lateral_force",
    "rear_normal_force",
    "rear_x_force",
    "rear_y_force",
    "rear_z_force",
    "front_wheel_torque",
    "front_x_torque",
    "front_y_torque",
    "front_z_torque",
    "front_longitudinal_force",
    "front_lateral_force",
    "front_normal_force",
    "front_x_force",
    "front_y_force",
    "front_z_force",
    "steer_torque",
    "gravity",
)

LEAN, PITCH, STEER = 1, 2, 3
GRAVITY_INPUT = 21


# =============================================================================
# JACOBIAN DERIVATIVE TENSOR LAYOUT
# =============================================================================


def tensor_offset(row: int, col: int, axis: int, m: int = N_CONSTRAINTS, o: int = N_SPEEDS) -> int:
    """Offset of ``dB[row, col]/dq[axis + 1]`` in the flattened ``f_v_dudq`` output.

    The tensor is stored column-major over ``(m, o, n_min)``: each of the
    lean, pitch and steer partials of ``B`` is a contiguous column-major
    ``m x o`` block.
    """
    return row + m * col + m * o * axis


def tensor_slice(raw: np.ndarray, row: int, col: int, axis: int, m: int = N_CONSTRAINTS, o: int = N_SPEEDS) -> float:
    """Read a single entry of the flattened Jacobian derivative tensor."""
    return float(raw[tensor_offset(row, col, axis, m, o)])


def unflatten_tensor(raw: np.ndarray, m: int = N_CONSTRAINTS, o: int = N_SPEEDS, n_min: int = N_MIN) -> np.ndarray:
    """Return the ``(m, o, n_min)`` view of the flattened tensor."""
    raw = np.asarray(raw, dtype=float)
    if raw.size != m * o * n_min:
        raise ValueError(f"Jacobian derivative tensor has {raw.size} entries, expected {m * o * n_min}")
    return raw.reshape((m, o, n_min), order="F")


def flatten_tensor(tensor: np.ndarray) -> np.ndarray:
    """Inverse of :func:`unflatten_tensor`."""
    return np.asarray(tensor, dtype=float).ravel(order="F")


# =============================================================================
# FRONT WHEEL CONTACT GEOMETRY
# =============================================================================


def _contact_terms(q: np.ndarray) -> Tuple[float, float, float, float, float, float, float]:
    phi, theta, delta = float(q[LEAN]), float(q[PITCH]), float(q[STEER])
    sp, cp = math.sin(phi), math.cos(phi)
    st, ct = math.sin(theta), math.cos(theta)
    sd, cd = math.sin(delta), math.cos(delta)
    return sp, cp, st, ct, sd, cd, sd * st * cp + cd * sp


def front_contact_height(q: np.ndarray, parameters: BicycleParameters) -> float:
    """Vertical position (positive down) of the front wheel ground contact.

    The rear wheel touches the ground, so zero means both wheels are on the
    ground. Depends only on lean, pitch and steer.
    """
    rr = parameters.rear.radius
    rf = parameters.front.radius
    lr = parameters.rear.offset
    lf = parameters.front.offset
    ls = parameters.steer_axis_offset
    sp, cp, st, ct, sd, cd, e2z = _contact_terms(q)
    root = math.sqrt(max(1.0 - e2z * e2z, 0.0))
    return -rr * cp - (lr + lf * cd) * st * cp + lf * sd * sp + ls * ct * cp + rf * root


def front_contact_height_dq(q: np.ndarray, parameters: BicycleParameters) -> np.ndarray:
    """Gradient of :func:`front_contact_height` with respect to all coordinates."""
    rr = parameters.rear.radius
    rf = parameters.front.radius
    lr = parameters.rear.offset
    lf = parameters.front.offset
    ls = parameters.steer_axis_offset
    sp, cp, st, ct, sd, cd, e2z = _contact_terms(q)
    root = math.sqrt(max(1.0 - e2z * e2z, 0.0))

    de2z = np.array([-sd * st * sp + cd * cp, sd * ct * cp, cd * st * cp - sd * sp])
    if root > 0.0:
        d_root = -rf * e2z * de2z / root
    else:
        # front wheel plane horizontal
        d_root = np.zeros(3)

    df = np.zeros(len(q))
    df[LEAN] = rr * sp + (lr + lf * cd) * st * sp + lf * sd * cp - ls * ct * sp + d_root[0]
    df[PITCH] = -(lr + lf * cd) * ct * cp - ls * st * cp + d_root[1]
    df[STEER] = lf * sd * st * cp + lf * cd * sp + d_root[2]
    return df


# =============================================================================
# EVALUATOR INTERFACE
# =============================================================================


class ModelEvaluator(abc.ABC):
    """Numerically evaluated model equations.

    Every method is a pure function of its arguments and the immutable
    parameters; an evaluator may be shared between any number of bicycles.
    Subclasses supply the generated dynamics; the holonomic contact
    constraint is implemented here from the parameters.
    """

    n = N_COORDINATES
    o = N_SPEEDS
    m = N_CONSTRAINTS
    s = N_INPUTS
    n_min = N_MIN

    def __init__(self, parameters: BicycleParameters):
        if not isinstance(parameters, BicycleParameters):
            raise ValueError("parameters must be a BicycleParameters instance")
        self.parameters = parameters

    def f_c(self, q: np.ndarray) -> float:
        """Holonomic configuration constraint residual."""
        return front_contact_height(q, self.parameters)

    def f_c_dq(self, q: np.ndarray) -> np.ndarray:
        """Gradient of the configuration constraint, length ``n``."""
        return front_contact_height_dq(q, self.parameters)

    @abc.abstractmethod
    def f_v_du(self, q: np.ndarray) -> np.ndarray:
        """Velocity constraint coefficient matrix ``B`` (``m x o``), ``f_v = B u``."""

    @abc.abstractmethod
    def f_v_dudq(self, q: np.ndarray) -> np.ndarray:
        """Flattened lean/pitch/steer partials of ``B``, see :func:`tensor_offset`."""

    @abc.abstractmethod
    def gif_ud_zero(self, q: np.ndarray, u: np.ndarray) -> np.ndarray:
        """Generalized inertia forces evaluated at zero speed derivatives (``o``)."""

    @abc.abstractmethod
    def gif_dud(self, q: np.ndarray) -> np.ndarray:
        """Partials of the generalized inertia forces w.r.t. the speed derivatives (``o x o``)."""

    @abc.abstractmethod
    def gaf_dr(self, q: np.ndarray, u: np.ndarray) -> np.ndarray:
        """Generalized active force coefficients of the inputs (``o x s``)."""

    @abc.abstractmethod
    def f_1(self, q: np.ndarray, u: np.ndarray) -> np.ndarray:
        """Kinematic differential equation term, ``dq/dt + f_1 = 0`` (``n``)."""


def _expect_shape(name: str, value, shape: Tuple[int, ...]) -> None:
    actual = np.shape(value)
    if actual != shape:
        raise ValueError(f"Model evaluator {name} returned shape {actual}, expected {shape}")


def check_evaluator(evaluator: ModelEvaluator) -> None:
    """Fail fast if the evaluator does not agree with this layer's dimensions.

    Every method is evaluated once at the zero state.
    """
    if not isinstance(evaluator, ModelEvaluator):
        raise ValueError("evaluator must be a ModelEvaluator instance")
    expected = (N_COORDINATES, N_SPEEDS, N_CONSTRAINTS, N_INPUTS, N_MIN)
    actual = (evaluator.n, evaluator.o, evaluator.m, evaluator.s, evaluator.n_min)
    if actual != expected:
        raise ValueError(f"Model evaluator dimensions (n, o, m, s, n_min) = {actual}, expected {expected}")

    n, o, m, s, n_min = expected
    q = np.zeros(n)
    u = np.zeros(o)
    if np.ndim(evaluator.f_c(q)) != 0:
        raise ValueError("Model evaluator f_c must return a scalar")
    _expect_shape("f_c_dq", evaluator.f_c_dq(q), (n,))
    _expect_shape("f_v_du", evaluator.f_v_du(q), (m, o))
    _expect_shape("f_v_dudq", evaluator.f_v_dudq(q), (m * o * n_min,))
    _expect_shape("gif_ud_zero", evaluator.gif_ud_zero(q, u), (o,))
    _expect_shape("gif_dud", evaluator.gif_dud(q), (o, o))
    _expect_shape("gaf_dr", evaluator.gaf_dr(q, u), (o, s))
    _expect_shape("f_1", evaluator.f_1(q, u), (n,))
