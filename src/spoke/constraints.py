"""Configuration and velocity constraint solvers.

The holonomic contact constraint is solved by Newton-Raphson on a single
dependent coordinate. The nonholonomic rolling constraints ``B u = 0`` are
solved for the dependent speeds with a rank-revealing pivoted QR of the
dependent block ``B_d``; the same decomposition yields the reduction matrix
``C = -B_d^-1 B_i`` that eliminates dependent speeds from the dynamics.
"""

from __future__ import annotations

import logging
from typing import Callable, Tuple

import numpy as np
import scipy.linalg

from .config import NumericalConfig
from .evaluator import N_CONSTRAINTS, N_COORDINATES, N_SPEEDS, PITCH, ModelEvaluator, front_contact_height, front_contact_height_dq
from .parameters import BicycleParameters
from .state import State

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION CONSTRAINT
# =============================================================================


def newton_coordinate(f: Callable[[np.ndarray], float], df: Callable[[np.ndarray], np.ndarray], q: np.ndarray, index: int, tolerance: float = NumericalConfig.CONFIGURATION_TOLERANCE, max_iterations: int = NumericalConfig.CONFIGURATION_MAX_ITERATIONS) -> Tuple[int, float]:
    """Drive ``f(q)`` to zero by Newton steps on ``q[index]`` alone.

    ``q`` is modified in place. Returns ``(iterations, residual)``; the
    residual is the constraint value at the returned configuration. When the
    constraint is insensitive to ``q[index]`` the coordinate is restored to
    its value on entry and zero iterations are reported.
    """
    q_start = q[index]
    residual = f(q)
    iterations = 0
    while abs(residual) > tolerance and iterations < max_iterations:
        slope = df(q)[index]
        if abs(slope) < NumericalConfig.DERIVATIVE_MIN:
            logger.warning("Derivative w.r.t. dependent coordinate q[%d] is %.3e (< %.0e); the coordinate cannot move the front contact point and a different dependent coordinate should be selected. The coordinate has not been changed.", index, slope, NumericalConfig.DERIVATIVE_MIN)
            q[index] = q_start
            return 0, f(q)
        q[index] -= residual / slope
        iterations += 1
        residual = f(q)

    if abs(residual) > tolerance:
        logger.debug("Configuration constraint not converged after %d iterations, residual %.3e", iterations, residual)
    else:
        logger.debug("Configuration constraint converged in %d iterations, residual %.3e", iterations, residual)
    return iterations, residual


def solve_configuration(evaluator: ModelEvaluator, state: State, tolerance: float = NumericalConfig.CONFIGURATION_TOLERANCE, max_iterations: int = NumericalConfig.CONFIGURATION_MAX_ITERATIONS) -> Tuple[int, float]:
    """Satisfy the holonomic constraint by adjusting the dependent coordinate.

    Only ``state.q[state.dependent_coordinate]`` changes. Non-convergence is
    reported through the returned ``(iterations, residual)`` pair.
    """
    return newton_coordinate(evaluator.f_c, evaluator.f_c_dq, state.q, state.dependent_coordinate, tolerance, max_iterations)


def reference_pitch(parameters: BicycleParameters, tolerance: float = NumericalConfig.CONFIGURATION_TOLERANCE, max_iterations: int = NumericalConfig.CONFIGURATION_MAX_ITERATIONS) -> float:
    """Pitch of the rear frame with both wheels on the ground, upright and unsteered."""
    q = np.zeros(N_COORDINATES)
    newton_coordinate(lambda x: front_contact_height(x, parameters), lambda x: front_contact_height_dq(x, parameters), q, PITCH, tolerance, max_iterations)
    return float(q[PITCH])


# =============================================================================
# PIVOTED QR
# =============================================================================


def pivoted_solve(A: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Basic solution of ``A x = b`` through column-pivoted QR.

    Components beyond the numerical rank of ``A`` are set to zero, so a
    singular ``A`` yields a finite (if inexact) solution instead of an error.
    """
    A = np.asarray(A, dtype=float)
    b = np.asarray(b, dtype=float)
    Q, R, P = scipy.linalg.qr(A, pivoting=True)
    diag = np.abs(np.diag(R))
    rank = 0
    if diag.size and diag[0] > 0.0:
        rank = int(np.sum(diag > NumericalConfig.RANK_TOLERANCE * diag[0]))
    if rank < A.shape[1]:
        logger.warning("Dependent constraint block is rank deficient (rank %d of %d)", rank, A.shape[1])

    z = Q.T @ b
    y = np.zeros((A.shape[1],) + b.shape[1:])
    if rank:
        y[:rank] = scipy.linalg.solve_triangular(R[:rank, :rank], z[:rank])
    x = np.zeros_like(y)
    x[P] = y
    return x


# =============================================================================
# VELOCITY CONSTRAINTS
# =============================================================================


def partitioned_jacobian(evaluator: ModelEvaluator, state: State) -> Tuple[np.ndarray, np.ndarray]:
    """Return ``(B_i, B_d)``, the independent and dependent column blocks of ``B``."""
    B = np.asarray(evaluator.f_v_du(state.q), dtype=float)[:, state.permutation]
    n_independent = N_SPEEDS - N_CONSTRAINTS
    return B[:, :n_independent], B[:, n_independent:]


def solve_velocity_constraints(evaluator: ModelEvaluator, state: State) -> np.ndarray:
    """Set the dependent speeds so that ``B u = 0`` and return the residual.

    The residual ``B_d u_d + B_i u_i`` should be zero; a large residual means
    the dependent speed selection is ill conditioned at this configuration.
    """
    B_i, B_d = partitioned_jacobian(evaluator, state)
    u_i = state.independent_speeds()
    u_d = -pivoted_solve(B_d, B_i @ u_i)

    for value, index in zip(u_d, state.dependent_speeds):
        state.u[index] = value

    residual = B_d @ u_d + B_i @ u_i
    if np.max(np.abs(residual)) > NumericalConfig.VELOCITY_RESIDUAL_WARNING:
        logger.warning("Velocity constraint residual %.3e with dependent speeds %s", np.max(np.abs(residual)), state.dependent_speeds)
    return residual


def reduction_matrix(evaluator: ModelEvaluator, state: State) -> np.ndarray:
    """``C = -B_d^-1 B_i`` (``m x (o - m)``), so that ``u_d = C u_i``.

    Recomputed on every call.
    """
    B_i, B_d = partitioned_jacobian(evaluator, state)
    return pivoted_solve(B_d, -B_i)
