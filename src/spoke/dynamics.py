"""Equations of motion assembly and constraint force reconstruction.

Both fold the dependent-speed rows of a system indexed like the speeds into
its independent rows with the transposed reduction matrix ``C.T``, the same
kinematic relation ``u_d = C u_i`` enforced by the velocity solver.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np
import scipy.linalg

from .constraints import reduction_matrix
from .evaluator import LEAN, N_CONSTRAINTS, N_COORDINATES, N_MIN, N_SPEEDS, ModelEvaluator, unflatten_tensor
from .state import APPLIED_INPUTS, CONSTRAINT_FORCE_INPUTS, State

N_INDEPENDENT = N_SPEEDS - N_CONSTRAINTS


def _fold_dependent_rows(C: np.ndarray, rows: np.ndarray) -> np.ndarray:
    """Add ``C.T`` times the dependent rows to the independent rows."""
    return rows[:N_INDEPENDENT] + C.T @ rows[N_INDEPENDENT:]


# =============================================================================
# VELOCITY CONSTRAINT JACOBIAN DERIVATIVES
# =============================================================================


def f_v_dudt(evaluator: ModelEvaluator, state: State) -> np.ndarray:
    """Time derivative of ``B`` (``m x o``).

    ``B`` depends on lean, pitch and steer only; their rates are speeds 1-3.
    """
    tensor = unflatten_tensor(evaluator.f_v_dudq(state.q))
    rates = state.u[LEAN : LEAN + N_MIN]
    return np.einsum("rjk,k->rj", tensor, rates)


def f_v_dq(evaluator: ModelEvaluator, state: State) -> np.ndarray:
    """Partials of ``f_v = B u`` with respect to the coordinates (``m x n``)."""
    tensor = unflatten_tensor(evaluator.f_v_dudq(state.q))
    mat = np.zeros((N_CONSTRAINTS, N_COORDINATES))
    mat[:, LEAN : LEAN + N_MIN] = np.einsum("rjk,j->rk", tensor, state.u)
    return mat


# =============================================================================
# EQUATIONS OF MOTION
# =============================================================================


@dataclass
class AssembledSystem:
    """Kinematic rates plus the square linear system for the speed derivatives.

    ``matrix @ du/dt = forcing``; the first ``m`` rows are the differentiated
    velocity constraints and the remaining ``o - m`` rows are the dynamic
    equations with the dependent rows eliminated. Columns follow the
    natural speed order.
    """

    coordinate_rates: np.ndarray
    matrix: np.ndarray
    forcing: np.ndarray

    def accelerations(self) -> np.ndarray:
        return np.linalg.solve(self.matrix, self.forcing)

    def derivatives(self) -> np.ndarray:
        """``(dq/dt, du/dt)``, length ``n + o``."""
        return np.concatenate((self.coordinate_rates, self.accelerations()))


def state_derivatives(evaluator: ModelEvaluator, state: State) -> AssembledSystem:
    """Assemble the constrained equations of motion at the current state.

    The linear solve for ``du/dt`` and the time step are left to the caller.
    """
    q, u = state.q, state.u
    perm = state.permutation

    coordinate_rates = -np.asarray(evaluator.f_1(q, u), dtype=float)

    B = np.asarray(evaluator.f_v_du(q), dtype=float)
    mass_matrix = np.asarray(evaluator.gif_dud(q), dtype=float)[perm, :]
    bias = np.asarray(evaluator.gif_ud_zero(q, u), dtype=float) + np.asarray(evaluator.gaf_dr(q, u), dtype=float) @ state.inputs
    bias = bias[perm]

    C = reduction_matrix(evaluator, state)
    matrix = np.vstack((B, _fold_dependent_rows(C, mass_matrix)))
    forcing = np.concatenate((-f_v_dudt(evaluator, state) @ u, -_fold_dependent_rows(C, bias)))
    return AssembledSystem(coordinate_rates=coordinate_rates, matrix=matrix, forcing=forcing)


# =============================================================================
# CONSTRAINT FORCES
# =============================================================================


def reduced_steady_system(evaluator: ModelEvaluator, state: State) -> Tuple[np.ndarray, np.ndarray]:
    """Reduced steady-motion equations in the seven constraint force unknowns.

    Returns ``(coefficients, rhs)`` with shapes ``(o - m, 7)`` and ``(o - m,)``.
    """
    q, u = state.q, state.u
    perm = state.permutation
    gif_steady = np.asarray(evaluator.gif_ud_zero(q, u), dtype=float)[perm]
    gaf_full = np.asarray(evaluator.gaf_dr(q, u), dtype=float)[perm, :]

    C = reduction_matrix(evaluator, state)
    gaf_reduced = _fold_dependent_rows(C, gaf_full)
    gif_reduced = _fold_dependent_rows(C, gif_steady)

    coefficients = gaf_reduced[:, list(CONSTRAINT_FORCE_INPUTS)]
    applied = gaf_reduced[:, list(APPLIED_INPUTS)]
    rhs = -(gif_reduced + applied @ state.all_inputs_except_constraint_forces())
    return coefficients, rhs


def steady_constraint_forces(evaluator: ModelEvaluator, state: State) -> np.ndarray:
    """Contact forces and steer torque holding a steady motion.

    Only meaningful when all speed derivatives are zero. Returns rear
    longitudinal, lateral and normal force, front longitudinal, lateral and
    normal force, and steer torque. The nine reduced equations are solved
    in the least squares sense; which of the first three rows are
    informative depends on the parameters and configuration.
    """
    coefficients, rhs = reduced_steady_system(evaluator, state)
    solution, _, _, _ = scipy.linalg.lstsq(coefficients, rhs, lapack_driver="gelsd")
    return solution
