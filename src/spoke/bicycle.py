from __future__ import annotations

from typing import Iterable, Optional, Tuple

import numpy as np

from . import constraints, dynamics, selection
from .config import NumericalConfig
from .evaluator import N_COORDINATES, N_SPEEDS, ModelEvaluator, check_evaluator
from .state import State


class Bicycle:
    """A bicycle model instance: one exclusively owned state, one shared evaluator.

    Not safe for concurrent use; serialize access to an instance.
    """

    def __init__(self, evaluator: ModelEvaluator, state: Optional[State] = None):
        check_evaluator(evaluator)
        self.evaluator = evaluator
        self.state = state.copy() if state is not None else State.zero(evaluator.parameters)

    @property
    def parameters(self):
        return self.evaluator.parameters

    # ------------------------------------------------------------------ #
    # State access
    # ------------------------------------------------------------------ #

    def coordinates(self) -> np.ndarray:
        return self.state.q.copy()

    def speeds(self) -> np.ndarray:
        return self.state.u.copy()

    def coordinate(self, i: int) -> float:
        return float(self.state.q[i])

    def speed(self, i: int) -> float:
        return float(self.state.u[i])

    def set_state(self, x: Iterable[float]) -> None:
        """Assign the concatenated ``(q, u)`` vector."""
        x = np.asarray(list(x), dtype=float)
        if x.shape != (N_COORDINATES + N_SPEEDS,):
            raise ValueError(f"Expected a state vector of length {N_COORDINATES + N_SPEEDS}, got shape {x.shape}")
        self.state.q[:] = x[:N_COORDINATES]
        self.state.u[:] = x[N_COORDINATES:]

    def set_coordinate(self, i: int, value: float) -> None:
        self.state.set_coordinate(i, value)

    def set_speed(self, i: int, value: float) -> None:
        self.state.set_speed(i, value)

    def set_dependent_coordinate(self, i: int) -> None:
        self.state.set_dependent_coordinate(i)

    def set_dependent_speeds(self, indices: Iterable[int]) -> None:
        self.state.set_dependent_speeds(indices)

    def dependent_coordinate(self) -> int:
        return self.state.dependent_coordinate

    def dependent_speeds(self) -> Tuple[int, ...]:
        return self.state.dependent_speeds

    def is_dependent_index(self, i: int) -> bool:
        return self.state.is_dependent_index(i)

    # ------------------------------------------------------------------ #
    # Solvers
    # ------------------------------------------------------------------ #

    def solve_configuration_constraint_and_set_state(self, tolerance: float = NumericalConfig.CONFIGURATION_TOLERANCE, max_iterations: int = NumericalConfig.CONFIGURATION_MAX_ITERATIONS) -> Tuple[int, float]:
        return constraints.solve_configuration(self.evaluator, self.state, tolerance, max_iterations)

    def solve_velocity_constraints_and_set_state(self) -> np.ndarray:
        return constraints.solve_velocity_constraints(self.evaluator, self.state)

    def bd_inverse_bi(self) -> np.ndarray:
        return constraints.reduction_matrix(self.evaluator, self.state)

    def best_dependent_coordinate(self) -> int:
        return selection.best_dependent_coordinate(self.evaluator, self.state.q)

    def best_dependent_speeds(self) -> Tuple[int, ...]:
        return selection.best_dependent_speeds(self.evaluator, self.state.q)

    def select_dependent_indices(self) -> Tuple[int, Tuple[int, ...]]:
        return selection.select_dependent_indices(self.evaluator, self.state)

    def reference_pitch(self) -> float:
        return constraints.reference_pitch(self.parameters)

    # ------------------------------------------------------------------ #
    # Dynamics
    # ------------------------------------------------------------------ #

    def state_derivatives(self) -> dynamics.AssembledSystem:
        return dynamics.state_derivatives(self.evaluator, self.state)

    def steady_constraint_forces(self) -> np.ndarray:
        return dynamics.steady_constraint_forces(self.evaluator, self.state)

    def f_v_dudt(self) -> np.ndarray:
        return dynamics.f_v_dudt(self.evaluator, self.state)

    def f_v_dq(self) -> np.ndarray:
        return dynamics.f_v_dq(self.evaluator, self.state)
