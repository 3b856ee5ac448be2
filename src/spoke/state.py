from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Tuple

import numpy as np

from .evaluator import GRAVITY_INPUT, N_CONSTRAINTS, N_COORDINATES, N_INPUTS, N_SPEEDS, PITCH
from .parameters import BicycleParameters

# Columns of the input coefficient matrix that carry contact/steer constraint forces
CONSTRAINT_FORCE_INPUTS = (4, 5, 6, 14, 15, 16, 20)
# Remaining (applied) inputs, in natural order
APPLIED_INPUTS = tuple(i for i in range(N_INPUTS) if i not in CONSTRAINT_FORCE_INPUTS)

DEFAULT_DEPENDENT_COORDINATE = PITCH
DEFAULT_DEPENDENT_SPEEDS = (0, 2, 5)  # yaw, pitch and front wheel rates


def _validate_dependent_speeds(indices: Iterable[int], o: int = N_SPEEDS, m: int = N_CONSTRAINTS) -> Tuple[int, ...]:
    indices = [int(i) for i in indices]
    unique = sorted(set(indices))
    if len(unique) != len(indices):
        raise ValueError(f"Dependent speed indices must be distinct, got {indices}")
    if len(unique) != m:
        raise ValueError(f"Exactly {m} dependent speeds are required, got {len(unique)}")
    for i in unique:
        if not 0 <= i < o:
            raise ValueError(f"Dependent speed index {i} out of range [0, {o})")
    return tuple(unique)


def speed_permutation(dependent_speeds: Iterable[int], o: int = N_SPEEDS) -> np.ndarray:
    """Natural speed indices ordered independent-first, dependent-last.

    ``u[speed_permutation(d)]`` is the reordered speed vector; both groups
    keep ascending order.
    """
    dependent = sorted(set(dependent_speeds))
    independent = [i for i in range(o) if i not in dependent]
    return np.array(independent + dependent, dtype=int)


@dataclass
class State:
    """Generalized coordinates, speeds and inputs of one bicycle.

    The state does not enforce the constraints; run the configuration and
    velocity solvers after changing it.
    """

    q: np.ndarray
    u: np.ndarray
    inputs: np.ndarray = field(default_factory=lambda: np.zeros(N_INPUTS))
    dependent_coordinate: int = DEFAULT_DEPENDENT_COORDINATE
    dependent_speeds: Tuple[int, ...] = DEFAULT_DEPENDENT_SPEEDS
    permutation: np.ndarray = field(init=False, repr=False)

    def __post_init__(self):
        self.q = np.array(self.q, dtype=float)
        self.u = np.array(self.u, dtype=float)
        self.inputs = np.array(self.inputs, dtype=float)
        if self.q.shape != (N_COORDINATES,):
            raise ValueError(f"Expected {N_COORDINATES} generalized coordinates, got shape {self.q.shape}")
        if self.u.shape != (N_SPEEDS,):
            raise ValueError(f"Expected {N_SPEEDS} generalized speeds, got shape {self.u.shape}")
        if self.inputs.shape != (N_INPUTS,):
            raise ValueError(f"Expected {N_INPUTS} inputs, got shape {self.inputs.shape}")
        self.set_dependent_coordinate(self.dependent_coordinate)
        self.set_dependent_speeds(self.dependent_speeds)

    @classmethod
    def zero(cls, parameters: Optional[BicycleParameters] = None) -> "State":
        """Upright, stationary state with gravity as the only input."""
        inputs = np.zeros(N_INPUTS)
        if parameters is not None:
            inputs[GRAVITY_INPUT] = parameters.gravity
        return cls(q=np.zeros(N_COORDINATES), u=np.zeros(N_SPEEDS), inputs=inputs)

    # ------------------------------------------------------------------ #
    # Dependent index bookkeeping
    # ------------------------------------------------------------------ #

    def set_dependent_coordinate(self, index: int) -> None:
        index = int(index)
        if not 0 <= index < N_COORDINATES:
            raise ValueError(f"Dependent coordinate index {index} out of range [0, {N_COORDINATES})")
        self.dependent_coordinate = index

    def set_dependent_speeds(self, indices: Iterable[int]) -> None:
        self.dependent_speeds = _validate_dependent_speeds(indices)
        self.permutation = speed_permutation(self.dependent_speeds)

    def is_dependent_index(self, i: int) -> bool:
        return i in self.dependent_speeds

    def permutation_matrix(self) -> np.ndarray:
        """``P_u`` such that ``P_u.T @ u`` is the independent-first speed vector."""
        P = np.zeros((N_SPEEDS, N_SPEEDS))
        P[self.permutation, np.arange(N_SPEEDS)] = 1.0
        return P

    def independent_speeds(self) -> np.ndarray:
        return self.u[self.permutation[: N_SPEEDS - N_CONSTRAINTS]]

    def dependent_speed_values(self) -> np.ndarray:
        return self.u[self.permutation[N_SPEEDS - N_CONSTRAINTS :]]

    # ------------------------------------------------------------------ #
    # Assignment
    # ------------------------------------------------------------------ #

    def set_coordinate(self, i: int, value: float) -> None:
        self.q[i] = value

    def set_speed(self, i: int, value: float) -> None:
        self.u[i] = value

    def set_input(self, i: int, value: float) -> None:
        self.inputs[i] = value

    def all_inputs_except_constraint_forces(self) -> np.ndarray:
        return self.inputs[list(APPLIED_INPUTS)]

    def constraint_force_inputs(self) -> np.ndarray:
        return self.inputs[list(CONSTRAINT_FORCE_INPUTS)]

    def vector(self) -> np.ndarray:
        """Concatenated ``(q, u)``."""
        return np.concatenate((self.q, self.u))

    def copy(self) -> "State":
        return State(q=self.q.copy(), u=self.u.copy(), inputs=self.inputs.copy(), dependent_coordinate=self.dependent_coordinate, dependent_speeds=self.dependent_speeds)
