"""Constraint-consistent state solver for a bicycle multibody model."""

from .bicycle import Bicycle
from .config import NumericalConfig, configure_logging
from .constraints import reduction_matrix, reference_pitch, solve_configuration, solve_velocity_constraints
from .dynamics import AssembledSystem, f_v_dq, f_v_dudt, state_derivatives, steady_constraint_forces
from .evaluator import ModelEvaluator, check_evaluator, tensor_offset, tensor_slice
from .parameters import BicycleParameters, FrontAssembly, RearAssembly
from .selection import best_dependent_coordinate, best_dependent_speeds
from .state import State

__all__ = [
    "Bicycle",
    "State",
    "ModelEvaluator",
    "BicycleParameters",
    "RearAssembly",
    "FrontAssembly",
    "AssembledSystem",
    "NumericalConfig",
    "configure_logging",
    "check_evaluator",
    "tensor_offset",
    "tensor_slice",
    "solve_configuration",
    "solve_velocity_constraints",
    "reduction_matrix",
    "reference_pitch",
    "best_dependent_coordinate",
    "best_dependent_speeds",
    "state_derivatives",
    "steady_constraint_forces",
    "f_v_dudt",
    "f_v_dq",
]
