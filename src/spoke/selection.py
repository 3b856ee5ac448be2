from __future__ import annotations

import heapq
import logging
from typing import Tuple

import numpy as np

from .config import NumericalConfig
from .evaluator import N_CONSTRAINTS, ModelEvaluator
from .state import State

logger = logging.getLogger(__name__)

# Speeds the dependent speeds are chosen from
CANDIDATE_SPEEDS = 6


def best_dependent_coordinate(evaluator: ModelEvaluator, q: np.ndarray) -> int:
    """Coordinate the configuration constraint is most sensitive to."""
    df = np.abs(np.asarray(evaluator.f_c_dq(q), dtype=float))
    return int(np.argmax(df))


def speed_scores(evaluator: ModelEvaluator, q: np.ndarray) -> np.ndarray:
    """Participation of each candidate speed in the constrained subspace.

    Squared row norms of the right singular vectors of the leading
    ``m x 6`` block of ``B``.
    """
    B = np.asarray(evaluator.f_v_du(q), dtype=float)[:, :CANDIDATE_SPEEDS]
    _, sigma, Vh = np.linalg.svd(B, full_matrices=False)

    rank = 0
    if sigma.size and sigma[0] > 0.0:
        rank = int(np.sum(sigma > NumericalConfig.RANK_TOLERANCE * sigma[0]))
    if rank < N_CONSTRAINTS:
        logger.warning("Not all constraints are active. Row rank of the constraint matrix is %d", rank)

    return np.sum(Vh.T**2, axis=1)


def top_scoring(scores: np.ndarray, count: int) -> Tuple[int, ...]:
    """Indices of the ``count`` largest scores, lower index first on ties."""
    heap = [(-float(score), i) for i, score in enumerate(scores)]
    heapq.heapify(heap)
    return tuple(heapq.heappop(heap)[1] for _ in range(count))


def best_dependent_speeds(evaluator: ModelEvaluator, q: np.ndarray) -> Tuple[int, ...]:
    """Choose the ``m`` candidate speeds that participate most in the constraints.

    Returns the indices in ascending order.
    """
    scores = speed_scores(evaluator, q)
    chosen = top_scoring(scores, N_CONSTRAINTS)
    logger.debug("Dependent speed scores %s, selected %s", np.round(scores, 6).tolist(), sorted(chosen))
    return tuple(sorted(chosen))


def select_dependent_indices(evaluator: ModelEvaluator, state: State) -> Tuple[int, Tuple[int, ...]]:
    """Apply both selections to ``state`` and return them."""
    coordinate = best_dependent_coordinate(evaluator, state.q)
    speeds = best_dependent_speeds(evaluator, state.q)
    state.set_dependent_coordinate(coordinate)
    state.set_dependent_speeds(speeds)
    return coordinate, speeds
