import sys

import numpy as np
import pytest

sys.path.append("src")

from spoke import BicycleParameters, State  # noqa: E402

from synthetic import SyntheticEvaluator  # noqa: E402


@pytest.fixture
def parameters():
    return BicycleParameters.benchmark()


@pytest.fixture
def evaluator(parameters):
    return SyntheticEvaluator(parameters)


@pytest.fixture
def state(parameters):
    """Upright state on the ground with a few nonzero independent speeds."""
    s = State.zero(parameters)
    s.q[2] = np.pi / 10.0
    s.u[:] = [0.0, 0.2, 0.0, -0.3, 5.0, 0.0, 0.1, -0.4, 0.05, 0.3, 0.02, -0.1]
    return s
