from __future__ import annotations

import logging
import os
from typing import Optional, Union

# =============================================================================
# NUMERICAL CONFIGURATION
# =============================================================================


class NumericalConfig:
    """Configuration for numerical stability and precision."""

    # Smallest usable partial derivative of the contact constraint with
    # respect to the dependent coordinate
    DERIVATIVE_MIN = 1e-14

    # Newton-Raphson defaults for the configuration constraint
    CONFIGURATION_TOLERANCE = 1e-14
    CONFIGURATION_MAX_ITERATIONS = 50

    # Relative singular value / QR pivot cut-off for numerical rank
    RANK_TOLERANCE = 1e-12

    # Velocity constraint residual (infinity norm) reported as a warning
    VELOCITY_RESIDUAL_WARNING = 1e-8


class PhysicalConstants:
    """Physical constants used by the model."""

    # Standard gravitational acceleration
    GRAVITATIONAL_ACCELERATION = 9.81  # m/s²


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================


class LoggingConfig:
    """Logging defaults, overridable from the environment."""

    LEVEL = os.environ.get("SPOKE_LOG_LEVEL", "WARNING")
    FORMAT = os.environ.get("SPOKE_LOG_FORMAT", "%(asctime)s %(levelname)s %(name)s: %(message)s")


def configure_logging(level: Optional[Union[int, str]] = None) -> logging.Logger:
    """Attach a stream handler to the package logger.

    The library never calls this itself; applications and scripts opt in.
    """
    logger = logging.getLogger("spoke")
    if level is None:
        level = LoggingConfig.LEVEL
    if isinstance(level, str):
        level = level.upper()
    logger.setLevel(level)
    if not any(getattr(h, "_spoke_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LoggingConfig.FORMAT))
        handler._spoke_handler = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
