from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Tuple

from .config import PhysicalConstants

# =============================================================================
# BENCHMARK GEOMETRY
# =============================================================================


class BenchmarkGeometry:
    """Geometry of the standard benchmark bicycle."""

    WHEELBASE = 1.02  # m
    TRAIL = 0.08  # m
    STEER_AXIS_TILT = math.pi / 10.0  # rad
    REAR_RADIUS = 0.3  # m
    FRONT_RADIUS = 0.35  # m

    # Rear frame with rider, and front frame with fork and handlebar
    REAR_MASS = 85.0 + 2.0  # kg, frame + rider and rear wheel
    FRONT_MASS = 4.0 + 3.0  # kg, fork and handlebar and front wheel

    # Inertia scalars (xx, yy, zz, xy, yz, xz), frame plus wheel, each about its own mass center
    REAR_INERTIA = (9.2 + 0.0603, 11.0 + 0.12, 2.8 + 0.0603, 0.0, 0.0, 2.4)  # kg·m²
    FRONT_INERTIA = (0.05892 + 0.1405, 0.06 + 0.28, 0.00708 + 0.1405, 0.0, 0.0, -0.00756)  # kg·m²


# =============================================================================
# ASSEMBLIES
# =============================================================================


def _check_assembly(name: str, radius: float, mass: float, inertia: Tuple[float, ...]) -> None:
    if not radius > 0.0:
        raise ValueError(f"{name} wheel radius must be positive, got {radius}")
    if mass < 0.0:
        raise ValueError(f"{name} mass must not be negative, got {mass}")
    if len(inertia) != 6:
        raise ValueError(f"{name} inertia must have 6 entries (xx, yy, zz, xy, yz, xz), got {len(inertia)}")


@dataclass(frozen=True)
class RearAssembly:
    """Rear frame and rear wheel.

    ``offset`` is the perpendicular distance from the rear wheel center to
    the steer axis.
    """

    radius: float
    offset: float
    mass: float = 0.0
    inertia: Tuple[float, float, float, float, float, float] = field(default=(0.0, 0.0, 0.0, 0.0, 0.0, 0.0))

    def __post_init__(self):
        _check_assembly("Rear", self.radius, self.mass, self.inertia)


@dataclass(frozen=True)
class FrontAssembly:
    """Front fork, handlebar and front wheel.

    ``offset`` is the perpendicular distance from the front wheel center to
    the steer axis.
    """

    radius: float
    offset: float
    mass: float = 0.0
    inertia: Tuple[float, float, float, float, float, float] = field(default=(0.0, 0.0, 0.0, 0.0, 0.0, 0.0))

    def __post_init__(self):
        _check_assembly("Front", self.radius, self.mass, self.inertia)


@dataclass(frozen=True)
class BicycleParameters:
    """Immutable parameter set of one bicycle model.

    ``steer_axis_offset`` is the distance along the steer axis between the
    projections of the two wheel centers onto it.
    """

    rear: RearAssembly
    front: FrontAssembly
    steer_axis_offset: float
    gravity: float = PhysicalConstants.GRAVITATIONAL_ACCELERATION

    def __post_init__(self):
        if not isinstance(self.rear, RearAssembly):
            raise ValueError("rear must be a RearAssembly instance")
        if not isinstance(self.front, FrontAssembly):
            raise ValueError("front must be a FrontAssembly instance")

    @classmethod
    def from_benchmark(cls, wheelbase: float, trail: float, steer_axis_tilt: float, rear_radius: float, front_radius: float, rear_mass: float = 0.0, front_mass: float = 0.0, rear_inertia: Tuple[float, ...] = (0.0,) * 6, front_inertia: Tuple[float, ...] = (0.0,) * 6, gravity: float = PhysicalConstants.GRAVITATIONAL_ACCELERATION) -> "BicycleParameters":
        """Convert wheelbase/trail/steer-axis-tilt geometry to steer axis offsets."""
        cl = math.cos(steer_axis_tilt)
        sl = math.sin(steer_axis_tilt)
        lr = (wheelbase + trail) * cl - rear_radius * sl
        lf = front_radius * sl - trail * cl
        ls = wheelbase * sl + (rear_radius - front_radius) * cl
        rear = RearAssembly(radius=rear_radius, offset=lr, mass=rear_mass, inertia=tuple(rear_inertia))
        front = FrontAssembly(radius=front_radius, offset=lf, mass=front_mass, inertia=tuple(front_inertia))
        return cls(rear=rear, front=front, steer_axis_offset=ls, gravity=gravity)

    @classmethod
    def benchmark(cls) -> "BicycleParameters":
        """Create the standard benchmark bicycle."""
        g = BenchmarkGeometry
        return cls.from_benchmark(wheelbase=g.WHEELBASE, trail=g.TRAIL, steer_axis_tilt=g.STEER_AXIS_TILT, rear_radius=g.REAR_RADIUS, front_radius=g.FRONT_RADIUS, rear_mass=g.REAR_MASS, front_mass=g.FRONT_MASS, rear_inertia=g.REAR_INERTIA, front_inertia=g.FRONT_INERTIA)
