"""
Quaternion attractor engine.

Iterates a map on the unit 4-sphere. Each step rotates the current quaternion
by a constant "wind" quaternion, projects it stereographically into R³, pushes
the projected point by an additive vector and, when the result leaves the unit
ball, reflects it according to a side-flip policy and switches hemisphere.
The resulting position is lifted back onto S³ on the chosen hemisphere and
becomes the next state.

The map is fully deterministic: identical constants and identical start state
always produce the same point sequence.
"""

import logging
import math
import time
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from quatractor.core.quaternion import (
    IDENTITY,
    Quaternion,
    Vector3D,
    add_vectors,
    inverse_stereographic_projection_with_side,
    magnitude,
    magnitude_3d,
    multiply,
    normalize,
    rotate_vector,
    scale_vector,
    side_of,
    stereographic_projection,
)

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 1_000_000


# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------

class SideFlipMode(IntEnum):
    """Reflection policy applied when a stepped point leaves the unit ball."""
    PLAIN_FLIP = 0               # hemisphere switch only
    FLIP_SMALLEST = 1            # delicate filigree
    FLIP_ALL_EXCEPT_LARGEST = 2  # elongated flows


class ProjectionType(str, Enum):
    SIMPLE = "simple"  # direct (x, y)
    SPHERE = "sphere"  # depth-warped (x, y) for a rounded look


@dataclass(frozen=True)
class AttractorConstants:
    """Mathematical core of an attractor; fixed for a whole session."""
    start: Quaternion = Quaternion(0.5, 0.5, 0.5, 0.5)
    wind: Quaternion = IDENTITY
    additive: Vector3D = Vector3D(0.1, 0.1, 0.1)
    mode: SideFlipMode = SideFlipMode.PLAIN_FLIP


@dataclass(frozen=True)
class RenderParameters:
    """View settings; change the picture without changing the orbit."""
    projection_type: ProjectionType = ProjectionType.SIMPLE
    camera_rotation: Quaternion = IDENTITY
    batch_size: int = 100


DEFAULT_CONSTANTS = AttractorConstants()
DEFAULT_RENDER_PARAMS = RenderParameters()


# ---------------------------------------------------------------------------
# State & output
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Point:
    """One emitted attractor sample. ``z`` is depth after camera rotation."""
    x: float
    y: float
    z: float
    side: int
    index: int


@dataclass(frozen=True)
class EngineState:
    quaternion: Quaternion
    side: int

    @classmethod
    def initial(cls, start: Quaternion) -> "EngineState":
        q = normalize(start)
        return cls(q, side_of(q))


@dataclass
class AttractorResult:
    points: List[Point]
    final_quaternion: Quaternion
    final_side: int
    iterations: int
    computation_time_ms: float = 0.0

    @property
    def final_state(self) -> EngineState:
        return EngineState(self.final_quaternion, self.final_side)


@dataclass
class ValidationResult:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


# ---------------------------------------------------------------------------
# Side-flip policies
# ---------------------------------------------------------------------------

def flip_plain(v: Vector3D) -> Vector3D:
    """Keep the position; only the hemisphere switches."""
    return v


def flip_smallest(v: Vector3D) -> Vector3D:
    """Negate the component with the smallest magnitude (x, then y, then z on ties)."""
    ax, ay, az = abs(v.x), abs(v.y), abs(v.z)
    if ax <= ay and ax <= az:
        return Vector3D(-v.x, v.y, v.z)
    if ay <= az:
        return Vector3D(v.x, -v.y, v.z)
    return Vector3D(v.x, v.y, -v.z)


def flip_all_except_largest(v: Vector3D) -> Vector3D:
    """Negate every component except the one with the largest magnitude."""
    ax, ay, az = abs(v.x), abs(v.y), abs(v.z)
    if ax >= ay and ax >= az:
        return Vector3D(v.x, -v.y, -v.z)
    if ay >= az:
        return Vector3D(-v.x, v.y, -v.z)
    return Vector3D(-v.x, -v.y, v.z)


SIDE_FLIP_POLICIES: Dict[SideFlipMode, Callable[[Vector3D], Vector3D]] = {
    SideFlipMode.PLAIN_FLIP: flip_plain,
    SideFlipMode.FLIP_SMALLEST: flip_smallest,
    SideFlipMode.FLIP_ALL_EXCEPT_LARGEST: flip_all_except_largest,
}


# ---------------------------------------------------------------------------
# Transition
# ---------------------------------------------------------------------------

def step(state: EngineState, constants: AttractorConstants) -> Tuple[EngineState, Vector3D]:
    """
    Advance the map by one iteration.

    Args:
        state: Current (quaternion, side).
        constants: Wind, additive vector and flip mode.

    Returns:
        (next_state, position) where ``position`` is the 3D point the next
        quaternion was reconstructed from.
    """
    q = normalize(multiply(state.quaternion, constants.wind))
    point = stereographic_projection(q)
    quaternion_side = side_of(q)

    stepped = add_vectors(point, scale_vector(constants.additive, quaternion_side))

    if magnitude_3d(stepped) <= 1.0:
        position = stepped
        new_side = quaternion_side
    else:
        position = SIDE_FLIP_POLICIES[SideFlipMode(constants.mode)](stepped)
        new_side = -quaternion_side

    next_q = inverse_stereographic_projection_with_side(position, new_side)
    return EngineState(next_q, new_side), position


def project_point(
    position: Vector3D,
    side: int,
    index: int,
    render_params: RenderParameters = DEFAULT_RENDER_PARAMS,
) -> Point:
    """Apply camera rotation and the 2D projection to an engine position."""
    camera = normalize(render_params.camera_rotation)
    v = position if camera == IDENTITY else rotate_vector(position, camera)

    if ProjectionType(render_params.projection_type) is ProjectionType.SPHERE:
        length = magnitude_3d(v)
        if length == 0:
            x = y = 0.0
        else:
            warp = 1.0 + v.z / length
            x = v.x * warp
            y = v.y * warp
    else:
        x, y = v.x, v.y

    return Point(x, y, v.z, side, index)


def validate_parameters(
    constants: AttractorConstants,
    render_params: RenderParameters,
) -> ValidationResult:
    """Collect every problem with a parameter set instead of failing on the first."""
    result = ValidationResult()

    def finite(values) -> bool:
        try:
            return all(math.isfinite(float(v)) for v in values)
        except (TypeError, ValueError):
            return False

    if not finite(constants.start):
        result.errors.append("Invalid start quaternion")
    if not finite(constants.wind):
        result.errors.append("Invalid wind quaternion")
    if not finite(constants.additive):
        result.errors.append("Invalid additive vector")
    if not finite(render_params.camera_rotation):
        result.errors.append("Invalid camera rotation quaternion")

    try:
        SideFlipMode(constants.mode)
    except ValueError:
        result.errors.append(f"Invalid mode: {constants.mode}. Must be 0, 1, or 2")

    try:
        ProjectionType(render_params.projection_type)
    except ValueError:
        result.errors.append(f"Invalid projection type: {render_params.projection_type}")

    if not 1 <= render_params.batch_size <= MAX_BATCH_SIZE:
        result.errors.append(f"Batch size must be between 1 and {MAX_BATCH_SIZE}")

    if not result.errors:
        if magnitude(constants.start) < 0.1:
            result.warnings.append(
                "Very small start quaternion magnitude may cause numerical issues"
            )
        if magnitude(constants.wind) == 0:
            result.warnings.append("Zero wind quaternion collapses every step to the identity")

    return result


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class AttractorEngine:
    """
    Stateful driver around ``step``.

    Owns one ``EngineState``; separate instances never share state, so they
    can run on separate threads.
    """

    def __init__(self, start: Optional[Quaternion] = None):
        self.state = EngineState.initial(start or DEFAULT_CONSTANTS.start)

    def reset(self, start: Quaternion) -> None:
        self.state = EngineState.initial(start)

    def iterate(
        self,
        constants: AttractorConstants,
        count: int,
        render_params: RenderParameters = DEFAULT_RENDER_PARAMS,
        start_index: int = 0,
    ) -> Iterator[Point]:
        """
        Yield ``count`` points from the current state, advancing it in order.

        Consumers may stop early; the state reflects exactly the points that
        were yielded.
        """
        for i in range(count):
            self.state, position = step(self.state, constants)
            yield project_point(position, self.state.side, start_index + i, render_params)

    def generate_batch(
        self,
        constants: AttractorConstants = DEFAULT_CONSTANTS,
        render_params: RenderParameters = DEFAULT_RENDER_PARAMS,
    ) -> AttractorResult:
        """
        Run ``render_params.batch_size`` steps starting from ``constants.start``.

        Raises:
            ValueError: If the parameters fail validation.
        """
        self.reset(constants.start)
        return self._run_batch(constants, render_params)

    def generate_multiple_batches(
        self,
        constants: AttractorConstants,
        render_params: RenderParameters,
        batch_count: int,
    ) -> List[AttractorResult]:
        """
        Generate consecutive batches, each resuming where the previous ended.

        Point indices keep counting across batches so per-index colouring stays
        continuous between animation frames.
        """
        self.reset(constants.start)
        results = []
        offset = 0
        for _ in range(batch_count):
            result = self._run_batch(constants, render_params, start_index=offset)
            offset += result.iterations
            results.append(result)
        return results

    def _run_batch(
        self,
        constants: AttractorConstants,
        render_params: RenderParameters,
        start_index: int = 0,
    ) -> AttractorResult:
        validation = validate_parameters(constants, render_params)
        if not validation.is_valid:
            raise ValueError(f"Invalid parameters: {', '.join(validation.errors)}")
        for warning in validation.warnings:
            logger.warning(warning)

        t0 = time.perf_counter()
        points = list(
            self.iterate(constants, render_params.batch_size, render_params, start_index)
        )
        elapsed_ms = (time.perf_counter() - t0) * 1000.0

        logger.debug(
            "Generated %d points (mode=%s) in %.1fms",
            len(points), SideFlipMode(constants.mode).name, elapsed_ms,
        )
        return AttractorResult(
            points=points,
            final_quaternion=self.state.quaternion,
            final_side=self.state.side,
            iterations=len(points),
            computation_time_ms=elapsed_ms,
        )


def generate_batch(
    constants: AttractorConstants = DEFAULT_CONSTANTS,
    render_params: RenderParameters = DEFAULT_RENDER_PARAMS,
) -> AttractorResult:
    """One-shot batch on a fresh engine."""
    return AttractorEngine(constants.start).generate_batch(constants, render_params)
