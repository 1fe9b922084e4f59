"""
Fixed-tick gravitational simulation loop.

Each tick runs, on the calling thread:

    snapshot -> (build tree) -> batch -> evaluate (parallel) -> reduce -> apply

Only evaluation fans out to worker threads, and the tick waits for it to
finish before reducing, so ticks never overlap. Velocities are written only
after the whole tick has computed; a tick that fails leaves every body
untouched and halts the simulation.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from typing_extensions import Self

from .base import BaseSimulation
from .force import BarnesHutSolver, ExactSolver, ForceSolver, ParallelEvaluator
from .types import (
    DEFAULT_CHUNK_DIVISOR,
    DEFAULT_GRAVITATIONAL_CONSTANT,
    DEFAULT_PADDING,
    DEFAULT_THETA,
    MAX_DEPTH,
    Algorithm,
    AlgorithmLike,
    BodyLike,
    EventCallback,
    EventType,
    SimulationConfig,
    TickResult,
)
from .validation import (
    validate_positive,
    validate_positive_int,
    validate_theta,
)

logger = logging.getLogger(__name__)


class SimulationHaltedError(RuntimeError):
    """Raised when ticking a simulation that was halted by a failed tick."""

    pass


class Simulation(BaseSimulation):
    """
    Gravitational N-body simulation with a selectable force algorithm.

    Example:
        sim = Simulation(
            bodies=[
                {"position": (0, 0, 0), "mass": 1.0},
                {"position": (1, 0, 0), "mass": 1.0},
            ],
            algorithm="exact",
            gravitational_constant=1.0,
        )
        result = sim.tick()
        result.velocity_deltas   # [[1, 0, 0], [-1, 0, 0]]
        sim.bodies[0].velocity   # [1, 0, 0]

        # Switch to the octree approximation between ticks
        sim.algorithm = "barnes_hut"
        sim.barnes_hut_theta = 0.5
        sim.run(ticks=100)
    """

    def __init__(
        self,
        *,
        bodies: Optional[Sequence[BodyLike]] = None,
        on_start: Optional[EventCallback] = None,
        on_tick: Optional[EventCallback] = None,
        on_end: Optional[EventCallback] = None,
        # Simulation-specific parameters
        algorithm: AlgorithmLike = Algorithm.EXACT,
        gravitational_constant: float = DEFAULT_GRAVITATIONAL_CONSTANT,
        barnes_hut_theta: float = DEFAULT_THETA,
        padding: float = DEFAULT_PADDING,
        max_workers: Optional[int] = None,
        chunk_divisor: int = DEFAULT_CHUNK_DIVISOR,
        max_tree_depth: int = MAX_DEPTH,
        time_step: Optional[float] = None,
        paused: bool = False,
    ) -> None:
        """
        Initialize simulation.

        Args:
            bodies: List of bodies
            on_start: Callback for start event (first tick)
            on_tick: Callback for tick event
            on_end: Callback for end event (stop)
            algorithm: "exact" or "barnes_hut"
            gravitational_constant: G in F = G * m1 * m2 / d^2
            barnes_hut_theta: Barnes-Hut accuracy (0 = exact, larger = faster)
            padding: Margin added to each side of the octree root box
            max_workers: Evaluation worker threads (None = executor default)
            chunk_divisor: Work items are split into roughly this many chunks
            max_tree_depth: Depth cap for octree insertion
            time_step: If given, positions drift by velocity * time_step
                after each tick; otherwise the host moves the bodies
            paused: Start paused

        Raises:
            ValidationError: If any parameter is invalid
        """
        super().__init__(bodies=bodies, on_start=on_start, on_tick=on_tick, on_end=on_end)

        self._algorithm: Algorithm = Algorithm.parse(algorithm)
        self._gravitational_constant: float = validate_positive(
            gravitational_constant, "gravitational_constant"
        )
        self._barnes_hut_theta: float = validate_theta(barnes_hut_theta)
        self._padding: float = validate_positive(padding, "padding")
        self._max_tree_depth: int = validate_positive_int(max_tree_depth, "max_tree_depth")
        self._time_step: Optional[float] = (
            validate_positive(time_step, "time_step") if time_step is not None else None
        )
        self._paused: bool = bool(paused)

        if max_workers is not None:
            validate_positive_int(max_workers, "max_workers")
        self._evaluator = ParallelEvaluator(
            max_workers=max_workers,
            chunk_divisor=validate_positive_int(chunk_divisor, "chunk_divisor"),
        )
        self._solver: Optional[ForceSolver] = None

        # Internal state
        self._tick_count: int = 0
        self._interaction_count: int = 0
        self._last_result: Optional[TickResult] = None
        self._halted: bool = False

    @classmethod
    def from_config(
        cls,
        config: SimulationConfig,
        *,
        bodies: Optional[Sequence[BodyLike]] = None,
        **kwargs: Any,
    ) -> Simulation:
        """
        Build a simulation from a SimulationConfig.

        Args:
            config: Solver configuration
            bodies: List of bodies
            **kwargs: Remaining constructor arguments (callbacks, time_step, paused)
        """
        return cls(
            bodies=bodies,
            algorithm=config.algorithm,
            gravitational_constant=config.gravitational_constant,
            barnes_hut_theta=config.barnes_hut_theta,
            padding=config.padding,
            max_workers=config.max_workers,
            chunk_divisor=config.chunk_divisor,
            max_tree_depth=config.max_tree_depth,
            **kwargs,
        )

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def config(self) -> SimulationConfig:
        """Current configuration as a SimulationConfig."""
        return SimulationConfig(
            algorithm=self._algorithm,
            gravitational_constant=self._gravitational_constant,
            barnes_hut_theta=self._barnes_hut_theta,
            padding=self._padding,
            max_workers=self._evaluator.max_workers,
            chunk_divisor=self._evaluator.chunk_divisor,
            max_tree_depth=self._max_tree_depth,
        )

    @property
    def algorithm(self) -> Algorithm:
        """Get the force algorithm."""
        return self._algorithm

    @algorithm.setter
    def algorithm(self, value: AlgorithmLike) -> None:
        """Set the force algorithm; takes effect on the next tick."""
        algorithm = Algorithm.parse(value)
        if algorithm is not self._algorithm:
            logger.info("Switching algorithm from %s to %s", self._algorithm.value, algorithm.value)
            self._algorithm = algorithm
            self._discard_solver()

    @property
    def gravitational_constant(self) -> float:
        """Get G."""
        return self._gravitational_constant

    @gravitational_constant.setter
    def gravitational_constant(self, value: float) -> None:
        """Set G (must be positive)."""
        self._gravitational_constant = validate_positive(value, "gravitational_constant")
        if self._solver is not None:
            self._solver.gravitational_constant = self._gravitational_constant

    @property
    def barnes_hut_theta(self) -> float:
        """Get Barnes-Hut theta parameter (accuracy)."""
        return self._barnes_hut_theta

    @barnes_hut_theta.setter
    def barnes_hut_theta(self, value: float) -> None:
        """Set Barnes-Hut theta parameter (must be >= 0)."""
        self._barnes_hut_theta = validate_theta(value)
        if isinstance(self._solver, BarnesHutSolver):
            self._solver.barnes_hut_theta = self._barnes_hut_theta

    @property
    def time_step(self) -> Optional[float]:
        """Get the drift time step (None = host moves bodies)."""
        return self._time_step

    @time_step.setter
    def time_step(self, value: Optional[float]) -> None:
        """Set the drift time step."""
        self._time_step = validate_positive(value, "time_step") if value is not None else None

    @property
    def paused(self) -> bool:
        """Get whether ticks are skipped."""
        return self._paused

    @paused.setter
    def paused(self, value: bool) -> None:
        """Pause or resume the simulation."""
        value = bool(value)
        if value != self._paused:
            logger.info("Simulation %s", "paused" if value else "resumed")
        self._paused = value

    @property
    def halted(self) -> bool:
        """True once a tick has failed; cleared by reset()."""
        return self._halted

    @property
    def tick_count(self) -> int:
        """Ticks applied so far."""
        return self._tick_count

    @property
    def interaction_count(self) -> int:
        """Force evaluations performed across all ticks."""
        return self._interaction_count

    @property
    def last_result(self) -> Optional[TickResult]:
        """Result of the most recent applied tick."""
        return self._last_result

    @property
    def solver(self) -> ForceSolver:
        """The solver for the current algorithm, created on demand."""
        if self._solver is None:
            self._solver = self._create_solver()
        return self._solver

    # -------------------------------------------------------------------------
    # Simulation Implementation
    # -------------------------------------------------------------------------

    def _create_solver(self) -> ForceSolver:
        if self._algorithm is Algorithm.EXACT:
            solver: ForceSolver = ExactSolver(
                gravitational_constant=self._gravitational_constant,
                evaluator=self._evaluator,
            )
        elif self._algorithm is Algorithm.BARNES_HUT:
            solver = BarnesHutSolver(
                gravitational_constant=self._gravitational_constant,
                barnes_hut_theta=self._barnes_hut_theta,
                padding=self._padding,
                max_tree_depth=self._max_tree_depth,
                evaluator=self._evaluator,
            )
        else:
            raise AssertionError(f"unhandled algorithm {self._algorithm!r}")
        logger.info("Created %s solver", self._algorithm.value)
        return solver

    def _discard_solver(self) -> None:
        if self._solver is not None:
            self._solver.close()
            self._solver = None

    def tick(self) -> Optional[TickResult]:
        """
        Run one tick: compute every body's velocity delta and apply it.

        Returns:
            The tick's result, or None while paused.

        Raises:
            SimulationHaltedError: If an earlier tick failed
            ValidationError: If the body set is invalid (nothing is run)
            CapacityExceededError: If the octree or its node pool overflowed;
                the simulation halts
        """
        if self._halted:
            raise SimulationHaltedError("Simulation halted after a failed tick; call reset()")
        if self._paused:
            return None

        self.validate()
        points = self._snapshot()

        if self._tick_count == 0:
            self.trigger({"type": EventType.start, "tick": 0})

        try:
            result = self.solver.compute(points)
        except Exception:
            self._halted = True
            logger.error(
                "Tick %d aborted (%s, %d bodies); simulation halted",
                self._tick_count,
                self._algorithm.value,
                len(points),
            )
            raise

        self._apply_deltas(result.velocity_deltas)
        if self._time_step is not None:
            self._drift(self._time_step)

        self._tick_count += 1
        self._interaction_count += result.interaction_count
        self._last_result = result
        logger.debug(
            "Tick %d: %d interactions (%s)",
            self._tick_count,
            result.interaction_count,
            self._algorithm.value,
        )

        self.trigger(
            {
                "type": EventType.tick,
                "tick": self._tick_count,
                "interaction_count": result.interaction_count,
                "result": result,
            }
        )
        return result

    def run(self, ticks: int = 1) -> Self:
        """
        Run several ticks back to back.

        Args:
            ticks: Number of ticks (paused ticks count as run)

        Returns:
            self (for chaining)
        """
        for _ in range(validate_positive_int(ticks, "ticks")):
            self.tick()
        return self

    def toggle_paused(self) -> bool:
        """Flip the paused flag; returns the new value."""
        self.paused = not self._paused
        return self._paused

    def reset(self) -> Self:
        """
        Clear counters, the last result and the halted flag.

        Bodies are left as they are.

        Returns:
            self (for chaining)
        """
        self._tick_count = 0
        self._interaction_count = 0
        self._last_result = None
        self._halted = False
        self._discard_solver()
        return self

    def summary(self) -> dict[str, Any]:
        """Statistics for display: configuration, mass and interaction counts."""
        result = self._last_result
        return {
            "body_count": self.body_count,
            "algorithm": self._algorithm.value,
            "gravitational_constant": self._gravitational_constant,
            "barnes_hut_theta": self._barnes_hut_theta,
            "paused": self._paused,
            "tick_count": self._tick_count,
            "total_mass": result.total_mass if result is not None else None,
            "barycenter": result.barycenter.tolist() if result is not None else None,
            "last_interaction_count": result.interaction_count if result is not None else 0,
            "interaction_count": self._interaction_count,
        }

    def close(self) -> None:
        """Shut down the evaluation worker pool."""
        self._discard_solver()
        self._evaluator.close()

    def __enter__(self) -> Simulation:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["Simulation", "SimulationHaltedError"]
