"""
Base class for tick-driven simulations.

This module provides the abstract base that defines the common interface
and shared infrastructure of the simulation loop:

- Event system (start/tick/end events)
- Body management via properties, accepting several input shapes
- Fail-fast validation of the body set
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Optional, Sequence

import numpy as np

if TYPE_CHECKING:
    from typing_extensions import Self

from .types import (
    Body,
    BodyLike,
    Event,
    EventCallback,
    EventType,
    PointMass,
    TickResult,
)
from .validation import InvalidBodyError, validate_body_count


class BaseSimulation(ABC):
    """
    Abstract base class for simulations.

    Provides shared infrastructure:
    - Event system (start/tick/end events)
    - Body list normalization
    - Per-tick snapshots of the live body states

    Example:
        sim = SomeSimulation(
            bodies=[
                {"position": (0, 0, 0), "mass": 1.0},
                {"position": (1, 0, 0), "mass": 1.0},
            ],
        )
        sim.tick()

        for body in sim.bodies:
            print(body.index, body.velocity)
    """

    def __init__(
        self,
        *,
        bodies: Optional[Sequence[BodyLike]] = None,
        on_start: Optional[EventCallback] = None,
        on_tick: Optional[EventCallback] = None,
        on_end: Optional[EventCallback] = None,
    ) -> None:
        """
        Initialize simulation.

        Args:
            bodies: List of bodies (Body/PointMass objects, dicts, or objects
                with position/mass/velocity attributes)
            on_start: Callback for start event
            on_tick: Callback for tick event
            on_end: Callback for end event
        """
        self._bodies: list[Body] = []
        self._events: dict[EventType, EventCallback] = {}

        if bodies is not None:
            self.bodies = bodies

        # Register event callbacks
        if on_start:
            self._events[EventType.start] = on_start
        if on_tick:
            self._events[EventType.tick] = on_tick
        if on_end:
            self._events[EventType.end] = on_end

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def bodies(self) -> list[Body]:
        """Get the list of bodies."""
        return self._bodies

    @bodies.setter
    def bodies(self, value: Sequence[BodyLike]) -> None:
        """Set bodies from a sequence of Body/PointMass objects, dicts, or objects."""
        self._bodies = []
        for i, body_data in enumerate(value):
            if isinstance(body_data, Body):
                body = body_data
            elif isinstance(body_data, PointMass):
                body = Body(
                    position=body_data.position,
                    mass=body_data.mass,
                    velocity=body_data.velocity,
                )
            elif isinstance(body_data, dict):
                body = Body(**body_data)
            else:
                # Generic object - copy body attributes
                if not hasattr(body_data, "position") or not hasattr(body_data, "mass"):
                    raise InvalidBodyError(f"Body {i}: object has no position/mass attributes")
                body = Body(
                    position=body_data.position,
                    mass=body_data.mass,
                    velocity=getattr(body_data, "velocity", (0.0, 0.0, 0.0)),
                )
            body.index = i
            self._bodies.append(body)

    @property
    def body_count(self) -> int:
        return len(self._bodies)

    # -------------------------------------------------------------------------
    # Event System
    # -------------------------------------------------------------------------

    def on(self, event: EventType | str, callback: EventCallback) -> Self:
        """
        Subscribe to a simulation event.

        Args:
            event: Event type (EventType enum or string name)
            callback: Function to call when event fires

        Returns:
            self (for chaining)
        """
        if isinstance(event, str):
            event = EventType[event]
        self._events[event] = callback
        return self

    def trigger(self, event: Event) -> None:
        """
        Trigger an event, calling the registered callback.

        Args:
            event: Event payload with type and optional data
        """
        event_type = event.get("type")
        if event_type is not None and event_type in self._events:
            self._events[event_type](event)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate(self) -> Self:
        """
        Validate current configuration.

        Called automatically before every tick but can be called early for
        fail-fast behavior.

        Returns:
            self (for chaining)

        Raises:
            InvalidBodyCountError: If there are no bodies
        """
        validate_body_count(len(self._bodies))
        return self

    # -------------------------------------------------------------------------
    # Lifecycle Methods
    # -------------------------------------------------------------------------

    @abstractmethod
    def tick(self) -> Optional[TickResult]:
        """
        Advance the simulation by one fixed tick.

        Returns:
            The tick's result, or None if no work was done.
        """
        pass

    def stop(self) -> Self:
        """
        Stop the simulation.

        Returns:
            self (for chaining)
        """
        self.trigger({"type": EventType.end})
        return self

    # -------------------------------------------------------------------------
    # Utility Methods
    # -------------------------------------------------------------------------

    def _snapshot(self) -> list[PointMass]:
        """Freeze every live body into a PointMass, in index order."""
        return [body.snapshot() for body in self._bodies]

    def _apply_deltas(self, deltas: np.ndarray) -> None:
        """Add each body's velocity delta to its velocity."""
        for body, delta in zip(self._bodies, deltas):
            body.velocity = body.velocity + delta

    def _drift(self, time_step: float) -> None:
        """Advance each body's position by velocity * time_step."""
        for body in self._bodies:
            body.position = body.position + body.velocity * time_step


__all__ = ["BaseSimulation"]
