"""
Progress phases of a parse operation.

A parse takes seconds, so callers render granular progress from the phase
instead of a single spinner:

    IDLE -> STARTING -> PROCESSING -> COMPLETING -> IDLE

Forward transitions are strictly sequential. Returning to IDLE is allowed from
any phase (success, failure, cancellation). Re-entering the current phase is a
no-op and does not notify observers.
"""

import threading
from enum import Enum
from typing import Callable

from loguru import logger


class ParsingPhase(Enum):
    """
    Phase of the current parse operation.

    - IDLE: no active operation, ready for a new request
    - STARTING: request accepted, not yet dispatched
    - PROCESSING: network call and retries under way
    - COMPLETING: response received, recovery/validation under way
    """

    IDLE = "idle"
    STARTING = "starting"
    PROCESSING = "processing"
    COMPLETING = "completing"


# Allowed forward transitions (IDLE is always reachable)
_NEXT_PHASE = {
    ParsingPhase.IDLE: ParsingPhase.STARTING,
    ParsingPhase.STARTING: ParsingPhase.PROCESSING,
    ParsingPhase.PROCESSING: ParsingPhase.COMPLETING,
}

PhaseObserver = Callable[[ParsingPhase, ParsingPhase], None]


class InvalidPhaseTransition(ValueError):
    """Raised when a transition skips a phase or moves backward (other than to IDLE)."""

    def __init__(self, current: ParsingPhase, requested: ParsingPhase):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move from {current.value} to {requested.value}")


class ParsingPhaseMachine:
    """
    Thread-safe phase state machine with observers.

    Observers are called as observer(old_phase, new_phase) after each real
    transition, outside the internal lock.

    Example:
        phases = ParsingPhaseMachine()
        unsubscribe = phases.subscribe(lambda old, new: print(new.value))
        phases.advance(ParsingPhase.STARTING)   # prints "starting"
        phases.advance(ParsingPhase.STARTING)   # no-op, prints nothing
        phases.reset()                          # prints "idle"
    """

    def __init__(self):
        self._phase = ParsingPhase.IDLE
        self._lock = threading.Lock()
        self._observers: list[PhaseObserver] = []

    @property
    def phase(self) -> ParsingPhase:
        return self._phase

    @property
    def is_active(self) -> bool:
        return self._phase is not ParsingPhase.IDLE

    def subscribe(self, observer: PhaseObserver) -> Callable[[], None]:
        """
        Register an observer.

        Returns:
            Function that unregisters the observer
        """
        with self._lock:
            self._observers.append(observer)

        def unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return unsubscribe

    def can_advance(self, phase: ParsingPhase) -> bool:
        """Whether advance(phase) would be accepted from the current phase."""
        current = self._phase
        return phase is current or phase is ParsingPhase.IDLE or _NEXT_PHASE.get(current) is phase

    def advance(self, phase: ParsingPhase) -> bool:
        """
        Move to `phase`.

        Returns:
            True if the phase changed, False if it was already current

        Raises:
            InvalidPhaseTransition: If the move skips a phase or goes backward
        """
        with self._lock:
            old = self._phase
            if phase is old:
                return False
            if phase is not ParsingPhase.IDLE and _NEXT_PHASE.get(old) is not phase:
                raise InvalidPhaseTransition(old, phase)
            self._phase = phase
            observers = list(self._observers)

        self._notify(observers, old, phase)
        return True

    def reset(self) -> bool:
        """Force IDLE from any phase. Returns True if the phase changed."""
        return self.advance(ParsingPhase.IDLE)

    def _notify(
        self, observers: list[PhaseObserver], old: ParsingPhase, new: ParsingPhase
    ) -> None:
        for observer in observers:
            try:
                observer(old, new)
            except Exception:
                logger.exception(f"[intake] Phase observer failed on {old.value} -> {new.value}")
