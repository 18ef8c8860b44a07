"""In-memory driver sessions holding one route plan and one active route per driver."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterator, Optional, TypeVar

from ...models.domain import ActiveRoute, DeliveryStop, RouteOptimization, RouteProgress, RouteStatus
from .exceptions import InvalidStateError, SessionNotFoundError
from .tracker import RouteExecutionTracker

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class DriverSession:
    driver_id: str
    plan: Optional[RouteOptimization] = None
    active_route: Optional[ActiveRoute] = None
    discarded: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


class DriverSessionStore:
    """Owns driver sessions and serializes every mutation of a driver's route.

    Each session has its own lock, so at most one start/complete/fail call is in
    flight against a given route while different drivers proceed in parallel.
    """

    def __init__(self, tracker: RouteExecutionTracker | None = None) -> None:
        self.tracker = tracker or RouteExecutionTracker()
        self._sessions: dict[str, DriverSession] = {}
        self._lock = threading.Lock()

    def _get(self, driver_id: str) -> DriverSession:
        with self._lock:
            session = self._sessions.get(driver_id)
        if session is None:
            raise SessionNotFoundError(driver_id)
        return session

    @contextmanager
    def _locked(self, driver_id: str) -> Iterator[DriverSession]:
        session = self._get(driver_id)
        with session.lock:
            # Lost a race with discard(); the session is no longer in the store.
            if session.discarded:
                raise SessionNotFoundError(driver_id)
            yield session

    def _with_active(self, driver_id: str, action: Callable[[ActiveRoute], T]) -> T:
        with self._locked(driver_id) as session:
            if session.active_route is None:
                raise InvalidStateError(f"Driver '{driver_id}' has not started a route")
            return action(session.active_route)

    def save_plan(self, driver_id: str, plan: RouteOptimization) -> RouteOptimization:
        """Attach a freshly optimized plan, replacing any earlier draft or finished route."""
        while True:
            with self._lock:
                session = self._sessions.setdefault(driver_id, DriverSession(driver_id=driver_id))
            with session.lock:
                if not session.discarded:
                    self._store_plan(session, plan)
                    break
        logger.info(f"Stored plan {plan.id} for driver {driver_id}")
        return plan

    def _store_plan(self, session: DriverSession, plan: RouteOptimization) -> None:
        driver_id = session.driver_id
        if session.active_route is not None and session.active_route.status is RouteStatus.ACTIVE:
            raise InvalidStateError(
                f"Driver '{driver_id}' is executing route {session.active_route.id}; "
                "finish or discard it before planning a new one"
            )
        session.plan = plan
        session.active_route = None

    def plan(self, driver_id: str) -> RouteOptimization:
        with self._locked(driver_id) as session:
            if session.plan is None:
                raise SessionNotFoundError(driver_id)
            return session.plan

    def active_route(self, driver_id: str) -> Optional[ActiveRoute]:
        with self._locked(driver_id) as session:
            return session.active_route

    def start(self, driver_id: str) -> ActiveRoute:
        with self._locked(driver_id) as session:
            if session.plan is None:
                raise SessionNotFoundError(driver_id)
            # An existing active route carries a non-draft status and is rejected by the tracker.
            source = session.active_route or session.plan
            session.active_route = self.tracker.start_route(source)
            return session.active_route

    def arrive(self, driver_id: str, stop_id: str) -> ActiveRoute:
        return self._mutate(driver_id, lambda route: self.tracker.arrive_at_stop(route, stop_id))

    def complete(self, driver_id: str, stop_id: str) -> ActiveRoute:
        return self._mutate(driver_id, lambda route: self.tracker.complete_stop(route, stop_id))

    def fail(self, driver_id: str, stop_id: str, reason: str) -> ActiveRoute:
        return self._mutate(driver_id, lambda route: self.tracker.fail_stop(route, stop_id, reason))

    def current_stop(self, driver_id: str) -> DeliveryStop:
        return self._with_active(driver_id, self.tracker.current_stop)

    def progress(self, driver_id: str) -> RouteProgress:
        return self._with_active(driver_id, self.tracker.summary)

    def discard(self, driver_id: str) -> None:
        with self._locked(driver_id) as session:
            session.discarded = True
            with self._lock:
                if self._sessions.get(driver_id) is session:
                    del self._sessions[driver_id]
        logger.info(f"Discarded route session for driver {driver_id}")

    def _mutate(self, driver_id: str, action: Callable[[ActiveRoute], ActiveRoute]) -> ActiveRoute:
        with self._locked(driver_id) as session:
            if session.active_route is None:
                raise InvalidStateError(f"Driver '{driver_id}' has not started a route")
            session.active_route = action(session.active_route)
            return session.active_route
