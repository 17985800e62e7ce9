"""Debounced, race-safe route requests with an optional traffic comparison.

Every dispatch is tagged with a token from a counter owned by the
coordinator. A fetch that settles after a newer dispatch (or a clear) is
dropped without touching state, so the visible state always reflects the
last scheduled request regardless of the order responses arrive in.
"""

import asyncio
import enum
import logging
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Awaitable, Callable

from route_speed.models import Coordinate, RouteConfig, RouteRequest, RouteResponse
from route_speed.scheduler import DelayedTask
from route_speed.solvice import (
    NETWORK_ERROR_MESSAGE,
    RoutingError,
    ValidationError,
    build_request,
    fetch_route_async,
)
from route_speed.traffic import should_compare_traffic, traffic_route_config

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 300

BASELINE = "baseline"
TRAFFIC = "traffic"

FetchFunc = Callable[[RouteRequest], Awaitable[RouteResponse]]


class SlotStatus(str, enum.Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    IN_FLIGHT = "in_flight"
    RESOLVED = "resolved"
    ERRORED = "errored"


@dataclass
class SlotState:
    status: SlotStatus = SlotStatus.IDLE
    data: RouteResponse | None = None
    error: str | None = None
    calculation_time_ms: int | None = None  # baseline slot only
    token: int | None = None  # token of the request that produced data/error


@dataclass
class CoordinatorState:
    baseline: SlotState = field(default_factory=SlotState)
    traffic: SlotState = field(default_factory=SlotState)
    latest_token: int = 0

    @property
    def loading(self) -> bool:
        return SlotStatus.IN_FLIGHT in (self.baseline.status, self.traffic.status)


def _error_message(error: Exception) -> str:
    if isinstance(error, RoutingError):
        return str(error)
    if isinstance(error, (ConnectionError, TimeoutError, OSError)):
        return NETWORK_ERROR_MESSAGE
    return f"Route calculation failed: {error}"


class RequestCoordinator:
    """Turns a stream of (coordinates, config) inputs into at most one live computation.

    Args:
        fetch: Async function that calculates one route. Defaults to the
            Solvice client.
        compare_traffic_default: Used when schedule() is not told whether
            to run the traffic comparison.
        abort_superseded: Also cancel the asyncio tasks of superseded
            fetches. Their results are ignored either way.
        clock: Monotonic clock in seconds, for the baseline timing.
        now: Wall-clock source for the traffic departure time.
    """

    def __init__(
        self,
        fetch: FetchFunc | None = None,
        *,
        compare_traffic_default: bool = True,
        abort_superseded: bool = False,
        clock: Callable[[], float] = time.perf_counter,
        now: Callable[[], datetime] | None = None,
    ):
        self._fetch = fetch or fetch_route_async
        self.compare_traffic_default = compare_traffic_default
        self.abort_superseded = abort_superseded
        self._clock = clock
        self._now = now or (lambda: datetime.now(timezone.utc))
        self._latest_token = 0
        self._pending: DelayedTask | None = None
        self._in_flight: set[asyncio.Task] = set()
        self._state = CoordinatorState()
        self._listeners: list[Callable[[CoordinatorState], None]] = []

    @property
    def latest_token(self) -> int:
        return self._latest_token

    @property
    def state(self) -> CoordinatorState:
        """Snapshot of the observable state."""
        return CoordinatorState(
            baseline=replace(self._state.baseline),
            traffic=replace(self._state.traffic),
            latest_token=self._latest_token,
        )

    def subscribe(self, listener: Callable[[CoordinatorState], None]) -> Callable[[], None]:
        """Call listener with a state snapshot after every change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.state
        for listener in list(self._listeners):
            listener(snapshot)

    def _next_token(self) -> int:
        self._latest_token += 1
        return self._latest_token

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _abort_in_flight(self) -> None:
        for task in list(self._in_flight):
            task.cancel()

    def schedule(
        self,
        coordinates: list[Coordinate] | None,
        config: RouteConfig | None = None,
        debounce_ms: float = DEFAULT_DEBOUNCE_MS,
        compare_traffic: bool | None = None,
    ) -> None:
        """Schedule a route calculation after a quiet period of debounce_ms.

        A call made before the previous delay expires replaces it. Fewer
        than 2 coordinates (or an invalid pair) issues no request and
        clears any result currently held.

        Must be called from within a running event loop.
        """
        try:
            request = build_request(coordinates or [], config)
        except ValidationError as e:
            logger.debug("Not scheduling route: %s", e)
            self.clear()
            return

        if compare_traffic is None:
            compare_traffic = should_compare_traffic(request.config, self.compare_traffic_default)

        self._cancel_pending()
        self._state.baseline.status = SlotStatus.DEBOUNCING
        self._state.traffic.status = SlotStatus.DEBOUNCING if compare_traffic else SlotStatus.IDLE
        self._pending = DelayedTask(debounce_ms / 1000, lambda: self._dispatch(request, compare_traffic))
        self._notify()

    def _dispatch(self, request: RouteRequest, compare_traffic: bool) -> None:
        self._pending = None
        if self.abort_superseded:
            self._abort_in_flight()

        token = self._next_token()
        logger.info(
            "Dispatching route request %d (%d coordinates, traffic=%s)",
            token, len(request.coordinates), compare_traffic,
        )

        self._state.baseline.status = SlotStatus.IN_FLIGHT
        self._state.baseline.error = None
        self._start(BASELINE, token, request)

        if compare_traffic:
            traffic_request = replace(request, config=traffic_route_config(request.config, self._now()))
            self._state.traffic.status = SlotStatus.IN_FLIGHT
            self._state.traffic.error = None
            self._start(TRAFFIC, token, traffic_request)
        else:
            self._state.traffic = SlotState()

        self._notify()

    def _start(self, slot: str, token: int, request: RouteRequest) -> None:
        task = asyncio.get_running_loop().create_task(self._run_fetch(slot, token, request))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _run_fetch(self, slot: str, token: int, request: RouteRequest) -> None:
        started = self._clock()
        data = None
        error = None
        try:
            data = await self._fetch(request)
        except asyncio.CancelledError:
            logger.debug("%s fetch for request %d cancelled", slot, token)
            raise
        except Exception as e:
            error = _error_message(e)
            logger.warning("%s route request %d failed: %s", slot, token, error)
        elapsed_ms = int(round((self._clock() - started) * 1000))

        if token != self._latest_token:
            logger.debug("Dropping stale %s result for request %d (latest %d)", slot, token, self._latest_token)
            return

        if error is None:
            state = SlotState(status=SlotStatus.RESOLVED, data=data, token=token)
            if slot == BASELINE:
                state.calculation_time_ms = elapsed_ms
        else:
            state = SlotState(status=SlotStatus.ERRORED, error=error, token=token)
        setattr(self._state, slot, state)
        self._notify()

    def clear(self) -> None:
        """Cancel pending work, invalidate in-flight requests and reset state."""
        self._cancel_pending()
        if self.abort_superseded:
            self._abort_in_flight()
        self._next_token()
        self._state = CoordinatorState()
        self._notify()

    async def wait(self) -> None:
        """Wait for the pending debounce and every in-flight fetch to settle."""
        while self._pending is not None or self._in_flight:
            if self._pending is not None:
                pending = self._pending
                await pending.wait()
                if self._pending is pending and not pending.fired:
                    self._pending = None
                continue
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    async def close(self) -> None:
        """Cancel pending and in-flight work."""
        self._cancel_pending()
        tasks = list(self._in_flight)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
