from __future__ import annotations

import asyncio
import logging
import os
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable

from src.app.ports.output import ILocationRepository, IRouteRepository, ITripRepository
from src.app.services.stop_arrival_tracker import StopArrivalTracker
from src.domain.algorithms.delay_model import CategoricalDelayModel, DelayModel
from src.domain.algorithms.interpolation import InterpolationMode, position_at_progress
from src.domain.algorithms.telemetry import RandomTelemetry, TelemetryGenerator
from src.domain.exceptions import (
    AlreadyTerminal,
    InvalidInput,
    NotFound,
    SimulationAlreadyRunning,
    TrackingError,
)
from src.domain.models import (
    FixSource,
    GpsFix,
    MovementStatus,
    Route,
    Trip,
    TripStatus,
)

logger = logging.getLogger(__name__)

STOPPED_AT_PROGRESS = 0.95
_RUNNING_STATUSES = frozenset({TripStatus.IN_PROGRESS})


@dataclass(frozen=True, slots=True)
class SimulationConfig:
    """Timing and detection knobs for the demo simulation.

    Env vars:
      - SIMULATION_TICK_INTERVAL_S (default 10)
      - SIMULATION_WINDOW_S (default 360)
      - SIMULATION_ARRIVAL_RADIUS_M (default 200)
      - SIMULATION_INTERPOLATION: equal|offset-weighted (default equal)
      - SIMULATION_COMPLETION_ATTEMPTS (default 2)
    """

    tick_interval_s: float = 10.0
    window_s: float = 360.0
    arrival_radius_m: float = 200.0
    interpolation: InterpolationMode = InterpolationMode.EQUAL
    completion_attempts: int = 2
    completion_retry_delay_s: float = 1.0

    def __post_init__(self) -> None:
        if self.tick_interval_s <= 0 or self.window_s <= 0:
            raise InvalidInput("Simulation tick interval and window must be positive")
        if self.tick_interval_s > self.window_s:
            raise InvalidInput("Simulation tick interval exceeds the window")
        if self.completion_attempts < 1:
            raise InvalidInput("completion_attempts must be at least 1")

    @property
    def tick_count(self) -> int:
        return max(1, int(round(self.window_s / self.tick_interval_s)))

    @staticmethod
    def from_env() -> "SimulationConfig":
        return SimulationConfig(
            tick_interval_s=float(os.getenv("SIMULATION_TICK_INTERVAL_S", "10")),
            window_s=float(os.getenv("SIMULATION_WINDOW_S", "360")),
            arrival_radius_m=float(os.getenv("SIMULATION_ARRIVAL_RADIUS_M", "200")),
            interpolation=InterpolationMode(
                (os.getenv("SIMULATION_INTERPOLATION") or "equal").strip().lower()
            ),
            completion_attempts=int(os.getenv("SIMULATION_COMPLETION_ATTEMPTS", "2")),
        )


class SimulationState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class SimulationAck:
    trip_id: str
    registration_number: str
    window_s: float
    tick_interval_s: float
    scheduled_start: datetime
    scheduled_end: datetime


@dataclass(slots=True)
class SimulationEngine:
    """Drives one trip through a time-compressed demo run.

    The real scheduled duration (hours) is squeezed into `config.window_s`
    of wall-clock time; every fix carries a virtual timestamp on the trip's
    own schedule. All run state lives on this instance.
    """

    trip_id: str
    trips: ITripRepository
    routes: IRouteRepository
    locations: ILocationRepository
    config: SimulationConfig = field(default_factory=SimulationConfig)
    delay_model: DelayModel = field(default_factory=CategoricalDelayModel)
    telemetry: TelemetryGenerator = field(default_factory=RandomTelemetry)

    state: SimulationState = field(default=SimulationState.IDLE, init=False)
    ticks_emitted: int = field(default=0, init=False)
    _trip: Trip | None = field(default=None, init=False, repr=False)
    _route: Route | None = field(default=None, init=False, repr=False)
    _tracker: StopArrivalTracker | None = field(default=None, init=False, repr=False)
    _last_timestamp: datetime | None = field(default=None, init=False, repr=False)
    _cancelled: asyncio.Event = field(
        default_factory=asyncio.Event, init=False, repr=False
    )
    _loop: asyncio.AbstractEventLoop | None = field(default=None, init=False, repr=False)

    def prepare(self) -> SimulationAck:
        """Validate the trip and mark it in-progress; nothing is written on failure."""

        try:
            trip = self.trips.get(self.trip_id)
            if trip is None:
                raise NotFound(f"Trip not found: {self.trip_id}")
            trip.ensure_can_transition(TripStatus.IN_PROGRESS)

            route = self.routes.get(trip.route_id)
            if route is None:
                raise NotFound(f"Route not found: {trip.route_id}")
            first = route.first_stop
            if first is None:
                raise InvalidInput(f"Route {route.route_id} has no stops")
            if trip.scheduled_end <= trip.scheduled_start:
                raise InvalidInput(
                    f"Trip {trip.trip_id} is scheduled to end before it starts"
                )

            # Virtual time always replays the schedule, not "now".
            trip = self.trips.update_status(
                trip.trip_id,
                TripStatus.IN_PROGRESS,
                actual_start=trip.scheduled_start,
                current_stop=first.name,
                expected=frozenset({trip.status}),
            )
        except TrackingError as exc:
            self.state = SimulationState.FAILED
            logger.warning("Simulation for trip %s not started: %s", self.trip_id, exc)
            raise

        self._trip = trip
        self._route = route
        self._tracker = StopArrivalTracker(
            trip=trip,
            route=route,
            trips=self.trips,
            radius_m=self.config.arrival_radius_m,
        )
        self.state = SimulationState.RUNNING
        logger.info(
            "Simulating trip %s on %s (%d stops): %s -> %s in %.0fs",
            trip.trip_id,
            route.name,
            len(route.stops),
            trip.scheduled_start.isoformat(),
            trip.scheduled_end.isoformat(),
            self.config.window_s,
        )
        return SimulationAck(
            trip_id=trip.trip_id,
            registration_number=trip.registration_number,
            window_s=self.config.window_s,
            tick_interval_s=self.config.tick_interval_s,
            scheduled_start=trip.scheduled_start,
            scheduled_end=trip.scheduled_end,
        )

    def tick(self, elapsed_s: float) -> GpsFix | None:
        """Emit one fix for `elapsed_s` seconds into the window.

        Failures are logged and the fix is dropped; the run carries on.
        """

        if self._trip is None:
            raise RuntimeError("SimulationEngine.prepare() must run before tick()")
        try:
            return self._emit_fix(elapsed_s)
        except Exception:
            logger.exception(
                "Dropped GPS fix for trip %s at %.1fs", self.trip_id, elapsed_s
            )
            return None

    def _emit_fix(self, elapsed_s: float) -> GpsFix:
        trip = self._trip
        route = self._route
        tracker = self._tracker
        assert trip is not None and route is not None and tracker is not None

        progress = min(max(elapsed_s / self.config.window_s, 0.0), 1.0)
        nominal = trip.scheduled_start + trip.scheduled_duration * progress
        timestamp = nominal + self.delay_model.sample()
        if self._last_timestamp is not None and timestamp < self._last_timestamp:
            timestamp = self._last_timestamp

        position = position_at_progress(route.stops, progress, self.config.interpolation)
        fix = GpsFix(
            registration_number=trip.registration_number,
            trip_id=trip.trip_id,
            timestamp=timestamp,
            location=position,
            speed_kmh=self.telemetry.speed_kmh(progress),
            heading_deg=self.telemetry.heading_deg(),
            status=(
                MovementStatus.STOPPED
                if progress >= STOPPED_AT_PROGRESS
                else MovementStatus.MOVING
            ),
            source=FixSource.SIMULATION,
        )
        self.locations.append(fix)
        self._last_timestamp = timestamp
        self.ticks_emitted += 1
        logger.debug(
            "Trip %s fix %s [%.4f, %.4f] %.0f km/h",
            trip.trip_id,
            timestamp.isoformat(),
            position.lat,
            position.lon,
            fix.speed_kmh,
        )

        tracker.check(position, timestamp)
        return fix

    def cancel(self) -> None:
        """Ask the run loop to stop; safe to call from any thread."""

        loop = self._loop
        if loop is None or loop.is_closed():
            self._cancelled.set()
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self._cancelled.set()
        else:
            loop.call_soon_threadsafe(self._cancelled.set)

    async def _wait_or_cancel(self, timeout_s: float) -> bool:
        if timeout_s > 0:
            try:
                await asyncio.wait_for(self._cancelled.wait(), timeout_s)
            except asyncio.TimeoutError:
                pass
        return self._cancelled.is_set()

    async def run(self) -> SimulationState:
        """Tick until the window closes or `cancel()` is called."""

        if self.state is not SimulationState.RUNNING:
            raise RuntimeError("SimulationEngine.prepare() must succeed before run()")

        loop = asyncio.get_running_loop()
        self._loop = loop
        started = loop.time()
        interval = self.config.tick_interval_s
        try:
            for n in range(1, self.config.tick_count + 1):
                # Deadlines are absolute so slow ticks don't stretch the window.
                if await self._wait_or_cancel(started + n * interval - loop.time()):
                    break
                await asyncio.to_thread(self.tick, n * interval)
        except asyncio.CancelledError:
            self._cancelled.set()
            await asyncio.to_thread(self._finish, SimulationState.CANCELLED)
            raise

        final = (
            SimulationState.CANCELLED
            if self._cancelled.is_set()
            else SimulationState.COMPLETED
        )
        await asyncio.to_thread(self._finish, final)
        return self.state

    def _finish(self, final: SimulationState) -> None:
        trip = self._trip
        assert trip is not None

        if final is SimulationState.COMPLETED:
            status, actual_end = TripStatus.COMPLETED, trip.scheduled_end
        else:
            # Cancelled before the first fix: the run ends where it started.
            status = TripStatus.CANCELLED
            actual_end = (
                self._last_timestamp or trip.actual_start or trip.scheduled_start
            )

        attempts = self.config.completion_attempts
        for attempt in range(1, attempts + 1):
            try:
                self.trips.update_status(
                    trip.trip_id,
                    status,
                    actual_end=actual_end,
                    expected=_RUNNING_STATUSES,
                )
                break
            except (AlreadyTerminal, InvalidInput) as exc:
                # Completed or cancelled from elsewhere; leave it be.
                logger.info(
                    "Trip %s left as is when simulation ended: %s", trip.trip_id, exc
                )
                break
            except Exception:
                logger.warning(
                    "Could not mark trip %s %s (attempt %d/%d)",
                    trip.trip_id,
                    status.value,
                    attempt,
                    attempts,
                    exc_info=True,
                )
                if attempt < attempts:
                    time.sleep(self.config.completion_retry_delay_s)
        else:
            logger.error("Giving up on final status write for trip %s", trip.trip_id)

        self.state = final
        logger.info(
            "Simulation for trip %s %s after %d fixes",
            trip.trip_id,
            final.value,
            self.ticks_emitted,
        )


@dataclass(slots=True)
class SimulationService:
    """Owns the live simulations of this process, one task per trip.

    The registry is mutated on the event loop but read from threadpool
    workers (sync endpoints cancelling a trip), so every access holds `_lock`.
    """

    trips: ITripRepository
    routes: IRouteRepository
    locations: ILocationRepository
    config: SimulationConfig = field(default_factory=SimulationConfig.from_env)
    delay_model_factory: Callable[[], DelayModel] = CategoricalDelayModel
    telemetry_factory: Callable[[], TelemetryGenerator] = RandomTelemetry

    _engines: dict[str, SimulationEngine] = field(
        default_factory=dict, init=False, repr=False
    )
    _tasks: dict[str, asyncio.Task[SimulationState]] = field(
        default_factory=dict, init=False, repr=False
    )
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    def is_running(self, trip_id: str) -> bool:
        with self._lock:
            return trip_id.strip().upper() in self._engines

    def running_trip_ids(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(sorted(self._engines))

    async def start_simulation(self, trip_id: str) -> SimulationAck:
        """Validate and launch; returns once the trip is marked in-progress."""

        trip_id = trip_id.strip().upper()
        engine = SimulationEngine(
            trip_id=trip_id,
            trips=self.trips,
            routes=self.routes,
            locations=self.locations,
            config=self.config,
            delay_model=self.delay_model_factory(),
            telemetry=self.telemetry_factory(),
        )
        # Reserve the slot before the first await so concurrent starts collide.
        with self._lock:
            if trip_id in self._engines:
                raise SimulationAlreadyRunning(
                    f"Trip {trip_id} is already being simulated"
                )
            self._engines[trip_id] = engine
        try:
            ack = await asyncio.to_thread(engine.prepare)
        except BaseException:
            with self._lock:
                self._engines.pop(trip_id, None)
            raise

        task = asyncio.create_task(engine.run(), name=f"simulation-{trip_id}")
        with self._lock:
            self._tasks[trip_id] = task
        task.add_done_callback(lambda t: self._forget(trip_id, t))
        return ack

    def _forget(self, trip_id: str, task: asyncio.Task[SimulationState]) -> None:
        with self._lock:
            if self._tasks.get(trip_id) is task:
                self._tasks.pop(trip_id, None)
                self._engines.pop(trip_id, None)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "Simulation task for trip %s crashed",
                trip_id,
                exc_info=task.exception(),
            )

    def cancel_simulation(self, trip_id: str) -> bool:
        with self._lock:
            engine = self._engines.get(trip_id.strip().upper())
        if engine is None:
            return False
        engine.cancel()
        return True

    async def wait(self, trip_id: str) -> SimulationState | None:
        with self._lock:
            task = self._tasks.get(trip_id.strip().upper())
        if task is None:
            return None
        return await task

    async def shutdown(self) -> None:
        with self._lock:
            tasks = list(self._tasks.values())
            engines = list(self._engines.values())
        for engine in engines:
            engine.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
