"""
Background execution of simulation batches.

A caller submits a request (scenario parameters and trial count) and gets a
task handle back immediately; the batch runs on a thread pool and the handle
delivers exactly one response: the full aggregate, never a partial one.

Cancellation is cooperative: the task's CancellationToken is checked between
trials, and a task cancelled while in flight raises SimulationCancelled
instead of returning a result, even if its last trial had already run.
Cancelling a task that has finished is a no-op. Any other exception
inside the task is surfaced as EngineFailure, which is distinct from a
simulated financial failure. Nothing is retried; a cancelled or failed batch
must be resubmitted.
"""

import logging
import threading
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional

from .params import PreconditionError, ScenarioMonteCarloResult, ScenarioParameters
from .random_source import spawn_seed
from .simulation import run_scenario_monte_carlo

logger = logging.getLogger(__name__)


class SimulationCancelled(RuntimeError):
    """The batch was cancelled before it delivered a response."""


class EngineFailure(RuntimeError):
    """The background computation itself failed."""


class CancellationToken:
    """Thread-safe cancellation flag shared by a caller and its task."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise SimulationCancelled("simulation cancelled")


@dataclass(frozen=True)
class MonteCarloRequest:
    """Request message: ``{params, numSimulations}`` plus an optional seed."""
    params: ScenarioParameters
    num_simulations: int = 1000
    seed: Optional[int] = None

    def __post_init__(self):
        if self.num_simulations < 1:
            raise PreconditionError("num_simulations must be at least 1")

    @classmethod
    def from_message(cls, message: dict) -> "MonteCarloRequest":
        """Decode a request message; params and numSimulations are required."""
        missing = [key for key in ('params', 'numSimulations') if key not in message]
        if missing:
            raise PreconditionError(f"missing request fields: {', '.join(missing)}")
        params = message['params']
        if not isinstance(params, ScenarioParameters):
            params = ScenarioParameters.from_dict(params)
        return cls(
            params=params,
            num_simulations=int(message['numSimulations']),
            seed=message.get('seed'),
        )


def handle_request(
    request: MonteCarloRequest,
    cancel_token: Optional[CancellationToken] = None,
) -> ScenarioMonteCarloResult:
    """Compute the response for one request on the calling thread."""
    seed = request.seed if request.seed is not None else spawn_seed()
    logger.debug("Handling request for %d trials with seed %d", request.num_simulations, seed)
    return run_scenario_monte_carlo(
        request.params,
        num_simulations=request.num_simulations,
        random_source=seed,
        cancel_token=cancel_token,
    )


class SimulationTask:
    """Handle for one in-flight batch."""

    def __init__(self, future: Future, token: CancellationToken):
        self._future = future
        self._token = token

    @property
    def token(self) -> CancellationToken:
        return self._token

    def cancel(self):
        """Discard the task if still in flight; a finished task keeps its result."""
        if self._future.done():
            return
        self._token.cancel()
        self._future.cancel()

    def cancelled(self) -> bool:
        return self._token.cancelled

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: Optional[float] = None) -> ScenarioMonteCarloResult:
        """
        Wait for the response.

        Raises:
            SimulationCancelled: if the task was cancelled
            EngineFailure: if the computation raised
            concurrent.futures.TimeoutError: if timeout elapsed
        """
        try:
            response = self._future.result(timeout)
        except (CancelledError, SimulationCancelled):
            raise SimulationCancelled("simulation cancelled") from None
        if self._token.cancelled:
            raise SimulationCancelled("simulation cancelled")
        return response

    def add_done_callback(self, callback: Callable[["SimulationTask"], None]):
        self._future.add_done_callback(lambda _: callback(self))


def _run_task(request: MonteCarloRequest, token: CancellationToken) -> ScenarioMonteCarloResult:
    try:
        return handle_request(request, token)
    except SimulationCancelled:
        logger.warning("Simulation of %d trials cancelled", request.num_simulations)
        raise
    except Exception as exc:
        logger.exception("Simulation task failed")
        raise EngineFailure(f"calculation failed: {exc}") from exc


class SimulationService:
    """
    Runs simulation requests off the calling thread.

    At most one request is in flight per service: submitting a new request
    cancels the previous one if it is still running, and its result is then
    never delivered. A task that already finished keeps its result.

    Args:
        max_workers: Thread pool size
    """

    def __init__(self, max_workers: int = 1):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='firesim')
        self._lock = threading.Lock()
        self._current: Optional[SimulationTask] = None

    def submit(self, request: MonteCarloRequest) -> SimulationTask:
        token = CancellationToken()
        with self._lock:
            if self._current is not None:
                self._current.cancel()
            future = self._executor.submit(_run_task, request, token)
            task = SimulationTask(future, token)
            self._current = task
        task.add_done_callback(self._release)
        logger.info("Submitted simulation of %d trials", request.num_simulations)
        return task

    def cancel(self):
        """Cancel the in-flight request, if any."""
        with self._lock:
            if self._current is not None:
                self._current.cancel()
                self._current = None

    def _release(self, task: SimulationTask):
        with self._lock:
            if self._current is task:
                self._current = None

    def shutdown(self, wait: bool = True):
        self.cancel()
        self._executor.shutdown(wait=wait)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()
