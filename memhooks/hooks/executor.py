"""Hook executor state machine.

Every hook invocation walks the same states::

    START -> ENSURE_WORKER -> CALL_WORKER -> EMIT_RESPONSE
                  \\               \\
                   +---------------+--> EMIT_DEGRADED_RESPONSE

Any exception raised on the way lands in ``EMIT_DEGRADED_RESPONSE``; what
that means depends on the executor class:

* ``BlockingExecutor`` - always produces a ``HookResponse``.  The degraded
  response is ``{"continue": true}`` with no injected context.
* ``FireAndForgetExecutor`` - never produces stdout, success or not.

Both classes exit 0.  The whole run is bounded by the hook's internal budget
(``HookDefinition.internal_budget``), which is strictly shorter than the
timeout the host enforces, so the degraded branch always gets to run before
the host kills the process.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, ClassVar

from memhooks.core.registry import RegistryStore
from memhooks.hooks.catalog import HookDefinition
from memhooks.hooks.models import HookExitCode, HookPayload, HookResponse

if TYPE_CHECKING:
    from memhooks.config import Settings
    from memhooks.core.worker_client import WorkerClient

logger = logging.getLogger(__name__)


class HookState(str, Enum):
    START = "start"
    ENSURE_WORKER = "ensure_worker"
    CALL_WORKER = "call_worker"
    EMIT_RESPONSE = "emit_response"
    EMIT_DEGRADED_RESPONSE = "emit_degraded_response"


class Budget:
    """Countdown shared by every worker call of one invocation."""

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.seconds = seconds
        self._clock = clock
        self._deadline = clock() + seconds

    def remaining(self) -> float:
        return max(0.0, self._deadline - self._clock())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0


@dataclass(frozen=True)
class HookOutcome:
    """Terminal state of one invocation."""

    state: HookState
    response: HookResponse | None
    exit_code: HookExitCode
    trace: tuple[HookState, ...]
    error: str = ""

    @property
    def degraded(self) -> bool:
        return self.state is HookState.EMIT_DEGRADED_RESPONSE


class HookExecutor(ABC):
    """Base class for one hook.

    Subclasses set ``definition`` and implement ``call_worker()``.  They may
    override ``should_skip()`` to answer without contacting the worker.

    Args:
        client: Worker client configured for this process.
        settings: Settings loaded at process start.
        registry: Project registry; defaults to the one under
            ``settings.data_dir``.
        clock: Monotonic clock for the internal budget.
    """

    definition: ClassVar[HookDefinition]

    def __init__(
        self,
        client: WorkerClient,
        settings: Settings,
        *,
        registry: RegistryStore | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client = client
        self.settings = settings
        self.registry = registry or RegistryStore(settings.registry_path)
        self._clock = clock

    def should_skip(self, payload: HookPayload) -> bool:
        """Return True to emit the normal response without any worker call."""
        return False

    @abstractmethod
    def call_worker(self, payload: HookPayload, budget: Budget) -> HookResponse | None:
        """Perform the event-specific worker call."""

    @abstractmethod
    def skip_response(self, payload: HookPayload) -> HookResponse | None:
        """Response emitted when ``should_skip()`` is true."""

    @abstractmethod
    def degraded_response(self, payload: HookPayload) -> HookResponse | None:
        """Response emitted on any failure."""

    def run(self, payload: HookPayload) -> HookOutcome:
        """Drive the state machine for one invocation. Never raises."""
        trace = [HookState.START]
        budget = Budget(
            self.definition.internal_budget(self.settings.hook_timeout_margin),
            self._clock,
        )

        try:
            if self.should_skip(payload):
                logger.debug(f"{self.definition.name}: skipped")
                response = self.skip_response(payload)
            else:
                trace.append(HookState.ENSURE_WORKER)
                self.client.ensure_running(timeout=budget.remaining())

                trace.append(HookState.CALL_WORKER)
                response = self.call_worker(payload, budget)
        except Exception as e:
            logger.warning(f"{self.definition.name}: degraded after {trace[-1].value}: {e}")
            trace.append(HookState.EMIT_DEGRADED_RESPONSE)
            return HookOutcome(
                state=HookState.EMIT_DEGRADED_RESPONSE,
                response=self.degraded_response(payload),
                exit_code=HookExitCode.SUCCESS,
                trace=tuple(trace),
                error=str(e),
            )

        trace.append(HookState.EMIT_RESPONSE)
        return HookOutcome(
            state=HookState.EMIT_RESPONSE,
            response=response,
            exit_code=HookExitCode.SUCCESS,
            trace=tuple(trace),
        )


class BlockingExecutor(HookExecutor):
    """Hook whose JSON response the host waits for.

    Only an explicit decision returned by ``call_worker()`` may set
    ``continue`` to false; every failure path continues.
    """

    def skip_response(self, payload: HookPayload) -> HookResponse:
        return HookResponse(event=payload.event)

    def degraded_response(self, payload: HookPayload) -> HookResponse:
        return HookResponse(continue_=True, event=payload.event)


class FireAndForgetExecutor(HookExecutor):
    """Hook with no response: captures something and exits quietly."""

    @abstractmethod
    def capture(self, payload: HookPayload, budget: Budget) -> None:
        """Send the captured data to the worker."""

    def call_worker(self, payload: HookPayload, budget: Budget) -> None:
        self.capture(payload, budget)
        return None

    def skip_response(self, payload: HookPayload) -> None:
        return None

    def degraded_response(self, payload: HookPayload) -> None:
        return None
