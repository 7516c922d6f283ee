"""Durable step execution and the workflow instance engine.

A workflow run is a sequence of named steps.  Each step's JSON result is
recorded in an :class:`~ragflow.interfaces.workflow_store.IWorkflowStore`
keyed by ``(instance_id, step_name)``; when the same instance runs again
(retry, crash recovery, process restart) a recorded step returns its stored
value instead of running its function a second time.

Step names are therefore idempotency keys and must be deterministic for a
given payload, e.g. ``"embed-batch-3"``.  Step functions should only carry
side effects that are safe to repeat (upserts keyed by stable ids), since a
crash between the side effect and the result write re-runs the function.

    create_instance(payload) ─→ store: queued ─→ asyncio task
        run_instance ─→ running ─→ workflow.run(payload, step)
            step.do("a", fn)  → fn() → store result
            step.do("b", fn)  → fn() → store result
        ─→ complete(output) | errored(error)
"""

from __future__ import annotations

import asyncio
import json
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Literal, Protocol

import structlog

from ragflow.interfaces.workflow_store import IWorkflowStore
from ragflow.models.workflow import InstanceRecord, InstanceStatus
from ragflow.utils.errors import (
    ConfigurationError,
    InstanceNotFoundError,
    PipelineError,
    StepError,
)
from ragflow.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


@dataclass(frozen=True)
class StepConfig:
    """Retry policy applied to every step of an instance.

    ``retries`` counts attempts after the first, so a step runs at most
    ``retries + 1`` times.
    """

    retries: int = 3
    delay_seconds: float = 1.0
    backoff: Literal["exponential", "constant"] = "exponential"

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed *attempt* (1-based)."""
        if self.backoff == "exponential":
            return self.delay_seconds * (2 ** (attempt - 1))
        return self.delay_seconds


class WorkflowStep:
    """Memoizing step runner bound to one workflow instance."""

    def __init__(
        self,
        instance_id: str,
        store: IWorkflowStore,
        config: StepConfig | None = None,
    ) -> None:
        self._instance_id = instance_id
        self._store = store
        self._config = config or StepConfig()
        self._logger = _logger.bind(instance_id=instance_id)

    @property
    def instance_id(self) -> str:
        return self._instance_id

    async def do(self, name: str, fn: Callable[[], Awaitable[Any]]) -> Any:
        """Run *fn* once per instance under the idempotency key *name*.

        Parameters
        ----------
        name:
            Step name, unique within the instance.
        fn:
            Zero-argument coroutine function producing a JSON-serializable
            value.

        Returns
        -------
        Any
            The JSON round-tripped result, identical on first run and on
            replay (tuples come back as lists, models must be dumped by the
            caller).

        Raises
        ------
        ConfigurationError
            Raised by *fn*; never retried.
        PipelineError
            If *fn* returns a value that cannot be encoded as JSON.
        StepError
            If *fn* still fails after every retry.
        """
        cached = await self._store.get_step_result(self._instance_id, name)
        if cached is not None:
            self._logger.debug("step_replayed", step=name)
            return json.loads(cached)

        attempts = self._config.retries + 1
        for attempt in range(1, attempts + 1):
            try:
                result = await fn()
                break
            except ConfigurationError:
                raise
            except Exception as exc:
                if attempt >= attempts:
                    self._logger.error(
                        "step_failed",
                        step=name,
                        attempts=attempt,
                        error=str(exc),
                    )
                    raise StepError(
                        message=f"Step '{name}' failed after {attempt} attempts: {exc}",
                        provider_name=getattr(exc, "provider_name", None),
                        step_name=name,
                        attempts=attempt,
                    ) from exc
                delay = self._config.delay_for(attempt)
                self._logger.warning(
                    "step_retry",
                    step=name,
                    attempt=attempt,
                    delay_s=delay,
                    error=str(exc),
                )
                await asyncio.sleep(delay)

        try:
            encoded = json.dumps(result)
        except (TypeError, ValueError) as exc:
            raise PipelineError(
                message=f"Step '{name}' returned a non-JSON-serializable result: {exc}"
            ) from exc

        stored = await self._store.save_step_result(self._instance_id, name, encoded)
        self._logger.debug("step_completed", step=name)
        return json.loads(stored)


class Workflow(Protocol):
    """Anything the engine can run: ``run(payload, step) -> JSON-able output``."""

    async def run(self, payload: dict[str, Any], step: WorkflowStep) -> Any: ...


class DurableWorkflowEngine:
    """Creates, runs and resumes workflow instances.

    Each instance runs on its own ``asyncio`` task, detached from the
    request that created it.  Abandoning a status poll never cancels the
    run; :meth:`shutdown` does, and :meth:`resume_pending` picks the
    cancelled instances back up from their last recorded step.
    """

    def __init__(
        self,
        store: IWorkflowStore,
        workflow: Workflow,
        step_config: StepConfig | None = None,
    ) -> None:
        self._store = store
        self._workflow = workflow
        self._step_config = step_config or StepConfig()
        self._tasks: dict[str, asyncio.Task[None]] = {}

    @property
    def store(self) -> IWorkflowStore:
        return self._store

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def create_instance(self, payload: dict[str, Any]) -> str:
        """Persist a queued instance for *payload* and schedule its run."""
        instance_id = uuid.uuid4().hex
        await self._store.create_instance(instance_id, payload)
        _logger.info(
            "instance_created",
            instance_id=instance_id,
            operation=payload.get("operation"),
        )
        self._schedule(instance_id)
        return instance_id

    async def get_instance_status(self, instance_id: str) -> InstanceRecord:
        """Return the current record for *instance_id*.

        Raises
        ------
        InstanceNotFoundError
            If the store has no such instance.
        """
        record = await self._store.get_instance(instance_id)
        if record is None:
            raise InstanceNotFoundError(message=f"Unknown workflow instance: {instance_id}")
        return record

    async def run_instance(self, instance_id: str) -> None:
        """Execute *instance_id* to a terminal status.

        Errors are recorded on the instance rather than raised.  A
        cancellation leaves the instance ``running`` so it is resumed on
        the next start.
        """
        record = await self.get_instance_status(instance_id)
        if record.status.is_terminal:
            return

        await self._store.update_instance(instance_id, InstanceStatus.RUNNING)
        step = WorkflowStep(instance_id, self._store, self._step_config)
        structlog.contextvars.bind_contextvars(instance_id=instance_id)
        try:
            output = await self._workflow.run(record.payload, step)
        except asyncio.CancelledError:
            _logger.warning("instance_cancelled", instance_id=instance_id)
            raise
        except Exception as exc:
            _logger.error(
                "instance_errored",
                instance_id=instance_id,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            await self._store.update_instance(instance_id, InstanceStatus.ERRORED, error=str(exc))
        else:
            await self._store.update_instance(instance_id, InstanceStatus.COMPLETE, output=output)
            _logger.info("instance_complete", instance_id=instance_id)
        finally:
            structlog.contextvars.unbind_contextvars("instance_id")

    async def resume_pending(self) -> int:
        """Schedule every queued or running instance left by a previous process."""
        pending = await self._store.list_instances([InstanceStatus.QUEUED, InstanceStatus.RUNNING])
        resumed = 0
        for instance_id in pending:
            if instance_id not in self._tasks:
                self._schedule(instance_id)
                resumed += 1
        if resumed:
            _logger.info("instances_resumed", count=resumed)
        return resumed

    async def drain(self) -> None:
        """Wait until every scheduled instance task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel outstanding instance tasks and wait for them to unwind."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            _logger.info("engine_shutdown", cancelled=len(tasks))
        self._tasks.clear()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _schedule(self, instance_id: str) -> None:
        task = asyncio.create_task(self._run_guarded(instance_id), name=f"workflow-{instance_id}")
        self._tasks[instance_id] = task
        task.add_done_callback(lambda _t: self._tasks.pop(instance_id, None))

    async def _run_guarded(self, instance_id: str) -> None:
        try:
            await self.run_instance(instance_id)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            # Store failures while recording the outcome; the instance stays
            # non-terminal and is picked up by resume_pending.
            _logger.error("instance_run_failed", instance_id=instance_id, error=str(exc))
