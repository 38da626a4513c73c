"""Fire-and-forget invocation of pipeline stages.

Delivery is at-least-once from the receiver's point of view: handlers must
tolerate being called again with the same payload.
"""

import json
import logging
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

from importflow.domain.errors import DependencyError

logger = logging.getLogger(__name__)

Handler = Callable[[dict[str, Any]], Any]


class AsyncInvoker(ABC):
    """Interface for handing a payload to another function without waiting on it."""

    @abstractmethod
    def invoke_fire_and_forget(self, function_ref: str, payload: dict[str, Any]) -> None:
        """Deliver ``payload`` to the function named ``function_ref``.

        Raises:
            DependencyError: If the payload could not be handed off
        """
        pass


class InlineInvoker(AsyncInvoker):
    """Runs handlers in the calling thread.

    Handler failures belong to the receiving side, so they are logged and kept
    in ``failures`` instead of reaching the caller.
    """

    def __init__(self):
        self._handlers: dict[str, Handler] = {}
        self.failures: list[tuple[str, dict[str, Any], Exception]] = []

    def register(self, function_ref: str, handler: Handler) -> None:
        self._handlers[function_ref] = handler

    def _resolve(self, function_ref: str, payload: dict[str, Any]) -> tuple[Handler, dict[str, Any]]:
        handler = self._handlers.get(function_ref)
        if handler is None:
            raise DependencyError(f"No handler registered for '{function_ref}'")
        try:
            # Payloads cross a process boundary in production; keep them JSON-only
            message = json.loads(json.dumps(payload))
        except (TypeError, ValueError) as e:
            raise DependencyError(f"Payload for '{function_ref}' is not serializable: {e}")
        return handler, message

    def _run(self, function_ref: str, handler: Handler, message: dict[str, Any]) -> None:
        try:
            handler(message)
        except Exception as e:
            logger.exception("Handler '%s' failed", function_ref)
            self.failures.append((function_ref, message, e))

    def invoke_fire_and_forget(self, function_ref: str, payload: dict[str, Any]) -> None:
        handler, message = self._resolve(function_ref, payload)
        logger.info("Invoking '%s'", function_ref)
        self._run(function_ref, handler, message)


class ThreadPoolInvoker(InlineInvoker):
    """Runs handlers on a background thread pool."""

    def __init__(self, max_workers: int = 4):
        super().__init__()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="importflow")
        # Scheduled handlers that have not finished yet
        self.pending: set[Future] = set()

    def invoke_fire_and_forget(self, function_ref: str, payload: dict[str, Any]) -> None:
        handler, message = self._resolve(function_ref, payload)
        logger.info("Scheduling '%s'", function_ref)
        try:
            future = self._executor.submit(self._run, function_ref, handler, message)
        except RuntimeError as e:
            raise DependencyError(f"Could not schedule '{function_ref}': {e}")
        self.pending.add(future)
        future.add_done_callback(self.pending.discard)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work, optionally waiting for scheduled handlers."""
        self._executor.shutdown(wait=wait)
