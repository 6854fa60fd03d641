"""
Bounded inference bridge.

Route handlers run synchronously in worker threads, while backends are
coroutines. The bridge owns one background event loop and submits each
generation to it with `run_coroutine_threadsafe`; the calling thread
then blocks on the returned future for at most the configured deadline.

Whatever happens, `invoke` returns exactly one outcome. A generation
that misses the deadline is cancelled best-effort and its future is
dropped, so a late result can never reach a response.
"""

import asyncio
import concurrent.futures
import logging
import threading
from typing import Optional

from .backends import InferenceBackend
from .models import (
    BackendFailure,
    BackendUnavailable,
    InferenceOutcome,
    InferenceRequest,
    Success,
    TimedOut,
)

logger = logging.getLogger(__name__)


class InferenceBridge:
    """Runs backend coroutines on a private loop and waits with a deadline."""

    def __init__(self, backend: InferenceBackend, timeout: float = 30.0):
        self.backend = backend
        self.timeout = timeout
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> asyncio.AbstractEventLoop:
        """Start the background event loop thread and return its loop."""
        with self._lock:
            if self.running:
                return self._loop
            loop = asyncio.new_event_loop()
            thread = threading.Thread(
                target=self._run_loop,
                args=(loop,),
                name="inference-loop",
                daemon=True,
            )
            thread.start()
            self._loop = loop
            self._thread = thread
        logger.info(f"Inference bridge started (backend={self.backend.name}, timeout={self.timeout}s)")
        return loop

    def stop(self):
        """Close the backend and stop the loop. Pending generations are abandoned."""
        with self._lock:
            if not self.running:
                return
            loop, thread = self._loop, self._thread
            self._loop = None
            self._thread = None

        closing = asyncio.run_coroutine_threadsafe(self._shutdown(), loop)
        try:
            closing.result(timeout=5.0)
        except Exception as e:
            logger.warning(f"Backend close failed: {e}")

        loop.call_soon_threadsafe(loop.stop)
        thread.join(timeout=5.0)
        logger.info("Inference bridge stopped")

    async def _shutdown(self):
        """Cancel abandoned generations, then close the backend."""
        pending = [task for task in asyncio.all_tasks() if task is not asyncio.current_task()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.info(f"Cancelled {len(pending)} pending generation(s)")
        await self.backend.aclose()

    @staticmethod
    def _run_loop(loop: asyncio.AbstractEventLoop):
        asyncio.set_event_loop(loop)
        try:
            loop.run_forever()
        finally:
            loop.close()

    def invoke(self, request: InferenceRequest) -> InferenceOutcome:
        """
        Run one generation and classify how it ended.

        Returns BackendUnavailable without calling the backend when its
        availability probe fails, Success or BackendFailure when the
        generation finishes in time, and TimedOut otherwise.
        """
        if not self.backend.is_available():
            logger.warning(f"Backend '{self.backend.name}' is not available")
            return BackendUnavailable()

        loop = self.start()

        logger.info(
            f"Generating for model={request.model_name}, "
            f"history={len(request.history)}, prompt length={len(request.prompt)}"
        )

        future = asyncio.run_coroutine_threadsafe(
            self.backend.generate(request.history, request.prompt, request.options),
            loop,
        )

        done, _ = concurrent.futures.wait([future], timeout=self.timeout)
        if not done:
            future.cancel()
            logger.warning(f"Generation timed out after {self.timeout}s")
            return TimedOut(self.timeout)

        if future.cancelled():
            return BackendFailure("generation was cancelled")

        error = future.exception()
        if error is not None:
            message = str(error) or error.__class__.__name__
            logger.error(f"Generation failed: {message}")
            return BackendFailure(message)

        text = future.result()
        logger.info(f"Generation succeeded ({len(text)} chars)")
        return Success(text)
