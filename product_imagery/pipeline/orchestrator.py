"""
Pipeline Orchestrator

Runs derivative generation for one image on a worker thread under a hard
deadline. Expiry surfaces as ProcessingTimeoutError, distinct from the
ProcessingError raised by the generator itself. A timed-out generator keeps
running to completion in its thread but its result is discarded; partial
derivative sets are never returned.

Images wait for a free worker before their deadline starts. A worker slot
is only returned when its thread finishes, so a timed-out generator still
occupies capacity until it is done.
"""

import asyncio
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple, Union

from product_imagery.core.config import settings
from product_imagery.core.exceptions import ProcessingError, ProcessingTimeoutError
from product_imagery.core.logging import LogContext, get_logger
from product_imagery.core.metrics import active_pipelines_gauge, record_job_completion
from product_imagery.engines.derivatives.generator import DerivativeGenerator
from product_imagery.engines.derivatives.schemas import ProcessedImageSet, ProcessingOptions

logger = get_logger(__name__)

# (buffer, filename, options)
BatchItem = Tuple[bytes, str, Optional[ProcessingOptions]]
BatchOutcome = Union[ProcessedImageSet, BaseException]


class ImagePipeline:
    """Deadline-bounded execution of the DerivativeGenerator."""

    def __init__(
        self,
        generator: Optional[DerivativeGenerator] = None,
        timeout_seconds: Optional[float] = None,
        max_workers: Optional[int] = None
    ):
        self.generator = generator or DerivativeGenerator()
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.PROCESSING_TIMEOUT_SECONDS
        )
        self.max_workers = max_workers or settings.MAX_WORKERS
        self._executor = ThreadPoolExecutor(
            max_workers=self.max_workers,
            thread_name_prefix="derivatives"
        )
        # One slot per worker thread, held until the thread is actually free
        self._slots: Optional[asyncio.Semaphore] = None
        self._slots_loop: Optional[asyncio.AbstractEventLoop] = None

    async def process(
        self,
        buffer: bytes,
        filename: str = "",
        options: Optional[ProcessingOptions] = None,
        image_id: Optional[str] = None
    ) -> ProcessedImageSet:
        """
        Generate derivatives for one image within the deadline.

        Args:
            buffer: Raw upload bytes
            filename: Original filename, for diagnostics
            options: Processing options
            image_id: Correlation id for logs, generated when missing

        Returns:
            ProcessedImageSet

        Raises:
            ProcessingTimeoutError: the deadline fired first
            ProcessingError: the generator failed
        """
        image_id = image_id or uuid.uuid4().hex
        loop = asyncio.get_running_loop()

        with LogContext(image_id=image_id, stage="derivatives"):
            logger.info(
                "pipeline_started",
                filename=filename,
                byte_length=len(buffer),
                timeout_seconds=self.timeout_seconds
            )
            slots = self._worker_slots(loop)
            await slots.acquire()

            try:
                job = self._executor.submit(
                    self._run_generator, image_id, buffer, filename, options
                )
            except RuntimeError:
                # Executor already shut down
                slots.release()
                raise
            job.add_done_callback(lambda _: self._release_slot(loop, slots))

            # The deadline starts once a worker is free, not while queued
            start_time = time.perf_counter()
            active_pipelines_gauge.inc()
            try:
                result = await asyncio.wait_for(
                    asyncio.wrap_future(job), timeout=self.timeout_seconds
                )
            except asyncio.TimeoutError:
                record_job_completion("timeout")
                logger.error(
                    "pipeline_timeout",
                    filename=filename,
                    timeout_seconds=self.timeout_seconds
                )
                raise ProcessingTimeoutError(
                    self.timeout_seconds, filename=filename, image_id=image_id
                ) from None
            except ProcessingError:
                record_job_completion("failed")
                raise
            except Exception as e:
                record_job_completion("failed")
                logger.error("pipeline_failed", filename=filename, error=str(e))
                raise ProcessingError(
                    f"Failed to process image: {e}", cause=e, image_id=image_id
                ) from e
            finally:
                active_pipelines_gauge.dec()

            record_job_completion("completed")
            logger.info(
                "pipeline_completed",
                filename=filename,
                duration_ms=int((time.perf_counter() - start_time) * 1000)
            )
            return result

    async def process_batch(self, items: Sequence[BatchItem]) -> List[BatchOutcome]:
        """
        Process several images concurrently, one deadline per image.

        Returns one outcome per item, in input order: the ProcessedImageSet,
        or the exception that image failed with. One failure never affects
        the other images.
        """
        tasks = [self.process(buffer, filename, options) for buffer, filename, options in items]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        failed = sum(1 for outcome in outcomes if isinstance(outcome, BaseException))
        logger.info("batch_completed", total=len(outcomes), failed=failed)
        return list(outcomes)

    def process_sync(
        self,
        buffer: bytes,
        filename: str = "",
        options: Optional[ProcessingOptions] = None
    ) -> ProcessedImageSet:
        """Blocking wrapper for callers without an event loop."""
        return asyncio.run(self.process(buffer, filename, options))

    def close(self):
        """Stop accepting work; running generators are detached."""
        self._executor.shutdown(wait=False, cancel_futures=True)

    def _worker_slots(self, loop: asyncio.AbstractEventLoop) -> asyncio.Semaphore:
        # Semaphores bind to a loop; process_sync runs each call on a fresh one
        if self._slots is None or self._slots_loop is not loop:
            self._slots = asyncio.Semaphore(self.max_workers)
            self._slots_loop = loop
        return self._slots

    @staticmethod
    def _release_slot(loop: asyncio.AbstractEventLoop, slots: asyncio.Semaphore):
        """Called from the worker thread when the generator returns or raises."""
        if not loop.is_closed():
            loop.call_soon_threadsafe(slots.release)

    def _run_generator(
        self,
        image_id: str,
        buffer: bytes,
        filename: str,
        options: Optional[ProcessingOptions]
    ) -> ProcessedImageSet:
        # Executor threads do not inherit the caller's context variables
        with LogContext(image_id=image_id, stage="derivatives"):
            return self.generator.generate(buffer, filename, options)
