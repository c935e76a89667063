"""
Concurrent OCR over the pages of a scan.

Phase 1 fans out one OCR task per page on a thread pool. Each task returns
its PageOCRResult to the joining thread, which is the only place results
are collected, so there is no shared mutable aggregator. Phase 2 (selection
and publishing) runs on that same joining thread once every page has been
resolved.

Failures are contained per page: a page that cannot be turned into an
engine request, that makes the engine raise, or that does not finish in
time gets a sentinel text and confidence 0.0. Only an empty page list
fails the whole run.
"""

import concurrent.futures
import logging
import os
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import replace

from .config import DEFAULT_PAGE_TIMEOUT, ScannerConfig
from .errors import EmptyInputError, OCRRunInProgressError, PageRequestError
from .models import OCRRun, PageOCRResult, RecognitionOptions, SortedPageResults
from .ocr import OCREngine, PageImage
from .publisher import publish
from .selector import DEFAULT_SIMILARITY_THRESHOLD, select_pages

logger = logging.getLogger(__name__)

OCR_ERROR_TEXT = "[OCR Error page {page}]"
REQUEST_ERROR_TEXT = "[Request Error page {page}]"
TIMEOUT_ERROR_TEXT = "[OCR Timeout page {page}]"


class OCRCoordinator:
    """
    Runs OCR on every page concurrently, then selects and publishes pages.

    A coordinator allows one run at a time; starting another while one is in
    flight raises OCRRunInProgressError.
    """

    def __init__(
        self,
        engine: OCREngine,
        options: RecognitionOptions | None = None,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
        max_workers: int | None = None,
        page_timeout: float | None = DEFAULT_PAGE_TIMEOUT
    ):
        """
        Initialize the coordinator.

        Args:
            engine: OCR engine used for every page
            options: Recognition options passed to the engine
            similarity_threshold: Selector threshold (default: 0.90)
            max_workers: Concurrent OCR tasks (None = one per page, capped by CPU count)
            page_timeout: Seconds the engine may spend on each page, also used as a
                backstop wait at the join (None = no limit)
        """
        if not 0.0 <= similarity_threshold <= 1.0:
            raise ValueError(f"similarity_threshold must be within [0, 1], got {similarity_threshold}")
        if max_workers is not None and max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        if page_timeout is not None and page_timeout <= 0:
            raise ValueError(f"page_timeout must be positive, got {page_timeout}")

        self.engine = engine
        options = options or RecognitionOptions()
        if options.timeout is None and page_timeout is not None:
            options = replace(options, timeout=page_timeout)
        self.options = options
        self.similarity_threshold = similarity_threshold
        self.max_workers = max_workers
        self.page_timeout = page_timeout

        self._run_lock = threading.Lock()
        self._run_executor: ThreadPoolExecutor | None = None

    @classmethod
    def from_config(cls, engine: OCREngine, config: ScannerConfig) -> "OCRCoordinator":
        return cls(
            engine,
            options=config.recognition_options,
            similarity_threshold=config.similarity_threshold,
            max_workers=config.max_workers,
            page_timeout=config.page_timeout,
        )

    @property
    def in_progress(self) -> bool:
        return self._run_lock.locked()

    def run(self, pages: Sequence[PageImage]) -> OCRRun:
        """
        OCR all pages, drop near-duplicates and publish the result.

        Blocks until every page has been resolved.

        Args:
            pages: Page images in scan order

        Returns:
            OCRRun with per-page results, the selection and published output

        Raises:
            EmptyInputError: If pages is empty
            OCRRunInProgressError: If another run is in flight
        """
        if not pages:
            raise EmptyInputError("No images provided for OCR.")

        self._acquire()
        try:
            return self._run(pages)
        finally:
            self._run_lock.release()

    def run_async(
        self,
        pages: Sequence[PageImage],
        on_complete: Callable[[OCRRun], None] | None = None
    ) -> "Future[OCRRun]":
        """
        Start a run in the background.

        Args:
            pages: Page images in scan order
            on_complete: Called once with the OCRRun when the run succeeds

        Returns:
            Future resolving to the OCRRun

        Raises:
            EmptyInputError: If pages is empty (nothing is scheduled)
            OCRRunInProgressError: If another run is in flight
        """
        if not pages:
            raise EmptyInputError("No images provided for OCR.")

        self._acquire()
        try:
            if self._run_executor is None:
                self._run_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="docscan-run")
            future = self._run_executor.submit(self._run_and_release, list(pages))
        except BaseException:
            self._run_lock.release()
            raise

        if on_complete is not None:
            def _notify(done: "Future[OCRRun]") -> None:
                if not done.cancelled() and done.exception() is None:
                    on_complete(done.result())

            future.add_done_callback(_notify)

        return future

    def recognize_pages(self, pages: Sequence[PageImage]) -> SortedPageResults:
        """
        Run OCR on every page concurrently.

        Returns:
            One result per page, sorted by original index

        Raises:
            EmptyInputError: If pages is empty
        """
        if not pages:
            raise EmptyInputError("No images provided for OCR.")

        workers = self.max_workers or min(len(pages), (os.cpu_count() or 1) + 4)
        logger.info("Starting concurrent OCR for %d pages (%d workers)", len(pages), workers)

        resolved: dict[int, PageOCRResult] = {}
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="docscan-ocr")
        try:
            futures = {
                index: executor.submit(self._recognize_page, index, page)
                for index, page in enumerate(pages)
            }
            for index, future in futures.items():
                resolved[index] = self._collect(index, future)
        finally:
            # A timed-out page may still be running; do not block on it
            executor.shutdown(wait=False, cancel_futures=True)

        logger.info("All OCR tasks finished (%d pages)", len(resolved))
        return SortedPageResults.from_unordered(resolved.values())

    def close(self) -> None:
        """Shut down the background run executor, waiting for a pending run."""
        if self._run_executor is not None:
            self._run_executor.shutdown(wait=True)
            self._run_executor = None

    def __enter__(self) -> "OCRCoordinator":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _acquire(self) -> None:
        if not self._run_lock.acquire(blocking=False):
            raise OCRRunInProgressError("An OCR run is already in progress")

    def _run_and_release(self, pages: Sequence[PageImage]) -> OCRRun:
        try:
            return self._run(pages)
        finally:
            self._run_lock.release()

    def _run(self, pages: Sequence[PageImage]) -> OCRRun:
        results = self.recognize_pages(pages)
        selection = select_pages(results, threshold=self.similarity_threshold)
        published = publish(selection.kept)
        logger.info("Indices kept for final PDF: %s", published.kept_indices)
        return OCRRun(results=results, selection=selection, published=published)

    def _recognize_page(self, index: int, page: PageImage) -> PageOCRResult:
        """OCR one page. Never raises: failures become sentinel results."""
        page_number = index + 1

        try:
            image = self.engine.prepare(page)
        except Exception as e:
            logger.warning("Failed to prepare OCR request for page %d: %s", page_number, e)
            reason = str(e) if isinstance(e, PageRequestError) else f"{type(e).__name__}: {e}"
            return PageOCRResult.failed(index, REQUEST_ERROR_TEXT.format(page=page_number), reason)

        try:
            fragments = list(self.engine.recognize(image, self.options))
            result = PageOCRResult.from_fragments(index, fragments)
        except Exception as e:
            logger.warning("Error OCR page %d: %s", page_number, e)
            return PageOCRResult.failed(index, OCR_ERROR_TEXT.format(page=page_number), str(e) or type(e).__name__)

        logger.debug("Page %d: %d fragments, confidence %.3f", page_number, len(fragments), result.confidence)
        return result

    def _collect(self, index: int, future: "Future[PageOCRResult]") -> PageOCRResult:
        page_number = index + 1
        try:
            return future.result(timeout=self.page_timeout)
        except concurrent.futures.TimeoutError:
            future.cancel()
            logger.warning("OCR timed out on page %d after %ss", page_number, self.page_timeout)
            return PageOCRResult.failed(
                index,
                TIMEOUT_ERROR_TEXT.format(page=page_number),
                f"timed out after {self.page_timeout}s",
            )
        except Exception as e:
            logger.warning("Error OCR page %d: %s", page_number, e)
            return PageOCRResult.failed(index, OCR_ERROR_TEXT.format(page=page_number), str(e) or type(e).__name__)
