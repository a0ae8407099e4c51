"""Analysis pipeline - one leaf image from selection to a recorded result.

State machine per attempt:

    idle -> image_selected -> analyzing -> succeeded | failed

select_image() may be called from any state except analyzing and always
lands in image_selected with the previous result and error discarded.
start_analysis() requires a selected image and a logged-in principal,
invokes the inference capability exactly once (bounded by a timeout) and
records successful results in the history store. The analyzing flag is
cleared on every exit path.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Optional, Protocol, runtime_checkable

from plant_health import config
from plant_health.accounts.schemas import Principal
from plant_health.accounts.session import SessionStore
from plant_health.errors import (
    GENERIC_STORAGE_MESSAGE,
    AnalysisInProgress,
    ImageDecodeError,
    PreconditionError,
    StorageError,
)

from .history import HistoryStore
from .image_codec import decode_data_uri, encode_data_uri, guess_mime_type
from .schemas import AnalysisResult, PipelineSnapshot, PipelineState

logger = logging.getLogger(__name__)

NO_IMAGE_MESSAGE = "Please select an image first."
IN_PROGRESS_MESSAGE = "An analysis is already in progress."
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred during analysis."


@runtime_checkable
class InferenceCapability(Protocol):
    """Maps an image to a structured health assessment."""

    def analyze(self, image_bytes: bytes, mime_type: str) -> AnalysisResult: ...


class AnalysisPipeline:
    """Drives a single session's analysis attempts."""

    def __init__(
        self,
        session: SessionStore,
        history: HistoryStore,
        analyzer: InferenceCapability,
        timeout: Optional[float] = None,
    ):
        self.session = session
        self.history = history
        self.analyzer = analyzer
        self.timeout = config.INFERENCE_TIMEOUT if timeout is None else timeout

        self.state = PipelineState.IDLE
        self.image_url: Optional[str] = None
        self.result: Optional[AnalysisResult] = None
        self.error: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def is_loading(self) -> bool:
        return self.state == PipelineState.ANALYZING

    def snapshot(self) -> PipelineSnapshot:
        with self._lock:
            return PipelineSnapshot(
                state=self.state,
                is_loading=self.state == PipelineState.ANALYZING,
                has_image=self.image_url is not None,
                image_url=self.image_url,
                result=self.result,
                error=self.error,
            )

    def select_image(
        self,
        data: bytes,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> PipelineSnapshot:
        """Load an uploaded file as the current image.

        Raises:
            AnalysisInProgress: If an analysis is running
            ImageDecodeError: If the data cannot be encoded
        """
        mime_type = guess_mime_type(filename, content_type)
        data_uri = encode_data_uri(data, mime_type)

        with self._lock:
            if self.state == PipelineState.ANALYZING:
                raise AnalysisInProgress(IN_PROGRESS_MESSAGE)
            self.image_url = data_uri
            self.result = None
            self.error = None
            self.state = PipelineState.IMAGE_SELECTED

        logger.info(f"Image selected: {mime_type}, {len(data):,} bytes")
        return self.snapshot()

    def reset(self) -> PipelineSnapshot:
        """Drop the current image, result and error."""
        with self._lock:
            if self.state == PipelineState.ANALYZING:
                raise AnalysisInProgress(IN_PROGRESS_MESSAGE)
            self.state = PipelineState.IDLE
            self.image_url = None
            self.result = None
            self.error = None
        return self.snapshot()

    def _invoke(self, image_bytes: bytes, mime_type: str) -> AnalysisResult:
        """Call the inference capability once, bounded by the timeout."""
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="inference")
        try:
            future = executor.submit(self.analyzer.analyze, image_bytes, mime_type)
            return future.result(timeout=self.timeout)
        finally:
            # A timed-out call keeps running in its worker; don't block on it.
            executor.shutdown(wait=False)

    def start_analysis(self) -> PipelineSnapshot:
        """Run one analysis of the selected image for the current principal.

        Raises:
            AnalysisInProgress: If another analysis is running (no state change)
            PreconditionError: If no image is selected or nobody is logged in
        """
        with self._lock:
            if self.state == PipelineState.ANALYZING:
                raise AnalysisInProgress(IN_PROGRESS_MESSAGE)

            principal = self.session.current
            image_url = self.image_url
            if image_url is None or principal is None:
                self.error = NO_IMAGE_MESSAGE
                raise PreconditionError(NO_IMAGE_MESSAGE)

            self.state = PipelineState.ANALYZING
            self.result = None
            self.error = None

        logger.info(f"Starting analysis for {principal.email}")

        result: Optional[AnalysisResult] = None
        error: Optional[str] = UNKNOWN_ERROR_MESSAGE
        try:
            result, error = self._run(principal, image_url)
        finally:
            with self._lock:
                self.result = result
                self.error = error
                if error is None:
                    self.state = PipelineState.SUCCEEDED
                else:
                    self.state = PipelineState.FAILED

        if error is None:
            logger.info(
                f"Analysis succeeded: {result.plant_name}, "
                f"healthy={result.is_healthy}, confidence={result.confidence_score:.2f}"
            )
        return self.snapshot()

    def _run(
        self, principal: Principal, image_url: str
    ) -> tuple[Optional[AnalysisResult], Optional[str]]:
        """Infer and record. Returns (result, error); error is None on success."""
        try:
            image_bytes, mime_type = decode_data_uri(image_url)
            result = self._invoke(image_bytes, mime_type)
        except FutureTimeoutError:
            logger.error(f"Analysis for {principal.email} timed out")
            return None, f"Analysis timed out after {self.timeout:g} seconds."
        except ImageDecodeError as e:
            logger.error(f"Selected image could not be decoded: {e}")
            return None, str(e)
        except Exception as e:
            logger.error(f"Analysis for {principal.email} failed: {e}")
            return None, str(e) or UNKNOWN_ERROR_MESSAGE

        try:
            self.history.record(principal, result, image_url)
        except StorageError as e:
            logger.error(f"Analysis succeeded but history was not saved: {e}")
            return result, GENERIC_STORAGE_MESSAGE
        except Exception as e:
            logger.exception(f"Analysis succeeded but could not be recorded: {e}")
            return result, UNKNOWN_ERROR_MESSAGE
        return result, None
