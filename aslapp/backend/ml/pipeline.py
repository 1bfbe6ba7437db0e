import logging
import threading
import time
from typing import Callable, Optional

import numpy as np

from .common.models import StateSnapshot
from .errors import ClassifierError, ModelLoadError, UnsupportedOutputShapeError
from .state import RecognitionState
from .throttle import DEFAULT_INTERVAL_S, FrameThrottle

logger = logging.getLogger("asl.pipeline")


class RecognitionPipeline:
    """
    throttle -> classify -> state, strictly one frame at a time.

    A frame that arrives while another one is being classified is dropped,
    not queued. Per-frame failures are logged and leave the current
    prediction alone; a failed model load leaves the pipeline inert for good.
    """

    def __init__(
        self,
        classifier=None,
        state: Optional[RecognitionState] = None,
        min_interval: float = DEFAULT_INTERVAL_S,
        clock: Callable[[], float] = time.monotonic,
        load_error: Optional[str] = None,
    ):
        self.classifier = classifier
        self.state = state or RecognitionState()
        self.throttle = FrameThrottle(min_interval)
        self.clock = clock
        self.load_error = load_error

        self._busy = threading.Lock()
        self.dropped_busy = 0
        self.failed = 0

        if classifier is not None:
            self.state.mark_loaded()

    @classmethod
    def from_settings(cls, settings, state: Optional[RecognitionState] = None) -> "RecognitionPipeline":
        from .classifier import ASLClassifier

        try:
            classifier = ASLClassifier.load(settings)
        except ModelLoadError as e:
            logger.error("model not loaded, recognition disabled: %s", e)
            return cls(None, state, min_interval=settings.interval_s, load_error=str(e))

        logger.info("model loaded (%s input)", classifier.input_kind.value)
        return cls(classifier, state, min_interval=settings.interval_s)

    @property
    def loaded(self) -> bool:
        return self.classifier is not None

    def snapshot(self) -> StateSnapshot:
        return self.state.snapshot()

    def submit_frame(self, frame_bgr: np.ndarray, now: Optional[float] = None) -> bool:
        """
        Offer one camera frame. Returns True if it was admitted by the throttle
        (whatever the classification outcome).
        """
        if not self._busy.acquire(blocking=False):
            self.dropped_busy += 1
            return False

        try:
            if now is None:
                now = self.clock()
            if not self.throttle.offer(now):
                return False

            self.state.count_frame()

            if self.classifier is None:
                logger.debug("no model available for classification")
                return True

            self._classify(frame_bgr, int(now * 1000))
            return True
        finally:
            self._busy.release()

    def _classify(self, frame_bgr: np.ndarray, ts_ms: int) -> None:
        try:
            prediction = self.classifier.classify(frame_bgr, ts_ms)
        except UnsupportedOutputShapeError as e:
            self.failed += 1
            logger.warning("frame dropped: %s", e)
            return
        except ClassifierError as e:
            self.failed += 1
            logger.error("classification error: %s", e)
            return
        except Exception:
            self.failed += 1
            logger.exception("unexpected error while classifying frame")
            return

        if prediction is not None:
            logger.debug("prediction %s %.3f", prediction.label, prediction.confidence)
        self.state.set_prediction(prediction)

    def stats(self) -> dict:
        out = dict(self.throttle.stats)
        out["dropped_busy"] = self.dropped_busy
        out["failed"] = self.failed
        return out

    def close(self):
        if self.classifier is not None:
            self.classifier.close()
