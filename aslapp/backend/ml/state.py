import threading
from dataclasses import replace
from typing import Optional

from .common.models import Prediction, StateSnapshot


class RecognitionState:
    """
    Shared between the consumer path (writer) and the presentation layer (readers).
    Every change swaps in a new frozen StateSnapshot, so readers never see half an update.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._snapshot = StateSnapshot()

    def snapshot(self) -> StateSnapshot:
        with self._lock:
            return self._snapshot

    @property
    def version(self) -> int:
        return self.snapshot().version

    def _swap(self, **changes) -> StateSnapshot:
        with self._lock:
            self._snapshot = replace(self._snapshot, version=self._snapshot.version + 1, **changes)
            return self._snapshot

    def mark_loaded(self) -> StateSnapshot:
        return self._swap(loaded=True)

    def count_frame(self) -> StateSnapshot:
        with self._lock:
            self._snapshot = replace(
                self._snapshot,
                frame_count=self._snapshot.frame_count + 1,
                version=self._snapshot.version + 1,
            )
            return self._snapshot

    def set_prediction(self, prediction: Optional[Prediction]) -> StateSnapshot:
        """None means "no new prediction": the current one stays on screen."""
        if prediction is None:
            return self.snapshot()
        return self._swap(prediction=prediction)
