import logging
from typing import Optional

import numpy as np

from .common.enums import InputKind
from .common.models import ModelOutput, Prediction
from .errors import InferenceError
from .gate import DEFAULT_THRESHOLD, gate
from .landmarks import JointSamples, normalize
from .locator import locate_model
from .reducer import reduce_output, top_k
from .runtime import ClassifierRuntime

logger = logging.getLogger("asl.classifier")


class ASLClassifier:
    """
    One frame in, at most one Prediction out.
    Image models get the frame itself; landmark models get the hand landmarks
    found by hand_detector, flattened by normalize().
    """

    def __init__(self, runtime: ClassifierRuntime, hand_detector=None, threshold: float = DEFAULT_THRESHOLD):
        if runtime.input_kind is InputKind.LANDMARKS and hand_detector is None:
            raise ValueError("landmark model needs a hand detector")
        self.runtime = runtime
        self.hand_detector = hand_detector
        self.threshold = threshold

    @classmethod
    def load(cls, settings) -> "ASLClassifier":
        """Raises ModelLoadError if the classifier (or the hand landmarker it needs) cannot be loaded."""
        path = locate_model(settings.asset_dir, settings.classifier_name, settings.classifier_path)
        runtime = ClassifierRuntime(
            path,
            input_name=settings.input_name,
            center_crop=settings.center_crop,
            device=settings.device,
        )

        hand_detector = None
        if runtime.input_kind is InputKind.LANDMARKS:
            # imported lazily so image-only deployments never touch mediapipe
            from .hands import HandLandmarkDetector
            hand_detector = HandLandmarkDetector(settings.hand_task_path, search_dir=str(path.parent))

        return cls(runtime, hand_detector, threshold=settings.threshold)

    @property
    def input_kind(self) -> InputKind:
        return self.runtime.input_kind

    def classify(self, frame_bgr: np.ndarray, ts_ms: Optional[int] = None) -> Optional[Prediction]:
        if frame_bgr is None or frame_bgr.ndim != 3 or frame_bgr.shape[2] != 3:
            raise InferenceError(f"expected an (H, W, 3) frame, got {getattr(frame_bgr, 'shape', None)}")

        if self.input_kind is InputKind.IMAGE:
            output = self.runtime.infer(self.runtime.prepare_image(frame_bgr))
            return self._reduce_and_gate(output)

        samples = self.hand_detector.detect(frame_bgr, ts_ms)
        if samples is None:
            logger.debug("no hand in frame")
            return None
        return self.classify_landmarks(samples)

    def classify_landmarks(self, samples: JointSamples) -> Optional[Prediction]:
        vec = normalize(samples)
        output = self.runtime.infer(self.runtime.prepare_landmarks(vec))
        return self._reduce_and_gate(output)

    def _reduce_and_gate(self, output: ModelOutput) -> Optional[Prediction]:
        label, value = reduce_output(output, self.runtime.labels)

        if logger.isEnabledFor(logging.DEBUG):
            ranked = ", ".join(f"{lbl}={v:.3f}" for lbl, v in top_k(output, self.runtime.labels))
            logger.debug("top: %s", ranked)

        prediction = gate(label, value, self.threshold)
        if prediction is None:
            logger.debug("confidence too low: %s %.3f <= %.2f", label, value, self.threshold)
        return prediction

    def describe(self) -> dict:
        info = self.runtime.describe()
        info["threshold"] = self.threshold
        return info

    def close(self):
        if self.hand_detector is not None:
            self.hand_detector.close()
