# aslapp/backend/camera/overlay.py
import cv2
import numpy as np

from aslapp.backend.ml.common.models import StateSnapshot

FONT = cv2.FONT_HERSHEY_SIMPLEX
WHITE = (240, 240, 240)
YELLOW = (0, 220, 255)
GREEN = (75, 220, 75)
GRAY = (120, 120, 120)
N_DOTS = 5


def confidence_dots(confidence: float, n: int = N_DOTS) -> int:
    """How many of the n indicator dots are lit."""
    return max(0, min(n, int(confidence * n)))


def draw_overlay(frame: np.ndarray, snapshot: StateSnapshot) -> np.ndarray:
    out = frame.copy()

    info_lines = [
        f"Model Loaded: {'yes' if snapshot.loaded else 'no'}",
        f"Frames Processed: {snapshot.frame_count}",
    ]
    for i, line in enumerate(info_lines):
        cv2.putText(out, line, (10, 30 + i * 25), FONT, 0.6, WHITE, 2, cv2.LINE_AA)

    prediction = snapshot.prediction
    if prediction is None:
        return out

    h = out.shape[0]
    cv2.putText(out, "Predicted Letter:", (10, h - 130), FONT, 0.6, WHITE, 2, cv2.LINE_AA)
    cv2.putText(out, prediction.label, (10, h - 60), FONT, 2.4, YELLOW, 5, cv2.LINE_AA)
    cv2.putText(out, f"Confidence: {int(prediction.confidence * 100)}%", (10, h - 35),
                FONT, 0.6, WHITE, 2, cv2.LINE_AA)

    lit = confidence_dots(prediction.confidence)
    for i in range(N_DOTS):
        color = GREEN if i < lit else GRAY
        cv2.circle(out, (15 + i * 20, h - 15), 6, color, -1, cv2.LINE_AA)

    return out
