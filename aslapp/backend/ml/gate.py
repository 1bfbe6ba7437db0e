from typing import Optional

from .common.models import Prediction

DEFAULT_THRESHOLD = 0.3


def gate(label: str, value: float, threshold: float = DEFAULT_THRESHOLD) -> Optional[Prediction]:
    """Surface the candidate only if its score is strictly above the threshold."""
    if value > threshold:
        return Prediction(label=label, confidence=float(value))
    return None
