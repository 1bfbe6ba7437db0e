# aslapp/backend/ml/common/models.py
from dataclasses import dataclass, field
from typing import Dict, Optional, Union

import numpy as np


@dataclass(frozen=True)
class Prediction:
    """A gated classification result. Replaced wholesale, never mutated."""
    label: str
    confidence: float


@dataclass(frozen=True)
class DenseOutput:
    """Per-class scores; index i belongs to the i-th label."""
    scores: np.ndarray

    def __len__(self) -> int:
        return int(self.scores.size)


@dataclass(frozen=True)
class SparseOutput:
    """Label -> score mapping covering only the classes the runtime reported."""
    scores: Dict[str, float] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.scores)


ModelOutput = Union[DenseOutput, SparseOutput]


@dataclass(frozen=True)
class StateSnapshot:
    """Everything the presentation layer may read, captured atomically."""
    loaded: bool = False
    frame_count: int = 0
    prediction: Optional[Prediction] = None
    version: int = 0
