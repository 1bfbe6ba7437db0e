from pydantic import BaseModel
from typing import List, Optional

from aslapp.backend.ml.common.models import StateSnapshot


class PredictionOut(BaseModel):
    label: str
    confidence: float


class StateOut(BaseModel):
    loaded: bool
    frame_count: int
    prediction: Optional[PredictionOut] = None


class FrameIn(BaseModel):
    data: str


class FrameOut(BaseModel):
    admitted: bool
    state: StateOut


class ModelOut(BaseModel):
    path: str
    input_name: str
    input_shape: List[Optional[int]]
    input_kind: str
    output_name: str
    output_type: str
    output_kind: str
    labels: List[str]
    threshold: float


def state_out(snapshot: StateSnapshot) -> StateOut:
    prediction = None
    if snapshot.prediction is not None:
        prediction = PredictionOut(
            label=snapshot.prediction.label,
            confidence=snapshot.prediction.confidence,
        )
    return StateOut(loaded=snapshot.loaded, frame_count=snapshot.frame_count, prediction=prediction)
