# aslapp/backend/ml/common/enums.py
from enum import Enum


class InputKind(str, Enum):
    """How frames reach the model. Fixed once the model is loaded."""
    IMAGE = "IMAGE"
    LANDMARKS = "LANDMARKS"


class OutputKind(str, Enum):
    """Declared shape of the model output. Fixed once the model is loaded."""
    DENSE = "DENSE"
    SPARSE = "SPARSE"
    UNSUPPORTED = "UNSUPPORTED"
