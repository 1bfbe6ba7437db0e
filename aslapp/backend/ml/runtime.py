import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np
import onnxruntime as ort
from einops import rearrange

from .common.enums import InputKind, OutputKind
from .common.models import DenseOutput, ModelOutput, SparseOutput
from .errors import InferenceError, ModelLoadError, UnsupportedOutputShapeError
from .reducer import DEFAULT_LABELS

logger = logging.getLogger("asl.runtime")

LABELS_NAME = "labels.txt"
DEFAULT_IMAGE_SIZE = 224

_NUMPY_DTYPES = {
    "tensor(float)": np.float32,
    "tensor(double)": np.float64,
    "tensor(float16)": np.float16,
}


def detect_input_kind(inputs: Sequence) -> InputKind:
    """Any rank-4 input means the model wants a picture."""
    if any(len(i.shape or ()) == 4 for i in inputs):
        return InputKind.IMAGE
    return InputKind.LANDMARKS


def detect_output_kind(type_str: str) -> OutputKind:
    """
    'tensor(float)'                    -> DENSE
    'map(string,tensor(float))'        -> SPARSE
    'seq(map(string,tensor(float)))'   -> SPARSE (ZipMap)
    """
    t = (type_str or "").replace(" ", "")
    if t.startswith("tensor("):
        return OutputKind.DENSE
    if t.startswith("map(") or t.startswith("seq(map("):
        return OutputKind.SPARSE
    return OutputKind.UNSUPPORTED


def _static_dim(d, default: int) -> int:
    # symbolic dims come back as strings, unknown ones as None
    return d if isinstance(d, int) and d > 0 else default


def center_crop(frame: np.ndarray, aspect: float) -> np.ndarray:
    """Largest centered window with width / height == aspect."""
    h, w = frame.shape[:2]
    if h == 0 or w == 0:
        return frame
    if w / h > aspect:
        new_w = max(1, int(round(h * aspect)))
        x0 = (w - new_w) // 2
        return frame[:, x0:x0 + new_w]
    new_h = max(1, int(round(w / aspect)))
    y0 = (h - new_h) // 2
    return frame[y0:y0 + new_h, :]


class ClassifierRuntime:
    """
    ONNX Runtime session for the sign classifier.
    Input and output kinds are read from the model once, here, and never re-inspected.
    """

    def __init__(
        self,
        model_path,
        input_name: Optional[str] = None,
        center_crop: bool = True,
        device: str = "cpu",
        warmup: bool = True,
    ):
        self.model_path = Path(model_path)
        self.center_crop = center_crop
        self.device = device

        self.session = self._load_model()

        inputs = self.session.get_inputs()
        outputs = self.session.get_outputs()
        if not inputs or not outputs:
            raise ModelLoadError(f"model has no inputs or outputs: {self.model_path}")

        self.input_kind = detect_input_kind(inputs)
        self._input = self._pick_input(inputs, input_name)
        self.input_name = self._input.name
        self.input_shape = list(self._input.shape or [])
        self.input_dtype = _NUMPY_DTYPES.get(self._input.type, np.float32)

        self.output_name = outputs[0].name
        self.output_type = outputs[0].type
        self.output_kind = detect_output_kind(self.output_type)

        self.labels = self._load_labels()

        logger.info(
            "model %s: input %s %s %s -> %s, output %s %s -> %s",
            self.model_path.name,
            self.input_name, self._input.type, self.input_shape, self.input_kind.value,
            self.output_name, self.output_type, self.output_kind.value,
        )
        if self.output_kind is OutputKind.UNSUPPORTED:
            logger.warning("output type %s is neither dense nor sparse, every frame will be dropped", self.output_type)

        if warmup:
            self._warmup()

    def _load_model(self):
        providers = ["CPUExecutionProvider"]
        if self.device == "cuda":
            providers = ["CUDAExecutionProvider", "CPUExecutionProvider"]

        try:
            return ort.InferenceSession(str(self.model_path), providers=providers)
        except Exception as e:
            # onnxruntime raises its own pybind exception types for bad files
            raise ModelLoadError(f"cannot load model {self.model_path}: {e}") from e

    def _pick_input(self, inputs, input_name: Optional[str]):
        if input_name:
            for i in inputs:
                if i.name == input_name:
                    return i
            raise ModelLoadError(
                f"model has no input named {input_name!r} (inputs: {[i.name for i in inputs]})"
            )
        if self.input_kind is InputKind.IMAGE:
            return next(i for i in inputs if len(i.shape or ()) == 4)
        return inputs[0]

    def _load_labels(self) -> Tuple[str, ...]:
        labels_path = self.model_path.parent / LABELS_NAME
        if not labels_path.exists():
            return DEFAULT_LABELS

        with open(labels_path, "r", encoding="utf-8") as f:
            labels = tuple(line.strip() for line in f if line.strip())
        logger.info("loaded %d labels from %s", len(labels), labels_path)
        return labels or DEFAULT_LABELS

    def _warmup(self):
        if self.input_kind is InputKind.IMAGE:
            dummy = self.prepare_image(np.zeros((self.image_size[0], self.image_size[1], 3), dtype=np.uint8))
        else:
            dummy = np.zeros(self._static_shape(), dtype=self.input_dtype)
        try:
            self.session.run(None, {self.input_name: dummy})
        except Exception as e:
            raise ModelLoadError(f"model failed its warmup run: {e}") from e

    # --- input preparation ---

    @property
    def channels_first(self) -> bool:
        shape = self.input_shape
        if len(shape) != 4:
            return True
        return _static_dim(shape[1], 0) in (1, 3) or _static_dim(shape[3], 0) not in (1, 3)

    @property
    def image_size(self) -> Tuple[int, int]:
        """(height, width) the model expects."""
        shape = self.input_shape
        if len(shape) != 4:
            return DEFAULT_IMAGE_SIZE, DEFAULT_IMAGE_SIZE
        if self.channels_first:
            h, w = shape[2], shape[3]
        else:
            h, w = shape[1], shape[2]
        return _static_dim(h, DEFAULT_IMAGE_SIZE), _static_dim(w, DEFAULT_IMAGE_SIZE)

    @property
    def image_channels(self) -> int:
        shape = self.input_shape
        if len(shape) != 4:
            return 3
        return _static_dim(shape[1] if self.channels_first else shape[3], 3)

    def _static_shape(self) -> List[int]:
        return [_static_dim(d, 1) for d in self.input_shape] or [1]

    def prepare_image(self, frame_bgr: np.ndarray) -> np.ndarray:
        """frame_bgr: (H, W, 3) uint8 of any size -> model input tensor."""
        h, w = self.image_size
        img = frame_bgr
        if self.center_crop:
            img = center_crop(img, w / h)
        img = cv2.resize(img, (w, h), interpolation=cv2.INTER_LINEAR)

        if self.image_channels == 1:
            img = cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)[:, :, np.newaxis]
        else:
            img = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)

        img = img.astype(np.float32) / 255.0
        if self.channels_first:
            img = rearrange(img, "h w c -> 1 c h w")
        else:
            img = rearrange(img, "h w c -> 1 h w c")
        return np.ascontiguousarray(img, dtype=self.input_dtype)

    def prepare_landmarks(self, vec: np.ndarray) -> np.ndarray:
        target = self._static_shape()
        if int(np.prod(target)) != vec.size:
            raise InferenceError(
                f"landmark vector has {vec.size} values, model input {self.input_name} wants {self.input_shape}"
            )
        return np.asarray(vec, dtype=self.input_dtype).reshape(target)

    # --- inference ---

    def infer(self, features: np.ndarray) -> ModelOutput:
        if self.output_kind is OutputKind.UNSUPPORTED:
            raise UnsupportedOutputShapeError(f"model output type {self.output_type} is not supported")

        try:
            raw = self.session.run([self.output_name], {self.input_name: features})[0]
        except Exception as e:
            raise InferenceError(f"inference failed: {e}") from e

        return self._wrap_output(raw)

    def _wrap_output(self, raw) -> ModelOutput:
        if self.output_kind is OutputKind.DENSE:
            arr = np.asarray(raw)
            if arr.dtype.kind not in "fiu":
                raise UnsupportedOutputShapeError(f"dense output has dtype {arr.dtype}")
            return DenseOutput(scores=arr.astype(np.float32).ravel())

        # seq(map) -> one map per batch item, batch is always 1 here
        if isinstance(raw, list):
            if not raw:
                return SparseOutput(scores={})
            raw = raw[0]
        if not isinstance(raw, dict):
            raise UnsupportedOutputShapeError(f"sparse output is {type(raw).__name__}, expected a mapping")
        return SparseOutput(scores={str(k): float(v) for k, v in raw.items()})

    def describe(self) -> dict:
        return {
            "path": str(self.model_path),
            "input_name": self.input_name,
            "input_shape": [d if isinstance(d, int) else None for d in self.input_shape],
            "input_kind": self.input_kind.value,
            "output_name": self.output_name,
            "output_type": self.output_type,
            "output_kind": self.output_kind.value,
            "labels": list(self.labels),
        }
