import numpy as np
import pytest

from aslapp.backend.ml.landmarks import VECTOR_LENGTH


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "ASL_MODEL_DIR", "ASL_MODEL_PATH", "ASL_HAND_TASK_PATH", "ASL_MIN_CONF",
        "ASL_INFER_INTERVAL_S", "ASL_DEVICE", "ASL_CAMERA_INDEX", "ASL_MIRROR", "ASL_WS_DEBUG",
    ):
        monkeypatch.delenv(name, raising=False)


def _save(model, path):
    import onnx
    model.ir_version = 8
    onnx.save(model, str(path))
    return path


def build_landmark_model(path, n_classes=26, hot_class=2, input_name="poses"):
    """softmax(x @ W + b); with x == 0 the answer is softmax(b), peaked at hot_class."""
    onnx = pytest.importorskip("onnx")
    from onnx import TensorProto, helper, numpy_helper

    rng = np.random.default_rng(0)
    w = rng.normal(0, 0.01, size=(VECTOR_LENGTH, n_classes)).astype(np.float32)
    b = np.zeros(n_classes, dtype=np.float32)
    b[hot_class] = 5.0

    graph = helper.make_graph(
        [
            helper.make_node("MatMul", [input_name, "W"], ["xw"]),
            helper.make_node("Add", ["xw", "B"], ["logits"]),
            helper.make_node("Softmax", ["logits"], ["probs"], axis=-1),
        ],
        "asl_landmarks",
        [helper.make_tensor_value_info(input_name, TensorProto.FLOAT, [1, VECTOR_LENGTH])],
        [helper.make_tensor_value_info("probs", TensorProto.FLOAT, [1, n_classes])],
        initializer=[numpy_helper.from_array(w, "W"), numpy_helper.from_array(b, "B")],
    )
    model = helper.make_model(graph, opset_imports=[helper.make_opsetid("", 13)])
    return _save(model, path)


def build_image_model(path, size=8):
    """Mean of each RGB channel: red frame -> A, green -> B, blue -> C."""
    onnx = pytest.importorskip("onnx")
    from onnx import TensorProto, helper

    graph = helper.make_graph(
        [
            helper.make_node("GlobalAveragePool", ["image"], ["pooled"]),
            helper.make_node("Flatten", ["pooled"], ["scores"], axis=1),
        ],
        "asl_image",
        [helper.make_tensor_value_info("image", TensorProto.FLOAT, [1, 3, size, size])],
        [helper.make_tensor_value_info("scores", TensorProto.FLOAT, [1, 3])],
    )
    model = helper.make_model(graph, opset_imports=[helper.make_opsetid("", 13)])
    return _save(model, path)


def build_sparse_model(path, labels=("A", "B", "C"), hot_class=1):
    """Landmark model whose output goes through ZipMap -> seq(map(string, float))."""
    onnx = pytest.importorskip("onnx")
    from onnx import TensorProto, helper, numpy_helper

    n = len(labels)
    w = np.zeros((VECTOR_LENGTH, n), dtype=np.float32)
    b = np.zeros(n, dtype=np.float32)
    b[hot_class] = 4.0

    out_type = helper.make_sequence_type_proto(
        helper.make_map_type_proto(TensorProto.STRING, helper.make_tensor_type_proto(TensorProto.FLOAT, None))
    )
    graph = helper.make_graph(
        [
            helper.make_node("MatMul", ["poses", "W"], ["xw"]),
            helper.make_node("Add", ["xw", "B"], ["logits"]),
            helper.make_node("Softmax", ["logits"], ["probs"], axis=-1),
            helper.make_node("ZipMap", ["probs"], ["label_probs"], domain="ai.onnx.ml",
                             classlabels_strings=list(labels)),
        ],
        "asl_sparse",
        [helper.make_tensor_value_info("poses", TensorProto.FLOAT, [1, VECTOR_LENGTH])],
        [helper.make_value_info("label_probs", out_type)],
        initializer=[numpy_helper.from_array(w, "W"), numpy_helper.from_array(b, "B")],
    )
    model = helper.make_model(
        graph,
        opset_imports=[helper.make_opsetid("", 13), helper.make_opsetid("ai.onnx.ml", 1)],
    )
    return _save(model, path)


class FakeClassifier:
    """Stands in for ASLClassifier: returns queued results, or raises queued exceptions."""

    def __init__(self, results=None):
        self.results = list(results or [])
        self.calls = 0
        self.closed = False

    def classify(self, frame_bgr, ts_ms=None):
        self.calls += 1
        if not self.results:
            return None
        r = self.results.pop(0)
        if isinstance(r, Exception):
            raise r
        return r

    def describe(self):
        return {
            "path": "/models/ASLClassifierModel.onnx",
            "input_name": "image",
            "input_shape": [1, 3, 224, 224],
            "input_kind": "IMAGE",
            "output_name": "scores",
            "output_type": "tensor(float)",
            "output_kind": "DENSE",
            "labels": ["A", "B", "C"],
            "threshold": 0.3,
        }

    def close(self):
        self.closed = True


class FakeClock:
    def __init__(self, *times):
        self.times = list(times)

    def __call__(self):
        return self.times.pop(0)


@pytest.fixture
def frame():
    return np.zeros((48, 64, 3), dtype=np.uint8)


