import pytest

from aslapp.backend.ml.errors import ModelLoadError
from aslapp.backend.ml.locator import list_candidates, locate_model


def touch(path):
    path.write_bytes(b"x")
    return path


def test_primary_extension_wins(tmp_path):
    touch(tmp_path / "ASLClassifierModel.ort")
    touch(tmp_path / "ASLClassifierModel")
    primary = touch(tmp_path / "ASLClassifierModel.onnx")
    assert locate_model(tmp_path) == primary.resolve()


def test_compiled_before_extensionless(tmp_path):
    touch(tmp_path / "ASLClassifierModel")
    compiled = touch(tmp_path / "ASLClassifierModel.ort")
    assert locate_model(tmp_path) == compiled.resolve()


def test_extensionless(tmp_path):
    bare = touch(tmp_path / "ASLClassifierModel")
    assert locate_model(tmp_path) == bare.resolve()


def test_directory_scan_picks_first_by_name(tmp_path):
    touch(tmp_path / "zeta.onnx")
    first = touch(tmp_path / "alpha.ort")
    touch(tmp_path / "notes.txt")
    assert locate_model(tmp_path) == first.resolve()
    assert [p.name for p in list_candidates(tmp_path)] == ["alpha.ort", "zeta.onnx"]


def test_nothing_found(tmp_path):
    touch(tmp_path / "labels.txt")
    with pytest.raises(ModelLoadError):
        locate_model(tmp_path)


def test_missing_dir(tmp_path):
    with pytest.raises(ModelLoadError):
        locate_model(tmp_path / "nope")


def test_explicit_path(tmp_path):
    touch(tmp_path / "ASLClassifierModel.onnx")
    other = touch(tmp_path / "elsewhere.bin")
    assert locate_model(tmp_path, model_path=str(other)) == other.resolve()
    with pytest.raises(ModelLoadError):
        locate_model(tmp_path, model_path=str(tmp_path / "missing.onnx"))


def test_env_path_and_dir(tmp_path, monkeypatch):
    model = touch(tmp_path / "ASLClassifierModel.onnx")
    monkeypatch.setenv("ASL_MODEL_DIR", str(tmp_path))
    assert locate_model() == model.resolve()

    other = touch(tmp_path / "custom.onnx")
    monkeypatch.setenv("ASL_MODEL_PATH", str(other))
    assert locate_model() == other.resolve()
