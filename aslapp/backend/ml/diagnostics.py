import sys
from pathlib import Path

import onnxruntime as ort
from dotenv import load_dotenv

from aslapp.backend.ml.errors import ModelLoadError
from aslapp.backend.ml.locator import list_candidates, locate_model
from aslapp.backend.ml.runtime import detect_input_kind, detect_output_kind
from aslapp.backend.settings import load_settings


def report(settings) -> int:
    model_dir = Path(settings.asset_dir)
    print(f"Model dir: {model_dir.resolve()}")

    if model_dir.is_dir():
        print("Files:")
        for p in sorted(model_dir.iterdir()):
            print(f"   - {p.name}")
    else:
        print("Model dir does not exist")

    candidates = list_candidates(model_dir)
    print(f"Model candidates: {[p.name for p in candidates]}")

    try:
        path = locate_model(model_dir, settings.classifier_name, settings.classifier_path)
    except ModelLoadError as e:
        print(f"FAIL: {e}")
        return 1
    print(f"Using model: {path}")

    try:
        session = ort.InferenceSession(str(path), providers=["CPUExecutionProvider"])
    except Exception as e:
        print(f"FAIL: cannot load model: {e}")
        return 1

    inputs = session.get_inputs()
    outputs = session.get_outputs()

    print("Inputs:")
    for i in inputs:
        print(f"   - {i.name}: {i.type} {i.shape}")
    print("Outputs:")
    for o in outputs:
        print(f"   - {o.name}: {o.type} {o.shape}")

    print(f"Input kind: {detect_input_kind(inputs).value}")
    print(f"Output kind: {detect_output_kind(outputs[0].type).value}")
    print("OK: model loads.")
    return 0


def main():
    load_dotenv()
    model_dir = sys.argv[1] if len(sys.argv) > 1 else None
    return report(load_settings(model_dir))


if __name__ == "__main__":
    sys.exit(main())
