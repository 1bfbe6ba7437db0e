import logging
import os
from pathlib import Path
from typing import List, Optional, Union

from .errors import ModelLoadError

logger = logging.getLogger("asl.locator")

MODEL_NAME = "ASLClassifierModel"
PRIMARY_EXT = ".onnx"
COMPILED_EXT = ".ort"
MODEL_EXTENSIONS = (PRIMARY_EXT, COMPILED_EXT)

DEFAULT_MODEL_DIR = Path(__file__).resolve().parent / "assets"


def list_candidates(search_dir: Union[str, Path]) -> List[Path]:
    """Every file in search_dir carrying one of the model extensions, sorted by name."""
    d = Path(search_dir)
    if not d.is_dir():
        return []
    return sorted(
        p for p in d.iterdir()
        if p.is_file() and p.suffix.lower() in MODEL_EXTENSIONS
    )


def locate_model(
    search_dir: Union[str, Path, None] = None,
    name: str = MODEL_NAME,
    model_path: Optional[str] = None,
) -> Path:
    """
    Find the classifier model. First match wins:
      1) explicit model_path argument
      2) env ASL_MODEL_PATH
      3) <dir>/<name>.onnx
      4) <dir>/<name>.ort (ORT format)
      5) <dir>/<name> (no extension)
      6) any *.onnx / *.ort in <dir>
    <dir> is search_dir, else env ASL_MODEL_DIR, else the bundled assets dir.
    """
    if model_path:
        p = Path(model_path).expanduser().resolve()
        if not p.is_file():
            raise ModelLoadError(f"model file not found: {p}")
        return p

    envp = os.getenv("ASL_MODEL_PATH", "").strip()
    if envp:
        p = Path(envp).expanduser().resolve()
        if not p.is_file():
            raise ModelLoadError(f"ASL_MODEL_PATH points to a missing file: {p}")
        return p

    if search_dir is None:
        search_dir = os.getenv("ASL_MODEL_DIR", "").strip() or DEFAULT_MODEL_DIR
    d = Path(search_dir).expanduser()

    for candidate in (d / f"{name}{PRIMARY_EXT}", d / f"{name}{COMPILED_EXT}", d / name):
        if candidate.is_file():
            logger.info("model found: %s", candidate)
            return candidate.resolve()

    logger.debug("no %s* in %s, scanning directory", name, d)
    found = list_candidates(d)
    if found:
        logger.info("model found by scan: %s", found[0])
        return found[0].resolve()

    raise ModelLoadError(
        f"no model file in {d}.\n"
        f"Put {name}{PRIMARY_EXT} there or set env ASL_MODEL_PATH."
    )
