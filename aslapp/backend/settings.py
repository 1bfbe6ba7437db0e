import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel

from aslapp.backend.ml.gate import DEFAULT_THRESHOLD
from aslapp.backend.ml.locator import DEFAULT_MODEL_DIR, MODEL_NAME
from aslapp.backend.ml.throttle import DEFAULT_INTERVAL_S

CONFIG_NAME = "config.yml"


class Settings(BaseModel):
    asset_dir: str = str(DEFAULT_MODEL_DIR)
    classifier_path: Optional[str] = None
    classifier_name: str = MODEL_NAME
    input_name: Optional[str] = None
    center_crop: bool = True
    threshold: float = DEFAULT_THRESHOLD
    interval_s: float = DEFAULT_INTERVAL_S
    device: str = "cpu"
    hand_task_path: Optional[str] = None
    camera_index: int = 0
    mirror: bool = True


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip() == "1"


def _load_yaml(path: Path) -> dict:
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_settings(model_dir: Optional[str] = None) -> Settings:
    """
    Defaults <- <model_dir>/config.yml <- environment.
    model_dir falls back to env ASL_MODEL_DIR, then the bundled assets dir.
    """
    model_dir = model_dir or os.getenv("ASL_MODEL_DIR", "").strip() or str(DEFAULT_MODEL_DIR)
    cfg = _load_yaml(Path(model_dir) / CONFIG_NAME)
    model_cfg = cfg.get("model") or {}

    values = {"asset_dir": model_dir}
    if "name" in model_cfg:
        values["classifier_name"] = model_cfg["name"]
    if "input_name" in model_cfg:
        values["input_name"] = model_cfg["input_name"]
    if "center_crop" in model_cfg:
        values["center_crop"] = model_cfg["center_crop"]
    for key in ("threshold", "interval_s", "device"):
        if key in cfg:
            values[key] = cfg[key]

    env_map = {
        "ASL_MODEL_PATH": "classifier_path",
        "ASL_HAND_TASK_PATH": "hand_task_path",
        "ASL_MIN_CONF": "threshold",
        "ASL_INFER_INTERVAL_S": "interval_s",
        "ASL_DEVICE": "device",
        "ASL_CAMERA_INDEX": "camera_index",
    }
    for env_name, field_name in env_map.items():
        v = os.getenv(env_name, "").strip()
        if v:
            values[field_name] = v

    values["mirror"] = _env_flag("ASL_MIRROR", "1")

    return Settings(**values)
