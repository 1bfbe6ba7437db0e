import asyncio
import base64
import concurrent.futures
import threading
from typing import Optional

import cv2
import numpy as np
from fastapi import HTTPException

from aslapp.backend.ml.pipeline import RecognitionPipeline
from aslapp.backend.settings import load_settings

# every classifier call (and the MediaPipe landmarker inside it) runs on this one thread
_executor = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="asl-infer")

_pipeline: Optional[RecognitionPipeline] = None
_pipeline_lock = threading.Lock()


def _build_pipeline() -> RecognitionPipeline:
    global _pipeline
    with _pipeline_lock:
        if _pipeline is None:
            _pipeline = RecognitionPipeline.from_settings(load_settings())
        return _pipeline


async def get_pipeline() -> RecognitionPipeline:
    if _pipeline is not None:
        return _pipeline
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(_executor, _build_pipeline)


async def run_inference(pipeline: RecognitionPipeline, frame: np.ndarray) -> bool:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(_executor, pipeline.submit_frame, frame)


def shutdown():
    global _pipeline
    with _pipeline_lock:
        if _pipeline is not None:
            _pipeline.close()
            _pipeline = None


def decode_frame_bgr(data: str) -> np.ndarray:
    """data: 'data:image/jpeg;base64,...' or bare base64. Any frame size is accepted."""
    encoded = data.split(",", 1)[1] if "," in data else data
    img_bytes = base64.b64decode(encoded)
    if not img_bytes:
        raise ValueError("empty frame")
    try:
        img = cv2.imdecode(np.frombuffer(img_bytes, np.uint8), cv2.IMREAD_COLOR)
    except cv2.error as e:
        raise ValueError(f"cv2.imdecode failed: {e}") from e
    if img is None:
        raise ValueError("cv2.imdecode returned None")
    return img


def decode_frame_or_400(data: str) -> np.ndarray:
    try:
        return decode_frame_bgr(data)
    except (ValueError, TypeError) as e:
        raise HTTPException(status_code=400, detail=f"Bad frame: {e}")
