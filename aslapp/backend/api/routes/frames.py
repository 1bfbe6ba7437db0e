from fastapi import APIRouter, Depends

from aslapp.backend.api.deps import decode_frame_or_400, get_pipeline, run_inference
from aslapp.backend.api.schemas import FrameIn, FrameOut, state_out


router = APIRouter(prefix="/api/v1", tags=["frames"])


@router.post("/frames", response_model=FrameOut)
async def post_frame(payload: FrameIn, pipeline = Depends(get_pipeline)):
    frame = decode_frame_or_400(payload.data)
    admitted = await run_inference(pipeline, frame)
    return {"admitted": admitted, "state": state_out(pipeline.snapshot())}
