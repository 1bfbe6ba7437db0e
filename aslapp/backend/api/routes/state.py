from fastapi import APIRouter, Depends, HTTPException

from aslapp.backend.api.deps import get_pipeline
from aslapp.backend.api.schemas import ModelOut, StateOut, state_out


router = APIRouter(prefix="/api/v1", tags=["state"])


@router.get("/state", response_model=StateOut)
def get_state(pipeline = Depends(get_pipeline)):
    return state_out(pipeline.snapshot())


@router.get("/model", response_model=ModelOut)
def get_model(pipeline = Depends(get_pipeline)):
    if not pipeline.loaded:
        raise HTTPException(status_code=503, detail=pipeline.load_error or "Model not loaded")
    return pipeline.classifier.describe()


@router.get("/stats")
def get_stats(pipeline = Depends(get_pipeline)):
    return pipeline.stats()
