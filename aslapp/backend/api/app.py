from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routes import frames, state
from aslapp.backend.api import deps
from aslapp.backend.api.ws import router as ws_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    deps.shutdown()


app = FastAPI(title="ASL Classifier API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(state.router)
app.include_router(frames.router)
app.include_router(ws_router)


@app.get("/health")
def health():
    return {"ok": True}
