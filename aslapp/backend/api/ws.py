from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder
import asyncio
import json
import time
import os
import logging

from aslapp.backend.api.deps import decode_frame_bgr, get_pipeline, run_inference
from aslapp.backend.api.schemas import state_out

router = APIRouter()

DEBUG_WS = os.getenv("ASL_WS_DEBUG", "0") == "1"

logger = logging.getLogger("asl_ws")


def state_message(snapshot) -> dict:
    msg = {"type": "state"}
    msg.update(jsonable_encoder(state_out(snapshot)))
    return msg


@router.websocket("/ws/asl")
async def asl_ws(ws: WebSocket, pipeline = Depends(get_pipeline)):
    await ws.accept()

    alive = True

    ping_interval_s = 10.0
    last_ping = 0.0

    # one slot: always the newest frame, a slow model never builds up lag
    q: asyncio.Queue[str] = asyncio.Queue(maxsize=1)

    frames_in = 0
    frames_dropped = 0
    decode_err = 0
    admitted_n = 0
    last_debug = 0.0

    async def receiver():
        nonlocal alive, frames_in, frames_dropped
        try:
            while True:
                text = await ws.receive_text()
                try:
                    msg = json.loads(text)
                except ValueError:
                    continue
                if not isinstance(msg, dict):
                    continue
                if msg.get("type") != "frame":
                    continue
                data = msg.get("data")
                if not isinstance(data, str):
                    continue
                frames_in += 1
                if q.full():
                    frames_dropped += 1
                    q.get_nowait()
                q.put_nowait(data)
        except WebSocketDisconnect:
            pass
        finally:
            # whatever stopped the receiver, nothing more will arrive on this socket
            alive = False

    async def pinger():
        nonlocal last_ping, alive
        while alive:
            now = time.monotonic()
            if (now - last_ping) > ping_interval_s:
                last_ping = now
                try:
                    await ws.send_json({"type": "ping"})
                except (WebSocketDisconnect, RuntimeError):
                    alive = False
                    break
            await asyncio.sleep(0.25)

    sent_version = pipeline.snapshot().version
    await ws.send_json(state_message(pipeline.snapshot()))

    recv_task = asyncio.create_task(receiver())
    ping_task = asyncio.create_task(pinger())

    try:
        while alive:
            try:
                data_url = await asyncio.wait_for(q.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue

            try:
                frame = decode_frame_bgr(data_url)
            except ValueError:
                decode_err += 1
                continue

            if await run_inference(pipeline, frame):
                admitted_n += 1

            snapshot = pipeline.snapshot()
            if snapshot.version != sent_version:
                sent_version = snapshot.version
                try:
                    await ws.send_json(state_message(snapshot))
                except (WebSocketDisconnect, RuntimeError):
                    break

            now = time.monotonic()
            if DEBUG_WS and (now - last_debug) > 1.0:
                last_debug = now
                logger.info(
                    f"frames_in={frames_in} dropped={frames_dropped} "
                    f"decode_err={decode_err} admitted={admitted_n} "
                    f"frame_count={snapshot.frame_count}"
                )

    except WebSocketDisconnect:
        pass
    finally:
        alive = False
        recv_task.cancel()
        ping_task.cancel()
        await asyncio.gather(recv_task, ping_task, return_exceptions=True)
