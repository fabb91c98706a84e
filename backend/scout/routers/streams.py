import asyncio
from typing import Any, Dict

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from ..exceptions import MatchNotFound
from ..scoring import doubles
from ..store import MatchStore, get_store


router = APIRouter()

# Application-defined close code mirroring HTTP 404.
MATCH_NOT_FOUND_CLOSE_CODE = 4404


def snapshot(mid: str, state: Dict[str, Any]) -> Dict[str, Any]:
    return {"match": mid, "state": state, "summary": doubles.summary(state)}


@router.websocket("/matches/{mid}/stream")
async def match_stream(
    ws: WebSocket, mid: str, store: MatchStore = Depends(get_store)
) -> None:
    """Send the match document on connect and again after every change.

    The subscription is opened before the snapshot is read so no change can
    fall between the two; the send lock keeps a change from overtaking the
    snapshot.
    """
    await ws.accept()
    send_lock = asyncio.Lock()

    async def on_change(new_state: Dict[str, Any]) -> None:
        async with send_lock:
            await ws.send_json(snapshot(mid, new_state))

    unsubscribe = await store.subscribe(mid, on_change)
    try:
        async with send_lock:
            try:
                state = await store.get(mid)
            except MatchNotFound:
                await ws.close(code=MATCH_NOT_FOUND_CLOSE_CODE)
                return
            await ws.send_json(snapshot(mid, state))

        while True:
            await ws.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await unsubscribe()
