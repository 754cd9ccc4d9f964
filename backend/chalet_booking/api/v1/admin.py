from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from chalet_booking.session.store import KeyValueStore, get_session_store

router = APIRouter(prefix="/admin")


@router.get("/health")
async def health(
    response: Response, store: KeyValueStore = Depends(get_session_store)
) -> dict[str, bool]:
    ok = await store.ping()
    if not ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {"ok": ok}
