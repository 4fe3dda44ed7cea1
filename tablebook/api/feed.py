"""Realtime booking change feed over WebSocket"""

from uuid import UUID

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
import structlog

from tablebook.database import SessionLocal
from tablebook.api.auth import authenticate_token, can_access_tenant
from tablebook.services.change_feed import change_feed

router = APIRouter()

logger = structlog.get_logger()


@router.websocket("/feed")
async def booking_feed(websocket: WebSocket, tenant_id: UUID, token: str = Query(...)):
    """Push every booking change of the tenant to the admin console"""
    async with SessionLocal() as db:
        user = await authenticate_token(token, db)

    if user is None or not can_access_tenant(user, tenant_id):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    logger.info("Change feed connected", tenant_id=str(tenant_id), user_id=str(user.id))

    with change_feed.subscription(tenant_id) as queue:
        try:
            while True:
                event = await queue.get()
                await websocket.send_json(event)
        except WebSocketDisconnect:
            logger.info("Change feed disconnected", tenant_id=str(tenant_id))
