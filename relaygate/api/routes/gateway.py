"""Gateway endpoints: connection status, pairing code, reset and send."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict

from relaygate.sessions.errors import InvalidArgument
from relaygate.sessions.manager import SessionLifecycleManager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["gateway"])


def get_manager(request: Request) -> SessionLifecycleManager:
    return request.app.state.sessions


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class SendMessageRequest(BaseModel):
    # Phone numbers often arrive as JSON numbers.
    model_config = ConfigDict(coerce_numbers_to_str=True)

    phone: str | None = None
    message: str | None = None


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("/status/{tenant_id}")
async def connection_status(
    tenant_id: str,
    manager: SessionLifecycleManager = Depends(get_manager),
) -> dict:
    status = await manager.get_status(tenant_id)
    return status.to_dict()


@router.get("/qr/{tenant_id}")
async def pairing_code(
    tenant_id: str,
    manager: SessionLifecycleManager = Depends(get_manager),
) -> dict:
    return {"qr": await manager.get_pairing_payload(tenant_id)}


@router.post("/reset-connection/{tenant_id}")
async def reset_connection(
    tenant_id: str,
    manager: SessionLifecycleManager = Depends(get_manager),
) -> dict:
    await manager.reset(tenant_id)
    logger.info("Connection reset requested for %s", tenant_id)
    return {"success": True}


@router.post("/send-message/{tenant_id}")
async def send_message(
    tenant_id: str,
    body: SendMessageRequest,
    manager: SessionLifecycleManager = Depends(get_manager),
) -> dict:
    if not body.phone or not body.message:
        raise InvalidArgument("Phone and message are required")
    await manager.send_message(tenant_id, body.phone, body.message)
    return {"success": True}
