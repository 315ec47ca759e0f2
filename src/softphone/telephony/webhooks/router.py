"""
FastAPI router for the provider webhook endpoint.

The provider must always receive a 200 with a TwiML document, whatever
happens inside.
"""

from __future__ import annotations

import json
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from softphone.shared.database import get_db_session
from softphone.shared.logging import get_logger
from softphone.telephony import twiml
from softphone.telephony.config import WEBHOOK_PATH, TelephonyConfig, get_telephony_config
from softphone.telephony.webhooks.ingestor import WebhookIngestor

logger = get_logger(__name__)

router = APIRouter(prefix=WEBHOOK_PATH, tags=["webhooks"])


async def read_payload(request: Request) -> dict[str, Any]:
    """Body as a flat dict (JSON or form), with query parameters merged in."""
    payload: dict[str, Any] = dict(request.query_params)
    content_type = request.headers.get("content-type", "").lower()

    if "application/json" in content_type:
        raw = await request.body()
        if raw:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("JSON webhook body must be an object")
            payload.update(data)
    else:
        form = await request.form()
        payload.update({k: v for k, v in form.items() if isinstance(v, str)})
    return payload


def _xml(content: str) -> Response:
    return Response(content=content, media_type="application/xml")


@router.post("")
async def telephony_webhook(
    request: Request,
    session: Annotated[AsyncSession, Depends(get_db_session)],
    config: Annotated[TelephonyConfig, Depends(get_telephony_config)],
) -> Response:
    """Receive call and message events from the provider."""
    try:
        payload = await read_payload(request)
    except ValueError:
        logger.warning("Unreadable webhook body", exc_info=True)
        return _xml(twiml.empty_response())

    document = await WebhookIngestor(session, config).ingest(payload)

    # A failed commit is still acknowledged; the dependency commit is then a no-op.
    try:
        await session.commit()
    except Exception:
        logger.exception("Failed to commit webhook writes")
        await session.rollback()
    return _xml(document)
