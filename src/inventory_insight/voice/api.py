import logging
import threading
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from inventory_insight.core.config import get_settings
from inventory_insight.core.gemini_client import get_gemini_client
from inventory_insight.core.services.backend_factory import get_inventory_backend
from inventory_insight.inventory.queries import InventoryQueries
from inventory_insight.nl_query.intent import IntentClassifier
from inventory_insight.nl_query.pipeline import get_pipeline
from inventory_insight.voice.bridge import VoiceBridge, WebhookReplyTransport

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/voice",
    tags=["voice"],
)

_bridge: Optional[VoiceBridge] = None
_bridge_lock = threading.Lock()


def get_voice_bridge() -> VoiceBridge:
    global _bridge
    if _bridge is not None:
        return _bridge
    with _bridge_lock:
        if _bridge is None:
            settings = get_settings()
            _bridge = VoiceBridge(
                pipeline=get_pipeline(),
                transport=WebhookReplyTransport(),
                classifier=IntentClassifier(get_gemini_client(), mode=settings.voice_intent_mode),
                queries=InventoryQueries(get_inventory_backend()),
            )
            logger.info(f"[VOICE] ✓ Bridge ready (intent mode: {settings.voice_intent_mode})")
        return _bridge


@router.post("/events", response_model=Any)
def voice_event(payload: Dict[str, Any] = Body(...), bridge: VoiceBridge = Depends(get_voice_bridge)):
    """
    Webhook for the voice SDK. A `function-call` event is answered with
    `{"result": <spoken text>}`; every other event is acknowledged.
    """
    message = payload.get("message") if isinstance(payload.get("message"), dict) else payload
    bridge.handle_event(payload)

    if message.get("type") == "function-call":
        function_call = message.get("functionCall") or {}
        call = message.get("call") or {}
        reply_id = str(function_call.get("id") or call.get("id") or message.get("callId") or "default")
        result = None
        if isinstance(bridge.transport, WebhookReplyTransport):
            result = bridge.transport.pop_result(reply_id)
        if result is None:
            return {"status": "discarded"}
        return {"result": result}

    return {"status": "ok"}
