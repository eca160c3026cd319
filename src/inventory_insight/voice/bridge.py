"""
Voice assistant bridge.

Receives lifecycle and message events from the voice SDK, runs spoken
questions through the insight pipeline (no charts), and hands a short
spoken sentence back through the transport.

Per-call state:

    IDLE -> INITIALIZING -> ACTIVE -> LISTENING -> TRANSCRIBING
         -> QUERY_DISPATCHED -> RESPONSE_SYNTHESIZED -> LISTENING ... -> ENDED

A call that ends while its query is in flight lets the query finish; the
answer is then dropped instead of sent. Ended calls leave the live
registry; only the most recent ones are remembered, as ended.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from inventory_insight.core.errors import InsightEngineError
from inventory_insight.nl_query import intent as intents
from inventory_insight.nl_query.intent import IntentAnalysis, IntentClassifier
from inventory_insight.nl_query.metrics import VOICE_EVENTS
from inventory_insight.nl_query.utils import first_sentence

logger = logging.getLogger(__name__)

QUERY_FUNCTION = "queryDatabase"
APOLOGY = "Sorry, I encountered an error processing your query. Please try again."
SPOKEN_ITEMS = 3
# ended calls remembered so late events for them are still refused
ENDED_CALL_MEMORY = 256

START_EVENTS = ("start", "call-start")
END_EVENTS = ("end", "call-end", "end-of-call-report")
KNOWN_EVENTS = START_EVENTS + END_EVENTS + ("transcript", "function-call", "speech-start", "speech-end", "status-update")


class CallState(str, Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    ACTIVE = "active"
    LISTENING = "listening"
    TRANSCRIBING = "transcribing"
    QUERY_DISPATCHED = "query_dispatched"
    RESPONSE_SYNTHESIZED = "response_synthesized"
    ENDED = "ended"


class VoiceTransport(ABC):
    """Outbound side of the voice SDK."""

    @abstractmethod
    def send_function_result(self, call_id: str, text: str):
        pass


class WebhookReplyTransport(VoiceTransport):
    """
    Holds function results until the webhook handler returns them as the
    HTTP reply, which is how the hosted voice service expects them.
    """

    def __init__(self):
        self._results: Dict[str, str] = {}
        self._lock = threading.Lock()

    def send_function_result(self, call_id: str, text: str):
        with self._lock:
            self._results[call_id] = text

    def pop_result(self, call_id: str) -> Optional[str]:
        with self._lock:
            return self._results.pop(call_id, None)


@dataclass
class VoiceCall:
    call_id: str
    state: CallState = CallState.IDLE
    last_transcript: Optional[str] = None
    history: List[CallState] = field(default_factory=list)

    def move_to(self, state: CallState):
        self.state = state
        self.history.append(state)


def _unwrap(payload: Dict[str, Any]) -> Dict[str, Any]:
    message = payload.get("message") if isinstance(payload, dict) else None
    return message if isinstance(message, dict) else (payload or {})


def _call_id(message: Dict[str, Any]) -> str:
    call = message.get("call")
    if isinstance(call, dict) and call.get("id"):
        return str(call["id"])
    return str(message.get("callId") or "default")


class VoiceBridge:

    def __init__(self, pipeline, transport: VoiceTransport, classifier: Optional[IntentClassifier] = None,
                 queries=None, ended_memory: int = ENDED_CALL_MEMORY):
        self.pipeline = pipeline
        self.transport = transport
        self.classifier = classifier or IntentClassifier()
        self.queries = queries
        self.calls: Dict[str, VoiceCall] = {}
        self.ended_calls: "OrderedDict[str, VoiceCall]" = OrderedDict()
        self.ended_memory = ended_memory
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # call registry
    # ------------------------------------------------------------------

    def get_call(self, call_id: str) -> VoiceCall:
        with self._lock:
            call = self.calls.get(call_id) or self.ended_calls.get(call_id)
            if call is None:
                call = self.calls[call_id] = VoiceCall(call_id)
            return call

    def _retire(self, call: VoiceCall):
        """Move an ended call out of the live registry into the bounded ended list."""
        with self._lock:
            self.calls.pop(call.call_id, None)
            self.ended_calls[call.call_id] = call
            self.ended_calls.move_to_end(call.call_id)
            while len(self.ended_calls) > self.ended_memory:
                self.ended_calls.popitem(last=False)

    def _transition(self, call: VoiceCall, state: CallState):
        with self._lock:
            if call.state == CallState.ENDED and state != CallState.ENDED:
                return False
            call.move_to(state)
        logger.debug(f"[VOICE] call {call.call_id} -> {state.value}")
        return True

    def start_call(self, call_id: str) -> VoiceCall:
        call = self.get_call(call_id)
        for state in (CallState.INITIALIZING, CallState.ACTIVE, CallState.LISTENING):
            self._transition(call, state)
        logger.info(f"[VOICE] ✓ Call {call_id} started")
        return call

    def end_call(self, call_id: str) -> VoiceCall:
        call = self.get_call(call_id)
        self._transition(call, CallState.ENDED)
        self._retire(call)
        logger.info(f"[VOICE] Call {call_id} ended")
        return call

    # ------------------------------------------------------------------
    # events
    # ------------------------------------------------------------------

    def handle_event(self, payload: Dict[str, Any]) -> Optional[str]:
        """
        Apply one SDK event. Returns the spoken reply when the event was a
        query that produced one.
        """
        message = _unwrap(payload)
        event_type = str(message.get("type") or "")
        VOICE_EVENTS.labels(event=event_type if event_type in KNOWN_EVENTS else "other").inc()
        call_id = _call_id(message)

        if event_type == "status-update":
            status = message.get("status")
            if status == "ended":
                event_type = "end"
            elif status == "in-progress":
                event_type = "start"

        if event_type in START_EVENTS:
            self.start_call(call_id)
        elif event_type in END_EVENTS:
            self.end_call(call_id)
        elif event_type == "speech-start":
            self._transition(self.get_call(call_id), CallState.LISTENING)
        elif event_type == "transcript":
            self._on_transcript(call_id, message)
        elif event_type == "function-call":
            return self._on_function_call(call_id, message)
        else:
            logger.debug(f"[VOICE] Ignoring event '{event_type}'")
        return None

    def _on_transcript(self, call_id: str, message: Dict[str, Any]):
        if message.get("role") != "user" or message.get("transcriptType") != "final":
            return
        transcript = str(message.get("transcript") or "").strip()
        if not transcript:
            return
        call = self.get_call(call_id)
        if self._transition(call, CallState.TRANSCRIBING):
            call.last_transcript = transcript
            logger.info(f"[VOICE] User said: '{transcript}'")

    def _on_function_call(self, call_id: str, message: Dict[str, Any]) -> Optional[str]:
        function_call = message.get("functionCall") or {}
        if function_call.get("name") != QUERY_FUNCTION:
            logger.warning(f"[VOICE] ⚠ Unknown function '{function_call.get('name')}'")
            return None

        parameters = function_call.get("parameters") or {}
        call = self.get_call(call_id)
        query = str(parameters.get("query") or call.last_transcript or "").strip()
        return self.dispatch(call, query, str(function_call.get("id") or call_id))

    # ------------------------------------------------------------------
    # dispatch
    # ------------------------------------------------------------------

    def dispatch(self, call: VoiceCall, query: str, function_call_id: str) -> Optional[str]:
        if not self._transition(call, CallState.QUERY_DISPATCHED):
            logger.warning(f"[VOICE] ⚠ Query for ended call {call.call_id} ignored")
            return None

        logger.info(f"[VOICE] Processing voice query: '{query}'")
        try:
            text = self.compose_reply(query)
        except (InsightEngineError, ValueError) as e:
            logger.error(f"[VOICE] ✗ Error processing voice query: {e}")
            text = APOLOGY

        if not self._transition(call, CallState.RESPONSE_SYNTHESIZED):
            VOICE_EVENTS.labels(event="discarded").inc()
            logger.info(f"[VOICE] Call {call.call_id} ended during dispatch, reply discarded")
            return None

        self.transport.send_function_result(function_call_id, text)
        self._transition(call, CallState.LISTENING)
        logger.info(f"[VOICE] ✓ Sent reply for {function_call_id}")
        return text

    def compose_reply(self, query: str) -> str:
        analysis = self.classifier.classify(query)
        result = self.pipeline.run(query)
        if result.error:
            logger.error(f"[VOICE] ✗ Pipeline error: {result.error.message}")
            return APOLOGY

        prose_sentence = first_sentence(result.prose)
        templated = self._template_reply(analysis, result.rows)
        if templated:
            return f"{prose_sentence} {templated}".strip()
        return prose_sentence or APOLOGY

    def _template_reply(self, analysis: IntentAnalysis, rows: List[Dict[str, Any]]) -> Optional[str]:
        if not analysis.matched:
            return None
        intent = analysis.intent
        top = rows[:SPOKEN_ITEMS]

        if intent == intents.LOW_STOCK and top and all("item_name" in r and "quantity" in r for r in top):
            items = ", ".join(
                f"{r['item_name']} by {r.get('brand') or 'an unknown brand'} with only {r['quantity']} left"
                for r in top
            )
            return f"The items that need reordering are: {items}."

        if intent == intents.EXPENSIVE_ITEMS and top and all("item_name" in r and "selling_price" in r for r in top):
            items = ", ".join(f"{r['item_name']} at ${r['selling_price']}" for r in top)
            return f"Your most expensive items are: {items}."

        if intent == intents.INVENTORY_SUMMARY and self.queries is not None:
            data = self.queries.inventory_summary()
            return (
                f"You have {data['totalItems']} items worth ${data['totalValue']:.0f}. "
                f"{data['lowStockCount']} items are low on stock and "
                f"{data['outOfStockCount']} are completely out of stock."
            )

        if intent == intents.SUPPLIERS and self.queries is not None:
            suppliers = self.queries.suppliers()[:SPOKEN_ITEMS]
            if suppliers:
                names = ", ".join(f"{s['name']} with {s['avgRating']} rating" for s in suppliers)
                return f"Your suppliers include: {names}."

        return None
