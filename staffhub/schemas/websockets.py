from pydantic import BaseModel
from typing import Any, Dict


class WebSocketMessage(BaseModel):
    """Envelope for every frame pushed to or read from a chat socket."""

    type: str
    payload: Any = None


class InboundFrame(BaseModel):
    type: str  # ping | presence | typing | stop_typing | mark_delivered | mark_seen
    payload: Dict[str, Any] = {}
