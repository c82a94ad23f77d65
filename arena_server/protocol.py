"""JSON protocol helpers for the websocket transport."""

from __future__ import annotations

from dataclasses import dataclass
import json
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

if TYPE_CHECKING:  # pragma: no cover
    from .room import Room


@dataclass(frozen=True)
class Envelope:
    """An outbound event together with the connections that should receive it.

    ``recipients`` of ``None`` addresses every connected client. Room
    recipients are resolved when the envelope is built so that later
    membership changes do not reroute an event that was already produced.
    """

    event: str
    payload: Dict[str, Any]
    recipients: Optional[Tuple[str, ...]] = None

    @classmethod
    def to(cls, connection_id: str, event: str, payload: Optional[Dict[str, Any]] = None) -> "Envelope":
        return cls(event, payload or {}, (connection_id,))

    @classmethod
    def to_room(cls, room: "Room", event: str, payload: Optional[Dict[str, Any]] = None) -> "Envelope":
        return cls(event, payload or {}, tuple(room.players))

    @classmethod
    def broadcast(cls, event: str, payload: Optional[Dict[str, Any]] = None) -> "Envelope":
        return cls(event, payload or {}, None)

    def encode(self) -> str:
        return encode_message(self.event, self.payload)


def parse_client_message(message: str | bytes) -> dict:
    """Parse a raw client ``message`` into a Python dictionary."""

    try:
        payload = json.loads(message)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValueError("Invalid client message") from exc
    if not isinstance(payload, dict):
        raise ValueError("Client message must be a JSON object")
    if not isinstance(payload.get("type"), str):
        raise ValueError("Client message must carry a string 'type'")
    return payload


def encode_message(event: str, payload: Dict[str, Any]) -> str:
    """Encode a server event as a JSON object tagged with its ``type``."""

    return json.dumps({"type": event, **payload})
