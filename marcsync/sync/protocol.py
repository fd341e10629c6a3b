"""
SignalR JSON hub protocol framing.

Messages are JSON objects terminated by the ASCII record separator; a
single WebSocket frame may carry several of them. Only the subset needed by
a receive-only client is implemented: handshake, invocation, ping, close.
"""

import json
from enum import IntEnum
from typing import Any, Dict, List, Optional, Tuple, Union

from marcsync.config.defaults import HUB_PROTOCOL, HUB_PROTOCOL_VERSION, RECORD_SEPARATOR


class HubMessageType(IntEnum):
    """Hub message type tags"""
    INVOCATION = 1
    STREAM_ITEM = 2
    COMPLETION = 3
    STREAM_INVOCATION = 4
    CANCEL_INVOCATION = 5
    PING = 6
    CLOSE = 7


class HubProtocolError(ValueError):
    """Malformed hub frame"""
    pass


def encode_message(message: Dict[str, Any]) -> str:
    """Serialize one message with its terminator"""
    return json.dumps(message, separators=(',', ':')) + RECORD_SEPARATOR


def decode_frames(data: Union[str, bytes]) -> List[Dict[str, Any]]:
    """
    Split a WebSocket payload into hub messages.

    Raises:
        HubProtocolError: The payload is not UTF-8 or a record is not a JSON object
    """
    if isinstance(data, bytes):
        try:
            data = data.decode('utf-8')
        except UnicodeDecodeError as e:
            raise HubProtocolError(f"Hub frame is not valid UTF-8: {e}") from e

    messages = []
    for record in data.split(RECORD_SEPARATOR):
        if not record.strip():
            continue
        try:
            message = json.loads(record)
        except (json.JSONDecodeError, RecursionError) as e:
            raise HubProtocolError(f"Invalid hub record: {e}") from e
        if not isinstance(message, dict):
            raise HubProtocolError("Hub record is not a JSON object")
        messages.append(message)
    return messages


def handshake_request() -> str:
    return encode_message({"protocol": HUB_PROTOCOL, "version": HUB_PROTOCOL_VERSION})


def parse_handshake_response(data: Union[str, bytes]) -> Tuple[Optional[str], List[Dict[str, Any]]]:
    """
    Check the server's handshake answer.

    The server may send hub messages in the same frame as the handshake
    response; they are returned so the caller can process them.

    Returns:
        (error message or None if accepted, remaining messages)
    """
    messages = decode_frames(data)
    if not messages:
        return "Empty handshake response", []
    return messages[0].get("error"), messages[1:]


def ping_message() -> str:
    return encode_message({"type": int(HubMessageType.PING)})
