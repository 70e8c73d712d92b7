"""Payload serialization for SEND frames and parsing of MESSAGE bodies."""

import logging
from typing import Any

import orjson

logger = logging.getLogger(__name__)


def serialize_payload(payload: Any) -> str:
    """Serialize an opaque payload to JSON text; raises orjson.JSONEncodeError."""
    return orjson.dumps(payload).decode("utf-8")


def parse_payload(body: str) -> Any:
    """
    Parse a MESSAGE body as JSON, falling back to the raw body.

    A handler therefore always receives something for every inbound frame.
    """
    try:
        return orjson.loads(body)
    except orjson.JSONDecodeError:
        logger.debug("Delivering unparsed message body (%d chars)", len(body))
        return body
