"""Wire format between the orchestrator and the wizard worker.

One request and one response travel per worker process. Each is a single
frame: a 4-byte big-endian unsigned length followed by that many bytes of
ASCII JSON. Non-ASCII characters travel as ``\\uXXXX`` escapes, which also
carry lone surrogates from undecodable argv or file names back to the
identical string. The JSON body is an envelope::

    request:  {"protocol": 1, "operation": "executeWizard", "arguments": {...}}
    response: {"protocol": 1, "success": true, "result": ...}
              {"protocol": 1, "success": false, "error": {"type": ..., "message": ...}}

Payloads are restricted to None, bool, int, float, str, lists and
string-keyed dicts, all of which round-trip through JSON unchanged. Tuples
are sent as lists. Anything else is rejected at encode time instead of
being silently coerced.
"""

from __future__ import annotations

import json
import math
import struct
from enum import StrEnum
from typing import Any

from upgrade_console.errors import (
    ProtocolError,
    UnknownIdentifierError,
    UpgradeConsoleError,
    error_from_payload,
)

PROTOCOL_VERSION = 1

HEADER = struct.Struct(">I")
MAX_FRAME_SIZE = 64 * 1024 * 1024


class SubProcessOperation(StrEnum):
    """Operations the worker process knows how to run."""

    LIST_WIZARDS = "listWizards"
    EXECUTE_WIZARD = "executeWizard"

    @classmethod
    def parse(cls, name: str) -> "SubProcessOperation":
        """Map an operation name to its enum member.

        Raises:
            UnknownIdentifierError: If *name* is not a known operation.
        """
        try:
            return cls(name)
        except ValueError:
            raise UnknownIdentifierError(
                "operation", name, f'Unknown worker operation "{name}"'
            ) from None


def _check_payload(value: Any, path: str = "$") -> Any:
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ProtocolError(f"Cannot encode non-finite float at {path}")
        return value
    if isinstance(value, (list, tuple)):
        return [_check_payload(item, f"{path}[{index}]") for index, item in enumerate(value)]
    if isinstance(value, dict):
        checked = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise ProtocolError(f"Mapping keys must be strings, got {key!r} at {path}")
            checked[key] = _check_payload(item, f"{path}.{key}")
        return checked
    raise ProtocolError(f"Cannot encode value of type {type(value).__name__} at {path}")


def encode_frame(payload: Any) -> bytes:
    """Serialise *payload* into one length-prefixed frame."""
    body = json.dumps(
        _check_payload(payload), ensure_ascii=True, allow_nan=False, separators=(",", ":")
    ).encode("ascii")
    if len(body) > MAX_FRAME_SIZE:
        raise ProtocolError(f"Frame of {len(body)} bytes exceeds the {MAX_FRAME_SIZE} byte limit")
    return HEADER.pack(len(body)) + body


def decode_frame(data: bytes) -> Any:
    """Deserialise exactly one frame from *data*.

    Raises:
        ProtocolError: On a short header, a length mismatch, trailing bytes
            or a body that is not valid UTF-8 JSON.
    """
    if len(data) < HEADER.size:
        raise ProtocolError(f"Expected a {HEADER.size}-byte frame header, got {len(data)} bytes")
    (length,) = HEADER.unpack_from(data)
    if length > MAX_FRAME_SIZE:
        raise ProtocolError(f"Frame length {length} exceeds the {MAX_FRAME_SIZE} byte limit")
    body = data[HEADER.size :]
    if len(body) != length:
        raise ProtocolError(f"Frame header announces {length} bytes but {len(body)} followed")
    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ProtocolError(f"Frame body is not valid JSON: {exc}") from exc


def make_request(operation: SubProcessOperation, arguments: dict[str, Any] | None = None) -> dict[str, Any]:
    return {
        "protocol": PROTOCOL_VERSION,
        "operation": operation.value,
        "arguments": arguments or {},
    }


def parse_request(payload: Any, operation: SubProcessOperation) -> dict[str, Any]:
    """Validate a request envelope and return its arguments."""
    if not isinstance(payload, dict):
        raise ProtocolError("Request envelope must be a mapping")
    if payload.get("protocol") != PROTOCOL_VERSION:
        raise ProtocolError(f"Unsupported protocol version {payload.get('protocol')!r}")
    if payload.get("operation") != operation.value:
        raise ProtocolError(
            f"Request was built for {payload.get('operation')!r}, worker runs {operation.value!r}"
        )
    arguments = payload.get("arguments")
    if not isinstance(arguments, dict):
        raise ProtocolError("Request arguments must be a mapping")
    return arguments


def make_response(result: Any) -> dict[str, Any]:
    return {"protocol": PROTOCOL_VERSION, "success": True, "result": result}


def make_error_response(error: UpgradeConsoleError) -> dict[str, Any]:
    return {"protocol": PROTOCOL_VERSION, "success": False, "error": error.to_payload()}


def unwrap_response(payload: Any) -> Any:
    """Return the result of a response envelope or raise the reported error."""
    if not isinstance(payload, dict) or "success" not in payload:
        raise ProtocolError("Response envelope must be a mapping with a 'success' key")
    if payload.get("protocol") != PROTOCOL_VERSION:
        raise ProtocolError(f"Unsupported protocol version {payload.get('protocol')!r}")
    if payload["success"]:
        if "result" not in payload:
            raise ProtocolError("Successful response carries no result")
        return payload["result"]
    raise error_from_payload(payload.get("error"))


__all__ = [
    "PROTOCOL_VERSION",
    "SubProcessOperation",
    "encode_frame",
    "decode_frame",
    "make_request",
    "parse_request",
    "make_response",
    "make_error_response",
    "unwrap_response",
]
