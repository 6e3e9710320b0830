"""Tests for the worker wire format and envelopes."""

from __future__ import annotations

import struct

import pytest

from upgrade_console.errors import (
    ChildCrashed,
    ProtocolError,
    UnknownIdentifierError,
    WizardExecutionError,
)
from upgrade_console.upgrade.protocol import (
    PROTOCOL_VERSION,
    SubProcessOperation,
    decode_frame,
    encode_frame,
    make_error_response,
    make_request,
    make_response,
    parse_request,
    unwrap_response,
)


class TestFrames:
    def test_frame_is_length_prefixed_ascii_json(self) -> None:
        frame = encode_frame({"name": "Größe"})

        (length,) = struct.unpack(">I", frame[:4])
        assert length == len(frame) - 4
        assert frame[4:].decode("ascii") == '{"name":"Gr\\u00f6\\u00dfe"}'
        assert decode_frame(frame) == {"name": "Größe"}

    def test_lone_surrogates_survive_exactly(self) -> None:
        # What os.fsdecode yields for a latin-1 byte in a UTF-8 locale.
        payload = {"arguments": {"path": "caf\udce9"}}

        assert decode_frame(encode_frame(payload)) == payload

    def test_nested_payload_survives_exactly(self) -> None:
        payload = {
            "none": None,
            "flag": False,
            "count": 3,
            "ratio": 0.25,
            "text": "multi\nline",
            "items": [1, "two", {"three": [3.0]}],
        }
        assert decode_frame(encode_frame(payload)) == payload

    def test_tuples_are_sent_as_lists(self) -> None:
        assert decode_frame(encode_frame({"pair": (1, 2)})) == {"pair": [1, 2]}

    @pytest.mark.parametrize(
        "payload",
        [
            {1: "int key"},
            {"value": float("nan")},
            {"value": float("inf")},
            {"value": object()},
            {"value": {1, 2}},
            {"value": b"bytes"},
        ],
    )
    def test_unrepresentable_values_are_rejected(self, payload: object) -> None:
        with pytest.raises(ProtocolError):
            encode_frame(payload)

    def test_short_header_is_rejected(self) -> None:
        with pytest.raises(ProtocolError, match="header"):
            decode_frame(b"\x00\x00")

    def test_length_mismatch_is_rejected(self) -> None:
        frame = encode_frame({"a": 1})
        with pytest.raises(ProtocolError, match="announces"):
            decode_frame(frame[:-1])
        with pytest.raises(ProtocolError, match="announces"):
            decode_frame(frame + b"garbage")

    def test_invalid_json_is_rejected(self) -> None:
        body = b"{not json"
        with pytest.raises(ProtocolError, match="not valid JSON"):
            decode_frame(struct.pack(">I", len(body)) + body)

    def test_oversized_length_is_rejected(self) -> None:
        with pytest.raises(ProtocolError, match="limit"):
            decode_frame(struct.pack(">I", 2**31) + b"{}")


class TestOperations:
    def test_parse_known_operations(self) -> None:
        assert SubProcessOperation.parse("listWizards") is SubProcessOperation.LIST_WIZARDS
        assert SubProcessOperation.parse("executeWizard") is SubProcessOperation.EXECUTE_WIZARD

    def test_parse_unknown_operation(self) -> None:
        with pytest.raises(UnknownIdentifierError) as exc_info:
            SubProcessOperation.parse("dropDatabase")

        assert exc_info.value.identifier == "dropDatabase"
        assert "dropDatabase" in str(exc_info.value)


class TestEnvelopes:
    def test_request_round_trip(self) -> None:
        request = make_request(SubProcessOperation.EXECUTE_WIZARD, {"identifier": "a"})

        assert request["protocol"] == PROTOCOL_VERSION
        assert parse_request(request, SubProcessOperation.EXECUTE_WIZARD) == {"identifier": "a"}

    def test_request_for_other_operation_is_rejected(self) -> None:
        request = make_request(SubProcessOperation.LIST_WIZARDS)
        with pytest.raises(ProtocolError, match="worker runs"):
            parse_request(request, SubProcessOperation.EXECUTE_WIZARD)

    @pytest.mark.parametrize(
        "payload",
        [
            ["not", "a", "mapping"],
            {"protocol": 99, "operation": "listWizards", "arguments": {}},
            {"protocol": PROTOCOL_VERSION, "operation": "listWizards", "arguments": []},
        ],
    )
    def test_malformed_requests_are_rejected(self, payload: object) -> None:
        with pytest.raises(ProtocolError):
            parse_request(payload, SubProcessOperation.LIST_WIZARDS)

    def test_success_response_unwraps_result(self) -> None:
        assert unwrap_response(make_response({"scheduled": []})) == {"scheduled": []}

    def test_error_response_raises_rebuilt_error(self) -> None:
        response = make_error_response(WizardExecutionError("nope", identifier="a"))

        with pytest.raises(WizardExecutionError) as exc_info:
            unwrap_response(response)

        assert str(exc_info.value) == "nope"
        assert exc_info.value.identifier == "a"

    def test_unknown_error_type_becomes_child_crash(self) -> None:
        response = {
            "protocol": PROTOCOL_VERSION,
            "success": False,
            "error": {"type": "KeyError", "message": "boom"},
        }
        with pytest.raises(ChildCrashed, match="KeyError"):
            unwrap_response(response)

    @pytest.mark.parametrize(
        "payload",
        [
            None,
            {"protocol": PROTOCOL_VERSION},
            {"protocol": 2, "success": True, "result": None},
            {"protocol": PROTOCOL_VERSION, "success": True},
        ],
    )
    def test_malformed_responses_are_rejected(self, payload: object) -> None:
        with pytest.raises(ProtocolError):
            unwrap_response(payload)
