"""Closed label taxonomy for every reason-style metric dimension.

Each enum member's value is the label string exported to the metrics
backend. Those strings are a compatibility contract with dashboards and
alert rules:

    - adding a member is backward compatible
    - renaming or removing a member is a breaking change

Members are never built from arbitrary strings. Wire error codes reported by
a peer go through ``from_wire_code()``, which folds anything unrecognised
into ``UNKNOWN`` so a misbehaving peer cannot widen cardinality.
"""

from __future__ import annotations

from enum import Enum


class _LabelEnum(Enum):
    @property
    def label(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value


class QuicHandshakeStage(_LabelEnum):
    """Stage of server-side handshake processing being timed."""

    # Kernel receive plus waiting for the connection's task to be polled.
    QUEUE_WAITING = "queue_waiting"
    PARSE_INITIAL = "parse_initial"
    DERIVE_KEYS = "derive_keys"
    PROCESS_FRAMES = "process_frames"
    # Protocol work on a single handshake packet, excluding queueing.
    HANDSHAKE_PROTOCOL = "handshake_protocol"
    # Kernel receive to response flushed on the socket.
    HANDSHAKE_RESPONSE = "handshake_response"


class QuicWriteError(_LabelEnum):
    """Why a packet write to the socket failed or was partial."""

    ERR = "err"
    PARTIAL = "partial"
    WOULD_BLOCK = "would_block"


class QuicInvalidInitialPacketError(_LabelEnum):
    """Why an inbound Initial packet was rejected before a connection existed."""

    TOKEN_VALIDATION_FAIL = "token_validation_fail"
    FAILED_TO_PARSE = "failed_to_parse"
    WRONG_PACKET_TYPE = "wrong_packet_type"
    ACCEPT_QUEUE_OVERFLOW = "accept_queue_overflow"
    UNEXPECTED = "unexpected"


class HandshakeError(_LabelEnum):
    """Why a QUIC handshake did not complete."""

    CRYPTO_FAIL = "crypto_fail"
    TLS_FAIL = "tls_fail"
    TIMEOUT = "timeout"
    DISCONNECT = "disconnect"
    OTHER = "other"


class H3Error(_LabelEnum):
    """HTTP/3 (RFC 9114) and QPACK (RFC 9204) application error codes."""

    NO_ERROR = "h3_no_error"
    GENERAL_PROTOCOL_ERROR = "h3_general_protocol_error"
    INTERNAL_ERROR = "h3_internal_error"
    STREAM_CREATION_ERROR = "h3_stream_creation_error"
    CLOSED_CRITICAL_STREAM = "h3_closed_critical_stream"
    FRAME_UNEXPECTED = "h3_frame_unexpected"
    FRAME_ERROR = "h3_frame_error"
    EXCESSIVE_LOAD = "h3_excessive_load"
    ID_ERROR = "h3_id_error"
    SETTINGS_ERROR = "h3_settings_error"
    MISSING_SETTINGS = "h3_missing_settings"
    REQUEST_REJECTED = "h3_request_rejected"
    REQUEST_CANCELLED = "h3_request_cancelled"
    REQUEST_INCOMPLETE = "h3_request_incomplete"
    MESSAGE_ERROR = "h3_message_error"
    CONNECT_ERROR = "h3_connect_error"
    VERSION_FALLBACK = "h3_version_fallback"
    QPACK_DECOMPRESSION_FAILED = "qpack_decompression_failed"
    QPACK_ENCODER_STREAM_ERROR = "qpack_encoder_stream_error"
    QPACK_DECODER_STREAM_ERROR = "qpack_decoder_stream_error"
    UNKNOWN = "unknown"

    @classmethod
    def from_wire_code(cls, code: int) -> H3Error:
        """Map an application error code to a member, ``UNKNOWN`` if unassigned.

        Reserved GREASE codes (0x1f * N + 0x21) land in ``UNKNOWN`` too.
        """
        return _H3_WIRE_CODES.get(code, cls.UNKNOWN)


class QuicError(_LabelEnum):
    """QUIC transport error codes (RFC 9000, section 20.1)."""

    NO_ERROR = "no_error"
    INTERNAL_ERROR = "internal_error"
    CONNECTION_REFUSED = "connection_refused"
    FLOW_CONTROL_ERROR = "flow_control_error"
    STREAM_LIMIT_ERROR = "stream_limit_error"
    STREAM_STATE_ERROR = "stream_state_error"
    FINAL_SIZE_ERROR = "final_size_error"
    FRAME_ENCODING_ERROR = "frame_encoding_error"
    TRANSPORT_PARAMETER_ERROR = "transport_parameter_error"
    CONNECTION_ID_LIMIT_ERROR = "connection_id_limit_error"
    PROTOCOL_VIOLATION = "protocol_violation"
    INVALID_TOKEN = "invalid_token"
    APPLICATION_ERROR = "application_error"
    CRYPTO_BUFFER_EXCEEDED = "crypto_buffer_exceeded"
    KEY_UPDATE_ERROR = "key_update_error"
    AEAD_LIMIT_REACHED = "aead_limit_reached"
    NO_VIABLE_PATH = "no_viable_path"
    # Any TLS alert carried in 0x0100..0x01ff; the alert itself is not a label.
    CRYPTO_ERROR = "crypto_error"
    UNKNOWN = "unknown"

    @classmethod
    def from_wire_code(cls, code: int) -> QuicError:
        """Map a transport error code to a member, ``UNKNOWN`` if unassigned."""
        if _CRYPTO_ERROR_FIRST <= code <= _CRYPTO_ERROR_LAST:
            return cls.CRYPTO_ERROR
        return _QUIC_WIRE_CODES.get(code, cls.UNKNOWN)


_H3_WIRE_CODES: dict[int, H3Error] = {
    0x0100: H3Error.NO_ERROR,
    0x0101: H3Error.GENERAL_PROTOCOL_ERROR,
    0x0102: H3Error.INTERNAL_ERROR,
    0x0103: H3Error.STREAM_CREATION_ERROR,
    0x0104: H3Error.CLOSED_CRITICAL_STREAM,
    0x0105: H3Error.FRAME_UNEXPECTED,
    0x0106: H3Error.FRAME_ERROR,
    0x0107: H3Error.EXCESSIVE_LOAD,
    0x0108: H3Error.ID_ERROR,
    0x0109: H3Error.SETTINGS_ERROR,
    0x010A: H3Error.MISSING_SETTINGS,
    0x010B: H3Error.REQUEST_REJECTED,
    0x010C: H3Error.REQUEST_CANCELLED,
    0x010D: H3Error.REQUEST_INCOMPLETE,
    0x010E: H3Error.MESSAGE_ERROR,
    0x010F: H3Error.CONNECT_ERROR,
    0x0110: H3Error.VERSION_FALLBACK,
    0x0200: H3Error.QPACK_DECOMPRESSION_FAILED,
    0x0201: H3Error.QPACK_ENCODER_STREAM_ERROR,
    0x0202: H3Error.QPACK_DECODER_STREAM_ERROR,
}

_QUIC_WIRE_CODES: dict[int, QuicError] = {
    0x00: QuicError.NO_ERROR,
    0x01: QuicError.INTERNAL_ERROR,
    0x02: QuicError.CONNECTION_REFUSED,
    0x03: QuicError.FLOW_CONTROL_ERROR,
    0x04: QuicError.STREAM_LIMIT_ERROR,
    0x05: QuicError.STREAM_STATE_ERROR,
    0x06: QuicError.FINAL_SIZE_ERROR,
    0x07: QuicError.FRAME_ENCODING_ERROR,
    0x08: QuicError.TRANSPORT_PARAMETER_ERROR,
    0x09: QuicError.CONNECTION_ID_LIMIT_ERROR,
    0x0A: QuicError.PROTOCOL_VIOLATION,
    0x0B: QuicError.INVALID_TOKEN,
    0x0C: QuicError.APPLICATION_ERROR,
    0x0D: QuicError.CRYPTO_BUFFER_EXCEEDED,
    0x0E: QuicError.KEY_UPDATE_ERROR,
    0x0F: QuicError.AEAD_LIMIT_REACHED,
    0x10: QuicError.NO_VIABLE_PATH,
}

_CRYPTO_ERROR_FIRST = 0x0100
_CRYPTO_ERROR_LAST = 0x01FF


def label_values(enum_cls: type[_LabelEnum]) -> tuple[str, ...]:
    """All label strings a dimension can take, in declaration order."""
    return tuple(member.value for member in enum_cls)
