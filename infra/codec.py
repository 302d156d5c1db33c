"""Thin wrapper around the betterproto codec.

The harness never inspects wire bytes itself. Parsing and
serialization are delegated to betterproto; this module only
normalizes failures into :class:`CodecError` so the
benchmark driver and amplification analyzer can tell a codec
rejection apart from a harness bug.

Hot path note:
    :func:`parser_for` returns a plain closure so the timed loops pay
    exactly one extra Python call per parse and no attribute lookups.

Example:
    >>> from infra.codec import parser_for, serialize
    >>> from infra.messages import BenchmarkRequest, SyntheticNode
    >>> data = serialize(BenchmarkRequest(root=SyntheticNode(name="root")))
    >>> parse = parser_for(BenchmarkRequest)
    >>> parse(data).root.name
    'root'
"""

from typing import Callable, TypeVar

import betterproto

MessageT = TypeVar("MessageT", bound=betterproto.Message)

class CodecError(Exception):
    """The codec failed to parse or serialize a payload.

    Recoverable at the harness level: measurement loops stop and the
    partial results are still reported.

    Args:
        message: Human-readable description of the failure.
        error_type: Class name of the underlying codec exception.

    Example:
        >>> err = CodecError("truncated varint", error_type="IndexError")
        >>> err.error_type
        'IndexError'
    """

    def __init__(self, message: str, error_type: str = "CodecError") -> None:
        self.message: str = message
        self.error_type: str = error_type
        super().__init__(f"[{error_type}] {message}")


def serialize(message: betterproto.Message) -> bytes:
    """Serialize a betterproto message to wire bytes.

    Raises:
        CodecError: If the codec cannot encode the message.
    """
    try:
        return bytes(message)
    except Exception as exc:
        raise CodecError(
            f"serialize {type(message).__name__} failed: {exc}",
            error_type=type(exc).__name__,
        ) from exc


def parse(message_type: type[MessageT], data: bytes) -> MessageT:
    """Parse ``data`` as ``message_type``.

    Args:
        message_type: betterproto message class to decode into.
        data: Raw wire bytes.

    Returns:
        A freshly allocated message instance.

    Raises:
        CodecError: If the codec rejects the payload. The original
            exception is chained as ``__cause__``.
    """
    try:
        return message_type().parse(data)
    except Exception as exc:
        raise CodecError(
            f"parse {message_type.__name__} failed: {exc}",
            error_type=type(exc).__name__,
        ) from exc


def parser_for(message_type: type[MessageT]) -> Callable[[bytes], MessageT]:
    """Bind :func:`parse` to one message type.

    Example:
        >>> from infra.messages import VulnerableRequest
        >>> parse_vulnerable = parser_for(VulnerableRequest)
        >>> parse_vulnerable(b"").embedded
        []
    """

    def _parse(data: bytes) -> MessageT:
        return parse(message_type, data)

    _parse.__name__ = f"parse_{message_type.__name__}"
    return _parse
