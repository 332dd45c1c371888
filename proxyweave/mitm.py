"""Wire messages and ALPN helpers exchanged by the two ends of a MITM tunnel."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

_H1 = "http/1.1"
_H2 = "h2"


def _read_flags(data: bytes, count: int, name: str) -> list[bool]:
    if len(data) < count:
        raise ValueError(f"{name}: need {count} bytes, got {len(data)}")
    return [byte != 0 for byte in data[:count]]


@dataclass(frozen=True)
class MitmHelloRequest:
    """Sent by the decrypting side to tell the encrypting side what to do."""

    bypass: bool = False
    need_proto: bool = False
    support_h1: bool = False
    support_h2: bool = False

    SIZE = 4

    def pack(self) -> bytes:
        return bytes(
            [self.bypass, self.need_proto, self.support_h1, self.support_h2]
        )

    @classmethod
    def unpack(cls, data: bytes) -> "MitmHelloRequest":
        bypass, need_proto, h1, h2 = _read_flags(data, cls.SIZE, "hello request")
        return cls(bypass, need_proto, h1, h2)


@dataclass(frozen=True)
class MitmHelloResponse:
    """Reply telling whether the upstream negotiated HTTP/2."""

    use_h2: bool = False

    SIZE = 1

    def pack(self) -> bytes:
        return bytes([self.use_h2])

    @classmethod
    def unpack(cls, data: bytes) -> "MitmHelloResponse":
        (use_h2,) = _read_flags(data, cls.SIZE, "hello response")
        return cls(use_h2)


def protos_to_flags(protos: Iterable[str]) -> tuple[bool, bool]:
    """Return (supports HTTP/1.1, supports HTTP/2) for an ALPN list."""
    support_h1 = support_h2 = False
    for proto in protos:
        if proto == _H1:
            support_h1 = True
        if proto == _H2:
            support_h2 = True
    return support_h1, support_h2


def flags_to_protos(support_h1: bool, support_h2: bool) -> list[str]:
    """Build an ALPN list, preferring HTTP/2 when both are supported."""
    if support_h1 and support_h2:
        return [_H2, _H1]
    if support_h1:
        return [_H1]
    if support_h2:
        return [_H2]
    return []