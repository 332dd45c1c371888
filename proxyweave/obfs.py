"""Obfuscating wrappers: a fake TLS record parser and an HTTP upgrade disguise."""

from __future__ import annotations

import base64
import hashlib
import logging
import os
import socket
import threading
from email.utils import formatdate
from typing import Optional

logger = logging.getLogger(__name__)

MAX_TLS_DATA_LEN = 16384
"""Largest payload accepted in a single application data record."""

DEFAULT_USER_AGENT = "Mozilla/5.0"

_WEBSOCKET_GUID = b"258EAFA5-E914-47DA-95CA-C5AB0DC85B11"
_RECV_CHUNK = 4096

# Expected record type and minor version for each step of the fake handshake:
# server hello, change cipher spec, first (handshake-typed) data, then app data.
_RECORD_TYPES = (0x16, 0x14, 0x16, 0x17)
_VERSION_MINORS = (0x01, 0x03, 0x03, 0x03)

_STATE_TYPE = 0
_STATE_VERSION0 = 1
_STATE_VERSION1 = 2
_STATE_LENGTH0 = 3
_STATE_LENGTH1 = 4
_STATE_DATA = 5


class ObfsTLSError(ValueError):
    """A received record does not fit the expected fake TLS stream."""


class TLSRecordParser:
    """Strips fake TLS framing from a byte stream seen by an obfs-tls client.

    The first two records (server hello and change cipher spec) are skipped;
    the payloads of all later records are returned.
    """

    def __init__(self) -> None:
        self._step = 0
        self._state = _STATE_TYPE
        self._length = 0

    def parse(self, data: bytes) -> bytes:
        """Feed the next chunk of the stream and return the payload it holds."""
        payload = bytearray()
        position = 0
        end = len(data)

        while position < end:
            byte = data[position]
            state = self._state
            step = min(self._step, len(_RECORD_TYPES) - 1)

            if state == _STATE_TYPE:
                if byte != _RECORD_TYPES[step]:
                    raise ObfsTLSError("bad type")
                self._state = _STATE_VERSION0
                position += 1
            elif state == _STATE_VERSION0:
                if byte != 0x03:
                    raise ObfsTLSError("bad major version")
                self._state = _STATE_VERSION1
                position += 1
            elif state == _STATE_VERSION1:
                if byte != _VERSION_MINORS[step]:
                    raise ObfsTLSError("bad minor version")
                self._state = _STATE_LENGTH0
                position += 1
            elif state == _STATE_LENGTH0:
                self._length = byte << 8
                self._state = _STATE_LENGTH1
                position += 1
            elif state == _STATE_LENGTH1:
                self._length |= byte
                if self._step == 0:
                    self._length = 91
                elif self._step == 1:
                    self._length = 1
                elif self._length > MAX_TLS_DATA_LEN:
                    raise ObfsTLSError("bad tls data len")
                if self._length > 0:
                    self._state = _STATE_DATA
                else:
                    self._state = _STATE_TYPE
                    if self._step < len(_RECORD_TYPES) - 1:
                        self._step += 1
                position += 1
            else:
                take = min(end - position, self._length)
                if self._step >= 2:
                    payload += data[position:position + take]
                position += take
                self._length -= take
                if self._length == 0:
                    if self._step < len(_RECORD_TYPES) - 1:
                        self._step += 1
                    self._state = _STATE_TYPE

        return bytes(payload)


def compute_accept_key(challenge_key: str) -> str:
    """Compute the Sec-WebSocket-Accept value for a challenge key."""
    digest = hashlib.sha1(challenge_key.encode("latin-1") + _WEBSOCKET_GUID).digest()
    return base64.b64encode(digest).decode("ascii")


def generate_challenge_key() -> str:
    """Return a random base64-encoded 16-byte Sec-WebSocket-Key."""
    return base64.b64encode(os.urandom(16)).decode("ascii")


def _http_date() -> str:
    return formatdate(usegmt=True)


class ObfsHTTPConn:
    """A stream that hides its traffic behind a websocket-like HTTP upgrade.

    The client prepends an upgrade request to its first write; the server
    answers with "101 Switching Protocols" and then both sides pass raw data.
    """

    def __init__(
        self,
        sock: socket.socket,
        host: str = "",
        is_server: bool = False,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._sock = sock
        self.host = host
        self.is_server = is_server
        self._user_agent = user_agent
        self._inbox = bytearray()
        self._rbuf = bytearray()
        self._wbuf = bytearray()
        self._header_drained = False
        self._handshaked = False
        self._lock = threading.Lock()

    def __enter__(self) -> "ObfsHTTPConn":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _fill(self) -> None:
        chunk = self._sock.recv(_RECV_CHUNK)
        if not chunk:
            raise ConnectionError("unexpected EOF")
        self._inbox += chunk

    def _read_line(self) -> bytes:
        while b"\n" not in self._inbox:
            self._fill()
        end = self._inbox.index(b"\n") + 1
        line = bytes(self._inbox[:end])
        del self._inbox[:end]
        return line

    def _read_exact(self, count: int) -> bytes:
        while len(self._inbox) < count:
            self._fill()
        data = bytes(self._inbox[:count])
        del self._inbox[:count]
        return data

    def handshake(self) -> None:
        """Run the upgrade exchange once; later calls do nothing."""
        with self._lock:
            if self._handshaked:
                return
            if self.is_server:
                self._server_handshake()
            else:
                self._client_handshake()
            self._handshaked = True

    def _read_request(self) -> tuple[str, dict[str, str]]:
        request_line = self._read_line().rstrip(b"\r\n").decode("latin-1")
        parts = request_line.split(" ")
        if len(parts) != 3 or not parts[0]:
            raise ValueError(f"malformed HTTP request {request_line!r}")

        headers: dict[str, str] = {}
        while True:
            line = self._read_line().rstrip(b"\r\n")
            if not line:
                break
            name, sep, value = line.decode("latin-1").partition(":")
            if not sep or not name.strip():
                raise ValueError(f"malformed MIME header line: {line!r}")
            headers.setdefault(name.strip().lower(), value.strip())
        return parts[0], headers

    def _server_handshake(self) -> None:
        method, headers = self._read_request()
        logger.debug("[ohttp] request %s %r", method, headers)

        length_text = headers.get("content-length", "")
        if length_text:
            if not length_text.isdigit():
                raise ValueError(f"bad Content-Length {length_text!r}")
            length = int(length_text)
            if length > 0:
                self._rbuf += self._read_exact(length)
        self._rbuf += self._inbox
        self._inbox.clear()

        if method != "GET" or headers.get("upgrade") != "websocket":
            response = (
                "HTTP/1.1 503 Service Unavailable\r\n"
                "Content-Length: 0\r\n"
                f"Date: {_http_date()}\r\n"
                "\r\n"
            )
            logger.debug("[ohttp] response\n%s", response)
            self._sock.sendall(response.encode("latin-1"))
            raise ConnectionError("bad request")

        accept = compute_accept_key(headers.get("sec-websocket-key", ""))
        response = (
            "HTTP/1.1 101 Switching Protocols\r\n"
            "Server: nginx/1.10.0\r\n"
            f"Date: {_http_date()}\r\n"
            "Connection: Upgrade\r\n"
            "Upgrade: websocket\r\n"
            f"Sec-WebSocket-Accept: {accept}\r\n"
            "\r\n"
        ).encode("latin-1")
        logger.debug("[ohttp] response\n%s", response.decode("latin-1"))

        if self._rbuf:
            # Extra data came with the request: send the header with our first write.
            self._wbuf = bytearray(response)
            return
        self._sock.sendall(response)

    def _client_handshake(self) -> None:
        request = (
            "GET / HTTP/1.1\r\n"
            f"Host: {self.host}\r\n"
            f"User-Agent: {self._user_agent}\r\n"
            "Connection: Upgrade\r\n"
            f"Sec-Websocket-Key: {generate_challenge_key()}\r\n"
            "Upgrade: websocket\r\n"
            "\r\n"
        )
        logger.debug("[ohttp] request\n%s", request)
        self._wbuf = bytearray(request.encode("latin-1"))

    def _drain_header(self) -> None:
        if self._header_drained:
            return
        self._header_drained = True

        lines = []
        while True:
            line = self._read_line()
            lines.append(line)
            if line == b"\r\n":
                break
        logger.debug("[ohttp] response\n%s", b"".join(lines).decode("latin-1"))
        self._rbuf += self._inbox
        self._inbox.clear()

    def read(self, size: int) -> bytes:
        """Read up to size bytes of payload; b"" means the peer closed."""
        self.handshake()
        if not self.is_server:
            self._drain_header()
        if self._rbuf:
            data = bytes(self._rbuf[:size])
            del self._rbuf[:size]
            return data
        return self._sock.recv(size)

    def write(self, data: bytes) -> int:
        """Send data, preceded by any pending handshake header; return len(data)."""
        self.handshake()
        if self._wbuf:
            self._wbuf += data
            self._sock.sendall(bytes(self._wbuf))
            self._wbuf.clear()
            return len(data)
        self._sock.sendall(data)
        return len(data)

    def close(self) -> None:
        self._sock.close()