"""HTTP proxy: a CONNECT client connector and a proxy server handler."""

from __future__ import annotations

import base64
import binascii
import logging
import socket
import threading
import urllib.request
from dataclasses import dataclass, field
from email.utils import formatdate
from http import HTTPStatus
from pathlib import Path
from typing import Callable, Optional, Sequence
from urllib.parse import urlsplit

from proxyweave.permissions import Permissions, can

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0"
DEFAULT_PROXY_AGENT = "proxyweave"
CONNECT_TIMEOUT = 5.0
DIAL_TIMEOUT = 5.0
MAX_HEADER_SIZE = 64 * 1024
_CHUNK = 32 * 1024

UserInfo = tuple[str, Optional[str]]


class ProxyError(ConnectionError):
    """The proxy refused or failed a request; the message is its status."""


def basic_proxy_auth(value: str) -> tuple[str, str, bool]:
    """Decode a "Basic" credential into (username, password, ok)."""
    if not value or not value.startswith("Basic "):
        return "", "", False
    try:
        decoded = base64.b64decode(value[len("Basic "):], validate=True)
    except (binascii.Error, ValueError):
        return "", "", False
    text = decoded.decode("utf-8", errors="replace")
    username, sep, remainder = text.partition(":")
    if not sep:
        return "", "", False
    return username, remainder, True


def encode_basic_auth(username: str, password: Optional[str]) -> str:
    """Build a "Basic ..." credential value."""
    raw = f"{username}:{password or ''}".encode("utf-8")
    return "Basic " + base64.b64encode(raw).decode("ascii")


def _status_text(code: int) -> str:
    try:
        return f"{code} {HTTPStatus(code).phrase}"
    except ValueError:
        return f"{code} status code {code}"


def _read_head(sock: socket.socket, initial: bytes = b"") -> tuple[bytes, bytes]:
    """Read up to the blank line; return (head, bytes after it)."""
    buffer = bytearray(initial)
    while b"\r\n\r\n" not in buffer:
        if len(buffer) > MAX_HEADER_SIZE:
            raise ValueError("header too large")
        chunk = sock.recv(_CHUNK)
        if not chunk:
            raise ConnectionError("unexpected EOF")
        buffer += chunk
    end = buffer.index(b"\r\n\r\n")
    return bytes(buffer[:end]), bytes(buffer[end + 4:])


def _parse_headers(lines: Sequence[str]) -> list[tuple[str, str]]:
    headers = []
    for line in lines:
        name, sep, value = line.partition(":")
        if not sep or not name.strip():
            raise ValueError(f"malformed header line {line!r}")
        headers.append((name.strip(), value.strip()))
    return headers


class _TunnelConn:
    """A stream over an established tunnel, returning buffered bytes first."""

    def __init__(self, sock: socket.socket, pending: bytes) -> None:
        self.sock = sock
        self._pending = bytearray(pending)

    def read(self, size: int) -> bytes:
        if self._pending:
            data = bytes(self._pending[:size])
            del self._pending[:size]
            return data
        return self.sock.recv(size)

    def write(self, data: bytes) -> int:
        self.sock.sendall(data)
        return len(data)

    def close(self) -> None:
        self.sock.close()

    def __enter__(self) -> "_TunnelConn":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class HTTPConnector:
    """Opens a tunnel through an HTTP proxy with the CONNECT method."""

    def __init__(
        self,
        user: Optional[UserInfo] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = CONNECT_TIMEOUT,
    ) -> None:
        self.user = user
        self.user_agent = user_agent or DEFAULT_USER_AGENT
        self.timeout = timeout if timeout > 0 else CONNECT_TIMEOUT

    def connect(self, sock: socket.socket, address: str) -> _TunnelConn:
        """Ask the proxy on sock for a tunnel to address; raise ProxyError if refused."""
        lines = [
            f"CONNECT {address} HTTP/1.1",
            f"Host: {address}",
            f"User-Agent: {self.user_agent}",
            "Proxy-Connection: keep-alive",
        ]
        if self.user is not None:
            lines.append(
                "Proxy-Authorization: " + encode_basic_auth(self.user[0], self.user[1])
            )
        request = ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")

        previous = sock.gettimeout()
        sock.settimeout(self.timeout)
        try:
            sock.sendall(request)
            head, rest = _read_head(sock)
        finally:
            sock.settimeout(previous)

        status_line = head.split(b"\r\n", 1)[0].decode("latin-1")
        parts = status_line.split(" ", 2)
        if len(parts) < 2 or not parts[1].isdigit():
            raise ProxyError(f"malformed HTTP response {status_line!r}")
        code = int(parts[1])
        if code != 200:
            raise ProxyError(" ".join(parts[1:]))
        return _TunnelConn(sock, rest)


@dataclass
class HandlerOptions:
    """Settings of the HTTP proxy handler."""

    users: list[UserInfo] = field(default_factory=list)
    whitelist: Optional[Permissions] = None
    blacklist: Optional[Permissions] = None
    bypass: Optional[Callable[[str], bool]] = None
    probe_resist: str = ""
    knocking_host: str = ""
    proxy_agent: str = ""
    retries: int = 0
    timeout: float = 0.0


@dataclass
class _Request:
    method: str
    target: str
    version: str
    headers: list[tuple[str, str]]
    body: bytes
    scheme: str
    hostname: str
    host: str

    def get(self, name: str) -> str:
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return ""

    def delete(self, name: str) -> None:
        lowered = name.lower()
        self.headers = [(k, v) for k, v in self.headers if k.lower() != lowered]

    def raw(self) -> bytes:
        lines = [f"{self.method} {self.target} {self.version}"]
        lines += [f"{k}: {v}" for k, v in self.headers]
        return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1") + self.body

    def origin_form(self) -> bytes:
        parts = urlsplit(self.target)
        path = parts.path or "/"
        if parts.query:
            path += "?" + parts.query
        lines = [f"{self.method} {path} HTTP/1.1", f"Host: {self.host}"]
        lines += [f"{k}: {v}" for k, v in self.headers if k.lower() != "host"]
        return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1") + self.body


def _parse_request(head: bytes, rest: bytes) -> _Request:
    lines = head.decode("latin-1").split("\r\n")
    parts = lines[0].split(" ")
    if len(parts) != 3 or not parts[0] or not parts[2].startswith("HTTP/"):
        raise ValueError(f"malformed HTTP request {lines[0]!r}")
    method, target, version = parts
    headers = _parse_headers(lines[1:])
    request = _Request(method, target, version, headers, rest, "", "", "")

    if method == "CONNECT":
        netloc = target
    else:
        parts_url = urlsplit(target)
        request.scheme = parts_url.scheme
        netloc = parts_url.netloc
    request.host = netloc or request.get("Host")
    try:
        request.hostname = urlsplit("//" + netloc).hostname or ""
    except ValueError:
        request.hostname = ""
    return request


def _has_port(host: str) -> bool:
    if host.startswith("["):
        return "]:" in host
    return host.count(":") == 1


def _join_host_port(host: str, port: str) -> str:
    return f"[{host}]:{port}" if ":" in host else f"{host}:{port}"


def _split_addr(addr: str) -> tuple[str, int]:
    host, _, port = addr.rpartition(":")
    return host.strip("[]"), int(port)


def _pipe(source: socket.socket, dest: socket.socket) -> None:
    try:
        while True:
            chunk = source.recv(_CHUNK)
            if not chunk:
                break
            dest.sendall(chunk)
    except OSError:
        pass
    finally:
        try:
            dest.shutdown(socket.SHUT_WR)
        except OSError:
            pass


def _relay(client: socket.socket, upstream: socket.socket) -> None:
    """Copy bytes both ways until both directions are finished."""
    worker = threading.Thread(target=_pipe, args=(upstream, client), daemon=True)
    worker.start()
    _pipe(client, upstream)
    worker.join()


def _write_response(
    sock: socket.socket,
    code: int,
    headers: Sequence[tuple[str, str]] = (),
    body: bytes = b"",
) -> None:
    lines = [f"HTTP/1.1 {_status_text(code)}"]
    lines += [f"{k}: {v}" for k, v in headers]
    if not any(k.lower() == "content-length" for k, _ in headers):
        lines.append(f"Content-Length: {len(body)}")
    data = ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1") + body
    try:
        sock.sendall(data)
    except OSError as exc:
        logger.debug("[http] write response: %s", exc)


class HTTPHandler:
    """Serves one client connection as an HTTP proxy."""

    def __init__(self, options: Optional[HandlerOptions] = None) -> None:
        self.options = options or HandlerOptions()
        self._credentials: dict[str, str] = {
            name: stored or "" for name, stored in self.options.users
        }

    @property
    def proxy_agent(self) -> str:
        return self.options.proxy_agent or DEFAULT_PROXY_AGENT

    def authenticate_user(self, username: str, password: str) -> bool:
        """Check credentials; with no users configured everyone is allowed."""
        if not self._credentials:
            return True
        if username not in self._credentials:
            return False
        expected = self._credentials[username]
        return expected == "" or expected == password

    def handle(self, sock: socket.socket) -> None:
        """Serve the connection and close it."""
        with sock:
            try:
                head, rest = _read_head(sock)
                request = _parse_request(head, rest)
            except (OSError, ValueError) as exc:
                logger.info("[http] %s", exc)
                return
            self._handle_request(sock, request)

    def _handle_request(self, sock: socket.socket, request: _Request) -> None:
        opts = self.options
        request.delete("Gost-Target")
        host = request.host
        if not _has_port(host):
            host = _join_host_port(host, "80")
        agent = [("Proxy-Agent", self.proxy_agent)]

        if not can("tcp", host, opts.whitelist, opts.blacklist):
            logger.info("[http] unauthorized to tcp connect to %s", host)
            _write_response(sock, 403, agent)
            return
        if opts.bypass is not None and opts.bypass(host):
            logger.info("[http] bypass %s", host)
            _write_response(sock, 403, agent)
            return
        if not self._authenticate(sock, request):
            return
        if request.method == "PRI" or (
            request.method != "CONNECT" and request.scheme != "http"
        ):
            _write_response(sock, 400, agent)
            return

        request.delete("Proxy-Authorization")
        retries = opts.retries if opts.retries > 0 else 1
        timeout = opts.timeout if opts.timeout > 0 else DIAL_TIMEOUT
        upstream = None
        for _ in range(retries):
            try:
                upstream = socket.create_connection(_split_addr(host), timeout=timeout)
                upstream.settimeout(None)
                break
            except (OSError, ValueError) as exc:
                logger.info("[http] dial %s: %s", host, exc)
        if upstream is None:
            _write_response(sock, 503, agent)
            return

        with upstream:
            try:
                if request.method == "CONNECT":
                    sock.sendall(
                        (
                            "HTTP/1.1 200 Connection established\r\n"
                            f"Proxy-Agent: {self.proxy_agent}\r\n\r\n"
                        ).encode("latin-1")
                    )
                    if request.body:
                        upstream.sendall(request.body)
                else:
                    request.delete("Proxy-Connection")
                    upstream.sendall(request.origin_form())
            except OSError as exc:
                logger.info("[http] %s", exc)
                return
            logger.info("[http] <-> %s", host)
            _relay(sock, upstream)
            logger.info("[http] >-< %s", host)

    def _authenticate(self, sock: socket.socket, request: _Request) -> bool:
        opts = self.options
        username, credential, _ = basic_proxy_auth(request.get("Proxy-Authorization"))
        if self.authenticate_user(username, credential):
            return True

        code = 0
        body = b""
        headers: list[tuple[str, str]] = []
        kind, sep, arg = opts.probe_resist.partition(":")
        knocked = bool(opts.knocking_host) and (
            request.hostname.lower() == opts.knocking_host.lower()
        )
        if sep and not knocked:
            code = 503
            if kind == "code":
                code = int(arg) if arg.isdigit() else 0
            elif kind == "web":
                url = arg if arg.startswith("http") else "http://" + arg
                try:
                    with urllib.request.urlopen(url, timeout=DIAL_TIMEOUT) as remote:
                        code, body = remote.status, remote.read()
                except OSError as exc:
                    logger.info("[http] probe web: %s", exc)
            elif kind == "host":
                try:
                    upstream = socket.create_connection(
                        _split_addr(arg), timeout=DIAL_TIMEOUT
                    )
                except (OSError, ValueError) as exc:
                    logger.info("[http] probe host: %s", exc)
                else:
                    with upstream:
                        upstream.settimeout(None)
                        try:
                            upstream.sendall(request.raw())
                        except OSError:
                            return False
                        _relay(sock, upstream)
                    return False
            elif kind == "file":
                try:
                    body = Path(arg).read_bytes()
                    code = 200
                    headers.append(("Content-Type", "text/html"))
                except OSError:
                    pass

        if code == 0:
            logger.info("[http] proxy authentication required")
            code = 407
            headers = [
                ("Proxy-Agent", self.proxy_agent),
                ("Proxy-Authenticate", 'Basic realm="gost"'),
            ]
            if request.get("Proxy-Connection").lower() == "keep-alive":
                headers += [("Connection", "close"), ("Proxy-Connection", "close")]
        else:
            extra = [h for h in headers if h[0] == "Content-Type"]
            headers = [
                ("Server", "nginx/1.14.1"),
                ("Date", formatdate(usegmt=True)),
            ] + extra
            if code == 200:
                headers.append(("Connection", "keep-alive"))

        _write_response(sock, code, headers, body)
        return False