"""Tuning parameters for KCP tunnels and derivation of their cipher key."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, replace

logger = logging.getLogger(__name__)

KCP_SALT = "kcp-go"
"""Default salt used when deriving the KCP cipher key."""

_PBKDF2_ITERATIONS = 4096
_KEY_LENGTH = 32

# (nodelay, interval, resend, no_congestion) for each named mode.
_MODES = {
    "normal": (0, 40, 2, 1),
    "fast": (0, 30, 2, 1),
    "fast2": (1, 20, 2, 1),
    "fast3": (1, 10, 2, 1),
}


def _half(value: int) -> int:
    """Integer halving that truncates toward zero."""
    return value // 2 if value >= 0 else -((-value) // 2)


@dataclass
class KCPConfig:
    """Configuration of a KCP session and its stream multiplexer."""

    key: str = ""
    crypt: str = ""
    mode: str = ""
    mtu: int = 0
    sndwnd: int = 0
    rcvwnd: int = 0
    datashard: int = 0
    parityshard: int = 0
    dscp: int = 0
    nocomp: bool = False
    acknodelay: bool = False
    nodelay: int = 0
    interval: int = 0
    resend: int = 0
    nc: int = 0
    sockbuf: int = 0
    smuxbuf: int = 0
    streambuf: int = 0
    smuxver: int = 0
    keepalive: int = 0
    snmplog: str = ""
    snmpperiod: int = 0
    signal: bool = False
    tcp: bool = False

    def init(self) -> None:
        """Apply the mode presets and fill in unset buffer settings."""
        preset = _MODES.get(self.mode)
        if preset is not None:
            self.nodelay, self.interval, self.resend, self.nc = preset
        if self.smuxver <= 0:
            self.smuxver = 1
        if self.smuxbuf <= 0:
            self.smuxbuf = self.sockbuf
        if self.streambuf <= 0:
            self.streambuf = _half(self.sockbuf)
        logger.debug("%r", self)


_DEFAULT = KCPConfig(
    key="secret",
    crypt="aes",
    mode="fast",
    mtu=1350,
    sndwnd=1024,
    rcvwnd=1024,
    datashard=10,
    parityshard=3,
    dscp=0,
    nocomp=False,
    acknodelay=False,
    nodelay=0,
    interval=50,
    resend=0,
    nc=0,
    sockbuf=4194304,
    smuxver=1,
    smuxbuf=4194304,
    streambuf=2097152,
    keepalive=10,
    snmplog="",
    snmpperiod=60,
    signal=False,
    tcp=False,
)


def default_kcp_config() -> KCPConfig:
    """Return a fresh copy of the default KCP configuration."""
    return replace(_DEFAULT)


def derive_key(key: str, salt: str = KCP_SALT) -> bytes:
    """Derive the 32-byte cipher key with PBKDF2-HMAC-SHA1, 4096 rounds."""
    return hashlib.pbkdf2_hmac(
        "sha1",
        key.encode("utf-8"),
        salt.encode("utf-8"),
        _PBKDF2_ITERATIONS,
        _KEY_LENGTH,
    )