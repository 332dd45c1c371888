"""A static, reloadable hostname to IP table."""

from __future__ import annotations

import ipaddress
import logging
import threading
from dataclasses import dataclass
from datetime import timedelta
from typing import Iterable, Optional, TextIO, Union

from proxyweave.durations import parse_duration

logger = logging.getLogger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

STOPPED_PERIOD = timedelta(microseconds=-1)


def _split_line(line: str) -> list[str]:
    """Split a line into fields, dropping any '#' comment."""
    comment = line.find("#")
    if comment >= 0:
        line = line[:comment]
    return line.split()


def _parse_ip(text: str) -> Optional[IPAddress]:
    if "%" in text:
        return None
    try:
        ip = ipaddress.ip_address(text)
    except ValueError:
        return None
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        return ip.ipv4_mapped
    return ip


@dataclass(frozen=True)
class Host:
    """A static mapping from a hostname and its aliases to an IP."""

    ip: Optional[IPAddress]
    hostname: str
    aliases: tuple[str, ...] = ()


class Hosts:
    """A table of static host entries that can be reloaded from text.

    Each line holds: IP_address canonical_hostname [aliases...].
    Fields are separated by blanks or tabs; text after '#' is a comment.
    A line "reload <duration>" sets the reload period.
    """

    def __init__(self, *hosts: Host) -> None:
        self._hosts: list[Host] = list(hosts)
        self._period = timedelta(0)
        self._stopped = threading.Event()
        self._lock = threading.RLock()

    def add_host(self, *hosts: Host) -> None:
        with self._lock:
            self._hosts.extend(hosts)

    def lookup(self, host: str) -> Optional[IPAddress]:
        """Return the IP for a hostname or alias, or None."""
        if not host:
            return None

        found: Optional[IPAddress] = None
        with self._lock:
            for entry in self._hosts:
                if entry.hostname == host:
                    found = entry.ip
                    break
                if host in entry.aliases:
                    found = entry.ip

        if found is not None:
            logger.debug("[hosts] hit: %s %s", host, found)
        return found

    def reload(self, reader: Union[TextIO, Iterable[str], str, None]) -> None:
        """Parse the table from reader and replace the current entries."""
        if reader is None or self.stopped():
            return
        lines = reader.splitlines() if isinstance(reader, str) else reader

        period = timedelta(0)
        hosts: list[Host] = []
        for line in lines:
            fields = _split_line(line)
            if len(fields) < 2:
                continue
            if fields[0] == "reload":
                try:
                    period = parse_duration(fields[1])
                except ValueError:
                    period = timedelta(0)
                continue
            ip = _parse_ip(fields[0])
            if ip is None:
                continue
            hosts.append(Host(ip, fields[1], tuple(fields[2:])))

        with self._lock:
            self._period = period
            self._hosts = hosts

    def period(self) -> timedelta:
        """The reload period; negative once the table is stopped."""
        if self.stopped():
            return STOPPED_PERIOD
        with self._lock:
            return self._period

    def stop(self) -> None:
        self._stopped.set()

    def stopped(self) -> bool:
        return self._stopped.is_set()