"""Access rules built from port ranges, host patterns and action lists."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Optional

MAX_PORT = 65535

_INT_RE = re.compile(r"[+-]?[0-9]+")


def _atoi(s: str) -> int:
    """Parse a decimal integer with an optional sign, nothing else."""
    if not _INT_RE.fullmatch(s):
        raise ValueError(f"invalid syntax: {s!r}")
    return int(s)


def _glob(pattern: str, subject: str) -> bool:
    """Match subject against a pattern where only '*' is special."""
    if pattern == "":
        return subject == pattern
    if pattern == "*":
        return True

    parts = pattern.split("*")
    if len(parts) == 1:
        return subject == pattern

    leading = pattern.startswith("*")
    trailing = pattern.endswith("*")

    for position, part in enumerate(parts[:-1]):
        index = subject.find(part)
        if position == 0:
            if not leading and index != 0:
                return False
        elif index < 0:
            return False
        subject = subject[index + len(part):]

    return trailing or subject.endswith(parts[-1])


def _split_host_port(hostport: str) -> tuple[str, str]:
    """Split "host:port" or "[host]:port" into host and port."""
    colon = hostport.rfind(":")
    if colon < 0:
        raise ValueError(f"missing port in address {hostport!r}")

    open_from, close_from = 0, 0
    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0:
            raise ValueError(f"missing ']' in address {hostport!r}")
        if end + 1 == len(hostport):
            raise ValueError(f"missing port in address {hostport!r}")
        if end + 1 != colon:
            if hostport[end + 1] == ":":
                raise ValueError(f"too many colons in address {hostport!r}")
            raise ValueError(f"missing port in address {hostport!r}")
        host = hostport[1:end]
        open_from, close_from = 1, end + 1
    else:
        host = hostport[:colon]
        if ":" in host:
            raise ValueError(f"too many colons in address {hostport!r}")

    if "[" in hostport[open_from:]:
        raise ValueError(f"unexpected '[' in address {hostport!r}")
    if "]" in hostport[close_from:]:
        raise ValueError(f"unexpected ']' in address {hostport!r}")

    return host, hostport[colon + 1:]


@dataclass(frozen=True)
class PortRange:
    """An inclusive range of ports such as 1000-2000."""

    min: int
    max: int

    def contains(self, value: int) -> bool:
        return self.min <= value <= self.max


def parse_port_range(s: str) -> PortRange:
    """Parse "80", "1000-2000" or "*" (all ports) into a PortRange."""
    if s == "*":
        return PortRange(0, MAX_PORT)

    bounds = s.split("-")
    if len(bounds) == 1:
        port = _atoi(s)
        if not 0 <= port <= MAX_PORT:
            raise ValueError(f"invalid port: {s}")
        return PortRange(port, port)
    if len(bounds) == 2:
        first, second = _atoi(bounds[0]), _atoi(bounds[1])
        low = max(0, min(first, second))
        high = min(MAX_PORT, max(first, second))
        return PortRange(low, high)
    raise ValueError(f"invalid range: {s}")


@dataclass(frozen=True)
class PortSet:
    """A set of port ranges."""

    ranges: tuple[PortRange, ...] = ()

    def __iter__(self) -> Iterator[PortRange]:
        return iter(self.ranges)

    def __len__(self) -> int:
        return len(self.ranges)

    def contains(self, value: int) -> bool:
        return any(port_range.contains(value) for port_range in self.ranges)


def parse_port_set(s: str) -> PortSet:
    """Parse a comma separated list of port ranges."""
    if s == "":
        raise ValueError("must specify at least one port")
    return PortSet(tuple(parse_port_range(part) for part in s.split(",")))


@dataclass(frozen=True)
class StringSet:
    """A set of glob patterns in which '*' matches any run of characters."""

    patterns: tuple[str, ...] = ()

    def __iter__(self) -> Iterator[str]:
        return iter(self.patterns)

    def __len__(self) -> int:
        return len(self.patterns)

    def contains(self, subject: str) -> bool:
        return any(_glob(pattern, subject) for pattern in self.patterns)


def parse_string_set(s: str) -> StringSet:
    """Parse a comma separated list of patterns."""
    if s == "":
        raise ValueError("cannot be empty")
    return StringSet(tuple(s.split(",")))


@dataclass(frozen=True)
class Permission:
    """One rule: which actions are allowed to which hosts and ports."""

    actions: StringSet
    hosts: StringSet
    ports: PortSet


@dataclass(frozen=True)
class Permissions:
    """A list of permission rules; any matching rule allows."""

    rules: tuple[Permission, ...] = ()

    def __iter__(self) -> Iterator[Permission]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    def can(self, action: str, host: str, port: int) -> bool:
        return any(
            rule.actions.contains(action)
            and rule.hosts.contains(host)
            and rule.ports.contains(port)
            for rule in self.rules
        )


def parse_permissions(s: str) -> Permissions:
    """Parse space separated rules of the form actions:hosts:ports."""
    if s == "":
        return Permissions()

    rules = []
    for perm in s.split(" "):
        parts = perm.split(":")
        if len(parts) != 3:
            raise ValueError(
                f"permission must have format [actions]:[hosts]:[ports] given: {perm}"
            )
        try:
            actions = parse_string_set(parts[0])
        except ValueError:
            raise ValueError(
                f"action list must look like connect,bind given: {parts[0]}"
            ) from None
        try:
            hosts = parse_string_set(parts[1])
        except ValueError:
            raise ValueError(
                f"hosts list must look like google.pl,*.google.com given: {parts[1]}"
            ) from None
        try:
            ports = parse_port_set(parts[2])
        except ValueError:
            raise ValueError(
                f"ports list must look like 80,8000-9000, given: {parts[2]}"
            ) from None
        rules.append(Permission(actions, hosts, ports))

    return Permissions(tuple(rules))


def can(
    action: str,
    addr: str,
    whitelist: Optional[Permissions],
    blacklist: Optional[Permissions],
) -> bool:
    """Check an action on an address against a whitelist and a blacklist."""
    if ":" not in addr:
        addr = addr + ":80"
    try:
        host, port_text = _split_host_port(addr)
        port = _atoi(port_text)
    except ValueError:
        return False

    allowed = whitelist is None or whitelist.can(action, host, port)
    denied = blacklist is not None and blacklist.can(action, host, port)
    return allowed and not denied