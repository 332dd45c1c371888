"""Building blocks for proxy servers: access rules, host tables, node parsing, obfuscation framing and an HTTP proxy handler."""

__version__ = "0.1.0"

__all__ = [
    "durations",
    "hosts",
    "http",
    "kcpconfig",
    "logging_utils",
    "mitm",
    "node",
    "obfs",
    "permissions",
]