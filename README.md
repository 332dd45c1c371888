# proxyweave

Building blocks for writing proxy servers and clients in Python. The package
uses only the standard library.

## What is inside

| Module | Purpose |
| --- | --- |
| `proxyweave.permissions` | Whitelist and blacklist rules of the form `actions:hosts:ports` |
| `proxyweave.durations` | `parse_duration` for strings such as `10s`, `1h30m` or `1.5ms` |
| `proxyweave.hosts` | `Hosts`, a static hostname-to-IP table reloadable from hosts-style text |
| `proxyweave.node` | `parse_node` for proxy node URLs, `Node` and `NodeGroup` |
| `proxyweave.kcpconfig` | `KCPConfig` settings, their defaults, mode presets and key derivation |
| `proxyweave.mitm` | The hello messages and ALPN helpers used when TLS interception is split across two hops |
| `proxyweave.logging_utils` | `StdLogger` and `NopLogger`, each with `log` and `logf` |
| `proxyweave.obfs` | A fake-TLS record parser and an HTTP upgrade disguise for streams |
| `proxyweave.http` | `HTTPConnector` (CONNECT client) and `HTTPHandler` (proxy for one client socket) |

## Installation

```
pip install proxyweave
```

To run the test suite:

```
pip install "proxyweave[test]"
pytest
```

## Access rules

A permission list is a space-separated set of rules. Each rule has three
colon-separated parts: a comma-separated list of actions, a comma-separated
list of host globs (only `*` is special) and a comma-separated list of ports
or port ranges. `*` as a port stands for 0-65535; a reversed range such as
`3-1` is read as `1-3`, and ranges are clipped to 0-65535.

```python
from proxyweave.permissions import can, parse_permissions, parse_port_range

whitelist = parse_permissions("connect:*.example.com:80,443,8000-8100")

can("connect", "www.example.com:443", whitelist, None)   # True
can("connect", "www.example.org:443", whitelist, None)   # False

parse_port_range("3-1").contains(2)                       # True
```

`can` treats an address without a port as port 80, allows when the
whitelist is `None` or matches, and refuses when the blacklist matches.
Malformed rules raise `ValueError` saying which part could not be read.

## Durations

```python
from proxyweave.durations import parse_duration

parse_duration("1h30m")   # timedelta of 90 minutes
parse_duration("-1.5s")   # timedelta of -1.5 seconds
```

Units are `ns`, `us` (or `µs`), `ms`, `s`, `m` and `h`. A bare `0` is
accepted; anything else without a unit raises `ValueError`.

## Static hosts

```python
import io
from proxyweave.hosts import Hosts

hosts = Hosts()
hosts.reload(io.StringIO(
    "reload 10s\n"
    "192.168.1.1 example.com example examples\n"
))
hosts.lookup("examples")   # IPv4Address('192.168.1.1')
hosts.period()             # timedelta(seconds=10)

hosts.stop()
hosts.stopped()            # True
hosts.period()             # negative once stopped
```

`reload` accepts a text stream, an iterable of lines or a string. Lines with
fewer than two fields or an invalid IP address are skipped; text after `#`
is a comment. A stopped table ignores further reloads. Entries can also be
added directly with `add_host(Host(ip, hostname, aliases))`.

## Proxy nodes

```python
from proxyweave.node import NodeGroup, parse_node

node = parse_node("http+tls://localhost:8080?timeout=5s")
node.protocol, node.transport   # ('http', 'tls')
node.get_duration("timeout")    # timedelta(seconds=5)

group = NodeGroup()
group.add_node(node)
group.get_node(0)
```

The scheme may join a protocol and a transport with `+`; a string without
`://` is read with the scheme `auto`. Unknown transports fall back to `tcp`
and unknown protocols are left empty. An empty string raises
`InvalidNodeError`. `Node` offers `get`, `get_bool`, `get_int`,
`get_duration`, failure tracking with `mark_dead` / `reset_dead`, and
`clone`. `NodeGroup.get_node` returns an empty `Node` for an index out of
range.

## KCP settings

`default_kcp_config()` returns a fresh `KCPConfig` with the default values.
`KCPConfig.init()` applies the presets of the modes `normal`, `fast`,
`fast2` and `fast3` and fills in unset multiplexer buffer sizes from
`sockbuf`. `derive_key(key, salt=KCP_SALT)` returns the 32-byte key made
with PBKDF2-HMAC-SHA1 over 4096 rounds.

## Obfuscation framing

`TLSRecordParser.parse(data)` takes successive chunks of a stream framed as
fake TLS records, skips the server hello and change-cipher-spec records and
returns the payload bytes; malformed records raise `ObfsTLSError`.

`ObfsHTTPConn` wraps a socket. As a client it prefixes its first write with
a websocket-style upgrade request and discards the response header on its
first read; as a server (`is_server=True`) it reads that request, answers
`101 Switching Protocols` (or `503` and an error when the request is not a
websocket upgrade) and then passes raw data. `compute_accept_key` and
`generate_challenge_key` are exposed on their own.

## HTTP proxying

`HTTPConnector(user=None)` sends a `CONNECT` request over a socket that is
already connected to the proxy, with Basic proxy authentication when a
`(username, password)` pair is given, and returns a stream over the tunnel.
A refusal raises `ProxyError` whose message is the proxy's status, such as
`407 Proxy Authentication Required`.

`HTTPHandler(HandlerOptions(...)).handle(sock)` serves one accepted client
socket and closes it. It checks the whitelist, blacklist and `bypass`
callable (answering `403`), then the credentials in `users`, and answers
`400` for anything that is neither `CONNECT` nor an absolute `http` URL. It
then dials the target directly, trying `retries` times with `timeout`
seconds each (`503` if all fail), and relays traffic both ways.

When credentials do not match, the handler answers `407` unless
`probe_resist` is set and the request's host is not `knocking_host`:
`code:N` answers with status N, `web:address` answers with the page fetched
from that address, `host:address` relays the request to that address, and
`file:path` answers with the file's contents.

```python
from proxyweave.http import basic_proxy_auth, encode_basic_auth

password = "password"
header = encode_basic_auth("user", password)
basic_proxy_auth(header)   # ('user', 'password', True)
```

## What is not included

The package has no command-line program and no listening server: accepting
connections and calling `HTTPHandler.handle` for each is up to the caller.
The HTTP handler dials targets directly; there is no chaining through other
proxy nodes. There are no SOCKS, HTTP/2, KCP or obfs4 transports, no TLS
interception itself (only its hello messages) and no obfs-tls stream
wrapper — only the record parser.