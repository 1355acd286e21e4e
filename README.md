# samclient

A small client library for the I2P SAM v3 bridge. It opens TCP control
connections to a local I2P router and speaks the SAM text protocol: the
HELLO handshake, session creation, stream connect/accept/forward, naming
lookups and destination key generation. It has no dependencies beyond the
standard library.

## Installation

```
pip install .
```

## Quick start

```python
from samclient.session import StreamSession

with StreamSession("my-app") as session:
    destination = session.naming_lookup("example.i2p")
    with session.connect(destination, False) as conn:
        conn.write("GET / HTTP/1.1\r\n\r\n")
        print(conn.read())
```

By default sessions talk to the SAM bridge at `127.0.0.1:7656`, ask for a
`TRANSIENT` destination, use the `EdDSA_SHA512_Ed25519` signature type and
send the I2CP option `i2cp.leaseSetEncType=0,4`.

## Modules

### `samclient.message`

Builds SAM request lines and parses replies:

- `hello`, `session_create`, `session_create_udp`, `stream_accept`,
  `stream_connect`, `stream_forward`, `datagram_send`, `naming_lookup` and
  `dest_generate` return the request text, ending in a newline.
- `get_value(answer, key)` returns the value of `key=` in a reply, or `""`.
- `check_answer(answer)` maps a reply's `RESULT` field to a `Status`; an
  empty reply gives `Status.EMPTY_ANSWER` and an unknown result
  `Status.CANNOT_PARSE_ERROR`.
- `SessionStyle` (`STREAM`, `DATAGRAM`, `RAW`), `Status`, `Answer` (a status
  with an optional value) and `SAMError` (an exception carrying a `status`).
- The protocol defaults, such as `DEFAULT_ADDRESS`, `DEFAULT_PORT_TCP`,
  `DEFAULT_I2P_OPTIONS` and `SIGNATURE_TYPE`.

### `samclient.connection`

`I2PSocket(host, port)` connects to the bridge and performs the HELLO
handshake (versions 3.0 to 3.1). If the bridge cannot be reached the object
is still created but `is_ok` is false; if the handshake is refused `version`
stays empty. `write` sends text or bytes, `read` returns one chunk of at most
8192 bytes and returns `""` once the peer has closed the connection. Both
raise `SAMError` when the connection is closed or the operation fails.
`clone()` opens a fresh connection to the same bridge, `release()` hands
over the underlying socket, and the object works as a context manager that
closes it.

### `samclient.session`

- `StreamSession(nickname, ...)` creates a STREAM session. `connect` and
  `accept` each open a new connection and return it as an `I2PSocket`;
  `forward(host, port, silent)` asks the bridge to forward inbound streams,
  listed in `forwards`; `stop_forwarding` and `stop_forwarding_all` end them
  (the latter also closes the control connection, as does `close`).
- `DatagramSession` and `RawSession` create DATAGRAM and RAW sessions bound
  to a client UDP address (`listen_address`, `client_port_udp`).
- Every session offers `naming_lookup(name)`, returning the public
  destination, and `dest_generate()`, returning a new `FullDestination`
  (`pub`, `priv`, `is_generated`). Failed requests raise `SAMError`.
- `generate_session_id()` returns a random ID of 5 to 8 upper-case letters.

If the bridge refuses the session when it is created, the constructor does
not raise: the session's `my_destination` is left empty and `is_sick` is
true. Errors such as a closed connection or an empty reply also mark a
session sick.

## Command line

The package installs `eepget`, which fetches the front page of an eepsite
through a running router and writes it to standard output:

```
eepget example.i2p
eepget --sam-host 127.0.0.1 --sam-port 7656 example.i2p
```

It exits with status 1 when no site is given or a SAM request fails.

## What it does not do

Datagram and raw sessions only set up the session over the TCP control
connection. Sending and receiving the UDP datagrams themselves is left to
your application; `datagram_send` only builds the header line that goes in
front of a payload.