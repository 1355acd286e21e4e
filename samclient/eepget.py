"""Fetch the front page of an eepsite through a SAM bridge."""

from __future__ import annotations

import argparse
import sys
from typing import Iterator, List, Optional

from .connection import I2PSocket
from .message import DEFAULT_ADDRESS, DEFAULT_PORT_TCP, SAMError
from .session import StreamSession

USAGE = "Usage: eepget <hostname.i2p>"
REQUEST = "GET / HTTP/1.1\r\n\r\n"
NICKNAME = "eepget"


def _replies(conn: I2PSocket) -> Iterator[str]:
    """Yield chunks read from ``conn`` until the peer closes the stream."""
    while True:
        reply = conn.read()
        if not reply:
            return
        yield reply


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="eepget",
        description="Fetch the front page of an I2P site through a SAM bridge.",
    )
    parser.add_argument("target", nargs="?", help="the site to fetch, e.g. example.i2p")
    parser.add_argument("--sam-host", default=DEFAULT_ADDRESS, help="SAM bridge address")
    parser.add_argument("--sam-port", type=int, default=DEFAULT_PORT_TCP, help="SAM bridge port")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run the command; returns the process exit status."""
    args = _parser().parse_args(argv)
    if args.target is None:
        print(USAGE, file=sys.stderr)
        return 1

    try:
        with StreamSession(NICKNAME, args.sam_host, args.sam_port) as session:
            destination = session.naming_lookup(args.target)
            with session.connect(destination, False) as conn:
                conn.write(REQUEST)
                for reply in _replies(conn):
                    sys.stdout.write(reply)
                    sys.stdout.flush()
    except SAMError as exc:
        print(f"eepget: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())