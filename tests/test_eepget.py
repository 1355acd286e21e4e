import socket
import threading

import pytest

from samclient.eepget import main

PAGE = "HTTP/1.1 200 OK\r\nContent-Length: 5\r\n\r\nhello"
LOOKED_UP_DEST = "remotepubdest"


class FakeBridge:
    """A minimal SAM bridge on localhost that serves one page per stream."""

    def __init__(self, lookup_result="OK", connect_result="OK", page=PAGE):
        self.lookup_result = lookup_result
        self.connect_result = connect_result
        self.page = page
        self.lines = []
        self.http_requests = []
        self._lock = threading.Lock()
        self.listener = socket.create_server(("127.0.0.1", 0))
        self.port = self.listener.getsockname()[1]
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _record(self, line):
        with self._lock:
            self.lines.append(line)

    def _serve(self):
        while True:
            try:
                conn, _ = self.listener.accept()
            except OSError:
                return
            threading.Thread(target=self._handle, args=(conn,), daemon=True).start()

    def _handle(self, conn):
        with conn, conn.makefile("rb") as reader:
            for raw in reader:
                line = raw.decode().rstrip("\n")
                self._record(line)
                if line.startswith("HELLO VERSION"):
                    conn.sendall(b"HELLO REPLY RESULT=OK VERSION=3.1\n")
                elif line.startswith("SESSION CREATE"):
                    conn.sendall(b"SESSION STATUS RESULT=OK DESTINATION=privdest\n")
                elif line.startswith("NAMING LOOKUP"):
                    name = line.split("NAME=", 1)[1]
                    if self.lookup_result == "OK":
                        reply = f"NAMING REPLY RESULT=OK NAME={name} VALUE={LOOKED_UP_DEST}\n"
                    else:
                        reply = f"NAMING REPLY RESULT={self.lookup_result} NAME={name}\n"
                    conn.sendall(reply.encode())
                elif line.startswith("STREAM CONNECT"):
                    conn.sendall(f"STREAM STATUS RESULT={self.connect_result}\n".encode())
                    if self.connect_result != "OK":
                        return
                    request = b""
                    for http_line in reader:
                        request += http_line
                        if http_line == b"\r\n":
                            break
                    with self._lock:
                        self.http_requests.append(request)
                    conn.sendall(self.page.encode())
                    return

    def close(self):
        self.listener.close()


@pytest.fixture
def bridge_factory():
    bridges = []

    def make(**kwargs):
        bridge = FakeBridge(**kwargs)
        bridges.append(bridge)
        return bridge

    yield make
    for bridge in bridges:
        bridge.close()


def _closed_port():
    with socket.create_server(("127.0.0.1", 0)) as sock:
        return sock.getsockname()[1]


def test_missing_target_prints_usage(capsys):
    assert main([]) == 1
    captured = capsys.readouterr()
    assert "Usage: eepget <hostname.i2p>" in captured.err
    assert captured.out == ""


def test_fetches_page(bridge_factory, capsys):
    bridge = bridge_factory()
    status = main(["site.i2p", "--sam-host", "127.0.0.1", "--sam-port", str(bridge.port)])
    assert status == 0
    assert capsys.readouterr().out == PAGE


def test_sends_lookup_connect_and_get(bridge_factory, capsys):
    bridge = bridge_factory()
    main(["site.i2p", "--sam-host", "127.0.0.1", "--sam-port", str(bridge.port)])
    capsys.readouterr()
    assert "NAMING LOOKUP NAME=site.i2p" in bridge.lines
    connects = [line for line in bridge.lines if line.startswith("STREAM CONNECT")]
    assert len(connects) == 1
    assert f"DESTINATION={LOOKED_UP_DEST} SILENT=false" in connects[0]
    assert bridge.http_requests == [b"GET / HTTP/1.1\r\n\r\n"]


def test_session_created_with_eepget_nickname(bridge_factory, capsys):
    bridge = bridge_factory()
    main(["site.i2p", "--sam-port", str(bridge.port)])
    capsys.readouterr()
    creates = [line for line in bridge.lines if line.startswith("SESSION CREATE")]
    assert len(creates) == 1
    assert "STYLE=STREAM" in creates[0]
    assert "inbound.nickname=eepget" in creates[0]


def test_lookup_failure_reports_error(bridge_factory, capsys):
    bridge = bridge_factory(lookup_result="KEY_NOT_FOUND")
    status = main(["missing.i2p", "--sam-port", str(bridge.port)])
    captured = capsys.readouterr()
    assert status == 1
    assert "KEY_NOT_FOUND" in captured.err
    assert captured.out == ""
    assert not any(line.startswith("STREAM CONNECT") for line in bridge.lines)


def test_connect_failure_reports_error(bridge_factory, capsys):
    bridge = bridge_factory(connect_result="CANT_REACH_PEER")
    status = main(["site.i2p", "--sam-port", str(bridge.port)])
    captured = capsys.readouterr()
    assert status == 1
    assert "CANT_REACH_PEER" in captured.err
    assert captured.out == ""


def test_unreachable_bridge(capsys):
    status = main(["site.i2p", "--sam-port", str(_closed_port())])
    captured = capsys.readouterr()
    assert status == 1
    assert captured.err.startswith("eepget:")
    assert captured.out == ""