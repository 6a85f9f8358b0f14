import json
import socket
import sys
import threading

import pytest
from loguru import logger


@pytest.fixture(autouse=True)
def resetLogging():
    # configureLogging() replaces every sink; restore a plain stderr sink
    yield
    logger.remove()
    logger.add(sys.stderr, level="DEBUG")


@pytest.fixture
def logMessages():
    records = []
    sinkId = logger.add(lambda msg: records.append(msg.record), level="DEBUG")
    yield records
    logger.remove(sinkId)


def handshakeLine(host="peer", coreCount=2):
    return json.dumps({"type": "server", "host": host, "coreCount": coreCount}) + "\n"


class FakeStream:
    def __init__(self, name, lines=None):
        self.name = name
        if lines is None:
            lines = [handshakeLine(name)]
        self.lines = list(lines)
        self.written = []
        self.closeCount = 0

    def __str__(self):
        return self.name

    def readline(self):
        return self.lines.pop(0) if self.lines else ""

    def write(self, data):
        self.written.append(data)

    def close(self):
        self.closeCount += 1


@pytest.fixture
def fakeStreams():
    """An `openStreamFunc` which hands out (and remembers) FakeStreams."""
    opened = []

    def openFakeStream(descriptor):
        stream = FakeStream(str(descriptor))
        opened.append(stream)
        return stream

    openFakeStream.opened = opened
    return openFakeStream


class FakeFarmsrv:
    """Accept a single tcp connection, announce ourselves and record the reply."""

    def __init__(self, handshake):
        self.handshake = handshake if isinstance(handshake, bytes) else handshake.encode()
        self.received = []
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.listen(1)
        self.port = self.sock.getsockname()[1]
        self.thread = threading.Thread(target=self.serve, daemon=True)
        self.thread.start()

    def serve(self):
        try:
            conn, _ = self.sock.accept()
        except OSError:
            return
        with conn:
            conn.sendall(self.handshake)
            with conn.makefile("rb") as rFile:
                self.received.append(rFile.readline().decode())
                rFile.read()  # until the client hangs up

    def close(self):
        self.sock.close()


@pytest.fixture
def farmsrv():
    server = FakeFarmsrv(handshakeLine("farmsrv-peer", 4))
    yield server
    server.close()


@pytest.fixture
def closedPort():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port
