import socket
import struct
import threading

import pytest

from trapper_client import protocol

RESET = object()


class StubServer:
    """Accepts one connection per request and answers it with ``handler(request_bytes)``.

    The handler returns the bytes to send back, None to hold the
    connection open without replying, or RESET to abort it with a TCP reset.
    """

    def __init__(self, handler):
        self.handler = handler
        self.requests = []
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._sock.bind(("127.0.0.1", 0))
        self._sock.listen(8)
        self._sock.settimeout(0.1)
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)

    @property
    def port(self):
        return self._sock.getsockname()[1]

    def _read_frame(self, conn):
        buf = b""
        while len(buf) < protocol.HEADER_SIZE:
            chunk = conn.recv(4096)
            if not chunk:
                return buf
            buf += chunk
        length = protocol.declared_length(buf)
        while len(buf) < protocol.HEADER_SIZE + length:
            chunk = conn.recv(4096)
            if not chunk:
                break
            buf += chunk
        return buf

    def _serve(self):
        while not self._stop.is_set():
            try:
                conn, _ = self._sock.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            with conn:
                conn.settimeout(5)
                request = self._read_frame(conn)
                self.requests.append(request)
                reply = self.handler(request)
                if reply is None:
                    self._stop.wait(5)
                    continue
                if reply is RESET:
                    conn.setsockopt(socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 1, 0))
                    continue
                try:
                    conn.sendall(reply)
                except OSError:
                    # client gave up reading
                    continue

    def start(self):
        self._thread.start()
        return self

    def stop(self):
        self._stop.set()
        self._thread.join(timeout=5)
        self._sock.close()


@pytest.fixture
def stub_server():
    servers = []

    def start(handler):
        server = StubServer(handler).start()
        servers.append(server)
        return server

    yield start

    for server in servers:
        server.stop()


@pytest.fixture
def free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]
