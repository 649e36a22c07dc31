from __future__ import annotations

import enum
import logging
import socket
from dataclasses import dataclass
from typing import Any

from . import protocol
from .errors import ConnectError, RecvFailed, SendFailed
from .models import MetricBatch, ServerAddress, ServerResponse

log = logging.getLogger(__name__)


class State(enum.Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    WRITING = "writing"
    READING = "reading"
    CLOSED = "closed"


@dataclass(frozen=True)
class ClientConfig:
    host: str
    port: int
    connect_timeout_s: float | None = 5.0
    read_timeout_s: float | None = 10.0
    max_response_bytes: int = 1 << 20
    chunk_size: int = 4096

    @classmethod
    def from_address(cls, address: ServerAddress, **kwargs: Any) -> "ClientConfig":
        return cls(host=address.host, port=address.port, **kwargs)

    @property
    def address(self) -> ServerAddress:
        return ServerAddress(self.host, self.port)


class TrapperClient:
    """One TCP connection per call: connect, write the frame, read until the peer closes."""

    def __init__(self, cfg: ClientConfig):
        self._cfg = cfg

    @property
    def config(self) -> ClientConfig:
        return self._cfg

    def _enter(self, state: State) -> None:
        log.debug("%s:%s %s", self._cfg.host, self._cfg.port, state.value)

    def send(self, frame: bytes) -> bytes:
        """Send one encoded frame and return the raw reply, header included."""
        self._enter(State.CONNECTING)
        try:
            conn = socket.create_connection((self._cfg.host, self._cfg.port), timeout=self._cfg.connect_timeout_s)
        except OSError as e:
            self._enter(State.CLOSED)
            raise ConnectError(f"Cannot connect to {self._cfg.host}:{self._cfg.port}: {e}") from e

        try:
            with conn:
                self._enter(State.CONNECTED)
                conn.settimeout(self._cfg.read_timeout_s)

                self._enter(State.WRITING)
                try:
                    conn.sendall(frame)
                except OSError as e:
                    raise SendFailed(f"Send data error: {e}") from e

                self._enter(State.READING)
                return self._read_to_close(conn)
        finally:
            self._enter(State.CLOSED)

    def _read_to_close(self, conn: socket.socket) -> bytes:
        buf = bytearray()
        while True:
            try:
                chunk = conn.recv(self._cfg.chunk_size)
            except socket.timeout as e:
                raise RecvFailed(f"No end of stream within {self._cfg.read_timeout_s}s") from e
            except OSError as e:
                raise RecvFailed(f"Error reading response: {e}") from e
            if not chunk:
                break
            buf += chunk
            if len(buf) > self._cfg.max_response_bytes:
                raise RecvFailed(f"Response too large: more than {self._cfg.max_response_bytes} bytes")
        return bytes(buf)

    def send_batch(self, batch: MetricBatch) -> ServerResponse:
        frame = protocol.encode(batch)
        log.info("Sending %d value(s) to %s:%s", len(batch), self._cfg.host, self._cfg.port)
        raw = self.send(frame)
        response = protocol.parse_response(protocol.decode(raw))
        log.info("Server replied %s: %s", response.response, response.info)
        return response


def send(address: ServerAddress, frame: bytes, **kwargs: Any) -> bytes:
    return TrapperClient(ClientConfig.from_address(address, **kwargs)).send(frame)
