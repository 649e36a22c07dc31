from .client import ClientConfig, TrapperClient, send
from .errors import (
    ConfigError,
    ConnectError,
    EncodingFailed,
    InvalidHeader,
    InvalidResponse,
    RecvFailed,
    SendFailed,
    TrapperError,
)
from .models import MetricBatch, MetricRecord, ServerAddress, ServerResponse
from .protocol import decode, encode, parse_response

__all__ = [
    "ClientConfig",
    "ConfigError",
    "ConnectError",
    "EncodingFailed",
    "InvalidHeader",
    "InvalidResponse",
    "MetricBatch",
    "MetricRecord",
    "RecvFailed",
    "SendFailed",
    "ServerAddress",
    "ServerResponse",
    "TrapperClient",
    "TrapperError",
    "decode",
    "encode",
    "parse_response",
    "send",
]
