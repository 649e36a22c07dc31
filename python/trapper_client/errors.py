from __future__ import annotations


class TrapperError(Exception):
    """Base class for every failure raised by trapper_client."""


class ConfigError(TrapperError):
    pass


class EncodingFailed(TrapperError):
    pass


class ConnectError(TrapperError):
    pass


class SendFailed(TrapperError):
    pass


class RecvFailed(TrapperError):
    pass


class InvalidHeader(TrapperError):
    pass


class InvalidResponse(TrapperError):
    pass
