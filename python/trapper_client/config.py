from __future__ import annotations

import math
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import ConfigError
from .models import ServerAddress

CONFIG_ENV = "TRAPPER_CLIENT_CONFIG"
DEFAULT_CONFIG_PATH = Path("conf") / "conf.toml"


@dataclass(frozen=True)
class ServerConfig:
    ip: str
    port: int = 10051
    version: str = ""


@dataclass(frozen=True)
class AgentSettings:
    port: int = 10050
    loglevel: str = "info"
    logfile: str = ""
    timeout: float = 5.0


@dataclass(frozen=True)
class AgentConfig:
    server: ServerConfig
    agent: AgentSettings = field(default_factory=AgentSettings)

    @property
    def address(self) -> ServerAddress:
        return ServerAddress(self.server.ip, self.server.port)


def default_config_path() -> Path:
    return Path(os.environ.get(CONFIG_ENV) or DEFAULT_CONFIG_PATH)


def _section(doc: dict[str, Any], name: str, required: bool) -> dict[str, Any]:
    section = doc.get(name)
    if section is None:
        if required:
            raise ConfigError(f"Missing [{name}] section")
        return {}
    if not isinstance(section, dict):
        raise ConfigError(f"[{name}] must be a table")
    return section


def _typed(section: str, key: str, value: Any, kind: type) -> Any:
    if kind is float and isinstance(value, int) and not isinstance(value, bool):
        value = float(value)
    if isinstance(value, bool) or not isinstance(value, kind):
        raise ConfigError(f"{section}.{key} must be {kind.__name__}, got {value!r}")
    return value


def _port(section: str, value: Any) -> int:
    port = _typed(section, "port", value, int)
    if not 1 <= port <= 65535:
        raise ConfigError(f"{section}.port must be in [1, 65535], got {port}")
    return port


def parse_config(doc: dict[str, Any]) -> AgentConfig:
    server = _section(doc, "server", required=True)
    agent = _section(doc, "agent", required=False)

    if "ip" not in server:
        raise ConfigError("Missing server.ip")
    ip = _typed("server", "ip", server["ip"], str)
    if not ip:
        raise ConfigError("server.ip must not be empty")

    defaults = AgentSettings()
    timeout = _typed("agent", "timeout", agent.get("timeout", defaults.timeout), float)
    if not 0 < timeout < math.inf:
        raise ConfigError(f"agent.timeout must be a positive number, got {timeout}")

    return AgentConfig(
        server=ServerConfig(
            ip=ip,
            port=_port("server", server.get("port", ServerConfig.port)),
            version=str(server.get("version", "")),
        ),
        agent=AgentSettings(
            port=_port("agent", agent.get("port", defaults.port)),
            loglevel=_typed("agent", "loglevel", agent.get("loglevel", defaults.loglevel), str),
            logfile=_typed("agent", "logfile", agent.get("logfile", defaults.logfile), str),
            timeout=timeout,
        ),
    )


def load_config(path: str | os.PathLike[str] | None = None) -> AgentConfig:
    """Read the TOML config file. Every failure surfaces as ConfigError; the caller decides whether it is fatal."""
    p = Path(path) if path is not None else default_config_path()
    try:
        with p.open("rb") as f:
            doc = tomllib.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {p}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file {p}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {p}: {e}") from e
    return parse_config(doc)
