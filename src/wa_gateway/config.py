"""
Gateway configuration.

Precedence, lowest first: defaults, JSON config file, environment variables.
"""

import json
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel

CONFIG_FILE = Path.home() / ".wa-gateway" / "config.json"

# env var -> field name
ENV_VARS = {
    "SESSION_PATH": "session_path",
    "WA_CLIENT_ID": "client_id",
    "DATA_PATH": "data_path",
    "BRIDGE_URL": "bridge_url",
    "WEBHOOK_URL": "webhook_url",
    "WEBHOOK_TIMEOUT": "webhook_timeout",
    "COUNTRY_CODE": "country_code",
    "MAX_MESSAGE_LENGTH": "max_message_length",
    "MESSAGE_LOG_SIZE": "log_buffer_size",
    "PROCESS_GROUP_MESSAGES": "process_group_messages",
    "READY_TIMEOUT": "ready_timeout",
    "COMMAND_TIMEOUT": "command_timeout",
    "SHUTDOWN_TIMEOUT": "shutdown_timeout",
    "LOG_LEVEL": "log_level",
}


class GatewayConfig(BaseModel):
    session_path: Path = Path("./sessions")
    client_id: str = "whatsapp-api-client"
    data_path: Path = Path("./data")
    bridge_url: str = "http://localhost:8002"
    webhook_url: Optional[str] = None
    webhook_timeout: float = 5.0
    country_code: str = "972"
    max_message_length: int = 4096
    log_buffer_size: int = 1000
    process_group_messages: bool = False
    ready_timeout: float = 60.0
    command_timeout: float = 30.0
    shutdown_timeout: float = 10.0
    log_level: str = "INFO"

    @property
    def session_dir(self) -> Path:
        """Fixed, persistent directory the client keeps its session in."""
        return (self.session_path / f"session-{self.client_id}").resolve()

    @property
    def database_path(self) -> Path:
        return self.data_path / "whatsapp.db"

    @classmethod
    def load(cls, path: Optional[Path] = None, environ: Optional[dict[str, str]] = None) -> "GatewayConfig":
        values: dict[str, Any] = _read_file(path or CONFIG_FILE)
        env = os.environ if environ is None else environ
        for var, field in ENV_VARS.items():
            raw = env.get(var)
            if raw is not None and raw != "":
                values[field] = raw
        return cls.model_validate(values)

    def save(self, path: Optional[Path] = None) -> None:
        target = path or CONFIG_FILE
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2))


def _read_file(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text())
    except (FileNotFoundError, json.JSONDecodeError):
        return {}
    return data if isinstance(data, dict) else {}
