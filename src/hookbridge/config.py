"""
Configuration management for HookBridge

Provides environment-based configuration with sensible defaults, optionally
loaded from a YAML file.
"""

import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml


def _env_list(name: str, default: List[str]) -> List[str]:
    value = os.getenv(name)
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class BridgeConfig:
    """Configuration for the HookBridge server"""

    # Workflow engine
    engine_url: str = ""
    request_timeout: float = 60.0
    trigger_timeout: float = 10.0
    correlation_field: str = "requestId"
    id_prefix: str = "req"

    # HTTP facade
    host: str = "0.0.0.0"
    port: int = 3000
    submit_path: str = "/api/submit"
    callback_path: str = "/api/results"

    # CORS
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    cors_methods: List[str] = field(default_factory=lambda: ["GET", "POST", "OPTIONS"])
    cors_headers: List[str] = field(
        default_factory=lambda: ["Content-Type", "Authorization", "X-Requested-With", "X-Request-ID"]
    )
    cors_credentials: bool = False
    cors_max_age: int = 86400

    # Logging
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    def __post_init__(self):
        """Load configuration from environment variables"""

        # Workflow engine
        self.engine_url = os.getenv("HOOKBRIDGE_ENGINE_URL", self.engine_url)
        self.request_timeout = float(os.getenv("HOOKBRIDGE_REQUEST_TIMEOUT", str(self.request_timeout)))
        self.trigger_timeout = float(os.getenv("HOOKBRIDGE_TRIGGER_TIMEOUT", str(self.trigger_timeout)))

        # HTTP facade
        self.host = os.getenv("HOOKBRIDGE_HOST", self.host)
        self.port = int(os.getenv("HOOKBRIDGE_PORT", str(self.port)))

        # CORS
        self.cors_origins = _env_list("HOOKBRIDGE_CORS_ORIGINS", self.cors_origins)

        # Logging
        self.log_level = os.getenv("LOG_LEVEL", self.log_level)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BridgeConfig":
        """Create configuration from dictionary, ignoring unknown keys"""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logging.getLogger(__name__).warning(f"Ignoring unknown config keys: {sorted(unknown)}")
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "BridgeConfig":
        """Load configuration from a YAML file"""
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        return cls.from_dict(data)

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "BridgeConfig":
        return cls.from_yaml(path) if path else cls()

    def validate(self) -> bool:
        """Validate configuration"""
        if not self.engine_url:
            raise ValueError("engine_url is required")

        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")

        if self.trigger_timeout <= 0:
            raise ValueError("trigger_timeout must be positive")

        if not 0 < self.port < 65536:
            raise ValueError("port must be between 1 and 65535")

        if not self.correlation_field:
            raise ValueError("correlation_field is required")

        return True


def setup_logging(config: BridgeConfig):
    """Setup logging based on configuration"""
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=config.log_format,
    )

    # Access logs only in debug mode
    if config.log_level.upper() != "DEBUG":
        logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
