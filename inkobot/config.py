#!/usr/bin/env python3
"""
Bot configuration
-----------------

The configuration lives in a single YAML file (default ``config.yml``) and is
validated with pydantic. The admin commands ``add``/``del`` mutate the users
map and write the file back; ``reload`` reads it again.
"""

import os
import threading
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError

from .logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_FILE = "config.yml"
CONFIG_ENV_VAR = "INKOBOT_CONFIG"

DEFAULT_SWITCH_NETWORKS = [
    "192.168.47.0/24",
    "192.168.49.0/24",
    "192.168.57.0/24",
    "192.168.58.0/24",
    "192.168.59.0/24",
    "192.168.60.0/24",
]


class ConfigError(Exception):
    """Raised when the config file cannot be read, parsed or written."""


class UserEntry(BaseModel):
    name: str = ""


class PingSettings(BaseModel):
    privileged: bool = False
    interval: float = 1.0
    size: int = 56
    count: Optional[int] = None


class BotConfig(BaseModel):
    bot_token: str = ""
    webhook_url: str = ""
    listen_port: int = 8443
    report_channel: int = 0
    admin: int = 0
    users: Dict[int, UserEntry] = Field(default_factory=dict)
    inkotools_api_url: str = ""
    debug: bool = False
    switch_networks: List[str] = Field(default_factory=lambda: list(DEFAULT_SWITCH_NETWORKS))
    short_ip_prefix: str = "192.168."
    search_per_page: int = 4
    ping: PingSettings = Field(default_factory=PingSettings)

    def session_users(self) -> Dict[int, str]:
        """Authorized users by uid, the admin included."""
        users = {uid: entry.name for uid, entry in self.users.items()}
        if self.admin and self.admin not in users:
            users[self.admin] = "admin"
        return users


def default_config_path() -> Path:
    return Path(os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_FILE))


class ConfigStore:
    """
    Owns the current BotConfig and its backing file.

    Mutations of the users map go through add_user/remove_user so the file is
    written under a lock.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None, config: Optional[BotConfig] = None):
        self.path = Path(path) if path is not None else default_config_path()
        self._lock = threading.RLock()
        self._config = config

    @property
    def config(self) -> BotConfig:
        if self._config is None:
            self.load()
        return self._config

    def load(self) -> BotConfig:
        """
        Read and validate the config file.

        Returns:
            The freshly loaded configuration

        Raises:
            ConfigError: If the file is missing, is not YAML or does not validate
        """
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                raw = yaml.safe_load(handle) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"[config] Read failed: {e}")
            raise ConfigError(f"Read failed: {e}") from e

        try:
            config = BotConfig.model_validate(raw)
        except ValidationError as e:
            logger.error(f"[config] Parse failed: {e}")
            raise ConfigError(f"Parse failed: {e}") from e

        with self._lock:
            self._config = config
        logger.info(f"[config] Loaded from {self.path}")
        return config

    def save(self) -> None:
        """Write the configuration back, wrapped in YAML document markers."""
        with self._lock:
            data = self.config.model_dump()
            body = yaml.safe_dump(data, allow_unicode=True, sort_keys=False)
            try:
                self.path.write_text("---\n" + body + "...\n", encoding="utf-8")
            except OSError as e:
                logger.error(f"[config] Write failed: {e}")
                raise ConfigError(f"Write failed: {e}") from e
        logger.info(f"[config] Saved to {self.path}")

    def add_user(self, uid: int, name: str = "") -> bool:
        with self._lock:
            if uid in self.config.users:
                return False
            self.config.users[uid] = UserEntry(name=name)
            self.save()
        return True

    def remove_user(self, uid: int) -> bool:
        with self._lock:
            if uid not in self.config.users:
                return False
            del self.config.users[uid]
            self.save()
        return True
