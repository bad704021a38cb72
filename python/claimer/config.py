#!/usr/bin/env python3
"""
Configuration management for the Issue Claimer.

This module handles loading and validating configuration from JSON files,
building the polling configuration, and watching the file for live changes.
"""

import json
import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles


MIN_POLLING_INTERVAL_SECONDS = 5
DEFAULT_POLLING_INTERVAL_SECONDS = 10

SETTING_ENABLED = "enableIssuePolling"
SETTING_INTERVAL = "issuePollingIntervalSeconds"
SETTING_REPOSITORY = "repository"


@dataclass(frozen=True)
class PollingConfig:
    """Polling settings, always replaced as a whole"""
    enabled: bool = True
    interval_seconds: int = DEFAULT_POLLING_INTERVAL_SECONDS
    repository: Optional[str] = None

    def __post_init__(self):
        # bool is an int subclass, reject it explicitly
        if isinstance(self.interval_seconds, bool) or not isinstance(self.interval_seconds, int):
            raise ValueError(
                f"{SETTING_INTERVAL} must be an integer, got {self.interval_seconds!r}"
            )
        if self.interval_seconds < MIN_POLLING_INTERVAL_SECONDS:
            logging.warning(
                f"{SETTING_INTERVAL}={self.interval_seconds} is below the minimum, "
                f"using {MIN_POLLING_INTERVAL_SECONDS}"
            )
            object.__setattr__(self, "interval_seconds", MIN_POLLING_INTERVAL_SECONDS)
        if self.repository is not None:
            repository = self.repository.strip()
            if repository and "/" not in repository:
                raise ValueError(
                    f"{SETTING_REPOSITORY} must be in the format 'owner/repo', got {repository!r}"
                )
            object.__setattr__(self, "repository", repository or None)

    @classmethod
    def from_settings(cls, settings: Dict[str, Any]) -> "PollingConfig":
        """Build a config from the host's settings keys, defaulting missing ones"""
        return cls().updated(settings)

    def updated(self, settings: Dict[str, Any]) -> "PollingConfig":
        """Return a new config with the given settings applied on top of this one"""
        changes = {}
        if SETTING_ENABLED in settings:
            enabled = settings[SETTING_ENABLED]
            if not isinstance(enabled, bool):
                raise ValueError(f"{SETTING_ENABLED} must be a boolean, got {enabled!r}")
            changes["enabled"] = enabled
        if SETTING_INTERVAL in settings:
            changes["interval_seconds"] = settings[SETTING_INTERVAL]
        if SETTING_REPOSITORY in settings:
            repository = settings[SETTING_REPOSITORY]
            if repository is not None and not isinstance(repository, str):
                raise ValueError(f"{SETTING_REPOSITORY} must be a string, got {repository!r}")
            changes["repository"] = repository
        return replace(self, **changes)


class Config:
    """Configuration management"""

    def __init__(self, config_path: str = "config.json"):
        self.config_path = Path(config_path)
        self._config = self._load_config()

    def _load_config(self) -> Dict:
        """Load configuration from JSON file"""
        if not self.config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {self.config_path}\n"
                "Please create it from config.example.json"
            )

        with open(self.config_path) as f:
            config = json.load(f)

        return self.validate(config)

    @staticmethod
    def validate(config: Dict) -> Dict:
        """Check required sections and that the polling settings parse"""
        if not isinstance(config, dict):
            raise ValueError("Configuration must be a JSON object")

        required = ["settings"]
        for field in required:
            if field not in config:
                raise ValueError(f"Missing required config field: {field}")
        if not isinstance(config["settings"], dict):
            raise ValueError("Config field 'settings' must be an object")

        PollingConfig.from_settings(config["settings"])
        return config

    @property
    def polling(self) -> PollingConfig:
        return PollingConfig.from_settings(self._config["settings"])

    @property
    def auth_check_interval(self) -> int:
        return self._config.get("auth", {}).get("check_interval", 5)

    @property
    def command_timeout(self) -> float:
        return self._config.get("commands", {}).get("timeout_seconds", 30)

    @property
    def working_directory(self) -> str:
        cwd = self._config.get("commands", {}).get("cwd")
        if cwd:
            return str(Path(cwd).expanduser().resolve())
        return os.getcwd()

    @property
    def host(self) -> str:
        return self._config.get("host", {}).get("host", "127.0.0.1")

    @property
    def port(self) -> int:
        return self._config.get("host", {}).get("port", 8765)

    @property
    def watch_interval(self) -> int:
        return self._config.get("config", {}).get("watch_interval", 2)

    @property
    def telegram_bot_token(self) -> str:
        return self._config.get("telegram", {}).get("bot_token", "")

    @property
    def telegram_chat_id(self) -> str:
        return self._config.get("telegram", {}).get("chat_id", "")

    @property
    def slack_bot_token(self) -> str:
        return self._config.get("slack", {}).get("bot_token", "")

    @property
    def slack_channel_id(self) -> str:
        return self._config.get("slack", {}).get("channel_id", "")


class ConfigWatcher:
    """Re-reads the configuration file when it changes on disk"""

    def __init__(self, config_path: str):
        self.config_path = Path(config_path)
        self._mtime = self._current_mtime()

    def _current_mtime(self) -> Optional[float]:
        try:
            return self.config_path.stat().st_mtime
        except OSError:
            return None

    async def check(self) -> Optional[PollingConfig]:
        """Return the new polling config if the file changed, otherwise None"""
        mtime = self._current_mtime()
        if mtime is None or mtime == self._mtime:
            return None
        self._mtime = mtime

        try:
            async with aiofiles.open(self.config_path) as f:
                raw = await f.read()
            config = Config.validate(json.loads(raw))
            polling = PollingConfig.from_settings(config["settings"])
        except (OSError, ValueError) as e:
            # json.JSONDecodeError is a ValueError
            logging.error(f"Ignoring invalid configuration in {self.config_path}: {e}")
            return None

        logging.info(f"Configuration file {self.config_path} changed")
        return polling
