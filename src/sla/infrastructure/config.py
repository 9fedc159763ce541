"""
SLA Configuration Loading
=========================

YAML-backed SLA targets with hot reload.

The file is watched with watchdog; edits are picked up without restarting
the service. A missing file means the built-in defaults apply.
"""

import threading
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from src.core import ConfigurationException
from src.shared.infrastructure.logging import get_logger
from src.sla.domain.value_objects import SLAConfig

logger = get_logger(__name__)


class ConfigFileHandler(FileSystemEventHandler):
    """Watchdog event handler for SLA config file changes."""

    def __init__(self, config_manager: "SLAConfigManager", config_path: Path):
        self.config_manager = config_manager
        self.config_path = config_path
        super().__init__()

    def on_modified(self, event):
        """Handle file modification event."""
        if event.is_directory:
            return
        if Path(event.src_path).resolve() == self.config_path.resolve():
            logger.info("SLA config file changed", extra={"path": str(event.src_path)})
            self.config_manager.reload()


class SLAConfigManager:
    """
    Thread-safe SLA configuration manager with hot-reload support.

    The watchdog observer runs in its own thread, so swaps of the current
    configuration happen under a lock.
    """

    def __init__(self):
        self._config: Optional[SLAConfig] = None
        self._lock = threading.Lock()
        self._path: Optional[Path] = None
        self._observer = None

    def load(self, path: Path) -> SLAConfig:
        """
        Initial configuration load.

        Raises:
            ConfigurationException: If the file exists but is not a valid config
        """
        self._path = Path(path)
        config = self._load_from_file(self._path)
        with self._lock:
            self._config = config
        logger.info(
            "SLA configuration loaded",
            extra={
                "path": str(self._path),
                "service_levels": sorted(level.value for level in config.service_levels),
            }
        )
        return config

    def _load_from_file(self, path: Path) -> SLAConfig:
        """Load and parse YAML config file."""
        if not path.exists():
            logger.warning("SLA config file not found, using defaults", extra={"path": str(path)})
            return SLAConfig()

        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
            return SLAConfig(**data)
        except (yaml.YAMLError, ValidationError, TypeError) as e:
            raise ConfigurationException(
                f"Invalid SLA configuration in {path}",
                {"error": str(e)}
            ) from e

    def reload(self) -> bool:
        """
        Reload configuration from file.

        A broken edit keeps the previous configuration in place.
        """
        if self._path is None:
            return False

        try:
            new_config = self._load_from_file(self._path)
        except ConfigurationException as e:
            logger.error(
                "Failed to reload SLA config, keeping previous targets",
                extra={"error": e.details.get("error", e.message)}
            )
            return False

        with self._lock:
            self._config = new_config
        logger.info("SLA configuration reloaded successfully")
        return True

    def start_watching(self) -> None:
        """
        Start watching configuration file for changes.

        Skips watching if the file doesn't exist or inotify is unavailable
        (some container runtimes).
        """
        if self._path is None:
            raise RuntimeError("Config not loaded. Call load() first.")

        if not self._path.exists():
            logger.info(
                "SLA config file doesn't exist, skipping file watch",
                extra={"path": str(self._path)}
            )
            return

        try:
            self._observer = Observer()
            handler = ConfigFileHandler(self, self._path)
            self._observer.schedule(
                handler,
                str(self._path.parent),
                recursive=False
            )
            self._observer.start()
            logger.info("Started watching SLA config file", extra={"path": str(self._path)})
        except OSError as e:
            logger.warning(
                "File watching not available, using static SLA config",
                extra={"error": str(e)}
            )
            self._observer = None

    def stop_watching(self) -> None:
        """Stop watching configuration file (safe to call even if not watching)."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    @property
    def is_loaded(self) -> bool:
        return self._config is not None

    @property
    def is_watching(self) -> bool:
        return self._observer is not None

    @property
    def config(self) -> SLAConfig:
        """Current configuration; built-in defaults until load() is called."""
        with self._lock:
            if self._config is None:
                return SLAConfig()
            return self._config


# Process-wide manager, loaded by the application lifespan
sla_config_manager = SLAConfigManager()


def get_sla_config() -> SLAConfig:
    """FastAPI dependency returning the current SLA targets."""
    return sla_config_manager.config
