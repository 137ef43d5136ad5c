"""Core app services for settings, logging, and poll scheduling."""

from .config import AppConfig, config_path, display_name, load_config, save_config
from .logging_setup import configure_logging, get_logger, install_crash_hooks
from .scheduler import Cadence, PollScheduler

__all__ = [
    "AppConfig",
    "Cadence",
    "PollScheduler",
    "config_path",
    "configure_logging",
    "display_name",
    "get_logger",
    "install_crash_hooks",
    "load_config",
    "save_config",
]
