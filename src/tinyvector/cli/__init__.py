"""TinyVector CLI – command-line interface built with Typer and Rich.

- :data:`app` – The main Typer application
- :class:`TinyVectorConfig` – Configuration model
- :func:`setup_logging` – Logging infrastructure
- :class:`CLIError` – Structured error handling
"""

from tinyvector.cli.app import app
from tinyvector.cli.config import TinyVectorConfig, build_registry, load_config
from tinyvector.cli.errors import CLIError, ConfigError, error_handler
from tinyvector.cli.logging_setup import setup_logging

__all__ = [
    "CLIError",
    "ConfigError",
    "TinyVectorConfig",
    "app",
    "build_registry",
    "error_handler",
    "load_config",
    "setup_logging",
]
