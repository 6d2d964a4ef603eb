"""TinyVector configuration management.

Loads configuration from TOML files with environment variable overrides
(``TINYVECTOR_`` prefix).  Uses :mod:`tomllib` on Python 3.11+.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from tinyvector.cli.errors import ConfigError
from tinyvector.vectordb.collection import DEFAULT_CHUNK_SIZE
from tinyvector.vectordb.embeddings import DEFAULT_MODEL
from tinyvector.vectordb.loader import DEFAULT_COLLECTION
from tinyvector.vectordb.models import CollectionConfig, Distance
from tinyvector.vectordb.registry import Registry
from tinyvector.vectordb.shared import SharedRegistry

DEFAULT_CONFIG_DIR = ".tinyvector"
DEFAULT_CONFIG_FILE = "config.toml"
ENV_PREFIX = "TINYVECTOR_"


class TinyVectorConfig(BaseModel):
    """Application configuration with sensible defaults.

    All fields can be overridden via environment variables with the
    ``TINYVECTOR_`` prefix.  For example ``TINYVECTOR_DISTANCE=euclidean``.
    """

    default_collection: str = DEFAULT_COLLECTION
    dimension: int = Field(default=384, ge=1)
    distance: Distance = Distance.COSINE
    scoring_workers: Optional[int] = Field(default=None, ge=1)
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, ge=1)
    top_k: int = Field(default=10, ge=1)
    batch_size: Optional[int] = Field(default=None, ge=1)
    embedding_model: str = DEFAULT_MODEL
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    model_config = {"extra": "ignore"}

    def collection_defaults(self) -> CollectionConfig:
        """Return the shape new collections get by default."""
        return CollectionConfig(dimension=self.dimension, distance=self.distance)


def _apply_env_overrides(data: dict) -> dict:
    """Apply TINYVECTOR_ environment variable overrides to *data*."""
    field_names = set(TinyVectorConfig.model_fields.keys())
    for key, value in os.environ.items():
        if key.startswith(ENV_PREFIX):
            field = key[len(ENV_PREFIX):].lower()
            if field in field_names:
                data[field] = value
    return data


def load_config(config_path: Path | None = None, project_dir: Path | None = None) -> TinyVectorConfig:
    """Load configuration from a TOML file with env-var overrides.

    Parameters
    ----------
    config_path:
        Explicit path to a TOML file.  When *None*, looks for
        ``<project_dir>/.tinyvector/config.toml``.
    project_dir:
        Project root directory.  Defaults to :func:`Path.cwd`.

    Returns
    -------
    TinyVectorConfig
        Parsed and validated configuration.

    Raises
    ------
    ConfigError
        If an explicit *config_path* is missing, the TOML is malformed, or
        a value fails validation.
    """
    project = project_dir or Path.cwd()
    path = config_path or (project / DEFAULT_CONFIG_DIR / DEFAULT_CONFIG_FILE)

    if config_path is not None and not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    data: dict = {}
    if path.exists():
        try:
            with open(path, "rb") as fh:
                data = tomllib.load(fh)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc

    # Flatten nested TOML sections if present
    flat: dict = {}
    for k, v in data.items():
        if isinstance(v, dict):
            flat.update(v)
        else:
            flat[k] = v

    flat = _apply_env_overrides(flat)
    try:
        return TinyVectorConfig(**flat)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def build_registry(config: TinyVectorConfig) -> SharedRegistry:
    """Create the process-wide registry described by *config*."""
    return SharedRegistry(
        Registry(config.collection_defaults()),
        scoring_workers=config.scoring_workers,
        chunk_size=config.chunk_size,
    )


def default_config_toml() -> str:
    """Return default configuration as a TOML string."""
    return f"""\
# TinyVector configuration

[collection]
default_collection = "{DEFAULT_COLLECTION}"
dimension = 384
distance = "cosine"

[query]
top_k = 10
chunk_size = {DEFAULT_CHUNK_SIZE}

[embeddings]
embedding_model = "{DEFAULT_MODEL}"

[logging]
log_level = "INFO"
"""
