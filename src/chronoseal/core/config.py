# src/chronoseal/core/config.py

import logging
import os
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

from chronoseal.storage import DocumentStore, InMemoryDocumentStore, MongoDocumentStore

logger = logging.getLogger(__name__)


class MongoConfig(BaseModel):
    uri: str = "mongodb://localhost:27017"
    database: str = "ChronoSealDB"
    collection: str = "documents"
    server_selection_timeout_ms: int = Field(default=5000, gt=0)


class StorageConfig(BaseModel):
    backend: Literal["mongo", "memory"] = "mongo"


class EngineConfig(BaseModel):
    max_batch_size: int = Field(default=100, ge=1)
    default_list_limit: int = Field(default=50, ge=1)


class ChronoSealConfig(BaseModel):
    """
    Main configuration model for ChronoSeal.
    """

    mongo: MongoConfig = Field(default_factory=MongoConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def load_overrides_from_env(cls, data: Any) -> Dict[str, Any]:
        """Override config values with environment variables if present."""
        if not isinstance(data, dict):
            data = {}
        data = dict(data)

        mongo = dict(data.get("mongo") or {})
        # MONGO_URL is the name the deployed service used; MONGO_URI wins if both set
        if "MONGO_URL" in os.environ:
            mongo["uri"] = os.environ["MONGO_URL"]
        if "MONGO_URI" in os.environ:
            mongo["uri"] = os.environ["MONGO_URI"]
        if "DB_NAME" in os.environ:
            mongo["database"] = os.environ["DB_NAME"]
        data["mongo"] = mongo

        storage = dict(data.get("storage") or {})
        if "CHRONOSEAL_STORAGE" in os.environ:
            storage["backend"] = os.environ["CHRONOSEAL_STORAGE"].lower()
        data["storage"] = storage

        engine = dict(data.get("engine") or {})
        if "CHRONOSEAL_MAX_BATCH_SIZE" in os.environ:
            engine["max_batch_size"] = os.environ["CHRONOSEAL_MAX_BATCH_SIZE"]
        data["engine"] = engine

        return data


def load_config(config_path: Optional[Union[str, Path]] = None) -> ChronoSealConfig:
    """
    Load ChronoSeal configuration from YAML file.

    Args:
        config_path: Path to config.yaml (default: ./config/config.yaml)

    Returns:
        Validated ChronoSealConfig instance.
    """
    if config_path is None:
        config_path = Path("config") / "config.yaml"
    else:
        config_path = Path(config_path)

    config_data = {}
    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config_data = yaml.safe_load(f) or {}
            logger.info(f"Loaded configuration from {config_path}")
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load config file {config_path}: {e}")
    else:
        logger.info(f"Config file not found at {config_path}, using defaults")

    # Create config instance (env vars override file)
    config = ChronoSealConfig(**config_data)

    logger.debug("ChronoSeal configuration loaded with settings:")
    logger.debug(f"  Storage backend: {config.storage.backend}")
    logger.debug(f"  MongoDB: {config.mongo.database}.{config.mongo.collection}")
    logger.debug(f"  Max batch size: {config.engine.max_batch_size}")

    return config


def build_store(config: ChronoSealConfig) -> DocumentStore:
    """Create the DocumentStore selected by config.storage.backend."""
    if config.storage.backend == "memory":
        return InMemoryDocumentStore()
    return MongoDocumentStore(
        uri=config.mongo.uri,
        database=config.mongo.database,
        collection=config.mongo.collection,
        server_selection_timeout_ms=config.mongo.server_selection_timeout_ms,
    )
