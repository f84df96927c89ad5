# src/chronoseal/core/__init__.py

"""
Core orchestration for ChronoSeal.
Manages configuration and the salted-hash integrity engine.
"""

from .config import ChronoSealConfig, build_store, load_config
from .engine import IntegrityEngine, build_engine

__all__ = [
    "ChronoSealConfig",
    "build_store",
    "load_config",
    "IntegrityEngine",
    "build_engine",
]
