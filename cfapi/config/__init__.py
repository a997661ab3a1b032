"""Configuration for the CF API server."""
from .settings import AppConfig, load_settings

__all__ = ["AppConfig", "load_settings"]
