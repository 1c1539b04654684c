"""
Logging configuration and utilities for the TapNotify engine.
"""
from .config import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]
