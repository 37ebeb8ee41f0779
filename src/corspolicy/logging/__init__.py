"""Corspolicy logging: hexagonal logging port and structlog adapter."""

from corspolicy.logging.port import LoggingPort
from corspolicy.logging.structlog_adapter import StructlogAdapter

__all__ = ["LoggingPort", "StructlogAdapter"]
