"""
Core module initialization.
Exports configuration, logging utilities and the error hierarchy.
"""

from app.core.config import get_settings, Settings, EnvironmentMode, redact_phone
from app.core.errors import OrderSystemError

__all__ = ["get_settings", "Settings", "EnvironmentMode", "redact_phone", "OrderSystemError"]
