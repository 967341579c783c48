"""Core infrastructure: config, database, logging, gateway, errors."""

from app.core.config import Settings, get_settings
from app.core.database import Base, dispose_engine, get_db
from app.core.exceptions import APCMSError
from app.core.logging import get_logger, request_id_ctx
from app.core.security import require_api_key

__all__ = [
    "APCMSError",
    "Base",
    "Settings",
    "dispose_engine",
    "get_db",
    "get_logger",
    "get_settings",
    "request_id_ctx",
    "require_api_key",
]
