"""Provider chain selection, fallback and status reporting."""

from .router import (
    BACKUP_STATUS,
    IMAGE_STATUS,
    Listener,
    Router,
)

__all__ = ["BACKUP_STATUS", "IMAGE_STATUS", "Listener", "Router"]
