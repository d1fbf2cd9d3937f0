"""
n8nupdater - Unattended backup-then-update for docker-compose n8n installations
"""

__version__ = "1.0.0"

from .core import N8nUpdater, UpdaterError

__all__ = ["N8nUpdater", "UpdaterError"]
