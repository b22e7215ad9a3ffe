"""PaintOps integration clients.

All clients implement ``BaseIntegration`` and run in mock or local mode
until real credentials are configured.
"""

from paintops.integrations.base import BaseIntegration
from paintops.integrations.sendgrid import EmailClient
from paintops.integrations.storage import StorageClient

__all__ = [
    "BaseIntegration",
    "EmailClient",
    "StorageClient",
]
