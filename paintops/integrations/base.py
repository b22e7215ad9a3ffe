from abc import ABC, abstractmethod

from paintops.common.logging import get_logger


class BaseIntegration(ABC):
    """Common shape of the email and storage clients.

    Each client runs against the real service when configured with real
    credentials and falls back to a local, logging-only mode otherwise.
    """

    def __init__(self, name: str):
        self.name = name
        self.logger = get_logger(f"integrations.{name}")

    @staticmethod
    def is_mock_key(key: str | None) -> bool:
        """Blank keys and keys prefixed ``mock_`` select the local fallback."""
        return not key or not key.strip() or key.startswith("mock_")

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True when the backing service is usable."""
        ...
