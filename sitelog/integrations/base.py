from abc import ABC, abstractmethod

from sitelog.common.logging import get_logger


class BaseIntegration(ABC):
    """Base class for clients of services SiteLog does not own.

    Each client gets an ``integrations.<name>`` logger and must answer a
    health check so ``/health`` can report on it.
    """

    def __init__(self, name: str):
        self.name = name
        self.logger = get_logger(f"integrations.{name}")

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True when the service is reachable."""
        ...
