"""Clients for services SiteLog talks to but does not own."""

from sitelog.integrations.ai_client import AIClient
from sitelog.integrations.base import BaseIntegration

__all__ = [
    "AIClient",
    "BaseIntegration",
]
