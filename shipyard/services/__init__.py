"""Concrete collaborators behind the pipeline protocols.

Each adapter wraps one external tool or service (cargo, gh, npm, a chat
webhook) and reports its failures as pipeline failure values.
"""

from shipyard.services.cargo import CargoCompiler, CargoDebPackager, ToolStripper
from shipyard.services.github import GhReleaseHost
from shipyard.services.notify import WebhookNotifier
from shipyard.services.registry import CommandRegistryPublisher

__all__ = [
    "CargoCompiler",
    "CargoDebPackager",
    "CommandRegistryPublisher",
    "GhReleaseHost",
    "ToolStripper",
    "WebhookNotifier",
]
