"""Runtime switching between Firebase project environments."""

import logging

from smartwatch_health_monitor.infrastructure.firebase_project.registry import ProjectRegistry
from smartwatch_health_monitor.utils.exceptions import EnvironmentConfigError
from smartwatch_health_monitor.utils.parameters import EnvironmentConfig

logger = logging.getLogger(__name__)


class EnvironmentSwitcher:
    """
    Tracks the selected environment and activates it through the registry.

    The default environment is selected initially.
    """

    def __init__(self, registry: ProjectRegistry) -> None:
        self.registry = registry
        self._selected = registry.default_name
        self._active: str | None = None

    def names(self) -> list[str]:
        return self.registry.names()

    @property
    def selected(self) -> EnvironmentConfig:
        return self.registry.environment(self._selected)

    @property
    def active(self) -> str | None:
        """Name of the environment serving requests after the last apply."""
        return self._active

    def select(self, name: str) -> EnvironmentConfig:
        """
        Select an environment without initializing it.

        Raises:
            EnvironmentConfigError: If the name is unknown.
        """
        env = self.registry.environment(name)
        self._selected = name
        return env

    def apply(self) -> str:
        """
        Initialize the selected environment and make it active.

        Returns:
            Name of the environment now active; the default one if the
            selected environment had to fall back.

        Raises:
            EnvironmentConfigError: If no environment could be initialized.
        """
        env = self.selected
        logger.info(f"Switching to {env.name} with config {env.config_file}")

        try:
            resolved = self.registry.resolve(env.name)
        except EnvironmentConfigError as e:
            logger.error(f"Environment switch failed: {e}")
            raise

        self._active = resolved
        logger.info(f"Switched to {resolved}")
        return resolved
