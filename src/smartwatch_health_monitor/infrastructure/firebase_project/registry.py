"""
Firebase project registry.

Parses ``google-services`` style JSON project configurations and caches the
Firestore client and Storage bucket handles of each named environment. The
registry is created once by the application entry point and passed to the
components that need remote clients.
"""

import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud import firestore, storage
from google.oauth2.service_account import Credentials as ServiceAccountCredentials
from pydantic import BaseModel

from smartwatch_health_monitor.utils.exceptions import (
    ConfigurationError,
    EnvironmentConfigError,
)
from smartwatch_health_monitor.utils.parameters import EnvironmentConfig, EnvironmentsConfig

logger = logging.getLogger(__name__)


class FirebaseProjectOptions(BaseModel):
    """Project options extracted from a google-services JSON file."""

    project_id: str
    api_key: str
    app_id: str
    storage_bucket: str | None = None


ClientFactory = Callable[[FirebaseProjectOptions, Any], Any]


def app_name_for(config_file: str) -> str:
    """
    Derive the app name used for an environment config file.

    ``google-services-dev.json`` becomes ``dev``.
    """
    return Path(config_file).name.replace(".json", "").replace("google-services-", "")


def parse_google_services(path: str | Path) -> FirebaseProjectOptions:
    """
    Parse a google-services JSON file.

    Args:
        path: Path to the JSON file.

    Returns:
        Parsed project options.

    Raises:
        ConfigurationError: If the file is missing or lacks required keys.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigurationError(f"Firebase config file not found: {config_path}")

    try:
        with open(config_path, encoding="utf-8") as f:
            data = json.load(f)

        project_info = data["project_info"]
        client = data["client"][0]

        options = FirebaseProjectOptions(
            project_id=project_info["project_id"],
            api_key=client["api_key"][0]["current_key"],
            app_id=client["client_info"]["mobilesdk_app_id"],
            storage_bucket=project_info.get("storage_bucket") or None,
        )
    except (json.JSONDecodeError, KeyError, IndexError, TypeError) as e:
        raise ConfigurationError(f"Invalid Firebase config {config_path}: {e}") from e

    logger.debug(
        f"Parsed config: projectId={options.project_id}, "
        f"storageBucket={options.storage_bucket}"
    )
    return options


def _default_firestore_factory(options: FirebaseProjectOptions, credentials: Any) -> Any:
    return firestore.Client(project=options.project_id, credentials=credentials)


def _default_storage_factory(options: FirebaseProjectOptions, credentials: Any) -> Any:
    if not options.storage_bucket:
        raise EnvironmentConfigError(
            f"Project {options.project_id} has no storage bucket configured"
        )
    client = storage.Client(project=options.project_id, credentials=credentials)
    return client.bucket(options.storage_bucket)


class ProjectRegistry:
    """
    Cache of remote client handles keyed by environment name.

    A non-default environment that fails to initialize falls back to the
    default environment.
    """

    def __init__(
        self,
        config: EnvironmentsConfig,
        firestore_factory: ClientFactory | None = None,
        storage_factory: ClientFactory | None = None,
    ) -> None:
        """
        Initialize the registry.

        Args:
            config: Environments configuration.
            firestore_factory: Builds a Firestore client from project options
                and credentials.
            storage_factory: Builds a Storage bucket handle from project
                options and credentials.
        """
        self.config = config
        self.firestore_factory = firestore_factory or _default_firestore_factory
        self.storage_factory = storage_factory or _default_storage_factory

        self._environments = {env.name: env for env in config.items}
        self._options: dict[str, FirebaseProjectOptions] = {}
        self._firestore_clients: dict[str, Any] = {}
        self._buckets: dict[str, Any] = {}
        self._credentials_cache: dict[str, Any] = {}

        if config.default not in self._environments:
            raise ConfigurationError(f"Default environment not defined: {config.default}")

    @property
    def default_name(self) -> str:
        return self.config.default

    def names(self) -> list[str]:
        """Environment names, default first."""
        others = [name for name in self._environments if name != self.default_name]
        return [self.default_name] + others

    def environment(self, name: str) -> EnvironmentConfig:
        """
        Look up an environment by name.

        Raises:
            EnvironmentConfigError: If the name is unknown.
        """
        try:
            return self._environments[name]
        except KeyError:
            raise EnvironmentConfigError(f"Unknown environment: {name}") from None

    def options_for(self, name: str) -> FirebaseProjectOptions:
        """
        Get the parsed project options of an environment, parsing on first use.

        Raises:
            EnvironmentConfigError: If the environment is unknown.
            ConfigurationError: If its config file is missing or invalid.
        """
        if name in self._options:
            return self._options[name]

        env = self.environment(name)
        options = parse_google_services(env.config_file)
        self._options[name] = options

        logger.info(
            f"Firebase project loaded: {app_name_for(env.config_file)} "
            f"(projectId: {options.project_id})"
        )
        return options

    def resolve(self, name: str) -> str:
        """
        Resolve the environment that will actually serve ``name``.

        Args:
            name: Requested environment name.

        Returns:
            ``name`` if its configuration and credentials load, otherwise the
            default name.

        Raises:
            EnvironmentConfigError: If neither the requested nor the default
                environment can be loaded.
        """
        return self._with_fallback(name, self._load_environment)

    def _load_environment(self, name: str) -> str:
        self.options_for(name)
        self._credentials(name)
        return name

    def _with_fallback(self, name: str, build: Callable[[str], Any]) -> Any:
        try:
            return build(name)
        except (ConfigurationError, EnvironmentConfigError) as e:
            if name == self.default_name:
                raise EnvironmentConfigError(
                    f"Default environment {name} cannot be initialized: {e}"
                ) from e
            logger.error(f"Failed to initialize environment {name}: {e}")

        logger.warning(f"Falling back to default environment {self.default_name}")
        return self._with_fallback(self.default_name, build)

    def _credentials(self, name: str) -> Any:
        if name in self._credentials_cache:
            return self._credentials_cache[name]

        env = self.environment(name)
        creds = None
        if env.credentials_path:
            try:
                creds = ServiceAccountCredentials.from_service_account_file(
                    env.credentials_path
                )
            except (OSError, ValueError, GoogleAuthError) as e:
                raise EnvironmentConfigError(
                    f"Failed to load credentials for environment {name}: {e}"
                ) from e

        self._credentials_cache[name] = creds
        return creds

    def _client(self, name: str, cache: dict[str, Any], factory: ClientFactory, kind: str) -> Any:
        if name in cache:
            logger.debug(f"Using cached {kind} for {name}")
            return cache[name]

        options = self.options_for(name)
        credentials = self._credentials(name)

        try:
            client = factory(options, credentials)
        except (GoogleAuthError, GoogleAPIError) as e:
            raise EnvironmentConfigError(
                f"Failed to create {kind} for environment {name}: {e}"
            ) from e

        cache[name] = client
        logger.debug(f"Created {kind} for {name}")
        return client

    def firestore_client(self, name: str) -> Any:
        """
        Get (or create) the Firestore client serving an environment.

        Falls back to the default environment's client when the requested
        one cannot be created.
        """
        return self._with_fallback(
            name,
            lambda env: self._client(
                env, self._firestore_clients, self.firestore_factory, "Firestore client"
            ),
        )

    def storage_bucket(self, name: str) -> Any:
        """
        Get (or create) the Storage bucket handle serving an environment.

        Falls back to the default environment's bucket when the requested
        one cannot be created.
        """
        return self._with_fallback(
            name,
            lambda env: self._client(env, self._buckets, self.storage_factory, "Storage bucket"),
        )
