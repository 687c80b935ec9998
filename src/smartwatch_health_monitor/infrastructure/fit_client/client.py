"""
Google Fit client implementation.

Provides OAuth2 and Service Account authentication and reads raw data points
of the configured data sources as readings.
"""

import logging
from pathlib import Path
from typing import Any

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google.oauth2.service_account import Credentials as ServiceAccountCredentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from smartwatch_health_monitor.domain.reading import Reading, decode_records
from smartwatch_health_monitor.utils.exceptions import AuthenticationError, FitClientError
from smartwatch_health_monitor.utils.parameters import FitConfig
from smartwatch_health_monitor.utils.timezone_utils import now_millis

logger = logging.getLogger(__name__)

NANOS_PER_MILLI = 1_000_000
HOUR_MS = 3_600_000


def point_to_map(point: dict[str, Any], data_type_fields: dict[str, str]) -> dict[str, Any] | None:
    """
    Convert a Google Fit data point to a reading record.

    Args:
        point: Data point as returned by the datasets endpoint.
        data_type_fields: Data type name -> record key.

    Returns:
        Record with ``timestamp`` (point end time in ms) and one metric key,
        or None for unsupported data types and empty points.
    """
    key = data_type_fields.get(point.get("dataTypeName", ""))
    values = point.get("value") or []
    if key is None or not values:
        return None

    value = values[0]
    number = value.get("fpVal", value.get("intVal"))
    if number is None:
        return None

    try:
        timestamp = int(point["endTimeNanos"]) // NANOS_PER_MILLI
    except (KeyError, TypeError, ValueError):
        logger.warning(f"Skipping point without a valid end time: {point}")
        return None

    return {"timestamp": timestamp, key: number}


class GoogleFitClient:
    """
    Google Fit REST client for smartwatch metrics.

    Supports OAuth2 and Service Account authentication.
    """

    def __init__(self, config: FitConfig, service: Any = None) -> None:
        """
        Initialize Fit client.

        Args:
            config: Google Fit configuration.
            service: Prebuilt ``fitness`` v1 service. When omitted the client
                authenticates and builds one.

        Raises:
            AuthenticationError: If authentication fails.
        """
        self.config = config
        self.credentials: Any = None
        self.service = service

        if self.service is None:
            self._authenticate()

    def _authenticate(self) -> None:
        """
        Authenticate with the Google Fit API.

        Raises:
            AuthenticationError: If authentication fails.
        """
        try:
            if self.config.auth_method == "oauth2":
                creds: Credentials | ServiceAccountCredentials = self._authenticate_oauth2()
            elif self.config.auth_method == "service_account":
                creds = self._authenticate_service_account()
            else:
                raise AuthenticationError(f"Unknown auth method: {self.config.auth_method}")

            self.credentials = creds
            self.service = build("fitness", "v1", credentials=creds)
            logger.info(f"Authenticated with Google Fit using {self.config.auth_method}")

        except AuthenticationError:
            raise
        except Exception as e:
            raise AuthenticationError(f"Authentication failed: {e}") from e

    def _authenticate_oauth2(self) -> Credentials:
        """
        Authenticate as the watch owner with a cached OAuth2 token.

        A cached token is refreshed when expired and discarded when it lacks
        one of the configured Fit read scopes, which triggers a new consent.

        Returns:
            Valid credentials.
        """
        oauth2 = self.config.oauth2
        if oauth2 is None:
            raise AuthenticationError("fit.oauth2 is not configured")

        token_path = Path(oauth2.token_path)
        creds: Credentials | None = None

        if token_path.exists():
            creds = Credentials.from_authorized_user_file(str(token_path))
            if not creds.has_scopes(oauth2.scopes):
                logger.warning("Cached Fit token lacks required scopes, requesting consent")
                creds = None

        if creds is not None and creds.valid:
            return creds

        if creds is not None and creds.expired and creds.refresh_token:
            logger.info("Refreshing expired Google Fit token")
            creds.refresh(Request())
        else:
            flow = InstalledAppFlow.from_client_secrets_file(oauth2.credentials_path, oauth2.scopes)
            creds = flow.run_local_server(port=0)
            logger.info("Google Fit consent granted")

        token_path.parent.mkdir(parents=True, exist_ok=True)
        token_path.write_text(creds.to_json(), encoding="utf-8")
        return creds

    def _authenticate_service_account(self) -> ServiceAccountCredentials:
        """Load service-account credentials with the configured Fit scopes."""
        account = self.config.service_account
        if account is None:
            raise AuthenticationError("fit.service_account is not configured")

        return ServiceAccountCredentials.from_service_account_file(  # type: ignore[no-any-return]
            account.credentials_path, scopes=account.scopes
        )

    def _scopes(self) -> list[str]:
        if self.config.auth_method == "oauth2" and self.config.oauth2:
            return self.config.oauth2.scopes
        if self.config.auth_method == "service_account" and self.config.service_account:
            return self.config.service_account.scopes
        return []

    def has_permission(self) -> bool:
        """Whether the current credentials are valid and carry the read scopes."""
        if self.credentials is None:
            return False

        try:
            return bool(self.credentials.valid and self.credentials.has_scopes(self._scopes()))
        except GoogleAuthError as e:
            logger.warning(f"Permission check failed: {e}")
            return False

    def _read_dataset(self, data_source_id: str, dataset_id: str) -> list[dict[str, Any]]:
        points: list[dict[str, Any]] = []
        page_token = None

        while True:
            response = (
                self.service.users()
                .dataSources()
                .datasets()
                .get(
                    userId="me",
                    dataSourceId=data_source_id,
                    datasetId=dataset_id,
                    pageToken=page_token,
                )
                .execute()
            )
            points.extend(response.get("point", []))

            page_token = response.get("nextPageToken")
            if not page_token:
                break

        return points

    def fetch_readings(self, start_ms: int | None = None, end_ms: int | None = None) -> list[Reading]:
        """
        Fetch readings from every configured data source.

        Each data point becomes one reading carrying its single metric; the
        other metrics stay at zero.

        Args:
            start_ms: Window start. Defaults to ``lookback_hours`` before end.
            end_ms: Window end. Defaults to now.

        Returns:
            Readings in API result order, data source by data source.

        Raises:
            FitClientError: If a dataset cannot be read.
        """
        end_ms = now_millis() if end_ms is None else end_ms
        start_ms = end_ms - self.config.lookback_hours * HOUR_MS if start_ms is None else start_ms
        dataset_id = f"{start_ms * NANOS_PER_MILLI}-{end_ms * NANOS_PER_MILLI}"

        records: list[dict[str, Any] | None] = []
        for data_source_id in self.config.data_sources:
            try:
                points = self._read_dataset(data_source_id, dataset_id)
            except HttpError as e:
                raise FitClientError(f"Failed to read {data_source_id}: {e}") from e

            logger.debug(f"Read {len(points)} points from {data_source_id}")
            records.extend(point_to_map(p, self.config.data_type_fields) for p in points)

        readings = decode_records(r for r in records if r is not None)
        logger.info(f"Fetched {len(readings)} readings from Google Fit")
        return readings
