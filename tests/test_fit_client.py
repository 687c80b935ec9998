"""Unit tests for the Google Fit client."""

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from googleapiclient.errors import HttpError

from smartwatch_health_monitor.infrastructure.fit_client import client as fit_client_module
from smartwatch_health_monitor.infrastructure.fit_client.client import (
    GoogleFitClient,
    point_to_map,
)
from smartwatch_health_monitor.utils.exceptions import FitClientError
from smartwatch_health_monitor.utils.parameters import FitConfig, OAuth2Config

HEART_RATE_SOURCE = "derived:com.google.heart_rate.bpm:com.google.android.gms:merge_heart_rate_bpm"
FIELDS = FitConfig().data_type_fields


def _point(data_type: str, end_ms: int, value: dict) -> dict:
    return {
        "dataTypeName": data_type,
        "startTimeNanos": str((end_ms - 1000) * 1_000_000),
        "endTimeNanos": str(end_ms * 1_000_000),
        "value": [value],
    }


def _client(responses: list[dict]) -> tuple[GoogleFitClient, MagicMock]:
    service = MagicMock()
    get = service.users.return_value.dataSources.return_value.datasets.return_value.get
    get.return_value.execute.side_effect = responses
    client = GoogleFitClient(FitConfig(data_sources=[HEART_RATE_SOURCE]), service=service)
    return client, get


def test_point_to_map_heart_rate() -> None:
    """Test converting a heart rate point."""
    record = point_to_map(_point("com.google.heart_rate.bpm", 1718000000000, {"fpVal": 72.0}), FIELDS)

    if record != {"timestamp": 1718000000000, "heartRate": 72.0}:
        raise AssertionError(f"Unexpected record {record}")


def test_point_to_map_steps_int_value() -> None:
    """Test converting an integer step count point."""
    record = point_to_map(_point("com.google.step_count.delta", 1000, {"intVal": 42}), FIELDS)

    if record != {"timestamp": 1000, "steps": 42}:
        raise AssertionError(f"Unexpected record {record}")


def test_point_to_map_unsupported_and_empty() -> None:
    """Test that unknown types and empty points are dropped."""
    if point_to_map(_point("com.google.weight", 1000, {"fpVal": 70.0}), FIELDS) is not None:
        raise AssertionError("Expected None for unsupported data type")
    if point_to_map({"dataTypeName": "com.google.heart_rate.bpm", "value": []}, FIELDS) is not None:
        raise AssertionError("Expected None for empty point")

    no_end = {"dataTypeName": "com.google.heart_rate.bpm", "value": [{"fpVal": 60.0}]}
    if point_to_map(no_end, FIELDS) is not None:
        raise AssertionError("Expected None for point without end time")


def test_fetch_readings_follows_pages() -> None:
    """Test that every page of a dataset is read."""
    client, get = _client(
        [
            {
                "point": [_point("com.google.heart_rate.bpm", 1000, {"fpVal": 61.0})],
                "nextPageToken": "page-2",
            },
            {"point": [_point("com.google.heart_rate.bpm", 2000, {"fpVal": 62.0})]},
        ]
    )

    readings = client.fetch_readings(start_ms=0, end_ms=3000)

    if [(r.timestamp, r.heart_rate) for r in readings] != [(1000, 61), (2000, 62)]:
        raise AssertionError(f"Unexpected readings {readings}")
    if get.call_count != 2:
        raise AssertionError(f"Expected 2 page requests, got {get.call_count}")

    get.assert_called_with(
        userId="me",
        dataSourceId=HEART_RATE_SOURCE,
        datasetId="0-3000000000",
        pageToken="page-2",
    )


def test_fetch_readings_default_window() -> None:
    """Test that the window defaults to lookback_hours before end."""
    client, get = _client([{}])

    readings = client.fetch_readings(end_ms=24 * 3_600_000)

    if readings:
        raise AssertionError(f"Expected no readings, got {readings}")
    dataset_id = get.call_args.kwargs["datasetId"]
    if dataset_id != f"0-{24 * 3_600_000 * 1_000_000}":
        raise AssertionError(f"Unexpected dataset id {dataset_id}")


def test_fetch_readings_http_error() -> None:
    """Test that API errors raise FitClientError."""
    error = HttpError(MagicMock(status=500, reason="Backend Error"), b"backend error")
    client, _ = _client([error])

    with pytest.raises(FitClientError):
        client.fetch_readings(start_ms=0, end_ms=1000)


def test_has_permission_without_credentials() -> None:
    """Test that an injected service without credentials has no permission."""
    client, _ = _client([])

    if client.has_permission():
        raise AssertionError("Expected no permission without credentials")


def test_has_permission_checks_scopes() -> None:
    """Test the scope check against the configured scopes."""
    client, _ = _client([])
    client.credentials = MagicMock(valid=True)
    client.credentials.has_scopes.return_value = False

    if client.has_permission():
        raise AssertionError("Expected no permission when scopes are missing")

    client.credentials.has_scopes.return_value = True
    if not client.has_permission():
        raise AssertionError("Expected permission with valid credentials and scopes")


def test_oauth2_token_without_scopes_requests_consent(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Test that a cached token missing Fit scopes is replaced through a new consent."""
    token_path = tmp_path / "secrets" / "fit_token.json"
    token_path.parent.mkdir()
    token_path.write_text(
        json.dumps(
            {
                "refresh_token": "refresh",
                "client_id": "client",
                "client_secret": "secret",
                "scopes": ["https://www.googleapis.com/auth/fitness.heart_rate.read"],
            }
        ),
        encoding="utf-8",
    )
    flow = MagicMock()
    flow.from_client_secrets_file.return_value.run_local_server.return_value.to_json.return_value = (
        '{"token": "new"}'
    )
    monkeypatch.setattr(fit_client_module, "InstalledAppFlow", flow)
    monkeypatch.setattr(fit_client_module, "build", MagicMock())

    config = FitConfig(
        oauth2=OAuth2Config(
            credentials_path=str(tmp_path / "client_secret.json"), token_path=str(token_path)
        )
    )
    GoogleFitClient(config)

    flow.from_client_secrets_file.assert_called_once_with(
        str(tmp_path / "client_secret.json"), config.oauth2.scopes
    )
    if token_path.read_text(encoding="utf-8") != '{"token": "new"}':
        raise AssertionError("Expected the new token to be cached")
