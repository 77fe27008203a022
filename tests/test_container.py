"""Tests for container wiring."""

from datetime import time

import pytest

from meal_windows.config import Settings, parse_clock_time
from meal_windows.containers import build_container
from meal_windows.services.scoring import WeightTable


def test_build_container_creates_services(settings, monkeypatch) -> None:
    created: list[tuple[str, str]] = []

    def fake_create_client(url: str, key: str) -> object:
        created.append((url, key))
        return object()

    monkeypatch.setattr("meal_windows.containers.create_client", fake_create_client)

    container = build_container(settings)

    assert created == [("https://example.supabase.co", "service-key")]
    assert container.day_service is not None
    assert container.day_service.planner.default_wake_time == time(7, 0)
    assert container.day_service.scoring_engine.weight_table is WeightTable.EQUAL


def test_container_reads_weight_table(monkeypatch) -> None:
    monkeypatch.setattr(
        "meal_windows.containers.create_client", lambda url, key: object()
    )
    settings = Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        admin_token="admin-token",
        scoring_weight_table="purpose",
        default_wake_time="06:30",
    )

    container = build_container(settings)

    assert container.day_service.scoring_engine.weight_table is WeightTable.PURPOSE
    assert container.day_service.planner.default_wake_time == time(6, 30)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("07:30", time(7, 30)),
        (" 22:05 ", time(22, 5)),
        ("25:00", time(8, 0)),
        ("noon", time(8, 0)),
        (None, time(8, 0)),
        ("", time(8, 0)),
    ],
)
def test_parse_clock_time(raw, expected) -> None:
    assert parse_clock_time(raw, time(8, 0)) == expected
