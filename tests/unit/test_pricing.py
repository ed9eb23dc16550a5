"""Unit tests for geo-grid credit pricing."""

import pytest

from config.settings import settings
from src.gg_credits.domain.pricing import calculate_geogrid_cost


class TestCalculateGeogridCost:
    def test_default_curve(self) -> None:
        assert calculate_geogrid_cost(9) == 19
        assert calculate_geogrid_cost(25) == 35
        assert calculate_geogrid_cost(49) == 59

    def test_zero_points_is_base_cost(self) -> None:
        assert calculate_geogrid_cost(0) == settings.GEOGRID_BASE_CREDITS

    def test_deterministic(self) -> None:
        assert calculate_geogrid_cost(5) == calculate_geogrid_cost(5)

    def test_follows_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "GEOGRID_BASE_CREDITS", 0)
        monkeypatch.setattr(settings, "GEOGRID_CREDITS_PER_POINT", 2)
        assert calculate_geogrid_cost(5) == 10

    def test_negative_points_rejected(self) -> None:
        with pytest.raises(ValueError):
            calculate_geogrid_cost(-1)
