"""Unit tests for policy settings"""

import pytest
from decimal import Decimal
from pydantic import ValidationError as SettingsError
from exposure_gateway.config import Settings


def test_default_policy():
    settings = Settings()

    assert settings.payment_waterfall == ["fees", "interest", "principal"]
    weights = settings.matcher_weights()
    assert weights.headroom + weights.utilization + weights.rate + weights.type_match + weights.revolving == Decimal(100)
    assert settings.recommendation_thresholds().strong_savings_percent == Decimal(5)


def test_waterfall_from_environment(monkeypatch):
    monkeypatch.setenv("PAYMENT_WATERFALL", '["interest", "fees", "principal"]')

    assert Settings().payment_waterfall == ["interest", "fees", "principal"]


def test_invalid_waterfall_rejected():
    with pytest.raises(SettingsError):
        Settings(payment_waterfall=["fees", "principal"])


def test_negative_matcher_points_rejected():
    with pytest.raises(SettingsError):
        Settings(matcher_rate_points=Decimal(-1))
