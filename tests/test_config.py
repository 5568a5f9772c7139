from __future__ import annotations

import pytest
from pydantic import ValidationError

from wallmeasure.config import Settings
from wallmeasure.core.models import DetectorParams


def test_defaults_match_detector_defaults():
    s = Settings()
    assert s.REFERENCE_SIZE_FT == pytest.approx(6.5 / 12)
    assert s.detector_params() == DetectorParams()


def test_overrides_flow_into_detector_params():
    params = Settings(ADAPTIVE_BLOCK_SIZE=15, MIN_QUAD_AREA_PX=250.0).detector_params()
    assert params.adaptive_block_size == 15
    assert params.min_quad_area == 250.0


def test_even_block_size_is_rejected():
    with pytest.raises(ValidationError):
        Settings(ADAPTIVE_BLOCK_SIZE=10)


def test_reference_size_must_be_positive():
    with pytest.raises(ValidationError):
        Settings(REFERENCE_SIZE_FT=0.0)


def test_env_override(monkeypatch):
    monkeypatch.setenv("REFERENCE_SIZE_FT", "1.5")
    assert Settings().REFERENCE_SIZE_FT == 1.5
