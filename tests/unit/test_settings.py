from __future__ import annotations

import pytest
from pydantic import ValidationError

from cvblueprint.config import Settings
from cvblueprint.core.matcher import KeyedSemanticMatcher, LLMSemanticMatcher, build_matcher


def test_settings_reject_unknown_matcher_backend() -> None:
    with pytest.raises(ValidationError):
        Settings(matcher_backend="regex")


def test_settings_reject_non_positive_attempts() -> None:
    with pytest.raises(ValidationError):
        Settings(consolidation_max_attempts=0)


def test_cors_origin_list_splits_and_strips() -> None:
    settings = Settings(cors_origins="http://a.test, http://b.test ,")

    assert settings.cors_origin_list == ["http://a.test", "http://b.test"]


def test_build_matcher_follows_backend_setting() -> None:
    assert isinstance(build_matcher(Settings(matcher_backend="keyed")), KeyedSemanticMatcher)
    assert isinstance(
        build_matcher(Settings(matcher_backend="llm", openai_api_key="", local_llm_enabled=False)),
        LLMSemanticMatcher,
    )
