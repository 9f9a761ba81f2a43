from __future__ import annotations

import pytest

from cvblueprint.config import Settings
from cvblueprint.core.errors import CollaboratorUnavailable, MatcherContractViolation
from cvblueprint.core.matcher import LLMSemanticMatcher
from cvblueprint.llm.providers import ProviderConfig
from cvblueprint.llm.router import LLMRouter
from cvblueprint.types import BlueprintProfile, ExtractedCVInfo


class ScriptedProvider:
    def __init__(self, name: str, outcome):
        self.config = ProviderConfig(name=name, base_url="http://fake", api_key="k", timeout_sec=1)
        self.outcome = outcome
        self.calls: list[dict] = []

    def complete_json(self, *, model: str, prompt: str, system: str = "") -> dict:
        self.calls.append({"model": model, "prompt": prompt, "system": system})
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


class ScriptedPool:
    def __init__(self, *, openai=None, local=None):
        self._openai = openai or ScriptedProvider("openai", RuntimeError("openai down"))
        self._local = local or ScriptedProvider("local", RuntimeError("local down"))

    def openai(self):
        return self._openai

    def local(self):
        return self._local


MERGED = {
    "newProfile": {
        "personal": {"name": "Ada Lovelace"},
        "contact": {"email": "ada@example.com"},
        "experience": [
            {"title": "Software Engineer", "company": "Tech Co", "dates": "2020-2022", "sources": ["h1", "h2"]}
        ],
        "skills": [{"name": "React", "sources": ["h2"]}],
    },
    "changes": [{"type": "experience", "description": "Merged Software Developer into Software Engineer"}],
    "summary": {"newSkills": 1, "newExperience": 0, "newEducation": 0, "updatedFields": 1},
}


def _settings(**overrides) -> Settings:
    data = {"openai_api_key": "sk-test", "local_llm_enabled": True, "matcher_backend": "llm"}
    data.update(overrides)
    return Settings(**data)


def _match(router: LLMRouter):
    return LLMSemanticMatcher(router).match(
        BlueprintProfile(),
        ExtractedCVInfo.model_validate({"name": "Ada Lovelace", "skills": ["React.js"]}),
        "h2",
    )


def test_llm_matcher_parses_camel_case_payload() -> None:
    openai = ScriptedProvider("openai", MERGED)
    router = LLMRouter(settings=_settings(), pool=ScriptedPool(openai=openai))

    result = _match(router)

    assert result.new_profile.experience[0].role == "Software Engineer"
    assert result.new_profile.experience[0].sources == ["h1", "h2"]
    assert result.summary.new_skills == 1
    assert openai.calls[0]["model"] == "gpt-4o"
    assert '"h2"' in openai.calls[0]["system"]
    assert "source_hash" in openai.calls[0]["prompt"]


def test_router_falls_back_to_next_provider() -> None:
    local = ScriptedProvider("local", MERGED)
    router = LLMRouter(settings=_settings(local_llm_model="qwen"), pool=ScriptedPool(local=local))

    result = _match(router)

    assert result.new_profile.personal.name == "Ada Lovelace"
    assert local.calls[0]["model"] == "qwen"


def test_local_provider_is_tried_first_when_preferred() -> None:
    openai = ScriptedProvider("openai", MERGED)
    local = ScriptedProvider("local", MERGED)
    router = LLMRouter(settings=_settings(matcher_provider="local"), pool=ScriptedPool(openai=openai, local=local))

    _match(router)

    assert len(local.calls) == 1
    assert openai.calls == []


def test_no_configured_provider_is_unavailable() -> None:
    router = LLMRouter(settings=_settings(openai_api_key="", local_llm_enabled=False), pool=ScriptedPool())

    with pytest.raises(CollaboratorUnavailable) as exc_info:
        _match(router)

    assert exc_info.value.collaborator == "semantic matcher"


def test_every_provider_failing_is_unavailable() -> None:
    router = LLMRouter(settings=_settings(), pool=ScriptedPool())

    with pytest.raises(CollaboratorUnavailable, match="openai down; local: local down"):
        _match(router)


def test_empty_model_output_is_a_contract_violation() -> None:
    router = LLMRouter(settings=_settings(), pool=ScriptedPool(openai=ScriptedProvider("openai", {})))

    with pytest.raises(MatcherContractViolation):
        _match(router)


def test_malformed_profile_is_a_contract_violation() -> None:
    bad = {"newProfile": {"experience": "not a list"}}
    router = LLMRouter(settings=_settings(), pool=ScriptedPool(openai=ScriptedProvider("openai", bad)))

    with pytest.raises(MatcherContractViolation) as exc_info:
        _match(router)

    assert exc_info.value.violations
