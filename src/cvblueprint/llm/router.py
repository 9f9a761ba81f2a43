from __future__ import annotations

import json
import logging
from typing import Any

from cvblueprint.config import Settings, get_settings
from cvblueprint.core.errors import CollaboratorUnavailable
from cvblueprint.llm.prompts import BLUEPRINT_MERGE_PROMPT, BLUEPRINT_MERGE_SYSTEM_PROMPT
from cvblueprint.llm.providers import LLMProvider, ProviderPool

logger = logging.getLogger(__name__)


class LLMRouter:
    def __init__(self, settings: Settings | None = None, pool: ProviderPool | None = None):
        self.settings = settings or get_settings()
        self.pool = pool or ProviderPool(self.settings)

    def merge_blueprint(
        self,
        *,
        existing_profile: dict[str, Any],
        new_cv: dict[str, Any],
        source_id: str,
    ) -> dict[str, Any]:
        """Ask the model for a merged profile. Raises CollaboratorUnavailable when no provider answers."""
        prompt = BLUEPRINT_MERGE_PROMPT.format(
            existing_profile_json=json.dumps(existing_profile, ensure_ascii=True, default=str),
            new_cv_json=json.dumps(new_cv, ensure_ascii=True, default=str),
            source_id=source_id,
        )
        system = BLUEPRINT_MERGE_SYSTEM_PROMPT.format(source_id=source_id)
        return self._call_json(prompt=prompt, system=system)

    def available_providers(self) -> list[LLMProvider]:
        ordered = (
            [self.pool.local(), self.pool.openai()]
            if self.settings.matcher_provider == "local"
            else [self.pool.openai(), self.pool.local()]
        )
        providers: list[LLMProvider] = []
        for provider in ordered:
            if provider.config.name == "openai" and not self.settings.openai_api_key:
                continue
            if provider.config.name == "local" and not self.settings.local_llm_enabled:
                continue
            providers.append(provider)
        return providers

    def _model_for(self, provider: LLMProvider) -> str:
        if provider.config.name == "local":
            return self.settings.local_llm_model
        return self.settings.openai_model_merger

    def _call_json(self, *, prompt: str, system: str) -> dict[str, Any]:
        providers = self.available_providers()
        if not providers:
            raise CollaboratorUnavailable("semantic matcher", "no LLM provider is configured")

        errors: list[str] = []
        for provider in providers:
            try:
                return provider.complete_json(model=self._model_for(provider), prompt=prompt, system=system)
            except Exception as exc:
                logger.warning("LLM JSON call failed provider=%s error=%s", provider.config.name, exc)
                errors.append(f"{provider.config.name}: {exc}")

        raise CollaboratorUnavailable("semantic matcher", "; ".join(errors))
