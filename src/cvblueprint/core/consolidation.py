"""Consolidation of source documents into the per-user blueprint.

``add_source`` and ``remove_source`` are the only ways a blueprint changes.
Both are read-modify-write cycles guarded by a compare-and-swap on the
blueprint version; a lost race re-reads and reruns the whole operation, up to
``Settings.consolidation_max_attempts`` times.
"""

from __future__ import annotations

import logging
import threading
from datetime import UTC, datetime
from typing import Protocol, runtime_checkable

from cvblueprint.config import Settings, get_settings
from cvblueprint.core.errors import ConcurrencyConflict, MatcherContractViolation, OperationCancelled
from cvblueprint.core.matcher import SemanticMatcher
from cvblueprint.core.provenance import add_source_id, contributing_sources, detach_source, find_orphans
from cvblueprint.core.scoring import calculate_completeness, calculate_confidence, confidence_impact
from cvblueprint.types import (
    AuditRecord,
    Blueprint,
    BlueprintProfile,
    ConsolidationResult,
    ExtractedCVInfo,
    MatchResult,
    MergeChange,
)

logger = logging.getLogger(__name__)

REMOVAL_IMPACT = {"skills": 0.1, "experience": 0.2, "education": 0.15}


@runtime_checkable
class BlueprintGateway(Protocol):
    def get(self, user_id: str) -> Blueprint | None: ...

    def get_or_create(self, user_id: str) -> Blueprint: ...

    def compare_and_swap(
        self,
        user_id: str,
        expected_version: int,
        blueprint: Blueprint,
        audit: AuditRecord | None = None,
        *,
        source_id: str | None = None,
        extracted: ExtractedCVInfo | None = None,
    ) -> bool: ...

    def append_audit(self, record: AuditRecord) -> AuditRecord: ...


class ConsolidationEngine:
    def __init__(
        self,
        gateway: BlueprintGateway,
        matcher: SemanticMatcher,
        *,
        settings: Settings | None = None,
    ):
        self.gateway = gateway
        self.matcher = matcher
        self.settings = settings or get_settings()

    def add_source(
        self,
        user_id: str,
        source_id: str,
        extracted: ExtractedCVInfo,
        *,
        cancel_event: threading.Event | None = None,
    ) -> ConsolidationResult:
        if not source_id:
            raise ValueError("source_id is required")

        expected_version = 0
        for attempt in range(1, self.settings.consolidation_max_attempts + 1):
            current = self.gateway.get_or_create(user_id)
            expected_version = current.version

            result = self.matcher.match(current.profile.model_copy(deep=True), extracted, source_id)
            profile = self._accept(result, source_id)
            _raise_if_cancelled(cancel_event, user_id, source_id)

            is_new_source = source_id not in current.source_ids
            content_changed = not profile.content_equals(current.profile)
            if not is_new_source and not content_changed:
                logger.info("Source already merged user_id=%s source_id=%s", user_id, source_id)
                return ConsolidationResult(blueprint=current, summary=result.summary, applied=False)

            updated = _next_state(
                current,
                profile,
                new_items=result.summary.new_items,
                source_ids=add_source_id(current.source_ids, source_id),
                total_sources_processed=current.total_sources_processed + (1 if is_new_source else 0),
                processed_at=datetime.now(UTC),
            )
            audit = None
            if result.changes or content_changed:
                descriptions = ", ".join(change.description for change in result.changes)
                audit = AuditRecord(
                    user_id=user_id,
                    change_type="source_added",
                    source_id=source_id,
                    previous_profile=current.profile.model_dump(mode="json"),
                    new_profile=profile.model_dump(mode="json"),
                    summary_text=f"Processed CV: {descriptions}" if descriptions else f"Processed CV {source_id}",
                    confidence_impact=confidence_impact(result.summary),
                )

            if self.gateway.compare_and_swap(
                user_id,
                expected_version,
                updated,
                audit,
                source_id=source_id,
                extracted=extracted,
            ):
                logger.info(
                    "Merged source user_id=%s source_id=%s version=%s new_items=%s",
                    user_id,
                    source_id,
                    updated.version,
                    result.summary.new_items,
                )
                return ConsolidationResult(blueprint=updated, changes=result.changes, summary=result.summary)

            logger.info("Retrying add_source after conflict user_id=%s attempt=%s", user_id, attempt)

        raise ConcurrencyConflict(user_id, expected_version, self.settings.consolidation_max_attempts)

    def remove_source(
        self,
        user_id: str,
        source_id: str,
        *,
        cancel_event: threading.Event | None = None,
    ) -> ConsolidationResult:
        expected_version = 0
        for attempt in range(1, self.settings.consolidation_max_attempts + 1):
            current = self.gateway.get(user_id)
            if current is None:
                logger.info("No blueprint to remove from user_id=%s source_id=%s", user_id, source_id)
                return ConsolidationResult(blueprint=Blueprint(user_id=user_id), applied=False)
            expected_version = current.version

            known = source_id in current.source_ids or source_id in contributing_sources(current.profile)
            if not known:
                logger.info("Source not part of blueprint user_id=%s source_id=%s", user_id, source_id)
                return ConsolidationResult(blueprint=current, applied=False)

            outcome = detach_source(current.profile, source_id)
            changes = [
                MergeChange(type="removal", description=f"Removed {label}", impact=0.0)
                for label in outcome.dropped_labels
            ]
            detached_only = sum(outcome.detached.values()) - sum(outcome.dropped.values())
            if detached_only:
                changes.append(
                    MergeChange(
                        type="provenance",
                        description=f"Detached source from {detached_only} shared entries",
                        impact=0.0,
                    )
                )

            updated = _next_state(
                current,
                outcome.profile,
                new_items=0,
                source_ids=[item for item in current.source_ids if item != source_id],
                total_sources_processed=max(0, current.total_sources_processed - 1),
                processed_at=current.last_source_processed_at,
            )
            audit = AuditRecord(
                user_id=user_id,
                change_type="source_removed",
                source_id=source_id,
                previous_profile=current.profile.model_dump(mode="json"),
                new_profile=outcome.profile.model_dump(mode="json"),
                summary_text=f"Removed CV {source_id}: {len(outcome.dropped_labels)} entries dropped",
                confidence_impact=-sum(
                    REMOVAL_IMPACT[section] * count for section, count in outcome.dropped.items()
                ),
            )

            _raise_if_cancelled(cancel_event, user_id, source_id)
            if self.gateway.compare_and_swap(user_id, expected_version, updated, audit):
                logger.info(
                    "Removed source user_id=%s source_id=%s version=%s dropped=%s",
                    user_id,
                    source_id,
                    updated.version,
                    outcome.dropped,
                )
                return ConsolidationResult(blueprint=updated, changes=changes)

            logger.info("Retrying remove_source after conflict user_id=%s attempt=%s", user_id, attempt)

        raise ConcurrencyConflict(user_id, expected_version, self.settings.consolidation_max_attempts)

    @staticmethod
    def _accept(result: MatchResult, source_id: str) -> BlueprintProfile:
        orphans = find_orphans(result.new_profile)
        if orphans:
            logger.warning("Matcher contract violation source_id=%s orphans=%s", source_id, len(orphans))
            raise MatcherContractViolation(
                f"semantic matcher returned {len(orphans)} entries without sources",
                violations=orphans,
            )
        return result.new_profile


def _next_state(
    current: Blueprint,
    profile: BlueprintProfile,
    *,
    new_items: int,
    source_ids: list[str],
    total_sources_processed: int,
    processed_at: datetime | None,
) -> Blueprint:
    return current.model_copy(
        update={
            "profile": profile,
            "version": current.version + 1,
            "source_ids": source_ids,
            "total_sources_processed": total_sources_processed,
            "completeness_score": calculate_completeness(profile),
            "confidence_score": calculate_confidence(profile, new_items),
            "last_source_processed_at": processed_at,
        }
    )


def _raise_if_cancelled(cancel_event: threading.Event | None, user_id: str, source_id: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        logger.info("Discarding cancelled write user_id=%s source_id=%s", user_id, source_id)
        raise OperationCancelled(f"operation on source {source_id} for user {user_id} was cancelled")
