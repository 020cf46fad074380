"""Service layer coordinating the store, ranking, review queue and lifecycle."""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from config import Settings
from contributions import ContributionLifecycle, parse_status
from errors import AdapterFailure, DefinitionTooShort, InvalidTransition, MissingTerm, TermNotFound
from ingestion import IngestionAdapter, IngestionResult
from models import (
    MODERATION_OUTCOMES,
    CandidateRecord,
    CandidateStatus,
    ContributionBuckets,
    FlagRecord,
    ReviewCard,
    TermRecord,
)
from ranking import CandidateRanking, best_candidate
from review_queue import FlagGesture, QueueSelector, ReviewQueue, VoteDirection
from seed import seed_demo_terms
from storage import TermStore, new_candidate_id, normalize_to_slug

logger = logging.getLogger(__name__)


class GlossaryService:
    """Commands and read models exposed to the HTTP layer."""

    def __init__(
        self,
        store: TermStore | None = None,
        ingestion: IngestionAdapter | None = None,
        selector: QueueSelector | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or Settings()
        self.store = store or TermStore(self.settings.storage_path)
        self.ingestion = ingestion or IngestionAdapter(max_bytes=self.settings.max_upload_bytes)
        self.ranking = CandidateRanking(self.store)
        self.selector = selector or QueueSelector(self.store)
        self.lifecycle = ContributionLifecycle(self.store)

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------
    def upload_text(
        self,
        term: str,
        definition: str,
        source: Optional[str] = None,
        user_id: Optional[str] = None,
        draft: bool = False,
    ) -> Tuple[TermRecord, CandidateRecord]:
        self._require_term(term)
        result = self.ingestion.from_text(definition, source)
        return self._accept(term, result, user_id, draft)

    def upload_file(
        self,
        term: str,
        data: bytes,
        mime_type: str,
        filename: str = "",
        source: Optional[str] = None,
        user_id: Optional[str] = None,
        draft: bool = False,
    ) -> Tuple[TermRecord, CandidateRecord]:
        self._require_term(term)
        try:
            result = self.ingestion.from_file(data, mime_type, filename, source)
        except AdapterFailure as exc:
            logger.warning("Extraction failed for %s (%s): %s", filename or "upload", mime_type, exc)
            raise
        return self._accept(term, result, user_id, draft)

    def _accept(
        self,
        term: str,
        result: IngestionResult,
        user_id: Optional[str],
        draft: bool,
    ) -> Tuple[TermRecord, CandidateRecord]:
        if len(result.text) < self.settings.min_definition_length:
            raise DefinitionTooShort(self.settings.min_definition_length)

        candidate = CandidateRecord(
            id=new_candidate_id(),
            text=result.text,
            source=result.source_label,
            weight=result.initial_weight,
            user_id=user_id or None,
            status=CandidateStatus.DRAFT if draft else CandidateStatus.PENDING,
        )
        entry, candidate = self.store.add_candidate(term, candidate)
        logger.info(
            "Accepted %s definition %s for %s (%d chars, weight %.2f)",
            candidate.status.value,
            candidate.id,
            entry.slug,
            len(candidate.text),
            candidate.weight,
        )
        return entry, candidate

    def _require_term(self, term: str) -> None:
        if not normalize_to_slug(term):
            raise MissingTerm()

    # ------------------------------------------------------------------
    # Read models
    # ------------------------------------------------------------------
    def term(self, slug: str) -> TermRecord:
        entry = self.store.find_by_slug(slug)
        if entry is None:
            raise TermNotFound(slug)
        return entry

    def best(self, slug: str) -> CandidateRecord:
        return best_candidate(self.term(slug))

    def search(self, query: str) -> List[TermRecord]:
        return self.store.search(query)

    def total_terms(self) -> int:
        return self.store.term_count()

    # ------------------------------------------------------------------
    # Review
    # ------------------------------------------------------------------
    def next_card(self) -> Optional[ReviewCard]:
        return self.selector.next_card()

    def review_cards(self, count: Optional[int] = None) -> List[ReviewCard]:
        return self.selector.draw(count or self.settings.queue_size)

    def review_queue(self) -> ReviewQueue:
        return ReviewQueue(self.selector, size=self.settings.queue_size)

    def flag_gesture(self) -> FlagGesture:
        return FlagGesture(threshold_ms=self.settings.flag_hold_ms)

    def vote(self, candidate_id: str, direction: str | VoteDirection) -> Tuple[CandidateRecord, Optional[ReviewCard]]:
        """Apply a raise/lower vote and draw the card that replaces it in the window."""
        parsed = direction if isinstance(direction, VoteDirection) else VoteDirection.parse(direction)
        updated = self.apply_vote(candidate_id, parsed)
        return updated, self.selector.next_card()

    def apply_vote(self, candidate_id: str, direction: VoteDirection) -> CandidateRecord:
        updated = self.ranking.adjust_weight(candidate_id, direction.delta(self.settings.vote_delta))
        logger.info("Vote %s on %s", direction.value, candidate_id)
        return updated

    def flag(self, candidate_id: str, reason: str = "", user_id: Optional[str] = None) -> FlagRecord:
        """Record a moderation signal. Weight and status are left alone."""
        record = self.store.add_flag(candidate_id, (reason or "").strip(), user_id)
        logger.info("Flagged %s on %s: %s", candidate_id, record.slug, record.reason or "(no reason)")
        return record

    def flags(self) -> List[FlagRecord]:
        return self.store.flags()

    # ------------------------------------------------------------------
    # Contributions
    # ------------------------------------------------------------------
    def contributions(self, user_id: str) -> ContributionBuckets:
        return self.lifecycle.list_by_owner(user_id)

    def contribution(self, candidate_id: str) -> Tuple[TermRecord, CandidateRecord]:
        return self.lifecycle.get(candidate_id)

    def submit(self, candidate_id: str) -> CandidateRecord:
        return self.lifecycle.submit(candidate_id)

    def moderate(self, candidate_id: str, outcome: str | CandidateStatus) -> CandidateRecord:
        status = outcome if isinstance(outcome, CandidateStatus) else parse_status(outcome)
        return self.lifecycle.moderate(candidate_id, status)

    def set_status(self, candidate_id: str, status: str) -> CandidateRecord:
        target = parse_status(status)
        if target is CandidateStatus.PENDING:
            return self.lifecycle.submit(candidate_id)
        if target in MODERATION_OUTCOMES:
            return self.lifecycle.moderate(candidate_id, target)
        _, candidate = self.lifecycle.get(candidate_id)
        raise InvalidTransition(candidate_id, candidate.status.value, target.value)

    def remove(self, candidate_id: str) -> CandidateRecord:
        return self.lifecycle.remove(candidate_id)


def build_service(settings: Settings | None = None) -> GlossaryService:
    settings = settings or Settings.from_env()
    service = GlossaryService(settings=settings)
    if settings.seed_demo:
        added = seed_demo_terms(service.store)
        if added:
            logger.info("Seeded %d demo definitions", added)
    return service
