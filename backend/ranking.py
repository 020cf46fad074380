"""Candidate ranking: pick the best definition and nudge weights."""

from __future__ import annotations

import logging
from typing import Optional

from errors import EmptyCandidateSet, TermNotFound
from models import CandidateRecord, TermRecord
from storage import TermStore

logger = logging.getLogger(__name__)


def best_candidate(term: TermRecord) -> CandidateRecord:
    """Highest weight wins; on ties the earliest candidate in the collection wins."""
    best: Optional[CandidateRecord] = None
    for candidate in term.candidates:
        if best is None or candidate.weight > best.weight:
            best = candidate
    if best is None:
        raise EmptyCandidateSet(term.slug)
    return best


class CandidateRanking:
    """Weight adjustment against a store. Weights are not clamped."""

    def __init__(self, store: TermStore):
        self.store = store

    def best_for_slug(self, slug: str) -> CandidateRecord:
        term = self.store.find_by_slug(slug)
        if term is None:
            raise TermNotFound(slug)
        return best_candidate(term)

    def adjust_weight(self, candidate_id: str, delta: float) -> CandidateRecord:
        def apply(candidate: CandidateRecord) -> None:
            candidate.weight += delta

        updated = self.store.update_candidate(candidate_id, apply)
        logger.info("Adjusted weight of %s by %+.3f to %.3f", candidate_id, delta, updated.weight)
        return updated
