"""Contribution lifecycle: draft -> pending -> published | rejected."""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, Tuple

from errors import InvalidStatus, InvalidTransition
from models import (
    MODERATION_OUTCOMES,
    CandidateRecord,
    CandidateStatus,
    ContributionBuckets,
    TermRecord,
)
from storage import TermStore

logger = logging.getLogger(__name__)

# published and rejected are terminal.
TRANSITIONS: Dict[CandidateStatus, FrozenSet[CandidateStatus]] = {
    CandidateStatus.DRAFT: frozenset({CandidateStatus.PENDING}),
    CandidateStatus.PENDING: frozenset(MODERATION_OUTCOMES),
    CandidateStatus.PUBLISHED: frozenset(),
    CandidateStatus.REJECTED: frozenset(),
}


def parse_status(value: str) -> CandidateStatus:
    try:
        return CandidateStatus((value or "").strip().lower())
    except ValueError:
        raise InvalidStatus(value) from None


class ContributionLifecycle:
    def __init__(self, store: TermStore):
        self.store = store

    def get(self, candidate_id: str) -> Tuple[TermRecord, CandidateRecord]:
        return self.store.get_candidate(candidate_id)

    def submit(self, candidate_id: str) -> CandidateRecord:
        return self.transition(candidate_id, CandidateStatus.PENDING)

    def moderate(self, candidate_id: str, outcome: CandidateStatus) -> CandidateRecord:
        if outcome not in MODERATION_OUTCOMES:
            raise InvalidStatus(outcome.value)
        return self.transition(candidate_id, outcome)

    def transition(self, candidate_id: str, target: CandidateStatus) -> CandidateRecord:
        def apply(candidate: CandidateRecord) -> None:
            if target not in TRANSITIONS[candidate.status]:
                raise InvalidTransition(candidate_id, candidate.status.value, target.value)
            candidate.status = target

        updated = self.store.update_candidate(candidate_id, apply)
        logger.info("Contribution %s is now %s", candidate_id, target.value)
        return updated

    def list_by_owner(self, user_id: str) -> ContributionBuckets:
        buckets = ContributionBuckets()
        for candidate in self.store.candidates_owned_by(user_id):
            buckets.bucket_for(candidate.status).append(candidate)
        return buckets

    def remove(self, candidate_id: str) -> CandidateRecord:
        term, candidate = self.store.remove_candidate(candidate_id)
        logger.info("Deleted contribution %s from %s", candidate_id, term.slug)
        return candidate
