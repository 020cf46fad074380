"""Demo glossary content loaded into an empty store."""

from __future__ import annotations

from datetime import datetime
from typing import List, Tuple

from models import CandidateRecord, CandidateStatus
from storage import TermStore

# (id, text, source, weight, owner, status, created)
_Row = Tuple[str, str, str, float, str, CandidateStatus, str]

DEMO_TERMS: List[Tuple[str, List[_Row]]] = [
    (
        "Social Construct",
        [
            ("sc-1", "An idea or category whose meaning and significance are produced through social practices rather than inherent natural properties.", "Intro to Sociology, 5th ed.", 0.72, "demo-user-1", CandidateStatus.PUBLISHED, "2024-01-15T10:30:00+00:00"),
            ("sc-2", "A concept that exists because people agree to act as if it exists, shaping institutions and behavior.", "Stanford Encyclopedia (paraphrase)", 0.64, "demo-user-2", CandidateStatus.PUBLISHED, "2024-01-20T14:15:00+00:00"),
        ],
    ),
    (
        "Habitus",
        [
            ("hb-1", "Durable, embodied dispositions that guide perception and action, produced by socialization and history.", "Bourdieu, Outline of a Theory of Practice", 0.68, "demo-user-1", CandidateStatus.PUBLISHED, "2024-01-10T09:45:00+00:00"),
            ("hb-2", "A system of internalized schemes that generate practices consistent with social structures.", "Sociology glossary", 0.59, "demo-user-3", CandidateStatus.PENDING, "2024-01-25T16:20:00+00:00"),
        ],
    ),
    (
        "Discourse",
        [
            ("dc-1", "Structured ways of talking and thinking that construct objects of knowledge and relations of power.", "Foucault reader", 0.61, "demo-user-2", CandidateStatus.PUBLISHED, "2024-01-12T11:30:00+00:00"),
            ("dc-2", "Language-in-use within social contexts that shapes meaning and identities.", "Linguistic anthropology notes", 0.53, "demo-user-1", CandidateStatus.DRAFT, "2024-01-28T08:15:00+00:00"),
        ],
    ),
    (
        "Rational Choice",
        [
            ("rc-1", "A framework modeling individuals as utility-maximizers under constraints and information.", "Microeconomics textbook", 0.58, "demo-user-3", CandidateStatus.PUBLISHED, "2024-01-18T13:45:00+00:00"),
            ("rc-2", "An approach explaining social outcomes via preference-driven choices of actors.", "Analytical sociology overview", 0.5, "demo-user-2", CandidateStatus.REJECTED, "2024-01-22T10:20:00+00:00"),
        ],
    ),
    (
        "Collective Action Problem",
        [
            ("cap-1", "A situation where individually rational behavior leads to suboptimal outcomes for the group.", "Olson, The Logic of Collective Action", 0.66, "demo-user-1", CandidateStatus.PUBLISHED, "2024-01-05T15:30:00+00:00"),
            ("cap-2", "Difficulty coordinating contributions to public goods due to incentives to free ride.", "Political economy notes", 0.6, "demo-user-3", CandidateStatus.PUBLISHED, "2024-01-08T12:10:00+00:00"),
        ],
    ),
]


def seed_demo_terms(store: TermStore) -> int:
    """Load the demo terms if the store is empty. Returns candidates added."""
    if store.term_count():
        return 0
    added = 0
    for term, rows in DEMO_TERMS:
        for candidate_id, text, source, weight, owner, status, created in rows:
            stamp = datetime.fromisoformat(created).timestamp()
            store.add_candidate(
                term,
                CandidateRecord(
                    id=candidate_id,
                    text=text,
                    source=source,
                    weight=weight,
                    user_id=owner,
                    status=status,
                    created_at=stamp,
                    updated_at=stamp,
                ),
            )
            added += 1
    return added
