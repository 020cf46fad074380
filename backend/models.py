"""Shared backend models for the glossary."""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CandidateStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    PUBLISHED = "published"
    REJECTED = "rejected"


MODERATION_OUTCOMES = (CandidateStatus.PUBLISHED, CandidateStatus.REJECTED)


def _timestamp() -> float:
    return time.time()


@dataclass
class CandidateRecord:
    """One proposed definition for a term."""

    id: str
    text: str
    source: str
    weight: float = 0.5
    user_id: Optional[str] = None
    status: CandidateStatus = CandidateStatus.PENDING
    created_at: float = field(default_factory=_timestamp)
    updated_at: float = field(default_factory=_timestamp)

    def touch(self) -> None:
        self.updated_at = time.time()

    def copy(self) -> "CandidateRecord":
        return replace(self)


@dataclass
class TermRecord:
    """A headword and its competing candidates, in insertion order."""

    slug: str
    term: str
    candidates: List[CandidateRecord] = field(default_factory=list)

    def find_candidate(self, candidate_id: str) -> Optional[CandidateRecord]:
        for candidate in self.candidates:
            if candidate.id == candidate_id:
                return candidate
        return None

    def copy(self) -> "TermRecord":
        """Detached copy; changes to it never reach the store."""
        return replace(self, candidates=[c.copy() for c in self.candidates])


@dataclass(frozen=True)
class ReviewCard:
    term: TermRecord
    candidate: CandidateRecord


@dataclass(frozen=True)
class FlagRecord:
    candidate_id: str
    slug: str
    reason: str = ""
    user_id: Optional[str] = None
    created_at: float = field(default_factory=_timestamp)


@dataclass
class ContributionBuckets:
    drafts: List[CandidateRecord] = field(default_factory=list)
    pending: List[CandidateRecord] = field(default_factory=list)
    published: List[CandidateRecord] = field(default_factory=list)
    rejected: List[CandidateRecord] = field(default_factory=list)

    def bucket_for(self, status: CandidateStatus) -> List[CandidateRecord]:
        return {
            CandidateStatus.DRAFT: self.drafts,
            CandidateStatus.PENDING: self.pending,
            CandidateStatus.PUBLISHED: self.published,
            CandidateStatus.REJECTED: self.rejected,
        }[status]


# API payloads

class CandidatePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    text: str
    source: str
    weight: float
    user_id: Optional[str] = Field(default=None, alias="userId")
    status: CandidateStatus
    created_at: float = Field(alias="createdAt")
    updated_at: float = Field(alias="updatedAt")

    @classmethod
    def from_record(cls, record: CandidateRecord) -> "CandidatePayload":
        return cls(
            id=record.id,
            text=record.text,
            source=record.source,
            weight=record.weight,
            user_id=record.user_id,
            status=record.status,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class TermPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    term: str
    slug: str
    candidates: List[CandidatePayload] = Field(default_factory=list)
    best: Optional[CandidatePayload] = None
    total_terms: int = Field(default=0, alias="totalTerms")


class SearchResultPayload(BaseModel):
    term: str
    slug: str


class SearchResponsePayload(BaseModel):
    results: List[SearchResultPayload] = Field(default_factory=list)
    total: int = 0


class ReviewCardPayload(BaseModel):
    term: str
    slug: str
    candidate: CandidatePayload

    @classmethod
    def from_card(cls, card: ReviewCard) -> "ReviewCardPayload":
        return cls(
            term=card.term.term,
            slug=card.term.slug,
            candidate=CandidatePayload.from_record(card.candidate),
        )


class NextCardResponsePayload(BaseModel):
    card: Optional[ReviewCardPayload] = None


class ReviewCardsResponsePayload(BaseModel):
    cards: List[ReviewCardPayload] = Field(default_factory=list)


class VoteResponsePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    candidate: CandidatePayload
    next_card: Optional[ReviewCardPayload] = Field(default=None, alias="next")


class UploadResponsePayload(BaseModel):
    ok: bool = True
    slug: str
    id: str


class ContributionsPayload(BaseModel):
    drafts: List[CandidatePayload] = Field(default_factory=list)
    pending: List[CandidatePayload] = Field(default_factory=list)
    published: List[CandidatePayload] = Field(default_factory=list)
    rejected: List[CandidatePayload] = Field(default_factory=list)

    @classmethod
    def from_buckets(cls, buckets: ContributionBuckets) -> "ContributionsPayload":
        return cls(
            drafts=[CandidatePayload.from_record(c) for c in buckets.drafts],
            pending=[CandidatePayload.from_record(c) for c in buckets.pending],
            published=[CandidatePayload.from_record(c) for c in buckets.published],
            rejected=[CandidatePayload.from_record(c) for c in buckets.rejected],
        )


class ContributionsResponsePayload(BaseModel):
    success: bool = True
    data: ContributionsPayload


class ContributionDetailPayload(BaseModel):
    term: str
    slug: str
    candidate: CandidatePayload


class ContributionResponsePayload(BaseModel):
    success: bool = True
    data: ContributionDetailPayload


class FlagPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    candidate_id: str = Field(alias="candidateId")
    slug: str
    reason: str = ""
    user_id: Optional[str] = Field(default=None, alias="userId")
    created_at: float = Field(alias="createdAt")

    @classmethod
    def from_record(cls, record: FlagRecord) -> "FlagPayload":
        return cls(
            candidate_id=record.candidate_id,
            slug=record.slug,
            reason=record.reason,
            user_id=record.user_id,
            created_at=record.created_at,
        )


class FlagsResponsePayload(BaseModel):
    flags: List[FlagPayload] = Field(default_factory=list)


# Request payloads

class UploadRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    term: str = ""
    definition: str = ""
    source: str = "User submission"
    user_id: Optional[str] = Field(default=None, alias="userId")
    draft: bool = False


class VoteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    candidate_id: str = Field(alias="candidateId")
    direction: str


class FlagRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    candidate_id: str = Field(alias="candidateId")
    reason: str = ""
    user_id: Optional[str] = Field(default=None, alias="userId")


class StatusUpdateRequest(BaseModel):
    status: str = ""


class ModerateRequest(BaseModel):
    outcome: str
