"""Term store: terms, their candidate definitions, flags, and an optional JSON snapshot."""

from __future__ import annotations

import json
import logging
import os
import re
import threading
import uuid
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple
from urllib.parse import quote, unquote

from errors import CandidateNotFound, MissingTerm
from models import CandidateRecord, CandidateStatus, FlagRecord, ReviewCard, TermRecord

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
# Characters encodeURIComponent leaves alone.
_SLUG_SAFE = "-_.!~*'()"


def normalize_to_slug(term: str) -> str:
    """Trim, lowercase, collapse whitespace runs to '-', then percent-encode."""
    lowered = (term or "").strip().lower()
    return quote(_WHITESPACE_RE.sub("-", lowered), safe=_SLUG_SAFE)


def display_form(slug: str) -> str:
    """Decode a slug back into a term that normalizes to the same slug."""
    return unquote(slug)


def new_candidate_id() -> str:
    return uuid.uuid4().hex


class TermStore:
    """Thread-safe in-memory repository with an optional JSON snapshot on disk.

    All state lives behind one re-entrant lock. Reads hand out detached copies
    built under the lock, so every change goes through a store method. A change
    is only kept once the snapshot write succeeds; if the write fails the
    in-memory state is put back and the error propagates.
    """

    def __init__(self, path: Optional[Path] = None):
        self._lock = threading.RLock()
        self._terms: Dict[str, TermRecord] = {}
        self._owners: Dict[str, str] = {}
        self._flags: List[FlagRecord] = []
        self.path = Path(path) if path else None
        if self.path is not None:
            self._load()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def find_by_slug(self, slug: str) -> Optional[TermRecord]:
        with self._lock:
            entry = self._terms.get(slug)
            if entry is None and slug:
                # Routers hand over decoded path segments, clients sometimes
                # send undecoded ones with uppercase escapes; accept both.
                entry = self._terms.get(normalize_to_slug(slug)) or self._terms.get(
                    normalize_to_slug(unquote(slug))
                )
            return entry.copy() if entry is not None else None

    def upsert_term(self, term: str) -> TermRecord:
        with self._lock:
            entry, created = self._upsert_locked(term)
            if created:
                try:
                    self._persist()
                except Exception:
                    del self._terms[entry.slug]
                    raise
            return entry.copy()

    def search(self, query: str) -> List[TermRecord]:
        needle = (query or "").strip().lower()
        if not needle:
            return []
        with self._lock:
            return [entry.copy() for entry in self._terms.values() if needle in entry.term.lower()]

    def add_candidate(self, term: str, candidate: CandidateRecord) -> Tuple[TermRecord, CandidateRecord]:
        """Upsert the term and append a copy of the candidate as one step.

        Returns the term and the stored candidate, whose id may differ from
        the one passed in if that id was already taken.
        """
        with self._lock:
            entry, created = self._upsert_locked(term)
            stored = candidate.copy()
            while stored.id in self._owners:
                stored.id = new_candidate_id()
            entry.candidates.append(stored)
            self._owners[stored.id] = entry.slug
            try:
                self._persist()
            except Exception:
                entry.candidates.pop()
                del self._owners[stored.id]
                if created:
                    del self._terms[entry.slug]
                raise
            return entry.copy(), stored.copy()

    def get_candidate(self, candidate_id: str) -> Tuple[TermRecord, CandidateRecord]:
        with self._lock:
            entry, _ = self._locate(candidate_id)
            snapshot = entry.copy()
            return snapshot, snapshot.find_candidate(candidate_id)

    def update_candidate(
        self, candidate_id: str, mutate: Callable[[CandidateRecord], None]
    ) -> CandidateRecord:
        """Apply `mutate` to a working copy under the store lock, then swap it in.

        If `mutate` raises, nothing changes. `updated_at` is refreshed on success.
        """
        with self._lock:
            entry, current = self._locate(candidate_id)
            working = current.copy()
            mutate(working)
            working.id = current.id
            working.touch()
            index = entry.candidates.index(current)
            entry.candidates[index] = working
            try:
                self._persist()
            except Exception:
                entry.candidates[index] = current
                raise
            return working.copy()

    def remove_candidate(self, candidate_id: str) -> Tuple[TermRecord, CandidateRecord]:
        with self._lock:
            entry, candidate = self._locate(candidate_id)
            previous = entry.candidates
            entry.candidates = [c for c in previous if c.id != candidate_id]
            del self._owners[candidate_id]
            try:
                self._persist()
            except Exception:
                entry.candidates = previous
                self._owners[candidate_id] = entry.slug
                raise
            return entry.copy(), candidate.copy()

    def pairs(self) -> List[ReviewCard]:
        with self._lock:
            cards = []
            for entry in self._terms.values():
                snapshot = entry.copy()
                cards.extend(ReviewCard(term=snapshot, candidate=c) for c in snapshot.candidates)
            return cards

    def candidates_owned_by(self, user_id: str) -> List[CandidateRecord]:
        with self._lock:
            return [
                candidate.copy()
                for entry in self._terms.values()
                for candidate in entry.candidates
                if candidate.user_id == user_id
            ]

    def add_flag(self, candidate_id: str, reason: str = "", user_id: Optional[str] = None) -> FlagRecord:
        with self._lock:
            entry, _ = self._locate(candidate_id)
            record = FlagRecord(candidate_id=candidate_id, slug=entry.slug, reason=reason, user_id=user_id)
            self._flags.append(record)
            try:
                self._persist()
            except Exception:
                self._flags.pop()
                raise
            return record

    def flags(self) -> List[FlagRecord]:
        with self._lock:
            return list(self._flags)

    def term_count(self) -> int:
        with self._lock:
            return len(self._terms)

    def candidate_count(self) -> int:
        with self._lock:
            return len(self._owners)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _upsert_locked(self, term: str) -> Tuple[TermRecord, bool]:
        display = (term or "").strip()
        if not display:
            raise MissingTerm()
        slug = normalize_to_slug(display)
        entry = self._terms.get(slug)
        if entry is not None:
            return entry, False
        entry = TermRecord(slug=slug, term=display)
        self._terms[slug] = entry
        logger.info("Registered term %r as %s", display, slug)
        return entry, True

    def _locate(self, candidate_id: str) -> Tuple[TermRecord, CandidateRecord]:
        slug = self._owners.get(candidate_id)
        entry = self._terms.get(slug) if slug is not None else None
        candidate = entry.find_candidate(candidate_id) if entry is not None else None
        if entry is None or candidate is None:
            raise CandidateNotFound(candidate_id)
        return entry, candidate

    def _load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        with open(self.path, "r", encoding="utf-8") as handle:
            raw = json.load(handle)

        for item in raw.get("terms", []):
            entry = TermRecord(slug=item["slug"], term=item["term"])
            for data in item.get("candidates", []):
                candidate = self._read_candidate(data)
                if candidate.id in self._owners:
                    logger.warning("Skipping duplicate candidate id %s in %s", candidate.id, self.path)
                    continue
                entry.candidates.append(candidate)
                self._owners[candidate.id] = entry.slug
            self._terms[entry.slug] = entry
        for data in raw.get("flags", []):
            self._flags.append(
                FlagRecord(
                    candidate_id=data["candidate_id"],
                    slug=data["slug"],
                    reason=data.get("reason", ""),
                    user_id=data.get("user_id"),
                    created_at=float(data["created_at"]),
                )
            )
        logger.info("Loaded %d terms and %d flags from %s", len(self._terms), len(self._flags), self.path)

    def _read_candidate(self, data: dict) -> CandidateRecord:
        return CandidateRecord(
            id=data["id"],
            text=data["text"],
            source=data.get("source", ""),
            weight=float(data.get("weight", 0.5)),
            user_id=data.get("user_id"),
            status=CandidateStatus(data.get("status", CandidateStatus.PENDING.value)),
            created_at=float(data["created_at"]),
            updated_at=float(data["updated_at"]),
        )

    def _persist(self) -> None:
        if self.path is None:
            return
        payload = {
            "terms": [
                {
                    "slug": entry.slug,
                    "term": entry.term,
                    "candidates": [self._write_candidate(c) for c in entry.candidates],
                }
                for entry in self._terms.values()
            ],
            "flags": [
                {
                    "candidate_id": flag.candidate_id,
                    "slug": flag.slug,
                    "reason": flag.reason,
                    "user_id": flag.user_id,
                    "created_at": flag.created_at,
                }
                for flag in self._flags
            ],
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)
        os.replace(tmp_path, self.path)

    def _write_candidate(self, record: CandidateRecord) -> dict:
        return {
            "id": record.id,
            "text": record.text,
            "source": record.source,
            "weight": record.weight,
            "user_id": record.user_id,
            "status": record.status.value,
            "created_at": record.created_at,
            "updated_at": record.updated_at,
        }
