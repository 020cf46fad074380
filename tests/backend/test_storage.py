"""
Unit tests for the TermStore and slug normalization.
"""

import os
import sys
import threading

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../../backend"))

import storage
from errors import CandidateNotFound, MissingTerm
from models import CandidateRecord, CandidateStatus
from storage import TermStore, display_form, normalize_to_slug


def _candidate(candidate_id, text="A definition long enough.", weight=0.5, user_id=None):
    return CandidateRecord(id=candidate_id, text=text, source="test", weight=weight, user_id=user_id)


@pytest.mark.unit
class TestSlugNormalization:
    def test_lowercases_and_hyphenates(self):
        assert normalize_to_slug("Social Construct") == "social-construct"

    def test_trims_and_collapses_whitespace(self):
        assert normalize_to_slug("  Collective \t Action\n Problem ") == "collective-action-problem"

    def test_percent_encodes_non_ascii(self):
        assert normalize_to_slug("Café") == "caf%C3%A9"

    def test_keeps_uri_component_safe_characters(self):
        assert normalize_to_slug("it's (sort of)") == "it's-(sort-of)"
        assert normalize_to_slug("a/b") == "a%2Fb"

    @pytest.mark.parametrize("term", ["Habitus", "Social Construct", "Café au lait", "  x  y ", "a/b & c"])
    def test_idempotent_through_display_form(self, term):
        slug = normalize_to_slug(term)
        assert normalize_to_slug(display_form(slug)) == slug

    def test_blank_term_has_empty_slug(self):
        assert normalize_to_slug("   ") == ""


@pytest.mark.unit
class TestTermStore:
    def setup_method(self):
        self.store = TermStore()

    def test_upsert_returns_existing_term(self):
        first = self.store.upsert_term("Habitus")
        second = self.store.upsert_term("habitus ")
        assert first == second
        assert second.term == "Habitus"
        assert self.store.term_count() == 1

    def test_upsert_rejects_blank_term(self):
        with pytest.raises(MissingTerm):
            self.store.upsert_term("  ")

    def test_concurrent_upserts_create_one_term(self):
        results = []
        barrier = threading.Barrier(16)

        def worker():
            barrier.wait()
            results.append(self.store.upsert_term("Habitus"))

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 16
        assert all(entry == results[0] for entry in results)
        assert self.store.term_count() == 1

    def test_find_by_slug_accepts_encoded_and_decoded_forms(self):
        self.store.add_candidate("Café", _candidate("c1"))
        assert self.store.find_by_slug("caf%C3%A9").term == "Café"
        assert self.store.find_by_slug("café").term == "Café"
        assert self.store.find_by_slug("missing") is None

    def test_find_by_slug_accepts_uppercase_escapes(self):
        self.store.add_candidate("Café", _candidate("c1"))
        assert self.store.find_by_slug("CAF%C3%A9").term == "Café"
        assert self.store.find_by_slug("caf%c3%a9").term == "Café"

    def test_find_by_slug_keeps_literal_percent_terms(self):
        self.store.add_candidate("a%41", _candidate("c1"))
        assert self.store.find_by_slug("a%2541").term == "a%41"
        assert self.store.find_by_slug("a%41").term == "a%41"

    def test_search_is_case_insensitive_substring(self):
        self.store.add_candidate("Social Construct", _candidate("c1"))
        self.store.add_candidate("Rational Choice", _candidate("c2"))
        assert [t.term for t in self.store.search("CONSTR")] == ["Social Construct"]
        assert [t.term for t in self.store.search("o")] == ["Social Construct", "Rational Choice"]

    def test_empty_search_returns_nothing(self):
        self.store.add_candidate("Habitus", _candidate("c1"))
        assert self.store.search("") == []
        assert self.store.search("   ") == []

    def test_add_candidate_keeps_insertion_order(self):
        self.store.add_candidate("Habitus", _candidate("a"))
        entry, _ = self.store.add_candidate("Habitus", _candidate("b"))
        assert [c.id for c in entry.candidates] == ["a", "b"]

    def test_colliding_ids_are_regenerated_across_terms(self):
        self.store.add_candidate("Habitus", _candidate("same"))
        _, second = self.store.add_candidate("Discourse", _candidate("same"))
        assert second.id != "same"
        assert self.store.candidate_count() == 2
        term, _ = self.store.get_candidate(second.id)
        assert term.term == "Discourse"

    def test_update_candidate_refreshes_updated_at(self):
        candidate = _candidate("c1")
        candidate.updated_at = 0.0
        self.store.add_candidate("Habitus", candidate)

        def apply(c):
            c.weight = 0.9

        updated = self.store.update_candidate("c1", apply)
        assert updated.weight == 0.9
        assert updated.updated_at > 0.0

    def test_failed_mutation_leaves_candidate_untouched(self):
        candidate = _candidate("c1")
        candidate.updated_at = 0.0
        self.store.add_candidate("Habitus", candidate)

        def reject(_):
            raise RuntimeError("nope")

        with pytest.raises(RuntimeError):
            self.store.update_candidate("c1", reject)
        _, stored = self.store.get_candidate("c1")
        assert stored.updated_at == 0.0

    def test_mutation_that_changes_then_raises_is_discarded(self):
        self.store.add_candidate("Habitus", _candidate("c1"))

        def half_done(c):
            c.weight = 9.0
            raise RuntimeError("nope")

        with pytest.raises(RuntimeError):
            self.store.update_candidate("c1", half_done)
        assert self.store.get_candidate("c1")[1].weight == 0.5

    def test_reads_are_detached_from_the_store(self):
        self.store.add_candidate("Habitus", _candidate("c1"))

        entry = self.store.find_by_slug("habitus")
        entry.candidates.append(_candidate("rogue"))
        entry.candidates[0].weight = 42.0
        self.store.search("hab")[0].candidates.clear()
        self.store.pairs()[0].candidate.status = CandidateStatus.REJECTED
        _, candidate = self.store.get_candidate("c1")
        candidate.weight = -1.0

        assert len(self.store.pairs()) == self.store.candidate_count() == 1
        _, stored = self.store.get_candidate("c1")
        assert stored.weight == 0.5
        assert stored.status is CandidateStatus.PENDING
        with pytest.raises(CandidateNotFound):
            self.store.get_candidate("rogue")

    def test_added_candidate_is_copied_in(self):
        candidate = _candidate("c1")
        self.store.add_candidate("Habitus", candidate)
        candidate.weight = 42.0
        assert self.store.get_candidate("c1")[1].weight == 0.5

    def test_remove_candidate(self):
        self.store.add_candidate("Habitus", _candidate("a"))
        self.store.add_candidate("Habitus", _candidate("b"))
        self.store.remove_candidate("a")

        entry = self.store.find_by_slug("habitus")
        assert [c.id for c in entry.candidates] == ["b"]
        with pytest.raises(CandidateNotFound):
            self.store.remove_candidate("a")
        with pytest.raises(CandidateNotFound):
            self.store.get_candidate("a")

    def test_pairs_flatten_every_candidate(self):
        self.store.add_candidate("Habitus", _candidate("a"))
        self.store.add_candidate("Habitus", _candidate("b"))
        self.store.add_candidate("Discourse", _candidate("c"))
        pairs = self.store.pairs()
        assert [(p.term.slug, p.candidate.id) for p in pairs] == [
            ("habitus", "a"),
            ("habitus", "b"),
            ("discourse", "c"),
        ]

    def test_candidates_owned_by(self):
        self.store.add_candidate("Habitus", _candidate("a", user_id="u1"))
        self.store.add_candidate("Discourse", _candidate("b", user_id="u2"))
        self.store.add_candidate("Discourse", _candidate("c", user_id="u1"))
        assert [c.id for c in self.store.candidates_owned_by("u1")] == ["a", "c"]


@pytest.mark.unit
class TestTermStorePersistence:
    def test_snapshot_is_reloaded(self, tmp_path):
        path = tmp_path / "glossary.json"
        store = TermStore(path)
        candidate = _candidate("c1", weight=0.72, user_id="u1")
        candidate.status = CandidateStatus.PUBLISHED
        store.add_candidate("Social Construct", candidate)
        store.add_candidate("Habitus", _candidate("c2"))
        store.remove_candidate("c2")

        reloaded = TermStore(path)
        entry = reloaded.find_by_slug("social-construct")
        assert entry.term == "Social Construct"
        assert entry.candidates[0].weight == 0.72
        assert entry.candidates[0].status is CandidateStatus.PUBLISHED
        assert entry.candidates[0].user_id == "u1"
        assert reloaded.find_by_slug("habitus").candidates == []
        assert reloaded.candidate_count() == 1

    def test_missing_snapshot_starts_empty(self, tmp_path):
        store = TermStore(tmp_path / "nothing-here.json")
        assert store.term_count() == 0

    def test_flags_are_reloaded(self, tmp_path):
        path = tmp_path / "glossary.json"
        store = TermStore(path)
        store.add_candidate("Habitus", _candidate("c1"))
        record = store.add_flag("c1", "spam", "u9")

        reloaded = TermStore(path)
        assert reloaded.flags() == [record]

    def test_flag_unknown_candidate(self):
        with pytest.raises(CandidateNotFound):
            TermStore().add_flag("missing")


@pytest.mark.unit
class TestFailedSnapshotWrite:
    """A change whose snapshot write fails is not kept in memory or on disk."""

    def setup_method(self):
        self.failing = False

    def _store(self, tmp_path, monkeypatch):
        real_dump = storage.json.dump

        def dump(payload, handle, **kwargs):
            if self.failing:
                raise OSError("disk full")
            return real_dump(payload, handle, **kwargs)

        monkeypatch.setattr(storage.json, "dump", dump)
        self.path = tmp_path / "glossary.json"
        store = TermStore(self.path)
        store.add_candidate("Discourse", _candidate("dc-1"))
        self.failing = True
        return store

    def test_new_term_is_not_left_empty(self, tmp_path, monkeypatch):
        store = self._store(tmp_path, monkeypatch)
        with pytest.raises(OSError):
            store.add_candidate("Habitus", _candidate("hb-1"))

        assert store.find_by_slug("habitus") is None
        assert store.term_count() == 1
        assert store.candidate_count() == 1
        with pytest.raises(CandidateNotFound):
            store.get_candidate("hb-1")

        self.failing = False
        store.add_candidate("Discourse", _candidate("dc-2"))
        assert TermStore(self.path).find_by_slug("habitus") is None

    def test_candidate_on_existing_term_is_rolled_back(self, tmp_path, monkeypatch):
        store = self._store(tmp_path, monkeypatch)
        with pytest.raises(OSError):
            store.add_candidate("Discourse", _candidate("dc-2"))
        assert [c.id for c in store.find_by_slug("discourse").candidates] == ["dc-1"]

    def test_bare_upsert_is_rolled_back(self, tmp_path, monkeypatch):
        store = self._store(tmp_path, monkeypatch)
        with pytest.raises(OSError):
            store.upsert_term("Habitus")
        assert store.find_by_slug("habitus") is None

    def test_update_is_rolled_back(self, tmp_path, monkeypatch):
        store = self._store(tmp_path, monkeypatch)

        def raise_weight(c):
            c.weight = 0.9

        with pytest.raises(OSError):
            store.update_candidate("dc-1", raise_weight)
        assert store.get_candidate("dc-1")[1].weight == 0.5
        assert TermStore(self.path).get_candidate("dc-1")[1].weight == 0.5

    def test_remove_is_rolled_back(self, tmp_path, monkeypatch):
        store = self._store(tmp_path, monkeypatch)
        with pytest.raises(OSError):
            store.remove_candidate("dc-1")
        term, _ = store.get_candidate("dc-1")
        assert [c.id for c in term.candidates] == ["dc-1"]

    def test_flag_is_rolled_back(self, tmp_path, monkeypatch):
        store = self._store(tmp_path, monkeypatch)
        with pytest.raises(OSError):
            store.add_flag("dc-1", "spam")
        assert store.flags() == []
