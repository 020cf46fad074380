"""
Unit tests for candidate ranking.
"""

import os
import sys
import threading

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../../backend"))

from errors import CandidateNotFound, EmptyCandidateSet, TermNotFound
from models import CandidateRecord, TermRecord
from ranking import CandidateRanking, best_candidate
from storage import TermStore


def _term(*weights):
    return TermRecord(
        slug="habitus",
        term="Habitus",
        candidates=[
            CandidateRecord(id=f"c{i}", text="A definition long enough.", source="test", weight=w)
            for i, w in enumerate(weights)
        ],
    )


@pytest.mark.unit
def test_best_candidate_picks_highest_weight():
    assert best_candidate(_term(0.72, 0.64)).id == "c0"
    assert best_candidate(_term(0.2, 0.9, 0.5)).id == "c1"


@pytest.mark.unit
def test_best_candidate_tie_goes_to_first_inserted():
    assert best_candidate(_term(0.5, 0.5)).id == "c0"
    assert best_candidate(_term(0.1, 0.7, 0.7)).id == "c1"


@pytest.mark.unit
def test_best_candidate_on_empty_term_fails():
    with pytest.raises(EmptyCandidateSet):
        best_candidate(_term())


class TestCandidateRanking:
    def setup_method(self):
        self.store = TermStore()
        self.store.add_candidate(
            "Habitus",
            CandidateRecord(id="hb-1", text="A definition long enough.", source="test", weight=0.5, updated_at=0.0),
        )
        self.ranking = CandidateRanking(self.store)

    def test_adjust_weight_applies_delta_and_touches(self):
        updated = self.ranking.adjust_weight("hb-1", 0.1)
        assert updated.weight == pytest.approx(0.6)
        assert updated.updated_at > 0.0

    def test_adjust_weight_is_not_clamped(self):
        self.ranking.adjust_weight("hb-1", 0.8)
        assert self.ranking.best_for_slug("habitus").weight == pytest.approx(1.3)
        self.ranking.adjust_weight("hb-1", -2.0)
        assert self.ranking.best_for_slug("habitus").weight == pytest.approx(-0.7)

    def test_concurrent_votes_on_different_candidates_are_not_lost(self):
        self.store.add_candidate(
            "Discourse", CandidateRecord(id="dc-1", text="A definition long enough.", source="test", weight=0.5)
        )
        workers = 16
        rounds = 25
        barrier = threading.Barrier(workers)

        def worker(index):
            candidate_id, delta = ("hb-1", 0.01) if index % 2 == 0 else ("dc-1", -0.01)
            barrier.wait()
            for _ in range(rounds):
                self.ranking.adjust_weight(candidate_id, delta)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        votes_each = workers // 2 * rounds
        assert self.store.get_candidate("hb-1")[1].weight == pytest.approx(0.5 + 0.01 * votes_each)
        assert self.store.get_candidate("dc-1")[1].weight == pytest.approx(0.5 - 0.01 * votes_each)

    def test_adjust_weight_unknown_candidate(self):
        with pytest.raises(CandidateNotFound):
            self.ranking.adjust_weight("missing", 0.1)

    def test_best_for_unknown_slug(self):
        with pytest.raises(TermNotFound):
            self.ranking.best_for_slug("nope")
