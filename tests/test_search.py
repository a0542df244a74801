"""Tests for hybrid ranking."""

from __future__ import annotations

import math

import numpy as np
import pytest

from excerptfinder.config import RetrievalConfig
from excerptfinder.index.corpus import CorpusIndex
from excerptfinder.index.search import HybridSearcher, cosine_similarity, lexical_score
from excerptfinder.models import Record
from excerptfinder.utils.text import tokenize

from conftest import DUTY_CORPUS, make_records


def _record(record_id: str, text: str, values=(1.0,)) -> Record:
    return Record(id=record_id, values=tuple(values), metadata={}, text=text)


class TestCosineSimilarity:
    """Test the truncating dot product."""

    def test_identical_unit_vectors(self) -> None:
        vector = np.array([0.6, 0.8])

        assert cosine_similarity(vector, vector) == pytest.approx(1.0)

    def test_orthogonal(self) -> None:
        assert cosine_similarity(np.array([1.0, 0.0]), np.array([0.0, 1.0])) == 0.0

    def test_truncates_to_shorter_vector(self) -> None:
        a = np.array([0.5, 0.5, 0.5])
        b = np.array([1.0, 1.0])

        assert cosine_similarity(a, b) == pytest.approx(1.0)
        assert cosine_similarity(b, a) == pytest.approx(1.0)

    def test_empty_vector(self) -> None:
        assert cosine_similarity(np.array([]), np.array([1.0])) == 0.0
        assert cosine_similarity(np.array([]), np.array([])) == 0.0


class TestLexicalScore:
    """Test IDF-weighted keyword overlap."""

    @pytest.fixture
    def index(self) -> CorpusIndex:
        return CorpusIndex.build(
            [
                _record("a", "duty duty duty duty"),
                _record("b", "duty and dharma"),
                _record("c", "battle chariot"),
            ]
        )

    def test_no_query_tokens(self, index: CorpusIndex) -> None:
        assert lexical_score([], index.records[0], index) == 0.0

    def test_no_hits(self, index: CorpusIndex) -> None:
        assert lexical_score(["duty"], index.records[2], index) == 0.0

    def test_single_hit_full_score(self, index: CorpusIndex) -> None:
        assert lexical_score(["duty"], index.records[1], index) == pytest.approx(1.0)

    def test_repeated_term_is_capped_and_clamped(self, index: CorpusIndex) -> None:
        # 1 + ln(4) exceeds the 1.5 cap, and the ratio is clamped to 1
        assert lexical_score(["duty"], index.records[0], index) == 1.0

    def test_capped_weight_in_mixed_query(self, index: CorpusIndex) -> None:
        query = ["duty", "unseen", "other", "more"]
        duty_idf = index.idf_for("duty")
        max_possible = duty_idf + 3 * index.config.unseen_idf
        expected = (1.5 * duty_idf) / max_possible
        uncapped = ((1 + math.log(4)) * duty_idf) / max_possible

        score = lexical_score(query, index.records[0], index)

        assert expected < 1.0
        assert score == pytest.approx(expected)
        assert score != pytest.approx(min(uncapped, 1.0))

    def test_unseen_tokens_use_default_idf(self, index: CorpusIndex) -> None:
        dharma_idf = index.idf_for("dharma")
        expected = dharma_idf / (dharma_idf + 0.5)

        score = lexical_score(["dharma", "missing"], index.records[1], index)

        assert score == pytest.approx(expected)

    def test_duplicate_query_tokens_count_each_time(self, index: CorpusIndex) -> None:
        dharma_idf = index.idf_for("dharma")
        expected = 2 * dharma_idf / (2 * dharma_idf + 0.5)

        score = lexical_score(["dharma", "dharma", "missing"], index.records[1], index)

        assert score == pytest.approx(expected)

    def test_always_within_bounds(self, index: CorpusIndex) -> None:
        queries = [["duty"], ["duty", "battle"], ["chariot", "chariot"], ["nothing"], ["duty"] * 5]
        for query in queries:
            for record in index.records:
                assert 0.0 <= lexical_score(query, record, index) <= 1.0


class TestHybridSearcher:
    """Test ranking and top-K selection."""

    def test_duty_scenario(self) -> None:
        index = CorpusIndex.build(make_records(DUTY_CORPUS))
        searcher = HybridSearcher(index)

        matches = searcher.top_matches("what is duty")

        assert [match.record.id for match in matches] == ["rec-0", "rec-1"]
        assert matches[0].combined_score > matches[1].combined_score
        assert matches[0].lexical_score > 0
        assert matches[1].lexical_score == 0.0

    def test_combined_score_uses_fusion_weights(self) -> None:
        index = CorpusIndex.build(make_records(DUTY_CORPUS))
        searcher = HybridSearcher(index)

        for match in searcher.rank("what is duty"):
            expected = 0.75 * match.semantic_score + 0.25 * match.lexical_score
            assert match.combined_score == pytest.approx(expected)

    def test_custom_weights(self) -> None:
        config = RetrievalConfig(semantic_weight=0.0, lexical_weight=1.0)
        index = CorpusIndex.build(make_records(DUTY_CORPUS), config)

        matches = HybridSearcher(index).rank("dharma")

        assert matches[0].combined_score == pytest.approx(matches[0].lexical_score)

    def test_empty_query(self) -> None:
        index = CorpusIndex.build(make_records(DUTY_CORPUS))

        matches = HybridSearcher(index).top_matches("")

        assert len(matches) == 2
        assert all(match.lexical_score == 0.0 for match in matches)
        assert all(match.semantic_score == 0.0 for match in matches)

    def test_top_k_limits_results(self) -> None:
        texts = [f"passage number {n} about duty" for n in range(8)]
        index = CorpusIndex.build(make_records(texts))
        searcher = HybridSearcher(index)

        assert len(searcher.top_matches("duty")) == 5
        assert len(searcher.top_matches("duty", top_k=3)) == 3
        assert len(searcher.top_matches("duty", top_k=20)) == 8
        assert searcher.top_matches("duty", top_k=0) == []

    def test_results_non_increasing(self) -> None:
        texts = [
            "Duty is central to dharma.",
            "The battle begins at dawn.",
            "Dharma and duty guide every action of duty.",
            "Arjuna lays down his bow.",
            "Krishna explains duty without attachment.",
        ]
        index = CorpusIndex.build(make_records(texts))

        scores = [m.combined_score for m in HybridSearcher(index).top_matches("duty dharma", top_k=5)]

        assert scores == sorted(scores, reverse=True)

    def test_ties_keep_corpus_order(self) -> None:
        text = "Identical passage about steadfast duty."
        records = [
            Record(id=name, values=tuple(make_records([text])[0].values), metadata={}, text=text)
            for name in ("first", "second", "third", "fourth")
        ]
        index = CorpusIndex.build(records)

        matches = HybridSearcher(index).top_matches("steadfast duty", top_k=3)

        assert [match.record.id for match in matches] == ["first", "second", "third"]
        assert len({match.combined_score for match in matches}) == 1

    def test_tie_order_stable_behind_a_winner(self) -> None:
        texts = ["unrelated words here", "duty duty", "unrelated words here", "unrelated words here"]
        records = [
            Record(id=f"r{position}", values=(0.0,), metadata={}, text=text)
            for position, text in enumerate(texts)
        ]
        index = CorpusIndex.build(records)

        matches = HybridSearcher(index).top_matches("duty")

        assert [match.record.id for match in matches] == ["r1", "r0", "r2", "r3"]

    def test_lexical_tokens_match_tokenizer(self) -> None:
        index = CorpusIndex.build(make_records(["Karma yoga is the path of action."]))

        assert index.records[0].tokens == tuple(tokenize("Karma yoga is the path of action."))

    def test_idf_formula_in_ranking(self) -> None:
        index = CorpusIndex.build(make_records(DUTY_CORPUS))

        assert index.idf_for("duty") == pytest.approx(math.log(3 / 2) + 1)
