"""Extractive answer synthesis from ranked matches."""

from __future__ import annotations

from typing import List, Sequence

from excerptfinder.config import RetrievalConfig
from excerptfinder.models import CandidateSentence, RankedMatch
from excerptfinder.utils.text import split_sentences, tokenize

NO_CONTEXT_MESSAGE = "I couldn't find relevant context in the local index."
EMPTY_MATCHES_MESSAGE = "I found matches, but they were empty."


def _overlap_ratio(query_tokens: Sequence[str], sentence_tokens: frozenset[str]) -> float:
    if not query_tokens:
        return 0.0
    hits = sum(1 for token in query_tokens if token in sentence_tokens)
    return hits / len(query_tokens)


def collect_candidates(
    query: str, matches: Sequence[RankedMatch], config: RetrievalConfig | None = None
) -> List[CandidateSentence]:
    """Score every usable sentence of every match, best first.

    ``source_rank`` is the 1-based rank of the originating match. Equal scores
    keep match order, then sentence order.
    """
    config = config or RetrievalConfig()
    query_tokens = tokenize(query, stopwords=config.stopwords, min_chars=config.min_token_chars)

    candidates: List[CandidateSentence] = []
    for rank, match in enumerate(matches, start=1):
        for sentence in split_sentences(match.record.text):
            if len(sentence) < config.min_sentence_chars:
                continue
            sentence_tokens = frozenset(
                tokenize(sentence, stopwords=config.stopwords, min_chars=config.min_token_chars)
            )
            overlap = _overlap_ratio(query_tokens, sentence_tokens)
            score = (
                match.combined_score * config.sentence_match_weight
                + overlap * config.sentence_overlap_weight
            )
            candidates.append(CandidateSentence(text=sentence, score=score, source_rank=rank))

    candidates.sort(key=lambda candidate: candidate.score, reverse=True)
    return candidates


def answer_from_matches(
    query: str, matches: Sequence[RankedMatch], config: RetrievalConfig | None = None
) -> str:
    """Join the best distinct sentences, each cited with its match rank."""
    config = config or RetrievalConfig()
    if not matches:
        return NO_CONTEXT_MESSAGE

    seen: set[str] = set()
    selected: List[str] = []
    for candidate in collect_candidates(query, matches, config):
        key = candidate.text.lower()
        if key in seen:
            continue
        seen.add(key)
        selected.append(f"{candidate.text} [{candidate.source_rank}]")
        if len(selected) >= config.max_sentences:
            break

    if selected:
        return " ".join(selected)

    fallback = matches[0].record.text[: config.fallback_chars]
    if fallback:
        return f"Best matching excerpt: {fallback} [1]"
    return EMPTY_MATCHES_MESSAGE
