"""Query-aware memory re-ranking for questy_coach.

This module scores candidate memories with six weighted factors:
semantic similarity, recency, confidence, a query-intent type boost,
subject match and review urgency.
"""

import re
from dataclasses import asdict, dataclass, fields, replace
from datetime import datetime

from questy_coach.config import RetrievalSettings
from questy_coach.logging import get_logger
from questy_coach.models.memory import (
    LearningMemory,
    MemoryType,
    QueryIntent,
    RetrievedMemory,
    ScoreBreakdown,
    Subject,
)
from questy_coach.utils import dates

__all__ = [
    "INTENT_TYPE_BOOST",
    "QUERY_INTENT_PATTERNS",
    "MemoryRetriever",
    "ReRankingWeights",
]

logger = get_logger(__name__)

INTENT_TYPE_BOOST: dict[QueryIntent, frozenset[MemoryType]] = {
    QueryIntent.RECALL_MISTAKES: frozenset(
        {MemoryType.WRONG_ANSWER, MemoryType.CORRECTION, MemoryType.GAP, MemoryType.STRUGGLE}
    ),
    QueryIntent.FIND_PATTERNS: frozenset(
        {MemoryType.PATTERN, MemoryType.STRATEGY, MemoryType.PREFERENCE}
    ),
    QueryIntent.CHECK_PROGRESS: frozenset(
        {MemoryType.MASTERY, MemoryType.LEARNING, MemoryType.DECISION}
    ),
    QueryIntent.REVIEW_DECISIONS: frozenset(
        {MemoryType.DECISION, MemoryType.STRATEGY, MemoryType.INSIGHT}
    ),
    QueryIntent.GENERAL_SEARCH: frozenset(),
}

# Ordered: the first intent with a matching pattern wins
QUERY_INTENT_PATTERNS: list[tuple[QueryIntent, list[re.Pattern[str]]]] = [
    (
        QueryIntent.RECALL_MISTAKES,
        [
            re.compile(r"틀린|실수|오답|잘못|모르|\bmistakes?\b|\bwrong\b|\berrors?\b", re.I),
            re.compile(r"왜.*틀렸|어디.*틀렸|where\s+did\s+i\s+go\s+wrong", re.I),
        ],
    ),
    (
        QueryIntent.FIND_PATTERNS,
        [
            re.compile(r"패턴|방법|어떻게|전략|습관|\bpatterns?\b|\bstrateg|\bhabits?\b|\bhow\b", re.I),
            re.compile(r"나한테.*맞는|효과적|works?\s+for\s+me|\beffective\b", re.I),
        ],
    ),
    (
        QueryIntent.CHECK_PROGRESS,
        [
            re.compile(r"진도|어디까지|얼마나|완료|\bprogress\b|\bhow\s+far\b|\bcompleted?\b", re.I),
            re.compile(r"진행.*상황|상태|\bstatus\b", re.I),
        ],
    ),
    (
        QueryIntent.REVIEW_DECISIONS,
        [
            re.compile(r"결정|선택|정했|했던|\bdecid|\bchose\b|\bchoice\b", re.I),
            re.compile(r"뭘.*하기로|무엇.*선택|what\s+did\s+i\s+(?:decide|choose)", re.I),
        ],
    ),
]


@dataclass(frozen=True)
class ReRankingWeights:
    """Weights of the six re-ranking factors."""

    semantic: float = 0.45
    recency: float = 0.10
    confidence: float = 0.10
    type_boost: float = 0.15
    subject_match: float = 0.10
    urgency: float = 0.10

    @classmethod
    def from_settings(cls, settings: RetrievalSettings) -> "ReRankingWeights":
        return cls(
            semantic=settings.semantic_weight,
            recency=settings.recency_weight,
            confidence=settings.confidence_weight,
            type_boost=settings.type_boost_weight,
            subject_match=settings.subject_match_weight,
            urgency=settings.urgency_weight,
        )


class MemoryRetriever:
    """Six-factor memory re-ranker.

    Each factor is normalized to [0, 1] and multiplied by its weight;
    the total is capped at 1.0, so the score is monotonic in every
    factor.

    Example:
        retriever = MemoryRetriever()
        ranked = retriever.retrieve(query, candidates, {m.id: 0.8 for m in candidates})
    """

    def __init__(self, settings: RetrievalSettings | None = None) -> None:
        """Initialize retriever.

        Args:
            settings: Weights and result limits
        """
        settings = settings or RetrievalSettings()
        self._weights = ReRankingWeights.from_settings(settings)
        self._max_results = settings.max_results
        self._min_score = settings.min_score
        self._recency_window_days = settings.recency_window_days

    def retrieve(
        self,
        query: str,
        candidates: list[LearningMemory],
        semantic_scores: dict[str, float],
        current_subject: Subject | None = None,
        urgent_topics: set[str] | list[str] | None = None,
        now: datetime | None = None,
    ) -> list[RetrievedMemory]:
        """Re-rank candidate memories for a query.

        Args:
            query: Free-text query (drives the intent type boost)
            candidates: Candidate memories
            semantic_scores: Memory ID -> semantic similarity (missing means 0)
            current_subject: Subject the student is working on
            urgent_topics: Topics currently due for review
            now: Reference time for recency (default: now)

        Returns:
            Memories scoring at least min_score, best first, at most max_results
        """
        intent = self.detect_query_intent(query)
        boosted = INTENT_TYPE_BOOST[intent]
        urgent = set(urgent_topics or ())
        reference = now or dates.now()

        scored: list[RetrievedMemory] = []
        for memory in candidates:
            breakdown = self.score(
                memory,
                semantic_scores.get(memory.id, 0.0),
                boosted,
                current_subject,
                urgent,
                reference,
            )
            scored.append(
                RetrievedMemory(
                    memory=memory,
                    retrieval_score=min(1.0, breakdown.total),
                    score_breakdown=breakdown,
                    query_intent=intent,
                )
            )

        results = [r for r in scored if r.retrieval_score >= self._min_score]
        results.sort(key=lambda r: r.retrieval_score, reverse=True)
        logger.debug(
            "memories_reranked",
            intent=str(intent),
            candidates=len(candidates),
            kept=min(len(results), self._max_results),
        )
        return results[: self._max_results]

    def score(
        self,
        memory: LearningMemory,
        semantic_score: float,
        boosted_types: frozenset[MemoryType],
        current_subject: Subject | None,
        urgent_topics: set[str],
        now: datetime,
    ) -> ScoreBreakdown:
        """Weighted contribution of every factor for one memory."""
        w = self._weights
        days_since_recall = max(0, dates.days_between(memory.last_recalled, now))
        recency = max(0.0, 1.0 - days_since_recall / self._recency_window_days)
        return ScoreBreakdown(
            semantic=min(1.0, max(0.0, semantic_score)) * w.semantic,
            recency=recency * w.recency,
            confidence=memory.confidence * w.confidence,
            type_boost=w.type_boost if memory.type in boosted_types else 0.0,
            subject_match=(
                w.subject_match
                if current_subject is not None and memory.subject == current_subject
                else 0.0
            ),
            urgency=w.urgency if memory.topic in urgent_topics else 0.0,
        )

    def detect_query_intent(self, query: str) -> QueryIntent:
        for intent, patterns in QUERY_INTENT_PATTERNS:
            if any(pattern.search(query) for pattern in patterns):
                return intent
        return QueryIntent.GENERAL_SEARCH

    def update_weights(self, **weights: float) -> None:
        """Replace some weights at runtime.

        Raises:
            ValueError: On an unknown weight name or a negative weight
        """
        known = {f.name for f in fields(ReRankingWeights)}
        unknown = set(weights) - known
        if unknown:
            raise ValueError(f"Unknown re-ranking weights: {sorted(unknown)}")
        if any(value < 0 for value in weights.values()):
            raise ValueError("Re-ranking weights must be non-negative")
        self._weights = replace(self._weights, **weights)
        logger.info("reranking_weights_updated", **asdict(self._weights))

    def get_weights(self) -> ReRankingWeights:
        return self._weights
