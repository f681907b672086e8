"""
Analogy Engine Module

Orchestrates the retrieval pipeline: the corpus is cut into patterns and
indexed once at construction; each query then runs

    retrieve → filter → verify → cross-domain gate → rank → top-K

Corpus, patterns and signature catalogue are read-only after construction,
so queries may run concurrently.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Sequence, Set
from dataclasses import dataclass

from .constants import (
    DEFAULT_SIGNATURE_WIDTH,
    DEFAULT_RADIUS,
    DEFAULT_SIMILARITY_THRESHOLD,
    DEFAULT_RETRIEVAL_THRESHOLD,
    DEFAULT_ALPHA,
    DEFAULT_BETA,
    DEFAULT_GAMMA,
    DEFAULT_NUM_WALKS,
    DEFAULT_WALK_LENGTH,
    DEFAULT_STEP_BUDGET,
    DEFAULT_TOP_K,
)
from .filtering import MultiLevelFilter, is_cross_domain
from .graph import Pattern
from .signature import SignatureIndex
from .verification import HybridVerifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineConfig:
    """
    Configuration of an AnalogyEngine.

    Filter-cascade thresholds are fixed and not part of the configuration.
    """
    signature_width: int = DEFAULT_SIGNATURE_WIDTH
    radius: int = DEFAULT_RADIUS
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    retrieval_threshold: float = DEFAULT_RETRIEVAL_THRESHOLD
    alpha: float = DEFAULT_ALPHA
    beta: float = DEFAULT_BETA
    gamma: float = DEFAULT_GAMMA
    num_walks: int = DEFAULT_NUM_WALKS
    walk_length: int = DEFAULT_WALK_LENGTH
    exact_step_budget: int = DEFAULT_STEP_BUDGET
    seed: Optional[int] = None

    def __post_init__(self):
        """Validate configuration."""
        if self.signature_width < 1:
            raise ValueError(f"signature_width must be >= 1, got {self.signature_width}")
        if self.radius < 0:
            raise ValueError(f"radius must be >= 0, got {self.radius}")
        if not (0 <= self.similarity_threshold <= 1):
            raise ValueError(f"similarity_threshold must be in [0, 1], got {self.similarity_threshold}")
        if not (0 <= self.retrieval_threshold <= 1):
            raise ValueError(f"retrieval_threshold must be in [0, 1], got {self.retrieval_threshold}")
        if self.num_walks < 1 or self.walk_length < 0:
            raise ValueError("num_walks must be >= 1 and walk_length >= 0")
        if self.exact_step_budget < 1:
            raise ValueError(f"exact_step_budget must be >= 1, got {self.exact_step_budget}")


@dataclass
class AnalogyResult:
    """A verified cross-domain match for a query."""
    query: Pattern
    candidate: Pattern
    similarity: float

    def __str__(self):
        return (f"AnalogyResult(similarity={self.similarity:.3f}, "
                f"query={self.query.vertex_count} vertices, "
                f"candidate={self.candidate.vertex_count} vertices)")


def extract_patterns(corpus: Pattern, radius: int = DEFAULT_RADIUS) -> List[Pattern]:
    """
    Cut a corpus graph into non-overlapping neighborhood patterns.

    Greedy: for every corpus vertex not yet covered (insertion order), its
    r-hop neighborhood minus already covered vertices is extracted as an
    induced subgraph. Patterns with fewer than 2 vertices are discarded.

    Args:
        corpus: Fully built corpus graph
        radius: Neighborhood radius

    Returns:
        List of patterns with pairwise disjoint vertex sets
    """
    patterns = []
    covered: Set[str] = set()
    for entity in corpus.entities:
        if entity.id in covered:
            continue
        members = {e.id for e in corpus.k_hop_neighbors(entity, radius)}
        members.add(entity.id)
        members -= covered
        pattern = corpus.extract_subgraph(members, name=f"{corpus.name}/{entity.id}")
        if pattern.vertex_count >= 2:
            patterns.append(pattern)
            covered.update(members)
    return patterns


class AnalogyEngine:
    """
    Cross-domain analogy retrieval over a corpus graph.

    Example:
        >>> engine = AnalogyEngine(corpus, signature_width=64, radius=2)
        >>> for result in engine.find_analogies(query, top_k=5):
        ...     print(result)
    """

    def __init__(self, corpus: Pattern,
                 signature_width: int = DEFAULT_SIGNATURE_WIDTH,
                 radius: int = DEFAULT_RADIUS,
                 similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
                 config: Optional[EngineConfig] = None):
        if config is None:
            config = EngineConfig(signature_width=signature_width, radius=radius,
                                  similarity_threshold=similarity_threshold)
        self.config = config
        self.corpus = corpus
        self.index = SignatureIndex(
            signature_width=config.signature_width,
            radius=config.radius,
            alpha=config.alpha,
            beta=config.beta,
            gamma=config.gamma,
        )
        self.filter = MultiLevelFilter(self.index)
        self.verifier = HybridVerifier(
            similarity_threshold=config.similarity_threshold,
            num_walks=config.num_walks,
            walk_length=config.walk_length,
            step_budget=config.exact_step_budget,
            seed=config.seed,
        )

        self.patterns = extract_patterns(corpus, config.radius)
        for pattern in self.patterns:
            self.index.index_pattern(pattern)
        logger.info("indexed %d patterns from corpus %s (%d vertices, %d edges)",
                    len(self.patterns), corpus.name, corpus.vertex_count, corpus.edge_count)

    def find_analogies(self, query: Pattern, top_k: int = DEFAULT_TOP_K) -> List[AnalogyResult]:
        """
        Ranked cross-domain analogies for a query pattern.

        Args:
            query: Query pattern
            top_k: Maximum number of results

        Returns:
            At most top_k results, similarity descending; empty when
            nothing survives
        """
        if top_k <= 0:
            return []

        candidates = self.index.find_candidates(query, self.config.retrieval_threshold)
        filtered = self.filter.filter(query, candidates)

        query_tags = query.tag_set()
        results = []
        for candidate in filtered:
            similarity = self.verifier.verify(query, candidate)
            if is_cross_domain(query_tags, candidate.tag_set()):
                results.append(AnalogyResult(query, candidate, similarity))

        results.sort(key=lambda r: r.similarity, reverse=True)
        logger.debug("query %s: %d retrieved, %d filtered, %d cross-domain",
                     query.name, len(candidates), len(filtered), len(results))
        return results[:top_k]

    def find_analogies_batch(self, queries: Sequence[Pattern], top_k: int = DEFAULT_TOP_K,
                             parallel: bool = False,
                             max_workers: Optional[int] = None) -> List[List[AnalogyResult]]:
        """
        Run independent queries, optionally in a thread pool.

        Args:
            queries: Query patterns
            top_k: Maximum results per query
            parallel: If True, fan queries out over threads
            max_workers: Number of parallel workers (None = CPU count)

        Returns:
            One result list per query, in query order
        """
        if parallel and len(queries) > 1:
            max_workers = max_workers or os.cpu_count()
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                return list(executor.map(lambda q: self.find_analogies(q, top_k), queries))
        return [self.find_analogies(q, top_k) for q in queries]

    def get_summary(self) -> Dict[str, Any]:
        return {
            "corpus": {
                "name": self.corpus.name,
                "vertices": self.corpus.vertex_count,
                "edges": self.corpus.edge_count,
            },
            "patterns": len(self.patterns),
            "index": self.index.get_summary(),
            "filter": self.filter.get_summary(),
            "similarity_threshold": self.config.similarity_threshold,
        }
