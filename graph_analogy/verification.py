"""
Hybrid Verification Module

Scores a (query, candidate) pair in two tiers:

1. Probabilistic: random walks from every vertex of both patterns,
   compared position by position on type tags.
2. Exact: backtracking subgraph isomorphism with pruning, run only when
   the probabilistic score reaches the verifier threshold.

Tags are compared after generalization through each pattern's own subtype
map, so domain-specific tags declared under a shared parent match. Without
declared subtypes this is a plain tag comparison.

The exact search runs on an explicit work stack bounded by a step budget.
"""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, List, Optional, Set, Tuple

import numpy as np

from .constants import (
    DEFAULT_SIMILARITY_THRESHOLD,
    DEFAULT_NUM_WALKS,
    DEFAULT_WALK_LENGTH,
    DEFAULT_STEP_BUDGET,
    TAG_MATCH_CUTOFF,
    EXACT_MISS_PENALTY,
)
from .filtering import jaccard
from .graph import Pattern

logger = logging.getLogger(__name__)


Walk = List[str]


class HybridVerifier:
    """
    Combines probabilistic random-walk matching with exact isomorphism.

    Attributes:
        similarity_threshold: Probabilistic score needed to escalate
        num_walks: Walks per vertex used by verify()
        walk_length: Steps per walk used by verify()
        step_budget: Maximum candidate trials of one exact search
        seed: When set, every call draws from a fresh generator seeded
            with it, so scores are reproducible and calls independent
    """

    def __init__(self,
                 similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
                 num_walks: int = DEFAULT_NUM_WALKS,
                 walk_length: int = DEFAULT_WALK_LENGTH,
                 step_budget: int = DEFAULT_STEP_BUDGET,
                 seed: Optional[int] = None):
        self.similarity_threshold = similarity_threshold
        self.num_walks = num_walks
        self.walk_length = walk_length
        self.step_budget = step_budget
        self.seed = seed
        self.last_search_steps = 0

    def _rng(self) -> np.random.Generator:
        return np.random.default_rng(self.seed)

    # ------------------------------------------------------------------
    # Probabilistic tier
    # ------------------------------------------------------------------

    def random_walks(self, pattern: Pattern, start: str, num_walks: int,
                     walk_length: int, rng: Optional[np.random.Generator] = None) -> List[Walk]:
        """
        Undirected random walks from a start vertex.

        Each step picks an incident edge uniformly and moves to its other
        endpoint; a walk stops early at a vertex without incident edges.

        Returns:
            ``num_walks`` walks, each a list of entity ids starting at ``start``
        """
        rng = rng if rng is not None else self._rng()
        walks = []
        for _ in range(num_walks):
            current = start
            walk = [current]
            for _ in range(walk_length):
                neighbors = pattern.incident_neighbors(current)
                if not neighbors:
                    break
                current = neighbors[int(rng.integers(len(neighbors)))]
                walk.append(current)
            walks.append(walk)
        return walks

    @staticmethod
    def _walk_similarity(walk_a: List[FrozenSet[str]], walk_b: List[FrozenSet[str]]) -> float:
        shorter = min(len(walk_a), len(walk_b))
        if shorter == 0:
            return 0.0
        matches = sum(
            1 for i in range(shorter)
            if walk_a[i] and walk_b[i] and jaccard(walk_a[i], walk_b[i]) > TAG_MATCH_CUTOFF
        )
        return matches / shorter

    def probabilistic_match(self, query: Pattern, candidate: Pattern,
                            num_walks: int, walk_length: int) -> float:
        """
        Random-walk similarity of two patterns.

        For every (query vertex, candidate vertex) pair, the walk
        similarities of all walk pairs are averaged; the pair scores are
        then averaged over all vertex pairs.

        Args:
            query: Query pattern
            candidate: Candidate pattern
            num_walks: Walks per vertex
            walk_length: Steps per walk

        Returns:
            Score in [0, 1]; 0 if either pattern is empty
        """
        if query.vertex_count == 0 or candidate.vertex_count == 0 or num_walks <= 0:
            return 0.0

        rng = self._rng()
        query_tags = {e.id: query.generalized_tags(e) for e in query.entities}
        candidate_tags = {e.id: candidate.generalized_tags(e) for e in candidate.entities}

        query_walks = {
            e.id: [[query_tags[v] for v in w]
                   for w in self.random_walks(query, e.id, num_walks, walk_length, rng)]
            for e in query.entities
        }
        candidate_walks = {
            e.id: [[candidate_tags[v] for v in w]
                   for w in self.random_walks(candidate, e.id, num_walks, walk_length, rng)]
            for e in candidate.entities
        }

        total = 0.0
        for q_walks in query_walks.values():
            for c_walks in candidate_walks.values():
                pair_total = sum(self._walk_similarity(qw, cw) for qw in q_walks for cw in c_walks)
                total += pair_total / (len(q_walks) * len(c_walks))
        return total / (len(query_walks) * len(candidate_walks))

    # ------------------------------------------------------------------
    # Exact tier
    # ------------------------------------------------------------------

    @staticmethod
    def _compatible(query_tags: FrozenSet[str], candidate_tags: FrozenSet[str]) -> bool:
        if not query_tags or not candidate_tags:
            return True
        return bool(query_tags & candidate_tags)

    @staticmethod
    def _local_structure_holds(query: Pattern, candidate: Pattern, q: str, c: str,
                               mapping: Dict[str, str]) -> bool:
        if query.degree(q) != candidate.degree(c):
            return False
        candidate_neighbors = candidate.neighbor_set(c)
        for q_neighbor in query.neighbor_set(q):
            mapped = mapping.get(q_neighbor)
            if mapped is not None and mapped not in candidate_neighbors:
                return False
        return True

    @staticmethod
    def _mapping_preserves_edges(query: Pattern, candidate: Pattern, mapping: Dict[str, str]) -> bool:
        for u, v in set(query.graph.edges()):
            if candidate.edge_multiplicity(mapping[u], mapping[v]) < query.edge_multiplicity(u, v):
                return False
        return True

    def exact_match_with_pruning(self, query: Pattern, candidate: Pattern) -> bool:
        """
        Exact isomorphism test with pruning.

        Builds a bijection query vertex → candidate vertex, query vertices
        taken in insertion order. A candidate vertex is tried only if it is
        unused, tag compatible, of equal total degree, and adjacent to the
        images of the query vertex's mapped neighbors. Complete mappings
        are confirmed edge by edge.

        Returns:
            True on the first confirmed mapping; False if vertex or edge
            counts differ, the search is exhausted, or the step budget
            runs out
        """
        self.last_search_steps = 0
        if query.vertex_count != candidate.vertex_count:
            return False
        if query.edge_count != candidate.edge_count:
            return False

        order = [e.id for e in query.entities]
        if not order:
            return True
        pool = [e.id for e in candidate.entities]
        query_tags = {q: query.generalized_tags(q) for q in order}
        candidate_tags = {c: candidate.generalized_tags(c) for c in pool}

        mapping: Dict[str, str] = {}
        used: Set[str] = set()
        # Frames are (query vertex, next pool index to try)
        stack: List[Tuple[str, int]] = [(order[0], 0)]
        steps = 0

        while stack:
            q, start = stack.pop()
            if q in mapping:
                used.discard(mapping.pop(q))

            for idx in range(start, len(pool)):
                steps += 1
                if steps > self.step_budget:
                    self.last_search_steps = steps
                    logger.warning("exact match between %s and %s stopped after %d steps",
                                   query.name, candidate.name, self.step_budget)
                    return False

                c = pool[idx]
                if c in used:
                    continue
                if not self._compatible(query_tags[q], candidate_tags[c]):
                    continue
                if not self._local_structure_holds(query, candidate, q, c, mapping):
                    continue

                mapping[q] = c
                used.add(c)
                stack.append((q, idx + 1))
                if len(mapping) == len(order):
                    if self._mapping_preserves_edges(query, candidate, mapping):
                        self.last_search_steps = steps
                        return True
                else:
                    stack.append((order[len(mapping)], 0))
                break

        self.last_search_steps = steps
        return False

    # ------------------------------------------------------------------
    # Combined
    # ------------------------------------------------------------------

    def verify(self, query: Pattern, candidate: Pattern) -> float:
        """
        Probabilistic score, escalated to the exact check when it reaches
        the threshold: 1.0 on an exact match, otherwise the probabilistic
        score times EXACT_MISS_PENALTY.
        """
        score = self.probabilistic_match(query, candidate, self.num_walks, self.walk_length)
        if score < self.similarity_threshold:
            return score
        if self.exact_match_with_pruning(query, candidate):
            return 1.0
        return EXACT_MISS_PENALTY * score
