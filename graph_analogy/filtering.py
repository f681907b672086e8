"""
Multi-Level Filter Module

Four cascading filters narrowing a candidate set:

    L0  ontological      tag-set Jaccard ≥ 0.85, or cross-domain
    L1  signature        re-query of the whole index at 0.70
    L2  graphlet         profile similarity ≥ 0.60
    L3  structural       profile similarity ≥ 0.50

L1 does not narrow L0's survivors: it re-queries the full signature index,
so a pattern L0 rejected can reappear after L1; how many do is
reported at debug level. L2 and L3 only ever shrink their input.
"""

from __future__ import annotations

import logging
import math
from typing import AbstractSet, Any, Dict, List
from dataclasses import dataclass, field

from .constants import (
    L0_ONTOLOGICAL_THRESHOLD,
    L1_SIGNATURE_THRESHOLD,
    L2_GRAPHLET_THRESHOLD,
    L3_STRUCTURAL_THRESHOLD,
    CROSS_DOMAIN_OVERLAP,
    THRESHOLD_TOLERANCE,
)
from .graph import Pattern
from .signature import SignatureIndex

logger = logging.getLogger(__name__)


def jaccard(a: AbstractSet[str], b: AbstractSet[str]) -> float:
    """Jaccard similarity; 0 when either side is empty."""
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def is_cross_domain(a: AbstractSet[str], b: AbstractSet[str]) -> bool:
    """
    Two tag sets are cross-domain if they are disjoint, or if their overlap
    is below CROSS_DOMAIN_OVERLAP of the smaller set.
    """
    overlap = len(a & b)
    return overlap == 0 or overlap < min(len(a), len(b)) * CROSS_DOMAIN_OVERLAP


def reaches(score: float, threshold: float) -> bool:
    """Inclusive threshold test, tolerant to float rounding at the boundary."""
    return score >= threshold or math.isclose(score, threshold, rel_tol=0.0, abs_tol=THRESHOLD_TOLERANCE)


@dataclass(frozen=True)
class GraphletProfile:
    """Coarse structural summary of a pattern."""
    vertex_count: int
    edge_count: int
    density: float
    avg_degree: float

    @classmethod
    def of(cls, pattern: Pattern) -> GraphletProfile:
        v = pattern.vertex_count
        total_degree = sum(pattern.degree(e) for e in pattern.entities)
        return cls(
            vertex_count=v,
            edge_count=pattern.edge_count,
            density=pattern.density(),
            avg_degree=total_degree / v if v > 0 else 0.0,
        )

    def similarity(self, other: GraphletProfile) -> float:
        """
        Mean of four per-attribute scores, each 1 − |a−b| / max(a, b, 1);
        density is compared as 1 − |a−b|.
        """
        v_sim = 1.0 - abs(self.vertex_count - other.vertex_count) / max(self.vertex_count, other.vertex_count, 1)
        e_sim = 1.0 - abs(self.edge_count - other.edge_count) / max(self.edge_count, other.edge_count, 1)
        d_sim = 1.0 - abs(self.density - other.density)
        deg_sim = 1.0 - abs(self.avg_degree - other.avg_degree) / max(self.avg_degree, other.avg_degree, 1.0)
        return (v_sim + e_sim + d_sim + deg_sim) / 4.0


@dataclass
class FilterReport:
    """Survivors of every cascade stage, in order."""
    candidates: List[Pattern] = field(default_factory=list)
    ontological: List[Pattern] = field(default_factory=list)
    signature: List[Pattern] = field(default_factory=list)
    graphlet: List[Pattern] = field(default_factory=list)
    structural: List[Pattern] = field(default_factory=list)

    @property
    def survivors(self) -> List[Pattern]:
        return self.structural

    def counts(self) -> Dict[str, int]:
        return {
            "candidates": len(self.candidates),
            "L0_ontological": len(self.ontological),
            "L1_signature": len(self.signature),
            "L2_graphlet": len(self.graphlet),
            "L3_structural": len(self.structural),
        }


class MultiLevelFilter:
    """
    Cascading candidate filter over a signature index.

    Stage thresholds are fixed class attributes.
    """

    l0_threshold = L0_ONTOLOGICAL_THRESHOLD
    l1_threshold = L1_SIGNATURE_THRESHOLD
    l2_threshold = L2_GRAPHLET_THRESHOLD
    l3_threshold = L3_STRUCTURAL_THRESHOLD

    def __init__(self, index: SignatureIndex):
        self.index = index

    def filter(self, query: Pattern, candidates: List[Pattern]) -> List[Pattern]:
        """Apply all four stages; returns the L3 survivors."""
        return self.cascade(query, candidates).survivors

    def cascade(self, query: Pattern, candidates: List[Pattern]) -> FilterReport:
        """
        Apply all four stages and keep every intermediate result.

        Args:
            query: Query pattern
            candidates: Initial candidate list

        Returns:
            FilterReport with per-stage survivors
        """
        report = FilterReport(candidates=list(candidates))
        report.ontological = self.ontological_stage(query, report.candidates)
        report.signature = self.signature_stage(query, report.ontological)
        report.graphlet = self.graphlet_stage(query, report.signature)
        report.structural = self.structural_stage(query, report.graphlet)
        logger.debug("filter cascade for %s: %s", query.name, report.counts())
        return report

    def ontological_stage(self, query: Pattern, candidates: List[Pattern]) -> List[Pattern]:
        query_tags = query.tag_set()
        kept = []
        for candidate in candidates:
            candidate_tags = candidate.tag_set()
            if (reaches(jaccard(query_tags, candidate_tags), self.l0_threshold)
                    or is_cross_domain(query_tags, candidate_tags)):
                kept.append(candidate)
        return kept

    def signature_stage(self, query: Pattern, candidates: List[Pattern]) -> List[Pattern]:
        # Re-queries the whole index; `candidates` only feeds the debug count
        result = self.index.find_candidates(query, self.l1_threshold)
        admitted = {p.uid for p in candidates}
        reintroduced = sum(1 for p in result if p.uid not in admitted)
        if reintroduced:
            logger.debug("signature stage reintroduced %d patterns dropped earlier", reintroduced)
        return result

    def graphlet_stage(self, query: Pattern, candidates: List[Pattern]) -> List[Pattern]:
        return self._profile_stage(query, candidates, self.l2_threshold)

    def structural_stage(self, query: Pattern, candidates: List[Pattern]) -> List[Pattern]:
        return self._profile_stage(query, candidates, self.l3_threshold)

    def _profile_stage(self, query: Pattern, candidates: List[Pattern], threshold: float) -> List[Pattern]:
        query_profile = GraphletProfile.of(query)
        return [
            c for c in candidates
            if reaches(query_profile.similarity(GraphletProfile.of(c)), threshold)
        ]

    def get_summary(self) -> Dict[str, Any]:
        return {
            "thresholds": {
                "L0_ontological": self.l0_threshold,
                "L1_signature": self.l1_threshold,
                "L2_graphlet": self.l2_threshold,
                "L3_structural": self.l3_threshold,
            },
            "indexed_patterns": len(self.index),
        }
