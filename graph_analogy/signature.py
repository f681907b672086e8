"""
Signature Index Module

Semantic-aware hashing of patterns into fixed-length integer signatures,
and a catalogue of corpus signatures answering approximate candidate
queries by normalized Hamming agreement.

Signature construction:
    1. Structural features per vertex: (id, degree, r-hop count, r)
    2. Semantic features per vertex and tag: (id, tag, tag-in-registry)
    3. Context feature per pattern: (vertex count, edge count, density)

    Each feature's content is folded through a polynomial accumulator
    modulo PRIME into a feature code. For slot i every family is reduced
    with a slot hash seeded by (i + 1), keeping the minimum code (MinHash),
    and the three per-slot hashes are combined as

        round(α·structural + β·semantic + γ·context) mod PRIME

    Vertex ids ride along on the feature records but are not hashed, and
    semantic tags are hashed after generalization through the pattern's
    subtype map: equal structure in different domains yields equal slots.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
from dataclasses import dataclass

import numpy as np

from .constants import (
    PRIME,
    STRUCTURAL_BASE,
    SEMANTIC_BASE,
    CONTEXT_BASE,
    HASH_FUNC,
    DEFAULT_SIGNATURE_WIDTH,
    DEFAULT_RADIUS,
    DEFAULT_ALPHA,
    DEFAULT_BETA,
    DEFAULT_GAMMA,
)
from .graph import Pattern

logger = logging.getLogger(__name__)


# =============================================================================
# SECTION 1: Features
# =============================================================================

@dataclass(frozen=True)
class StructuralFeature:
    entity_id: str
    degree: int
    neighbor_count: int
    radius: int

    @property
    def content(self) -> Tuple[Any, ...]:
        return (self.degree, self.neighbor_count, self.radius)


@dataclass(frozen=True)
class SemanticFeature:
    entity_id: str
    tag: str
    in_registry: bool
    generalized_tag: str

    @property
    def content(self) -> Tuple[Any, ...]:
        return (self.generalized_tag, self.in_registry)


@dataclass(frozen=True)
class ContextFeature:
    vertex_count: int
    edge_count: int
    density: float

    @property
    def content(self) -> Tuple[Any, ...]:
        return (self.vertex_count, self.edge_count, self.density)


def structural_features(pattern: Pattern, radius: int) -> List[StructuralFeature]:
    return [
        StructuralFeature(
            entity_id=entity.id,
            degree=pattern.degree(entity),
            neighbor_count=len(pattern.k_hop_neighbors(entity, radius)),
            radius=radius,
        )
        for entity in pattern.entities
    ]


def semantic_features(pattern: Pattern) -> List[SemanticFeature]:
    registry = pattern.registry
    features = []
    for entity in pattern.entities:
        for tag in sorted(entity.types):
            features.append(SemanticFeature(
                entity_id=entity.id,
                tag=tag,
                in_registry=tag in registry,
                generalized_tag=registry.root_of(tag),
            ))
    return features


def context_features(pattern: Pattern) -> List[ContextFeature]:
    return [ContextFeature(pattern.vertex_count, pattern.edge_count, pattern.density())]


def _component_code(value: Any) -> int:
    if isinstance(value, (bool, int, np.integer)):
        return int(value) % PRIME
    if isinstance(value, float):
        return HASH_FUNC(repr(round(value, 12)))
    return HASH_FUNC(str(value))


def feature_code(content: Sequence[Any], base: int) -> int:
    """
    Polynomial accumulator over a feature's components, modulo PRIME.

    Args:
        content: Hashable components of one feature
        base: Family-specific polynomial base

    Returns:
        Code in [0, PRIME)
    """
    acc = len(content)
    for component in content:
        acc = (acc * base + _component_code(component)) % PRIME
    return acc


# =============================================================================
# SECTION 2: Signature
# =============================================================================

class Signature:
    """
    Fixed-length vector of slot hashes.

    Immutable: the backing array is read-only.
    """

    def __init__(self, values: Iterable[int]):
        arr = np.array(values if isinstance(values, np.ndarray) else list(values), dtype=np.int64)
        arr.setflags(write=False)
        self._values = arr

    @property
    def values(self) -> np.ndarray:
        return self._values

    def __len__(self) -> int:
        return len(self._values)

    def __getitem__(self, index: int) -> int:
        return int(self._values[index])

    def __eq__(self, other):
        if not isinstance(other, Signature):
            return False
        return bool(np.array_equal(self._values, other._values))

    def __hash__(self):
        return hash(self._values.tobytes())

    def __repr__(self):
        head = ", ".join(str(v) for v in self._values[:4])
        more = ", ..." if len(self) > 4 else ""
        return f"Signature(size={len(self)}, [{head}{more}])"

    def hamming_distance(self, other: Signature) -> int:
        """Number of slots that differ."""
        if len(self) != len(other):
            raise ValueError(f"Signature size mismatch: {len(self)} vs {len(other)}")
        return int(np.count_nonzero(self._values != other._values))

    def similarity(self, other: Signature) -> float:
        """
        1 − Hamming / N.

        Raises:
            ValueError: If the signatures differ in length
        """
        if len(self) == 0 and len(other) == 0:
            return 1.0
        return 1.0 - self.hamming_distance(other) / len(self)


# =============================================================================
# SECTION 3: Signature Index
# =============================================================================

class SignatureIndex:
    """
    In-memory catalogue of pattern signatures.

    Entries are keyed by the pattern's identity token (Pattern.uid), never
    by structural content. Lookups are a linear scan over the catalogue,
    so cost per query grows with corpus size.
    """

    def __init__(self,
                 signature_width: int = DEFAULT_SIGNATURE_WIDTH,
                 radius: int = DEFAULT_RADIUS,
                 alpha: float = DEFAULT_ALPHA,
                 beta: float = DEFAULT_BETA,
                 gamma: float = DEFAULT_GAMMA):
        if signature_width < 1:
            raise ValueError(f"signature_width must be >= 1, got {signature_width}")
        if radius < 0:
            raise ValueError(f"radius must be >= 0, got {radius}")
        self.signature_width = signature_width
        self.radius = radius
        self.alpha = alpha
        self.beta = beta
        self.gamma = gamma
        self._entries: Dict[int, Tuple[Pattern, Signature]] = {}
        self._slot_coefficients = {
            family: self._seed_slots(family)
            for family in ("structural", "semantic", "context")
        }

    def _seed_slots(self, family: str) -> Tuple[np.ndarray, np.ndarray]:
        """Per-slot (a, b) of the slot hash (a·code + b) mod PRIME, seeded by i + 1."""
        seeds = range(1, self.signature_width + 1)
        a = np.array([1 + HASH_FUNC(f"{family}:a:{s}") % (PRIME - 1) for s in seeds], dtype=np.int64)
        b = np.array([HASH_FUNC(f"{family}:b:{s}") % PRIME for s in seeds], dtype=np.int64)
        return a, b

    def _slot_hashes(self, codes: List[int], family: str) -> np.ndarray:
        if not codes:
            return np.zeros(self.signature_width, dtype=np.int64)
        a, b = self._slot_coefficients[family]
        code_arr = np.asarray(codes, dtype=np.int64)
        # a, code < 2^31 so the product stays inside int64
        hashed = (a[:, None] * code_arr[None, :] + b[:, None]) % PRIME
        return hashed.min(axis=1)

    def compute_signature(self, pattern: Pattern) -> Signature:
        """
        Compute the signature of a pattern. Deterministic for an unmutated
        pattern, across calls and processes.
        """
        struct_codes = [feature_code(f.content, STRUCTURAL_BASE)
                        for f in structural_features(pattern, self.radius)]
        sem_codes = [feature_code(f.content, SEMANTIC_BASE)
                     for f in semantic_features(pattern)]
        ctx_codes = [feature_code(f.content, CONTEXT_BASE)
                     for f in context_features(pattern)]

        h_struct = self._slot_hashes(struct_codes, "structural")
        h_sem = self._slot_hashes(sem_codes, "semantic")
        h_ctx = self._slot_hashes(ctx_codes, "context")

        combined = np.rint(self.alpha * h_struct + self.beta * h_sem + self.gamma * h_ctx)
        return Signature(combined.astype(np.int64) % PRIME)

    def index_pattern(self, pattern: Pattern, signature: Optional[Signature] = None) -> Signature:
        """
        Store a pattern's signature under its identity token.

        Args:
            pattern: Pattern to index
            signature: Precomputed signature; computed when omitted

        Returns:
            The stored signature
        """
        if signature is None:
            signature = self.compute_signature(pattern)
        self._entries[pattern.uid] = (pattern, signature)
        return signature

    def signature_of(self, pattern: Pattern) -> Signature:
        """Cached signature if indexed, otherwise computed (not stored)."""
        entry = self._entries.get(pattern.uid)
        if entry is not None:
            return entry[1]
        return self.compute_signature(pattern)

    def find_candidates(self, query: Pattern, threshold: float) -> List[Pattern]:
        """
        Every indexed pattern whose signature similarity to the query is
        at least ``threshold``, in indexing order.

        Entries of a different signature width score 0 instead of raising,
        so a scan never aborts.
        """
        query_sig = self.compute_signature(query)
        candidates = []
        for pattern, signature in self._entries.values():
            if len(signature) != len(query_sig):
                similarity = 0.0
            else:
                similarity = query_sig.similarity(signature)
            if similarity >= threshold:
                candidates.append(pattern)
        logger.debug("signature scan: %d of %d patterns at threshold %.2f",
                     len(candidates), len(self._entries), threshold)
        return candidates

    @property
    def patterns(self) -> List[Pattern]:
        return [pattern for pattern, _ in self._entries.values()]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, pattern: Pattern) -> bool:
        return pattern.uid in self._entries

    def get_summary(self) -> Dict[str, Any]:
        return {
            "indexed_patterns": len(self._entries),
            "signature_width": self.signature_width,
            "radius": self.radius,
            "weights": {"alpha": self.alpha, "beta": self.beta, "gamma": self.gamma},
        }
