# graph_analogy/constants.py
"""
Graph Analogy Constants

This module defines constants used throughout the retrieval pipeline:

LAYER 1: Hashing Constants (Signature Layer)
- PRIME: Mersenne prime 2^31 - 1, modulus of every accumulator
- *_BASE: Polynomial bases per feature family
- HASH_FUNC: Process-stable string hash (str.__hash__ is salted per run)

LAYER 2: Index Constants (Signature Index)
- DEFAULT_SIGNATURE_WIDTH, DEFAULT_RADIUS
- DEFAULT_ALPHA / BETA / GAMMA: structural / semantic / context weights

LAYER 3: Filter Cascade Constants
- L0..L3 thresholds, CROSS_DOMAIN_OVERLAP

LAYER 4: Verification Constants
- Walk parameters, tag match cutoff, exact-miss penalty, step budget
"""
import hashlib


# =============================================================================
# LAYER 1: Hashing Constants (Signature Layer)
# =============================================================================

PRIME = 2147483647   # 2^31 - 1
STRUCTURAL_BASE = 31
SEMANTIC_BASE = 37
CONTEXT_BASE = 41
HASH_FUNC = lambda s: int(hashlib.sha256(s.encode()).hexdigest()[:8], 16) & 0x7FFFFFFF


# =============================================================================
# LAYER 2: Index Constants
# =============================================================================

DEFAULT_SIGNATURE_WIDTH = 128
DEFAULT_RADIUS = 2

# Combination weights: round(α·structural + β·semantic + γ·context) mod PRIME
DEFAULT_ALPHA = 0.4
DEFAULT_BETA = 0.4
DEFAULT_GAMMA = 0.2


# =============================================================================
# LAYER 3: Filter Cascade Constants
# =============================================================================

L0_ONTOLOGICAL_THRESHOLD = 0.85   # tag-set Jaccard
L1_SIGNATURE_THRESHOLD = 0.70     # signature re-check against the whole index
L2_GRAPHLET_THRESHOLD = 0.60      # graphlet profile similarity
L3_STRUCTURAL_THRESHOLD = 0.50    # quick structural similarity

# Two tag sets are cross-domain if disjoint, or if their overlap is below
# this fraction of the smaller set
CROSS_DOMAIN_OVERLAP = 0.3

# Scores within this distance of a threshold count as reaching it
THRESHOLD_TOLERANCE = 1e-9

assert 0 <= L3_STRUCTURAL_THRESHOLD <= L2_GRAPHLET_THRESHOLD <= L1_SIGNATURE_THRESHOLD <= 1


# =============================================================================
# LAYER 4: Verification Constants
# =============================================================================

DEFAULT_SIMILARITY_THRESHOLD = 0.7   # escalation point to the exact matcher
DEFAULT_RETRIEVAL_THRESHOLD = 0.5    # first-pass signature retrieval
DEFAULT_NUM_WALKS = 10
DEFAULT_WALK_LENGTH = 3
TAG_MATCH_CUTOFF = 0.5               # walk positions match above this Jaccard
EXACT_MISS_PENALTY = 0.7             # applied when the exact check fails
DEFAULT_STEP_BUDGET = 100_000        # candidate trials per exact search
DEFAULT_TOP_K = 10
