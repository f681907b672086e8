"""
Graph Analogy - Cross-Domain Structural Analogy Retrieval

Given a small query pattern of entities linked by typed relations, finds
corpus patterns sharing its shape and plausible semantics, including
patterns from unrelated subject domains.
"""

__version__ = "0.1.0"

from .graph import Entity, Relation, TypeRegistry, Pattern
from .signature import Signature, SignatureIndex
from .filtering import GraphletProfile, FilterReport, MultiLevelFilter, is_cross_domain, jaccard
from .verification import HybridVerifier
from .engine import AnalogyEngine, AnalogyResult, EngineConfig, extract_patterns

__all__ = [
    "Entity",
    "Relation",
    "TypeRegistry",
    "Pattern",
    "Signature",
    "SignatureIndex",
    "GraphletProfile",
    "FilterReport",
    "MultiLevelFilter",
    "is_cross_domain",
    "jaccard",
    "HybridVerifier",
    "AnalogyEngine",
    "AnalogyResult",
    "EngineConfig",
    "extract_patterns",
]
