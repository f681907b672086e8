"""
Tests for the Multi-Level Filter
"""

import pytest

from graph_analogy.graph import Entity, Relation, Pattern
from graph_analogy.signature import SignatureIndex
from graph_analogy.filtering import (
    GraphletProfile,
    FilterReport,
    MultiLevelFilter,
    is_cross_domain,
    jaccard,
    reaches,
)


def chain(prefix, tags):
    p = Pattern(name=prefix)
    entities = [Entity(f"{prefix}_{i}", f"{prefix} {i}", set(t)) for i, t in enumerate(tags)]
    for e in entities:
        p.add_entity(e)
    for i in range(len(entities) - 1):
        p.add_relation(entities[i], Relation(f"{prefix}_r{i}"), entities[i + 1])
    return p


def clique(prefix, size, tags):
    p = Pattern(name=prefix)
    entities = [Entity(f"{prefix}_{i}", "", set(tags)) for i in range(size)]
    for e in entities:
        p.add_entity(e)
    for a in entities:
        for b in entities:
            if a != b:
                p.add_relation(a, Relation(f"{prefix}_{a.id}_{b.id}"), b)
    return p


class TestTagHelpers:
    def test_jaccard(self):
        assert jaccard({"a", "b"}, {"b", "c"}) == pytest.approx(1 / 3)
        assert jaccard(set(), {"a"}) == 0.0
        assert jaccard({"a"}, {"a"}) == 1.0

    def test_cross_domain_zero_overlap(self):
        assert is_cross_domain({"biology", "gene"}, {"finance", "asset"})

    def test_cross_domain_ninety_percent_overlap(self):
        shared = {f"t{i}" for i in range(9)}
        assert not is_cross_domain(shared | {"a"}, shared | {"b"})

    def test_cross_domain_small_overlap(self):
        a = {f"a{i}" for i in range(9)} | {"shared"}
        b = {f"b{i}" for i in range(9)} | {"shared"}
        assert is_cross_domain(a, b)

    def test_cross_domain_overlap_at_boundary(self):
        # 3 shared of 10 is exactly 30%, not below it
        shared = {"s1", "s2", "s3"}
        a = shared | {f"a{i}" for i in range(7)}
        b = shared | {f"b{i}" for i in range(7)}
        assert not is_cross_domain(a, b)

    def test_empty_sets_are_disjoint(self):
        assert is_cross_domain(set(), {"a"})

    def test_reaches_inclusive(self):
        assert reaches(0.6, 0.6)
        assert reaches(0.1 + 0.2 + 0.3, 0.6)
        assert not reaches(0.59, 0.6)


class TestGraphletProfile:
    def test_profile_of_chain(self):
        profile = GraphletProfile.of(chain("c", [{"x"}] * 3))
        assert profile.vertex_count == 3
        assert profile.edge_count == 2
        assert profile.density == pytest.approx(1 / 3)
        assert profile.avg_degree == pytest.approx(4 / 3)

    def test_profile_of_empty(self):
        profile = GraphletProfile.of(Pattern())
        assert profile == GraphletProfile(0, 0, 0.0, 0.0)

    def test_self_similarity(self):
        profile = GraphletProfile.of(chain("c", [{"x"}] * 4))
        assert profile.similarity(profile) == 1.0

    def test_similarity_formula(self):
        p = GraphletProfile(3, 2, 1 / 3, 4 / 3)
        q = GraphletProfile(4, 3, 0.25, 1.5)
        expected = ((1 - 1 / 4) + (1 - 1 / 3) + (1 - 1 / 12) + (1 - (1 / 6) / 1.5)) / 4
        assert p.similarity(q) == pytest.approx(expected)
        assert q.similarity(p) == pytest.approx(expected)

    def test_empty_profiles_do_not_divide_by_zero(self):
        empty = GraphletProfile(0, 0, 0.0, 0.0)
        assert empty.similarity(empty) == 1.0


def build_filter(patterns, width=64):
    index = SignatureIndex(signature_width=width)
    for p in patterns:
        index.index_pattern(p)
    return MultiLevelFilter(index)


class TestMultiLevelFilter:
    def test_thresholds_fixed(self):
        f = build_filter([])
        assert (f.l0_threshold, f.l1_threshold, f.l2_threshold, f.l3_threshold) == (0.85, 0.70, 0.60, 0.50)

    def test_ontological_keeps_same_domain(self):
        query = chain("q", [{"x"}, {"y"}, {"z"}])
        same = chain("s", [{"x"}, {"y"}, {"z"}])
        f = build_filter([same])
        assert f.ontological_stage(query, [same]) == [same]

    def test_ontological_keeps_cross_domain(self):
        query = chain("q", [{"x"}, {"y"}, {"z"}])
        foreign = chain("f", [{"a"}, {"b"}, {"c"}])
        f = build_filter([foreign])
        assert f.ontological_stage(query, [foreign]) == [foreign]

    def test_ontological_drops_partial_overlap(self):
        query = chain("q", [{"x"}, {"y"}, {"z"}])
        partial = chain("p", [{"x"}, {"y"}, {"c"}])
        f = build_filter([partial])
        assert f.ontological_stage(query, [partial]) == []

    def test_signature_stage_requeries_whole_index(self):
        query = chain("q", [{"x"}, {"y"}, {"z"}])
        partial = chain("p", [{"x"}, {"y"}, {"z"}])
        f = build_filter([partial])
        # Not passed in, yet returned: L1 ignores the upstream survivors
        assert f.signature_stage(query, []) == [partial]

    def test_graphlet_stage_drops_different_shapes(self):
        query = chain("q", [{"x"}] * 3)
        big = clique("k", 6, {"x"})
        f = build_filter([big])
        assert f.graphlet_stage(query, [big]) == []

    def test_graphlet_threshold_inclusive(self, monkeypatch):
        query = chain("q", [{"x"}] * 3)
        candidate = chain("c", [{"y"}] * 3)
        monkeypatch.setattr(GraphletProfile, "similarity", lambda self, other: 0.60)
        f = build_filter([candidate])
        assert f.graphlet_stage(query, [candidate]) == [candidate]

    def test_structural_threshold_inclusive(self, monkeypatch):
        query = chain("q", [{"x"}] * 3)
        candidate = chain("c", [{"y"}] * 3)
        monkeypatch.setattr(GraphletProfile, "similarity", lambda self, other: 0.50)
        f = build_filter([candidate])
        assert f.structural_stage(query, [candidate]) == [candidate]
        assert f.graphlet_stage(query, [candidate]) == []

    def test_cascade_shrinks_after_signature_stage(self):
        query = chain("q", [{"x"}, {"y"}, {"z"}])
        corpus = [
            chain("a", [{"x"}, {"y"}, {"z"}]),
            chain("b", [{"x"}, {"y"}, {"z"}, {"w"}]),
            clique("c", 5, {"x"}),
            chain("d", [{"p"}, {"q"}, {"r"}]),
        ]
        f = build_filter(corpus)
        report = f.cascade(query, corpus)
        assert isinstance(report, FilterReport)
        assert len(report.graphlet) <= len(report.signature)
        assert len(report.structural) <= len(report.graphlet)
        assert set(p.uid for p in report.graphlet) <= set(p.uid for p in report.signature)
        assert report.survivors == report.structural
        assert f.filter(query, corpus) == report.survivors
        assert corpus[0] in report.survivors

    def test_cascade_counts(self):
        query = chain("q", [{"x"}, {"y"}, {"z"}])
        corpus = [chain("a", [{"x"}, {"y"}, {"z"}])]
        report = build_filter(corpus).cascade(query, corpus)
        assert report.counts() == {
            "candidates": 1,
            "L0_ontological": 1,
            "L1_signature": 1,
            "L2_graphlet": 1,
            "L3_structural": 1,
        }

    def test_empty_candidates(self):
        f = build_filter([])
        assert f.filter(chain("q", [{"x"}, {"y"}]), []) == []

    def test_summary(self):
        f = build_filter([chain("a", [{"x"}, {"y"}])])
        summary = f.get_summary()
        assert summary["indexed_patterns"] == 1
        assert summary["thresholds"]["L2_graphlet"] == 0.60
