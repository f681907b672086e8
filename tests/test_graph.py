"""
Tests for the Graph Data Model
"""

import pytest

from graph_analogy.graph import Entity, Relation, TypeRegistry, Pattern


def build_chain(prefix="n", length=3, tags=None):
    pattern = Pattern(name=f"{prefix}_chain")
    entities = []
    for i in range(length):
        entity = Entity(f"{prefix}{i}", f"{prefix.upper()}{i}", set(tags[i]) if tags else set())
        pattern.add_entity(entity)
        entities.append(entity)
    for i in range(length - 1):
        pattern.add_relation(entities[i], Relation(f"{prefix}_r{i}", f"r{i}"), entities[i + 1])
    return pattern, entities


class TestEntity:
    def test_create_entity(self):
        e = Entity("gene", "BRCA1 Gene", {"gene", "biology"})
        assert e.id == "gene"
        assert e.label == "BRCA1 Gene"
        assert e.has_type("biology")
        assert not e.has_type("finance")

    def test_identity_is_id(self):
        a = Entity("x", "first", {"a"})
        b = Entity("x", "second", {"b"})
        assert a == b
        assert hash(a) == hash(b)
        assert len({a, b}) == 1

    def test_empty_id_rejected(self):
        with pytest.raises(ValueError):
            Entity("", "nameless")

    def test_tag_addition(self):
        e = Entity("x")
        e.add_type("mechanism")
        e.add_attribute("observed")
        assert e.types == {"mechanism"}
        assert e.attributes == {"observed"}
        assert e.label == "x"

    def test_types_are_copied(self):
        tags = {"a"}
        e = Entity("x", "X", tags)
        tags.add("b")
        assert e.types == {"a"}


class TestRelation:
    def test_weight_clamped_high(self):
        assert Relation("r", "causes", "biology", 1.5).weight == 1.0

    def test_weight_clamped_low(self):
        assert Relation("r", "causes", "biology", -0.2).weight == 0.0

    def test_weight_in_range_kept(self):
        assert Relation("r", "causes", "biology", 0.85).weight == pytest.approx(0.85)

    def test_defaults(self):
        r = Relation("r1")
        assert r.label == "r1"
        assert r.domain == "general"
        assert r.weight == 1.0

    def test_identity_is_id(self):
        assert Relation("r", "a") == Relation("r", "b")
        assert Relation("r", "a") != Relation("s", "a")


class TestTypeRegistry:
    def test_add_subtype_registers_both(self):
        registry = TypeRegistry()
        registry.add_subtype("cause", "gene_mutation")
        assert "cause" in registry
        assert "gene_mutation" in registry
        assert registry.is_subtype("gene_mutation", "cause")
        assert not registry.is_subtype("cause", "gene_mutation")

    def test_root_of_follows_chain(self):
        registry = TypeRegistry()
        registry.add_subtype("agent", "cause")
        registry.add_subtype("cause", "gene_mutation")
        assert registry.root_of("gene_mutation") == "agent"
        assert registry.root_of("unrelated") == "unrelated"

    def test_root_of_survives_cycles(self):
        registry = TypeRegistry()
        registry.add_subtype("a", "b")
        registry.add_subtype("b", "a")
        assert registry.root_of("a") in {"a", "b"}

    def test_generalize_without_hierarchy_is_identity(self):
        registry = TypeRegistry()
        registry.add_type("x")
        assert registry.generalize({"x", "y"}) == frozenset({"x", "y"})

    def test_lineage(self):
        registry = TypeRegistry()
        registry.add_subtype("agent", "cause")
        registry.add_subtype("cause", "gene_mutation")
        assert registry.lineage("gene_mutation") == [("cause", "gene_mutation"), ("agent", "cause")]


class TestPattern:
    def test_add_entity_registers_tags(self):
        p = Pattern()
        p.add_entity(Entity("a", "A", {"gene", "biology"}))
        assert p.registry.types == {"gene", "biology"}
        assert p.vertex_count == 1
        assert "a" in p

    def test_add_relation(self):
        p, entities = build_chain(length=2)
        assert p.edge_count == 1
        source, relation, target = next(p.edges())
        assert (source, target) == (entities[0], entities[1])
        assert relation.id == "n_r0"

    def test_add_relation_invalid_reference(self):
        p = Pattern()
        a = Entity("a")
        p.add_entity(a)
        with pytest.raises(ValueError):
            p.add_relation(a, Relation("r"), Entity("ghost"))
        assert p.edge_count == 0
        assert p.relations == []
        assert p.vertex_count == 1

    def test_parallel_relations_are_distinct_edges(self):
        p = Pattern()
        a, b = Entity("a"), Entity("b")
        p.add_entity(a)
        p.add_entity(b)
        p.add_relation(a, Relation("r1", "causes"), b)
        p.add_relation(a, Relation("r2", "enables"), b)
        assert p.edge_count == 2
        assert p.edge_multiplicity(a, b) == 2
        assert p.degree(a) == 2
        assert p.degree(b) == 2

    def test_degree_counts_in_and_out(self):
        p, entities = build_chain(length=3)
        assert [p.degree(e) for e in entities] == [1, 2, 1]

    def test_patterns_have_independent_registries(self):
        p1, p2 = Pattern(), Pattern()
        p1.add_entity(Entity("a", "A", {"only_here"}))
        assert "only_here" not in p2.registry
        assert p1.registry is not p2.registry

    def test_distinct_identity_tokens(self):
        assert Pattern().uid != Pattern().uid

    def test_entities_by_type(self):
        p, _ = build_chain(length=3, tags=[{"x"}, {"y"}, {"x", "z"}])
        assert [e.id for e in p.entities_by_type("x")] == ["n0", "n2"]

    def test_tag_set(self):
        p, _ = build_chain(length=3, tags=[{"x"}, {"y"}, {"x", "z"}])
        assert p.tag_set() == {"x", "y", "z"}

    def test_density(self):
        p, _ = build_chain(length=3)
        assert p.density() == pytest.approx(2 / 6)
        single = Pattern()
        single.add_entity(Entity("solo"))
        assert single.density() == 0.0
        assert Pattern().density() == 0.0

    def test_incident_neighbors_ignore_direction(self):
        p, entities = build_chain(length=3)
        assert sorted(p.incident_neighbors(entities[1])) == ["n0", "n2"]
        assert p.incident_neighbors(entities[0]) == ["n1"]


class TestKHopNeighbors:
    def test_exact_layers(self):
        p, entities = build_chain(length=5)
        assert {e.id for e in p.k_hop_neighbors(entities[0], 1)} == {"n1"}
        assert {e.id for e in p.k_hop_neighbors(entities[0], 2)} == {"n1", "n2"}
        assert {e.id for e in p.k_hop_neighbors(entities[2], 2)} == {"n0", "n1", "n3", "n4"}

    def test_ignores_direction(self):
        p, entities = build_chain(length=3)
        assert {e.id for e in p.k_hop_neighbors(entities[2], 1)} == {"n1"}

    def test_excludes_origin_in_cycles(self):
        p, entities = build_chain(length=3)
        p.add_relation(entities[2], Relation("back"), entities[0])
        neighbors = p.k_hop_neighbors(entities[0], 3)
        assert entities[0] not in neighbors
        assert len(neighbors) == 2

    def test_zero_hops(self):
        p, entities = build_chain(length=3)
        assert p.k_hop_neighbors(entities[1], 0) == set()

    def test_negative_hops_rejected(self):
        p, entities = build_chain(length=2)
        with pytest.raises(ValueError):
            p.k_hop_neighbors(entities[0], -1)


class TestExtractSubgraph:
    def test_induced_edges_only(self):
        p, entities = build_chain(length=4)
        sub = p.extract_subgraph(entities[:2])
        assert sub.vertex_count == 2
        assert sub.edge_count == 1

    def test_ignores_non_members(self):
        p, entities = build_chain(length=2)
        sub = p.extract_subgraph([entities[0], Entity("ghost")])
        assert sub.vertex_count == 1
        assert sub.edge_count == 0

    def test_registry_scoped_to_extracted_vertices(self):
        p, entities = build_chain(length=3, tags=[{"x"}, {"y"}, {"z"}])
        sub = p.extract_subgraph(entities[:2])
        assert sub.registry.types == {"x", "y"}
        assert sub.registry is not p.registry
        sub.registry.add_type("new")
        assert "new" not in p.registry

    def test_carries_subtype_links(self):
        p, entities = build_chain(length=3, tags=[{"gene_mutation"}, {"dna_repair"}, {"tumor"}])
        p.registry.add_subtype("cause", "gene_mutation")
        p.registry.add_subtype("effect", "tumor")
        sub = p.extract_subgraph(entities[:2])
        assert sub.registry.is_subtype("gene_mutation", "cause")
        assert "effect" not in sub.registry
        assert sub.generalized_tags(entities[0]) == frozenset({"cause"})

    def test_preserves_relation_objects(self):
        p, entities = build_chain(length=3)
        sub = p.extract_subgraph(entities)
        assert {r.id for r in sub.relations} == {"n_r0", "n_r1"}
