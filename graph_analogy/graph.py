"""
Graph Data Model Module

Entities, typed relations and the pattern graph the retrieval pipeline
operates on. A Pattern is a directed weighted multigraph (backed by
networkx) that owns its own type registry.
"""

from __future__ import annotations

import itertools
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Set, Tuple, Union
from dataclasses import dataclass, field

import networkx as nx


_PATTERN_IDS = itertools.count()


@dataclass
class Entity:
    """
    A vertex of a knowledge pattern.

    Attributes:
        id: Unique, non-empty identifier (identity of the entity)
        label: Human readable label
        types: Taxonomic type tags
        attributes: Free-form attributes, not used for matching
    """
    id: str
    label: str = ""
    types: Set[str] = field(default_factory=set)
    attributes: Set[str] = field(default_factory=set)

    def __post_init__(self):
        if not self.id:
            raise ValueError("Entity id must be a non-empty string")
        self.types = set(self.types) if self.types else set()
        self.attributes = set(self.attributes) if self.attributes else set()
        if not self.label:
            self.label = self.id

    def __hash__(self):
        return hash(self.id)

    def __eq__(self, other):
        if not isinstance(other, Entity):
            return False
        return self.id == other.id

    def add_type(self, type_tag: str) -> None:
        """Add a type tag. Tags are the only mutable part of an entity."""
        self.types.add(type_tag)

    def add_attribute(self, attribute: str) -> None:
        self.attributes.add(attribute)

    def has_type(self, type_tag: str) -> bool:
        return type_tag in self.types


@dataclass
class Relation:
    """
    A typed relation carried by a pattern edge.

    The weight is clamped into [0, 1] on construction.
    """
    id: str
    label: str = ""
    domain: str = "general"
    weight: float = 1.0

    def __post_init__(self):
        self.weight = max(0.0, min(1.0, float(self.weight)))
        if not self.label:
            self.label = self.id

    def __hash__(self):
        return hash(self.id)

    def __eq__(self, other):
        if not isinstance(other, Relation):
            return False
        return self.id == other.id


class TypeRegistry:
    """
    Per-pattern ontology: the set of observed type tags plus an optional
    parent → children subtype map.

    Each Pattern owns exactly one registry; registries are never shared.
    The subtype map is only consulted through generalize(), which lifts a
    tag to its root ancestor so that domain-specific tags declared under a
    shared parent compare equal.
    """

    def __init__(self):
        self._types: Set[str] = set()
        self._hierarchy: Dict[str, Set[str]] = {}
        self._parents: Dict[str, Set[str]] = {}

    def add_type(self, type_tag: str) -> None:
        self._types.add(type_tag)

    def add_subtype(self, parent: str, child: str) -> None:
        """Record child as a subtype of parent; both become known types."""
        self._hierarchy.setdefault(parent, set()).add(child)
        self._parents.setdefault(child, set()).add(parent)
        self._types.add(parent)
        self._types.add(child)

    def is_subtype(self, child: str, parent: str) -> bool:
        """Direct subtype check (one level, as recorded)."""
        return child in self._hierarchy.get(parent, ())

    @property
    def types(self) -> Set[str]:
        return set(self._types)

    @property
    def hierarchy(self) -> Dict[str, Set[str]]:
        return {parent: set(children) for parent, children in self._hierarchy.items()}

    def __contains__(self, type_tag: str) -> bool:
        return type_tag in self._types

    def __len__(self) -> int:
        return len(self._types)

    def lineage(self, type_tag: str) -> List[Tuple[str, str]]:
        """
        All (parent, child) links reachable upwards from a tag.

        Args:
            type_tag: Tag to start from

        Returns:
            List of subtype links, nearest first
        """
        links = []
        seen = {type_tag}
        frontier = [type_tag]
        while frontier:
            child = frontier.pop(0)
            for parent in sorted(self._parents.get(child, ())):
                links.append((parent, child))
                if parent not in seen:
                    seen.add(parent)
                    frontier.append(parent)
        return links

    def root_of(self, type_tag: str) -> str:
        """
        Follow parent links up to a root tag.

        With several parents the lexicographically smallest is followed,
        so the result is deterministic. Cycles stop at the first repeat.
        """
        current = type_tag
        seen = {current}
        while self._parents.get(current):
            parent = min(self._parents[current])
            if parent in seen:
                break
            seen.add(parent)
            current = parent
        return current

    def generalize(self, tags: Iterable[str]) -> FrozenSet[str]:
        """Lift every tag to its root; identity when no subtypes are declared."""
        if not self._parents:
            return frozenset(tags)
        return frozenset(self.root_of(t) for t in tags)


EntityRef = Union[Entity, str]


class Pattern:
    """
    A small directed weighted multigraph of entities and typed relations.

    Used both as a corpus unit and as a query. Vertices are keyed by entity
    id in the underlying networkx MultiDiGraph; every edge stores its
    Relation and weight. Multiple relations between the same ordered pair
    are kept as distinct edges.

    Identity is the object itself: ``uid`` is an opaque token assigned at
    construction and used to key signature catalogues, so two structurally
    identical patterns built separately never share an entry.
    """

    def __init__(self, name: Optional[str] = None):
        self.uid = next(_PATTERN_IDS)
        self.name = name or f"pattern_{self.uid}"
        self.graph = nx.MultiDiGraph()
        self.registry = TypeRegistry()
        self._entities: Dict[str, Entity] = {}
        self._relations: Dict[str, Relation] = {}

    def __repr__(self):
        return f"Pattern(name={self.name!r}, vertices={self.vertex_count}, edges={self.edge_count})"

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, entity: EntityRef) -> bool:
        return self._key(entity) in self._entities

    @staticmethod
    def _key(entity: EntityRef) -> str:
        return entity.id if isinstance(entity, Entity) else entity

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def add_entity(self, entity: Entity) -> None:
        """Add an entity and register its tags in this pattern's registry."""
        self._entities[entity.id] = entity
        self.graph.add_node(entity.id)
        for type_tag in entity.types:
            self.registry.add_type(type_tag)

    def add_relation(self, source: EntityRef, relation: Relation, target: EntityRef) -> None:
        """
        Add a directed edge carrying a relation.

        Args:
            source: Source entity (or its id), already in the pattern
            relation: Relation to attach
            target: Target entity (or its id), already in the pattern

        Raises:
            ValueError: If either endpoint is not a member; the pattern
                is left unmodified
        """
        source_id, target_id = self._key(source), self._key(target)
        missing = [eid for eid in (source_id, target_id) if eid not in self._entities]
        if missing:
            raise ValueError(f"Entities {missing} not in pattern {self.name!r}")
        self._relations[relation.id] = relation
        self.graph.add_edge(source_id, target_id, key=relation.id,
                            relation=relation, weight=relation.weight)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def entities(self) -> List[Entity]:
        """Entities in insertion order."""
        return list(self._entities.values())

    @property
    def relations(self) -> List[Relation]:
        return list(self._relations.values())

    @property
    def vertex_count(self) -> int:
        return self.graph.number_of_nodes()

    @property
    def edge_count(self) -> int:
        return self.graph.number_of_edges()

    def get_entity(self, entity_id: str) -> Entity:
        return self._entities[entity_id]

    def entities_by_type(self, type_tag: str) -> List[Entity]:
        return [e for e in self._entities.values() if e.has_type(type_tag)]

    def edges(self) -> Iterator[Tuple[Entity, Relation, Entity]]:
        """Iterate (source, relation, target) triples."""
        for u, v, data in self.graph.edges(data=True):
            yield self._entities[u], data["relation"], self._entities[v]

    def degree(self, entity: EntityRef) -> int:
        """Total degree (in + out), each parallel edge counted."""
        return self.graph.degree(self._key(entity))

    def edge_multiplicity(self, source: EntityRef, target: EntityRef) -> int:
        """Number of edges from source to target."""
        return self.graph.number_of_edges(self._key(source), self._key(target))

    def incident_neighbors(self, entity: EntityRef) -> List[str]:
        """
        Other endpoint of every incident edge, ignoring direction.

        One entry per edge, so a neighbor joined by two relations appears
        twice. Used for uniform incident-edge selection in random walks.
        """
        key = self._key(entity)
        neighbors = [v for _, v in self.graph.out_edges(key)]
        neighbors.extend(u for u, _ in self.graph.in_edges(key))
        return neighbors

    def neighbor_set(self, entity: EntityRef) -> Set[str]:
        key = self._key(entity)
        return set(self.graph.successors(key)) | set(self.graph.predecessors(key))

    def tag_set(self) -> Set[str]:
        """Union of the type tags of all entities."""
        tags: Set[str] = set()
        for entity in self._entities.values():
            tags.update(entity.types)
        return tags

    def generalized_tags(self, entity: EntityRef) -> FrozenSet[str]:
        """Tags of an entity lifted through this pattern's subtype map."""
        return self.registry.generalize(self._entities[self._key(entity)].types)

    def density(self) -> float:
        """E / (V·(V−1)); 0 for patterns with at most one vertex."""
        v = self.vertex_count
        return self.edge_count / (v * (v - 1)) if v > 1 else 0.0

    # ------------------------------------------------------------------
    # Neighborhoods and subgraphs
    # ------------------------------------------------------------------

    def k_hop_neighbors(self, entity: EntityRef, k: int) -> Set[Entity]:
        """
        Vertices reachable within k edge traversals, ignoring direction.

        Breadth-first, exactly k layers, the origin excluded.

        Args:
            entity: Origin entity (or id)
            k: Number of hops

        Returns:
            Set of neighbor entities
        """
        if k < 0:
            raise ValueError(f"Hop count must be non-negative, got {k}")
        key = self._key(entity)
        if key not in self._entities:
            raise ValueError(f"Entity {key!r} not in pattern {self.name!r}")
        reached = nx.single_source_shortest_path_length(
            self.graph.to_undirected(as_view=True), key, cutoff=k
        )
        return {self._entities[v] for v in reached if v != key}

    def extract_subgraph(self, vertices: Iterable[EntityRef], name: Optional[str] = None) -> Pattern:
        """
        Induced subgraph over a vertex subset.

        Only edges whose endpoints both lie in the subset are kept. The new
        pattern gets its own registry, holding the tags of the extracted
        entities and the subtype links above them.

        Args:
            vertices: Entities (or ids); non-members are ignored
            name: Optional name for the new pattern

        Returns:
            New independent Pattern
        """
        wanted = {self._key(v) for v in vertices}
        sub = Pattern(name=name)
        for entity_id, entity in self._entities.items():
            if entity_id in wanted:
                sub.add_entity(entity)

        for u, v, data in self.graph.edges(data=True):
            if u in sub._entities and v in sub._entities:
                sub.add_relation(u, data["relation"], v)

        for type_tag in sorted(sub.registry.types):
            for parent, child in self.registry.lineage(type_tag):
                sub.registry.add_subtype(parent, child)
        return sub
