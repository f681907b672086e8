"""
Cross-Domain Analogy Demonstration

Builds a small knowledge graph spanning four subject domains (biology,
cybersecurity, finance, materials science), each holding the same causal
chain under domain-specific vocabulary, and asks the engine for analogies
of an abstract pattern:

    [Entity A] → disrupts → [Mechanism B] → leads_to → [Outcome C]
"""

import logging

from graph_analogy import AnalogyEngine, EngineConfig, Entity, Relation, Pattern


ROOTS = ("cause", "mechanism", "effect", "consequence")

DOMAINS = {
    "biology": [
        ("gene_mutation", "BRCA1 Mutation"),
        ("dna_repair", "DNA Repair Pathway"),
        ("tumor", "Tumor Growth"),
        ("metastasis", "Metastasis"),
    ],
    "cybersecurity": [
        ("vulnerability", "Buffer Overflow"),
        ("access_control", "Access Control"),
        ("breach", "System Breach"),
        ("data_leak", "Data Exfiltration"),
    ],
    "finance": [
        ("toxic_asset", "Toxic Asset"),
        ("trust_chain", "Interbank Trust"),
        ("crisis", "Liquidity Crisis"),
        ("recession", "Recession"),
    ],
    "materials": [
        ("lattice_defect", "Lattice Defect"),
        ("load_transfer", "Load Transfer"),
        ("crack", "Crack Propagation"),
        ("fracture", "Fracture"),
    ],
}


def print_section(title):
    """Print a formatted section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


def build_corpus():
    """One four-step causal chain per domain, tags filed under shared roots."""
    corpus = Pattern(name="cross_domain_kg")
    for domain, steps in DOMAINS.items():
        entities = []
        for i, (tag, label) in enumerate(steps):
            entity = Entity(f"{domain}:{tag}", label, {tag})
            entity.add_attribute(domain)
            corpus.add_entity(entity)
            entities.append(entity)
        for i in range(len(entities) - 1):
            relation = Relation(f"{domain}:r{i}", "disrupts" if i == 0 else "leads_to", domain, 0.9)
            corpus.add_relation(entities[i], relation, entities[i + 1])
        for root, (tag, _) in zip(ROOTS, steps):
            corpus.registry.add_subtype(root, tag)
    return corpus


def build_query():
    query = Pattern(name="A-disrupts-B-leads_to-C")
    a = Entity("A", "Entity A", {"cause"})
    b = Entity("B", "Mechanism B", {"mechanism"})
    c = Entity("C", "Outcome C", {"effect"})
    for entity in (a, b, c):
        query.add_entity(entity)
    query.add_relation(a, Relation("q:disrupts", "disrupts"), b)
    query.add_relation(b, Relation("q:leads_to", "leads_to"), c)
    return query


def demonstrate_indexing(engine):
    print_section("STEP 1: Corpus and Signature Index")
    summary = engine.get_summary()
    print(f"\nCorpus: {summary['corpus']['vertices']} vertices, {summary['corpus']['edges']} edges")
    print(f"Extracted patterns: {summary['patterns']}")
    for pattern in engine.patterns:
        print(f"  {pattern.name:40s} {pattern.vertex_count} vertices, {pattern.edge_count} edges")
    print(f"\nSignature width: {summary['index']['signature_width']}")
    print(f"Neighborhood radius: {summary['index']['radius']}")


def demonstrate_filtering(engine, query):
    print_section("STEP 2: Multi-Level Filtering")
    candidates = engine.index.find_candidates(query, engine.config.retrieval_threshold)
    report = engine.filter.cascade(query, candidates)
    for stage, count in report.counts().items():
        print(f"  {stage:18s} {count}")


def demonstrate_analogies(engine, query):
    print_section("STEP 3: Verified Cross-Domain Analogies")
    results = engine.find_analogies(query, top_k=10)
    if not results:
        print("\nNo analogies found. Try lowering the similarity threshold.")
        return

    print(f"\nFound {len(results)} analogies\n")
    for rank, result in enumerate(results, 1):
        chain = " → ".join(e.label for e in result.candidate.entities)
        domains = sorted({a for e in result.candidate.entities for a in e.attributes})
        print(f"#{rank} similarity={result.similarity:.3f}  [{', '.join(domains)}]")
        print(f"   {chain}")


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("\n" + "=" * 70)
    print("  GRAPH ANALOGY - CROSS-DOMAIN DEMONSTRATION")
    print("=" * 70)

    corpus = build_corpus()
    query = build_query()
    engine = AnalogyEngine(corpus, config=EngineConfig(signature_width=64, similarity_threshold=0.3, seed=7))

    demonstrate_indexing(engine)
    demonstrate_filtering(engine, query)
    demonstrate_analogies(engine, query)

    print("\n" + "=" * 70 + "\n")


if __name__ == "__main__":
    main()
