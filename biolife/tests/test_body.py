"""
Test body builder: genome -> nodes + links.
"""

import sys
import numpy as np
from pathlib import Path

import pytest

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from biolife.data_types import SegmentType
from biolife.entity import Link
from biolife.genome import generate, parse
from biolife.body import build_creature, build_creature_from_parts, resolve_link, InvalidGenome
from biolife.spatial import distance_2d
from biolife.rng import make_rng, make_seed
from biolife.tests.scenario_helpers import make_node


def _rng(name: str):
    return make_rng(make_seed(7, name))


def test_empty_genome_rejected():
    """Building from an empty genome raises InvalidGenome"""
    with pytest.raises(InvalidGenome):
        build_creature(0, [], 0.0, 0.0, 50.0, _rng("empty"))


def test_resolve_link_wraps():
    """Offsets wrap modulo genome length in both directions"""
    assert resolve_link(0, -1, 3) == 2
    assert resolve_link(2, 1, 3) == 0
    assert resolve_link(1, 7, 3) == 2
    assert resolve_link(0, -10, 4) == 2


def test_random_bodies_have_valid_unique_links():
    """Every link joins two distinct in-range nodes; no node pair is linked twice"""
    rng = _rng("random-bodies")

    for i in range(200):
        genome = generate(rng, min_nodes=1, max_nodes=8)
        creature = build_creature(i, genome, 0.0, 0.0, 50.0, rng)

        assert len(creature.nodes) == len(genome)
        pairs = set()
        for link in creature.links:
            assert 0 <= link.node_a < len(creature.nodes)
            assert 0 <= link.node_b < len(creature.nodes)
            assert link.node_a != link.node_b
            key = (min(link.node_a, link.node_b), max(link.node_a, link.node_b))
            assert key not in pairs
            pairs.add(key)


def test_node_genes_and_first_position():
    """Node i carries genome[i]; node 0 sits at the requested position"""
    genome = parse("(sucker,5.0,0.80)(solar,4.0,0.60,-1)(mating,3.0,0.50,-1)")
    creature = build_creature(3, genome, 12.0, -7.0, 42.0, _rng("genes"))

    assert creature.id == 3
    assert creature.energy == 42.0
    assert creature.alive
    assert creature.genome is genome
    assert np.allclose(creature.nodes[0].position, [12.0, -7.0])
    for i, node in enumerate(creature.nodes):
        assert node.id == i
        assert node.gene is genome[i]
        assert np.allclose(node.velocity, [0.0, 0.0])


def test_rest_length_matches_built_distance():
    """A freshly built body is at spring equilibrium"""
    rng = _rng("rest")

    for i in range(50):
        creature = build_creature(i, generate(rng), 0.0, 0.0, 50.0, rng)
        for link in creature.links:
            dist = distance_2d(creature.nodes[link.node_a].position, creature.nodes[link.node_b].position)
            assert np.isclose(link.rest_length, dist)


def test_chain_spacing():
    """Each node is placed size_parent + size_child + 2 from its parent"""
    genome = parse("(neutral,5.0,0.50)(neutral,3.0,0.50,-1)(neutral,4.0,0.50,-1)")
    creature = build_creature(0, genome, 0.0, 0.0, 50.0, _rng("spacing"))

    d01 = distance_2d(creature.nodes[0].position, creature.nodes[1].position)
    d12 = distance_2d(creature.nodes[1].position, creature.nodes[2].position)
    assert np.isclose(d01, 5.0 + 3.0 + 2.0)
    assert np.isclose(d12, 3.0 + 4.0 + 2.0)


def test_out_of_range_offset_wraps_to_link():
    """Offset +5 on a two-gene genome resolves to the other node"""
    genome = parse("(neutral,4.0,0.50,+5)(neutral,4.0,0.50)")
    creature = build_creature(0, genome, 0.0, 0.0, 50.0, _rng("wrap"))

    assert len(creature.links) == 1
    link = creature.links[0]
    assert {link.node_a, link.node_b} == {0, 1}


def test_self_resolving_offset_is_skipped():
    """An offset that wraps back onto its own node creates no link"""
    genome = parse("(neutral,4.0,0.50,+2)(neutral,4.0,0.50)")
    creature = build_creature(0, genome, 0.0, 0.0, 50.0, _rng("self"))

    assert creature.links == []


def test_mutual_offsets_deduplicated():
    """A +1 on node 0 and -1 on node 1 describe the same link"""
    genome = parse("(neutral,4.0,0.50,+1)(neutral,4.0,0.50,-1)")
    creature = build_creature(0, genome, 0.0, 0.0, 50.0, _rng("dedupe"))

    assert len(creature.links) == 1


def test_single_gene_body():
    """One gene gives one node and no links"""
    genome = parse("(solar,6.0,0.50,-1)")
    creature = build_creature(0, genome, 1.0, 2.0, 10.0, _rng("single"))

    assert len(creature.nodes) == 1
    assert creature.links == []


def test_actuation_parameters_in_range():
    """Actuated links have amplitude 0.2-0.5 and frequency 1-3"""
    rng = _rng("actuation")
    seen_actuated = False

    for i in range(100):
        creature = build_creature(i, generate(rng, min_nodes=4, max_nodes=6), 0.0, 0.0, 50.0, rng)
        for link in creature.links:
            assert link.stiffness == 2.0
            if link.is_actuated:
                seen_actuated = True
                assert 0.2 <= link.actuation_amp <= 0.5
                assert 1.0 <= link.actuation_freq <= 3.0
                assert 0.0 <= link.actuation_phase <= 2.0 * np.pi
            else:
                assert link.actuation_freq == 0.0

    assert seen_actuated


def test_build_from_parts_renumbers_and_keeps_genes():
    """Explicit assembly assigns ids by list position and derives the genome"""
    nodes = [make_node(SegmentType.SUCKER, 0.0, 0.0), make_node(SegmentType.SOLAR, 12.0, 0.0)]
    links = [Link(node_a=0, node_b=1, rest_length=12.0, stiffness=2.0)]
    creature = build_creature_from_parts(9, nodes, links, 30.0)

    assert [n.id for n in creature.nodes] == [0, 1]
    assert [g.type for g in creature.genome] == [SegmentType.SUCKER, SegmentType.SOLAR]
    assert creature.energy == 30.0


def test_build_from_parts_rejects_bad_links():
    """Out-of-range, self and duplicate links raise InvalidGenome"""
    def nodes():
        return [make_node(SegmentType.NEUTRAL, 0.0, 0.0), make_node(SegmentType.NEUTRAL, 12.0, 0.0)]

    with pytest.raises(InvalidGenome):
        build_creature_from_parts(0, [], [], 10.0)
    with pytest.raises(InvalidGenome):
        build_creature_from_parts(0, nodes(), [Link(0, 2, 10.0, 2.0)], 10.0)
    with pytest.raises(InvalidGenome):
        build_creature_from_parts(0, nodes(), [Link(1, 1, 10.0, 2.0)], 10.0)
    with pytest.raises(InvalidGenome):
        build_creature_from_parts(0, nodes(), [Link(0, 1, 10.0, 2.0), Link(1, 0, 10.0, 2.0)], 10.0)


if __name__ == '__main__':
    print("=" * 60)
    print("Body Builder Tests")
    print("=" * 60)
    print()

    try:
        test_empty_genome_rejected()
        test_resolve_link_wraps()
        test_random_bodies_have_valid_unique_links()
        test_node_genes_and_first_position()
        test_rest_length_matches_built_distance()
        test_chain_spacing()
        test_out_of_range_offset_wraps_to_link()
        test_self_resolving_offset_is_skipped()
        test_mutual_offsets_deduplicated()
        test_single_gene_body()
        test_actuation_parameters_in_range()
        test_build_from_parts_renumbers_and_keeps_genes()
        test_build_from_parts_rejects_bad_links()

    except Exception as e:
        print(f"\n[FAIL] Test failed: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)

    print("\n" + "=" * 60)
    print("All body builder tests passed!")
    print("=" * 60)
