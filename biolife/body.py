"""
Body builder: instantiates creatures (nodes + links) from genomes.

Nodes are laid out one at a time, each offset from an already-built node
at an index-derived angle so bodies are non-collinear by default. Links
come from every gene's relative offsets, resolved with modular wraparound
and deduplicated by unordered node pair. Rest lengths are the built
distances, so a freshly built body starts at spring equilibrium.
"""

import math
import numpy as np
from typing import List, Set, Tuple

from .data_types import Genome
from .entity import Creature, Node, Link
from .spatial import separation
from .constants import (
    NODE_SPACING_MARGIN,
    NODE_ANGLE_STEP,
    NODE_ANGLE_JITTER,
    LINK_STIFFNESS,
    ACTUATION_PROBABILITY,
    ACTUATION_AMP_MIN,
    ACTUATION_AMP_MAX,
    ACTUATION_FREQ_MIN,
    ACTUATION_FREQ_MAX,
    ACTUATION_PHASE_MAX,
)


class InvalidGenome(ValueError):
    """Raised when a creature cannot be built from a genome or explicit parts"""
    pass


def resolve_link(index: int, offset: int, length: int) -> int:
    """
    Resolve a relative link offset to an absolute node index.

    Out-of-range targets wrap modularly; the result is always in [0, length).
    """
    return (index + offset) % length


def _place_node(parent: Node, gene, index: int, rng: np.random.Generator) -> np.ndarray:
    angle = index * NODE_ANGLE_STEP + rng.random() * NODE_ANGLE_JITTER
    dist = parent.gene.size + gene.size + NODE_SPACING_MARGIN
    return parent.position + dist * np.array([math.cos(angle), math.sin(angle)], dtype=np.float64)


def _random_actuation(rng: np.random.Generator) -> Tuple[float, float, float]:
    if rng.random() < ACTUATION_PROBABILITY:
        amp = ACTUATION_AMP_MIN + rng.random() * (ACTUATION_AMP_MAX - ACTUATION_AMP_MIN)
        freq = ACTUATION_FREQ_MIN + rng.random() * (ACTUATION_FREQ_MAX - ACTUATION_FREQ_MIN)
        phase = rng.random() * ACTUATION_PHASE_MAX
        return amp, freq, phase
    return 0.0, 0.0, 0.0


def build_creature(
    creature_id: int,
    genome: Genome,
    x: float,
    y: float,
    starting_energy: float,
    rng: np.random.Generator
) -> Creature:
    """
    Build a creature from a genome.

    Args:
        creature_id: Id to assign (caller allocates from the World counter)
        genome: Body plan; must contain at least one gene
        x: Position of node 0
        y: Position of node 0
        starting_energy: Initial energy
        rng: Random stream (placement jitter, actuation parameters)

    Returns:
        New living Creature whose node i carries genome[i]

    Raises:
        InvalidGenome: If genome is empty
    """
    if len(genome) == 0:
        raise InvalidGenome("Cannot create creature with empty genome")

    length = len(genome)
    nodes: List[Node] = []

    for i, gene in enumerate(genome):
        if i == 0:
            position = np.array([x, y], dtype=np.float64)
        else:
            first_offset = gene.links[0] if gene.links else -1
            linked_idx = resolve_link(i, first_offset, length)
            parent = nodes[linked_idx] if linked_idx < len(nodes) else nodes[i - 1]
            position = _place_node(parent, gene, i, rng)

        nodes.append(Node(id=i, gene=gene, position=position))

    links: List[Link] = []
    seen: Set[Tuple[int, int]] = set()

    for i, gene in enumerate(genome):
        for offset in gene.links:
            target = resolve_link(i, offset, length)
            if target == i:
                continue

            key = (min(i, target), max(i, target))
            if key in seen:
                continue
            seen.add(key)

            _, rest_length = separation(nodes[i].position, nodes[target].position)
            amp, freq, phase = _random_actuation(rng)
            links.append(Link(
                node_a=i,
                node_b=target,
                rest_length=rest_length,
                stiffness=LINK_STIFFNESS,
                actuation_amp=amp,
                actuation_freq=freq,
                actuation_phase=phase
            ))

    return Creature(
        id=creature_id,
        nodes=nodes,
        links=links,
        genome=genome,
        energy=starting_energy
    )


def build_creature_from_parts(
    creature_id: int,
    nodes: List[Node],
    links: List[Link],
    energy: float
) -> Creature:
    """
    Assemble a creature from explicit nodes and links (scripted scenarios).

    The genome is taken from the node genes. Node ids are renumbered to
    their list positions.

    Raises:
        InvalidGenome: If there are no nodes, or a link is out of range,
            a self-link, or a duplicate of another link's node pair
    """
    if not nodes:
        raise InvalidGenome("Cannot create creature with no nodes")

    seen: Set[Tuple[int, int]] = set()
    for link in links:
        a, b = link.node_a, link.node_b
        if not (0 <= a < len(nodes) and 0 <= b < len(nodes)):
            raise InvalidGenome(f"Link ({a}, {b}) references a node outside [0, {len(nodes)})")
        if a == b:
            raise InvalidGenome(f"Link ({a}, {b}) connects a node to itself")
        key = (min(a, b), max(a, b))
        if key in seen:
            raise InvalidGenome(f"Duplicate link between nodes {key[0]} and {key[1]}")
        seen.add(key)

    for i, node in enumerate(nodes):
        node.id = i

    return Creature(
        id=creature_id,
        nodes=nodes,
        links=links,
        genome=[node.gene for node in nodes],
        energy=energy
    )
