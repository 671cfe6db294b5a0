"""
Genome engine: generation, mutation, crossover, and text (de)serialization.

A genome is an ordered list of NodeGene. Link offsets are relative
(signed, non-zero) and wrap around the genome length when resolved, so any
offset is valid for any genome length.

Text format, one record per gene:
    (type,size,efficiency,offset1,offset2,...)
Example:
    (sucker,5.0,0.80,+1)(neutral,3.0,0.50,-1,+1)

All stochastic operations draw from an explicit numpy Generator.
"""

import hashlib
import math
import re
import numpy as np
from typing import List, Optional

from .data_types import NodeGene, Genome, SegmentType, SEGMENT_TYPES
from .constants import (
    GENOME_MIN_NODES_DEFAULT,
    GENOME_MAX_NODES_DEFAULT,
    GENE_SIZE_MIN,
    GENE_SIZE_MAX,
    GENE_EFFICIENCY_MIN,
    GENE_EFFICIENCY_MAX,
    EXTRA_BACKREF_PROBABILITY,
    EXTRA_BACKREF_WINDOW,
    MUTATION_SIZE_SCALE,
    MUTATION_SIZE_MIN,
    MUTATION_EFFICIENCY_MIN,
    MUTATION_EFFICIENCY_MAX,
    MUTATION_LINK_OFFSET_RANGE,
    MUTATION_DELETE_FACTOR,
    MUTATION_DUPLICATE_FACTOR,
    GENE_SIZE_DEFAULT,
    GENE_EFFICIENCY_DEFAULT,
)

_RECORD_PATTERN = re.compile(r"\(([^)]+)\)")

# Offsets a mutation may add: [-3, 3] without zero
_NEW_OFFSETS = [o for o in range(-MUTATION_LINK_OFFSET_RANGE, MUTATION_LINK_OFFSET_RANGE + 1) if o != 0]


def copy_genome(genome: Genome) -> Genome:
    """Deep copy of a genome (no gene or link list is shared)"""
    return [gene.copy() for gene in genome]


def _random_type(rng: np.random.Generator) -> SegmentType:
    return SEGMENT_TYPES[int(rng.integers(len(SEGMENT_TYPES)))]


# ============================================================================
# Generation
# ============================================================================

def generate(rng: np.random.Generator,
             min_nodes: int = GENOME_MIN_NODES_DEFAULT,
             max_nodes: int = GENOME_MAX_NODES_DEFAULT) -> Genome:
    """
    Generate a random genome.

    Every node after the first links back to its predecessor (chain
    backbone); nodes from index 2 on may get one extra back-reference
    within the previous three positions.

    Args:
        rng: Random stream
        min_nodes: Minimum node count (inclusive, >= 1)
        max_nodes: Maximum node count (inclusive)

    Returns:
        New genome with between min_nodes and max_nodes genes
    """
    if min_nodes < 1 or max_nodes < min_nodes:
        raise ValueError(f"Invalid node count range [{min_nodes}, {max_nodes}]")

    num_nodes = int(rng.integers(min_nodes, max_nodes + 1))
    genome: Genome = []

    for i in range(num_nodes):
        links: List[int] = []

        if i > 0:
            links.append(-1)

        if i > 1 and rng.random() < EXTRA_BACKREF_PROBABILITY:
            back_ref = -int(rng.integers(1, min(i, EXTRA_BACKREF_WINDOW) + 1))
            if back_ref not in links:
                links.append(back_ref)

        genome.append(NodeGene(
            type=_random_type(rng),
            size=float(rng.uniform(GENE_SIZE_MIN, GENE_SIZE_MAX)),
            links=links,
            efficiency=float(rng.uniform(GENE_EFFICIENCY_MIN, GENE_EFFICIENCY_MAX))
        ))

    return genome


# ============================================================================
# Variation
# ============================================================================

def _mutate_links(links: List[int], rng: np.random.Generator):
    """Apply exactly one of remove / add / nudge to a link list in place"""
    action = rng.random()

    if action < 1.0 / 3.0:
        if links:
            del links[int(rng.integers(len(links)))]
    elif action < 2.0 / 3.0:
        links.append(_NEW_OFFSETS[int(rng.integers(len(_NEW_OFFSETS)))])
    elif links:
        idx = int(rng.integers(len(links)))
        links[idx] += 1 if rng.random() < 0.5 else -1
        if links[idx] == 0:
            links[idx] = 1 if rng.random() < 0.5 else -1


def mutate(genome: Genome, rate: float, strength: float, rng: np.random.Generator) -> Genome:
    """
    Return a mutated copy of a genome.

    Per gene, each independently with probability `rate`: re-roll type,
    perturb size, perturb efficiency, edit links. Afterwards each gene may
    be deleted (rate * 0.1) and one gene of the input may be duplicated and
    appended (rate * 0.2). With rate == 0 the result is a structurally
    identical copy.

    The result may be empty; callers must not instantiate empty genomes.
    """
    mutated_genes: Genome = []

    for gene in genome:
        mutated = gene.copy()

        if rng.random() < rate:
            mutated.type = _random_type(rng)

        if rng.random() < rate:
            noise = (rng.random() - 0.5) * 2.0 * strength * MUTATION_SIZE_SCALE
            mutated.size = max(MUTATION_SIZE_MIN, mutated.size + noise)

        if rng.random() < rate:
            noise = (rng.random() - 0.5) * 2.0 * strength
            mutated.efficiency = min(MUTATION_EFFICIENCY_MAX,
                                     max(MUTATION_EFFICIENCY_MIN, mutated.effective_efficiency + noise))

        if rng.random() < rate:
            _mutate_links(mutated.links, rng)

        mutated_genes.append(mutated)

    survivors = [g for g in mutated_genes if rng.random() >= rate * MUTATION_DELETE_FACTOR]

    if genome and rng.random() < rate * MUTATION_DUPLICATE_FACTOR:
        survivors.append(genome[int(rng.integers(len(genome)))].copy())

    return survivors


def crossover(genome_a: Genome, genome_b: Genome, rng: np.random.Generator) -> Genome:
    """
    Single-point crossover: A[:cut_a] + B[cut_b:].

    Cut points are independent and uniform over [0, len]. An empty result
    falls back to a full copy of A or B with equal probability, so any two
    non-empty parents give a non-empty child.
    """
    cut_a = int(rng.integers(len(genome_a) + 1))
    cut_b = int(rng.integers(len(genome_b) + 1))

    child = copy_genome(genome_a[:cut_a]) + copy_genome(genome_b[cut_b:])

    if not child:
        return copy_genome(genome_a) if rng.random() < 0.5 else copy_genome(genome_b)

    return child


# ============================================================================
# Text format
# ============================================================================

def _parse_float(text: str) -> Optional[float]:
    try:
        value = float(text)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def _parse_gene(record: str) -> NodeGene:
    parts = [p.strip() for p in record.split(',')]

    try:
        segment_type = SegmentType(parts[0].lower())
    except ValueError:
        segment_type = SegmentType.NEUTRAL

    size = _parse_float(parts[1]) if len(parts) > 1 else None
    if size is None or size <= 0:
        size = GENE_SIZE_DEFAULT

    efficiency = _parse_float(parts[2]) if len(parts) > 2 else None
    if efficiency is None or not 0.0 < efficiency <= 1.0:
        efficiency = GENE_EFFICIENCY_DEFAULT

    links = []
    for part in parts[3:]:
        try:
            offset = int(part)
        except ValueError:
            continue
        if offset != 0:
            links.append(offset)

    return NodeGene(type=segment_type, size=size, links=links, efficiency=efficiency)


def parse(text: str) -> Genome:
    """
    Parse genome text into a Genome.

    Malformed fields never fail the parse: unknown types become neutral,
    bad sizes become 5, bad efficiencies become 0.5, and bad or zero
    offsets are dropped. Text outside parentheses and empty records are ignored.
    """
    return [_parse_gene(match.group(1)) for match in _RECORD_PATTERN.finditer(text)]


def serialize(genome: Genome) -> str:
    """Serialize a genome to text; offsets carry an explicit sign"""
    records = []
    for gene in genome:
        parts = [
            gene.type.value,
            f"{gene.size:.1f}",
            f"{gene.effective_efficiency:.2f}",
        ]
        parts.extend(f"{offset:+d}" for offset in gene.links)
        records.append(f"({','.join(parts)})")
    return "".join(records)


def genome_signature(genome: Genome) -> str:
    """Short stable hash of the serialized genome (lineage label)"""
    return hashlib.sha256(serialize(genome).encode('utf-8')).hexdigest()[:8]
