"""
Runtime representation of creatures, food, and the world.

Creatures are built from genomes by body.py and exist in the World.
Nodes and links reference each other by integer index into the owning
creature's node list, never by object reference.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any

from .data_types import NodeGene, Genome, SegmentType
from .spatial import mass_weighted_center
from .genome import serialize
from .constants import REFERENCE_MAX_ENERGY, EFFICIENCY_FULL_RATIO, FOOD_RADIUS


def _as_vec2(value) -> np.ndarray:
    if not isinstance(value, np.ndarray):
        return np.array(value, dtype=np.float64)
    return value.astype(np.float64, copy=False)


@dataclass
class Node:
    """
    Circular point-mass segment of a creature body.

    Attributes:
        id: Index in the owning creature's node list at creation time
        gene: Gene this node was built from
        position: [x, y] float64
        velocity: [vx, vy] float64
    """
    id: int
    gene: NodeGene
    position: np.ndarray
    velocity: np.ndarray = None

    def __post_init__(self):
        """Ensure position and velocity are float64 arrays"""
        self.position = _as_vec2(self.position)
        if self.velocity is None:
            self.velocity = np.zeros(2, dtype=np.float64)
        else:
            self.velocity = _as_vec2(self.velocity)

    @property
    def radius(self) -> float:
        return self.gene.size

    @property
    def mass(self) -> float:
        # Mass proportional to area
        return self.gene.size * self.gene.size

    @property
    def type(self) -> SegmentType:
        return self.gene.type


@dataclass
class Link:
    """
    Spring between two nodes of the same creature, optionally actuated.

    Attributes:
        node_a: Index into the creature's nodes
        node_b: Index into the creature's nodes
        rest_length: Base length, fixed at construction
        stiffness: Spring constant
        actuation_amp: Oscillation amplitude as a fraction of rest length (0 = passive)
        actuation_freq: Angular frequency of the oscillation
        actuation_phase: Phase offset in radians
    """
    node_a: int
    node_b: int
    rest_length: float
    stiffness: float
    actuation_amp: float = 0.0
    actuation_freq: float = 0.0
    actuation_phase: float = 0.0

    @property
    def is_actuated(self) -> bool:
        return self.actuation_amp > 0.0


@dataclass
class Creature:
    """
    Living entity: a fixed node/link body plus the genome it was built from.

    Attributes:
        id: Unique for the lifetime of the run
        nodes: Owned nodes (topology never changes after construction)
        links: Owned links
        genome: Originating genome, retained for reproduction
        energy: May go non-positive, which kills the creature at end of tick
        age: Ticks alive
        alive: Cleared on death before removal from the World
    """
    id: int
    nodes: List[Node]
    links: List[Link]
    genome: Genome
    energy: float
    age: int = 0
    alive: bool = True

    def positions(self) -> np.ndarray:
        """(N, 2) copy of node positions"""
        if not self.nodes:
            return np.empty((0, 2), dtype=np.float64)
        return np.array([n.position for n in self.nodes], dtype=np.float64)

    def masses(self) -> np.ndarray:
        return np.array([n.mass for n in self.nodes], dtype=np.float64)

    def center(self) -> np.ndarray:
        """Mass-weighted center of the body"""
        return mass_weighted_center(self.positions(), self.masses())

    def mass(self) -> float:
        """Total body mass (sum of size squared)"""
        return float(sum(n.mass for n in self.nodes))

    def energy_efficiency(self, max_energy: float = REFERENCE_MAX_ENERGY) -> float:
        """
        Actuation strength multiplier from the current energy reserve.

        1.0 at or above half of max_energy, linear falloff to 0.0 below it.
        """
        ratio = self.energy / max_energy

        if ratio <= 0:
            return 0.0
        if ratio >= EFFICIENCY_FULL_RATIO:
            return 1.0

        return ratio / EFFICIENCY_FULL_RATIO

    def to_dict(self) -> dict:
        """
        Serialize creature to JSON-compatible dict.

        Returns:
            Dict with id, energy, age, alive, genome text, nodes, links
        """
        return {
            'id': self.id,
            'energy': float(self.energy),
            'age': self.age,
            'alive': self.alive,
            'genome': serialize(self.genome),
            'nodes': [
                {
                    'id': n.id,
                    'type': n.gene.type.value,
                    'size': float(n.gene.size),
                    'efficiency': n.gene.efficiency,
                    'links': list(n.gene.links),
                    'position': n.position.tolist(),
                    'velocity': n.velocity.tolist(),
                }
                for n in self.nodes
            ],
            'links': [
                {
                    'node_a': l.node_a,
                    'node_b': l.node_b,
                    'rest_length': float(l.rest_length),
                    'stiffness': float(l.stiffness),
                    'actuation_amp': float(l.actuation_amp),
                    'actuation_freq': float(l.actuation_freq),
                    'actuation_phase': float(l.actuation_phase),
                }
                for l in self.links
            ],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Creature':
        """
        Deserialize creature from dict.

        The genome is rebuilt from the node records, so each node's gene is
        the corresponding genome entry.
        """
        genome = [
            NodeGene(
                type=SegmentType(n['type']),
                size=n['size'],
                links=list(n.get('links', [])),
                efficiency=n.get('efficiency')
            )
            for n in data['nodes']
        ]
        nodes = [
            Node(
                id=n['id'],
                gene=gene,
                position=np.array(n['position'], dtype=np.float64),
                velocity=np.array(n.get('velocity', [0.0, 0.0]), dtype=np.float64)
            )
            for n, gene in zip(data['nodes'], genome)
        ]
        links = [Link(**l) for l in data['links']]
        return cls(
            id=data['id'],
            nodes=nodes,
            links=links,
            genome=genome,
            energy=data['energy'],
            age=data.get('age', 0),
            alive=data.get('alive', True)
        )


@dataclass
class Food:
    """Edible particle; consumed by Sucker-node contact"""
    id: int
    position: np.ndarray
    energy: float
    radius: float = FOOD_RADIUS

    def __post_init__(self):
        self.position = _as_vec2(self.position)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'position': self.position.tolist(),
            'energy': float(self.energy),
            'radius': float(self.radius),
        }


@dataclass
class World:
    """
    Mutable simulation state.

    Invariant: every creature id and food id issued is unique for the
    lifetime of the run (counters only increase, ids are never reused).

    Attributes:
        creatures: Living creatures (order irrelevant to correctness)
        food: Food particles
        tick: Completed tick counter
        next_creature_id: Next id to issue
        next_food_id: Next id to issue
    """
    creatures: List[Creature] = field(default_factory=list)
    food: List[Food] = field(default_factory=list)
    tick: int = 0
    next_creature_id: int = 0
    next_food_id: int = 0

    def allocate_creature_id(self) -> int:
        creature_id = self.next_creature_id
        self.next_creature_id += 1
        return creature_id

    def allocate_food_id(self) -> int:
        food_id = self.next_food_id
        self.next_food_id += 1
        return food_id

    def living_creatures(self) -> List[Creature]:
        return [c for c in self.creatures if c.alive]

    def find_creature(self, creature_id: int) -> Optional[Creature]:
        for creature in self.creatures:
            if creature.id == creature_id:
                return creature
        return None

    def total_creature_energy(self) -> float:
        return float(sum(c.energy for c in self.creatures if c.alive))

    def to_dict(self) -> Dict[str, Any]:
        """
        Read-only snapshot for presentation layers.

        Contains only builtin types (no numpy values).
        """
        return {
            'tick': self.tick,
            'creature_count': len(self.creatures),
            'food_count': len(self.food),
            'creatures': [c.to_dict() for c in self.creatures],
            'food': [f.to_dict() for f in self.food],
        }
