"""
Data types for genomes and configuration.

WorldConfig and Scenario are populated by loader.py from YAML files or
constructed directly in code. NodeGene is the heritable unit of a body plan.
"""

from dataclasses import dataclass, field, fields, asdict
from typing import List, Dict, Optional, Any
from enum import Enum

from .constants import GENE_EFFICIENCY_DEFAULT, STARTING_ENERGY_DEFAULT


class ConfigError(ValueError):
    """Raised when a WorldConfig fails validation"""
    pass


# ============================================================================
# Genome
# ============================================================================

class SegmentType(Enum):
    """Node function, selected by the gene's type tag"""
    NEUTRAL = "neutral"  # Structural only
    SUCKER = "sucker"    # Drains energy from food and other creatures
    SOLAR = "solar"      # Receives a share of the insolation pool
    MATING = "mating"    # Triggers sexual reproduction on contact


SEGMENT_TYPES: List[SegmentType] = list(SegmentType)


@dataclass
class NodeGene:
    """
    Descriptor for a single body node.

    Attributes:
        type: Segment function
        size: Node radius (mass is size squared)
        links: Relative offsets to other genes (e.g. +1, -2), never zero
        efficiency: Feeding/drain multiplier in (0, 1], None means default
    """
    type: SegmentType
    size: float
    links: List[int] = field(default_factory=list)
    efficiency: Optional[float] = None

    @property
    def effective_efficiency(self) -> float:
        if self.efficiency is None:
            return GENE_EFFICIENCY_DEFAULT
        return self.efficiency

    def copy(self) -> 'NodeGene':
        """Deep copy (links list is not shared)"""
        return NodeGene(
            type=self.type,
            size=self.size,
            links=list(self.links),
            efficiency=self.efficiency
        )


Genome = List[NodeGene]


# ============================================================================
# World Configuration
# ============================================================================

@dataclass(frozen=True)
class WorldConfig:
    """
    Immutable per-run world parameters.

    The world rectangle is centered on the origin and spans
    [-width/2, width/2] x [-height/2, height/2].

    Attributes:
        width: World extent along x
        height: World extent along y
        viscosity: Fluid drag coefficient
        insolation: Solar rate; total solar energy per tick is insolation * 100
        food_spawn_rate: Probability of spawning one food particle per tick
        food_energy: Energy payload of randomly spawned food
        mating_energy_cost: Total energy paid by a mating pair (half each)
        mating_energy_threshold: Minimum energy to mate; also a child's starting energy
        division_energy_threshold: Energy at which a creature divides asexually
        mutation_rate: Per-gene mutation probability
        mutation_strength: Scale of size/efficiency perturbations
    """
    width: float = 800.0
    height: float = 600.0
    viscosity: float = 0.1
    insolation: float = 0.05
    food_spawn_rate: float = 0.1
    food_energy: float = 20.0
    mating_energy_cost: float = 30.0
    mating_energy_threshold: float = 50.0
    division_energy_threshold: float = 150.0
    mutation_rate: float = 0.1
    mutation_strength: float = 0.3

    def __post_init__(self):
        """Validate once at creation; instances are never mutated afterwards"""
        if self.width <= 0 or self.height <= 0:
            raise ConfigError(f"World dimensions must be positive, got {self.width}x{self.height}")

        non_negative = (
            'viscosity', 'insolation', 'food_energy', 'mating_energy_cost',
            'mating_energy_threshold', 'mutation_strength'
        )
        for name in non_negative:
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must be >= 0, got {getattr(self, name)}")

        for name in ('food_spawn_rate', 'mutation_rate'):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigError(f"{name} must be a probability in [0, 1], got {value}")

        if self.division_energy_threshold <= 0:
            raise ConfigError(
                f"division_energy_threshold must be positive, got {self.division_energy_threshold}"
            )

    @property
    def half_width(self) -> float:
        return self.width / 2.0

    @property
    def half_height(self) -> float:
        return self.height / 2.0

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WorldConfig':
        """
        Build config from a mapping.

        Missing keys take their documented defaults; unknown keys raise ConfigError.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown WorldConfig fields: {', '.join(sorted(unknown))}")
        return cls(**{k: float(v) for k, v in data.items()})


# ============================================================================
# Scenario (run parameters outside the engine)
# ============================================================================

@dataclass
class Scenario:
    """Initial conditions for a run"""
    name: str
    config: WorldConfig
    seed: int = 0
    initial_creatures: int = 10
    initial_food: int = 50
    starting_energy: float = STARTING_ENERGY_DEFAULT
    genomes: List[str] = field(default_factory=list)  # Optional seed genomes (text format)
    description: Optional[str] = None
