"""
Simulation orchestrator.

step() advances a World by exactly one tick through a fixed pipeline:

    1. Spawn food (probabilistic)
    2. Solar income (fixed pool split by solar area share)
    3. Physics
    4. Collision sync + detect
    5. Interactions (feeding, draining, mating selection, separation)
    6. Sexual reproduction for queued mating pairs
    7. Aging and passive maintenance cost
    8. Asexual division
    9. Death and decomposition into food

The order is an invariant: collisions always see post-physics positions,
and reproduction/death always see post-interaction energies.

Simulation wraps a World with its config, a seeded RNG stream, and a
persistent CollisionSystem, and adds timing, snapshots and console
summaries.
"""

import math
import time
import numpy as np
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from .data_types import WorldConfig, SegmentType, Genome, Scenario
from .entity import World, Creature, Food
from .genome import generate, mutate, crossover, copy_genome, parse, genome_signature
from .body import build_creature
from .physics import update_physics
from .collision import CollisionSystem
from .interactions import resolve_interactions, InteractionResult
from .loader import load_scenario
from .rng import make_seed, make_rng, random_position_in_rect, random_point_in_disc, random_angle
from .constants import (
    SOLAR_POOL_SCALE,
    PASSIVE_DRAIN_PER_TICK,
    FOOD_RADIUS,
    FOOD_SPAWN_FRACTION,
    CREATURE_SPAWN_FRACTION,
    STARTING_ENERGY_DEFAULT,
    MATING_CHILD_JITTER,
    DIVISION_PARENT_SHARE,
    DIVISION_CHILD_SHARE,
    DIVISION_CHILD_DISTANCE,
    CORPSE_MASS_PER_PARTICLE,
    CORPSE_MASS_ENERGY_FRACTION,
    CORPSE_SCATTER_RADIUS,
    LOG_EVENTS,
    TICK_TIME_WINDOW,
)


@dataclass
class TickReport:
    """
    Events of one tick.

    Attributes:
        tick: Tick number that produced this report
        food_spawned: Random food particles added (excludes corpses)
        food_eaten: Food particles consumed by suckers
        matings: (parent_a_id, parent_b_id, child_id) per successful mating
        divisions: (parent_id, child_id) per division
        deaths: Ids of creatures that died
        corpse_food: Food particles created from deaths
        drain_events: Sucker drains between creatures
    """
    tick: int
    food_spawned: int = 0
    food_eaten: int = 0
    matings: List[Tuple[int, int, int]] = field(default_factory=list)
    divisions: List[Tuple[int, int]] = field(default_factory=list)
    deaths: List[int] = field(default_factory=list)
    corpse_food: int = 0
    drain_events: int = 0

    @property
    def births(self) -> int:
        return len(self.matings) + len(self.divisions)


# ============================================================================
# World setup and test seams
# ============================================================================

def create_world() -> World:
    """Empty world at tick 0"""
    return World()


def spawn_food(
    world: World,
    config: WorldConfig,
    rng: np.random.Generator,
    x: Optional[float] = None,
    y: Optional[float] = None,
    energy: Optional[float] = None
) -> Food:
    """
    Add one food particle.

    Position defaults to a uniform point in the inner 90% of the world;
    energy defaults to config.food_energy.
    """
    position = random_position_in_rect(rng, config.width, config.height, FOOD_SPAWN_FRACTION)
    if x is not None:
        position[0] = x
    if y is not None:
        position[1] = y

    food = Food(
        id=world.allocate_food_id(),
        position=position,
        energy=config.food_energy if energy is None else energy,
        radius=FOOD_RADIUS
    )
    world.food.append(food)
    return food


def inject_food(
    world: World,
    x: float,
    y: float,
    energy: float,
    radius: float = FOOD_RADIUS
) -> Food:
    """Place a food particle at an exact position (scripted scenarios)"""
    food = Food(id=world.allocate_food_id(), position=[x, y], energy=energy, radius=radius)
    world.food.append(food)
    return food


def inject_creature(world: World, creature: Creature) -> Creature:
    """
    Insert a fully-formed creature, bypassing the genome/body builder.

    The creature's id is reissued from the world counter so ids stay unique.
    """
    creature.id = world.allocate_creature_id()
    world.creatures.append(creature)
    return creature


def spawn_creature(
    world: World,
    genome: Genome,
    x: float,
    y: float,
    energy: float,
    rng: np.random.Generator
) -> Creature:
    """Build a creature from a genome and append it to the world"""
    creature = build_creature(world.allocate_creature_id(), genome, x, y, energy, rng)
    world.creatures.append(creature)
    return creature


def spawn_random_creature(
    world: World,
    config: WorldConfig,
    rng: np.random.Generator,
    x: Optional[float] = None,
    y: Optional[float] = None,
    energy: float = STARTING_ENERGY_DEFAULT,
    genome: Optional[Genome] = None
) -> Creature:
    """
    Spawn a creature with a random (or given) genome.

    Position defaults to a uniform point in the inner 80% of the world.
    """
    if genome is None:
        genome = generate(rng)

    position = random_position_in_rect(rng, config.width, config.height, CREATURE_SPAWN_FRACTION)
    px = position[0] if x is None else x
    py = position[1] if y is None else y

    return spawn_creature(world, genome, px, py, energy, rng)


def initialize_world(
    world: World,
    config: WorldConfig,
    rng: np.random.Generator,
    num_creatures: int = 10,
    num_food: int = 50,
    starting_energy: float = STARTING_ENERGY_DEFAULT,
    genomes: Optional[List[Genome]] = None
):
    """
    Populate a world with starting creatures and food.

    Args:
        genomes: Optional seed genomes, used round-robin (copied per creature);
            random genomes are generated when omitted
    """
    for i in range(num_creatures):
        genome = copy_genome(genomes[i % len(genomes)]) if genomes else None
        spawn_random_creature(world, config, rng, energy=starting_energy, genome=genome)

    for _ in range(num_food):
        spawn_food(world, config, rng)


# ============================================================================
# Tick phases
# ============================================================================

def apply_solar_energy(world: World, config: WorldConfig) -> float:
    """
    Split a fixed solar pool across all living Solar nodes by area share.

    The pool is insolation * SOLAR_POOL_SCALE per tick regardless of how
    many solar nodes exist.

    Returns:
        Energy distributed (0.0 when there are no solar nodes)
    """
    total_area = 0.0
    for creature in world.creatures:
        if not creature.alive:
            continue
        for node in creature.nodes:
            if node.gene.type == SegmentType.SOLAR:
                total_area += node.mass

    if total_area == 0.0:
        return 0.0

    pool = config.insolation * SOLAR_POOL_SCALE

    for creature in world.creatures:
        if not creature.alive:
            continue
        for node in creature.nodes:
            if node.gene.type == SegmentType.SOLAR:
                creature.energy += pool * node.mass / total_area

    return pool


def reproduce(
    world: World,
    config: WorldConfig,
    parent_a: Creature,
    parent_b: Creature,
    rng: np.random.Generator
) -> Optional[Creature]:
    """
    Sexual reproduction between two creatures.

    Re-checks the mating threshold (energies may have changed since the
    pair was queued). Each parent pays half the mating cost; the child
    starts with exactly the mating threshold energy near the parents'
    midpoint.

    Returns:
        The child, or None if either parent no longer qualifies
    """
    threshold = config.mating_energy_threshold
    if not (parent_a.alive and parent_b.alive):
        return None
    if parent_a.energy < threshold or parent_b.energy < threshold:
        return None

    parent_a.energy -= config.mating_energy_cost / 2.0
    parent_b.energy -= config.mating_energy_cost / 2.0

    child_genome = crossover(parent_a.genome, parent_b.genome, rng)
    child_genome = mutate(child_genome, config.mutation_rate, config.mutation_strength, rng)

    if not child_genome:
        source = parent_a if rng.random() < 0.5 else parent_b
        child_genome = copy_genome(source.genome)

    midpoint = 0.5 * (parent_a.center() + parent_b.center())
    child_x = midpoint[0] + (rng.random() - 0.5) * MATING_CHILD_JITTER
    child_y = midpoint[1] + (rng.random() - 0.5) * MATING_CHILD_JITTER

    return spawn_creature(world, child_genome, child_x, child_y, threshold, rng)


def process_mating(
    world: World,
    config: WorldConfig,
    mating_pairs: List[Tuple[Creature, Creature]],
    rng: np.random.Generator
) -> List[Tuple[int, int, int]]:
    """
    Attempt reproduction for every queued pair, in queue order.

    Returns:
        (parent_a_id, parent_b_id, child_id) for each successful mating
    """
    births = []
    for parent_a, parent_b in mating_pairs:
        child = reproduce(world, config, parent_a, parent_b, rng)
        if child is not None:
            births.append((parent_a.id, parent_b.id, child.id))
    return births


def apply_aging(world: World):
    """Age every living creature by one tick and charge passive maintenance"""
    for creature in world.creatures:
        if not creature.alive:
            continue
        creature.age += 1
        creature.energy -= PASSIVE_DRAIN_PER_TICK


def divide(world: World, config: WorldConfig, creature: Creature, rng: np.random.Generator) -> Creature:
    """
    Split one creature asexually.

    Parent keeps 40% of its energy, the child gets 40% (the remaining 20%
    is lost). The child genome is a mutated copy of the parent's, falling
    back to an exact copy if mutation empties it. The child is built
    DIVISION_CHILD_DISTANCE from the parent's center at a random angle but
    is NOT appended to the world; the caller does that.
    """
    total_energy = creature.energy
    child_energy = total_energy * DIVISION_CHILD_SHARE
    creature.energy = total_energy * DIVISION_PARENT_SHARE

    child_genome = mutate(copy_genome(creature.genome), config.mutation_rate, config.mutation_strength, rng)
    if not child_genome:
        child_genome = copy_genome(creature.genome)

    center = creature.center()
    angle = random_angle(rng)
    child_x = center[0] + math.cos(angle) * DIVISION_CHILD_DISTANCE
    child_y = center[1] + math.sin(angle) * DIVISION_CHILD_DISTANCE

    return build_creature(world.allocate_creature_id(), child_genome, child_x, child_y, child_energy, rng)


def process_division(world: World, config: WorldConfig, rng: np.random.Generator) -> List[Tuple[int, int]]:
    """
    Divide every living creature at or above the division threshold.

    Children are appended after the scan, so they cannot divide this tick.

    Returns:
        (parent_id, child_id) per division
    """
    children = []
    divisions = []

    for creature in world.creatures:
        if not creature.alive:
            continue
        if creature.energy < config.division_energy_threshold:
            continue

        child = divide(world, config, creature, rng)
        children.append(child)
        divisions.append((creature.id, child.id))

    world.creatures.extend(children)
    return divisions


def creature_to_food(world: World, creature: Creature, rng: np.random.Generator) -> List[Food]:
    """
    Decompose a dead creature into food particles.

    Particle count is max(1, floor(mass / 50)); together they carry the
    creature's remaining energy plus 10% of its mass, in equal shares,
    scattered within CORPSE_SCATTER_RADIUS of its center.
    """
    center = creature.center()
    mass = creature.mass()

    num_particles = max(1, int(math.floor(mass / CORPSE_MASS_PER_PARTICLE)))
    energy_per_particle = (creature.energy + mass * CORPSE_MASS_ENERGY_FRACTION) / num_particles

    particles = []
    for _ in range(num_particles):
        position = random_point_in_disc(rng, center, CORPSE_SCATTER_RADIUS)
        food = Food(
            id=world.allocate_food_id(),
            position=position,
            energy=energy_per_particle,
            radius=FOOD_RADIUS
        )
        world.food.append(food)
        particles.append(food)

    return particles


def process_deaths(world: World, rng: np.random.Generator) -> Tuple[List[int], int]:
    """
    Kill creatures at or below zero energy and purge them.

    Returns:
        (ids of creatures that died, number of food particles created)
    """
    dead_ids = []
    corpse_food = 0

    for creature in world.creatures:
        if creature.alive and creature.energy <= 0:
            creature.alive = False
            corpse_food += len(creature_to_food(world, creature, rng))
            dead_ids.append(creature.id)

    world.creatures = [c for c in world.creatures if c.alive]
    return dead_ids, corpse_food


# ============================================================================
# Step
# ============================================================================

def step(
    world: World,
    config: WorldConfig,
    dt: float,
    rng: np.random.Generator,
    collision_system: Optional[CollisionSystem] = None
) -> TickReport:
    """
    Advance the world by one tick.

    Args:
        world: State to advance in place
        config: Immutable run configuration
        dt: Fixed time step for position integration
        rng: Caller-owned random stream (food spawns, reproduction, corpses)
        collision_system: Persistent collision system; a fresh one is used
            when omitted

    Returns:
        TickReport of this tick's events
    """
    if collision_system is None:
        collision_system = CollisionSystem()

    world.tick += 1
    report = TickReport(tick=world.tick)

    if rng.random() < config.food_spawn_rate:
        spawn_food(world, config, rng)
        report.food_spawned = 1

    apply_solar_energy(world, config)

    update_physics(world, config, dt)

    collision_system.sync(world)
    pairs = collision_system.detect()
    interactions: InteractionResult = resolve_interactions(world, config, pairs)
    report.food_eaten = len(interactions.consumed_food)
    report.drain_events = interactions.drain_events

    report.matings = process_mating(world, config, interactions.mating_pairs, rng)

    apply_aging(world)

    report.divisions = process_division(world, config, rng)

    report.deaths, report.corpse_food = process_deaths(world, rng)

    return report


# ============================================================================
# Run context
# ============================================================================

class Simulation:
    """
    Run context for a World.

    Owns the configuration, a seeded PCG64 stream, and a persistent
    CollisionSystem; records tick timing and population totals.
    """

    def __init__(
        self,
        config: Optional[WorldConfig] = None,
        seed: int = 0,
        dt: float = 1.0,
        verbose: bool = False,
        log_events: Optional[bool] = None
    ):
        """
        Args:
            config: World configuration (defaults when omitted)
            seed: Run seed; the engine stream is derived with make_seed(seed, "engine")
            dt: Fixed time step
            verbose: Print initialization and summary lines
            log_events: Print per-event lines (defaults to LOG_EVENTS)
        """
        self.config: WorldConfig = config if config is not None else WorldConfig()
        self.seed = seed
        self.dt = dt
        self.verbose = verbose
        self.log_events = LOG_EVENTS if log_events is None else log_events

        self.rng = make_rng(make_seed(seed, "engine"))
        self.world: World = create_world()
        self.collisions = CollisionSystem()

        self.last_report: Optional[TickReport] = None
        self._totals: Dict[str, int] = {
            'matings': 0,
            'divisions': 0,
            'deaths': 0,
            'food_eaten': 0,
        }

        # Performance metrics
        self._tick_times: List[float] = []
        self._tick_time_sum: float = 0.0
        self._tick_time_window: int = TICK_TIME_WINDOW

        if self.verbose:
            print(f"[OK] Simulation initialized: {self.config.width:g}x{self.config.height:g} world, "
                  f"dt={self.dt}, seed={self.seed}")

    @classmethod
    def from_scenario(
        cls,
        scenario: Union[Scenario, Path, str],
        schema_dir: Optional[Path] = None,
        verbose: bool = False
    ) -> 'Simulation':
        """
        Create and populate a simulation from a Scenario or scenario YAML path.
        """
        if not isinstance(scenario, Scenario):
            scenario = load_scenario(Path(scenario), schema_dir)

        sim = cls(config=scenario.config, seed=scenario.seed, verbose=verbose)

        genomes = [parse(text) for text in scenario.genomes]
        genomes = [g for g in genomes if g]
        if scenario.genomes and len(genomes) < len(scenario.genomes):
            print(f"[WARN] {len(scenario.genomes) - len(genomes)} seed genome(s) in "
                  f"'{scenario.name}' had no records, skipping")

        sim.populate(
            num_creatures=scenario.initial_creatures,
            num_food=scenario.initial_food,
            starting_energy=scenario.starting_energy,
            genomes=genomes or None
        )

        if verbose:
            print(f"[OK] Scenario '{scenario.name}' initialized: "
                  f"{len(sim.world.creatures)} creatures, {len(sim.world.food)} food, seed={scenario.seed}")

        return sim

    @property
    def tick_count(self) -> int:
        return self.world.tick

    def populate(
        self,
        num_creatures: int = 10,
        num_food: int = 50,
        starting_energy: float = STARTING_ENERGY_DEFAULT,
        genomes: Optional[List[Genome]] = None
    ):
        """Add starting creatures and food (see initialize_world)"""
        initialize_world(self.world, self.config, self.rng, num_creatures, num_food,
                         starting_energy, genomes)

    def inject_creature(self, creature: Creature) -> Creature:
        return inject_creature(self.world, creature)

    def inject_food(self, x: float, y: float, energy: Optional[float] = None,
                    radius: float = FOOD_RADIUS) -> Food:
        return inject_food(self.world, x, y, self.config.food_energy if energy is None else energy, radius)

    def tick(self) -> TickReport:
        """Advance one tick and record timing/totals"""
        start_time = time.perf_counter()

        report = step(self.world, self.config, self.dt, self.rng, self.collisions)

        self._record_tick_time(time.perf_counter() - start_time)
        self._record_totals(report)
        self.last_report = report

        if self.log_events:
            self._print_events(report)

        return report

    def run(self, ticks: int, summary_every: Optional[int] = None) -> TickReport:
        """Run several ticks; optionally print a summary every N ticks"""
        report = None
        for _ in range(ticks):
            report = self.tick()
            if summary_every and self.tick_count % summary_every == 0:
                self.print_tick_summary()
        return report

    def _record_totals(self, report: TickReport):
        self._totals['matings'] += len(report.matings)
        self._totals['divisions'] += len(report.divisions)
        self._totals['deaths'] += len(report.deaths)
        self._totals['food_eaten'] += report.food_eaten

    def _record_tick_time(self, elapsed: float):
        """
        Record tick timing for rolling average.

        Args:
            elapsed: Tick time in seconds
        """
        self._tick_times.append(elapsed)
        self._tick_time_sum += elapsed

        # Maintain rolling window
        if len(self._tick_times) > self._tick_time_window:
            removed = self._tick_times.pop(0)
            self._tick_time_sum -= removed

    def _print_events(self, report: TickReport):
        for parent_a, parent_b, child in report.matings:
            child_creature = self.world.find_creature(child)
            signature = genome_signature(child_creature.genome) if child_creature else "--------"
            print(f"[MATING] tick {report.tick}: {parent_a} + {parent_b} -> {child} (genome {signature})")
        for parent, child in report.divisions:
            print(f"[DIVISION] tick {report.tick}: {parent} -> {child}")
        for creature_id in report.deaths:
            print(f"[DEATH] tick {report.tick}: {creature_id}")

    def get_tick_stats(self) -> dict:
        """
        Get current tick timing statistics.

        Returns:
            Dict with tick_count, avg_tick_time_ms, last_tick_time_ms
        """
        if not self._tick_times:
            return {
                'tick_count': self.tick_count,
                'avg_tick_time_ms': 0.0,
                'last_tick_time_ms': 0.0
            }

        avg_time = self._tick_time_sum / len(self._tick_times)
        last_time = self._tick_times[-1]

        return {
            'tick_count': self.tick_count,
            'avg_tick_time_ms': avg_time * 1000.0,
            'last_tick_time_ms': last_time * 1000.0
        }

    def get_stats(self) -> dict:
        """Population statistics for status displays"""
        living = self.world.living_creatures()
        return {
            'tick': self.tick_count,
            'creatures': len(living),
            'nodes': sum(len(c.nodes) for c in living),
            'food': len(self.world.food),
            'total_energy': self.world.total_creature_energy(),
            **{f'total_{k}': v for k, v in self._totals.items()},
        }

    def get_snapshot(self) -> dict:
        """
        Get complete simulation state snapshot.

        Returns:
            World.to_dict() plus config, seed and timing
        """
        snapshot = self.world.to_dict()
        snapshot['seed'] = self.seed
        snapshot['config'] = self.config.to_dict()
        snapshot['timing'] = self.get_tick_stats()
        return snapshot

    def print_tick_summary(self):
        """Print tick summary to console (lightweight monitoring)"""
        stats = self.get_tick_stats()
        population = self.get_stats()
        print(f"Tick {stats['tick_count']:5d} | "
              f"Avg: {stats['avg_tick_time_ms']:6.3f} ms | "
              f"Creatures: {population['creatures']:4d} | "
              f"Nodes: {population['nodes']:5d} | "
              f"Food: {population['food']:4d} | "
              f"Energy: {population['total_energy']:8.0f}")
