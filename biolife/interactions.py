"""
Interaction resolver: turns collision pairs into game-rule outcomes.

Rules per pair:
- Sucker node touching food: the creature eats it (first consumer wins).
- Nodes of different creatures: each Sucker side drains the opponent,
  crediting only half of the drained energy; two Mating nodes whose
  creatures both meet the mating threshold queue a mating pair (each
  creature mates at most once per tick); every such pair receives a
  separation impulse.

World mutation is limited to energy, node velocities, and removal of eaten
food after the whole pair list is processed. Mating pairs are returned to
the caller instead of being acted on here, so the creature list is never
modified mid-scan.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from .data_types import WorldConfig, SegmentType
from .entity import World, Creature, Food, Node
from .collision import CollisionPair, NodeRef, FoodRef
from .constants import (
    SEPARATION_PUSH_FORCE,
    SUCKER_DRAIN_FACTOR,
    DRAIN_TRANSFER_FRACTION,
)


@dataclass
class InteractionResult:
    """
    Outcome of one interaction pass.

    Attributes:
        mating_pairs: Creature pairs queued for reproduction, in discovery order
        consumed_food: Ids of food removed from the world
        energy_eaten: Total energy credited from food
        drain_events: Number of sucker drains applied between creatures
    """
    mating_pairs: List[Tuple[Creature, Creature]] = field(default_factory=list)
    consumed_food: Set[int] = field(default_factory=set)
    energy_eaten: float = 0.0
    drain_events: int = 0


def _lookup_node(creatures: Dict[int, Creature], ref: NodeRef) -> Tuple[Optional[Creature], Optional[Node]]:
    creature = creatures.get(ref.creature_id)
    if creature is None or not creature.alive:
        return None, None
    if not 0 <= ref.node_id < len(creature.nodes):
        return creature, None
    return creature, creature.nodes[ref.node_id]


def drain(attacker: Creature, attacker_node: Node, victim: Creature) -> float:
    """
    Sucker drain from victim to attacker.

    Drained amount is min(victim energy, efficiency * 0.5), never negative;
    the attacker receives only half of it.

    Returns:
        Energy removed from the victim
    """
    amount = max(0.0, min(victim.energy, attacker_node.gene.effective_efficiency * SUCKER_DRAIN_FACTOR))
    victim.energy -= amount
    attacker.energy += amount * DRAIN_TRANSFER_FRACTION
    return amount


def _resolve_feeding(creature: Creature, node: Node, food: Food, result: InteractionResult):
    if node.gene.type != SegmentType.SUCKER:
        return
    if food.id in result.consumed_food:
        return

    gained = food.energy * node.gene.effective_efficiency
    creature.energy += gained
    result.energy_eaten += gained
    result.consumed_food.add(food.id)


def _already_mating(result: InteractionResult, creature: Creature) -> bool:
    return any(a.id == creature.id or b.id == creature.id for a, b in result.mating_pairs)


def _resolve_contact(
    creature_a: Creature, node_a: Node,
    creature_b: Creature, node_b: Node,
    pair: CollisionPair,
    config: WorldConfig,
    result: InteractionResult
):
    if node_a.gene.type == SegmentType.SUCKER:
        drain(creature_a, node_a, creature_b)
        result.drain_events += 1

    if node_b.gene.type == SegmentType.SUCKER:
        drain(creature_b, node_b, creature_a)
        result.drain_events += 1

    if (node_a.gene.type == SegmentType.MATING
            and node_b.gene.type == SegmentType.MATING
            and creature_a.energy >= config.mating_energy_threshold
            and creature_b.energy >= config.mating_energy_threshold
            and not _already_mating(result, creature_a)
            and not _already_mating(result, creature_b)):
        result.mating_pairs.append((creature_a, creature_b))

    # Physical separation, independent of the outcomes above
    impulse = pair.overlap_vector * SEPARATION_PUSH_FORCE
    node_a.velocity -= impulse
    node_b.velocity += impulse


def resolve_interactions(world: World, config: WorldConfig, pairs: List[CollisionPair]) -> InteractionResult:
    """
    Apply feeding, draining, mating selection and separation for one tick.

    Args:
        world: World to update (energies, velocities, food list)
        config: World configuration (mating threshold)
        pairs: Output of CollisionSystem.detect() for this tick

    Returns:
        InteractionResult with queued mating pairs and consumed food ids
    """
    result = InteractionResult()

    creatures = {c.id: c for c in world.creatures}
    food_by_id = {f.id: f for f in world.food}

    for pair in pairs:
        a, b = pair.a, pair.b

        if (isinstance(a, NodeRef) and isinstance(b, FoodRef)) or (isinstance(a, FoodRef) and isinstance(b, NodeRef)):
            node_ref = a if isinstance(a, NodeRef) else b
            food_ref = b if isinstance(b, FoodRef) else a

            creature, node = _lookup_node(creatures, node_ref)
            food = food_by_id.get(food_ref.food_id)
            if node is None or food is None:
                continue

            _resolve_feeding(creature, node, food, result)

        elif isinstance(a, NodeRef) and isinstance(b, NodeRef):
            if a.creature_id == b.creature_id:
                continue  # Self-collision is handled by physics

            creature_a, node_a = _lookup_node(creatures, a)
            creature_b, node_b = _lookup_node(creatures, b)
            if node_a is None or node_b is None:
                continue

            _resolve_contact(creature_a, node_a, creature_b, node_b, pair, config, result)

    if result.consumed_food:
        world.food = [f for f in world.food if f.id not in result.consumed_food]

    return result
