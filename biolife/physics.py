"""
Soft-body physics for node-link creatures in a viscous medium.

Per tick, each living creature runs these passes in order:
    1. Spring + actuation forces (and the actuation energy charge)
    2. Self-collision separation
    3. Anisotropic link drag (the swimming "paddle" effect)
    4. Isotropic node drag
    5. Euler position integration
    6. Reflective boundary

Forces are applied directly as velocity changes (f / m) with mass = size^2.
Broadside drag on a link is ten times its lengthwise drag, so an
oscillating body pushes more fluid in one direction than the other and
gains net thrust.
"""

import math
import numpy as np

from .data_types import WorldConfig
from .entity import Creature, Node, Link, World
from .spatial import separation, perpendicular
from .constants import (
    ACTUATION_TIME_SCALE,
    ACTUATION_COST_FACTOR,
    DAMPING_RATIO,
    PARALLEL_DRAG_FRACTION,
    ROTATIONAL_DRAG_FACTOR,
    NODE_DRAG_FACTOR,
    BOUNDARY_PUSH,
)


# ============================================================================
# Springs and actuation
# ============================================================================

def target_length(link: Link, tick: int, efficiency: float) -> float:
    """
    Current target length of a link.

    Actuated links oscillate around their rest length, scaled by the
    creature's energy efficiency; passive links (or exhausted creatures)
    keep the rest length.
    """
    if efficiency > 0 and link.actuation_amp > 0:
        phase = link.actuation_phase + tick * link.actuation_freq * ACTUATION_TIME_SCALE
        return link.rest_length * (1.0 + math.sin(phase) * link.actuation_amp * efficiency)
    return link.rest_length


def actuation_cost(creature: Creature) -> float:
    """Unscaled per-tick energy cost of all actuated links"""
    return sum(link.actuation_amp * link.actuation_freq * ACTUATION_COST_FACTOR
               for link in creature.links)


def apply_link_forces(creature: Creature, tick: int):
    """
    Apply damped spring forces along every link and charge actuation energy.

    The damping term acts on the relative velocity projected onto the link
    axis, at DAMPING_RATIO of critical damping for the two-body reduced mass.
    """
    efficiency = creature.energy_efficiency()

    for link in creature.links:
        node_a = creature.nodes[link.node_a]
        node_b = creature.nodes[link.node_b]

        direction, dist = separation(node_a.position, node_b.position)
        displacement = dist - target_length(link, tick, efficiency)

        mass_a = node_a.mass
        mass_b = node_b.mass
        reduced_mass = mass_a * mass_b / (mass_a + mass_b)
        # Capped at reduced mass: one tick of damping may cancel, never reverse, v_rel
        damping = min(DAMPING_RATIO * 2.0 * math.sqrt(link.stiffness * reduced_mass), reduced_mass)

        relative_speed = float(np.dot(node_b.velocity - node_a.velocity, direction))
        force = (displacement * link.stiffness + damping * relative_speed) * direction

        node_a.velocity += force / mass_a
        node_b.velocity -= force / mass_b

    if efficiency > 0:
        creature.energy -= actuation_cost(creature) * efficiency


# ============================================================================
# Self-collision
# ============================================================================

def resolve_node_overlap(node_a: Node, node_b: Node) -> float:
    """
    Push two overlapping nodes apart along their connecting axis.

    Each node moves by the overlap times the other node's mass share, so
    the heavier node moves less and the combined displacement equals the
    overlap.

    Returns:
        Overlap depth resolved (0.0 when not overlapping)
    """
    direction, dist = separation(node_a.position, node_b.position)
    min_dist = node_a.radius + node_b.radius

    if dist >= min_dist:
        return 0.0

    overlap = min_dist - dist
    mass_a = node_a.mass
    mass_b = node_b.mass
    total_mass = mass_a + mass_b

    node_a.position -= direction * overlap * (mass_b / total_mass)
    node_b.position += direction * overlap * (mass_a / total_mass)

    return overlap


def apply_self_collision(creature: Creature):
    """Separate every overlapping node pair within one creature"""
    nodes = creature.nodes
    for i in range(len(nodes)):
        for j in range(i + 1, len(nodes)):
            resolve_node_overlap(nodes[i], nodes[j])


# ============================================================================
# Drag
# ============================================================================

def apply_link_drag(node_a: Node, node_b: Node, viscosity: float):
    """
    Anisotropic drag on a link treated as a rigid paddle.

    Translation: the midpoint velocity is split into perpendicular and
    parallel parts; broadside coefficient is length * viscosity, lengthwise
    is PARALLEL_DRAG_FRACTION of that. Each endpoint takes half the force.

    Rotation: differential perpendicular endpoint velocity gives angular
    velocity w = (vB_perp - vA_perp) / L, resisted by torque
    -(1/12) L^3 viscosity w, applied as an equal and opposite pair of
    endpoint forces torque / L.
    """
    axis, length = separation(node_a.position, node_b.position)
    normal = perpendicular(axis)

    mass_a = node_a.mass
    mass_b = node_b.mass

    center_velocity = 0.5 * (node_a.velocity + node_b.velocity)
    v_perp = float(np.dot(center_velocity, normal))
    v_par = float(np.dot(center_velocity, axis))

    perp_coeff = length * viscosity
    par_coeff = perp_coeff * PARALLEL_DRAG_FRACTION

    drag = -(normal * v_perp * perp_coeff + axis * v_par * par_coeff)

    # Per-node gain is capped at 1 so light nodes on long links stop rather than reverse
    node_a.velocity += drag * 0.5 / max(mass_a, perp_coeff * 0.5)
    node_b.velocity += drag * 0.5 / max(mass_b, perp_coeff * 0.5)

    # Rotational drag
    omega = (float(np.dot(node_b.velocity, normal)) - float(np.dot(node_a.velocity, normal))) / length
    torque = -ROTATIONAL_DRAG_FACTOR * length ** 3 * viscosity * omega
    endpoint_force = normal * (torque / length)

    spin_gain = ROTATIONAL_DRAG_FACTOR * length * viscosity * (1.0 / mass_a + 1.0 / mass_b)
    if spin_gain > 1.0:
        endpoint_force /= spin_gain

    node_a.velocity -= endpoint_force / mass_a
    node_b.velocity += endpoint_force / mass_b


def apply_node_drag(node: Node, viscosity: float):
    """Isotropic drag on a node (circle)"""
    node.velocity *= 1.0 / (1.0 + viscosity * node.gene.size * NODE_DRAG_FACTOR)


# ============================================================================
# Integration and bounds
# ============================================================================

def integrate(creature: Creature, dt: float):
    """Euler position update from current velocities"""
    for node in creature.nodes:
        node.position += node.velocity * dt


def apply_boundary(creature: Creature, config: WorldConfig):
    """
    Keep nodes inside the origin-centered world rectangle.

    A node whose circle crosses a wall is clamped against it and gets a
    fixed velocity impulse pointing back inside (reflective policy; the
    world does not wrap).
    """
    half_w = config.half_width
    half_h = config.half_height

    for node in creature.nodes:
        r = node.radius
        pos = node.position
        vel = node.velocity

        if pos[0] - r < -half_w:
            vel[0] += BOUNDARY_PUSH
            pos[0] = -half_w + r
        if pos[0] + r > half_w:
            vel[0] -= BOUNDARY_PUSH
            pos[0] = half_w - r
        if pos[1] - r < -half_h:
            vel[1] += BOUNDARY_PUSH
            pos[1] = -half_h + r
        if pos[1] + r > half_h:
            vel[1] -= BOUNDARY_PUSH
            pos[1] = half_h - r


# ============================================================================
# Entry points
# ============================================================================

def update_creature_physics(creature: Creature, tick: int, config: WorldConfig, dt: float):
    """
    Advance one creature by one tick.

    Args:
        creature: Creature to update (dead creatures are skipped)
        tick: Current world tick (drives actuation phase)
        config: World configuration (viscosity, bounds)
        dt: Time step
    """
    if not creature.alive:
        return

    apply_link_forces(creature, tick)
    apply_self_collision(creature)

    for link in creature.links:
        apply_link_drag(creature.nodes[link.node_a], creature.nodes[link.node_b], config.viscosity)

    for node in creature.nodes:
        apply_node_drag(node, config.viscosity)

    integrate(creature, dt)
    apply_boundary(creature, config)


def update_physics(world: World, config: WorldConfig, dt: float):
    """Advance every living creature in the world by one tick"""
    for creature in world.creatures:
        update_creature_physics(creature, world.tick, config, dt)
