"""
Test soft-body physics passes: springs, actuation, self-collision,
drag, integration and boundaries.
"""

import sys
import math
import numpy as np
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from biolife.data_types import SegmentType, WorldConfig
from biolife.entity import Link
from biolife.body import build_creature_from_parts
from biolife.physics import (
    target_length, actuation_cost, apply_link_forces, resolve_node_overlap,
    apply_self_collision, apply_link_drag, apply_node_drag, integrate,
    apply_boundary, update_creature_physics,
)
from biolife.spatial import distance_2d
from biolife.tests.scenario_helpers import make_node, make_creature


def _pair(size_a=5.0, size_b=5.0, xb=20.0, link=True, energy=50.0):
    nodes = [make_node(SegmentType.NEUTRAL, 0.0, 0.0, size_a), make_node(SegmentType.NEUTRAL, xb, 0.0, size_b)]
    return make_creature(nodes, [(0, 1)] if link else [], energy=energy)


def test_energy_efficiency_curve():
    """Full strength at >= 50 energy, linear below, zero when exhausted"""
    creature = _pair()
    for energy, expected in [(80.0, 1.0), (50.0, 1.0), (25.0, 0.5), (10.0, 0.2), (0.0, 0.0), (-3.0, 0.0)]:
        creature.energy = energy
        assert np.isclose(creature.energy_efficiency(), expected)


def test_target_length_oscillates_with_efficiency():
    """Actuated target length scales amplitude by efficiency; passive links keep rest length"""
    link = Link(0, 1, 10.0, 2.0, actuation_amp=0.5, actuation_freq=1.0, actuation_phase=math.pi / 2)

    assert np.isclose(target_length(link, 0, 1.0), 15.0)
    assert np.isclose(target_length(link, 0, 0.5), 12.5)
    assert np.isclose(target_length(link, 0, 0.0), 10.0)

    passive = Link(0, 1, 10.0, 2.0)
    assert np.isclose(target_length(passive, 37, 1.0), 10.0)


def test_stretched_spring_pulls_nodes_together():
    """Spring force is equal and opposite (momentum conserved)"""
    creature = _pair()
    creature.links[0].rest_length = 15.0

    apply_link_forces(creature, 0)

    a, b = creature.nodes
    assert a.velocity[0] > 0.0
    assert b.velocity[0] < 0.0
    momentum = a.mass * a.velocity + b.mass * b.velocity
    assert np.allclose(momentum, [0.0, 0.0])
    # displacement 5 * stiffness 2 / mass 25
    assert np.isclose(a.velocity[0], 0.4)


def test_spring_damping_opposes_separating_motion():
    """Damping on a link at rest length slows nodes moving apart, equally and oppositely"""
    creature = _pair()
    a, b = creature.nodes
    a.velocity[:] = [-1.0, 0.0]
    b.velocity[:] = [1.0, 0.0]

    apply_link_forces(creature, 0)

    # c = 0.5 * 2 * sqrt(2 * 12.5) = 5; relative speed 2 -> dv = 5 * 2 / 25
    assert np.allclose(a.velocity, [-0.6, 0.0])
    assert np.allclose(b.velocity, [0.6, 0.0])
    momentum = a.mass * a.velocity + b.mass * b.velocity
    assert np.allclose(momentum, [0.0, 0.0])


def test_spring_damping_capped_for_light_nodes():
    """Damping on tiny nodes cancels the separating speed without reversing it"""
    creature = _pair(size_a=1.0, size_b=1.0)
    a, b = creature.nodes
    a.velocity[:] = [-1.0, 0.0]
    b.velocity[:] = [1.0, 0.0]

    apply_link_forces(creature, 0)

    assert np.allclose(a.velocity, [0.0, 0.0])
    assert np.allclose(b.velocity, [0.0, 0.0])


def test_actuation_cost_charged_by_efficiency():
    """Actuated links cost amp * freq * 0.001 per tick, scaled by efficiency"""
    creature = _pair()
    creature.links[0].actuation_amp = 0.4
    creature.links[0].actuation_freq = 2.0

    assert np.isclose(actuation_cost(creature), 0.0008)

    creature.energy = 50.0
    apply_link_forces(creature, 0)
    assert np.isclose(creature.energy, 50.0 - 0.0008)

    creature.energy = 25.0
    apply_link_forces(creature, 1)
    assert np.isclose(creature.energy, 25.0 - 0.0004)


def test_exhausted_creature_pays_nothing():
    """Zero efficiency means no actuation and no cost"""
    creature = _pair(energy=0.0)
    creature.links[0].actuation_amp = 0.4
    creature.links[0].actuation_freq = 2.0

    apply_link_forces(creature, 5)

    assert creature.energy == 0.0
    assert np.allclose(creature.nodes[0].velocity, [0.0, 0.0])


def test_resolve_node_overlap_mass_share():
    """Heavier node moves less; combined displacement equals the overlap"""
    creature = _pair(size_a=5.0, size_b=10.0, xb=6.0, link=False)
    a, b = creature.nodes
    center_before = creature.center()

    overlap = resolve_node_overlap(a, b)

    assert np.isclose(overlap, 9.0)
    assert np.isclose(a.position[0], -7.2)
    assert np.isclose(b.position[0], 7.8)
    assert np.isclose(distance_2d(a.position, b.position), 15.0)
    assert np.allclose(creature.center(), center_before)


def test_resolve_node_overlap_ignores_separated_nodes():
    """No change when circles do not overlap"""
    creature = _pair(xb=30.0, link=False)
    assert resolve_node_overlap(*creature.nodes) == 0.0
    assert np.allclose(creature.nodes[1].position, [30.0, 0.0])


def test_self_collision_separates_all_pairs():
    """After the pass no two nodes of a three-node cluster overlap along the resolved axis"""
    nodes = [
        make_node(SegmentType.NEUTRAL, 0.0, 0.0, 4.0),
        make_node(SegmentType.NEUTRAL, 3.0, 0.0, 4.0),
        make_node(SegmentType.NEUTRAL, 40.0, 0.0, 4.0),
    ]
    creature = make_creature(nodes)

    apply_self_collision(creature)

    assert distance_2d(creature.nodes[0].position, creature.nodes[1].position) >= 8.0 - 1e-9
    assert np.allclose(creature.nodes[2].position, [40.0, 0.0])


def test_coincident_nodes_stay_finite():
    """Zero-distance nodes separate along a fixed axis without NaNs"""
    nodes = [make_node(SegmentType.NEUTRAL, 5.0, 5.0), make_node(SegmentType.NEUTRAL, 5.0, 5.0)]
    links = [Link(0, 1, 10.0, 2.0)]
    creature = build_creature_from_parts(0, nodes, links, 50.0)

    for tick in range(20):
        update_creature_physics(creature, tick, WorldConfig(), 1.0)

    for node in creature.nodes:
        assert np.all(np.isfinite(node.position))
        assert np.all(np.isfinite(node.velocity))
    assert distance_2d(creature.nodes[0].position, creature.nodes[1].position) > 1.0


def test_node_drag_isotropic():
    """Node drag divides velocity by 1 + viscosity * size * 0.1"""
    node = make_node(SegmentType.NEUTRAL, 0.0, 0.0, size=5.0, velocity=[10.0, -4.0])
    apply_node_drag(node, 0.1)
    assert np.allclose(node.velocity, np.array([10.0, -4.0]) / 1.05)


def test_link_drag_broadside_exceeds_lengthwise():
    """Moving perpendicular to a link loses ten times more speed than moving along it"""
    broadside = _pair()
    for node in broadside.nodes:
        node.velocity[:] = [0.0, 1.0]
    apply_link_drag(broadside.nodes[0], broadside.nodes[1], 0.1)

    lengthwise = _pair()
    for node in lengthwise.nodes:
        node.velocity[:] = [1.0, 0.0]
    apply_link_drag(lengthwise.nodes[0], lengthwise.nodes[1], 0.1)

    perp_loss = 1.0 - broadside.nodes[0].velocity[1]
    par_loss = 1.0 - lengthwise.nodes[0].velocity[0]

    assert par_loss > 0.0
    assert np.isclose(perp_loss, 10.0 * par_loss)
    assert np.isclose(perp_loss, 0.04)


def test_link_drag_resists_rotation():
    """Spinning link slows down; equal masses keep net linear velocity"""
    creature = _pair()
    a, b = creature.nodes
    a.velocity[:] = [0.0, -1.0]
    b.velocity[:] = [0.0, 1.0]

    apply_link_drag(a, b, 0.1)

    assert b.velocity[1] - a.velocity[1] < 2.0
    assert b.velocity[1] > 0.0
    assert np.allclose(a.velocity + b.velocity, [0.0, 0.0])


def test_link_drag_light_nodes_do_not_reverse():
    """Very light nodes on a long link in thick fluid stop rather than flip direction"""
    creature = _pair(size_a=1.0, size_b=1.0, xb=200.0)
    for node in creature.nodes:
        node.velocity[:] = [0.0, 1.0]

    apply_link_drag(creature.nodes[0], creature.nodes[1], 5.0)

    for node in creature.nodes:
        assert -1e-12 <= node.velocity[1] <= 1.0


def test_integrate_moves_by_velocity():
    """Euler step: position += velocity * dt"""
    creature = _pair(link=False)
    creature.nodes[0].velocity[:] = [1.0, 2.0]

    integrate(creature, 0.5)

    assert np.allclose(creature.nodes[0].position, [0.5, 1.0])
    assert np.allclose(creature.nodes[1].position, [20.0, 0.0])


def test_boundary_clamps_and_pushes_inward():
    """Nodes crossing a wall are clamped inside and pushed back"""
    nodes = [
        make_node(SegmentType.NEUTRAL, 405.0, 0.0, 5.0),
        make_node(SegmentType.NEUTRAL, -100.0, -310.0, 5.0),
    ]
    creature = make_creature(nodes)

    apply_boundary(creature, WorldConfig())

    right, bottom = creature.nodes
    assert np.isclose(right.position[0], 395.0)
    assert np.isclose(right.velocity[0], -0.5)
    assert np.isclose(bottom.position[1], -295.0)
    assert np.isclose(bottom.velocity[1], 0.5)
    assert np.isclose(bottom.position[0], -100.0)


def test_boundary_containment_over_time():
    """A node flung at a wall never leaves the world"""
    config = WorldConfig(width=200.0, height=200.0)
    creature = make_creature([make_node(SegmentType.NEUTRAL, 0.0, 0.0, 5.0, velocity=[50.0, -35.0])])

    for tick in range(100):
        update_creature_physics(creature, tick, config, 1.0)
        pos = creature.nodes[0].position
        assert -95.0 <= pos[0] <= 95.0
        assert -95.0 <= pos[1] <= 95.0


def test_resting_passive_body_stays_put():
    """Passive body at equilibrium with zero velocity does not move"""
    creature = _pair()
    before = creature.positions()

    update_creature_physics(creature, 0, WorldConfig(), 1.0)

    assert np.allclose(creature.positions(), before)


def test_dead_creature_skipped():
    """Physics ignores dead creatures"""
    creature = _pair(link=False)
    creature.nodes[0].velocity[:] = [3.0, 0.0]
    creature.alive = False

    update_creature_physics(creature, 0, WorldConfig(), 1.0)

    assert np.allclose(creature.nodes[0].position, [0.0, 0.0])


if __name__ == '__main__':
    print("=" * 60)
    print("Soft-Body Physics Tests")
    print("=" * 60)
    print()

    try:
        test_energy_efficiency_curve()
        test_target_length_oscillates_with_efficiency()
        test_stretched_spring_pulls_nodes_together()
        test_spring_damping_opposes_separating_motion()
        test_spring_damping_capped_for_light_nodes()
        test_actuation_cost_charged_by_efficiency()
        test_exhausted_creature_pays_nothing()
        test_resolve_node_overlap_mass_share()
        test_resolve_node_overlap_ignores_separated_nodes()
        test_self_collision_separates_all_pairs()
        test_coincident_nodes_stay_finite()
        test_node_drag_isotropic()
        test_link_drag_broadside_exceeds_lengthwise()
        test_link_drag_resists_rotation()
        test_link_drag_light_nodes_do_not_reverse()
        test_integrate_moves_by_velocity()
        test_boundary_clamps_and_pushes_inward()
        test_boundary_containment_over_time()
        test_resting_passive_body_stays_put()
        test_dead_creature_skipped()

    except Exception as e:
        print(f"\n[FAIL] Test failed: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)

    print("\n" + "=" * 60)
    print("All physics tests passed!")
    print("=" * 60)
