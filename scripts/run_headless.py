"""
Headless scenario runner.

Loads a scenario from data/worlds/, ticks it, and prints periodic
summaries plus a final population table.

Usage:
    python scripts/run_headless.py [scenario_name] [ticks]
"""

import sys
from pathlib import Path

from biolife.simulation import Simulation
from biolife.loader import load_scenario, list_scenarios, DataLoadError
from biolife.genome import genome_signature, serialize
from biolife.constants import TICK_SUMMARY_INTERVAL

REPO_ROOT = Path(__file__).parent.parent
DATA_ROOT = REPO_ROOT / "data"
SCHEMA_DIR = DATA_ROOT / "schemas"


def run_scenario(name: str, ticks: int) -> Simulation:
    """Load and run one scenario, printing a summary every TICK_SUMMARY_INTERVAL ticks."""
    scenario_path = DATA_ROOT / "worlds" / f"{name}.yaml"
    scenario = load_scenario(scenario_path, SCHEMA_DIR)

    sim = Simulation.from_scenario(scenario, verbose=True)

    print(f"Running {ticks} ticks...")
    sim.run(ticks, summary_every=TICK_SUMMARY_INTERVAL)

    return sim


def print_population(sim: Simulation, limit: int = 10):
    """Print the highest-energy creatures as a table."""
    creatures = sorted(sim.world.living_creatures(), key=lambda c: c.energy, reverse=True)

    print()
    print("| Id    | Energy   | Age    | Nodes | Links | Genome   |")
    print("|-------|----------|--------|-------|-------|----------|")
    for creature in creatures[:limit]:
        print(f"| {creature.id:5d} | {creature.energy:8.2f} | {creature.age:6d} | "
              f"{len(creature.nodes):5d} | {len(creature.links):5d} | {genome_signature(creature.genome)} |")

    if creatures:
        print()
        print(f"Top genome: {serialize(creatures[0].genome)}")


def main():
    """Run a scenario by name (default: 'default') for N ticks (default: 1000)."""
    name = sys.argv[1] if len(sys.argv) > 1 else "default"
    ticks = int(sys.argv[2]) if len(sys.argv) > 2 else 1000

    print("=" * 80)
    print(f"BioLife headless run: scenario={name}, ticks={ticks}")
    print("=" * 80)

    try:
        sim = run_scenario(name, ticks)
    except DataLoadError as e:
        available = ", ".join(p.stem for p in list_scenarios(DATA_ROOT))
        print(f"[FAIL] {e}")
        print(f"Available scenarios: {available}")
        sys.exit(1)

    stats = sim.get_stats()
    print()
    print("=" * 80)
    print(f"Final: tick={stats['tick']} creatures={stats['creatures']} food={stats['food']} "
          f"matings={stats['total_matings']} divisions={stats['total_divisions']} "
          f"deaths={stats['total_deaths']}")
    print("=" * 80)

    print_population(sim)


if __name__ == '__main__':
    main()
