"""
Central configuration constants for the BioLife engine.

Defines fixed physical constants, genome generation ranges, and game-rule
parameters used across multiple modules. Tunable per-run values live in
WorldConfig instead.
"""

import math


# ============================================================================
# Geometry
# ============================================================================

# Substituted for zero distances before normalizing direction vectors
MIN_DISTANCE_EPSILON = 1e-3


# ============================================================================
# Genome Generation
# ============================================================================

GENOME_MIN_NODES_DEFAULT = 2
GENOME_MAX_NODES_DEFAULT = 6

GENE_SIZE_MIN = 3.0          # Node radius range for random genomes
GENE_SIZE_MAX = 10.0
GENE_EFFICIENCY_MIN = 0.3    # Efficiency range for random genomes
GENE_EFFICIENCY_MAX = 0.8

# Chance (for node index > 1) of one extra back-reference within the last 3 nodes
EXTRA_BACKREF_PROBABILITY = 0.3
EXTRA_BACKREF_WINDOW = 3


# ============================================================================
# Genome Mutation
# ============================================================================

MUTATION_SIZE_SCALE = 5.0        # size noise = U(-1, 1) * strength * scale
MUTATION_SIZE_MIN = 1.0
MUTATION_EFFICIENCY_MIN = 0.1
MUTATION_EFFICIENCY_MAX = 1.0
MUTATION_LINK_OFFSET_RANGE = 3   # Added offsets drawn from [-3, 3] \ {0}
MUTATION_DELETE_FACTOR = 0.1     # Per-gene deletion chance = rate * factor
MUTATION_DUPLICATE_FACTOR = 0.2  # Duplication chance = rate * factor


# ============================================================================
# Genome Text Format
# ============================================================================

# Fallbacks for malformed fields in "(type,size,efficiency,offset...)" records
GENE_SIZE_DEFAULT = 5.0
GENE_EFFICIENCY_DEFAULT = 0.5


# ============================================================================
# Body Building
# ============================================================================

NODE_SPACING_MARGIN = 2.0        # Gap added to the sum of radii between parent and child node
NODE_ANGLE_STEP = 0.8            # Placement angle = index * step + U(0, jitter)
NODE_ANGLE_JITTER = 0.5
LINK_STIFFNESS = 2.0

ACTUATION_PROBABILITY = 0.2      # Fraction of links that oscillate
ACTUATION_AMP_MIN = 0.2          # Amplitude as fraction of rest length
ACTUATION_AMP_MAX = 0.5
ACTUATION_FREQ_MIN = 1.0
ACTUATION_FREQ_MAX = 3.0
ACTUATION_PHASE_MAX = 2.0 * math.pi


# ============================================================================
# Physics
# ============================================================================

# Energy level at which actuation runs at full strength is half of this
REFERENCE_MAX_ENERGY = 100.0
EFFICIENCY_FULL_RATIO = 0.5

ACTUATION_TIME_SCALE = 0.1       # phase + tick * freq * scale
ACTUATION_COST_FACTOR = 0.001    # Energy per tick = sum(amp * freq * factor) * efficiency

DAMPING_RATIO = 0.5              # Fraction of critical damping on springs

PARALLEL_DRAG_FRACTION = 0.1     # Lengthwise drag relative to broadside drag
ROTATIONAL_DRAG_FACTOR = 1.0 / 12.0
NODE_DRAG_FACTOR = 0.1           # v *= 1 / (1 + viscosity * size * factor)

BOUNDARY_PUSH = 0.5              # Velocity impulse away from a violated wall


# ============================================================================
# Collision & Interaction
# ============================================================================

# Enable scipy.cKDTree broad phase
# Set to False to use O(n^2) reference scan for A/B comparison
USE_CKDTREE = True
CKDTREE_LEAFSIZE = 16

SEPARATION_PUSH_FORCE = 0.3      # Fraction of overlap vector applied as velocity impulse
SUCKER_DRAIN_FACTOR = 0.5        # Drain per contact = efficiency * factor
DRAIN_TRANSFER_FRACTION = 0.5    # Share of drained energy credited to the attacker


# ============================================================================
# Orchestrator
# ============================================================================

SOLAR_POOL_SCALE = 100.0         # Total solar energy per tick = insolation * scale
PASSIVE_DRAIN_PER_TICK = 0.01

FOOD_RADIUS = 3.0
FOOD_SPAWN_FRACTION = 0.9        # Random food lands within this fraction of world extent
CREATURE_SPAWN_FRACTION = 0.8
STARTING_ENERGY_DEFAULT = 50.0

MATING_CHILD_JITTER = 30.0       # Child offset from parents' midpoint, U(-0.5, 0.5) * jitter

DIVISION_PARENT_SHARE = 0.4      # 20% of pre-split energy is lost to the process
DIVISION_CHILD_SHARE = 0.4
DIVISION_CHILD_DISTANCE = 30.0

CORPSE_MASS_PER_PARTICLE = 50.0  # One food particle per this much mass (minimum one)
CORPSE_MASS_ENERGY_FRACTION = 0.1
CORPSE_SCATTER_RADIUS = 20.0


# ============================================================================
# Logging & Performance
# ============================================================================

# Print [MATING]/[DIVISION]/[DEATH] event lines from Simulation.tick()
LOG_EVENTS = False

# Tick timing window for rolling average
TICK_TIME_WINDOW = 100

# Default tick summary interval (print every N ticks)
TICK_SUMMARY_INTERVAL = 100
