"""
Deterministic RNG utilities for the BioLife engine.

Uses SHA256 hashing to derive stable seeds from hierarchical components
(run_seed, stream_name, ...). All randomness uses
numpy.random.Generator(PCG64) instances owned by the caller and threaded
through every stochastic call; no module-level generator exists.
"""

import hashlib
import math
import numpy as np
from typing import Any


def make_seed(*components: Any) -> int:
    """
    Generate deterministic 64-bit seed from hierarchical components.

    Uses SHA256 to hash components into stable seed value.

    Args:
        *components: Seed components (run_seed, stream name, index, etc.)

    Returns:
        64-bit integer seed for numpy RNG

    Example:
        run_seed = make_seed(12345, "petri")
        rng = make_rng(make_seed(run_seed, "world"))
    """
    hash_input = ":".join(str(c) for c in components)

    hash_bytes = hashlib.sha256(hash_input.encode('utf-8')).digest()
    seed = int.from_bytes(hash_bytes[:8], byteorder='big')

    return seed


def make_rng(seed: int) -> np.random.Generator:
    """Create a PCG64-backed generator for the given seed"""
    return np.random.Generator(np.random.PCG64(seed))


def random_angle(rng: np.random.Generator) -> float:
    """Uniform angle in [0, 2*pi)"""
    return rng.uniform(0.0, 2.0 * math.pi)


def random_position_in_rect(rng: np.random.Generator, width: float, height: float,
                            fraction: float = 1.0) -> np.ndarray:
    """
    Uniform position in an origin-centered rectangle scaled by fraction.

    Args:
        rng: Random stream
        width: Rectangle width
        height: Rectangle height
        fraction: Scale of the sampled region (0.9 = inner 90%)

    Returns:
        Position [x, y]
    """
    x = (rng.random() - 0.5) * width * fraction
    y = (rng.random() - 0.5) * height * fraction
    return np.array([x, y], dtype=np.float64)


def random_point_in_disc(rng: np.random.Generator, center: np.ndarray, radius: float) -> np.ndarray:
    """
    Point at a uniform angle and uniform distance (0..radius) from center.

    Distance is uniform rather than area-uniform, so points cluster toward
    the center.
    """
    angle = random_angle(rng)
    dist = rng.random() * radius
    return np.asarray(center, dtype=np.float64) + dist * np.array(
        [math.cos(angle), math.sin(angle)], dtype=np.float64
    )
