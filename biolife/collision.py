"""
Collision detection over creature nodes and food particles.

Every living node and every food particle is a circle body tagged with a
closed reference type (NodeRef or FoodRef). sync() mirrors World state into
the body table and rebuilds the broad phase; detect() reports overlapping
pairs with penetration depth and separation vector. No response logic
lives here.

Broad phase backend selection via constants.USE_CKDTREE:
- True: scipy.cKDTree query_pairs within the largest possible contact distance
- False: O(n^2) reference scan (identical output, for A/B comparison)
"""

import time
import numpy as np
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from scipy.spatial import cKDTree

from .entity import World
from .constants import USE_CKDTREE, CKDTREE_LEAFSIZE, MIN_DISTANCE_EPSILON


# ============================================================================
# Body references (tagged union)
# ============================================================================

@dataclass(frozen=True)
class NodeRef:
    """Collision body backed by a creature node"""
    creature_id: int
    node_id: int


@dataclass(frozen=True)
class FoodRef:
    """Collision body backed by a food particle"""
    food_id: int


BodyRef = Union[NodeRef, FoodRef]


@dataclass
class CollisionBody:
    """Circle mirrored from a world entity"""
    ref: BodyRef
    position: np.ndarray
    radius: float


@dataclass
class CollisionPair:
    """
    Two overlapping bodies.

    Attributes:
        a: First body reference
        b: Second body reference
        overlap: Positive penetration depth
        overlap_vector: Unit direction from a to b scaled by overlap
            (moving a by -overlap_vector, or b by +overlap_vector, separates them)
    """
    a: BodyRef
    b: BodyRef
    overlap: float
    overlap_vector: np.ndarray


# ============================================================================
# Collision system
# ============================================================================

class CollisionSystem:
    """
    Broad-phase index of circle bodies with pairwise overlap reporting.

    Bodies persist across ticks keyed by reference; sync() updates them in
    place, adds new ones and drops stale ones.
    """

    def __init__(self, use_ckdtree: Optional[bool] = None, leafsize: Optional[int] = None):
        """
        Args:
            use_ckdtree: Override USE_CKDTREE constant (for testing)
            leafsize: Override CKDTREE_LEAFSIZE constant (for testing)
        """
        self._use_ckdtree = use_ckdtree if use_ckdtree is not None else USE_CKDTREE
        self._leafsize = leafsize if leafsize is not None else CKDTREE_LEAFSIZE

        self._bodies: Dict[BodyRef, CollisionBody] = {}

        # Rebuilt by sync(): row order of bodies in the arrays/tree
        self._refs: List[BodyRef] = []
        self._positions: np.ndarray = np.empty((0, 2), dtype=np.float64)
        self._radii: np.ndarray = np.empty(0, dtype=np.float64)
        self._tree: Optional[cKDTree] = None

        # Build sequence counter (incremented on every sync)
        self._build_seq: int = 0
        self.last_build_ms: float = 0.0

    @property
    def body_count(self) -> int:
        return len(self._bodies)

    @property
    def build_seq(self) -> int:
        return self._build_seq

    def has_body(self, ref: BodyRef) -> bool:
        return ref in self._bodies

    def clear(self):
        """Remove all bodies and the broad-phase index"""
        self._bodies.clear()
        self._refs = []
        self._positions = np.empty((0, 2), dtype=np.float64)
        self._radii = np.empty(0, dtype=np.float64)
        self._tree = None

    def sync(self, world: World):
        """
        Mirror current World state into collision bodies.

        Living creatures contribute one body per node; every food particle
        contributes one body. Bodies whose entity no longer exists (dead
        creature, eaten food) are removed.
        """
        active = set()

        for creature in world.creatures:
            if not creature.alive:
                continue

            for node in creature.nodes:
                ref = NodeRef(creature.id, node.id)
                active.add(ref)
                self._upsert(ref, node.position, node.radius)

        for food in world.food:
            ref = FoodRef(food.id)
            active.add(ref)
            self._upsert(ref, food.position, food.radius)

        for ref in [r for r in self._bodies if r not in active]:
            del self._bodies[ref]

        self._rebuild_index()

    def _upsert(self, ref: BodyRef, position: np.ndarray, radius: float):
        body = self._bodies.get(ref)
        if body is None:
            self._bodies[ref] = CollisionBody(ref=ref, position=position.copy(), radius=radius)
        else:
            body.position[:] = position
            body.radius = radius

    def _rebuild_index(self):
        build_start = time.perf_counter()

        self._refs = list(self._bodies.keys())
        n = len(self._refs)

        if n > 0:
            self._positions = np.array([self._bodies[r].position for r in self._refs], dtype=np.float64)
            self._radii = np.array([self._bodies[r].radius for r in self._refs], dtype=np.float64)
        else:
            self._positions = np.empty((0, 2), dtype=np.float64)
            self._radii = np.empty(0, dtype=np.float64)

        if self._use_ckdtree and n > 1:
            self._tree = cKDTree(self._positions, leafsize=self._leafsize)
        else:
            self._tree = None

        self._build_seq += 1
        self.last_build_ms = (time.perf_counter() - build_start) * 1000.0

    def _candidate_pairs(self) -> np.ndarray:
        """(K, 2) row pairs with i < j that might overlap"""
        n = len(self._refs)
        if n < 2:
            return np.empty((0, 2), dtype=np.int64)

        if self._tree is not None:
            # Two circles can only touch if their centers are within 2 * max radius
            reach = 2.0 * float(np.max(self._radii))
            return self._tree.query_pairs(reach, output_type='ndarray')

        rows_i, rows_j = np.triu_indices(n, k=1)
        return np.stack([rows_i, rows_j], axis=1)

    def detect(self) -> List[CollisionPair]:
        """
        Report every overlapping body pair.

        Each pair appears once. Order is deterministic: by the rows of the
        first and second body, where rows follow body insertion order.

        Returns:
            List of CollisionPair with overlap > 0
        """
        candidates = self._candidate_pairs()
        if len(candidates) == 0:
            return []

        rows_i = candidates[:, 0]
        rows_j = candidates[:, 1]

        diff = self._positions[rows_j] - self._positions[rows_i]
        dist = np.sqrt(np.sum(diff ** 2, axis=1))
        overlap = self._radii[rows_i] + self._radii[rows_j] - dist

        hits = np.where(overlap > 0.0)[0]
        if len(hits) == 0:
            return []

        order = np.lexsort((rows_j[hits], rows_i[hits]))
        hits = hits[order]

        pairs = []
        for k in hits:
            d = dist[k]
            if d < MIN_DISTANCE_EPSILON:
                direction = np.array([1.0, 0.0], dtype=np.float64)
            else:
                direction = diff[k] / d
            depth = float(overlap[k])
            pairs.append(CollisionPair(
                a=self._refs[rows_i[k]],
                b=self._refs[rows_j[k]],
                overlap=depth,
                overlap_vector=direction * depth
            ))

        return pairs

    def check_all(self, world: World) -> List[CollisionPair]:
        """sync() then detect()"""
        self.sync(world)
        return self.detect()
