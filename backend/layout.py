"""
Force-directed layout for the knowledge graph
Link springs, many-body repulsion and centering, integrated with velocity decay
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

import networkx as nx
import numpy as np

from backend.models import KnowledgeGraph
from utils.config import GRAPH_WIDTH, GRAPH_HEIGHT

logger = logging.getLogger(__name__)

INITIAL_RADIUS = 10.0
INITIAL_ANGLE = math.pi * (3 - math.sqrt(5))
DRAG_ALPHA_TARGET = 0.3


class PinState(str, Enum):
    FREE = "free"
    PINNED = "pinned"


@dataclass(frozen=True)
class ForceParams:
    """Tuning for one simulation"""
    link_distance: float = 100.0
    charge_strength: float = -300.0
    distance_min: float = 1.0
    center_strength: float = 1.0
    velocity_decay: float = 0.4
    alpha_min: float = 0.001
    alpha_decay: float = 1 - 0.001 ** (1 / 300)


@dataclass(frozen=True)
class LinkArrays:
    """Link endpoints as node indices with per-link spring settings"""
    source: np.ndarray
    target: np.ndarray
    strength: np.ndarray
    bias: np.ndarray

    @classmethod
    def empty(cls) -> "LinkArrays":
        return cls(np.zeros(0, dtype=int), np.zeros(0, dtype=int), np.zeros(0), np.zeros(0))


@dataclass
class LayoutNode:
    """Snapshot of a node's simulated position"""
    id: str
    label: str
    group: int
    status: str
    x: float
    y: float
    vx: float = 0.0
    vy: float = 0.0
    fx: Optional[float] = None
    fy: Optional[float] = None

    @property
    def state(self) -> PinState:
        return PinState.FREE if self.fx is None else PinState.PINNED


def build_links(graph: KnowledgeGraph, index: Dict[str, int]) -> LinkArrays:
    """
    Resolve links to indices.

    Strength is 1 / min(degree) of the endpoints and bias is the source's
    share of the combined degree. Links whose endpoints are missing from
    the index are skipped.
    """
    multigraph = nx.MultiDiGraph()
    multigraph.add_nodes_from(index)
    usable = [link for link in graph.links if link.source in index and link.target in index]
    if len(usable) != len(graph.links):
        logger.warning(f"Layout skipped {len(graph.links) - len(usable)} link(s) with unknown endpoints")
    if not usable:
        return LinkArrays.empty()

    multigraph.add_edges_from((link.source, link.target) for link in usable)
    degree = dict(multigraph.degree())

    source = np.array([index[link.source] for link in usable], dtype=int)
    target = np.array([index[link.target] for link in usable], dtype=int)
    source_degree = np.array([degree[link.source] for link in usable], dtype=float)
    target_degree = np.array([degree[link.target] for link in usable], dtype=float)

    return LinkArrays(
        source=source,
        target=target,
        strength=1.0 / np.minimum(source_degree, target_degree),
        bias=source_degree / (source_degree + target_degree),
    )


def _jiggle(rng: np.random.Generator, shape) -> np.ndarray:
    return (rng.random(shape) - 0.5) * 1e-6


def _link_force(positions, velocities, links: LinkArrays, params: ForceParams, alpha, rng) -> np.ndarray:
    dv = np.zeros_like(velocities)
    if links.source.size == 0:
        return dv

    # A self-link has zero rest length and no effect
    active = links.source != links.target
    src, tgt = links.source[active], links.target[active]
    if src.size == 0:
        return dv

    delta = (positions[tgt] + velocities[tgt]) - (positions[src] + velocities[src])
    coincident = np.all(delta == 0, axis=1)
    if coincident.any():
        delta[coincident] = _jiggle(rng, (int(coincident.sum()), 2))

    length = np.sqrt(np.sum(delta ** 2, axis=1))
    scale = (length - params.link_distance) / length * alpha * links.strength[active]
    pull = delta * scale[:, None]
    bias = links.bias[active][:, None]

    np.add.at(dv, tgt, -pull * bias)
    np.add.at(dv, src, pull * (1 - bias))
    return dv


def _charge_force(positions, params: ForceParams, alpha, rng) -> np.ndarray:
    n = len(positions)
    if n < 2:
        return np.zeros_like(positions)

    dx = positions[None, :, 0] - positions[:, None, 0]
    dy = positions[None, :, 1] - positions[:, None, 1]
    off_diagonal = ~np.eye(n, dtype=bool)

    coincident = (dx == 0) & (dy == 0) & off_diagonal
    if coincident.any():
        count = int(coincident.sum())
        dx[coincident] = _jiggle(rng, count)
        dy[coincident] = _jiggle(rng, count)

    dist2 = dx ** 2 + dy ** 2
    min2 = params.distance_min ** 2
    dist2 = np.where(dist2 < min2, np.sqrt(min2 * dist2), dist2)

    weight = np.zeros_like(dist2)
    np.divide(params.charge_strength * alpha, dist2, out=weight, where=off_diagonal)

    return np.stack([np.sum(dx * weight, axis=1), np.sum(dy * weight, axis=1)], axis=1)


def step(
    positions: np.ndarray,
    velocities: np.ndarray,
    pinned: np.ndarray,
    links: LinkArrays,
    params: ForceParams,
    alpha: float,
    center: Tuple[float, float],
    rng: Optional[np.random.Generator] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Advance the simulation by one tick.

    Args:
        positions: (n, 2) node positions
        velocities: (n, 2) node velocities
        pinned: (n, 2) pinned coordinates, NaN for free nodes
        links: Resolved link arrays
        params: Force tuning
        alpha: Current simulation energy
        center: Point the layout is pulled toward

    Returns:
        New (positions, velocities); inputs are not modified
    """
    rng = rng or np.random.default_rng()
    positions = np.array(positions, dtype=float)
    velocities = np.array(velocities, dtype=float)
    if len(positions) == 0:
        return positions, velocities

    velocities += _link_force(positions, velocities, links, params, alpha, rng)
    velocities += _charge_force(positions, params, alpha, rng)

    shift = (positions.mean(axis=0) - np.asarray(center, dtype=float)) * params.center_strength
    positions -= shift

    free = np.isnan(pinned[:, 0])
    velocities[free] *= 1 - params.velocity_decay
    positions[free] += velocities[free]
    positions[~free] = pinned[~free]
    velocities[~free] = 0.0

    return positions, velocities


class ForceLayout:
    """Stateful wrapper that owns positions, pins and energy for one graph"""

    def __init__(self, graph: KnowledgeGraph, width: float = GRAPH_WIDTH, height: float = GRAPH_HEIGHT,
                 params: Optional[ForceParams] = None, seed: Optional[int] = None):
        self.graph = graph
        self.params = params or ForceParams()
        self.center = (width / 2, height / 2)
        self._rng = np.random.default_rng(seed)

        self._ids = [node.id for node in graph.nodes]
        self._index = {node_id: i for i, node_id in enumerate(self._ids)}
        self._links = build_links(graph, self._index)

        n = len(self._ids)
        i = np.arange(n)
        radius = INITIAL_RADIUS * np.sqrt(0.5 + i)
        angle = i * INITIAL_ANGLE
        self._positions = np.stack([self.center[0] + radius * np.cos(angle),
                                    self.center[1] + radius * np.sin(angle)], axis=1) if n else np.zeros((0, 2))
        self._velocities = np.zeros((n, 2))
        self._pinned = np.full((n, 2), np.nan)

        self.alpha = 1.0 if n else 0.0
        self.alpha_target = 0.0
        self.tick_count = 0

    def __len__(self) -> int:
        return len(self._ids)

    @property
    def is_running(self) -> bool:
        if not self._ids:
            return False
        return self.alpha >= self.params.alpha_min or self.alpha_target > self.alpha

    def tick(self) -> Dict[str, Tuple[float, float]]:
        """Advance one step and return the new positions."""
        if not self._ids:
            return {}
        self.alpha += (self.alpha_target - self.alpha) * self.params.alpha_decay
        self._positions, self._velocities = step(
            self._positions, self._velocities, self._pinned, self._links,
            self.params, self.alpha, self.center, self._rng,
        )
        self.tick_count += 1
        return self.positions()

    def ticks(self, max_ticks: Optional[int] = None) -> Iterator[Dict[str, Tuple[float, float]]]:
        """Yield positions after every step until the layout cools."""
        count = 0
        while self.is_running and (max_ticks is None or count < max_ticks):
            yield self.tick()
            count += 1

    def settle(self, max_ticks: int = 1000) -> Dict[str, Tuple[float, float]]:
        """Run until the energy decays below alpha_min (or max_ticks)."""
        for _ in self.ticks(max_ticks):
            pass
        logger.debug(f"Layout settled after {self.tick_count} ticks (alpha={self.alpha:.4f})")
        return self.positions()

    def _require(self, node_id: str) -> int:
        if node_id not in self._index:
            raise ValueError(f"Unknown node: {node_id}")
        return self._index[node_id]

    def drag_start(self, node_id: str):
        """Pin a node where it is and reheat the simulation."""
        i = self._require(node_id)
        self._pinned[i] = self._positions[i]
        self.alpha_target = DRAG_ALPHA_TARGET

    def drag(self, node_id: str, x: float, y: float):
        i = self._require(node_id)
        if np.isnan(self._pinned[i, 0]):
            self.drag_start(node_id)
        self._pinned[i] = (x, y)

    def drag_end(self, node_id: str):
        """Release a pinned node and let the energy decay."""
        i = self._require(node_id)
        self._pinned[i] = np.nan
        if np.isnan(self._pinned[:, 0]).all():
            self.alpha_target = 0.0

    def pin_state(self, node_id: str) -> PinState:
        i = self._require(node_id)
        return PinState.FREE if np.isnan(self._pinned[i, 0]) else PinState.PINNED

    def positions(self) -> Dict[str, Tuple[float, float]]:
        return {node_id: (float(x), float(y)) for node_id, (x, y) in zip(self._ids, self._positions)}

    def layout_nodes(self) -> List[LayoutNode]:
        snapshot = []
        for node, (x, y), (vx, vy), (fx, fy) in zip(self.graph.nodes, self._positions,
                                                    self._velocities, self._pinned):
            pinned = not np.isnan(fx)
            snapshot.append(LayoutNode(
                id=node.id, label=node.label, group=node.group, status=node.status,
                x=float(x), y=float(y), vx=float(vx), vy=float(vy),
                fx=float(fx) if pinned else None, fy=float(fy) if pinned else None,
            ))
        return snapshot

    def edge_segments(self) -> List[Tuple[str, str, float, float, float, float, float]]:
        """(source, target, x1, y1, x2, y2, value) for every drawable link."""
        segments = []
        for link in self.graph.links:
            if link.source not in self._index or link.target not in self._index:
                continue
            x1, y1 = self._positions[self._index[link.source]]
            x2, y2 = self._positions[self._index[link.target]]
            segments.append((link.source, link.target, float(x1), float(y1), float(x2), float(y2), link.value))
        return segments
