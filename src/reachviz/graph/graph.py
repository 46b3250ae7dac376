"""ReachabilityGraph: flat node map, edge set, frame list."""

from __future__ import annotations

from collections import defaultdict, deque

from reachviz.graph.nodes import Frame, NodeKey, NodeValue


class ReachabilityGraph:
    """Deduplicated nodes keyed by NodeKey with a set of parent→child edges."""

    def __init__(self) -> None:
        self._nodes: dict[NodeKey, NodeValue] = {}
        self._edges: set[tuple[NodeKey, NodeKey]] = set()
        self._frames: list[Frame] = []
        self.allocs: list[int] = []  # live allocations known at traversal time
        # Forward adjacency: parent → children, insertion ordered
        self._fwd: dict[NodeKey, dict[NodeKey, None]] = defaultdict(dict)
        # Backward adjacency: child → parents
        self._bwd: dict[NodeKey, dict[NodeKey, None]] = defaultdict(dict)

    def add_node(self, key: NodeKey, value: NodeValue) -> None:
        self._nodes[key] = value

    def has_node(self, key: NodeKey) -> bool:
        return key in self._nodes

    def get_node(self, key: NodeKey) -> NodeValue | None:
        return self._nodes.get(key)

    def add_edge(self, parent: NodeKey, child: NodeKey) -> None:
        """Add a directed edge (repeats from the same parent collapse)."""
        self._edges.add((parent, child))
        self._fwd[parent][child] = None
        self._bwd[child][parent] = None

    def add_frame(self, frame: Frame) -> None:
        self._frames.append(frame)

    def children_of(self, key: NodeKey) -> list[NodeKey]:
        return list(self._fwd.get(key, ()))

    def parents_of(self, key: NodeKey) -> list[NodeKey]:
        return list(self._bwd.get(key, ()))

    def roots(self) -> list[NodeKey]:
        return [key for frame in self._frames for key in frame.nodes]

    def reachable_from(self, start: NodeKey) -> set[NodeKey]:
        """BFS over forward edges; includes ``start`` itself."""
        visited: set[NodeKey] = set()
        queue: deque[NodeKey] = deque([start])
        while queue:
            current = queue.popleft()
            if current in visited:
                continue
            visited.add(current)
            for child in self._fwd.get(current, ()):
                if child not in visited:
                    queue.append(child)
        return visited

    def reachable_allocs(self) -> set[int]:
        return {key.alloc_id for key in self._nodes}

    def unreachable_allocs(self) -> list[int]:
        """Live allocations no root reaches, in table order."""
        reached = self.reachable_allocs()
        return [a for a in self.allocs if a not in reached]

    def all_nodes(self) -> list[tuple[NodeKey, NodeValue]]:
        return list(self._nodes.items())

    def all_edges(self) -> set[tuple[NodeKey, NodeKey]]:
        return set(self._edges)

    @property
    def frames(self) -> list[Frame]:
        return list(self._frames)

    def __len__(self) -> int:
        return len(self._nodes)
