"""Partial-order alignment graph for building consensus sequences."""

from __future__ import annotations

import heapq

from .alignment import Alignment, Operation, Scoring, align_to_graph


class PoaGraph:
    """A graph of bases built by aligning sequences to it one by one."""

    def __init__(self, seq: str, scoring: Scoring | None = None) -> None:
        if not seq:
            raise ValueError("A partial-order graph needs a non-empty first sequence")
        self.scoring = scoring or Scoring()
        self._bases: list[str] = []
        self._successors: list[dict[int, int]] = []
        self._predecessors: list[list[int]] = []
        previous = None
        for base in seq:
            node = self._add_node(base)
            if previous is not None:
                self._add_edge(previous, node)
            previous = node

    def __len__(self) -> int:
        return len(self._bases)

    def _add_node(self, base: str) -> int:
        self._bases.append(base)
        self._successors.append({})
        self._predecessors.append([])
        return len(self._bases) - 1

    def _add_edge(self, source: int, target: int) -> None:
        weights = self._successors[source]
        if target in weights:
            weights[target] += 1
        else:
            weights[target] = 1
            self._predecessors[target].append(source)

    def _topological_order(self) -> list[int]:
        indegree = [len(preds) for preds in self._predecessors]
        ready = [node for node, degree in enumerate(indegree) if degree == 0]
        heapq.heapify(ready)
        order = []
        while ready:
            node = heapq.heappop(ready)
            order.append(node)
            for target in self._successors[node]:
                indegree[target] -= 1
                if indegree[target] == 0:
                    heapq.heappush(ready, target)
        return order

    def _align(self, seq: str) -> tuple[list[int], Alignment]:
        order = self._topological_order()
        position = {node: k for k, node in enumerate(order)}
        bases = [self._bases[node] for node in order]
        preds = [sorted(position[p] for p in self._predecessors[node]) for node in order]
        return order, align_to_graph(bases, preds, seq, self.scoring)

    def add_sequence(self, seq: str) -> None:
        """Align ``seq`` to the graph and merge it in."""
        order, alignment = self._align(seq)
        previous = None
        for step in alignment.steps:
            if step.operation is Operation.DELETION:
                continue
            base = seq[step.query]
            if step.operation is Operation.MATCH and self._bases[order[step.node]] == base:
                node = order[step.node]
            else:
                node = self._add_node(base)
            if previous is not None:
                self._add_edge(previous, node)
            previous = node

    def consensus(self) -> str:
        """The heaviest path through the graph, following the most used edges."""
        scores = [0] * len(self._bases)
        back: list[int | None] = [None] * len(self._bases)
        for node in self._topological_order():
            best: tuple[int, int, int] | None = None
            for pred in self._predecessors[node]:
                candidate = (self._successors[pred][node], scores[pred], pred)
                if best is None or candidate > best:
                    best = candidate
            if best is not None:
                scores[node] = best[0] + best[1]
                back[node] = best[2]
        node: int | None = max(range(len(scores)), key=lambda k: (scores[k], k))
        path = []
        while node is not None:
            path.append(self._bases[node])
            node = back[node]
        return "".join(reversed(path))

    def align_score(self, seq: str) -> int:
        """Score of the best global alignment of ``seq`` to the graph."""
        return self._align(seq)[1].score