"""Array-backed disjoint-set (union-find) over the indexes 0..n-1."""

from __future__ import annotations


class DisjointSet:
    def __init__(self, size: int) -> None:
        self._parent = list(range(size))
        self._rank = [0] * size

    def __len__(self) -> int:
        return len(self._parent)

    def find(self, index: int) -> int:
        root = index
        while self._parent[root] != root:
            root = self._parent[root]
        # Path compression.
        while self._parent[index] != root:
            self._parent[index], index = root, self._parent[index]
        return root

    def union(self, a: int, b: int) -> bool:
        """Join the sets holding a and b. Returns False when already joined."""
        root_a = self.find(a)
        root_b = self.find(b)
        if root_a == root_b:
            return False
        if self._rank[root_a] < self._rank[root_b]:
            root_a, root_b = root_b, root_a
        self._parent[root_b] = root_a
        if self._rank[root_a] == self._rank[root_b]:
            self._rank[root_a] += 1
        return True

    def connected(self, a: int, b: int) -> bool:
        return self.find(a) == self.find(b)

    def groups(self, indexes: list[int] | None = None) -> list[list[int]]:
        """
        Members grouped by root, restricted to indexes when given.

        Groups are ordered by their smallest member and each group is sorted.
        """
        selected = range(len(self._parent)) if indexes is None else sorted(indexes)
        by_root: dict[int, list[int]] = {}
        for index in selected:
            by_root.setdefault(self.find(index), []).append(index)
        return list(by_root.values())
