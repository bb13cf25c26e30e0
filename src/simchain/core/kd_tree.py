# -*- coding: utf-8 -*-

# Copyright (C) 2025 Sangwook Lee @ Plusgenie Limited
# This file is part of SimChain (simulation chain sweeps).
#
# SimChain is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# SimChain is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with SimChain.  If not, see <https://www.gnu.org/licenses/>.

# Author: Sangwook Lee (aladdin@plusgenie.com)
# Date: 2026-10-19

"""
Balanced 3-D k-d tree stored as a flat node arena.

Nodes live in parallel lists indexed by integer node id; node 0 is the root.
Inner nodes split their point range at the median along axis depth % 3; the
left child holds coordinates <= split, the right child >= split. Ranges of at
most `leaf_size` points are leaves. Build is O(N log N), a query O(log N) on
average.

Nearest-neighbour ties (equal squared distance) resolve to the lowest
reference index.
"""
from __future__ import annotations

import math
from typing import List, Sequence, Tuple

import numpy as np

from .errors import EmptyReferenceSetError

NUM_DIM = 3
_LEAF = -1


def as_points(points, name: str = "points") -> np.ndarray:
    """Coerce to a finite float (N, 3) array; an empty input becomes shape (0, 3)."""
    arr = np.asarray(points, dtype=float)
    if arr.size == 0:
        return arr.reshape(0, NUM_DIM)
    if arr.ndim != 2 or arr.shape[1] != NUM_DIM:
        raise ValueError(f"{name} must have shape (N, 3), got {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise ValueError(f"{name} contains non-finite coordinates")
    return arr


class KdTree:
    """Read-only nearest-neighbour index over a fixed reference point set."""

    def __init__(self, points, leaf_size: int = 8) -> None:
        pts = as_points(points, "reference coordinates")
        n = pts.shape[0]
        if n == 0:
            raise EmptyReferenceSetError("Cannot build a k-d tree over an empty reference set.")
        if leaf_size < 1:
            raise ValueError(f"leaf_size must be >= 1, got {leaf_size}")
        self.leaf_size = int(leaf_size)
        self._coords: List[List[float]] = pts.tolist()

        order = np.arange(n)
        self._axis: List[int] = []
        self._split: List[float] = []
        self._left: List[int] = []
        self._right: List[int] = []
        self._start: List[int] = []
        self._stop: List[int] = []

        root = self._new_node(0, n)
        stack = [(root, 0, n, 0)]
        while stack:
            node, start, stop, depth = stack.pop()
            if stop - start <= self.leaf_size:
                continue
            ax = depth % NUM_DIM
            mid = start + (stop - start) // 2
            seg = order[start:stop]
            part = np.argpartition(pts[seg, ax], mid - start)
            order[start:stop] = seg[part]

            self._axis[node] = ax
            self._split[node] = float(pts[order[mid], ax])
            left = self._new_node(start, mid)
            right = self._new_node(mid, stop)
            self._left[node] = left
            self._right[node] = right
            stack.append((right, mid, stop, depth + 1))
            stack.append((left, start, mid, depth + 1))

        self._order: List[int] = order.tolist()

    @classmethod
    def build(cls, points, leaf_size: int = 8) -> "KdTree":
        return cls(points, leaf_size=leaf_size)

    def _new_node(self, start: int, stop: int) -> int:
        self._axis.append(_LEAF)
        self._split.append(0.0)
        self._left.append(_LEAF)
        self._right.append(_LEAF)
        self._start.append(start)
        self._stop.append(stop)
        return len(self._axis) - 1

    def __len__(self) -> int:
        return len(self._coords)

    @property
    def node_count(self) -> int:
        return len(self._axis)

    def depth(self) -> int:
        """Longest root-to-leaf path (root only = 0)."""
        deepest = 0
        stack = [(0, 0)]
        while stack:
            node, d = stack.pop()
            deepest = max(deepest, d)
            if self._axis[node] != _LEAF:
                stack.append((self._left[node], d + 1))
                stack.append((self._right[node], d + 1))
        return deepest

    def nearest(self, point: Sequence[float]) -> Tuple[int, float]:
        """(reference index, squared distance) of the closest point to `point`."""
        qx, qy, qz = (float(c) for c in point)
        q = (qx, qy, qz)
        coords, order = self._coords, self._order
        best_i, best_d = -1, math.inf

        stack = [(0, 0.0)]
        while stack:
            node, bound = stack.pop()
            if bound > best_d:
                continue
            ax = self._axis[node]
            if ax == _LEAF:
                for idx in order[self._start[node]:self._stop[node]]:
                    p = coords[idx]
                    dx = p[0] - qx
                    dy = p[1] - qy
                    dz = p[2] - qz
                    d = dx * dx + dy * dy + dz * dz
                    if d < best_d or (d == best_d and idx < best_i):
                        best_i, best_d = idx, d
                continue
            diff = q[ax] - self._split[node]
            if diff < 0.0:
                near, far = self._left[node], self._right[node]
            else:
                near, far = self._right[node], self._left[node]
            # far side is visited on equality so ties can still pick a lower index
            stack.append((far, diff * diff))
            stack.append((near, bound))

        assert best_i >= 0, "k-d tree query visited no points"
        return best_i, best_d

    def query(self, targets) -> np.ndarray:
        """Nearest reference index for every row of `targets` (shape (M, 3))."""
        tgt = as_points(targets, "target coordinates")
        out = np.empty(tgt.shape[0], dtype=np.int64)
        for i, row in enumerate(tgt.tolist()):
            out[i] = self.nearest(row)[0]
        return out


def nearest_brute_force(reference, targets) -> np.ndarray:
    """
    O(N*M) nearest-neighbour search; only meant for small inputs.

    np.argmin returns the first minimum, i.e. the lowest reference index on ties.
    """
    ref = as_points(reference, "reference coordinates")
    if ref.shape[0] == 0:
        raise EmptyReferenceSetError("Nearest-neighbour search needs at least one reference point.")
    tgt = as_points(targets, "target coordinates")
    if tgt.shape[0] == 0:
        return np.empty(0, dtype=np.int64)
    delta = tgt[:, None, :] - ref[None, :, :]
    d2 = delta[..., 0] * delta[..., 0] + delta[..., 1] * delta[..., 1] + delta[..., 2] * delta[..., 2]
    return np.argmin(d2, axis=1).astype(np.int64)
