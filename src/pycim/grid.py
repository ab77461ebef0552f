"""
Cell grid for the cell index method.

Contains:
- HALF_STENCIL : the 4 offsets that, with the cell itself, reach every
  neighboring cell pair exactly once
- half_stencil, stencil_size, wrap_stencil, stencil_rings : stencil construction
- GridIndexer : bins particles of a square domain into an M x M grid
"""
import math

import numpy as np


__all__ = [
    "HALF_STENCIL",
    "half_stencil",
    "stencil_size",
    "wrap_stencil",
    "stencil_rings",
    "GridIndexer",
    "ParticleOutOfBoundsError",
]

# right, up, up-right, up-left
HALF_STENCIL = ((1, 0), (0, 1), (1, 1), (-1, 1))


class ParticleOutOfBoundsError(ValueError):
    """Raised when a particle lies outside a bounded (non cyclic) domain."""


def stencil_size(rings):
    """Number of offsets in the half stencil of ``rings`` rings."""
    return ((2 * rings + 1) ** 2 - 1) // 2


def half_stencil(rings=1):
    """Offsets covering every cell within ``rings`` cells, one of each +/- pair.

    Keeps the offsets (dx, dy) with dy > 0, or dy == 0 and dx > 0, so that
    applying them to every cell visits each unordered cell pair once.
    """
    if rings < 1:
        raise ValueError(f"rings must be at least 1, got {rings}")
    if rings == 1:
        return HALF_STENCIL
    return tuple(
        (dx, dy)
        for dy in range(0, rings + 1)
        for dx in range(-rings, rings + 1)
        if dy > 0 or dx > 0
    )


def wrap_stencil(offsets, grid_size):
    """Reduce offsets modulo ``grid_size`` for a periodic grid.

    Offsets that land on the cell itself, or on a cell already reached by
    another offset or its mirror, are dropped.
    """
    wrapped = []
    seen = set()
    for dx, dy in offsets:
        key = (dx % grid_size, dy % grid_size)
        mirror = ((-dx) % grid_size, (-dy) % grid_size)
        if key == (0, 0) or key in seen or mirror in seen:
            continue
        seen.add(key)
        wrapped.append(key)
    return tuple(wrapped)


def stencil_rings(system, max_radius=0.0):
    """Number of cell rings to search so that no pair within the cutoff is missed.

    A pair can interact up to a center distance of r_c + 2 * max_radius, which
    spans ceil(reach / cell_side) cells.
    """
    reach = system.interaction_radius + 2.0 * max_radius
    cell_side = system.cell_side
    if reach <= cell_side:
        return 1
    return int(math.ceil(reach / cell_side))


class GridIndexer:
    """Assigns particles to the cells of a uniform square grid.

    The grid geometry is validated on construction, before any particle is
    binned.
    """

    def __init__(self, system):
        system.validate()
        self.system = system
        self.grid_size = int(system.grid_size)
        self.cell_side = system.cell_side
        self.cyclic = system.cyclic

    def cell_coordinates(self, particles):
        """Integer cell coordinates of every particle, array of shape (N,2)."""
        positions = particles.positions
        coords = np.floor(positions / self.cell_side).astype(np.int64)
        if self.cyclic:
            return coords % self.grid_size

        outside = np.any(
            (positions < 0.0) | (positions > self.system.space_length), axis=1
        )
        if np.any(outside):
            bad_ids = particles.ids[outside]
            raise ParticleOutOfBoundsError(
                f"{bad_ids.shape[0]} particle(s) outside [0, {self.system.space_length}]"
                f" in a bounded domain: ids {bad_ids[:10].tolist()}"
            )
        # particles on the far wall belong to the last cell
        return np.minimum(coords, self.grid_size - 1)

    def bin(self, particles):
        """Group particle indices by cell.

        Returns:
         - cells: dict mapping (cx, cy) to an array of row indices into particles
        """
        if len(particles) == 0:
            return {}
        coords = self.cell_coordinates(particles)
        keys = coords[:, 0] * self.grid_size + coords[:, 1]
        order = np.argsort(keys, kind="stable")
        unique_keys, starts = np.unique(keys[order], return_index=True)
        members = np.split(order, starts[1:])
        return {
            (int(k // self.grid_size), int(k % self.grid_size)): m
            for k, m in zip(unique_keys, members)
        }

    def shift(self, cell, offset):
        """Cell reached from ``cell`` by ``offset``, or None outside a bounded grid."""
        cx = cell[0] + offset[0]
        cy = cell[1] + offset[1]
        if self.cyclic:
            return (cx % self.grid_size, cy % self.grid_size)
        if 0 <= cx < self.grid_size and 0 <= cy < self.grid_size:
            return (cx, cy)
        return None

    def rings(self, max_radius=0.0):
        """Stencil rings for the cutoff, capped at the rings that span the grid."""
        if self.cyclic:
            widest = self.grid_size // 2
        else:
            widest = self.grid_size - 1
        return max(1, min(stencil_rings(self.system, max_radius), widest))

    def cell_distance(self, cell, other):
        """Number of rings separating two cells, measured around the torus if cyclic."""
        dx = abs(cell[0] - other[0])
        dy = abs(cell[1] - other[1])
        if self.cyclic:
            dx = min(dx, self.grid_size - dx)
            dy = min(dy, self.grid_size - dy)
        return max(dx, dy)

    def stencil(self, rings=1):
        """Half stencil offsets reaching ``rings`` cells around each cell."""
        offsets = half_stencil(rings)
        if self.cyclic:
            return wrap_stencil(offsets, self.grid_size)
        return offsets
