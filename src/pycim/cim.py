"""
Neighbor search with the cell index method.

Contains:
- iter_cell_pairs : walks each occupied cell with itself and its half stencil
- iter_occupied_cell_pairs : same pairs, found by comparing occupied cells
- close_pairs : row index pairs within the cutoff
- find_neighbors : NeighborMap of a ParticleSet for a given SystemInfo
"""
import numpy as np

from .grid import GridIndexer, stencil_size
from .neighbor_map import NeighborMap
from .utils import surface_distances

__all__ = [
    "iter_cell_pairs",
    "iter_occupied_cell_pairs",
    "close_pairs",
    "find_neighbors",
]


def iter_cell_pairs(cells, indexer, offsets):
    """Yield (cell, other_cell, same_cell) for every cell pair to test.

    Each occupied cell is paired with itself, then with the cells reached by
    the half stencil ``offsets``. Empty cells and cells outside a bounded grid
    are skipped.
    """
    for cell in cells:
        yield cell, cell, True
        for offset in offsets:
            other = indexer.shift(cell, offset)
            if other is None or other == cell or other not in cells:
                continue
            yield cell, other, False


def iter_occupied_cell_pairs(cells, indexer, rings):
    """Yield (cell, other_cell, same_cell) for occupied cells within ``rings``.

    Visits the same cell pairs as iter_cell_pairs, each unordered pair once,
    for grids whose stencil holds more offsets than there are occupied cells.
    """
    occupied = list(cells)
    for n, cell in enumerate(occupied):
        yield cell, cell, True
        for other in occupied[n + 1 :]:
            if indexer.cell_distance(cell, other) <= rings:
                yield cell, other, False


def close_pairs(particles, system):
    """All pairs of particles within the cutoff, found cell by cell.

    Args:
     - particles: ParticleSet
     - system: SystemInfo
    Returns:
     - pairs: array of shape (npairs,2) with row indices into particles
    """
    indexer = GridIndexer(system)
    if len(particles) == 0:
        return np.zeros((0, 2), dtype=np.int64)

    cells = indexer.bin(particles)
    rings = indexer.rings(particles.max_radius)
    if stencil_size(rings) > len(cells):
        walk = iter_occupied_cell_pairs(cells, indexer, rings)
    else:
        walk = iter_cell_pairs(cells, indexer, indexer.stencil(rings))
    box = system.space_length if system.cyclic else None
    positions = particles.positions
    radii = particles.radii
    cutoff = system.interaction_radius

    first = []
    second = []
    for cell, other, same_cell in walk:
        a = cells[cell]
        b = cells[other]
        within = surface_distances(positions, radii, a, b, box) <= cutoff
        if same_cell:
            within = np.triu(within, k=1)
        i, j = np.nonzero(within)
        first.append(a[i])
        second.append(b[j])

    if not first:
        return np.zeros((0, 2), dtype=np.int64)
    pairs = np.stack((np.concatenate(first), np.concatenate(second)), axis=1)
    if system.cyclic:
        # a periodic grid with an even side smaller than the stencil reaches
        # some cell pairs from both ends
        pairs = np.unique(np.sort(pairs, axis=1), axis=0)
    return pairs


def find_neighbors(particles, system):
    """Neighbor map of ``particles`` computed with the cell index method.

    Raises ConfigurationError for an unusable grid and
    ParticleOutOfBoundsError for particles outside a bounded domain.
    """
    pairs = close_pairs(particles, system)
    neighbor_map = NeighborMap()
    neighbor_map.add_pairs(particles.ids[pairs[:, 0]], particles.ids[pairs[:, 1]])
    return neighbor_map
