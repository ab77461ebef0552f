import numpy as np
import numba

from .neighbor_map import NeighborMap

__all__ = ["find_neighbors_bruteforce", "close_pairs_bruteforce"]


@numba.njit
def _close_pairs(positions, radii, interaction_radius):
    n = len(radii)
    first = []
    second = []
    for i in range(n):
        for j in range(i + 1, n):
            dx = positions[i, 0] - positions[j, 0]
            dy = positions[i, 1] - positions[j, 1]
            dist = np.sqrt(dx * dx + dy * dy)
            if dist - radii[i] - radii[j] <= interaction_radius:
                first.append(i)
                second.append(j)
    return first, second


def close_pairs_bruteforce(particles, interaction_radius):
    """All pairs of particles within the cutoff, by testing every pair.

    No periodic wrap is applied: distances are plain Euclidean distances.

    Args:
     - particles: ParticleSet
     - interaction_radius: inclusive surface-to-surface cutoff
    Returns:
     - pairs: array of shape (npairs,2) with row indices (i < j) into particles
    """
    if len(particles) < 2:
        return np.zeros((0, 2), dtype=np.int64)
    positions = np.ascontiguousarray(particles.positions, dtype=np.float64)
    radii = np.ascontiguousarray(particles.radii, dtype=np.float64)
    first, second = _close_pairs(positions, radii, float(interaction_radius))
    if len(first) == 0:
        return np.zeros((0, 2), dtype=np.int64)
    return np.stack(
        (np.array(first, dtype=np.int64), np.array(second, dtype=np.int64)), axis=1
    )


def find_neighbors_bruteforce(particles, interaction_radius):
    """Neighbor map of a bounded domain computed over all C(N,2) pairs."""
    pairs = close_pairs_bruteforce(particles, interaction_radius)
    neighbor_map = NeighborMap()
    neighbor_map.add_pairs(particles.ids[pairs[:, 0]], particles.ids[pairs[:, 1]])
    return neighbor_map
