import numpy as np

__all__ = ["minimum_image", "surface_distances", "write_frame"]


def minimum_image(delta, box):
    """Wrap displacement vectors to their nearest periodic image.

    Args:
     - delta: array of shape (...,2) with displacements
     - box: side of the square periodic domain, or None for no wrapping
    Returns:
     - delta: array of shape (...,2) with components in [-box/2, box/2]
    """
    if box is None:
        return delta
    return delta - box * np.round(delta / box)


def surface_distances(positions, radii, rows_a, rows_b, box=None):
    """Surface-to-surface distances between two groups of particles.

    The radius of the particle with the lower row index is subtracted first,
    so a pair gives the same value whichever group it comes from.

    Args:
     - positions: array of shape (N,2)
     - radii: array of shape (N,)
     - rows_a: array of shape (Na,) with row indices of the first group
     - rows_b: array of shape (Nb,) with row indices of the second group
     - box: side of the periodic domain, or None for a bounded domain
    Returns:
     - distances: array of shape (Na,Nb), center distance minus both radii
    """
    delta = minimum_image(
        positions[rows_a][:, None, :] - positions[rows_b][None, :, :], box
    )
    centers = np.sqrt(delta[..., 0] * delta[..., 0] + delta[..., 1] * delta[..., 1])
    radii_a = radii[rows_a][:, None]
    radii_b = radii[rows_b][None, :]
    a_first = rows_a[:, None] < rows_b[None, :]
    return centers - np.where(a_first, radii_a, radii_b) - np.where(a_first, radii_b, radii_a)


def write_frame(f, time, ids, positions, velocities):
    """Write one frame: the particle count, the time, then ``id x y vx vy`` per particle."""
    f.write(f"{len(ids)}\n")
    f.write(f"{time}\n")
    for pid, (x, y), (vx, vy) in zip(ids, positions, velocities):
        f.write(f"{int(pid)} {x:.6f} {y:.6f} {vx:.6f} {vy:.6f}\n")
