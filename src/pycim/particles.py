import math
import numpy as np

__all__ = [
    "ParticleSet",
    "SystemInfo",
    "ConfigurationError",
    "default_grid_size",
    "read_particles_file",
    "write_particles_file",
    "sample_particles",
]


class ConfigurationError(ValueError):
    """Raised when a SystemInfo does not describe a usable grid."""


class ParticleSet:
    """Ordered, read-only collection of particles for one neighbor search.

    Attributes:
     - ids: array of shape (N,) with unique integer particle ids
     - positions: array of shape (N,2) with particle centers
     - radii: array of shape (N,) with particle radii (0 for point particles)
    """

    def __init__(self, ids, positions, radii=None):
        ids = np.array(ids, dtype=np.int64).reshape(-1)
        positions = np.array(positions, dtype=np.float64)
        if positions.size == 0:
            positions = positions.reshape(0, 2)
        if positions.ndim != 2 or positions.shape[1] != 2:
            raise ValueError(f"positions must have shape (N,2), got {positions.shape}")
        if positions.shape[0] != ids.shape[0]:
            raise ValueError(
                f"got {ids.shape[0]} ids for {positions.shape[0]} positions"
            )
        if np.unique(ids).shape[0] != ids.shape[0]:
            raise ValueError("particle ids must be unique")

        if radii is None:
            radii = np.zeros(ids.shape[0], dtype=np.float64)
        else:
            radii = np.array(radii, dtype=np.float64).reshape(-1)
        if radii.shape[0] != ids.shape[0]:
            raise ValueError(f"got {radii.shape[0]} radii for {ids.shape[0]} particles")
        if np.any(radii < 0.0):
            raise ValueError("particle radii must be non-negative")

        for array in (ids, positions, radii):
            array.setflags(write=False)
        self.ids = ids
        self.positions = positions
        self.radii = radii

    @classmethod
    def from_positions(cls, positions, radii=None):
        """Build a set whose ids are the row indices of ``positions``."""
        positions = np.asarray(positions, dtype=np.float64).reshape(-1, 2)
        return cls(np.arange(positions.shape[0]), positions, radii)

    def __len__(self):
        return self.ids.shape[0]

    def __repr__(self):
        return f"ParticleSet(n={len(self)})"

    @property
    def max_radius(self):
        return float(self.radii.max()) if len(self) > 0 else 0.0


def default_grid_size(space_length, interaction_radius):
    """Largest number of cells per side keeping the cell side >= cutoff."""
    if not math.isfinite(interaction_radius) or interaction_radius <= 0.0:
        return 1
    return max(1, int(math.floor(space_length / interaction_radius)))


class SystemInfo:
    """Geometry of the square domain and its cell grid.

    Attributes:
     - space_length: side L of the square domain [0, L) x [0, L)
     - interaction_radius: inclusive surface-to-surface cutoff r_c
     - grid_size: number of cells M per side (defaults to floor(L / r_c))
     - cyclic: True for a toroidal domain, False for a bounded one
    """

    def __init__(self, space_length, interaction_radius, grid_size=None, cyclic=False):
        self.space_length = float(space_length)
        self.interaction_radius = float(interaction_radius)
        if grid_size is None:
            grid_size = default_grid_size(self.space_length, self.interaction_radius)
        self.grid_size = grid_size
        self.cyclic = bool(cyclic)

    @classmethod
    def from_dict(cls, parameters):
        return cls(
            space_length=parameters["space_length"],
            interaction_radius=parameters["interaction_radius"],
            grid_size=parameters.get("grid_size", None),
            cyclic=parameters.get("cyclic", False),
        )

    @property
    def cell_side(self):
        return self.space_length / self.grid_size

    def validate(self):
        """Check that the grid geometry is usable, raising ConfigurationError otherwise."""
        if isinstance(self.grid_size, bool) or not isinstance(
            self.grid_size, (int, np.integer)
        ):
            raise ConfigurationError(
                f"grid_size must be an integer, got {self.grid_size!r}"
            )
        if self.grid_size < 1:
            raise ConfigurationError(f"grid_size must be at least 1, got {self.grid_size}")
        if not (math.isfinite(self.space_length) and self.space_length > 0.0):
            raise ConfigurationError(
                f"space_length must be positive, got {self.space_length}"
            )
        if not math.isfinite(self.interaction_radius):
            raise ConfigurationError(
                f"interaction_radius must be finite, got {self.interaction_radius}"
            )
        return self

    def __repr__(self):
        return (
            f"SystemInfo(space_length={self.space_length}, "
            f"interaction_radius={self.interaction_radius}, "
            f"grid_size={self.grid_size}, cyclic={self.cyclic})"
        )


def read_particles_file(filename, cyclic=False):
    """Read particles and grid parameters from a plain text input file.

    The file holds the particle count N, the domain side L, the number of
    cells per side M and the cutoff r_c on the first four lines, followed by
    N lines of ``id x y radius``.

    Args:
     - filename: path to the input file
     - cyclic: whether the domain is toroidal
    Returns:
     - particles: ParticleSet
     - system: SystemInfo
    """
    with open(filename, "r") as f:
        header = [f.readline() for _ in range(4)]
    try:
        n_particles = int(header[0])
        space_length = float(header[1])
        grid_size = int(header[2])
        interaction_radius = float(header[3])
    except ValueError as e:
        raise ValueError(f"invalid header in particles file {filename}: {e}") from e

    data = np.loadtxt(filename, skiprows=4, ndmin=2, dtype=np.float64)
    if data.size == 0:
        data = data.reshape(0, 4)
    if data.shape[1] != 4:
        raise ValueError(
            f"particle lines must hold 'id x y radius', got {data.shape[1]} columns"
        )
    if data.shape[0] != n_particles:
        raise ValueError(
            f"particles file {filename} announces {n_particles} particles but lists {data.shape[0]}"
        )

    particles = ParticleSet(data[:, 0].astype(np.int64), data[:, 1:3], data[:, 3])
    system = SystemInfo(space_length, interaction_radius, grid_size, cyclic=cyclic)
    return particles, system


def write_particles_file(filename, particles, system):
    """Write particles and grid parameters in the format read by read_particles_file."""
    with open(filename, "w") as f:
        f.write(f"{len(particles)}\n")
        f.write(f"{system.space_length!r}\n")
        f.write(f"{system.grid_size}\n")
        f.write(f"{system.interaction_radius!r}\n")
        for pid, (x, y), r in zip(particles.ids, particles.positions, particles.radii):
            f.write(f"{int(pid)} {float(x)!r} {float(y)!r} {float(r)!r}\n")


def sample_particles(n_particles, space_length, radius=0.0, seed=None):
    """Sample particles uniformly in the square domain [0, L) x [0, L).

    Args:
     - n_particles: number of particles
     - space_length: side of the domain
     - radius: common radius, or array of shape (n_particles,)
     - seed: optional seed for reproducible sampling
    Returns:
     - particles: ParticleSet with ids 0..n_particles-1
    """
    rng = np.random.default_rng(seed)
    positions = rng.uniform(0.0, space_length, size=(n_particles, 2))
    radii = np.broadcast_to(np.asarray(radius, dtype=np.float64), (n_particles,))
    return ParticleSet(np.arange(n_particles), positions, radii)
