import numpy as np
from pathlib import Path

from .particles import ParticleSet, SystemInfo, read_particles_file, sample_particles
from .cim import find_neighbors

__all__ = ["initialize_vicsek_simulation", "order_parameter", "align_velocities"]


def order_parameter(velocities, speed):
    """Polarization |sum v| / (N * speed), 1 for a fully aligned flock."""
    if velocities.shape[0] == 0:
        return 0.0
    return float(np.linalg.norm(velocities.sum(axis=0)) / (velocities.shape[0] * speed))


def align_velocities(ids, velocities, neighbor_map, speed, noise, rng):
    """New velocities: mean heading of each particle and its neighbors, plus noise.

    Args:
     - ids: array of shape (N,) with particle ids
     - velocities: array of shape (N,2)
     - neighbor_map: NeighborMap for the current positions
     - speed: constant particle speed
     - noise: amplitude eta, headings are perturbed uniformly in [-eta/2, eta/2]
     - rng: numpy random Generator
    Returns:
     - velocities: array of shape (N,2) with norm ``speed``
    """
    index_of = {int(pid): i for i, pid in enumerate(ids)}
    summed = velocities.copy()
    for i, pid in enumerate(ids):
        neighbors = [index_of[j] for j in neighbor_map.get_neighbors(pid)]
        if neighbors:
            summed[i] += velocities[neighbors].sum(axis=0)
    angles = np.arctan2(summed[:, 1], summed[:, 0])
    angles += rng.uniform(-0.5 * noise, 0.5 * noise, size=angles.shape[0])
    return speed * np.stack((np.cos(angles), np.sin(angles)), axis=1)


def initialize_vicsek_simulation(simulation_parameters, verbose=True):

    seed = simulation_parameters.get("seed", None)
    rng = np.random.default_rng(seed)

    # load initial positions
    particles_file = simulation_parameters.get("particles_file", None)
    if particles_file is not None:
        assert Path(particles_file).is_file(), f"File {particles_file} does not exist."
        particles, file_system = read_particles_file(particles_file, cyclic=True)
        # box, cutoff and grid of the file unless set in the input
        space_length = simulation_parameters.get(
            "space_length", file_system.space_length
        )
        interaction_radius = simulation_parameters.get(
            "interaction_radius", file_system.interaction_radius
        )
        grid_size = simulation_parameters.get("grid_size", file_system.grid_size)
        assert space_length > 0.0, "space_length must be positive"
        if verbose:
            print(f"# Loaded {len(particles)} particles from {particles_file}")
    else:
        space_length = simulation_parameters["space_length"]
        interaction_radius = simulation_parameters.get("interaction_radius", 1.0)
        grid_size = simulation_parameters.get("grid_size", None)
        assert space_length > 0.0, "space_length must be positive"
        n_particles = simulation_parameters.get("n_particles", 300)
        assert n_particles >= 1, "n_particles must be at least 1"
        particles = sample_particles(n_particles, space_length, seed=seed)
        if verbose:
            print(f"# Sampled {n_particles} particles in a {space_length} x {space_length} box")

    system = SystemInfo(
        space_length,
        interaction_radius,
        grid_size=grid_size,
        cyclic=True,
    ).validate()
    if verbose:
        print(
            f"# Cell grid: {system.grid_size} x {system.grid_size} cells of side {system.cell_side:.4f}"
        )

    speed = simulation_parameters.get("speed", 0.03)
    noise = simulation_parameters.get("noise", 0.1)
    dt = simulation_parameters.get("dt", 1.0)
    assert speed > 0.0, "speed must be positive"
    assert noise >= 0.0, "noise must be non-negative"

    # random initial headings
    angles = rng.uniform(-np.pi, np.pi, size=len(particles))
    velocities = speed * np.stack((np.cos(angles), np.sin(angles)), axis=1)
    positions = np.array(particles.positions) % space_length
    ids = np.array(particles.ids)
    radii = np.array(particles.radii)

    def step(positions, velocities):
        # neighbors of the current positions set the next headings,
        # positions move with the current velocities
        neighbor_map = find_neighbors(ParticleSet(ids, positions, radii), system)
        new_velocities = align_velocities(ids, velocities, neighbor_map, speed, noise, rng)
        new_positions = (positions + velocities * dt) % space_length
        # x % L rounds up to L for tiny negative x
        new_positions[new_positions >= space_length] = 0.0
        return new_positions, new_velocities, neighbor_map

    return {
        "ids": ids,
        "positions": positions,
        "velocities": velocities,
        "system": system,
        "speed": speed,
        "noise": noise,
        "dt": dt,
        "step": step,
    }
