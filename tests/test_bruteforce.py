import numpy as np

from pycim.particles import ParticleSet, sample_particles
from pycim.bruteforce import find_neighbors_bruteforce, close_pairs_bruteforce


def dense_pairs(particles, interaction_radius):
    positions = particles.positions
    delta = positions[:, None, :] - positions[None, :, :]
    dist = np.sqrt(delta[..., 0] ** 2 + delta[..., 1] ** 2)
    surface = dist - particles.radii[:, None] - particles.radii[None, :]
    i, j = np.nonzero(np.triu(surface <= interaction_radius, k=1))
    return {(int(particles.ids[a]), int(particles.ids[b])) for a, b in zip(i, j)}


def test_two_close_particles():
    particles = ParticleSet([0, 1], [[0.0, 0.0], [0.5, 0.0]])
    neighbor_map = find_neighbors_bruteforce(particles, 1.0)
    assert neighbor_map.get_neighbors(0) == (1,)
    assert neighbor_map.get_neighbors(1) == (0,)


def test_cutoff_is_inclusive():
    particles = ParticleSet([0, 1, 2], [[0.0, 0.0], [3.0, 4.0], [0.0, -5.5]])
    neighbor_map = find_neighbors_bruteforce(particles, 5.0)
    assert neighbor_map.pairs() == {(0, 1)}

    # surface distance 1.5 - 0.25 - 0.25 == 1.0
    particles = ParticleSet([0, 1], [[0.0, 0.0], [1.5, 0.0]], [0.25, 0.25])
    assert find_neighbors_bruteforce(particles, 1.0).pairs() == {(0, 1)}
    assert find_neighbors_bruteforce(particles, 0.99).pairs() == set()


def test_radii_enlarge_the_reach():
    particles = ParticleSet([7, 9], [[0.0, 0.0], [3.0, 0.0]], [1.0, 0.5])
    assert find_neighbors_bruteforce(particles, 1.0).pairs() == set()
    particles = ParticleSet([7, 9], [[0.0, 0.0], [3.0, 0.0]], [1.0, 1.0])
    assert find_neighbors_bruteforce(particles, 1.0).pairs() == {(7, 9)}


def test_empty_and_single_particle():
    assert len(find_neighbors_bruteforce(ParticleSet([], []), 1.0)) == 0
    assert len(find_neighbors_bruteforce(ParticleSet([3], [[1.0, 1.0]]), 1.0)) == 0
    assert close_pairs_bruteforce(ParticleSet([], []), 1.0).shape == (0, 2)


def test_degenerate_cutoff():
    particles = ParticleSet([0, 1, 2], [[1.0, 1.0], [1.0, 1.0], [1.5, 1.0]])
    assert find_neighbors_bruteforce(particles, 0.0).pairs() == {(0, 1)}
    assert find_neighbors_bruteforce(particles, -1.0).pairs() == set()


def test_no_periodic_wrap():
    particles = ParticleSet([0, 1], [[0.1, 5.0], [9.9, 5.0]])
    assert find_neighbors_bruteforce(particles, 0.5).pairs() == set()


def test_matches_dense_computation():
    particles = sample_particles(300, 20.0, radius=0.1, seed=11)
    neighbor_map = find_neighbors_bruteforce(particles, 1.2)
    assert neighbor_map.n_pairs > 0
    assert neighbor_map.pairs() == dense_pairs(particles, 1.2)

    pairs = close_pairs_bruteforce(particles, 1.2)
    assert np.all(pairs[:, 0] < pairs[:, 1])


def test_decimal_surface_distance_at_cutoff():
    interaction_radius = 1.6 - 0.6 - 0.7
    particles = ParticleSet([0, 1], [[0.0, 0.0], [1.6, 0.0]], [0.6, 0.7])
    assert find_neighbors_bruteforce(particles, interaction_radius).pairs() == {(0, 1)}
    # radii are taken in row order, lower row first
    particles = ParticleSet([1, 0], [[1.6, 0.0], [0.0, 0.0]], [0.7, 0.6])
    interaction_radius = 1.6 - 0.7 - 0.6
    assert find_neighbors_bruteforce(particles, interaction_radius).pairs() == {(0, 1)}
