import numpy as np
import pytest

from pycim.vicsek import initialize_vicsek_simulation, order_parameter, align_velocities
from pycim.neighbor_map import NeighborMap


def base_parameters(**kwargs):
    parameters = {
        "space_length": 5.0,
        "interaction_radius": 1.0,
        "n_particles": 60,
        "speed": 0.03,
        "noise": 0.5,
        "seed": 17,
    }
    parameters.update(kwargs)
    return parameters


def test_initialization():
    system = initialize_vicsek_simulation(base_parameters(), verbose=False)
    for key in ("ids", "positions", "velocities", "system", "speed", "dt", "step"):
        assert key in system
    assert system["positions"].shape == (60, 2)
    assert system["velocities"].shape == (60, 2)
    assert np.allclose(np.linalg.norm(system["velocities"], axis=1), 0.03)
    assert system["system"].cyclic is True
    assert system["system"].grid_size == 5


def test_initialization_from_particles_file(test_data_dir):
    parameters = base_parameters(
        space_length=10.0, particles_file=str(test_data_dir / "particles_small.txt")
    )
    system = initialize_vicsek_simulation(parameters, verbose=False)
    assert system["ids"].tolist() == [0, 1, 2, 3, 4]


def test_particles_file_sets_box_cutoff_and_grid(tmp_path):
    particles_file = tmp_path / "flock.txt"
    particles_file.write_text("3\n12.0\n4\n2.5\n0 1.0 1.0 0.0\n1 2.0 1.0 0.0\n2 11.5 11.5 0.0\n")
    parameters = {"particles_file": str(particles_file), "seed": 3}
    system = initialize_vicsek_simulation(parameters, verbose=False)
    assert system["system"].space_length == 12.0
    assert system["system"].grid_size == 4
    assert system["system"].interaction_radius == 2.5
    assert system["system"].cyclic is True

    positions, velocities, neighbor_map = system["step"](
        system["positions"], system["velocities"]
    )
    assert np.all(positions < 12.0)
    # 2 sees 0 across the corner of the 12 x 12 box
    assert neighbor_map.pairs() >= {(0, 1), (0, 2)}


def test_input_overrides_particles_file(tmp_path):
    particles_file = tmp_path / "flock.txt"
    particles_file.write_text("2\n12.0\n4\n2.5\n0 1.0 1.0 0.0\n1 2.0 1.0 0.0\n")
    parameters = {
        "particles_file": str(particles_file),
        "space_length": 20.0,
        "interaction_radius": 0.5,
        "grid_size": 10,
    }
    system = initialize_vicsek_simulation(parameters, verbose=False)
    assert system["system"].space_length == 20.0
    assert system["system"].grid_size == 10
    assert system["system"].interaction_radius == 0.5


def test_invalid_parameters():
    with pytest.raises(AssertionError, match="speed"):
        initialize_vicsek_simulation(base_parameters(speed=0.0), verbose=False)
    with pytest.raises(AssertionError, match="noise"):
        initialize_vicsek_simulation(base_parameters(noise=-1.0), verbose=False)


def test_step_keeps_speed_and_box():
    system = initialize_vicsek_simulation(base_parameters(speed=0.4), verbose=False)
    positions, velocities = system["positions"], system["velocities"]
    for _ in range(20):
        positions, velocities, neighbor_map = system["step"](positions, velocities)
        assert np.all(positions >= 0.0) and np.all(positions < 5.0)
        assert np.allclose(np.linalg.norm(velocities, axis=1), 0.4)
    assert isinstance(neighbor_map, NeighborMap)


def test_positions_move_with_previous_velocity():
    system = initialize_vicsek_simulation(base_parameters(), verbose=False)
    positions, velocities = system["positions"], system["velocities"]
    new_positions, _, _ = system["step"](positions, velocities)
    expected = (positions + velocities) % 5.0
    assert np.allclose(new_positions, expected)


def test_aligned_flock_stays_aligned_without_noise():
    system = initialize_vicsek_simulation(base_parameters(noise=0.0), verbose=False)
    positions = system["positions"]
    velocities = np.tile([0.0, 0.03], (60, 1))
    assert order_parameter(velocities, 0.03) == pytest.approx(1.0)
    for _ in range(5):
        positions, velocities, _ = system["step"](positions, velocities)
    assert np.allclose(velocities, [0.0, 0.03])
    assert order_parameter(velocities, 0.03) == pytest.approx(1.0)


def test_align_velocities_averages_neighbors():
    ids = np.array([4, 8, 15])
    velocities = np.array([[1.0, 0.0], [0.0, 1.0], [-1.0, 0.0]])
    neighbor_map = NeighborMap()
    neighbor_map.add_pair(4, 8)
    rng = np.random.default_rng(0)
    new = align_velocities(ids, velocities, neighbor_map, 2.0, 0.0, rng)
    assert np.allclose(new[0], [np.sqrt(2.0), np.sqrt(2.0)])
    assert np.allclose(new[1], [np.sqrt(2.0), np.sqrt(2.0)])
    # isolated particle keeps its heading
    assert np.allclose(new[2], [-2.0, 0.0])


def test_order_parameter():
    velocities = np.array([[1.0, 0.0], [-1.0, 0.0]])
    assert order_parameter(velocities, 1.0) == pytest.approx(0.0)
    assert order_parameter(np.zeros((0, 2)), 1.0) == 0.0


def test_seed_reproducibility():
    runs = []
    for _ in range(2):
        system = initialize_vicsek_simulation(base_parameters(), verbose=False)
        positions, velocities = system["positions"], system["velocities"]
        for _ in range(3):
            positions, velocities, _ = system["step"](positions, velocities)
        runs.append((positions, velocities))
    assert np.array_equal(runs[0][0], runs[1][0])
    assert np.array_equal(runs[0][1], runs[1][1])
