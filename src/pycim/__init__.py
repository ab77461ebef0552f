import argparse
import yaml
import sys
import time

from .particles import (
    ParticleSet,
    SystemInfo,
    ConfigurationError,
    read_particles_file,
    sample_particles,
)
from .grid import GridIndexer, ParticleOutOfBoundsError
from .neighbor_map import NeighborMap, get_neighbors, read_neighbor_map
from .cim import find_neighbors
from .bruteforce import find_neighbors_bruteforce


__all__ = [
    "ParticleSet",
    "SystemInfo",
    "ConfigurationError",
    "ParticleOutOfBoundsError",
    "GridIndexer",
    "NeighborMap",
    "get_neighbors",
    "read_neighbor_map",
    "find_neighbors",
    "find_neighbors_bruteforce",
    "read_particles_file",
    "sample_particles",
]


def run_neighbors(simulation_parameters, verbose=True):
    """Compute and write the neighbor map described by ``simulation_parameters``."""
    cyclic = simulation_parameters.get("cyclic", False)
    particles_file = simulation_parameters.get("particles_file", None)
    if particles_file is not None:
        particles, system = read_particles_file(particles_file, cyclic=cyclic)
        if verbose:
            print(f"# Loaded {len(particles)} particles from {particles_file}")
    else:
        system = SystemInfo.from_dict(simulation_parameters)
        n_particles = simulation_parameters.get("n_particles", 1000)
        particles = sample_particles(
            n_particles,
            system.space_length,
            radius=simulation_parameters.get("radius", 0.0),
            seed=simulation_parameters.get("seed", None),
        )
        if verbose:
            print(f"# Sampled {n_particles} particles")
    if verbose:
        print(f"# {system}")

    method = str(simulation_parameters.get("method", "cim")).lower()
    assert method in ("cim", "bruteforce", "both"), f"Unknown method '{method}'"

    neighbor_map = None
    if method in ("cim", "both"):
        time0 = time.time()
        neighbor_map = find_neighbors(particles, system)
        if verbose:
            print(
                f"# cell index method: {neighbor_map.n_pairs} pairs in {time.time() - time0:.4f} s"
            )
    if method in ("bruteforce", "both"):
        if system.cyclic:
            print("# WARNING: brute force search ignores periodic boundaries")
        time0 = time.time()
        reference_map = find_neighbors_bruteforce(particles, system.interaction_radius)
        if verbose:
            print(
                f"# brute force: {reference_map.n_pairs} pairs in {time.time() - time0:.4f} s"
            )
        if neighbor_map is None:
            neighbor_map = reference_map
        elif neighbor_map != reference_map:
            missing = len(reference_map.pairs() - neighbor_map.pairs())
            extra = len(neighbor_map.pairs() - reference_map.pairs())
            print(
                f"# WARNING: methods disagree ({missing} pairs missing, {extra} extra)"
            )
        elif verbose:
            print("# Both methods agree.")

    output_file = str(simulation_parameters.get("output_file", "neighbors.txt"))
    if output_file.lower() == "none":
        sys.stdout.write(neighbor_map.to_text())
    else:
        neighbor_map.write(output_file)
        if verbose:
            print(f"# Neighbor map written to {output_file}")
    return neighbor_map


def run_vicsek(simulation_parameters, verbose=True):
    from .vicsek import initialize_vicsek_simulation, order_parameter
    from .utils import write_frame

    system = initialize_vicsek_simulation(simulation_parameters, verbose=verbose)
    step = system["step"]
    ids = system["ids"]
    positions = system["positions"]
    velocities = system["velocities"]
    speed = system["speed"]
    dt = system["dt"]

    n_steps = simulation_parameters.get("n_steps", 1000)
    print_step = simulation_parameters.get("print_step", 100)
    print(f"# Running flocking simulation for {n_steps} steps of {dt}")

    traj_file = str(simulation_parameters.get("traj_file", "trajectory.txt"))
    write_traj = traj_file.lower() != "none"
    if write_traj:
        ftraj = open(traj_file, "w")
        write_frame(ftraj, 0.0, ids, positions, velocities)

    time0 = time.time()
    print(f"#{'Step':>10} {'Time':>12} {'Order':>12} {'Pairs':>10} {'steps/s':>12}")
    for istep in range(n_steps):
        positions, velocities, neighbor_map = step(positions, velocities)
        if (istep + 1) % print_step == 0:
            time_elapsed = time.time() - time0
            time0 = time.time()
            steps_per_second = print_step / max(time_elapsed, 1e-12)
            print(
                f" {istep+1:10} {(istep+1)*dt:12.2f} {order_parameter(velocities, speed):12.4f} {neighbor_map.n_pairs:10} {steps_per_second:12.1f}"
            )
        if write_traj:
            write_frame(ftraj, (istep + 1) * dt, ids, positions, velocities)

    if write_traj:
        ftraj.close()
    return positions, velocities


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(
        description="pycim: neighbor search with the cell index method"
    )
    parser.add_argument(
        "input_file", type=str, help="Path to the input configuration file"
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Only print errors and results"
    )
    args = parser.parse_args(argv)

    with open(args.input_file, "r") as f:
        simulation_parameters = yaml.safe_load(f)

    mode = str(simulation_parameters.get("mode", "neighbors")).lower()
    if mode == "neighbors":
        run_neighbors(simulation_parameters, verbose=not args.quiet)
    elif mode == "vicsek":
        run_vicsek(simulation_parameters, verbose=not args.quiet)
    else:
        raise ValueError(f"Unknown mode '{mode}', expected 'neighbors' or 'vicsek'")


if __name__ == "__main__":
    main()
