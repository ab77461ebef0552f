import numpy as np

__all__ = ["NeighborMap", "get_neighbors", "read_neighbor_map"]


class NeighborMap:
    """Symmetric adjacency between particle ids.

    Each id maps to the set of ids within the interaction cutoff. Pairs are
    always stored in both directions and a particle is never its own neighbor.
    """

    def __init__(self):
        self._neighbors = {}

    def add_pair(self, a, b):
        a = int(a)
        b = int(b)
        if a == b:
            raise ValueError(f"particle {a} cannot be its own neighbor")
        self._neighbors.setdefault(a, set()).add(b)
        self._neighbors.setdefault(b, set()).add(a)

    def add_pairs(self, first, second):
        """Insert the pairs (first[k], second[k]) for all k."""
        for a, b in zip(np.asarray(first).tolist(), np.asarray(second).tolist()):
            self.add_pair(a, b)

    def get_neighbors(self, pid):
        """Sorted tuple of the neighbors of ``pid``, empty if it has none."""
        return tuple(sorted(self._neighbors.get(int(pid), ())))

    def pairs(self):
        """Set of unordered pairs as (smaller id, larger id) tuples."""
        return {
            (a, b) for a, neighbors in self._neighbors.items() for b in neighbors if a < b
        }

    @property
    def n_pairs(self):
        return sum(len(neighbors) for neighbors in self._neighbors.values()) // 2

    def as_dict(self):
        return {pid: sorted(neighbors) for pid, neighbors in self._neighbors.items()}

    def __len__(self):
        return len(self._neighbors)

    def __iter__(self):
        return iter(self._neighbors)

    def __contains__(self, pid):
        return int(pid) in self._neighbors

    def __eq__(self, other):
        if not isinstance(other, NeighborMap):
            return NotImplemented
        return self._neighbors == other._neighbors

    def __repr__(self):
        return f"NeighborMap(particles={len(self)}, pairs={self.n_pairs})"

    def to_text(self):
        """One line ``<id> <neighbor> <neighbor> ...`` per particle with neighbors."""
        lines = [
            " ".join(str(i) for i in (pid, *sorted(neighbors)))
            for pid, neighbors in sorted(self._neighbors.items())
        ]
        return "".join(line + "\n" for line in lines)

    __str__ = to_text

    def write(self, filename):
        with open(filename, "w") as f:
            f.write(self.to_text())

    @classmethod
    def from_text(cls, text):
        """Parse the format written by to_text."""
        neighbor_map = cls()
        for line in text.splitlines():
            fields = line.split()
            if not fields:
                continue
            pid = int(fields[0])
            for neighbor in fields[1:]:
                neighbor_map.add_pair(pid, int(neighbor))
        return neighbor_map


def get_neighbors(neighbor_map, pid):
    """Neighbors of ``pid`` in ``neighbor_map``; empty for unknown or isolated ids."""
    return neighbor_map.get_neighbors(pid)


def read_neighbor_map(filename):
    with open(filename, "r") as f:
        return NeighborMap.from_text(f.read())
