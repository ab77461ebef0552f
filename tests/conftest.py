"""
Shared fixtures for pycim tests.

particles_small.txt sits beside the tests: 5 particles in a 10 x 10 box,
a 3 x 3 grid and a unit cutoff. Its bounded neighbor pairs are (0,1) and (2,3).
"""
import pytest
from pathlib import Path


@pytest.fixture(scope="session")
def test_data_dir():
    """Directory holding the particle input files used by the tests."""
    return Path(__file__).parent
