"""
conftest.py
~~~~~~~~~~~

Shared fixtures: seeded generators and small networks.
"""

import numpy as np
import pytest

from neuralnet import FullyConnectedNetwork, Network, NonLinearFunction


@pytest.fixture
def rng():
    """A fixed-seed generator so parameter initialisation is reproducible."""
    return np.random.default_rng(1234)


@pytest.fixture
def small_network(rng):
    """A 2-3-2 sigmoid network."""
    return Network(2, [3], 2, rng=rng)


@pytest.fixture
def mixed_network(rng):
    """A 3-4-2 network: tanh into the hidden layer, sigmoid into the output."""
    network = FullyConnectedNetwork(rng=rng)
    network.add_layer(3, NonLinearFunction.TANH)
    network.add_layer(4, NonLinearFunction.SIGMOID)
    network.add_layer(2)
    return network


def make_dataset(n, rng, n_inputs=2, n_outputs=2):
    """Linearly separable pairs: class 1 when the first input beats the second."""
    data = []
    for _ in range(n):
        x = rng.uniform(0.0, 1.0, size=n_inputs)
        y = np.zeros(n_outputs)
        y[int(x[0] > x[1])] = 1.0
        data.append((x, y))
    return data


@pytest.fixture
def dataset(rng):
    return make_dataset(20, rng)


@pytest.fixture
def dataset_factory(rng):
    """Build a separable dataset of any size from the shared generator."""
    def factory(n, n_inputs=2, n_outputs=2):
        return make_dataset(n, rng, n_inputs=n_inputs, n_outputs=n_outputs)
    return factory
