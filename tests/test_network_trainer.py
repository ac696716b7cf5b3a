"""
test_network_trainer.py
~~~~~~~~~~~~~~~~~~~~~~~

Unit tests for backpropagation, gradient accumulation and the SGD epoch loop.
"""

import json
from concurrent.futures import ThreadPoolExecutor
from contextlib import closing

import numpy as np
import pytest

from neuralnet import (
    ConfigurationError,
    EarlyStopping,
    FullyConnectedNetwork,
    Network,
    NetworkTrainer,
    NonLinearFunction,
    RunLogger,
    SGDOptimizer,
    ShapeMismatchError,
)
from neuralnet.activations import run_activation


def numeric_weight_gradient(trainer, x, y, layer, eps=1e-6):
    """Central-difference gradient of the single-sample cost w.r.t. weights[layer]."""
    w = trainer.network.params()[layer][0]
    grad = np.zeros_like(w)
    for idx in np.ndindex(w.shape):
        original = w[idx]
        w[idx] = original + eps
        plus = trainer.cost([(x, y)])
        w[idx] = original - eps
        minus = trainer.cost([(x, y)])
        w[idx] = original
        grad[idx] = (plus - minus) / (2 * eps)
    return grad


def numeric_bias_gradient(trainer, x, y, layer, eps=1e-6):
    b = trainer.network.params()[layer][1]
    grad = np.zeros_like(b)
    for idx in range(b.size):
        original = b[idx]
        b[idx] = original + eps
        plus = trainer.cost([(x, y)])
        b[idx] = original - eps
        minus = trainer.cost([(x, y)])
        b[idx] = original
        grad[idx] = (plus - minus) / (2 * eps)
    return grad


@pytest.mark.unit
class TestBackpropagation:
    """Analytic gradients of the squared-error cost."""

    @pytest.mark.parametrize("function", list(NonLinearFunction))
    def test_gradient_check(self, function):
        """2-3-2 network: analytic gradients agree with finite differences."""
        network = Network(2, [3], 2, activation=function, rng=np.random.default_rng(3))
        trainer = NetworkTrainer(network)
        x = np.array([0.7, -0.4])
        y = np.array([1.0, 0.0])

        nabla_b, nabla_w = trainer.backpropagate(x, y)

        for layer in range(network.layer_count):
            assert np.allclose(nabla_w[layer], numeric_weight_gradient(trainer, x, y, layer), atol=1e-4)
            assert np.allclose(nabla_b[layer], numeric_bias_gradient(trainer, x, y, layer), atol=1e-4)

    def test_gradient_check_mixed_activations(self, mixed_network):
        trainer = NetworkTrainer(mixed_network)
        x = np.array([0.1, 0.5, -0.3])
        y = np.array([0.0, 1.0])

        nabla_b, nabla_w = trainer.backpropagate(x, y)

        for layer in range(mixed_network.layer_count):
            assert np.allclose(nabla_w[layer], numeric_weight_gradient(trainer, x, y, layer), atol=1e-4)

    def test_gradient_shapes(self, rng):
        network = Network(4, [5, 3], 2, rng=rng)
        nabla_b, nabla_w = NetworkTrainer(network).backpropagate(np.ones(4), np.array([0.0, 1.0]))
        for (w, b), gw, gb in zip(network.params(), nabla_w, nabla_b):
            assert gw.shape == w.shape
            assert gb.shape == b.shape

    def test_single_layer_network(self, rng):
        """With one layer only the output step runs, and it fills index 0."""
        network = FullyConnectedNetwork(rng=rng)
        network.add_layer(3, NonLinearFunction.TANH)
        network.add_layer(2)
        trainer = NetworkTrainer(network)
        x = np.array([0.2, -0.1, 0.4])
        y = np.array([1.0, 0.0])

        nabla_b, nabla_w = trainer.backpropagate(x, y)

        (w, b), = network.params()
        z = w @ x + b
        delta = (np.tanh(z) - y) * run_activation(z, NonLinearFunction.TANH, derivative=True)
        assert len(nabla_b) == len(nabla_w) == 1
        assert np.allclose(nabla_b[0], delta)
        assert np.allclose(nabla_w[0], np.outer(delta, x))
        assert np.allclose(nabla_w[0], numeric_weight_gradient(trainer, x, y, 0), atol=1e-4)

    def test_backpropagate_does_not_modify_network(self, small_network):
        before = small_network.weights
        NetworkTrainer(small_network).backpropagate([0.5, 0.5], [1.0, 0.0])
        assert small_network.weights == before


@pytest.mark.unit
class TestGradientAccumulation:
    """Mini-batch sums and the update step."""

    def test_order_independent(self, small_network, dataset):
        trainer = NetworkTrainer(small_network)
        batch = dataset[:8]

        forward = trainer.accumulate_gradients(batch)
        backward = trainer.accumulate_gradients(batch[::-1])

        for (fw, fb), (bw, bb) in zip(forward, backward):
            assert np.allclose(fw, bw)
            assert np.allclose(fb, bb)

    def test_parallel_matches_sequential(self, small_network, dataset_factory):
        trainer = NetworkTrainer(small_network)
        batch = dataset_factory(64)

        sequential = trainer.accumulate_gradients(batch)
        with ThreadPoolExecutor(max_workers=8) as pool:
            parallel = trainer.accumulate_gradients(batch, pool=pool)

        for (sw, sb), (pw, pb) in zip(sequential, parallel):
            assert np.allclose(sw, pw)
            assert np.allclose(sb, pb)

    def test_sum_of_sample_gradients(self, small_network, dataset):
        trainer = NetworkTrainer(small_network)
        batch = dataset[:4]

        total = trainer.accumulate_gradients(batch)

        for layer in range(small_network.layer_count):
            expected_w = sum(trainer.backpropagate(x, y)[1][layer] for x, y in batch)
            expected_b = sum(trainer.backpropagate(x, y)[0][layer] for x, y in batch)
            assert np.allclose(total[layer][0], expected_w)
            assert np.allclose(total[layer][1], expected_b)

    def test_update_uses_batch_average(self, small_network, dataset):
        trainer = NetworkTrainer(small_network)
        batch = dataset[:4]
        eta = 0.5
        before = [[w.copy(), b.copy()] for w, b in small_network.params()]
        nabla = trainer.accumulate_gradients(batch)

        trainer.update_mini_batch(batch, SGDOptimizer(small_network.params(), lr=eta))

        for (w0, b0), (gw, gb), (w1, b1) in zip(before, nabla, small_network.params()):
            assert np.allclose(w1, w0 - (eta / len(batch)) * gw)
            assert np.allclose(b1, b0 - (eta / len(batch)) * gb)

    def test_update_keeps_shapes(self, small_network, dataset):
        shapes = [(w.shape, b.shape) for w, b in small_network.params()]
        list(NetworkTrainer(small_network).stochastic_gradient_descent(dataset, 2, 5, 1.0))
        assert [(w.shape, b.shape) for w, b in small_network.params()] == shapes


@pytest.mark.unit
class TestStochasticGradientDescent:
    """The epoch sequence."""

    def test_yields_one_result_per_epoch(self, small_network, dataset):
        results = list(NetworkTrainer(small_network).stochastic_gradient_descent(dataset, 3, 5, 1.0))
        assert [epoch for epoch, _ in results] == [0, 1, 2]

    def test_no_test_data_gives_none(self, small_network, dataset):
        results = list(NetworkTrainer(small_network).stochastic_gradient_descent(dataset, 4, 10, 1.0))
        assert len(results) == 4
        assert all(accuracy is None for _, accuracy in results)

    def test_zero_epochs(self, small_network, dataset):
        before = small_network.weights
        results = list(NetworkTrainer(small_network).stochastic_gradient_descent(dataset, 0, 5, 1.0))
        assert results == []
        assert small_network.weights == before

    def test_accuracy_is_percentage(self, small_network, dataset, dataset_factory):
        test = dataset_factory(10)
        trainer = NetworkTrainer(small_network)
        for _, accuracy in trainer.stochastic_gradient_descent(dataset, 2, 5, 1.0, test_data=test):
            assert 0.0 <= accuracy <= 100.0
            # ten samples -> multiples of ten percent
            assert accuracy == pytest.approx(round(accuracy / 10) * 10)
        assert accuracy == pytest.approx(trainer.evaluate(test) / len(test) * 100)

    def test_lazy(self, small_network, dataset):
        before = small_network.weights
        results = NetworkTrainer(small_network).stochastic_gradient_descent(dataset, 3, 5, 1.0)
        assert small_network.weights == before
        next(results)
        assert small_network.weights != before

    def test_training_reduces_cost(self, rng, dataset_factory):
        network = Network(2, [4], 2, rng=rng)
        data = dataset_factory(100)
        trainer = NetworkTrainer(network, rng=np.random.default_rng(0))

        before = trainer.cost(data)
        list(trainer.stochastic_gradient_descent(data, 30, 10, 3.0))

        assert trainer.cost(data) < before

    def test_seeded_runs_agree(self, dataset):
        def run():
            network = Network(2, [3], 2, rng=np.random.default_rng(11))
            trainer = NetworkTrainer(network, rng=np.random.default_rng(5), max_workers=1)
            list(trainer.stochastic_gradient_descent(dataset, 3, 4, 2.0))
            return network

        a, b = run(), run()
        for wa, wb in zip(a.weights, b.weights):
            assert np.allclose(wa, wb)

    def test_each_call_restarts_schedule(self, small_network, dataset):
        trainer = NetworkTrainer(small_network)
        assert len(list(trainer.stochastic_gradient_descent(dataset, 2, 5, 1.0))) == 2
        assert len(list(trainer.stochastic_gradient_descent(dataset, 2, 5, 1.0))) == 2


@pytest.mark.unit
class TestConfigurationErrors:
    """Everything is rejected before the first epoch."""

    def test_non_divisible_batch_size(self, small_network, dataset):
        before = small_network.weights
        with pytest.raises(ConfigurationError):
            NetworkTrainer(small_network).stochastic_gradient_descent(dataset, 1, 3, 1.0)
        assert small_network.weights == before

    def test_empty_training_set(self, small_network):
        with pytest.raises(ConfigurationError):
            NetworkTrainer(small_network).stochastic_gradient_descent([], 1, 1, 1.0)

    def test_empty_test_set(self, small_network, dataset):
        with pytest.raises(ConfigurationError):
            NetworkTrainer(small_network).stochastic_gradient_descent(dataset, 1, 5, 1.0, test_data=[])

    @pytest.mark.parametrize("size", [0, -2, 2.5])
    def test_invalid_batch_size(self, small_network, dataset, size):
        with pytest.raises(ConfigurationError):
            NetworkTrainer(small_network).stochastic_gradient_descent(dataset, 1, size, 1.0)

    def test_negative_epochs(self, small_network, dataset):
        with pytest.raises(ConfigurationError):
            NetworkTrainer(small_network).stochastic_gradient_descent(dataset, -1, 5, 1.0)

    def test_input_dimension_mismatch(self, small_network, dataset):
        data = dataset[:-1] + [(np.ones(3), np.array([1.0, 0.0]))]
        with pytest.raises(ShapeMismatchError):
            NetworkTrainer(small_network).stochastic_gradient_descent(data, 1, 5, 1.0)

    def test_target_dimension_mismatch(self, small_network, dataset):
        data = dataset[:-1] + [(np.ones(2), np.array([1.0, 0.0, 0.0]))]
        with pytest.raises(ShapeMismatchError):
            NetworkTrainer(small_network).stochastic_gradient_descent(data, 1, 5, 1.0)

    def test_test_data_mismatch(self, small_network, dataset):
        with pytest.raises(ShapeMismatchError):
            NetworkTrainer(small_network).stochastic_gradient_descent(
                dataset, 1, 5, 1.0, test_data=[(np.ones(5), np.ones(2))]
            )

    def test_untrainable_network(self, dataset):
        with pytest.raises(ConfigurationError):
            NetworkTrainer(FullyConnectedNetwork(2)).stochastic_gradient_descent(dataset, 1, 5, 1.0)

    def test_one_trainer_per_network(self, small_network, dataset):
        first = NetworkTrainer(small_network).stochastic_gradient_descent(dataset, 3, 5, 1.0)
        next(first)

        second = NetworkTrainer(small_network).stochastic_gradient_descent(dataset, 1, 5, 1.0)
        with pytest.raises(ConfigurationError):
            next(second)

        first.close()
        assert len(list(NetworkTrainer(small_network).stochastic_gradient_descent(dataset, 1, 5, 1.0))) == 1

    def test_closing_an_abandoned_run_releases_network(self, small_network, dataset):
        """Leaving a closing() block early frees the network for the next trainer."""
        with closing(NetworkTrainer(small_network).stochastic_gradient_descent(dataset, 5, 5, 1.0)) as epochs:
            for epoch, _ in epochs:
                if epoch == 1:
                    break

        assert len(list(NetworkTrainer(small_network).stochastic_gradient_descent(dataset, 1, 5, 1.0))) == 1


@pytest.mark.unit
class TestEarlyStopping:
    """Stopping at an epoch boundary."""

    def test_stops_when_accuracy_stalls(self, small_network, dataset, dataset_factory):
        stopper = EarlyStopping(patience=1)
        results = list(NetworkTrainer(small_network).stochastic_gradient_descent(
            dataset, 10, 5, 0.0, test_data=dataset_factory(10), early_stopping=stopper
        ))
        # zero learning rate: epoch 0 is best, epoch 1 exhausts patience
        assert len(results) == 2
        assert stopper.stopped
        assert stopper.best_epoch == 0

    def test_ignored_without_test_data(self, small_network, dataset):
        stopper = EarlyStopping(patience=1)
        results = list(NetworkTrainer(small_network).stochastic_gradient_descent(
            dataset, 4, 5, 0.0, early_stopping=stopper
        ))
        assert len(results) == 4
        assert not stopper.stopped

    def test_restores_best_parameters(self, small_network):
        stopper = EarlyStopping(patience=1, monitor="accuracy", mode="max")
        best = small_network.weights
        assert not stopper.update(0, {"accuracy": 90.0}, small_network)
        small_network.params()[0][0][...] = 0.0
        assert stopper.update(1, {"accuracy": 80.0}, small_network)
        assert small_network.weights == best


@pytest.mark.unit
class TestRunLogger:
    """Per-epoch history written to disk."""

    def test_history_files(self, small_network, dataset, dataset_factory, tmp_path):
        run_logger = RunLogger(root=tmp_path, tag="unit")
        list(NetworkTrainer(small_network).stochastic_gradient_descent(
            dataset, 3, 5, 1.0, test_data=dataset_factory(10), run_logger=run_logger
        ))

        assert run_logger.csv_path.exists()
        lines = run_logger.csv_path.read_text().strip().splitlines()
        assert lines[0].split(",") == ["epoch", "time_s", "cost", "accuracy"]
        assert len(lines) == 4

        history = json.loads(run_logger.json_path.read_text())
        assert [row["epoch"] for row in history] == [0, 1, 2]
        assert all(row["accuracy"] is not None for row in history)
        assert list((run_logger.dir / "plots").glob("*.png"))

    def test_missing_accuracy_is_null(self, small_network, dataset, tmp_path):
        run_logger = RunLogger(root=tmp_path, tag="unit")
        list(NetworkTrainer(small_network).stochastic_gradient_descent(
            dataset, 2, 5, 1.0, run_logger=run_logger
        ))
        history = json.loads(run_logger.json_path.read_text())
        assert [row["accuracy"] for row in history] == [None, None]

    def test_checkpoint_round_trip(self, small_network, tmp_path):
        run_logger = RunLogger(root=tmp_path, tag="ckpt")
        path = run_logger.save_checkpoint(small_network, best=True)

        weights, biases = RunLogger.load_checkpoint(path)
        other = Network(2, [3], 2, rng=np.random.default_rng(0))
        other.load_parameters(weights, biases)

        assert np.allclose(other.activate([0.3, 0.6]), small_network.activate([0.3, 0.6]))
