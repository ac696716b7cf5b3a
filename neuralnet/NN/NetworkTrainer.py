"""
NetworkTrainer.py
~~~~~~~~~~~~~~~~~

Mini-batch stochastic gradient descent for :class:`FullyConnectedNetwork`.

Each mini-batch is backpropagated sample by sample on a thread pool; the
per-sample gradients are summed into shared accumulators under one lock and
the network is updated with the batch-averaged gradient once every worker
has finished.
"""

import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor

from ..activations import run_activation
from ..errors import ConfigurationError, ShapeMismatchError
from ..helpers.Backend import backend
from ..optimizer import SGDOptimizer

logger = logging.getLogger(__name__)


class NetworkTrainer:
    """Trains one network; the network is borrowed exclusively while an epoch sequence runs."""

    def __init__(self, network, rng=None, max_workers=None, optimizer_cls=SGDOptimizer):
        """
        Args:
            network: the :class:`FullyConnectedNetwork` (or ``Network``) to train
            rng: ``numpy.random.Generator`` used for shuffling; defaults to the
                process-scoped backend generator
            max_workers: thread pool size; defaults to min(batch size, CPU count)
            optimizer_cls: parameter update rule, called as ``optimizer_cls(params, lr=...)``
        """
        self.network = network
        self.rng = rng
        self.max_workers = max_workers
        self.optimizer_cls = optimizer_cls
        # guards the gradient accumulators; lives as long as the trainer
        self._sync = threading.Lock()

    @property
    def generator(self):
        return backend.random if self.rng is None else self.rng

    # ================== public API ==================
    def stochastic_gradient_descent(
        self,
        training_data,
        epochs,
        mini_batch_size,
        learning_rate,
        test_data=None,
        early_stopping=None,
        run_logger=None,
    ):
        """
        Train with mini-batch SGD.

        Every argument is validated before this returns, so configuration
        errors surface here rather than part way through an epoch.

        Args:
            training_data: sequence of (input, target) pairs
            epochs: number of passes over the training data
            mini_batch_size: samples per update; must divide len(training_data)
            learning_rate: step size (eta)
            test_data: optional (input, target) pairs evaluated after each epoch
            early_stopping: optional :class:`EarlyStopping`, checked between epochs
            run_logger: optional :class:`RunLogger` receiving per-epoch history

        Returns:
            lazy iterator of ``(epoch_index, accuracy_percent_or_None)``

        The network is held exclusively from the first ``next()`` until the
        iterator is exhausted or closed. A caller that stops early should call
        ``close()`` on it, or wrap it in :func:`contextlib.closing`, otherwise
        the network stays held until the iterator is garbage collected::

            with closing(trainer.stochastic_gradient_descent(data, 30, 10, 3.0)) as epochs:
                for epoch, accuracy in epochs:
                    if accuracy and accuracy > 95:
                        break
        """
        if self.network.layer_count == 0:
            raise ConfigurationError("Network needs at least two layers to be trained")
        if int(epochs) != epochs or epochs < 0:
            raise ConfigurationError(f"epochs must be a non-negative integer, got {epochs!r}")
        if int(mini_batch_size) != mini_batch_size or mini_batch_size < 1:
            raise ConfigurationError(f"mini_batch_size must be a positive integer, got {mini_batch_size!r}")

        training = self._prepare(training_data, "training")
        if len(training) % mini_batch_size != 0:
            raise ConfigurationError(
                f"Training set of {len(training)} samples is not divisible "
                f"into mini-batches of {mini_batch_size}"
            )
        test = None if test_data is None else self._prepare(test_data, "test")

        return self._run(training, int(epochs), int(mini_batch_size), learning_rate,
                         test, early_stopping, run_logger)

    def update_mini_batch(self, batch, optimizer, pool=None):
        nabla = self.accumulate_gradients(batch, pool=pool)
        optimizer.step(nabla, len(batch))

    def accumulate_gradients(self, batch, pool=None):
        """
        Sum the backpropagated gradients of every sample in ``batch``.

        Returns:
            list of ``[nabla_w, nabla_b]`` per layer (same order as ``network.params()``)
        """
        nabla_w = [backend.zeros_like(w) for w, _ in self.network.params()]
        nabla_b = [backend.zeros_like(b) for _, b in self.network.params()]

        def work(pair):
            delta_b, delta_w = self.backpropagate(*pair)
            # biases and weights land together or not at all
            with self._sync:
                for i in range(len(nabla_b)):
                    nabla_b[i] += delta_b[i]
                    nabla_w[i] += delta_w[i]

        if pool is None:
            for pair in batch:
                work(pair)
        else:
            futures = [pool.submit(work, pair) for pair in batch]
            # barrier: the update must not start before every sample is in
            for future in futures:
                future.result()

        return [[w, b] for w, b in zip(nabla_w, nabla_b)]

    def backpropagate(self, x, y):
        """
        Gradient of the squared-error cost for a single sample.

        Returns:
            ``(nabla_b, nabla_w)`` -- lists indexed like the network's layers
        """
        params = self.network.params()
        functions = self.network.activation_functions
        layer_count = len(params)

        # feed forward, keeping every z and activation
        activation = backend.as_vector(x)
        activations = [activation]
        zs = []
        for (w, b), function in zip(params, functions):
            z = backend.matmul(w, activation) + b
            zs.append(z)
            activation = run_activation(z, function)
            activations.append(activation)

        nabla_b = [None] * layer_count
        nabla_w = [None] * layer_count

        # output layer
        delta = self.cost_derivative(activations[-1], backend.as_vector(y)) * \
            run_activation(zs[-1], functions[-1], derivative=True)
        nabla_b[-1] = delta
        nabla_w[-1] = backend.outer(delta, activations[-2])

        # hidden layers, walking backwards; never runs for a single layer
        for i in range(layer_count - 2, -1, -1):
            weights_above = params[i + 1][0]
            delta = backend.matmul(backend.transpose(weights_above), delta) * \
                run_activation(zs[i], functions[i], derivative=True)
            nabla_b[i] = delta
            nabla_w[i] = backend.outer(delta, activations[i])

        return nabla_b, nabla_w

    def cost_derivative(self, output_activations, y):
        return output_activations - y

    def evaluate(self, test_data):
        """Number of samples whose output arg-max matches the target arg-max."""
        correct = 0
        for x, y in test_data:
            if backend.argmax(self.network.activate(x)) == backend.argmax(y):
                correct += 1
        return correct

    def cost(self, data):
        """Mean of 0.5 * ||a_L - y||^2 over ``data``."""
        total = 0.0
        for x, y in data:
            diff = self.network.activate(x) - backend.as_vector(y)
            total += 0.5 * float(backend.dot(diff, diff))
        return total / len(data)

    # ================== helpers ==================
    def _run(self, training, epochs, mini_batch_size, learning_rate, test, stopper, run_logger):
        history = {"cost": [], "accuracy": []}
        if stopper is not None:
            stopper.reset()
        workers = self.max_workers or min(mini_batch_size, os.cpu_count() or 1)
        n = len(training)

        with self.network.exclusive_access(), ThreadPoolExecutor(max_workers=workers) as pool:
            optimizer = self.optimizer_cls(self.network.params(), lr=learning_rate)
            logger.info(
                "Starting training for %d epochs (%d samples, batch %d, eta %s, %d workers)",
                epochs, n, mini_batch_size, learning_rate, workers,
            )
            for epoch in range(epochs):
                t0 = time.time()

                # shuffle
                idx = self.generator.permutation(n)
                training = [training[i] for i in idx]

                for start in range(0, n, mini_batch_size):
                    self.update_mini_batch(training[start:start + mini_batch_size], optimizer, pool)
                    logger.debug("Epoch %d: batch at %d applied", epoch, start)

                accuracy = None
                if test is not None:
                    accuracy = self.evaluate(test) / len(test) * 100

                elapsed = time.time() - t0
                if accuracy is None:
                    logger.info("Epoch %d/%d complete (%.2fs)", epoch + 1, epochs, elapsed)
                else:
                    logger.info("Epoch %d/%d - accuracy: %.2f%% (%.2fs)", epoch + 1, epochs, accuracy, elapsed)

                if run_logger is not None:
                    cost = self.cost(training)
                    history["cost"].append(cost)
                    history["accuracy"].append(accuracy)
                    run_logger.log_epoch(epoch, time_s=elapsed, cost=cost, accuracy=accuracy)

                should_stop = stopper is not None and stopper.update(
                    epoch, {"accuracy": accuracy}, self.network
                )

                yield epoch, accuracy

                if should_stop:
                    logger.info(
                        "Early stopping at epoch %d. Best %s=%.4f at epoch %d.",
                        epoch, stopper.monitor, stopper.best, stopper.best_epoch,
                    )
                    break

        if run_logger is not None:
            run_logger.save_json()
            run_logger.plot_all(history)

    def _prepare(self, data, name):
        # list of (input vector, target vector), checked against the network
        if data is None or len(data) == 0:
            raise ConfigurationError(f"The {name} set is empty")
        prepared = []
        for i, pair in enumerate(data):
            if len(pair) != 2:
                raise ConfigurationError(f"{name} sample {i} is not an (input, target) pair")
            x, y = backend.as_vector(pair[0]), backend.as_vector(pair[1])
            if x.size != self.network.input_size:
                raise ShapeMismatchError(
                    f"{name} sample {i} has {x.size} inputs, network expects {self.network.input_size}"
                )
            if y.size != self.network.output_size:
                raise ShapeMismatchError(
                    f"{name} sample {i} has {y.size} targets, network outputs {self.network.output_size}"
                )
            prepared.append((x, y))
        return prepared
