from ..helpers.Backend import backend


class EarlyStopping:
    def __init__(
        self,
        patience=5,
        min_delta=0.0,
        monitor="accuracy",
        mode="max",
        restore_best_weights=True,
    ):
        self.monitor = monitor
        self.mode = mode
        self.patience = patience
        self.min_delta = float(min_delta)
        self.restore_best_weights = restore_best_weights
        self.reset()

    def reset(self):
        self.best = None
        self.best_epoch = -1
        self.wait = 0
        self.stopped = False
        self._best_snapshot = None

    def _is_better(self, current, best):
        if self.mode == "min":
            return current < (best - self.min_delta)
        else:  # 'max'
            return current > (best + self.min_delta)

    def update(self, epoch, metrics, network):
        value = metrics.get(self.monitor)
        if value is None:
            # nothing to monitor without held-out data
            return False
        if self.best is None or self._is_better(value, self.best):
            self.best = value
            self.best_epoch = epoch
            self.wait = 0
            # snapshot best parameters
            self._best_snapshot = [[backend.copy(p) for p in group] for group in network.params()]
        else:
            self.wait += 1
            if self.wait >= self.patience:
                self.stopped = True
                if self.restore_best_weights and self._best_snapshot is not None:
                    for group, saved in zip(network.params(), self._best_snapshot):
                        for p, s in zip(group, saved):
                            p[...] = s
                return True
        return False
