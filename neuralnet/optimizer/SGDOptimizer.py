from ..errors import ShapeMismatchError


class SGDOptimizer:
    def __init__(self, params, lr=1e-2):
        self.params = params  # list of [weights, bias], updated in place
        self.lr = lr

    def step(self, grads, batch_size):
        # grads: list of [nabla_w, nabla_b] summed over the batch
        if len(grads) != len(self.params):
            raise ShapeMismatchError(f"{len(grads)} gradients for {len(self.params)} layers")
        scale = self.lr / batch_size  # batch-averaged gradient
        for group, grad_group in zip(self.params, grads):
            for p, g in zip(group, grad_group):
                p -= scale * g
