from .FullyConnectedNetwork import FullyConnectedNetwork
from .Network import Network
from .NetworkTrainer import NetworkTrainer

__all__ = ["FullyConnectedNetwork", "Network", "NetworkTrainer"]
