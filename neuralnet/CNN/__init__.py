from .ConvolutionalNetwork import ConvolutionalNetwork

__all__ = ["ConvolutionalNetwork"]
