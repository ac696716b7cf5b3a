"""
masking.py
~~~~~~~~~~

Strided patch extraction ("masking map") shared by convolution and pooling.

A square image flattened to a vector is turned into a matrix whose columns
are the flattened k x k windows the kernel visits, so convolution becomes a
single matrix multiply and pooling a single column-wise reduction.
"""

import math

from .Backend import backend
from ..errors import ShapeMismatchError, ConfigurationError


def image_side(length):
    """Side of the square image stored in a vector of ``length`` pixels."""
    side = math.isqrt(int(length))
    if side * side != length:
        raise ShapeMismatchError(f"Image of {length} pixels is not square")
    return side


def output_side(side, kernel_size, stride):
    """
    Windows per row/column. Floor division: trailing pixels that do not fit a
    whole window are dropped.
    """
    if kernel_size < 1 or stride < 1:
        raise ConfigurationError(
            f"kernel_size and stride must be positive, got {kernel_size} and {stride}"
        )
    if kernel_size > side:
        raise ShapeMismatchError(f"Kernel of side {kernel_size} does not fit a {side}x{side} image")
    return (side - kernel_size) // stride + 1


def create_masking_map(image, kernel_size, stride):
    """
    Build the (kernel_size**2, out_side**2) patch matrix of a flattened square image.

    Column ``r * out_side + c`` holds the window whose top-left corner is
    ``(r * stride, c * stride)``, flattened row-major.

    Args:
        image: flattened square image (length side**2)
        kernel_size: window side length
        stride: step between neighbouring windows

    Returns:
        ndarray of shape (kernel_size**2, out_side**2)
    """
    image = backend.as_vector(image)
    side = image_side(image.size)
    out = output_side(side, kernel_size, stride)
    pixels = backend.reshape(image, (side, side))

    # top-left corner of every window: (out, out)
    starts = backend.arange(out) * stride
    h_starts, w_starts = backend.meshgrid(starts, starts, indexing="ij")

    # offsets inside a window: (k, k)
    offsets = backend.arange(kernel_size)
    kh_grid, kw_grid = backend.meshgrid(offsets, offsets, indexing="ij")

    # absolute positions: (out, out, k, k)
    h_all = h_starts[:, :, None, None] + kh_grid[None, None, :, :]
    w_all = w_starts[:, :, None, None] + kw_grid[None, None, :, :]

    patches = pixels[h_all, w_all]
    cols = backend.reshape(patches, (out * out, kernel_size * kernel_size))
    return backend.ascontiguousarray(backend.transpose(cols))
