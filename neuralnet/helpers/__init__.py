from .Backend import Backend, backend
from .masking import create_masking_map, image_side, output_side

__all__ = ["Backend", "backend", "create_masking_map", "image_side", "output_side"]
