"""Image output.

Components:
    export: PNG writing and reading through Pillow, image comparison
"""

from .export import compute_rmse, image_to_uint8, load_png, save_png, save_png_from_array

__all__ = [
    "save_png",
    "save_png_from_array",
    "load_png",
    "image_to_uint8",
    "compute_rmse",
]
