"""
Normalized Bitmap
=================

The single in-memory image representation consumed by the renderer.

Design Rules:
    - This is the ONLY bitmap shape passed to the renderer
    - Pixels are RGB, 8 bits per channel, row-major (H, W, 3)
    - Immutable wrapper; the array itself is not copied
"""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True, slots=True, eq=False)
class NormalizedBitmap:
    """
    Decoded RGB frame.

    Attributes:
        width: Width in pixels
        height: Height in pixels
        pixels: ``uint8`` array of shape (height, width, 3), RGB order
    """

    width: int
    height: int
    pixels: np.ndarray

    def __post_init__(self) -> None:
        if self.pixels.dtype != np.uint8:
            raise ValueError(f"Bitmap pixels must be uint8, got {self.pixels.dtype}")
        if self.pixels.shape != (self.height, self.width, 3):
            raise ValueError(
                f"Bitmap pixels shape {self.pixels.shape} does not match "
                f"{self.width}x{self.height}x3"
            )

    @classmethod
    def from_array(cls, pixels: np.ndarray) -> "NormalizedBitmap":
        """Wrap an (H, W, 3) RGB array."""
        if pixels.ndim != 3:
            raise ValueError(f"Expected a 3-dimensional array, got shape {pixels.shape}")
        height, width = pixels.shape[:2]
        return cls(width=int(width), height=int(height), pixels=pixels)

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the pixel data."""
        return f"NormalizedBitmap(width={self.width}, height={self.height})"
