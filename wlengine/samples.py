"""
samples.py - Typed, read-only access to raw sample buffers.

A decoded image arrives as a flat byte buffer plus a description of how
its samples are stored (bits allocated, pixel representation, samples per
pixel).  SampleView resolves that description ONCE into a SampleDomain and
exposes the samples as a zero-copy numpy view of the right integer type.

Supported storage
-----------------
    bits  signed   domain
    8     either   [0, 255]
    16    no       [0, 65535]
    16    yes      [-32768, 32767]

8-bit data is always read as unsigned.  16-bit data is little-endian, as
delivered by the DICOM decoders for every uncompressed and decompressed
transfer syntax.
"""

from enum import Enum
from typing import Union

import numpy as np

Buffer = Union[bytes, bytearray, memoryview]


class SampleDomain(Enum):
    """Integer domain of one stored sample."""

    U8 = ("<u1", 0, 255)
    U16 = ("<u2", 0, 65535)
    S16 = ("<i2", -32768, 32767)

    def __init__(self, dtype: str, minimum: int, maximum: int):
        self.dtype = np.dtype(dtype)
        self.minimum = minimum
        self.maximum = maximum

    @property
    def bytes_per_sample(self) -> int:
        return self.dtype.itemsize

    @property
    def size(self) -> int:
        """Number of distinct values in the domain (LUT length)."""
        return self.maximum - self.minimum + 1

    @classmethod
    def resolve(cls, bits_allocated: int, is_signed: bool) -> "SampleDomain":
        """
        Pick the domain for a storage description.

        Raises
        ------
        ValueError
            If *bits_allocated* is neither 8 nor 16.
        """
        if bits_allocated == 8:
            return cls.U8
        if bits_allocated == 16:
            return cls.S16 if is_signed else cls.U16
        raise ValueError(
            f"Unsupported BitsAllocated={bits_allocated}; expected 8 or 16."
        )


class SampleView:
    """
    Read-only view over *sample_count* pixels of a raw byte buffer.

    The underlying bytes are never copied; ``array`` is a non-writeable
    numpy view.  Indexing is by pixel; for RGB sources a pixel yields a
    tuple of three samples.
    """

    def __init__(
        self,
        buffer: Buffer,
        sample_count: int,
        bits_allocated: int,
        is_signed: bool = False,
        samples_per_pixel: int = 1,
    ):
        if samples_per_pixel not in (1, 3):
            raise ValueError(
                f"Unsupported SamplesPerPixel={samples_per_pixel}; expected 1 or 3."
            )
        if sample_count < 0:
            raise ValueError(f"Sample count must be >= 0, got {sample_count}.")

        self.domain = SampleDomain.resolve(bits_allocated, is_signed)
        self.samples_per_pixel = samples_per_pixel
        self.pixel_count = sample_count

        needed = self.required_bytes(sample_count, bits_allocated, samples_per_pixel)
        available = memoryview(buffer).nbytes
        if available < needed:
            raise ValueError(
                f"Sample buffer too small: {available} bytes for "
                f"{sample_count} pixel(s) needing {needed} bytes."
            )

        values = np.frombuffer(
            buffer,
            dtype=self.domain.dtype,
            count=sample_count * samples_per_pixel,
        )
        values.flags.writeable = False
        self._values = values

    @staticmethod
    def required_bytes(sample_count: int, bits_allocated: int, samples_per_pixel: int = 1) -> int:
        """Minimum buffer length for the given storage description."""
        bytes_per_sample = (bits_allocated + 7) // 8
        return sample_count * samples_per_pixel * bytes_per_sample

    @property
    def array(self) -> np.ndarray:
        """Flat, non-writeable array of every stored sample."""
        return self._values

    @property
    def pixels(self) -> np.ndarray:
        """Samples grouped per pixel: shape (n,) or (n, 3)."""
        if self.samples_per_pixel == 1:
            return self._values
        return self._values.reshape(-1, self.samples_per_pixel)

    @property
    def is_rgb(self) -> bool:
        return self.samples_per_pixel == 3

    def __len__(self) -> int:
        return self.pixel_count

    def __getitem__(self, index: int):
        if not -self.pixel_count <= index < self.pixel_count:
            raise IndexError(f"Pixel index {index} out of range for {self.pixel_count} pixel(s).")
        if self.samples_per_pixel == 1:
            return int(self._values[index])
        return tuple(int(v) for v in self.pixels[index])

    def offsets(self) -> np.ndarray:
        """
        Samples shifted to start at zero (``sample - domain.minimum``).

        These are the row indices into a window/level LUT and the texel
        values of the unsigned sample texture used by the realtime path.
        """
        if self.domain is SampleDomain.S16:
            return (self._values.astype(np.int32) - self.domain.minimum).astype(np.uint16)
        return self._values
