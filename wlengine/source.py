"""
source.py - Build RawImage values from DICOM files with pydicom.

The engine never parses DICOM itself.  This adapter decodes the pixel data
(any transfer syntax pydicom can handle), normalises it to little-endian
8/16-bit samples and fills in the image description:

    Rows/Columns, BitsAllocated/BitsStored/HighBit, PixelRepresentation,
    SamplesPerPixel, PhotometricInterpretation, RescaleSlope/Intercept

Default window
--------------
1. WindowCenter/WindowWidth from the header (first value of a multi-value
   element), converted from modality units to stored units.
2. Otherwise the min/max of the stored samples.
3. Otherwise (no samples) the configured fallback window.

PALETTE COLOR images are expanded to 8-bit RGB through their colour LUT so
they display like any other RGB source.  Only the first frame of a
multi-frame object is read.
"""

import logging
import os
from typing import Optional, Union

import numpy as np
import pydicom
from pydicom.dataset import Dataset
from pydicom.errors import InvalidDicomError
from pydicom.pixels import apply_color_lut

from wlengine.config import CONFIG
from wlengine.image import PhotometricKind, RawImage, WindowLevel
from wlengine.windowing import min_max_window, modality_to_stored

logger = logging.getLogger(__name__)

# Header attributes copied verbatim into RawImage.metadata when present
_METADATA_KEYWORDS = (
    "Modality",
    "StudyDescription",
    "SeriesDescription",
    "BodyPartExamined",
    "StationName",
    "Manufacturer",
    "WindowCenterWidthExplanation",
)


def parse_photometric(value: Optional[str]) -> PhotometricKind:
    """Parse (0028,0004); whitespace and case are ignored."""
    return PhotometricKind.from_string(value)


def _first_value(element) -> Optional[float]:
    if element is None:
        return None
    # WindowCenter/Width can be a MultiValue list; take the first element
    if hasattr(element, "__iter__") and not isinstance(element, str):
        values = list(element)
        if not values:
            return None
        element = values[0]
    try:
        return float(element)
    except (TypeError, ValueError):
        return None


def header_window(ds: Dataset) -> Optional[WindowLevel]:
    """
    Window stored in the header, in modality units.

    Returns None when either attribute is missing or the width is not
    positive.
    """
    center = _first_value(getattr(ds, "WindowCenter", None))
    width = _first_value(getattr(ds, "WindowWidth", None))
    if center is None or width is None or width <= 0:
        return None
    return WindowLevel(center, width)


def default_window(
    ds: Dataset,
    samples: np.ndarray,
    slope: float = 1.0,
    intercept: float = 0.0,
) -> WindowLevel:
    """Default window in stored-value units (header, then min/max, then fallback)."""
    window = header_window(ds)
    if window is not None:
        return modality_to_stored(window, slope, intercept)
    logger.debug("No usable header window; using the min/max of the samples.")
    return min_max_window(samples)


def _pixel_samples(ds: Dataset) -> np.ndarray:
    if "PixelData" not in ds:
        raise ValueError("Dataset has no pixel data.")
    arr = ds.pixel_array
    frames = int(getattr(ds, "NumberOfFrames", 1) or 1)
    if frames > 1:
        logger.info("Multi-frame object (%d frames); reading frame 1 only.", frames)
        arr = arr[0]
    return arr


def _palette_to_rgb(ds: Dataset, indices: np.ndarray) -> np.ndarray:
    rgb = apply_color_lut(indices, ds)
    if rgb.dtype != np.uint8:
        # 16-bit LUT entries: keep the most significant byte
        rgb = (rgb.astype(np.uint16) >> 8).astype(np.uint8)
    return rgb


def _metadata(ds: Dataset, path: Optional[str]) -> dict[str, str]:
    meta = {}
    for keyword in _METADATA_KEYWORDS:
        value = getattr(ds, keyword, None)
        if value not in (None, ""):
            meta[keyword] = str(value)
    if path is not None:
        meta["SourceFile"] = os.path.basename(path)
    return meta


def image_from_dataset(ds: Dataset, path: Optional[str] = None) -> RawImage:
    """
    Convert a loaded pydicom Dataset into a RawImage.

    Parameters
    ----------
    ds : Dataset
        Dataset with pixel data.
    path : str, optional
        File the dataset came from, recorded in the metadata.

    Returns
    -------
    RawImage

    Raises
    ------
    ValueError
        If the dataset has no pixel data or a sample layout the engine
        cannot hold (more than 16 bits allocated, 2 or 4 samples per pixel).
        An untranslatable PALETTE COLOR image is returned as is.
    """
    photometric = parse_photometric(getattr(ds, "PhotometricInterpretation", None))
    samples_per_pixel = int(getattr(ds, "SamplesPerPixel", 1))
    bits_allocated = int(getattr(ds, "BitsAllocated", 0))
    bits_stored = int(getattr(ds, "BitsStored", bits_allocated))
    high_bit = int(getattr(ds, "HighBit", bits_stored - 1))
    is_signed = int(getattr(ds, "PixelRepresentation", 0)) == 1
    slope = float(getattr(ds, "RescaleSlope", 1.0))
    intercept = float(getattr(ds, "RescaleIntercept", 0.0))

    arr = _pixel_samples(ds)

    if photometric is PhotometricKind.PALETTE_COLOR:
        try:
            rgb = _palette_to_rgb(ds, arr)
        except (ValueError, AttributeError, KeyError) as exc:
            # Left untranslated; the converter reports it as unsupported
            logger.warning("Cannot apply palette colour LUT: %s", exc)
        else:
            arr = rgb
            photometric = PhotometricKind.RGB
            samples_per_pixel = 3
            bits_allocated = bits_stored = 8
            high_bit = 7
            is_signed = False

    # 8-bit samples are always read unsigned
    reread_unsigned = bits_allocated == 8 and is_signed
    if bits_allocated == 8:
        dtype = np.dtype("<u1")
        is_signed = False
    elif bits_allocated == 16:
        dtype = np.dtype("<i2") if is_signed else np.dtype("<u2")
    else:
        raise ValueError(f"Unsupported BitsAllocated={bits_allocated}; expected 8 or 16.")

    arr = np.ascontiguousarray(arr).astype(dtype, copy=False)

    if samples_per_pixel == 3:
        window = WindowLevel(127.5, 255.0)
    elif reread_unsigned:
        # A signed header window does not describe the unsigned samples
        logger.warning(
            "Signed 8-bit samples are read unsigned; using the min/max window "
            "instead of the header window."
        )
        window = min_max_window(arr)
    else:
        window = default_window(ds, arr, slope, intercept)

    return RawImage(
        width=int(ds.Columns),
        height=int(ds.Rows),
        bits_allocated=bits_allocated,
        is_signed=is_signed,
        photometric=photometric,
        data=arr.tobytes(),
        default_window=window,
        samples_per_pixel=samples_per_pixel,
        bits_stored=bits_stored,
        high_bit=high_bit,
        rescale_slope=slope,
        rescale_intercept=intercept,
        metadata=_metadata(ds, path),
    )


def load_image(path: Union[str, os.PathLike]) -> Optional[RawImage]:
    """
    Read a DICOM file and convert it; None if it cannot be read.

    Failures are logged at ERROR and never raised, so a viewer can skip a
    bad file and keep going.
    """
    path = os.fspath(path)
    try:
        ds = pydicom.dcmread(path)
        image = image_from_dataset(ds, path=path)
    except (InvalidDicomError, OSError, ValueError, AttributeError, NotImplementedError, RuntimeError) as exc:
        logger.error("Could not load %s: %s", path, exc)
        return None

    logger.info(
        "Loaded %s: %dx%d, %d-bit %s, %s",
        os.path.basename(path), image.width, image.height, image.bits_allocated,
        "signed" if image.is_signed else "unsigned", image.photometric.value,
    )
    return image


def load_folder(folder: Optional[str] = None) -> list[RawImage]:
    """Load every readable DICOM file in *folder* (default ``paths.input_folder``), sorted by name."""
    folder = folder or CONFIG["paths"]["input_folder"]
    if not os.path.isdir(folder):
        logger.error("Input folder not found: %s", folder)
        return []

    images = []
    for filename in sorted(f for f in os.listdir(folder) if not f.startswith(".")):
        image = load_image(os.path.join(folder, filename))
        if image is not None:
            images.append(image)
    logger.info("Loaded %d image(s) from %s", len(images), folder)
    return images
