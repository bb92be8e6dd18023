"""
generate_sample_data.py - Create synthetic DICOM files for the gallery demo.

Writes a small set of images to data/raw/ that together cover every sample
layout the engine displays:

    ct_u16.dcm      16-bit unsigned CT with RescaleIntercept -1024 and a
                    header window
    ct_s16.dcm      16-bit signed CT (stored values already in HU)
    cr_mono1.dcm    16-bit MONOCHROME1 radiograph (low values are white)
    us_u8.dcm       8-bit MONOCHROME2, no header window
    photo_rgb.dcm   8-bit RGB secondary capture

Usage
-----
    python scripts/generate_sample_data.py

After running, try:
    python scripts/render_gallery.py
"""

import os
import sys

import numpy as np
import pydicom
from pydicom.dataset import FileDataset
from pydicom.uid import ExplicitVRLittleEndian

# Make sure repo root is on the path when run as a script
_REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _REPO_ROOT)

from wlengine.config import CONFIG  # noqa: E402 - import after path fix

OUTPUT_FOLDER = os.path.join(_REPO_ROOT, CONFIG["paths"]["input_folder"])

_CT_IMAGE = "1.2.840.10008.5.1.4.1.1.2"
_CR_IMAGE = "1.2.840.10008.5.1.4.1.1.1"
_US_IMAGE = "1.2.840.10008.5.1.4.1.1.6.1"
_SECONDARY_CAPTURE = "1.2.840.10008.5.1.4.1.1.7"


def _phantom(size: int, seed: int) -> np.ndarray:
    """Float phantom in HU: air background, soft-tissue disc, bone ring, noise."""
    rng = np.random.default_rng(seed)
    yy, xx = np.mgrid[:size, :size]
    r = np.hypot(xx - size / 2, yy - size / 2) / (size / 2)

    hu = np.full((size, size), -1000.0)
    hu[r < 0.85] = 40.0
    hu[(r >= 0.75) & (r < 0.85)] = 900.0
    hu[(r < 0.25)] = -600.0  # a "lung" pocket
    return hu + rng.normal(0.0, 15.0, size=(size, size))


def _base_dataset(path: str, sop_class: str, modality: str) -> FileDataset:
    file_meta = pydicom.Dataset()
    file_meta.MediaStorageSOPClassUID = pydicom.uid.UID(sop_class)
    file_meta.MediaStorageSOPInstanceUID = pydicom.uid.generate_uid()
    file_meta.TransferSyntaxUID = ExplicitVRLittleEndian

    ds = FileDataset(path, {}, file_meta=file_meta, preamble=b"\0" * 128)
    ds.SOPClassUID = file_meta.MediaStorageSOPClassUID
    ds.SOPInstanceUID = file_meta.MediaStorageSOPInstanceUID
    ds.PatientName = "Synthetic^Phantom"
    ds.PatientID = "00000"
    ds.StudyDate = "20230601"
    ds.Modality = modality
    ds.StudyDescription = "Window/level engine demo"
    return ds


def _set_pixels(
    ds: FileDataset,
    pixels: np.ndarray,
    photometric: str,
    bits: int,
    signed: bool = False,
) -> None:
    ds.Rows, ds.Columns = pixels.shape[:2]
    ds.SamplesPerPixel = 3 if pixels.ndim == 3 else 1
    if pixels.ndim == 3:
        ds.PlanarConfiguration = 0
    ds.PhotometricInterpretation = photometric
    ds.PixelRepresentation = 1 if signed else 0
    ds.BitsAllocated = bits
    ds.BitsStored = bits
    ds.HighBit = bits - 1
    ds.PixelData = pixels.tobytes()


def make_ct_u16(path: str, size: int = 128, seed: int = 1) -> None:
    """Unsigned CT: stored = HU + 1024, with a soft-tissue header window."""
    ds = _base_dataset(path, _CT_IMAGE, "CT")
    stored = (_phantom(size, seed) + 1024.0).clip(0, 4095).astype("<u2")
    ds.RescaleSlope = 1.0
    ds.RescaleIntercept = -1024.0
    ds.WindowCenter = 40.0
    ds.WindowWidth = 400.0
    _set_pixels(ds, stored, "MONOCHROME2", 16)
    ds.save_as(path)


def make_ct_s16(path: str, size: int = 128, seed: int = 2) -> None:
    """Signed CT: stored values are HU, lung window in the header."""
    ds = _base_dataset(path, _CT_IMAGE, "CT")
    stored = _phantom(size, seed).clip(-2048, 3071).astype("<i2")
    ds.RescaleSlope = 1.0
    ds.RescaleIntercept = 0.0
    ds.WindowCenter = -600.0
    ds.WindowWidth = 1500.0
    _set_pixels(ds, stored, "MONOCHROME2", 16, signed=True)
    ds.save_as(path)


def make_cr_mono1(path: str, size: int = 128, seed: int = 3) -> None:
    """MONOCHROME1 radiograph: a gradient plus a dense block, no header window."""
    ds = _base_dataset(path, _CR_IMAGE, "CR")
    rng = np.random.default_rng(seed)
    ramp = np.linspace(200, 3800, size)[np.newaxis, :].repeat(size, axis=0)
    ramp[size // 3 : 2 * size // 3, size // 3 : 2 * size // 3] = 300
    stored = (ramp + rng.normal(0, 20, ramp.shape)).clip(0, 4095).astype("<u2")
    _set_pixels(ds, stored, "MONOCHROME1", 16)
    ds.save_as(path)


def make_us_u8(path: str, size: int = 128, seed: int = 4) -> None:
    """8-bit grayscale with speckle."""
    ds = _base_dataset(path, _US_IMAGE, "US")
    rng = np.random.default_rng(seed)
    yy, xx = np.mgrid[:size, :size]
    fan = np.clip(255 - np.hypot(xx - size / 2, yy) * 1.5, 0, 255)
    stored = (fan * rng.rayleigh(0.6, size=(size, size))).clip(0, 255).astype(np.uint8)
    _set_pixels(ds, stored, "MONOCHROME2", 8)
    ds.save_as(path)


def make_photo_rgb(path: str, size: int = 128) -> None:
    """8-bit RGB colour bars (interleaved)."""
    ds = _base_dataset(path, _SECONDARY_CAPTURE, "OT")
    pixels = np.zeros((size, size, 3), dtype=np.uint8)
    pixels[..., 0] = np.linspace(0, 255, size, dtype=np.uint8)[np.newaxis, :]
    pixels[..., 1] = np.linspace(0, 255, size, dtype=np.uint8)[:, np.newaxis]
    pixels[..., 2] = 128
    _set_pixels(ds, pixels, "RGB", 8)
    ds.save_as(path)


_SAMPLES = [
    ("ct_u16.dcm", make_ct_u16, "16-bit unsigned CT, header window"),
    ("ct_s16.dcm", make_ct_s16, "16-bit signed CT, lung window"),
    ("cr_mono1.dcm", make_cr_mono1, "MONOCHROME1 radiograph"),
    ("us_u8.dcm", make_us_u8, "8-bit grayscale"),
    ("photo_rgb.dcm", make_photo_rgb, "8-bit RGB"),
]


def generate(output_folder: str = OUTPUT_FOLDER) -> None:
    """Generate all synthetic DICOM files into *output_folder*."""
    os.makedirs(output_folder, exist_ok=True)

    print(f"Writing {len(_SAMPLES)} synthetic DICOM files to: {output_folder}")
    print("-" * 60)

    for i, (filename, make, note) in enumerate(_SAMPLES, start=1):
        make(os.path.join(output_folder, filename))
        print(f"  [{i:02d}/{len(_SAMPLES)}] {filename}  ({note})")

    print("-" * 60)
    print("Done.  Render them with:")
    print("  python scripts/render_gallery.py")


if __name__ == "__main__":
    generate()
