"""Raster buffer: owned, channel-interleaved 8-bit pixels with uniform color access.

A RasterBuffer holds ``width * height * channels`` bytes in one contiguous
numpy array. Pixel (row, col) starts at byte ``(row * width + col) * channels``.
The channel count fixes the color model for the whole buffer:

    1 = gray      2 = gray + alpha      3 = RGB      4 = RGBA

Reads expand any format to RGB/RGBA:

    channels | r  g  b  | a
    ---------+----------+----
        1    | p0 p0 p0 | 255
        2    | p0 p0 p0 | p1
        3    | p0 p1 p2 | 255
        4    | p0 p1 p2 | p3

Writes go the other way: gray formats store the truncated mean of r, g, b
(``(r + g + b) // 3``, never rounded).

Ownership: buffers are not implicitly copyable (copy.copy / copy.deepcopy
raise TypeError). Use clone() for a deliberate deep copy.

Decoding uses Pillow; only the first frame of multi-frame files is read.
Palette images decode to RGB (RGBA when the palette carries transparency),
16-bit gray keeps its high byte, other color spaces are converted to RGB.

Public API:
    buf = RasterBuffer.from_file("sprite.png")      # raises DecodeError
    buf.read_rgba(row, col)                          # → RGBA(r, g, b, a)
    buf.rgba_row(row)                                # → (W, 4) uint8 array
    gray = buf.as_grayscale()
"""

import logging
from enum import IntEnum
from pathlib import Path
from typing import NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)


class PixelFormat(IntEnum):
    """Channel layout of a buffer; the value is the channel count."""
    GRAY = 1
    GRAY_ALPHA = 2
    RGB = 3
    RGBA = 4

    @property
    def has_color(self) -> bool:
        return self >= PixelFormat.RGB

    @property
    def has_alpha(self) -> bool:
        return self in (PixelFormat.GRAY_ALPHA, PixelFormat.RGBA)

    @property
    def pil_mode(self) -> str:
        return _PIL_MODES[self]


class RGB(NamedTuple):
    r: int
    g: int
    b: int


class RGBA(NamedTuple):
    r: int
    g: int
    b: int
    a: int


# Source channel for (r, g, b) and alpha (None → fully opaque) per format
_RGBA_CHANNELS = {
    PixelFormat.GRAY: ((0, 0, 0), None),
    PixelFormat.GRAY_ALPHA: ((0, 0, 0), 1),
    PixelFormat.RGB: ((0, 1, 2), None),
    PixelFormat.RGBA: ((0, 1, 2), 3),
}

_PIL_MODES = {
    PixelFormat.GRAY: "L",
    PixelFormat.GRAY_ALPHA: "LA",
    PixelFormat.RGB: "RGB",
    PixelFormat.RGBA: "RGBA",
}

# Pillow mode → mode the pixels are converted to before copying them out
_DECODE_MODES = {
    "1": "L",
    "L": "L",
    "LA": "LA",
    "La": "LA",
    "RGB": "RGB",
    "RGBX": "RGB",
    "RGBA": "RGBA",
    "RGBa": "RGBA",
    "PA": "RGBA",
    "CMYK": "RGB",
    "YCbCr": "RGB",
    "LAB": "RGB",
    "HSV": "RGB",
}

_DECODE_FORMATS = {mode: fmt for fmt, mode in _PIL_MODES.items()}

OPAQUE = 255


class DecodeError(Exception):
    """A raster file could not be decoded.

    ``reason`` is the decoder's message, unmodified; ``str(err)`` is the reason.
    """

    def __init__(self, path: Union[str, Path], reason: str):
        super().__init__(reason)
        self.path = Path(path)
        self.reason = reason


def _decoded_pixels(img: Image.Image) -> Tuple[np.ndarray, PixelFormat]:
    """Copy the first frame of an open Pillow image into (H, W, C) uint8."""
    mode = img.mode
    if mode == "P":
        target = "RGBA" if "transparency" in img.info else "RGB"
    elif mode in ("L", "RGB") and img.info.get("transparency") is not None:
        # tRNS color key becomes a real alpha channel
        target = "LA" if mode == "L" else "RGBA"
    elif mode.startswith("I") or mode == "F":
        # 16/32-bit gray: keep the high byte of 16-bit samples
        arr = np.asarray(img)
        if mode == "F":
            arr = np.clip(arr, 0, 255)
        else:
            arr = np.clip(arr.astype(np.int64) >> 8, 0, 255)
        return arr.astype(np.uint8)[:, :, np.newaxis], PixelFormat.GRAY
    else:
        target = _DECODE_MODES.get(mode)
        if target is None:
            raise ValueError(f"unsupported image mode '{mode}'")

    if mode != target:
        img = img.convert(target)
    fmt = _DECODE_FORMATS[target]
    arr = np.asarray(img, dtype=np.uint8).reshape(img.height, img.width, int(fmt))
    return arr, fmt


class RasterBuffer:
    """Owned 8-bit raster with per-pixel RGB/RGBA access.

    Parameters
    ----------
    width, height : int
        Dimensions in pixels (>= 1)
    channels : int
        1, 2, 3 or 4 (see PixelFormat)
    data : bytes-like or np.ndarray, optional
        Exactly ``width * height * channels`` bytes, copied into the buffer;
        zero-filled when omitted

    Raises
    ------
    ValueError
        On non-positive dimensions, an unknown channel count or a data length
        mismatch
    """

    def __init__(
        self,
        width: int,
        height: int,
        channels: int,
        data: Union[bytes, bytearray, memoryview, np.ndarray, None] = None,
    ):
        if width < 1 or height < 1:
            raise ValueError(f"Raster dimensions must be positive, got {width}x{height}")
        try:
            fmt = PixelFormat(channels)
        except ValueError:
            raise ValueError(f"Channel count must be 1, 2, 3 or 4, got {channels}") from None

        size = width * height * int(fmt)
        if data is None:
            buf = np.zeros(size, dtype=np.uint8)
        else:
            if isinstance(data, np.ndarray):
                buf = np.array(data, dtype=np.uint8).reshape(-1)
            else:
                buf = np.frombuffer(bytes(data), dtype=np.uint8).copy()
            if buf.size != size:
                raise ValueError(
                    f"Pixel data has {buf.size} bytes, expected {size} "
                    f"({width}x{height}x{int(fmt)})"
                )

        self._width = width
        self._height = height
        self._format = fmt
        self._data: Optional[np.ndarray] = buf

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def blank(cls, width: int, height: int, channels: int) -> "RasterBuffer":
        """Allocate a zero-filled buffer."""
        return cls(width, height, channels)

    @classmethod
    def from_array(cls, pixels: np.ndarray) -> "RasterBuffer":
        """Build from an (H, W) or (H, W, C) uint8 array (copied)."""
        pixels = np.asarray(pixels)
        if pixels.ndim == 2:
            pixels = pixels[:, :, np.newaxis]
        if pixels.ndim != 3:
            raise ValueError(f"Expected (H, W) or (H, W, C) array, got shape {pixels.shape}")
        if pixels.dtype != np.uint8:
            raise ValueError(f"Expected uint8 pixels, got {pixels.dtype}")
        height, width, channels = pixels.shape
        return cls(width, height, channels, pixels)

    @classmethod
    def from_image(cls, img: Image.Image) -> "RasterBuffer":
        """Copy the first frame of a Pillow image."""
        pixels, _ = _decoded_pixels(img)
        return cls.from_array(pixels)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "RasterBuffer":
        """Decode an image file (PNG, BMP, JPEG, GIF, ...).

        Raises
        ------
        DecodeError
            With Pillow's reason when the file is missing, unreadable,
            corrupt or in an unsupported format
        """
        try:
            with Image.open(path) as img:
                img.load()
                buf = cls.from_image(img)
        except (OSError, EOFError, ValueError, Image.DecompressionBombError) as e:
            raise DecodeError(path, str(e)) from e

        logger.debug("Decoded %s: %dx%d, %d channels", path, buf.width, buf.height, buf.channels)
        return buf

    # ------------------------------------------------------------------
    # Ownership
    # ------------------------------------------------------------------

    def __copy__(self):
        raise TypeError("RasterBuffer is not implicitly copyable; use clone()")

    def __deepcopy__(self, memo):
        raise TypeError("RasterBuffer is not implicitly copyable; use clone()")

    def clone(self) -> "RasterBuffer":
        """Explicit deep copy."""
        return RasterBuffer(self._width, self._height, self.channels, self._view())

    def release(self) -> None:
        """Free the pixel data; the buffer is invalid afterwards."""
        self._data = None

    def load(self, path: Union[str, Path]) -> None:
        """Replace contents with a decoded file (unchanged if decoding fails)."""
        other = RasterBuffer.from_file(path)
        self._replace(other)

    def save_bmp(self, path: Union[str, Path]) -> None:
        """Write the buffer as a BMP file (gray+alpha is stored as RGBA)."""
        img = self.to_image()
        if self._format == PixelFormat.GRAY_ALPHA:
            img = img.convert("RGBA")
        img.save(path, format="BMP")

    def to_image(self) -> Image.Image:
        """Copy the pixels into a new Pillow image."""
        return Image.frombytes(
            self._format.pil_mode, (self._width, self._height), self._view().tobytes()
        )

    def _replace(self, other: "RasterBuffer") -> None:
        self._width = other._width
        self._height = other._height
        self._format = other._format
        self._data = other._data
        other._data = None

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------

    @property
    def valid(self) -> bool:
        return self._data is not None

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def channels(self) -> int:
        return int(self._format)

    @property
    def pixel_format(self) -> PixelFormat:
        return self._format

    @property
    def size_in_bytes(self) -> int:
        return self._width * self._height * int(self._format)

    @property
    def has_color(self) -> bool:
        return self._format.has_color

    @property
    def has_alpha(self) -> bool:
        return self._format.has_alpha

    def __repr__(self) -> str:
        state = "" if self.valid else ", released"
        return f"RasterBuffer({self._width}x{self._height}, {self._format.name}{state})"

    def tobytes(self) -> bytes:
        return self._view().tobytes()

    def pixels(self) -> np.ndarray:
        """Read-only (H, W, C) view of the buffer."""
        view = self._view().reshape(self._height, self._width, int(self._format))
        view.flags.writeable = False
        return view

    def _view(self) -> np.ndarray:
        if self._data is None:
            raise ValueError("RasterBuffer has been released")
        return self._data

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------

    def clamp_row(self, row: int) -> int:
        return min(max(row, 0), self._height - 1)

    def clamp_col(self, col: int) -> int:
        return min(max(col, 0), self._width - 1)

    def offset(self, row: int, col: int) -> int:
        """Byte offset of pixel (row, col); raises IndexError when out of range."""
        if not (0 <= row < self._height and 0 <= col < self._width):
            raise IndexError(
                f"Pixel ({row}, {col}) outside {self._width}x{self._height} raster"
            )
        return (row * self._width + col) * int(self._format)

    def native(self, row: int, col: int) -> bytes:
        """Raw channel bytes of one pixel."""
        start = self.offset(row, col)
        return self._view()[start:start + int(self._format)].tobytes()

    def write_native(self, row: int, col: int, values: Sequence[int]) -> None:
        """Overwrite the raw channel bytes of one pixel."""
        if len(values) != int(self._format):
            raise ValueError(f"Expected {int(self._format)} channel values, got {len(values)}")
        start = self.offset(row, col)
        self._view()[start:start + int(self._format)] = values

    # ------------------------------------------------------------------
    # Color reads
    # ------------------------------------------------------------------

    def read_rgba(self, row: int, col: int) -> RGBA:
        start = self.offset(row, col)
        p = self._view()[start:start + int(self._format)]
        (ri, gi, bi), ai = _RGBA_CHANNELS[self._format]
        alpha = OPAQUE if ai is None else int(p[ai])
        return RGBA(int(p[ri]), int(p[gi]), int(p[bi]), alpha)

    def read_rgb(self, row: int, col: int) -> RGB:
        r, g, b, _ = self.read_rgba(row, col)
        return RGB(r, g, b)

    def read_rgba_clamped(self, row: int, col: int) -> RGBA:
        return self.read_rgba(self.clamp_row(row), self.clamp_col(col))

    def read_rgb_clamped(self, row: int, col: int) -> RGB:
        return self.read_rgb(self.clamp_row(row), self.clamp_col(col))

    def rgba_row(self, row: int) -> np.ndarray:
        """All pixels of one row expanded to RGBA, shape (W, 4) uint8."""
        if not 0 <= row < self._height:
            raise IndexError(f"Row {row} outside raster of height {self._height}")
        return self._expand_rgba(self.pixels()[row])

    def _expand_rgba(self, block: np.ndarray) -> np.ndarray:
        (ri, gi, bi), ai = _RGBA_CHANNELS[self._format]
        out = np.empty(block.shape[:-1] + (4,), dtype=np.uint8)
        out[..., 0] = block[..., ri]
        out[..., 1] = block[..., gi]
        out[..., 2] = block[..., bi]
        out[..., 3] = OPAQUE if ai is None else block[..., ai]
        return out

    # ------------------------------------------------------------------
    # Color writes
    # ------------------------------------------------------------------

    @staticmethod
    def to_grayscale(color: Sequence[int]) -> int:
        """Truncated mean of r, g, b (alpha ignored)."""
        return (int(color[0]) + int(color[1]) + int(color[2])) // 3

    def write_rgb(self, row: int, col: int, color: Sequence[int]) -> None:
        """Store an RGB color; alpha formats become fully opaque."""
        r, g, b = color[:3]
        self._write(row, col, RGBA(r, g, b, OPAQUE))

    def write_rgba(self, row: int, col: int, color: Sequence[int]) -> None:
        """Store an RGBA color; alpha is dropped by formats without it."""
        self._write(row, col, RGBA(*color))

    def write_rgb_clamped(self, row: int, col: int, color: Sequence[int]) -> None:
        self.write_rgb(self.clamp_row(row), self.clamp_col(col), color)

    def write_rgba_clamped(self, row: int, col: int, color: Sequence[int]) -> None:
        self.write_rgba(self.clamp_row(row), self.clamp_col(col), color)

    def _write(self, row: int, col: int, color: RGBA) -> None:
        fmt = self._format
        if fmt == PixelFormat.GRAY:
            values = (self.to_grayscale(color),)
        elif fmt == PixelFormat.GRAY_ALPHA:
            values = (self.to_grayscale(color), color.a)
        elif fmt == PixelFormat.RGB:
            values = (color.r, color.g, color.b)
        else:
            values = tuple(color)
        self.write_native(row, col, values)

    # ------------------------------------------------------------------
    # Format conversion
    # ------------------------------------------------------------------

    def as_rgb(self) -> "RasterBuffer":
        """New 3-channel buffer; gray is replicated, alpha dropped."""
        rgb = self._expand_rgba(self.pixels())[..., :3]
        return RasterBuffer.from_array(np.ascontiguousarray(rgb))

    def as_grayscale(self) -> "RasterBuffer":
        """New 1-channel buffer; color is averaged (truncating), alpha dropped."""
        pixels = self.pixels()
        if self._format.has_color:
            gray = (pixels[..., :3].astype(np.uint16).sum(axis=-1) // 3).astype(np.uint8)
        else:
            gray = pixels[..., 0]
        return RasterBuffer.from_array(np.ascontiguousarray(gray))

    def convert_to_rgb(self) -> "RasterBuffer":
        """Convert in place; returns self."""
        self._replace(self.as_rgb())
        return self

    def convert_to_grayscale(self) -> "RasterBuffer":
        """Convert in place; returns self."""
        self._replace(self.as_grayscale())
        return self
