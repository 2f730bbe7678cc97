"""Image file reading and writing.

OpenCV stores colour images in BGR(A) order while the host expects RGB(A).
Unless ``FlipChannels`` is false (the default comes from the
``flip_channels`` configuration entry), 3- and 4-channel images are
converted on the way in and on the way out.
"""

from typing import Any

import cv2
import numpy as np
from numpy import typing as npt
from pydantic import Field, field_validator

from mexopencv.core.adapter import mex
from mexopencv.core.config import get_config
from mexopencv.core.constants import PngStrategy
from mexopencv.core.errors import InvalidArgument, LibraryOperationError
from mexopencv.core.mxarray import MxArray
from mexopencv.core.options import Bool, Int, OptionSet, Raw, enum_of


def _default_flip() -> bool:
    return get_config().flip_channels


def flip_channels(img: npt.NDArray[Any], to_host: bool) -> npt.NDArray[Any]:
    """Swap the red and blue channels of 3- and 4-channel images."""
    if img.ndim != 3 or img.shape[2] not in (3, 4):
        return img
    if img.shape[2] == 3:
        code = cv2.COLOR_BGR2RGB if to_host else cv2.COLOR_RGB2BGR
    else:
        code = cv2.COLOR_BGRA2RGBA if to_host else cv2.COLOR_RGBA2BGRA
    return cv2.cvtColor(img, code)


class ReadOptions(OptionSet):
    """Decoding flags shared by imread and imdecode."""

    flags: Int | None = Field(None, alias="Flags")
    unchanged: Bool = Field(False, alias="Unchanged")
    any_depth: Bool = Field(False, alias="AnyDepth")
    any_color: Bool = Field(False, alias="AnyColor")
    grayscale: Bool | None = Field(None, alias="Grayscale")
    color: Bool | None = Field(None, alias="Color")
    gdal: Bool = Field(False, alias="GDAL")
    reduce_scale: Int = Field(1, alias="ReduceScale")
    ignore_orientation: Bool = Field(False, alias="IgnoreOrientation")
    flip_channels: Bool = Field(default_factory=_default_flip, alias="FlipChannels")

    @field_validator("reduce_scale")
    @classmethod
    def check_reduce_scale(cls, v: int) -> int:
        if v not in (1, 2, 4, 8):
            raise ValueError("ReduceScale must be 1, 2, 4 or 8")
        return v

    def imread_flags(self) -> int:
        """Combine the individual switches into ``cv2.IMREAD_*`` flags.

        ``Flags`` overrides every other switch. ``Grayscale`` takes precedence
        over ``Color`` and either one disables ``AnyColor``.
        """
        if self.flags is not None:
            return self.flags
        if self.unchanged:
            return cv2.IMREAD_UNCHANGED
        if self.gdal:
            return cv2.IMREAD_LOAD_GDAL
        color = True
        any_color = self.any_color
        if self.grayscale is not None:
            color, any_color = not self.grayscale, False
        elif self.color is not None:
            color, any_color = self.color, False
        flags = cv2.IMREAD_ANYDEPTH if self.any_depth else 0
        if any_color:
            flags |= cv2.IMREAD_ANYCOLOR
        else:
            flags |= cv2.IMREAD_COLOR if color else cv2.IMREAD_GRAYSCALE
        flags |= {
            1: 0,
            2: cv2.IMREAD_REDUCED_GRAYSCALE_2,
            4: cv2.IMREAD_REDUCED_GRAYSCALE_4,
            8: cv2.IMREAD_REDUCED_GRAYSCALE_8,
        }[self.reduce_scale]
        if self.ignore_orientation:
            flags |= cv2.IMREAD_IGNORE_ORIENTATION
        return flags


@mex("imread", nargin=1, options=ReadOptions)
def imread(rhs: list[MxArray], opts: ReadOptions, nlhs: int) -> list[Any]:
    filename = rhs[0].to_string()
    img = cv2.imread(filename, opts.imread_flags())
    if img is None:
        raise LibraryOperationError(f"imread failed to read {filename}")
    if opts.flip_channels:
        img = flip_channels(img, to_host=True)
    return [MxArray.from_mat(img)]


@mex("imdecode", nargin=1, options=ReadOptions)
def imdecode(rhs: list[MxArray], opts: ReadOptions, nlhs: int) -> list[Any]:
    buf = rhs[0].to_mat(cv2.CV_8U).ravel()
    img = cv2.imdecode(buf, opts.imread_flags())
    if img is None:
        raise LibraryOperationError("imdecode failed")
    if opts.flip_channels:
        img = flip_channels(img, to_host=True)
    return [MxArray.from_mat(img)]


def _check_range(name: str, v: int | None, low: int, high: int) -> int | None:
    if v is not None and not low <= v <= high:
        raise ValueError(f"{name} must be in the range [{low},{high}]")
    return v


class WriteOptions(OptionSet):
    """Encoder parameters shared by imwrite and imencode."""

    jpeg_quality: Int | None = Field(None, alias="JpegQuality")
    jpeg_progressive: Bool | None = Field(None, alias="JpegProgressive")
    jpeg_optimize: Bool | None = Field(None, alias="JpegOptimize")
    jpeg_reset_interval: Int | None = Field(None, alias="JpegResetInterval")
    jpeg_luma_quality: Int | None = Field(None, alias="JpegLumaQuality")
    jpeg_chroma_quality: Int | None = Field(None, alias="JpegChromaQuality")
    png_compression: Int | None = Field(None, alias="PngCompression")
    png_strategy: enum_of(PngStrategy) | None = Field(None, alias="PngStrategy")
    png_bilevel: Bool | None = Field(None, alias="PngBilevel")
    pxm_binary: Bool | None = Field(None, alias="PxmBinary")
    webp_quality: Int | None = Field(None, alias="WebpQuality")
    params: Raw = Field(None, alias="Params")
    flip_channels: Bool = Field(default_factory=_default_flip, alias="FlipChannels")

    @field_validator("jpeg_quality", "jpeg_luma_quality", "jpeg_chroma_quality")
    @classmethod
    def check_quality(cls, v: int | None) -> int | None:
        return _check_range("JPEG quality", v, 0, 100)

    @field_validator("jpeg_reset_interval")
    @classmethod
    def check_reset_interval(cls, v: int | None) -> int | None:
        return _check_range("JPEG restart interval", v, 0, 65535)

    @field_validator("png_compression")
    @classmethod
    def check_png_compression(cls, v: int | None) -> int | None:
        return _check_range("PNG compression level", v, 0, 9)

    @field_validator("webp_quality")
    @classmethod
    def check_webp_quality(cls, v: int | None) -> int | None:
        return _check_range("WEBP quality", v, 1, 100)

    def encode_params(self) -> list[int]:
        """Flatten the given options into the ``[id, value, ...]`` list OpenCV expects."""
        pairs = [
            (cv2.IMWRITE_JPEG_QUALITY, self.jpeg_quality),
            (cv2.IMWRITE_JPEG_PROGRESSIVE, self.jpeg_progressive),
            (cv2.IMWRITE_JPEG_OPTIMIZE, self.jpeg_optimize),
            (cv2.IMWRITE_JPEG_RST_INTERVAL, self.jpeg_reset_interval),
            (cv2.IMWRITE_JPEG_LUMA_QUALITY, self.jpeg_luma_quality),
            (cv2.IMWRITE_JPEG_CHROMA_QUALITY, self.jpeg_chroma_quality),
            (cv2.IMWRITE_PNG_COMPRESSION, self.png_compression),
            (cv2.IMWRITE_PNG_STRATEGY, self.png_strategy),
            (cv2.IMWRITE_PNG_BILEVEL, self.png_bilevel),
            (cv2.IMWRITE_PXM_BINARY, self.pxm_binary),
            (cv2.IMWRITE_WEBP_QUALITY, self.webp_quality),
        ]
        params: list[int] = []
        for key, value in pairs:
            if value is not None:
                params.extend((key, int(value)))
        if self.params is not None and not self.params.is_empty:
            extra = self.params.to_vector(MxArray.to_int)
            if len(extra) % 2 != 0:
                raise InvalidArgument("Params vectors must contain pairs of id/value.")
            params.extend(extra)
        return params


def _image_for_writing(arg: MxArray, flip: bool) -> npt.NDArray[Any]:
    if arg.is_float:
        depth = cv2.CV_32F
    elif arg.class_name == "uint16":
        depth = cv2.CV_16U
    else:
        depth = cv2.CV_8U
    img = arg.to_mat(depth)
    return flip_channels(img, to_host=False) if flip else img


@mex("imwrite", nargin=2, options=WriteOptions)
def imwrite(rhs: list[MxArray], opts: WriteOptions, nlhs: int) -> list[Any]:
    """Save an image, or a cell of images as a multi-page file.

    With an output requested the success flag is returned, otherwise a
    failure raises.
    """
    filename = rhs[0].to_string()
    params = opts.encode_params()
    if rhs[1].is_cell:
        images = [_image_for_writing(img, opts.flip_channels) for img in rhs[1].to_vector()]
        success = cv2.imwritemulti(filename, images, params)
    else:
        success = cv2.imwrite(filename, _image_for_writing(rhs[1], opts.flip_channels), params)
    if nlhs > 0:
        return [bool(success)]
    if not success:
        raise LibraryOperationError(f"imwrite failed to write {filename}")
    return []


@mex("imencode", nargin=2, options=WriteOptions)
def imencode(rhs: list[MxArray], opts: WriteOptions, nlhs: int) -> list[Any]:
    """Encode an image into a ``uint8`` row vector; the first argument is the extension."""
    ext = rhs[0].to_string()
    success, buf = cv2.imencode(ext, _image_for_writing(rhs[1], opts.flip_channels), opts.encode_params())
    if not success:
        raise LibraryOperationError("imencode failed")
    return [MxArray.from_mat(np.asarray(buf).reshape(1, -1))]
