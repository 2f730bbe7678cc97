"""Image filtering adapters.

Smoothing, derivative and morphological filters. Each adapter takes the
source image as its only required argument (``morphologyEx`` also takes the
operation) and returns the filtered image with the source depth unless a
``DDepth`` option says otherwise.
"""

import sys
from typing import Any

import cv2
from pydantic import Field, field_validator

from mexopencv.core.adapter import mex
from mexopencv.core.constants import BorderType, MorphShape, MorphType
from mexopencv.core.mxarray import MxArray
from mexopencv.core.options import (
    DepthOpt,
    Double,
    Int,
    OptionSet,
    PointOpt,
    Raw,
    ScalarOpt,
    SizeOpt,
    enum_of,
)

# the library default for morphology borders, every channel at DBL_MAX
MORPH_BORDER_VALUE = (sys.float_info.max,) * 4


class GaussianBlurOptions(OptionSet):
    ksize: SizeOpt = Field((5, 5), alias="KSize")
    sigma_x: Double = Field(0.0, alias="SigmaX")
    sigma_y: Double = Field(0.0, alias="SigmaY")
    border_type: enum_of(BorderType) = Field(cv2.BORDER_DEFAULT, alias="BorderType")


@mex("GaussianBlur", nargin=1, options=GaussianBlurOptions)
def gaussian_blur(rhs: list[MxArray], opts: GaussianBlurOptions, nlhs: int) -> list[Any]:
    src = rhs[0].to_mat()
    dst = cv2.GaussianBlur(src, opts.ksize, opts.sigma_x, sigmaY=opts.sigma_y, borderType=opts.border_type)
    return [MxArray.from_mat(dst)]


class BlurOptions(OptionSet):
    ksize: SizeOpt = Field((5, 5), alias="KSize")
    anchor: PointOpt = Field((-1, -1), alias="Anchor")
    border_type: enum_of(BorderType) = Field(cv2.BORDER_DEFAULT, alias="BorderType")


@mex("blur", nargin=1, options=BlurOptions)
def blur(rhs: list[MxArray], opts: BlurOptions, nlhs: int) -> list[Any]:
    src = rhs[0].to_mat()
    dst = cv2.blur(src, opts.ksize, anchor=opts.anchor, borderType=opts.border_type)
    return [MxArray.from_mat(dst)]


class MedianBlurOptions(OptionSet):
    ksize: Int = Field(5, alias="KSize")

    @field_validator("ksize")
    @classmethod
    def check_ksize(cls, v: int) -> int:
        if v % 2 != 1:
            raise ValueError("KSize must be odd")
        return v


@mex("medianBlur", nargin=1, options=MedianBlurOptions)
def median_blur(rhs: list[MxArray], opts: MedianBlurOptions, nlhs: int) -> list[Any]:
    return [MxArray.from_mat(cv2.medianBlur(rhs[0].to_mat(), opts.ksize))]


class BilateralFilterOptions(OptionSet):
    diameter: Int = Field(7, alias="Diameter")
    sigma_color: Double = Field(50.0, alias="SigmaColor")
    sigma_space: Double = Field(50.0, alias="SigmaSpace")
    border_type: enum_of(BorderType) = Field(cv2.BORDER_DEFAULT, alias="BorderType")


@mex("bilateralFilter", nargin=1, options=BilateralFilterOptions)
def bilateral_filter(rhs: list[MxArray], opts: BilateralFilterOptions, nlhs: int) -> list[Any]:
    src = rhs[0].to_mat()
    dst = cv2.bilateralFilter(src, opts.diameter, opts.sigma_color, opts.sigma_space, borderType=opts.border_type)
    return [MxArray.from_mat(dst)]


class SobelOptions(OptionSet):
    ddepth: DepthOpt = Field(-1, alias="DDepth")
    xorder: Int = Field(1, alias="XOrder")
    yorder: Int = Field(0, alias="YOrder")
    ksize: Int = Field(3, alias="KSize")
    scale: Double = Field(1.0, alias="Scale")
    delta: Double = Field(0.0, alias="Delta")
    border_type: enum_of(BorderType) = Field(cv2.BORDER_DEFAULT, alias="BorderType")


@mex("Sobel", nargin=1, options=SobelOptions)
def sobel(rhs: list[MxArray], opts: SobelOptions, nlhs: int) -> list[Any]:
    src = rhs[0].to_mat()
    dst = cv2.Sobel(
        src,
        opts.ddepth,
        opts.xorder,
        opts.yorder,
        ksize=opts.ksize,
        scale=opts.scale,
        delta=opts.delta,
        borderType=opts.border_type,
    )
    return [MxArray.from_mat(dst)]


class LaplacianOptions(OptionSet):
    ddepth: DepthOpt = Field(-1, alias="DDepth")
    ksize: Int = Field(1, alias="KSize")
    scale: Double = Field(1.0, alias="Scale")
    delta: Double = Field(0.0, alias="Delta")
    border_type: enum_of(BorderType) = Field(cv2.BORDER_DEFAULT, alias="BorderType")


@mex("Laplacian", nargin=1, options=LaplacianOptions)
def laplacian(rhs: list[MxArray], opts: LaplacianOptions, nlhs: int) -> list[Any]:
    src = rhs[0].to_mat()
    dst = cv2.Laplacian(
        src, opts.ddepth, ksize=opts.ksize, scale=opts.scale, delta=opts.delta, borderType=opts.border_type
    )
    return [MxArray.from_mat(dst)]


class MorphologyOptions(OptionSet):
    """Options shared by erode, dilate and morphologyEx.

    ``Element`` stays a host value because its depth depends on the operation.
    """

    element: Raw = Field(None, alias="Element")
    anchor: PointOpt = Field((-1, -1), alias="Anchor")
    iterations: Int = Field(1, alias="Iterations")
    border_type: enum_of(BorderType) = Field(cv2.BORDER_CONSTANT, alias="BorderType")
    border_value: ScalarOpt = Field(MORPH_BORDER_VALUE, alias="BorderValue")

    def kernel(self, depth: int = cv2.CV_8U) -> Any:
        if self.element is None or self.element.is_empty:
            return None
        return self.element.to_mat(depth)


@mex("erode", nargin=1, options=MorphologyOptions)
def erode(rhs: list[MxArray], opts: MorphologyOptions, nlhs: int) -> list[Any]:
    dst = cv2.erode(
        rhs[0].to_mat(),
        opts.kernel(),
        anchor=opts.anchor,
        iterations=opts.iterations,
        borderType=opts.border_type,
        borderValue=opts.border_value,
    )
    return [MxArray.from_mat(dst)]


@mex("dilate", nargin=1, options=MorphologyOptions)
def dilate(rhs: list[MxArray], opts: MorphologyOptions, nlhs: int) -> list[Any]:
    dst = cv2.dilate(
        rhs[0].to_mat(),
        opts.kernel(),
        anchor=opts.anchor,
        iterations=opts.iterations,
        borderType=opts.border_type,
        borderValue=opts.border_value,
    )
    return [MxArray.from_mat(dst)]


@mex("morphologyEx", nargin=2, options=MorphologyOptions)
def morphology_ex(rhs: list[MxArray], opts: MorphologyOptions, nlhs: int) -> list[Any]:
    op = MorphType[rhs[1].to_string()]
    # hit-or-miss kernels hold -1/0/1
    kernel = opts.kernel(cv2.CV_32S if op == cv2.MORPH_HITMISS else cv2.CV_8U)
    dst = cv2.morphologyEx(
        rhs[0].to_mat(),
        op,
        kernel,
        anchor=opts.anchor,
        iterations=opts.iterations,
        borderType=opts.border_type,
        borderValue=opts.border_value,
    )
    return [MxArray.from_mat(dst)]


class StructuringElementOptions(OptionSet):
    shape: enum_of(MorphShape) = Field(cv2.MORPH_RECT, alias="Shape")
    ksize: SizeOpt = Field((3, 3), alias="KSize")
    anchor: PointOpt = Field((-1, -1), alias="Anchor")


@mex("getStructuringElement", nargin=0, options=StructuringElementOptions)
def get_structuring_element(rhs: list[MxArray], opts: StructuringElementOptions, nlhs: int) -> list[Any]:
    elem = cv2.getStructuringElement(opts.shape, opts.ksize, anchor=opts.anchor)
    return [MxArray.from_mat(elem)]
