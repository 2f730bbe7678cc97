"""Colour conversion, thresholding, edge detection and geometric transforms."""

from collections.abc import Sequence
from typing import Any

import cv2
from pydantic import Field, field_validator

from mexopencv.core.adapter import mex
from mexopencv.core.constants import AdaptiveMethod, AutoThresholdType, BorderType, ColorConv, InterpType, ThreshType
from mexopencv.core.mxarray import MxArray
from mexopencv.core.options import Bool, Double, Int, OptionSet, ScalarOpt, SizeOpt, enum_of


class CvtColorOptions(OptionSet):
    dst_cn: Int = Field(0, alias="DstCn")


@mex("cvtColor", nargin=2, options=CvtColorOptions)
def cvt_color(rhs: list[MxArray], opts: CvtColorOptions, nlhs: int) -> list[Any]:
    code = ColorConv[rhs[1].to_string()]
    dst = cv2.cvtColor(rhs[0].to_mat(), code, dstCn=opts.dst_cn)
    return [MxArray.from_mat(dst)]


class ThresholdOptions(OptionSet):
    max_value: Double = Field(255.0, alias="MaxValue")
    thresh_type: enum_of(ThreshType) = Field(cv2.THRESH_BINARY, alias="Type")


@mex("threshold", nargin=2, nargout=2, options=ThresholdOptions)
def threshold(rhs: list[MxArray], opts: ThresholdOptions, nlhs: int) -> list[Any]:
    """Fixed-level threshold; the level may be ``"Otsu"`` or ``"Triangle"``.

    The second output is the threshold actually used, which is the computed
    one for the automatic methods.
    """
    thresh_type = opts.thresh_type
    thresh = 0.0
    if rhs[1].is_char:
        thresh_type |= AutoThresholdType[rhs[1].to_string()]
    else:
        thresh = rhs[1].to_double()
    used, dst = cv2.threshold(rhs[0].to_mat(), thresh, opts.max_value, thresh_type)
    outputs = [MxArray.from_mat(dst)]
    if nlhs > 1:
        outputs.append(float(used))
    return outputs


class AdaptiveThresholdOptions(OptionSet):
    adaptive_method: enum_of(AdaptiveMethod) = Field(cv2.ADAPTIVE_THRESH_MEAN_C, alias="AdaptiveMethod")
    threshold_type: enum_of(ThreshType) = Field(cv2.THRESH_BINARY, alias="ThresholdType")
    block_size: Int = Field(3, alias="BlockSize")
    c: Double = Field(5.0, alias="C")

    @field_validator("threshold_type")
    @classmethod
    def check_threshold_type(cls, v: int) -> int:
        if v not in (cv2.THRESH_BINARY, cv2.THRESH_BINARY_INV):
            raise ValueError("Invalid threshold type")
        return v

    @field_validator("block_size")
    @classmethod
    def check_block_size(cls, v: int) -> int:
        if v % 2 != 1:
            raise ValueError("BlockSize must be odd")
        return v


@mex("adaptiveThreshold", nargin=2, options=AdaptiveThresholdOptions)
def adaptive_threshold(rhs: list[MxArray], opts: AdaptiveThresholdOptions, nlhs: int) -> list[Any]:
    src = rhs[0].to_mat(cv2.CV_8U)
    dst = cv2.adaptiveThreshold(
        src, rhs[1].to_double(), opts.adaptive_method, opts.threshold_type, opts.block_size, opts.c
    )
    return [MxArray.from_mat(dst)]


class CannyOptions(OptionSet):
    aperture_size: Int = Field(3, alias="ApertureSize")
    l2_gradient: Bool = Field(False, alias="L2Gradient")


@mex("Canny", nargin=2, options=CannyOptions)
def canny(rhs: list[MxArray], opts: CannyOptions, nlhs: int) -> list[Any]:
    """Edge detection with either one threshold or a ``[t1 t2]`` pair.

    A single threshold is taken as the upper one and the lower one is set to
    0.4 times it.
    """
    if rhs[1].numel == 1:
        threshold1 = rhs[1].to_double()
        threshold2 = 0.4 * threshold1
    else:
        threshold1, threshold2 = rhs[1].to_scalar()[:2]
    image = rhs[0].to_mat(cv2.CV_8U)
    edges = cv2.Canny(image, threshold1, threshold2, apertureSize=opts.aperture_size, L2gradient=opts.l2_gradient)
    return [MxArray.from_mat(edges)]


@mex("equalizeHist", nargin=1)
def equalize_hist(rhs: list[MxArray], opts: None, nlhs: int) -> list[Any]:
    return [MxArray.from_mat(cv2.equalizeHist(rhs[0].to_mat(cv2.CV_8U)))]


def _resize_nargin(rhs: Sequence[MxArray]) -> int:
    # resize(src, fx, fy, ...) when both factors are numeric scalars
    if len(rhs) >= 3 and all(a.is_numeric and a.is_scalar for a in rhs[1:3]):
        return 3
    return 2


class ResizeOptions(OptionSet):
    interpolation: enum_of(InterpType) = Field(cv2.INTER_LINEAR, alias="Interpolation")


@mex("resize", nargin=_resize_nargin, options=ResizeOptions)
def resize(rhs: list[MxArray], opts: ResizeOptions, nlhs: int) -> list[Any]:
    src = rhs[0].to_mat()
    if len(rhs) == 3:
        dst = cv2.resize(src, (0, 0), fx=rhs[1].to_double(), fy=rhs[2].to_double(), interpolation=opts.interpolation)
    else:
        dst = cv2.resize(src, rhs[1].to_size(), interpolation=opts.interpolation)
    return [MxArray.from_mat(dst)]


class WarpAffineOptions(OptionSet):
    dsize: SizeOpt | None = Field(None, alias="DSize")
    interpolation: enum_of(InterpType) = Field(cv2.INTER_LINEAR, alias="Interpolation")
    warp_inverse: Bool = Field(False, alias="WarpInverse")
    border_type: enum_of(BorderType) = Field(cv2.BORDER_CONSTANT, alias="BorderType")
    border_value: ScalarOpt = Field((0.0, 0.0, 0.0, 0.0), alias="BorderValue")


@mex("warpAffine", nargin=2, options=WarpAffineOptions)
def warp_affine(rhs: list[MxArray], opts: WarpAffineOptions, nlhs: int) -> list[Any]:
    src = rhs[0].to_mat()
    M = rhs[1].to_mat(cv2.CV_64F)
    dsize = opts.dsize if opts.dsize is not None else (src.shape[1], src.shape[0])
    flags = opts.interpolation | (cv2.WARP_INVERSE_MAP if opts.warp_inverse else 0)
    dst = cv2.warpAffine(
        src, M, dsize, flags=flags, borderMode=opts.border_type, borderValue=opts.border_value
    )
    return [MxArray.from_mat(dst)]


@mex("getRotationMatrix2D", nargin=3)
def get_rotation_matrix_2d(rhs: list[MxArray], opts: None, nlhs: int) -> list[Any]:
    M = cv2.getRotationMatrix2D(rhs[0].to_point2f(), rhs[1].to_double(), rhs[2].to_double())
    return [MxArray.from_mat(M)]
