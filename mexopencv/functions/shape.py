"""Structural analysis and shape descriptors.

Point sets are accepted either as a cell array of ``[x y]`` vectors or as an
N-by-2 numeric matrix. Integer (``int32``) input keeps integer coordinates,
anything else is processed in single precision.
"""

import math
from typing import Any

import cv2
import numpy as np
from numpy import typing as npt
from pydantic import Field

from mexopencv.core.adapter import mex
from mexopencv.core.constants import ContourApprox, ContourMode, HoughModes
from mexopencv.core.errors import InvalidArgument
from mexopencv.core.mxarray import MxArray
from mexopencv.core.options import Bool, Double, Int, OptionSet, PointOpt, enum_of


def _points(arg: MxArray) -> npt.NDArray[Any]:
    if arg.is_cell:
        first = arg.at(0) if arg.numel else None
        integer = first is not None and first.class_name == "int32"
    elif arg.is_numeric:
        integer = arg.class_name == "int32"
    else:
        raise InvalidArgument("Invalid input, expected a set of points")
    return arg.to_points(2, cv2.CV_32S if integer else cv2.CV_32F)


def _rows(arr: npt.NDArray[Any] | None, width: int) -> list[npt.NDArray[Any]]:
    if arr is None:
        return []
    return [MxArray.from_mat(row.reshape(1, width)) for row in np.asarray(arr).reshape(-1, width)]


class FindContoursOptions(OptionSet):
    mode: enum_of(ContourMode) = Field(cv2.RETR_EXTERNAL, alias="Mode")
    method: enum_of(ContourApprox) = Field(cv2.CHAIN_APPROX_NONE, alias="Method")
    offset: PointOpt = Field((0, 0), alias="Offset")


@mex("findContours", nargin=1, nargout=2, options=FindContoursOptions)
def find_contours(rhs: list[MxArray], opts: FindContoursOptions, nlhs: int) -> list[Any]:
    """Find contours in a binary image.

    Returns a cell of N-by-2 ``double`` matrices and, as second output, a
    cell of ``[next previous child parent]`` rows.
    """
    image = rhs[0].to_mat(cv2.CV_32S if rhs[0].class_name == "int32" else cv2.CV_8U)
    # OpenCV 3 also returns the modified image first
    contours, hierarchy = cv2.findContours(image, opts.mode, opts.method, offset=opts.offset)[-2:]
    outputs: list[Any] = [[MxArray.from_mat(c.reshape(-1, 2), "double") for c in contours]]
    if nlhs > 1:
        outputs.append(_rows(hierarchy, 4))
    return outputs


class ContourAreaOptions(OptionSet):
    oriented: Bool = Field(False, alias="Oriented")


@mex("contourArea", nargin=1, options=ContourAreaOptions)
def contour_area(rhs: list[MxArray], opts: ContourAreaOptions, nlhs: int) -> list[Any]:
    return [float(cv2.contourArea(_points(rhs[0]), opts.oriented))]


@mex("boundingRect", nargin=1)
def bounding_rect(rhs: list[MxArray], opts: None, nlhs: int) -> list[Any]:
    """Bounding box ``[x y w h]`` of a point set or of the nonzero pixels of an image."""
    arg = rhs[0]
    if arg.is_logical or arg.class_name == "uint8":
        rect = cv2.boundingRect(arg.to_mat(cv2.CV_8U))
    else:
        rect = cv2.boundingRect(_points(arg))
    return [MxArray.from_rect(rect)]


@mex("minAreaRect", nargin=1)
def min_area_rect(rhs: list[MxArray], opts: None, nlhs: int) -> list[Any]:
    points = rhs[0].to_points(2, cv2.CV_32F)
    return [MxArray.from_rotated_rect(cv2.minAreaRect(points))]


@mex("fitEllipse", nargin=1)
def fit_ellipse(rhs: list[MxArray], opts: None, nlhs: int) -> list[Any]:
    return [MxArray.from_rotated_rect(cv2.fitEllipse(_points(rhs[0])))]


class MomentsOptions(OptionSet):
    binary_image: Bool = Field(False, alias="BinaryImage")


@mex("moments", nargin=1, options=MomentsOptions)
def moments(rhs: list[MxArray], opts: MomentsOptions, nlhs: int) -> list[Any]:
    """Spatial, central and normalized central moments of an image or polygon."""
    arg = rhs[0]
    if arg.is_numeric or arg.is_logical:
        m = cv2.moments(arg.to_mat(), opts.binary_image or arg.is_logical)
    elif arg.is_cell:
        m = cv2.moments(_points(arg), opts.binary_image)
    else:
        raise InvalidArgument("Invalid input")
    return [MxArray.from_moments(m)]


class HoughCirclesOptions(OptionSet):
    method: enum_of(HoughModes) = Field(cv2.HOUGH_GRADIENT, alias="Method")
    dp: Double = Field(1.0, alias="DP")
    # rows / 8 when not given
    min_dist: Double | None = Field(None, alias="MinDist")
    param1: Double = Field(100.0, alias="Param1")
    param2: Double = Field(100.0, alias="Param2")
    min_radius: Int = Field(0, alias="MinRadius")
    max_radius: Int = Field(0, alias="MaxRadius")


@mex("HoughCircles", nargin=1, options=HoughCirclesOptions)
def hough_circles(rhs: list[MxArray], opts: HoughCirclesOptions, nlhs: int) -> list[Any]:
    """Detect circles; returns a cell of ``[x y radius]`` rows."""
    image = rhs[0].to_mat(cv2.CV_8U)
    min_dist = opts.min_dist if opts.min_dist is not None else image.shape[0] / 8
    circles = cv2.HoughCircles(
        image,
        opts.method,
        opts.dp,
        min_dist,
        param1=opts.param1,
        param2=opts.param2,
        minRadius=opts.min_radius,
        maxRadius=opts.max_radius,
    )
    return [_rows(circles, 3)]


class HoughLinesPOptions(OptionSet):
    rho: Double = Field(1.0, alias="Rho")
    theta: Double = Field(math.pi / 180, alias="Theta")
    threshold: Int = Field(80, alias="Threshold")
    min_line_length: Double = Field(0.0, alias="MinLineLength")
    max_line_gap: Double = Field(0.0, alias="MaxLineGap")


@mex("HoughLinesP", nargin=1, options=HoughLinesPOptions)
def hough_lines_p(rhs: list[MxArray], opts: HoughLinesPOptions, nlhs: int) -> list[Any]:
    """Probabilistic Hough transform; returns a cell of ``[x1 y1 x2 y2]`` rows."""
    image = rhs[0].to_mat(cv2.CV_8U)
    lines = cv2.HoughLinesP(
        image,
        opts.rho,
        opts.theta,
        opts.threshold,
        minLineLength=opts.min_line_length,
        maxLineGap=opts.max_line_gap,
    )
    return [_rows(lines, 4)]
