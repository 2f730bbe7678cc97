"""Adapters for the extended image processing module (``cv2.ximgproc``)."""

from typing import Any

import cv2
from pydantic import Field

from mexopencv.core.adapter import mex
from mexopencv.core.constants import AngleRangeOption, HoughDeskewOption, HoughOp
from mexopencv.core.mxarray import MxArray
from mexopencv.core.options import DepthOpt, OptionSet, enum_of


class FastHoughTransformOptions(OptionSet):
    ddepth: DepthOpt = Field(cv2.CV_32S, alias="DDepth")
    angle_range: enum_of(AngleRangeOption) = Field(AngleRangeOption["ARO_315_135"], alias="AngleRange")
    op: enum_of(HoughOp) = Field(HoughOp["FHT_ADD"], alias="Op")
    make_skew: enum_of(HoughDeskewOption) = Field(HoughDeskewOption["HDO_DESKEW"], alias="MakeSkew")


@mex("FastHoughTransform", nargin=1, options=FastHoughTransformOptions)
def fast_hough_transform(rhs: list[MxArray], opts: FastHoughTransformOptions, nlhs: int) -> list[Any]:
    """Fast Hough transform of a single-channel image.

    Each column of the result accumulates the image along one family of
    lines, as selected by ``AngleRange``.
    """
    src = rhs[0].to_mat()
    dst = cv2.ximgproc.FastHoughTransform(
        src, opts.ddepth, angleRange=opts.angle_range, op=opts.op, makeSkew=opts.make_skew
    )
    return [MxArray.from_mat(dst)]
