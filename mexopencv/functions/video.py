"""Optical flow adapters.

Sparse flow tracks a set of points between two frames with the pyramidal
Lucas-Kanade method; dense flow estimates a displacement for every pixel with
Farneback's polynomial expansion.
"""

from typing import Any

import cv2
import numpy as np
from pydantic import Field

from mexopencv.core.adapter import mex
from mexopencv.core.constants import TermCritType
from mexopencv.core.errors import InvalidArgument
from mexopencv.core.mxarray import MxArray
from mexopencv.core.options import Bool, Double, Int, OptionSet, Raw, SizeOpt, TermCriteriaOpt


class OpticalFlowPyrLKOptions(OptionSet):
    initial_flow: Raw = Field(None, alias="InitialFlow")
    win_size: SizeOpt = Field((21, 21), alias="WinSize")
    max_level: Int = Field(3, alias="MaxLevel")
    criteria: TermCriteriaOpt = Field((TermCritType["Count+EPS"], 30, 0.01), alias="Criteria")
    get_min_eigenvals: Bool = Field(False, alias="GetMinEigenvals")
    min_eig_threshold: Double = Field(1e-4, alias="MinEigThreshold")


@mex("calcOpticalFlowPyrLK", nargin=3, nargout=3, options=OpticalFlowPyrLKOptions)
def calc_optical_flow_pyr_lk(rhs: list[MxArray], opts: OpticalFlowPyrLKOptions, nlhs: int) -> list[Any]:
    """Track ``prevPts`` from ``prevImg`` into ``nextImg``.

    Outputs are the tracked points, a ``uint8`` status column (1 where the
    flow was found) and the error of each point. With ``GetMinEigenvals``
    the error is the minimum eigenvalue of the spatial gradient matrix.
    """
    prev_img = rhs[0].to_mat(cv2.CV_8U)
    next_img = rhs[1].to_mat(cv2.CV_8U)
    prev_pts = rhs[2].to_points(2, cv2.CV_32F).reshape(-1, 1, 2)

    flags = 0
    next_pts = None
    if opts.initial_flow is not None and not opts.initial_flow.is_empty:
        next_pts = opts.initial_flow.to_points(2, cv2.CV_32F).reshape(-1, 1, 2)
        if len(next_pts) != len(prev_pts):
            raise InvalidArgument("InitialFlow must hold one point per input point")
        flags |= cv2.OPTFLOW_USE_INITIAL_FLOW
    if opts.get_min_eigenvals:
        flags |= cv2.OPTFLOW_LK_GET_MIN_EIGENVALS

    if len(prev_pts) == 0:
        status = np.zeros((0, 1), dtype=np.uint8)
        err = np.zeros((0, 1), dtype=np.float32)
    else:
        next_pts, status, err = cv2.calcOpticalFlowPyrLK(
            prev_img,
            next_img,
            prev_pts,
            next_pts,
            winSize=opts.win_size,
            maxLevel=opts.max_level,
            criteria=opts.criteria,
            flags=flags,
            minEigThreshold=opts.min_eig_threshold,
        )

    outputs = [MxArray.from_points(next_pts)]
    if nlhs > 1:
        outputs.append(MxArray.from_mat(status))
    if nlhs > 2:
        outputs.append(MxArray.from_mat(err))
    return outputs


class OpticalFlowFarnebackOptions(OptionSet):
    initial_flow: Raw = Field(None, alias="InitialFlow")
    pyr_scale: Double = Field(0.5, alias="PyrScale")
    levels: Int = Field(1, alias="Levels")
    win_size: Int = Field(3, alias="WinSize")
    iterations: Int = Field(10, alias="Iterations")
    poly_n: Int = Field(5, alias="PolyN")
    poly_sigma: Double = Field(1.1, alias="PolySigma")
    gaussian: Bool = Field(False, alias="Gaussian")


@mex("calcOpticalFlowFarneback", nargin=2, options=OpticalFlowFarnebackOptions)
def calc_optical_flow_farneback(rhs: list[MxArray], opts: OpticalFlowFarnebackOptions, nlhs: int) -> list[Any]:
    """Dense flow between two 8-bit single-channel frames.

    Returns an H-by-W-by-2 ``single`` array of ``(dx, dy)`` displacements.
    """
    prev_img = rhs[0].to_mat(cv2.CV_8U)
    next_img = rhs[1].to_mat(cv2.CV_8U)

    flags = 0
    flow = None
    if opts.initial_flow is not None and not opts.initial_flow.is_empty:
        flow = opts.initial_flow.to_mat(cv2.CV_32F, 2)
        if flow.shape[:2] != prev_img.shape[:2]:
            raise InvalidArgument("InitialFlow must have the size of the input images")
        flags |= cv2.OPTFLOW_USE_INITIAL_FLOW
    if opts.gaussian:
        flags |= cv2.OPTFLOW_FARNEBACK_GAUSSIAN

    flow = cv2.calcOpticalFlowFarneback(
        prev_img,
        next_img,
        flow,
        opts.pyr_scale,
        opts.levels,
        opts.win_size,
        opts.iterations,
        opts.poly_n,
        opts.poly_sigma,
        flags,
    )
    return [MxArray.from_mat(flow)]
