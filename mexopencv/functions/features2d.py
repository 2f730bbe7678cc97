"""Corner and keypoint detection, and keypoint/match drawing.

Keypoints cross the host boundary as struct arrays with the fields
``pt, size, angle, response, octave, class_id`` and matches as struct arrays
with ``queryIdx, trainIdx, imgIdx, distance``.
"""

from typing import Any

import cv2
import numpy as np
from pydantic import Field

from mexopencv.core.adapter import mex
from mexopencv.core.constants import FASTType, TermCritType
from mexopencv.core.mxarray import MxArray
from mexopencv.core.options import (
    Bool,
    Double,
    Int,
    MaskOpt,
    OptionSet,
    Raw,
    ScalarOpt,
    SizeOpt,
    TermCriteriaOpt,
    enum_of,
)

# Values of cv::DrawMatchesFlags
DRAW_OVER_OUTIMG = 1
NOT_DRAW_SINGLE_POINTS = 2
DRAW_RICH_KEYPOINTS = 4

RANDOM_COLOR = (-1.0, -1.0, -1.0, -1.0)


class GoodFeaturesToTrackOptions(OptionSet):
    max_corners: Int = Field(1000, alias="MaxCorners")
    quality_level: Double = Field(0.01, alias="QualityLevel")
    min_distance: Double = Field(2.0, alias="MinDistance")
    mask: MaskOpt = Field(None, alias="Mask")
    block_size: Int = Field(3, alias="BlockSize")
    use_harris_detector: Bool = Field(False, alias="UseHarrisDetector")
    k: Double = Field(0.04, alias="K")


@mex("goodFeaturesToTrack", nargin=1, options=GoodFeaturesToTrackOptions)
def good_features_to_track(rhs: list[MxArray], opts: GoodFeaturesToTrackOptions, nlhs: int) -> list[Any]:
    """Strongest corners of an image, as a cell of ``[x y]`` points."""
    image = rhs[0].to_mat(cv2.CV_8U if rhs[0].class_name == "uint8" else cv2.CV_32F)
    corners = cv2.goodFeaturesToTrack(
        image,
        opts.max_corners,
        opts.quality_level,
        opts.min_distance,
        mask=opts.mask,
        blockSize=opts.block_size,
        useHarrisDetector=opts.use_harris_detector,
        k=opts.k,
    )
    return [MxArray.from_points(corners)]


class CornerSubPixOptions(OptionSet):
    win_size: SizeOpt = Field((3, 3), alias="WinSize")
    zero_zone: SizeOpt = Field((-1, -1), alias="ZeroZone")
    criteria: TermCriteriaOpt = Field((TermCritType["Count+EPS"], 50, 0.001), alias="Criteria")


@mex("cornerSubPix", nargin=2, options=CornerSubPixOptions)
def corner_sub_pix(rhs: list[MxArray], opts: CornerSubPixOptions, nlhs: int) -> list[Any]:
    image = rhs[0].to_mat(cv2.CV_8U if rhs[0].class_name == "uint8" else cv2.CV_32F)
    corners = rhs[1].to_points(2, cv2.CV_32F)
    refined = cv2.cornerSubPix(image, corners, opts.win_size, opts.zero_zone, opts.criteria)
    return [MxArray.from_points(refined)]


class FASTOptions(OptionSet):
    threshold: Int = Field(10, alias="Threshold")
    nonmax_suppression: Bool = Field(True, alias="NonmaxSuppression")
    fast_type: enum_of(FASTType) = Field(FASTType["TYPE_9_16"], alias="Type")


@mex("FAST", nargin=1, options=FASTOptions)
def fast(rhs: list[MxArray], opts: FASTOptions, nlhs: int) -> list[Any]:
    detector = cv2.FastFeatureDetector_create(
        threshold=opts.threshold, nonmaxSuppression=opts.nonmax_suppression, type=opts.fast_type
    )
    keypoints = detector.detect(rhs[0].to_mat(cv2.CV_8U))
    return [MxArray.from_keypoints(keypoints)]


class DrawKeypointsOptions(OptionSet):
    color: ScalarOpt = Field(RANDOM_COLOR, alias="Color")
    draw_rich_keypoints: Bool = Field(False, alias="DrawRichKeypoints")
    out_image: Raw = Field(None, alias="OutImage")


@mex("drawKeypoints", nargin=2, options=DrawKeypointsOptions)
def draw_keypoints(rhs: list[MxArray], opts: DrawKeypointsOptions, nlhs: int) -> list[Any]:
    flags = DRAW_RICH_KEYPOINTS if opts.draw_rich_keypoints else 0
    out_image = None
    if opts.out_image is not None and not opts.out_image.is_empty:
        out_image = opts.out_image.to_mat(cv2.CV_8U)
        flags |= DRAW_OVER_OUTIMG
    image = rhs[0].to_mat(cv2.CV_8U)
    out = cv2.drawKeypoints(image, rhs[1].to_keypoints(), out_image, color=opts.color, flags=flags)
    return [MxArray.from_mat(out)]


class DrawMatchesOptions(OptionSet):
    match_color: ScalarOpt = Field(RANDOM_COLOR, alias="MatchColor")
    single_point_color: ScalarOpt = Field(RANDOM_COLOR, alias="SinglePointColor")
    matches_mask: Raw = Field(None, alias="MatchesMask")
    not_draw_single_points: Bool = Field(False, alias="NotDrawSinglePoints")
    draw_rich_keypoints: Bool = Field(False, alias="DrawRichKeypoints")
    out_image: Raw = Field(None, alias="OutImage")


@mex("drawMatches", nargin=5, options=DrawMatchesOptions)
def draw_matches(rhs: list[MxArray], opts: DrawMatchesOptions, nlhs: int) -> list[Any]:
    """Draw the matches between two images side by side.

    Arguments are ``img1, keypoints1, img2, keypoints2, matches1to2``.
    """
    flags = 0
    if opts.not_draw_single_points:
        flags |= NOT_DRAW_SINGLE_POINTS
    if opts.draw_rich_keypoints:
        flags |= DRAW_RICH_KEYPOINTS
    out_image = None
    if opts.out_image is not None and not opts.out_image.is_empty:
        out_image = opts.out_image.to_mat(cv2.CV_8U)
        flags |= DRAW_OVER_OUTIMG
    matches_mask = None
    if opts.matches_mask is not None and not opts.matches_mask.is_empty:
        matches_mask = np.asarray(opts.matches_mask.to_mat(cv2.CV_8S)).ravel().tolist()
    out = cv2.drawMatches(
        rhs[0].to_mat(cv2.CV_8U),
        rhs[1].to_keypoints(),
        rhs[2].to_mat(cv2.CV_8U),
        rhs[3].to_keypoints(),
        rhs[4].to_dmatches(),
        out_image,
        matchColor=opts.match_color,
        singlePointColor=opts.single_point_color,
        matchesMask=matches_mask,
        flags=flags,
    )
    return [MxArray.from_mat(out)]
