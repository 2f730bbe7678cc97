"""Camera geometry adapters."""

import sys
from typing import Annotated, Any

import cv2
import numpy as np
from pydantic import Field

from mexopencv.core.adapter import mex
from mexopencv.core.constants import HomographyMethod, TermCritType
from mexopencv.core.errors import InvalidArgument
from mexopencv.core.mxarray import MxArray
from mexopencv.core.options import Bool, Double, Int, MatOpt, OptionSet, TermCriteriaOpt, from_host

DBL_EPSILON = sys.float_info.epsilon


@mex("Rodrigues", nargin=1, nargout=2)
def rodrigues(rhs: list[MxArray], opts: None, nlhs: int) -> list[Any]:
    """Convert between a rotation vector and a rotation matrix.

    The second output is the Jacobian of the conversion.
    """
    src = rhs[0].to_mat(cv2.CV_32F if rhs[0].class_name == "single" else cv2.CV_64F)
    dst, jacobian = cv2.Rodrigues(src)
    outputs = [MxArray.from_mat(dst)]
    if nlhs > 1:
        outputs.append(MxArray.from_mat(jacobian))
    return outputs


def _to_method(value: MxArray) -> int:
    return HomographyMethod[value.to_string()] if value.is_char else value.to_int()


class FindHomographyOptions(OptionSet):
    method: Annotated[int, from_host(_to_method)] = Field(0, alias="Method")
    ransac_reproj_threshold: Double = Field(3.0, alias="RansacReprojThreshold")
    max_iters: Int = Field(2000, alias="MaxIters")
    confidence: Double = Field(0.995, alias="Confidence")


@mex("findHomography", nargin=2, nargout=2, options=FindHomographyOptions)
def find_homography(rhs: list[MxArray], opts: FindHomographyOptions, nlhs: int) -> list[Any]:
    """Perspective transform between two point sets.

    The second output is the inlier mask, one ``uint8`` entry per point pair.
    """
    src_points = rhs[0].to_points(2, cv2.CV_64F)
    dst_points = rhs[1].to_points(2, cv2.CV_64F)
    H, mask = cv2.findHomography(
        src_points,
        dst_points,
        opts.method,
        opts.ransac_reproj_threshold,
        maxIters=opts.max_iters,
        confidence=opts.confidence,
    )
    outputs = [MxArray.from_mat(H)]
    if nlhs > 1:
        outputs.append(MxArray.from_mat(mask))
    return outputs


# option name -> cv::CALIB_* flag, set when the option is true
CALIBRATION_FLAGS = {
    "UseIntrinsicGuess": cv2.CALIB_USE_INTRINSIC_GUESS,
    "FixPrincipalPoint": cv2.CALIB_FIX_PRINCIPAL_POINT,
    "FixAspectRatio": cv2.CALIB_FIX_ASPECT_RATIO,
    "ZeroTangentDist": cv2.CALIB_ZERO_TANGENT_DIST,
    "FixK1": cv2.CALIB_FIX_K1,
    "FixK2": cv2.CALIB_FIX_K2,
    "FixK3": cv2.CALIB_FIX_K3,
    "FixK4": cv2.CALIB_FIX_K4,
    "FixK5": cv2.CALIB_FIX_K5,
    "FixK6": cv2.CALIB_FIX_K6,
    "RationalModel": cv2.CALIB_RATIONAL_MODEL,
    "ThinPrismModel": cv2.CALIB_THIN_PRISM_MODEL,
    "FixS1S2S3S4": cv2.CALIB_FIX_S1_S2_S3_S4,
    "TiltedModel": cv2.CALIB_TILTED_MODEL,
    "FixTauXTauY": cv2.CALIB_FIX_TAUX_TAUY,
}


class CalibrateCameraOptions(OptionSet):
    camera_matrix: MatOpt = Field(None, alias="CameraMatrix")
    dist_coeffs: MatOpt = Field(None, alias="DistCoeffs")
    use_intrinsic_guess: Bool = Field(False, alias="UseIntrinsicGuess")
    fix_principal_point: Bool = Field(False, alias="FixPrincipalPoint")
    fix_aspect_ratio: Bool = Field(False, alias="FixAspectRatio")
    zero_tangent_dist: Bool = Field(False, alias="ZeroTangentDist")
    fix_k1: Bool = Field(False, alias="FixK1")
    fix_k2: Bool = Field(False, alias="FixK2")
    fix_k3: Bool = Field(False, alias="FixK3")
    fix_k4: Bool = Field(False, alias="FixK4")
    fix_k5: Bool = Field(False, alias="FixK5")
    fix_k6: Bool = Field(False, alias="FixK6")
    rational_model: Bool = Field(False, alias="RationalModel")
    thin_prism_model: Bool = Field(False, alias="ThinPrismModel")
    fix_s1_s2_s3_s4: Bool = Field(False, alias="FixS1S2S3S4")
    tilted_model: Bool = Field(False, alias="TiltedModel")
    fix_taux_tauy: Bool = Field(False, alias="FixTauXTauY")
    criteria: TermCriteriaOpt = Field((TermCritType["Count+EPS"], 30, DBL_EPSILON), alias="Criteria")

    @property
    def flags(self) -> int:
        flags = 0
        for field_name, field in type(self).model_fields.items():
            if field.alias in CALIBRATION_FLAGS and getattr(self, field_name):
                flags |= CALIBRATION_FLAGS[field.alias]
        return flags


def _views(value: MxArray, dim: int) -> list[Any]:
    """One point set per view.

    A numeric matrix, or a cell of 1-by-dim points, is a single view.
    """
    points = [MxArray(v) for v in value.value] if value.is_cell else []
    if not value.is_cell or all(p.is_numeric and p.numel == dim for p in points):
        return [value.to_points(dim, cv2.CV_32F)]
    return [p.to_points(dim, cv2.CV_32F) for p in points]


@mex("calibrateCamera", nargin=3, nargout=5, options=CalibrateCameraOptions)
def calibrate_camera(rhs: list[MxArray], opts: CalibrateCameraOptions, nlhs: int) -> list[Any]:
    """Intrinsic parameters from views of a known calibration pattern.

    Arguments are ``objectPoints, imagePoints, imageSize``. The point
    arguments are cells with one N-by-3 (object) or N-by-2 (image) set per
    view. Outputs are the camera matrix, the distortion coefficients, the
    RMS re-projection error and, per view, the rotation and translation
    vectors.
    """
    object_points = _views(rhs[0], 3)
    image_points = _views(rhs[1], 2)
    if len(object_points) != len(image_points):
        raise InvalidArgument("objectPoints and imagePoints must have the same number of views")
    image_size = rhs[2].to_size()
    if opts.use_intrinsic_guess and opts.camera_matrix is None:
        raise InvalidArgument("UseIntrinsicGuess requires a CameraMatrix")

    camera_matrix = None if opts.camera_matrix is None else opts.camera_matrix.astype(np.float64)
    dist_coeffs = None if opts.dist_coeffs is None else opts.dist_coeffs.astype(np.float64)
    rms, camera_matrix, dist_coeffs, rvecs, tvecs = cv2.calibrateCamera(
        object_points,
        image_points,
        image_size,
        camera_matrix,
        dist_coeffs,
        flags=opts.flags,
        criteria=opts.criteria,
    )
    outputs = [MxArray.from_mat(camera_matrix)]
    if nlhs > 1:
        outputs.append(MxArray.from_mat(dist_coeffs))
    if nlhs > 2:
        outputs.append(float(rms))
    if nlhs > 3:
        outputs.append(MxArray.from_mats(rvecs))
    if nlhs > 4:
        outputs.append(MxArray.from_mats(tvecs))
    return outputs
