"""Kalman filter object."""

from collections.abc import Sequence
from typing import Any

import cv2
import numpy as np
from pydantic import Field

from mexopencv.core.adapter import ObjectAdapter, Property, Signature, method
from mexopencv.core.mxarray import MxArray
from mexopencv.core.options import DepthOpt, Int, OptionSet, Raw

MATRICES = (
    "statePre",
    "statePost",
    "transitionMatrix",
    "controlMatrix",
    "measurementMatrix",
    "processNoiseCov",
    "measurementNoiseCov",
    "errorCovPre",
    "gain",
    "errorCovPost",
)


def _matrix_property(attr: str) -> Property:
    """Expose one of the filter matrices; assigned values keep the filter's precision."""

    def getter(kf: Any) -> Any:
        return MxArray.from_mat(getattr(kf, attr))

    def setter(kf: Any, value: MxArray) -> None:
        # controlMatrix is empty without control parameters, so take the depth from the state
        setattr(kf, attr, value.to_mat(_filter_depth(kf)))

    return Property(getter, setter, to_native=lambda value: value)


def _filter_depth(kf: Any) -> int:
    return cv2.CV_32F if kf.statePost.dtype == np.float32 else cv2.CV_64F


def _reset(kf: Any, fresh: Any) -> None:
    """Give ``kf`` the dimensions, precision and initial matrices of ``fresh``."""
    for attr in MATRICES:
        setattr(kf, attr, getattr(fresh, attr))


class PredictOptions(OptionSet):
    control: Raw = Field(None, alias="Control")


class InitOptions(OptionSet):
    control_params: Int = Field(0, alias="ControlParams")
    depth: DepthOpt = Field(cv2.CV_64F, alias="Type")


def _dimensions_nargin(rhs: Sequence[MxArray]) -> int:
    # new() or new(dynamParams, measureParams, ...)
    return 2 if len(rhs) >= 2 and not rhs[0].is_char else 0


class KalmanFilterAdapter(ObjectAdapter):
    """Standard Kalman filter.

    The state, transition, noise and gain matrices are available as
    properties named after the library's fields, e.g. ``transitionMatrix``.
    """

    name = "KalmanFilter_"
    constructor = Signature("new", nargin=_dimensions_nargin, nargout=1, options=InitOptions)
    properties = {attr: _matrix_property(attr) for attr in MATRICES}

    def create(self, args: list[MxArray], opts: InitOptions) -> Any:
        if not args:
            return cv2.KalmanFilter()
        return cv2.KalmanFilter(args[0].to_int(), args[1].to_int(), opts.control_params, opts.depth)

    @method("init", nargin=2, options=InitOptions)
    def init(self, obj: Any, args: list[MxArray], opts: InitOptions, nlhs: int) -> list[Any]:
        """Re-initialize the filter with new dimensions; all matrices are reset."""
        fresh = cv2.KalmanFilter(args[0].to_int(), args[1].to_int(), opts.control_params, opts.depth)
        _reset(obj, fresh)
        return []

    @method("predict", nargout=1, options=PredictOptions)
    def predict(self, obj: Any, args: list[MxArray], opts: PredictOptions, nlhs: int) -> list[Any]:
        """Advance the state; returns the predicted state."""
        if opts.control is None or opts.control.is_empty:
            return [MxArray.from_mat(obj.predict())]
        control = opts.control.to_mat(_filter_depth(obj)).reshape(-1, 1)
        return [MxArray.from_mat(obj.predict(control))]

    @method("correct", nargin=1, nargout=1)
    def correct(self, obj: Any, args: list[MxArray], opts: None, nlhs: int) -> list[Any]:
        """Update the state from a measurement and return the corrected state."""
        measurement = args[0].to_mat(_filter_depth(obj))
        return [MxArray.from_mat(obj.correct(measurement.reshape(-1, 1)))]
