"""Background subtraction objects.

Both subtractors keep a per-pixel model of the scene that is updated with
every frame passed to ``apply``. The foreground mask uses 255 for
foreground, 0 for background and, when shadow detection is on, the shadow
value (127 by default) for shadow pixels.

Classes:
    BackgroundSubtractorMOG2Adapter: Gaussian mixture based subtractor.
    BackgroundSubtractorKNNAdapter: K-nearest neighbours based subtractor.
"""

from typing import Any

import cv2
from pydantic import Field

from mexopencv.core.adapter import AlgorithmAdapter, Property, Signature, method
from mexopencv.core.mxarray import MxArray
from mexopencv.core.options import Bool, Double, Int, OptionSet


class ApplyOptions(OptionSet):
    # negative lets the subtractor choose the rate from its history length
    learning_rate: Double = Field(-1.0, alias="LearningRate")


class BackgroundSubtractorAdapter(AlgorithmAdapter):
    """Methods shared by the background subtractors."""

    @method("apply", nargin=1, nargout=1, options=ApplyOptions)
    def apply(self, obj: Any, args: list[MxArray], opts: ApplyOptions, nlhs: int) -> list[Any]:
        fgmask = obj.apply(args[0].to_mat(), learningRate=opts.learning_rate)
        return [MxArray.from_mat(fgmask)]

    @method("getBackgroundImage", nargout=1)
    def get_background_image(self, obj: Any, args: list[MxArray], opts: None, nlhs: int) -> list[Any]:
        return [MxArray.from_mat(obj.getBackgroundImage())]


class MOG2Options(OptionSet):
    history: Int = Field(500, alias="History")
    var_threshold: Double = Field(16.0, alias="VarThreshold")
    detect_shadows: Bool = Field(True, alias="DetectShadows")


class BackgroundSubtractorMOG2Adapter(BackgroundSubtractorAdapter):
    name = "BackgroundSubtractorMOG2_"
    constructor = Signature("new", nargin=0, nargout=1, options=MOG2Options)
    properties = {
        "History": Property("getHistory", "setHistory", MxArray.to_int),
        "NMixtures": Property("getNMixtures", "setNMixtures", MxArray.to_int),
        "BackgroundRatio": Property("getBackgroundRatio", "setBackgroundRatio"),
        "VarThreshold": Property("getVarThreshold", "setVarThreshold"),
        "VarThresholdGen": Property("getVarThresholdGen", "setVarThresholdGen"),
        "VarInit": Property("getVarInit", "setVarInit"),
        "VarMin": Property("getVarMin", "setVarMin"),
        "VarMax": Property("getVarMax", "setVarMax"),
        "ComplexityReductionThreshold": Property(
            "getComplexityReductionThreshold", "setComplexityReductionThreshold"
        ),
        "DetectShadows": Property("getDetectShadows", "setDetectShadows", MxArray.to_bool, bool),
        "ShadowValue": Property("getShadowValue", "setShadowValue", MxArray.to_int),
        "ShadowThreshold": Property("getShadowThreshold", "setShadowThreshold"),
    }

    def create(self, args: list[MxArray], opts: MOG2Options) -> Any:
        return cv2.createBackgroundSubtractorMOG2(
            history=opts.history, varThreshold=opts.var_threshold, detectShadows=opts.detect_shadows
        )


class KNNOptions(OptionSet):
    history: Int = Field(500, alias="History")
    dist2_threshold: Double = Field(400.0, alias="Dist2Threshold")
    detect_shadows: Bool = Field(True, alias="DetectShadows")


class BackgroundSubtractorKNNAdapter(BackgroundSubtractorAdapter):
    name = "BackgroundSubtractorKNN_"
    constructor = Signature("new", nargin=0, nargout=1, options=KNNOptions)
    properties = {
        "History": Property("getHistory", "setHistory", MxArray.to_int),
        "NSamples": Property("getNSamples", "setNSamples", MxArray.to_int),
        "Dist2Threshold": Property("getDist2Threshold", "setDist2Threshold"),
        "KNNSamples": Property("getkNNSamples", "setkNNSamples", MxArray.to_int),
        "DetectShadows": Property("getDetectShadows", "setDetectShadows", MxArray.to_bool, bool),
        "ShadowValue": Property("getShadowValue", "setShadowValue", MxArray.to_int),
        "ShadowThreshold": Property("getShadowThreshold", "setShadowThreshold"),
    }

    def create(self, args: list[MxArray], opts: KNNOptions) -> Any:
        return cv2.createBackgroundSubtractorKNN(
            history=opts.history, dist2Threshold=opts.dist2_threshold, detectShadows=opts.detect_shadows
        )
