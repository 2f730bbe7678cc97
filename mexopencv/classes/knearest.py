"""K-nearest neighbours classifier and regressor (``cv2.ml.KNearest``).

Samples are given one per row (or one per column with
``"Layout", "Col"``) and are processed in single precision. A trained model
can be stored and restored with the ``save`` and ``load`` methods.
"""

from typing import Any

import cv2
from pydantic import Field

from mexopencv.core.adapter import AlgorithmAdapter, Property, Signature, method
from mexopencv.core.constants import KNearestAlgorithm, SampleLayout
from mexopencv.core.mxarray import MxArray
from mexopencv.core.options import Bool, OptionSet, enum_of


def _algorithm_type(value: MxArray) -> int:
    return KNearestAlgorithm[value.to_string()]


class TrainOptions(OptionSet):
    layout: enum_of(SampleLayout) = Field(cv2.ml.ROW_SAMPLE, alias="Layout")
    update_model: Bool = Field(False, alias="UpdateModel")


class PredictOptions(OptionSet):
    raw_output: Bool = Field(False, alias="RawOutput")


class KNearestAdapter(AlgorithmAdapter):
    """The k-nearest neighbours model.

    Properties: ``DefaultK``, ``IsClassifier``, ``Emax`` and
    ``AlgorithmType`` (``"BruteForce"`` or ``"KDTree"``).
    """

    name = "KNearest_"
    constructor = Signature("new", nargin=0, nargout=1)
    properties = {
        "DefaultK": Property("getDefaultK", "setDefaultK", MxArray.to_int),
        "IsClassifier": Property("getIsClassifier", "setIsClassifier", MxArray.to_bool, bool),
        "Emax": Property("getEmax", "setEmax", MxArray.to_int),
        "AlgorithmType": Property(
            "getAlgorithmType", "setAlgorithmType", _algorithm_type, KNearestAlgorithm.inverse().__getitem__
        ),
    }

    def create(self, args: list[MxArray], opts: None) -> Any:
        return cv2.ml.KNearest_create()

    @method("train", nargin=2, nargout=1, options=TrainOptions)
    def train(self, obj: Any, args: list[MxArray], opts: TrainOptions, nlhs: int) -> list[Any]:
        """Store the training samples; with ``UpdateModel`` they are appended."""
        data = cv2.ml.TrainData_create(args[0].to_mat(cv2.CV_32F), opts.layout, args[1].to_mat(cv2.CV_32F))
        flags = cv2.ml.STAT_MODEL_UPDATE_MODEL if opts.update_model else 0
        return [bool(obj.train(data, flags))]

    @method("predict", nargin=1, nargout=1, options=PredictOptions)
    def predict(self, obj: Any, args: list[MxArray], opts: PredictOptions, nlhs: int) -> list[Any]:
        flags = cv2.ml.STAT_MODEL_RAW_OUTPUT if opts.raw_output else 0
        _, results = obj.predict(args[0].to_mat(cv2.CV_32F), flags=flags)
        return [MxArray.from_mat(results)]

    @method("findNearest", nargin=2, nargout=3)
    def find_nearest(self, obj: Any, args: list[MxArray], opts: None, nlhs: int) -> list[Any]:
        """Predictions for ``k`` neighbours.

        The outputs are the predicted responses, then the responses of the
        neighbours and their distances, one row per sample.
        """
        _, results, neighbor_responses, dist = obj.findNearest(args[0].to_mat(cv2.CV_32F), args[1].to_int())
        outputs = [MxArray.from_mat(results)]
        if nlhs > 1:
            outputs.append(MxArray.from_mat(neighbor_responses))
        if nlhs > 2:
            outputs.append(MxArray.from_mat(dist))
        return outputs

    @method("isTrained", nargout=1)
    def is_trained(self, obj: Any, args: list[MxArray], opts: None, nlhs: int) -> list[Any]:
        return [bool(obj.isTrained())]

    @method("isClassifier", nargout=1)
    def is_classifier(self, obj: Any, args: list[MxArray], opts: None, nlhs: int) -> list[Any]:
        return [bool(obj.isClassifier())]

    @method("getVarCount", nargout=1)
    def get_var_count(self, obj: Any, args: list[MxArray], opts: None, nlhs: int) -> list[Any]:
        return [int(obj.getVarCount())]
