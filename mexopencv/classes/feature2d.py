"""Keypoint detectors and descriptor extractors.

``Feature2D_`` wraps every ``cv::Feature2D`` implementation behind one
handle type. The first constructor argument names the implementation and
the remaining ones are that implementation's options, for example::

    id = call("Feature2D_", 0, "new", "ORB", "MaxFeatures", 1000)
    keypoints = call("Feature2D_", id, "detect", img)

Detectors that cannot compute descriptors (FAST, GFTT, AGAST, MSER and the
blob detector) fail in ``compute`` with the library's error.
"""

import math
from collections.abc import Sequence
from typing import Any

import cv2
from pydantic import Field

from mexopencv.core.adapter import AlgorithmAdapter, Signature, method
from mexopencv.core.constants import (
    AgastType,
    AKAZEDescriptorType,
    ClassNameMap,
    FASTType,
    KAZEDiffusivityType,
    NormType,
    ORBScoreType,
)
from mexopencv.core.errors import InvalidArgument
from mexopencv.core.mxarray import MxArray
from mexopencv.core.options import Bool, Double, Int, MaskOpt, OptionSet, Raw, enum_of


class ORBOptions(OptionSet):
    max_features: Int = Field(500, alias="MaxFeatures")
    scale_factor: Double = Field(1.2, alias="ScaleFactor")
    n_levels: Int = Field(8, alias="NLevels")
    edge_threshold: Int = Field(31, alias="EdgeThreshold")
    first_level: Int = Field(0, alias="FirstLevel")
    wta_k: Int = Field(2, alias="WTA_K")
    score_type: enum_of(ORBScoreType) = Field(ORBScoreType["Harris"], alias="ScoreType")
    patch_size: Int = Field(31, alias="PatchSize")
    fast_threshold: Int = Field(20, alias="FastThreshold")

    def create(self) -> Any:
        return cv2.ORB_create(
            self.max_features,
            self.scale_factor,
            self.n_levels,
            self.edge_threshold,
            self.first_level,
            self.wta_k,
            self.score_type,
            self.patch_size,
            self.fast_threshold,
        )


class BRISKOptions(OptionSet):
    threshold: Int = Field(30, alias="Threshold")
    octaves: Int = Field(3, alias="Octaves")
    pattern_scale: Double = Field(1.0, alias="PatternScale")

    def create(self) -> Any:
        return cv2.BRISK_create(self.threshold, self.octaves, self.pattern_scale)


class AKAZEOptions(OptionSet):
    descriptor_type: enum_of(AKAZEDescriptorType) = Field(AKAZEDescriptorType["MLDB"], alias="DescriptorType")
    descriptor_size: Int = Field(0, alias="DescriptorSize")
    descriptor_channels: Int = Field(3, alias="DescriptorChannels")
    threshold: Double = Field(0.001, alias="Threshold")
    n_octaves: Int = Field(4, alias="NOctaves")
    n_octave_layers: Int = Field(4, alias="NOctaveLayers")
    diffusivity: enum_of(KAZEDiffusivityType) = Field(KAZEDiffusivityType["PM_G2"], alias="Diffusivity")

    def create(self) -> Any:
        return cv2.AKAZE_create(
            self.descriptor_type,
            self.descriptor_size,
            self.descriptor_channels,
            self.threshold,
            self.n_octaves,
            self.n_octave_layers,
            self.diffusivity,
        )


class KAZEOptions(OptionSet):
    extended: Bool = Field(False, alias="Extended")
    upright: Bool = Field(False, alias="Upright")
    threshold: Double = Field(0.001, alias="Threshold")
    n_octaves: Int = Field(4, alias="NOctaves")
    n_octave_layers: Int = Field(4, alias="NOctaveLayers")
    diffusivity: enum_of(KAZEDiffusivityType) = Field(KAZEDiffusivityType["PM_G2"], alias="Diffusivity")

    def create(self) -> Any:
        return cv2.KAZE_create(
            self.extended, self.upright, self.threshold, self.n_octaves, self.n_octave_layers, self.diffusivity
        )


class SIFTOptions(OptionSet):
    n_features: Int = Field(0, alias="NFeatures")
    n_octave_layers: Int = Field(3, alias="NOctaveLayers")
    contrast_threshold: Double = Field(0.04, alias="ContrastThreshold")
    edge_threshold: Double = Field(10.0, alias="EdgeThreshold")
    sigma: Double = Field(1.6, alias="Sigma")

    def create(self) -> Any:
        return cv2.SIFT_create(
            self.n_features, self.n_octave_layers, self.contrast_threshold, self.edge_threshold, self.sigma
        )


class FastFeatureDetectorOptions(OptionSet):
    threshold: Int = Field(10, alias="Threshold")
    nonmax_suppression: Bool = Field(True, alias="NonmaxSuppression")
    fast_type: enum_of(FASTType) = Field(FASTType["TYPE_9_16"], alias="Type")

    def create(self) -> Any:
        return cv2.FastFeatureDetector_create(self.threshold, self.nonmax_suppression, self.fast_type)


class GFTTDetectorOptions(OptionSet):
    max_features: Int = Field(1000, alias="MaxFeatures")
    quality_level: Double = Field(0.01, alias="QualityLevel")
    min_distance: Double = Field(1.0, alias="MinDistance")
    block_size: Int = Field(3, alias="BlockSize")
    harris_detector: Bool = Field(False, alias="HarrisDetector")
    k: Double = Field(0.04, alias="K")

    def create(self) -> Any:
        return cv2.GFTTDetector_create(
            self.max_features, self.quality_level, self.min_distance, self.block_size, self.harris_detector, self.k
        )


class AgastFeatureDetectorOptions(OptionSet):
    threshold: Int = Field(10, alias="Threshold")
    nonmax_suppression: Bool = Field(True, alias="NonmaxSuppression")
    agast_type: enum_of(AgastType) = Field(AgastType["OAST_9_16"], alias="Type")

    def create(self) -> Any:
        return cv2.AgastFeatureDetector_create(self.threshold, self.nonmax_suppression, self.agast_type)


class MSEROptions(OptionSet):
    delta: Int = Field(5, alias="Delta")
    min_area: Int = Field(60, alias="MinArea")
    max_area: Int = Field(14400, alias="MaxArea")
    max_variation: Double = Field(0.25, alias="MaxVariation")
    min_diversity: Double = Field(0.2, alias="MinDiversity")
    max_evolution: Int = Field(200, alias="MaxEvolution")
    area_threshold: Double = Field(1.01, alias="AreaThreshold")
    min_margin: Double = Field(0.003, alias="MinMargin")
    edge_blur_size: Int = Field(5, alias="EdgeBlurSize")

    def create(self) -> Any:
        return cv2.MSER_create(
            self.delta,
            self.min_area,
            self.max_area,
            self.max_variation,
            self.min_diversity,
            self.max_evolution,
            self.area_threshold,
            self.min_margin,
            self.edge_blur_size,
        )


class SimpleBlobDetectorOptions(OptionSet):
    """Blob detector parameters.

    Field names match the attributes of ``cv2.SimpleBlobDetector_Params``.
    """

    thresholdStep: Double = Field(10.0, alias="ThresholdStep")
    minThreshold: Double = Field(50.0, alias="MinThreshold")
    maxThreshold: Double = Field(220.0, alias="MaxThreshold")
    minRepeatability: Int = Field(2, alias="MinRepeatability")
    minDistBetweenBlobs: Double = Field(10.0, alias="MinDistBetweenBlobs")
    filterByColor: Bool = Field(True, alias="FilterByColor")
    blobColor: Int = Field(0, alias="BlobColor")
    filterByArea: Bool = Field(True, alias="FilterByArea")
    minArea: Double = Field(25.0, alias="MinArea")
    maxArea: Double = Field(5000.0, alias="MaxArea")
    filterByCircularity: Bool = Field(False, alias="FilterByCircularity")
    minCircularity: Double = Field(0.8, alias="MinCircularity")
    maxCircularity: Double = Field(math.inf, alias="MaxCircularity")
    filterByInertia: Bool = Field(True, alias="FilterByInertia")
    minInertiaRatio: Double = Field(0.1, alias="MinInertiaRatio")
    maxInertiaRatio: Double = Field(math.inf, alias="MaxInertiaRatio")
    filterByConvexity: Bool = Field(True, alias="FilterByConvexity")
    minConvexity: Double = Field(0.95, alias="MinConvexity")
    maxConvexity: Double = Field(math.inf, alias="MaxConvexity")

    def create(self) -> Any:
        params = cv2.SimpleBlobDetector_Params()
        for attr, value in self.model_dump().items():
            setattr(params, attr, value)
        return cv2.SimpleBlobDetector_create(params)


FEATURE2D_TYPES: dict[str, type[OptionSet]] = {
    "ORB": ORBOptions,
    "BRISK": BRISKOptions,
    "AKAZE": AKAZEOptions,
    "KAZE": KAZEOptions,
    "SIFT": SIFTOptions,
    "FastFeatureDetector": FastFeatureDetectorOptions,
    "GFTTDetector": GFTTDetectorOptions,
    "AgastFeatureDetector": AgastFeatureDetectorOptions,
    "MSER": MSEROptions,
    "SimpleBlobDetector": SimpleBlobDetectorOptions,
}


def create_feature2d(type_name: str, args: Sequence[MxArray]) -> Any:
    """Build a detector/extractor from its type name and option pairs.

    Raises:
        InvalidArgument: If the type is unknown or an option is invalid.
    """
    options = FEATURE2D_TYPES.get(type_name)
    if options is None:
        raise InvalidArgument(f"Unrecognized feature type {type_name}")
    return options.parse(args).create()  # type: ignore[attr-defined]


class DetectOptions(OptionSet):
    mask: MaskOpt = Field(None, alias="Mask")


class DetectAndComputeOptions(OptionSet):
    mask: MaskOpt = Field(None, alias="Mask")
    keypoints: Raw = Field(None, alias="Keypoints")


def _all_arguments(rhs: Sequence[MxArray]) -> int:
    return max(len(rhs), 1)


def _class_name(depth: int) -> str:
    return ClassNameMap.inverse().get(depth, str(depth))


class Feature2DAdapter(AlgorithmAdapter):
    name = "Feature2D_"
    constructor = Signature("new", nargin=_all_arguments, nargout=1)

    def create(self, args: list[MxArray], opts: None) -> Any:
        return create_feature2d(args[0].to_string(), args[1:])

    @method("detect", nargin=1, nargout=1, options=DetectOptions)
    def detect(self, obj: Any, args: list[MxArray], opts: DetectOptions, nlhs: int) -> list[Any]:
        keypoints = obj.detect(args[0].to_mat(cv2.CV_8U), opts.mask)
        return [MxArray.from_keypoints(keypoints)]

    @method("compute", nargin=2, nargout=2)
    def compute(self, obj: Any, args: list[MxArray], opts: None, nlhs: int) -> list[Any]:
        """Descriptors of the given keypoints.

        Keypoints for which no descriptor can be computed are dropped, so the
        second output holds the keypoints that remain.
        """
        keypoints, descriptors = obj.compute(args[0].to_mat(cv2.CV_8U), args[1].to_keypoints())
        outputs = [MxArray.from_mat(descriptors)]
        if nlhs > 1:
            outputs.append(MxArray.from_keypoints(keypoints))
        return outputs

    @method("detectAndCompute", nargin=1, nargout=2, options=DetectAndComputeOptions)
    def detect_and_compute(
        self, obj: Any, args: list[MxArray], opts: DetectAndComputeOptions, nlhs: int
    ) -> list[Any]:
        """Detect keypoints and compute their descriptors in one pass.

        With ``Keypoints`` given, detection is skipped and only the
        descriptors of those keypoints are computed.
        """
        image = args[0].to_mat(cv2.CV_8U)
        if opts.keypoints is not None and not opts.keypoints.is_empty:
            keypoints, descriptors = obj.compute(image, opts.keypoints.to_keypoints())
        else:
            keypoints, descriptors = obj.detectAndCompute(image, opts.mask)
        outputs = [MxArray.from_keypoints(keypoints)]
        if nlhs > 1:
            outputs.append(MxArray.from_mat(descriptors))
        return outputs

    @method("descriptorSize", nargout=1)
    def descriptor_size(self, obj: Any, args: list[MxArray], opts: None, nlhs: int) -> list[Any]:
        return [int(obj.descriptorSize())]

    @method("descriptorType", nargout=1)
    def descriptor_type(self, obj: Any, args: list[MxArray], opts: None, nlhs: int) -> list[Any]:
        return [_class_name(obj.descriptorType())]

    @method("defaultNorm", nargout=1)
    def default_norm(self, obj: Any, args: list[MxArray], opts: None, nlhs: int) -> list[Any]:
        return [NormType.inverse()[obj.defaultNorm()]]
