"""Option value tables.

This module holds the read-only tables that translate the human-readable
option strings accepted from the host into OpenCV integer constants, for
example ``"Reflect101"`` into ``cv2.BORDER_REFLECT_101``. Tables are built
once at import time and never modified afterwards.

Classes:
    ConstMap: Read-only string to integer mapping that fails with
        `InvalidArgument` on unknown keys.

Functions:
    lookup_enum: Resolve an option string through a table.
"""

from collections.abc import Iterable, Iterator, Mapping

import cv2

from mexopencv.core.errors import InvalidArgument


class ConstMap(Mapping[str, int]):
    """A fixed mapping from option strings to library constants.

    Attributes:
        name: Name of the table, used in error messages.
    """

    def __init__(self, name: str, items: Mapping[str, int] | Iterable[tuple[str, int]]) -> None:
        self.name = name
        self._items: dict[str, int] = dict(items)

    def __getitem__(self, key: str) -> int:
        try:
            return self._items[key]
        except KeyError:
            raise InvalidArgument(f"Unrecognized option value {key!r} for {self.name}") from None

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def get(self, key: str, default: int | None = None) -> int | None:  # type: ignore[override]
        return self._items.get(key, default)

    def inverse(self) -> dict[int, str]:
        """Return the integer to string direction; the first key wins for aliased values."""
        inverse: dict[int, str] = {}
        for key, value in self._items.items():
            inverse.setdefault(value, key)
        return inverse

    def __repr__(self) -> str:
        return f"ConstMap({self.name!r}, {self._items!r})"


def lookup_enum(table: ConstMap, key: str) -> int:
    """Resolve a human-readable option string to the library constant.

    Args:
        table: The table to search.
        key: The option string, matched case-sensitively.

    Returns:
        The integer constant.

    Raises:
        InvalidArgument: If the key is not in the table.
    """
    return table[key]


# ------------------------------Core------------------------------
ClassNameMap = ConstMap(
    "ClassNameMap",
    {
        "uint8": cv2.CV_8U,
        "int8": cv2.CV_8S,
        "uint16": cv2.CV_16U,
        "int16": cv2.CV_16S,
        "int32": cv2.CV_32S,
        "single": cv2.CV_32F,
        "double": cv2.CV_64F,
    },
)

BorderType = ConstMap(
    "BorderType",
    {
        "Constant": cv2.BORDER_CONSTANT,
        "Replicate": cv2.BORDER_REPLICATE,
        "Reflect": cv2.BORDER_REFLECT,
        "Wrap": cv2.BORDER_WRAP,
        "Reflect101": cv2.BORDER_REFLECT_101,
        "Transparent": cv2.BORDER_TRANSPARENT,
        "Default": cv2.BORDER_DEFAULT,
        "Isolated": cv2.BORDER_ISOLATED,
    },
)

NormType = ConstMap(
    "NormType",
    {
        "Inf": cv2.NORM_INF,
        "L1": cv2.NORM_L1,
        "L2": cv2.NORM_L2,
        "L2Sqr": cv2.NORM_L2SQR,
        "Hamming": cv2.NORM_HAMMING,
        "Hamming2": cv2.NORM_HAMMING2,
        "MinMax": cv2.NORM_MINMAX,
    },
)

TermCritType = ConstMap(
    "TermCritType",
    {
        "Count": cv2.TERM_CRITERIA_COUNT,
        "EPS": cv2.TERM_CRITERIA_EPS,
        "Count+EPS": cv2.TERM_CRITERIA_COUNT + cv2.TERM_CRITERIA_EPS,
    },
)

# ------------------------------Image processing------------------------------
InterpType = ConstMap(
    "InterpType",
    {
        "Nearest": cv2.INTER_NEAREST,
        "Linear": cv2.INTER_LINEAR,
        "Cubic": cv2.INTER_CUBIC,
        "Area": cv2.INTER_AREA,
        "Lanczos4": cv2.INTER_LANCZOS4,
        "LinearExact": cv2.INTER_LINEAR_EXACT,
    },
)

ThreshType = ConstMap(
    "ThreshType",
    {
        "Binary": cv2.THRESH_BINARY,
        "BinaryInv": cv2.THRESH_BINARY_INV,
        "Trunc": cv2.THRESH_TRUNC,
        "ToZero": cv2.THRESH_TOZERO,
        "ToZeroInv": cv2.THRESH_TOZERO_INV,
    },
)

AutoThresholdType = ConstMap(
    "AutoThresholdType",
    {
        "Otsu": cv2.THRESH_OTSU,
        "Triangle": cv2.THRESH_TRIANGLE,
    },
)

AdaptiveMethod = ConstMap(
    "AdaptiveMethod",
    {
        "Mean": cv2.ADAPTIVE_THRESH_MEAN_C,
        "Gaussian": cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
    },
)

# e.g. "RGB2GRAY" -> cv2.COLOR_RGB2GRAY
ColorConv = ConstMap(
    "ColorConv",
    {name[len("COLOR_") :]: getattr(cv2, name) for name in dir(cv2) if name.startswith("COLOR_")},
)

MorphType = ConstMap(
    "MorphType",
    {
        "Erode": cv2.MORPH_ERODE,
        "Dilate": cv2.MORPH_DILATE,
        "Open": cv2.MORPH_OPEN,
        "Close": cv2.MORPH_CLOSE,
        "Gradient": cv2.MORPH_GRADIENT,
        "Tophat": cv2.MORPH_TOPHAT,
        "Blackhat": cv2.MORPH_BLACKHAT,
        "HitMiss": cv2.MORPH_HITMISS,
    },
)

MorphShape = ConstMap(
    "MorphShape",
    {
        "Rect": cv2.MORPH_RECT,
        "Cross": cv2.MORPH_CROSS,
        "Ellipse": cv2.MORPH_ELLIPSE,
    },
)

ContourMode = ConstMap(
    "ContourMode",
    {
        "External": cv2.RETR_EXTERNAL,
        "List": cv2.RETR_LIST,
        "CComp": cv2.RETR_CCOMP,
        "Tree": cv2.RETR_TREE,
        "FloodFill": cv2.RETR_FLOODFILL,
    },
)

ContourApprox = ConstMap(
    "ContourApprox",
    {
        "None": cv2.CHAIN_APPROX_NONE,
        "Simple": cv2.CHAIN_APPROX_SIMPLE,
        "TC89_L1": cv2.CHAIN_APPROX_TC89_L1,
        "TC89_KCOS": cv2.CHAIN_APPROX_TC89_KCOS,
    },
)

LineType = ConstMap(
    "LineType",
    {
        "4": cv2.LINE_4,
        "8": cv2.LINE_8,
        "AA": cv2.LINE_AA,
    },
)

HoughModes = ConstMap(
    "HoughModes",
    {
        "Standard": cv2.HOUGH_STANDARD,
        "Probabilistic": cv2.HOUGH_PROBABILISTIC,
        "MultiScale": cv2.HOUGH_MULTI_SCALE,
        "Gradient": cv2.HOUGH_GRADIENT,
    },
)

# ------------------------------Calibration------------------------------
HomographyMethod = ConstMap(
    "HomographyMethod",
    {
        "0": 0,
        "Ransac": cv2.RANSAC,
        "LMedS": cv2.LMEDS,
        "Rho": cv2.RHO,
    },
)

# ------------------------------Image codecs------------------------------
PngStrategy = ConstMap(
    "PngStrategy",
    {
        "Default": cv2.IMWRITE_PNG_STRATEGY_DEFAULT,
        "Filtered": cv2.IMWRITE_PNG_STRATEGY_FILTERED,
        "HuffmanOnly": cv2.IMWRITE_PNG_STRATEGY_HUFFMAN_ONLY,
        "RLE": cv2.IMWRITE_PNG_STRATEGY_RLE,
        "Fixed": cv2.IMWRITE_PNG_STRATEGY_FIXED,
    },
)

# ------------------------------Video I/O------------------------------
CapProp = ConstMap(
    "CapProp",
    {
        "PosMsec": cv2.CAP_PROP_POS_MSEC,
        "PosFrames": cv2.CAP_PROP_POS_FRAMES,
        "AVIRatio": cv2.CAP_PROP_POS_AVI_RATIO,
        "FrameWidth": cv2.CAP_PROP_FRAME_WIDTH,
        "FrameHeight": cv2.CAP_PROP_FRAME_HEIGHT,
        "FPS": cv2.CAP_PROP_FPS,
        "FourCC": cv2.CAP_PROP_FOURCC,
        "FrameCount": cv2.CAP_PROP_FRAME_COUNT,
        "Format": cv2.CAP_PROP_FORMAT,
        "Mode": cv2.CAP_PROP_MODE,
        "Brightness": cv2.CAP_PROP_BRIGHTNESS,
        "Contrast": cv2.CAP_PROP_CONTRAST,
        "Saturation": cv2.CAP_PROP_SATURATION,
        "Hue": cv2.CAP_PROP_HUE,
        "Gain": cv2.CAP_PROP_GAIN,
        "Exposure": cv2.CAP_PROP_EXPOSURE,
        "ConvertRGB": cv2.CAP_PROP_CONVERT_RGB,
        "Rectification": cv2.CAP_PROP_RECTIFICATION,
        "BufferSize": cv2.CAP_PROP_BUFFERSIZE,
    },
)

VideoWriterProp = ConstMap(
    "VideoWriterProp",
    {
        "Quality": cv2.VIDEOWRITER_PROP_QUALITY,
        "FrameBytes": cv2.VIDEOWRITER_PROP_FRAMEBYTES,
        "NStripes": cv2.VIDEOWRITER_PROP_NSTRIPES,
    },
)

# ------------------------------Features------------------------------
# Values of the cv::FastFeatureDetector::DetectorType enum
FASTType = ConstMap(
    "FASTType",
    {
        "TYPE_5_8": 0,
        "TYPE_7_12": 1,
        "TYPE_9_16": 2,
    },
)

# Values of the cv::ORB::ScoreType enum
ORBScoreType = ConstMap(
    "ORBScoreType",
    {
        "Harris": 0,
        "FAST": 1,
    },
)

# Values of the cv::AKAZE::DescriptorType enum
AKAZEDescriptorType = ConstMap(
    "AKAZEDescriptorType",
    {
        "KAZEUpright": 2,
        "KAZE": 3,
        "MLDBUpright": 4,
        "MLDB": 5,
    },
)

# Values of the cv::KAZE::DiffusivityType enum
KAZEDiffusivityType = ConstMap(
    "KAZEDiffusivityType",
    {
        "PM_G1": 0,
        "PM_G2": 1,
        "WEICKERT": 2,
        "CHARBONNIER": 3,
    },
)

# Values of the cv::AgastFeatureDetector::DetectorType enum
AgastType = ConstMap(
    "AgastType",
    {
        "AGAST_5_8": 0,
        "AGAST_7_12d": 1,
        "AGAST_7_12s": 2,
        "OAST_9_16": 3,
    },
)

# Values of the cv::DescriptorMatcher::MatcherType enum
MatcherType = ConstMap(
    "MatcherType",
    {
        "FlannBased": 1,
        "BruteForce": 2,
        "BruteForce-L1": 3,
        "BruteForce-Hamming": 4,
        "BruteForce-HammingLUT": 5,
        "BruteForce-SL2": 6,
    },
)

# ------------------------------Extended image processing------------------------------
# Values of the cv::ximgproc::AngleRangeOption enum
AngleRangeOption = ConstMap(
    "AngleRangeOption",
    {
        "ARO_0_45": 0,
        "ARO_45_90": 1,
        "ARO_90_135": 2,
        "ARO_315_0": 3,
        "ARO_315_45": 4,
        "ARO_45_135": 5,
        "ARO_315_135": 6,
        "ARO_CTR_HOR": 7,
        "ARO_CTR_VER": 8,
    },
)

# Values of the cv::ximgproc::HoughOp enum
HoughOp = ConstMap(
    "HoughOp",
    {
        "FHT_MIN": 0,
        "FHT_MAX": 1,
        "FHT_ADD": 2,
        "FHT_AVE": 3,
    },
)

# Values of the cv::ximgproc::HoughDeskewOption enum
HoughDeskewOption = ConstMap(
    "HoughDeskewOption",
    {
        "HDO_RAW": 0,
        "HDO_DESKEW": 1,
    },
)

# ------------------------------Machine learning------------------------------
SampleLayout = ConstMap(
    "SampleLayout",
    {
        "Row": cv2.ml.ROW_SAMPLE,
        "Col": cv2.ml.COL_SAMPLE,
    },
)

KNearestAlgorithm = ConstMap(
    "KNearestAlgorithm",
    {
        "BruteForce": cv2.ml.KNEAREST_BRUTE_FORCE,
        "KDTree": cv2.ml.KNEAREST_KDTREE,
    },
)
