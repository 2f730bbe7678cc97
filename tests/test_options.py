"""Tests for option parsing and the option value tables."""

import unittest

import cv2
import numpy as np
from pydantic import ValidationError

from mexopencv.core import constants
from mexopencv.core.constants import BorderType, ConstMap, NormType, TermCritType, lookup_enum
from mexopencv.core.errors import ArgumentCountError, InvalidArgument
from mexopencv.core.mxarray import MxArray
from mexopencv.functions.filtering import GaussianBlurOptions, MedianBlurOptions, MorphologyOptions
from mexopencv.functions.imgcodecs import ReadOptions, WriteOptions


# every table entry and the documented constant it must resolve to
DOCUMENTED = {
    "ClassNameMap": {
        "uint8": "CV_8U",
        "int8": "CV_8S",
        "uint16": "CV_16U",
        "int16": "CV_16S",
        "int32": "CV_32S",
        "single": "CV_32F",
        "double": "CV_64F",
    },
    "BorderType": {
        "Constant": "BORDER_CONSTANT",
        "Replicate": "BORDER_REPLICATE",
        "Reflect": "BORDER_REFLECT",
        "Wrap": "BORDER_WRAP",
        "Reflect101": "BORDER_REFLECT_101",
        "Transparent": "BORDER_TRANSPARENT",
        "Default": "BORDER_DEFAULT",
        "Isolated": "BORDER_ISOLATED",
    },
    "NormType": {
        "Inf": "NORM_INF",
        "L1": "NORM_L1",
        "L2": "NORM_L2",
        "L2Sqr": "NORM_L2SQR",
        "Hamming": "NORM_HAMMING",
        "Hamming2": "NORM_HAMMING2",
        "MinMax": "NORM_MINMAX",
    },
    "InterpType": {
        "Nearest": "INTER_NEAREST",
        "Linear": "INTER_LINEAR",
        "Cubic": "INTER_CUBIC",
        "Area": "INTER_AREA",
        "Lanczos4": "INTER_LANCZOS4",
        "LinearExact": "INTER_LINEAR_EXACT",
    },
    "ThreshType": {
        "Binary": "THRESH_BINARY",
        "BinaryInv": "THRESH_BINARY_INV",
        "Trunc": "THRESH_TRUNC",
        "ToZero": "THRESH_TOZERO",
        "ToZeroInv": "THRESH_TOZERO_INV",
    },
    "AutoThresholdType": {"Otsu": "THRESH_OTSU", "Triangle": "THRESH_TRIANGLE"},
    "AdaptiveMethod": {"Mean": "ADAPTIVE_THRESH_MEAN_C", "Gaussian": "ADAPTIVE_THRESH_GAUSSIAN_C"},
    "MorphType": {
        "Erode": "MORPH_ERODE",
        "Dilate": "MORPH_DILATE",
        "Open": "MORPH_OPEN",
        "Close": "MORPH_CLOSE",
        "Gradient": "MORPH_GRADIENT",
        "Tophat": "MORPH_TOPHAT",
        "Blackhat": "MORPH_BLACKHAT",
        "HitMiss": "MORPH_HITMISS",
    },
    "MorphShape": {"Rect": "MORPH_RECT", "Cross": "MORPH_CROSS", "Ellipse": "MORPH_ELLIPSE"},
    "ContourMode": {
        "External": "RETR_EXTERNAL",
        "List": "RETR_LIST",
        "CComp": "RETR_CCOMP",
        "Tree": "RETR_TREE",
        "FloodFill": "RETR_FLOODFILL",
    },
    "ContourApprox": {
        "None": "CHAIN_APPROX_NONE",
        "Simple": "CHAIN_APPROX_SIMPLE",
        "TC89_L1": "CHAIN_APPROX_TC89_L1",
        "TC89_KCOS": "CHAIN_APPROX_TC89_KCOS",
    },
    "LineType": {"4": "LINE_4", "8": "LINE_8", "AA": "LINE_AA"},
    "HoughModes": {
        "Standard": "HOUGH_STANDARD",
        "Probabilistic": "HOUGH_PROBABILISTIC",
        "MultiScale": "HOUGH_MULTI_SCALE",
        "Gradient": "HOUGH_GRADIENT",
    },
    "HomographyMethod": {"0": 0, "Ransac": "RANSAC", "LMedS": "LMEDS", "Rho": "RHO"},
    "PngStrategy": {
        "Default": "IMWRITE_PNG_STRATEGY_DEFAULT",
        "Filtered": "IMWRITE_PNG_STRATEGY_FILTERED",
        "HuffmanOnly": "IMWRITE_PNG_STRATEGY_HUFFMAN_ONLY",
        "RLE": "IMWRITE_PNG_STRATEGY_RLE",
        "Fixed": "IMWRITE_PNG_STRATEGY_FIXED",
    },
    "CapProp": {
        "PosMsec": "CAP_PROP_POS_MSEC",
        "PosFrames": "CAP_PROP_POS_FRAMES",
        "AVIRatio": "CAP_PROP_POS_AVI_RATIO",
        "FrameWidth": "CAP_PROP_FRAME_WIDTH",
        "FrameHeight": "CAP_PROP_FRAME_HEIGHT",
        "FPS": "CAP_PROP_FPS",
        "FourCC": "CAP_PROP_FOURCC",
        "FrameCount": "CAP_PROP_FRAME_COUNT",
        "Format": "CAP_PROP_FORMAT",
        "Mode": "CAP_PROP_MODE",
        "Brightness": "CAP_PROP_BRIGHTNESS",
        "Contrast": "CAP_PROP_CONTRAST",
        "Saturation": "CAP_PROP_SATURATION",
        "Hue": "CAP_PROP_HUE",
        "Gain": "CAP_PROP_GAIN",
        "Exposure": "CAP_PROP_EXPOSURE",
        "ConvertRGB": "CAP_PROP_CONVERT_RGB",
        "Rectification": "CAP_PROP_RECTIFICATION",
        "BufferSize": "CAP_PROP_BUFFERSIZE",
    },
    "VideoWriterProp": {
        "Quality": "VIDEOWRITER_PROP_QUALITY",
        "FrameBytes": "VIDEOWRITER_PROP_FRAMEBYTES",
        "NStripes": "VIDEOWRITER_PROP_NSTRIPES",
    },
    "FASTType": {
        "TYPE_5_8": "FAST_FEATURE_DETECTOR_TYPE_5_8",
        "TYPE_7_12": "FAST_FEATURE_DETECTOR_TYPE_7_12",
        "TYPE_9_16": "FAST_FEATURE_DETECTOR_TYPE_9_16",
    },
    "ORBScoreType": {"Harris": "ORB_HARRIS_SCORE", "FAST": "ORB_FAST_SCORE"},
    "AKAZEDescriptorType": {
        "KAZEUpright": "AKAZE_DESCRIPTOR_KAZE_UPRIGHT",
        "KAZE": "AKAZE_DESCRIPTOR_KAZE",
        "MLDBUpright": "AKAZE_DESCRIPTOR_MLDB_UPRIGHT",
        "MLDB": "AKAZE_DESCRIPTOR_MLDB",
    },
    "KAZEDiffusivityType": {
        "PM_G1": "KAZE_DIFF_PM_G1",
        "PM_G2": "KAZE_DIFF_PM_G2",
        "WEICKERT": "KAZE_DIFF_WEICKERT",
        "CHARBONNIER": "KAZE_DIFF_CHARBONNIER",
    },
    "AgastType": {
        "AGAST_5_8": "AGAST_FEATURE_DETECTOR_AGAST_5_8",
        "AGAST_7_12d": "AGAST_FEATURE_DETECTOR_AGAST_7_12D",
        "AGAST_7_12s": "AGAST_FEATURE_DETECTOR_AGAST_7_12S",
        "OAST_9_16": "AGAST_FEATURE_DETECTOR_OAST_9_16",
    },
    "MatcherType": {
        "FlannBased": "DESCRIPTOR_MATCHER_FLANNBASED",
        "BruteForce": "DESCRIPTOR_MATCHER_BRUTEFORCE",
        "BruteForce-L1": "DESCRIPTOR_MATCHER_BRUTEFORCE_L1",
        "BruteForce-Hamming": "DESCRIPTOR_MATCHER_BRUTEFORCE_HAMMING",
        "BruteForce-HammingLUT": "DESCRIPTOR_MATCHER_BRUTEFORCE_HAMMINGLUT",
        "BruteForce-SL2": "DESCRIPTOR_MATCHER_BRUTEFORCE_SL2",
    },
    "AngleRangeOption": {
        name: f"ximgproc.{name}"
        for name in (
            "ARO_0_45",
            "ARO_45_90",
            "ARO_90_135",
            "ARO_315_0",
            "ARO_315_45",
            "ARO_45_135",
            "ARO_315_135",
            "ARO_CTR_HOR",
            "ARO_CTR_VER",
        )
    },
    "HoughOp": {name: f"ximgproc.{name}" for name in ("FHT_MIN", "FHT_MAX", "FHT_ADD", "FHT_AVE")},
    "HoughDeskewOption": {name: f"ximgproc.{name}" for name in ("HDO_RAW", "HDO_DESKEW")},
    "SampleLayout": {"Row": "ml.ROW_SAMPLE", "Col": "ml.COL_SAMPLE"},
    "KNearestAlgorithm": {"BruteForce": "ml.KNEAREST_BRUTE_FORCE", "KDTree": "ml.KNEAREST_KDTREE"},
}


def cv2_constant(path):
    if isinstance(path, int):
        return path
    value = cv2
    for part in path.split("."):
        value = getattr(value, part)
    return value


def pairs(*values):
    return [MxArray(v) for v in values]


class TestConstMap(unittest.TestCase):

    def test_lookup(self):
        self.assertEqual(lookup_enum(BorderType, "Reflect101"), cv2.BORDER_REFLECT_101)
        self.assertEqual(NormType["Hamming"], cv2.NORM_HAMMING)

    def test_every_entry_matches_library(self):
        for table_name, entries in DOCUMENTED.items():
            table = getattr(constants, table_name)
            self.assertEqual(set(table), set(entries), table_name)
            for key, path in entries.items():
                with self.subTest(table=table_name, key=key):
                    self.assertEqual(lookup_enum(table, key), cv2_constant(path))

    def test_term_criteria_and_color_tables(self):
        self.assertEqual(TermCritType["Count"], cv2.TERM_CRITERIA_COUNT)
        self.assertEqual(TermCritType["EPS"], cv2.TERM_CRITERIA_EPS)
        self.assertEqual(TermCritType["Count+EPS"], cv2.TERM_CRITERIA_COUNT | cv2.TERM_CRITERIA_EPS)
        self.assertEqual(len(TermCritType), 3)
        self.assertGreater(len(constants.ColorConv), 100)
        for key in constants.ColorConv:
            with self.subTest(key=key):
                self.assertEqual(constants.ColorConv[key], getattr(cv2, "COLOR_" + key))

    def test_unknown_key(self):
        with self.assertRaises(InvalidArgument) as cm:
            BorderType["reflect"]
        self.assertIn("BorderType", str(cm.exception))

    def test_mapping_protocol(self):
        self.assertIn("Constant", BorderType)
        self.assertNotIn("Nope", BorderType)
        self.assertIsNone(BorderType.get("Nope"))
        self.assertEqual(len(ConstMap("t", [("a", 1), ("b", 2)])), 2)

    def test_inverse_first_key_wins(self):
        table = ConstMap("t", {"First": 1, "Alias": 1, "Other": 2})
        self.assertEqual(table.inverse(), {1: "First", 2: "Other"})
        self.assertEqual(TermCritType.inverse()[cv2.TERM_CRITERIA_COUNT], "Count")


class TestOptionSet(unittest.TestCase):

    def test_defaults(self):
        opts = GaussianBlurOptions.parse([])
        self.assertEqual(opts.ksize, (5, 5))
        self.assertEqual(opts.sigma_x, 0.0)
        self.assertEqual(opts.border_type, cv2.BORDER_DEFAULT)

    def test_override(self):
        opts = GaussianBlurOptions.parse(pairs("KSize", np.array([3, 3]), "BorderType", "Reflect", "SigmaX", 1.5))
        self.assertEqual(opts.ksize, (3, 3))
        self.assertEqual(opts.border_type, cv2.BORDER_REFLECT)
        self.assertEqual(opts.sigma_x, 1.5)
        self.assertEqual(opts.sigma_y, 0.0)

    def test_last_value_wins(self):
        opts = MedianBlurOptions.parse(pairs("KSize", 3, "KSize", 7))
        self.assertEqual(opts.ksize, 7)

    def test_only_final_value_is_validated(self):
        opts = MedianBlurOptions.parse(pairs("KSize", 4, "KSize", 5))
        self.assertEqual(opts.ksize, 5)

    def test_unknown_option(self):
        with self.assertRaises(InvalidArgument) as cm:
            GaussianBlurOptions.parse(pairs("Foo", 1))
        self.assertEqual(cm.exception.message, "Unrecognized option Foo")

    def test_option_names_are_case_sensitive(self):
        with self.assertRaises(InvalidArgument):
            GaussianBlurOptions.parse(pairs("ksize", np.array([3, 3])))

    def test_odd_number_of_arguments(self):
        with self.assertRaises(ArgumentCountError):
            GaussianBlurOptions.parse(pairs("KSize"))

    def test_key_must_be_string(self):
        with self.assertRaises(InvalidArgument):
            GaussianBlurOptions.parse(pairs(1, 2))

    def test_bad_enum_value(self):
        with self.assertRaises(InvalidArgument) as cm:
            GaussianBlurOptions.parse(pairs("BorderType", "Sideways"))
        self.assertIn("BorderType", cm.exception.message)

    def test_bad_value_type(self):
        with self.assertRaises(InvalidArgument):
            GaussianBlurOptions.parse(pairs("SigmaX", "large"))

    def test_field_validator(self):
        with self.assertRaises(InvalidArgument):
            MedianBlurOptions.parse(pairs("KSize", 4))

    def test_raw_option_keeps_host_value(self):
        opts = MorphologyOptions.parse(pairs("Element", np.ones((3, 3))))
        self.assertIsInstance(opts.element, MxArray)
        self.assertEqual(opts.kernel().dtype, np.uint8)
        self.assertIsNone(MorphologyOptions.parse([]).kernel())

    def test_frozen(self):
        opts = MedianBlurOptions.parse([])
        with self.assertRaises(ValidationError):
            opts.ksize = 9

    def test_option_names(self):
        self.assertEqual(MedianBlurOptions.option_names(), ["KSize"])


class TestImageOptions(unittest.TestCase):

    def test_read_flags(self):
        self.assertEqual(ReadOptions.parse(pairs("FlipChannels", False)).imread_flags(), cv2.IMREAD_COLOR)
        self.assertEqual(ReadOptions.parse(pairs("Unchanged", True)).imread_flags(), cv2.IMREAD_UNCHANGED)
        self.assertEqual(ReadOptions.parse(pairs("Flags", 2)).imread_flags(), 2)

    def test_grayscale_wins_over_color(self):
        opts = ReadOptions.parse(pairs("Color", True, "Grayscale", True))
        self.assertEqual(opts.imread_flags() & cv2.IMREAD_COLOR, 0)

    def test_reduce_scale(self):
        with self.assertRaises(InvalidArgument):
            ReadOptions.parse(pairs("ReduceScale", 3))

    def test_encode_params(self):
        params = WriteOptions.parse(pairs("JpegQuality", 80)).encode_params()
        self.assertEqual(params, [cv2.IMWRITE_JPEG_QUALITY, 80])
        self.assertEqual(WriteOptions.parse([]).encode_params(), [])

    def test_jpeg_quality_range(self):
        with self.assertRaises(InvalidArgument):
            WriteOptions.parse(pairs("JpegQuality", 101))

    def test_params_must_be_pairs(self):
        with self.assertRaises(InvalidArgument):
            WriteOptions.parse(pairs("Params", np.array([1, 2, 3]))).encode_params()


if __name__ == "__main__":
    unittest.main()
