"""Tests for the stateful-class adapters."""

import tempfile
import unittest
from pathlib import Path

import numpy as np
from skimage import data

from mexopencv import StructArray, call
from mexopencv.core.errors import ArgumentCountError, InvalidArgument


class ObjectTestCase(unittest.TestCase):
    """Creates one object per test and deletes it afterwards."""

    class_name = ""
    constructor_args: tuple = ()

    def setUp(self):
        self.id = call(self.class_name, 0, "new", *self.constructor_args, nargout=1)

    def tearDown(self):
        call(self.class_name, self.id, "delete")

    def method(self, name, *args, nargout=1):
        return call(self.class_name, self.id, name, *args, nargout=nargout)


class TestBackgroundSubtractorMOG2(ObjectTestCase):

    class_name = "BackgroundSubtractorMOG2_"
    constructor_args = ("History", 50, "DetectShadows", False)

    def test_foreground_mask(self):
        background = np.full((48, 48), 40, dtype=np.uint8)
        for _ in range(10):
            self.method("apply", background)
        frame = background.copy()
        frame[10:30, 10:30] = 220

        mask = self.method("apply", frame, "LearningRate", 0)

        self.assertEqual(mask.dtype, np.uint8)
        self.assertEqual(mask.shape, frame.shape)
        self.assertEqual(mask[20, 20], 255)
        self.assertEqual(mask[40, 40], 0)

    def test_background_image(self):
        background = np.full((16, 16), 90, dtype=np.uint8)
        for _ in range(5):
            self.method("apply", background, "LearningRate", 1)
        np.testing.assert_array_equal(self.method("getBackgroundImage"), background)

    def test_properties(self):
        self.assertEqual(self.method("get", "History"), 50)
        self.assertIs(self.method("get", "DetectShadows"), False)
        self.method("set", "History", 200, nargout=0)
        self.method("set", "VarThreshold", 25.5, nargout=0)
        self.assertEqual(self.method("get", "History"), 200)
        self.assertEqual(self.method("get", "VarThreshold"), 25.5)

    def test_unknown_property(self):
        with self.assertRaises(InvalidArgument):
            self.method("get", "Volume")

    def test_algorithm_methods(self):
        self.assertEqual(self.method("getDefaultName"), "BackgroundSubtractor_MOG2")
        self.assertIs(self.method("empty"), False)


class TestBackgroundSubtractorKNN(ObjectTestCase):

    class_name = "BackgroundSubtractorKNN_"

    def test_apply(self):
        frame = np.zeros((24, 24, 3), dtype=np.uint8)
        mask = self.method("apply", frame)
        self.assertEqual(mask.shape, (24, 24))

    def test_properties(self):
        self.assertEqual(self.method("get", "Dist2Threshold"), 400.0)
        self.assertIs(self.method("get", "DetectShadows"), True)
        self.method("set", "KNNSamples", 3, nargout=0)
        self.assertEqual(self.method("get", "KNNSamples"), 3)


class TestFeature2D(ObjectTestCase):

    class_name = "Feature2D_"
    constructor_args = ("ORB", "MaxFeatures", 200)

    def setUp(self):
        super().setUp()
        self.img = data.camera()

    def test_detect(self):
        keypoints = self.method("detect", self.img)
        self.assertIsInstance(keypoints, StructArray)
        self.assertGreater(len(keypoints), 0)
        self.assertLessEqual(len(keypoints), 200)

    def test_detect_with_mask(self):
        mask = np.zeros(self.img.shape, dtype=np.uint8)
        mask[:256, :256] = 1
        keypoints = self.method("detect", self.img, "Mask", mask)
        self.assertTrue(all(kp["pt"][0, 0] < 256 and kp["pt"][0, 1] < 256 for kp in keypoints))

    def test_compute(self):
        keypoints = self.method("detect", self.img)
        descriptors, kept = self.method("compute", self.img, keypoints, nargout=2)
        self.assertEqual(descriptors.dtype, np.uint8)
        self.assertEqual(descriptors.shape, (len(kept), 32))

    def test_detect_and_compute(self):
        keypoints, descriptors = self.method("detectAndCompute", self.img, nargout=2)
        self.assertEqual(descriptors.shape[0], len(keypoints))

        again, recomputed = self.method("detectAndCompute", self.img, "Keypoints", keypoints, nargout=2)
        self.assertGreater(len(again), 0)
        self.assertEqual(recomputed.shape, (len(again), 32))

    def test_descriptor_info(self):
        self.assertEqual(self.method("descriptorSize"), 32)
        self.assertEqual(self.method("descriptorType"), "uint8")
        self.assertEqual(self.method("defaultNorm"), "Hamming")

    def test_unknown_type(self):
        with self.assertRaises(InvalidArgument):
            call("Feature2D_", 0, "new", "SURFACE")

    def test_bad_type_option(self):
        with self.assertRaises(InvalidArgument):
            call("Feature2D_", 0, "new", "ORB", "Threshold", 10)

    def test_other_detectors(self):
        for type_name in ("SIFT", "AKAZE", "BRISK", "FastFeatureDetector", "GFTTDetector", "SimpleBlobDetector"):
            with self.subTest(type_name=type_name):
                other = call("Feature2D_", 0, "new", type_name, nargout=1)
                keypoints = call("Feature2D_", other, "detect", self.img[:128, :128], nargout=1)
                self.assertIsInstance(keypoints, StructArray)
                call("Feature2D_", other, "delete")


class TestDescriptorMatcher(ObjectTestCase):

    class_name = "DescriptorMatcher_"
    constructor_args = ("BruteForce",)

    def setUp(self):
        super().setUp()
        rng = np.random.default_rng(1)
        self.train = rng.random((6, 8)).astype(np.float32)
        self.query = self.train[[2, 0, 5]]

    def test_match_two_sets(self):
        matches = self.method("match", self.query, self.train)
        self.assertEqual(len(matches), 3)
        self.assertEqual(matches.field("trainIdx"), [2, 0, 5])
        self.assertEqual(matches.field("distance"), [0.0, 0.0, 0.0])

    def test_match_train_set(self):
        self.method("add", self.train, nargout=0)
        self.method("train", nargout=0)
        self.assertEqual(len(self.method("getTrainDescriptors")), 1)
        matches = self.method("match", self.query)
        self.assertEqual(matches.field("trainIdx"), [2, 0, 5])
        self.assertEqual(matches.field("imgIdx"), [0, 0, 0])

    def test_knn_match(self):
        rows = self.method("knnMatch", self.query, self.train, 2)
        self.assertEqual(len(rows), 3)
        self.assertTrue(all(len(row) == 2 for row in rows))
        self.assertEqual(rows[0][0]["trainIdx"], 2)

    def test_radius_match(self):
        rows = self.method("radiusMatch", self.query, self.train, 1e-3)
        self.assertEqual([row.field("trainIdx") for row in rows], [[2], [0], [5]])

    def test_mask(self):
        mask = np.ones((3, 6), dtype=np.uint8)
        mask[0, 2] = 0
        matches = self.method("match", self.query, self.train, "Mask", mask)
        self.assertNotEqual(matches[0]["trainIdx"], 2)

    def test_is_mask_supported(self):
        self.assertIs(self.method("isMaskSupported"), True)

    def test_unknown_matcher(self):
        with self.assertRaises(InvalidArgument):
            call("DescriptorMatcher_", 0, "new", "Telepathy")


class TestKalmanFilter(ObjectTestCase):

    class_name = "KalmanFilter_"
    constructor_args = (4, 2)

    def test_constant_velocity(self):
        self.method(
            "set",
            "transitionMatrix",
            np.array([[1, 0, 1, 0], [0, 1, 0, 1], [0, 0, 1, 0], [0, 0, 0, 1]], dtype=np.float64),
            nargout=0,
        )
        self.method("set", "measurementMatrix", np.eye(2, 4), nargout=0)
        self.method("set", "processNoiseCov", np.eye(4) * 1e-4, nargout=0)
        self.method("set", "measurementNoiseCov", np.eye(2) * 1e-2, nargout=0)
        self.method("set", "errorCovPost", np.eye(4), nargout=0)

        for t in range(1, 30):
            self.method("predict")
            state = self.method("correct", np.array([t, 2.0 * t]))

        self.assertEqual(state.shape, (4, 1))
        np.testing.assert_allclose(state[2:, 0], [1.0, 2.0], atol=0.1)

    def test_precision_follows_filter(self):
        self.method("init", 2, 1, "Type", "single", nargout=0)
        self.method("set", "transitionMatrix", np.eye(2), nargout=0)
        self.assertEqual(self.method("get", "transitionMatrix").dtype, np.float32)
        self.assertEqual(self.method("predict").dtype, np.float32)

    def test_control_input(self):
        self.method("init", 2, 1, "ControlParams", 1, nargout=0)
        self.method("set", "controlMatrix", np.array([[1.0], [0.0]]), nargout=0)
        state = self.method("predict", "Control", np.array([3.0]))
        np.testing.assert_allclose(state.ravel(), [3.0, 0.0])

    def test_init_resets_dimensions(self):
        self.method("set", "statePost", np.ones((4, 1)), nargout=0)
        self.method("init", 3, 1, nargout=0)
        self.assertEqual(self.method("get", "statePost").shape, (3, 1))
        self.assertEqual(self.method("get", "measurementMatrix").shape, (1, 3))
        self.assertEqual(self.method("get", "statePost").dtype, np.float64)
        np.testing.assert_array_equal(self.method("get", "transitionMatrix"), np.eye(3))
        self.assertEqual(self.method("predict").shape, (3, 1))

    def test_init_arguments(self):
        with self.assertRaises(ArgumentCountError):
            self.method("init", 2, nargout=0)


class TestKNearest(ObjectTestCase):

    class_name = "KNearest_"

    def setUp(self):
        super().setUp()
        self.samples = np.array([[0, 0], [0, 1], [1, 0], [10, 10], [10, 11], [11, 10]], dtype=np.float32)
        self.responses = np.array([[0], [0], [0], [1], [1], [1]], dtype=np.float32)
        self.method("set", "DefaultK", 3, nargout=0)

    def test_train_and_predict(self):
        self.assertIs(self.method("empty"), True)
        self.assertIs(self.method("train", self.samples, self.responses), True)
        self.assertIs(self.method("isTrained"), True)
        self.assertEqual(self.method("getVarCount"), 2)

        results = self.method("predict", np.array([[0.5, 0.5], [10.5, 10.5]]))
        np.testing.assert_array_equal(results.ravel(), [0, 1])

    def test_find_nearest(self):
        self.method("train", self.samples, self.responses)
        results, neighbours, dist = self.method("findNearest", np.array([[0.0, 0.0]]), 2, nargout=3)
        self.assertEqual(results[0, 0], 0)
        self.assertEqual(neighbours.shape, (1, 2))
        self.assertEqual(dist[0, 0], 0)

    def test_properties(self):
        self.assertEqual(self.method("get", "DefaultK"), 3)
        self.assertEqual(self.method("get", "AlgorithmType"), "BruteForce")
        self.method("set", "AlgorithmType", "KDTree", nargout=0)
        self.assertEqual(self.method("get", "AlgorithmType"), "KDTree")
        with self.assertRaises(InvalidArgument):
            self.method("set", "AlgorithmType", "Guess", nargout=0)

    def test_save_and_load(self):
        self.method("train", self.samples, self.responses)
        with tempfile.TemporaryDirectory() as tmp:
            path = str(Path(tmp) / "knn.yml")
            self.method("save", path, nargout=0)

            other = call("KNearest_", 0, "new", nargout=1)
            try:
                call("KNearest_", other, "load", path)
                self.assertIs(call("KNearest_", other, "isTrained", nargout=1), True)
                results = call("KNearest_", other, "predict", np.array([[10.0, 10.0]]), nargout=1)
                self.assertEqual(results[0, 0], 1)
            finally:
                call("KNearest_", other, "delete")

    def test_load_from_string(self):
        self.method("train", self.samples, self.responses)
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "knn.yml"
            self.method("save", str(path), nargout=0)
            text = path.read_text()

        other = call("KNearest_", 0, "new", nargout=1)
        try:
            call("KNearest_", other, "load", text, "FromString", True, "ObjName", "opencv_ml_knn")
            self.assertEqual(call("KNearest_", other, "getVarCount", nargout=1), 2)
        finally:
            call("KNearest_", other, "delete")


if __name__ == "__main__":
    unittest.main()
