"""Tests for the marshaling layer."""

import itertools
import unittest

import cv2
import numpy as np

from mexopencv.core.errors import InvalidArgument
from mexopencv.core.mxarray import CLASS_DTYPES, DEPTH_OF, MxArray, StructArray, saturate_cast

SIZES = (0, 1, 5, 100)


class TestClassInference(unittest.TestCase):

    def test_python_values(self):
        self.assertEqual(MxArray(3).class_name, "double")
        self.assertEqual(MxArray(2.5).class_name, "double")
        self.assertEqual(MxArray(True).class_name, "logical")
        self.assertEqual(MxArray("abc").class_name, "char")
        self.assertEqual(MxArray([1, "a"]).class_name, "cell")
        self.assertEqual(MxArray({"a": 1}).class_name, "struct")
        self.assertEqual(MxArray(StructArray([{"a": 1}, {"a": 2}])).class_name, "struct")

    def test_none_is_empty_double(self):
        arr = MxArray(None)
        self.assertEqual(arr.class_name, "double")
        self.assertEqual(arr.dims, (0, 0))
        self.assertTrue(arr.is_empty)

    def test_numpy_classes(self):
        for name, dtype in CLASS_DTYPES.items():
            with self.subTest(name=name):
                self.assertEqual(MxArray(np.zeros((2, 2), dtype=dtype)).class_name, name)

    def test_unsupported_dtype(self):
        with self.assertRaises(InvalidArgument):
            MxArray(np.zeros(3, dtype=np.complex128))

    def test_dims(self):
        self.assertEqual(MxArray(np.zeros(4)).dims, (1, 4))
        self.assertEqual(MxArray(np.zeros((3, 4, 2))).dims, (3, 4, 2))
        self.assertEqual(MxArray("hello").dims, (1, 5))
        self.assertEqual(MxArray([1, 2, 3]).dims, (1, 3))
        self.assertEqual(MxArray(StructArray([{"a": 1}] * 3)).dims, (1, 3))


class TestMatrixLayout(unittest.TestCase):

    def test_round_trip_every_size_and_class(self):
        """An R-by-C host array comes back element for element."""
        rng = np.random.default_rng(0)
        for name in DEPTH_OF:
            dtype = CLASS_DTYPES[name]
            for rows, cols in itertools.product(SIZES, SIZES):
                with self.subTest(cls=name, rows=rows, cols=cols):
                    if name == "logical":
                        host = rng.integers(0, 2, size=(rows, cols)).astype(bool)
                    else:
                        host = rng.integers(0, 100, size=(rows, cols)).astype(dtype)
                    host = np.asfortranarray(host)

                    mat = MxArray(host).to_mat()
                    self.assertTrue(mat.flags.c_contiguous)
                    self.assertEqual(mat.shape, (rows, cols))

                    back = MxArray.from_mat(mat, name)
                    self.assertTrue(back.flags.f_contiguous)
                    self.assertEqual(back.dtype, host.dtype)
                    np.testing.assert_array_equal(back, host)

    def test_channels_are_third_dimension(self):
        host = np.arange(2 * 3 * 3, dtype=np.uint8).reshape(2, 3, 3)
        mat = MxArray(host).to_mat(channels=3)
        self.assertEqual(mat.shape, (2, 3, 3))
        np.testing.assert_array_equal(mat[1, 2], host[1, 2])

    def test_channel_mismatch(self):
        with self.assertRaises(InvalidArgument):
            MxArray(np.zeros((4, 4))).to_mat(channels=3)

    def test_requested_depth(self):
        mat = MxArray(np.array([[1.6, -3.0, 300.0]])).to_mat(cv2.CV_8U)
        self.assertEqual(mat.dtype, np.uint8)
        np.testing.assert_array_equal(mat, [[2, 0, 255]])

    def test_non_numeric_to_mat(self):
        with self.assertRaises(InvalidArgument):
            MxArray("text").to_mat()
        with self.assertRaises(InvalidArgument):
            MxArray(np.zeros((2, 2), dtype=np.int64)).to_mat()

    def test_from_mat_vector_is_column(self):
        self.assertEqual(MxArray.from_mat(np.arange(5)).shape, (5, 1))

    def test_from_mat_none(self):
        empty = MxArray.from_mat(None)
        self.assertEqual(empty.shape, (0, 0))
        self.assertEqual(empty.dtype, np.float64)

    def test_from_mat_copies(self):
        mat = np.zeros((3, 3), dtype=np.float32)
        host = MxArray.from_mat(mat)
        mat[0, 0] = 1
        self.assertEqual(host[0, 0], 0)

    def test_saturate_cast(self):
        out = saturate_cast(np.array([np.nan, 0.5, 1.5, -200.0, 1e10]), np.int8)
        np.testing.assert_array_equal(out, [0, 0, 2, -128, 127])


class TestScalarsAndRecords(unittest.TestCase):

    def test_scalars(self):
        self.assertEqual(MxArray(3.7).to_int(), 3)
        self.assertEqual(MxArray(np.array([[2.5]])).to_double(), 2.5)
        self.assertTrue(MxArray(1).to_bool())
        with self.assertRaises(InvalidArgument):
            MxArray(np.zeros(2)).to_double()
        with self.assertRaises(InvalidArgument):
            MxArray("7").to_int()

    def test_non_finite_integers(self):
        for value in (np.nan, np.inf, -np.inf):
            with self.subTest(value=value):
                with self.assertRaises(InvalidArgument):
                    MxArray(value).to_int()
                with self.assertRaises(InvalidArgument):
                    MxArray(np.array([value, 4.0])).to_size()
        self.assertTrue(np.isnan(MxArray(np.nan).to_double()))

    def test_string(self):
        self.assertEqual(MxArray("Reflect").to_string(), "Reflect")
        with self.assertRaises(InvalidArgument):
            MxArray(1).to_string()

    def test_geometry(self):
        self.assertEqual(MxArray(np.array([3, 4])).to_point(), (3, 4))
        self.assertEqual(MxArray(np.array([640, 480])).to_size(), (640, 480))
        self.assertEqual(MxArray(np.array([1, 2, 3, 4])).to_rect(), (1, 2, 3, 4))
        self.assertEqual(MxArray(np.array([1, 2])).to_scalar(), (1.0, 2.0, 0.0, 0.0))
        with self.assertRaises(InvalidArgument):
            MxArray(np.array([1, 2, 3])).to_size()

    def test_term_criteria(self):
        crit = MxArray({"type": "Count+EPS", "maxCount": 30, "epsilon": 0.01}).to_term_criteria()
        self.assertEqual(crit, (cv2.TERM_CRITERIA_COUNT + cv2.TERM_CRITERIA_EPS, 30, 0.01))
        self.assertEqual(MxArray.from_term_criteria(crit)["type"], "Count+EPS")

    def test_points(self):
        cell = MxArray([np.array([1.0, 2.0]), np.array([3.0, 4.0])])
        np.testing.assert_array_equal(cell.to_points(), [[1, 2], [3, 4]])
        matrix = MxArray(np.array([[1, 2], [3, 4]], dtype=np.int32))
        self.assertEqual(matrix.to_points(2, cv2.CV_32S).dtype, np.int32)
        self.assertEqual(MxArray(None).to_points().shape, (0, 2))
        rows = MxArray.from_points(np.array([[[5.0, 6.0]]]))
        self.assertEqual(len(rows), 1)
        np.testing.assert_array_equal(rows[0], [[5.0, 6.0]])

    def test_keypoints(self):
        keypoints = [cv2.KeyPoint(10.0, 20.0, 7.0, 45.0, 0.5, 1, 3), cv2.KeyPoint(1.0, 2.0, 3.0)]
        host = MxArray.from_keypoints(keypoints)
        self.assertEqual(len(host), 2)
        self.assertEqual(host.fields, ["pt", "size", "angle", "response", "octave", "class_id"])

        back = MxArray(host).to_keypoints()
        self.assertEqual(back[0].pt, (10.0, 20.0))
        self.assertEqual(back[0].angle, 45.0)
        self.assertEqual(back[0].class_id, 3)

    def test_keypoint_defaults(self):
        kp = MxArray({"pt": np.array([1.0, 2.0]), "size": 4.0}).to_keypoint()
        self.assertEqual(kp.angle, -1.0)
        self.assertEqual(kp.octave, 0)
        self.assertEqual(kp.class_id, -1)

    def test_dmatches(self):
        host = MxArray.from_dmatches([cv2.DMatch(0, 2, 0, 1.5)])
        self.assertEqual(host.field("trainIdx"), [2])
        match = MxArray(StructArray([{"queryIdx": 1, "trainIdx": 3, "distance": 0.25}])).to_dmatches()[0]
        self.assertEqual((match.queryIdx, match.trainIdx, match.imgIdx), (1, 3, 0))

    def test_rotated_rect(self):
        host = MxArray.from_rotated_rect(((10.0, 20.0), (4.0, 2.0), 30.0))
        np.testing.assert_array_equal(host["center"], [[10.0, 20.0]])
        self.assertEqual(MxArray(host).to_rotated_rect(), ((10.0, 20.0), (4.0, 2.0), 30.0))

    def test_struct_access(self):
        records = MxArray(StructArray([{"a": 1}, {"a": 2}]))
        self.assertEqual(records.field("a", 1).to_int(), 2)
        self.assertEqual(records.at(0).field("a").to_int(), 1)
        with self.assertRaises(InvalidArgument):
            records.field("b")
        with self.assertRaises(InvalidArgument):
            records.field("a", 5)

    def test_struct_array_unknown_field(self):
        with self.assertRaises(InvalidArgument):
            StructArray([{"a": 1, "b": 2}], fields=["a"])

    def test_vectors(self):
        self.assertEqual(MxArray(np.array([1, 2, 3])).to_vector(MxArray.to_int), [1, 2, 3])
        self.assertEqual(MxArray([1, 2]).to_vector(MxArray.to_double), [1.0, 2.0])
        self.assertEqual(len(MxArray(np.zeros((3, 2))).to_mats()), 1)


if __name__ == "__main__":
    unittest.main()
