"""Tests for the handle registry and the object call protocol."""

import unittest

import numpy as np

from mexopencv import call
from mexopencv.core.errors import ArgumentCountError, InvalidArgument
from mexopencv.core.registry import HandleRegistry


class TestHandleRegistry(unittest.TestCase):

    def setUp(self):
        self.registry = HandleRegistry("Thing")

    def test_handles_start_at_one(self):
        self.assertEqual(self.registry.insert("a"), 1)
        self.assertEqual(self.registry.insert("b"), 2)
        self.assertEqual(self.registry.get(2), "b")
        self.assertEqual(len(self.registry), 2)

    def test_handles_are_not_reused(self):
        first = self.registry.insert("a")
        self.registry.remove(first)
        self.assertEqual(self.registry.insert("b"), first + 1)
        self.assertNotIn(first, self.registry)

    def test_unknown_handle(self):
        with self.assertRaises(InvalidArgument) as cm:
            self.registry.get(1)
        self.assertEqual(cm.exception.message, "Object not found id=1")

    def test_double_remove(self):
        handle = self.registry.insert("a")
        self.registry.remove(handle)
        with self.assertRaises(InvalidArgument):
            self.registry.remove(handle)

    def test_empty_object(self):
        with self.assertRaises(InvalidArgument):
            self.registry.insert(None)

    def test_handles(self):
        a = self.registry.insert("a")
        b = self.registry.insert("b")
        self.registry.remove(a)
        self.assertEqual(self.registry.handles(), [b])


class TestObjectLifecycle(unittest.TestCase):

    def test_delete_leaves_other_objects_alone(self):
        first = call("KalmanFilter_", 0, "new", 4, 2, nargout=1)
        second = call("KalmanFilter_", 0, "new", 4, 2, nargout=1)
        self.assertEqual(second, first + 1)

        self.assertIsNone(call("KalmanFilter_", first, "delete"))

        with self.assertRaises(InvalidArgument) as cm:
            call("KalmanFilter_", first, "predict", nargout=1)
        self.assertEqual(cm.exception.message, f"Object not found id={first}")

        state = call("KalmanFilter_", second, "predict", nargout=1)
        self.assertEqual(state.shape, (4, 1))
        call("KalmanFilter_", second, "delete")

    def test_double_delete(self):
        handle = call("KalmanFilter_", 0, "new", nargout=1)
        call("KalmanFilter_", handle, "delete")
        with self.assertRaises(InvalidArgument):
            call("KalmanFilter_", handle, "delete")

    def test_delete_returns_nothing(self):
        handle = call("KalmanFilter_", 0, "new", nargout=1)
        with self.assertRaises(ArgumentCountError):
            call("KalmanFilter_", handle, "delete", nargout=1)
        call("KalmanFilter_", handle, "delete")

    def test_unknown_operation(self):
        handle = call("KalmanFilter_", 0, "new", 2, 1, nargout=1)
        with self.assertRaises(InvalidArgument):
            call("KalmanFilter_", handle, "fly")
        call("KalmanFilter_", handle, "delete")

    def test_properties(self):
        handle = call("KalmanFilter_", 0, "new", 2, 1, nargout=1)

        call("KalmanFilter_", handle, "set", "transitionMatrix", np.array([[1.0, 1.0], [0.0, 1.0]]))
        transition = call("KalmanFilter_", handle, "get", "transitionMatrix", nargout=1)
        np.testing.assert_array_equal(transition, [[1.0, 1.0], [0.0, 1.0]])

        with self.assertRaises(InvalidArgument):
            call("KalmanFilter_", handle, "get", "noSuchMatrix", nargout=1)
        with self.assertRaises(ArgumentCountError):
            call("KalmanFilter_", handle, "get", nargout=1)
        call("KalmanFilter_", handle, "delete")


if __name__ == "__main__":
    unittest.main()
