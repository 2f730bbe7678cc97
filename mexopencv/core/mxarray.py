"""Marshaling between host values and native OpenCV types.

The host environment exchanges plain Python and numpy values with the
adapters. This module wraps one such value in an `MxArray`, which knows the
host class of the value (``double``, ``uint8``, ``char``, ``cell``, ...) and
converts it into whatever ``cv2`` expects: a row-major matrix with
interleaved channels, a scalar, a point, a keypoint, a list of records, and
so on. The ``from_*`` constructors go the other way and always produce
freshly allocated, column-major (Fortran-ordered) host arrays.

Host value model:
    - numeric ``ndarray`` or Python ``int``/``float`` (1x1 ``double``);
      1-D arrays are 1xN row vectors, channels are the third dimension.
    - ``bool`` or boolean ``ndarray`` is ``logical``.
    - ``str`` is ``char``.
    - ``list``/``tuple`` is ``cell``.
    - ``dict`` is a 1x1 ``struct``, `StructArray` a 1xN ``struct``.
    - ``None`` is the empty 0x0 ``double`` matrix.

Classes:
    StructArray: A 1xN struct array with a fixed ordered list of fields.
    MxArray: Wrapper around a host value with conversion routines.

Functions:
    saturate_cast: Convert an array to another dtype with rounding and clipping.
"""

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from typing import Any

import cv2
import numpy as np
from numpy import typing as npt

from mexopencv.core.constants import TermCritType
from mexopencv.core.errors import AllocationError, InvalidArgument

# Host class name -> numpy dtype
CLASS_DTYPES: dict[str, type[np.generic]] = {
    "double": np.float64,
    "single": np.float32,
    "int8": np.int8,
    "uint8": np.uint8,
    "int16": np.int16,
    "uint16": np.uint16,
    "int32": np.int32,
    "uint32": np.uint32,
    "int64": np.int64,
    "uint64": np.uint64,
    "logical": np.bool_,
}

# numpy dtype -> host class name
DTYPE_CLASSES: dict[np.dtype, str] = {np.dtype(dtype): name for name, dtype in CLASS_DTYPES.items()}

# Host class name -> native depth. int64 and uint64 have no native depth.
DEPTH_OF: dict[str, int] = {
    "double": cv2.CV_64F,
    "single": cv2.CV_32F,
    "int8": cv2.CV_8S,
    "uint8": cv2.CV_8U,
    "int16": cv2.CV_16S,
    "uint16": cv2.CV_16U,
    "int32": cv2.CV_32S,
    "uint32": cv2.CV_32S,
    "logical": cv2.CV_8U,
}

# Native depth -> numpy dtype
DEPTH_DTYPES: dict[int, type[np.generic]] = {
    cv2.CV_8U: np.uint8,
    cv2.CV_8S: np.int8,
    cv2.CV_16U: np.uint16,
    cv2.CV_16S: np.int16,
    cv2.CV_32S: np.int32,
    cv2.CV_32F: np.float32,
    cv2.CV_64F: np.float64,
}

NUMERIC_CLASSES = ("double", "single", "int8", "uint8", "int16", "uint16", "int32", "uint32", "int64", "uint64")

KEYPOINT_FIELDS = ("pt", "size", "angle", "response", "octave", "class_id")
DMATCH_FIELDS = ("queryIdx", "trainIdx", "imgIdx", "distance")
ROTATED_RECT_FIELDS = ("center", "size", "angle")
TERM_CRITERIA_FIELDS = ("type", "maxCount", "epsilon")


def saturate_cast(arr: npt.NDArray[Any], dtype: npt.DTypeLike) -> npt.NDArray[Any]:
    """Convert an array the way ``cv::Mat::convertTo`` does.

    Floating point values are rounded half to even before an integer
    conversion, and every value is clipped to the range of the target type.
    NaN becomes zero in integer targets.

    Args:
        arr: Source array.
        dtype: Target dtype.

    Returns:
        The converted array, or ``arr`` itself when the dtype already matches.
    """
    dtype = np.dtype(dtype)
    if arr.dtype == dtype:
        return arr
    if arr.dtype == np.bool_ or dtype.kind not in "iu":
        return arr.astype(dtype)
    info = np.iinfo(dtype)
    if arr.dtype.kind == "f":
        wide = np.rint(np.nan_to_num(arr.astype(np.float64), nan=0.0))
    else:
        wide = arr.astype(np.float64) if arr.dtype == np.uint64 else arr.astype(np.int64)
    return np.clip(wide, info.min, info.max).astype(dtype)


class StructArray:
    """A 1-by-N host struct array.

    Every record holds the same ordered list of fields; fields missing from a
    record passed in are filled with ``None`` (the empty matrix).

    Attributes:
        fields: Ordered field names.
        records: One dictionary per element.
    """

    def __init__(self, records: Iterable[Mapping[str, Any]] = (), fields: Sequence[str] | None = None) -> None:
        records = [dict(record) for record in records]
        if fields is None:
            fields = []
            for record in records:
                fields.extend(name for name in record if name not in fields)
        self.fields: list[str] = list(fields)
        self.records: list[dict[str, Any]] = []
        for record in records:
            unknown = set(record) - set(self.fields)
            if unknown:
                raise InvalidArgument(f"Unknown struct fields {sorted(unknown)}")
            self.records.append({name: record.get(name) for name in self.fields})

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self.records)

    def __getitem__(self, index: int) -> dict[str, Any]:
        return self.records[index]

    def field(self, name: str) -> list[Any]:
        """Return the values of one field across all records."""
        if name not in self.fields:
            raise InvalidArgument(f"Field '{name}' not found")
        return [record[name] for record in self.records]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StructArray):
            return NotImplemented
        if self.fields != other.fields or len(self) != len(other):
            return False
        return all(_values_equal(a[name], b[name]) for a, b in zip(self, other) for name in self.fields)

    def __repr__(self) -> str:
        return f"StructArray(1x{len(self)}, fields={self.fields})"


def _values_equal(a: Any, b: Any) -> bool:
    if isinstance(a, np.ndarray) or isinstance(b, np.ndarray):
        return bool(np.array_equal(a, b))
    return bool(a == b)


def _finite_int(value: Any) -> int:
    if not np.isfinite(value):
        raise InvalidArgument("MxArray is not a finite integer")
    return int(value)


def _class_of(value: Any) -> str:
    if value is None:
        return "double"
    if isinstance(value, (bool, np.bool_)):
        return "logical"
    if isinstance(value, (int, float)):
        return "double"
    if isinstance(value, np.generic):
        return _class_of_dtype(value.dtype)
    if isinstance(value, str):
        return "char"
    if isinstance(value, np.ndarray):
        return _class_of_dtype(value.dtype)
    if isinstance(value, (list, tuple)):
        return "cell"
    if isinstance(value, (dict, StructArray)):
        return "struct"
    raise InvalidArgument(f"Unsupported host value of type {type(value).__name__}")


def _class_of_dtype(dtype: np.dtype) -> str:
    try:
        return DTYPE_CLASSES[np.dtype(dtype)]
    except KeyError:
        raise InvalidArgument(f"Unsupported array type {dtype}") from None


class MxArray:
    """A host value together with its conversions to native types.

    Attributes:
        value: The wrapped host value.
        class_name: The host class of the value.
    """

    def __init__(self, value: Any) -> None:
        if isinstance(value, MxArray):
            value = value.value
        self.value = value
        self.class_name: str = _class_of(value)

    def __repr__(self) -> str:
        dims = "x".join(str(d) for d in self.dims)
        return f"MxArray({dims} {self.class_name})"

    # ------------------------------Type queries------------------------------
    @property
    def is_char(self) -> bool:
        return self.class_name == "char"

    @property
    def is_numeric(self) -> bool:
        return self.class_name in NUMERIC_CLASSES

    @property
    def is_logical(self) -> bool:
        return self.class_name == "logical"

    @property
    def is_cell(self) -> bool:
        return self.class_name == "cell"

    @property
    def is_struct(self) -> bool:
        return self.class_name == "struct"

    @property
    def is_float(self) -> bool:
        return self.class_name in ("double", "single")

    @property
    def dims(self) -> tuple[int, ...]:
        """Host dimensions, always at least two."""
        if self.is_char:
            return (1, len(self.value)) if self.value else (0, 0)
        if self.is_cell:
            return (1, len(self.value)) if self.value else (0, 0)
        if self.is_struct:
            return (1, 1) if isinstance(self.value, dict) else (1, len(self.value))
        return self._as_array().shape

    @property
    def ndims(self) -> int:
        return len(self.dims)

    @property
    def numel(self) -> int:
        return int(np.prod(self.dims))

    @property
    def is_empty(self) -> bool:
        return self.numel == 0

    @property
    def is_scalar(self) -> bool:
        return self.numel == 1

    @property
    def fieldnames(self) -> list[str]:
        if isinstance(self.value, dict):
            return list(self.value)
        if isinstance(self.value, StructArray):
            return list(self.value.fields)
        raise InvalidArgument("MxArray is not a struct")

    def is_field(self, name: str) -> bool:
        return self.is_struct and name in self.fieldnames

    def _as_array(self) -> npt.NDArray[Any]:
        value = self.value
        if value is None:
            return np.zeros((0, 0), dtype=np.float64)
        arr = np.asarray(value, dtype=CLASS_DTYPES[self.class_name])
        if arr.ndim == 0:
            return arr.reshape(1, 1)
        if arr.ndim == 1:
            return arr.reshape(1, -1)
        return arr

    # ------------------------------Aggregates------------------------------
    def field(self, name: str, index: int = 0) -> "MxArray":
        """Return one field of one struct element.

        Raises:
            InvalidArgument: If the value is not a struct, the index is out of
                range, or the field does not exist.
        """
        if not self.is_struct:
            raise InvalidArgument("MxArray is not a struct")
        if not 0 <= index < self.numel:
            raise InvalidArgument(f"Struct index {index} out of range")
        record = self.value if isinstance(self.value, dict) else self.value[index]
        if name not in record:
            raise InvalidArgument(f"Field '{name}' not found")
        return MxArray(record[name])

    def at(self, index: int) -> "MxArray":
        """Return one element of a cell or struct array."""
        if self.is_cell:
            if not 0 <= index < len(self.value):
                raise InvalidArgument(f"Cell index {index} out of range")
            return MxArray(self.value[index])
        if isinstance(self.value, StructArray):
            return MxArray(self.value[index])
        if isinstance(self.value, dict) and index == 0:
            return self
        raise InvalidArgument("MxArray is not a cell or struct array")

    # ------------------------------Matrices------------------------------
    def to_mat(self, depth: int | None = None, channels: int | None = None) -> npt.NDArray[Any]:
        """Convert to a native matrix.

        The result is C-contiguous: rows first, channels interleaved. A host
        RxCxN array becomes an R-by-C matrix with N channels.

        Args:
            depth: Native depth such as ``cv2.CV_32F``. Inferred from the host
                class when omitted.
            channels: Expected channel count; checked when given.

        Returns:
            The native matrix as a numpy array.

        Raises:
            InvalidArgument: If the value is not numeric or logical, has no
                native depth, or does not have the requested channel count.
        """
        if not (self.is_numeric or self.is_logical):
            raise InvalidArgument(f"MxArray of class {self.class_name} cannot be converted to a matrix")
        if self.class_name not in DEPTH_OF:
            raise InvalidArgument(f"MxArray of class {self.class_name} is not supported")
        arr = self._as_array()
        if arr.ndim > 3:
            raise InvalidArgument(f"MxArray with {arr.ndim} dimensions cannot be converted to a matrix")
        if channels is not None:
            actual = arr.shape[2] if arr.ndim == 3 else 1
            if actual != channels:
                raise InvalidArgument(f"Expected a {channels}-channel array, got {actual} channels")
        if depth is None or depth < 0:
            depth = DEPTH_OF[self.class_name]
        if depth not in DEPTH_DTYPES:
            raise InvalidArgument(f"Unsupported depth {depth}")
        if self.is_logical:
            arr = arr.astype(np.uint8)
        return np.ascontiguousarray(saturate_cast(arr, DEPTH_DTYPES[depth]))

    def to_mats(self, depth: int | None = None) -> list[npt.NDArray[Any]]:
        """Convert a cell of matrices, or one matrix, to a list of matrices."""
        if self.is_cell:
            return [MxArray(v).to_mat(depth) for v in self.value]
        return [self.to_mat(depth)]

    @staticmethod
    def from_mat(mat: npt.ArrayLike | None, classid: str | None = None) -> npt.NDArray[Any]:
        """Convert a native matrix to a new host array.

        Args:
            mat: The native matrix; ``None`` stands for an empty matrix.
            classid: Host class of the result. Inferred from the matrix dtype
                when omitted. ``"logical"`` maps nonzero elements to true.

        Returns:
            A freshly allocated Fortran-ordered array. 1-D native vectors
            become column vectors.

        Raises:
            InvalidArgument: If the class is unknown.
            AllocationError: If the host array cannot be allocated.
        """
        if mat is None:
            return np.zeros((0, 0), dtype=CLASS_DTYPES[classid or "double"], order="F")
        arr = np.asarray(mat)
        if arr.ndim == 0:
            arr = arr.reshape(1, 1)
        elif arr.ndim == 1:
            arr = arr.reshape(-1, 1)
        if classid is None:
            classid = _class_of_dtype(arr.dtype)
        elif classid not in CLASS_DTYPES:
            raise InvalidArgument(f"Unrecognized class {classid}")
        try:
            if classid == "logical":
                return np.array(arr != 0, order="F")
            return np.array(saturate_cast(arr, CLASS_DTYPES[classid]), order="F")
        except MemoryError as e:
            raise AllocationError() from e

    @staticmethod
    def from_mats(mats: Iterable[npt.ArrayLike], classid: str | None = None) -> list[npt.NDArray[Any]]:
        return [MxArray.from_mat(m, classid) for m in mats]

    # ------------------------------Strings------------------------------
    def to_string(self) -> str:
        if not self.is_char:
            raise InvalidArgument("MxArray not of type char")
        return str(self.value)

    @staticmethod
    def from_string(s: str) -> str:
        return str(s)

    # ------------------------------Scalars------------------------------
    def _scalar(self) -> Any:
        if not (self.is_numeric or self.is_logical):
            raise InvalidArgument(f"MxArray of class {self.class_name} is not a number")
        arr = self._as_array()
        if arr.size != 1:
            raise InvalidArgument("MxArray is not a scalar")
        return arr.flat[0]

    def to_int(self) -> int:
        return _finite_int(self._scalar())

    def to_double(self) -> float:
        return float(self._scalar())

    def to_bool(self) -> bool:
        return bool(self._scalar())

    # ------------------------------Records------------------------------
    def _values(self, count: int, what: str) -> list[Any]:
        if not (self.is_numeric or self.is_logical) or self.numel != count:
            raise InvalidArgument(f"MxArray is not a valid {what}")
        return self._as_array().ravel(order="F").tolist()

    def to_point(self) -> tuple[int, int]:
        x, y = self._values(2, "point")
        return _finite_int(x), _finite_int(y)

    def to_point2f(self) -> tuple[float, float]:
        x, y = self._values(2, "point")
        return float(x), float(y)

    def to_point3f(self) -> tuple[float, float, float]:
        x, y, z = self._values(3, "3D point")
        return float(x), float(y), float(z)

    def to_size(self) -> tuple[int, int]:
        """Convert a ``[width height]`` pair."""
        w, h = self._values(2, "size")
        return _finite_int(w), _finite_int(h)

    def to_rect(self) -> tuple[int, int, int, int]:
        """Convert an ``[x y width height]`` vector."""
        x, y, w, h = self._values(4, "rectangle")
        return _finite_int(x), _finite_int(y), _finite_int(w), _finite_int(h)

    def to_scalar(self) -> tuple[float, float, float, float]:
        """Convert a 1 to 4 element vector, padding the rest with zeros."""
        if not (self.is_numeric or self.is_logical) or not 1 <= self.numel <= 4:
            raise InvalidArgument("MxArray is not a valid scalar")
        values = [float(v) for v in self._as_array().ravel(order="F")]
        return tuple(values + [0.0] * (4 - len(values)))  # type: ignore

    def to_term_criteria(self, index: int = 0) -> tuple[int, int, float]:
        """Convert a struct with fields ``type``, ``maxCount`` and ``epsilon``."""
        crit_type = self.field("type", index)
        type_value = TermCritType[crit_type.to_string()] if crit_type.is_char else crit_type.to_int()
        return type_value, self.field("maxCount", index).to_int(), self.field("epsilon", index).to_double()

    def to_keypoint(self, index: int = 0) -> cv2.KeyPoint:
        """Convert one element of a keypoint struct.

        ``pt`` and ``size`` are required; ``angle``, ``response``, ``octave``
        and ``class_id`` default to -1, 0, 0 and -1.
        """
        x, y = self.field("pt", index).to_point2f()
        size = self.field("size", index).to_double()
        angle = self.field("angle", index).to_double() if self._has(index, "angle") else -1.0
        response = self.field("response", index).to_double() if self._has(index, "response") else 0.0
        octave = self.field("octave", index).to_int() if self._has(index, "octave") else 0
        class_id = self.field("class_id", index).to_int() if self._has(index, "class_id") else -1
        return cv2.KeyPoint(x, y, size, angle, response, octave, class_id)

    def to_dmatch(self, index: int = 0) -> cv2.DMatch:
        """Convert one element of a match struct; ``imgIdx`` defaults to 0."""
        img_idx = self.field("imgIdx", index).to_int() if self._has(index, "imgIdx") else 0
        return cv2.DMatch(
            self.field("queryIdx", index).to_int(),
            self.field("trainIdx", index).to_int(),
            img_idx,
            self.field("distance", index).to_double(),
        )

    def to_rotated_rect(self, index: int = 0) -> tuple[tuple[float, float], tuple[float, float], float]:
        return (
            self.field("center", index).to_point2f(),
            self.field("size", index).to_point2f(),
            self.field("angle", index).to_double(),
        )

    def _has(self, index: int, name: str) -> bool:
        if not self.is_field(name):
            return False
        record = self.value if isinstance(self.value, dict) else self.value[index]
        return record[name] is not None

    # ------------------------------Sequences------------------------------
    def to_vector(self, converter: Callable[["MxArray"], Any] | None = None) -> list[Any]:
        """Convert a cell array or a numeric vector to a list.

        Args:
            converter: Applied to each element, e.g. ``MxArray.to_int``. The
                elements are returned as `MxArray` when omitted.

        Raises:
            InvalidArgument: If the value is neither a cell nor a numeric or
                logical array.
        """
        if self.is_cell:
            elements = [MxArray(v) for v in self.value]
        elif self.is_numeric or self.is_logical:
            elements = [MxArray(v) for v in self._as_array().ravel(order="F")]
        elif isinstance(self.value, StructArray):
            elements = [MxArray(record) for record in self.value]
        else:
            raise InvalidArgument("MxArray unable to convert to vector")
        if converter is None:
            return elements
        return [converter(e) for e in elements]

    def to_points(self, dim: int = 2, depth: int = cv2.CV_32F) -> npt.NDArray[Any]:
        """Convert a set of points to an N-by-dim native array.

        Accepts either a cell array of 1-by-dim vectors or an N-by-dim
        numeric matrix (one point per row).
        """
        dtype = DEPTH_DTYPES[depth]
        if self.is_cell:
            rows = [MxArray(v)._values(dim, "point") for v in self.value]
            return np.array(rows, dtype=dtype).reshape(-1, dim)
        if self.is_numeric and self.is_empty:
            return np.zeros((0, dim), dtype=dtype)
        if self.is_numeric and self.ndims == 2 and self.dims[1] == dim:
            return saturate_cast(self._as_array(), dtype).copy()
        raise InvalidArgument("MxArray is not a set of points")

    def to_keypoints(self) -> list[cv2.KeyPoint]:
        if self.is_struct:
            return [self.to_keypoint(i) for i in range(self.numel)]
        if self.is_cell:
            return [MxArray(v).to_keypoint() for v in self.value]
        if self.is_empty:
            return []
        raise InvalidArgument("MxArray is not a set of keypoints")

    def to_dmatches(self) -> list[cv2.DMatch]:
        if self.is_struct:
            return [self.to_dmatch(i) for i in range(self.numel)]
        if self.is_cell:
            return [MxArray(v).to_dmatch() for v in self.value]
        if self.is_empty:
            return []
        raise InvalidArgument("MxArray is not a set of matches")

    # ------------------------------Native to host------------------------------
    @staticmethod
    def from_points(points: npt.ArrayLike | None) -> list[npt.NDArray[np.float64]]:
        """Convert native points (Nx2, Nx1x2, Nx3, ...) to a cell of row vectors."""
        if points is None:
            return []
        arr = np.asarray(points, dtype=np.float64)
        if arr.size == 0:
            return []
        arr = arr.reshape(arr.shape[0], -1)
        return [np.array(row.reshape(1, -1), order="F") for row in arr]

    @staticmethod
    def from_keypoints(keypoints: Iterable[cv2.KeyPoint]) -> StructArray:
        records = [
            {
                "pt": np.array([[kp.pt[0], kp.pt[1]]], order="F"),
                "size": float(kp.size),
                "angle": float(kp.angle),
                "response": float(kp.response),
                "octave": int(kp.octave),
                "class_id": int(kp.class_id),
            }
            for kp in keypoints
        ]
        return StructArray(records, KEYPOINT_FIELDS)

    @staticmethod
    def from_dmatches(matches: Iterable[cv2.DMatch]) -> StructArray:
        records = [
            {
                "queryIdx": int(m.queryIdx),
                "trainIdx": int(m.trainIdx),
                "imgIdx": int(m.imgIdx),
                "distance": float(m.distance),
            }
            for m in matches
        ]
        return StructArray(records, DMATCH_FIELDS)

    @staticmethod
    def from_rotated_rect(rect: Sequence[Any]) -> dict[str, Any]:
        (cx, cy), (w, h), angle = rect
        return {
            "center": np.array([[cx, cy]], dtype=np.float64, order="F"),
            "size": np.array([[w, h]], dtype=np.float64, order="F"),
            "angle": float(angle),
        }

    @staticmethod
    def from_rect(rect: Sequence[int]) -> npt.NDArray[np.float64]:
        return np.array([list(rect)], dtype=np.float64, order="F")

    @staticmethod
    def from_moments(moments: Mapping[str, float]) -> dict[str, float]:
        return {name: float(value) for name, value in moments.items()}

    @staticmethod
    def from_term_criteria(criteria: Sequence[Any]) -> dict[str, Any]:
        crit_type, max_count, epsilon = criteria
        names = TermCritType.inverse()
        if crit_type not in names:
            logging.debug(f"Term criteria type {crit_type} has no name, returning it as a number")
        return {
            "type": names.get(crit_type, float(crit_type)),
            "maxCount": int(max_count),
            "epsilon": float(epsilon),
        }
