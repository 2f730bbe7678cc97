"""Reading and writing OpenCV persistence files (XML, YAML and JSON).

``FileStorage(source)`` reads a whole file (or, when ``source`` looks like
file contents, a string) into a struct. ``FileStorage(filename, value, ...)``
writes the given values. When ``filename`` is only an extension such as
``".yml"``, nothing is written to disk and the serialized text is returned.
"""

import re
from typing import Any

import cv2

from mexopencv.core.adapter import mex
from mexopencv.core.errors import ArgumentCountError, InvalidArgument, LibraryOperationError
from mexopencv.core.mxarray import MxArray

MATRIX_KEYS = ({"rows", "cols", "dt", "data"}, {"sizes", "dt", "data"})
EXTENSION_ONLY = re.compile(r"^\.(xml|yml|yaml|json)(\.gz)?$", re.IGNORECASE)
UNNAMED_NODE = "value"


def default_object_name(filename: str) -> str:
    """Node name used when the values are not given as a struct.

    The base name of the file without its extension, with every character
    other than letters, digits and ``_`` replaced by ``_``. A bare extension
    such as ``".xml"`` gives ``"value"``, since XML reserves a lone ``_``.
    """
    base = re.split(r"[/\\]", filename)[-1]
    dot = base.rfind(".")
    if dot >= 0:
        base = base[:dot]
    name = re.sub(r"[^0-9A-Za-z_]", "_", base)
    if name in ("", "_"):
        return UNNAMED_NODE
    if name[0].isdigit():
        name = "_" + name
    return name


def is_file_contents(source: str) -> bool:
    return source.startswith(("%YAML", "<?xml", "{")) or "\n" in source


# ------------------------------Reading------------------------------
def _is_matrix(node: cv2.FileNode) -> bool:
    # JSON keeps the type tag as an ordinary key
    keys = set(node.keys()) - {"type_id"}
    return any(keys == matrix_keys for matrix_keys in MATRIX_KEYS)


def read_node(node: cv2.FileNode) -> Any:
    """Convert a file node to a host value.

    Maps become dicts, sequences become lists, serialized matrices become
    arrays and scalars keep their type.
    """
    if node.isInt():
        return int(node.real())
    if node.isReal():
        return node.real()
    if node.isString():
        return node.string()
    if node.isSeq():
        return [read_node(node.at(i)) for i in range(node.size())]
    if node.isMap():
        if _is_matrix(node):
            return MxArray.from_mat(node.mat())
        return {key: read_node(node.getNode(key)) for key in node.keys()}
    return None


def read_storage(source: str) -> dict[str, Any]:
    flags = cv2.FILE_STORAGE_READ
    if is_file_contents(source):
        flags |= cv2.FILE_STORAGE_MEMORY
    fs = cv2.FileStorage(source, flags)
    if not fs.isOpened():
        raise LibraryOperationError("Failed to open file")
    try:
        root = fs.root()
        return {key: read_node(root.getNode(key)) for key in root.keys()}
    finally:
        fs.release()


# ------------------------------Writing------------------------------
def write_value(fs: cv2.FileStorage, name: str, value: MxArray) -> None:
    """Write one host value; ``name`` is empty inside sequences."""
    if value.is_char:
        fs.write(name, value.to_string())
    elif value.is_cell:
        fs.startWriteStruct(name, cv2.FILE_NODE_SEQ)
        for element in value.to_vector():
            write_value(fs, "", element)
        fs.endWriteStruct()
    elif value.is_struct and value.numel == 1:
        fs.startWriteStruct(name, cv2.FILE_NODE_MAP)
        for field in value.fieldnames:
            write_value(fs, field, value.field(field))
        fs.endWriteStruct()
    elif value.is_struct:
        fs.startWriteStruct(name, cv2.FILE_NODE_SEQ)
        for index in range(value.numel):
            write_value(fs, "", value.at(index))
        fs.endWriteStruct()
    elif value.is_numeric or value.is_logical:
        if value.is_scalar:
            fs.write(name, value.to_double() if value.is_float else value.to_int())
        else:
            fs.write(name, value.to_mat())
    else:
        raise InvalidArgument(f"Cannot write a value of class {value.class_name}")


def write_storage(filename: str, values: list[MxArray]) -> str | None:
    """Write ``values`` and return the text when writing to memory."""
    in_memory = EXTENSION_ONLY.match(filename) is not None
    flags = cv2.FILE_STORAGE_WRITE
    if in_memory:
        flags |= cv2.FILE_STORAGE_MEMORY
    fs = cv2.FileStorage(filename, flags)
    if not fs.isOpened():
        raise LibraryOperationError("Failed to open file")
    try:
        if len(values) == 1 and values[0].is_struct and values[0].numel == 1:
            for field in values[0].fieldnames:
                write_value(fs, field, values[0].field(field))
        else:
            content = values[0] if len(values) == 1 else MxArray([v.value for v in values])
            write_value(fs, default_object_name(filename), content)
        if in_memory:
            return fs.releaseAndGetString()
        return None
    finally:
        # no-op once releaseAndGetString has closed the storage
        fs.release()


@mex("FileStorage", nargin=lambda rhs: max(len(rhs), 1), nargout=1)
def file_storage(rhs: list[MxArray], opts: None, nlhs: int) -> list[Any]:
    source = rhs[0].to_string()
    if len(rhs) == 1:
        return [read_storage(source)]
    if EXTENSION_ONLY.match(source) is None and nlhs != 0:
        raise ArgumentCountError()
    text = write_storage(source, rhs[1:])
    return [text] if text is not None else []
