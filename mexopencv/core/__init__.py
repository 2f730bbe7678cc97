"""Core package of the mexopencv bindings.

This package contains the pieces every adapter is built from: host value
marshaling, option value tables, option schemas, the handle registry, the
adapter base classes and the handler that discovers and dispatches them.
"""

from mexopencv.core.adapter import (
    AlgorithmAdapter,
    Method,
    MexFunction,
    ObjectAdapter,
    Property,
    Signature,
    method,
    mex,
)
from mexopencv.core.config import Config, get_config, load_toml, set_config
from mexopencv.core.constants import ConstMap, lookup_enum
from mexopencv.core.errors import (
    AllocationError,
    ArgumentCountError,
    InvalidArgument,
    LibraryOperationError,
    MexError,
    MexWarning,
    raise_warning,
)
from mexopencv.core.handler import FunctionsHandler
from mexopencv.core.mxarray import MxArray, StructArray
from mexopencv.core.options import OptionSet, enum_of
from mexopencv.core.registry import Handle, HandleRegistry

__all__ = [
    "AlgorithmAdapter",
    "AllocationError",
    "ArgumentCountError",
    "Config",
    "ConstMap",
    "FunctionsHandler",
    "Handle",
    "HandleRegistry",
    "InvalidArgument",
    "LibraryOperationError",
    "Method",
    "MexError",
    "MexFunction",
    "MexWarning",
    "MxArray",
    "ObjectAdapter",
    "OptionSet",
    "Property",
    "Signature",
    "StructArray",
    "enum_of",
    "get_config",
    "load_toml",
    "lookup_enum",
    "method",
    "mex",
    "raise_warning",
    "set_config",
]
