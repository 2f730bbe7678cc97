"""Python bindings exposing OpenCV through a host calling convention."""

# Try to get version from metadata, but fall back to a default if not available
try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version(__name__)
except PackageNotFoundError:
    # Running from a source checkout that was never installed
    __version__ = "0.1.0"

from collections.abc import Sequence
from typing import Any

from mexopencv.core.handler import FunctionsHandler
from mexopencv.core.mxarray import MxArray, StructArray

_handler: FunctionsHandler | None = None


def get_handler() -> FunctionsHandler:
    """Return the process-wide adapter handler, loading the adapters on first use."""
    global _handler
    if _handler is None:
        _handler = FunctionsHandler()
    return _handler


def mex_function(name: str, nlhs: int, prhs: Sequence[Any]) -> list[Any]:
    """Call an adapter with the host calling convention.

    Args:
        name: Adapter name, e.g. ``"cvtColor"`` or ``"VideoCapture_"``.
        nlhs: Number of outputs requested.
        prhs: Host arguments.

    Returns:
        At most ``max(nlhs, 1)`` host values.
    """
    return get_handler().dispatch(name, nlhs, prhs)


def call(name: str, *args: Any, nargout: int = 0) -> Any:
    """Call an adapter and unpack its outputs.

    Returns ``None`` when the adapter produced nothing, the single output
    when ``nargout`` is 0 or 1, and a tuple otherwise.

    Example:
        >>> edges = call("Canny", img, np.array([50, 150]))
        >>> mask, thresh = call("threshold", img, "Otsu", nargout=2)
    """
    outputs = mex_function(name, nargout, args)
    if nargout <= 1:
        return outputs[0] if outputs else None
    return tuple(outputs)


__all__ = ["MxArray", "StructArray", "__version__", "call", "get_handler", "mex_function"]
