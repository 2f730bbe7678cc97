"""Adapter base classes.

An adapter translates one host call into exactly one library call. Every
adapter is described by a `Signature`: how many positional arguments it
requires, how many outputs it can produce, and which `OptionSet` parses the
trailing key/value pairs. The signature is checked before any argument is
converted.

Free functions are plain Python functions decorated with `mex`::

    @mex("medianBlur", nargin=1, options=MedianBlurOptions)
    def median_blur(rhs, opts, nlhs):
        ...

Stateful classes derive from `ObjectAdapter`. Their host calls take the form
``(id, method, args...)``: ``"new"`` builds an object and returns its handle,
``"delete"`` drops it, ``"get"``/``"set"`` go through the class' `Property`
table and every other method is declared with the `method` decorator.

Classes:
    Signature: Arity, output count and option schema of one operation.
    MexFunction: A free-function adapter.
    Method: A method of a stateful-class adapter.
    Property: A gettable (and optionally settable) property of a wrapped object.
    ObjectAdapter: Base class of stateful-class adapters.
    AlgorithmAdapter: Adds the methods shared by every ``cv::Algorithm``.
"""

import functools
import logging
from collections.abc import Callable, Sequence
from typing import Any, ClassVar

import cv2
from pydantic import Field

from mexopencv.core.errors import ArgumentCountError, InvalidArgument, LibraryOperationError
from mexopencv.core.mxarray import MxArray
from mexopencv.core.options import Bool, OptionSet, String
from mexopencv.core.registry import HandleRegistry

Nargin = int | Callable[[Sequence[MxArray]], int]


class Signature:
    """Arity and options of one operation.

    Attributes:
        name: The operation name as seen by the host.
        nargin: Number of required positional arguments, or a callable that
            picks it from the arguments for operations with variants.
        nargout: Maximum number of outputs.
        options: Schema of the trailing key/value pairs, if any.
    """

    def __init__(
        self,
        name: str,
        nargin: Nargin = 0,
        nargout: int = 1,
        options: type[OptionSet] | None = None,
    ) -> None:
        self.name = name
        self.nargin = nargin
        self.nargout = nargout
        self.options = options

    def required(self, rhs: Sequence[MxArray]) -> int:
        return self.nargin(rhs) if callable(self.nargin) else self.nargin

    def bind(self, nlhs: int, rhs: Sequence[MxArray]) -> tuple[list[MxArray], OptionSet | None]:
        """Check the argument counts and parse the options.

        Args:
            nlhs: Number of outputs requested.
            rhs: All arguments, required ones first.

        Returns:
            The required arguments and the parsed options (``None`` when the
            operation has no option schema).

        Raises:
            ArgumentCountError: If too few arguments are given, the trailing
                arguments do not come in pairs, or too many outputs are requested.
        """
        nargin = self.required(rhs)
        extra = len(rhs) - nargin
        if extra < 0 or nlhs > self.nargout or extra % 2 != 0 or (self.options is None and extra != 0):
            raise ArgumentCountError()
        opts = self.options.parse(rhs[nargin:]) if self.options is not None else None
        return list(rhs[:nargin]), opts


class MexFunction:
    """A free function exposed to the host."""

    def __init__(self, func: Callable[..., list[Any]], signature: Signature) -> None:
        functools.update_wrapper(self, func)
        self.func = func
        self.signature = signature
        self.name = signature.name

    def __call__(self, nlhs: int, rhs: Sequence[MxArray]) -> list[Any]:
        args, opts = self.signature.bind(nlhs, rhs)
        return self.func(args, opts, nlhs)

    def __repr__(self) -> str:
        return f"MexFunction({self.name!r})"


def mex(
    name: str,
    nargin: Nargin = 1,
    nargout: int = 1,
    options: type[OptionSet] | None = None,
) -> Callable[[Callable[..., list[Any]]], MexFunction]:
    """Declare a free-function adapter.

    The decorated function receives the required arguments as `MxArray`
    instances, the parsed options and the number of requested outputs, and
    returns the list of host outputs.
    """

    def decorator(func: Callable[..., list[Any]]) -> MexFunction:
        return MexFunction(func, Signature(name, nargin, nargout, options))

    return decorator


class Method:
    """A method of a stateful-class adapter."""

    def __init__(self, func: Callable[..., list[Any]], signature: Signature) -> None:
        functools.update_wrapper(self, func)
        self.func = func
        self.signature = signature


def method(
    name: str,
    nargin: Nargin = 0,
    nargout: int = 0,
    options: type[OptionSet] | None = None,
) -> Callable[[Callable[..., list[Any]]], Method]:
    """Declare a method of an `ObjectAdapter`.

    The decorated function is called as ``func(adapter, obj, args, opts, nlhs)``
    where ``obj`` is the native object behind the handle.
    """

    def decorator(func: Callable[..., list[Any]]) -> Method:
        return Method(func, Signature(name, nargin, nargout, options))

    return decorator


def _identity(value: Any) -> Any:
    return value


class Property:
    """A property of a wrapped object, reachable through ``get`` and ``set``.

    Args:
        getter: Name of the native getter method, or a callable taking the object.
        setter: Name of the native setter method, or a callable taking the
            object and the native value. ``None`` makes the property read-only.
        to_native: Conversion applied to the host value before setting.
        to_host: Conversion applied to the native value after getting.
    """

    def __init__(
        self,
        getter: str | Callable[[Any], Any],
        setter: str | Callable[[Any, Any], None] | None = None,
        to_native: Callable[[MxArray], Any] = MxArray.to_double,
        to_host: Callable[[Any], Any] = _identity,
    ) -> None:
        self.getter = getter
        self.setter = setter
        self.to_native = to_native
        self.to_host = to_host

    @property
    def read_only(self) -> bool:
        return self.setter is None

    def get(self, obj: Any) -> Any:
        value = getattr(obj, self.getter)() if isinstance(self.getter, str) else self.getter(obj)
        return self.to_host(value)

    def set(self, obj: Any, value: MxArray) -> None:
        native = self.to_native(value)
        if isinstance(self.setter, str):
            getattr(obj, self.setter)(native)
        elif self.setter is not None:
            self.setter(obj, native)


class ObjectAdapter:
    """Base class of the adapters for stateful wrapped classes.

    Subclasses set ``name`` (the host-side class name), ``constructor`` (the
    signature of ``"new"``), implement `create` and may declare
    ``properties`` and `method`-decorated methods. Each concrete subclass
    owns its own `HandleRegistry`.
    """

    name: ClassVar[str] = ""
    constructor: ClassVar[Signature] = Signature("new", nargin=0, nargout=1)
    properties: ClassVar[dict[str, Property]] = {}
    methods: ClassVar[dict[str, Method]]
    registry: ClassVar[HandleRegistry[Any]]

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls.methods = {}
        for klass in reversed(cls.__mro__):
            for attr in vars(klass).values():
                if isinstance(attr, Method):
                    cls.methods[attr.signature.name] = attr
        if cls.name:
            cls.registry = HandleRegistry(cls.name)

    def create(self, args: list[MxArray], opts: Any) -> Any:
        """Build the native object for ``"new"``."""
        raise NotImplementedError

    def __call__(self, nlhs: int, rhs: Sequence[MxArray]) -> list[Any]:
        if len(rhs) < 2:
            raise ArgumentCountError()
        handle = rhs[0].to_int()
        operation = rhs[1].to_string()
        rest = rhs[2:]

        if operation == "new":
            args, opts = self.constructor.bind(nlhs, rest)
            obj = self.create(args, opts)
            if obj is None:
                raise LibraryOperationError(f"Failed to create {self.name} object")
            return [int(self.registry.insert(obj))]

        obj = self.registry.get(handle)
        if operation == "delete":
            if rest or nlhs != 0:
                raise ArgumentCountError()
            self.registry.remove(handle)
            return []
        if operation == "get":
            if len(rest) != 1 or nlhs > 1:
                raise ArgumentCountError()
            return [self._property(rest[0].to_string()).get(obj)]
        if operation == "set":
            if len(rest) != 2 or nlhs != 0:
                raise ArgumentCountError()
            prop_name = rest[0].to_string()
            prop = self._property(prop_name)
            if prop.read_only:
                raise InvalidArgument(f"Property {prop_name} is read-only")
            prop.set(obj, rest[1])
            return []

        meth = self.methods.get(operation)
        if meth is None:
            raise InvalidArgument(f"Unrecognized operation {operation}")
        logging.debug(f"{self.name}: id={handle} {operation}")
        args, opts = meth.signature.bind(nlhs, rest)
        return meth.func(self, obj, args, opts, nlhs)

    def _property(self, prop_name: str) -> Property:
        try:
            return self.properties[prop_name]
        except KeyError:
            raise InvalidArgument(f"Unrecognized property {prop_name}") from None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, live={len(self.registry)})"


class LoadOptions(OptionSet):
    obj_name: String = Field("", alias="ObjName")
    from_string: Bool = Field(False, alias="FromString")


class AlgorithmAdapter(ObjectAdapter):
    """Adds the methods every ``cv::Algorithm`` has.

    ``load`` reads a FileStorage file, or a FileStorage string when
    ``FromString`` is true, and fills the object from the node named by
    ``ObjName`` (the first top-level node by default).
    """

    @method("clear")
    def clear(self, obj: Any, args: list[MxArray], opts: None, nlhs: int) -> list[Any]:
        obj.clear()
        return []

    @method("empty", nargout=1)
    def empty(self, obj: Any, args: list[MxArray], opts: None, nlhs: int) -> list[Any]:
        return [bool(obj.empty())]

    @method("getDefaultName", nargout=1)
    def get_default_name(self, obj: Any, args: list[MxArray], opts: None, nlhs: int) -> list[Any]:
        return [obj.getDefaultName()]

    @method("save", nargin=1)
    def save(self, obj: Any, args: list[MxArray], opts: None, nlhs: int) -> list[Any]:
        obj.save(args[0].to_string())
        return []

    @method("load", nargin=1, options=LoadOptions)
    def load(self, obj: Any, args: list[MxArray], opts: LoadOptions, nlhs: int) -> list[Any]:
        source = args[0].to_string()
        flags = cv2.FILE_STORAGE_READ
        if opts.from_string:
            flags |= cv2.FILE_STORAGE_MEMORY
        fs = cv2.FileStorage(source, flags)
        if not fs.isOpened():
            raise LibraryOperationError("Failed to open file")
        node = fs.getNode(opts.obj_name) if opts.obj_name else fs.getFirstTopLevelNode()
        if node.empty():
            fs.release()
            raise LibraryOperationError("Failed to get node")
        obj.read(node)
        fs.release()
        return []
