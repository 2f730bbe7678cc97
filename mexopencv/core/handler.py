"""Adapter discovery and dispatch.

`FunctionsHandler` scans the configured adapter packages, collects every
`MexFunction` and every concrete `ObjectAdapter` defined in them, and routes
host calls to them by name.
"""

import importlib
import inspect
import logging
import types
from collections.abc import Sequence
from importlib.resources import files
from typing import Any

import cv2

from mexopencv.core.adapter import MexFunction, ObjectAdapter
from mexopencv.core.config import Config, get_config
from mexopencv.core.errors import ArgumentCountError, InvalidArgument, LibraryOperationError, set_identifiers
from mexopencv.core.mxarray import MxArray

Adapter = MexFunction | ObjectAdapter


class FunctionsHandler:
    """A handler class for loading adapter modules and dispatching host calls.

    Attributes:
        config (Config): The configuration in effect.
        modules (dict[str, types.ModuleType]): Loaded adapter modules keyed by
            their fully qualified name.
        adapters (dict[str, MexFunction | ObjectAdapter]): Adapters keyed by
            the name the host calls them with.
    """

    def __init__(self, config: Config | None = None) -> None:
        """Load the adapter modules and apply the runtime configuration.

        Args:
            config: Configuration to use; the process-wide one when omitted.
        """
        self.config = config if config is not None else get_config()
        self.apply_config()

        self.modules: dict[str, types.ModuleType] = self.load_modules_from_packages()

        self.adapters: dict[str, Adapter] = {}
        self._collect_adapters()

    def apply_config(self) -> None:
        """Push the configuration into the error types and OpenCV runtime."""
        set_identifiers(self.config.error_id, self.config.warning_id)
        if self.config.num_threads >= 0:
            cv2.setNumThreads(self.config.num_threads)
        cv2.setUseOptimized(self.config.use_optimized)

    def load_modules_from_packages(self) -> dict[str, types.ModuleType]:
        """Import every module found in the configured adapter packages.

        Uses importlib.resources to list the files of each package and imports
        each Python file other than ``__init__.py`` as a submodule.

        Returns:
            A dictionary mapping module names to module objects.
        """
        modules = {}
        for package_name in self.config.adapter_packages:
            logging.info(f"Loading modules from package: {package_name}")
            for file_path in sorted(files(package_name).iterdir(), key=lambda p: p.name):
                if file_path.is_file() and file_path.name.endswith(".py") and file_path.name != "__init__.py":
                    module_name = f"{package_name}.{file_path.name[:-3]}"
                    logging.debug(f"Loading module: {module_name}")
                    modules[module_name] = importlib.import_module(module_name)
        return modules

    def get_new_adapters(self, module: types.ModuleType) -> dict[str, Adapter]:
        """Retrieve the adapters defined within the provided module.

        Free functions are the module's `MexFunction` members; classes are
        `ObjectAdapter` subclasses defined in the module itself that carry a
        host name, instantiated once.

        Args:
            module: The module to inspect.

        Returns:
            A dictionary mapping host names to adapters.
        """
        new_adapters: dict[str, Adapter] = {}
        for _, obj in inspect.getmembers(module):
            if isinstance(obj, MexFunction):
                new_adapters[obj.name] = obj
            elif (
                inspect.isclass(obj)
                and issubclass(obj, ObjectAdapter)
                and obj.__module__ == module.__name__
                and obj.name
            ):
                new_adapters[obj.name] = obj()
        return new_adapters

    def _collect_adapters(self) -> None:
        for module_name, module in self.modules.items():
            for name, adapter in self.get_new_adapters(module).items():
                if name in self.adapters:
                    raise ValueError(f"Adapter {name} is defined twice (second in {module_name})")
                self.adapters[name] = adapter
        logging.info(f"Loaded {len(self.adapters)} adapters from {len(self.modules)} modules")

    def names(self) -> list[str]:
        return sorted(self.adapters)

    def __contains__(self, name: object) -> bool:
        return name in self.adapters

    def dispatch(self, name: str, nlhs: int, prhs: Sequence[Any]) -> list[Any]:
        """Run one host call.

        Args:
            name: The adapter name, e.g. ``"GaussianBlur"`` or ``"VideoCapture_"``.
            nlhs: Number of outputs requested by the host.
            prhs: The host arguments.

        Returns:
            At most ``max(nlhs, 1)`` host values.

        Raises:
            InvalidArgument: If no adapter has this name, or an argument is invalid.
            ArgumentCountError: If the argument counts do not match.
            LibraryOperationError: If OpenCV reports a failure.
        """
        adapter = self.adapters.get(name)
        if adapter is None:
            raise InvalidArgument(f"Unrecognized function {name}")
        if nlhs < 0:
            raise ArgumentCountError()
        rhs = [MxArray(value) for value in prhs]
        logging.debug(f"Calling {name} with {len(rhs)} inputs and {nlhs} outputs")
        try:
            outputs = adapter(nlhs, rhs)
        except cv2.error as e:
            raise LibraryOperationError(getattr(e, "err", None) or str(e)) from e
        return list(outputs[: max(nlhs, 1)])
