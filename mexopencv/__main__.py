"""The command line entry point for mexopencv.

Usage:
    python -m mexopencv list
    python -m mexopencv call imread lena.png --nargout 1
    python -m mexopencv call getStructuringElement "'Shape'" "'Ellipse'" "'KSize'" "[5, 5]"

Arguments of ``call`` are Python literals; anything that does not parse as a
literal is passed as a string. Numeric lists become double arrays.
"""

import argparse
import ast
import logging
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Any

import numpy as np

from mexopencv.core.config import Config, get_config


def setup_basic_logging(config: Config) -> None:
    """Set up cross-platform, user-writable logging before running a command."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.log_file:
        try:
            system = platform.system()
            if system == "Windows":
                app_data_dir = Path(os.getenv("LOCALAPPDATA", Path.home() / "AppData" / "Local")) / "mexopencv"
            elif system == "Darwin":
                app_data_dir = Path.home() / "Library" / "Application Support" / "mexopencv"
            else:  # Linux or other Unix-like
                app_data_dir = Path(os.getenv("XDG_DATA_HOME", Path.home() / ".local" / "share")) / "mexopencv"

            logs_dir = app_data_dir / "logs"
            logs_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            # Fallback to temporary directory
            logs_dir = Path(tempfile.gettempdir()) / "mexopencv" / "logs"
            logs_dir.mkdir(parents=True, exist_ok=True)

        handlers.insert(0, logging.FileHandler(logs_dir / "mexopencv.log", encoding="utf-8"))

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def parse_literal(text: str) -> Any:
    """Turn one command line argument into a host value."""
    try:
        value = ast.literal_eval(text)
    except (ValueError, SyntaxError):
        return text
    if isinstance(value, list) and value and all(isinstance(v, (int, float, list)) for v in value):
        return np.array(value, dtype=np.float64)
    return value


def summarize(value: Any) -> str:
    """One-line description of a host value."""
    if isinstance(value, np.ndarray):
        dims = "x".join(str(d) for d in value.shape)
        if value.size <= 16:
            return f"{dims} {value.dtype} {value.tolist()}"
        return f"{dims} {value.dtype}"
    if isinstance(value, list):
        return f"1x{len(value)} cell"
    if isinstance(value, dict):
        return "struct with fields " + ", ".join(value)
    return repr(value)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mexopencv", description="Call OpenCV through the mexopencv adapters.")
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("list", help="list the available adapters")
    call_parser = commands.add_parser("call", help="call one adapter")
    call_parser.add_argument("name", help="adapter name")
    call_parser.add_argument("args", nargs="*", help="arguments, as Python literals")
    call_parser.add_argument("--nargout", type=int, default=1, help="number of outputs to request")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    setup_basic_logging(get_config())
    from mexopencv import get_handler, mex_function
    from mexopencv.core.error_handler import install_global_exception_handler

    # Install the global exception handler
    install_global_exception_handler()

    if args.command == "list":
        for name in get_handler().names():
            print(name)
        return 0

    outputs = mex_function(args.name, args.nargout, [parse_literal(a) for a in args.args])
    for index, output in enumerate(outputs):
        print(f"[{index}] {summarize(output)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
