"""Video capture and video writing objects.

Frames cross the host boundary in RGB order unless ``FlipChannels`` is
false. Properties are addressed by the names of the ``CapProp`` and
``VideoWriterProp`` tables. A property the backend refuses to change only
raises a warning; the call itself succeeds.
"""

import logging
from collections.abc import Sequence
from typing import Annotated, Any

import cv2
from pydantic import Field

from mexopencv.core.adapter import ObjectAdapter, Property, Signature, method
from mexopencv.core.config import get_config
from mexopencv.core.constants import CapProp, VideoWriterProp
from mexopencv.core.errors import InvalidArgument, raise_warning
from mexopencv.core.mxarray import MxArray
from mexopencv.core.options import Bool, Double, Int, OptionSet, from_host
from mexopencv.functions.imgcodecs import flip_channels


def _default_flip() -> bool:
    return get_config().flip_channels


def _backend_property(prop_name: str, prop_id: int) -> Property:
    """A property read with ``obj.get(id)`` and written with ``obj.set(id, value)``."""

    def setter(obj: Any, value: float) -> None:
        if not obj.set(prop_id, value):
            raise_warning(f"Error setting property {prop_name}")

    return Property(lambda obj: float(obj.get(prop_id)), setter)


def _source_nargin(rhs: Sequence[MxArray]) -> int:
    return min(len(rhs), 1)


def _open_capture(cap: cv2.VideoCapture, source: MxArray, api: int) -> bool:
    if source.is_char:
        return cap.open(source.to_string(), api)
    return cap.open(source.to_int(), api)


class CaptureOpenOptions(OptionSet):
    api: Int = Field(cv2.CAP_ANY, alias="API")


class FrameOptions(OptionSet):
    flip_channels: Bool = Field(default_factory=_default_flip, alias="FlipChannels")


class RetrieveOptions(FrameOptions):
    stream_idx: Int = Field(0, alias="StreamIdx")


def _frame_to_host(frame: Any, flip: bool) -> Any:
    # an empty uint8 array marks the end of the stream
    if frame is None:
        return MxArray.from_mat(None, "uint8")
    return MxArray.from_mat(flip_channels(frame, to_host=True) if flip else frame)


class VideoCaptureAdapter(ObjectAdapter):
    """Capture frames from a video file, an image sequence or a camera.

    ``new`` takes an optional source, either a file name or a camera index.
    """

    name = "VideoCapture_"
    constructor = Signature("new", nargin=_source_nargin, nargout=1, options=CaptureOpenOptions)
    properties = {prop_name: _backend_property(prop_name, prop_id) for prop_name, prop_id in CapProp.items()}

    def create(self, args: list[MxArray], opts: CaptureOpenOptions) -> Any:
        cap = cv2.VideoCapture()
        if args and not _open_capture(cap, args[0], opts.api):
            logging.warning(f"{self.name}: could not open the video source")
        return cap

    @method("open", nargin=1, nargout=1, options=CaptureOpenOptions)
    def open(self, obj: Any, args: list[MxArray], opts: CaptureOpenOptions, nlhs: int) -> list[Any]:
        return [bool(_open_capture(obj, args[0], opts.api))]

    @method("isOpened", nargout=1)
    def is_opened(self, obj: Any, args: list[MxArray], opts: None, nlhs: int) -> list[Any]:
        return [bool(obj.isOpened())]

    @method("release")
    def release(self, obj: Any, args: list[MxArray], opts: None, nlhs: int) -> list[Any]:
        obj.release()
        return []

    @method("grab", nargout=1)
    def grab(self, obj: Any, args: list[MxArray], opts: None, nlhs: int) -> list[Any]:
        return [bool(obj.grab())]

    @method("retrieve", nargout=1, options=RetrieveOptions)
    def retrieve(self, obj: Any, args: list[MxArray], opts: RetrieveOptions, nlhs: int) -> list[Any]:
        success, frame = obj.retrieve(flag=opts.stream_idx)
        return [_frame_to_host(frame if success else None, opts.flip_channels)]

    @method("read", nargout=1, options=FrameOptions)
    def read(self, obj: Any, args: list[MxArray], opts: FrameOptions, nlhs: int) -> list[Any]:
        success, frame = obj.read()
        return [_frame_to_host(frame if success else None, opts.flip_channels)]


def _to_fourcc(value: MxArray) -> int:
    if value.is_char:
        code = value.to_string()
        if len(code) != 4:
            raise InvalidArgument("FourCC must be a four character code")
        return cv2.VideoWriter_fourcc(*code)
    return value.to_int()


class WriterOpenOptions(OptionSet):
    fourcc: Annotated[int, from_host(_to_fourcc)] = Field(cv2.VideoWriter_fourcc(*"MJPG"), alias="FourCC")
    fps: Double = Field(25.0, alias="FPS")
    color: Bool = Field(True, alias="Color")


def _writer_nargin(rhs: Sequence[MxArray]) -> int:
    # new(filename, frameSize, ...) or new() for a writer opened later
    return 2 if rhs and rhs[0].is_char else 0


class VideoWriterAdapter(ObjectAdapter):
    """Write frames to a video file.

    ``new`` optionally opens the file right away with the same arguments as
    ``open``: a file name, a ``[width height]`` frame size and options.
    """

    name = "VideoWriter_"
    constructor = Signature("new", nargin=_writer_nargin, nargout=1, options=WriterOpenOptions)
    properties = {
        prop_name: _backend_property(prop_name, prop_id) for prop_name, prop_id in VideoWriterProp.items()
    }

    def create(self, args: list[MxArray], opts: WriterOpenOptions) -> Any:
        writer = cv2.VideoWriter()
        if args:
            self._open(writer, args, opts)
        return writer

    @staticmethod
    def _open(writer: Any, args: list[MxArray], opts: WriterOpenOptions) -> bool:
        return bool(writer.open(args[0].to_string(), opts.fourcc, opts.fps, args[1].to_size(), opts.color))

    @method("open", nargin=2, nargout=1, options=WriterOpenOptions)
    def open(self, obj: Any, args: list[MxArray], opts: WriterOpenOptions, nlhs: int) -> list[Any]:
        return [self._open(obj, args, opts)]

    @method("isOpened", nargout=1)
    def is_opened(self, obj: Any, args: list[MxArray], opts: None, nlhs: int) -> list[Any]:
        return [bool(obj.isOpened())]

    @method("release")
    def release(self, obj: Any, args: list[MxArray], opts: None, nlhs: int) -> list[Any]:
        obj.release()
        return []

    @method("write", nargin=1, options=FrameOptions)
    def write(self, obj: Any, args: list[MxArray], opts: FrameOptions, nlhs: int) -> list[Any]:
        frame = args[0].to_mat(cv2.CV_8U)
        obj.write(flip_channels(frame, to_host=False) if opts.flip_channels else frame)
        return []
