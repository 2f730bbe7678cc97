"""Descriptor matchers.

The matching methods come in two forms. Given query and train descriptors
they match the two sets directly; given only the query descriptors they
match against the descriptors previously registered with ``add``. Matches
are returned as struct arrays with ``queryIdx, trainIdx, imgIdx, distance``.
"""

from collections.abc import Sequence
from typing import Any

import cv2
from pydantic import Field

from mexopencv.core.adapter import AlgorithmAdapter, Signature, method
from mexopencv.core.constants import MatcherType
from mexopencv.core.mxarray import MxArray
from mexopencv.core.options import Bool, OptionSet, Raw


def _descriptors(arg: MxArray) -> Any:
    # binary descriptors stay uint8, everything else is matched in single precision
    return arg.to_mat(cv2.CV_8U if arg.class_name == "uint8" else cv2.CV_32F)


def _explicit_train(rhs: Sequence[MxArray], position: int) -> bool:
    """True when the argument at ``position`` is positional rather than an option name."""
    return len(rhs) > position and not rhs[position].is_char


def _match_nargin(rhs: Sequence[MxArray]) -> int:
    return 2 if _explicit_train(rhs, 1) else 1


def _knn_nargin(rhs: Sequence[MxArray]) -> int:
    return 3 if _explicit_train(rhs, 2) else 2


class MatchOptions(OptionSet):
    mask: Raw = Field(None, alias="Mask")


class KnnMatchOptions(MatchOptions):
    compact_result: Bool = Field(False, alias="CompactResult")


def _masks(opts: MatchOptions, explicit: bool) -> Any:
    """One mask for the two-set form, a list of masks for the train-set form."""
    if opts.mask is None or opts.mask.is_empty:
        return None
    if explicit:
        return opts.mask.to_mat(cv2.CV_8U)
    return opts.mask.to_mats(cv2.CV_8U)


class DescriptorMatcherAdapter(AlgorithmAdapter):
    """Brute-force and FLANN based matching of feature descriptors.

    ``new`` takes the matcher type as a string, e.g. ``"BruteForce-Hamming"``.
    """

    name = "DescriptorMatcher_"
    constructor = Signature("new", nargin=1, nargout=1)

    def create(self, args: list[MxArray], opts: None) -> Any:
        return cv2.DescriptorMatcher_create(MatcherType[args[0].to_string()])

    @method("add", nargin=1)
    def add(self, obj: Any, args: list[MxArray], opts: None, nlhs: int) -> list[Any]:
        descriptors = args[0].to_vector(_descriptors) if args[0].is_cell else [_descriptors(args[0])]
        obj.add(descriptors)
        return []

    @method("getTrainDescriptors", nargout=1)
    def get_train_descriptors(self, obj: Any, args: list[MxArray], opts: None, nlhs: int) -> list[Any]:
        return [MxArray.from_mats(obj.getTrainDescriptors())]

    @method("isMaskSupported", nargout=1)
    def is_mask_supported(self, obj: Any, args: list[MxArray], opts: None, nlhs: int) -> list[Any]:
        return [bool(obj.isMaskSupported())]

    @method("train")
    def train(self, obj: Any, args: list[MxArray], opts: None, nlhs: int) -> list[Any]:
        obj.train()
        return []

    @method("match", nargin=_match_nargin, nargout=1, options=MatchOptions)
    def match(self, obj: Any, args: list[MxArray], opts: MatchOptions, nlhs: int) -> list[Any]:
        """Best match for each query descriptor."""
        query = _descriptors(args[0])
        # keywords select the overload, positional None would bind to trainDescriptors
        if len(args) == 2:
            matches = obj.match(query, _descriptors(args[1]), mask=_masks(opts, True))
        else:
            matches = obj.match(query, masks=_masks(opts, False))
        return [MxArray.from_dmatches(matches)]

    @method("knnMatch", nargin=_knn_nargin, nargout=1, options=KnnMatchOptions)
    def knn_match(self, obj: Any, args: list[MxArray], opts: KnnMatchOptions, nlhs: int) -> list[Any]:
        """The ``k`` best matches of each query descriptor, as a cell of struct arrays."""
        query = _descriptors(args[0])
        k = args[-1].to_int()
        if len(args) == 3:
            matches = obj.knnMatch(
                query, _descriptors(args[1]), k=k, mask=_masks(opts, True), compactResult=opts.compact_result
            )
        else:
            matches = obj.knnMatch(query, k=k, masks=_masks(opts, False), compactResult=opts.compact_result)
        return [[MxArray.from_dmatches(row) for row in matches]]

    @method("radiusMatch", nargin=_knn_nargin, nargout=1, options=KnnMatchOptions)
    def radius_match(self, obj: Any, args: list[MxArray], opts: KnnMatchOptions, nlhs: int) -> list[Any]:
        """All matches within ``maxDistance`` of each query descriptor."""
        query = _descriptors(args[0])
        max_distance = args[-1].to_double()
        if len(args) == 3:
            matches = obj.radiusMatch(
                query,
                _descriptors(args[1]),
                maxDistance=max_distance,
                mask=_masks(opts, True),
                compactResult=opts.compact_result,
            )
        else:
            matches = obj.radiusMatch(
                query, maxDistance=max_distance, masks=_masks(opts, False), compactResult=opts.compact_result
            )
        return [[MxArray.from_dmatches(row) for row in matches]]
