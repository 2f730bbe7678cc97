"""Declarative option dictionaries.

Almost every adapter accepts trailing ``"Key", value`` pairs after its
required arguments. Each adapter declares the options it understands as an
`OptionSet` subclass: a Pydantic model whose field aliases are the
case-sensitive option names and whose defaults are the values used when an
option is not supplied. The field annotations below convert the raw host
value into the native type while validating.

Example:
    >>> class BlurOptions(OptionSet):
    ...     ksize: SizeOpt = Field((5, 5), alias="KSize")
    ...     border_type: enum_of(BorderType) = Field(cv2.BORDER_DEFAULT, alias="BorderType")
    >>> BlurOptions.parse([MxArray("KSize"), MxArray(np.array([3, 3]))]).ksize
    (3, 3)
"""

from collections.abc import Callable, Sequence
from typing import Annotated, Any

import cv2
import typing_extensions
from pydantic import BaseModel, BeforeValidator, ConfigDict, ValidationError

from mexopencv.core.constants import ClassNameMap, ConstMap
from mexopencv.core.errors import ArgumentCountError, InvalidArgument
from mexopencv.core.mxarray import MxArray


def from_host(converter: Callable[[MxArray], Any]) -> BeforeValidator:
    """Build a validator that applies an `MxArray` conversion to the raw value."""

    def validate(value: Any) -> Any:
        return converter(value if isinstance(value, MxArray) else MxArray(value))

    return BeforeValidator(validate)


def _to_mask(value: MxArray) -> Any:
    return None if value.is_empty else value.to_mat(cv2.CV_8U)


def _to_optional_mat(value: MxArray) -> Any:
    return None if value.is_empty else value.to_mat()


def _to_depth(value: MxArray) -> int:
    # class name or raw depth, -1 keeps the source depth
    return ClassNameMap[value.to_string()] if value.is_char else value.to_int()


Int = Annotated[int, from_host(MxArray.to_int)]
Double = Annotated[float, from_host(MxArray.to_double)]
Bool = Annotated[bool, from_host(MxArray.to_bool)]
String = Annotated[str, from_host(MxArray.to_string)]
SizeOpt = Annotated[tuple[int, int], from_host(MxArray.to_size)]
PointOpt = Annotated[tuple[int, int], from_host(MxArray.to_point)]
Point2fOpt = Annotated[tuple[float, float], from_host(MxArray.to_point2f)]
ScalarOpt = Annotated[tuple[float, float, float, float], from_host(MxArray.to_scalar)]
TermCriteriaOpt = Annotated[tuple[int, int, float], from_host(MxArray.to_term_criteria)]
DepthOpt = Annotated[int, from_host(_to_depth)]
MatOpt = Annotated[Any, from_host(_to_optional_mat)]
MaskOpt = Annotated[Any, from_host(_to_mask)]
# kept as an MxArray, for options whose conversion depends on other arguments
Raw = Annotated[Any, from_host(lambda value: value)]


def enum_of(table: ConstMap) -> Any:
    """Option type accepting the keys of ``table``."""
    return Annotated[int, from_host(lambda value: table[value.to_string()])]


class OptionSet(BaseModel):  # type: ignore
    """Base class for the option schema of one operation.

    Subclasses declare one field per option, with ``alias`` set to the option
    name as written by the host and a native default.
    """

    model_config = ConfigDict(extra="forbid", frozen=True, arbitrary_types_allowed=True)

    @classmethod
    def option_names(cls) -> list[str]:
        return [field.alias or name for name, field in cls.model_fields.items()]

    @classmethod
    def parse(cls, args: Sequence[MxArray]) -> typing_extensions.Self:
        """Parse trailing key/value pairs.

        Pairs are consumed left to right and a repeated key overwrites the
        earlier value. Values are validated once all keys are known, so a
        failed parse never yields a partially filled option set.

        Args:
            args: The trailing arguments, alternating key and value.

        Returns:
            The validated options.

        Raises:
            ArgumentCountError: If ``args`` has odd length.
            InvalidArgument: If a key is not a string or not recognized, or a
                value cannot be converted.
        """
        if len(args) % 2 != 0:
            raise ArgumentCountError()
        names = cls.option_names()
        values: dict[str, MxArray] = {}
        for key_arg, value in zip(args[0::2], args[1::2]):
            if not key_arg.is_char:
                raise InvalidArgument("Option name must be a string")
            key = key_arg.to_string()
            if key not in names:
                raise InvalidArgument(f"Unrecognized option {key}")
            values[key] = value
        try:
            return cls(**values)
        except ValidationError as e:
            error = e.errors()[0]
            option = error["loc"][0] if error["loc"] else cls.__name__
            raise InvalidArgument(f"Invalid value for option {option}: {error['msg']}") from None
