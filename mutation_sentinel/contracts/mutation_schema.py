"""
Mutation record schema.

This module defines the Pydantic models handed to mutation handlers. A record
always references the ORIGINAL (unwrapped) target, never a sentinel, so handlers
never need to unwrap anything.
"""

from enum import Enum
from typing import Annotated, Any, Callable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


PROTOTYPE_PROPERTY = "__class__"


class MutationType(str, Enum):
    DEFINE_PROPERTY = "defineProperty"
    DELETE_PROPERTY = "deleteProperty"
    SET = "set"
    SET_PROTOTYPE = "setPrototypeOf"


class PropertyAccess(str, Enum):
    """Which namespace a property lives in: ``obj.name`` or ``obj[key]``."""
    ATTRIBUTE = "attribute"
    ITEM = "item"


class PropertyDescriptor(BaseModel):
    """
    Description of a single own property.

    ``getter``/``setter`` describe accessor properties (a ``property`` on a
    class). ``writable``/``configurable`` are only meaningful when read back
    from a target; they are ignored when a descriptor is applied.
    """
    value: Any = Field(None, description="Stored value (None for accessors)")
    writable: bool = True
    configurable: bool = True
    getter: Optional[Callable[..., Any]] = None
    setter: Optional[Callable[..., Any]] = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def coerce(cls, descriptor: Any) -> "PropertyDescriptor":
        if isinstance(descriptor, PropertyDescriptor):
            return descriptor
        return cls.model_validate(descriptor)


def _format_property(target: Any, prop: Any, via: PropertyAccess) -> str:
    owner = type(target).__name__
    if isinstance(target, type):
        owner = target.__name__
    if via == PropertyAccess.ITEM:
        return f"{owner}[{prop!r}]"
    return f"{owner}.{prop}"


class _MutationBase(BaseModel):
    target: Any = Field(..., description="Original, unwrapped value that was mutated")

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


class DefinePropertyMutation(_MutationBase):
    type: Literal[MutationType.DEFINE_PROPERTY] = MutationType.DEFINE_PROPERTY
    property: Any
    descriptor: PropertyDescriptor
    via: PropertyAccess = PropertyAccess.ATTRIBUTE

    def describe(self) -> str:
        location = _format_property(self.target, self.property, self.via)
        if self.descriptor.getter is not None:
            return f"defineProperty {location} (accessor)"
        return f"defineProperty {location} = {self.descriptor.value!r}"


class DeletePropertyMutation(_MutationBase):
    type: Literal[MutationType.DELETE_PROPERTY] = MutationType.DELETE_PROPERTY
    property: Any
    via: PropertyAccess = PropertyAccess.ATTRIBUTE

    def describe(self) -> str:
        return f"deleteProperty {_format_property(self.target, self.property, self.via)}"


class SetMutation(_MutationBase):
    type: Literal[MutationType.SET] = MutationType.SET
    property: Any
    value: Any = None
    via: PropertyAccess = PropertyAccess.ATTRIBUTE

    def describe(self) -> str:
        return f"set {_format_property(self.target, self.property, self.via)} = {self.value!r}"


class SetPrototypeMutation(_MutationBase):
    type: Literal[MutationType.SET_PROTOTYPE] = MutationType.SET_PROTOTYPE
    property: Literal["__class__"] = PROTOTYPE_PROPERTY
    prototype: Any = None

    def describe(self) -> str:
        old = type(self.target).__name__
        new = getattr(self.prototype, "__name__", repr(self.prototype))
        return f"setPrototypeOf {old} -> {new}"


Mutation = Annotated[
    Union[DefinePropertyMutation, DeletePropertyMutation, SetMutation, SetPrototypeMutation],
    Field(discriminator="type"),
]
