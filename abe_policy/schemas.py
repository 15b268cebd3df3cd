"""
Persisted data models for the ABE policy engine.

Field names and structure are part of the compatibility surface of any
stored policy blob. A change here must keep the previous layout readable
through the legacy decode path in `abe_policy.policy`.
"""

from enum import Enum
from typing import Annotated, Dict, List, Tuple

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator, model_validator

from shared.config import U32_MAX
from .attribute import Attribute, EncryptionHint
from .errors import InvalidAttribute

Slot = Annotated[int, Field(strict=True, ge=0, le=U32_MAX)]


class PolicyVersion(str, Enum):
    """Policy schema versions."""
    V1 = "V1"


def _check_attribute_keys(keys) -> None:
    for key in keys:
        try:
            Attribute.from_string(key)
        except InvalidAttribute as e:
            raise ValueError(e.message) from e


def _check_slots(last_attribute_value: int, max_attribute_value: int, histories) -> None:
    if last_attribute_value > max_attribute_value:
        raise ValueError(
            f"last attribute value {last_attribute_value} exceeds the maximum {max_attribute_value}"
        )
    seen = set()
    for values in histories:
        for value in values:
            if value > last_attribute_value:
                raise ValueError(
                    f"attribute value {value} exceeds the last attribute value {last_attribute_value}"
                )
            if value in seen:
                raise ValueError(f"attribute value {value} is assigned more than once")
            seen.add(value)


def _check_axes(axes_attribute_names, attribute_keys) -> None:
    listed = set()
    for axis, names in axes_attribute_names.items():
        if len(set(names)) != len(names):
            raise ValueError(f"axis {axis} lists an attribute more than once")
        listed.update(str(Attribute(axis, name)) for name in names)

    keys = set(attribute_keys)
    missing = sorted(listed - keys)
    if missing:
        raise ValueError(f"axis attributes without any value: {', '.join(missing)}")
    unlisted = sorted(keys - listed)
    if unlisted:
        raise ValueError(f"attributes not listed in any axis: {', '.join(unlisted)}")


class AttributePropertySchema(BaseModel):
    """An attribute name and its encryption hint, as listed in an axis."""
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, description="Attribute name")
    encryption_hint: EncryptionHint = Field(EncryptionHint.CLASSIC, description="Encryption hint")


class PolicyAxisSchema(BaseModel):
    """Serialized policy axis."""
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, description="Axis name")
    attribute_properties: List[AttributePropertySchema] = Field(..., description="Ordered attributes")
    is_hierarchical: StrictBool = Field(False, description="Whether the axis is ordered")


class PolicyAxisParametersSchema(BaseModel):
    """Axis metadata stored in a policy."""
    model_config = ConfigDict(extra="forbid")

    attribute_names: List[str]
    is_hierarchical: StrictBool


class PolicyAttributeParametersSchema(BaseModel):
    """Slot history and hint of one attribute."""
    model_config = ConfigDict(extra="forbid")

    values: List[Slot]
    encryption_hint: EncryptionHint


class PolicySchema(BaseModel):
    """Current policy schema."""
    model_config = ConfigDict(extra="forbid")

    version: PolicyVersion
    last_attribute_value: Slot
    max_attribute_creations: Slot
    axes: Dict[str, PolicyAxisParametersSchema]
    attributes: Dict[str, PolicyAttributeParametersSchema]

    @field_validator("attributes")
    @classmethod
    def validate_attribute_keys(cls, attributes):
        _check_attribute_keys(attributes)
        return attributes

    @model_validator(mode="after")
    def validate_slots(self):
        _check_slots(
            self.last_attribute_value,
            self.max_attribute_creations,
            [params.values for params in self.attributes.values()]
        )
        _check_axes(
            {name: params.attribute_names for name, params in self.axes.items()},
            self.attributes
        )
        return self


class LegacyPolicySchema(BaseModel):
    """Policy schema written before encryption hints and versioning."""
    model_config = ConfigDict(extra="forbid")

    last_attribute_value: Slot
    max_attribute_value: Slot
    axes: Dict[str, Tuple[List[str], StrictBool]]
    attribute_to_int: Dict[str, List[Slot]]

    @field_validator("attribute_to_int")
    @classmethod
    def validate_attribute_keys(cls, attribute_to_int):
        _check_attribute_keys(attribute_to_int)
        return attribute_to_int

    @model_validator(mode="after")
    def validate_slots(self):
        _check_slots(
            self.last_attribute_value,
            self.max_attribute_value,
            self.attribute_to_int.values()
        )
        _check_axes(
            {name: attribute_names for name, (attribute_names, _) in self.axes.items()},
            self.attribute_to_int
        )
        return self
