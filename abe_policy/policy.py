"""
Attribute registry for the ABE policy engine.

A `Policy` owns a set of axes and hands out integer slots to their
attributes. Slots are allocated from a monotonic counter bounded by a
fixed number of creations (additions + rotations) and are never reused.
Rotating an attribute allocates a fresh slot while keeping the previous
ones so that keys issued before the rotation remain usable.

Mutations are not synchronized: callers sharing a `Policy` between
threads must hold a write lock around `add_axis` and `rotate`.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError as SchemaValidationError

from shared.config import U32_MAX
from shared.logging import get_logger
from .attribute import Attribute, EncryptionHint
from .errors import (
    AttributeNotFound, CapacityOverflow, DeserializationError, ExistingPolicy, InvalidAttribute
)
from .schemas import (
    AttributePropertySchema, LegacyPolicySchema, PolicyAttributeParametersSchema,
    PolicyAxisParametersSchema, PolicyAxisSchema, PolicySchema, PolicyVersion
)

logger = get_logger("abe_policy.policy")

AttributeProperty = Tuple[str, EncryptionHint]


@dataclass
class PolicyAxis:
    """
    Axis definition consumed by `Policy.add_axis`.

    The order of `attribute_properties` matters for hierarchical axes: it
    ranks the attributes from lowest to highest.
    """
    name: str
    attribute_properties: List[AttributeProperty]
    is_hierarchical: bool = False

    def __post_init__(self):
        self.attribute_properties = [
            (name, EncryptionHint(hint)) for name, hint in self.attribute_properties
        ]

    def __len__(self) -> int:
        return len(self.attribute_properties)

    @property
    def attribute_names(self) -> List[str]:
        return [name for name, _ in self.attribute_properties]

    def to_schema(self) -> PolicyAxisSchema:
        return PolicyAxisSchema(
            name=self.name,
            attribute_properties=[
                AttributePropertySchema(name=name, encryption_hint=hint)
                for name, hint in self.attribute_properties
            ],
            is_hierarchical=self.is_hierarchical
        )

    @classmethod
    def from_schema(cls, schema: PolicyAxisSchema) -> "PolicyAxis":
        return cls(
            name=schema.name,
            attribute_properties=[
                (prop.name, prop.encryption_hint) for prop in schema.attribute_properties
            ],
            is_hierarchical=schema.is_hierarchical
        )

    def to_json(self) -> str:
        return self.to_schema().model_dump_json()

    @classmethod
    def from_json(cls, data: Union[str, bytes]) -> "PolicyAxis":
        try:
            schema = PolicyAxisSchema.model_validate_json(data)
        except SchemaValidationError as e:
            raise DeserializationError(str(e)) from e
        return cls.from_schema(schema)


@dataclass
class PolicyAxisParameters:
    """Axis metadata kept by a policy."""
    attribute_names: List[str]
    is_hierarchical: bool


@dataclass
class PolicyAttributeParameters:
    """Slot history (append-only) and hint of an attribute."""
    values: List[int] = field(default_factory=list)
    encryption_hint: EncryptionHint = EncryptionHint.CLASSIC

    @property
    def current_value(self) -> Optional[int]:
        return max(self.values) if self.values else None


class SchemaKind(str, Enum):
    """Schema a persisted policy was decoded with."""
    CURRENT = "current"
    LEGACY = "legacy"


@dataclass
class DecodedPolicy:
    """Result of the two-stage policy decode."""
    kind: SchemaKind
    document: Union[PolicySchema, LegacyPolicySchema]


def decode_policy(data: Union[str, bytes]) -> DecodedPolicy:
    """
    Decode a persisted policy with the current schema, then the legacy one.

    When both fail, the current schema error is reported.
    """
    try:
        return DecodedPolicy(SchemaKind.CURRENT, PolicySchema.model_validate_json(data))
    except SchemaValidationError as current_error:
        error = current_error

    try:
        legacy = LegacyPolicySchema.model_validate_json(data)
    except SchemaValidationError:
        raise DeserializationError(str(error)) from error
    return DecodedPolicy(SchemaKind.LEGACY, legacy)


class Policy:
    """
    Registry of axes and attribute slots.

    A fixed number of attribute creations (additions + rotations) is
    allowed over the lifetime of the policy.
    """

    def __init__(self, max_attribute_creations: int):
        if not 0 <= max_attribute_creations <= U32_MAX:
            raise CapacityOverflow(requested=max_attribute_creations, remaining=U32_MAX)
        self.version = PolicyVersion.V1
        self.last_attribute_value = 0
        self.max_attribute_creations = max_attribute_creations
        self.axes: Dict[str, PolicyAxisParameters] = {}
        self.attributes_parameters: Dict[Attribute, PolicyAttributeParameters] = {}

    def __str__(self) -> str:
        return self.to_json()

    def __repr__(self) -> str:
        return (
            f"Policy(last_attribute_value={self.last_attribute_value}, "
            f"max_attribute_creations={self.max_attribute_creations}, "
            f"axes={sorted(self.axes)})"
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Policy):
            return NotImplemented
        return (
            self.version == other.version
            and self.last_attribute_value == other.last_attribute_value
            and self.max_attribute_creations == other.max_attribute_creations
            and self.axes == other.axes
            and self.attributes_parameters == other.attributes_parameters
        )

    def as_map(self) -> Dict[str, PolicyAxisParameters]:
        """Axis name -> attribute names and hierarchical flag."""
        return self.axes

    def max_attr(self) -> int:
        """Return the number of attribute creations allowed."""
        return self.max_attribute_creations

    def remaining_attribute_creations(self) -> int:
        return self.max_attribute_creations - self.last_attribute_value

    def add_axis(self, axis: PolicyAxis) -> None:
        """Add the given axis, allocating one slot per attribute in order."""
        if axis.name in self.axes:
            logger.warning("Axis already exists", axis=axis.name)
            raise ExistingPolicy(axis.name)

        # Attribute names must be unique within the axis
        seen = set()
        for name in axis.attribute_names:
            if name in seen:
                raise ExistingPolicy(str(Attribute(axis.name, name)))
            seen.add(name)

        remaining = self.remaining_attribute_creations()
        if len(axis) > remaining:
            logger.warning(
                "Attribute capacity exceeded",
                axis=axis.name,
                requested=len(axis),
                remaining=remaining
            )
            raise CapacityOverflow(requested=len(axis), remaining=remaining)

        self.axes[axis.name] = PolicyAxisParameters(
            attribute_names=axis.attribute_names,
            is_hierarchical=axis.is_hierarchical
        )
        for name, hint in axis.attribute_properties:
            self.last_attribute_value += 1
            self.attributes_parameters[Attribute(axis.name, name)] = PolicyAttributeParameters(
                values=[self.last_attribute_value],
                encryption_hint=hint
            )

        logger.info(
            "Axis added",
            axis=axis.name,
            attributes=len(axis),
            hierarchical=axis.is_hierarchical,
            last_attribute_value=self.last_attribute_value
        )

    def rotate(self, attribute: Attribute) -> None:
        """Rotate an attribute, giving it the value of an unused slot."""
        if self.last_attribute_value >= self.max_attribute_creations:
            logger.warning("Attribute capacity exhausted", attribute=str(attribute))
            raise CapacityOverflow(requested=1, remaining=0)

        parameters = self.attributes_parameters.get(attribute)
        if parameters is None:
            raise AttributeNotFound(str(attribute))

        self.last_attribute_value += 1
        parameters.values.append(self.last_attribute_value)

        logger.info(
            "Attribute rotated",
            attribute=str(attribute),
            value=self.last_attribute_value,
            history=len(parameters.values)
        )

    def attributes(self) -> List[Attribute]:
        """Return the attributes known to this policy."""
        return list(self.attributes_parameters)

    def _parameters(self, attribute: Attribute) -> PolicyAttributeParameters:
        parameters = self.attributes_parameters.get(attribute)
        if parameters is None:
            raise AttributeNotFound(str(attribute))
        return parameters

    def attribute_values(self, attribute: Attribute) -> List[int]:
        """Return every value this attribute took, the current one first."""
        return sorted(self._parameters(attribute).values, reverse=True)

    def attribute_current_value(self, attribute: Attribute) -> int:
        current = self._parameters(attribute).current_value
        if current is None:
            raise InvalidAttribute(f"the attribute {attribute} does not have any value!")
        return current

    def attribute_hybridization_hint(self, attribute: Attribute) -> EncryptionHint:
        return self._parameters(attribute).encryption_hint

    def attributes_values(self, attributes: Sequence[Attribute]) -> List[int]:
        """Return the current value of each attribute, in the given order."""
        return [self.attribute_current_value(attribute) for attribute in attributes]

    def attributes_hybridization_hint(self, attributes: Iterable[Attribute]) -> EncryptionHint:
        """Join of the hints of attributes required together."""
        hint = EncryptionHint.CLASSIC
        for attribute in attributes:
            hint = hint | self.attribute_hybridization_hint(attribute)
        return hint

    def to_schema(self) -> PolicySchema:
        return PolicySchema(
            version=self.version,
            last_attribute_value=self.last_attribute_value,
            max_attribute_creations=self.max_attribute_creations,
            axes={
                name: PolicyAxisParametersSchema(
                    attribute_names=list(params.attribute_names),
                    is_hierarchical=params.is_hierarchical
                )
                for name, params in self.axes.items()
            },
            attributes={
                str(attribute): PolicyAttributeParametersSchema(
                    values=list(params.values),
                    encryption_hint=params.encryption_hint
                )
                for attribute, params in self.attributes_parameters.items()
            }
        )

    def to_json(self) -> str:
        return self.to_schema().model_dump_json()

    @classmethod
    def from_schema(cls, schema: PolicySchema) -> "Policy":
        policy = cls(schema.max_attribute_creations)
        policy.version = schema.version
        policy.last_attribute_value = schema.last_attribute_value
        policy.axes = {
            name: PolicyAxisParameters(
                attribute_names=list(params.attribute_names),
                is_hierarchical=params.is_hierarchical
            )
            for name, params in schema.axes.items()
        }
        policy.attributes_parameters = {
            Attribute.from_string(key): PolicyAttributeParameters(
                values=list(params.values),
                encryption_hint=params.encryption_hint
            )
            for key, params in schema.attributes.items()
        }
        return policy

    @classmethod
    def from_legacy_schema(cls, legacy: LegacyPolicySchema) -> "Policy":
        """Upgrade a legacy policy: every hint defaults to Classic."""
        policy = cls(legacy.max_attribute_value)
        policy.last_attribute_value = legacy.last_attribute_value
        policy.axes = {
            name: PolicyAxisParameters(
                attribute_names=list(attribute_names),
                is_hierarchical=is_hierarchical
            )
            for name, (attribute_names, is_hierarchical) in legacy.axes.items()
        }
        policy.attributes_parameters = {
            Attribute.from_string(key): PolicyAttributeParameters(
                values=sorted(values),
                encryption_hint=EncryptionHint.CLASSIC
            )
            for key, values in legacy.attribute_to_int.items()
        }
        return policy

    @classmethod
    def parse_and_convert(cls, data: Union[str, bytes]) -> "Policy":
        """Read a policy written with the current or the legacy schema."""
        decoded = decode_policy(data)
        if decoded.kind is SchemaKind.LEGACY:
            policy = cls.from_legacy_schema(decoded.document)
            logger.info(
                "Legacy policy upgraded",
                version=policy.version.value,
                attributes=len(policy.attributes_parameters)
            )
            return policy
        return cls.from_schema(decoded.document)
