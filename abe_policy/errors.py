"""
Error taxonomy for the ABE policy engine.

Every failure raised by the registry, the parser or the combination
enumerator is a `PolicyError`. Capacity exhaustion cannot be remedied
once reached: the registry must be reprovisioned with a larger ceiling.
"""

from typing import Optional

from shared.errors import PolicyEngineException


class PolicyError(PolicyEngineException):
    """Base class of all policy engine errors."""


class AttributeNotFound(PolicyError):
    """Query or rotation on an unregistered attribute."""

    def __init__(self, attribute: str):
        super().__init__(
            "ATTRIBUTE_NOT_FOUND",
            f"attribute not found: {attribute}",
            {"attribute": attribute}
        )


class MissingAttribute(PolicyError):
    """An axis was given without any attribute."""

    def __init__(self, item: Optional[str] = None, axis_name: Optional[str] = None):
        message = f"{item or 'attribute'} is missing"
        if axis_name is not None:
            message += f" in axis {axis_name}"
        super().__init__(
            "MISSING_ATTRIBUTE",
            message,
            {"item": item, "axis": axis_name}
        )


class MissingAxis(PolicyError):
    """No axis was given."""

    def __init__(self):
        super().__init__("MISSING_AXIS", "No axis given")


class UnsupportedOperator(PolicyError):
    """The parser met a connective other than `&&` or `||`."""

    def __init__(self, operator: str):
        super().__init__(
            "UNSUPPORTED_OPERATOR",
            f"unsupported operator {operator}",
            {"operator": operator}
        )


class CapacityOverflow(PolicyError):
    """An addition or rotation would exceed the attribute creation ceiling."""

    def __init__(self, requested: int = 1, remaining: int = 0):
        super().__init__(
            "CAPACITY_OVERFLOW",
            "attribute capacity overflow",
            {"requested": requested, "remaining": remaining}
        )


class ExistingPolicy(PolicyError):
    """Duplicate axis name, or duplicate attribute within a new axis."""

    def __init__(self, name: str):
        super().__init__(
            "EXISTING_POLICY",
            f"policy {name} already exists",
            {"name": name}
        )


class InvalidBooleanExpression(PolicyError):
    """Syntax violation in a textual access policy."""

    def __init__(self, reason: str, expression: Optional[str] = None):
        super().__init__(
            "INVALID_BOOLEAN_EXPRESSION",
            f"invalid boolean expression: {reason}",
            {"expression": expression}
        )


class InvalidAttribute(PolicyError):
    """Malformed attribute, or an attribute with no slot recorded."""

    def __init__(self, reason: str):
        super().__init__("INVALID_ATTRIBUTE", f"invalid attribute: {reason}")


class InvalidAxis(PolicyError):
    """An access policy referenced an axis absent from the registry."""

    def __init__(self, axis: str):
        super().__init__(
            "INVALID_AXIS",
            f"invalid axis: {axis}",
            {"axis": axis}
        )


class DeserializationError(PolicyError):
    """A persisted policy matched neither the current nor the legacy schema."""

    def __init__(self, reason: str):
        super().__init__("DESERIALIZATION_ERROR", f"deserialization error: {reason}")
