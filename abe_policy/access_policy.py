"""
Access policies: monotone boolean expressions over attributes.

An access policy is built from `Attr` literals joined with `And` (`&`)
and `Or` (`|`). `All` matches every attribute. There is no negation.

    policy = AccessPolicy.new("Security Level", "level 4") & (
        AccessPolicy.new("Department", "MKG") | AccessPolicy.new("Department", "FIN")
    )

`to_attribute_combinations` resolves a policy against a `Policy`
registry into its disjunctive normal form: a list of attribute tuples,
each one an AND-combination, whose OR is the meaning of the expression.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence, Union

from .attribute import Attribute
from .errors import (
    AttributeNotFound, InvalidAttribute, InvalidAxis, InvalidBooleanExpression,
    MissingAttribute, MissingAxis
)

AttributeCombination = List[Attribute]


class AccessPolicy:
    """Base class of access policy nodes."""

    def __and__(self, other: "AccessPolicy") -> "AccessPolicy":
        return And(self, other)

    def __or__(self, other: "AccessPolicy") -> "AccessPolicy":
        return Or(self, other)

    @staticmethod
    def new(axis: str, name: str) -> "Attr":
        """Shortcut for `Attr(Attribute(axis, name))`."""
        return Attr(Attribute(axis, name))

    @staticmethod
    def from_boolean_expression(expression: str) -> "AccessPolicy":
        """
        Parse a boolean expression such as
        `(Department::HR || Department::RnD) && Level::level_2`.
        """
        from .parser import parse_boolean_expression

        # Each operator and each parenthesis level costs parser frames
        try:
            return parse_boolean_expression(expression)
        except RecursionError as e:
            raise InvalidBooleanExpression(
                f"expression is nested too deeply to be parsed ({len(expression)} characters)"
            ) from e

    @staticmethod
    def from_axes(axes_attributes: Mapping[str, Sequence[str]]) -> "AccessPolicy":
        """
        Build a policy from axis names to attribute names.

        The attributes of an axis are ORed, the axes are ANDed.
        """
        axis_policies = []
        for axis, names in axes_attributes.items():
            if not names:
                raise MissingAttribute(axis_name=axis)
            axis_policy = AccessPolicy.new(axis, names[0])
            for name in names[1:]:
                axis_policy = axis_policy | AccessPolicy.new(axis, name)
            axis_policies.append(axis_policy)

        if not axis_policies:
            raise MissingAxis()

        access_policy = axis_policies[0]
        for axis_policy in axis_policies[1:]:
            access_policy = access_policy & axis_policy
        return access_policy

    def attributes(self) -> List[Attribute]:
        """All literals of this policy, sorted. Duplicates are kept."""
        return sorted(self._literals())

    def _literals(self) -> List[Attribute]:
        raise NotImplementedError

    def to_attribute_combinations(
        self, policy, follow_hierarchical_axes: bool = False
    ) -> List[AttributeCombination]:
        """
        Return the attribute combinations that satisfy this policy.

        With `follow_hierarchical_axes`, a literal on a hierarchical axis
        also yields one singleton combination per lower ranked attribute.
        A literal whose name is not listed in its hierarchical axis raises
        `AttributeNotFound` in that mode instead of yielding every rank of
        the axis.
        """
        raise NotImplementedError

    def to_dict(self) -> Union[Dict[str, Any], str]:
        raise NotImplementedError

    def to_json(self) -> str:
        try:
            return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)
        except RecursionError as e:
            raise InvalidBooleanExpression("access policy is nested too deeply to be encoded") from e

    @staticmethod
    def from_dict(data: Union[Dict[str, Any], str]) -> "AccessPolicy":
        if data == "All":
            return All()
        if not isinstance(data, dict) or len(data) != 1:
            raise InvalidBooleanExpression(f"unexpected access policy node {data!r}")

        tag, value = next(iter(data.items()))
        if tag == "Attr":
            if not isinstance(value, str):
                raise InvalidAttribute(f"expected a string, got {value!r}")
            return Attr(Attribute.from_string(value))
        if tag in ("And", "Or"):
            if not isinstance(value, list) or len(value) != 2:
                raise InvalidBooleanExpression(f"'{tag}' expects two operands, got {value!r}")
            left = AccessPolicy.from_dict(value[0])
            right = AccessPolicy.from_dict(value[1])
            return And(left, right) if tag == "And" else Or(left, right)
        raise InvalidBooleanExpression(f"unknown access policy node '{tag}'")

    @staticmethod
    def from_json(data: Union[str, bytes]) -> "AccessPolicy":
        try:
            decoded = json.loads(data)
        except ValueError as e:
            raise InvalidBooleanExpression(f"invalid JSON access policy: {e}") from e
        return AccessPolicy.from_dict(decoded)

    def to_boolean_expression(self) -> str:
        """Text form that parses back to an equivalent policy."""
        raise NotImplementedError

    def _operand_expression(self) -> str:
        return f"({self.to_boolean_expression()})"


@dataclass(frozen=True)
class Attr(AccessPolicy):
    attribute: Attribute

    def _literals(self) -> List[Attribute]:
        return [self.attribute]

    def to_attribute_combinations(self, policy, follow_hierarchical_axes=False):
        axis = policy.axes.get(self.attribute.axis)
        if axis is None:
            raise InvalidAxis(self.attribute.axis)

        combinations = [[self.attribute]]
        if axis.is_hierarchical and follow_hierarchical_axes:
            if self.attribute.name not in axis.attribute_names:
                raise AttributeNotFound(str(self.attribute))
            # lower ranks are listed first
            for name in axis.attribute_names:
                if name == self.attribute.name:
                    break
                combinations.append([Attribute(self.attribute.axis, name)])
        return combinations

    def to_dict(self):
        return {"Attr": str(self.attribute)}

    def to_boolean_expression(self) -> str:
        return str(self.attribute)

    def _operand_expression(self) -> str:
        return self.to_boolean_expression()


@dataclass(frozen=True)
class And(AccessPolicy):
    left: AccessPolicy
    right: AccessPolicy

    def _literals(self) -> List[Attribute]:
        return self.left._literals() + self.right._literals()

    def to_attribute_combinations(self, policy, follow_hierarchical_axes=False):
        left = self.left.to_attribute_combinations(policy, follow_hierarchical_axes)
        right = self.right.to_attribute_combinations(policy, follow_hierarchical_axes)
        return [
            left_combination + right_combination
            for left_combination in left
            for right_combination in right
        ]

    def to_dict(self):
        return {"And": [self.left.to_dict(), self.right.to_dict()]}

    def to_boolean_expression(self) -> str:
        return f"{self.left._operand_expression()} && {self.right._operand_expression()}"


@dataclass(frozen=True)
class Or(AccessPolicy):
    left: AccessPolicy
    right: AccessPolicy

    def _literals(self) -> List[Attribute]:
        return self.left._literals() + self.right._literals()

    def to_attribute_combinations(self, policy, follow_hierarchical_axes=False):
        left = self.left.to_attribute_combinations(policy, follow_hierarchical_axes)
        right = self.right.to_attribute_combinations(policy, follow_hierarchical_axes)
        return left + right

    def to_dict(self):
        return {"Or": [self.left.to_dict(), self.right.to_dict()]}

    def to_boolean_expression(self) -> str:
        return f"{self.left._operand_expression()} || {self.right._operand_expression()}"


@dataclass(frozen=True)
class All(AccessPolicy):
    """Matches every attribute."""

    def _literals(self) -> List[Attribute]:
        return []

    def to_attribute_combinations(self, policy, follow_hierarchical_axes=False):
        return [[]]

    def to_dict(self):
        return "All"

    def to_boolean_expression(self) -> str:
        raise InvalidBooleanExpression("'All' has no boolean expression form")


def _evaluate(access_policy: AccessPolicy, mapping: Dict[Attribute, int]) -> int:
    # Or is "+", And is "x" over a literal -> integer labelling shared by both sides
    if isinstance(access_policy, Attr):
        if access_policy.attribute not in mapping:
            mapping[access_policy.attribute] = len(mapping) + 1
        return mapping[access_policy.attribute]
    if isinstance(access_policy, And):
        return _evaluate(access_policy.left, mapping) * _evaluate(access_policy.right, mapping)
    if isinstance(access_policy, Or):
        return _evaluate(access_policy.left, mapping) + _evaluate(access_policy.right, mapping)
    return 0


def policies_equivalent(left: AccessPolicy, right: AccessPolicy) -> bool:
    """
    Structural equality of two access policies.

    Both sides must use the same literals, and the polynomials obtained
    by reading Or as a sum and And as a product must agree once every
    literal is labelled with an integer. Grouping differences are
    tolerated. Not meant as a security check.
    """
    if left.attributes() != right.attributes():
        return False
    mapping: Dict[Attribute, int] = {}
    return _evaluate(left, mapping) == _evaluate(right, mapping)
