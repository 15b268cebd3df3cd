"""
Boolean expression parser for access policies.

Grammar::

    literal := AXIS "::" NAME
    expr    := literal | "(" expr ")" | expr "&&" expr | expr "||" expr

There is no precedence table. Outside parentheses, the first operator
in the text becomes the root connective: its left operand is the text
before it and its right operand is the whole remainder. `A && B || C`
therefore parses as `A && (B || C)`. Mixed chains should be written
with explicit parentheses.

Recursion depth follows the nesting depth of the input and is not
bounded here; untrusted text must be bounded by the caller.
"""

from typing import Optional, Tuple

from .access_policy import AccessPolicy, And, Attr, Or
from .attribute import ATTRIBUTE_SEPARATOR, Attribute
from .errors import InvalidBooleanExpression, UnsupportedOperator

AND_OPERATOR = "&&"
OR_OPERATOR = "||"
OPERATOR_SIZE = 2

EXPRESSION_EXAMPLE = "(Department::HR || Department::RnD) && Level::level_2"

# Substrings around which spaces are not significant
_SPECIAL_TOKENS = ("(", ")", OR_OPERATOR, AND_OPERATOR, ATTRIBUTE_SEPARATOR)


def sanitize_spaces(expression: str) -> str:
    """
    Remove spaces around parentheses, operators and separators.

    Spaces inside axis and attribute names are kept:
    `( A::b c ||  d e::F )` becomes `(A::b c||d e::F)`.
    """
    for token in _SPECIAL_TOKENS:
        expression = token.join(part.strip() for part in expression.split(token))
    return expression


def find_closing_parenthesis(expression: str) -> int:
    """Index of the parenthesis closing an already opened one."""
    depth = 0
    for index, char in enumerate(expression):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if depth < 0:
            return index
    raise InvalidBooleanExpression(
        f"Missing closing parenthesis in boolean expression {expression}",
        expression
    )


def decompose_expression(
    expression: str, split_position: int
) -> Tuple[str, Optional[str], Optional[str]]:
    """
    Split an expression into left part, operator and right part.

    `Department::HR&&Level::level_2` split at 14 gives
    `Department::HR`, `&&` and `Level::level_2`. A closing parenthesis at
    the split position is skipped.
    """
    if split_position > len(expression):
        raise InvalidBooleanExpression(
            f"Cannot split boolean expression {expression} at position {split_position} "
            f"since {split_position} is greater than the size of {expression}",
            expression
        )

    left_part = expression[:split_position]
    if split_position == len(expression):
        return left_part, None, None

    if expression[split_position] == ")":
        split_position += 1
    if split_position == len(expression):
        return left_part, None, None

    if split_position + OPERATOR_SIZE > len(expression):
        raise InvalidBooleanExpression(
            f"Cannot split boolean expression {expression} at position "
            f"{split_position + OPERATOR_SIZE} since it is greater than the size of {expression}",
            expression
        )

    operator = expression[split_position:split_position + OPERATOR_SIZE]
    right_part = expression[split_position + OPERATOR_SIZE:]
    return left_part, operator, right_part


def _first_operator_position(expression: str) -> Optional[int]:
    positions = [
        position
        for position in (expression.find(OR_OPERATOR), expression.find(AND_OPERATOR))
        if position >= 0
    ]
    return min(positions) if positions else None


def _parse_literal(expression: str) -> Attr:
    parts = expression.split(ATTRIBUTE_SEPARATOR)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise InvalidBooleanExpression(
            f"'{expression}' does not respect the format <axis::name>. "
            f"Example: {EXPRESSION_EXAMPLE}",
            expression
        )
    return Attr(Attribute(parts[0], parts[1]))


def _combine(left_part: str, operator: str, right_part: str) -> AccessPolicy:
    left = parse_boolean_expression(left_part)
    right = parse_boolean_expression(right_part)
    if operator == AND_OPERATOR:
        return And(left, right)
    if operator == OR_OPERATOR:
        return Or(left, right)
    raise UnsupportedOperator(operator)


def parse_boolean_expression(expression: str) -> AccessPolicy:
    """Convert a boolean expression into an `AccessPolicy`."""
    expression = sanitize_spaces(expression)

    if ATTRIBUTE_SEPARATOR not in expression:
        raise InvalidBooleanExpression(
            f"'{expression}' does not contain any attribute separator '{ATTRIBUTE_SEPARATOR}'. "
            f"Example: {EXPRESSION_EXAMPLE}",
            expression
        )

    if expression.startswith("("):
        inner = expression[1:]
        if ")" not in inner:
            raise InvalidBooleanExpression(
                f"closing parenthesis missing in {inner}", expression
            )
        closing = find_closing_parenthesis(inner)
        left_part, operator, right_part = decompose_expression(inner, closing)
    else:
        position = _first_operator_position(expression)
        if position is None:
            return _parse_literal(expression)
        left_part, operator, right_part = decompose_expression(expression, position)

    if operator is None:
        return parse_boolean_expression(left_part)
    return _combine(left_part, operator, right_part)
