"""
Host-runtime bindings.

Structured host objects cross this boundary as JSON strings: policies are
read with `Policy.parse_and_convert` (so legacy blobs are upgraded on the
way in) and always written back with the current schema.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool
from pydantic import ValidationError as SchemaValidationError

from shared.config import get_settings
from shared.logging import get_logger, set_call_id
from ..access_policy import AccessPolicy
from ..attribute import Attribute, EncryptionHint
from ..errors import DeserializationError, InvalidBooleanExpression
from ..policy import Policy, PolicyAxis

logger = get_logger("abe_policy.bindings")


class AttributePropertyInput(BaseModel):
    """Attribute description as provided by the host."""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    is_hybridized: StrictBool = Field(False, alias="isHybridized")


def policy_axis(name: str, attribute_properties: List[Dict[str, Any]], is_hierarchical: bool) -> str:
    """Build a serialized policy axis from `{name, isHybridized}` objects."""
    try:
        properties = [AttributePropertyInput.model_validate(prop) for prop in attribute_properties]
    except SchemaValidationError as e:
        raise DeserializationError(str(e)) from e

    axis = PolicyAxis(
        name=name,
        attribute_properties=[
            (prop.name, EncryptionHint.new(prop.is_hybridized)) for prop in properties
        ],
        is_hierarchical=is_hierarchical
    )
    return axis.to_json()


def new_policy(nb_creations: Optional[int] = None) -> str:
    """Serialized empty policy allowing `nb_creations` attribute creations."""
    if nb_creations is None:
        nb_creations = get_settings().default_max_attribute_creations
    return Policy(nb_creations).to_json()


def add_axis(policy: str, axis: str) -> str:
    """Add a serialized axis to a serialized policy."""
    set_call_id()
    current = Policy.parse_and_convert(policy)
    current.add_axis(PolicyAxis.from_json(axis))
    return current.to_json()


def rotate_attributes(attributes: List[str], policy: str) -> str:
    """
    Rotate attributes of a serialized policy.

    - `attributes`: attributes in the `AXIS::NAME` form
    - `policy`: serialized policy
    """
    set_call_id()
    current = Policy.parse_and_convert(policy)
    for attribute in attributes:
        current.rotate(Attribute.from_string(attribute))
    logger.info("Attributes rotated", count=len(attributes))
    return str(current)


def parse_boolean_access_policy(boolean_expression: str) -> str:
    """Serialized access policy of a boolean expression."""
    max_length = get_settings().max_expression_length
    if len(boolean_expression) > max_length:
        raise InvalidBooleanExpression(
            f"expression is {len(boolean_expression)} characters long, the limit is {max_length}"
        )
    return AccessPolicy.from_boolean_expression(boolean_expression).to_json()
