"""
ABE policy engine.

Defines the attribute registry and the access policy language used by an
attribute-based encryption scheme. The registry assigns integer slots to
the attributes of each axis and rotates them on revocation; access
policies are boolean expressions over attributes resolved against the
registry into the attribute combinations the cryptographic layer binds
to.

Modules of interest:
- attribute: Attribute and EncryptionHint value types.
- policy: PolicyAxis and the Policy registry, with legacy migration.
- access_policy: Expression tree, combinators and enumeration.
- parser: Textual boolean expression parser.
- errors: Error taxonomy.
"""

from .attribute import Attribute, EncryptionHint
from .access_policy import (
    AccessPolicy, All, And, Attr, Or, policies_equivalent
)
from .errors import (
    PolicyError, AttributeNotFound, MissingAttribute, MissingAxis, UnsupportedOperator,
    CapacityOverflow, ExistingPolicy, InvalidBooleanExpression, InvalidAttribute,
    InvalidAxis, DeserializationError
)
from .policy import Policy, PolicyAxis, decode_policy
from .schemas import PolicyVersion

__all__ = [
    # Values
    "Attribute", "EncryptionHint",

    # Registry
    "Policy", "PolicyAxis", "PolicyVersion", "decode_policy",

    # Access policies
    "AccessPolicy", "All", "And", "Attr", "Or", "policies_equivalent",

    # Errors
    "PolicyError", "AttributeNotFound", "MissingAttribute", "MissingAxis",
    "UnsupportedOperator", "CapacityOverflow", "ExistingPolicy",
    "InvalidBooleanExpression", "InvalidAttribute", "InvalidAxis",
    "DeserializationError"
]
