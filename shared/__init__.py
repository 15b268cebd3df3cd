"""
Shared utilities for the ABE policy engine.

This package aggregates common building blocks consumed by the core and
its boundary adapters:

- config: Engine configuration via pydantic-settings
- logging: Structured logging with call correlation
- errors: Canonical error base type and responses

Any cross-cutting logic should live here to avoid import cycles. Do not
import from abe_policy into shared/.
"""
