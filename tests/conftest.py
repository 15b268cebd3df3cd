"""
Shared fixtures for the policy engine test suites.
"""

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from abe_policy.attribute import EncryptionHint
from abe_policy.policy import Policy, PolicyAxis

FIXTURES_DIR = os.path.join(os.path.dirname(__file__), 'integration', 'fixtures')


@pytest.fixture
def security_level_axis():
    """Hierarchical axis, lowest rank first."""
    return PolicyAxis(
        "Security Level",
        [
            ("Protected", EncryptionHint.CLASSIC),
            ("Confidential", EncryptionHint.CLASSIC),
            ("Top Secret", EncryptionHint.HYBRIDIZED),
        ],
        True
    )


@pytest.fixture
def department_axis():
    """Non hierarchical axis."""
    return PolicyAxis(
        "Department",
        [
            ("R&D", EncryptionHint.CLASSIC),
            ("HR", EncryptionHint.CLASSIC),
            ("MKG", EncryptionHint.CLASSIC),
            ("FIN", EncryptionHint.CLASSIC),
        ],
        False
    )


@pytest.fixture
def policy(security_level_axis, department_axis):
    """Policy with both axes and room for 100 creations."""
    policy = Policy(100)
    policy.add_axis(security_level_axis)
    policy.add_axis(department_axis)
    return policy


@pytest.fixture
def fixture_path():
    """Path builder for JSON fixtures."""
    def _path(name: str) -> str:
        return os.path.join(FIXTURES_DIR, name)
    return _path
