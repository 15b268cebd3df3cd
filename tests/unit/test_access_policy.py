"""
Unit tests for access policies.
"""

import pytest

from abe_policy.access_policy import AccessPolicy, All, And, Attr, Or, policies_equivalent
from abe_policy.attribute import Attribute
from abe_policy.errors import (
    AttributeNotFound, InvalidAttribute, InvalidAxis, InvalidBooleanExpression,
    MissingAttribute, MissingAxis
)


def attribute(value):
    return Attribute.from_string(value)


class TestCombinators:
    """Test cases for building access policies."""

    def test_new(self):
        """Test the literal shortcut."""
        assert AccessPolicy.new("Department", "HR") == Attr(Attribute("Department", "HR"))

    def test_operators(self):
        """Test `&` and `|`."""
        hr = AccessPolicy.new("Department", "HR")
        fin = AccessPolicy.new("Department", "FIN")
        level = AccessPolicy.new("Level", "level_2")

        assert (hr | fin) & level == And(Or(hr, fin), level)

    def test_attributes_sorted(self):
        """Test literal listing."""
        access_policy = AccessPolicy.from_boolean_expression(
            "Level::2 && (Department::HR || Department::FIN || Level::2)"
        )

        assert access_policy.attributes() == [
            attribute("Department::FIN"),
            attribute("Department::HR"),
            attribute("Level::2"),
            attribute("Level::2"),
        ]

    def test_all_has_no_attribute(self):
        """Test the neutral policy."""
        assert All().attributes() == []


class TestFromAxes:
    """Test cases for AccessPolicy.from_axes."""

    def test_from_axes(self):
        """Test ORed attributes and ANDed axes."""
        access_policy = AccessPolicy.from_axes({
            "Department": ["HR", "FIN"],
            "Level": ["level_2"],
        })

        expected = (
            AccessPolicy.new("Department", "HR") | AccessPolicy.new("Department", "FIN")
        ) & AccessPolicy.new("Level", "level_2")
        assert policies_equivalent(access_policy, expected)
        assert access_policy == expected

    def test_from_axes_single_attribute(self):
        """Test a single axis with a single attribute."""
        assert AccessPolicy.from_axes({"Level": ["level_2"]}) == AccessPolicy.new("Level", "level_2")

    def test_from_axes_empty_axis(self):
        """Test an axis without attributes."""
        with pytest.raises(MissingAttribute) as exc_info:
            AccessPolicy.from_axes({"Department": ["HR"], "Level": []})

        assert exc_info.value.message == "attribute is missing in axis Level"

    def test_from_axes_no_axis(self):
        """Test an empty map."""
        with pytest.raises(MissingAxis) as exc_info:
            AccessPolicy.from_axes({})

        assert exc_info.value.message == "No axis given"


class TestEquivalence:
    """Test cases for policies_equivalent."""

    @pytest.fixture
    def literals(self):
        """Four distinct literals."""
        return [AccessPolicy.new("Axis", name) for name in ("a", "b", "c", "d")]

    def test_regrouping_is_equivalent(self, literals):
        """Test associativity tolerance."""
        a, b, c, _ = literals

        assert policies_equivalent((a | b) | c, a | (b | c))
        assert policies_equivalent((a & b) & c, a & (b & c))

    def test_commuted_operands_are_equivalent(self, literals):
        """Test operand order tolerance."""
        a, b, _, _ = literals

        assert policies_equivalent(a & b, b & a)
        assert policies_equivalent(a | b, b | a)

    def test_different_connective(self, literals):
        """Test And against Or."""
        a, b, _, _ = literals

        assert not policies_equivalent(a & b, a | b)

    def test_different_literals(self, literals):
        """Test policies over different attributes."""
        a, b, c, _ = literals

        assert not policies_equivalent(a | b, a | c)

    def test_different_structure(self, literals):
        """Test algebraically different expressions."""
        a, b, c, d = literals

        assert not policies_equivalent((a & b) | (c & d), (a | b) & (c | d))
        assert not policies_equivalent(a & (b | c), (a | b) & c)

    def test_text_round_trip(self, literals):
        """Test render then parse."""
        a, b, c, d = literals
        access_policies = [
            a,
            a & (b | c),
            (a | b) & (c | d),
            ((a & b) | c) & d,
            a | (b & (c | d)),
            AccessPolicy.new("Security Level", "Top Secret") & AccessPolicy.new("Department", "R&D"),
        ]

        for access_policy in access_policies:
            parsed = AccessPolicy.from_boolean_expression(access_policy.to_boolean_expression())
            assert policies_equivalent(parsed, access_policy)
            assert parsed == access_policy

    def test_boolean_expression_form(self, literals):
        """Test the rendered text."""
        a, b, c, _ = literals

        assert (a & (b | c)).to_boolean_expression() == "Axis::a && (Axis::b || Axis::c)"

    def test_all_has_no_text_form(self):
        """Test rendering All."""
        with pytest.raises(InvalidBooleanExpression):
            All().to_boolean_expression()


class TestSerialization:
    """Test cases for the structured encoding."""

    def test_to_json(self):
        """Test the reference encoding."""
        access_policy = AccessPolicy.from_boolean_expression(
            "Department::MKG && (Country::France || Country::Spain)"
        )

        assert access_policy.to_json() == (
            '{"And":[{"Attr":"Department::MKG"},'
            '{"Or":[{"Attr":"Country::France"},{"Attr":"Country::Spain"}]}]}'
        )

    def test_json_round_trip(self):
        """Test decoding what was encoded."""
        access_policy = AccessPolicy.from_boolean_expression(
            "(Security Level::Top Secret || Department::R&D) && Country::France"
        )

        assert AccessPolicy.from_json(access_policy.to_json()) == access_policy

    def test_all_encoding(self):
        """Test the unit node."""
        access_policy = All() & AccessPolicy.new("Department", "HR")

        assert access_policy.to_dict() == {"And": ["All", {"Attr": "Department::HR"}]}
        assert AccessPolicy.from_dict(access_policy.to_dict()) == access_policy

    @pytest.mark.parametrize("data", [
        {"Not": [{"Attr": "A::a"}]},
        {"And": [{"Attr": "A::a"}]},
        {"Attr": "A::a", "Or": []},
        ["All"],
    ])
    def test_from_dict_invalid(self, data):
        """Test unexpected nodes."""
        with pytest.raises(InvalidBooleanExpression):
            AccessPolicy.from_dict(data)

    def test_from_dict_invalid_attribute(self):
        """Test a literal without separator."""
        with pytest.raises(InvalidAttribute):
            AccessPolicy.from_dict({"Attr": "Department"})

    def test_from_json_invalid(self):
        """Test text that is not JSON."""
        with pytest.raises(InvalidBooleanExpression):
            AccessPolicy.from_json("{And")


class TestAttributeCombinations:
    """Test cases for to_attribute_combinations."""

    def test_literal(self, policy):
        """Test a single attribute."""
        combinations = AccessPolicy.new("Department", "HR").to_attribute_combinations(policy)

        assert combinations == [[attribute("Department::HR")]]

    def test_hierarchy_followed(self, policy):
        """Test that lower ranks are added as singletons, in rank order."""
        combinations = AccessPolicy.new(
            "Security Level", "Top Secret"
        ).to_attribute_combinations(policy, True)

        assert combinations == [
            [attribute("Security Level::Top Secret")],
            [attribute("Security Level::Protected")],
            [attribute("Security Level::Confidential")],
        ]

    def test_hierarchy_lowest_rank(self, policy):
        """Test the lowest rank has nothing below it."""
        combinations = AccessPolicy.new(
            "Security Level", "Protected"
        ).to_attribute_combinations(policy, True)

        assert combinations == [[attribute("Security Level::Protected")]]

    def test_hierarchy_not_followed(self, policy):
        """Test that only the literal is returned by default."""
        combinations = AccessPolicy.new(
            "Security Level", "Top Secret"
        ).to_attribute_combinations(policy, False)

        assert combinations == [[attribute("Security Level::Top Secret")]]

    def test_flat_axis_ignores_hierarchy(self, policy):
        """Test that a flat axis never expands."""
        combinations = AccessPolicy.new("Department", "FIN").to_attribute_combinations(policy, True)

        assert combinations == [[attribute("Department::FIN")]]

    def test_and_is_cartesian_product(self, policy):
        """Test product order."""
        access_policy = AccessPolicy.from_boolean_expression(
            "(Department::HR || Department::FIN) && (Security Level::Protected || Security Level::Confidential)"
        )

        assert access_policy.to_attribute_combinations(policy) == [
            [attribute("Department::HR"), attribute("Security Level::Protected")],
            [attribute("Department::HR"), attribute("Security Level::Confidential")],
            [attribute("Department::FIN"), attribute("Security Level::Protected")],
            [attribute("Department::FIN"), attribute("Security Level::Confidential")],
        ]

    def test_or_keeps_duplicates(self, policy):
        """Test concatenation without deduplication."""
        access_policy = AccessPolicy.from_boolean_expression("Department::HR || Department::HR")

        assert access_policy.to_attribute_combinations(policy) == [
            [attribute("Department::HR")],
            [attribute("Department::HR")],
        ]

    def test_and_with_hierarchy(self, policy):
        """Test expansion inside a product."""
        access_policy = AccessPolicy.from_boolean_expression(
            "Department::MKG && Security Level::Confidential"
        )

        assert access_policy.to_attribute_combinations(policy, True) == [
            [attribute("Department::MKG"), attribute("Security Level::Confidential")],
            [attribute("Department::MKG"), attribute("Security Level::Protected")],
        ]

    def test_all(self, policy):
        """Test the neutral element."""
        assert All().to_attribute_combinations(policy) == [[]]
        assert (All() & AccessPolicy.new("Department", "HR")).to_attribute_combinations(policy) == [
            [attribute("Department::HR")]
        ]

    def test_unknown_axis(self, policy):
        """Test a literal on an axis missing from the registry."""
        access_policy = AccessPolicy.from_boolean_expression("Department::HR && Country::France")

        with pytest.raises(InvalidAxis) as exc_info:
            access_policy.to_attribute_combinations(policy)

        assert exc_info.value.message == "invalid axis: Country"

    def test_unknown_rank(self, policy):
        """Test following a hierarchy from an unknown rank."""
        with pytest.raises(AttributeNotFound):
            AccessPolicy.new("Security Level", "Unknown").to_attribute_combinations(policy, True)

    def test_combinations_map_to_values(self, policy):
        """Test that every combination resolves to current values."""
        access_policy = AccessPolicy.from_boolean_expression(
            "Department::HR && Security Level::Confidential"
        )

        values = [
            policy.attributes_values(combination)
            for combination in access_policy.to_attribute_combinations(policy, True)
        ]

        assert values == [[5, 2], [5, 1]]
