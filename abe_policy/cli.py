"""
Command-line tool for the ABE policy engine.

    abe-policy parse "Department::MKG && (Country::France || Country::Spain)"
    abe-policy combinations policy.json "Security Level::Top Secret" --follow-hierarchy
    abe-policy migrate legacy_policy.json -o policy.json
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from shared.config import get_settings
from shared.logging import configure_logging, get_logger
from .access_policy import AccessPolicy
from .errors import InvalidBooleanExpression, PolicyError
from .policy import Policy

logger = get_logger("abe_policy.cli")


def _read_expression(expression: str) -> AccessPolicy:
    max_length = get_settings().max_expression_length
    if len(expression) > max_length:
        raise InvalidBooleanExpression(
            f"expression is {len(expression)} characters long, the limit is {max_length}"
        )
    return AccessPolicy.from_boolean_expression(expression)


def _read_policy(path: str) -> Policy:
    return Policy.parse_and_convert(Path(path).read_text(encoding="utf-8"))


def cmd_parse(args) -> int:
    print(_read_expression(args.expression).to_json())
    return 0


def cmd_combinations(args) -> int:
    policy = _read_policy(args.policy)
    access_policy = _read_expression(args.expression)
    combinations = access_policy.to_attribute_combinations(policy, args.follow_hierarchy)
    output = [
        {
            "attributes": [str(attribute) for attribute in combination],
            "values": policy.attributes_values(combination),
            "encryption_hint": policy.attributes_hybridization_hint(combination).value,
        }
        for combination in combinations
    ]
    print(json.dumps(output, indent=2, ensure_ascii=False))
    return 0


def cmd_migrate(args) -> int:
    policy = _read_policy(args.policy)
    if args.output:
        Path(args.output).write_text(policy.to_json(), encoding="utf-8")
        logger.info("Policy written", path=args.output)
    else:
        print(policy.to_json())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="abe-policy", description="ABE policy engine tools")
    parser.add_argument("--log-level", default=None, help="Log level (defaults to settings)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    parse_parser = subparsers.add_parser("parse", help="Parse a boolean expression to JSON")
    parse_parser.add_argument("expression", help="Boolean access policy")
    parse_parser.set_defaults(func=cmd_parse)

    combinations_parser = subparsers.add_parser(
        "combinations", help="Resolve an expression into attribute combinations"
    )
    combinations_parser.add_argument("policy", help="Policy JSON file (current or legacy schema)")
    combinations_parser.add_argument("expression", help="Boolean access policy")
    combinations_parser.add_argument(
        "--follow-hierarchy", action="store_true", help="Include lower ranks of hierarchical axes"
    )
    combinations_parser.set_defaults(func=cmd_combinations)

    migrate_parser = subparsers.add_parser("migrate", help="Rewrite a policy with the current schema")
    migrate_parser.add_argument("policy", help="Policy JSON file (current or legacy schema)")
    migrate_parser.add_argument("-o", "--output", help="Output file (stdout when omitted)")
    migrate_parser.set_defaults(func=cmd_migrate)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main function."""
    args = build_parser().parse_args(argv)
    configure_logging("abe_policy", args.log_level or get_settings().log_level)

    try:
        return args.func(args)
    except PolicyError as e:
        print(f"error: {e.message}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
