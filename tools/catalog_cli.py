#!/usr/bin/env python3
"""
Access Catalog CLI

Inspect an access catalog and the decisions it produces.

Usage:
    # Validate a catalog and report alias collisions
    python -m tools.catalog_cli --catalog catalogs/access_catalog.yaml lint

    # Resolve a caller's memberships and grants
    python -m tools.catalog_cli resolve --membership "Agency Admin" --permission reports.export

    # Check a single permission (exit code 0 = allowed, 1 = denied)
    python -m tools.catalog_cli check clients.list --membership freelancer

    # Explain what grants a permission
    python -m tools.catalog_cli explain clients.write
"""

import sys
import json
import argparse
from typing import List, Optional

from config import configure_logging, load_config
from core.access import (
    CatalogValidationError,
    describe_permission_requirement,
    has_permission,
    normalise_permission_key,
    resolve_authorization_state,
)
from core.config_loader import load_catalog
from core.metrics import set_metrics_enabled


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, sort_keys=False))


def cmd_lint(args, cfg) -> int:
    try:
        index = load_catalog(args.catalog, strict_aliases=False)
    except CatalogValidationError as e:
        print(f"❌ {e}")
        return 1

    print(
        f"Catalog {args.catalog} (version={index.version}): "
        f"{len(index.permissions)} permissions, {len(index.memberships)} memberships"
    )

    if index.alias_collisions:
        print(f"❌ {len(index.alias_collisions)} alias collision(s):")
        for collision in index.alias_collisions:
            print(f"   - {collision.describe()}")
        return 1

    print("✅ No problems found")
    return 0


def cmd_resolve(args, cfg, index) -> int:
    state = resolve_authorization_state(
        index,
        memberships=args.membership,
        permissions=args.permission,
    )
    _print_json(state.to_dict())
    return 0


def cmd_check(args, cfg, index) -> int:
    allow_override = cfg["ACCESS_ADMIN_OVERRIDE"] and not args.no_override
    state = resolve_authorization_state(
        index,
        memberships=args.membership,
        permissions=args.permission,
    )
    allowed = has_permission(index, state, args.permission_key, allow_admin_override=allow_override)

    if allowed:
        granted_by = state.granted_by(normalise_permission_key(args.permission_key))
        source = ", ".join(granted_by) if granted_by else "grant-all override"
        print(f"ALLOWED {args.permission_key} (granted by: {source})")
        return 0

    requirement = describe_permission_requirement(index, args.permission_key)
    print(f"DENIED {args.permission_key}: {requirement.message}")
    return 1


def cmd_explain(args, cfg, index) -> int:
    requirement = describe_permission_requirement(index, args.permission_key)
    _print_json(requirement.to_dict())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Inspect an access catalog and the decisions it produces",
    )
    parser.add_argument(
        "--catalog",
        default=None,
        help="Catalog file (defaults to ACCESS_CATALOG_PATH)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("lint", help="Validate the catalog and report alias collisions")

    for name, help_text in (
        ("resolve", "Resolve memberships and grants into an authorization state"),
        ("check", "Check one permission; exit code 1 when denied"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        if name == "check":
            sub.add_argument("permission_key", help="Permission to check")
            sub.add_argument(
                "--no-override",
                action="store_true",
                help="Do not let grant-all memberships pass the check",
            )
        sub.add_argument("--membership", "-m", action="append", default=[], help="Membership token (repeatable)")
        sub.add_argument("--permission", "-p", action="append", default=[], help="Explicit permission (repeatable)")

    explain = subparsers.add_parser("explain", help="Explain which memberships grant a permission")
    explain.add_argument("permission_key", help="Permission to explain")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        cfg = load_config()
    except RuntimeError as e:
        print(f"❌ {e}")
        return 2

    configure_logging(cfg)
    set_metrics_enabled(cfg["ACCESS_METRICS_ENABLED"])

    if args.catalog is None:
        args.catalog = cfg["ACCESS_CATALOG_PATH"]

    if args.command == "lint":
        return cmd_lint(args, cfg)

    try:
        index = load_catalog(args.catalog, strict_aliases=cfg["ACCESS_STRICT_ALIASES"])
    except CatalogValidationError as e:
        print(f"❌ {e}")
        return 2

    handlers = {
        "resolve": cmd_resolve,
        "check": cmd_check,
        "explain": cmd_explain,
    }
    return handlers[args.command](args, cfg, index)


if __name__ == "__main__":
    sys.exit(main())
