"""
DVLS operator CLI: entry point for all operations.

Usage:
    dvls-operator run                        # Start the operator (kopf)
    dvls-operator run --namespace team-a     # Watch a single namespace
    dvls-operator check VAULT_ID ENTRY_ID    # Fetch an entry, list the keys it maps to
    dvls-operator version                    # Show version
"""

from __future__ import annotations

import argparse
import logging
import sys

from dvls_operator.config import OperatorConfig, get_config, load_config


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="dvls-operator",
        description="Mirror Devolutions Server credential entries into Kubernetes secrets.",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")
    parser.add_argument("--config", type=str, help="YAML config file (env vars still override)")

    subparsers = parser.add_subparsers(dest="command")

    # run
    run_parser = subparsers.add_parser("run", help="Start the operator")
    run_parser.add_argument(
        "--namespace", type=str, help="Only watch this namespace (default: cluster-wide)"
    )
    run_parser.add_argument(
        "--liveness",
        type=str,
        default="http://0.0.0.0:8080/healthz",
        help="Liveness endpoint URL (empty to disable)",
    )

    # check
    check_parser = subparsers.add_parser("check", help="Fetch an entry and show the mapped keys")
    check_parser.add_argument("vault_id", help="DVLS vault id")
    check_parser.add_argument("entry_id", help="DVLS entry id")

    # version
    subparsers.add_parser("version", help="Show version")

    args = parser.parse_args(argv)

    if args.version or args.command == "version":
        from dvls_operator import __version__

        print(f"dvls-operator {__version__}")
        return 0

    try:
        cfg = load_config(args.config) if args.config else get_config()
    except (OSError, ValueError) as e:
        print(f"Error: cannot load config: {e}", file=sys.stderr)
        return 1

    _configure_logging(cfg)

    if args.command == "run":
        return _cmd_run(args, cfg)
    elif args.command == "check":
        return _cmd_check(args, cfg)

    parser.print_help()
    return 0


def _configure_logging(cfg: OperatorConfig) -> None:
    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # httpx logs every request URL at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _check_config(cfg: OperatorConfig) -> bool:
    problems = cfg.validate()
    for problem in problems:
        print(f"Error: {problem}", file=sys.stderr)
    return not problems


def _cmd_run(args: argparse.Namespace, cfg: OperatorConfig) -> int:
    if not _check_config(cfg):
        return 1

    import kopf

    # Registers the handlers with kopf's default registry
    import dvls_operator.handlers  # noqa: F401

    namespace = args.namespace or cfg.namespace
    kopf.run(
        standalone=True,
        clusterwide=not namespace,
        namespaces=[namespace] if namespace else [],
        liveness_endpoint=args.liveness or None,
    )
    return 0


def _cmd_check(args: argparse.Namespace, cfg: OperatorConfig) -> int:
    if not _check_config(cfg):
        return 1

    from dvls_operator.errors import UnsupportedSubtypeError, VaultFetchError
    from dvls_operator.vault.client import DvlsClient
    from dvls_operator.vault.mapping import map_entry

    with DvlsClient.from_config(cfg) as client:
        try:
            entry = client.get_entry(args.vault_id, args.entry_id)
        except VaultFetchError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    print(f"Entry:    {entry.id} ({entry.name})")
    print(f"Subtype:  {entry.sub_type}")
    print(f"Modified: {entry.modified_on.isoformat() if entry.modified_on else '-'}")
    try:
        keys = sorted(map_entry(entry))
    except UnsupportedSubtypeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Keys:     {', '.join(keys)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
