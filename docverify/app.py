import argparse
import json
import sys
from pathlib import Path

from . import __version__
from .config import Settings
from .database import get_session, get_session_factory, init_database
from .env import load_env
from .errors import ConfigError, RuleSetError, VerificationError
from .logger import get_logger
from .pipeline import VerificationPipeline
from .repositories import VerificationLedger
from .rules import load_registry
from .schema import validate_claim
from .seed import load_seed_file, seed_records


def _read_json(path_arg: str):
    input_path = Path(path_arg)
    if not input_path.exists():
        raise SystemExit(f"Input file not found: {input_path}")
    with input_path.open("r", encoding="utf-8") as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise SystemExit(f"Invalid JSON in {input_path}: {e}")


def _settings(args: argparse.Namespace) -> Settings:
    try:
        settings = Settings.from_env()
    except ConfigError as e:
        raise SystemExit(f"Configuration error: {e}")
    if getattr(args, "db", None):
        settings = Settings(
            database_url=args.db,
            rules_file=settings.rules_file,
            max_workers=settings.max_workers,
            scoring=settings.scoring,
            matching=settings.matching,
        )
    return settings


def _registry(settings: Settings):
    try:
        return load_registry(settings.rules_file)
    except RuleSetError as e:
        raise SystemExit(f"Rule set error: {e}")


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


def cmd_init_db(args: argparse.Namespace) -> None:
    settings = _settings(args)
    init_database(settings.database_url)
    print(f"Database ready: {settings.database_url}")


def cmd_seed(args: argparse.Namespace) -> None:
    settings = _settings(args)
    seed_path = Path(args.file)
    if not seed_path.exists():
        raise SystemExit(f"Seed file not found: {seed_path}")
    try:
        items = load_seed_file(seed_path)
    except (ValueError, json.JSONDecodeError) as e:
        raise SystemExit(str(e))

    init_database(settings.database_url)
    session = get_session(settings.database_url)
    try:
        stats = seed_records(session, items)
    except VerificationError as e:
        raise SystemExit(f"Seed failed: {e}")
    finally:
        session.close()
    print(f"Done. created={stats['created']} updated={stats['updated']} skipped={stats['skipped']}")


def cmd_validate(args: argparse.Namespace) -> None:
    settings = _settings(args)
    claim = _read_json(args.input)
    errors = validate_claim(claim, _registry(settings))
    if errors:
        print("Invalid:")
        for e in errors:
            print(f" - {e}")
        raise SystemExit(2)
    print("Valid")


def cmd_verify(args: argparse.Namespace) -> None:
    settings = _settings(args)
    data = _read_json(args.input)
    init_database(settings.database_url)
    pipeline = VerificationPipeline(
        session_factory=get_session_factory(settings.database_url),
        registry=_registry(settings),
        scoring=settings.scoring,
        matching=settings.matching,
        max_workers=settings.max_workers,
    )

    if isinstance(data, list):
        results = pipeline.verify_many(data, max_workers=args.workers)
        _print_json(results)
        failed = sum(1 for r in results if "error" in r)
        get_logger().log_metrics_summary()
        if failed:
            raise SystemExit(1)
        return

    result = pipeline.handle(data)
    _print_json(result)
    if "error" in result:
        raise SystemExit(2 if result["error"] in ("invalid_claim", "unknown_document_type") else 1)


def cmd_ledger(args: argparse.Namespace) -> None:
    settings = _settings(args)
    if not args.request_id and not (args.document_type and args.status):
        raise SystemExit("Pass --request-id, or both --document-type and --status")

    init_database(settings.database_url)
    session = get_session(settings.database_url)
    try:
        ledger = VerificationLedger(session)
        if args.request_id:
            rows = ledger.find_by_request_id(args.request_id)
        else:
            rows = ledger.find_by_status(args.document_type.upper(), args.status.upper(), limit=args.limit)
    except VerificationError as e:
        raise SystemExit(f"Ledger query failed: {e}")
    finally:
        session.close()

    if not rows:
        print("No verifications found.")
        return
    _print_json([row.to_dict() for row in rows])


def cmd_rules(args: argparse.Namespace) -> None:
    settings = _settings(args)
    registry = _registry(settings)
    print(f"Loaded {len(registry)} rule sets:\n")
    for rule_set in sorted(registry, key=lambda r: r.document_type):
        checks = ", ".join(c.name for c in rule_set.checks) or "-"
        fields = ", ".join(f"{f.claim_field}:{f.weight:g}" for f in rule_set.fuzzy_fields) or "-"
        print(f"{rule_set.document_type}")
        print(f"  Identifier: {rule_set.identifier_field or '-'}")
        print(f"  Fuzzy fields: {fields} (threshold {rule_set.fuzzy_threshold:g})")
        print(f"  Checks: {checks}")
        print()


def main(argv=None):
    # Load .env if present (DOCVERIFY_DATABASE_URL, weights, thresholds, ...)
    load_env()
    parser = argparse.ArgumentParser(prog="docverify", description="Document claim verification CLI")
    parser.add_argument("--version", action="store_true", help="Show version")

    db_help = "Database URL or SQLite path (default: DOCVERIFY_DATABASE_URL or data/docverify.db)"
    subparsers = parser.add_subparsers(dest="command")

    ini = subparsers.add_parser("init-db", help="Create the reference and ledger tables")
    ini.add_argument("--db", help=db_help)
    ini.set_defaults(func=cmd_init_db)

    sed = subparsers.add_parser("seed", help="Bulk-load authoritative records from a JSON array")
    sed.add_argument("--file", required=True, help="Path to seed JSON file")
    sed.add_argument("--db", help=db_help)
    sed.set_defaults(func=cmd_seed)

    val = subparsers.add_parser("validate", help="Validate a claim JSON without running the pipeline")
    val.add_argument("--input", required=True, help="Path to claim JSON input")
    val.set_defaults(func=cmd_validate)

    ver = subparsers.add_parser("verify", help="Verify a claim (or a JSON array of claims) and print the result")
    ver.add_argument("--input", required=True, help="Path to claim JSON input")
    ver.add_argument("--workers", type=int, help="Worker threads for a batch (default: DOCVERIFY_MAX_WORKERS)")
    ver.add_argument("--db", help=db_help)
    ver.set_defaults(func=cmd_verify)

    led = subparsers.add_parser("ledger", help="Query recorded verifications")
    led.add_argument("--request-id", help="All verifications for a request id")
    led.add_argument("--document-type", help="Document type (with --status)")
    led.add_argument("--status", help="VERIFIED, MANUAL_REVIEW or REJECTED (with --document-type)")
    led.add_argument("--limit", type=int, help="Maximum rows for a status query")
    led.add_argument("--db", help=db_help)
    led.set_defaults(func=cmd_ledger)

    rls = subparsers.add_parser("rules", help="List the loaded document types and their rules")
    rls.set_defaults(func=cmd_rules)

    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    if hasattr(args, "func"):
        args.func(args)
        return

    parser.print_help(sys.stdout)


if __name__ == "__main__":
    main()
