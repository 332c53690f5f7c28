"""CLI entry point for the scanner backend."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from dotenv import find_dotenv, load_dotenv

from .config import load_config, setup_logging
from .db import ScanLedger
from .payload import parse
from .service import ScanService


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="nxscanner",
        description="Validate scanned ticket payloads and track repeat use",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to a TOML config file",
    )

    sub = parser.add_subparsers(dest="command")

    # parse
    parse_parser = sub.add_parser("parse", help="Parse and validate a payload")
    parse_parser.add_argument("text", help="Decoded QR text")
    parse_parser.add_argument("--json", action="store_true", help="Output JSON")

    # scan
    scan_parser = sub.add_parser("scan", help="Parse a payload and record the scan")
    scan_parser.add_argument("text", help="Decoded QR text")
    scan_parser.add_argument("--json", action="store_true", help="Output JSON")

    # show
    show_parser = sub.add_parser("show", help="Show the ledger entry for a key")
    show_parser.add_argument("key", help="Ticket hash or raw text")

    # list
    list_parser = sub.add_parser("list", help="List today's scans")
    list_parser.add_argument("--json", action="store_true", help="Output JSON")

    # clear / purge
    sub.add_parser("clear", help="Delete all recorded scans")
    sub.add_parser("purge", help="Delete expired scans now")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    load_dotenv(find_dotenv(usecwd=True))
    config = load_config(args.config)
    setup_logging(config.logging.level)

    if args.command == "parse":
        _cmd_parse(args)
        return

    ledger = ScanLedger(
        config.database.path,
        recent_uses=config.ledger.recent_uses,
        list_limit=config.ledger.list_limit,
    )
    service = ScanService(ledger)
    try:
        match args.command:
            case "scan":
                result = asyncio.run(_cmd_scan(service, args))
            case "show":
                result = asyncio.run(service.get_scan(args.key))
                _print_json(result)
            case "list":
                result = asyncio.run(_cmd_list(service, args))
            case "clear":
                result = asyncio.run(service.clear_all_scans())
                if result["ok"]:
                    print(f"Deleted {result['deletedCount']} scans")
            case "purge":
                result = asyncio.run(service.purge_expired())
                if result["ok"]:
                    print(f"Evicted {result['deletedCount']} expired scans")
    finally:
        ledger.close()

    if not result["ok"]:
        print(f"Store error: {result['error']}", file=sys.stderr)
        sys.exit(2)


def _print_json(data) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


def _print_parse(result) -> None:
    status = "VALID" if result.is_valid else "INVALID"
    print(f"{status}  kind={result.kind}")
    fields = result.fields_dict() or {}
    for name, value in fields.items():
        if value is not None and value != []:
            print(f"  {name:<10} {value}")
    for err in result.errors:
        print(f"  ! {err}")


def _cmd_parse(args) -> None:
    result = parse(args.text)
    if args.json:
        _print_json(result.to_dict())
    else:
        _print_parse(result)


async def _cmd_scan(service: ScanService, args) -> dict:
    result = parse(args.text)
    outcome = await service.submit_scan(args.text, result.fields_dict())

    if args.json:
        _print_json({"parse": result.to_dict(), "scan": outcome})
        return outcome

    _print_parse(result)
    if outcome["ok"]:
        if outcome["wasDuplicate"]:
            uses = outcome["recentUses"]
            previous = uses[1] if len(uses) > 1 else outcome["firstSeen"]
            print(f"Duplicate scan: previously used at {previous} (count: {outcome['count']})")
            for at in outcome["recentUses"]:
                print(f"  - {at}")
        else:
            print("First scan today")
    return outcome


async def _cmd_list(service: ScanService, args) -> dict:
    result = await service.list_today_scans()
    if not result["ok"]:
        return result
    if args.json:
        _print_json(result)
        return result

    scans = result["scans"]
    if not scans:
        print("No scans yet today.")
        return result
    print(f"Today's scans: {len(scans)}")
    for s in scans:
        used = f"  used {s['count']}x" if s["count"] > 1 else ""
        print(f"  {s['key']}{used}")
        print(f"    first: {s['firstSeen']}  last: {s['lastSeen']}")
    return result
