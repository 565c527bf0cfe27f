#!/usr/bin/env python3
"""
Command-line front end for Voucher Sentinel.

Usage:
  python run_bot.py login
  python run_bot.py check CODE [CODE ...]
  python run_bot.py scan [--url URL]
  python run_bot.py wishlist
  python run_bot.py add URL
  python run_bot.py protect CODE [CODE ...] [--watcher ID] [--cycles N]
  python run_bot.py generate {500,1000,2000} COUNT
  python run_bot.py users {list,add,remove} [USER_ID]

Results are printed as JSON on stdout; structured logs go through structlog.
"""

import argparse
import asyncio
import dataclasses
import json
import logging
import sys

from dotenv import load_dotenv

load_dotenv()

from automation.cart import add_item
from automation.codes import PREFIXES, generate_codes
from automation.protection import ProtectionRegistry, ProtectionScheduler
from automation.scans import ScanError, scan_catalog, scan_wishlist
from automation.session import BrowserSession, SessionLaunchError
from automation.users import AuthorizedUserStore
from automation.vouchers import VoucherResult, check_coupons
from shared.config import AppConfig, get_config
from shared.logging import configure_logging, get_logger
from shared.telegram import format_voucher_report, send_telegram_message

logger = get_logger(__name__)


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Voucher checking and stock scanning")
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Run the browser headless (overrides HEADLESS).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("login", help="Open a visible browser to sign in; cookies persist in the profile")

    check = sub.add_parser("check", help="Classify voucher codes")
    check.add_argument("codes", nargs="+")

    scan = sub.add_parser("scan", help="Scan a catalog page for in-stock products")
    scan.add_argument("--url", default=None, help="Listing URL (default: the fallback collection)")

    sub.add_parser("wishlist", help="Scan the signed-in wishlist for in-stock products")

    add = sub.add_parser("add", help="Add one product to the cart")
    add.add_argument("url")

    protect = sub.add_parser("protect", help="Re-check codes on an interval")
    protect.add_argument("codes", nargs="+")
    protect.add_argument("--watcher", default="cli")
    protect.add_argument("--cycles", type=int, default=None, help="Stop after N cycles")

    generate = sub.add_parser("generate", help="Generate random codes")
    generate.add_argument("kind", choices=list(PREFIXES))
    generate.add_argument("count", type=int)

    users = sub.add_parser("users", help="Manage authorized users")
    users.add_argument("action", choices=["list", "add", "remove"])
    users.add_argument("user_id", nargs="?")

    return parser


def _telegram_notifier(config: AppConfig):
    if not config.telegram_bot_token or not config.telegram_chat_id:
        return None

    def notify(watcher: str, results: list[VoucherResult]) -> None:
        send_telegram_message(
            config.telegram_bot_token,
            config.telegram_chat_id,
            format_voucher_report(results),
        )

    return notify


async def run_command(args: argparse.Namespace, config: AppConfig) -> int:
    session = BrowserSession(config)
    try:
        if args.command == "login":
            await session.interactive_login()
            _print_json({"status": "login window closed", "profile_dir": config.profile_dir})

        elif args.command == "check":
            results = await check_coupons(session, args.codes)
            _print_json([r.to_dict() for r in results])

        elif args.command in ("scan", "wishlist"):
            def on_result(info):
                print(json.dumps(info.to_dict(), ensure_ascii=False), flush=True)

            try:
                if args.command == "scan":
                    found = await scan_catalog(session, args.url, on_result)
                else:
                    found = await scan_wishlist(session, on_result)
            except ScanError as e:
                _print_json({"error": str(e), "error_type": type(e).__name__})
                return 1
            _print_json({"available": len(found)})

        elif args.command == "add":
            result = await add_item(session, args.url)
            _print_json(
                {
                    "success": result.success,
                    "count": result.count,
                    "error": result.error,
                    "screenshot_path": result.screenshot_path,
                }
            )
            if not result.success:
                return 1

        elif args.command == "protect":
            registry = ProtectionRegistry()
            total = registry.add(args.watcher, args.codes)
            logger.info("protection.registered", watcher=args.watcher, total=total)
            notify = _telegram_notifier(config)

            def print_results(watcher: str, results: list[VoucherResult]) -> None:
                _print_json({"watcher": watcher, "results": [r.to_dict() for r in results]})
                if notify is not None:
                    notify(watcher, results)

            scheduler = ProtectionScheduler(
                session,
                registry,
                interval_seconds=config.protection_interval_seconds,
                notify=print_results,
            )
            await scheduler.run(max_cycles=args.cycles)
    except SessionLaunchError as e:
        logger.error("cli.session_launch_failed", error=str(e))
        _print_json({"error": str(e), "error_type": type(e).__name__})
        return 2
    finally:
        await session.teardown_session()
    return 0


def run_users(args: argparse.Namespace, config: AppConfig) -> int:
    store = AuthorizedUserStore(config.users_db_path, admin_id=config.admin_id)
    if args.action == "list":
        _print_json({"authorized_users": store.list_users(), "admin_id": config.admin_id})
        return 0
    if not args.user_id:
        _print_json({"error": f"users {args.action} requires USER_ID"})
        return 1
    if args.action == "add":
        try:
            changed = store.add_user(args.user_id)
        except ValueError:
            _print_json({"error": f"Invalid user id: {args.user_id}"})
            return 1
    else:
        changed = store.remove_user(args.user_id)
    _print_json({"action": args.action, "user_id": args.user_id, "changed": changed})
    return 0


def main() -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args()
    config = get_config()
    if args.headless:
        config = dataclasses.replace(config, headless=True)

    configure_logging(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        log_file=config.log_file,
        log_stdout=config.log_stdout,
    )

    if args.command == "generate":
        try:
            _print_json(generate_codes(args.kind, args.count))
        except ValueError as e:
            _print_json({"error": str(e)})
            sys.exit(1)
        return

    if args.command == "users":
        sys.exit(run_users(args, config))

    try:
        exit_code = asyncio.run(run_command(args, config))
    except KeyboardInterrupt:
        exit_code = 130
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
