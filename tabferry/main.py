"""
tabferry: carry a job posting from an Indeed/LinkedIn tab into a ChatGPT project composer.

Entry point and command-line handling. The bridge itself is driven by
`FerryWatcher` over the Chrome DevTools Protocol.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

from .config import FerryConfig
from .errors import ConfigInvalid
from .handoff.destination import DestinationSettings
from .handoff.mailbox import Mailbox
from .handoff.polling import SystemClock
from .launcher import BrowserLauncher
from .sites import all_schemes
from .store_persist import JsonFileStore
from .watcher import FerryWatcher

logger = logging.getLogger("tabferry")

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_BROWSER = 2


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    common.add_argument("--store", help="path of the shared store (default: $TABFERRY_STORE_PATH)")

    parser = argparse.ArgumentParser(prog="tabferry", description=__doc__.strip().splitlines()[0])
    sub = parser.add_subparsers(dest="command", required=True)

    watch = sub.add_parser("watch", parents=[common], help="attach to the browser and run the bridge")
    watch.add_argument("--port", type=int, help="CDP port (default: $TABFERRY_CDP_PORT or 9222)")
    watch.add_argument("--mode", choices=["attach", "launch"], help="attach to a running browser or launch one")

    configure = sub.add_parser("configure", parents=[common], help="validate and save the destination project URL")
    configure.add_argument("url")

    status = sub.add_parser("status", parents=[common], help="show the destination and pending handoffs")
    status.add_argument("--json", action="store_true", dest="as_json")

    sub.add_parser("purge", parents=[common], help="delete expired handoff entries")
    return parser


def _config_from_args(args: argparse.Namespace) -> FerryConfig:
    config = FerryConfig.from_env()
    if getattr(args, "store", None):
        config.store_path = args.store
    if getattr(args, "port", None):
        config.cdp_port = int(args.port)
    if getattr(args, "mode", None):
        config.mode = FerryConfig.normalize_mode(args.mode)
    return config


def cmd_watch(config: FerryConfig, store: JsonFileStore) -> int:
    launcher = BrowserLauncher(config)
    result = launcher.ensure_running()
    logger.info("browser %s", result.message)
    if not launcher.cdp_ready():
        print(result.message, file=sys.stderr)
        return EXIT_BROWSER

    destination = DestinationSettings(store).current()
    if not destination.ok:
        logger.info("no destination configured yet; the first click will ask for it")

    watcher = FerryWatcher(config, launcher, store)
    try:
        watcher.run()
    except KeyboardInterrupt:
        logger.info("stopping")
    finally:
        watcher.stop()
        launcher.stop()
    return EXIT_OK


def cmd_configure(store: JsonFileStore, url: str) -> int:
    try:
        saved = DestinationSettings(store).save(url)
    except ConfigInvalid as exc:
        print(f"Invalid URL ({exc.reason}). {exc.suggestion}", file=sys.stderr)
        return EXIT_USAGE
    print(saved)
    return EXIT_OK


def status_snapshot(config: FerryConfig, store: JsonFileStore) -> dict[str, Any]:
    clock = SystemClock()
    mailbox = Mailbox(store, clock, stale_after_ms=config.stale_after_ms)
    now = clock.now_ms()
    check = DestinationSettings(store).current()
    entries = [
        {
            "tab": address.tab_id,
            "key": address.payload_key,
            "chars": len(entry.text),
            "ageMs": entry.age_ms(now),
            "stale": entry.is_stale(now, config.stale_after_ms),
        }
        for address, entry in mailbox.entries(all_schemes())
    ]
    return {
        "store": str(store.path),
        "destination": {"ok": check.ok, "url": check.url, "reason": check.reason},
        "entries": entries,
    }


def cmd_status(config: FerryConfig, store: JsonFileStore, as_json: bool) -> int:
    snap = status_snapshot(config, store)
    if as_json:
        print(json.dumps(snap, indent=2))
        return EXIT_OK
    dest = snap["destination"]
    print(f"store:       {snap['store']}")
    print(f"destination: {dest['url'] if dest['ok'] else '(not configured: ' + dest['reason'] + ')'}")
    if not snap["entries"]:
        print("pending:     none")
    for e in snap["entries"]:
        flag = " stale" if e["stale"] else ""
        print(f"pending:     {e['tab']} {e['chars']} chars, {e['ageMs'] // 1000}s old{flag}")
    return EXIT_OK


def cmd_purge(config: FerryConfig, store: JsonFileStore) -> int:
    removed = Mailbox(store, SystemClock(), stale_after_ms=config.stale_after_ms).purge_stale(all_schemes())
    print(f"removed {removed} entr{'y' if removed == 1 else 'ies'}")
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    _setup_logging(args.verbose)
    config = _config_from_args(args)
    store = JsonFileStore(config.store_path)

    if args.command == "watch":
        return cmd_watch(config, store)
    if args.command == "configure":
        return cmd_configure(store, args.url)
    if args.command == "status":
        return cmd_status(config, store, args.as_json)
    if args.command == "purge":
        return cmd_purge(config, store)
    return EXIT_USAGE


if __name__ == "__main__":
    sys.exit(main())
