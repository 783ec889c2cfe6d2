from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
import time
from importlib import metadata
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from .config import SyncConfig, load_config
from .errors import ElementNotFound, HydrationTimeout
from .events import REQUEST_STARTED
from .fixture import PlaywrightFixture
from .page_ready import HydrationPoller


def _add_browser_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--url", required=True, help="Page to open before waiting")
    p.add_argument("--config", help="Path to JSON config file")
    p.add_argument("--debug", action="store_true", help="Log pending requests and hydration retries")
    p.add_argument("--headed", action="store_true", help="Show the browser window")


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="pagesync network settlement and hydration checks")
    sub = parser.add_subparsers(dest="command", required=True)

    p_ready = sub.add_parser("ready", help="Open a page and wait for it to hydrate")
    _add_browser_args(p_ready)
    p_ready.add_argument("--selector", help="Ready marker selector (default: [data-ready])")
    p_ready.add_argument("--max-attempts", type=int, help="Attempt budget (default: 5)")
    p_ready.add_argument("--base-timeout-ms", type=int, help="Marker timeout of the first attempt")

    p_settle = sub.add_parser("settle", help="Click an element and wait for the network to settle")
    _add_browser_args(p_settle)
    p_settle.add_argument("--click", required=True, help="Selector of the element to click")
    p_settle.add_argument(
        "--long-polls",
        type=int,
        help="Requests allowed to stay open once the click is done",
    )

    p_doctor = sub.add_parser("doctor", help="Run local environment preflight checks")
    p_doctor.add_argument(
        "--json",
        action="store_true",
        help="Emit machine-readable JSON output",
    )

    return parser.parse_args(argv)


def pretty_json(data: Dict[str, Any]) -> str:
    return json.dumps(data, indent=2, sort_keys=True)


def _build_config(args: argparse.Namespace) -> SyncConfig:
    config = SyncConfig.from_env()
    if getattr(args, "config", None):
        config = load_config(Path(args.config), base=config)

    overrides: Dict[str, Any] = {}
    if getattr(args, "debug", False):
        overrides["debug"] = True
    if getattr(args, "selector", None):
        overrides["ready_selector"] = args.selector
    if getattr(args, "max_attempts", None) is not None:
        overrides["max_attempts"] = args.max_attempts
    if getattr(args, "base_timeout_ms", None) is not None:
        overrides["base_timeout_ms"] = args.base_timeout_ms
    if getattr(args, "long_polls", None) is not None:
        overrides["long_poll_allowance"] = args.long_polls
    return config.replace(**overrides) if overrides else config


async def _ready(args: argparse.Namespace, config: SyncConfig) -> Dict[str, Any]:
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=not args.headed)
        try:
            page = await browser.new_page()
            await page.goto(args.url)
            started = time.monotonic()
            try:
                await HydrationPoller(page, config).await_ready()
            except HydrationTimeout as exc:
                return {"ok": False, "url": args.url, "error": str(exc), "attempts": exc.attempts}
            return {
                "ok": True,
                "url": args.url,
                "elapsed_ms": round((time.monotonic() - started) * 1000),
            }
        finally:
            await browser.close()


async def _settle(args: argparse.Namespace, config: SyncConfig) -> Dict[str, Any]:
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=not args.headed)
        try:
            page = await browser.new_page()
            await page.goto(args.url)
            observed: List[str] = []
            page.on(REQUEST_STARTED, lambda request: observed.append(request.url))
            fixture = PlaywrightFixture(page, base_url="", config=config)
            started = time.monotonic()
            try:
                await fixture.click_element(args.click)
            except ElementNotFound as exc:
                return {"ok": False, "url": args.url, "error": str(exc)}
            return {
                "ok": True,
                "url": page.url,
                "elapsed_ms": round((time.monotonic() - started) * 1000),
                "requests": observed,
            }
        finally:
            await browser.close()


async def _doctor(config: SyncConfig) -> Dict[str, Any]:
    checks: Dict[str, Dict[str, Any]] = {}
    try:
        version = metadata.version("playwright")
    except metadata.PackageNotFoundError:
        version = ""
    checks["playwright"] = {"ok": bool(version), "details": version}

    try:
        async with async_playwright() as p:
            executable = p.chromium.executable_path
        checks["chromium"] = {"ok": Path(executable).exists(), "details": executable}
    except PlaywrightError as exc:
        checks["chromium"] = {"ok": False, "details": str(exc)}

    env = {k: v for k, v in os.environ.items() if k.startswith("PAGESYNC_")}
    checks["pagesync_env"] = {
        "ok": True,
        "details": ", ".join(sorted(env)) or "none set",
    }

    overall_ok = all(item["ok"] for item in checks.values())
    return {"ok": overall_ok, "checks": checks, "config": config.as_dict()}


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    config = _build_config(args)
    logging.basicConfig(
        level=logging.INFO if config.debug else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if args.command == "doctor":
        result = asyncio.run(_doctor(config))
        if args.json:
            print(pretty_json(result))
        else:
            for name, item in result["checks"].items():
                print(f"{'ok' if item['ok'] else 'FAIL':4}  {name}: {item['details']}")
        if not result["ok"]:
            raise SystemExit(1)
        return

    if args.command == "ready":
        result = asyncio.run(_ready(args, config))
    else:
        result = asyncio.run(_settle(args, config))
    print(pretty_json(result))
    if not result["ok"]:
        raise SystemExit(1)


if __name__ == "__main__":
    main(sys.argv[1:])
