"""CLI entrypoint for template-fetch."""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from template_fetch.browser_manager import BrowserManager, get_browser_manager
from template_fetch.config import Settings, credentials_present, load_settings
from template_fetch.constants import REQUIRED_CREDENTIAL_VARS
from template_fetch.errors import TemplateFetchError
from template_fetch.logging_config import setup_logging
from template_fetch.orchestrator import acquire_template
from template_fetch.session_store import SessionStore
from template_fetch.web_common import playwright_available


def main(argv: list[str] | None = None) -> None:
    load_dotenv()
    parser = _build_parser()
    args = parser.parse_args(argv)
    setup_logging(level="debug" if getattr(args, "verbose", False) else None)

    if args.command == "fetch":
        fetch_command(args.url, out_dir=Path(args.out), headful=args.headful, slow_mo_ms=args.slow_mo)
        return
    if args.command == "doctor":
        doctor_command()
        return
    if args.command == "session":
        session_command(clear=args.clear)
        return

    parser.print_help()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="template-fetch", description="Automated aippt.cn template downloader.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    subparsers = parser.add_subparsers(dest="command")

    fetch_parser = subparsers.add_parser("fetch", help='Download a template: template-fetch fetch "<url>"')
    fetch_parser.add_argument("url", type=str)
    fetch_parser.add_argument("--out", type=str, default=".", help="Directory receiving the file.")
    fetch_parser.add_argument(
        "--headful",
        action="store_true",
        help="Show the browser window instead of running headless.",
    )
    fetch_parser.add_argument("--slow-mo", type=int, default=None, help="Slow down browser actions (ms).")

    subparsers.add_parser("doctor", help="Check credentials, data dir and browser launch")

    session_parser = subparsers.add_parser("session", help="Show the stored login session")
    session_parser.add_argument("--clear", action="store_true", help="Delete the stored session snapshot.")
    return parser


def fetch_command(url: str, *, out_dir: Path, headful: bool = False, slow_mo_ms: int | None = None) -> dict[str, Any]:
    try:
        payload = asyncio.run(_fetch(url, out_dir, headless=False if headful else None, slow_mo_ms=slow_mo_ms))
    except (TemplateFetchError, OSError) as exc:
        raise SystemExit(f"Template download failed: {exc}") from exc
    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return payload


async def _fetch(url: str, out_dir: Path, *, headless: bool | None, slow_mo_ms: int | None) -> dict[str, Any]:
    manager = get_browser_manager()
    try:
        artifact = await acquire_template(url, headless=headless, slow_mo_ms=slow_mo_ms, manager=manager)
        with artifact:
            out_dir.mkdir(parents=True, exist_ok=True)
            target = out_dir / artifact.filename
            shutil.copyfile(artifact.file_path, target)
        return {"path": str(target), "filename": artifact.filename, "bytes": target.stat().st_size}
    finally:
        await manager.shutdown()


def doctor_command() -> None:
    checks = asyncio.run(_collect_runtime_checks())
    ok = all(item["ok"] for item in checks)
    print(json.dumps({"ok": ok, "checks": checks}, indent=2, ensure_ascii=False))
    if not ok:
        raise SystemExit(1)


async def _collect_runtime_checks(manager: BrowserManager | None = None) -> list[dict[str, Any]]:
    checks: list[dict[str, Any]] = []
    for name, present in credentials_present().items():
        checks.append({"name": f"env_{name.lower()}", "ok": present, "detail": "set" if present else "missing"})

    data_dir = _settings_or_defaults().data_dir
    writable, detail = _data_dir_writable(data_dir)
    checks.append({"name": "data_dir_writable", "ok": writable, "detail": detail})

    module_ok = playwright_available()
    checks.append({"name": "playwright_python", "ok": module_ok, "detail": "importable" if module_ok else "missing"})
    if module_ok:
        launch_ok, detail = await _browser_launch_check(manager or BrowserManager())
        checks.append({"name": "browser_launch", "ok": launch_ok, "detail": detail})
    return checks


async def _browser_launch_check(manager: BrowserManager) -> tuple[bool, str]:
    try:
        await manager.acquire(headless=True)
    except TemplateFetchError as exc:
        return False, str(exc)
    finally:
        await manager.shutdown()
    return True, "ok"


def _data_dir_writable(data_dir: Path) -> tuple[bool, str]:
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=data_dir, prefix=".write-test-"):
            pass
    except OSError as exc:
        return False, str(exc)
    return True, str(data_dir)


def session_command(*, clear: bool = False) -> None:
    store = SessionStore(_settings_or_defaults().state_file)
    if clear:
        removed = store.clear()
        print(json.dumps({"path": str(store.path), "removed": removed}, indent=2, ensure_ascii=False))
        return
    print(json.dumps(store.describe(), indent=2, ensure_ascii=False))


def _settings_or_defaults() -> Settings:
    # Inspecting local state must not require site credentials.
    env = dict(os.environ)
    for name in REQUIRED_CREDENTIAL_VARS:
        env[name] = env.get(name, "").strip() or "-"
    return load_settings(env)


if __name__ == "__main__":
    main()
