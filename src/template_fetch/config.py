"""Runtime settings resolved from the process environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping

from template_fetch.constants import REQUIRED_CREDENTIAL_VARS, STATE_FILE_NAME
from template_fetch.errors import ConfigurationError


@dataclass(frozen=True)
class Settings:
    username: str
    password: str
    headless: bool = True
    slow_mo_ms: int = 0
    data_dir: Path = Path("data")
    state_file: Path = Path("data") / STATE_FILE_NAME
    navigation_timeout_ms: int = 20000
    initial_idle_timeout_ms: int = 8000
    dom_ready_timeout_ms: int = 10000
    network_idle_timeout_ms: int = 6000
    document_complete_timeout_ms: int = 3000
    listener_timeout_ms: int = 60000
    click_timeout_ms: int = 15000
    visible_timeout_ms: int = 15000
    login_click_timeout_ms: int = 10000
    fill_timeout_ms: int = 15000
    post_click_wait_ms: int = 250
    download_attempts: int = 3

    def with_overrides(self, *, headless: bool | None = None, slow_mo_ms: int | None = None) -> "Settings":
        out = self
        if headless is not None:
            out = replace(out, headless=bool(headless))
        if slow_mo_ms is not None:
            out = replace(out, slow_mo_ms=max(0, int(slow_mo_ms)))
        return out


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    source = os.environ if env is None else env
    missing = [name for name in REQUIRED_CREDENTIAL_VARS if not str(source.get(name, "")).strip()]
    if missing:
        raise ConfigurationError(f"Missing {'/'.join(missing)}")

    data_dir = Path(str(source.get("DATA_DIR", "") or "data"))
    state_raw = str(source.get("TEMPLATE_FETCH_STATE_FILE", "") or "").strip()
    state_file = Path(state_raw) if state_raw else data_dir / STATE_FILE_NAME
    headless_raw = str(source.get("PLAYWRIGHT_HEADLESS", "") or "").strip().lower()

    return Settings(
        username=str(source["AIPPT_USERNAME"]).strip(),
        password=str(source["AIPPT_PASSWORD"]),
        headless=headless_raw != "false" if headless_raw else True,
        slow_mo_ms=_env_int(source, "PLAYWRIGHT_SLOW_MO_MS", 0),
        data_dir=data_dir,
        state_file=state_file,
        navigation_timeout_ms=_env_int(source, "TEMPLATE_FETCH_NAVIGATION_TIMEOUT_MS", 20000),
        listener_timeout_ms=_env_int(source, "TEMPLATE_FETCH_LISTENER_TIMEOUT_MS", 60000),
        click_timeout_ms=_env_int(source, "TEMPLATE_FETCH_CLICK_TIMEOUT_MS", 15000),
        download_attempts=max(1, _env_int(source, "TEMPLATE_FETCH_DOWNLOAD_ATTEMPTS", 3)),
    )


def credentials_present(env: Mapping[str, str] | None = None) -> dict[str, bool]:
    source = os.environ if env is None else env
    return {name: bool(str(source.get(name, "")).strip()) for name in REQUIRED_CREDENTIAL_VARS}


def _env_int(source: Mapping[str, str], name: str, default: int) -> int:
    raw = str(source.get(name, "") or "").strip()
    if not raw:
        return default
    try:
        return max(0, int(float(raw)))
    except ValueError:
        return default
