"""Turn a resolved download signal into a file inside a private temp directory."""

from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any
from urllib.parse import unquote, urlparse

from template_fetch.constants import (
    DEFAULT_FILENAME,
    DISPOSITION_EXTENDED_RE,
    DISPOSITION_PLAIN_RE,
    TEMP_DIR_PREFIX,
)
from template_fetch.errors import ArtifactWriteError
from template_fetch.models import DownloadSignal, NativeDownload, NetworkResponse, PopupNavigatedDownload

logger = logging.getLogger(__name__)


@dataclass
class Artifact:
    temp_dir: Path
    file_path: Path
    filename: str
    _released: bool = field(default=False, repr=False)

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Remove the temp directory. Safe to call any number of times."""
        self._released = True
        _remove_tree(self.temp_dir)

    def __enter__(self) -> "Artifact":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.release()


def filename_from_disposition(value: str) -> str | None:
    raw = str(value or "")
    if not raw:
        return None
    match = DISPOSITION_EXTENDED_RE.search(raw)
    if match is None:
        match = DISPOSITION_PLAIN_RE.search(raw)
    if match is None:
        return None
    name = _safe_basename(unquote(match.group(1).strip().strip('"')))
    return name or None


def filename_from_url(url: str) -> str | None:
    try:
        path = urlparse(str(url or "")).path
    except ValueError:
        return None
    last = path.rsplit("/", 1)[-1] if path else ""
    name = _safe_basename(unquote(last))
    return name or None


def resolve_filename(headers: dict[str, str] | NetworkResponse, url: str = "") -> str:
    if isinstance(headers, NetworkResponse):
        disposition = headers.header("content-disposition")
        url = url or headers.url
    else:
        disposition = next(
            (str(v or "") for k, v in (headers or {}).items() if str(k).lower() == "content-disposition"),
            "",
        )
    return filename_from_disposition(disposition) or filename_from_url(url) or DEFAULT_FILENAME


async def materialize(signal: DownloadSignal, *, tmp_root: str | Path | None = None) -> Artifact:
    temp_dir = Path(tempfile.mkdtemp(prefix=TEMP_DIR_PREFIX, dir=str(tmp_root) if tmp_root else None))
    try:
        if isinstance(signal, (NativeDownload, PopupNavigatedDownload)):
            filename = _suggested_filename(signal.download)
            file_path = temp_dir / filename
            await signal.download.save_as(str(file_path))
        elif isinstance(signal, NetworkResponse):
            filename = resolve_filename(signal)
            file_path = temp_dir / filename
            await asyncio.to_thread(file_path.write_bytes, signal.body)
        else:
            raise ArtifactWriteError(f"Unsupported download signal: {type(signal).__name__}")
    except ArtifactWriteError:
        _remove_tree(temp_dir)
        raise
    except Exception as exc:
        _remove_tree(temp_dir)
        raise ArtifactWriteError(f"Could not write downloaded file: {exc}") from exc

    logger.info("materialized %s via %s (%d bytes)", file_path.name, signal.kind, _size(file_path))
    return Artifact(temp_dir=temp_dir, file_path=file_path, filename=file_path.name)


def _suggested_filename(download: Any) -> str:
    try:
        suggested = download.suggested_filename
    except Exception:
        suggested = ""
    return _safe_basename(str(suggested or "")) or DEFAULT_FILENAME


def _safe_basename(name: str) -> str:
    # Servers occasionally send "dir/file.pptx" or Windows-style paths.
    clean = PurePosixPath(name.replace("\\", "/")).name.strip()
    if clean in ("", ".", ".."):
        return ""
    return clean


def _size(path: Path) -> int:
    try:
        return path.stat().st_size
    except OSError:
        return -1


def _remove_tree(path: Path) -> None:
    shutil.rmtree(path, ignore_errors=True)
    if path.exists():
        logger.warning("temp directory left behind: %s", path)
