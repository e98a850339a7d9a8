"""Data models shared by the trigger engine and the materializer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union


@dataclass(frozen=True)
class NativeDownload:
    download: Any

    @property
    def kind(self) -> str:
        return "download"


@dataclass(frozen=True)
class PopupNavigatedDownload:
    download: Any

    @property
    def kind(self) -> str:
        return "popup"


@dataclass(frozen=True)
class NetworkResponse:
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def kind(self) -> str:
        return "response"

    def header(self, name: str) -> str:
        wanted = name.lower()
        for key, value in self.headers.items():
            if str(key).lower() == wanted:
                return str(value or "")
        return ""


DownloadSignal = Union[NativeDownload, PopupNavigatedDownload, NetworkResponse]
