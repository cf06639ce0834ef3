"""Recoverable generation findings reported alongside adapter output."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

UNMAPPED_TYPE = "unmapped-type"
CONFLICTING_THREADING = "conflicting-threading"


@dataclass(frozen=True)
class Diagnostic:
    """A problem that did not stop generation but should not be swallowed."""

    code: str
    member: str
    message: str
    platform: str

    def format(self) -> str:
        return f"{self.code} [{self.platform}] {self.member}: {self.message}"

    def to_dict(self) -> Dict[str, str]:
        return {
            "code": self.code,
            "member": self.member,
            "message": self.message,
            "platform": self.platform,
        }


class DiagnosticLog:
    """Collects diagnostics for a single (view-model, platform) render."""

    def __init__(self) -> None:
        self._items: List[Diagnostic] = []
        self._seen: set[Diagnostic] = set()

    def record(self, code: str, member: str, message: str, *, platform: str) -> None:
        diagnostic = Diagnostic(code=code, member=member, message=message, platform=platform)
        # The same member can be translated several times during one render.
        if diagnostic in self._seen:
            return
        self._seen.add(diagnostic)
        self._items.append(diagnostic)

    @property
    def items(self) -> List[Diagnostic]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)


__all__ = ["CONFLICTING_THREADING", "Diagnostic", "DiagnosticLog", "UNMAPPED_TYPE"]
