from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from iapbridge.purchase.types import PurchaseProvider


class Operation(str, Enum):
    BILLING_INIT = "billing_init"
    PURCHASE = "purchase"
    CONSUME = "consume"
    QUERY = "query"


@dataclass(frozen=True)
class PurchaseOutcome:
    """Result of one purchase operation as the host saw it on drain."""

    operation: Operation
    provider: PurchaseProvider
    ok: bool
    sku: str = ""
    message: str = ""


class TelemetryService:
    """Append-only JSONL audit of boot and purchase outcomes.

    Each line carries a ``kind`` of ``"boot"`` or ``"outcome"``.
    ``outcomes`` reads the outcome lines back as ``PurchaseOutcome``.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def record(self, outcome: PurchaseOutcome) -> None:
        rec = asdict(outcome)
        rec["operation"] = outcome.operation.value
        rec["provider"] = outcome.provider.name
        self._append("outcome", rec)

    def record_boot(self, ok: bool, *, sandbox: bool = False, error: str = "") -> None:
        self._append("boot", {"ok": ok, "sandbox": sandbox, "error": error})

    def outcomes(self) -> list[PurchaseOutcome]:
        out: list[PurchaseOutcome] = []
        for rec in self._read():
            if rec.get("kind") != "outcome":
                continue
            out.append(
                PurchaseOutcome(
                    operation=Operation(rec["operation"]),
                    provider=PurchaseProvider[rec["provider"]],
                    ok=bool(rec["ok"]),
                    sku=str(rec.get("sku", "")),
                    message=str(rec.get("message", "")),
                )
            )
        return out

    def boots(self) -> list[dict[str, object]]:
        return [rec for rec in self._read() if rec.get("kind") == "boot"]

    def _append(self, kind: str, fields: dict[str, object]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        rec = {"ts": datetime.now(tz=timezone.utc).isoformat(), "kind": kind, **fields}
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(rec, ensure_ascii=False) + "\n")

    def _read(self) -> list[dict[str, object]]:
        if not self.path.exists():
            return []
        return [json.loads(line) for line in self.path.read_text(encoding="utf-8").splitlines() if line.strip()]
