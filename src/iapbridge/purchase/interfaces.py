from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Callable, Optional, Protocol

from .types import PurchaseProvider, StorePurchase

ErrorHandler = Callable[[str], None]
PurchaseHandler = Callable[[StorePurchase], None]


@dataclass
class BillingEvents:
    """Event handlers a billing SDK fires, possibly from another thread."""

    billing_supported: Optional[Callable[[], None]] = None
    billing_not_supported: Optional[ErrorHandler] = None
    purchase_succeeded: Optional[PurchaseHandler] = None
    purchase_failed: Optional[ErrorHandler] = None
    consume_succeeded: Optional[PurchaseHandler] = None
    consume_failed: Optional[ErrorHandler] = None
    query_purchases_succeeded: Optional[Callable[[list[StorePurchase]], None]] = None
    query_purchases_failed: Optional[ErrorHandler] = None

    def clear(self) -> None:
        for f in fields(self):
            setattr(self, f.name, None)


class BillingSdk(Protocol):
    events: BillingEvents

    def init(self, key: str) -> None: ...

    def purchase_product(self, sku: str, payload: str) -> None: ...

    def consume_product(self, sku: str) -> None: ...

    def query_purchases(self) -> None: ...


VerifyCallback = Callable[[bool, str], None]
StartCallback = Callable[[bool], None]


class PurchaseVerifier(Protocol):
    """Game-server side of a store purchase.

    ``start_purchase`` announces a purchase before the store flow opens and
    reports whether the server accepted it. ``verify_purchase`` acknowledges
    a completed purchase; its callback gets (success, echoed payload).
    """

    def start_purchase(self, provider: PurchaseProvider, callback: StartCallback) -> None: ...

    def verify_purchase(
        self,
        provider: PurchaseProvider,
        version: int,
        product_id: str,
        token: str,
        callback: VerifyCallback,
    ) -> None: ...
