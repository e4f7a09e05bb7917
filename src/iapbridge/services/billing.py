from __future__ import annotations

import threading
from typing import Callable

from structlog import get_logger

from iapbridge.purchase.interfaces import BillingEvents
from iapbridge.purchase.types import PurchaseState, StorePurchase

logger = get_logger(__name__)


class SimulatedBazaarSdk:
    """In-process stand-in for the Cafebazaar billing plugin.

    Records every request in ``calls``. With ``auto_complete`` each request
    is answered from a ``threading.Timer`` after ``delay`` seconds, the way
    the real plugin answers from its own thread. Otherwise nothing happens
    until one of the ``complete_*``/``fail_*`` methods fires the event.
    The real plugin binding can replace this later.
    """

    def __init__(self, *, supported: bool = True, auto_complete: bool = False, delay: float = 0.25) -> None:
        self.events = BillingEvents()
        self.calls: list[tuple[str, ...]] = []
        self.supported = supported
        self.auto_complete = auto_complete
        self.delay = delay
        self._lock = threading.Lock()
        self._pending: dict[str, str] = {}
        self._owned: dict[str, StorePurchase] = {}
        self._payloads: dict[str, str] = {}
        self._counter = 0

    # -------- BillingSdk --------
    def init(self, key: str) -> None:
        self.calls.append(("init", key))
        if self.supported:
            self._schedule(self.fire_billing_supported)
        else:
            self._schedule(lambda: self.fire_billing_not_supported("Billing service unavailable on device"))

    def purchase_product(self, sku: str, payload: str) -> None:
        self.calls.append(("purchase", sku, payload))
        with self._lock:
            self._pending[sku] = payload
        self._schedule(lambda: self.complete_purchase(sku))

    def consume_product(self, sku: str) -> None:
        self.calls.append(("consume", sku))
        self._schedule(lambda: self.complete_consume(sku))

    def query_purchases(self) -> None:
        self.calls.append(("query",))
        self._schedule(self.complete_query)

    # -------- Event firing --------
    def fire_billing_supported(self) -> None:
        handler = self.events.billing_supported
        if handler is not None:
            handler()

    def fire_billing_not_supported(self, error: str) -> None:
        handler = self.events.billing_not_supported
        if handler is not None:
            handler(error)

    def complete_purchase(self, sku: str, *, payload: str | None = None, token: str | None = None) -> StorePurchase:
        with self._lock:
            self._counter += 1
            pending = self._pending.pop(sku, "")
            rec = StorePurchase(
                product_id=sku,
                purchase_token=token if token is not None else f"{sku}-token-{self._counter}",
                developer_payload=payload if payload is not None else pending,
                purchase_state=PurchaseState.PURCHASED,
            )
            self._owned[sku] = rec
            self._payloads[rec.purchase_token] = rec.developer_payload
        handler = self.events.purchase_succeeded
        if handler is not None:
            handler(rec)
        return rec

    def fail_purchase(self, error: str) -> None:
        handler = self.events.purchase_failed
        if handler is not None:
            handler(error)

    def complete_consume(self, sku: str) -> None:
        with self._lock:
            rec = self._owned.pop(sku, None)
        if rec is None:
            self.fail_consume(f"Item not owned: {sku}")
            return
        handler = self.events.consume_succeeded
        if handler is not None:
            handler(rec)

    def fail_consume(self, error: str) -> None:
        handler = self.events.consume_failed
        if handler is not None:
            handler(error)

    def complete_query(self, extra: list[StorePurchase] | None = None) -> None:
        with self._lock:
            purchases = list(self._owned.values())
        purchases.extend(extra or [])
        handler = self.events.query_purchases_succeeded
        if handler is not None:
            handler(purchases)

    def fail_query(self, error: str) -> None:
        handler = self.events.query_purchases_failed
        if handler is not None:
            handler(error)

    # -------- Helpers --------
    def payload_for_token(self, token: str) -> str:
        with self._lock:
            return self._payloads.get(token, "")

    def _schedule(self, fn: Callable[[], object]) -> None:
        if not self.auto_complete:
            return
        timer = threading.Timer(self.delay, fn)
        timer.daemon = True
        timer.start()
        logger.debug("simulated_billing_event_scheduled", delay=self.delay)
