from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from structlog import get_logger

from .callback import CallbackSlot
from .interfaces import BillingSdk, PurchaseVerifier
from .payload import PayloadRegistry
from .serialize import purchased_to_json
from .types import Callback, FailureKind, PurchasedData, PurchaseProvider, StorePurchase

logger = get_logger(__name__)

FAKE_TOKEN = "faketoken"
NOT_IMPLEMENTED_MESSAGE = "Gateway Not Implemented!"
START_REJECTED_MESSAGE = "Purchase Start Rejected!"


@dataclass
class BackendContext:
    """State shared by the coordinator with its backends."""

    slot: CallbackSlot
    registry: PayloadRegistry
    salt: str
    version: int = 0


class PurchaseBackend(Protocol):
    provider: PurchaseProvider
    # True when initialize reports billing support asynchronously through on_ready
    handshake: bool

    @property
    def supported(self) -> bool: ...

    def bind(self, ctx: BackendContext) -> None: ...

    def initialize(self, key: str, on_ready: Callback) -> None: ...

    def purchase(self, sku: str, callback: Callback | None) -> None: ...

    def consume(self, sku: str) -> None: ...

    def query_purchases(self) -> None: ...

    def shutdown(self) -> None: ...


class _BackendBase:
    provider: PurchaseProvider = PurchaseProvider.NULL
    handshake = False

    def __init__(self) -> None:
        self._ctx: BackendContext | None = None

    @property
    def supported(self) -> bool:
        return True

    @property
    def ctx(self) -> BackendContext:
        if self._ctx is None:
            raise RuntimeError(f"{type(self).__name__} is not bound to a purchase system")
        return self._ctx

    def bind(self, ctx: BackendContext) -> None:
        self._ctx = ctx

    def initialize(self, key: str, on_ready: Callback) -> None:
        pass

    def shutdown(self) -> None:
        pass


class NullBackend(_BackendBase):
    """No real billing available: purchases succeed with a placeholder token."""

    provider = PurchaseProvider.NULL

    def purchase(self, sku: str, callback: Callback | None) -> None:
        logger.info("placeholder_purchase", sku=sku)
        if callback is not None:
            callback(True, FAKE_TOKEN)

    def consume(self, sku: str) -> None:
        self.ctx.slot.complete(True, sku)

    def query_purchases(self) -> None:
        self.ctx.slot.complete(True, purchased_to_json(PurchasedData()))


class GatewayBackend(_BackendBase):
    """Placeholder for the payment gateway; every operation fails."""

    provider = PurchaseProvider.GATEWAY

    def purchase(self, sku: str, callback: Callback | None) -> None:
        logger.warning("gateway_purchase_unavailable", sku=sku, reason=FailureKind.NOT_IMPLEMENTED.value)
        if callback is not None:
            callback(False, FAKE_TOKEN)

    def consume(self, sku: str) -> None:
        logger.warning("gateway_consume_unavailable", sku=sku, reason=FailureKind.NOT_IMPLEMENTED.value)
        self.ctx.slot.complete(False, NOT_IMPLEMENTED_MESSAGE)

    def query_purchases(self) -> None:
        logger.warning("gateway_query_unavailable", reason=FailureKind.NOT_IMPLEMENTED.value)
        self.ctx.slot.complete(False, NOT_IMPLEMENTED_MESSAGE)


class BazaarBackend(_BackendBase):
    """Cafebazaar store plugin wired into the callback slot.

    SDK events only ever call ``slot.complete``; the caller's callback runs
    on the next drain tick.
    """

    provider = PurchaseProvider.BAZAAR
    handshake = True

    def __init__(self, sdk: BillingSdk, verifier: PurchaseVerifier) -> None:
        super().__init__()
        self.sdk = sdk
        self.verifier = verifier
        self._supported = False

    @property
    def supported(self) -> bool:
        return self._supported

    def initialize(self, key: str, on_ready: Callback) -> None:
        # optimistic until the plugin reports otherwise
        self._supported = True

        def on_supported() -> None:
            self._supported = True
            on_ready(True, "")

        def on_not_supported(error: str) -> None:
            self._supported = False
            logger.warning("billing_not_supported", error=error, reason=FailureKind.UNSUPPORTED_PROVIDER.value)
            on_ready(False, error)

        events = self.sdk.events
        events.billing_supported = on_supported
        events.billing_not_supported = on_not_supported
        events.purchase_succeeded = self._on_purchase_succeeded
        events.purchase_failed = self._on_purchase_failed
        events.consume_succeeded = self._on_consume_succeeded
        events.consume_failed = self._on_consume_failed
        events.query_purchases_succeeded = self._on_query_succeeded
        events.query_purchases_failed = self._on_query_failed
        self.sdk.init(key)

    def shutdown(self) -> None:
        self.sdk.events.clear()
        self._supported = False

    def purchase(self, sku: str, callback: Callback | None) -> None:
        payload = self.ctx.registry.generate(self.ctx.salt)
        logger.info("purchase_requested", sku=sku, payload=payload)

        # the store flow opens only once the game server has accepted the start
        def on_started(accepted: bool) -> None:
            if not accepted:
                logger.warning("purchase_start_rejected", sku=sku, reason=FailureKind.START_REJECTED.value)
                self.ctx.slot.complete(False, START_REJECTED_MESSAGE)
                return
            logger.info("purchase_started", sku=sku, payload=payload)
            self.sdk.purchase_product(sku, payload)

        self.verifier.start_purchase(self.provider, on_started)

    def consume(self, sku: str) -> None:
        logger.info("consume_started", sku=sku)
        self.sdk.consume_product(sku)

    def query_purchases(self) -> None:
        logger.info("query_purchases_started")
        self.sdk.query_purchases()

    # -------- SDK events --------
    def _on_purchase_succeeded(self, res: StorePurchase) -> None:
        ctx = self.ctx
        logger.info("verifying_purchase", product_id=res.product_id, payload=res.developer_payload)
        if not ctx.registry.is_valid(res.developer_payload):
            logger.warning(
                "purchase_payload_rejected",
                product_id=res.product_id,
                payload=res.developer_payload,
                reason=FailureKind.INVALID_PAYLOAD.value,
            )
            ctx.slot.complete(False, res.purchase_token)
            return

        def on_verified(success: bool, payload: str) -> None:
            ok = success and payload == res.developer_payload
            if ok:
                logger.info("purchase_verified", product_id=res.product_id)
            else:
                logger.warning(
                    "purchase_verification_failed",
                    product_id=res.product_id,
                    verifier_success=success,
                    payload_match=payload == res.developer_payload,
                    reason=FailureKind.REMOTE_VERIFICATION_FAILED.value,
                )
            ctx.slot.complete(ok, res.purchase_token)

        self.verifier.verify_purchase(self.provider, ctx.version, res.product_id, res.purchase_token, on_verified)

    def _on_purchase_failed(self, error: str) -> None:
        logger.error("purchase_failed", error=error, reason=FailureKind.SDK_REPORTED_FAILURE.value)
        self.ctx.slot.complete(False, error)

    def _on_consume_succeeded(self, res: StorePurchase) -> None:
        removed = self.ctx.registry.remove(res.developer_payload)
        if removed:
            logger.info("consume_succeeded", product_id=res.product_id)
        else:
            logger.warning(
                "consume_payload_rejected",
                product_id=res.product_id,
                payload=res.developer_payload,
                reason=FailureKind.INVALID_PAYLOAD.value,
            )
        self.ctx.slot.complete(removed, res.purchase_token)

    def _on_consume_failed(self, error: str) -> None:
        logger.error("consume_failed", error=error, reason=FailureKind.SDK_REPORTED_FAILURE.value)
        self.ctx.slot.complete(False, error)

    def _on_query_succeeded(self, purchases: list[StorePurchase]) -> None:
        data = PurchasedData.from_store_purchases(purchases)
        logger.info("query_purchases_succeeded", reported=len(purchases), purchased=len(data.list))
        self.ctx.slot.complete(True, purchased_to_json(data))

    def _on_query_failed(self, error: str) -> None:
        logger.error("query_purchases_failed", error=error, reason=FailureKind.SDK_REPORTED_FAILURE.value)
        self.ctx.slot.complete(False, error)
