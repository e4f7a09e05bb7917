from __future__ import annotations

import webbrowser
from typing import Callable, Iterable

from structlog import get_logger

from .backends import BackendContext, BazaarBackend, GatewayBackend, NullBackend, PurchaseBackend
from .callback import CallbackSlot
from .interfaces import BillingSdk, PurchaseVerifier
from .payload import PayloadRegistry, PayloadStorage
from .types import Callback, FailureKind, PurchaseProvider

logger = get_logger(__name__)

OpenUrl = Callable[[str], object]


def not_supported_message(provider: PurchaseProvider) -> str:
    return f"{provider.label} Not Supported!"


class PurchaseSystem:
    """Purchase/consume/query coordinator driven by a periodic ``drain``.

    Results of asynchronous billing operations are delivered only from
    ``drain``. Three paths call back synchronously instead, since no
    asynchronous operation is started: an unsupported provider, the gateway
    stub and the placeholder NULL provider.

    Only one operation is tracked at a time. Starting another operation
    before the previous result is drained hands the slot to the new caller.
    """

    def __init__(
        self,
        registry: PayloadRegistry,
        salt: str,
        backends: Iterable[PurchaseBackend] = (),
        *,
        sandbox: bool = False,
        open_url: OpenUrl = webbrowser.open,
    ) -> None:
        self._slot = CallbackSlot()
        self._init_slot = CallbackSlot()
        self._ctx = BackendContext(slot=self._slot, registry=registry, salt=salt)
        self._sandbox = sandbox
        self._open_url = open_url
        self._store_url = ""
        self._initialized = False
        self._provider = PurchaseProvider.NULL
        self._handshake_pending = False

        self._backends: dict[PurchaseProvider, PurchaseBackend] = {}
        self.register(NullBackend())
        for backend in backends:
            self.register(backend)

    @staticmethod
    def create(
        storage: PayloadStorage,
        salt: str,
        *,
        sdk: BillingSdk | None = None,
        verifier: PurchaseVerifier | None = None,
        sandbox: bool = False,
        open_url: OpenUrl = webbrowser.open,
    ) -> "PurchaseSystem":
        backends: list[PurchaseBackend] = [GatewayBackend()]
        if sdk is not None and verifier is not None:
            backends.append(BazaarBackend(sdk, verifier))
        return PurchaseSystem(
            PayloadRegistry(storage),
            salt,
            backends,
            sandbox=sandbox,
            open_url=open_url,
        )

    def register(self, backend: PurchaseBackend) -> None:
        backend.bind(self._ctx)
        self._backends[backend.provider] = backend

    # -------- State --------
    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def last_provider(self) -> PurchaseProvider:
        return self._provider

    @property
    def version(self) -> int:
        return self._ctx.version

    @property
    def store_url(self) -> str:
        return self._store_url

    @property
    def registry(self) -> PayloadRegistry:
        return self._ctx.registry

    @property
    def sandbox(self) -> bool:
        return self._sandbox

    def is_supported(self, provider: PurchaseProvider) -> bool:
        backend = self._backend_for(provider)
        return backend is not None and backend.supported

    # -------- Lifecycle --------
    def initialize(
        self,
        version: int,
        provider_key: str,
        store_url: str,
        on_init: Callback | None = None,
    ) -> None:
        self._ctx.version = version
        self._store_url = store_url
        if self._initialized:
            if self._handshake_pending:
                # the pending handshake result goes to the latest caller
                self._init_slot.retarget(on_init)
            else:
                self._init_slot.setup(on_init)
                self._init_slot.complete(True, "")
            return

        self._init_slot.setup(on_init)
        self._initialized = True
        logger.info("purchase_system_initialized", version=version, sandbox=self._sandbox)
        # store plugins stay untouched in sandbox mode
        pending = False
        for backend in self._backends.values():
            if backend.handshake and self._sandbox:
                continue
            if backend.handshake:
                pending = True
                self._handshake_pending = True
            backend.initialize(provider_key, self._on_backend_ready)
        if not pending:
            self._init_slot.complete(True, "")

    def _on_backend_ready(self, success: bool, message: str) -> None:
        self._handshake_pending = False
        self._init_slot.complete(success, message)

    def shutdown(self) -> None:
        for backend in self._backends.values():
            backend.shutdown()
        self._slot.setup(None)
        self._init_slot.setup(None)
        self._initialized = False
        self._handshake_pending = False
        logger.info("purchase_system_shutdown")

    def drain(self) -> None:
        """Deliver staged results. Call once per tick of the host loop."""
        self._init_slot.drain()
        self._slot.drain()

    # -------- Operations --------
    def purchase(self, provider: PurchaseProvider, sku: str, callback: Callback | None) -> None:
        self._provider = provider
        self._slot.setup(callback)

        backend = self._backend_for(provider)
        if backend is None or not backend.supported:
            self._fail_unsupported(provider, sku, callback)
            return
        backend.purchase(sku, callback)

    def consume(self, sku: str, callback: Callback | None = None) -> None:
        self._slot.setup(callback)
        self._dispatch(self._provider, lambda b: b.consume(sku))

    def query_purchases(self, provider: PurchaseProvider, callback: Callback | None) -> None:
        self._provider = provider
        self._slot.setup(callback)
        self._dispatch(provider, lambda b: b.query_purchases())

    # -------- Internals --------
    def _backend_for(self, provider: PurchaseProvider) -> PurchaseBackend | None:
        if self._sandbox:
            provider = PurchaseProvider.NULL
        return self._backends.get(provider)

    def _dispatch(self, provider: PurchaseProvider, op: Callable[[PurchaseBackend], None]) -> None:
        backend = self._backend_for(provider)
        if backend is None:
            logger.warning(
                "provider_unavailable",
                provider=provider.label,
                reason=FailureKind.UNSUPPORTED_PROVIDER.value,
            )
            self._slot.complete(False, not_supported_message(provider))
            return
        op(backend)

    def _fail_unsupported(self, provider: PurchaseProvider, sku: str, callback: Callback | None) -> None:
        logger.warning(
            "purchase_provider_not_supported",
            provider=provider.label,
            sku=sku,
            store_url=self._store_url,
            reason=FailureKind.UNSUPPORTED_PROVIDER.value,
        )
        self._open_url(self._store_url)
        if callback is not None:
            callback(False, not_supported_message(provider))
