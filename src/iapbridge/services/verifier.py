from __future__ import annotations

import threading
from typing import Callable, Mapping

import httpx
from structlog import get_logger

from iapbridge.purchase.interfaces import StartCallback, VerifyCallback
from iapbridge.purchase.types import FailureKind, PurchaseProvider

logger = get_logger(__name__)

ReplyHandler = Callable[[dict[str, object]], None]


class HttpPurchaseVerifier:
    """Talks to the game server about store purchases.

    Two endpoints under ``base_url``:

    - ``POST /purchases/start`` with the provider, before the store flow
      opens. The server answers ``{"success": bool}``.
    - ``POST /purchases/verify`` with provider, version, product id and
      token. The server answers ``{"success": bool, "payload": str}`` where
      ``payload`` is the developer payload it found for the token.

    Requests run on a worker thread unless ``run_in_thread`` is False; any
    transport or decoding error is reported as a failure.
    """

    def __init__(
        self,
        base_url: str,
        *,
        headers: Mapping[str, str] | None = None,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
        run_in_thread: bool = True,
    ) -> None:
        base = base_url.rstrip("/")
        self.start_url = base + "/purchases/start"
        self.url = base + "/purchases/verify"
        self._client = client if client is not None else httpx.Client(timeout=timeout, headers=dict(headers or {}))
        self._run_in_thread = run_in_thread

    def start_purchase(self, provider: PurchaseProvider, callback: StartCallback) -> None:
        body = {"provider": int(provider)}
        self._submit(
            self.start_url,
            body,
            on_reply=lambda data: callback(data.get("success") is True),
            on_error=lambda: callback(False),
        )

    def verify_purchase(
        self,
        provider: PurchaseProvider,
        version: int,
        product_id: str,
        token: str,
        callback: VerifyCallback,
    ) -> None:
        body = {
            "provider": int(provider),
            "version": version,
            "product_id": product_id,
            "token": token,
        }
        self._submit(
            self.url,
            body,
            on_reply=lambda data: callback(data.get("success") is True, str(data.get("payload", ""))),
            on_error=lambda: callback(False, ""),
        )

    def _submit(
        self,
        url: str,
        body: dict[str, object],
        *,
        on_reply: ReplyHandler,
        on_error: Callable[[], None],
    ) -> None:
        if not self._run_in_thread:
            self._request(url, body, on_reply, on_error)
            return
        worker = threading.Thread(target=self._request, args=(url, body, on_reply, on_error), daemon=True)
        worker.start()

    def _request(
        self,
        url: str,
        body: dict[str, object],
        on_reply: ReplyHandler,
        on_error: Callable[[], None],
    ) -> None:
        try:
            resp = self._client.post(url, json=body)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(
                "purchase_server_request_failed",
                url=url,
                product_id=body.get("product_id"),
                error=str(e),
                reason=FailureKind.REMOTE_VERIFICATION_FAILED.value,
            )
            on_error()
            return
        if not isinstance(data, dict):
            logger.warning("purchase_server_bad_response", url=url, product_id=body.get("product_id"))
            on_error()
            return
        on_reply(data)

    def close(self) -> None:
        self._client.close()


class LoopbackVerifier:
    """Local verifier for simulated billing: accepts every start, approves and
    echoes a known payload."""

    def __init__(
        self,
        resolve_payload: Callable[[str], str],
        *,
        success: bool = True,
        accept_start: bool = True,
    ) -> None:
        self._resolve = resolve_payload
        self.success = success
        self.accept_start = accept_start
        self.starts: list[PurchaseProvider] = []
        self.calls: list[tuple[PurchaseProvider, int, str, str]] = []

    def start_purchase(self, provider: PurchaseProvider, callback: StartCallback) -> None:
        self.starts.append(provider)
        callback(self.accept_start)

    def verify_purchase(
        self,
        provider: PurchaseProvider,
        version: int,
        product_id: str,
        token: str,
        callback: VerifyCallback,
    ) -> None:
        self.calls.append((provider, version, product_id, token))
        callback(self.success, self._resolve(token))
