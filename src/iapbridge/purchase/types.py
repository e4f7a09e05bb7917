from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Callable

Callback = Callable[[bool, str], None]


class PurchaseProvider(IntEnum):
    NULL = 0
    BAZAAR = 1
    GATEWAY = 3

    @property
    def label(self) -> str:
        return self.name.title()


class PurchaseState(IntEnum):
    PURCHASED = 0
    CANCELED = 1
    REFUNDED = 2
    PENDING = 3


class FailureKind(str, Enum):
    """Reason tag attached to failure log events. Never raised."""

    UNSUPPORTED_PROVIDER = "unsupported_provider"
    INVALID_PAYLOAD = "invalid_payload"
    REMOTE_VERIFICATION_FAILED = "remote_verification_failed"
    SDK_REPORTED_FAILURE = "sdk_reported_failure"
    NOT_IMPLEMENTED = "not_implemented"
    START_REJECTED = "start_rejected"


@dataclass(frozen=True)
class StorePurchase:
    """Purchase record as reported by the billing SDK."""

    product_id: str
    purchase_token: str
    developer_payload: str = ""
    purchase_state: PurchaseState = PurchaseState.PURCHASED


@dataclass(frozen=True)
class PurchasedDetail:
    sku: str = ""
    token: str = ""


@dataclass
class PurchasedData:
    list: list[PurchasedDetail] = field(default_factory=list)

    @staticmethod
    def from_store_purchases(purchases: list[StorePurchase]) -> "PurchasedData":
        # refunded/canceled/pending records are not owned
        res = PurchasedData()
        for item in purchases:
            if item.purchase_state == PurchaseState.PURCHASED:
                res.list.append(PurchasedDetail(sku=item.product_id, token=item.purchase_token))
        return res
