"""Headless purchase coordination for iapbridge.

IMPORTANT: This package must never import pygame.
"""

from .backends import BazaarBackend, GatewayBackend, NullBackend, PurchaseBackend
from .callback import CallbackSlot
from .interfaces import BillingEvents, BillingSdk, PurchaseVerifier
from .payload import PayloadRegistry, PayloadStorage
from .system import PurchaseSystem
from .types import (
    Callback,
    FailureKind,
    PurchasedData,
    PurchasedDetail,
    PurchaseProvider,
    PurchaseState,
    StorePurchase,
)

__all__ = [
    "BazaarBackend",
    "BillingEvents",
    "BillingSdk",
    "Callback",
    "CallbackSlot",
    "FailureKind",
    "GatewayBackend",
    "NullBackend",
    "PayloadRegistry",
    "PayloadStorage",
    "PurchaseBackend",
    "PurchaseProvider",
    "PurchaseState",
    "PurchaseSystem",
    "PurchaseVerifier",
    "PurchasedData",
    "PurchasedDetail",
    "StorePurchase",
]
