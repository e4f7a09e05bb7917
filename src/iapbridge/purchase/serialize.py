from __future__ import annotations

import json
from typing import Mapping

from .types import PurchasedData, PurchasedDetail


def _detail_to_dict(d: PurchasedDetail) -> dict[str, object]:
    return {"sku": d.sku, "token": d.token}


def purchased_to_dict(data: PurchasedData) -> dict[str, object]:
    return {"list": [_detail_to_dict(d) for d in data.list]}


def purchased_to_json(data: PurchasedData) -> str:
    """Compact JSON form delivered as the message of a successful query."""
    return json.dumps(purchased_to_dict(data), separators=(",", ":"))


def purchased_from_dict(d: Mapping[str, object]) -> PurchasedData:
    res = PurchasedData()
    raw = d.get("list", [])
    if not isinstance(raw, list):
        return res
    for item in raw:
        if not isinstance(item, dict):
            continue
        res.list.append(PurchasedDetail(sku=str(item.get("sku", "")), token=str(item.get("token", ""))))
    return res


def purchased_from_json(text: str) -> PurchasedData:
    raw = json.loads(text)
    if not isinstance(raw, dict):
        return PurchasedData()
    return purchased_from_dict(raw)
