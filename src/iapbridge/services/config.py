from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from jsonschema import Draft202012Validator


class ConfigError(RuntimeError):
    pass


def _load_json(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigError(f"Missing config file: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e


def validate_json(instance: object, schema: object, *, context: str) -> None:
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(instance), key=lambda e: [str(p) for p in e.path])
    if errors:
        lines = [f"Schema validation failed for {context}:"]
        for err in errors[:10]:
            loc = "/".join(str(p) for p in err.absolute_path)
            lines.append(f"- {loc}: {err.message}")
        raise ConfigError("\n".join(lines))


def _section(obj: Mapping[str, object], key: str) -> Mapping[str, object]:
    v = obj.get(key, {})
    if not isinstance(v, dict):
        raise ConfigError(f"Expected object for {key}")
    return v


def _str(obj: Mapping[str, object], key: str, default: str = "") -> str:
    v = obj.get(key, default)
    if not isinstance(v, str):
        raise ConfigError(f"Expected string for {key}")
    return v


def _int(obj: Mapping[str, object], key: str, default: int = 0) -> int:
    v = obj.get(key, default)
    if not isinstance(v, int) or isinstance(v, bool):
        raise ConfigError(f"Expected int for {key}")
    return v


@dataclass(frozen=True)
class SecurityOptions:
    cryptokey: str = "replace crypto key here"
    salt: str = "replace salt"


@dataclass(frozen=True)
class CoreOptions:
    game_id: int = 0
    online_domain: str = "seganx.ir"
    test_device_id: str = "editor-test-device"
    security: SecurityOptions = SecurityOptions()


@dataclass(frozen=True)
class PurchaseOptions:
    version: int = 0
    bazaar_key: str = ""
    store_url: str = ""
    sandbox: bool = False
    verify_url: str = ""


@dataclass(frozen=True)
class LoggingOptions:
    level: str = "INFO"
    format: str = "console"  # console|json


@dataclass(frozen=True)
class Settings:
    core: CoreOptions
    purchase: PurchaseOptions
    logging: LoggingOptions


def settings_from_dict(raw: Mapping[str, object]) -> Settings:
    core_raw = _section(raw, "core")
    sec_raw = _section(core_raw, "security")
    purchase_raw = _section(raw, "purchase")
    log_raw = _section(raw, "logging")

    security = SecurityOptions(
        cryptokey=_str(sec_raw, "cryptokey", SecurityOptions.cryptokey),
        salt=_str(sec_raw, "salt", SecurityOptions.salt),
    )
    core = CoreOptions(
        game_id=_int(core_raw, "game_id"),
        online_domain=_str(core_raw, "online_domain", CoreOptions.online_domain),
        test_device_id=_str(core_raw, "test_device_id", CoreOptions.test_device_id),
        security=security,
    )
    purchase = PurchaseOptions(
        version=_int(purchase_raw, "version"),
        bazaar_key=_str(purchase_raw, "bazaar_key"),
        store_url=_str(purchase_raw, "store_url"),
        sandbox=bool(purchase_raw.get("sandbox", False)),
        verify_url=_str(purchase_raw, "verify_url"),
    )
    logging = LoggingOptions(
        level=_str(log_raw, "level", LoggingOptions.level),
        format=_str(log_raw, "format", LoggingOptions.format),
    )
    return Settings(core=core, purchase=purchase, logging=logging)


class ConfigService:
    def __init__(self, data_dir: Path, schema_dir: Path) -> None:
        self._data_dir = data_dir
        self._schema_dir = schema_dir

    def load_settings(self, name: str = "settings.json") -> Settings:
        path = self._data_dir / name
        schema = _load_json(self._schema_dir / "settings.schema.json")
        raw = _load_json(path)
        validate_json(raw, schema, context=str(path))
        if not isinstance(raw, dict):
            raise ConfigError(f"{name} must be an object")
        return settings_from_dict(raw)
