"""Report internationalisation helpers.

Translation data is loaded from ``servicereport/data/report_i18n.json``.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

_DATA_FILE = Path(__file__).resolve().parent / "data" / "report_i18n.json"

DEFAULT_LANG = "es"
SUPPORTED_LANGS: tuple[str, ...] = ("es", "en")


@lru_cache(maxsize=1)
def _load_translations() -> dict[str, dict[str, str]]:
    if not _DATA_FILE.exists():
        raise RuntimeError(f"Missing translation file: {_DATA_FILE}")
    try:
        with open(_DATA_FILE, encoding="utf-8") as fh:
            data: dict[str, dict[str, str]] = json.load(fh)
    except json.JSONDecodeError as exc:
        raise RuntimeError(f"Invalid translation file: {_DATA_FILE}") from exc
    return data


def normalize_lang(lang: object) -> str:
    if isinstance(lang, str) and lang.strip().lower().startswith("en"):
        return "en"
    return DEFAULT_LANG


def tr(lang: object, key: str, **kwargs: Any) -> str:
    values = _load_translations().get(key)
    if values is None:
        template = key
    else:
        locale = normalize_lang(lang)
        template = values.get(locale) or values.get("en") or key
    try:
        return template.format(**kwargs)
    except (KeyError, IndexError):
        return template


def month_name(lang: object, month: int, *, short: bool = False) -> str:
    """Localized month name for *month* (1-12)."""
    if not 1 <= month <= 12:
        raise ValueError(f"month must be 1-12, got {month}")
    prefix = "MONTH_SHORT_" if short else "MONTH_"
    return tr(lang, f"{prefix}{month}")
