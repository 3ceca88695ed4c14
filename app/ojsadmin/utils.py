from __future__ import annotations

import json
import re
from typing import Any

SETTING_TYPES = ("string", "bool", "int", "float", "object")

_SECTION_RE = re.compile(r"^[a-z][a-z0-9_-]{0,63}$")
_SLUG_RE = re.compile(r"^[a-z0-9][a-z0-9_-]{0,31}$")
_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def infer_setting_type(value: Any) -> str:
    """
    Type tag for a submitted setting value.

    bool must be tested before int (bool is an int subclass). Integral floats are
    tagged "int", matching how JSON numbers like 3.0 arrive from browsers.
    """
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "int" if value.is_integer() else "float"
    if isinstance(value, (dict, list)):
        return "object"
    return "string"


def encode_setting_value(value: Any, setting_type: str) -> str | None:
    if value is None:
        return None
    if setting_type == "bool":
        return "1" if value else "0"
    if setting_type == "int":
        return str(int(value))
    if setting_type == "float":
        return repr(float(value))
    if setting_type == "object":
        return json.dumps(value, sort_keys=True)
    return str(value)


def decode_setting_value(raw: str | None, setting_type: str | None) -> Any:
    """Reverse of encode_setting_value. Undecodable values come back as the raw string."""
    if raw is None:
        return None
    try:
        if setting_type == "bool":
            return raw.strip().lower() in ("1", "true", "yes", "on")
        if setting_type == "int":
            return int(raw)
        if setting_type == "float":
            return float(raw)
        if setting_type == "object":
            return json.loads(raw)
    except (TypeError, ValueError):
        return raw
    return raw


def is_valid_section_name(section: str | None) -> bool:
    return bool(section and _SECTION_RE.match(section))


def is_valid_path(path: str | None) -> bool:
    return bool(path and _SLUG_RE.match(path))


def is_valid_color(value: str | None) -> bool:
    return bool(value and _COLOR_RE.match(value))


def is_valid_email(value: str | None) -> bool:
    return bool(value and _EMAIL_RE.match(value))


def form_bool(raw: str | None) -> bool:
    """Checkbox value from a submitted form."""
    return (raw or "").strip().lower() in ("1", "true", "on", "yes")


def parse_int(raw: str | None) -> int | None:
    raw = (raw or "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def split_keywords(raw: str | None) -> list[str]:
    """Comma-separated keywords -> de-duplicated list, order kept."""
    out: list[str] = []
    for part in (raw or "").split(","):
        kw = part.strip()
        if kw and kw.lower() not in {k.lower() for k in out}:
            out.append(kw)
    return out


def parse_json_object(raw: str | None) -> tuple[dict | None, str | None]:
    """Parse a JSON object from form input."""
    if not raw or not raw.strip():
        return None, None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        return None, f"JSON is invalid: {e}"
    if not isinstance(value, dict):
        return None, "Value must be a JSON object."
    return value, None
