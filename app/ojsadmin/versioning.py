from __future__ import annotations

import logging
import platform
import re
from dataclasses import dataclass
from importlib import metadata

import requests

from app.ojsadmin.constants import APP_VERSION

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"(\d+(?:\.\d+)*)")
VERSION_CHECK_TIMEOUT = 5  # seconds


@dataclass(frozen=True)
class VersionInfo:
    current: str
    latest: str | None  # None = unknown (check disabled or failed)

    @property
    def update_available(self) -> bool:
        if not self.latest:
            return False
        return parse_version(self.latest) > parse_version(self.current)


def parse_version(value: str) -> tuple[int, ...]:
    """'ojs-3_3_0-21' / 'v3.3.0.21' / '3.4.0' -> comparable tuple."""
    normalized = value.replace("_", ".").replace("-", ".")
    m = _VERSION_RE.search(normalized)
    if not m:
        return ()
    return tuple(int(p) for p in m.group(1).split("."))


def fetch_latest_version(url: str) -> str | None:
    """
    Latest release tag from a GitHub-style releases feed ({"tag_name": ...}).
    Network or format failures are logged and reported as None.
    """
    try:
        resp = requests.get(url, timeout=VERSION_CHECK_TIMEOUT, headers={"Accept": "application/json"})
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as e:
        logger.warning("Version check failed url=%s: %s", url, e)
        return None
    tag = data.get("tag_name") if isinstance(data, dict) else None
    if not tag or not parse_version(str(tag)):
        logger.warning("Version check returned no usable tag url=%s", url)
        return None
    return ".".join(str(p) for p in parse_version(str(tag)))


def check_version(config: dict) -> VersionInfo:
    if not config.get("VERSION_CHECK_ENABLED"):
        return VersionInfo(current=APP_VERSION, latest=None)
    return VersionInfo(current=APP_VERSION, latest=fetch_latest_version(config.get("VERSION_CHECK_URL") or ""))


def _dist_version(name: str) -> str:
    try:
        return metadata.version(name)
    except metadata.PackageNotFoundError:
        return "unknown"


def component_versions() -> dict[str, str]:
    return {
        "Application": APP_VERSION,
        "Python": platform.python_version(),
        "Flask": _dist_version("flask"),
        "SQLAlchemy": _dist_version("sqlalchemy"),
        "Alembic": _dist_version("alembic"),
    }
