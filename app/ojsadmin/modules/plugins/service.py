from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from app.ojsadmin.modules.plugins.catalog import CATEGORIES, PLUGINS, PLUGINS_BY_KEY, PluginInfo

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.ojsadmin.models import User

PLUGINS_SECTION = "plugins"


@dataclass(frozen=True)
class PluginRow:
    info: PluginInfo
    enabled: bool


@dataclass(frozen=True)
class PluginGroup:
    key: str
    label: str
    plugins: list[PluginRow]

    @property
    def count(self) -> int:
        return len(self.plugins)


def plugin_groups(stored: dict[str, Any], *, search: str = "") -> list[PluginGroup]:
    """
    Catalog grouped by category, each plugin's flag taken from `stored`
    (setting name = plugin key) or its catalog default.
    """
    needle = search.strip().lower()
    groups = []
    for cat_key, label in CATEGORIES.items():
        rows = []
        for info in PLUGINS:
            if info.category != cat_key:
                continue
            if needle and needle not in info.name.lower() and needle not in info.description.lower():
                continue
            flag = stored.get(info.key)
            rows.append(PluginRow(info=info, enabled=info.enabled_by_default if flag is None else bool(flag)))
        groups.append(PluginGroup(key=cat_key, label=label, plugins=rows))
    return groups


def enabled_plugin_keys(stored: dict[str, Any]) -> list[str]:
    return [row.info.key for group in plugin_groups(stored) for row in group.plugins if row.enabled]


def set_journal_plugin(s: "Session", journal_id: int, plugin_key: str, enabled: bool, *, actor: "User | None") -> None:
    from app.ojsadmin.modules.journals.settings import save_setting

    if plugin_key not in PLUGINS_BY_KEY:
        raise ValueError(f"Unknown plugin: {plugin_key}")
    save_setting(s, journal_id, PLUGINS_SECTION, plugin_key, bool(enabled), actor=actor)


def set_site_plugin(s: "Session", plugin_key: str, enabled: bool, *, actor: "User | None") -> None:
    from app.ojsadmin.modules.site_settings.service import save_site_setting

    if plugin_key not in PLUGINS_BY_KEY:
        raise ValueError(f"Unknown plugin: {plugin_key}")
    save_site_setting(s, PLUGINS_SECTION, plugin_key, bool(enabled), actor=actor)
