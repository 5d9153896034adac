"""
Plugin registry + per-user allow-list.

A plugin is available when its Python module can be imported (installed),
and usable by a user when it is also in User.enabled_plugins.

Installation state is scanned once on first use and cached in the
PluginRegistry instance; call clear() after installing/removing a package.
"""
import importlib.util
import logging
from dataclasses import dataclass, asdict
from typing import Callable

from sqlalchemy.orm import Session

from redemption.domain.errors import NotFoundError, PluginAccessError, ValidationError
from redemption.infrastructure.db.models import User

logger = logging.getLogger(__name__)

CATEGORY_LABELS = {
    "productivity": "Productivity",
    "finance": "Finance",
    "analytics": "Analytics",
    "communication": "Communication",
}


@dataclass(frozen=True)
class PluginInfo:
    id: str
    name: str
    description: str
    route: str
    category: str
    is_core: bool
    is_premium: bool
    module: str  # importable module that provides the plugin


KNOWN_PLUGINS: tuple[PluginInfo, ...] = (
    PluginInfo(
        id="documents-hub",
        name="Documents Hub",
        description="Upload, organize, and manage your PDF documents securely.",
        route="/documents",
        category="productivity",
        is_core=False,
        is_premium=False,
        module="redemption.application.documents",
    ),
    PluginInfo(
        id="analytics",
        name="Analytics Dashboard",
        description="Advanced analytics and insights for your financial data.",
        route="/analytics",
        category="analytics",
        is_core=False,
        is_premium=True,
        module="redemption_analytics",
    ),
)


def _module_installed(module: str) -> bool:
    try:
        return importlib.util.find_spec(module) is not None
    except ModuleNotFoundError:
        # parent package missing
        return False


class PluginRegistry:
    def __init__(self, plugins: tuple[PluginInfo, ...] = KNOWN_PLUGINS,
                 probe: Callable[[str], bool] = _module_installed):
        self.plugins = plugins
        self._probe = probe
        self._installed: set[str] | None = None

    def _scan(self) -> set[str]:
        if self._installed is None:
            self._installed = {p.id for p in self.plugins if self._probe(p.module)}
            logger.info("Plugin scan: installed=%s", sorted(self._installed))
        return self._installed

    def clear(self) -> None:
        """Forget the scan; the next lookup probes again."""
        self._installed = None

    def get(self, plugin_id: str) -> PluginInfo | None:
        return next((p for p in self.plugins if p.id == plugin_id), None)

    def by_route(self, route: str) -> PluginInfo | None:
        return next((p for p in self.plugins if p.route == route), None)

    def is_installed(self, plugin_id: str) -> bool:
        return plugin_id in self._scan()

    def is_enabled(self, plugin_id: str, enabled_ids: list[str]) -> bool:
        return self.is_installed(plugin_id) and plugin_id in enabled_ids

    def has_access(self, route: str, enabled_ids: list[str]) -> bool:
        """Routes that belong to no plugin are always accessible."""
        plugin = self.by_route(route)
        if plugin is None:
            return True
        return self.is_enabled(plugin.id, enabled_ids)

    def with_status(self, enabled_ids: list[str]) -> list[dict]:
        installed = self._scan()
        result = []
        for plugin in self.plugins:
            item = asdict(plugin)
            item.pop("module")
            item["category_label"] = CATEGORY_LABELS.get(plugin.category, plugin.category)
            item["is_installed"] = plugin.id in installed
            item["is_enabled"] = plugin.id in installed and plugin.id in enabled_ids
            result.append(item)
        return result

    def enabled_for_nav(self, enabled_ids: list[str]) -> list[PluginInfo]:
        return [p for p in self.plugins if self.is_enabled(p.id, enabled_ids)]


_registry: PluginRegistry | None = None


def get_plugin_registry() -> PluginRegistry:
    global _registry
    if _registry is None:
        _registry = PluginRegistry()
    return _registry


# ============================================================================
# Per-user allow-list
# ============================================================================


class TogglePluginUseCase:
    def __init__(self, db: Session, registry: PluginRegistry | None = None):
        self.db = db
        self.registry = registry or get_plugin_registry()

    def execute(self, user_id: int, plugin_id: str, enable: bool) -> list[str]:
        """
        Add/remove a plugin from the user's allow-list; returns the new list.

        Raises:
            NotFoundError: user missing
            ValidationError: unknown plugin, or enabling one that is not installed
        """
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        if self.registry.get(plugin_id) is None:
            raise ValidationError({"plugin_id": "Unknown plugin"})
        if enable and not self.registry.is_installed(plugin_id):
            raise ValidationError({"plugin_id": "Plugin is not installed"})

        current = list(user.enabled_plugins or [])
        if enable:
            plugins = current if plugin_id in current else current + [plugin_id]
        else:
            plugins = [p for p in current if p != plugin_id]

        # reassign: in-place mutation of a JSON column is not tracked
        user.enabled_plugins = plugins
        self.db.commit()

        logger.info("Plugin %s %s for user_id=%s", plugin_id, "enabled" if enable else "disabled", user_id)
        return plugins


def require_plugin(user: User, plugin_id: str, registry: PluginRegistry | None = None) -> None:
    """
    Raises:
        PluginAccessError: plugin not installed or not in the user's allow-list
    """
    registry = registry or get_plugin_registry()
    if not registry.is_enabled(plugin_id, user.enabled_plugins or []):
        raise PluginAccessError(plugin_id)


def has_plugin_access(user: User, route: str, registry: PluginRegistry | None = None) -> bool:
    registry = registry or get_plugin_registry()
    return registry.has_access(route, user.enabled_plugins or [])
