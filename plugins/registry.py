"""
Tone plugin registry.

Plugins are listed by ID with the module that defines them; a module is
imported the first time one of its plugins is needed.
"""
from typing import Dict, List, Optional, Tuple, Type
import importlib

from plugins.base import AudioProcessor, PluginMetadata, PluginCategory

# ID -> (module path, category)
BUILTIN_PLUGINS: Dict[str, Tuple[str, PluginCategory]] = {
    "OCARINA": ("plugins.sources.ocarina", PluginCategory.SOURCE),
    "SAMPLE_PLAYER": ("plugins.sources.sample_player", PluginCategory.PLAYER),
}


class PluginRegistry:
    """
    Looks up, validates and instantiates tone plugins.

    Each registry owns its own table, so plugins registered on one
    instance are invisible to others.
    """

    def __init__(self):
        self._plugins: Dict[str, Tuple[str, PluginCategory]] = dict(BUILTIN_PLUGINS)
        self._class_cache: Dict[str, Type[AudioProcessor]] = {}
        self._metadata_cache: Dict[str, PluginMetadata] = {}

    def _get_plugin_class(self, plugin_id: str) -> Type[AudioProcessor]:
        """
        Import the plugin's module and find its AudioProcessor subclass.

        Raises:
            ValueError: Unknown ID, or the module defines no valid plugin
            ImportError: If the module cannot be loaded
        """
        if plugin_id in self._class_cache:
            return self._class_cache[plugin_id]

        if plugin_id not in self._plugins:
            raise ValueError(f"Unknown plugin ID: {plugin_id}")
        module_path, category = self._plugins[plugin_id]

        try:
            module = importlib.import_module(module_path)
        except ImportError as e:
            raise ImportError(f"Failed to load plugin '{plugin_id}' from '{module_path}': {e}") from e

        candidates = [obj for obj in vars(module).values()
                      if isinstance(obj, type) and issubclass(obj, AudioProcessor)
                      and obj is not AudioProcessor and obj.__module__ == module.__name__]
        if not candidates:
            raise ValueError(f"Module '{module_path}' defines no AudioProcessor subclass")

        plugin_class = candidates[0]
        metadata = self.validate_plugin(plugin_class)
        if metadata.category != category:
            raise ValueError(
                f"Plugin '{plugin_id}' is registered as {category.value} "
                f"but declares {metadata.category.value}"
            )

        self._class_cache[plugin_id] = plugin_class
        self._metadata_cache[plugin_id] = metadata
        return plugin_class

    def validate_plugin(self, plugin_class: Type[AudioProcessor]) -> PluginMetadata:
        """
        Instantiate a plugin class once and check its metadata.

        Returns:
            The plugin's metadata

        Raises:
            ValueError: If the class is abstract or its metadata is invalid
        """
        try:
            metadata = plugin_class().get_metadata()
        except (TypeError, ValueError, NotImplementedError) as e:
            raise ValueError(f"{plugin_class.__name__} validation failed: {e}") from e

        if not isinstance(metadata, PluginMetadata):
            raise ValueError(f"{plugin_class.__name__}.get_metadata() must return PluginMetadata")
        return metadata

    def get_plugin_metadata(self, plugin_id: str) -> PluginMetadata:
        """Metadata of a plugin (cached after first load)."""
        if plugin_id not in self._metadata_cache:
            self._get_plugin_class(plugin_id)
        return self._metadata_cache[plugin_id]

    def create_instance(self, plugin_id: str,
                        category: Optional[PluginCategory] = None) -> AudioProcessor:
        """
        New instance of a plugin.

        Args:
            plugin_id: Registered ID
            category: If given, the plugin must be of this category

        Raises:
            ValueError: Unknown ID or wrong category
        """
        plugin_class = self._get_plugin_class(plugin_id)
        if category is not None and self._plugins[plugin_id][1] != category:
            raise ValueError(f"Plugin '{plugin_id}' is not a {category.value} plugin")
        return plugin_class()

    def get_all_plugin_ids(self) -> List[str]:
        return list(self._plugins)

    def get_plugins_by_category(self, category: PluginCategory) -> List[str]:
        return [pid for pid, (_, cat) in self._plugins.items() if cat == category]

    def plugin_exists(self, plugin_id: str) -> bool:
        return plugin_id in self._plugins

    def register_plugin(self, plugin_id: str, module_path: str, category: PluginCategory):
        """
        Add a plugin to this registry.

        Raises:
            ValueError: If plugin_id is already registered
        """
        if plugin_id in self._plugins:
            raise ValueError(f"Plugin ID '{plugin_id}' is already registered")
        self._plugins[plugin_id] = (module_path, category)


# Shared registry for the command line entry point
_global_registry: Optional[PluginRegistry] = None


def initialize_registry() -> PluginRegistry:
    global _global_registry
    if _global_registry is None:
        _global_registry = PluginRegistry()
    return _global_registry
