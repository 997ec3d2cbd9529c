# Vault Watcher Host - Editor Host Backed by a Notes Folder
# Reports file changes under a notes directory as editor changes

"""
Vault Watcher Module

Responsibilities:
- Watch a notes directory (watchfiles, inotify/FSEvents backed)
- Treat an added or modified tracked file as an edit in that file
- Track the most recently edited file as the active view
- Store plugin settings in PluginDataStore

Only files whose suffix is mapped to a view type are reported. Hidden
directories (.obsidian, .git, ...) are skipped. Each batch of changes
yields at most one editor-change notification.
"""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

from watchfiles import Change, awatch

from .base import EditorHost, EventRegistry
from ..utils.logger import setup_logger


@dataclass
class ActiveView:
    """File currently considered open in the editor"""
    path: Path
    view_type: str             # e.g. "markdown"


class VaultWatcherHost(EditorHost):
    """
    Editor host that watches a vault directory.

    Features:
    - Extension -> view type mapping
    - One editor-change notification per change batch
    - Graceful shutdown via shutdown_event
    """

    def __init__(
        self,
        vault_path: str,
        data_store,
        plugin_id: str = "crackboard",
        debounce_ms: int = 1600,
        extensions: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize host.

        Args:
            vault_path: Directory containing the notes
            data_store: PluginDataStore (connected by the caller)
            plugin_id: Key for the plugin's settings blob
            debounce_ms: watchfiles batching window, milliseconds
            extensions: File suffix -> view type (default {".md": "markdown"})
        """
        self.vault_path = Path(vault_path).resolve()
        self.data_store = data_store
        self.plugin_id = plugin_id
        self.debounce_ms = debounce_ms
        self.extensions = {k.lower(): v for k, v in (extensions or {".md": "markdown"}).items()}
        self.logger = setup_logger("VaultWatcher")

        self._events = EventRegistry()
        self._active: Optional[ActiveView] = None
        self._stats = {
            "batches": 0,
            "changes_detected": 0,
            "errors": 0,
        }

    # ==========================================================================
    # EditorHost
    # ==========================================================================

    def on_editor_change(self, handler):
        return self._events.subscribe(handler)

    def get_active_view_of_type(self, view_type: str) -> Optional[ActiveView]:
        if self._active and self._active.view_type == view_type:
            return self._active
        return None

    async def load_data(self) -> Optional[dict]:
        return await self.data_store.load_plugin_data(self.plugin_id)

    async def save_data(self, data: dict):
        await self.data_store.save_plugin_data(self.plugin_id, data)

    # ==========================================================================
    # Watching
    # ==========================================================================

    def watch_filter(self, change: Change, path: str) -> bool:
        """Keep tracked suffixes outside hidden directories"""
        candidate = Path(path)
        if candidate.suffix.lower() not in self.extensions:
            return False
        try:
            parts = candidate.relative_to(self.vault_path).parts
        except ValueError:
            parts = candidate.parts
        return not any(part.startswith(".") for part in parts[:-1])

    async def run(self, shutdown_event: asyncio.Event):
        """Watch loop. Runs until shutdown_event is set."""
        if shutdown_event.is_set():
            return

        self.logger.info(f"Watching {self.vault_path} for {sorted(self.extensions)}")
        async for changes in awatch(
            self.vault_path,
            watch_filter=self.watch_filter,
            debounce=self.debounce_ms,
            stop_event=shutdown_event,
        ):
            try:
                self.handle_changes(changes)
            except Exception as e:
                self._stats["errors"] += 1
                self.logger.error(f"Vault change handling error: {e}")
        self.logger.info("Vault watcher stopped")

    def handle_changes(self, changes: Iterable[Tuple[Change, str]]) -> bool:
        """
        Apply one batch of file changes.

        Returns:
            True if an editor-change notification was emitted
        """
        self._stats["batches"] += 1
        edited = []
        for change, raw_path in changes:
            path = Path(raw_path)
            if not self.watch_filter(change, raw_path):
                continue
            if change == Change.deleted:
                if self._active and self._active.path == path:
                    self._active = None
                continue
            edited.append(path)

        mtimes = {}
        for path in edited:
            try:
                mtimes[path] = path.stat().st_mtime
            except FileNotFoundError:
                continue

        if not mtimes:
            return False

        latest = max(mtimes, key=mtimes.get)
        self._active = ActiveView(path=latest, view_type=self.extensions[latest.suffix.lower()])
        self._stats["changes_detected"] += len(mtimes)
        self.logger.debug(f"Edited: {latest.name} ({len(mtimes)} changed)")
        self._events.emit()
        return True

    def get_stats(self) -> dict:
        """Get watcher statistics."""
        return dict(self._stats)
