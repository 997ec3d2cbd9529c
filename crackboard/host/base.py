# Editor Host - Interfaces the Plugin Consumes
# Event source, active view query, settings blob

"""
Editor Host Module

The plugin never talks to an editor directly. A host provides:
- editor-change notifications (subscribe -> unsubscribe token)
- "is there an active view of kind X" query
- load/save of the plugin's settings blob

EventRegistry is the shared subscribe/emit implementation for hosts.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional

from ..utils.logger import setup_logger

EditorChangeHandler = Callable[[], None]
Unsubscribe = Callable[[], None]

class EventRegistry:
    """
    Ordered list of editor-change handlers

    A failing handler is logged and skipped so one plugin cannot stop
    the others from hearing about edits.
    """

    def __init__(self):
        self._handlers: List[EditorChangeHandler] = []
        self.logger = setup_logger("EventRegistry")

    def subscribe(self, handler: EditorChangeHandler) -> Unsubscribe:
        """Register handler, return its unsubscribe token"""
        self._handlers.append(handler)

        def unsubscribe():
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def emit(self):
        """Notify every handler, in registration order"""
        for handler in list(self._handlers):
            try:
                handler()
            except Exception as e:
                self.logger.error(f"Editor-change handler error: {e}")

    def __len__(self) -> int:
        return len(self._handlers)

class EditorHost(ABC):
    """Host services used by CrackboardPlugin"""

    @abstractmethod
    def on_editor_change(self, handler: EditorChangeHandler) -> Unsubscribe:
        """Call handler on every document content change"""

    @abstractmethod
    def get_active_view_of_type(self, view_type: str) -> Optional[Any]:
        """Active view of the given kind, or None"""

    @abstractmethod
    async def load_data(self) -> Optional[dict]:
        """Load the plugin's saved settings blob (None if never saved)"""

    @abstractmethod
    async def save_data(self, data: dict):
        """Persist the plugin's settings blob"""
