# Crackboard Plugin - Lifecycle Object
# Wires host events, settings, debouncer and sender together

"""
Crackboard Plugin Module

Connects the pieces:
Host editor-change -> ActivityDebouncer -> HeartbeatSender -> collector

All state lives on the plugin instance and is released in onunload():
the pending fire is cancelled, every event subscription is removed, and
sends already in flight are allowed to finish.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Callable, List, Optional

from .activity.debouncer import ActivityDebouncer, DebounceState, HEARTBEAT_INTERVAL
from .connection.heartbeat_sender import HeartbeatSender, ENDPOINT
from .settings.settings import CrackboardSettings, SessionKeyField
from .utils.logger import setup_logger

# Only markdown notes are tracked for now
LANGUAGE = "markdown"
VIEW_TYPE = "markdown"

class CrackboardPlugin:
    """
    Tracks editing time per language and reports it to Crackboard
    """

    def __init__(
        self,
        host,
        endpoint: str = ENDPOINT,
        interval: float = HEARTBEAT_INTERVAL,
        session=None,
        loop=None,
    ):
        """
        Initialize plugin (nothing runs until onload)

        Args:
            host: EditorHost providing events, active view and data storage
            endpoint: Collector URL
            interval: Debounce window and minimum heartbeat gap, seconds
            session: Optional shared aiohttp session for the sender
            loop: Scheduler for the debounce timer (running loop if None)
        """
        self.host = host
        self.endpoint = endpoint
        self.interval = interval
        self.session = session
        self.loop = loop
        self.logger = setup_logger("CrackboardPlugin")

        self.settings = CrackboardSettings()
        self.setting_field: Optional[SessionKeyField] = None
        self.state: Optional[DebounceState] = None
        self.sender: Optional[HeartbeatSender] = None
        self.debouncer: Optional[ActivityDebouncer] = None
        self._event_refs: List[Callable[[], None]] = []

    async def onload(self):
        """Load settings and start listening for edits"""
        await self.load_settings()

        self.setting_field = SessionKeyField(self)

        loop = self.loop or asyncio.get_running_loop()
        self.state = DebounceState()
        self.sender = HeartbeatSender(
            settings_provider=lambda: self.settings,
            state=self.state,
            endpoint=self.endpoint,
            clock=loop.time,
            session=self.session,
        )
        self.debouncer = ActivityDebouncer(
            host=self.host,
            sender=self.sender,
            state=self.state,
            interval=self.interval,
            language=LANGUAGE,
            view_type=VIEW_TYPE,
            loop=loop,
        )

        self.register_event(self.host.on_editor_change(self.debouncer.on_edit_event))
        self.logger.info("Crackboard plugin loaded")

    async def onunload(self):
        """Cancel the pending fire, unsubscribe, let in-flight sends finish"""
        if self.debouncer:
            self.debouncer.dispose()

        while self._event_refs:
            unsubscribe = self._event_refs.pop()
            unsubscribe()

        if self.debouncer:
            await self.debouncer.wait_in_flight()
        self.logger.info("Crackboard plugin unloaded")

    @asynccontextmanager
    async def loaded(self):
        """Run the plugin for the duration of an async with block"""
        await self.onload()
        try:
            yield self
        finally:
            await self.onunload()

    def register_event(self, unsubscribe: Callable[[], None]):
        """Keep an unsubscribe token to call on unload"""
        self._event_refs.append(unsubscribe)

    async def load_settings(self):
        self.settings = CrackboardSettings.from_data(await self.host.load_data())

    async def save_settings(self):
        self.logger.info("saving..")
        await self.host.save_data(self.settings.to_data())
