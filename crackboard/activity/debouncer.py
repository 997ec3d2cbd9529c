# Activity Debouncer - Turn Edit Bursts Into Heartbeat Fires
# Single reschedulable timer plus a minimum gap between heartbeats

"""
Activity Debouncer Module

Responsibilities:
- Receive every editor-change notification from the host
- Keep exactly one pending fire, INTERVAL after the latest edit
- At fire time: require an active view of the tracked kind, then require
  INTERVAL since the last delivered heartbeat
- Hand qualifying fires to the HeartbeatSender as background tasks
- Cancel the pending fire on teardown

Suppressed fires are dropped, never queued. Everything runs on the event
loop thread, so DebounceState needs no locking.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Optional, Set

from ..utils.helpers import format_duration
from ..utils.logger import setup_logger

HEARTBEAT_INTERVAL = 120  # 2 minutes in seconds

@dataclass
class DebounceState:
    """Debounce bookkeeping (loop clock seconds)"""
    last_heartbeat_time: Optional[float] = None   # Written by HeartbeatSender on success
    pending_timer: Optional[Any] = None           # TimerHandle of the scheduled fire

class ActivityDebouncer:
    """
    Collapses a stream of edit events into infrequent heartbeat fires

    Two limits share the same interval:
    - debounce: a fire happens only after `interval` without edits
    - rate limit: a fire sends only if `interval` passed since the last
      delivered heartbeat
    """

    def __init__(
        self,
        host,
        sender,
        state: Optional[DebounceState] = None,
        interval: float = HEARTBEAT_INTERVAL,
        language: str = "markdown",
        view_type: str = "markdown",
        loop=None,
    ):
        """
        Initialize debouncer

        Args:
            host: EditorHost answering get_active_view_of_type()
            sender: HeartbeatSender (anything with async send(language))
            state: Shared DebounceState (new one if None)
            interval: Quiet period and minimum heartbeat gap, seconds
            language: Language label passed to the sender
            view_type: View kind that must be active at fire time
            loop: Scheduler with call_later()/time() (running loop if None)
        """
        self.host = host
        self.sender = sender
        self.state = state or DebounceState()
        self.interval = interval
        self.language = language
        self.view_type = view_type
        self._loop = loop or asyncio.get_running_loop()
        self._disposed = False
        self._in_flight: Set[asyncio.Future] = set()
        self.logger = setup_logger("ActivityDebouncer")

        self._stats = {
            "edit_events": 0,
            "fires": 0,
            "suppressed_no_view": 0,
            "suppressed_rate_limit": 0,
            "sends_started": 0,
        }

    def on_edit_event(self):
        """Cancel the pending fire and schedule a new one `interval` from now"""
        if self._disposed:
            return

        self._stats["edit_events"] += 1
        self._cancel_pending()
        self.state.pending_timer = self._loop.call_later(self.interval, self._fire)

    def _fire(self):
        """Timer callback: decide whether this quiet period earns a heartbeat"""
        self.state.pending_timer = None
        if self._disposed:
            return

        self._stats["fires"] += 1
        now = self._loop.time()

        if not self.host.get_active_view_of_type(self.view_type):
            self._stats["suppressed_no_view"] += 1
            self.logger.debug(f"No active {self.view_type} view, heartbeat skipped")
            return

        last = self.state.last_heartbeat_time
        if last is not None and (now - last) < self.interval:
            self._stats["suppressed_rate_limit"] += 1
            self.logger.debug(
                f"Last heartbeat {format_duration(now - last)} ago, heartbeat skipped"
            )
            return

        self._stats["sends_started"] += 1
        task = asyncio.ensure_future(self.sender.send(self.language))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    def _cancel_pending(self):
        """Cancel the scheduled fire, if any"""
        if self.state.pending_timer is not None:
            self.state.pending_timer.cancel()
            self.state.pending_timer = None

    def has_pending_fire(self) -> bool:
        """True while a fire is scheduled"""
        return self.state.pending_timer is not None

    def dispose(self):
        """Cancel the pending fire and ignore further edits (idempotent)"""
        self._disposed = True
        self._cancel_pending()

    async def wait_in_flight(self):
        """Wait for already started sends; they are never cancelled"""
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    def get_stats(self) -> dict:
        """Get debouncer statistics"""
        return dict(self._stats)
