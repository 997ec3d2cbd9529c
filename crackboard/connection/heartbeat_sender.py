# Heartbeat Sender - Deliver Activity Heartbeats
# One POST per qualifying fire, failures are logged and dropped

"""
Heartbeat Sender Module

Responsibilities:
- Build the heartbeat payload (timestamp, session key, language)
- POST it to the collector as JSON
- Classify the outcome (HTTP 200 = delivered, anything else = failed)
- Record the delivery time on success only
- Never raise into the editing path

Wire format:
POST http://crackboard.dev/heartbeat
Content-Type: application/json
{"timestamp": "2026-10-19T12:00:00.000Z", "session_key": "...", "language_name": "markdown"}

The response body is not read beyond the status line. There is no retry:
a failed heartbeat is simply missed, and the next edit-driven fire tries again.
"""

import asyncio
import time
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Callable, Optional

import aiohttp

from ..utils.helpers import iso_timestamp
from ..utils.logger import setup_logger

ENDPOINT = "http://crackboard.dev/heartbeat"

@dataclass
class HeartbeatEvent:
    """Heartbeat wire payload"""
    timestamp: str               # ISO-8601, generated at send time
    session_key: str             # Opaque, never validated
    language_name: str           # e.g. "markdown"

    def to_payload(self) -> dict:
        """Dict ready for JSON encoding"""
        return asdict(self)

class HeartbeatSender:
    """
    Sends activity heartbeats to the collector

    Owns no timer. The debouncer decides when to call send(); the sender
    decides whether the attempt counted, and only then moves
    state.last_heartbeat_time forward.

    State machine per attempt:
    Idle -> Sending -> Delivered (state updated) | Failed (state untouched)
    """

    def __init__(
        self,
        settings_provider: Callable,
        state,
        endpoint: str = ENDPOINT,
        clock: Optional[Callable[[], float]] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize sender

        Args:
            settings_provider: Callable returning current CrackboardSettings
            state: DebounceState shared with the debouncer
            endpoint: Collector URL
            clock: Monotonic clock used for last_heartbeat_time
                   (must match the debouncer's clock)
            session: Optional shared aiohttp session (borrowed, never closed)
        """
        self.settings_provider = settings_provider
        self.state = state
        self.endpoint = endpoint
        self.clock = clock or time.monotonic
        self._session = session
        self.logger = setup_logger("HeartbeatSender")

        # Statistics
        self._heartbeats_sent = 0
        self._heartbeats_failed = 0
        self._last_send_time: Optional[datetime] = None

    def build_event(self, language: str) -> HeartbeatEvent:
        """Build a payload stamped with the current time"""
        settings = self.settings_provider()
        return HeartbeatEvent(
            timestamp=iso_timestamp(),
            session_key=settings.session_key,
            language_name=language,
        )

    async def send(self, language: str) -> bool:
        """
        Send one heartbeat

        Args:
            language: Language label reported to the collector

        Returns:
            True if the collector answered 200, False otherwise
        """
        try:
            event = self.build_event(language)
            if self._session is not None:
                return await self._post(self._session, event)
            async with aiohttp.ClientSession() as session:
                return await self._post(session, event)

        except asyncio.TimeoutError:
            self.logger.error("❌ Failed to send heartbeat: request timed out")
            self._heartbeats_failed += 1
            return False
        except aiohttp.ClientError as e:
            self.logger.error(f"❌ Failed to send heartbeat: {type(e).__name__}: {e}")
            self._heartbeats_failed += 1
            return False
        except Exception as e:
            self.logger.error(f"❌ Failed to send heartbeat: {e}")
            self._heartbeats_failed += 1
            return False

    async def _post(self, session, event: HeartbeatEvent) -> bool:
        """POST the payload and classify the response status"""
        async with session.post(
            self.endpoint,
            json=event.to_payload(),
            headers={"Content-Type": "application/json"},
        ) as response:
            if response.status == 200:
                self.state.last_heartbeat_time = self.clock()
                self._heartbeats_sent += 1
                self._last_send_time = datetime.now()
                self.logger.info("✅ Heartbeat sent successfully.")
                return True

            self.logger.error(
                f"❌ Failed to send heartbeat: HTTP {response.status} {response.reason or ''}".rstrip()
            )
            self._heartbeats_failed += 1
            return False

    def get_stats(self) -> dict:
        """Get sender statistics"""
        total = self._heartbeats_sent + self._heartbeats_failed
        success_rate = (self._heartbeats_sent / max(total, 1)) * 100

        return {
            "heartbeats_sent": self._heartbeats_sent,
            "heartbeats_failed": self._heartbeats_failed,
            "success_rate": success_rate,
            "last_send": self._last_send_time.isoformat() if self._last_send_time else None
        }
