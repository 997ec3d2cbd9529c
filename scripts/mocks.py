# Test Mocks - Manual clock, fake HTTP session, fake editor host
# Shared by the scripts/test_*.py files

"""
Mocks Module

- ManualLoop: call_later()/time() driven by advance(), no real waiting
- FakeSession: records POSTs, answers with a fixed status or raises
- FakeHost: EditorHost with a switchable active view and in-memory data
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from crackboard.host.base import EditorHost, EventRegistry


class ManualTimer:
    """TimerHandle stand-in"""

    def __init__(self, when: float, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualLoop:
    """Scheduler whose clock only moves when advance() is called"""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.timers = []

    def time(self) -> float:
        return self.now

    def call_later(self, delay, callback, *args):
        timer = ManualTimer(self.now + delay, lambda: callback(*args))
        self.timers.append(timer)
        return timer

    def advance(self, seconds: float):
        """Move the clock, running due timers in order"""
        target = self.now + seconds
        while True:
            due = [t for t in self.timers if not t.cancelled and t.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.when)
            self.timers.remove(timer)
            self.now = timer.when
            timer.callback()
        self.now = target

    def pending(self):
        return [t for t in self.timers if not t.cancelled]


class FakeResponse:
    def __init__(self, status: int, reason: str):
        self.status = status
        self.reason = reason

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """aiohttp.ClientSession stand-in for post()"""

    REASONS = {200: "OK", 500: "Internal Server Error", 503: "Service Unavailable"}

    def __init__(self, status: int = 200, error: Exception = None):
        self.status = status
        self.error = error
        self.requests = []
        self.closed = False

    def post(self, url, json=None, headers=None):
        self.requests.append({"url": url, "json": json, "headers": headers})
        if self.error is not None:
            raise self.error
        return FakeResponse(self.status, self.REASONS.get(self.status, ""))

    async def close(self):
        self.closed = True


class FakeHost(EditorHost):
    """Editor host with an in-memory settings blob"""

    def __init__(self, data: dict = None, active: bool = True):
        self.events = EventRegistry()
        self.data = data
        self.active = active
        self.saves = []

    def on_editor_change(self, handler):
        return self.events.subscribe(handler)

    def get_active_view_of_type(self, view_type: str):
        if self.active and view_type == "markdown":
            return "note.md"
        return None

    async def load_data(self):
        return self.data

    async def save_data(self, data: dict):
        self.data = dict(data)
        self.saves.append(dict(data))

    def edit(self):
        """Simulate a keystroke in the editor"""
        self.events.emit()


class FakeSender:
    """Records send() calls with the loop time"""

    def __init__(self, loop: ManualLoop, result: bool = True):
        self.loop = loop
        self.result = result
        self.calls = []

    async def send(self, language: str) -> bool:
        self.calls.append((self.loop.time(), language))
        return self.result
