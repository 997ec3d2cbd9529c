# Settings - Session Key Storage
# Loaded once, merged over defaults, saved on every change

"""
Settings Module

Responsibilities:
- Hold the plugin settings (just the session key)
- Merge the host's saved blob over defaults
- Provide the session key input control that writes through on change

Saved blob format (owned by the host):
{"sessionKey": "..."}
"""

from dataclasses import dataclass, field
from typing import Optional

SESSION_KEY_FIELD = "sessionKey"

DEFAULT_SETTINGS = {
    SESSION_KEY_FIELD: "",
}

@dataclass
class CrackboardSettings:
    """Plugin settings"""
    session_key: str = ""
    extra: dict = field(default_factory=dict)   # Unknown saved keys, written back as-is

    @classmethod
    def from_data(cls, data: Optional[dict]) -> "CrackboardSettings":
        """Merge a saved blob over the defaults"""
        merged = {SESSION_KEY_FIELD: DEFAULT_SETTINGS[SESSION_KEY_FIELD]}
        if data:
            merged.update(data)

        session_key = merged.pop(SESSION_KEY_FIELD)
        return cls(
            session_key="" if session_key is None else str(session_key),
            extra=merged,
        )

    def to_data(self) -> dict:
        """Blob handed to the host for saving"""
        data = dict(self.extra)
        data[SESSION_KEY_FIELD] = self.session_key
        return data

class SessionKeyField:
    """
    Session key text input

    Bound to plugin.settings.session_key; every change is persisted
    immediately through plugin.save_settings().
    """

    name = "Session Key"
    description = "Enter your Crackboard session key"
    placeholder = "Enter your session key"

    def __init__(self, plugin):
        self.plugin = plugin

    @property
    def value(self) -> str:
        return self.plugin.settings.session_key

    async def set_value(self, value: str):
        """onChange handler"""
        self.plugin.settings.session_key = value
        await self.plugin.save_settings()
