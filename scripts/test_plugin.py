#!/usr/bin/env python3
# Test Crackboard Plugin - Full Pipeline
# Usage: python scripts/test_plugin.py

"""
Plugin Test Script

Tests the assembled pipeline:
Host edit -> ActivityDebouncer -> HeartbeatSender -> (fake) collector

1. Settings - defaults, merge over saved blob, write-through field
2. Delivery - success updates state, next close fire is suppressed
3. Failure - failed send leaves state, next qualifying fire retries
4. Unload - pending fire cancelled, handler unsubscribed
"""

import sys
import asyncio
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from crackboard.plugin import CrackboardPlugin
from crackboard.settings.settings import CrackboardSettings, SessionKeyField
from crackboard.utils.logger import setup_logger
from mocks import ManualLoop, FakeHost, FakeSession

# Setup logger
logger = setup_logger("TestPlugin", "INFO")

INTERVAL = 120

def make_plugin(host, status: int = 200, error: Exception = None):
    loop = ManualLoop()
    session = FakeSession(status=status, error=error)
    plugin = CrackboardPlugin(host, interval=INTERVAL, session=session, loop=loop)
    return plugin, loop, session

def test_settings():
    """Saved blob merges over defaults, field writes through"""
    logger.info("=" * 60)
    logger.info("TEST 1: Settings")
    logger.info("=" * 60)

    assert CrackboardSettings.from_data(None).session_key == ""
    assert CrackboardSettings.from_data({}).session_key == ""
    assert CrackboardSettings.from_data({"sessionKey": None}).session_key == ""

    settings = CrackboardSettings.from_data({"sessionKey": "abc", "theme": "dark"})
    assert settings.session_key == "abc"
    assert settings.to_data() == {"theme": "dark", "sessionKey": "abc"}

    async def scenario():
        host = FakeHost(data={"sessionKey": "saved-key"})
        plugin, loop, session = make_plugin(host)

        async with plugin.loaded():
            assert plugin.settings.session_key == "saved-key"

            field = plugin.setting_field
            assert isinstance(field, SessionKeyField)
            assert field.name == "Session Key"
            assert field.value == "saved-key"

            await field.set_value("k")
            await field.set_value("ke")
            await field.set_value("key")
            assert host.saves == [{"sessionKey": "k"}, {"sessionKey": "ke"}, {"sessionKey": "key"}]

            # Next heartbeat carries the new key
            host.edit()
            loop.advance(INTERVAL)
            await plugin.debouncer.wait_in_flight()
            assert session.requests[-1]["json"]["session_key"] == "key"

        # Fresh host: empty default
        empty_host = FakeHost(data=None)
        plugin, _, _ = make_plugin(empty_host)
        await plugin.onload()
        assert plugin.settings.session_key == ""
        await plugin.onunload()

    asyncio.run(scenario())
    logger.info("✅ Settings merged, every change persisted")

def test_delivery_and_suppression():
    """Edits at 0/10/30s -> one send at 150s; fire too close to it is suppressed"""
    logger.info("\n" + "=" * 60)
    logger.info("TEST 2: Delivery")
    logger.info("=" * 60)

    async def scenario():
        host = FakeHost(data={"sessionKey": "sk"})
        plugin, loop, session = make_plugin(host)
        await plugin.onload()

        host.edit()
        loop.advance(10)
        host.edit()
        loop.advance(20)
        host.edit()
        loop.advance(INTERVAL)

        # Edit arrives while the request is still in flight
        host.edit()
        loop.advance(5)
        await plugin.debouncer.wait_in_flight()

        assert len(session.requests) == 1
        assert plugin.state.last_heartbeat_time == 155

        # Fires at 270, only 115s after the delivered heartbeat
        loop.advance(INTERVAL - 5)
        await plugin.debouncer.wait_in_flight()
        assert len(session.requests) == 1
        assert plugin.debouncer.get_stats()["suppressed_rate_limit"] == 1

        # Next burst, well clear of the last heartbeat
        host.edit()
        loop.advance(INTERVAL)
        await plugin.debouncer.wait_in_flight()
        assert len(session.requests) == 2

        await plugin.onunload()

    asyncio.run(scenario())
    logger.info("✅ One send per burst, close follow-up suppressed")

def test_failure_retry():
    """Failed sends keep state; the next qualifying fire tries again"""
    logger.info("\n" + "=" * 60)
    logger.info("TEST 3: Failure")
    logger.info("=" * 60)

    async def scenario():
        host = FakeHost()
        plugin, loop, session = make_plugin(host, status=500)
        await plugin.onload()

        host.edit()
        loop.advance(INTERVAL)
        await plugin.debouncer.wait_in_flight()
        assert len(session.requests) == 1
        assert plugin.state.last_heartbeat_time is None

        # A fire right after a failure is not rate limited
        host.edit()
        loop.advance(INTERVAL)
        await plugin.debouncer.wait_in_flight()
        assert len(session.requests) == 2

        session.status = 200
        host.edit()
        loop.advance(INTERVAL)
        await plugin.debouncer.wait_in_flight()
        assert plugin.state.last_heartbeat_time == loop.time()
        assert plugin.sender.get_stats()["heartbeats_failed"] == 2
        assert plugin.sender.get_stats()["heartbeats_sent"] == 1

        await plugin.onunload()

    asyncio.run(scenario())
    logger.info("✅ Failures retried on the next fire")

def test_unload():
    """Unload cancels pending fire and removes the handler"""
    logger.info("\n" + "=" * 60)
    logger.info("TEST 4: Unload")
    logger.info("=" * 60)

    async def scenario():
        host = FakeHost()
        plugin, loop, session = make_plugin(host)

        async with plugin.loaded():
            assert len(host.events) == 1
            host.edit()
            loop.advance(60)
            assert plugin.debouncer.has_pending_fire()

        assert len(host.events) == 0
        assert loop.pending() == []

        host.edit()
        loop.advance(10 * INTERVAL)
        await asyncio.sleep(0)
        assert session.requests == []

    asyncio.run(scenario())
    logger.info("✅ No heartbeat after unload")

def test_unload_on_error():
    """Handler is removed even when the body raises"""
    async def scenario():
        host = FakeHost()
        plugin, loop, session = make_plugin(host)
        try:
            async with plugin.loaded():
                host.edit()
                raise RuntimeError("host crashed")
        except RuntimeError:
            pass

        assert len(host.events) == 0
        assert loop.pending() == []

    asyncio.run(scenario())
    logger.info("✅ Unload runs on error paths")

def main():
    """Run all tests"""
    logger.info("\n" + "=" * 60)
    logger.info("🧪 Crackboard - Plugin Tests")
    logger.info("=" * 60)

    try:
        test_settings()
        test_delivery_and_suppression()
        test_failure_retry()
        test_unload()
        test_unload_on_error()

        logger.info("\n" + "=" * 60)
        logger.info("✅ ALL TESTS COMPLETED SUCCESSFULLY!")
        logger.info("=" * 60)

    except Exception as e:
        logger.error(f"\n❌ Test failed: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)

if __name__ == "__main__":
    main()
