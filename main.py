# Crackboard - Main Entry Point
# Runs the Crackboard plugin against a watched notes folder

"""
Crackboard - Standalone Runner

Hosts the plugin outside an editor:
VaultWatcher (file changes) -> CrackboardPlugin -> crackboard.dev heartbeat

Configuration:
- config/config.yaml   vault path, extensions, endpoint, logging
- config/secrets.env   CRACKBOARD_SESSION_KEY (optional, written to settings)
"""

import asyncio
import logging
import signal
import os
from pathlib import Path
from dotenv import load_dotenv
import yaml

from crackboard.activity.debouncer import HEARTBEAT_INTERVAL
from crackboard.connection.heartbeat_sender import ENDPOINT
from crackboard.host.vault_watcher import VaultWatcherHost
from crackboard.plugin import CrackboardPlugin
from crackboard.storage.database import PluginDataStore
from crackboard.utils.logger import setup_logger, configure_logging

DEFAULT_CONFIG = {
    'vault': {
        'path': '.',
        'debounce_ms': 1600,
        'extensions': {'.md': 'markdown'}
    },
    'heartbeat': {
        'endpoint': ENDPOINT,
        'interval_seconds': HEARTBEAT_INTERVAL
    },
    'storage': {
        'database_url': 'data/crackboard.db'
    },
    'logging': {
        'level': 'INFO',
        'file': 'logs/crackboard.log'
    }
}

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

class ConfigError(ValueError):
    """config.yaml cannot be used at all"""

async def run(config: dict, shutdown_event: asyncio.Event):
    """Run plugin and host until shutdown_event is set"""
    logger = setup_logger("Main")
    vault_config = config['vault']
    heartbeat_config = config['heartbeat']

    data_store = PluginDataStore(db_path=config['storage']['database_url'])
    await data_store.connect()

    host = VaultWatcherHost(
        vault_path=vault_config['path'],
        data_store=data_store,
        debounce_ms=vault_config['debounce_ms'],
        extensions=vault_config['extensions']
    )
    plugin = CrackboardPlugin(
        host,
        endpoint=heartbeat_config['endpoint'],
        interval=heartbeat_config['interval_seconds']
    )

    try:
        async with plugin.loaded():
            session_key = config.get('crackboard', {}).get('session_key')
            if session_key and session_key != plugin.setting_field.value:
                logger.info("Applying session key from secrets.env")
                await plugin.setting_field.set_value(session_key)

            if not plugin.settings.session_key:
                logger.warning("⚠️ Session key is empty - set CRACKBOARD_SESSION_KEY in config/secrets.env")

            logger.info("✅ Crackboard running - Press Ctrl+C to stop")
            await host.run(shutdown_event)

            logger.info("Shutting down...")
            logger.info(f"Heartbeats: {plugin.sender.get_stats()}")
    finally:
        await data_store.close()

    logger.info("✅ Shutdown complete")

def _section(config: dict, name: str) -> dict:
    section = config.get(name)
    return section if isinstance(section, dict) else {}

def validate_config(config: dict) -> tuple[bool, list[str]]:
    """
    Validate configuration structure

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors = []
    for section in DEFAULT_CONFIG:
        if section not in config:
            errors.append(f"Missing required section: {section}")
        elif not isinstance(config[section], dict):
            errors.append(f"Config error: {section} must be a mapping")

    vault_path = _section(config, 'vault').get('path')
    if vault_path and not Path(vault_path).is_dir():
        errors.append(f"Config error: vault.path is not a directory: {vault_path}")

    extensions = _section(config, 'vault').get('extensions')
    if not isinstance(extensions, dict) or not extensions:
        errors.append("Config error: vault.extensions must map at least one suffix to a view type")
    else:
        for suffix, view_type in extensions.items():
            if not isinstance(suffix, str) or not suffix.startswith('.') or len(suffix) < 2:
                errors.append(f"Config error: vault.extensions key {suffix!r} must be a suffix like '.md'")
            if not isinstance(view_type, str) or not view_type:
                errors.append(f"Config error: vault.extensions[{suffix!r}] must name a view type")

    endpoint = _section(config, 'heartbeat').get('endpoint', '')
    if not str(endpoint).startswith(('http://', 'https://')):
        errors.append("Config error: heartbeat.endpoint must be an http(s) URL")

    level = _section(config, 'logging').get('level', 'INFO')
    if str(level).upper() not in LOG_LEVELS:
        errors.append(f"Config error: logging.level must be one of {', '.join(LOG_LEVELS)}")

    numeric_checks = [
        ('vault.debounce_ms', _section(config, 'vault').get('debounce_ms')),
        ('heartbeat.interval_seconds', _section(config, 'heartbeat').get('interval_seconds')),
    ]

    for key, value in numeric_checks:
        if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0):
            errors.append(f"Config error: {key} must be a positive number")

    return (len(errors) == 0, errors)

def load_config(project_root: Path = None) -> dict:
    """
    Load configuration from files

    Missing sections and keys fall back to DEFAULT_CONFIG. A section that is
    not a mapping is kept as-is for validate_config() to report.

    Raises:
        ConfigError: config.yaml is not a mapping
    """
    project_root = project_root or Path(__file__).parent
    load_dotenv(project_root / "config" / "secrets.env")

    loaded = {}
    config_path = project_root / "config" / "config.yaml"
    if config_path.exists():
        with open(config_path) as f:
            loaded = yaml.safe_load(f) or {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{config_path} must contain a mapping of sections")

    config = {}
    for section, defaults in DEFAULT_CONFIG.items():
        value = loaded.get(section)
        if value is None:
            config[section] = dict(defaults)
        elif isinstance(value, dict):
            config[section] = {**defaults, **value}
        else:
            config[section] = value

    # Add secrets from environment
    config['crackboard'] = {
        'session_key': os.getenv('CRACKBOARD_SESSION_KEY', '')
    }

    return config

def setup_logging(config: dict) -> logging.Logger:
    """Apply logging.level / logging.file, return the Main logger"""
    logging_config = _section(config, 'logging')
    level = str(logging_config.get('level', 'INFO')).upper()
    configure_logging(logging_config.get('file'), level if level in LOG_LEVELS else 'INFO')
    return setup_logger("Main")

async def main():
    """Main entry point"""
    shutdown_event = asyncio.Event()

    def handle_shutdown():
        print("\n🛑 Received shutdown signal")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_shutdown)

    try:
        config = load_config()
    except (ConfigError, yaml.YAMLError) as e:
        setup_logger("Main").error(f"❌ Configuration could not be loaded: {e}")
        return

    logger = setup_logging(config)
    logger.info("Configuration loaded")

    is_valid, errors = validate_config(config)
    if not is_valid:
        logger.error("❌ Configuration validation failed:")
        for error in errors:
            logger.error(f"  - {error}")
        return

    try:
        await run(config, shutdown_event)
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        raise

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
