"""Settings configuration loader module.

This module handles loading and parsing of the main settings.conf file which contains
the marketplace settings: fee recipient, commission percentage, the identity that
holds escrowed assets, and the item ledger backend.

The settings file uses INI format with a [DEFAULT] section containing key-value pairs.

Required settings:
    fee_account: Identity that receives the marketplace commission

Example settings.conf:
    [DEFAULT]
    fee_account = 0xFeeRecipient
    fee_percent = 1
    ledger_backend = memory

Raises:
    SettingsError: If the settings file is missing, invalid, or missing required settings
"""
from configparser import ConfigParser
from pathlib import Path
from typing import Dict, Any, List
import logging

logger = logging.getLogger(__name__)

LEDGER_BACKENDS = ('memory', 'postgres')

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

class ConfigValidationError:
    """Helper class to format configuration validation errors"""
    def __init__(self):
        self.missing: List[str] = []
        self.invalid: List[str] = []
        self.missing_sections: List[str] = []

    def has_errors(self) -> bool:
        """Check if any errors exist"""
        return bool(self.missing or self.invalid or self.missing_sections)

    def format_message(self) -> str:
        """Format error message in a clean, readable way"""
        messages = []

        if self.missing_sections:
            messages.append("Missing required sections:")
            messages.extend(f"  - {item}" for item in self.missing_sections)

        if self.missing:
            if messages:
                messages.append("")
            messages.append("Missing required settings:")
            messages.extend(f"  - {item}" for item in self.missing)

        if self.invalid:
            if messages:
                messages.append("")
            messages.append("Invalid settings:")
            messages.extend(f"  - {item}" for item in self.invalid)

        return "\n".join(messages)

class SettingsError(Exception):
    """Raised when there are issues loading or parsing the settings configuration."""
    pass

# Default settings
DEFAULTS = {
    'fee_percent': '1',  # 1% commission on top of the listing price
    'marketplace_address': 'marketplace',  # Identity that holds escrowed assets
    'ledger_backend': 'memory',
    'db_url': 'postgresql://root@localhost:26257/defaultdb?sslmode=disable',
    'registry_rpc_url': '',
    'registry_rpc_user': '',
    'registry_rpc_password': '',
    'registry_rpc_timeout': '10',  # Seconds before an RPC request is abandoned
    'registry_addresses': '',  # Comma-separated collection addresses served by the RPC node
    'log_level': 'INFO'
}

REQUIRED_SETTINGS = ['fee_account']

def load_settings_conf(settings_path: str = ".") -> Dict[str, Any]:
    """Load and parse settings.conf file with strict validation

    Args:
        settings_path: Directory containing settings.conf

    Returns:
        Dictionary containing parsed and validated settings

    Raises:
        SettingsError: If file not found, parsing fails, or validation fails
    """
    config_path = Path(settings_path) / 'settings.conf'

    if not config_path.exists():
        raise SettingsError(
            f"Settings file not found at: {config_path}\n"
            "Please create settings.conf based on examples/settings.conf.example"
        )

    try:
        parser = ConfigParser()
        parser.read(config_path)

        errors = ConfigValidationError()

        # Sections other than DEFAULT are ignored; an empty DEFAULT means the file has no settings at all
        if not parser.defaults():
            errors.missing_sections.append('[DEFAULT]')
            raise SettingsError(
                "Settings Configuration Validation Failed\n\n" +
                errors.format_message()
            )

        settings = dict(DEFAULTS)
        settings.update(parser.defaults())

        missing = [key for key in REQUIRED_SETTINGS if not settings.get(key)]
        if missing:
            errors.missing.extend(missing)
            raise SettingsError(
                "Settings Configuration Validation Failed\n\n" +
                errors.format_message()
            )

        logger.debug(f"Loaded settings from {config_path}")
        return validate_settings(settings)

    except Exception as e:
        if isinstance(e, SettingsError):
            raise
        raise SettingsError(f"Error parsing settings.conf: {str(e)}")

def validate_settings(settings: Dict[str, Any]) -> Dict[str, Any]:
    """Validate loaded settings.

    Args:
        settings: Dictionary of settings to validate

    Returns:
        Validated and processed settings

    Raises:
        SettingsError: If validation fails
    """
    errors = ConfigValidationError()

    try:
        settings['fee_percent'] = int(settings['fee_percent'])
        if settings['fee_percent'] < 0:
            errors.invalid.append("fee_percent: must not be negative")
    except (TypeError, ValueError):
        errors.invalid.append(f"fee_percent: not an integer ({settings['fee_percent']!r})")

    try:
        settings['registry_rpc_timeout'] = float(settings['registry_rpc_timeout'])
        if settings['registry_rpc_timeout'] <= 0:
            errors.invalid.append("registry_rpc_timeout: must be positive")
    except (TypeError, ValueError):
        errors.invalid.append(
            f"registry_rpc_timeout: not a number ({settings['registry_rpc_timeout']!r})"
        )

    settings['registry_addresses'] = [
        address.strip() for address in settings['registry_addresses'].split(',') if address.strip()
    ]
    if settings['registry_addresses'] and not settings['registry_rpc_url']:
        errors.invalid.append("registry_addresses: requires registry_rpc_url")

    settings['ledger_backend'] = settings['ledger_backend'].strip().lower()
    if settings['ledger_backend'] not in LEDGER_BACKENDS:
        errors.invalid.append(
            f"ledger_backend: expected one of {', '.join(LEDGER_BACKENDS)}, "
            f"got {settings['ledger_backend']!r}"
        )

    settings['log_level'] = settings['log_level'].strip().upper()
    if settings['log_level'] not in LOG_LEVELS:
        errors.invalid.append(f"log_level: unknown level {settings['log_level']!r}")

    if not settings['marketplace_address']:
        errors.invalid.append("marketplace_address: must not be empty")

    if errors.has_errors():
        raise SettingsError(
            "Settings Configuration Validation Failed\n\n" +
            errors.format_message()
        )

    return settings
