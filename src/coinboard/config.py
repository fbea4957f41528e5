from dataclasses import dataclass, field, is_dataclass
from pathlib import Path
import sys
import tomllib
from typing import Any, ClassVar, TypeVar

import keyring
from keyring.errors import KeyringError
from loguru import logger

# --- Constants ---
APP_NAME = "coinboard"
if sys.platform == "win32":
    CONFIG_DIR = Path.home() / "AppData" / "Roaming" / APP_NAME
else:
    CONFIG_DIR = Path.home() / ".config" / APP_NAME

CONFIG_FILE = CONFIG_DIR / "config.toml"

KEYRING_SERVICE_NAME = f"{APP_NAME}-api-keys"

DEFAULT_CONFIG_TEMPLATE = """\
# Coinboard configuration file.
# Uncomment and edit values to override the defaults.

# [general]
# log_level_console = "INFO"
# locale = "ru"

# [api]
# binance_enabled = true
# coincap_enabled = true

# [refresh]
# price_interval_s = 600
# converter_interval_s = 60

# [conversion.usd_rates]
# rub = 95.0
# eur = 0.92
"""

T = TypeVar("T")


@dataclass
class GeneralSettings:
    """General application settings."""

    log_level_console: str = "INFO"
    log_level_file: str = "DEBUG"
    log_directory: str = str(CONFIG_DIR / "logs")
    # Number and date formatting: "ru" or "en".
    locale: str = "ru"
    default_crypto: str = "btc"
    default_currency: str = "usd"


@dataclass
class APISettings:
    """Settings for the REST price sources.

    The CoinCap API key is stored in the system keyring, not here.
    """

    binance_enabled: bool = True
    coincap_enabled: bool = True
    binance_base_url: str = "https://api.binance.com/api/v3"
    coincap_base_url: str = "https://rest.coincap.io/v3"
    ticker_timeout_s: float = 10.0
    history_timeout_s: float = 20.0
    markets_ttl_s: float = 3600.0
    # Binance allows 1200 request weight per minute per IP.
    binance_weight_per_minute: int = 1200


@dataclass
class RefreshSettings:
    """Auto-refresh intervals for the pollers."""

    price_interval_s: float = 600.0
    chart_interval_s: float = 600.0
    converter_interval_s: float = 60.0


@dataclass
class ConversionSettings:
    """Static USD exchange rates used when no live fiat rate is available."""

    usd_rates: dict[str, float] = field(
        default_factory=lambda: {"usd": 1.0, "usdt": 1.0, "rub": 95.0, "eur": 0.92}
    )


@dataclass
class ChartSettings:
    default_period: str = "1y"
    placeholder_on_failure: bool = True


@dataclass
class PreferencesSettings:
    path: str = str(CONFIG_DIR / "preferences.json")
    max_age_s: int = 31_536_000


@dataclass
class Settings:
    """Root container for all application settings."""

    general: GeneralSettings = field(default_factory=GeneralSettings)
    api: APISettings = field(default_factory=APISettings)
    refresh: RefreshSettings = field(default_factory=RefreshSettings)
    conversion: ConversionSettings = field(default_factory=ConversionSettings)
    charts: ChartSettings = field(default_factory=ChartSettings)
    preferences: PreferencesSettings = field(default_factory=PreferencesSettings)

    _instance: ClassVar["Settings | None"] = None

    @classmethod
    def get_instance(cls) -> "Settings":
        """Returns the singleton instance of the Settings object."""
        if cls._instance is None:
            cls._instance = load_config()
        return cls._instance


def _update_dataclass(dc_instance: T, data: dict[str, Any]) -> T:
    """Recursively updates a dataclass instance from a dictionary.

    Dictionary-valued fields are merged key by key so a partial table in the
    TOML file keeps the remaining defaults.
    """
    for name in field_names(dc_instance):
        if name not in data:
            continue
        current = getattr(dc_instance, name)
        if is_dataclass(current):
            _update_dataclass(current, data[name])
        elif isinstance(current, dict) and isinstance(data[name], dict):
            current.update(data[name])
        else:
            setattr(dc_instance, name, data[name])
    return dc_instance


def field_names(dc_instance: Any) -> list[str]:
    """Helper to get field names from a dataclass instance."""
    return [f.name for f in dc_instance.__dataclass_fields__.values()]


def load_config(path: Path = CONFIG_FILE) -> Settings:
    """Loads settings from a TOML file, merging them with defaults.

    If the config file does not exist, a commented template is written there.

    Args:
        path: The path to the configuration file.

    Returns:
        A populated Settings object.
    """
    settings_obj = Settings()
    logger.info(f"Loading configuration from '{path}'...")

    if not path.exists():
        logger.warning(f"Configuration file not found. Creating default at '{path}'.")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(DEFAULT_CONFIG_TEMPLATE, encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to create default config file: {e}")
        return settings_obj

    try:
        with path.open("rb") as f:
            user_config = tomllib.load(f)
        _update_dataclass(settings_obj, user_config)
        logger.success("Successfully loaded user configuration.")
    except tomllib.TOMLDecodeError as e:
        logger.error(f"Error decoding TOML from '{path}': {e}")
        logger.warning("Using default settings due to configuration error.")
    except (OSError, TypeError, AttributeError) as e:
        logger.error(f"Could not apply configuration from '{path}': {e}")
        logger.warning("Using default settings due to configuration error.")
        settings_obj = Settings()

    return settings_obj


# --- Keyring Management ---


def get_api_key(service_name: str) -> str | None:
    """Retrieves the API key for a data provider from the system keyring.

    Args:
        service_name: The lower-case name of the provider (e.g., 'coincap').

    Returns:
        The stored key, or None if none is stored or the keyring is unusable.
    """
    service_name = service_name.lower()
    try:
        api_key = keyring.get_password(KEYRING_SERVICE_NAME, f"{service_name}_key")
    except KeyringError as e:
        logger.error(f"Could not retrieve credentials from keyring: {e}")
        return None
    if api_key:
        logger.debug(f"Retrieved API key for '{service_name}' from keyring.")
    return api_key


def set_api_key(service_name: str, api_key: str) -> bool:
    """Stores the API key for a data provider in the system keyring.

    Returns:
        True if the key was stored.
    """
    service_name = service_name.lower()
    try:
        keyring.set_password(KEYRING_SERVICE_NAME, f"{service_name}_key", api_key)
    except KeyringError as e:
        logger.error(f"Could not store credentials in keyring: {e}")
        return False
    logger.info(f"Successfully stored API key for '{service_name}' in keyring.")
    return True


# Other modules can simply `from coinboard.config import settings`
settings = Settings.get_instance()
