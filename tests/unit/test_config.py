from pathlib import Path

import pytest
from keyring.errors import KeyringError

from coinboard import config
from coinboard.config import DEFAULT_CONFIG_TEMPLATE, Settings, load_config


def test_missing_file_writes_template(tmp_path: Path) -> None:
    path = tmp_path / "coinboard" / "config.toml"

    settings = load_config(path)

    assert settings == Settings()
    assert path.read_text(encoding="utf-8") == DEFAULT_CONFIG_TEMPLATE


def test_template_only_contains_comments(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text(DEFAULT_CONFIG_TEMPLATE, encoding="utf-8")
    assert load_config(path) == Settings()


def test_user_values_are_merged(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text(
        """
[general]
locale = "en"

[api]
coincap_enabled = false

[refresh]
converter_interval_s = 30

[conversion.usd_rates]
rub = 90.5
""",
        encoding="utf-8",
    )

    settings = load_config(path)

    assert settings.general.locale == "en"
    assert settings.general.default_crypto == "btc"
    assert settings.api.coincap_enabled is False
    assert settings.api.binance_enabled is True
    assert settings.refresh.converter_interval_s == 30
    assert settings.conversion.usd_rates["rub"] == 90.5
    # Keys not in the file keep their defaults.
    assert settings.conversion.usd_rates["eur"] == 0.92


def test_invalid_toml_falls_back_to_defaults(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text("[general\nlocale = ", encoding="utf-8")
    assert load_config(path) == Settings()


def test_get_api_key(mocker) -> None:
    get_password = mocker.patch("coinboard.config.keyring.get_password", return_value="k")
    assert config.get_api_key("CoinCap") == "k"
    get_password.assert_called_once_with(config.KEYRING_SERVICE_NAME, "coincap_key")


def test_get_api_key_keyring_failure(mocker) -> None:
    mocker.patch(
        "coinboard.config.keyring.get_password", side_effect=KeyringError("locked")
    )
    assert config.get_api_key("coincap") is None


def test_set_api_key(mocker) -> None:
    set_password = mocker.patch("coinboard.config.keyring.set_password")
    assert config.set_api_key("coincap", "secret") is True
    set_password.assert_called_once_with(
        config.KEYRING_SERVICE_NAME, "coincap_key", "secret"
    )


def test_set_api_key_keyring_failure(mocker) -> None:
    mocker.patch(
        "coinboard.config.keyring.set_password", side_effect=KeyringError("locked")
    )
    assert config.set_api_key("coincap", "secret") is False


@pytest.mark.parametrize("section", ["general", "api", "refresh", "conversion", "charts", "preferences"])
def test_settings_sections_exist(section: str) -> None:
    assert hasattr(Settings(), section)
