"""Tests for settings helpers."""

from swapchat.config import Settings


class TestSettings:
    def test_minter_address_routing(self, settings):
        assert settings.minter_address("kas") == settings.minter_address_kas
        assert settings.minter_address("CUSDT") == settings.minter_address_bridged
        assert settings.minter_address(" cbtc ") == settings.minter_address_bridged
        assert settings.minter_address("PINTL") == settings.minter_address_krc20

    def test_bridged_token_list(self):
        settings = Settings(_env_file=None, bridged_tokens="cusdt, ,CETH")

        assert settings.bridged_token_list == ["CUSDT", "CETH"]

    def test_explorer_link(self, settings):
        assert settings.explorer_link("abc") == "https://kas.fyi/transaction/abc"

    def test_safe_dict_redacts_secrets(self):
        settings = Settings(
            _env_file=None,
            telegram_bot_token="123:secret",
            database_url="postgresql+asyncpg://swap:hunter2@db/swap",
        )

        safe = settings.get_safe_dict()

        assert safe["telegram_bot_token"] == "***"
        assert safe["database_url"] == "postgresql+asyncpg://swap:***@db/swap"
        assert "hunter2" not in str(safe)
