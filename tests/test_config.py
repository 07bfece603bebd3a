"""
Configuration loading tests (environment variables and .env files).
"""

import pytest

from marketsim.config import AccountConfig, Config, MarketConfig, RunnerConfig, get_config


@pytest.fixture
def no_env_file(tmp_path):
    return str(tmp_path / "missing.env")


class TestDefaults:

    def test_defaults(self, no_env_file, monkeypatch):
        for name in ("SIM_TIMEFRAMES", "SIM_RANDOM_SEED", "SIM_SCAN_ENABLED", "SIM_SEED_FETCH",
                     "SIM_TICK_RATE_HZ", "SIM_INITIAL_BALANCE"):
            monkeypatch.delenv(name, raising=False)

        config = Config(no_env_file)

        assert config.market.timeframes == ["1s", "10s", "30s", "1m", "5m", "15m"]
        assert config.market.random_seed is None
        assert config.account.initial_balance == 10.0
        assert config.runner.tick_rate_hz == 10.0
        assert config.runner.tick_interval == pytest.approx(0.1)
        assert config.scanner.enabled is True
        assert config.seed.fetch is True

    def test_singleton(self, no_env_file):
        assert get_config(no_env_file) is get_config(no_env_file)

    def test_reset_rereads_environment(self, no_env_file, monkeypatch):
        monkeypatch.setenv("SIM_INITIAL_BALANCE", "5")
        first = get_config(no_env_file)
        Config.reset()
        monkeypatch.setenv("SIM_INITIAL_BALANCE", "7")
        second = get_config(no_env_file)
        assert first is not second
        assert second.account.initial_balance == 7.0


class TestEnvironment:

    def test_timeframes_normalized(self, no_env_file, monkeypatch):
        monkeypatch.setenv("SIM_TIMEFRAMES", "1s, 1M ,")
        assert Config(no_env_file).market.timeframes == ["1s", "1m"]

    def test_invalid_timeframe(self, no_env_file, monkeypatch):
        monkeypatch.setenv("SIM_TIMEFRAMES", "1s,2h")
        with pytest.raises(ValueError, match="Invalid timeframe"):
            Config(no_env_file)

    def test_random_seed(self, no_env_file, monkeypatch):
        monkeypatch.setenv("SIM_RANDOM_SEED", "1234")
        assert Config(no_env_file).market.random_seed == 1234

    def test_scanner_and_fetch_flags(self, no_env_file, monkeypatch):
        monkeypatch.setenv("SIM_SCAN_ENABLED", "false")
        monkeypatch.setenv("SIM_SEED_FETCH", "FALSE")
        config = Config(no_env_file)
        assert config.scanner.enabled is False
        assert config.seed.fetch is False

    def test_leverage_capped(self, no_env_file, monkeypatch):
        monkeypatch.setenv("SIM_MAX_LEVERAGE", "500")
        assert Config(no_env_file).account.max_leverage == 100.0

    def test_zero_tick_rate_rejected(self, no_env_file, monkeypatch):
        monkeypatch.setenv("SIM_TICK_RATE_HZ", "0")
        with pytest.raises(ValueError, match="tick_rate_hz"):
            Config(no_env_file)

    def test_seed_symbol_uppercased(self, no_env_file, monkeypatch):
        monkeypatch.setenv("SIM_SEED_SYMBOL", " ethusdt ")
        assert Config(no_env_file).seed.symbol == "ETHUSDT"

    def test_env_file_overrides(self, tmp_path, monkeypatch):
        # Registered first so monkeypatch restores the value load_dotenv overwrites
        monkeypatch.setenv("SIM_TICK_RATE_HZ", "10")
        env_file = tmp_path / ".env"
        env_file.write_text("SIM_TICK_RATE_HZ=4\nSIM_SEED_SYMBOL=SOLUSDT\n")
        monkeypatch.setenv("SIM_SEED_SYMBOL", "BTCUSDT")

        config = Config(str(env_file))

        assert config.runner.tick_rate_hz == 4.0
        assert config.seed.symbol == "SOLUSDT"

    def test_summary_short(self, no_env_file, monkeypatch):
        monkeypatch.setenv("SIM_SEED_FETCH", "false")
        monkeypatch.setenv("SIM_SCAN_ENABLED", "true")
        monkeypatch.setenv("SIM_SEED_SYMBOL", "BTCUSDT")
        monkeypatch.setenv("SIM_TICK_RATE_HZ", "10")
        summary = Config(no_env_file).summary_short()
        assert summary.startswith("BTCUSDT | seed: fallback")
        assert "10 Hz" in summary
        assert summary.endswith("scanner: on")


class TestSections:

    def test_market_requires_a_timeframe(self):
        with pytest.raises(ValueError):
            MarketConfig(timeframes=[])

    def test_account_history_floor(self):
        assert AccountConfig(history_size=0).history_size == 1

    def test_runner_display_timeframe_normalized(self):
        assert RunnerConfig(display_timeframe="5M").display_timeframe == "5m"
