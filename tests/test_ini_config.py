from __future__ import annotations

import pytest

from image_optimizer.config.ini_config import INI_ENV_VAR, IniConfig, IniSettings
from image_optimizer.models.errors import ConfigError
from image_optimizer.models.run_config import PngSlowPass


def test_load_settings_from_file(tmp_path):
    ini = tmp_path / "opt.ini"
    ini.write_text(
        "[optimize]\n"
        "quality = 72\n"
        "lossless = no\n"
        "recursive = yes\n"
        "max_edge_px = 1600\n"
        "png_slow_pass = Always\n"
        "png_time_budget_s = 0.5\n"
        "fail_on_error = true\n"
        "\n"
        "[update]\n"
        "release_url = https://example.test/latest\n"
        "timeout_seconds = 10\n",
        encoding="utf-8",
    )

    s = IniConfig(ini).load_settings()

    assert s.quality == 72
    assert s.lossless is False
    assert s.recursive is True
    assert s.max_edge_px == 1600
    assert s.png_slow_pass is PngSlowPass.ALWAYS
    assert s.png_time_budget_s == 0.5
    assert s.fail_on_error is True
    assert s.release_url == "https://example.test/latest"
    assert s.update_timeout_seconds == 10
    # unset keys stay None
    assert s.backup is None
    assert s.workers is None
    assert s.update_max_retries is None


def test_empty_values_count_as_unset(tmp_path):
    ini = tmp_path / "opt.ini"
    ini.write_text("[optimize]\nquality =\n", encoding="utf-8")
    assert IniConfig(ini).load_settings().quality is None


def test_invalid_number_is_config_error(tmp_path):
    ini = tmp_path / "opt.ini"
    ini.write_text("[optimize]\nquality = high\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        IniConfig(ini).load_settings()


def test_invalid_slow_pass_is_config_error(tmp_path):
    ini = tmp_path / "opt.ini"
    ini.write_text("[optimize]\npng_slow_pass = sometimes\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        IniConfig(ini).load_settings()


def test_missing_explicit_file_is_config_error(tmp_path, monkeypatch):
    monkeypatch.setenv(INI_ENV_VAR, str(tmp_path / "nope.ini"))
    with pytest.raises(ConfigError):
        IniConfig.from_env_or_default()


def test_env_var_selects_file(tmp_path, monkeypatch):
    ini = tmp_path / "custom.ini"
    ini.write_text("[optimize]\nworkers = 3\n", encoding="utf-8")
    monkeypatch.setenv(INI_ENV_VAR, str(ini))

    config = IniConfig.from_env_or_default()

    assert config.ini_path == ini
    assert config.load_settings().workers == 3


def test_missing_default_file_gives_empty_settings(tmp_path, monkeypatch):
    monkeypatch.delenv(INI_ENV_VAR, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))

    assert IniConfig.from_env_or_default().load_settings() == IniSettings()


def test_broken_ini_syntax_is_config_error(tmp_path):
    ini = tmp_path / "opt.ini"
    ini.write_text("quality = 80\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        IniConfig(ini)
