"""Tests for configuration loading and saving."""
import json
import os
import pytest
from unittest.mock import patch

from cardscan.config.defaults import DEFAULT_CONFIG
from cardscan.config.env_config import EnvironmentError, load_env_file, load_environment_config
from cardscan.config.settings import Config, load_config, save_config
from cardscan.core.exceptions import ConfigError


@pytest.fixture
def no_env_file(temp_dir):
    return str(temp_dir / "missing.env")


def write_json(path, data):
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f)
    return str(path)


class TestLoadConfig:

    def test_defaults_when_file_missing(self, temp_dir, no_env_file, clean_env):
        cfg = load_config(str(temp_dir / "config.json"), no_env_file)

        assert cfg.error_correction_duration_ms == 2000
        assert cfg.grid_model_name == "findfour.pt"
        assert cfg.sensor_orientation == 90
        assert cfg.extra == {}

    def test_values_from_file(self, temp_dir, no_env_file, clean_env):
        path = write_json(temp_dir / "config.json", {
            "models_dir": "assets/models",
            "error_correction_duration_ms": 1500,
            "draw_debug_boxes": True,
            "custom_key": "kept",
        })

        cfg = load_config(path, no_env_file)

        assert cfg.models_dir == os.path.normpath("assets/models")
        assert cfg.error_correction_duration_ms == 1500
        assert cfg.draw_debug_boxes is True
        assert cfg.extra == {"custom_key": "kept"}
        assert cfg.get("custom_key") == "kept"

    def test_malformed_json_falls_back(self, temp_dir, no_env_file, clean_env):
        path = temp_dir / "config.json"
        path.write_text("{not json", encoding="utf-8")

        cfg = load_config(str(path), no_env_file)

        assert cfg.to_dict() == Config().to_dict()

    def test_non_object_json_falls_back(self, temp_dir, no_env_file, clean_env):
        path = write_json(temp_dir / "config.json", [1, 2, 3])

        assert load_config(path, no_env_file).models_dir == DEFAULT_CONFIG["models_dir"]

    @pytest.mark.parametrize("key,value", [
        ("error_correction_duration_ms", -5),
        ("error_correction_duration_ms", "fast"),
        ("roi_center_y_ratio", 1.5),
        ("sensor_orientation", 45),
    ])
    def test_invalid_values_reset_to_default(self, temp_dir, no_env_file, clean_env, key, value):
        path = write_json(temp_dir / "config.json", {key: value})

        cfg = load_config(path, no_env_file)

        assert getattr(cfg, key) == DEFAULT_CONFIG[key]

    def test_empty_model_name_falls_back_to_defaults(self, temp_dir, no_env_file, clean_env):
        path = write_json(temp_dir / "config.json", {"grid_model_name": "", "draw_debug_boxes": True})

        cfg = load_config(path, no_env_file)

        assert cfg.grid_model_name == "findfour.pt"
        assert cfg.draw_debug_boxes is False

    def test_environment_overrides_file(self, temp_dir, no_env_file, clean_env):
        path = write_json(temp_dir / "config.json", {"models_dir": "from_file", "device": "cpu"})
        env = {
            "CARDSCAN_MODELS_DIR": "from_env",
            "CARDSCAN_DEVICE": "cuda",
            "CARDSCAN_ERROR_CORRECTION_MS": "3000",
            "CARDSCAN_LOG_LEVEL": "warning",
        }

        with patch.dict(os.environ, env):
            cfg = load_config(path, no_env_file)

        assert cfg.models_dir == "from_env"
        assert cfg.device == "cuda"
        assert cfg.error_correction_duration_ms == 3000
        assert cfg.log_level == "WARNING"

    def test_debug_logging_forces_debug_level(self, temp_dir, no_env_file, clean_env):
        with patch.dict(os.environ, {"DEBUG_LOGGING": "true"}):
            cfg = load_config(str(temp_dir / "config.json"), no_env_file)

        assert cfg.debug is True
        assert cfg.log_level == "DEBUG"

    def test_invalid_environment_is_ignored(self, temp_dir, no_env_file, clean_env):
        with patch.dict(os.environ, {"CARDSCAN_ERROR_CORRECTION_MS": "soon", "CARDSCAN_DEVICE": "cuda"}):
            cfg = load_config(str(temp_dir / "config.json"), no_env_file)

        assert cfg.error_correction_duration_ms == 2000
        assert cfg.device == "auto"


class TestEnvironmentConfig:

    def test_env_file_is_parsed(self, temp_dir, clean_env):
        env_file = temp_dir / ".env"
        env_file.write_text(
            "# scanner settings\n"
            "CARDSCAN_MODELS_DIR='models/v2'\n"
            "CARDSCAN_DEVICE=\"CPU\"\n"
            "not a setting\n",
            encoding="utf-8",
        )

        env = load_environment_config(str(env_file))

        assert env.models_dir == os.path.normpath("models/v2")
        assert env.device == "cpu"
        assert env.error_correction_duration_ms is None
        assert env.debug_logging is False

    def test_missing_env_file(self, temp_dir):
        assert load_env_file(str(temp_dir / "nope.env")) == {}

    def test_out_of_range_window_raises(self, clean_env, no_env_file):
        with patch.dict(os.environ, {"CARDSCAN_ERROR_CORRECTION_MS": "-1"}):
            with pytest.raises(EnvironmentError):
                load_environment_config(no_env_file)

    def test_shell_metacharacters_in_path_raise(self, clean_env, no_env_file):
        with patch.dict(os.environ, {"CARDSCAN_MODELS_DIR": "models; rm -rf /"}):
            with pytest.raises(EnvironmentError):
                load_environment_config(no_env_file)

    def test_unknown_device_ignored(self, clean_env, no_env_file):
        with patch.dict(os.environ, {"CARDSCAN_DEVICE": "tpu"}):
            assert load_environment_config(no_env_file).device is None


class TestSaveConfig:

    def test_round_trip(self, temp_dir, no_env_file, clean_env):
        path = str(temp_dir / "config.json")
        cfg = Config(error_correction_duration_ms=1234, extra={"custom_key": 1})

        save_config(cfg, path)
        loaded = load_config(path, no_env_file)

        assert loaded.error_correction_duration_ms == 1234
        assert loaded.extra == {"custom_key": 1}
        assert not os.path.exists(path + ".backup")

    def test_overwrite_keeps_no_backup_on_success(self, temp_dir):
        path = str(temp_dir / "config.json")
        save_config(Config(), path)
        save_config(Config(draw_debug_boxes=True), path)

        with open(path, encoding="utf-8") as f:
            assert json.load(f)["draw_debug_boxes"] is True
        assert not os.path.exists(path + ".backup")


class TestValidate:

    @pytest.mark.parametrize("kwargs", [
        {"sensor_orientation": 45},
        {"roi_center_y_ratio": -0.1},
        {"error_correction_duration_ms": -1},
        {"digit_model_name": ""},
    ])
    def test_invalid_config_raises(self, kwargs):
        with pytest.raises(ConfigError):
            Config(**kwargs).validate()

    def test_defaults_are_valid(self):
        Config().validate()
