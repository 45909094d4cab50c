# tests/config/test_engine_config.py
# 引擎配置加载测试

"""引擎配置加载测试。"""
import pytest

from redbox.config import ConfigurationError, EngineConfig, EngineConfigLoader, _expand_env_vars


class TestEngineConfig:
    def test_defaults(self):
        config = EngineConfig()
        assert config.catalog == "westminster"
        assert config.random_seed is None
        assert config.max_hired_advisers == 3
        assert config.resignation_probability == 0.3
        assert config.resignation_ignored_threshold == 8
        assert config.scheduled_message_interval == 6
        assert config.first_message_turn == 3

    def test_make_rng_is_seeded(self):
        config = EngineConfig(random_seed=42)
        assert config.make_rng().random() == config.make_rng().random()

    def test_from_dict_coerces_strings(self):
        config = EngineConfig.from_dict({"random_seed": "42", "resignation_probability": "0.5"})
        assert config.random_seed == 42
        assert config.resignation_probability == 0.5

    @pytest.mark.parametrize("data", [
        {"random_seed": "abc"},
        {"resignation_probability": 1.5},
        {"max_hired_advisers": 0},
        {"scheduled_message_interval": 0},
        {"first_message_turn": -1},
    ])
    def test_invalid_values(self, data):
        with pytest.raises(ConfigurationError):
            EngineConfig.from_dict(data)


class TestEngineConfigLoader:
    def test_no_file_gives_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert EngineConfigLoader().resolve() == EngineConfig()

    def test_code_config_overrides_file(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text("redbox:\n  random_seed: 1\n  first_message_turn: 2\n", encoding="utf-8")
        config = EngineConfigLoader({"random_seed": 9, "catalog_path": None}, str(path)).resolve()
        assert config.random_seed == 9
        assert config.first_message_turn == 2

    def test_auto_search(self, tmp_path, monkeypatch):
        (tmp_path / "config").mkdir()
        (tmp_path / "config" / "redbox_config.yaml").write_text(
            "scheduled_message_interval: 4\n", encoding="utf-8"
        )
        monkeypatch.chdir(tmp_path)
        assert EngineConfigLoader().resolve().scheduled_message_interval == 4

    def test_env_var_expansion(self, tmp_path, monkeypatch):
        monkeypatch.setenv("REDBOX_SEED", "17")
        monkeypatch.delenv("REDBOX_CATALOG", raising=False)
        path = tmp_path / "redbox_config.yaml"
        path.write_text(
            "redbox:\n"
            "  random_seed: ${REDBOX_SEED}\n"
            "  catalog: ${REDBOX_CATALOG:-westminster}\n",
            encoding="utf-8",
        )
        config = EngineConfigLoader(config_file=str(path)).resolve()
        assert config.random_seed == 17
        assert config.catalog == "westminster"

    def test_missing_file_is_ignored(self, tmp_path, caplog):
        loader = EngineConfigLoader(config_file=str(tmp_path / "absent.yaml"))
        assert loader.resolve() == EngineConfig()
        assert "absent.yaml" in caplog.text

    def test_malformed_file(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            EngineConfigLoader(config_file=str(path))


class TestExpandEnvVars:
    def test_nested_structures(self, monkeypatch):
        monkeypatch.setenv("A", "x")
        monkeypatch.delenv("B", raising=False)
        assert _expand_env_vars({"k": ["${A}", "${B:-y}", "${B}"], "n": 3}) == {
            "k": ["x", "y", "${B}"],
            "n": 3,
        }
