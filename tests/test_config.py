"""
Tests for executor configuration.
"""

import logging
import pytest
from cadlang import ExecutorConfig, load_config


class TestExecutorConfig:

    def test_defaults(self):
        config = ExecutorConfig()
        assert config.max_steps == 100000
        assert config.max_call_depth == 64
        assert config.collapse_double_negation is True
        assert config.fold_negative_literals is True

    def test_replace(self):
        config = ExecutorConfig().replace(max_steps=10)
        assert config.max_steps == 10
        assert ExecutorConfig().max_steps == 100000

    def test_frozen(self):
        with pytest.raises(Exception):
            ExecutorConfig().max_steps = 1

    @pytest.mark.parametrize("changes", [
        {"max_steps": 0},
        {"max_steps": -5},
        {"max_steps": "10"},
        {"max_call_depth": True},
        {"collapse_double_negation": "yes"},
    ])
    def test_invalid_values(self, changes):
        with pytest.raises(ValueError):
            ExecutorConfig(**changes)

    def test_round_trip_dict(self):
        config = ExecutorConfig(max_steps=50, fold_negative_literals=False)
        assert ExecutorConfig.from_dict(config.to_dict()) == config

    def test_unknown_keys_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="cadlang.config"):
            config = ExecutorConfig.from_dict({"max_steps": 7, "colour": "blue"})
        assert config.max_steps == 7
        assert "colour" in caplog.text


class TestLoadConfig:
    """YAML configuration files."""

    def test_load(self, tmp_path):
        path = tmp_path / "cadlang.yaml"
        path.write_text("max_steps: 500\nmax_call_depth: 8\ncollapse_double_negation: false\n")
        config = load_config(path)
        assert config.max_steps == 500
        assert config.max_call_depth == 8
        assert config.collapse_double_negation is False
        assert config.fold_negative_literals is True

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(str(path)) == ExecutorConfig()

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError):
            load_config(path)

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("max_steps: lots\n")
        with pytest.raises(ValueError):
            load_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            load_config(tmp_path / "nope.yaml")
