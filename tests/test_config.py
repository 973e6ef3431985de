import json

import pytest

from tiles3d.config import DEFAULT_CONFIG, RECOGNIZED_VERSIONS, CodecConfig, ConfigError, load_config, parse_config


class TestParseConfig:
    def test_defaults(self):
        assert parse_config({}) == DEFAULT_CONFIG
        assert DEFAULT_CONFIG.max_composite_depth == 16
        assert DEFAULT_CONFIG.recognized_versions == RECOGNIZED_VERSIONS

    def test_all_keys(self):
        config = parse_config({"max_composite_depth": 3, "recognized_versions": ["1.0"], "json_indent": 2})
        assert config == CodecConfig(3, ("1.0",), 2)

    @pytest.mark.parametrize(
        "data",
        [
            {"max_depth": 3},
            {"max_composite_depth": 0},
            {"max_composite_depth": True},
            {"max_composite_depth": "8"},
            {"recognized_versions": "1.0"},
            {"recognized_versions": [1.0]},
            {"json_indent": -1},
        ],
    )
    def test_invalid(self, data):
        with pytest.raises(ConfigError):
            parse_config(data)


class TestLoadConfig:
    def test_reads_json_file(self, tmp_path):
        path = tmp_path / "codec.json"
        path.write_text(json.dumps({"json_indent": 4}), "utf-8")
        assert load_config(path).json_indent == 4

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Failed to read config"):
            load_config(tmp_path / "absent.json")

    def test_root_must_be_object(self, tmp_path):
        path = tmp_path / "codec.json"
        path.write_text("[]", "utf-8")
        with pytest.raises(ConfigError, match="must be an object"):
            load_config(path)
