"""
Config System (config.py)

Tests MvcConfig and ConfigLoader.
"""

from dataclasses import dataclass
from typing import Optional

import pytest

from minimvc.config import ConfigError, ConfigLoader, MvcConfig


# ============================================================================
# MvcConfig
# ============================================================================

class TestMvcConfig:

    def test_defaults(self):
        config = MvcConfig()
        assert config.fault_status == 500
        assert config.form_methods == ("POST", "PUT", "PATCH", "DELETE")
        assert config.views_folder == "Views"

    def test_form_methods_upper_cased(self):
        assert MvcConfig(form_methods=("post", "Put")).form_methods == ("POST", "PUT")

    @pytest.mark.parametrize("status", [0, 99, 600])
    def test_fault_status_validated(self, status):
        with pytest.raises(ConfigError):
            MvcConfig(fault_status=status)


# ============================================================================
# ConfigLoader
# ============================================================================

class TestConfigLoader:

    def test_empty_environment_gives_defaults(self):
        loader = ConfigLoader.load(environ={})
        assert loader.get_config(MvcConfig) == MvcConfig()

    def test_environment_variables(self):
        loader = ConfigLoader.load(environ={
            "MINIMVC_FAULT_STATUS": "400",
            "MINIMVC_VIEWS_AUTOESCAPE": "off",
            "MINIMVC_SLOW_REQUEST_MS": "250",
            "OTHER_FAULT_STATUS": "418",
        })
        config = loader.get_config(MvcConfig)
        assert config.fault_status == 400
        assert config.views_autoescape is False
        assert config.slow_request_ms == 250.0

    def test_comma_separated_tuple(self):
        loader = ConfigLoader.load(environ={"MINIMVC_FORM_METHODS": "post, put"})
        assert loader.get_config(MvcConfig).form_methods == ("POST", "PUT")

    def test_json_list_tuple(self):
        loader = ConfigLoader.load(environ={"MINIMVC_FORM_METHODS": '["PATCH"]'})
        assert loader.get_config(MvcConfig).form_methods == ("PATCH",)

    def test_nested_keys(self):
        loader = ConfigLoader.load(environ={"MINIMVC_DB__HOST": "localhost", "MINIMVC_DB__PORT": "5432"})
        assert loader.get("db.host") == "localhost"
        assert loader.get("db.port") == 5432
        assert loader.get("db.missing", "x") == "x"

    def test_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "# local settings\n"
            "MINIMVC_FAULT_STATUS=422\n"
            'MINIMVC_VIEWS_FOLDER="templates"\n'
            "UNRELATED=1\n"
        )
        loader = ConfigLoader.load(env_file=str(env_file), environ={})
        config = loader.get_config(MvcConfig)
        assert config.fault_status == 422
        assert config.views_folder == "templates"
        assert "unrelated" not in loader.to_dict()

    def test_environment_overrides_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("MINIMVC_FAULT_STATUS=422\n")
        loader = ConfigLoader.load(env_file=str(env_file), environ={"MINIMVC_FAULT_STATUS": "503"})
        assert loader.get_config(MvcConfig).fault_status == 503

    def test_missing_env_file_ignored(self, tmp_path):
        loader = ConfigLoader.load(env_file=str(tmp_path / "nope.env"), environ={})
        assert loader.to_dict() == {}

    def test_overrides_win(self):
        loader = ConfigLoader.load(
            environ={"MINIMVC_FAULT_STATUS": "400"},
            overrides={"fault_status": 409},
        )
        assert loader.get_config(MvcConfig).fault_status == 409

    def test_custom_prefix(self):
        loader = ConfigLoader.load(env_prefix="SHOP_", environ={"SHOP_FAULT_STATUS": "502"})
        assert loader.get_config(MvcConfig).fault_status == 502

    def test_wrong_type_rejected(self):
        loader = ConfigLoader.load(environ={"MINIMVC_FAULT_STATUS": "true"})
        with pytest.raises(ConfigError, match="fault_status"):
            loader.get_config(MvcConfig)

    def test_invalid_status_rejected(self):
        loader = ConfigLoader.load(overrides={"fault_status": 42}, environ={})
        with pytest.raises(ConfigError):
            loader.get_config(MvcConfig)

    def test_section(self):
        @dataclass
        class DatabaseConfig:
            host: str
            port: int = 5432
            user: Optional[str] = None

        loader = ConfigLoader.load(environ={"MINIMVC_DB__HOST": "db.local"})
        db = loader.get_config(DatabaseConfig, section="db")
        assert db == DatabaseConfig(host="db.local")

    def test_required_field_missing(self):
        @dataclass
        class Required:
            name: str

        with pytest.raises(ConfigError, match="name"):
            ConfigLoader.load(environ={}).get_config(Required)

    def test_not_a_dataclass(self):
        with pytest.raises(ConfigError):
            ConfigLoader.load(environ={}).get_config(dict)


class TestParseValue:

    @pytest.mark.parametrize("raw,expected", [
        ("yes", True),
        ("False", False),
        ("12", 12),
        ("1.5", 1.5),
        ('{"a": 1}', {"a": 1}),
        ("[1, 2]", [1, 2]),
        ("[broken", "[broken"),
        ("plain", "plain"),
    ])
    def test_parse(self, raw, expected):
        assert ConfigLoader()._parse_value(raw) == expected
