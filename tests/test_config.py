"""
Tests for settings loading and connection configuration resolution.
"""

import pytest

from remotestage.config.loader import Settings, load_settings
from remotestage.config.resolver import resolve_cache_policy, resolve_descriptor, substitute_env
from remotestage.exceptions import ConfigurationError
from remotestage.staging.types import CachePolicy, StagePolicy


def _settings(preset):
    return Settings({"transfer-credentials": {"default": preset}})


class TestResolveDescriptor:
    def test_preset_only(self, settings):
        d = resolve_descriptor({}, "default", settings)
        assert d.server == "sftp.example.com"
        assert d.username == "migrate"
        assert d.password == "secret"
        assert d.port == 22  # coerced from "22"
        assert d.protocol == "sftp"

    def test_caller_fields_override_preset(self, settings):
        d = resolve_descriptor({"server": "other.example.com", "port": 2222}, "default", settings)
        assert d.server == "other.example.com"
        assert d.port == 2222
        assert d.username == "migrate"

    def test_none_values_do_not_override(self, settings):
        d = resolve_descriptor({"server": None, "username": None}, "default", settings)
        assert d.server == "sftp.example.com"

    def test_default_port_per_protocol(self):
        sftp = resolve_descriptor({}, "default", _settings({"server": "h", "username": "u", "password": "p"}))
        ftp = resolve_descriptor(
            {"protocol": "ftp"}, "default", _settings({"server": "h", "username": "u", "password": "p"})
        )
        assert sftp.port == 22
        assert ftp.port == 21

    def test_missing_settings_key(self, settings):
        with pytest.raises(ConfigurationError) as exc:
            resolve_descriptor({}, None, settings)
        assert exc.value.field == "settings"

    def test_unknown_settings_key(self, settings):
        with pytest.raises(ConfigurationError, match="nope"):
            resolve_descriptor({}, "nope", settings)

    @pytest.mark.parametrize(
        "preset,expected",
        [
            ({}, "server"),
            ({"password": "p"}, "server"),
            ({"server": "h"}, "username"),
            ({"server": "h", "port": 22}, "username"),
            ({"server": "h", "username": "u"}, "password"),
            ({"server": "h", "username": "u", "password": ""}, "password"),
        ],
    )
    def test_first_missing_field_is_reported(self, preset, expected):
        with pytest.raises(ConfigurationError) as exc:
            resolve_descriptor({}, "default", _settings(preset))
        assert exc.value.field == expected
        assert expected in str(exc.value)

    def test_explicit_empty_port_is_missing(self):
        preset = {"server": "h", "username": "u", "password": "p", "port": ""}
        with pytest.raises(ConfigurationError) as exc:
            resolve_descriptor({}, "default", _settings(preset))
        assert exc.value.field == "port"

    def test_invalid_port(self):
        preset = {"server": "h", "username": "u", "password": "p", "port": "twenty-two"}
        with pytest.raises(ConfigurationError) as exc:
            resolve_descriptor({}, "default", _settings(preset))
        assert exc.value.field == "port"

    def test_unknown_protocol(self):
        preset = {"server": "h", "username": "u", "password": "p", "protocol": "gopher"}
        with pytest.raises(ConfigurationError) as exc:
            resolve_descriptor({}, "default", _settings(preset))
        assert exc.value.field == "protocol"

    def test_password_hidden_from_repr(self, settings):
        d = resolve_descriptor({}, "default", settings)
        assert "secret" not in repr(d)


class TestResolveCachePolicy:
    def test_defaults(self):
        policy = resolve_cache_policy({})
        assert policy == CachePolicy(cache_path="remote_csv", policy=StagePolicy.CHECK_FRESHNESS)

    def test_always_without_cache_path_is_temporary(self):
        policy = resolve_cache_policy({"policy": "Always"})
        assert policy.policy is StagePolicy.ALWAYS
        assert policy.cache_path is None

    @pytest.mark.parametrize("value", ["CheckFreshness", "check_freshness", "CHECK-FRESHNESS"])
    def test_policy_spellings(self, value):
        assert resolve_cache_policy({"policy": value}).policy is StagePolicy.CHECK_FRESHNESS

    def test_unknown_policy(self):
        with pytest.raises(ConfigurationError) as exc:
            resolve_cache_policy({"policy": "sometimes"})
        assert exc.value.field == "policy"


class TestSettings:
    def test_get_namespace_key(self, settings):
        assert settings.get("transfer-credentials", "default")["server"] == "sftp.example.com"
        assert settings.get("transfer-credentials", "missing") is None
        assert settings.get("other", "default") is None

    def test_get_returns_copy(self, settings):
        settings.get("transfer-credentials", "default")["server"] = "changed"
        assert settings.get("transfer-credentials", "default")["server"] == "sftp.example.com"

    def test_dot_notation(self):
        s = Settings({"storage": {"root": "/data/cache"}})
        assert s.value("storage.root") == "/data/cache"
        assert s.value("storage.missing", "fallback") == "fallback"
        assert "storage.root" in s

    def test_storage_root_expands_user(self):
        s = Settings({"storage": {"root": "~/cache"}})
        assert not str(s.storage_root).startswith("~")
        assert Settings().storage_root is None

    def test_from_dict_substitutes_env(self, monkeypatch):
        monkeypatch.setenv("SFTP_PASSWORD", "from-env")
        s = Settings.from_dict({"transfer-credentials": {"default": {"password": "${SFTP_PASSWORD}"}}})
        assert s.get("transfer-credentials", "default")["password"] == "from-env"


class TestLoadSettings:
    def test_load_basic(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text(
            "transfer-credentials:\n"
            "  default:\n"
            "    server: sftp.example.com\n"
            "    username: migrate\n"
            "    password: secret\n"
            "    port: '22'\n"
        )
        settings = load_settings(path)
        assert settings.source == path
        assert resolve_descriptor({}, "default", settings).port == 22

    def test_env_var_substitution(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MY_SFTP_PASSWORD", "hunter2")
        path = tmp_path / "settings.yaml"
        path.write_text("transfer-credentials:\n  default:\n    password: ${MY_SFTP_PASSWORD}\n")
        assert load_settings(path).get("transfer-credentials", "default")["password"] == "hunter2"

    def test_unresolved_placeholder_kept(self):
        assert substitute_env("${REMOTESTAGE_SURELY_UNSET_VAR}") == "${REMOTESTAGE_SURELY_UNSET_VAR}"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("")
        assert load_settings(path).data == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_settings(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text(":\n  :\n  invalid: [")
        with pytest.raises(ConfigurationError, match="Error parsing"):
            load_settings(path)

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_settings(path)
