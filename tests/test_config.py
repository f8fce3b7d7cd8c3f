"""Tests for the config module."""

import os

import pydantic
import pytest

from specky.config import Settings, build_config, default_server_name
from specky.models import AuthConfig


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Strip any SPECKY_* variables inherited from the shell."""
    for name in list(os.environ):
        if name.upper().startswith("SPECKY_"):
            monkeypatch.delenv(name)


class TestBuildConfig:
    def test_defaults(self):
        config = build_config("petstore.json")
        assert config.spec == "petstore.json"
        assert config.mode == "search"
        assert config.auth == AuthConfig(type="none")
        assert config.tags == ()
        assert config.base_url is None

    def test_options(self):
        config = build_config(
            "petstore.json",
            verbose=True,
            mode="FULL",
            auth="bearer",
            token="abc",
            tags="pet, store,",
            include="^/pet",
        )
        assert config.mode == "full"
        assert config.verbose is True
        assert config.auth.type == "bearer"
        assert config.auth.token == "abc"
        assert config.tags == ("pet", "store")
        assert config.include == "^/pet"

    def test_environment_fallback(self, monkeypatch):
        monkeypatch.setenv("SPECKY_AUTH", "apikey")
        monkeypatch.setenv("SPECKY_KEY", "k")
        monkeypatch.setenv("SPECKY_BASE_URL", "http://local")

        config = build_config("petstore.json")
        assert config.auth == AuthConfig(type="apikey", token="k")
        assert config.base_url == "http://local"

    def test_option_beats_environment(self, monkeypatch):
        monkeypatch.setenv("SPECKY_MODE", "full")
        assert build_config("s.json", mode="search").mode == "search"

    def test_unset_option_falls_through(self, monkeypatch):
        monkeypatch.setenv("SPECKY_MODE", "full")
        assert build_config("s.json", mode=None).mode == "full"

    def test_empty_environment_value_ignored(self, monkeypatch):
        monkeypatch.setenv("SPECKY_MODE", "")
        assert build_config("s.json").mode == "search"

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            build_config("s.json", mode="everything")

    def test_unknown_mode_from_environment(self, monkeypatch):
        monkeypatch.setenv("SPECKY_MODE", "everything")
        with pytest.raises(ValueError):
            build_config("s.json")

    def test_unknown_auth(self):
        with pytest.raises(ValueError):
            build_config("s.json", auth="kerberos")

    def test_invalid_regex(self):
        with pytest.raises(ValueError):
            build_config("s.json", exclude="(unclosed")


class TestSettings:
    def test_validation_error_names_field(self):
        with pytest.raises(pydantic.ValidationError) as excinfo:
            Settings(include="[")
        assert excinfo.value.errors()[0]["loc"] == ("include",)

    def test_tag_list(self):
        assert Settings(tags=" a ,,b").tag_list == ("a", "b")
        assert Settings().tag_list == ()


class TestDefaultServerName:
    def test_slug(self):
        assert default_server_name("Swagger  Petstore\tAPI") == "specky-swagger-petstore-api"
