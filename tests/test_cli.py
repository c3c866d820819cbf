"""Tests for docsbundle.cli module."""

from __future__ import annotations

import json
import locale
from unittest.mock import patch

import pytest

from docsbundle.cli import (
    _build_config,
    _load_config,
    _parse_args,
    _parse_headers,
    _setup_locale,
    main,
)
from docsbundle.errors import InvalidConfigurationError
from docsbundle.extract import HeadingExtractor

from conftest import BASE_URL


@pytest.fixture
def no_user_config(tmp_path, monkeypatch):
    monkeypatch.setattr("docsbundle.cli.CONFIG_ENV_FILE", tmp_path / "missing.env")
    monkeypatch.chdir(tmp_path)


class TestLoadConfig:
    def test_prefers_local_env(self, tmp_path):
        (tmp_path / ".env").write_text("DOCSBUNDLE_TIMEOUT=5\n")
        with patch("docsbundle.cli.load_dotenv") as mock_load:
            assert _load_config(tmp_path) == tmp_path / ".env"
        mock_load.assert_called_once_with(tmp_path / ".env")

    def test_falls_back_to_user_config(self, tmp_path, monkeypatch):
        user_env = tmp_path / "config.env"
        user_env.write_text("")
        monkeypatch.setattr("docsbundle.cli.CONFIG_ENV_FILE", user_env)
        cwd = tmp_path / "project"
        cwd.mkdir()
        with patch("docsbundle.cli.load_dotenv") as mock_load:
            assert _load_config(cwd) == user_env
        mock_load.assert_called_once_with(user_env)

    def test_nothing_to_load(self, tmp_path, monkeypatch):
        monkeypatch.setattr("docsbundle.cli.CONFIG_ENV_FILE", tmp_path / "missing.env")
        with patch("docsbundle.cli.load_dotenv") as mock_load:
            assert _load_config(tmp_path) is None
        mock_load.assert_not_called()


class TestSetupLocale:
    def test_uses_environment_collation(self):
        with patch("docsbundle.cli.locale.setlocale") as mock_setlocale:
            _setup_locale()
        mock_setlocale.assert_called_once_with(locale.LC_COLLATE, "")

    def test_unsupported_locale_is_logged(self, caplog):
        with patch(
            "docsbundle.cli.locale.setlocale", side_effect=locale.Error("unsupported locale setting")
        ):
            _setup_locale()
        assert "unsupported locale setting" in caplog.text


class TestParseHeaders:
    def test_parses(self):
        assert _parse_headers(["Authorization: Bearer x", "X-A:1"]) == {
            "Authorization": "Bearer x",
            "X-A": "1",
        }

    @pytest.mark.parametrize("value", ["no-colon", ": empty-name"])
    def test_invalid(self, value):
        with pytest.raises(InvalidConfigurationError):
            _parse_headers([value])


class TestBuildConfig:
    def test_from_arguments(self, monkeypatch):
        monkeypatch.delenv("DOCSBUNDLE_MAX_CONCURRENCY", raising=False)
        args = _parse_args(
            [
                BASE_URL,
                "--name", "Example",
                "--slug", "example",
                "--version", "2",
                "--initial-path", "api/",
                "--only-pattern", "^api/",
                "--rate-limit", "120",
                "--type-name", "Reference",
                "--header", "X-Token: t",
            ]
        )
        config = _build_config(args)

        assert config.version == "2"
        assert config.initial_paths == ("api/",)
        assert config.options.rate_limit == 120
        assert config.options.max_concurrency == 20
        assert config.options.only_patterns[0].pattern == "^api/"
        assert config.headers == {"X-Token": "t"}
        assert isinstance(config.extractor, HeadingExtractor)
        assert config.extractor.type_name == "Reference"
        assert len(config.filters) == 4

    def test_environment_defaults(self, monkeypatch):
        monkeypatch.setenv("DOCSBUNDLE_MAX_CONCURRENCY", "3")
        args = _parse_args([BASE_URL, "--name", "E", "--slug", "e", "--no-default-filters"])
        config = _build_config(args)
        assert config.options.max_concurrency == 3
        assert len(config.filters) == 0

    def test_missing_required(self):
        with pytest.raises(SystemExit):
            _parse_args([BASE_URL, "--name", "E"])


class TestMain:
    def test_builds_local_mirror(self, mirror_dir, tmp_path, no_user_config):
        out = tmp_path / "out"
        code = main(
            [
                BASE_URL,
                "--name", "Example",
                "--slug", "example",
                "--local", str(mirror_dir),
                "-o", str(out),
                "--max-concurrency", "2",
            ]
        )

        assert code == 0
        bundle = out / "example"
        assert (bundle / "index.html").is_file()
        assert (bundle / "guide" / "intro.html").is_file()
        index = json.loads((bundle / "index.json").read_text())
        assert {e["path"] for e in index["entries"]} == {"guide/intro", "guide/intro#install"}
        manifest = json.loads((out / "docs.json").read_text())
        assert manifest[0]["name"] == "Example"

    def test_empty_crawl_fails(self, tmp_path, no_user_config):
        empty = tmp_path / "empty"
        empty.mkdir()
        code = main(
            [BASE_URL, "--name", "E", "--slug", "e", "--local", str(empty), "-o", str(tmp_path / "out")]
        )
        assert code == 1

    def test_setup_error_returns_one(self, tmp_path, no_user_config):
        code = main(
            [BASE_URL, "--name", "E", "--slug", "e", "--local", str(tmp_path / "nope")]
        )
        assert code == 1

    def test_keyboard_interrupt(self, no_user_config):
        with patch("docsbundle.cli._run_async", side_effect=KeyboardInterrupt):
            assert main([BASE_URL, "--name", "E", "--slug", "e"]) == 130
