from pathlib import Path

from modlinker.config import Settings
from modlinker.matching.fuzzy import Matcher


class TestSettings:
    def test_environment_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MODLINKER_CACHE_DIR", str(tmp_path / "cache"))
        monkeypatch.setenv("MODLINKER_GAME_DIR", str(tmp_path / "game"))
        monkeypatch.setenv("MODLINKER_LOG_LEVEL", "debug")

        settings = Settings()

        assert settings.cache_dir == tmp_path / "cache"
        assert settings.game_dir == tmp_path / "game"
        assert settings.has_game_dir
        assert settings.log_level == "DEBUG"

    def test_defaults_follow_xdg(self, tmp_path, monkeypatch):
        monkeypatch.delenv("MODLINKER_CACHE_DIR", raising=False)
        monkeypatch.delenv("MODLINKER_GAME_DIR", raising=False)
        monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg-cache"))
        monkeypatch.chdir(tmp_path)

        settings = Settings(_env_file=None)

        assert settings.cache_dir == tmp_path / "xdg-cache" / "modlinker"
        assert not settings.has_game_dir

    def test_editor_falls_back_to_editor_variable(self, monkeypatch):
        monkeypatch.delenv("MODLINKER_EDITOR", raising=False)
        monkeypatch.setenv("EDITOR", "nano")

        assert Settings(_env_file=None).editor == "nano"

    def test_explicit_values_win(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MODLINKER_GAME_DIR", "/somewhere/else")

        settings = Settings(_env_file=None, game_dir=tmp_path)

        assert settings.game_dir == tmp_path

    def test_render_config(self, tmp_path):
        settings = Settings(
            _env_file=None,
            cache_dir=tmp_path / "c",
            download_dir=tmp_path / "d",
            game_dir=Path(""),
        )

        rendered = settings.render_config()

        assert f"MODLINKER_CACHE_DIR={tmp_path / 'c'}" in rendered
        assert "MODLINKER_GAME_DIR=\n" in rendered

    def test_matcher_from_environment(self, monkeypatch):
        monkeypatch.setenv("MODLINKER_MATCHER", "jaro-winkler")

        settings = Settings(_env_file=None)

        assert settings.matcher == Matcher.JARO_WINKLER
        assert "MODLINKER_MATCHER=jaro-winkler\n" in settings.render_config()
