import zipfile

import pytest

from modlinker import __main__ as entry
from modlinker.cli import build_parser, run, settings_from_args
from modlinker.config import Settings
from modlinker.errors import GameDirNotConfiguredError, ModNotFoundError
from modlinker.matching.fuzzy import Matcher
from modlinker.schemas.manifest import ModState
from modlinker.services.catalogue import ModCatalogue
from modlinker.services.prompt import ScriptedPrompter


@pytest.fixture
def settings(cache_dir, game_dir, download_dir):
    return Settings(
        _env_file=None,
        cache_dir=cache_dir,
        game_dir=game_dir,
        download_dir=download_dir,
    )


def _run(settings, *argv, answers=()):
    args = build_parser().parse_args(list(argv))
    run(args, settings, ScriptedPrompter(answers))


class TestModCommands:
    def test_list_shows_conflict_status(self, settings, make_mod, capsys):
        make_mod("alpha", ["a.esp", "own.esp"], state=ModState.ENABLED)
        make_mod("beta", ["a.esp"], priority=1, state=ModState.ENABLED)

        _run(settings, "list")

        out = capsys.readouterr().out
        assert "Loser" in out
        assert "Winner" in out

    def test_enable_and_disable(self, settings, make_mod, game_dir, cache_dir):
        make_mod("alpha", ["a.esp"])

        _run(settings, "enable", "alpha")

        assert (game_dir / "data" / "a.esp").is_symlink()
        assert ModCatalogue.gather(cache_dir)[0].is_enabled

        _run(settings, "disable", "0")

        assert not (game_dir / "data").exists()

    def test_set_priority_relayers(self, settings, make_mod, game_dir, cache_dir):
        make_mod("alpha", ["a.esp"])
        make_mod("beta", ["a.esp"], priority=1)
        _run(settings, "enable-all")

        _run(settings, "set-priority", "alpha", "5")

        assert (game_dir / "data" / "a.esp").resolve() == cache_dir / "alpha" / "a.esp"

    def test_tag_and_list_filter(self, settings, make_mod, capsys):
        make_mod("alpha")
        make_mod("beta", priority=1)

        _run(settings, "tag", "add", "beta", "ui")
        _run(settings, "list", "--tag", "ui")

        out = capsys.readouterr().out
        assert "beta" in out
        assert "alpha" not in out

    def test_disable_file_relinks_enabled_mod(self, settings, make_mod, game_dir):
        make_mod("alpha", ["a.esp", "b.esp"])
        _run(settings, "enable", "alpha")

        _run(settings, "disable-file", "alpha", "b.esp")

        assert (game_dir / "data" / "a.esp").is_symlink()
        assert not (game_dir / "data" / "b.esp").exists()

    def test_conflicts_report(self, settings, make_mod, capsys):
        make_mod("alpha", ["a.esp"], state=ModState.ENABLED)
        make_mod("beta", ["a.esp"], priority=1, state=ModState.ENABLED)

        _run(settings, "conflicts")

        out = capsys.readouterr().out
        assert "alpha [CompleteLoser]" in out
        assert "data/a.esp" in out

    def test_remove_disables_first(self, settings, make_mod, game_dir, cache_dir):
        make_mod("alpha", ["a.esp"])
        _run(settings, "enable", "alpha")

        _run(settings, "remove", "alpha")

        assert not (game_dir / "data").exists()
        assert len(ModCatalogue.gather(cache_dir)) == 0

    def test_missing_game_dir_is_reported(self, cache_dir, make_mod, monkeypatch):
        monkeypatch.delenv("MODLINKER_GAME_DIR", raising=False)
        make_mod("alpha", ["a.esp"])
        settings = Settings(_env_file=None, cache_dir=cache_dir)

        with pytest.raises(GameDirNotConfiguredError):
            _run(settings, "enable", "alpha")

    def test_matcher_setting_changes_fuzzy_lookup(self, settings, make_mod, capsys):
        make_mod("skyui-1-1")
        make_mod("skse-2-1", priority=1)

        with pytest.raises(ModNotFoundError):
            _run(settings, "show", "skeyui")

        settings.matcher = Matcher.JARO_WINKLER
        _run(settings, "show", "skeyui")

        assert "Bare name: skyui-1-1" in capsys.readouterr().out


class TestDownloadCommands:
    def test_extract_and_list(self, settings, download_dir, cache_dir, capsys):
        with zipfile.ZipFile(download_dir / "Mod-1-1-0.zip", "w") as zf:
            zf.writestr("Data/Plugin.esp", b"esp")

        _run(settings, "downloads", "extract", "0")
        _run(settings, "downloads", "list")

        out = capsys.readouterr().out
        assert "[x]  Mod-1-1-0.zip" in out
        assert (cache_dir / "mod-1-1-0.json").is_file()


class TestMain:
    def test_errors_exit_non_zero(self, cache_dir, game_dir, monkeypatch, capsys):
        monkeypatch.setattr(entry, "_configure_logging", lambda level: None)

        code = entry.main(["--cache-dir", str(cache_dir), "--game-dir", str(game_dir), "show", "x"])

        assert code == 1

    def test_success_exits_zero(self, cache_dir, game_dir, monkeypatch):
        monkeypatch.setattr(entry, "_configure_logging", lambda level: None)

        code = entry.main(["--cache-dir", str(cache_dir), "--game-dir", str(game_dir), "list"])

        assert code == 0

    def test_matcher_option_reaches_settings(self, cache_dir):
        args = build_parser().parse_args(
            ["--cache-dir", str(cache_dir), "--matcher", "jaro-winkler", "list"]
        )

        settings = settings_from_args(args)

        assert settings.matcher == Matcher.JARO_WINKLER
        assert settings.cache_dir == cache_dir
