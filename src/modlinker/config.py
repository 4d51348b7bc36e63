import os
from pathlib import Path

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from modlinker.matching.fuzzy import Matcher

APP_NAME = "modlinker"


def _xdg_dir(variable: str, fallback: Path) -> Path:
    if env := os.environ.get(variable):
        return Path(env) / APP_NAME
    return fallback / APP_NAME


def default_config_file() -> Path:
    return _xdg_dir("XDG_CONFIG_HOME", Path.home() / ".config") / f"{APP_NAME}.env"


def _default_data_dir() -> Path:
    return _xdg_dir("XDG_DATA_HOME", Path.home() / ".local" / "share")


def _default_cache_dir() -> Path:
    return _xdg_dir("XDG_CACHE_HOME", Path.home() / ".cache")


CONFIG_TEMPLATE = """\
# modlinker settings; environment variables with the same names win.
MODLINKER_CACHE_DIR={cache_dir}
MODLINKER_DOWNLOAD_DIR={download_dir}
MODLINKER_GAME_DIR={game_dir}
MODLINKER_LOG_LEVEL={log_level}
MODLINKER_MATCHER={matcher}
"""


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(default_config_file()), ".env"),
        env_file_encoding="utf-8",
        env_prefix="MODLINKER_",
        extra="ignore",
        populate_by_name=True,
    )

    data_dir: Path = Path("")
    cache_dir: Path = Path("")
    download_dir: Path = Path("")
    game_dir: Path = Path("")
    log_level: str = "WARNING"
    matcher: Matcher = Matcher.SKIM
    editor: str = Field(default="", validation_alias=AliasChoices("MODLINKER_EDITOR", "EDITOR"))
    steam_compat_data_path: Path | None = Field(
        default=None, validation_alias="STEAM_COMPAT_DATA_PATH"
    )
    steam_compat_client_install_path: Path | None = Field(
        default=None, validation_alias="STEAM_COMPAT_CLIENT_INSTALL_PATH"
    )

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        if self.data_dir == Path(""):
            self.data_dir = _default_data_dir()
        if self.cache_dir == Path(""):
            self.cache_dir = _default_cache_dir()
        if self.download_dir == Path(""):
            self.download_dir = Path.home() / "Downloads"
        self.log_level = self.log_level.upper()
        return self

    @property
    def has_game_dir(self) -> bool:
        return self.game_dir != Path("")

    def render_config(self) -> str:
        return CONFIG_TEMPLATE.format(
            cache_dir=self.cache_dir,
            download_dir=self.download_dir,
            game_dir=self.game_dir if self.has_game_dir else "",
            log_level=self.log_level,
            matcher=self.matcher,
        )
