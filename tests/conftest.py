from collections.abc import Callable, Iterable

import pytest

from modlinker.schemas.manifest import InstallFile, Manifest, ModKind, ModState
from modlinker.services.deploy_service import Deployer
from modlinker.services.manifest_store import write_manifest

MakeMod = Callable[..., Manifest]


@pytest.fixture
def cache_dir(tmp_path):
    path = tmp_path / "cache"
    path.mkdir()
    return path


@pytest.fixture
def game_dir(tmp_path):
    path = tmp_path / "game"
    path.mkdir()
    return path


@pytest.fixture
def download_dir(tmp_path):
    path = tmp_path / "downloads"
    path.mkdir()
    return path


@pytest.fixture
def deployer(cache_dir, game_dir):
    return Deployer(cache_dir, game_dir)


@pytest.fixture
def make_mod(cache_dir) -> MakeMod:
    """Create ``<cache>/<bare_name>/`` with the given files and write its manifest.

    Each source path is created with its own name as content and installed
    to the same relative path below ``data/``.
    """

    def _make(
        bare_name: str,
        sources: Iterable[str] = (),
        *,
        priority: int = 0,
        state: ModState = ModState.DISABLED,
        kind: ModKind = ModKind.DATA,
    ) -> Manifest:
        mod_dir = cache_dir / bare_name
        mod_dir.mkdir(parents=True, exist_ok=True)
        files = []
        for source in sources:
            path = mod_dir / source
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(f"{bare_name}:{source}")
            files.append(InstallFile.create(source, source))
        manifest = Manifest(
            bare_name=bare_name,
            display_name=bare_name,
            kind=kind,
            priority=priority,
            state=state,
            files=files,
        )
        write_manifest(cache_dir, manifest)
        return manifest

    return _make
