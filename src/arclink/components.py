import hashlib
import json
import logging

from enum import Enum
from pathlib import Path
from pydantic import BaseModel, Field, ValidationError

from arclink.errors import ParseError

logger = logging.getLogger(__name__)


class ComponentType(str, Enum):
    ARCDPS = "arcdps"
    BOON_TABLE = "boon-table"
    HEALING_STATS = "healing-stats"
    UNOFFICIAL_EXTRAS = "unofficial-extras"
    MECHANICS_LOG = "mechanics-log"
    KILLPROOF = "killproof"


class VersionFormat(str, Enum):
    MD5SUM = "md5sum"
    GITHUB = "github"
    HTML = "html"


class ComponentInfo(BaseModel):
    type: ComponentType
    name: str
    default_file_name: str
    addon_loader_file_name: str | None = None
    version_url: str
    version_format: VersionFormat = VersionFormat.MD5SUM
    # CSS selector for VersionFormat.HTML
    version_selector: str | None = None
    download_url: str

    def relative_path(self, use_addon_loader: bool) -> str:
        if use_addon_loader:
            return f"addons/arcdps/{self.addon_loader_file_name or self.default_file_name}"
        return self.default_file_name


def _github(type: ComponentType, name: str, repo: str, file_name: str) -> ComponentInfo:
    return ComponentInfo(
        type=type,
        name=name,
        default_file_name=file_name,
        version_url=f"https://api.github.com/repos/{repo}/releases/latest",
        version_format=VersionFormat.GITHUB,
        download_url=f"https://github.com/{repo}/releases/latest/download/{file_name}",
    )


arcdps_domain = "https://www.deltaconnected.com/arcdps/x64"
CATALOG: dict[ComponentType, ComponentInfo] = {
    ComponentType.ARCDPS: ComponentInfo(
        type=ComponentType.ARCDPS,
        name="arcdps",
        default_file_name="d3d11.dll",
        addon_loader_file_name="gw2addon_arcdps.dll",
        version_url=f"{arcdps_domain}/d3d11.dll.md5sum",
        download_url=f"{arcdps_domain}/d3d11.dll",
    ),
    ComponentType.BOON_TABLE: _github(
        ComponentType.BOON_TABLE, "Boon Table",
        "knoxfighter/GW2-ArcDPS-Boon-Table", "d3d9_arcdps_table.dll"),
    ComponentType.HEALING_STATS: _github(
        ComponentType.HEALING_STATS, "Healing Stats",
        "Krappa322/arcdps_healing_stats", "arcdps_healing_stats.dll"),
    ComponentType.UNOFFICIAL_EXTRAS: _github(
        ComponentType.UNOFFICIAL_EXTRAS, "Unofficial Extras",
        "Krappa322/arcdps_unofficial_extras_releases", "arcdps_unofficial_extras.dll"),
    ComponentType.MECHANICS_LOG: _github(
        ComponentType.MECHANICS_LOG, "Mechanics Log",
        "knoxfighter/GW2-ArcDPS-Mechanics-Log", "d3d9_arcdps_mechanics.dll"),
    ComponentType.KILLPROOF: _github(
        ComponentType.KILLPROOF, "Killproof.me",
        "knoxfighter/arcdps-killproof.me-plugin", "d3d9_arcdps_killproof_me.dll"),
}


def file_md5(path: Path) -> str:
    digest = hashlib.md5()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


class Component(BaseModel):
    type: ComponentType
    relative_install_path: str
    # Recorded at install time, used when the remote version is not a file hash
    version: str | None = None
    remote_version: str | None = Field(default=None, exclude=True)

    def __hash__(self):
        return hash(self.type)

    @property
    def info(self) -> ComponentInfo:
        return CATALOG[self.type]

    def target_path(self, game_root: str | Path) -> Path:
        return Path(game_root) / self.relative_install_path.lstrip("/\\")

    def is_installed(self, game_root: str | Path) -> bool:
        return bool(game_root) and self.target_path(game_root).is_file()

    def installed_version(self, game_root: str | Path) -> str | None:
        if not self.is_installed(game_root):
            return None
        if self.info.version_format is VersionFormat.MD5SUM:
            return file_md5(self.target_path(game_root))
        return self.version


class ComponentRegistry:
    """Active components keyed by type, persisted as a JSON list."""

    def __init__(self, path: str | Path, components: list[Component] | None = None):
        self.path = Path(path)
        self._components: dict[ComponentType, Component] = {}
        for component in components or []:
            self.add(component)

    def __iter__(self):
        return iter(list(self._components.values()))

    def __len__(self) -> int:
        return len(self._components)

    def __contains__(self, type: ComponentType) -> bool:
        return type in self._components

    def get(self, type: ComponentType) -> Component | None:
        return self._components.get(type)

    def add(self, component: Component):
        self._components[component.type] = component

    def remove(self, type: ComponentType) -> Component | None:
        return self._components.pop(type, None)

    def snapshot(self) -> list[Component]:
        return [c.model_copy() for c in self._components.values()]

    @classmethod
    def load(cls, path: str | Path) -> "ComponentRegistry":
        path = Path(path)
        if not path.is_file():
            return cls(path)
        try:
            return cls(path, _parse_components(path))
        except ParseError as e:
            logger.warning(f"Resetting component registry: {e}")
            return cls(path)

    def save(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        records = [c.model_dump(mode="json") for c in self._components.values()]
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(records, f, indent=2)


def _parse_components(path: Path) -> list[Component]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            contents = json.load(f)
        if not isinstance(contents, list):
            raise ParseError(f"{path} does not hold a list")
        return [Component.model_validate(record) for record in contents]
    except (OSError, ValueError, ValidationError) as e:
        raise ParseError(f"{path} is malformed: {e}") from e
