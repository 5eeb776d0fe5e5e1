import json
import logging

from datetime import datetime, timedelta
from pathlib import Path
from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

CONFIG_FILE = "config.json"
COMPONENTS_FILE = "arcdps_components.json"
WEBHOOKS_FILE = "discord_webhooks.json"
LEGACY_WEBHOOKS_FILE = "discord_webhooks.txt"
UPDATE_COOLDOWN = timedelta(seconds=300)


class ArcUpdateSettings(BaseModel):
    enabled: bool = True
    notifications: bool = True
    use_addon_loader: bool = False
    last_update_check: datetime = datetime.min


class ArcLinkConfig(BaseModel):
    game_location: str = ""
    game_executable: str = "Gw2-64.exe"
    data_dir: str = "."
    http_timeout: float = 30.0
    arc_update: ArcUpdateSettings = ArcUpdateSettings()

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir)


def read_config(path: str | Path = CONFIG_FILE) -> ArcLinkConfig:
    path = Path(path)
    if not path.is_file():
        logger.info(f"No config found at {path}, using defaults")
        return ArcLinkConfig()
    try:
        with open(path, "r", encoding="utf-8") as f:
            contents = json.load(f)
            return ArcLinkConfig.model_validate(contents)
    except (ValueError, ValidationError) as e:
        logger.warning(f"Config at {path} is unreadable ({e}), using defaults")
        return ArcLinkConfig()


def save_config(config: ArcLinkConfig, path: str | Path = CONFIG_FILE):
    with open(path, "w", encoding="utf-8") as f:
        f.write(config.model_dump_json(indent=2))
