import json

import pytest

from arclink import bosses
from arclink.main import main
from arclink.models import ArcLinkConfig, read_config, save_config
from arclink.players import resolve_spec_name


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.json"
    save_config(ArcLinkConfig(data_dir=str(tmp_path / "data")), path)
    return path


class TestConfig:

    def test_missing_file_gives_defaults(self, tmp_path):
        config = read_config(tmp_path / "nope.json")

        assert config.game_executable == "Gw2-64.exe"
        assert config.arc_update.enabled

    def test_malformed_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2")

        assert read_config(path) == ArcLinkConfig()

    def test_round_trip(self, tmp_path):
        path = tmp_path / "config.json"
        config = ArcLinkConfig(game_location="C:/Games/Guild Wars 2", http_timeout=5)
        config.arc_update.use_addon_loader = True

        save_config(config, path)

        assert read_config(path) == config


class TestLookups:

    def test_spec_names(self):
        assert resolve_spec_name(1, 62) == "Firebrand"
        assert resolve_spec_name(8, 0) == "Necromancer"
        assert resolve_spec_name(42, 0) == "Unknown"

    def test_raid_tables(self):
        assert bosses.get_wing_for_boss(19450) == 5
        assert bosses.get_wing_name(5) == "Hall of Chains"
        assert bosses.get_wing_for_boss(17021) == 0
        assert bosses.get_boss_order(15375) == 2
        assert bosses.get_boss_order(123) > bosses.get_boss_order(19450)
        assert bosses.is_fractal(17021) and bosses.is_golem(16199) and bosses.is_wvw(1)

    def test_mount_balrior_is_wing_eight(self):
        assert bosses.get_wing_for_boss(26725) == 8
        assert bosses.get_wing_name(8) == "Mount Balrior"
        assert bosses.get_boss_order(26712) == 2

    def test_default_catalog_icons(self):
        catalog = bosses.default_boss_catalog()

        assert catalog[15438].icon == "https://wiki.guildwars2.com/wiki/Special:FilePath/Mini_Vale_Guardian.png"
        assert catalog[23254].icon.startswith(bosses.WIKI_FILE_URL)
        assert catalog[16199].icon == ""


class TestCli:

    def test_webhook_add_and_list(self, config_path, tmp_path, capsys):
        main(["-c", str(config_path), "webhooks", "add", "Guild", "https://discord.com/api/webhooks/1/a", "--only-success"])
        main(["-c", str(config_path), "webhooks", "list"])

        out = capsys.readouterr().out
        assert "Added webhook 1" in out
        assert "Guild <https://discord.com/api/webhooks/1/a> (active, only success, players)" in out
        stored = json.loads((tmp_path / "data" / "discord_webhooks.json").read_text())
        assert stored[0]["only_on_success"] is True

    def test_unknown_webhook_exits(self, config_path, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["-c", str(config_path), "webhooks", "remove", "7"])

        assert exc.value.code == 1
        assert "No webhook with id 7" in capsys.readouterr().out

    def test_install_without_location_exits(self, config_path, capsys):
        with pytest.raises(SystemExit):
            main(["-c", str(config_path), "install", "arcdps"])

        assert "Game location is not set" in capsys.readouterr().out
