from pydantic import BaseModel

# Redirects to the current revision of a file on the official wiki
WIKI_FILE_URL = "https://wiki.guildwars2.com/wiki/Special:FilePath/"


class BossData(BaseModel):
    boss_id: int
    name: str
    icon: str = ""


class RaidWing(BaseModel):
    number: int
    name: str
    # (evtc boss id, display name, wiki icon file) in encounter order
    bosses: list[tuple[int, str, str]]


RAID_WINGS = [
    RaidWing(number=1, name="Spirit Vale", bosses=[
        (15438, "Vale Guardian", "Mini_Vale_Guardian.png"),
        (15429, "Gorseval", "Mini_Gorseval_the_Multifarious.png"),
        (15375, "Sabetha", "Mini_Sabetha.png")]),
    RaidWing(number=2, name="Salvation Pass", bosses=[
        (16123, "Slothasor", "Mini_Slothasor.png"),
        (16088, "Bandit Trio", "Mini_Narella.png"),
        (16115, "Matthias", "Mini_Matthias_Abomination.png")]),
    RaidWing(number=3, name="Stronghold of the Faithful", bosses=[
        (16253, "Escort", "Mini_McLeod_the_Silent.png"),
        (16235, "Keep Construct", "Mini_Keep_Construct.png"),
        (16247, "Twisted Castle", "Mini_Haunting_Statue.png"),
        (16246, "Xera", "Mini_Xera.png")]),
    RaidWing(number=4, name="Bastion of the Penitent", bosses=[
        (17194, "Cairn", "Mini_Cairn_the_Indomitable.png"),
        (17172, "Mursaat Overseer", "Mini_Mursaat_Overseer.png"),
        (17188, "Samarog", "Mini_Samarog.png"),
        (17154, "Deimos", "Mini_Ragged_White_Mantle_Figurehead.png")]),
    RaidWing(number=5, name="Hall of Chains", bosses=[
        (19767, "Soulless Horror", "Mini_Desmina.png"),
        (19828, "River of Souls", "Mini_Desmina.png"),
        (19691, "Broken King", "Mini_Broken_King.png"),
        (19536, "Eater of Souls", "Mini_Eater_of_Souls.png"),
        (19651, "Eye of Judgement", "Mini_Eye_of_Judgment.png"),
        (19844, "Eye of Fate", "Mini_Eye_of_Fate.png"),
        (19450, "Dhuum", "Mini_Dhuum.png")]),
    RaidWing(number=6, name="Mythwright Gambit", bosses=[
        (43974, "Conjured Amalgamate", "Mini_Conjured_Amalgamate.png"),
        (21105, "Twin Largos", "Mini_Nikare.png"),
        (20934, "Qadim", "Mini_Qadim.png")]),
    RaidWing(number=7, name="The Key of Ahdashim", bosses=[
        (22006, "Cardinal Adina", "Mini_Cardinal_Adina.png"),
        (21964, "Cardinal Sabir", "Mini_Cardinal_Sabir.png"),
        (22000, "Qadim the Peerless", "Mini_Qadim_the_Peerless.png")]),
    RaidWing(number=8, name="Mount Balrior", bosses=[
        (26725, "Greer, the Blightbringer", "Mini_Greer,_the_Blightbringer.png"),
        (26774, "Decima, the Stormsinger", "Mini_Decima,_the_Stormsinger.png"),
        (26712, "Ura, the Steamshrieker", "Mini_Ura,_the_Steamshrieker.png")]),
]

# Fractal challenge mote bosses up to Sunqua Peak. Later encounters have no
# entry and land in no section of a session message.
FRACTAL_BOSSES = {
    17021: ("MAMA", "Mini_MAMA.png"),
    17028: ("Siax the Corrupted", "Mini_Siax_the_Corrupted.png"),
    16948: ("Ensolyss of the Endless Torment", "Mini_Ensolyss_of_the_Endless_Torment.png"),
    17632: ("Skorvald the Shattered", "Mini_Skorvald_the_Shattered.png"),
    17949: ("Artsariiv", "Mini_Artsariiv.png"),
    17759: ("Arkk", "Mini_Arkk.png"),
    23254: ("Ai, Keeper of the Peak", "Mini_Ai,_Keeper_of_the_Peak.png"),
}

GOLEM_BOSSES = {
    16199: "Standard Kitty Golem",
    19645: "Medium Kitty Golem",
    19676: "Large Kitty Golem",
    16202: "Massive Average Kitty Golem",
    16177: "Average Kitty Golem",
    16198: "Vital Kitty Golem",
}

WVW_BOSSES = {
    1: "World vs World",
}

_WING_BY_BOSS = {boss_id: wing.number for wing in RAID_WINGS for boss_id, _, _ in wing.bosses}
_ORDER_BY_BOSS = {boss_id: index for wing in RAID_WINGS for index, (boss_id, _, _) in enumerate(wing.bosses)}


def wiki_icon(file_name: str) -> str:
    return WIKI_FILE_URL + file_name


def get_wing_for_boss(boss_id: int) -> int:
    return _WING_BY_BOSS.get(boss_id, 0)


def get_wing_name(wing: int) -> str:
    for raid_wing in RAID_WINGS:
        if raid_wing.number == wing:
            return raid_wing.name
    return "Unknown wing"


def get_boss_order(boss_id: int) -> int:
    # Unknown bosses sort after every known one
    return _ORDER_BY_BOSS.get(boss_id, len(_ORDER_BY_BOSS))


def is_fractal(boss_id: int) -> bool:
    return boss_id in FRACTAL_BOSSES


def is_golem(boss_id: int) -> bool:
    return boss_id in GOLEM_BOSSES


def is_wvw(boss_id: int) -> bool:
    return boss_id in WVW_BOSSES


def default_boss_catalog() -> dict[int, BossData]:
    entries = [(boss_id, name, icon) for wing in RAID_WINGS for boss_id, name, icon in wing.bosses]
    entries += [(boss_id, name, icon) for boss_id, (name, icon) in FRACTAL_BOSSES.items()]
    catalog = {
        boss_id: BossData(boss_id=boss_id, name=name, icon=wiki_icon(icon))
        for boss_id, name, icon in entries
    }
    for boss_id, name in GOLEM_BOSSES.items():
        catalog[boss_id] = BossData(boss_id=boss_id, name=name)
    return catalog
