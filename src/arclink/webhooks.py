import json
import logging

from pathlib import Path
from typing import Iterable

import requests

from pydantic import BaseModel, ValidationError

from arclink.bosses import (
    BossData,
    get_boss_order,
    get_wing_for_boss,
    get_wing_name,
    is_fractal,
    is_golem,
    is_wvw,
)
from arclink.discord_models import (
    COLOR_FAILURE,
    COLOR_SUCCESS,
    DiscordEmbed,
    DiscordEmbedField,
    DiscordEmbedThumbnail,
    DiscordMessage,
)
from arclink.errors import NetworkError, NotFoundError, ParseError
from arclink.players import resolve_spec_name
from arclink.reports import EncounterResult

logger = logging.getLogger(__name__)

SUCCESS_MARK = ":white_check_mark:"
FAILURE_MARK = "❌"
# Discord rejects oversized embeds, so big squads are sent without the roster
MAX_ROSTER_FIELDS = 10
SESSION_THUMBNAIL = "https://wiki.guildwars2.com/images/5/5e/Legendary_Insight.png"
PROBE_CONTENT = "Webhook test from arclink."
LEGACY_SEPARATOR = "<;>"
LEGACY_HEADER = "## Edit the contents of this file at your own risk, use the application interface instead."


class WebhookEndpoint(BaseModel):
    id: int = 0
    name: str
    url: str
    active: bool = True
    only_on_success: bool = False
    show_players: bool = True


class DispatchReport(BaseModel):
    delivered: list[int] = []
    failed: list[int] = []
    skipped: list[int] = []

    @property
    def success(self) -> bool:
        return not self.failed


class WebhookRegistry:
    """Webhook endpoints in insertion order, keyed by their id."""

    def __init__(self, path: str | Path, endpoints: Iterable[WebhookEndpoint] = ()):
        self.path = Path(path)
        self._endpoints: dict[int, WebhookEndpoint] = {}
        self._last_id = 0
        for endpoint in endpoints:
            self._insert(endpoint)

    def __iter__(self):
        return iter(list(self._endpoints.values()))

    def __len__(self) -> int:
        return len(self._endpoints)

    def _insert(self, endpoint: WebhookEndpoint) -> WebhookEndpoint:
        if endpoint.id <= 0 or endpoint.id in self._endpoints:
            endpoint = endpoint.model_copy(update={"id": self._last_id + 1})
        self._endpoints[endpoint.id] = endpoint
        self._last_id = max(self._last_id, endpoint.id)
        return endpoint

    def add(self, endpoint: WebhookEndpoint) -> WebhookEndpoint:
        return self._insert(endpoint.model_copy(update={"id": 0}))

    def get(self, id: int) -> WebhookEndpoint:
        if id not in self._endpoints:
            raise NotFoundError(f"No webhook with id {id}")
        return self._endpoints[id]

    def update(self, id: int, endpoint: WebhookEndpoint) -> WebhookEndpoint:
        self.get(id)
        self._endpoints[id] = endpoint.model_copy(update={"id": id})
        return self._endpoints[id]

    def remove(self, id: int) -> WebhookEndpoint:
        self.get(id)
        return self._endpoints.pop(id)

    def snapshot(self) -> list[WebhookEndpoint]:
        return [e.model_copy() for e in self._endpoints.values()]

    def save(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        records = [e.model_dump(mode="json") for e in self._endpoints.values()]
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(records, f, indent=2, ensure_ascii=False)

    @classmethod
    def load(cls, path: str | Path, legacy_path: str | Path | None = None) -> "WebhookRegistry":
        path = Path(path)
        try:
            if path.is_file():
                return cls(path, _parse_json(path))
            if legacy_path and Path(legacy_path).is_file():
                logger.info(f"Importing webhooks from {legacy_path}")
                return cls(path, _parse_legacy(Path(legacy_path)))
        except ParseError as e:
            logger.warning(f"Resetting webhook registry: {e}")
        return cls(path)


def _parse_json(path: Path) -> list[WebhookEndpoint]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            contents = json.load(f)
        if not isinstance(contents, list):
            raise ParseError(f"{path} does not hold a list")
        return [WebhookEndpoint.model_validate(record) for record in contents]
    except (OSError, ValueError, ValidationError) as e:
        raise ParseError(f"{path} is malformed: {e}") from e


def _parse_legacy(path: Path) -> list[WebhookEndpoint]:
    endpoints = []
    try:
        with open(path, "r", encoding="utf-8") as f:
            lines = f.read().splitlines()
    except OSError as e:
        raise ParseError(f"{path} is unreadable: {e}") from e
    # first line is the header
    for line in lines[1:]:
        if not line.strip():
            continue
        values = line.split(LEGACY_SEPARATOR)
        if len(values) < 5:
            raise ParseError(f"{path} has a malformed line: {line!r}")
        active, name, url, only_success, show_players = values[:5]
        endpoints.append(WebhookEndpoint(
            name=name,
            url=url,
            active=active.strip() == "1",
            only_on_success=only_success.strip() == "1",
            show_players=show_players.strip() == "1",
        ))
    return endpoints


def _resolve_boss(boss_id: int, boss_catalog: dict[int, BossData]) -> BossData | None:
    matches = [boss for boss in boss_catalog.values() if boss.boss_id == boss_id]
    if len(matches) == 1:
        return matches[0]
    return None


def build_single_messages(
    result: EncounterResult,
    boss_catalog: dict[int, BossData],
) -> tuple[DiscordMessage, DiscordMessage]:
    """Return the compact message and the one carrying the squad roster."""
    boss_name = result.boss_name
    icon = ""
    boss = _resolve_boss(result.encounter.boss_id, boss_catalog)
    if boss:
        boss_name = boss.name
        icon = boss.icon

    extra = ""
    if result.extra is not None:
        extra = (
            f"Recorded by: {result.extra.recorded_by}\n"
            f"Duration: {result.extra.duration}\n"
            f"Elite Insights version: {result.extra.elite_insights_version}\n"
        )
    success_mark = SUCCESS_MARK if result.succeeded else FAILURE_MARK
    description = f"{extra}Result: {success_mark}\narcdps version: {result.evtc.type}{result.evtc.version}"

    def embed(fields: list[DiscordEmbedField] | None = None) -> DiscordEmbed:
        return DiscordEmbed(
            title=boss_name,
            url=result.permalink,
            description=description,
            color=COLOR_SUCCESS if result.succeeded else COLOR_FAILURE,
            thumbnail=DiscordEmbedThumbnail(url=icon) if icon else None,
            fields=fields,
        )

    fields = None
    if len(result.players) <= MAX_ROSTER_FIELDS:
        fields = [
            DiscordEmbedField(
                name=player.character_name,
                value=f"```{player.display_name}\n\n{resolve_spec_name(player.profession, player.elite_spec)}```",
                inline=True,
            )
            for player in result.players.values()
        ]
    return DiscordMessage(embeds=[embed()]), DiscordMessage(embeds=[embed(fields)])


def build_session_body(
    results: list[EncounterResult],
    boss_catalog: dict[int, BossData],
    show_success_markers: bool,
    elapsed_time: str,
) -> str:
    raid_logs = sorted(
        (r for r in results if get_wing_for_boss(r.evtc.boss_id) > 0),
        key=lambda r: (
            get_wing_for_boss(r.evtc.boss_id),
            get_boss_order(r.encounter.boss_id),
            r.upload_time,
        ),
    )
    fractal_logs = [r for r in results if is_fractal(r.evtc.boss_id)]
    golem_logs = [r for r in results if is_golem(r.evtc.boss_id)]
    wvw_logs = [r for r in results if is_wvw(r.evtc.boss_id)]

    body = f"Session duration: {elapsed_time}\n\n"
    if raid_logs:
        body += "***Raid logs:***\n"
        last_wing = 0
        for log in raid_logs:
            wing = get_wing_for_boss(log.evtc.boss_id)
            if wing != last_wing:
                body += f"**{get_wing_name(wing)} (wing {wing})**\n"
                last_wing = wing
            boss = _resolve_boss(log.encounter.boss_id, boss_catalog)
            boss_name = boss.name if boss else log.boss_name
            duration = f" {log.extra.duration}" if log.extra is not None else ""
            success_text = ""
            if show_success_markers:
                success_text = f" {SUCCESS_MARK}" if log.succeeded else f" {FAILURE_MARK}"
            body += f"[{boss_name}]({log.permalink}){duration}{success_text}\n"
    if fractal_logs:
        body += "\n\n***Fractal logs:***\n"
        for log in fractal_logs:
            boss = _resolve_boss(log.encounter.boss_id, boss_catalog)
            boss_name = boss.name if boss else log.encounter.boss
            body += f"[{boss_name}]({log.permalink})\n"
    if golem_logs:
        body += "\n\n***Golem logs:***\n"
        for log in golem_logs:
            body += f"{log.permalink}\n"
    if wvw_logs:
        body += "\n\n***WvW logs:***\n"
        for log in wvw_logs:
            body += f"{log.permalink}\n"
    return body


def build_session_message(
    results: list[EncounterResult],
    boss_catalog: dict[int, BossData],
    session_name: str,
    preamble_text: str,
    show_success_markers: bool,
    elapsed_time: str,
) -> DiscordMessage:
    return DiscordMessage(
        content=preamble_text or None,
        embeds=[DiscordEmbed(
            title=session_name,
            description=build_session_body(results, boss_catalog, show_success_markers, elapsed_time),
            color=COLOR_SUCCESS,
            thumbnail=DiscordEmbedThumbnail(url=SESSION_THUMBNAIL),
        )],
    )


class WebhookEngine:
    def __init__(
        self,
        registry: WebhookRegistry,
        session: requests.Session | None = None,
        timeout: float = 30.0,
    ):
        self.registry = registry
        self.session = session or requests.Session()
        self.timeout = timeout

    def add(self, endpoint: WebhookEndpoint) -> WebhookEndpoint:
        return self.registry.add(endpoint)

    def update(self, id: int, endpoint: WebhookEndpoint) -> WebhookEndpoint:
        return self.registry.update(id, endpoint)

    def remove(self, id: int) -> WebhookEndpoint:
        return self.registry.remove(id)

    def set_active(self, id: int, active: bool) -> WebhookEndpoint:
        endpoint = self.registry.get(id)
        return self.registry.update(id, endpoint.model_copy(update={"active": active}))

    def endpoints(self) -> list[WebhookEndpoint]:
        return self.registry.snapshot()

    def save(self):
        self.registry.save()

    def _post(self, url: str, payload: dict):
        try:
            response = self.session.post(url, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise NetworkError(f"POST to webhook failed: {e}") from e

    def test(self, endpoint: WebhookEndpoint) -> bool:
        try:
            self._post(endpoint.url, DiscordMessage(content=PROBE_CONTENT).to_payload())
        except NetworkError as e:
            logger.warning(f"Webhook {endpoint.name} is not valid: {e}")
            return False
        return True

    def _deliver(self, endpoint: WebhookEndpoint, payload: dict, report: DispatchReport):
        try:
            self._post(endpoint.url, payload)
        except NetworkError as e:
            logger.warning(f"Unable to execute webhook {endpoint.name} ({endpoint.id}): {e}")
            report.failed.append(endpoint.id)
            return
        report.delivered.append(endpoint.id)

    def notify_single(self, result: EncounterResult, boss_catalog: dict[int, BossData]) -> DispatchReport:
        compact, with_roster = build_single_messages(result, boss_catalog)
        payloads = {False: compact.to_payload(), True: with_roster.to_payload()}
        report = DispatchReport()
        for endpoint in self.registry:
            if not endpoint.active or (endpoint.only_on_success and not result.succeeded):
                report.skipped.append(endpoint.id)
                continue
            self._deliver(endpoint, payloads[endpoint.show_players], report)
        self._log_report(report, "")
        return report

    def notify_session(
        self,
        results: list[EncounterResult],
        boss_catalog: dict[int, BossData],
        session_name: str,
        preamble_text: str,
        show_success_markers: bool,
        elapsed_time: str,
    ) -> DispatchReport:
        message = build_session_message(
            results, boss_catalog, session_name, preamble_text, show_success_markers, elapsed_time)
        payload = message.to_payload()
        report = DispatchReport()
        # only_on_success and show_players apply to single logs only
        for endpoint in self.registry:
            if not endpoint.active:
                report.skipped.append(endpoint.id)
                continue
            self._deliver(endpoint, payload, report)
        self._log_report(report, " with finished log session")
        return report

    def _log_report(self, report: DispatchReport, suffix: str):
        if len(self.registry) == 0:
            return
        if report.success:
            logger.info(f"All active webhooks successfully executed{suffix}.")
        else:
            logger.warning(f"Unable to execute {len(report.failed)} active webhook(s){suffix}.")
