import argparse
import json
import logging
import sys

from pathlib import Path

from arclink.bosses import default_boss_catalog
from arclink.components import CATALOG, ComponentRegistry, ComponentType
from arclink.errors import ArcLinkError
from arclink.models import (
    COMPONENTS_FILE,
    CONFIG_FILE,
    LEGACY_WEBHOOKS_FILE,
    WEBHOOKS_FILE,
    ArcLinkConfig,
    read_config,
)
from arclink.reports import EncounterResult
from arclink.updater import UpdateEngine, UpdateStatus
from arclink.webhooks import WebhookEndpoint, WebhookEngine, WebhookRegistry

def print_notification(title: str, message: str):
    print(f"[{title}] {message}")


def build_update_engine(config: ArcLinkConfig, config_path: Path) -> UpdateEngine:
    registry = ComponentRegistry.load(config.data_path / COMPONENTS_FILE)
    engine = UpdateEngine(config, registry, config_path=config_path, on_notify=print_notification)
    engine.reconcile()
    return engine


def build_webhook_engine(config: ArcLinkConfig) -> WebhookEngine:
    registry = WebhookRegistry.load(
        config.data_path / WEBHOOKS_FILE,
        legacy_path=config.data_path / LEGACY_WEBHOOKS_FILE,
    )
    return WebhookEngine(registry, timeout=config.http_timeout)


def read_report(path: str) -> EncounterResult:
    with open(path, "r", encoding="utf-8") as f:
        return EncounterResult.model_validate(json.load(f))


def cmd_status(args, config: ArcLinkConfig, config_path: Path):
    engine = build_update_engine(config, config_path)
    print(f"Game location: {config.game_location or '<not set>'}")
    print(f"Addon Loader: {'yes' if config.arc_update.use_addon_loader else 'no'}")
    for component_type, info in CATALOG.items():
        component = engine.registry.get(component_type)
        state = "installed" if component else "-"
        print(f"{component_type.value:<18} {info.name:<20} {state}")


def cmd_check(args, config: ArcLinkConfig, config_path: Path):
    engine = build_update_engine(config, config_path)
    result = engine.run_cycle(manual=args.manual)
    if result.status is UpdateStatus.WAITING:
        print("Updates found, waiting for the game to close..")
        engine.wait_until_idle()
        result = engine.deferred_result or result
    print(f"Update check: {result.status.value}")
    for component_type in result.updated:
        print(f"Updated: {component_type.value}")
    for component_type in result.failed:
        print(f"Update FAILED: {component_type.value}")


def cmd_install(args, config: ArcLinkConfig, config_path: Path):
    engine = build_update_engine(config, config_path)
    component = engine.install(ComponentType(args.type))
    print(f"Installed {component.info.name} @ {component.target_path(config.game_location)}")


def cmd_uninstall(args, config: ArcLinkConfig, config_path: Path):
    engine = build_update_engine(config, config_path)
    engine.uninstall(ComponentType(args.type))
    print(f"Uninstalled {args.type}")


def cmd_location(args, config: ArcLinkConfig, config_path: Path):
    engine = build_update_engine(config, config_path)
    engine.set_game_location(args.path)
    print(f"Game location set to {config.game_location}")


def cmd_webhooks(args, config: ArcLinkConfig, config_path: Path):
    engine = build_webhook_engine(config)
    if args.action == "list":
        for endpoint in engine.endpoints():
            flags = [
                "active" if endpoint.active else "inactive",
                "only success" if endpoint.only_on_success else "all",
                "players" if endpoint.show_players else "no players",
            ]
            print(f"{endpoint.id:>3} {endpoint.name} <{endpoint.url}> ({', '.join(flags)})")
        return
    if args.action == "add":
        endpoint = engine.add(WebhookEndpoint(
            name=args.name,
            url=args.url,
            active=not args.inactive,
            only_on_success=args.only_success,
            show_players=not args.hide_players,
        ))
        print(f"Added webhook {endpoint.id}")
    elif args.action == "remove":
        engine.remove(args.id)
        print(f"Removed webhook {args.id}")
    elif args.action == "toggle":
        endpoint = engine.registry.get(args.id)
        endpoint = engine.set_active(args.id, not endpoint.active)
        print(f"Webhook {endpoint.id} is now {'active' if endpoint.active else 'inactive'}")
    elif args.action == "test":
        valid = engine.test(engine.registry.get(args.id))
        print("Webhook is valid." if valid else "Webhook is not valid. Check your URL.")
    engine.save()


def cmd_notify(args, config: ArcLinkConfig, config_path: Path):
    engine = build_webhook_engine(config)
    report = engine.notify_single(read_report(args.report), default_boss_catalog())
    print(f"Delivered: {len(report.delivered)}, failed: {len(report.failed)}, skipped: {len(report.skipped)}")


def cmd_session(args, config: ArcLinkConfig, config_path: Path):
    engine = build_webhook_engine(config)
    results = [read_report(path) for path in args.reports]
    report = engine.notify_session(
        results,
        default_boss_catalog(),
        session_name=args.name,
        preamble_text=args.content,
        show_success_markers=args.show_success,
        elapsed_time=args.elapsed,
    )
    print(f"Delivered: {len(report.delivered)}, failed: {len(report.failed)}, skipped: {len(report.skipped)}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="arclink", description="arcdps plugin manager and Discord webhook notifier")
    parser.add_argument("-c", "--config", default=CONFIG_FILE, help="path to config.json")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("status").set_defaults(func=cmd_status)

    check = sub.add_parser("check")
    check.add_argument("--manual", action="store_true", help="ignore the update cooldown")
    check.set_defaults(func=cmd_check)

    types = [t.value for t in ComponentType]
    install = sub.add_parser("install")
    install.add_argument("type", choices=types)
    install.set_defaults(func=cmd_install)

    uninstall = sub.add_parser("uninstall")
    uninstall.add_argument("type", choices=types)
    uninstall.set_defaults(func=cmd_uninstall)

    location = sub.add_parser("location")
    location.add_argument("path", help="game directory or path to its executable")
    location.set_defaults(func=cmd_location)

    webhooks = sub.add_parser("webhooks")
    actions = webhooks.add_subparsers(dest="action", required=True)
    actions.add_parser("list")
    add = actions.add_parser("add")
    add.add_argument("name")
    add.add_argument("url")
    add.add_argument("--inactive", action="store_true")
    add.add_argument("--only-success", action="store_true")
    add.add_argument("--hide-players", action="store_true")
    for action in ("remove", "toggle", "test"):
        actions.add_parser(action).add_argument("id", type=int)
    webhooks.set_defaults(func=cmd_webhooks)

    notify = sub.add_parser("notify")
    notify.add_argument("report", help="dps.report JSON file")
    notify.set_defaults(func=cmd_notify)

    session = sub.add_parser("session")
    session.add_argument("reports", nargs="+", help="dps.report JSON files")
    session.add_argument("--name", default="Log session")
    session.add_argument("--content", default="")
    session.add_argument("--show-success", action="store_true")
    session.add_argument("--elapsed", default="")
    session.set_defaults(func=cmd_session)

    return parser


def main(argv: list[str] | None = None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config_path = Path(args.config)
    config = read_config(config_path)
    try:
        args.func(args, config, config_path)
    except ArcLinkError as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
