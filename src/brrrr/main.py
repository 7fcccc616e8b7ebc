"""
Brrrr - face-touch awareness
Watches the camera and alerts when a hand reaches for your face
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

from .config import AppConfig, ConfigManager, get_config_manager
from .stats import TouchStatsStore

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="brrrr", description="Brrrr - face-touch awareness")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("--config-dir", help="Directory holding settings.json and stats.json")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Start monitoring the camera")
    run_parser.add_argument("--camera", type=int, help="Camera index to use")
    run_parser.add_argument("--mock-camera", action="store_true", help="Use mock camera for CI/testing")
    run_parser.add_argument("--no-server", action="store_true", help="Do not start the status websocket server")
    run_parser.add_argument("--port", type=int, help="Status server port")

    config_parser = subparsers.add_parser("config", help="Show or change settings")
    config_sub = config_parser.add_subparsers(dest="config_command", required=True)
    config_sub.add_parser("show", help="Print current settings as JSON")
    config_sub.add_parser("reset", help="Restore default settings")
    set_parser = config_sub.add_parser("set", help="Set one value, e.g. alerts.cooldown_seconds 5")
    set_parser.add_argument("key", help="SECTION.FIELD")
    set_parser.add_argument("value", help="New value (parsed as JSON when possible)")

    subparsers.add_parser("stats", help="Show today's touch count")
    return parser


def _parse_value(raw: str):
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def cmd_config(args, manager: ConfigManager) -> int:
    if args.config_command == "show":
        print(json.dumps(manager.load_config().model_dump(mode="json"), indent=2))
        return 0

    if args.config_command == "reset":
        manager.reset_config()
        print(f"Settings reset to defaults ({manager.config_file})")
        return 0

    section, _, field = args.key.partition(".")
    if not field:
        logger.error(f"Expected SECTION.FIELD, got '{args.key}'")
        return 2

    config = manager.load_config()
    if section not in AppConfig.model_fields or field not in type(getattr(config, section)).model_fields:
        logger.error(f"Unknown setting '{args.key}'")
        return 2

    try:
        manager.update_config(**{section: {field: _parse_value(args.value)}})
    except ValidationError as e:
        logger.error(f"Invalid setting {args.key}={args.value}: {e}")
        return 1

    print(f"{args.key} = {args.value}")
    return 0


def cmd_stats(stats: TouchStatsStore) -> int:
    current = stats.load()
    print(f"Touches today ({current.day.isoformat()}): {current.count}")
    return 0


def cmd_run(args, manager: ConfigManager) -> int:
    from .camera_utils import MockCamera, initialize_camera
    from .monitor import TouchMonitor
    from .server import TouchStatusServer
    from .vision import VisionPipeline

    config = manager.load_config()
    stats = TouchStatsStore(manager.config_dir)

    if args.mock_camera:
        logger.info("Using mock camera")
        cap = MockCamera(config.camera.width, config.camera.height)
    else:
        device_id = args.camera if args.camera is not None else config.camera.device_id
        cap = initialize_camera(camera_index=device_id, width=config.camera.width, height=config.camera.height)
        if cap is None:
            logger.warning("Could not open any camera, falling back to mock camera")
            cap = MockCamera(config.camera.width, config.camera.height)

    server = None
    if config.server.enabled and not args.no_server:
        server = TouchStatusServer(host=config.server.host, port=args.port or config.server.port)
        server.run_in_thread()
        if not server.running:
            logger.warning("Status server unavailable, continuing without it")
            server = None

    pipeline = VisionPipeline(config.vision)
    monitor = TouchMonitor(config, stats=stats, listener=server.publish if server else None)
    stats.load()

    logger.info(f"Monitoring started (alerts: {config.alerts.mode.display_name})")
    try:
        monitor.run(cap, pipeline, commands=server)
    finally:
        cap.release()
        pipeline.close()
        if server:
            server.shutdown()
        logger.info("Monitoring stopped and resources released")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=LOG_FORMAT)

    manager = ConfigManager(args.config_dir) if args.config_dir else get_config_manager()

    if args.command == "config":
        return cmd_config(args, manager)
    if args.command == "stats":
        return cmd_stats(TouchStatsStore(manager.config_dir))
    if args.command == "run":
        return cmd_run(args, manager)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
