#!/usr/bin/env python3
"""
Lasso Search Service - Entry Point
==================================

Serves one listings file over MQTT:
- commands arrive on lasso/control/{service_id}/commands
- search results go to lasso/data/results/{service_id}
- starting point / route snapshots go to lasso/data/overlay/{service_id}

Usage:
    python run_search_service.py --config config/search_service.yaml

Startup refuses to continue when the config or the listings file is
unreadable (exit status 1). SIGINT and SIGTERM stop the publisher thread
and disconnect every MQTT client before exiting.

Logs go to stdout and, unless --no-log-file, to logs/search_service.log.
MQTT publishers and the search session also emit JSON lines on stderr.
"""

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

from lasso_control import MQTTControlPlane
from lasso_mqtt import OverlayPublisher, SearchResultPublisher, create_logger
from lasso_service import SearchService, ServiceConfig


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(log_file: Optional[Path] = None, level: int = logging.INFO) -> logging.Logger:
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)
    return logging.getLogger("lasso.runner")


class SearchApp:
    """Wires config, MQTT clients and SearchService together; owns signals."""

    def __init__(self, config_path: Path, log_file: Optional[Path] = None, level: int = logging.INFO):
        self.config_path = config_path
        self.level = level
        self.logger = setup_logging(log_file, level)

        self.config: Optional[ServiceConfig] = None
        self.control_plane: Optional[MQTTControlPlane] = None
        self.service: Optional[SearchService] = None

        self._stopping = False

    def _publisher(self, publisher_cls, kind: str, topic: str):
        mqtt = self.config.mqtt_config
        return publisher_cls(
            broker_host=mqtt.broker,
            broker_port=mqtt.port,
            topic=topic,
            logger=create_logger(f"mqtt.{kind}", self.level, service_id=self.config.service_id),
            client_id=f"lasso_{kind}_{self.config.service_id}",
            username=mqtt.username,
            password=mqtt.password,
            qos=mqtt.qos,
        )

    def setup(self):
        """Build every component and load the listings (raises on bad config or data)."""
        self.config = ServiceConfig.from_yaml(self.config_path)
        service_id = self.config.service_id
        mqtt = self.config.mqtt_config
        topics = self.config.topics
        self.logger.info(f"🚀 service_id={service_id} broker={mqtt.broker}:{mqtt.port}")

        self.control_plane = MQTTControlPlane(
            broker_host=mqtt.broker,
            broker_port=mqtt.port,
            command_topic=topics["command"],
            status_topic=topics["status"],
            client_id=f"lasso_{service_id}",
            username=mqtt.username,
            password=mqtt.password,
        )

        self.service = SearchService(
            config=self.config,
            control_plane=self.control_plane,
            result_publisher=self._publisher(SearchResultPublisher, "results", topics["result"]),
            overlay_publisher=self._publisher(OverlayPublisher, "overlay", topics["overlay"]),
            structured_logger=create_logger("search", self.level, service_id=service_id),
        )
        for name in ("command", "status", "result", "overlay"):
            self.logger.info(f"   {name:<8} {topics[name]}")

        self.logger.info(f"🗺️  Loading listings from {self.config.listings_path}")
        self.service.setup()

    def run(self):
        """Start serving and block until a signal or a fatal service error."""
        if not self.service:
            raise RuntimeError("SearchApp.setup() must run before run()")

        signal.signal(signal.SIGINT, self._on_signal)
        signal.signal(signal.SIGTERM, self._on_signal)

        try:
            self.service.start()
            self.logger.info("✅ Serving (Ctrl+C to stop)")
            self.service.wait()
        except KeyboardInterrupt:
            self.shutdown()
        except RuntimeError as e:
            self.logger.error(f"❌ {e}", exc_info=True)
            self.shutdown()
            sys.exit(1)

    def shutdown(self):
        """Stop once; later calls are ignored."""
        if self._stopping:
            return
        self._stopping = True

        self.logger.info("🛑 Stopping")
        if self.service and self.service.is_running:
            self.service.stop()
        elif self.control_plane:
            # start() may have failed after the control plane connected
            self.control_plane.disconnect()
        self.logger.info("✅ Stopped")

    def _on_signal(self, signum, frame):
        self.logger.info(f"⚠️  {signal.Signals(signum).name} received")
        self.shutdown()
        sys.exit(0)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Lasso Search Service - polygon search over GeoJSON listings, driven by MQTT",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_search_service.py --config config/search_service.yaml
  python run_search_service.py --config config/search_service.yaml --no-log-file --debug
        """
    )
    parser.add_argument('--config', type=Path, required=True, help='Service configuration YAML')
    parser.add_argument(
        '--log-file',
        type=Path,
        default=Path('logs/search_service.log'),
        help='Log file (default: logs/search_service.log)'
    )
    parser.add_argument('--no-log-file', action='store_true', help='Log to stdout only')
    parser.add_argument('--debug', action='store_true', help='DEBUG level logging')
    return parser.parse_args(argv)


def main():
    args = parse_args()

    if not args.config.is_file():
        print(f"❌ Config not found: {args.config}", file=sys.stderr)
        sys.exit(1)

    app = SearchApp(
        config_path=args.config,
        log_file=None if args.no_log_file else args.log_file,
        level=logging.DEBUG if args.debug else logging.INFO,
    )

    try:
        app.setup()
        app.run()
    except (FileNotFoundError, ValueError) as e:
        # ParseError subclasses ValueError: an unreadable listings file is fatal
        print(f"❌ Startup failed: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
