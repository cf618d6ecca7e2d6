#!/usr/bin/env python3
"""
Occupancy Analyzer Service - Entry Point
========================================

This script starts the occupancy analyzer, which:
- Receives "media uploaded" commands via the MQTT control plane
- Estimates occupancy from images and sampled video frames
- Synthesizes a count-exact seat map per place
- Publishes live data and history updates to MQTT

Usage:
    python run_analyzer.py --config config/analyzer_config.yaml

Architecture:
    - OccupancyAnalysisService: Main orchestrator (occupancy_processor)
    - MQTTControlPlane: Command handler (occupancy_control)
    - LiveDataPublisher: Publishes retained live snapshots (occupancy_mqtt)
    - HistoryUpdatePublisher: Publishes history observations (occupancy_mqtt)

Lifecycle:
    1. Load configuration from YAML
    2. Setup logging (console + file)
    3. Create control plane and publishers
    4. Create OccupancyAnalysisService and register places
    5. Start service (non-blocking)
    6. Wait for stop signal (Ctrl+C or SIGTERM)
    7. Graceful shutdown

Logs:
    - Console: INFO level (structured JSON records for analysis outcomes)
    - File: logs/analyzer.log (INFO level)
"""

import argparse
import signal
import sys
import logging
from pathlib import Path
from typing import Optional

from occupancy_processor import AnalyzerConfig, OccupancyAnalysisService
from occupancy_control import MQTTControlPlane
from occupancy_mqtt import HistoryUpdatePublisher, LiveDataPublisher, create_logger


# ─────────────────────────────────────────────────────────────────────────────
# Logging Setup
# ─────────────────────────────────────────────────────────────────────────────

def setup_logging(log_file: Optional[Path] = None) -> logging.Logger:
    """
    Setup root logging for the analyzer service.

    Args:
        log_file: Optional path to log file (default: logs/analyzer.log)
    """
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            *(
                [logging.FileHandler(log_file)]
                if log_file
                else []
            )
        ]
    )

    return logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Main Service
# ─────────────────────────────────────────────────────────────────────────────

class AnalyzerApp:
    """
    Main application wrapper for OccupancyAnalysisService.

    Handles:
    - Configuration loading
    - Component initialization (control plane, publishers)
    - Signal handling (SIGTERM, SIGINT)
    - Graceful shutdown
    """

    def __init__(self, config_path: Path, log_file: Optional[Path] = None):
        self.config_path = config_path
        self.log_file = log_file
        self.logger = setup_logging(log_file)

        # Components (initialized in setup())
        self.config: Optional[AnalyzerConfig] = None
        self.control_plane: Optional[MQTTControlPlane] = None
        self.live_data_publisher: Optional[LiveDataPublisher] = None
        self.history_publisher: Optional[HistoryUpdatePublisher] = None
        self.service: Optional[OccupancyAnalysisService] = None

        self._shutdown_requested = False

    def setup(self):
        """
        Setup all components.

        Steps:
        1. Load configuration from YAML
        2. Create structured loggers
        3. Create control plane
        4. Create publishers (live data, history)
        5. Create OccupancyAnalysisService and register places/commands
        """
        self.logger.info("=" * 80)
        self.logger.info("🚀 Occupancy Analyzer - Starting")
        self.logger.info("=" * 80)

        # 1. Load configuration
        self.logger.info(f"📄 Loading configuration: {self.config_path}")
        self.config = AnalyzerConfig.from_yaml(self.config_path)
        self.logger.info(
            f"✅ Configuration loaded (service_id={self.config.service_id}, "
            f"places={len(self.config.places)})"
        )
        mqtt_config = self.config.mqtt_config
        service_id = self.config.service_id

        # 2. Structured loggers
        mqtt_logger = create_logger(component="mqtt_publisher")
        analyzer_logger = create_logger(component="analyzer")

        # 3. Control plane
        self.logger.info("🔌 Creating MQTT control plane")
        self.control_plane = MQTTControlPlane(
            broker_host=mqtt_config.broker,
            broker_port=mqtt_config.port,
            command_topic=mqtt_config.topic(mqtt_config.command_topic, service_id),
            status_topic=mqtt_config.topic(mqtt_config.status_topic, service_id),
            client_id=f"analyzer_{service_id}",
            username=mqtt_config.username,
            password=mqtt_config.password,
        )
        self.logger.info("✅ Control plane created")

        # 4. Publishers
        self.logger.info("📤 Creating MQTT publishers")

        live_data_topic = mqtt_config.topic(mqtt_config.live_data_topic, service_id)
        self.live_data_publisher = LiveDataPublisher(
            broker_host=mqtt_config.broker,
            broker_port=mqtt_config.port,
            topic=live_data_topic,
            logger=mqtt_logger,
            client_id=f"publisher_live_{service_id}",
            username=mqtt_config.username,
            password=mqtt_config.password,
            qos=mqtt_config.qos,
        )

        history_topic = mqtt_config.topic(mqtt_config.history_topic, service_id)
        self.history_publisher = HistoryUpdatePublisher(
            broker_host=mqtt_config.broker,
            broker_port=mqtt_config.port,
            topic=history_topic,
            logger=mqtt_logger,
            client_id=f"publisher_history_{service_id}",
            username=mqtt_config.username,
            password=mqtt_config.password,
            qos=mqtt_config.qos,
        )

        self.logger.info(f"  - Live data topic: {live_data_topic}")
        self.logger.info(f"  - History topic: {history_topic}")
        self.logger.info("✅ Publishers created")

        # 5. Service
        self.logger.info("🏗️  Creating occupancy analysis service")
        self.service = OccupancyAnalysisService(
            config=self.config,
            control_plane=self.control_plane,
            live_data_publisher=self.live_data_publisher,
            history_publisher=self.history_publisher,
            structured_logger=analyzer_logger,
        )
        self.service.setup()
        self.logger.info("✅ Service setup complete")

    def run(self):
        """
        Run the service (blocks until stopped via signal or exception).
        """
        if not self.service:
            raise RuntimeError("Service not initialized. Call setup() first.")

        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        try:
            self.service.start()

            self.logger.info("✅ Service started successfully")
            self.logger.info("Press Ctrl+C to stop")
            self.logger.info("=" * 80)

            self.service.wait()

        except KeyboardInterrupt:
            self.logger.info("⚠️  KeyboardInterrupt received")
            self.shutdown()

        except Exception as e:
            self.logger.error(f"❌ Service error: {e}", exc_info=True)
            self.shutdown()
            sys.exit(1)

    def shutdown(self):
        """
        Graceful shutdown of all components.

        Order:
        1. Stop service (workers, publishers, control plane)
        2. Log completion
        """
        if self._shutdown_requested:
            self.logger.warning("⚠️  Shutdown already in progress")
            return

        self._shutdown_requested = True

        self.logger.info("=" * 80)
        self.logger.info("🛑 Shutting down analyzer service")
        self.logger.info("=" * 80)

        if self.service:
            try:
                self.service.stop()
                self.logger.info("✅ Service stopped")
            except Exception as e:
                self.logger.error(f"❌ Error stopping service: {e}", exc_info=True)

        self.logger.info("=" * 80)
        self.logger.info("✅ Shutdown complete")
        self.logger.info("=" * 80)

    def _signal_handler(self, signum, frame):
        signal_name = signal.Signals(signum).name
        self.logger.info(f"⚠️  Received signal {signal_name} ({signum})")
        self.shutdown()
        sys.exit(0)


# ─────────────────────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────────────────────

def parse_args():
    parser = argparse.ArgumentParser(
        description="Occupancy Analyzer - image/video occupancy estimation + MQTT",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start with default config
  python run_analyzer.py --config config/analyzer_config.yaml

  # Start with custom log file
  python run_analyzer.py --config config/analyzer_config.yaml --log-file logs/custom.log

  # Start without file logging (console only)
  python run_analyzer.py --config config/analyzer_config.yaml --no-log-file
        """
    )

    parser.add_argument(
        '--config',
        type=Path,
        required=True,
        help='Path to analyzer configuration YAML file'
    )

    parser.add_argument(
        '--log-file',
        type=Path,
        default=Path('logs/analyzer.log'),
        help='Path to log file (default: logs/analyzer.log)'
    )

    parser.add_argument(
        '--no-log-file',
        action='store_true',
        help='Disable file logging (console only)'
    )

    return parser.parse_args()


def main():
    """
    Main entry point.

    Workflow:
    1. Parse CLI arguments
    2. Create AnalyzerApp
    3. Setup components
    4. Run service (blocks until stopped)
    """
    args = parse_args()

    log_file = None if args.no_log_file else args.log_file

    if not args.config.exists():
        print(f"❌ Error: Configuration file not found: {args.config}", file=sys.stderr)
        sys.exit(1)

    app = AnalyzerApp(
        config_path=args.config,
        log_file=log_file
    )

    try:
        app.setup()
        app.run()
    except Exception as e:
        print(f"❌ Fatal error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
