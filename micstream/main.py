"""Main application entry point for micstream."""

import sys
import time
import argparse
import logging
from pathlib import Path
from typing import Optional

from pubsub import pub
from rich.console import Console

from . import __version__
from .config import MicStreamConfig
from .models.artifact import EncodedArtifact
from .services.publishers import ArtifactPublisher, StatusPublisher
from .services.session_controller import SessionController
from .storage.exporter import ArtifactExporter
from .ui.keyboard_input import KEY_QUIT, KEY_START, KEY_STOP, create_input_handler

logger = logging.getLogger(__name__)

STATUS_TOPIC = "recording.status"
ARTIFACT_TOPIC = "recording.artifact"


class Recorder:
    """Wires the session controller to the console and the exporter."""

    def __init__(self, config: MicStreamConfig, console: Optional[Console] = None):
        self.config = config
        self.console = console or Console()

        self.status_publisher = StatusPublisher(STATUS_TOPIC)
        self.artifact_publisher = ArtifactPublisher(ARTIFACT_TOPIC)
        self.exporter = ArtifactExporter(self.config.get_output_directory())

        pub.subscribe(self._on_status, STATUS_TOPIC)
        pub.subscribe(self._on_artifact, ARTIFACT_TOPIC)
        pub.subscribe(self.exporter.on_artifact, ARTIFACT_TOPIC)

        self.controller = SessionController(
            self.config,
            status_callback=self.status_publisher.get_callback(),
            artifact_callback=self.artifact_publisher.get_callback(),
        )

    def _on_status(self, text: str) -> None:
        self.console.print(f"[bold cyan]●[/bold cyan] {text}")

    def _on_artifact(self, artifact: EncodedArtifact) -> None:
        self.console.print(
            f"[green]Recorded {artifact.block_count} blocks, {artifact.size_bytes} bytes "
            f"({artifact.mime_type})[/green]"
        )
        if artifact.fault_count:
            self.console.print(f"[yellow]{artifact.fault_count} blocks could not be encoded[/yellow]")

    def run_auto(self, duration: float) -> Optional[Path]:
        """Record for ``duration`` seconds, then stop and export."""
        if not self.controller.start():
            return None
        try:
            time.sleep(duration)
        finally:
            self.controller.stop()
        return self.exporter.last_path

    def run_interactive(self) -> None:
        self.console.print(
            f"[bold]micstream[/bold]  {KEY_START}=start  {KEY_STOP}=stop  {KEY_QUIT}=quit"
        )
        handler = create_input_handler(self.handle_key)
        handler.start()
        try:
            handler.wait()
        finally:
            handler.stop()

    def handle_key(self, key: str) -> bool:
        """Dispatch one command key; returns False to quit."""
        if key == KEY_START:
            self.controller.start()
        elif key == KEY_STOP:
            self.controller.stop()
        elif key == KEY_QUIT:
            return False
        return True

    def cleanup(self) -> None:
        self.controller.cleanup()
        if self.exporter.last_path:
            self.console.print(f"Saved: {self.exporter.last_path}")


def setup_logging(config: MicStreamConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'logs/micstream.log')
    console_output = config.get('logging.console_output', True)

    Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler gets everything
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(threadName)s - %(funcName)s:%(lineno)d - %(message)s'
    ))
    handlers.append(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info(f"micstream {__version__} starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="micstream - record the microphone to a compressed audio file",
        epilog="Commands: 1=Start recording, 2=Stop recording, q=Quit"
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: built-in settings)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config, INFO)"
    )
    parser.add_argument(
        "--auto",
        action="store_true",
        help="Start recording, record for --duration seconds, then stop, save and exit"
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=10,
        help="Duration in seconds for auto mode recording (default: 10)"
    )
    parser.add_argument(
        "--strategy",
        choices=["auto", "container", "software"],
        help="Encoding strategy (overrides config)"
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        help="Directory for saved recordings (overrides config)"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"micstream v{__version__}"
    )
    return parser


def main(argv=None) -> None:
    """Main entry point for micstream."""
    args = build_parser().parse_args(argv)

    try:
        config = MicStreamConfig(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    if args.strategy:
        config.set('encoding.strategy', args.strategy)
    if args.output_dir:
        config.set('output.directory', args.output_dir)

    setup_logging(config, args.log_level or config.get('logging.level', 'INFO'))

    recorder = Recorder(config)
    try:
        if args.auto:
            path = recorder.run_auto(args.duration)
            if path is None:
                sys.exit(1)
        else:
            recorder.run_interactive()
    except KeyboardInterrupt:
        recorder.console.print("\nInterrupted")
    except Exception as e:
        logger.error(f"Application error: {e}", exc_info=True)
        recorder.console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)
    finally:
        recorder.cleanup()


if __name__ == "__main__":
    main()
