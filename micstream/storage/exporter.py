"""Writes finished recordings to disk."""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from ..models.artifact import EncodedArtifact

logger = logging.getLogger(__name__)


class ArtifactExporter:
    """Saves EncodedArtifacts as ``recording_<UTC timestamp>.<ext>`` files."""

    def __init__(self, output_dir: str = "recordings"):
        """Initialize exporter with output directory.

        Args:
            output_dir: Directory receiving exported recordings
        """
        self.output_dir = Path(output_dir)
        self.last_path: Optional[Path] = None
        logger.info(f"ArtifactExporter initialized with output_dir: {self.output_dir}")

    def build_filename(self, artifact: EncodedArtifact, when: Optional[datetime] = None) -> str:
        """Download-style name for an artifact.

        Colons are not valid in file names everywhere, so the ISO-8601
        time separators are written as dashes.
        """
        when = when or datetime.now(timezone.utc)
        stamp = when.astimezone(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%f")[:-3]
        return f"recording_{stamp}Z.{artifact.extension}"

    def export(self, artifact: EncodedArtifact) -> Path:
        """Write the artifact bytes and return the file path.

        Args:
            artifact: Finished recording

        Returns:
            Path of the written file
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / self.build_filename(artifact)

        counter = 1
        while path.exists():
            path = path.with_name(f"{path.stem.split('~')[0]}~{counter}{path.suffix}")
            counter += 1

        try:
            with open(path, 'wb') as f:
                f.write(artifact.data)
        except OSError as e:
            logger.error(f"Error exporting recording: {e}")
            raise

        self.last_path = path
        logger.info(f"Recording exported: {path} ({artifact.size_bytes} bytes, {artifact.mime_type})")
        return path

    def on_artifact(self, artifact: EncodedArtifact) -> None:
        """pub/sub listener for the artifact topic."""
        try:
            self.export(artifact)
        except OSError as e:
            logger.error(f"Could not export session {artifact.session_id}: {e}")
