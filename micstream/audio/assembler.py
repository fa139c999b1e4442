"""Collects encoded chunks in arrival order and produces the final artifact."""

import logging
import threading
from typing import List

from ..models.artifact import EncodedArtifact

logger = logging.getLogger(__name__)


class OutputAssembler:
    """Ordered chunk list for one session.

    ``append`` is the only mutator and ``finalize`` runs exactly once;
    nothing is exposed before finalize.
    """

    def __init__(self, mime_type: str):
        self.mime_type = mime_type
        self._chunks: List[bytes] = []
        self._size = 0
        self._finalized = False
        self._lock = threading.Lock()

    def append(self, chunk: bytes) -> None:
        if not chunk:
            return
        with self._lock:
            if self._finalized:
                raise RuntimeError("Cannot append to a finalized assembler")
            self._chunks.append(bytes(chunk))
            self._size += len(chunk)

    @property
    def chunk_count(self) -> int:
        return len(self._chunks)

    @property
    def size_bytes(self) -> int:
        return self._size

    @property
    def finalized(self) -> bool:
        return self._finalized

    def finalize(self, **metadata) -> EncodedArtifact:
        """Concatenate all chunks into an EncodedArtifact.

        Args:
            **metadata: Extra EncodedArtifact fields (session_id, sample_rate, ...)
        """
        with self._lock:
            if self._finalized:
                raise RuntimeError("Assembler already finalized")
            self._finalized = True
            artifact = EncodedArtifact(
                data=b"".join(self._chunks),
                mime_type=self.mime_type,
                chunk_count=len(self._chunks),
                **metadata,
            )
            self._chunks.clear()

        logger.info(f"Assembled artifact: {artifact.size_bytes} bytes from "
                    f"{artifact.chunk_count} chunks ({artifact.mime_type})")
        return artifact
