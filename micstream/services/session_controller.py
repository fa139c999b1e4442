"""Session controller that owns the capture-to-encode lifecycle."""

import logging
import random
import string
import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ..audio.assembler import OutputAssembler
from ..audio.audio_pub import AudioPublisher
from ..audio.bridge import CaptureBridge
from ..audio.capture import AudioDevice
from ..audio.framer import frame_block
from ..config import MicStreamConfig
from ..encoding.base import AbstractEncoder
from ..encoding.factory import create_encoder, select_strategy
from ..errors import (
    BlockEncodeFault,
    CaptureError,
    DeviceUnavailable,
    EncoderInitFailure,
    TeardownFault,
    UnsupportedPlatform,
)
from ..models.artifact import EncodedArtifact
from ..models.session import Session, SessionState

logger = logging.getLogger(__name__)

STATUS_REQUESTING = "Requesting microphone access..."
STATUS_GRANTED = "Microphone access granted."
STATUS_DENIED = "Microphone access was denied or an error occurred."
STATUS_UNSUPPORTED = "This platform does not support microphone input."
STATUS_ENCODER_FAILED = "This platform does not support recording."
STATUS_RECORDING = "Recording..."
STATUS_STOPPING = "Finishing recording..."
STATUS_SAVED = "Recording finished."
STATUS_FAILED = "Recording could not be completed."


def new_session_id() -> str:
    """Timestamp-based session ID with a random suffix."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    random_suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=4))
    return f"{timestamp}_{random_suffix}"


class SessionController:
    """State machine coordinating device, encoder, bridge and assembler.

    Idle -> RequestingAccess -> (denied: Idle) | (granted: Capturing)
    -> Stopping -> Idle. Only one session exists at a time; start() is
    honored only from Idle and stop() only from Capturing.
    """

    def __init__(
        self,
        config: Optional[MicStreamConfig] = None,
        device: Optional[Any] = None,
        status_callback: Optional[Callable[[str], None]] = None,
        artifact_callback: Optional[Callable[[EncodedArtifact], None]] = None,
    ):
        """Initialize session controller.

        Args:
            config: Application configuration
            device: Capture device collaborator, built from config if None
            status_callback: Receives human readable status lines
            artifact_callback: Receives each finished EncodedArtifact
        """
        self.config = config or MicStreamConfig()
        self.device = device or AudioDevice(
            device_index=self.config.get('audio.device_index'),
            sample_rate=self.config.get('audio.sample_rate'),
            channels=self.config.get('audio.channels'),
            frames_per_buffer=self.config.get('audio.frames_per_buffer', 1024),
        )
        self.status_callback = status_callback
        self.artifact_callback = artifact_callback

        self.topic = self.config.get('bridge.topic', 'audio.blocks')
        self.max_pending = int(self.config.get('bridge.max_pending', 0))
        self.poll_interval = float(self.config.get('bridge.poll_interval_seconds', 0.1))

        self._lock = threading.Lock()
        self._state = SessionState.IDLE
        self.session: Optional[Session] = None
        self.last_artifact: Optional[EncodedArtifact] = None
        self.last_error: Optional[BaseException] = None

        # Owned by the active session only
        self._encoder: Optional[AbstractEncoder] = None
        self._bridge: Optional[CaptureBridge] = None
        self._worker: Optional[threading.Thread] = None
        self._capture_failed = threading.Event()
        self._escalation: Optional[threading.Thread] = None

        logger.info("SessionController ready")

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    def _set_state(self, state: SessionState) -> None:
        with self._lock:
            self._state = state
            if self.session is not None:
                self.session.state = state

    def _set_status(self, text: str) -> None:
        logger.info(f"Status: {text}")
        if self.status_callback:
            try:
                self.status_callback(text)
            except Exception as e:
                logger.warning(f"Status callback failed: {e}")

    def start(self) -> bool:
        """Request device access and begin capturing.

        Returns:
            True if a session is now capturing, False otherwise
        """
        with self._lock:
            if self._state is not SessionState.IDLE:
                logger.warning(f"start() ignored, session is {self._state.value}")
                return False
            self._state = SessionState.REQUESTING_ACCESS

        self.last_error = None
        self._capture_failed = threading.Event()
        self._set_status(STATUS_REQUESTING)

        try:
            stream = self.device.request_access()
        except UnsupportedPlatform as e:
            self._abort_start(e, STATUS_UNSUPPORTED)
            return False
        except DeviceUnavailable as e:
            self._abort_start(e, STATUS_DENIED)
            return False
        except Exception as e:
            self._abort_start(DeviceUnavailable(str(e)), STATUS_DENIED)
            return False

        self._set_status(STATUS_GRANTED)

        session = Session(
            session_id=new_session_id(),
            stream=stream,
            source_channels=stream.channels,
            sample_rate=stream.sample_rate,
        )
        if stream.channels > 2:
            logger.warning(f"Device delivers {stream.channels} channels; "
                           f"only the first two are encoded")

        try:
            session.channels = self._encoder_channels(stream.channels)
            choice = select_strategy(
                strategy=self.config.get('encoding.strategy', 'auto'),
                preferences=self.config.get('encoding.mime_preferences'),
            )
            encoder = create_encoder(choice, stream.sample_rate, session.channels, self.config)
        except Exception as e:
            error = e if isinstance(e, EncoderInitFailure) else EncoderInitFailure(str(e))
            self._release_quietly(stream)
            self._abort_start(error, STATUS_ENCODER_FAILED)
            return False

        session.strategy = encoder.strategy
        session.mime_type = encoder.mime_type
        session.assembler = OutputAssembler(encoder.mime_type)

        bridge = CaptureBridge(topic=self.topic, max_pending=self.max_pending)
        bridge.connect()
        worker = threading.Thread(
            target=self._encode_loop, args=(session, encoder, bridge), daemon=True
        )
        worker.name = "SessionEncodeWorker"

        with self._lock:
            self.session = session
            self._encoder = encoder
            self._bridge = bridge
            self._worker = worker
        worker.start()

        publisher = AudioPublisher(self.topic)
        try:
            stream.start(publisher.publish_audio_block, bridge.report_error)
        except Exception as e:
            logger.error(f"Could not start capture stream: {e}")
            bridge.disconnect()
            worker.join()
            self._release_quietly(encoder)
            self._release_quietly(stream)
            with self._lock:
                self.session = None
                self._encoder = self._bridge = self._worker = None
            self._abort_start(DeviceUnavailable(str(e)), STATUS_DENIED)
            return False

        self._set_state(SessionState.CAPTURING)
        logger.info(f"Session {session.session_id} capturing: {session.sample_rate}Hz, "
                    f"{session.source_channels}ch in, {session.channels}ch out, "
                    f"{session.strategy} ({session.mime_type})")
        self._set_status(STATUS_RECORDING)

        if self._capture_failed.is_set():
            self.stop()
        return True

    def _encoder_channels(self, source_channels: int) -> int:
        configured = self.config.get('encoding.channels')
        if configured is None:
            return min(source_channels, 2)
        if configured not in (1, 2):
            raise ValueError(f"encoding.channels must be 1 or 2, got {configured}")
        return configured

    def _abort_start(self, error: BaseException, status: str) -> None:
        logger.warning(f"Session start aborted: {error}")
        self.last_error = error
        with self._lock:
            self._state = SessionState.IDLE
            self.session = None
        self._set_status(status)

    def _encode_loop(self, session: Session, encoder: AbstractEncoder, bridge: CaptureBridge) -> None:
        """Consume blocks in delivery order until the bridge is drained."""
        logger.debug(f"Encode worker for {session.session_id} starting")
        while True:
            try:
                block = bridge.get(timeout=self.poll_interval)
            except CaptureError as e:
                logger.error(f"Capture failed, stopping session: {e}")
                self.last_error = e
                self._capture_failed.set()
                escalation = threading.Thread(target=self.stop, daemon=True)
                escalation.name = "SessionEscalation"
                self._escalation = escalation
                escalation.start()
                break

            if block is None:
                if bridge.is_drained():
                    break
                continue

            session.blocks_received += 1
            try:
                chunk = encoder.encode(frame_block(block, session.channels))
            except Exception as e:
                fault = BlockEncodeFault(block.sequence_number, e)
                session.fault_count += 1
                logger.warning(f"{fault} (faults so far: {session.fault_count})")
                continue

            session.assembler.append(chunk)
            session.blocks_encoded += 1

        logger.debug(f"Encode worker for {session.session_id} exiting after "
                     f"{session.blocks_encoded} blocks")

    def stop(self) -> Optional[EncodedArtifact]:
        """Stop capturing, flush the encoder and publish the artifact.

        Returns:
            The EncodedArtifact, or None if no session was capturing or
            finalization failed
        """
        with self._lock:
            if self._state is not SessionState.CAPTURING:
                logger.info(f"stop() ignored, session is {self._state.value}")
                return None
            self._state = SessionState.STOPPING
            session = self.session
            session.state = SessionState.STOPPING
            encoder, bridge, worker = self._encoder, self._bridge, self._worker

        self._set_status(STATUS_STOPPING)
        artifact = None
        try:
            bridge.disconnect()
            worker.join()
            session.blocks_dropped = bridge.get_stats().dropped
            session.assembler.append(encoder.finalize())
            artifact = session.assembler.finalize(
                session_id=session.session_id,
                sample_rate=session.sample_rate,
                channels=session.channels,
                block_count=session.blocks_encoded,
                fault_count=session.fault_count,
                dropped_count=session.blocks_dropped,
            )
        except Exception as e:
            logger.error(f"Finalizing session {session.session_id} failed: {e}", exc_info=True)
            self.last_error = e
        finally:
            faults = self._release(session, encoder, bridge)
            if faults:
                teardown = TeardownFault(faults)
                logger.error(str(teardown))
                self.last_error = teardown
            with self._lock:
                session.state = SessionState.IDLE
                self.session = None
                self._encoder = self._bridge = self._worker = None
                self._state = SessionState.IDLE

        if artifact is None:
            self._set_status(STATUS_FAILED)
            return None

        self.last_artifact = artifact
        logger.info(f"Session {session.session_id} finished: {session.blocks_encoded}/"
                    f"{session.blocks_received} blocks encoded, {session.fault_count} faults, "
                    f"{artifact.size_bytes} bytes")
        self._set_status(STATUS_SAVED)
        if self.artifact_callback:
            try:
                self.artifact_callback(artifact)
            except Exception as e:
                logger.error(f"Artifact callback failed: {e}", exc_info=True)
        return artifact

    def _release(self, session: Session, encoder: AbstractEncoder,
                 bridge: CaptureBridge) -> List[BaseException]:
        """Release every session resource, collecting failures."""
        faults: List[BaseException] = []
        for release in (bridge.disconnect, encoder.close, session.stream.close):
            try:
                release()
            except TeardownFault as e:
                faults.extend(e.faults)
            except Exception as e:
                faults.append(e)
        session.stream = None
        return faults

    def _release_quietly(self, resource: Any) -> None:
        try:
            resource.close()
        except Exception as e:
            logger.warning(f"Releasing {type(resource).__name__} failed: {e}")

    def get_session_stats(self) -> Dict[str, Any]:
        """Get statistics for the active session."""
        with self._lock:
            session = self.session
            bridge = self._bridge
            state = self._state

        stats: Dict[str, Any] = {"state": state.value}
        if session is None:
            return stats

        stats.update({
            "session_id": session.session_id,
            "strategy": session.strategy,
            "mime_type": session.mime_type,
            "sample_rate": session.sample_rate,
            "channels": session.channels,
            "blocks_received": session.blocks_received,
            "blocks_encoded": session.blocks_encoded,
            "fault_count": session.fault_count,
            "encoded_bytes": session.assembler.size_bytes if session.assembler else 0,
            "duration_seconds": (datetime.now() - session.started_at).total_seconds(),
        })
        if bridge is not None:
            bridge_stats = bridge.get_stats()
            stats["dropped_blocks"] = bridge_stats.dropped
            stats["pending_blocks"] = bridge_stats.pending
        return stats

    def cleanup(self) -> None:
        """Stop any active session and wait for an escalated stop to finish."""
        escalation, self._escalation = self._escalation, None
        if escalation is not None and escalation is not threading.current_thread():
            escalation.join()
        if self.state is SessionState.CAPTURING:
            self.stop()
        logger.info("SessionController cleaned up")
