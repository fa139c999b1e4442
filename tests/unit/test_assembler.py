"""Unit tests for OutputAssembler."""

import pytest

from micstream.audio.assembler import OutputAssembler


@pytest.mark.unit
class TestOutputAssembler:
    """Test cases for OutputAssembler."""

    def test_concatenates_in_append_order(self):
        assembler = OutputAssembler("audio/ogg")
        for chunk in (b"OggS", b"-one", b"-two"):
            assembler.append(chunk)

        artifact = assembler.finalize(session_id="abc", block_count=3)

        assert artifact.data == b"OggS-one-two"
        assert artifact.mime_type == "audio/ogg"
        assert artifact.chunk_count == 3
        assert artifact.block_count == 3
        assert artifact.session_id == "abc"
        assert artifact.extension == "ogg"

    def test_empty_chunks_are_ignored(self):
        assembler = OutputAssembler("audio/mpeg")
        assembler.append(b"")
        assembler.append(b"abc")
        assembler.append(b"")

        assert assembler.chunk_count == 1
        assert assembler.size_bytes == 3

    def test_finalize_only_once(self):
        assembler = OutputAssembler("audio/mpeg")
        assembler.finalize()

        assert assembler.finalized
        with pytest.raises(RuntimeError):
            assembler.finalize()

    def test_append_after_finalize_rejected(self):
        assembler = OutputAssembler("audio/mpeg")
        assembler.finalize()

        with pytest.raises(RuntimeError):
            assembler.append(b"late")

    def test_empty_session_produces_empty_artifact(self):
        artifact = OutputAssembler("application/octet-stream").finalize()

        assert artifact.data == b""
        assert artifact.size_bytes == 0
        assert artifact.extension == "bin"

    @pytest.mark.parametrize("mime_type,extension", [
        ("audio/webm;codecs=opus", "webm"),
        ("audio/ogg;codecs=opus", "ogg"),
        ("audio/mpeg", "mp3"),
        ("application/octet-stream", "bin"),
    ])
    def test_extension_follows_mime_type(self, mime_type, extension):
        assert OutputAssembler(mime_type).finalize().extension == extension
