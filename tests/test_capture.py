"""
Tests for capture sessions
"""

import asyncio
import time

import pytest
from unittest.mock import Mock

from services.errors import ConfigurationError
from services.voice_service.capture import CaptureSession, TranscriptionCapture


class TestCaptureSession:
    """Test transcript accumulation and silence auto-stop"""

    def setup_method(self):
        self.recognizer = Mock()
        self.transcripts = []
        self.errors = []
        self.session = CaptureSession(self.recognizer, silence_timeout=0.05)
        self.session.subscribe(self.transcripts.append, self.errors.append)

    def test_start_and_stop(self):
        self.session.start()
        assert self.session.is_listening
        self.recognizer.start.assert_called_once()

        self.session.stop()
        assert not self.session.is_listening
        self.recognizer.stop.assert_called_once()

    def test_start_twice_is_noop(self):
        self.session.start()
        self.session.start()

        self.recognizer.start.assert_called_once()

    def test_silence_emits_accumulated_transcript_once(self):
        async def scenario():
            self.session.start()
            self.session.feed("hello", is_final=True)
            self.session.feed("how are", is_final=False)
            self.session.feed("how are you", is_final=True)
            await asyncio.sleep(0.2)

        asyncio.run(scenario())

        assert self.transcripts == ["hello how are you"]
        assert not self.session.is_listening
        self.recognizer.stop.assert_called_once()

    def test_speech_resets_the_timer(self):
        async def scenario():
            self.session.start()
            self.session.feed("one", is_final=True)
            await asyncio.sleep(0.03)
            self.session.feed("two", is_final=True)
            await asyncio.sleep(0.03)
            emitted_early = list(self.transcripts)
            await asyncio.sleep(0.1)
            return emitted_early

        emitted_early = asyncio.run(scenario())

        assert emitted_early == []
        assert self.transcripts == ["one two"]

    def test_interim_only_emits_nothing(self):
        async def scenario():
            self.session.start()
            self.session.feed("mumble", is_final=False)
            await asyncio.sleep(0.2)

        asyncio.run(scenario())

        assert self.transcripts == []
        assert self.errors == ["no-speech"]
        assert not self.session.is_listening

    def test_stop_discards_pending_speech(self):
        async def scenario():
            self.session.start()
            self.session.feed("never mind", is_final=True)
            self.session.stop()
            await asyncio.sleep(0.2)

        asyncio.run(scenario())

        assert self.transcripts == []

    def test_end_flushes(self):
        self.session.auto_stop = False
        self.session.start()
        self.session.feed("  done talking ", is_final=True)

        self.session.end()

        assert self.transcripts == ["done talking"]

    def test_end_without_final_result_reports_no_speech(self):
        self.session.auto_stop = False
        self.session.start()
        self.session.feed("uh", is_final=False)

        self.session.end()

        assert self.transcripts == []
        assert self.errors == ["no-speech"]

    def test_feed_ignored_when_not_listening(self):
        self.session.feed("ghost", is_final=True)
        self.session.end()

        assert self.transcripts == []
        assert self.errors == []

    def test_fail_reports_code(self):
        self.session.start()

        self.session.fail("not-allowed")

        assert self.errors == ["not-allowed"]
        assert not self.session.is_listening

    def test_recognizer_start_failure(self):
        self.recognizer.start.side_effect = RuntimeError("no microphone")

        self.session.start()

        assert self.errors == ["audio-capture"]
        assert not self.session.is_listening


class TestTranscriptionCapture:
    """Test capture from recorded clips"""

    def setup_method(self):
        self.transcribe = Mock(return_value="what time is it")
        self.transcripts = []
        self.errors = []
        self.capture = TranscriptionCapture(self.transcribe, silence_timeout=0.05)
        self.capture.subscribe(self.transcripts.append, self.errors.append)

    def test_clip_becomes_transcript(self):
        asyncio.run(self.capture.submit_audio(b"audio"))

        self.transcribe.assert_called_once_with(b"audio")
        assert self.transcripts == ["what time is it"]
        assert not self.capture.is_listening

    def test_empty_clip_ignored(self):
        asyncio.run(self.capture.submit_audio(b""))

        self.transcribe.assert_not_called()
        assert self.errors == []

    def test_silent_clip_reports_no_speech(self):
        self.transcribe.return_value = ""

        asyncio.run(self.capture.submit_audio(b"audio"))

        assert self.transcripts == []
        assert self.errors == ["no-speech"]
        assert not self.capture.is_listening

    def test_transcription_failure(self):
        self.transcribe.side_effect = ConfigurationError()

        asyncio.run(self.capture.submit_audio(b"audio"))

        assert self.errors == ["network"]
        assert self.transcripts == []

    def test_loop_keeps_running_during_upload(self):
        def slow_transcribe(audio):
            time.sleep(0.2)
            return "still there?"

        self.capture.transcribe = slow_transcribe

        async def scenario():
            ticks = []
            asyncio.get_running_loop().call_later(0.02, lambda: ticks.append(list(self.transcripts)))
            await self.capture.submit_audio(b"audio")
            return ticks

        ticks = asyncio.run(scenario())

        # The timer fired while the clip was still being transcribed
        assert ticks == [[]]
        assert self.transcripts == ["still there?"]

    def test_stop_during_upload_discards_clip(self):
        def slow_transcribe(audio):
            time.sleep(0.1)
            return "never mind"

        self.capture.transcribe = slow_transcribe

        async def scenario():
            uploading = asyncio.ensure_future(self.capture.submit_audio(b"audio"))
            await asyncio.sleep(0.02)
            self.capture.stop()
            await uploading

        asyncio.run(scenario())

        assert self.transcripts == []
        assert self.errors == []
