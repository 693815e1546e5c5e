"""
Announcement de-duplication and cancel-then-speak ordering.
"""
import types
import unittest
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent))

from handcalc.speech import Pyttsx3SpeechOutput, SilentSpeechOutput, SpeechAnnouncer
from synthetic import RecordingSpeech


class TestSpeechAnnouncer(unittest.TestCase):

    def setUp(self):
        self.output = RecordingSpeech()
        self.announcer = SpeechAnnouncer(self.output, lang="en-IN")

    def test_first_sentence_cancels_then_speaks(self):
        self.assertTrue(self.announcer.announce("three plus two equals five"))
        self.assertEqual(
            self.output.events,
            [("cancel",), ("speak", "three plus two equals five", "en-IN")],
        )
        self.assertEqual(self.announcer.last_spoken_sentence, "three plus two equals five")

    def test_repeated_sentence_is_suppressed(self):
        self.announcer.announce("one plus one equals two")
        for _ in range(30):
            self.assertFalse(self.announcer.announce("one plus one equals two"))
        self.assertEqual(self.output.spoken, ["one plus one equals two"])

    def test_changed_sentence_issues_one_cancel_and_one_speak(self):
        self.announcer.announce("one plus one equals two")
        self.output.events.clear()
        self.announcer.announce("one plus two equals three")
        self.assertEqual(
            self.output.events,
            [("cancel",), ("speak", "one plus two equals three", "en-IN")],
        )

    def test_returning_to_an_earlier_sentence_speaks_again(self):
        self.announcer.announce("a")
        self.announcer.announce("b")
        self.announcer.announce("a")
        self.assertEqual(self.output.spoken, ["a", "b", "a"])

    def test_output_failure_is_a_warning_not_an_exception(self):
        self.output.error = RuntimeError("synthesis unsupported")
        with self.assertLogs("handcalc.speech", level="WARNING"):
            spoken = self.announcer.announce("two plus two equals four")
        self.assertFalse(spoken)
        self.assertIn("synthesis unsupported", self.announcer.last_error)

        # Not retried on the next frame, and the warning is not repeated.
        self.assertFalse(self.announcer.announce("two plus two equals four"))
        self.assertIsNone(self.announcer.last_error)

    def test_reset_forgets_last_sentence(self):
        self.announcer.announce("x")
        self.announcer.reset()
        self.assertEqual(self.announcer.last_spoken_sentence, "")
        self.assertTrue(self.announcer.announce("x"))

    def test_silent_output(self):
        announcer = SpeechAnnouncer(SilentSpeechOutput())
        self.assertTrue(announcer.announce("muted"))


class FakeEngine:
    def __init__(self):
        self.said = []
        self.stops = 0
        self.properties = {}
        self.run_error = None

    def setProperty(self, name, value):
        self.properties[name] = value

    def getProperty(self, name):
        return [] if name == "voices" else self.properties.get(name)

    def say(self, text):
        self.said.append(text)

    def runAndWait(self):
        if self.run_error is not None:
            raise self.run_error

    def stop(self):
        self.stops += 1


def fake_pyttsx3(engine=None, init_error=None):
    module = types.ModuleType("pyttsx3")

    def init():
        if init_error is not None:
            raise init_error
        return engine

    module.init = init
    return module


class TestPyttsx3SpeechOutput(unittest.TestCase):

    def setUp(self):
        self.engine = FakeEngine()
        self.modules = patch.dict(sys.modules, {"pyttsx3": fake_pyttsx3(self.engine)})
        self.modules.start()
        self.addCleanup(self.modules.stop)
        self.output = Pyttsx3SpeechOutput(rate=150, volume=0.8)

    def _run_worker(self, *items):
        for item in items:
            self.output._queue.put(item)
        self.output._queue.put(None)
        self.output._run()

    def test_worker_speaks_queued_text(self):
        self._run_worker(("three plus two equals five", "en-IN", 0))
        self.assertEqual(self.engine.said, ["three plus two equals five"])
        self.assertEqual(self.engine.properties["rate"], 150)
        self.assertEqual(self.engine.properties["volume"], 0.8)
        self.assertIsNone(self.output._engine)

    def test_request_taken_before_cancel_is_dropped(self):
        generation = self.output._generation
        self.output.cancel()
        self._run_worker(("old", "en-IN", generation), ("new", "en-IN", self.output._generation))
        self.assertEqual(self.engine.said, ["new"])

    def test_speak_keeps_only_latest_request(self):
        self.output._thread = MagicMock()  # worker already running
        self.output.speak("one plus one equals two", "en-IN")
        self.output.speak("one plus two equals three", "en-IN")
        self.assertEqual(self.output._queue.get_nowait(), ("one plus two equals three", "en-IN", 0))
        self.assertTrue(self.output._queue.empty())

    def test_cancel_drains_queue_and_stops_engine(self):
        self.output._engine = self.engine
        self.output._queue.put(("a", "en-IN", 0))
        self.output._queue.put(("b", "en-IN", 0))
        self.output.cancel()
        self.assertTrue(self.output._queue.empty())
        self.assertEqual(self.engine.stops, 1)
        self.assertEqual(self.output._generation, 1)

    def test_cancel_keeps_pending_stop_request(self):
        self.output._queue.put(("a", "en-IN", 0))
        self.output._queue.put(None)
        self.output.cancel()
        self.assertIsNone(self.output._queue.get_nowait())

    def test_speaking_error_is_kept_for_pop_error(self):
        self.engine.run_error = RuntimeError("audio device busy")
        with self.assertLogs("handcalc.speech", level="WARNING"):
            self._run_worker(("two plus two equals four", "en-IN", 0))
        self.assertEqual(self.output.pop_error(), "audio device busy")
        self.assertIsNone(self.output.pop_error())

    def test_worker_error_reaches_announcer(self):
        self.output._error = "audio device busy"
        announcer = SpeechAnnouncer(self.output)
        with patch.object(self.output, "speak"), patch.object(self.output, "cancel"):
            announcer.announce("one plus one equals two")
            self.assertIn("audio device busy", announcer.last_error)
            announcer.announce("one plus one equals two")
            self.assertIsNone(announcer.last_error)

    def test_init_failure_raises(self):
        with patch.dict(sys.modules, {"pyttsx3": fake_pyttsx3(init_error=OSError("no espeak"))}):
            with self.assertRaises(RuntimeError) as ctx:
                self.output.start()
        self.assertIn("no espeak", str(ctx.exception))
        self.assertIsNone(self.output._thread)

    def test_start_and_stop_join_worker(self):
        self.output.start()
        thread = self.output._thread
        self.assertTrue(thread.is_alive())
        self.output.speak("hello", "en-IN")
        self.output.stop()
        self.assertFalse(thread.is_alive())
        self.assertIsNone(self.output._thread)
        self.assertIsNone(self.output._engine)
        self.assertGreaterEqual(self.engine.stops, 1)

    def test_context_manager(self):
        with self.output as output:
            thread = output._thread
            self.assertIsNotNone(thread)
        self.assertFalse(thread.is_alive())
        self.assertIsNone(self.output._thread)


class TestPyttsx3VoiceSelection(unittest.TestCase):

    def _engine(self, voices):
        engine = MagicMock()
        engine.getProperty.return_value = voices
        return engine

    def _voice(self, voice_id, languages):
        voice = MagicMock()
        voice.id = voice_id
        voice.languages = languages
        return voice

    def test_exact_tag_wins(self):
        engine = self._engine([
            self._voice("en-us", ["en_US"]),
            self._voice("en-in", ["en_IN"]),
        ])
        Pyttsx3SpeechOutput._select_voice(engine, "en-IN")
        engine.setProperty.assert_called_with("voice", "en-in")

    def test_falls_back_to_base_language(self):
        engine = self._engine([
            self._voice("fr", ["fr_FR"]),
            self._voice("en-gb", [b"\x05en-gb"]),
        ])
        Pyttsx3SpeechOutput._select_voice(engine, "en-IN")
        engine.setProperty.assert_called_with("voice", "en-gb")

    def test_no_match_keeps_default_voice(self):
        engine = self._engine([self._voice("de", ["de_DE"])])
        Pyttsx3SpeechOutput._select_voice(engine, "en-IN")
        engine.setProperty.assert_not_called()


if __name__ == "__main__":
    unittest.main()
