from __future__ import annotations

import logging
import queue
import threading
from typing import Optional, Protocol


logger = logging.getLogger(__name__)

DEFAULT_LANG = "en-IN"


class SpeechOutput(Protocol):
    def speak(self, text: str, lang: str) -> None:
        ...

    def cancel(self) -> None:
        ...


class SpeechAnnouncer:
    """
    Speaks a sentence once and stays quiet until the sentence changes.

    Every new sentence cancels whatever is still being spoken, so at most
    one utterance is active at a time.
    """

    def __init__(self, output: SpeechOutput, lang: str = DEFAULT_LANG) -> None:
        self.output = output
        self.lang = lang
        self.last_spoken_sentence = ""
        self.last_error: Optional[str] = None

    def announce(self, sentence: str) -> bool:
        # Failures from a background output surface on the next frame.
        self.last_error = self._pending_output_error()
        if sentence == self.last_spoken_sentence:
            return False

        # Marked as spoken even if the output fails; otherwise a broken
        # output would be retried on every frame.
        self.last_spoken_sentence = sentence
        try:
            self.output.cancel()
            self.output.speak(sentence, self.lang)
        except Exception as e:
            self.last_error = f"Speech output failed: {e}"
            logger.warning("%s", self.last_error)
            return False
        return True

    def reset(self) -> None:
        self.last_spoken_sentence = ""
        self.last_error = None
        try:
            self.output.cancel()
        except Exception as e:
            logger.warning("Could not cancel speech output: %s", e)

    def _pending_output_error(self) -> Optional[str]:
        pop_error = getattr(self.output, "pop_error", None)
        if pop_error is None:
            return None
        error = pop_error()
        return f"Speech output failed: {error}" if error else None


class SilentSpeechOutput:
    """Speech output that drops everything (muted sessions, tests)."""

    def speak(self, text: str, lang: str = DEFAULT_LANG) -> None:
        logger.debug("muted: %s", text)

    def cancel(self) -> None:
        pass


class Pyttsx3SpeechOutput:
    """
    Offline text-to-speech with pyttsx3.

    The engine lives on a worker thread (`runAndWait` blocks); `speak` only
    hands the text over. Requests that were not picked up yet are replaced
    by the newest one, and `cancel` also drops a request the worker has
    already taken but not started. Errors raised while speaking are kept
    until `pop_error` is called.
    """

    def __init__(self, rate: int = 175, volume: float = 1.0, lang: str = DEFAULT_LANG) -> None:
        self.rate = rate
        self.volume = max(0.0, min(1.0, volume))
        self.lang = lang

        self._queue: "queue.Queue[Optional[tuple]]" = queue.Queue()
        self._lock = threading.Lock()
        self._engine = None
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()
        self._init_error: Optional[BaseException] = None
        self._generation = 0
        self._error: Optional[str] = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._ready.clear()
        self._init_error = None
        self._thread = threading.Thread(target=self._run, name="pyttsx3-speech", daemon=True)
        self._thread.start()
        self._ready.wait(timeout=5.0)
        if self._init_error is not None:
            self._thread = None
            raise RuntimeError(f"Could not initialize pyttsx3: {self._init_error}") from self._init_error

    def stop(self) -> None:
        if self._thread is None:
            return
        self.cancel()
        self._queue.put(None)
        self._thread.join(timeout=2.0)
        self._thread = None

    def speak(self, text: str, lang: str = DEFAULT_LANG) -> None:
        if self._thread is None:
            self.start()
        self._drain()
        with self._lock:
            generation = self._generation
        self._queue.put((text, lang, generation))

    def cancel(self) -> None:
        self._drain()
        with self._lock:
            self._generation += 1
            if self._engine is not None:
                self._engine.stop()

    def pop_error(self) -> Optional[str]:
        """Return and clear the last error raised on the worker thread."""
        with self._lock:
            error, self._error = self._error, None
        return error

    def _drain(self) -> None:
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            if item is None:
                # keep the stop request
                self._queue.put(None)
                break

    def _run(self) -> None:
        try:
            import pyttsx3  # type: ignore

            engine = pyttsx3.init()
            engine.setProperty("rate", self.rate)
            engine.setProperty("volume", self.volume)
        except Exception as e:
            self._init_error = e
            self._ready.set()
            return

        with self._lock:
            self._engine = engine
        current_lang = None
        self._ready.set()

        while True:
            item = self._queue.get()
            if item is None:
                break
            text, lang, generation = item
            with self._lock:
                stale = generation != self._generation
            if stale:
                logger.debug("dropping cancelled speech request %r", text)
                continue
            if lang != current_lang:
                self._select_voice(engine, lang)
                current_lang = lang
            try:
                engine.say(text)
                engine.runAndWait()
            except Exception as e:
                logger.warning("pyttsx3 failed to speak %r: %s", text, e)
                with self._lock:
                    self._error = str(e) or type(e).__name__

        with self._lock:
            self._engine = None

    @staticmethod
    def _select_voice(engine, lang: str) -> None:
        """Pick the first voice whose language matches `lang` (exact tag, then base language)."""
        wanted = lang.lower().replace("_", "-")
        base = wanted.split("-")[0]
        fallback = None
        for voice in engine.getProperty("voices") or []:
            for raw in getattr(voice, "languages", None) or []:
                if isinstance(raw, bytes):
                    raw = raw.decode("utf-8", "ignore")
                tag = str(raw).strip("\x05").lower().replace("_", "-")
                if tag == wanted:
                    engine.setProperty("voice", voice.id)
                    return
                if fallback is None and tag.split("-")[0] == base:
                    fallback = voice.id
        if fallback is not None:
            engine.setProperty("voice", fallback)
        else:
            logger.debug("No pyttsx3 voice for language %s, using the default voice", lang)

    def __enter__(self) -> "Pyttsx3SpeechOutput":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
