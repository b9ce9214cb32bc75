import threading

from config import SUGGESTION_DEBOUNCE_SECONDS, SUGGESTION_MIN_LENGTH
from errors import CinePromptError


class AtmosphereSuggester:
    """Debounced fetch of short atmosphere ideas for the custom atmosphere field.

    Each keystroke restarts the quiet-period timer. A fetch that completes after
    the input has moved on to different text is discarded, so the suggestions
    always belong to the latest input regardless of response order.
    """

    def __init__(self, fetch, delay=SUGGESTION_DEBOUNCE_SECONDS, min_length=SUGGESTION_MIN_LENGTH):
        self._fetch = fetch
        self.delay = delay
        self.min_length = min_length
        self._lock = threading.Lock()
        self._latest_text = None
        self._timer = None
        self._workers = []
        self.suggestions = []
        self.last_error = None

    @property
    def latest_text(self):
        return self._latest_text

    def begin(self, text):
        """Record ``text`` as the newest input, superseding anything in flight"""
        with self._lock:
            self._latest_text = text

    def resolve(self, text, suggestions):
        """Apply a fetch result if it still matches the newest input"""
        with self._lock:
            if text != self._latest_text:
                print(f"[Suggestions] Discarding stale result for '{text}'")
                return False
            self.suggestions = list(suggestions)
            self.last_error = None
            return True

    def submit(self, text):
        self.begin(text)
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            if len(text) < self.min_length:
                return False
            timer = threading.Timer(self.delay, self._run, args=(text,))
            timer.daemon = True
            self._timer = timer
            self._workers = [w for w in self._workers if w.is_alive()] + [timer]
            timer.start()
        return True

    def _run(self, text):
        if text != self._latest_text:
            return
        try:
            result = self._fetch(text)
        except CinePromptError as e:
            print(f"[Suggestions] Fetch for '{text}' failed: {e}")
            with self._lock:
                if text == self._latest_text:
                    self.last_error = str(e)
            return
        self.resolve(text, result)

    def join(self, timeout=None):
        """Wait for every scheduled fetch to finish"""
        with self._lock:
            workers = list(self._workers)
        for worker in workers:
            worker.join(timeout)

    def cancel(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
