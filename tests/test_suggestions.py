import threading

from errors import ServiceError
from suggestions import AtmosphereSuggester


def test_later_input_wins_over_late_response():
    suggester = AtmosphereSuggester(fetch=lambda text: [], delay=0)

    suggester.begin("neon")
    suggester.begin("neon ra")
    assert suggester.resolve("neon ra", ["Neon Rain", "Wet Asphalt"])
    assert not suggester.resolve("neon", ["Neon Glow"])

    assert suggester.suggestions == ["Neon Rain", "Wet Asphalt"]


def test_out_of_order_fetches():
    gates = {"neon": threading.Event(), "neon ra": threading.Event()}
    started = {"neon": threading.Event(), "neon ra": threading.Event()}

    def fetch(text):
        started[text].set()
        gates[text].wait(5)
        return [f"{text} result"]

    suggester = AtmosphereSuggester(fetch=fetch, delay=0)
    suggester.submit("neon")
    assert started["neon"].wait(5)
    suggester.submit("neon ra")
    assert started["neon ra"].wait(5)

    gates["neon ra"].set()
    gates["neon"].set()
    suggester.join(5)

    assert suggester.suggestions == ["neon ra result"]


def test_quiet_period_collapses_keystrokes():
    calls = []
    done = threading.Event()

    def fetch(text):
        calls.append(text)
        done.set()
        return [text.upper()]

    suggester = AtmosphereSuggester(fetch=fetch, delay=0.2)
    for text in ["neo", "neon", "neon r", "neon ra"]:
        suggester.submit(text)

    assert done.wait(5)
    suggester.join(5)
    assert calls == ["neon ra"]
    assert suggester.suggestions == ["NEON RA"]


def test_short_input_is_not_fetched():
    calls = []
    suggester = AtmosphereSuggester(fetch=calls.append, delay=0)

    assert not suggester.submit("ne")
    suggester.join(5)
    assert calls == []


def test_fetch_failure_is_recorded():
    def fetch(text):
        raise ServiceError("Gemini API error (429)")

    suggester = AtmosphereSuggester(fetch=fetch, delay=0)
    suggester.submit("fog bank")
    suggester.join(5)

    assert suggester.suggestions == []
    assert suggester.last_error == "Gemini API error (429)"


def test_cancel_drops_pending_fetch():
    calls = []
    suggester = AtmosphereSuggester(fetch=calls.append, delay=5)
    suggester.submit("embers")
    suggester.cancel()
    suggester.join(1)

    assert calls == []
