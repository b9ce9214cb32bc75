import random

import pytest

from errors import ConfigurationError
from schemas import GeneratedResult
from session import SessionStore

PROMPT_JSON = {
    "camera": {
        "type": "Cinema camera",
        "lens": "50mm prime",
        "settings": {"aperture": "f/2.8", "shutter": "180°", "iso": "800", "format": "Super 35"},
        "position": {"x": 2.73, "y": 1.04, "z": 2.73},
        "rotation": {"pitch": -15, "yaw": 225, "roll": 0},
        "description": "Three-quarter view slightly above eye level",
    },
    "subject": {
        "count": "1",
        "arrangement": "Center Frame",
        "visuals": "Woman with short silver hair",
        "action": "Looking over her shoulder",
    },
    "lighting": {
        "setup": "Soft key from camera left",
        "position": {"azimuth": 45, "elevation": 45},
        "parameters": {"intensity": "80%", "temperature": "5600K"},
    },
    "artDirection": {"theme": "Noir", "style": "Roger Deakins", "palette": "Teal and Orange"},
    "elements": ["rain", "neon signage"],
}

RECONSTRUCTED = {
    "camera": {"azimuth": 200, "elevation": -10, "distance": 3, "focalLength": 35,
               "aperture": "f/1.4", "iso": 1600},
    "lighting": {"direction": 170, "intensity": 60, "type": "Rim Light / Backlight"},
    "scene": {"characterDescription": "Tall man in a trench coat", "environment": "Wet alley"},
    "options": {
        "characterCount": "2",
        "characterArrangement": "Back to Back",
        "themes": ["Noir"],
        "compositions": ["Leading Lines"],
        "styles": [],
        "colors": ["Cool Blue"],
        "atmospheres": ["Rainy", "Smoke"],
    },
}


def make_result(reconstructed=None, description="A rain-soaked noir portrait"):
    payload = {"json": PROMPT_JSON, "visualDescription": description}
    if reconstructed is not None:
        payload["reconstructedParams"] = reconstructed
    return GeneratedResult.model_validate(payload)


class FakeService:
    """In-memory stand-in for GeminiPromptService"""

    def __init__(self):
        self.calls = []
        self.configured = True
        self.error = None
        self.during_call = None
        self.generation = make_result()
        self.analysis = make_result(RECONSTRUCTED, "Reverse engineered noir still")

    def ensure_configured(self):
        if not self.configured:
            raise ConfigurationError("GEMINI_API_KEY is not set")

    def _call(self, name, *args):
        self.calls.append((name, args))
        if self.during_call:
            self.during_call()
        if self.error:
            raise self.error

    def generate(self, camera, lighting, scene, options):
        self._call("generate", camera, lighting, scene, options)
        return self.generation

    def analyze_image(self, image_bytes, context_text="", mime_type=None):
        self._call("analyze", image_bytes, context_text, mime_type)
        return self.analysis

    def suggest_atmospheres(self, text):
        self._call("suggest", text)
        return [f"{text} haze"]


class RecordingSuggester:
    def __init__(self):
        self.submitted = []
        self.suggestions = []
        self.latest_text = None
        self.last_error = None

    def submit(self, text):
        self.submitted.append(text)
        self.latest_text = text


@pytest.fixture
def fake_service():
    return FakeService()


@pytest.fixture
def store():
    return SessionStore(rng=random.Random(7))
