"""Session state: camera, lighting, scene and art-direction selections.

The store owns four immutable aggregates and swaps them wholesale under a lock,
so a reader never sees half of a merge-patch. Every write goes through one of
the ``set_*``/``apply_*``/``randomize_*``/``merge_*`` methods, which validate
the whole partial before anything changes.
"""

import math
import random
import threading
from dataclasses import dataclass, asdict, fields, replace
from typing import Tuple

from config import (
    ART_DIRECTION_VOCABULARIES, CAMERA_PRESETS, CAMERA_RANGES, CHARACTER_ARRANGEMENTS,
    CHARACTER_COUNT_ALIASES, CHARACTER_COUNTS, DEFAULT_CAMERA, DEFAULT_LIGHTING, F_STOPS,
    ISO_STEP, LIGHTING_RANGES, LIGHTING_TEMPS, LIGHTING_TYPES, RANDOM_FOCAL_LENGTHS,
    RANDOM_ROLL_PROBABILITY, SENSOR_FORMATS, SHUTTER_ANGLES
)
from errors import ValidationError
from utils import camelize, clamp, to_snake, wrap_degrees


@dataclass(frozen=True)
class CameraParameters:
    azimuth: float
    elevation: float
    distance: float
    focal_length: float
    roll: float
    aperture: str
    shutter_angle: str
    iso: int
    sensor_format: str


@dataclass(frozen=True)
class LightingParameters:
    direction: float
    elevation: float
    intensity: float
    temperature: str
    type: str


@dataclass(frozen=True)
class SceneDescription:
    character_description: str = ""
    character_action: str = ""
    clothing_and_props: str = ""
    environment: str = ""


@dataclass(frozen=True)
class ArtDirectionSelection:
    theme: Tuple[str, ...] = ()
    composition: Tuple[str, ...] = ()
    artist_style: Tuple[str, ...] = ()
    color_grade: Tuple[str, ...] = ()
    atmosphere: Tuple[str, ...] = ()
    custom_atmosphere: str = ""
    character_count: str = CHARACTER_COUNTS[0]
    character_arrangement: str = CHARACTER_ARRANGEMENTS[CHARACTER_COUNTS[0]][0]


CAMERA_ENUMS = {
    "aperture": F_STOPS,
    "shutter_angle": SHUTTER_ANGLES,
    "sensor_format": SENSOR_FORMATS,
}

LIGHTING_ENUMS = {
    "temperature": LIGHTING_TEMPS,
    "type": LIGHTING_TYPES,
}

# Reconstructed option keys as the model names them -> selection fields
RECONSTRUCTED_OPTION_KEYS = {
    "themes": "theme",
    "compositions": "composition",
    "styles": "artist_style",
    "colors": "color_grade",
    "atmospheres": "atmosphere",
}

PRESET_FIELDS = (
    "azimuth", "elevation", "distance", "focal_length",
    "aperture", "shutter_angle", "iso", "sensor_format"
)


def field_names(aggregate):
    return {f.name for f in fields(aggregate)}


def normalize_count(count):
    if not isinstance(count, str):
        raise ValidationError("character_count", f"expected a string, got {count!r}")
    count = CHARACTER_COUNT_ALIASES.get(count.lower(), count)
    if count not in CHARACTER_COUNTS:
        raise ValidationError("character_count", f"{count!r} is not one of {CHARACTER_COUNTS}")
    return count


def check_number(name, value):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(name, f"expected a number, got {value!r}")
    if not math.isfinite(value):
        raise ValidationError(name, "must be finite")
    return value


def bound_number(name, value, bounds):
    value = check_number(name, value)
    if bounds == "wrap":
        return wrap_degrees(value)
    low, high = bounds
    if name == "iso":
        # Halves round up so 250 and 350 snap the same way
        return int(clamp(math.floor(value / ISO_STEP + 0.5) * ISO_STEP, low, high))
    return clamp(value, low, high)


def check_member(name, value, vocabulary):
    if value not in vocabulary:
        raise ValidationError(name, f"{value!r} is not a recognised value")
    return value


def check_text(name, value):
    if not isinstance(value, str):
        raise ValidationError(name, f"expected text, got {value!r}")
    return value


def check_selection(name, values, vocabulary):
    """Validate a multi-select field, returning it deduplicated in vocabulary order"""
    if isinstance(values, str) or not isinstance(values, (list, tuple, set, frozenset)):
        raise ValidationError(name, f"expected a list of values, got {values!r}")
    chosen = set()
    for value in values:
        chosen.add(check_member(name, value, vocabulary))
    return tuple(v for v in vocabulary if v in chosen)


def normalize_keys(partial, aggregate, strict=True):
    if not isinstance(partial, dict):
        raise ValidationError(aggregate.__name__, "expected an object of field values")
    allowed = field_names(aggregate)
    normalized = {}
    for key, value in partial.items():
        name = to_snake(key)
        if name not in allowed:
            if strict:
                raise ValidationError(name, f"unknown {aggregate.__name__} field")
            continue
        normalized[name] = value
    return normalized


def validate_fields(partial, aggregate, ranges=None, enums=None, strict=True):
    """Validate a partial update for a numeric/enumerated/text aggregate.

    In strict mode any bad value raises ``ValidationError``. Lenient mode is for
    model output: bad values are dropped so the current value survives.
    """
    ranges = ranges or {}
    enums = enums or {}
    changes = {}
    for name, value in normalize_keys(partial, aggregate, strict).items():
        try:
            if name in ranges:
                changes[name] = bound_number(name, value, ranges[name])
            elif name in enums:
                changes[name] = check_member(name, value, enums[name])
            else:
                changes[name] = check_text(name, value)
        except ValidationError as e:
            if strict:
                raise
            print(f"[Session] Ignoring reconstructed value: {e}")
    return changes


class SessionStore:
    """Holds the parameter aggregates for one authoring session"""

    def __init__(self, rng=None):
        self._lock = threading.RLock()
        self._rng = rng or random.Random()
        self.camera = CameraParameters(**DEFAULT_CAMERA)
        self.lighting = LightingParameters(**DEFAULT_LIGHTING)
        self.scene = SceneDescription()
        self.options = ArtDirectionSelection()

    def set_camera(self, partial):
        changes = validate_fields(partial, CameraParameters, CAMERA_RANGES, CAMERA_ENUMS)
        with self._lock:
            self.camera = replace(self.camera, **changes)
        return self.camera

    def set_lighting(self, partial):
        changes = validate_fields(partial, LightingParameters, LIGHTING_RANGES, LIGHTING_ENUMS)
        with self._lock:
            self.lighting = replace(self.lighting, **changes)
        return self.lighting

    def set_scene(self, partial):
        changes = validate_fields(partial, SceneDescription)
        with self._lock:
            self.scene = replace(self.scene, **changes)
        return self.scene

    def set_options(self, partial):
        values = normalize_keys(partial, ArtDirectionSelection)
        with self._lock:
            changes = {}
            for name, value in values.items():
                if name in ART_DIRECTION_VOCABULARIES:
                    changes[name] = check_selection(name, value, ART_DIRECTION_VOCABULARIES[name])
                elif name == "custom_atmosphere":
                    changes[name] = check_text(name, value)

            count = self.options.character_count
            if "character_count" in values:
                count = normalize_count(values["character_count"])
                changes["character_count"] = count
                changes["character_arrangement"] = CHARACTER_ARRANGEMENTS[count][0]
            if "character_arrangement" in values:
                changes["character_arrangement"] = check_member(
                    "character_arrangement", values["character_arrangement"], CHARACTER_ARRANGEMENTS[count]
                )

            self.options = replace(self.options, **changes)
            return self.options

    def set_character_count(self, count):
        """Set the character count and reset the arrangement to that count's first entry"""
        count = normalize_count(count)
        with self._lock:
            self.options = replace(
                self.options,
                character_count=count,
                character_arrangement=CHARACTER_ARRANGEMENTS[count][0],
            )
            return self.options

    def apply_preset(self, preset_id):
        preset = CAMERA_PRESETS.get(preset_id)
        if preset is None:
            raise ValidationError("preset", f"unknown camera preset {preset_id!r}")
        with self._lock:
            self.camera = replace(self.camera, **{name: preset[name] for name in PRESET_FIELDS})
        print(f"[Session] Applied camera preset '{preset_id}'")
        return self.camera

    def randomize_camera(self):
        rng = self._rng
        roll = rng.randint(-10, 10) if rng.random() < RANDOM_ROLL_PROBABILITY else 0
        with self._lock:
            self.camera = replace(
                self.camera,
                azimuth=rng.randrange(360),
                elevation=rng.randrange(90) - 30,
                distance=1 + rng.random() * 6,
                focal_length=rng.choice(RANDOM_FOCAL_LENGTHS),
                roll=roll,
            )
            return self.camera

    def randomize_lighting(self):
        rng = self._rng
        with self._lock:
            self.lighting = replace(
                self.lighting,
                direction=rng.randrange(360),
                elevation=rng.randrange(80) + 10,
                intensity=50 + rng.randrange(50),
                temperature=rng.choice(LIGHTING_TEMPS),
                type=rng.choice(LIGHTING_TYPES),
            )
            return self.lighting

    def merge_reconstructed(self, payload):
        """Fold parameters inferred from a reference image into the session.

        Camera, lighting and scene are merge-patched. Art-direction selections are
        replaced outright since an analysis is a fresh assessment of the shot.
        Values the model invents outside our vocabularies are dropped.
        """
        payload = {to_snake(k): v for k, v in (payload or {}).items()}
        camera = validate_fields(payload.get("camera") or {}, CameraParameters,
                                 CAMERA_RANGES, CAMERA_ENUMS, strict=False)
        lighting = validate_fields(payload.get("lighting") or {}, LightingParameters,
                                   LIGHTING_RANGES, LIGHTING_ENUMS, strict=False)
        scene = validate_fields(payload.get("scene") or {}, SceneDescription, strict=False)
        options = payload.get("options")

        with self._lock:
            self.camera = replace(self.camera, **camera)
            self.lighting = replace(self.lighting, **lighting)
            self.scene = replace(self.scene, **scene)
            if options is not None:
                self.options = self._reconstructed_options(options)
            return self.snapshot()

    def _reconstructed_options(self, options):
        options = {to_snake(k): v for k, v in options.items()}
        changes = {}
        for key, name in RECONSTRUCTED_OPTION_KEYS.items():
            vocabulary = ART_DIRECTION_VOCABULARIES[name]
            values = options.get(key) or []
            if not isinstance(values, (list, tuple)):
                values = []
            unknown = [v for v in values if v not in vocabulary]
            if unknown:
                print(f"[Session] Dropping unrecognised {name} values: {unknown}")
            changes[name] = tuple(v for v in vocabulary if v in values)

        count = self.options.character_count
        try:
            count = normalize_count(options.get("character_count", count))
        except ValidationError as e:
            print(f"[Session] Ignoring reconstructed value: {e}")
        arrangement = options.get("character_arrangement")
        if arrangement not in CHARACTER_ARRANGEMENTS[count]:
            arrangement = CHARACTER_ARRANGEMENTS[count][0]

        return replace(self.options, character_count=count, character_arrangement=arrangement, **changes)

    def generation_inputs(self):
        with self._lock:
            return self.camera, self.lighting, self.scene, self.options

    def snapshot(self):
        with self._lock:
            return camelize({
                "camera": asdict(self.camera),
                "lighting": asdict(self.lighting),
                "scene": asdict(self.scene),
                "options": asdict(self.options),
            })
