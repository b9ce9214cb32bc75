"""Direct and reverse-engineering workflow around a session.

The workflow is a single explicit state. Direct mode has no sub-states; the
reverse-engineering sub-state is remembered while the user is in Direct mode
and restored on the way back. Analyze and generate are single-flight: the
``busy`` flag refuses a second call until the first has finished.
"""

import threading
from dataclasses import dataclass
from enum import Enum

import geometry
from errors import ControlsLockedError, InputError, ValidationError, WorkflowBusyError
from suggestions import AtmosphereSuggester
from utils import to_snake


class WorkflowMode(Enum):
    DIRECT = "direct"
    REVERSE_ENGINEER = "reverse"


class WorkflowState(Enum):
    DIRECT = "direct"
    AWAITING_UPLOAD = "reverse.awaiting_upload"
    AWAITING_ANALYSIS = "reverse.awaiting_analysis"
    ANALYZING = "reverse.analyzing"
    ANALYZED = "reverse.analyzed"


EDITABLE_STATES = (WorkflowState.DIRECT, WorkflowState.ANALYZED)

MODE_ALIASES = {
    "generator": WorkflowMode.DIRECT,
    "reverse_engineer": WorkflowMode.REVERSE_ENGINEER,
}


@dataclass(frozen=True)
class ReferenceImage:
    data: bytes
    mime_type: str = None
    context: str = ""


def parse_mode(mode):
    if isinstance(mode, WorkflowMode):
        return mode
    if not isinstance(mode, str):
        raise ValidationError("mode", f"expected a string, got {mode!r}")
    key = to_snake(mode.strip())
    if key in MODE_ALIASES:
        return MODE_ALIASES[key]
    try:
        return WorkflowMode(key)
    except ValueError:
        raise ValidationError("mode", f"unknown workflow mode {mode!r}")


class Workflow:
    def __init__(self, store, service, suggester=None):
        self.store = store
        self.service = service
        self.suggester = suggester or AtmosphereSuggester(service.suggest_atmospheres)
        self._lock = threading.RLock()
        self.mode = WorkflowMode.DIRECT
        self._reverse_state = WorkflowState.AWAITING_UPLOAD
        self.has_analyzed = False
        self.busy = False
        self.image = None
        self.result = None
        self.last_error = None

    @property
    def state(self):
        if self.mode is WorkflowMode.DIRECT:
            return WorkflowState.DIRECT
        return self._reverse_state

    @property
    def controls_enabled(self):
        return self.state in EDITABLE_STATES

    @property
    def can_generate(self):
        return self.controls_enabled and not self.busy

    @property
    def can_analyze(self):
        return self.mode is WorkflowMode.REVERSE_ENGINEER and self.image is not None and not self.busy

    def switch_mode(self, mode):
        mode = parse_mode(mode)
        with self._lock:
            self.mode = mode
            print(f"[Workflow] Mode -> {mode.value} (state {self.state.value})")
            return self.state

    def upload_image(self, image_bytes, mime_type=None, context=""):
        """Attach a new reference image; any earlier analysis and result are discarded"""
        with self._lock:
            if self.mode is not WorkflowMode.REVERSE_ENGINEER:
                raise InputError("Switch to reverse engineer mode before uploading a reference image")
            if self.busy:
                raise WorkflowBusyError("Wait for the current request to finish before uploading")
            if not image_bytes:
                raise InputError("Uploaded image is empty")

            self.image = ReferenceImage(data=image_bytes, mime_type=mime_type, context=context or "")
            self.has_analyzed = False
            self.result = None
            self.last_error = None
            self._reverse_state = WorkflowState.AWAITING_ANALYSIS
            print(f"[Workflow] Reference image received ({len(image_bytes)} bytes)")
            return self.state

    def set_image_context(self, context):
        with self._lock:
            if self.image is None:
                raise InputError("Please upload an image first.")
            self.image = ReferenceImage(self.image.data, self.image.mime_type, context or "")

    def analyze(self):
        """Infer shot parameters from the uploaded image and load them into the session"""
        with self._lock:
            if self.mode is not WorkflowMode.REVERSE_ENGINEER:
                raise InputError("Image analysis is only available in reverse engineer mode")
            if self.image is None:
                raise InputError("Please upload an image first.")
            if self.busy:
                raise WorkflowBusyError("A request is already in progress")
            self.service.ensure_configured()

            self.busy = True
            self._reverse_state = WorkflowState.ANALYZING
            image = self.image

        print("[Workflow] Analyzing reference image...")
        try:
            result = self.service.analyze_image(image.data, image.context, image.mime_type)
            with self._lock:
                self.store.merge_reconstructed(result.reconstructed_params.model_dump(exclude_none=True))
                self.result = result
                self.has_analyzed = True
                self.last_error = None
                self._reverse_state = WorkflowState.ANALYZED
            print("[Workflow] Analysis complete, controls unlocked")
            return result
        except Exception as e:
            with self._lock:
                self._reverse_state = WorkflowState.AWAITING_ANALYSIS
                self.last_error = str(e)
            print(f"[Error] Analysis failed: {e}")
            raise
        finally:
            with self._lock:
                self.busy = False

    def generate(self):
        """Turn the current session parameters into a cinematic prompt"""
        with self._lock:
            if self.busy:
                raise WorkflowBusyError("A request is already in progress")
            if self.state not in EDITABLE_STATES:
                raise InputError("Analyze the reference image before generating a prompt")
            self.service.ensure_configured()

            self.busy = True
            inputs = self.store.generation_inputs()

        print(f"[Workflow] Generating prompt in state {self.state.value}...")
        try:
            result = self.service.generate(*inputs)
            with self._lock:
                self.result = result
                self.last_error = None
            return result
        except Exception as e:
            with self._lock:
                self.last_error = str(e)
            print(f"[Error] Generation failed: {e}")
            raise
        finally:
            with self._lock:
                self.busy = False

    def _edit(self, action, *args):
        with self._lock:
            if not self.controls_enabled:
                raise ControlsLockedError(f"Controls are locked in state {self.state.value}")
            return action(*args)

    def update_camera(self, partial):
        return self._edit(self.store.set_camera, partial)

    def update_lighting(self, partial):
        return self._edit(self.store.set_lighting, partial)

    def update_scene(self, partial):
        return self._edit(self.store.set_scene, partial)

    def update_options(self, partial):
        previous = self.store.options.custom_atmosphere
        options = self._edit(self.store.set_options, partial)
        if options.custom_atmosphere != previous:
            self.suggester.submit(options.custom_atmosphere)
        return options

    def set_character_count(self, count):
        return self._edit(self.store.set_character_count, count)

    def apply_preset(self, preset_id):
        return self._edit(self.store.apply_preset, preset_id)

    def randomize_camera(self):
        return self._edit(self.store.randomize_camera)

    def randomize_lighting(self):
        return self._edit(self.store.randomize_lighting)

    def schematic(self):
        camera, lighting, _, options = self.store.generation_inputs()
        return geometry.project(camera, lighting, options.character_count, options.character_arrangement)

    def status(self):
        with self._lock:
            return {
                "mode": self.mode.value,
                "state": self.state.value,
                "hasAnalyzed": self.has_analyzed,
                "busy": self.busy,
                "controlsEnabled": self.controls_enabled,
                "canGenerate": self.can_generate,
                "canAnalyze": self.can_analyze,
                "hasImage": self.image is not None,
                "lastError": self.last_error,
                "result": self.result.to_dict() if self.result else None,
                "session": self.store.snapshot(),
                "suggestions": list(self.suggester.suggestions),
            }
