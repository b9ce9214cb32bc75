import os
import json
import tempfile
import requests
import ijson
from pydantic import ValidationError as PydanticValidationError

import config
from errors import ConfigurationError, InputError, ServiceError
from schemas import ANALYZE_SCHEMA, GENERATE_SCHEMA, SUGGESTION_SCHEMA, GeneratedResult, suggestion_list
from utils import encode_base64, join_options, sniff_mime_type

GENERATE_INSTRUCTION = """You are an expert Director of Photography (DP) and Cinematographer.
Your task is to translate technical camera coordinates, lighting setups, and artistic preferences into a precise JSON structure for image generation prompts.
Calculate the precise X,Y,Z coordinates based on the polar coordinates provided (Distance, Azimuth, Elevation).

Coordinate system assumption: Target is at (0,0,0). Y is Up."""

ANALYZE_INSTRUCTION = """You are an expert Director of Photography (DP) and Visual Stylist analyzing a reference image.
Your task is to "reverse engineer" the photo to deduce the camera settings, lighting, composition, character details, and style used to create it.

Detailed Tasks:
1. Analyze Perspective: Estimate camera Azimuth, Elevation, Distance.
2. Estimate Lens/Sensor: Focal length, Aperture (Depth of field), Shutter, ISO.
3. Analyze Lighting: Direction (0-360), Height, Intensity, Temperature, Type.
4. Extract Character & Scene Details:
   - Describe the character's physical appearance (hair, face, body type) precisely.
   - Describe clothing and accessories.
   - Describe props and environment.
   - Describe the current action/pose.
5. Identify artistic elements (Theme, Style, Color, Atmosphere).
6. Return the standard JSON output AND a 'reconstructedParams' object mapping these to UI controls."""

TEXT_PART_PREFIX = 'candidates.item.content.parts.item.text'


def build_generation_prompt(camera, lighting, scene, options):
    """Render the session parameters as the technical brief sent to the model"""
    atmosphere = ", ".join(v for v in [*options.atmosphere, options.custom_atmosphere] if v)

    return f"""
**Technical Inputs:**
- Azimuth (Horizontal): {camera.azimuth} degrees
- Elevation (Vertical): {camera.elevation} degrees
- Distance: {camera.distance} meters
- Lens/Focal Length: {camera.focal_length}mm
- Roll/Dutch: {camera.roll} degrees

**Detailed Camera Settings:**
- Sensor Format: {camera.sensor_format} (Controls Field of View characteristics)
- Aperture: {camera.aperture} (Controls Depth of Field / Bokeh)
- Shutter: {camera.shutter_angle} (Controls Motion Blur characteristic)
- ISO: {camera.iso} (Controls Grain structure / Light sensitivity vibe)

**Lighting Setup:**
- Key Light Direction: {lighting.direction} degrees (0=Front, 90=Side, 180=Back)
- Key Light Height: {lighting.elevation} degrees
- Intensity: {lighting.intensity}%
- Type: {lighting.type}
- Temperature: {lighting.temperature}

**Subject & Staging (Use this for consistency):**
- Number of Characters: {options.character_count}
- Arrangement: {options.character_arrangement}
- Character Appearance (Locked): {scene.character_description}
- Action/Pose (Current): {scene.character_action}
- Scene/Props: {scene.clothing_and_props} / {scene.environment}

**Artistic Inputs:**
- Theme/Genre: {join_options(options.theme, "General Cinematic")}
- Composition Rule: {join_options(options.composition, "Standard")}
- Artist/Director Style: {join_options(options.artist_style, "Neutral")}
- Color Grade: {join_options(options.color_grade, "Standard")}
- Atmospheric Elements: {atmosphere}

**Task:**
1. Calculate the cartesian position (x,y,z) of the camera relative to the subject (0,0,0).
2. Generate a highly detailed descriptive prompt.
   **CRITICAL:** You must combine the 'Character Appearance' with the 'Action/Pose' and 'Scene' naturally.
   Ensure the visual consistency of the character description provided.
   Describe the lighting precisely based on the angle (e.g., "Rim lighting" if Direction is 135-225).
   Mention depth of field if Aperture is wide (low f-number).
3. Return strictly JSON.
"""


def build_analysis_text(context_text=""):
    context = f" Context: {context_text}" if context_text else ""
    arrangements = "\n".join(f"- {count}: {', '.join(names)}"
                             for count, names in config.CHARACTER_ARRANGEMENTS.items())
    return (f"Analyze this image.{context}\n"
            "Return the standard JSON prompt structure AND the reconstructedParams object "
            "so I can replicate this shot with consistency.\n"
            "characterArrangement must be one of the arrangements listed for the chosen characterCount:\n"
            f"{arrangements}")


def write_payload(parts, schema, system_instruction=None):
    """Write the generateContent request body to a temporary file and return its path"""
    tmp = tempfile.NamedTemporaryFile(mode='w+', delete=False, suffix='.json', encoding='utf-8')
    try:
        tmp.write('{')
        if system_instruction:
            tmp.write(f'"systemInstruction": {json.dumps({"parts": [{"text": system_instruction}]})},')
        tmp.write('"contents": [{"role": "user", "parts": [')

        # Parts are serialised one at a time so a large inline image is never duplicated in memory
        for i, part in enumerate(parts):
            if i:
                tmp.write(',')
            tmp.write(json.dumps(part))

        tmp.write(']}], "generationConfig": ')
        tmp.write(json.dumps({"responseMimeType": "application/json", "responseSchema": schema}))
        tmp.write('}')

        tmp.flush()
        tmp_name = tmp.name
        tmp.close()
        return tmp_name
    except Exception:
        tmp.close()
        if os.path.exists(tmp.name):
            os.remove(tmp.name)
        raise


def strip_code_fence(text):
    text = text.strip()
    if text.startswith('```'):
        text = text.split('\n', 1)[1] if '\n' in text else ''
        if text.rstrip().endswith('```'):
            text = text.rstrip()[:-3]
    return text.strip()


def parse_generated_result(text):
    """Validate model output against the GeneratedResult contract"""
    try:
        return GeneratedResult.model_validate_json(strip_code_fence(text))
    except PydanticValidationError as e:
        raise ServiceError(f"Malformed model response: {e.error_count()} validation error(s)") from e


def parse_suggestions(text):
    try:
        values = suggestion_list.validate_json(strip_code_fence(text))
    except PydanticValidationError as e:
        raise ServiceError("Malformed suggestion response") from e
    cleaned = [v.strip() for v in values if v and v.strip()]
    return cleaned[:config.SUGGESTION_LIMIT]


class GeminiPromptService:
    """Adapter between session state and the Gemini generateContent endpoint"""

    def __init__(self, api_key=None, model=None, api_base=None, timeout=None):
        self.api_key = config.GEMINI_API_KEY if api_key is None else api_key
        self.model = model or config.GEMINI_MODEL
        self.api_base = (api_base or config.GEMINI_API_BASE).rstrip('/')
        self.timeout = timeout or config.GEMINI_TIMEOUT

    @property
    def url(self):
        return f"{self.api_base}/{self.model}:generateContent"

    def ensure_configured(self):
        if not self.api_key:
            raise ConfigurationError("GEMINI_API_KEY is not set")

    def generate(self, camera, lighting, scene, options):
        self.ensure_configured()
        print(f"[gemini] Generating cinematic prompt with {self.model}...")
        prompt = build_generation_prompt(camera, lighting, scene, options)
        payload_path = write_payload([{"text": prompt}], GENERATE_SCHEMA, GENERATE_INSTRUCTION)
        return parse_generated_result(self.send(payload_path))

    def analyze_image(self, image_bytes, context_text="", mime_type=None):
        self.ensure_configured()
        if not image_bytes:
            raise InputError("No reference image supplied")

        mime_type = mime_type or sniff_mime_type(image_bytes)
        print(f"[gemini] Analyzing reference image ({len(image_bytes)} bytes, {mime_type})...")
        parts = [
            {"inlineData": {"mimeType": mime_type, "data": encode_base64(image_bytes)}},
            {"text": build_analysis_text(context_text)},
        ]
        payload_path = write_payload(parts, ANALYZE_SCHEMA, ANALYZE_INSTRUCTION)
        result = parse_generated_result(self.send(payload_path))
        if result.reconstructed_params is None:
            raise ServiceError("Analysis response did not include reconstructedParams")
        return result

    def suggest_atmospheres(self, text):
        if not text or len(text) < config.SUGGESTION_MIN_LENGTH:
            return []
        self.ensure_configured()
        prompt = (f'The user wants a cinematic atmosphere like "{text}". '
                  'List 5 distinct, short (1-3 words) related atmospheric visual elements '
                  '(e.g., "Neon Rain", "Dust Motes"). Return JSON array of strings.')
        payload_path = write_payload([{"text": prompt}], SUGGESTION_SCHEMA)
        return parse_suggestions(self.send(payload_path))

    def send(self, payload_path):
        """POST a disk-buffered payload and return the concatenated response text"""
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.api_key
        }

        try:
            with open(payload_path, 'rb') as payload_file:
                response = requests.post(self.url, headers=headers, data=payload_file,
                                         stream=True, timeout=self.timeout)
        except requests.RequestException as e:
            print(f"[gemini] Transport error: {e}")
            raise ServiceError(f"Gemini request failed: {e}") from e
        finally:
            if os.path.exists(payload_path):
                os.remove(payload_path)

        if response.status_code != 200:
            error_text = response.text
            print(f"[gemini] Gemini API error: {error_text}")
            raise ServiceError(f"Gemini API error ({response.status_code}): {error_text}")

        # Text parts arrive as a stream; collect them without materialising the whole body
        response.raw.decode_content = True
        chunks = []
        try:
            for prefix, event, value in ijson.parse(response.raw):
                if prefix == TEXT_PART_PREFIX and event == 'string':
                    chunks.append(value)
        except ijson.JSONError as e:
            raise ServiceError(f"Unreadable Gemini response: {e}") from e

        if not chunks:
            raise ServiceError("No response text")
        return ''.join(chunks)
