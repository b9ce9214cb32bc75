"""
Structured-output schemas for the Gemini calls and the pydantic models that
parse their responses.

The *_SCHEMA dicts are sent as ``generationConfig.responseSchema``; the models
are the contract the rest of the app relies on. Anything that fails to
validate is rejected at the adapter, never merged into a session.
"""

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

import config

STRING = {"type": "STRING"}
NUMBER = {"type": "NUMBER"}
STRING_LIST = {"type": "ARRAY", "items": STRING}


def _enum(values):
    return {"type": "STRING", "format": "enum", "enum": list(values)}


def _enum_list(values):
    return {"type": "ARRAY", "items": _enum(values)}


# Arrangement depends on the count, so the schema allows every arrangement
# and the analysis prompt lists which ones belong to which count
ALL_ARRANGEMENTS = list(dict.fromkeys(
    name for names in config.CHARACTER_ARRANGEMENTS.values() for name in names
))


def _object(**properties):
    return {"type": "OBJECT", "properties": properties}


PROMPT_CAMERA_SCHEMA = _object(
    type=STRING,
    lens=STRING,
    settings=_object(aperture=STRING, shutter=STRING, iso=STRING, format=STRING),
    position=_object(x=NUMBER, y=NUMBER, z=NUMBER),
    rotation=_object(pitch=NUMBER, yaw=NUMBER, roll=NUMBER),
    description=STRING,
)

PROMPT_SUBJECT_SCHEMA = _object(count=STRING, arrangement=STRING, visuals=STRING, action=STRING)

PROMPT_LIGHTING_SCHEMA = _object(
    setup=STRING,
    position=_object(azimuth=NUMBER, elevation=NUMBER),
    parameters=_object(intensity=STRING, temperature=STRING),
)

ART_DIRECTION_SCHEMA = _object(theme=STRING, style=STRING, palette=STRING)


def _prompt_schema(lighting):
    schema = _object(
        camera=PROMPT_CAMERA_SCHEMA,
        subject=PROMPT_SUBJECT_SCHEMA,
        lighting=lighting,
        artDirection=ART_DIRECTION_SCHEMA,
        elements=STRING_LIST,
    )
    schema["required"] = ["camera", "subject", "lighting", "artDirection", "elements"]
    return schema


GENERATE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "json": _prompt_schema(PROMPT_LIGHTING_SCHEMA),
        "visualDescription": {
            "type": "STRING",
            "description": "A cohesive, poetic natural language prompt optimized for Stable Diffusion or Midjourney"
        },
    },
    "required": ["json", "visualDescription"],
}

RECONSTRUCTED_SCHEMA = {
    "type": "OBJECT",
    "description": "Estimated parameters for the UI controls",
    "properties": {
        "camera": _object(
            azimuth=NUMBER, elevation=NUMBER, distance=NUMBER, focalLength=NUMBER,
            roll=NUMBER, iso=NUMBER,
            aperture=_enum(config.F_STOPS),
            shutterAngle=_enum(config.SHUTTER_ANGLES),
            sensorFormat=_enum(config.SENSOR_FORMATS),
        ),
        "lighting": _object(
            direction=NUMBER, elevation=NUMBER, intensity=NUMBER,
            temperature=_enum(config.LIGHTING_TEMPS),
            type=_enum(config.LIGHTING_TYPES),
        ),
        "scene": _object(
            characterDescription=STRING, characterAction=STRING,
            clothingAndProps=STRING, environment=STRING,
        ),
        "options": _object(
            characterCount=_enum(config.CHARACTER_COUNTS),
            characterArrangement=_enum(ALL_ARRANGEMENTS),
            themes=_enum_list(config.THEMES),
            compositions=_enum_list(config.COMPOSITIONS),
            styles=_enum_list(config.ARTIST_STYLES),
            colors=_enum_list(config.COLOR_GRADES),
            atmospheres=_enum_list(config.ATMOSPHERES),
        ),
    },
}

# Analysis describes the lighting in prose rather than as a rig
ANALYZE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "json": _prompt_schema(STRING),
        "visualDescription": STRING,
        "reconstructedParams": RECONSTRUCTED_SCHEMA,
    },
    "required": ["json", "visualDescription", "reconstructedParams"],
}

SUGGESTION_SCHEMA = STRING_LIST


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )


class CameraSettingsBlock(WireModel):
    aperture: str = ""
    shutter: str = ""
    iso: str = ""
    format: str = ""


class Position(WireModel):
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


class Rotation(WireModel):
    pitch: float = 0.0
    yaw: float = 0.0
    roll: float = 0.0


class PromptCamera(WireModel):
    type: str = ""
    lens: str = ""
    settings: CameraSettingsBlock = Field(default_factory=CameraSettingsBlock)
    position: Position = Field(default_factory=Position)
    rotation: Rotation = Field(default_factory=Rotation)
    description: str = ""


class PromptSubject(WireModel):
    count: str = ""
    arrangement: str = ""
    visuals: str = ""
    action: str = ""


class LightPosition(WireModel):
    azimuth: float = 0.0
    elevation: float = 0.0


class LightLevels(WireModel):
    intensity: str = ""
    temperature: str = ""


class PromptLighting(WireModel):
    setup: str = ""
    position: LightPosition = Field(default_factory=LightPosition)
    parameters: LightLevels = Field(default_factory=LightLevels)


class PromptArtDirection(WireModel):
    theme: str = ""
    style: str = ""
    palette: str = ""


class CinematicPrompt(WireModel):
    """The machine-readable prompt; the durable export format"""

    camera: PromptCamera
    subject: PromptSubject
    lighting: Union[PromptLighting, str]
    art_direction: PromptArtDirection
    elements: List[str]


class ReconstructedCamera(WireModel):
    azimuth: Optional[float] = None
    elevation: Optional[float] = None
    distance: Optional[float] = None
    focal_length: Optional[float] = None
    roll: Optional[float] = None
    iso: Optional[float] = None
    aperture: Optional[str] = None
    shutter_angle: Optional[str] = None
    sensor_format: Optional[str] = None


class ReconstructedLighting(WireModel):
    direction: Optional[float] = None
    elevation: Optional[float] = None
    intensity: Optional[float] = None
    temperature: Optional[str] = None
    type: Optional[str] = None


class ReconstructedScene(WireModel):
    character_description: Optional[str] = None
    character_action: Optional[str] = None
    clothing_and_props: Optional[str] = None
    environment: Optional[str] = None


class ReconstructedOptions(WireModel):
    character_count: Optional[str] = None
    character_arrangement: Optional[str] = None
    themes: List[str] = Field(default_factory=list)
    compositions: List[str] = Field(default_factory=list)
    styles: List[str] = Field(default_factory=list)
    colors: List[str] = Field(default_factory=list)
    atmospheres: List[str] = Field(default_factory=list)


class ReconstructedParams(WireModel):
    camera: ReconstructedCamera = Field(default_factory=ReconstructedCamera)
    lighting: ReconstructedLighting = Field(default_factory=ReconstructedLighting)
    scene: ReconstructedScene = Field(default_factory=ReconstructedScene)
    options: Optional[ReconstructedOptions] = None


class GeneratedResult(WireModel):
    prompt: CinematicPrompt = Field(alias="json")
    visual_description: str
    reconstructed_params: Optional[ReconstructedParams] = None

    def export_json(self):
        return self.prompt.model_dump(by_alias=True)

    def to_dict(self):
        return self.model_dump(by_alias=True, exclude_none=True)


suggestion_list = TypeAdapter(List[str])
