"""Projection of camera and light rigs onto the top-down studio schematic.

Everything here is a pure function of its inputs: no state, no randomness,
so a schematic can be compared structurally instead of rendered.
"""

import math
from dataclasses import dataclass, asdict
from typing import Optional, Tuple

from config import SCHEMATIC
from utils import clamp


@dataclass(frozen=True)
class Schematic:
    camera_radius: float
    camera_angle: float
    camera_tilt: float
    camera_roll: float
    camera_marker: Tuple[float, float]
    camera_world_position: Tuple[float, float, float]
    cone_half_width: float
    roll_indicator: bool
    focal_bar_fraction: float
    light_radius: float
    light_angle: float
    light_tilt: float
    light_marker: Tuple[float, float]
    ray_scale: float
    ray_length: float
    subject_layout: str

    def to_dict(self):
        return asdict(self)


def camera_radius(distance):
    """Orbit radius of the camera marker; floored so it never reaches the subject"""
    return max(SCHEMATIC["min_radius"], distance * SCHEMATIC["distance_scale"])


def cone_half_width(focal_length):
    """Field-of-view cone half-width, inversely proportional to focal length"""
    width = (SCHEMATIC["reference_focal"] / focal_length) * SCHEMATIC["cone_scale"]
    return clamp(width, SCHEMATIC["min_cone"], SCHEMATIC["max_cone"])


def ray_scale(intensity):
    return intensity / SCHEMATIC["reference_intensity"]


def focal_bar_fraction(focal_length):
    low, high = SCHEMATIC["focal_bar_min"], SCHEMATIC["focal_bar_max"]
    return clamp((focal_length - low) / (high - low), 0.0, 1.0)


def floor_marker(radius, angle):
    """Point on the floor plane at ``radius`` after rotating ``angle`` degrees about the vertical axis"""
    rad = math.radians(angle)
    return (round(radius * math.cos(rad), 6), round(radius * math.sin(rad), 6))


def world_position(distance, azimuth, elevation):
    """Camera position in metres with the subject at the origin and Y up"""
    az, el = math.radians(azimuth), math.radians(elevation)
    ground = distance * math.cos(el)
    return (
        round(ground * math.sin(az), 6),
        round(distance * math.sin(el), 6),
        round(ground * math.cos(az), 6),
    )


def subject_layout(character_count, arrangement=None):
    arrangement = arrangement or ""
    if character_count == "2":
        if "Face" in arrangement:
            return "face_to_face"
        if "Back" in arrangement:
            return "back_to_back"
        return "side_by_side"
    if character_count == "3+":
        return "triangle" if "Triangle" in arrangement else "line"
    if character_count == "crowd":
        return "crowd"
    return "single"


def project(camera, lighting, character_count="1", arrangement: Optional[str] = None) -> Schematic:
    """Build the schematic for a camera/lighting pair.

    The camera angle is the azimuth and its tilt is the negated elevation, as
    on the visualiser where positive elevation lifts the rig off the floor. The
    light sits on its own fixed ring and ignores the camera entirely.
    """
    cam_radius = camera_radius(camera.distance)
    scale = ray_scale(lighting.intensity)

    return Schematic(
        camera_radius=cam_radius,
        camera_angle=camera.azimuth,
        camera_tilt=-camera.elevation,
        camera_roll=camera.roll,
        camera_marker=floor_marker(cam_radius, camera.azimuth),
        camera_world_position=world_position(camera.distance, camera.azimuth, camera.elevation),
        cone_half_width=cone_half_width(camera.focal_length),
        roll_indicator=abs(camera.roll) > 0,
        focal_bar_fraction=focal_bar_fraction(camera.focal_length),
        light_radius=SCHEMATIC["light_radius"],
        light_angle=lighting.direction,
        light_tilt=-lighting.elevation,
        light_marker=floor_marker(SCHEMATIC["light_radius"], lighting.direction),
        ray_scale=scale,
        ray_length=SCHEMATIC["ray_length"] * scale,
        subject_layout=subject_layout(character_count, arrangement),
    )
