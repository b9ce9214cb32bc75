import os
from dotenv import load_dotenv

load_dotenv()

GEMINI_API_KEY = os.getenv('GEMINI_API_KEY')
GEMINI_MODEL = os.getenv('GEMINI_MODEL', 'gemini-3-flash-preview')
GEMINI_API_BASE = os.getenv('GEMINI_API_BASE', 'https://generativelanguage.googleapis.com/v1beta/models')
GEMINI_TIMEOUT = float(os.getenv('GEMINI_TIMEOUT', 120))

SUGGESTION_DEBOUNCE_SECONDS = float(os.getenv('SUGGESTION_DEBOUNCE_SECONDS', 0.8))
SUGGESTION_MIN_LENGTH = int(os.getenv('SUGGESTION_MIN_LENGTH', 3))
SUGGESTION_LIMIT = 5

THEMES = [
    "Sci-Fi", "Noir", "Fantasy", "Horror",
    "Western", "Documentary", "Vintage", "Cinematic"
]

COMPOSITIONS = [
    "Rule of Thirds", "Center Framed", "Symmetrical", "Leading Lines",
    "Golden Ratio", "Negative Space", "Framing", "Dutch Angle"
]

ARTIST_STYLES = [
    "Roger Deakins", "Wes Anderson", "Ridley Scott", "Christopher Nolan",
    "Wong Kar-wai", "Denis Villeneuve", "Tim Burton", "Zack Snyder"
]

COLOR_GRADES = [
    "Teal and Orange", "Black and White", "Neon Vaporwave", "Vintage Kodachrome",
    "Desaturated", "Pastel", "Warm Golden", "Cool Blue"
]

ATMOSPHERES = [
    "Foggy", "Rainy", "Dusty", "Cinematic Haze",
    "Snowing", "Smoke", "Sparks", "Lens Flares"
]

F_STOPS = [
    "f/0.95", "f/1.2", "f/1.4", "f/1.8", "f/2.0", "f/2.8", "f/4.0",
    "f/5.6", "f/8.0", "f/11", "f/16", "f/22", "f/32"
]

SHUTTER_ANGLES = [
    "11.25° (Skinny / Staccato)",
    "45° (High Action)",
    "90° (Crisp)",
    "144°",
    "172.8°",
    "180° (Standard)",
    "270° (Smooth)",
    "360° (Dreamy / Blur)"
]

SENSOR_FORMATS = [
    "IMAX 70mm (15-perf)",
    "Arri Alexa 65 (Large Format)",
    "VistaVision",
    "Full Frame 35mm",
    "Super 35",
    "Micro 4/3",
    "16mm Film",
    "8mm Vintage"
]

LIGHTING_TYPES = [
    "Natural / Sunlight",
    "Softbox / Diffused",
    "Hard Light / Spotlight",
    "Rembrandt Lighting",
    "Rim Light / Backlight",
    "Neon / Practical",
    "Ring Light (Beauty)",
    "Cinematic Top Light"
]

LIGHTING_TEMPS = [
    "Neutral (5600K)",
    "Warm / Golden (3200K)",
    "Cool / Blue (7000K+)",
    "Neon Red",
    "Neon Blue",
    "Neon Green",
    "Candlelight"
]

CHARACTER_COUNTS = ["1", "2", "3+", "crowd"]

# Friendly names accepted wherever a character count is written
CHARACTER_COUNT_ALIASES = {
    "solo": "1",
    "duo": "2",
    "group": "3+",
}

CHARACTER_ARRANGEMENTS = {
    "1": [
        "Center Frame", "Rule of Thirds", "Off-screen Gaze", "Back to Camera",
        "Extreme Close-up", "Silhouette", "Reflection in Mirror", "Looking Down",
        "Looking Up", "Walking Away", "Running Towards Camera", "Profile View",
        "Lying Down", "Sitting on Edge", "Peeking Around Corner", "Dynamic Action Jump",
        "Floating / Weightless", "Shadow Interaction", "Framed by Environment",
        "Negative Space Dominance"
    ],
    "2": [
        "Face to Face", "Side by Side", "Back to Back", "Over the Shoulder",
        "Foreground/Background", "Dancing / Embrace", "Chasing", "Mirror Image",
        "Whisper in Ear", "Holding Hands", "One Sitting One Standing",
        "Yin Yang Composition", "Leading by Hand", "Fighting / Grappling", "Kissing",
        "Walk and Talk", "One Looking One Away", "Silhouette against Light",
        "Reflections", "Vertically Stacked"
    ],
    "3+": [
        "Triangle Formation", "Linear Line-up", "Circular Ring", "Scattered",
        "V-Formation", "Pyramidal Stacking", "Dinner Table", "Converging on Center",
        "Walking in Slow Motion", "Huddle", "Staggered Depth",
        "Looking in Different Directions", "Follow the Leader", "Carrying/Lifting",
        "Circle of Trust", "Backs Turned", "Framing the Void", "Dynamic Action Scatter",
        "Stadium Seating", "Reflection Group"
    ],
    "crowd": [
        "Dense Packing", "Organized Formation", "Chaos/Panic", "Audience/Spectators",
        "Sea of Faces", "Mosh Pit / Rave", "Commuter Flow", "Protest / March",
        "Circle Pit", "Looking Up", "Silhouettes in Fog", "Pixelated Pattern",
        "Zombie Horde", "Red Carpet Paparazzi", "Battle Charge", "Market Bustle",
        "Religious Gathering", "Aftermath", "Cheerleader Pyramid", "Infinite Reflection"
    ]
}

# Art-direction selection fields and the vocabulary each one draws from
ART_DIRECTION_VOCABULARIES = {
    "theme": THEMES,
    "composition": COMPOSITIONS,
    "artist_style": ARTIST_STYLES,
    "color_grade": COLOR_GRADES,
    "atmosphere": ATMOSPHERES,
}

CAMERA_PRESETS = {
    "portrait": {
        "azimuth": 15, "elevation": 5, "distance": 2, "focal_length": 85,
        "aperture": "f/1.8", "shutter_angle": "180° (Standard)", "iso": 400,
        "sensor_format": "Full Frame 35mm"
    },
    "wide": {
        "azimuth": 45, "elevation": 20, "distance": 8, "focal_length": 24,
        "aperture": "f/8.0", "shutter_angle": "180° (Standard)", "iso": 100,
        "sensor_format": "VistaVision"
    },
    "action": {
        "azimuth": 60, "elevation": -10, "distance": 4, "focal_length": 35,
        "aperture": "f/2.8", "shutter_angle": "45° (High Action)", "iso": 800,
        "sensor_format": "Super 35"
    },
    "macro": {
        "azimuth": 0, "elevation": 45, "distance": 1, "focal_length": 100,
        "aperture": "f/2.8", "shutter_angle": "180° (Standard)", "iso": 200,
        "sensor_format": "Full Frame 35mm"
    },
    "cinematic": {
        "azimuth": 30, "elevation": 0, "distance": 5, "focal_length": 50,
        "aperture": "f/2.0", "shutter_angle": "180° (Standard)", "iso": 800,
        "sensor_format": "Arri Alexa 65 (Large Format)"
    }
}

# (min, max) per numeric field; "wrap" fields are taken modulo 360 instead of clamped
CAMERA_RANGES = {
    "azimuth": "wrap",
    "elevation": (-90, 90),
    "distance": (1, 10),
    "focal_length": (12, 200),
    "roll": (-45, 45),
    "iso": (100, 6400),
}
ISO_STEP = 100

LIGHTING_RANGES = {
    "direction": "wrap",
    "elevation": (0, 90),
    "intensity": (0, 100),
}

RANDOM_FOCAL_LENGTHS = [16, 24, 35, 50, 85, 135]
RANDOM_ROLL_PROBABILITY = 0.2

DEFAULT_CAMERA = {
    "azimuth": 45, "elevation": 15, "distance": 4, "focal_length": 50, "roll": 0,
    "aperture": "f/2.8", "shutter_angle": "180° (Standard)", "iso": 800,
    "sensor_format": "Super 35"
}

DEFAULT_LIGHTING = {
    "direction": 45, "elevation": 45, "intensity": 80,
    "temperature": "Neutral (5600K)", "type": "Softbox / Diffused"
}

# Schematic scale factors (pixels on the visualiser floor plane)
SCHEMATIC = {
    "min_radius": 50,
    "distance_scale": 30,
    "light_radius": 220,
    "reference_focal": 50,
    "cone_scale": 40,
    "min_cone": 10,
    "max_cone": 150,
    "reference_intensity": 50,
    "ray_length": 300,
    "focal_bar_min": 12,
    "focal_bar_max": 200,
}
