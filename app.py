import os
import uuid
import threading
from flask import Flask, request, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
from dotenv import load_dotenv

import config
from errors import (
    ConfigurationError, ControlsLockedError, InputError, ServiceError,
    ValidationError, WorkflowBusyError
)
from gemini_service import GeminiPromptService
from session import SessionStore
from utils import decode_data_url, fetch_image, sniff_mime_type
from workflow import Workflow

load_dotenv()

app = Flask(__name__)
CORS(app)

prompt_service = GeminiPromptService()

_sessions = {}
_sessions_lock = threading.Lock()

# Most specific first: WorkflowBusyError and ControlsLockedError are InputErrors
ERROR_STATUS = [
    (WorkflowBusyError, 409),
    (ControlsLockedError, 409),
    (ValidationError, 400),
    (InputError, 400),
    (ConfigurationError, 500),
    (ServiceError, 502),
]


class SessionNotFound(Exception):
    pass


def success(data, message="ok", status=200):
    return jsonify({"status": "success", "message": message, "data": data}), status


def error(message, status):
    return jsonify({"status": "error", "message": message}), status


def create_session():
    session_id = uuid.uuid4().hex
    workflow = Workflow(SessionStore(), prompt_service)
    with _sessions_lock:
        _sessions[session_id] = workflow
    print(f"[Handler] Created session {session_id}")
    return session_id, workflow


def get_workflow(session_id):
    with _sessions_lock:
        workflow = _sessions.get(session_id)
    if workflow is None:
        raise SessionNotFound(session_id)
    return workflow


def body():
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise InputError("Request body must be a JSON object")
    return payload


@app.errorhandler(SessionNotFound)
def handle_missing_session(e):
    return error(f"Unknown session {e}", 404)


@app.errorhandler(Exception)
def handle_error(e):
    for error_type, status in ERROR_STATUS:
        if isinstance(e, error_type):
            print(f"[Error] {type(e).__name__}: {e}")
            return error(str(e), status)
    if isinstance(e, HTTPException):
        return error(e.description, e.code)
    print(f"[Error] {str(e)}")
    return error(str(e), 500)


@app.route('/vocabularies', methods=['GET'])
def vocabularies():
    return success({
        "themes": config.THEMES,
        "compositions": config.COMPOSITIONS,
        "artistStyles": config.ARTIST_STYLES,
        "colorGrades": config.COLOR_GRADES,
        "atmospheres": config.ATMOSPHERES,
        "fStops": config.F_STOPS,
        "shutterAngles": config.SHUTTER_ANGLES,
        "sensorFormats": config.SENSOR_FORMATS,
        "lightingTypes": config.LIGHTING_TYPES,
        "lightingTemperatures": config.LIGHTING_TEMPS,
        "characterCounts": config.CHARACTER_COUNTS,
        "characterArrangements": config.CHARACTER_ARRANGEMENTS,
        "cameraPresets": sorted(config.CAMERA_PRESETS),
    })


@app.route('/sessions', methods=['POST'])
def new_session():
    session_id, workflow = create_session()
    return success({"sessionId": session_id, **workflow.status()}, "Session created", 201)


@app.route('/sessions/<session_id>', methods=['GET'])
def session_status(session_id):
    return success(get_workflow(session_id).status())


@app.route('/sessions/<session_id>/camera', methods=['PATCH'])
def update_camera(session_id):
    workflow = get_workflow(session_id)
    workflow.update_camera(body())
    return success(workflow.status())


@app.route('/sessions/<session_id>/lighting', methods=['PATCH'])
def update_lighting(session_id):
    workflow = get_workflow(session_id)
    workflow.update_lighting(body())
    return success(workflow.status())


@app.route('/sessions/<session_id>/scene', methods=['PATCH'])
def update_scene(session_id):
    workflow = get_workflow(session_id)
    workflow.update_scene(body())
    return success(workflow.status())


@app.route('/sessions/<session_id>/options', methods=['PATCH'])
def update_options(session_id):
    workflow = get_workflow(session_id)
    workflow.update_options(body())
    return success(workflow.status())


@app.route('/sessions/<session_id>/character-count', methods=['POST'])
def character_count(session_id):
    workflow = get_workflow(session_id)
    workflow.set_character_count(body().get('count'))
    return success(workflow.status())


@app.route('/sessions/<session_id>/preset', methods=['POST'])
def preset(session_id):
    workflow = get_workflow(session_id)
    workflow.apply_preset(body().get('preset'))
    return success(workflow.status())


@app.route('/sessions/<session_id>/randomize/<target>', methods=['POST'])
def randomize(session_id, target):
    workflow = get_workflow(session_id)
    if target == 'camera':
        workflow.randomize_camera()
    elif target == 'lighting':
        workflow.randomize_lighting()
    else:
        raise InputError(f"Nothing to randomize for '{target}'")
    return success(workflow.status())


@app.route('/sessions/<session_id>/mode', methods=['POST'])
def switch_mode(session_id):
    workflow = get_workflow(session_id)
    workflow.switch_mode(body().get('mode'))
    return success(workflow.status())


@app.route('/sessions/<session_id>/image', methods=['POST'])
def upload_image(session_id):
    """Accept a reference image as a multipart file, a base64 data URL, or an image URL"""
    workflow = get_workflow(session_id)

    upload = request.files.get('image')
    if upload is not None:
        image_bytes = upload.read()
        mime_type = upload.mimetype or ''
        if not mime_type.startswith('image/'):
            mime_type = sniff_mime_type(image_bytes)
        context = request.form.get('context', '')
    else:
        payload = body()
        context = payload.get('context', '')
        if payload.get('image'):
            image_bytes, mime_type = decode_data_url(payload['image'])
        elif payload.get('imageUrl'):
            image_bytes, mime_type = fetch_image(payload['imageUrl'])
        else:
            raise InputError("Provide an image file, a base64 'image', or an 'imageUrl'")

    workflow.upload_image(image_bytes, mime_type, context)
    return success(workflow.status(), "Image uploaded")


@app.route('/sessions/<session_id>/analyze', methods=['POST'])
def analyze(session_id):
    workflow = get_workflow(session_id)
    payload = body()
    if 'context' in payload:
        workflow.set_image_context(payload['context'])
    workflow.analyze()
    return success(workflow.status(), "Analysis complete")


@app.route('/sessions/<session_id>/generate', methods=['POST'])
def generate(session_id):
    workflow = get_workflow(session_id)
    workflow.generate()
    return success(workflow.status(), "Prompt generated")


@app.route('/sessions/<session_id>/atmosphere', methods=['GET'])
def atmosphere_suggestions(session_id):
    suggester = get_workflow(session_id).suggester
    return success({
        "text": suggester.latest_text,
        "suggestions": list(suggester.suggestions),
        "error": suggester.last_error,
    })


@app.route('/sessions/<session_id>/schematic', methods=['GET'])
def schematic(session_id):
    return success(get_workflow(session_id).schematic().to_dict())


@app.route('/sessions/<session_id>/result/json', methods=['GET'])
def export_result(session_id):
    workflow = get_workflow(session_id)
    if workflow.result is None:
        raise InputError("No prompt has been generated yet")
    return jsonify(workflow.result.export_json()), 200


if __name__ == '__main__':
    port = int(os.getenv('PORT', 5000))
    app.run(host='0.0.0.0', port=port, debug=True)
