import base64
import io

import pytest

import app as app_module
from conftest import FakeService
from errors import ServiceError

PNG_BYTES = b'\x89PNG\r\n\x1a\n' + b'\x00' * 16
DATA_URL = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode('utf-8')


@pytest.fixture
def service(monkeypatch):
    fake = FakeService()
    monkeypatch.setattr(app_module, "prompt_service", fake)
    return fake


@pytest.fixture
def client(service):
    app_module.app.config["TESTING"] = True
    return app_module.app.test_client()


@pytest.fixture
def session_id(client):
    response = client.post('/sessions')
    assert response.status_code == 201
    return response.get_json()["data"]["sessionId"]


def test_create_session(client):
    response = client.post('/sessions')
    data = response.get_json()["data"]

    assert data["state"] == "direct"
    assert data["controlsEnabled"] is True
    assert data["session"]["camera"]["azimuth"] == 45


def test_unknown_session(client):
    response = client.get('/sessions/nope')
    assert response.status_code == 404
    assert response.get_json()["status"] == "error"


def test_patch_camera_clamps(client, session_id):
    response = client.patch(f'/sessions/{session_id}/camera', json={"distance": 40, "azimuth": 400})
    camera = response.get_json()["data"]["session"]["camera"]

    assert response.status_code == 200
    assert camera["distance"] == 10
    assert camera["azimuth"] == 40


def test_patch_rejects_unknown_token(client, session_id):
    response = client.patch(f'/sessions/{session_id}/camera', json={"aperture": "f/3.3"})
    assert response.status_code == 400
    assert "aperture" in response.get_json()["message"]


def test_character_count_and_preset(client, session_id):
    client.post(f'/sessions/{session_id}/character-count', json={"count": "crowd"})
    response = client.post(f'/sessions/{session_id}/preset', json={"preset": "portrait"})
    session = response.get_json()["data"]["session"]

    assert session["options"]["characterArrangement"] == "Dense Packing"
    assert session["camera"]["focalLength"] == 85


def test_randomize(client, session_id):
    assert client.post(f'/sessions/{session_id}/randomize/camera').status_code == 200
    assert client.post(f'/sessions/{session_id}/randomize/lighting').status_code == 200
    assert client.post(f'/sessions/{session_id}/randomize/weather').status_code == 400


def test_reverse_engineering_flow(client, session_id, service):
    client.post(f'/sessions/{session_id}/mode', json={"mode": "reverse"})

    locked = client.patch(f'/sessions/{session_id}/scene', json={"characterAction": "Running"})
    assert locked.status_code == 409

    no_image = client.post(f'/sessions/{session_id}/analyze')
    assert no_image.status_code == 400
    assert service.calls == []

    uploaded = client.post(f'/sessions/{session_id}/image', json={"image": DATA_URL, "context": "noir"})
    assert uploaded.get_json()["data"]["state"] == "reverse.awaiting_analysis"

    analyzed = client.post(f'/sessions/{session_id}/analyze').get_json()["data"]
    assert analyzed["state"] == "reverse.analyzed"
    assert analyzed["hasAnalyzed"] is True
    assert analyzed["session"]["options"]["characterArrangement"] == "Back to Back"

    _, (image_bytes, context, mime_type) = service.calls[0]
    assert image_bytes == PNG_BYTES
    assert context == "noir"
    assert mime_type == "image/png"

    generated = client.post(f'/sessions/{session_id}/generate')
    assert generated.status_code == 200

    exported = client.get(f'/sessions/{session_id}/result/json').get_json()
    assert set(exported) == {"camera", "subject", "lighting", "artDirection", "elements"}


def test_multipart_upload(client, session_id):
    client.post(f'/sessions/{session_id}/mode', json={"mode": "reverse"})
    response = client.post(
        f'/sessions/{session_id}/image',
        data={"image": (io.BytesIO(PNG_BYTES), "still.png", "image/png"), "context": "western"},
        content_type="multipart/form-data",
    )
    assert response.status_code == 200
    assert response.get_json()["data"]["hasImage"] is True


def test_generate_failure_is_bad_gateway(client, session_id, service):
    client.post(f'/sessions/{session_id}/generate')
    service.error = ServiceError("Gemini API error (500)")

    response = client.post(f'/sessions/{session_id}/generate')

    assert response.status_code == 502
    status = client.get(f'/sessions/{session_id}').get_json()["data"]
    assert status["busy"] is False
    assert status["result"] is not None
    assert status["lastError"] == "Gemini API error (500)"


def test_missing_configuration(client, session_id, service):
    service.configured = False
    response = client.post(f'/sessions/{session_id}/generate')
    assert response.status_code == 500
    assert "GEMINI_API_KEY" in response.get_json()["message"]


def test_export_before_generation(client, session_id):
    assert client.get(f'/sessions/{session_id}/result/json').status_code == 400


def test_schematic(client, session_id):
    data = client.get(f'/sessions/{session_id}/schematic').get_json()["data"]
    assert data["camera_radius"] == 120
    assert data["cone_half_width"] == 40
    assert data["subject_layout"] == "single"


def test_atmosphere_status(client, session_id):
    data = client.get(f'/sessions/{session_id}/atmosphere').get_json()["data"]
    assert data["suggestions"] == []


def test_vocabularies(client):
    data = client.get('/vocabularies').get_json()["data"]
    assert "portrait" in data["cameraPresets"]
    assert data["characterArrangements"]["2"][0] == "Face to Face"


def test_octet_stream_upload_is_sniffed(client, session_id, service):
    client.post(f'/sessions/{session_id}/mode', json={"mode": "reverse"})
    client.post(
        f'/sessions/{session_id}/image',
        data={"image": (io.BytesIO(PNG_BYTES), "still.bin", "application/octet-stream")},
        content_type="multipart/form-data",
    )
    client.post(f'/sessions/{session_id}/analyze')

    _, (_, _, mime_type) = service.calls[0]
    assert mime_type == "image/png"


def test_non_string_image_is_bad_request(client, session_id):
    client.post(f'/sessions/{session_id}/mode', json={"mode": "reverse"})
    response = client.post(f'/sessions/{session_id}/image', json={"image": 12345})

    assert response.status_code == 400
    assert response.get_json()["status"] == "error"
