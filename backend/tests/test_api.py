# tests/test_api.py

import json

import pytest
from fastapi.testclient import TestClient

from stemsplit import config
from stemsplit.main import app


@pytest.fixture
def client(make_tool, temp_root, monkeypatch):
    tool = make_tool()
    monkeypatch.setattr(config, "TOOL_COMMAND", list(tool.command))
    monkeypatch.setattr(config, "VERSION_COMMAND", list(tool.version_command))
    monkeypatch.setattr(config, "TEMP_ROOT", str(temp_root))
    return TestClient(app)


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "service": "StemSplit"}


def test_models(client):
    by_name = {m["name"]: m for m in client.get("/models").json()}
    assert by_name["htdemucs_6s"]["stems"] == ["drums", "bass", "vocals", "guitar", "piano", "other"]
    assert len(by_name["htdemucs"]["stems"]) == 4


def test_tool_installed(client):
    body = client.get("/tool").json()
    assert body == {"installed": True, "version": "4.0.1", "install_guidance": None}


def test_tool_missing(client, monkeypatch):
    monkeypatch.setattr(config, "TOOL_COMMAND", ["definitely-not-a-real-tool-xyz"])
    body = client.get("/tool").json()
    assert body["installed"] is False
    assert "pip install demucs" in body["install_guidance"]


def test_info_rejects_bad_extension(client, tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("x")
    r = client.post("/info", json={"path": str(path)})
    assert r.status_code == 400
    assert "Unsupported format" in r.json()["detail"]


def test_separate(client, song, temp_root):
    r = client.post("/separate", json={"input_file": str(song), "model": "htdemucs"})
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True, body["error"]
    assert set(body["stems"]) == {"drums", "bass", "vocals", "other"}
    assert body["stems"]["drums"].endswith("song_drums.wav")
    assert list(temp_root.iterdir()) == []


def test_separate_missing_file(client, tmp_path):
    r = client.post("/separate", json={"input_file": str(tmp_path / "gone.wav")})
    assert r.status_code == 400


def test_separate_rejects_bad_request(client, song):
    r = client.post("/separate", json={"input_file": str(song), "output_format": "ogg"})
    assert r.status_code == 422


def test_separate_stream(client, song):
    r = client.post("/separate/stream", json={"input_file": str(song), "model": "htdemucs"})
    assert r.status_code == 200
    lines = [json.loads(line) for line in r.text.splitlines() if line.strip()]

    assert "result" in lines[-1]
    assert lines[-1]["result"]["success"] is True
    events = [line["event"] for line in lines[:-1]]
    assert events[0]["kind"] == "info"
    assert [e["overall_percent"] for e in events if e["kind"] == "overall_progress"] == [10, 50, 99, 100]


def test_separate_tool_missing_is_503(client, song, monkeypatch):
    monkeypatch.setattr(config, "TOOL_COMMAND", ["definitely-not-a-real-tool-xyz"])
    r = client.post("/separate", json={"input_file": str(song)})
    assert r.status_code == 503
    assert "pip install demucs" in r.json()["detail"]


def test_separate_tool_failure_is_500(client, song, make_tool, monkeypatch):
    monkeypatch.setattr(config, "TOOL_COMMAND", list(make_tool(exit_code=2).command))
    r = client.post("/separate", json={"input_file": str(song)})
    assert r.status_code == 500
    assert "exit code 2" in r.json()["detail"]


def test_separate_stream_tool_missing_is_503(client, song, monkeypatch):
    monkeypatch.setattr(config, "TOOL_COMMAND", ["definitely-not-a-real-tool-xyz"])
    r = client.post("/separate/stream", json={"input_file": str(song)})
    assert r.status_code == 503
