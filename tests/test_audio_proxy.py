import pytest


RECORDING = "https://recordings.example.com/calls/1.mp3"


@pytest.mark.asyncio
async def test_proxy_streams_recording(client, agent_header, audio_bytes):
    resp = await client.get("/api/audio-proxy", params={"url": RECORDING}, headers=agent_header)

    assert resp.status_code == 200
    assert resp.content == audio_bytes
    assert resp.headers["content-type"] == "audio/mpeg"
    assert resp.headers["accept-ranges"] == "bytes"
    assert resp.headers["cache-control"] == "public, max-age=3600"
    assert resp.headers["etag"] == '"abc"'


@pytest.mark.asyncio
async def test_proxy_forwards_range(client, agent_header, audio_bytes):
    resp = await client.get(
        "/api/audio-proxy",
        params={"url": RECORDING},
        headers={**agent_header, "Range": "bytes=10-19"},
    )

    assert resp.status_code == 206
    assert resp.content == audio_bytes[10:20]
    assert resp.headers["content-range"] == f"bytes 10-19/{len(audio_bytes)}"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params, detail",
    [
        ({}, "URL parameter is required"),
        ({"url": ""}, "URL parameter is required"),
        ({"url": "ftp://recordings.example.com/1.mp3"}, "Invalid URL format"),
    ],
)
async def test_proxy_rejects_bad_url(client, agent_header, params, detail):
    resp = await client.get("/api/audio-proxy", params=params, headers=agent_header)
    assert resp.status_code == 400
    assert resp.json()["detail"] == detail


@pytest.mark.asyncio
async def test_proxy_passes_upstream_status(client, agent_header):
    resp = await client.get(
        "/api/audio-proxy", params={"url": "https://recordings.example.com/missing.mp3"}, headers=agent_header
    )
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Audio file not available: Not Found"


@pytest.mark.asyncio
async def test_proxy_unreachable_upstream(client, agent_header):
    resp = await client.get(
        "/api/audio-proxy", params={"url": "https://recordings.example.com/broken.mp3"}, headers=agent_header
    )
    assert resp.status_code == 502


@pytest.mark.asyncio
async def test_proxy_requires_login(client):
    resp = await client.get("/api/audio-proxy", params={"url": RECORDING})
    assert resp.status_code == 401
