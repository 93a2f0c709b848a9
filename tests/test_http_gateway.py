import asyncio
import json

import httpx
import pytest

from core.gateway import (
    BackendError,
    BackendProtocolError,
    DownloadFinished,
    DownloadProgress,
    DownloadStarted,
    UpdateInfo,
)
from core.http_gateway import HttpBackendGateway


def _gateway(handler, retries=2):
    client = httpx.AsyncClient(base_url="http://backend.test", transport=httpx.MockTransport(handler))
    return HttpBackendGateway(client=client, retries=retries, backoff=0)


def _ndjson(*records):
    return "\n".join(json.dumps(r) for r in records).encode()


def test_load_settings_reads_object():
    def handler(request):
        assert request.method == "GET" and request.url.path == "/settings"
        return httpx.Response(200, json={"prefix": "!"})

    assert asyncio.run(_gateway(handler).load_settings()) == {"prefix": "!"}


def test_save_dictionary_sends_full_payload():
    seen = []

    def handler(request):
        seen.append((request.method, request.url.path, json.loads(request.content)))
        return httpx.Response(204)

    payload = {"entries": [{"input": "a", "method": "None", "use_regex": False, "priority": 0}]}
    asyncio.run(_gateway(handler).save_dictionary(payload))
    assert seen == [("PUT", "/dictionary", payload)]


def test_reads_retry_until_success():
    calls = {"n": 0}

    def handler(request):
        calls["n"] += 1
        if calls["n"] < 3:
            return httpx.Response(503)
        return httpx.Response(200, json={"available": True})

    assert asyncio.run(_gateway(handler).check_capability_available()) is True
    assert calls["n"] == 3


def test_reads_give_up_after_retries():
    calls = {"n": 0}

    def handler(request):
        calls["n"] += 1
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(BackendError):
        asyncio.run(_gateway(handler, retries=1).load_dictionary())
    assert calls["n"] == 2


def test_writes_are_not_retried():
    calls = {"n": 0}

    def handler(request):
        calls["n"] += 1
        return httpx.Response(500)

    with pytest.raises(BackendError):
        asyncio.run(_gateway(handler).save_settings({"prefix": ";"}))
    assert calls["n"] == 1


def test_capability_requires_boolean():
    gw = _gateway(lambda request: httpx.Response(200, json={"available": "yes"}))
    with pytest.raises(BackendProtocolError):
        asyncio.run(gw.check_capability_available())


def test_invalid_json_is_protocol_error():
    gw = _gateway(lambda request: httpx.Response(200, content=b"<html>"))
    with pytest.raises(BackendProtocolError):
        asyncio.run(gw.load_settings())


def test_check_for_update():
    gw = _gateway(lambda request: httpx.Response(200, json={"update": None}))
    assert asyncio.run(gw.check_for_update()) is None
    gw = _gateway(
        lambda request: httpx.Response(200, json={"update": {"version": "1.4.0", "date": "d", "body": "b"}})
    )
    assert asyncio.run(gw.check_for_update()) == UpdateInfo("1.4.0", "d", "b")


def test_download_stream_decoded_into_events():
    body = _ndjson(
        {"event": "Started", "data": {"contentLength": 1000}},
        {"event": "Progress", "data": {"chunkLength": 250}},
        {"event": "Finished"},
    )

    def handler(request):
        assert request.method == "POST" and request.url.path == "/update/install"
        return httpx.Response(200, content=body)

    events = []
    asyncio.run(_gateway(handler).download_and_install_update(events.append))
    assert events == [DownloadStarted(1000), DownloadProgress(250), DownloadFinished()]


def test_download_stream_rejects_unknown_event():
    gw = _gateway(lambda request: httpx.Response(200, content=_ndjson({"event": "Paused"})))
    with pytest.raises(BackendProtocolError):
        asyncio.run(gw.download_and_install_update(lambda e: None))


def test_log_stream():
    body = _ndjson(
        {"level": "warn", "message": "tsf missing", "module_path": "ime::tsf", "timestamp": "12:00:00"},
        {"level": "INFO", "message": "ready", "module_path": "app", "timestamp": "12:00:01"},
    )
    gw = _gateway(lambda request: httpx.Response(200, content=body))

    async def collect():
        return [r async for r in gw.log_events()]

    records = asyncio.run(collect())
    assert [r.level for r in records] == ["WARN", "INFO"]
    assert records[0].to_dict()["module_path"] == "ime::tsf"


def test_relaunch_failure_raises():
    gw = _gateway(lambda request: httpx.Response(500))
    with pytest.raises(BackendError):
        asyncio.run(gw.relaunch_application())
