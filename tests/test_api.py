"""Integration tests exercising the full API with the mock xymon client."""

from __future__ import annotations

import pytest

from xymon_gateway import __version__
from xymon_gateway.errors import ConnectFailed, RelayTimeout


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_version(client, mock_xymond):
    resp = await client.get("/version")
    assert resp.status_code == 200
    assert resp.json() == {"name": "xymon-gateway", "version": __version__}
    assert mock_xymond.commands == []


@pytest.mark.asyncio
async def test_board_by_color(client, mock_xymond):
    resp = await client.get("/board", params={"color": "red"})
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("application/json")
    data = resp.json()
    assert len(data) == 2
    assert all(item["color"] == "red" for item in data)
    assert mock_xymond.last_command == "xymondboard color=red"


@pytest.mark.asyncio
async def test_board_alias_with_fields(client, mock_xymond):
    resp = await client.get("/xymondboard?fields=hostname,%20color")
    assert resp.status_code == 200
    assert resp.json() == [
        {"hostname": "host1", "color": "red"},
        {"hostname": "host2", "color": "green"},
    ]
    assert mock_xymond.last_command == "xymondboard fields=hostname,color"


@pytest.mark.asyncio
async def test_board_unknown_host_is_empty(client, mock_xymond):
    resp = await client.get("/board?host=nosuchhost")
    assert resp.status_code == 200
    assert resp.json() == []


@pytest.mark.asyncio
async def test_status_log(client, mock_xymond):
    resp = await client.get("/log/host1/conn")
    assert resp.status_code == 200
    data = resp.json()
    assert data["hostname"] == "host1"
    assert data["color"] == "red"
    assert "unreachable" in data["msg"]
    assert mock_xymond.last_command == "xymondlog host1.conn"


@pytest.mark.asyncio
async def test_status_log_alias(client, mock_xymond):
    resp = await client.get("/xymondlog/host1/conn")
    assert resp.status_code == 200
    assert resp.json()["testname"] == "conn"


@pytest.mark.asyncio
async def test_hostinfo_tags(client, mock_xymond):
    resp = await client.get("/hostinfo")
    data = resp.json()
    assert data[0] == {
        "hostname": "host1",
        "ip": "10.0.0.1",
        "field3": "conn",
        "field4": "http://host1/",
    }
    assert data[1] == {"hostname": "host2", "ip": "10.0.0.2"}


@pytest.mark.asyncio
async def test_ghosts(client, mock_xymond):
    for path in ("/ghostlist", "/ghosts"):
        resp = await client.get(path)
        assert resp.json() == [
            {"hostname": "ghost1", "ip": "10.0.0.9", "lastchange": "1700000000"},
        ]


@pytest.mark.asyncio
async def test_ping(client, mock_xymond):
    resp = await client.get("/ping")
    assert resp.status_code == 200
    assert resp.json() == {"result": "xymond 4.3.30"}


@pytest.mark.asyncio
async def test_ping_daemon_unreachable(client, mock_xymond):
    mock_xymond.fail_all = ConnectFailed("cannot connect to xymond at 127.0.0.1:1984")
    resp = await client.get("/ping")
    assert resp.status_code == 502
    assert resp.json()["error"] == "connect_failed"


@pytest.mark.asyncio
async def test_daemon_timeout(client, mock_xymond):
    mock_xymond.fail_all = RelayTimeout("timed out")
    resp = await client.get("/board")
    assert resp.status_code == 504
    assert resp.json()["error"] == "relay_timeout"


@pytest.mark.asyncio
async def test_clientlog_plain_text(client, mock_xymond):
    resp = await client.get("/clientlog/host1", headers={"Accept": "text/plain"})
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    assert resp.text.startswith("[date]\n")


@pytest.mark.asyncio
async def test_clientlog_json(client, mock_xymond):
    resp = await client.get("/clientlog/host1", headers={"Accept": "application/json"})
    assert resp.headers["content-type"].startswith("application/json")
    assert resp.json()["result"].startswith("[date]\nTue Nov 14")


@pytest.mark.asyncio
async def test_clientlog_section_with_slashes(client, mock_xymond):
    resp = await client.get("/clientlog/host1/msgs%3A%2Fvar%2Flog%2Fmessages")
    assert resp.status_code == 200
    assert mock_xymond.last_command == "clientlog host1 section=msgs:/var/log/messages"


@pytest.mark.asyncio
async def test_query(client, mock_xymond):
    resp = await client.get("/query/host1/conn")
    assert resp.json()["result"].startswith("red ")


@pytest.mark.asyncio
async def test_enable(client, mock_xymond):
    resp = await client.post("/enable/host1/*")
    assert resp.status_code == 200
    assert resp.json() == {"result": ""}
    assert mock_xymond.last_command == "enable host1.*"


@pytest.mark.asyncio
async def test_disable_with_reason(client, mock_xymond):
    resp = await client.post(
        "/disable/host1/conn?duration=30",
        content="maintenance",
        headers={"Content-Type": "text/plain"},
    )
    assert resp.status_code == 200
    assert mock_xymond.last_command == "disable host1.conn 30 maintenance"


@pytest.mark.asyncio
async def test_disable_defaults(client, mock_xymond):
    await client.post("/disable/host1/conn")
    assert mock_xymond.last_command == "disable host1.conn -1 "


@pytest.mark.asyncio
async def test_disable_bad_duration(client, mock_xymond):
    resp = await client.post("/disable/host1/conn?duration=soon", content="x")
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_parameter"
    assert mock_xymond.commands == []


@pytest.mark.asyncio
async def test_notify_requires_body(client, mock_xymond):
    resp = await client.post("/notify/host1/conn")
    assert resp.status_code == 400
    assert mock_xymond.commands == []


@pytest.mark.asyncio
async def test_notify(client, mock_xymond):
    resp = await client.post("/notify/host1/conn", content="disk replaced")
    assert resp.status_code == 200
    assert mock_xymond.last_command == "notify host1.conn disk replaced"


@pytest.mark.asyncio
async def test_drop(client, mock_xymond):
    await client.delete("/drop/host1")
    assert mock_xymond.last_command == "drop host1 "
    await client.delete("/drop/host1/conn")
    assert mock_xymond.last_command == "drop host1 conn"


@pytest.mark.asyncio
async def test_rename(client, mock_xymond):
    await client.post("/rename/old/new")
    assert mock_xymond.last_command == "rename old new"
    await client.post("/rename/host1/cpu/load")
    assert mock_xymond.last_command == "rename host1 cpu load"


@pytest.mark.asyncio
async def test_schedule_list(client, mock_xymond):
    resp = await client.get("/schedule")
    data = resp.json()
    assert [task["id"] for task in data] == [1, 2]
    assert data[1]["command"] == "enable host1.conn"


@pytest.mark.asyncio
async def test_schedule_add_and_cancel(client, mock_xymond):
    await client.post("/schedule/1700003600", content="enable host1.conn")
    assert mock_xymond.last_command == "schedule 1700003600 enable host1.conn"
    await client.delete("/schedule/2")
    assert mock_xymond.last_command == "schedule cancel 2"


@pytest.mark.asyncio
async def test_sessions_released(client, mock_xymond):
    await client.get("/board")
    await client.get("/ping")
    assert all(s.closed for s in mock_xymond.sessions)


@pytest.mark.asyncio
async def test_unknown_path(client):
    resp = await client.get("/nope")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_wrong_method(client):
    resp = await client.get("/enable/host1/conn")
    assert resp.status_code == 405
