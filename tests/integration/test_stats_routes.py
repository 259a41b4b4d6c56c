import math

import pytest


@pytest.mark.asyncio
@pytest.mark.integration
async def test_correlation(client):
    resp = await client.post("/api/v1/stats/correlation", json={"a": [1, 2, 3, 4], "b": [2, 4, 6]})
    assert resp.status_code == 200
    assert resp.json() == {"correlation": 1.0, "points": 3}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_describe(client):
    body = (await client.post("/api/v1/stats/describe", json={"values": [1, 2, 3, 4]})).json()
    assert body["count"] == 4
    assert body["mean"] == 2.5
    assert body["median"] == 2.5
    assert body["stddev"] == pytest.approx(math.sqrt(1.25))
    assert body["pctChange"] == pytest.approx(100 / 3)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_describe_short_series(client):
    body = (await client.post("/api/v1/stats/describe", json={"values": [5], "lookback": 3})).json()
    assert body["count"] == 1
    assert body["stddev"] is None
    assert body["pctChange"] is None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_describe_rejects_zero_lookback(client):
    resp = await client.post("/api/v1/stats/describe", json={"values": [1, 2], "lookback": 0})
    assert resp.status_code == 422


@pytest.mark.asyncio
@pytest.mark.integration
@pytest.mark.parametrize("path, raw", [
    ("/api/v1/stats/correlation", '{"a": [1, NaN, 3], "b": [1, 2, 3]}'),
    ("/api/v1/stats/describe", '{"values": [1, Infinity]}'),
])
async def test_non_finite_values_rejected(client, path, raw):
    resp = await client.post(path, content=raw, headers={"Content-Type": "application/json"})
    assert resp.status_code == 422
