import logging

import pytest
from aiohttp.test_utils import TestClient, TestServer

from phishcheck.analyzer.engine import PhishingAnalyzer
from phishcheck.analyzer.models import SignalContribution
from phishcheck.server import create_app


@pytest.fixture
def app(make_scorer):
    analyzer = PhishingAnalyzer(verifiers=[], scorer=make_scorer(0.5))
    return create_app(analyzer)


@pytest.mark.asyncio
async def test_healthz(app):
    async with TestClient(TestServer(app)) as client:
        resp = await client.get("/healthz")
        assert resp.status == 200
        assert await resp.json() == {"status": "ok"}


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{}, {"url": ""}, {"unrelated": "x"}])
async def test_analyze_requires_url_or_message(app, body):
    async with TestClient(TestServer(app)) as client:
        resp = await client.post("/analyze", json=body)
        assert resp.status == 400
        assert await resp.json() == {"error": "URL or message required"}


@pytest.mark.asyncio
async def test_analyze_rejects_non_json_body(app):
    async with TestClient(TestServer(app)) as client:
        resp = await client.post("/analyze", data="url=https://example.com")
        assert resp.status == 400


@pytest.mark.asyncio
async def test_analyze_url(app):
    async with TestClient(TestServer(app)) as client:
        resp = await client.post("/analyze", json={"url": "https://example.com"})
        assert resp.status == 200
        assert await resp.json() == {"isPhishing": False, "riskScore": 25.0, "reasons": []}


@pytest.mark.asyncio
async def test_analyze_message_without_link(app):
    async with TestClient(TestServer(app)) as client:
        resp = await client.post("/analyze", json={"message": "lunch at noon?"})
        data = await resp.json()
        assert resp.status == 200
        assert data == {"isPhishing": False, "riskScore": 0, "reasons": ["No URL found"]}


@pytest.mark.asyncio
async def test_phishing_verdict_is_logged(make_scorer, make_verifier, caplog):
    analyzer = PhishingAnalyzer(
        verifiers=[make_verifier("intel", SignalContribution(60, "Confirmed phishing by PhishTank"))],
        scorer=make_scorer(0.5),
    )
    async with TestClient(TestServer(create_app(analyzer))) as client:
        with caplog.at_level(logging.WARNING, logger="phishcheck.server.app"):
            resp = await client.post("/analyze", json={"url": "http://evil.test/login"})
        data = await resp.json()

    assert data["isPhishing"] is True
    assert data["riskScore"] == 100
    assert "Confirmed phishing by PhishTank" in data["reasons"]
    assert "Phishing caught: http://evil.test/login" in caplog.text
