"""Minimal HTTP API exposing the analyzer."""

from __future__ import annotations

import logging

from aiohttp import web

from ..analyzer.engine import PhishingAnalyzer
from ..analyzer.models import AnalysisInput

logger = logging.getLogger(__name__)

ANALYZER_KEY = web.AppKey("analyzer", PhishingAnalyzer)


async def handle_analyze(request: web.Request) -> web.Response:
    """POST /analyze with ``{"url": ...}`` or ``{"message": ...}``."""
    try:
        body = await request.json()
    except ValueError:
        body = None

    data = AnalysisInput.from_dict(body) if isinstance(body, dict) else AnalysisInput()
    if data.is_empty:
        return web.json_response({"error": "URL or message required"}, status=400)

    analyzer = request.app[ANALYZER_KEY]
    result = await analyzer.analyze(data)
    if result.is_phishing:
        logger.warning(f"Phishing caught: {data.url or data.message} - Score: {result.risk_score}")

    return web.json_response(result.to_dict())


async def handle_health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


def create_app(analyzer: PhishingAnalyzer) -> web.Application:
    app = web.Application()
    app[ANALYZER_KEY] = analyzer
    app.router.add_post("/analyze", handle_analyze)
    app.router.add_get("/healthz", handle_health)
    return app


class AnalysisServer:
    """Runs the API on a TCP site until stopped."""

    def __init__(self, analyzer: PhishingAnalyzer, host: str, port: int):
        self.analyzer = analyzer
        self.host = host
        self.port = port
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None

    async def start(self):
        """Start the API server."""
        self._runner = web.AppRunner(create_app(self.analyzer))
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self.host, self.port)
        await self._site.start()
        logger.info("PhishCheck API listening on %s:%s", self.host, self.port)

    async def stop(self):
        """Stop the API server."""
        if self._site:
            await self._site.stop()
        if self._runner:
            await self._runner.cleanup()
        self._runner = None
        self._site = None
