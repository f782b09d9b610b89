"""Health, metrics and scheduled-task HTTP server."""

from __future__ import annotations

import hmac
from collections.abc import Awaitable, Callable
from dataclasses import asdict

from aiohttp import web

from newsroom_cms.config import HealthSettings
from newsroom_cms.logging import get_logger
from newsroom_cms.services.audit import AuditLogService
from newsroom_cms.services.lifecycle import LifecycleRunner, SweepKind
from newsroom_cms.services.metrics import metrics

TASK_TOKEN_HEADER = "X-Task-Token"

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


class HealthServer:
    """Serves ``/health`` and ``/metrics``.

    When a lifecycle runner is supplied the server also accepts
    ``POST /tasks/lifecycle/{kind}`` and ``POST /tasks/audit/purge`` so an
    external scheduler can trigger sweeps over HTTP. Those routes require the
    ``X-Task-Token`` header when ``task_token`` is configured.
    """

    def __init__(
        self,
        settings: HealthSettings,
        *,
        lifecycle: LifecycleRunner | None = None,
        audit_log: AuditLogService | None = None,
    ) -> None:
        self._settings = settings
        self._lifecycle = lifecycle
        self._audit_log = audit_log
        self._runner: web.AppRunner | None = None
        self._log = get_logger(__name__)

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/health", self._handle_health)
        app.router.add_get("/metrics", self._handle_metrics)
        if self._lifecycle is not None:
            app.router.add_post("/tasks/lifecycle/{kind}", self._sweep_handler(self._lifecycle))
        if self._audit_log is not None:
            app.router.add_post("/tasks/audit/purge", self._purge_handler(self._audit_log))
        return app

    async def start(self) -> None:
        runner = web.AppRunner(self.build_app())
        await runner.setup()
        site = web.TCPSite(runner, host=self._settings.host, port=self._settings.port)
        await site.start()
        self._runner = runner
        self._log.info("health.server_started", host=self._settings.host, port=self._settings.port)

    async def stop(self) -> None:
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    @staticmethod
    async def _handle_health(request: web.Request) -> web.Response:
        return web.Response(text="ok")

    @staticmethod
    async def _handle_metrics(request: web.Request) -> web.Response:
        body = metrics.render()
        return web.Response(text=body, content_type="text/plain; version=0.0.4")

    def _sweep_handler(self, lifecycle: LifecycleRunner) -> Handler:
        async def handle(request: web.Request) -> web.Response:
            self._authorize(request)
            try:
                kind = SweepKind(request.match_info["kind"].replace("-", "_"))
            except ValueError as exc:
                raise web.HTTPNotFound(text="unknown sweep") from exc
            result = await lifecycle.run(kind)
            payload = asdict(result)
            payload["cutoff"] = result.cutoff.isoformat() if result.cutoff else None
            status = 500 if result.failed else 200
            return web.json_response(payload, status=status)

        return handle

    def _purge_handler(self, audit_log: AuditLogService) -> Handler:
        async def handle(request: web.Request) -> web.Response:
            self._authorize(request)
            removed = await audit_log.purge_expired()
            return web.json_response({"removed": removed})

        return handle

    def _authorize(self, request: web.Request) -> None:
        expected = self._settings.task_token
        if not expected:
            return
        supplied = request.headers.get(TASK_TOKEN_HEADER, "")
        if not hmac.compare_digest(supplied, expected):
            self._log.warning("health.task_unauthorized", path=request.path)
            raise web.HTTPUnauthorized(text="invalid task token")
