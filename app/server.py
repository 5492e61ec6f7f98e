"""FastAPI server setup and routes"""
import asyncio
import html
import os
import time
from typing import Any, Dict, Optional
import httpx
from fastapi import FastAPI, Request, Response, HTTPException
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from prometheus_client import CONTENT_TYPE_LATEST
from config import Config
from metrics.registry import VariableRegistry
from upstream.client import UpstreamClient
from upstream.control import ControlGateway
from upstream.discovery import VariableDiscovery
from upstream.errors import ControlError, UpstreamError
from upstream.refresher import MetricsRefresher
from app.reactor_state import ReactorState
from logging_config import get_logger, log_error
from middleware.requests import RequestLoggingMiddleware, RequestMetricsMiddleware


logger = get_logger(__name__)


class ExporterServer:
    """FastAPI server for the Nucleares exporter and control API"""

    def __init__(self, config: Config, transport: Optional[httpx.AsyncBaseTransport] = None,
                 registry: Optional[VariableRegistry] = None):
        self.config = config
        self.app = FastAPI(
            title="Nucleares Exporter",
            version=config.service_version,
            docs_url=None,
            redoc_url=None,
            openapi_url=None
        )
        self.registry = registry or VariableRegistry(prefix=config.metric_prefix)
        self.client = UpstreamClient(config, transport=transport)
        self.discovery = VariableDiscovery(self.client, self.registry, probe=config.liveness_probe_enabled)
        self.refresher = MetricsRefresher(self.client, self.registry, probe=config.liveness_probe_enabled)
        self.gateway = ControlGateway(self.client)
        self.reactor_state = ReactorState()

        # Startup discovery state
        self.discovery_task: Optional[asyncio.Task] = None
        self.startup_discovery_done = False
        self.startup_discovery_error: Optional[str] = None
        self.start_time = time.time()

        self._setup_middleware()
        self._setup_routes()
        self._setup_events()

    def _setup_middleware(self):
        """Setup middleware (last added is executed first)"""
        if self.config.enable_request_logging:
            self.app.add_middleware(RequestLoggingMiddleware)

        self.app.add_middleware(RequestMetricsMiddleware, counter=self.registry.requests_total)

    def _setup_routes(self):
        """Setup FastAPI routes"""

        @self.app.get('/metrics', response_class=Response)
        async def get_metrics():
            """Refresh variables and serve the Prometheus exposition"""
            try:
                await self.refresher.refresh()
                return Response(self.registry.exposition(), media_type=CONTENT_TYPE_LATEST)
            except Exception as e:
                log_error(logger, e, {"component": "metrics_endpoint", "endpoint": "/metrics"})
                return Response(str(e), status_code=500, media_type='text/plain')

        @self.app.get('/health')
        def health_check():
            """Ready once discovery has completed"""
            health_data = {
                "status": "healthy" if self.registry.initialised else "unhealthy",
                "initialised": self.registry.initialised,
                "startup_discovery_done": self.startup_discovery_done,
                "startup_discovery_error": self.startup_discovery_error,
                "variables": len(self.registry.variables),
            }
            if not self.registry.initialised:
                raise HTTPException(status_code=503, detail=health_data)
            return health_data

        @self.app.get('/status')
        def get_status():
            """Detailed status information"""
            last_refresh = self.refresher.last_result
            return {
                "service": {
                    "name": self.config.service_name,
                    "version": self.config.service_version,
                    "uptime_seconds": round(time.time() - self.start_time, 1),
                    "hostname": os.uname().nodename
                },
                "upstream": {
                    "url": self.config.nucleares_url,
                    "initialised": self.registry.initialised,
                    "startup_discovery_error": self.startup_discovery_error,
                },
                "refresh": last_refresh.to_dict() if last_refresh else None,
                "variables": self.registry.get_status(),
                "post_variables": self.registry.post_variables,
            }

        @self.app.get('/api/post-variables')
        def list_post_variables():
            """List Nucleares POST (control) variables"""
            return {"variables": self.registry.post_variables}

        @self.app.post('/api/post-variable')
        async def set_post_variable(request: Request):
            """Forward a variable write to the Nucleares webserver"""
            body = await self._read_json(request)
            variable = body.get("variable")
            if not variable or "value" not in body:
                return JSONResponse({"ok": False, "error": "variable and value are required"}, status_code=400)
            try:
                await self.gateway.set_variable(str(variable), body["value"])
            except ControlError as e:
                return JSONResponse({"ok": False, "error": str(e)}, status_code=500)
            return {"ok": True}

        @self.app.post('/api/discover')
        async def run_discovery():
            """Manually re-run variable discovery"""
            try:
                result = await self.discovery.discover()
            except UpstreamError as e:
                log_error(logger, e, {"component": "manual_discovery", "endpoint": "/api/discover"})
                return JSONResponse({"ok": False, "error": str(e)}, status_code=500)
            return {"ok": True, **result.to_dict()}

        @self.app.get('/api/state')
        def get_state():
            """Placeholder reactor state for the control UI"""
            self.reactor_state.touch()
            return self.reactor_state.to_dict()

        @self.app.post('/api/control')
        async def control(request: Request):
            """Placeholder power level control"""
            body = await self._read_json(request)
            power_level = body.get("powerLevel")
            if isinstance(power_level, (int, float)) and not isinstance(power_level, bool):
                self.reactor_state.set_power_level(power_level)
                return {"ok": True, "reactorState": self.reactor_state.to_dict()}
            return JSONResponse({"ok": False, "error": "Invalid powerLevel"}, status_code=400)

        static_dir = self.config.static_dir
        if static_dir and static_dir.is_dir():
            self.app.mount('/', StaticFiles(directory=str(static_dir), html=True), name='static')
        else:
            @self.app.get('/', response_class=HTMLResponse)
            def index():
                """Web interface"""
                return self._generate_html_interface()

    def _setup_events(self):
        """Setup FastAPI startup/shutdown events"""

        @self.app.on_event("startup")
        async def startup_event():
            self.start_time = time.time()
            logger.info(
                "Application startup initiated",
                service_name=self.config.service_name,
                nucleares_url=self.config.nucleares_url,
                event_type="server_startup"
            )
            if self.config.discover_on_startup:
                self.discovery_task = asyncio.create_task(self.run_startup_discovery())

        @self.app.on_event("shutdown")
        async def shutdown_event():
            logger.info("Shutting down Nucleares exporter", event_type="server_shutdown")
            if self.discovery_task and not self.discovery_task.done():
                self.discovery_task.cancel()
                try:
                    await self.discovery_task
                except asyncio.CancelledError:
                    pass

    async def run_startup_discovery(self) -> None:
        """One-shot discovery; the outcome is recorded instead of raised"""
        try:
            await self.discovery.discover()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("Failed to discover Nucleares variables on startup", error=str(e),
                         event_type="startup_discovery_error")
            self.startup_discovery_error = str(e)
        finally:
            self.startup_discovery_done = True

    @staticmethod
    async def _read_json(request: Request) -> Dict[str, Any]:
        try:
            body = await request.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    def _generate_html_interface(self) -> str:
        """Generate HTML interface"""
        variables = self.registry.get_status()
        variable_items = ''.join(
            f'<li><strong>{html.escape(name)}</strong> ({info["kind"]}) = {info["value"] if info["value"] is not None else "-"}</li>'
            for name, info in sorted(variables.items())
        )
        post_items = ''.join(f'<li>{html.escape(name)}</li>' for name in self.registry.post_variables)
        status_class = 'status-enabled' if self.registry.initialised else 'status-disabled'
        status_text = 'Discovered' if self.registry.initialised else 'Waiting for discovery'

        return f"""
        <!DOCTYPE html>
        <html>
        <head>
            <title>Nucleares Exporter</title>
            <style>
                body {{ font-family: Arial, sans-serif; margin: 40px; background-color: #f5f5f5; }}
                .container {{ max-width: 1200px; margin: 0 auto; background-color: white; padding: 20px; border-radius: 8px; box-shadow: 0 2px 4px rgba(0,0,0,0.1); }}
                .header {{ text-align: center; margin-bottom: 30px; color: #333; }}
                .endpoint {{ margin: 10px 0; padding: 10px; background-color: #f8f9fa; border-radius: 4px; }}
                .endpoint a {{ text-decoration: none; color: #0066cc; font-weight: bold; }}
                .section {{ background-color: #e9ecef; padding: 15px; border-radius: 4px; margin: 20px 0; }}
                .status-enabled {{ color: #28a745; }}
                .status-disabled {{ color: #dc3545; }}
            </style>
        </head>
        <body>
            <div class="container">
                <div class="header">
                    <h1>Nucleares Exporter</h1>
                    <p>Prometheus exporter and control API for the Nucleares webserver</p>
                </div>

                <h2>Available Endpoints:</h2>
                <div class="endpoint"><a href="/metrics">/metrics</a> - Prometheus metrics</div>
                <div class="endpoint"><a href="/health">/health</a> - Health check</div>
                <div class="endpoint"><a href="/status">/status</a> - Status information</div>
                <div class="endpoint"><a href="/api/post-variables">/api/post-variables</a> - Writable variables</div>

                <h2>Upstream:</h2>
                <div class="section">
                    <ul>
                        <li><strong>URL:</strong> {html.escape(self.config.nucleares_url)}</li>
                        <li><strong>Discovery:</strong> <span class="{status_class}">{status_text}</span></li>
                        <li><strong>Hostname:</strong> {os.uname().nodename}</li>
                    </ul>
                </div>

                <h2>GET Variables ({len(variables)}):</h2>
                <div class="section">
                    <ul>
                        {variable_items}
                    </ul>
                </div>

                <h2>POST Variables ({len(self.registry.post_variables)}):</h2>
                <div class="section">
                    <ul>
                        {post_items}
                    </ul>
                </div>
            </div>
        </body>
        </html>
        """

    def get_app(self) -> FastAPI:
        """Get the FastAPI application"""
        return self.app
