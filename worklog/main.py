from prometheus_fastapi_instrumentator import Instrumentator

from worklog.core.config import settings
from worklog.core.logging import configure_logging
from . import app as dashboard_app

configure_logging()
app = dashboard_app
app.title = settings.APP_NAME
instrumentator = Instrumentator(excluded_handlers=["/health", "/metrics", "/static"])
instrumentator.instrument(app).expose(app, include_in_schema=False)


@app.get("/health")
async def health() -> dict[str, bool]:
    return {"ok": True, "platform_configured": settings.platform_configured}
