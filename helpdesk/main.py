from prometheus_fastapi_instrumentator import Instrumentator

from .core.config import settings
from .core.logging import configure_logging
from . import app as helpdesk_app

configure_logging()
app = helpdesk_app
app.title = settings.APP_NAME
instrumentator = Instrumentator()
instrumentator.instrument(app).expose(app, include_in_schema=False)


@app.get("/health")
async def health() -> dict[str, bool]:
    return {"ok": True}


def run() -> None:
    import uvicorn

    uvicorn.run("helpdesk.main:app", host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
