from __future__ import annotations

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from sqlbroker.api import catalog, instances
from sqlbroker.api.utils import register_exception_handlers
from sqlbroker.db import init_db
from sqlbroker.logging_config import configure_logging


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging()
    init_db()
    yield


app = FastAPI(
    title="SQL Database Broker",
    description="Provisions Azure SQL databases on new or pre-registered servers",
    version="0.1.0",
    lifespan=lifespan,
)


@app.get("/", include_in_schema=False)
def root() -> RedirectResponse:
    """Redirect root URL to Swagger UI docs."""
    return RedirectResponse(url="/docs")


app.include_router(catalog.router)
app.include_router(instances.router)

register_exception_handlers(app)

if __name__ == "__main__":
    uvicorn.run("sqlbroker.main:app", host="0.0.0.0", port=8001, log_level="info")
