from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from prometheus_client import generate_latest

from pmstack import __version__
from pmstack.routers import topology

app = FastAPI(
    title="pmstack",
    description="Deployment topology builder for the patient-management platform",
    version=__version__,
)

app.include_router(topology.router, prefix="/api/topology", tags=["topology"])


@app.get("/health")
async def health_check():
    return {"status": "healthy", "version": __version__}


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return PlainTextResponse(generate_latest(), media_type="text/plain; version=0.0.4")
