from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.note_engine.api.v1.routes_system import router as system_router_v1
from src.note_engine.api.v1.routes_sections import router as sections_router_v1
from src.note_engine.api.v1.routes_notes import router as notes_router_v1
from src.note_engine.api.v1.routes_transfer import router as transfer_router_v1
from src.note_engine.config import settings

app = FastAPI(title="Note Section Engine API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["system"])
async def health_check() -> dict:
    """Basic liveness probe for the API root."""
    return {"status": "ok"}


# Versioned API routers
app.include_router(system_router_v1, prefix="/api/v1")
app.include_router(sections_router_v1, prefix="/api/v1")
app.include_router(notes_router_v1, prefix="/api/v1")
app.include_router(transfer_router_v1, prefix="/api/v1")
