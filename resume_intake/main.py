import logging

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from resume_intake.api.routes.parse import router as parse_router

logging.basicConfig(level=logging.INFO)

app = FastAPI(
    title="Resume Intake (Resume Parsing & Placement Service)",
    description="Turns uploaded resumes (PDF, Word, text, RTF, scanned images) into structured builder data with confidence scoring and a placement decision",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

app.include_router(parse_router)

@app.get("/", tags=["health"])
def root():
    return {"service": "resume-intake", "status": "running"}

@app.get("/health", tags=["health"])
def health():
    return {"status": "ok"}

def custom_openapi():
    """Generate OpenAPI schema with custom settings."""
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title="Resume Intake API",
        version="0.1.0",
        description="Resume parsing with section classification, confidence scoring and placement decisions",
        routes=app.routes,
    )
    app.openapi_schema = openapi_schema
    return app.openapi_schema

app.openapi = custom_openapi
