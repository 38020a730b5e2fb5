import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.core.config import settings
from app.core.errors import install_error_handlers
from app.core.http_hardening import install_http_hardening
from app.api.entities.router import router as entities_router

logging.getLogger("app").setLevel(settings.LOG_LEVEL.upper())

app = FastAPI(title=settings.APP_NAME, version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
install_http_hardening(app)
install_error_handlers(app)

app.include_router(entities_router, prefix="/api")

@app.get("/health")
def health():
    return {"status": "ok"}
