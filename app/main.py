from fastapi import FastAPI

from app.api.categories import router as categories_router
from app.api.departments import router as departments_router
from app.api.file_requests import router as file_requests_router
from app.api.files import router as files_router
from app.config import settings
from app.errors import register_error_handlers
from app.logging import configure_logging

app = FastAPI(title=f"{settings.brand_name} API")

configure_logging()
register_error_handlers(app)


def _include_api_router(router, dependencies=None):
    app.include_router(router, dependencies=dependencies)
    app.include_router(router, prefix="/api/v1", dependencies=dependencies)


_include_api_router(departments_router)
_include_api_router(categories_router)
_include_api_router(files_router)
_include_api_router(file_requests_router)


@app.get("/health")
def health_check():
    return {"status": "ok"}
