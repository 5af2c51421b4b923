import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.loader import load_config
from senior_core.config import Config
from senior_core.datastore.exceptions import DatastoreError, DocumentNotFoundError
from senior_core.emergency.sms import SmsDeliveryError
from senior_core.services import Services, get_services, set_services
from senior_core.utils import setup_logging

from admin_routes import admin_router
from sms_routes import sms_router
from user_routes import user_router

# Load environment variables
load_dotenv()

logger = logging.getLogger("senior_core.app")

CONFIG_PATH = os.getenv("SENIORHUB_CONFIG", "config.yaml")


def _file_config() -> dict:
    try:
        return load_config(CONFIG_PATH)
    except FileNotFoundError:
        logger.warning(f"[lifespan] {CONFIG_PATH} not found, using environment settings only")
        return {}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build services and start the reminder scheduler on startup."""
    file_config = _file_config()
    config = Config.from_env().with_database(file_config.get("database"))
    setup_logging(config.log_level, config.log_file or None)

    try:
        services = get_services()
    except RuntimeError:
        services = Services.from_config(config, file_config.get("reminders"))
        set_services(services)

    services.scheduler.start()
    restored = services.scheduler.restore()
    logger.info(f"[lifespan] SeniorHub API started, {restored} reminder(s) restored")

    yield

    services.scheduler.shutdown()
    logger.info("[lifespan] SeniorHub API shutting down...")


# Initialize FastAPI app
app = FastAPI(
    title="SeniorHub API",
    description="Backend for the SeniorHub senior citizen assistance app",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=Config().allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DocumentNotFoundError)
async def not_found_handler(request: Request, exc: DocumentNotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"success": False, "error": exc.message})


@app.exception_handler(ValueError)
async def bad_request_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"success": False, "error": str(exc)})


@app.exception_handler(PermissionError)
async def forbidden_handler(request: Request, exc: PermissionError):
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"success": False, "error": str(exc)})


@app.exception_handler(SmsDeliveryError)
async def sms_error_handler(request: Request, exc: SmsDeliveryError):
    logger.error(f"[sms_error_handler] {exc.message}")
    return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content={"success": False, "error": exc.message})


@app.exception_handler(DatastoreError)
async def datastore_error_handler(request: Request, exc: DatastoreError):
    logger.error(f"[datastore_error_handler] {exc.message}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"success": False, "error": exc.message}
    )


app.include_router(sms_router)
app.include_router(user_router)
app.include_router(admin_router)


if __name__ == "__main__":
    import uvicorn

    runtime = Config()
    uvicorn.run("app:app", host=runtime.api_host, port=runtime.api_port, reload=True, log_level="info")
