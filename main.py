from shared.utils import load_env

load_env()

from contextlib import asynccontextmanager

from fastapi import FastAPI

from apps.pacewise.api.main import app as pacewise_app
from apps.pacewise.api.v1.helpers.config import APP_NAME, validate_app_config
from apps.relay.api.main import app as relay_app
from shared.exception_handlers import register_exception_handlers
from shared.logger import log_run_start, log_run_end
from shared.middleware import (
    settings_validation_middleware,
    timing_middleware,
    request_response_logger_middleware,
)


# Mounted apps do not get lifespan events of their own
@asynccontextmanager
async def lifespan(app: FastAPI):
    log_run_start()
    yield
    log_run_end()


app = FastAPI(lifespan=lifespan)
# Relay bodies go back to the browser exactly as Google sent them
app.state.passthrough_prefixes = {"/api/relay"}
app.state.settings_validator_registry = [
    (("/api/pacewise",), APP_NAME, validate_app_config),
]
app.middleware("http")(settings_validation_middleware)
app.middleware("http")(timing_middleware)
app.middleware("http")(request_response_logger_middleware)
register_exception_handlers(app, logger_name="Root")

# Mount app-specific APIs under distinct prefixes.
app.mount("/api/pacewise", pacewise_app)
app.mount("/api/relay", relay_app)


@app.get("/")
def root():
    return {"status": "ok", "apps": ["pacewise", "relay"]}


@app.get("/ping")
def ping():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
