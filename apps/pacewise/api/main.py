from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shared.exception_handlers import register_exception_handlers
from shared.logger import get_logger
from shared.response import wrap_error
from shared.utils import get_today

from apps.pacewise.api.v1.helpers.errors import ConfigurationError
from apps.pacewise.api.v1.router import router as v1_router


app = FastAPI()
app.include_router(v1_router)
register_exception_handlers(app, logger_name="Pacewise API")

logger = get_logger("Pacewise API")


@app.exception_handler(ConfigurationError)
async def configuration_exception_handler(request: Request, exc: ConfigurationError):
    logger.error(
        "Configuration error",
        extra={
            "extra_fields": {
                "path": str(request.url.path),
                "error": str(exc),
            }
        },
    )
    return JSONResponse(
        status_code=502,
        content=wrap_error(
            {"error": "Configuration error", "detail": str(exc)},
            request,
        ),
    )


@app.get("/")
def root():
    return {"status": "Pacewise API", "today": get_today().isoformat()}
