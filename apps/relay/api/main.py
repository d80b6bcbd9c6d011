from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool

from shared.ggSheet import SheetsApiError, build_values_url, fetch_json
from shared.logger import get_logger

REQUIRED_PARAMS = ("spreadsheetId", "range", "apiKey")

app = FastAPI()
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

logger = get_logger("Sheets Relay")


# ============================================================
# SHEETS PROXY
# ============================================================


@app.options("/sheets-proxy")
def sheets_proxy_preflight():
    return Response(status_code=200)


@app.api_route("/sheets-proxy", methods=["POST", "PUT", "PATCH", "DELETE"])
def sheets_proxy_method_not_allowed():
    return JSONResponse(status_code=405, content={"error": "Method not allowed"})


@app.get("/sheets-proxy")
async def sheets_proxy(request: Request):
    """
    Forward a values range read to the Google Sheets API. Nothing is cached.

    Example request:
        GET /api/relay/sheets-proxy?spreadsheetId=1AbC...&range=Config!A:G&apiKey=AIza...

    Example response (upstream body, untouched):
        {
          "range": "Config!A1:G12",
          "majorDimension": "ROWS",
          "values": [["Client", "Budget", "Cycle"], ["Apollo", "3,000", "apollo"]]
        }
    """
    params = {key: request.query_params.get(key) for key in REQUIRED_PARAMS}
    if not all(params.values()):
        return JSONResponse(
            status_code=400,
            content={
                "error": "Missing required parameters: spreadsheetId, range, apiKey"
            },
        )

    url = build_values_url(
        params["spreadsheetId"],
        params["range"],
        params["apiKey"],
    )

    try:
        payload = await run_in_threadpool(fetch_json, url)
    except SheetsApiError as exc:
        logger.warning(
            "Sheets API error",
            extra={
                "extra_fields": {
                    "status": exc.status,
                    "range": params["range"],
                }
            },
        )
        return JSONResponse(
            status_code=exc.status,
            content={"error": str(exc), "details": exc.body},
        )
    except Exception as exc:
        logger.error(
            "Relay request failed",
            extra={
                "extra_fields": {
                    "range": params["range"],
                    "error": str(exc),
                }
            },
        )
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "details": str(exc)},
        )

    return JSONResponse(status_code=200, content=payload)
