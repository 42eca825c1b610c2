from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import uuid
import time
from ledgerflow import __version__
from ledgerflow.api.endpoints import documents, bookkeeping, rules
from ledgerflow.common.config import Settings
from ledgerflow.common.logging_config import setup_logging, log_context, get_logger

# Initialize Structured Logging
settings = Settings.load()
setup_logging(settings.log_level, settings.log_file)
logger = get_logger("api.main")

app = FastAPI(title="Ledgerflow API", version=__version__)

# Middleware for Request ID and Logging
@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    with log_context(request_id=request_id):
        return await _handle(request, call_next, request_id)


async def _handle(request: Request, call_next, request_id: str):
    start_time = time.time()

    logger.info(
        f"Request started: {request.method} {request.url.path}",
        extra_fields={
            "method": request.method,
            "path": request.url.path,
            "client": request.client.host if request.client else "unknown"
        }
    )

    try:
        response = await call_next(request)
        process_time = time.time() - start_time

        logger.info(
            f"Request completed: {request.method} {request.url.path} - Status: {response.status_code}",
            extra_fields={
                "status_code": response.status_code,
                "process_time_ms": round(process_time * 1000, 2)
            }
        )

        response.headers["X-Request-ID"] = request_id
        return response
    except Exception as e:
        process_time = time.time() - start_time
        logger.error(
            f"Request failed: {str(e)}",
            extra_fields={
                "error": str(e),
                "process_time_ms": round(process_time * 1000, 2)
            },
            exc_info=True
        )
        raise

origins = [
    "http://localhost:5173",
    "http://localhost:3000",
    "http://127.0.0.1:5173"
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(documents.router, prefix="/api/documents", tags=["Documents"])
app.include_router(bookkeeping.router, prefix="/api/bookkeeping", tags=["Bookkeeping"])
app.include_router(rules.router, prefix="/api/rules", tags=["Rules"])

@app.get("/api/health")
def health_check():
    return {"status": "ok", "app": "Ledgerflow", "version": __version__}

def main():
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8010)

if __name__ == "__main__":
    main()
