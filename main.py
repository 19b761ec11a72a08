from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from app.core.config import settings
from app.core.logging import configure_logging
from app.core.exceptions import AttemptError
from app.endpoints import attempt, exam, assignment
from app.middleware.exceptions import attempt_exception_handler, global_exception_handler, validation_exception_handler
from app.middleware.logging import RequestLoggingMiddleware
from app.core.scheduler import start_scheduler, stop_scheduler

configure_logging()

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(RequestLoggingMiddleware)

app.add_exception_handler(AttemptError, attempt_exception_handler)
app.add_exception_handler(StarletteHTTPException, global_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)

app.include_router(exam.router, prefix="/exams", tags=["Exams"])
app.include_router(assignment.router, prefix="/assignments", tags=["Assignments"])
app.include_router(attempt.router, prefix="/attempts", tags=["Attempts"])

@app.get("/health", tags=["Utility"])
async def health():
    return {"status": "ok", "version": settings.VERSION}

@app.on_event("startup")
async def startup_event():
    start_scheduler()

@app.on_event("shutdown")
async def shutdown_event():
    stop_scheduler()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
