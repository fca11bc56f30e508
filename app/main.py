from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.api.v1.api import api_router
from app.core.config import get_settings
from app.db.database import Base, engine
from app.models import principal_models, refresh_session_models, verification_code_models  # noqa: F401
from app.utils.logger import configure_logging, logger

settings = get_settings()
configure_logging(settings.LOG_LEVEL)

# Create all tables (migrations are the source of truth in deployed environments)
Base.metadata.create_all(bind=engine)

app = FastAPI(title="Neura School Auth")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SQLAlchemyError)
async def handle_transaction_failure(request: Request, exc: SQLAlchemyError):
    # the flow's transaction has already been rolled back
    logger.exception("Transaction failed on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


app.include_router(api_router, prefix="/api/v1")


@app.get("/")
def read_root():
    return {"message": "Welcome to the Neura school auth API!"}
