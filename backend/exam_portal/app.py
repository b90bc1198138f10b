from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .routers import auth, test_routers, progress_routers, result_routers, code_routers
from contextlib import asynccontextmanager
from .db import create_db_and_tables
from .exceptions import PortalError
from .security import auth_backend, app_users
from .schemas.user_schema import UserCreate, UserRead, UserUpdate

from dotenv import load_dotenv
import logging
import os

load_dotenv()
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # run once when app starts
    await create_db_and_tables()
    yield

app = FastAPI(title="Exam Portal", lifespan=lifespan)


# NOTE: include the exact origins used by the frontend dev server (no trailing slash)
default_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()] or default_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,  # which sites can call this API
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, **exc.extra})


@app.get("/health", tags=["Health"])
async def health_check():
    return {"status": "healthy"}


# Admin account management
app.include_router(
    app_users.get_users_router(UserRead, UserUpdate),
    prefix="/users",
    tags=["users"],
)

app.include_router(test_routers.router, prefix="/api")
app.include_router(progress_routers.router, prefix="/api")
app.include_router(result_routers.router, prefix="/api")
app.include_router(code_routers.router, prefix="/api")

# Auth routers
app.include_router(app_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"])
app.include_router(auth.router)
app.include_router(app_users.get_register_router(UserRead, UserCreate), prefix="/auth", tags=["auth"])
