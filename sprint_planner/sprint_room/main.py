from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sprint_room.api.routes import router
from sprint_room.core.errors import RoomError, ValidationError, describe_errors
from sprint_room.core.logging import get_logger
from sprint_room.db.session import init_db

log = get_logger("api")

app = FastAPI(title="Sprint Planning Rooms API", version="0.1.0")

# the planning UI is served from another origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/v1")

@app.exception_handler(RoomError)
async def room_error_handler(request: Request, exc: RoomError):
    log.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.kind}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return await room_error_handler(request, ValidationError(f"Invalid request: {describe_errors(exc.errors())}"))

@app.on_event("startup")
async def on_startup():
    await init_db()
