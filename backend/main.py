import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
from database import Base, engine
from errors import ValidationFailed, field_messages
from routers.assistant import assistant_router
from routers.auth import auth_router
from routers.comments import comments_router
from routers.products import products_router
from routers.saved_products import saved_products_router

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# tabulky se zakládají při startu, migrace zatím neřešíme
Base.metadata.create_all(bind=engine)

app = FastAPI(title="DoorMate Catalog API")

# CORS pro mobilní a webového klienta
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Manuály a obrázky (backend/public)
app.mount("/manuals", StaticFiles(directory=str(config.MANUALS_DIR)), name="manuals")
app.mount("/images", StaticFiles(directory=str(config.IMAGES_DIR)), name="images")


# ======================
#   CHYBY -> {"message": ...}
# ======================

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"message": "Validation failed", "errors": field_messages(exc.errors())},
    )


@app.exception_handler(ValidationFailed)
async def validation_failed_handler(request: Request, exc: ValidationFailed):
    return JSONResponse(
        status_code=400,
        content={"message": exc.message, "errors": exc.errors},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Something went wrong!"})


@app.get("/health")
def health():
    return {"ok": True}


@app.get("/test")
def test():
    return {"message": "Server is running"}


app.include_router(products_router)
app.include_router(comments_router)
app.include_router(auth_router)
app.include_router(saved_products_router)
app.include_router(assistant_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", 8000)))
