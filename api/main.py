"""
FastAPI main application for the Books API.
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

import structlog
from fastapi import Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorClient
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.config import config
from api.database import BookStore, BookStoreError, StoreErrorKind
from api.models import (
    REQUIRED_FIELDS_MESSAGE, NO_VALID_FIELDS_MESSAGE,
    BookCreate, BookReplace, BookPatch, BookResponse,
    ErrorResponse, HealthResponse
)
from utilities.logger import bind_request_context, clear_request_context, setup_logging

logger = structlog.get_logger(__name__)

NOT_FOUND_MESSAGE = "Book not found"
ROUTE_NOT_FOUND_MESSAGE = "Not Found"
INTERNAL_ERROR_MESSAGE = "Internal server error"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging(config.log_level, config.log_format, config.log_file)
    logger.info("Starting Books API")

    client = AsyncIOMotorClient(
        config.mongodb_url,
        tz_aware=True,
        serverSelectionTimeoutMS=config.store_timeout_ms,
        socketTimeoutMS=config.store_timeout_ms,
    )
    try:
        await client.admin.command("ping")
        store = BookStore.from_client(client, config.mongodb_database, config.mongodb_collection)
        await store.ensure_indexes()
        logger.info("Database connection established", database=config.mongodb_database)
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        client.close()
        raise

    app.state.book_store = store

    yield

    logger.info("Shutting down Books API")
    client.close()


def get_book_store(request: Request) -> BookStore:
    """Dependency returning the store created at startup."""
    return request.app.state.book_store


def error_status_for(kind: StoreErrorKind) -> int:
    """Map a store failure kind to an HTTP status code."""
    if kind is StoreErrorKind.INVALID_ID:
        return status.HTTP_404_NOT_FOUND
    if kind is StoreErrorKind.NOT_FOUND:
        return status.HTTP_404_NOT_FOUND
    if kind is StoreErrorKind.UNAVAILABLE:
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    raise ValueError(f"Unhandled store error kind: {kind}")


def http_error_for(exc: BookStoreError) -> HTTPException:
    """Translate a store failure into the HTTPException returned to the client."""
    status_code = error_status_for(exc.kind)
    if status_code == status.HTTP_404_NOT_FOUND:
        return HTTPException(status_code=status_code, detail=NOT_FOUND_MESSAGE)
    logger.error("Book store unavailable", kind=exc.kind.value, book_id=exc.book_id)
    return HTTPException(status_code=status_code, detail=INTERNAL_ERROR_MESSAGE)


app = FastAPI(
    title=config.api_title,
    description=config.api_description,
    version=config.api_version,
    lifespan=lifespan,
    redirect_slashes=False
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log one line per request with status and duration."""
    if not config.log_requests:
        return await call_next(request)

    method, path = request.method, request.url.path
    bind_request_context(method=method, path=path)
    start = time.perf_counter()
    try:
        response = await call_next(request)
        logger.info(
            "Request handled",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return response
    except Exception:
        logger.exception(
            "Request failed",
            method=method,
            path=path,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        raise
    finally:
        clear_request_context()


@app.middleware("http")
async def strip_trailing_slash(request: Request, call_next):
    """Serve /books/ and /books/{id}/ like their slash-less routes, without a redirect."""
    path = request.scope["path"]
    if path != "/" and path.endswith("/"):
        request.scope["path"] = path.rstrip("/") or "/"
    return await call_next(request)


# Exception handlers
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTP errors as {"error": ...}; unknown routes and methods become 404."""
    if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED) \
            and not isinstance(exc, HTTPException):
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=ErrorResponse(error=ROUTE_NOT_FOUND_MESSAGE).model_dump(),
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=str(exc.detail)).model_dump(),
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report the first body validation problem as a 400."""
    errors = exc.errors()
    message = "Invalid request body"
    if errors:
        first = errors[0]
        if first.get("type") == "json_invalid":
            message = "Malformed JSON body"
        else:
            fields = [str(part) for part in first.get("loc", ()) if part != "body"]
            message = first.get("msg", message)
            if fields:
                message = f"{'.'.join(fields)}: {message}"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(error=message).model_dump(),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error("Unhandled exception", path=request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(error=INTERNAL_ERROR_MESSAGE).model_dump(),
    )


# Health check endpoint
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(store: BookStore = Depends(get_book_store)):
    """Health check endpoint."""
    try:
        health_info = await store.health_check()
        db_status = health_info.get("status", "unknown")

        return HealthResponse(
            status="healthy" if db_status == "healthy" else "degraded",
            timestamp=datetime.now(timezone.utc),
            version=config.api_version,
            database_status=db_status
        )
    except Exception as e:
        logger.error("Health check failed", error=str(e))
        return HealthResponse(
            status="unhealthy",
            timestamp=datetime.now(timezone.utc),
            version=config.api_version,
            database_status="unhealthy"
        )


# Books endpoints
@app.post("/books", response_model=BookResponse, status_code=status.HTTP_201_CREATED, tags=["Books"])
async def create_book(
    payload: Optional[BookCreate] = None,
    store: BookStore = Depends(get_book_store)
):
    """
    Create a book.

    - **title**, **author**: required
    - **year**, **summary**: optional
    """
    if payload is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=REQUIRED_FIELDS_MESSAGE)
    try:
        doc = await store.create(payload.to_document())
    except BookStoreError as e:
        raise http_error_for(e) from e
    return BookResponse.from_document(doc)


@app.get("/books", response_model=List[BookResponse], tags=["Books"])
async def list_books(store: BookStore = Depends(get_book_store)):
    """List every book, newest first."""
    try:
        docs = await store.list_all()
    except BookStoreError as e:
        raise http_error_for(e) from e
    return [BookResponse.from_document(doc) for doc in docs]


@app.get("/books/{book_id}", response_model=BookResponse, tags=["Books"])
async def get_book(book_id: str, store: BookStore = Depends(get_book_store)):
    """
    Get a single book by ID.

    A malformed ID is reported as not found.
    """
    try:
        doc = await store.get(book_id)
    except BookStoreError as e:
        raise http_error_for(e) from e
    return BookResponse.from_document(doc)


@app.put("/books/{book_id}", response_model=BookResponse, tags=["Books"])
async def replace_book(
    book_id: str,
    payload: Optional[BookReplace] = None,
    store: BookStore = Depends(get_book_store)
):
    """Replace a book; omitted optional fields are cleared."""
    if payload is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=REQUIRED_FIELDS_MESSAGE)
    try:
        doc = await store.replace(book_id, payload.to_document())
    except BookStoreError as e:
        raise http_error_for(e) from e
    return BookResponse.from_document(doc)


@app.patch("/books/{book_id}", response_model=BookResponse, tags=["Books"])
async def update_book(
    book_id: str,
    payload: Optional[BookPatch] = None,
    store: BookStore = Depends(get_book_store)
):
    """Update only the supplied fields of a book."""
    changes = payload.changes() if payload is not None else {}
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=NO_VALID_FIELDS_MESSAGE)
    try:
        doc = await store.update(book_id, changes)
    except BookStoreError as e:
        raise http_error_for(e) from e
    return BookResponse.from_document(doc)


@app.delete("/books/{book_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Books"])
async def delete_book(book_id: str, store: BookStore = Depends(get_book_store)):
    """Delete a book."""
    try:
        await store.delete(book_id)
    except BookStoreError as e:
        raise http_error_for(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower()
    )
