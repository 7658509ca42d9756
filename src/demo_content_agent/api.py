"""FastAPI control surface for the generation operations."""

from __future__ import annotations

import hmac
import logging
from typing import Annotated, Any, Dict

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import ProviderCredentials, api_token
from .content_store import ContentStore
from .llm.types import ErrorKind, GenerationError
from .orchestrator import ContentGenerator
from .schemas import (
    ErrorResponse,
    PostRequest,
    PostResponse,
    TaxonomiesRequest,
    TaxonomiesResponse,
    TitlesRequest,
    TitlesResponse,
)

logger = logging.getLogger(__name__)

security_scheme = HTTPBearer(auto_error=False)

STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.VALIDATION_FAILURE: 400,
    ErrorKind.UNKNOWN_MODEL: 400,
    ErrorKind.MISSING_CREDENTIAL: 400,
    ErrorKind.MISSING_MODEL_CONFIG: 400,
    ErrorKind.VENDOR_REJECTED: 502,
    ErrorKind.EMPTY_OUTPUT: 502,
    ErrorKind.MALFORMED_UPSTREAM_JSON: 502,
    ErrorKind.TRANSPORT_FAILURE: 502,
    ErrorKind.DOWNLOAD_FAILURE: 502,
    ErrorKind.POLL_TIMEOUT: 504,
    ErrorKind.PERSISTENCE_FAILURE: 500,
}


def status_for(kind: ErrorKind) -> int:
    return STATUS_BY_KIND.get(kind, 500)


def create_app(
    config: Dict[str, Any],
    credentials: ProviderCredentials,
    store: ContentStore,
    generator: ContentGenerator | None = None,
    token: str | None = None,
) -> FastAPI:
    """Builds the app; the bearer token defaults to the env var named in settings."""
    generator = generator or ContentGenerator(config, credentials, store)
    expected_token = api_token(config) if token is None else token

    app = FastAPI(title="Demo Content Agent", version="0.1.0")

    def require_author(
        request: Request,
        creds: Annotated[HTTPAuthorizationCredentials | None, Depends(security_scheme)],
    ) -> None:
        supplied = creds.credentials if creds else ""
        if not expected_token or not supplied or not hmac.compare_digest(supplied.encode(), expected_token.encode()):
            logger.warning("Rejected unauthenticated request to %s", request.url.path)
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authentication required",
                headers={"WWW-Authenticate": "Bearer"},
            )

    @app.exception_handler(GenerationError)
    async def generation_error_handler(request: Request, exc: GenerationError) -> JSONResponse:
        logger.warning("%s failed (%s): %s", request.url.path, exc.kind.value, exc.message)
        return JSONResponse(
            status_code=status_for(exc.kind),
            content=ErrorResponse(**exc.to_dict()).model_dump(),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(loc) for loc in first.get("loc", ()) if loc != "body")
        message = f"{field}: {first.get('msg', 'invalid value')}" if field else "Request validation failed"
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(code=ErrorKind.VALIDATION_FAILURE.value, message=message).model_dump(),
        )

    auth = [Depends(require_author)]

    @app.post("/titles", response_model=TitlesResponse, dependencies=auth)
    def titles(body: TitlesRequest) -> Dict[str, Any]:
        return generator.generate_titles(
            posts=body.posts,
            pages=body.pages,
            model=body.model,
            instructions=body.instructions,
            generate_images=body.generate_images,
        )

    @app.post("/post", response_model=PostResponse, response_model_exclude_none=True, dependencies=auth)
    def post(body: PostRequest) -> Dict[str, Any]:
        return generator.generate_item(
            title=body.title,
            post_type=body.post_type,
            model=body.model,
            instructions=body.instructions,
            generate_image=body.generate_image,
            image_model=body.image_model,
            categories=body.categories,
            tags=body.tags,
            illustration_description=body.illustration_description,
        )

    @app.post("/taxonomies", response_model=TaxonomiesResponse, dependencies=auth)
    def taxonomies(body: TaxonomiesRequest) -> Dict[str, Any]:
        return generator.generate_taxonomies(
            items=[item.model_dump() for item in body.items],
            model=body.model,
            categories=body.categories,
            tags=body.tags,
            instructions=body.instructions,
        )

    return app
