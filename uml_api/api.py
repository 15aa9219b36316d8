"""FastAPI application and route handlers."""

import sys
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Annotated, Any

from fastapi import Body, Depends, FastAPI, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from loguru import logger

from .assistant import AssistantGateway, create_assistant_gateway
from .config import Settings, get_settings, settings
from .diagrams import DiagramLibrary
from .exceptions import (
    ConfigurationError,
    DiagramNotFoundError,
    DiagramStoreError,
    MissingSourceCodeError,
    UMLAPIError,
    UserExistsError,
)
from .middleware import add_request_id
from .models import (
    DiagramIdRequest,
    GalleryFilter,
    GeneratorReply,
    NewDiagramRequest,
    UpdateDiagramRequest,
    UserDiagramRequest,
    UserRequest,
)
from .prompts import examiner_prompt, generator_prompt
from .render import MIME_TYPES, RenderClient, to_data_uri
from .storage import create_store
from .types import DiagramDocument
from .uml_text import insert_scale_directive, split_assistant_reply
from .validation import (
    validate_examiner_query,
    validate_generator_query,
    validate_render_request,
    validate_scale_request,
)

API_VERSION = "1.0.0"

_library: DiagramLibrary | None = None
_render_client: RenderClient | None = None
_gateway: AssistantGateway | None = None

JSONObject = Annotated[dict[str, Any], Body()]


def configure_logging() -> None:
    """Configure logging - should be called at startup, not import time."""
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=settings.log_level,
        serialize=False,
    )
    if settings.log_file:
        logger.add(
            settings.log_file,
            rotation="10 MB",
            retention="7 days",
            compression="zip",
            level=settings.log_level,
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    global _library, _render_client, _gateway
    configure_logging()

    store = create_store()
    await store.startup()

    _render_client = RenderClient(settings.plantuml_server_url, timeout=settings.render_timeout)
    await _render_client.startup()

    try:
        _gateway = create_assistant_gateway()
    except ConfigurationError as e:
        logger.warning(f"Assistant endpoints disabled: {e}")
        _gateway = None

    _library = DiagramLibrary(store, transaction_attempts=settings.transaction_attempts)

    logger.info("Application started successfully")

    yield

    await _render_client.shutdown()
    await store.shutdown()
    _library = None
    _render_client = None
    _gateway = None
    logger.info("Application shutdown complete")


app = FastAPI(
    title="UML Assistant API",
    version=API_VERSION,
    description="Render PlantUML diagrams and generate or review them with hosted assistants",
    lifespan=lifespan,
)

app.middleware("http")(add_request_id)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Report the first body problem in the ``{"type", "message"}`` error shape."""
    error = exc.errors()[0] if exc.errors() else {"type": "", "loc": (), "msg": "Invalid input"}
    loc = [str(part) for part in error.get("loc", ()) if part != "body"]
    field = ".".join(loc)

    match error["type"]:
        case "missing" | "string_too_short" if field:
            error_type, message = "MissingInput", f"{field} is required as non-empty parameter."
        case "missing":
            error_type, message = "MissingInput", "A JSON request body is required."
        case "json_invalid":
            error_type, message = "InvalidInput", "Invalid JSON format."
        case _ if not field:
            error_type, message = "InvalidInput", "Request body must be a JSON object."
        case _:
            error_type, message = "InvalidInput", f"{field}: {error.get('msg', 'invalid value')}"

    logger.info(f"Rejected request body: {message}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"type": error_type, "message": message},
    )


app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]


@app.exception_handler(UMLAPIError)
async def uml_api_exception_handler(request: Request, exc: UMLAPIError) -> JSONResponse:
    """Handle domain-specific errors."""
    if exc.status_code >= 500:
        logger.error(f"{exc.error_type}: {exc.message}")
    else:
        logger.info(f"{exc.error_type}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def get_library() -> DiagramLibrary:
    """Get diagram library singleton."""
    if _library is None:
        raise RuntimeError("Service not initialized")
    return _library


def get_render_client() -> RenderClient:
    """Get render client singleton."""
    if _render_client is None:
        raise RuntimeError("Service not initialized")
    return _render_client


def get_gateway() -> AssistantGateway | None:
    """Get the assistant gateway, or None when no credentials are configured."""
    return _gateway


def require_assistant(gateway: AssistantGateway | None, assistant_id: str | None) -> AssistantGateway:
    if gateway is None:
        raise ConfigurationError("The assistant service is not configured.")
    if not assistant_id:
        raise ConfigurationError("No assistant id is configured for this endpoint.")
    return gateway


# Core endpoints


@app.post("/fetch-plant-uml", tags=["uml"])
async def fetch_plant_uml_endpoint(
    payload: JSONObject,
    render: Annotated[RenderClient, Depends(get_render_client)],
) -> Response:
    """Render PlantUML source as SVG or PNG, optionally as a data URI."""
    request = validate_render_request(payload)
    content = await render.fetch(request.uml_code, request.response_type)

    if request.return_as_uri:
        return PlainTextResponse(to_data_uri(content, request.response_type))
    return Response(content=content, media_type=MIME_TYPES[request.response_type])


@app.post("/add-scale-to-uml", tags=["uml"])
async def add_scale_endpoint(payload: JSONObject) -> PlainTextResponse:
    """Insert a scale command before ``@enduml``."""
    request = validate_scale_request(payload)
    return PlainTextResponse(
        insert_scale_directive(
            request.uml_code,
            scale_width=request.scale_width,
            scale_height=request.scale_height,
            max=request.max,
        )
    )


@app.post("/query-assistant-code-generator", tags=["assistant"])
async def code_generator_endpoint(
    payload: JSONObject,
    gateway: Annotated[AssistantGateway | None, Depends(get_gateway)],
    config: Annotated[Settings, Depends(get_settings)],
) -> GeneratorReply:
    """Ask the code generator assistant to write or edit PlantUML."""
    query = validate_generator_query(payload, default_timeout=config.generator_timeout_ms)
    assistant = require_assistant(gateway, config.code_generator_assistant_id)

    reply = await assistant.ask(
        config.code_generator_assistant_id,  # type: ignore[arg-type]
        generator_prompt(query.prompt, query.uml_code),
        query.timeout,
    )

    segments = split_assistant_reply(reply)
    if not segments.uml_block:
        raise MissingSourceCodeError()
    return GeneratorReply(
        pre_code=segments.pre_text,
        uml_code=segments.uml_block,
        post_code=segments.post_text,
    )


@app.post("/query-assistant-code-examiner", tags=["assistant"])
async def code_examiner_endpoint(
    payload: JSONObject,
    gateway: Annotated[AssistantGateway | None, Depends(get_gateway)],
    config: Annotated[Settings, Depends(get_settings)],
) -> PlainTextResponse:
    """Ask the code examiner assistant a question about PlantUML source."""
    query = validate_examiner_query(payload, default_timeout=config.examiner_timeout_ms)
    assistant = require_assistant(gateway, config.code_examiner_assistant_id)

    reply = await assistant.ask(
        config.code_examiner_assistant_id,  # type: ignore[arg-type]
        examiner_prompt(query.uml_code, query.query),
        query.timeout,
    )
    return PlainTextResponse(reply)


# Diagram library endpoints; failures keep the plain-text bodies clients expect


def store_failure(status_code: int, message: str, error: Exception) -> PlainTextResponse:
    logger.warning(f"{message} ({error})")
    return PlainTextResponse(message, status_code=status_code)


@app.post("/google-signup", tags=["users"], response_model=None)
async def google_signup_endpoint(
    body: UserRequest,
    library: Annotated[DiagramLibrary, Depends(get_library)],
) -> dict[str, Any] | PlainTextResponse:
    """Register a user who signed in with Google."""
    try:
        await library.register_user(body.uid)
    except UserExistsError as e:
        return store_failure(400, "User already exists.", e)
    except DiagramStoreError as e:
        return store_failure(400, e.message, e)
    return {"uid": body.uid, "email": body.email}


@app.post("/google-login", tags=["users"])
async def google_login_endpoint(
    body: UserRequest,
    library: Annotated[DiagramLibrary, Depends(get_library)],
) -> PlainTextResponse:
    """Check that a Google user is registered."""
    try:
        exists = await library.user_exists(body.uid)
    except DiagramStoreError as e:
        return store_failure(400, e.message, e)
    if not exists:
        return PlainTextResponse("User does not exist", status_code=400)
    return PlainTextResponse("User exists")


@app.post("/get-user-uml", tags=["diagrams"], response_model=None)
async def get_user_uml_endpoint(
    body: UserRequest,
    library: Annotated[DiagramLibrary, Depends(get_library)],
) -> list[DiagramDocument] | PlainTextResponse:
    """List a user's diagrams, newest first."""
    try:
        return await library.get_user_diagrams(body.uid)
    except DiagramStoreError as e:
        return store_failure(503, "Could not get user's uml diagrams.", e)


@app.post("/get-uml", tags=["diagrams"], response_model=None)
async def get_uml_endpoint(
    body: DiagramIdRequest,
    library: Annotated[DiagramLibrary, Depends(get_library)],
) -> DiagramDocument | PlainTextResponse:
    """Fetch one diagram."""
    try:
        return await library.get_diagram(body.uml_id)
    except DiagramNotFoundError as e:
        return store_failure(404, "UML diagram not found.", e)
    except DiagramStoreError as e:
        return store_failure(503, "Could not get uml.", e)


@app.post("/get-all-uml", tags=["diagrams"], response_model=None)
async def get_all_uml_endpoint(
    body: GalleryFilter,
    library: Annotated[DiagramLibrary, Depends(get_library)],
) -> list[DiagramDocument] | PlainTextResponse:
    """Search the public gallery."""
    try:
        return await library.search_gallery(body)
    except DiagramStoreError as e:
        return store_failure(400, e.message, e)


@app.post("/create-new-uml", tags=["diagrams"])
async def create_uml_endpoint(
    body: NewDiagramRequest,
    library: Annotated[DiagramLibrary, Depends(get_library)],
) -> PlainTextResponse:
    """Save a new diagram and return its id."""
    try:
        uml_id = await library.create_diagram(body.uid, body)
    except DiagramStoreError as e:
        return store_failure(503, "Could not create new uml, changes to db were not saved.", e)
    return PlainTextResponse(uml_id)


@app.post("/copy-uml", tags=["diagrams"])
async def copy_uml_endpoint(
    body: UserDiagramRequest,
    library: Annotated[DiagramLibrary, Depends(get_library)],
) -> PlainTextResponse:
    """Copy a diagram into a user's library."""
    try:
        await library.copy_diagram(body.uid, body.uml_id)
    except DiagramStoreError as e:
        return store_failure(503, "Could not copy uml, changes to db were not saved.", e)
    return PlainTextResponse("Successfully copied uml doc")


@app.post("/update-uml", tags=["diagrams"])
async def update_uml_endpoint(
    body: UpdateDiagramRequest,
    library: Annotated[DiagramLibrary, Depends(get_library)],
) -> PlainTextResponse:
    """Replace a diagram's fields."""
    try:
        await library.update_diagram(body.uml_id, body)
    except DiagramStoreError as e:
        return store_failure(503, "Could not update uml, changes to db were not saved.", e)
    return PlainTextResponse("Successfully updated uml doc")


@app.post("/delete-uml", tags=["diagrams"])
async def delete_uml_endpoint(
    body: UserDiagramRequest,
    library: Annotated[DiagramLibrary, Depends(get_library)],
) -> PlainTextResponse:
    """Delete a diagram from a user's library."""
    try:
        await library.delete_diagram(body.uid, body.uml_id)
    except DiagramStoreError as e:
        return store_failure(503, "Could not delete uml, changes to db were not saved.", e)
    return PlainTextResponse("Successfully deleted uml doc")


@app.post("/delete-google-account", tags=["users"])
async def delete_account_endpoint(
    body: UserRequest,
    library: Annotated[DiagramLibrary, Depends(get_library)],
) -> PlainTextResponse:
    """Delete a user together with their diagrams."""
    try:
        await library.delete_account(body.uid)
    except DiagramStoreError as e:
        return store_failure(400, e.message, e)
    return PlainTextResponse("Successfully deleted account")


@app.get("/health", tags=["health"])
async def health_endpoint(
    response: Response,
    library: Annotated[DiagramLibrary, Depends(get_library)],
    gateway: Annotated[AssistantGateway | None, Depends(get_gateway)],
    detailed: bool = Query(False, description="Include detailed environment information"),
) -> dict[str, Any]:
    """Check health status of all components.

    Args:
        detailed: If True, includes version and environment information.

    """
    services = {
        "store": await library.health_check(),
        "assistant": gateway is not None and await gateway.health_check(),
    }
    all_healthy = all(services.values())

    if not all_healthy:
        response.status_code = 503

    result: dict[str, Any] = {
        "status": "healthy" if all_healthy else "unhealthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "services": services,
    }

    if detailed:
        result["version"] = API_VERSION
        result["environment"] = {
            "environment": settings.environment,
            "plantuml_server_url": settings.plantuml_server_url,
        }

    return result


@app.get("/", tags=["health"])
async def root_endpoint() -> dict[str, str]:
    """API information endpoint."""
    return {
        "name": "UML Assistant API",
        "version": API_VERSION,
        "status": "running",
        "docs": "/docs",
    }


app.openapi_tags = [
    {"name": "uml", "description": "PlantUML rendering and editing"},
    {"name": "assistant", "description": "Code generator and examiner assistants"},
    {"name": "users", "description": "User registration"},
    {"name": "diagrams", "description": "Saved diagrams and the public gallery"},
    {"name": "health", "description": "Health checks"},
]


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    return app
