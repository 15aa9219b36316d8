"""UML Assistant API - PlantUML rendering with hosted code generator and examiner assistants."""

from .api import app, create_app
from .assistant import AssistantGateway, create_assistant_gateway
from .diagrams import DiagramLibrary
from .render import RenderClient

__version__ = "1.0.0"

__all__ = [
    "AssistantGateway",
    "DiagramLibrary",
    "RenderClient",
    "app",
    "create_app",
    "create_assistant_gateway",
]
