"""Type definitions for the UML API."""

from typing_extensions import NotRequired, TypedDict

USER_COLLECTION = "User"
UML_COLLECTION = "UML"


class UserDocument(TypedDict):
    """Stored user: the ids of the diagrams they own."""

    savedUML: list[str]


class DiagramDocument(TypedDict):
    """Stored UML diagram."""

    content: str
    privacy: str
    name: str
    description: str
    timestamp: int
    diagram: str
    uml_id: NotRequired[str]

