"""PlantUML text utilities."""

import re
from dataclasses import dataclass

from .exceptions import MissingEndumlError

UML_BLOCK_PATTERN = re.compile(r"(@startuml[\s\S]*?@enduml)")

ENDUML = "@enduml"


@dataclass(frozen=True)
class ReplySegments:
    """An assistant reply split around its first PlantUML block."""

    pre_text: str
    uml_block: str
    post_text: str


def build_scale_command(
    scale_width: int | None = None,
    scale_height: int | None = None,
    max: bool = False,
) -> str:
    """Build a PlantUML ``scale`` command.

    Both dimensions give ``WxH``, otherwise the single truthy dimension is used.
    ``max`` only allows the diagram to shrink to fit.
    """
    command = "scale max " if max else "scale "

    if scale_width and scale_height:
        return command + f"{scale_width}x{scale_height}"
    if scale_width:
        return command + f"{scale_width} width"
    return command + f"{scale_height} height"


def insert_scale_directive(
    uml_source: str,
    scale_width: int | None = None,
    scale_height: int | None = None,
    max: bool = False,
) -> str:
    """Insert a scale command on the line before the first ``@enduml``.

    Raises:
        MissingEndumlError: If no line equals ``@enduml`` once stripped.
    """
    command = build_scale_command(scale_width, scale_height, max)
    lines = uml_source.split("\n")

    # Content after @enduml is left alone; only the first terminator counts.
    for index, line in enumerate(lines):
        if line.strip() == ENDUML:
            lines.insert(index, command)
            return "\n".join(lines)

    raise MissingEndumlError()


def split_assistant_reply(raw_reply: str) -> ReplySegments:
    """Split a reply into the text before, the first UML block, and the text after.

    When the reply holds no complete block, ``uml_block`` is empty and callers decide
    whether that is an error.
    """
    pre_text, *rest = UML_BLOCK_PATTERN.split(raw_reply)
    if not rest:
        return ReplySegments(pre_text=pre_text.strip(), uml_block="", post_text="")

    uml_block, *post = rest
    return ReplySegments(
        pre_text=pre_text.strip(),
        uml_block=uml_block.strip(),
        post_text="".join(post).strip(),
    )


def detect_diagram_kinds(content: str) -> set[str]:
    """Guess which diagram kinds a PlantUML source describes.

    Heuristic keyword matching, used to filter the public gallery.
    """
    kinds = set()
    if "class" in content:
        kinds.add("class")
    if "[*]" in content or "(*)" in content:
        kinds.add("state")
    if "usecase" in content:
        kinds.add("usecase")
    if "start\n" in content or ":Start;" in content:
        kinds.add("activity")
    if "participant" in content:
        kinds.add("sequence")
    return kinds
