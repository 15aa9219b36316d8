"""Tests for PlantUML text utilities."""

import pytest

from uml_api.exceptions import MissingEndumlError
from uml_api.uml_text import (
    build_scale_command,
    detect_diagram_kinds,
    insert_scale_directive,
    split_assistant_reply,
)


class TestScaleCommand:
    def test_width_and_height(self) -> None:
        assert build_scale_command(100, 200) == "scale 100x200"

    def test_width_only(self) -> None:
        assert build_scale_command(scale_width=100) == "scale 100 width"

    def test_height_only(self) -> None:
        assert build_scale_command(scale_height=200) == "scale 200 height"

    def test_max_prefix(self) -> None:
        assert build_scale_command(100, 200, max=True) == "scale max 100x200"

    def test_zero_width_falls_back_to_height(self) -> None:
        assert build_scale_command(0, 50) == "scale 50 height"


class TestInsertScaleDirective:
    """Scale insertion before @enduml."""

    def test_inserts_before_enduml(self) -> None:
        """Test the command lands on its own line right before @enduml."""
        result = insert_scale_directive("@startuml\nA -> B\n@enduml", scale_width=100, scale_height=200)
        assert result == "@startuml\nA -> B\nscale 100x200\n@enduml"

    def test_max_with_height(self) -> None:
        result = insert_scale_directive("@startuml\nA -> B\n@enduml", scale_height=300, max=True)
        assert result == "@startuml\nA -> B\nscale max 300 height\n@enduml"

    def test_enduml_with_surrounding_whitespace(self) -> None:
        """Test the terminator matches after trimming and keeps its indentation."""
        result = insert_scale_directive("@startuml\nA -> B\n   @enduml  \n", scale_width=10)
        assert result == "@startuml\nA -> B\nscale 10 width\n   @enduml  \n"

    def test_only_first_enduml_is_used(self) -> None:
        source = "@startuml\nA\n@enduml\n@startuml\nB\n@enduml"
        result = insert_scale_directive(source, scale_width=10)
        assert result == "@startuml\nA\nscale 10 width\n@enduml\n@startuml\nB\n@enduml"

    def test_inline_enduml_does_not_count(self) -> None:
        with pytest.raises(MissingEndumlError):
            insert_scale_directive("@startuml\nA -> B @enduml", scale_width=10)

    def test_missing_enduml_raises(self) -> None:
        """Test insertion fails instead of appending."""
        with pytest.raises(MissingEndumlError, match="@enduml must be present"):
            insert_scale_directive("@startuml\nA -> B", scale_width=10)

    def test_applying_twice_adds_two_lines(self) -> None:
        once = insert_scale_directive("@startuml\n@enduml", scale_width=10)
        twice = insert_scale_directive(once, scale_width=20)
        assert twice == "@startuml\nscale 10 width\nscale 20 width\n@enduml"


class TestSplitAssistantReply:
    """Splitting replies around the first UML block."""

    def test_splits_around_block(self) -> None:
        reply = "Here you go:\n@startuml\nA -> B\n@enduml\nHope that helps."
        segments = split_assistant_reply(reply)

        assert segments.pre_text == "Here you go:"
        assert segments.uml_block == "@startuml\nA -> B\n@enduml"
        assert segments.post_text == "Hope that helps."

    def test_no_block(self) -> None:
        """Test a reply without a block yields an empty uml_block, not an error."""
        segments = split_assistant_reply("  I cannot draw that.  ")

        assert segments.pre_text == "I cannot draw that."
        assert segments.uml_block == ""
        assert segments.post_text == ""

    def test_unterminated_block_is_not_a_block(self) -> None:
        segments = split_assistant_reply("Sure\n@startuml\nA -> B")
        assert segments.uml_block == ""

    def test_later_blocks_stay_in_post_text(self) -> None:
        reply = "@startuml\nA\n@enduml\nand\n@startuml\nB\n@enduml"
        segments = split_assistant_reply(reply)

        assert segments.pre_text == ""
        assert segments.uml_block == "@startuml\nA\n@enduml"
        assert segments.post_text == "and\n@startuml\nB\n@enduml"

    def test_match_is_non_greedy(self) -> None:
        segments = split_assistant_reply("@startuml\nA\n@enduml @enduml")
        assert segments.uml_block == "@startuml\nA\n@enduml"
        assert segments.post_text == "@enduml"


class TestDetectDiagramKinds:
    @pytest.mark.parametrize(
        ("content", "kind"),
        [
            ("class Car", "class"),
            ("[*] --> Idle", "state"),
            ("(*) --> Go", "state"),
            ("usecase Login", "usecase"),
            ("start\n:work;", "activity"),
            (":Start;", "activity"),
            ("participant Alice", "sequence"),
        ],
    )
    def test_detects_kind(self, content: str, kind: str) -> None:
        assert kind in detect_diagram_kinds(content)

    def test_plain_text_has_no_kind(self) -> None:
        assert detect_diagram_kinds("A -> B") == set()
