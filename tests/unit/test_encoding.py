"""Tests for PlantUML URL encoding."""

from uml_api.encoding import PLANTUML_ALPHABET, decode_plantuml, encode_plantuml


class TestEncodePlantUML:
    def test_uses_plantuml_alphabet(self) -> None:
        encoded = encode_plantuml("@startuml\nAlice -> Bob: hello\n@enduml")
        assert encoded
        assert set(encoded) <= set(PLANTUML_ALPHABET)

    def test_output_is_whole_groups(self) -> None:
        """Test trailing bytes are padded to a full four-character group."""
        assert len(encode_plantuml("@startuml\nA -> B\n@enduml")) % 4 == 0

    def test_decodes_back_to_source(self) -> None:
        source = "@startuml\nclass Café\nCafé --> Bar : ünïcode\n@enduml"
        assert decode_plantuml(encode_plantuml(source)) == source

