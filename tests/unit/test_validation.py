"""Tests for ordered request validation."""

import pytest

from uml_api.exceptions import InvalidInputError, MissingInputError
from uml_api.validation import (
    is_int,
    is_missing,
    validate_examiner_query,
    validate_generator_query,
    validate_render_request,
    validate_scale_request,
)


class TestHelpers:
    @pytest.mark.parametrize("value", [None, "", 0, 0.0, False])
    def test_falsy_values_are_missing(self, value) -> None:
        assert is_missing(value)

    @pytest.mark.parametrize("value", ["x", 1, True, [], {}])
    def test_truthy_values_are_present(self, value) -> None:
        assert not is_missing(value)

    def test_is_int(self) -> None:
        assert is_int(5)
        assert is_int(100.0)
        assert not is_int(1.5)
        assert not is_int(True)
        assert not is_int("5")

    def test_integer_too_large_for_a_float_is_not_an_int(self) -> None:
        assert not is_int(10**400)
        assert not is_int(float("inf"))


class TestRenderRequest:
    def test_valid(self) -> None:
        request = validate_render_request({"uml_code": "@startuml\n@enduml", "response_type": "PNG"})
        assert request.response_type == "PNG"
        assert request.return_as_uri is False

    @pytest.mark.parametrize(
        "payload",
        [{}, {"uml_code": "x"}, {"response_type": "SVG"}, {"uml_code": "", "response_type": "SVG"}],
    )
    def test_missing_fields(self, payload) -> None:
        with pytest.raises(MissingInputError, match="Both uml_code and response_type"):
            validate_render_request(payload)

    def test_uml_code_type_checked_before_response_type(self) -> None:
        with pytest.raises(InvalidInputError, match="uml_code must be a string"):
            validate_render_request({"uml_code": 5, "response_type": "GIF"})

    def test_unsupported_response_type(self) -> None:
        with pytest.raises(InvalidInputError, match='response_type must be "SVG" or "PNG".'):
            validate_render_request({"uml_code": "x", "response_type": "svg"})

    def test_return_as_uri_must_be_bool(self) -> None:
        with pytest.raises(InvalidInputError, match=r"return_as_uri must be a boolean \(default false\)\."):
            validate_render_request({"uml_code": "x", "response_type": "SVG", "return_as_uri": "yes"})


class TestScaleRequest:
    def test_valid(self) -> None:
        request = validate_scale_request({"uml_code": "x", "scale_width": 100.0, "max": True})
        assert request.scale_width == 100
        assert request.scale_height is None
        assert request.max is True

    def test_missing_uml_code_reported_first(self) -> None:
        with pytest.raises(MissingInputError, match="uml_code is required"):
            validate_scale_request({})

    def test_needs_a_dimension(self) -> None:
        with pytest.raises(MissingInputError, match="At least one of scale_width and scale_height"):
            validate_scale_request({"uml_code": "x", "scale_width": 0})

    def test_missing_checks_run_before_type_checks(self) -> None:
        with pytest.raises(MissingInputError):
            validate_scale_request({"uml_code": 5})

    def test_non_int_width(self) -> None:
        with pytest.raises(InvalidInputError, match="scale_width must be an int if it is passed."):
            validate_scale_request({"uml_code": "x", "scale_width": 1.5})

    def test_null_height_with_width(self) -> None:
        """Test an explicit null is a type error, not an omitted field."""
        with pytest.raises(InvalidInputError, match="scale_height must be an int"):
            validate_scale_request({"uml_code": "x", "scale_width": 10, "scale_height": None})

    def test_max_must_be_bool(self) -> None:
        with pytest.raises(InvalidInputError, match="max must be a boolean"):
            validate_scale_request({"uml_code": "x", "scale_width": 10, "max": 1})


class TestGeneratorQuery:
    def test_defaults(self) -> None:
        query = validate_generator_query({"prompt": "draw a cat"}, default_timeout=60000)
        assert query.uml_code is None
        assert query.timeout == 60000

    def test_null_uml_code_means_no_code(self) -> None:
        query = validate_generator_query({"prompt": "p", "uml_code": None})
        assert query.uml_code is None

    def test_missing_prompt(self) -> None:
        with pytest.raises(MissingInputError, match="prompt is required as non-empty parameter."):
            validate_generator_query({"uml_code": "x"})

    def test_uml_code_type(self) -> None:
        with pytest.raises(InvalidInputError, match="uml_code must be a string if it is passed."):
            validate_generator_query({"prompt": "p", "uml_code": 3})

    def test_prompt_type(self) -> None:
        with pytest.raises(InvalidInputError, match="prompt must be a string."):
            validate_generator_query({"prompt": ["p"]})

    def test_timeout_type(self) -> None:
        with pytest.raises(InvalidInputError, match="timeout must be an int if it is passed."):
            validate_generator_query({"prompt": "p", "timeout": "5000"})


class TestExaminerQuery:
    def test_defaults(self) -> None:
        query = validate_examiner_query({"uml_code": "x", "query": "why?"})
        assert query.timeout == 10000

    def test_uml_code_missing_before_query(self) -> None:
        with pytest.raises(MissingInputError, match="uml_code is required"):
            validate_examiner_query({})

    def test_missing_query(self) -> None:
        with pytest.raises(MissingInputError, match="query is required as non-empty parameter."):
            validate_examiner_query({"uml_code": "x"})

    def test_query_type(self) -> None:
        with pytest.raises(InvalidInputError, match="query must be a string."):
            validate_examiner_query({"uml_code": "x", "query": 7})

    def test_custom_timeout(self) -> None:
        assert validate_examiner_query({"uml_code": "x", "query": "q", "timeout": 2000}).timeout == 2000
