"""
Tests for ParameterNormalizer — canonical JSON and the default radius rule.
"""

import json

import pytest

from homefinder.services.parameter_normalizer import ParameterNormalizer


@pytest.fixture
def normalizer() -> ParameterNormalizer:
    return ParameterNormalizer()


class TestDefaultDistance:
    def test_adds_default_distance_when_coordinates_present(self, normalizer):
        result = json.loads(normalizer.normalize('{"latitude": 28.5, "longitude": -81.3}'))
        assert result == {"latitude": 28.5, "longitude": -81.3, "distance": "5000m"}

    def test_keeps_explicit_distance(self, normalizer):
        result = json.loads(
            normalizer.normalize('{"latitude": 28.5, "longitude": -81.3, "distance": "50mi"}')
        )
        assert result["distance"] == "50mi"

    def test_explicit_null_distance_is_kept(self, normalizer):
        result = json.loads(
            normalizer.normalize('{"latitude": 28.5, "longitude": -81.3, "distance": null}')
        )
        # JSON null is kept as its raw text, never replaced by the default
        assert result["distance"] == "null"

    def test_explicit_blank_distance_is_kept(self, normalizer):
        result = json.loads(
            normalizer.normalize('{"latitude": 28.5, "longitude": -81.3, "distance": "  "}')
        )
        assert result["distance"] == "  "

    def test_high_precision_coordinates_keep_every_digit(self, normalizer):
        result = normalizer.normalize(
            '{"latitude": 28.53841234567891234, "longitude": -81.37923456789012345}'
        )
        assert '"latitude":28.53841234567891234' in result
        assert '"longitude":-81.37923456789012345' in result

    def test_no_distance_without_both_coordinates(self, normalizer):
        result = json.loads(normalizer.normalize('{"latitude": 28.5, "query": "homes"}'))
        assert "distance" not in result

    def test_custom_default_distance(self):
        normalizer = ParameterNormalizer(default_distance="10km")
        result = json.loads(normalizer.normalize('{"latitude": 1, "longitude": 2}'))
        assert result["distance"] == "10km"


class TestCanonicalization:
    def test_keys_are_lowercased(self, normalizer):
        result = json.loads(normalizer.normalize('{"Query": "3 bed", "BEDROOMS": 3}'))
        assert result == {"query": "3 bed", "bedrooms": 3}

    def test_numbers_keep_their_digits(self, normalizer):
        result = normalizer.normalize('{"home_price": 500000, "latitude": 28.538336}')
        assert '"home_price":500000' in result
        assert '"latitude":28.538336' in result

    def test_non_scalar_values_become_json_text(self, normalizer):
        result = json.loads(normalizer.normalize('{"flag": true, "tags": ["a", "b"]}'))
        assert result["flag"] == "true"
        assert result["tags"] == '["a","b"]'

    def test_empty_object(self, normalizer):
        assert normalizer.normalize("{}") == "{}"


class TestInvalidInput:
    def test_invalid_json_raises(self, normalizer):
        with pytest.raises(ValueError, match="Invalid arguments JSON"):
            normalizer.normalize("{not json")

    def test_array_payload_raises(self, normalizer):
        with pytest.raises(ValueError, match="JSON object"):
            normalizer.normalize("[1, 2]")
