# Test cases for the query sublanguage and the query options codec
# Covers $filter/$orderby/$top/$skip/$select/$count and wire conversion

from datetime import date, timedelta

import pytest

from auto_mcp.api.weather import WeatherForecast
from auto_mcp.errors import QueryOptionsError
from auto_mcp.query import QueryOptions, default_query_options_factory
from auto_mcp.query.filter import compare
from auto_mcp.serialization.query_options import (
    QueryOptionsCodec,
    QueryOptionsConverter,
    add_sigil,
    strip_sigil,
)


def forecasts():
    return [
        WeatherForecast(date=date(2024, 1, 1), temperature_c=-5, summary="Freezing"),
        WeatherForecast(date=date(2024, 1, 2), temperature_c=12, summary="Cool"),
        WeatherForecast(date=date(2024, 1, 3), temperature_c=25, summary="Warm"),
        WeatherForecast(date=date(2024, 1, 4), temperature_c=25, summary=None),
        WeatherForecast(date=date(2024, 1, 5), temperature_c=40, summary="Scorching"),
    ]


def options(**parameters):
    return default_query_options_factory.create(WeatherForecast, parameters)


class TestFilter:
    def test_comparison(self):
        result = options(filter="temperature_c gt 20").apply_to(forecasts())
        assert [f.temperature_c for f in result] == [25, 25, 40]

    def test_string_equality(self):
        result = options(filter="summary eq 'Warm'").apply_to(forecasts())
        assert [f.date for f in result] == [date(2024, 1, 3)]

    def test_logical_operators_and_grouping(self):
        result = options(
            filter="(temperature_c lt 0 or temperature_c ge 40) and not (summary eq null)"
        ).apply_to(forecasts())
        assert [f.summary for f in result] == ["Freezing", "Scorching"]

    def test_null_comparison(self):
        result = options(filter="summary eq null").apply_to(forecasts())
        assert [f.date for f in result] == [date(2024, 1, 4)]

    def test_date_literal(self):
        result = options(filter="date ge 2024-01-04").apply_to(forecasts())
        assert len(result) == 2

    def test_string_functions(self):
        result = options(filter="contains(tolower(summary), 'o')").apply_to(forecasts())
        assert [f.summary for f in result] == ["Cool", "Scorching"]

    def test_date_functions(self):
        result = options(filter="day(date) eq 2").apply_to(forecasts())
        assert [f.summary for f in result] == ["Cool"]

    def test_computed_property(self):
        result = options(filter="temperature_f gt 100").apply_to(forecasts())
        assert [f.temperature_c for f in result] == [40]

    def test_escaped_quote(self):
        result = options(filter="summary ne 'it''s'").apply_to(forecasts())
        assert len(result) == 5

    def test_unknown_property(self):
        with pytest.raises(QueryOptionsError, match="Could not find a property named 'humidity'"):
            options(filter="humidity gt 3")

    def test_syntax_error(self):
        with pytest.raises(QueryOptionsError):
            options(filter="temperature_c gt")

    def test_unknown_function(self):
        with pytest.raises(QueryOptionsError, match="Unknown function"):
            options(filter="reverse(summary) eq 'x'")

    def test_incomparable_types(self):
        with pytest.raises(QueryOptionsError, match="Cannot compare"):
            compare("gt", "text", 3)


class TestOrderingAndPaging:
    def test_order_by_descending_with_top(self):
        data = [
            WeatherForecast(date=date(2024, 1, 1) + timedelta(days=i), temperature_c=i % 30)
            for i in range(1000)
        ]

        result = options(top="5", orderby="date desc").apply_to(data)

        assert len(result) == 5
        assert [f.date for f in result] == [
            date(2024, 1, 1) + timedelta(days=i) for i in range(999, 994, -1)
        ]

    def test_multiple_sort_keys(self):
        result = options(orderby="temperature_c desc, date").apply_to(forecasts())
        assert [f.date.day for f in result] == [5, 3, 4, 2, 1]

    def test_nulls_sort_first(self):
        result = options(orderby="summary").apply_to(forecasts())
        assert result[0].summary is None

    def test_skip_and_top(self):
        result = options(skip="1", top="2").apply_to(forecasts())
        assert [f.date.day for f in result] == [2, 3]

    def test_negative_top_rejected(self):
        with pytest.raises(QueryOptionsError, match="non-negative"):
            options(top="-1")

    def test_non_integer_skip_rejected(self):
        with pytest.raises(QueryOptionsError, match="expected an integer"):
            options(skip="many")

    def test_bad_sort_direction(self):
        with pytest.raises(QueryOptionsError, match="sort direction"):
            options(orderby="date sideways")


class TestSelectAndCount:
    def test_select_projects_to_mappings(self):
        result = options(select="date,summary", top="1").apply_to(forecasts())
        assert result == [{"date": date(2024, 1, 1), "summary": "Freezing"}]

    def test_select_star(self):
        result = options(select="*").apply_to(forecasts())
        assert isinstance(result[0], WeatherForecast)

    def test_count_ignores_paging(self):
        query = options(filter="temperature_c gt 0", top="1", count="true")
        assert query.count is True
        assert query.count_of(forecasts()) == 4

    def test_invalid_count(self):
        with pytest.raises(QueryOptionsError):
            options(count="maybe")


class TestOptionNames:
    def test_names_are_case_insensitive(self):
        assert options(TOP="3").top == 3

    def test_unknown_option_rejected(self):
        with pytest.raises(QueryOptionsError, match="not supported"):
            options(limit="3")

    def test_unsupported_option_rejected(self):
        with pytest.raises(QueryOptionsError, match="'\\$expand' is not supported"):
            options(expand="station")

    def test_blank_unsupported_option_ignored(self):
        assert options(expand="").raw_values.expand == ""


class TestQueryOptionsCodec:
    def test_sigil_helpers(self):
        assert add_sigil("top") == "$top"
        assert strip_sigil("$top") == "top"
        assert strip_sigil("top") == "top"

    def test_decode_stringifies_values(self):
        decoded = QueryOptionsCodec().decode(
            {"$top": 5, "$count": True, "$filter": None}, WeatherForecast
        )

        assert decoded.top == 5
        assert decoded.count is True
        assert decoded.filter is None
        assert decoded.raw_values.top == "5"
        assert decoded.raw_values.count == "true"
        assert decoded.raw_values.filter == ""

    def test_decode_json_text(self):
        decoded = QueryOptionsCodec().decode('{"$orderby": "date desc"}', WeatherForecast)
        assert decoded.order_by[0].descending is True

    def test_decode_rejects_non_object(self):
        with pytest.raises(QueryOptionsError, match="must be a JSON object"):
            QueryOptionsCodec().decode([1, 2], WeatherForecast)

    def test_decode_rejects_invalid_json(self):
        with pytest.raises(QueryOptionsError, match="not valid JSON"):
            QueryOptionsCodec().decode("{", WeatherForecast)

    def test_encode_echoes_recognized_values(self):
        codec = QueryOptionsCodec()
        decoded = codec.decode({"$top": "5", "$orderby": "date desc"}, WeatherForecast)

        assert codec.encode(decoded) == {"$top": "5", "$orderby": "date desc"}

    def test_schema_properties_carry_sigil(self):
        schema = QueryOptionsCodec.json_schema()

        assert schema["type"] == "object"
        assert "$filter" in schema["properties"]
        assert "$top" in schema["properties"]
        assert not any(not name.startswith("$") for name in schema["properties"])

    def test_converter_gathers_sigil_arguments(self):
        converter = QueryOptionsConverter(WeatherForecast)

        gathered = converter.gather({"$top": 5, "date": "2024-01-01", "$skip": 1})

        assert gathered == {"$top": 5, "$skip": 1}

    def test_converter_empty_value(self):
        empty = QueryOptionsConverter(WeatherForecast).empty()

        assert isinstance(empty, QueryOptions)
        assert empty.apply_to(forecasts()) == forecasts()
