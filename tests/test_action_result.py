# Test cases for the result envelope codec
# ActionResult[T] serializes as T and renders the schema of T

from datetime import date

from pydantic import TypeAdapter

from auto_mcp.api.weather import WeatherForecast
from auto_mcp.models.results import (
    ActionResult,
    ObjectResult,
    StatusCodeResult,
    bad_request,
    created,
    no_content,
    not_found,
    ok,
    problem,
)
from auto_mcp.models.tool import ProblemDetails
from auto_mcp.serialization.action_result import (
    ActionResultConverter,
    ActionResultConverterFactory,
    unwrap_action_result,
)

FORECAST = WeatherForecast(date=date(2024, 5, 1), temperature_c=20, summary="Mild")


class TestActionResultConverter:
    def test_write_object_result_as_value(self):
        converter = ActionResultConverter(WeatherForecast)

        written = converter.write(ActionResult(result=ok(FORECAST)))

        assert written == {
            "date": "2024-05-01",
            "temperature_c": 20,
            "summary": "Mild",
            "temperature_f": 67,
        }

    def test_write_plain_value(self):
        converter = ActionResultConverter(int)
        assert converter.write(ActionResult(value=7)) == 7

    def test_write_status_code_result(self):
        converter = ActionResultConverter(WeatherForecast)
        assert converter.write(ActionResult(result=no_content())) == {"status_code": 204}

    def test_object_result_takes_precedence(self):
        converter = ActionResultConverter(int)
        envelope = ActionResult(value=1, result=ObjectResult(2))
        assert converter.write(envelope) == 2

    def test_read_always_wraps_in_object_result(self):
        converter = ActionResultConverter(WeatherForecast)

        envelope = converter.read({"date": "2024-05-01", "temperature_c": 20, "summary": "Mild"})

        assert isinstance(envelope.result, ObjectResult)
        assert envelope.result.value == FORECAST

    def test_schema_is_inner_schema(self):
        converter = ActionResultConverter(WeatherForecast)

        schema = converter.get_json_schema()

        assert schema == TypeAdapter(WeatherForecast).json_schema(mode="serialization")

    def test_factory_matches_closed_generics(self):
        factory = ActionResultConverterFactory()

        assert factory.can_convert(ActionResult[WeatherForecast])
        assert not factory.can_convert(WeatherForecast)
        assert factory.create_converter(ActionResult[int]).value_type is int


class TestPydanticIntegration:
    def test_schema_through_type_adapter(self):
        wrapped = TypeAdapter(ActionResult[WeatherForecast]).json_schema(mode="serialization")
        inner = TypeAdapter(WeatherForecast).json_schema(mode="serialization")

        assert wrapped == inner

    def test_nested_envelope_serializes_as_value(self):
        adapter = TypeAdapter(dict[str, ActionResult[int]])

        assert adapter.dump_python({"a": ActionResult(value=3)}, mode="json") == {"a": 3}

    def test_python_validation_accepts_results(self):
        adapter = TypeAdapter(ActionResult[WeatherForecast])

        envelope = adapter.validate_python(not_found())

        assert envelope.result == StatusCodeResult(404)


class TestUnwrap:
    def test_unwraps_object_result(self):
        assert unwrap_action_result(created(FORECAST)) == FORECAST

    def test_unwraps_envelope(self):
        assert unwrap_action_result(ActionResult(value=FORECAST)) == FORECAST

    def test_status_code_result_passes_through(self):
        assert unwrap_action_result(no_content()) == StatusCodeResult(204)

    def test_plain_value_passes_through(self):
        assert unwrap_action_result([1, 2]) == [1, 2]

    def test_problem_helper(self):
        result = problem("missing", status=404, title="Not found")

        assert result.status_code == 404
        assert result.value == ProblemDetails(detail="missing", status=404, title="Not found")

    def test_bad_request_helper(self):
        assert bad_request() == StatusCodeResult(400)

        result = bad_request({"field": "date"})

        assert isinstance(result, ObjectResult)
        assert result.status_code == 400
        assert unwrap_action_result(result) == {"field": "date"}
