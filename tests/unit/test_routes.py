"""Tests for route template parsing and URL building."""

from __future__ import annotations

import pytest

from elab.api.routes import API_ROUTES, Placeholder, Route, build_route_table
from elab.errors import ValidationError


def test_parse_segments():
    route = Route.parse("set_frequency", "/api/set/:id/frequency/:freq")
    assert route.segments == (
        "api",
        "set",
        Placeholder("id"),
        "frequency",
        Placeholder("freq"),
    )
    assert route.params == {"id", "freq"}
    assert route.required == {"id", "freq"}


def test_build_substitutes_named_params():
    assert (
        API_ROUTES["set_frequency"].build(id="pct23", freq=25)
        == "/api/set/pct23/frequency/25"
    )


def test_build_drops_missing_optional_params():
    route = API_ROUTES["set_command"]
    assert route.build(id="pct23", message="go") == "/api/set/pct23/command/go"
    assert (
        route.build(id="pct23", message="go", log=1)
        == "/api/set/pct23/command/go/1"
    )


def test_build_optional_after_gap_is_dropped():
    # A later optional can't be placed without the earlier one.
    route = API_ROUTES["set_command"]
    assert route.build(id="x", message="m", session_key="k") == "/api/set/x/command/m"


def test_logging_route_formats_booleans():
    route = API_ROUTES["set_logging"]
    path = route.build(id="pct23", db=True, bc=0, sg=0, sampling_ms=500)
    assert path == "/api/set/pct23/logging/1/0/0/500"


def test_build_quotes_values():
    assert API_ROUTES["get_lib_file"].build(fname="a b/c.zip") == "/api/get/lib/a%20b%2Fc.zip"


def test_build_rejects_unknown_param():
    with pytest.raises(ValidationError, match="Unknown parameter"):
        API_ROUTES["set_defaults"].build(id="x", bogus=1)


def test_build_rejects_missing_required_param():
    with pytest.raises(ValidationError, match="Missing parameter"):
        API_ROUTES["set_frequency"].build(id="x")


def test_route_without_params():
    assert API_ROUTES["get_targets_json"].build() == "/api/get/targets/json"


def test_parse_rejects_required_after_optional():
    with pytest.raises(ValidationError):
        Route.parse("bad", "/api/:a?/:b")


def test_parse_rejects_literal_after_optional():
    with pytest.raises(ValidationError):
        Route.parse("bad", "/api/:a?/tail")


def test_parse_rejects_relative_template():
    with pytest.raises(ValidationError):
        Route.parse("bad", "api/get")


def test_route_table_is_read_only():
    table = build_route_table({"x": "/api/x"})
    with pytest.raises(TypeError):
        table["y"] = Route.parse("y", "/api/y")  # type: ignore[index]
