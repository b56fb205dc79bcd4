"""Route table for the eLab master REST API.

Templates use ``:name`` placeholders, ``:name?`` for optional ones. Each
template is parsed once into segments so that building a URL never involves
string search: unknown or missing parameters are rejected up front.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any
from urllib.parse import quote

from elab.errors import ValidationError


@dataclass(frozen=True)
class Placeholder:
    """A ``:name`` segment of a route template."""

    name: str
    optional: bool = False


Segment = str | Placeholder


@dataclass(frozen=True)
class Route:
    """A named API route parsed from its template."""

    name: str
    template: str
    segments: tuple[Segment, ...]

    @classmethod
    def parse(cls, name: str, template: str) -> Route:
        if not template.startswith("/"):
            raise ValidationError(f"Route '{name}' must start with '/': {template}")

        segments: list[Segment] = []
        seen_optional = False
        for part in template.strip("/").split("/"):
            if not part.startswith(":"):
                if seen_optional:
                    raise ValidationError(
                        f"Route '{name}' has a literal after an optional placeholder"
                    )
                segments.append(part)
                continue
            optional = part.endswith("?")
            param = part[1:-1] if optional else part[1:]
            if not param:
                raise ValidationError(f"Route '{name}' has an empty placeholder")
            if seen_optional and not optional:
                raise ValidationError(
                    f"Route '{name}' has a required placeholder after an optional one"
                )
            seen_optional = seen_optional or optional
            segments.append(Placeholder(param, optional))
        return cls(name=name, template=template, segments=tuple(segments))

    @property
    def params(self) -> frozenset[str]:
        return frozenset(s.name for s in self.segments if isinstance(s, Placeholder))

    @property
    def required(self) -> frozenset[str]:
        return frozenset(
            s.name
            for s in self.segments
            if isinstance(s, Placeholder) and not s.optional
        )

    def build(self, **params: Any) -> str:
        """Substitute parameters and return the URL path.

        Optional placeholders that are not given (or are None) are dropped
        along with every optional placeholder that follows them.
        """
        unknown = set(params) - self.params
        if unknown:
            raise ValidationError(
                f"Unknown parameter(s) for route '{self.name}': "
                + ", ".join(sorted(unknown))
            )
        missing = {p for p in self.required if params.get(p) is None}
        if missing:
            raise ValidationError(
                f"Missing parameter(s) for route '{self.name}': "
                + ", ".join(sorted(missing))
            )

        parts: list[str] = []
        for segment in self.segments:
            if isinstance(segment, str):
                parts.append(segment)
                continue
            value = params.get(segment.name)
            if value is None:
                break
            parts.append(quote(format_value(value), safe=""))
        return "/" + "/".join(parts)


def format_value(value: Any) -> str:
    """Stringify a tag or route value the way the master parses it."""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_route_table(templates: Mapping[str, str]) -> Mapping[str, Route]:
    """Parse a name→template mapping into an immutable route table."""
    return MappingProxyType(
        {name: Route.parse(name, template) for name, template in templates.items()}
    )


API_ROUTES = build_route_table(
    {
        "get_targets_json": "/api/get/targets/json",
        "get_lib_file": "/api/get/lib/:fname",
        "get_config_json": "/api/get/:id/config/json",
        "get_data_json_encrypted": "/api/get/:id/data/json/all/encrypted/paillier",
        "set_command": "/api/set/:id/command/:message/:log?/:session_key?/:stime?",
        "set_verbose": "/api/set/:id/verbose/:state",
        "set_frequency": "/api/set/:id/frequency/:freq",
        "set_data": "/api/set/:id/data",
        "set_batch": "/api/set/:id/batch",
        "set_data_encrypted": "/api/set/:id/data/encrypted",
        "set_batch_encrypted": "/api/set/:id/batch/encrypted",
        "paillier_pub_key_exchange": "/api/set/:id/encryption/paillier/pubkeyexchange",
        "set_defaults": "/api/set/:id/defaults",
        "get_session": "/api/get/session/:session_key",
        "get_sessions": "/api/get/sessions/:lastn?",
        "get_session_data": "/api/get/session/data/:session_key/:convert_units?",
        "get_session_qr": "/api/get/session/qr/:session_key",
        "set_logging": "/api/set/:id/logging/:db/:bc/:sg/:sampling_ms?",
    }
)
