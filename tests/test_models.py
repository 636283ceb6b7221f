import pytest
from pydantic import ValidationError

from route_docs.parser.base import EndpointDescriptor, ParameterSpec, ResponseRecord


class TestParameterSpec:
    def test_defaults(self):
        p = ParameterSpec(name="id")
        assert p.type == "string"
        assert p.description == ""
        assert p.required is False
        assert p.value is None


class TestResponseRecord:
    def test_binary_content_dumps_as_base64(self):
        record = ResponseRecord(status=200, content=b"\x00\x01", content_type="application/pdf")
        assert record.model_dump(mode="json")["content"] == "AAE="

    def test_text_content(self):
        record = ResponseRecord(status=200, content="{}")
        assert record.model_dump(mode="json")["content"] == "{}"


class TestEndpointDescriptor:
    def test_create_minimal_descriptor(self):
        d = EndpointDescriptor(
            id="abc",
            group_name="general",
            methods=["GET"],
            uri="api/users",
            bound_uri="http://localhost/api/users",
        )
        assert d.responses == []
        assert d.show_response is False
        assert d.authenticated is False

    def test_frozen(self):
        d = EndpointDescriptor(id="abc", group_name="g", methods=["GET"], uri="u", bound_uri="b")
        with pytest.raises(ValidationError):
            d.title = "changed"

    def test_serialization_roundtrip(self):
        d = EndpointDescriptor(
            id="abc",
            group_name="Users",
            methods=["DELETE"],
            uri="api/users/{id}",
            bound_uri="http://localhost/api/users/1",
            uri_parameters={"id": ParameterSpec(name="id", type="integer", value=1)},
            responses=[ResponseRecord(status=204)],
            show_response=True,
        )
        d2 = EndpointDescriptor(**d.model_dump())
        assert d2 == d
