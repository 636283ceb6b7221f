import json
import sys
import types
from contextlib import contextmanager
from unittest.mock import MagicMock

import pytest

from route_docs.parser.base import ParameterSpec, RawResponse, Tag
from route_docs.reflection import SimpleRoute
from route_docs.responses.strategies import (
    BinaryFileStrategy,
    FakeRequest,
    ResolutionContext,
    ResponseCallStrategy,
    ResponseFileStrategy,
    ResponseTagStrategy,
    TransformerTagsStrategy,
)


def _route(uri="api/cars/{car}", methods=("GET",)):
    return SimpleRoute(uri, list(methods), lambda: None)


def _tags(*pairs) -> list[Tag]:
    return [Tag(name=name, content=content) for name, content in pairs]


class TestResponseTagStrategy:
    def test_no_tag(self):
        assert ResponseTagStrategy().attempt(_route(), [], ResolutionContext()) is None

    def test_status_and_body(self):
        responses = ResponseTagStrategy().attempt(
            _route(), _tags(("response", '201 {"id": 1}')), ResolutionContext()
        )
        assert responses == [
            RawResponse(status_code=201, content='{"id": 1}', headers={"content-type": "application/json"})
        ]

    def test_defaults(self):
        responses = ResponseTagStrategy().attempt(_route(), _tags(("response", "")), ResolutionContext())
        assert responses[0].status_code == 200
        assert responses[0].content == "{}"

    def test_content_type(self):
        responses = ResponseTagStrategy().attempt(
            _route(), _tags(("response", "404 text/plain Not found")), ResolutionContext()
        )
        assert responses[0].status_code == 404
        assert responses[0].headers["content-type"] == "text/plain"
        assert responses[0].content == "Not found"

    def test_one_response_per_tag(self):
        responses = ResponseTagStrategy().attempt(
            _route(), _tags(("response", "{}"), ("response", '422 {"error": true}')), ResolutionContext()
        )
        assert [r.status_code for r in responses] == [200, 422]


class Car:
    def __init__(self, id=1):
        self.id = id


class CarTransformer:
    def transform(self, car: Car) -> dict:
        return {"id": car.id}


class Untyped:
    def transform(self, car):
        return {}


@pytest.fixture
def transformers_module(monkeypatch):
    module = types.ModuleType("fake_transformers")
    module.Car = Car
    module.CarTransformer = CarTransformer
    module.Untyped = Untyped
    monkeypatch.setitem(sys.modules, "fake_transformers", module)
    return module


class TestTransformerTagsStrategy:
    def test_no_tag(self):
        assert TransformerTagsStrategy().attempt(_route(), [], ResolutionContext()) is None

    def test_single_item(self, transformers_module):
        responses = TransformerTagsStrategy().attempt(
            _route(), _tags(("transformer", "fake_transformers.CarTransformer")), ResolutionContext()
        )
        assert responses[0].status_code == 200
        assert json.loads(responses[0].content) == {"data": {"id": 1}}

    def test_collection(self, transformers_module):
        responses = TransformerTagsStrategy().attempt(
            _route(), _tags(("transformerCollection", "fake_transformers.CarTransformer")), ResolutionContext()
        )
        assert json.loads(responses[0].content) == {"data": [{"id": 1}, {"id": 1}]}

    def test_model_tag(self, transformers_module):
        serializer = MagicMock(return_value={"ok": True})
        responses = TransformerTagsStrategy(serializer).attempt(
            _route(),
            _tags(("transformer", "fake_transformers.Untyped"), ("transformerModel", "fake_transformers.Car")),
            ResolutionContext(),
        )
        transformer, data, collection = serializer.call_args.args
        assert isinstance(transformer, Untyped)
        assert isinstance(data, Car)
        assert collection is False
        assert json.loads(responses[0].content) == {"ok": True}

    def test_unresolvable_transformer_is_no_match(self):
        responses = TransformerTagsStrategy().attempt(
            _route(), _tags(("transformer", "no_such_module_xyz.Transformer")), ResolutionContext()
        )
        assert responses is None

    def test_model_cannot_be_inferred(self, transformers_module):
        responses = TransformerTagsStrategy().attempt(
            _route(), _tags(("transformer", "fake_transformers.Untyped")), ResolutionContext()
        )
        assert responses is None


class TestResponseFileStrategy:
    def test_no_tag(self, tmp_path):
        assert ResponseFileStrategy(tmp_path).attempt(_route(), [], ResolutionContext()) is None

    def test_loads_file(self, tmp_path):
        (tmp_path / "car.json").write_text('{"id": 1}')
        responses = ResponseFileStrategy(tmp_path).attempt(
            _route(), _tags(("responseFile", "car.json")), ResolutionContext()
        )
        assert responses[0].status_code == 200
        assert responses[0].content == '{"id": 1}'
        assert responses[0].headers["content-type"] == "application/json"

    def test_status_and_merge(self, tmp_path):
        (tmp_path / "car.json").write_text('{"id": 1, "name": "a"}')
        responses = ResponseFileStrategy(tmp_path).attempt(
            _route(), _tags(("responseFile", '404 car.json {"name": "b"}')), ResolutionContext()
        )
        assert responses[0].status_code == 404
        assert json.loads(responses[0].content) == {"id": 1, "name": "b"}

    def test_text_content_type(self, tmp_path):
        (tmp_path / "note.txt").write_text("hello")
        responses = ResponseFileStrategy(tmp_path).attempt(
            _route(), _tags(("responseFile", "note.txt")), ResolutionContext()
        )
        assert responses[0].headers["content-type"] == "text/plain"

    def test_missing_file_matches_with_no_responses(self, tmp_path):
        responses = ResponseFileStrategy(tmp_path).attempt(
            _route(), _tags(("responseFile", "missing.json")), ResolutionContext()
        )
        assert responses == []

    def test_undecodable_file_is_skipped(self, tmp_path):
        (tmp_path / "latin.txt").write_bytes(b"caf\xe9")
        (tmp_path / "car.json").write_text('{"id": 1}')
        responses = ResponseFileStrategy(tmp_path).attempt(
            _route(), _tags(("responseFile", "latin.txt"), ("responseFile", "car.json")), ResolutionContext()
        )
        assert [r.content for r in responses] == ['{"id": 1}']


class TestBinaryFileStrategy:
    def test_loads_bytes(self, tmp_path):
        (tmp_path / "invoice.pdf").write_bytes(b"%PDF-1.4")
        responses = BinaryFileStrategy(tmp_path).attempt(
            _route(), _tags(("responsePdfFile", "invoice.pdf")), ResolutionContext()
        )
        assert responses[0].content == b"%PDF-1.4"
        assert responses[0].headers["content-type"] == "application/pdf"

    def test_unknown_extension(self, tmp_path):
        (tmp_path / "blob.zzz").write_bytes(b"\x00\x01")
        responses = BinaryFileStrategy(tmp_path).attempt(
            _route(), _tags(("responseBinaryFile", "201 blob.zzz")), ResolutionContext()
        )
        assert responses[0].status_code == 201
        assert responses[0].headers["content-type"] == "application/octet-stream"

    def test_no_tag(self, tmp_path):
        assert BinaryFileStrategy(tmp_path).attempt(_route(), [], ResolutionContext()) is None


class TestResponseCallStrategy:
    def _context(self, **rules):
        return ResolutionContext(
            rules=rules,
            uri_parameters={"car": ParameterSpec(name="car", type="integer", value=4)},
            query_parameters={"page": ParameterSpec(name="page", value=2)},
            body_parameters={"name": ParameterSpec(name="name", value="Volvo")},
        )

    def test_without_dispatcher(self):
        context = self._context(response_calls={"methods": ["GET"]})
        assert ResponseCallStrategy().attempt(_route(), [], context) is None

    def test_method_not_allowed(self):
        dispatcher = MagicMock()
        context = self._context(response_calls={"methods": ["POST"]})
        assert ResponseCallStrategy(dispatcher).attempt(_route(), [], context) is None
        dispatcher.dispatch.assert_not_called()

    def test_no_response_call_rules(self):
        dispatcher = MagicMock()
        assert ResponseCallStrategy(dispatcher).attempt(_route(), [], self._context()) is None

    def test_builds_request_and_captures_response(self):
        dispatcher = MagicMock(spec=["dispatch"])
        dispatcher.dispatch.return_value = RawResponse(status_code=200, content='{"id": 4}')
        context = self._context(
            headers={"Accept": "application/json"},
            response_calls={
                "methods": ["*"],
                "query_params": {"sort": "year"},
                "headers": {"X-Debug": "1"},
            },
        )
        responses = ResponseCallStrategy(dispatcher).attempt(_route(), [], context)

        request = dispatcher.dispatch.call_args.args[0]
        assert request == FakeRequest(
            method="GET",
            uri="/api/cars/4",
            query={"page": 2, "sort": "year"},
            body={"name": "Volvo"},
            headers={"Accept": "application/json", "X-Debug": "1"},
        )
        assert responses == [RawResponse(status_code=200, content='{"id": 4}')]

    def test_bindings_take_precedence(self):
        dispatcher = MagicMock(spec=["dispatch"])
        dispatcher.dispatch.return_value = RawResponse()
        context = self._context(bindings={"{car}": 9}, response_calls={"methods": ["GET"]})
        ResponseCallStrategy(dispatcher).attempt(_route(), [], context)
        assert dispatcher.dispatch.call_args.args[0].uri == "/api/cars/9"

    def test_foreign_response_object(self):
        dispatcher = MagicMock(spec=["dispatch"])
        dispatcher.dispatch.return_value = types.SimpleNamespace(
            status_code=201, content="created", headers={"Content-Type": "text/plain"}
        )
        context = self._context(response_calls={"methods": ["GET"]})
        responses = ResponseCallStrategy(dispatcher).attempt(_route(), [], context)
        assert responses == [
            RawResponse(status_code=201, content="created", headers={"content-type": "text/plain"})
        ]

    def test_json_bytes_body_is_decoded(self):
        dispatcher = MagicMock(spec=["dispatch"])
        dispatcher.dispatch.return_value = types.SimpleNamespace(
            status_code=200, content=b'{"id": 4}', headers={"content-type": "application/json"}
        )
        context = self._context(response_calls={"methods": ["GET"]})
        responses = ResponseCallStrategy(dispatcher).attempt(_route(), [], context)
        assert responses[0].content == '{"id": 4}'

    def test_binary_bytes_body_is_kept(self):
        dispatcher = MagicMock(spec=["dispatch"])
        dispatcher.dispatch.return_value = types.SimpleNamespace(
            status_code=200, content=b"%PDF-1.4", headers={"Content-Type": "application/pdf"}
        )
        context = self._context(response_calls={"methods": ["GET"]})
        responses = ResponseCallStrategy(dispatcher).attempt(_route(), [], context)
        assert responses[0].content == b"%PDF-1.4"

    def test_application_fault_becomes_response(self):
        dispatcher = MagicMock(spec=["dispatch"])
        dispatcher.dispatch.side_effect = RuntimeError("boom")
        context = self._context(response_calls={"methods": ["GET"]})
        responses = ResponseCallStrategy(dispatcher).attempt(_route(), [], context)
        assert responses[0].status_code == 500
        assert json.loads(responses[0].content) == {"message": "boom"}
        assert responses[0].headers["comment"] == "RuntimeError"

    def test_runs_inside_transaction(self):
        events = []

        class Dispatcher:
            @contextmanager
            def transaction(self):
                events.append("begin")
                yield
                events.append("rollback")

            def dispatch(self, request):
                events.append("dispatch")
                return RawResponse()

        context = self._context(response_calls={"methods": ["GET"]})
        ResponseCallStrategy(Dispatcher()).attempt(_route(), [], context)
        assert events == ["begin", "dispatch", "rollback"]
