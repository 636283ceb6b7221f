"""Unified data models for extracted endpoint documentation.

The docblock parser, tag extractors and response strategies all produce
these records; the assembler combines them into one EndpointDescriptor
per route for the templating layer.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict


class Tag(BaseModel):
    """A single ``@name content`` annotation from a docstring."""

    model_config = ConfigDict(frozen=True)

    name: str
    content: str = ""


class DocBlock(BaseModel):
    """A parsed docstring: short description, long description and tags."""

    model_config = ConfigDict(frozen=True)

    short: str = ""
    long: str = ""
    tags: tuple[Tag, ...] = ()


class ParameterSpec(BaseModel):
    """A documented uri, body or query parameter."""

    name: str
    type: str = "string"  # integer / number / float / boolean / string / array / object / T[]
    description: str = ""
    required: bool = False
    value: Any = None


class RawResponse(BaseModel):
    """A response as emitted by a strategy, before normalization."""

    status_code: int = 200
    content: str | bytes = ""
    headers: dict[str, Any] = {}


class ResponseRecord(BaseModel):
    """A normalized example response. Binary content serializes as base64."""

    model_config = ConfigDict(ser_json_bytes="base64")

    status: int
    content: str | bytes = ""
    content_type: str = ""
    comment: str = ""


class EndpointDescriptor(BaseModel):
    """Everything the templating layer needs to document one route."""

    model_config = ConfigDict(frozen=True)

    id: str
    group_name: str
    group_description: str = ""
    title: str = ""
    description: str = ""
    footer_description: str = ""
    methods: list[str]
    uri: str
    bound_uri: str
    uri_parameters: dict[str, ParameterSpec] = {}
    body_parameters: dict[str, ParameterSpec] = {}
    query_parameters: dict[str, ParameterSpec] = {}
    clean_uri_parameters: dict[str, Any] = {}
    clean_body_parameters: dict[str, Any] = {}
    clean_query_parameters: dict[str, Any] = {}
    authenticated: bool = False
    responses: list[ResponseRecord] = []
    show_response: bool = False
    headers: dict[str, Any] = {}
