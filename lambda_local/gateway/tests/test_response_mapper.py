import base64
import json

import pytest

from lambda_local.gateway.models import IntegrationDefinition
from lambda_local.gateway.services.response_mapper import (
    ResponseMapper,
    accept_candidates,
    map_response_parameters,
    select_response,
)
from lambda_local.sandbox import ExecutionResult

CONTEXT = {"requestId": "rid-9", "stage": "dev"}


@pytest.fixture
def integration():
    return IntegrationDefinition.model_validate(
        {
            "uri": "x",
            "responses": {
                "default": {
                    "statusCode": "200",
                    "responseTemplates": {
                        "application/json": '{"user": $input.json(\'$.name\'), "rid": "$context.requestId"}',
                        "text/plain": "$input.path('$.name')",
                    },
                    "responseParameters": {
                        "method.response.header.X-Name": "integration.response.body.user",
                        "method.response.header.X-Const": "'fixed'",
                    },
                },
                "Bad.*": {"statusCode": "400"},
                ".*timed out.*": {"statusCode": "504"},
                "Bad request.*": {"statusCode": "422"},
            },
        }
    )


@pytest.fixture
def mapper():
    return ResponseMapper()


def test_success_uses_default_template(mapper, integration):
    response = mapper.render(ExecutionResult.succeeded({"name": "Ann"}), integration, CONTEXT)
    assert response.status_code == 200
    assert json.loads(response.body) == {"user": "Ann", "rid": "rid-9"}
    assert response.content_type == "application/json"
    assert response.headers == {"X-Name": "Ann", "X-Const": "fixed"}


def test_accept_header_selects_template(mapper, integration):
    response = mapper.render(
        ExecutionResult.succeeded({"name": "Ann"}),
        integration,
        CONTEXT,
        accept="text/html, text/plain;q=0.9",
    )
    assert response.body == "Ann"
    assert response.content_type == "text/plain"


def test_unknown_accept_falls_back_to_json_template(mapper, integration):
    response = mapper.render(
        ExecutionResult.succeeded({"name": "Ann"}), integration, CONTEXT, accept="image/png"
    )
    assert response.content_type == "application/json"
    assert json.loads(response.body)["user"] == "Ann"


def test_first_declared_pattern_wins(mapper, integration):
    failure = ExecutionResult.handler_failure("Bad request: missing id")
    response = mapper.render(failure, integration, CONTEXT)
    assert response.status_code == 400
    # No templates declared: the error message passes through.
    assert response.body == "Bad request: missing id"


def test_patterns_are_anchored_at_start(integration):
    assert select_response(integration, "Very Bad thing") is None
    assert select_response(integration, "Task timed out after 1.00 seconds").status_code == 504


def test_timeout_matched_by_pattern(mapper, integration):
    response = mapper.render(ExecutionResult.timed_out(1500), integration, CONTEXT)
    assert response.status_code == 504
    assert response.body == "Task timed out after 1.50 seconds"


def test_unmatched_failure_is_500(mapper, integration):
    response = mapper.render(
        ExecutionResult.process_crashed("Process exited before completing request"),
        integration,
        CONTEXT,
    )
    assert response.status_code == 500
    assert json.loads(response.body) == {
        "message": "Process exited before completing request",
        "errorType": "ProcessCrashed",
    }


def test_pass_through_without_templates(mapper):
    integration = IntegrationDefinition(uri="x")
    response = mapper.render(ExecutionResult.succeeded("plain string"), integration, CONTEXT)
    assert response.status_code == 200
    assert response.body == "plain string"


def test_accept_candidates():
    assert accept_candidates(None) == ["application/json"]
    assert accept_candidates("text/html;q=0.8, application/xml") == ["text/html", "application/xml"]


def test_response_parameters_keep_source_when_field_missing():
    headers = map_response_parameters(
        {
            "method.response.header.A": "integration.response.body.missing",
            "method.response.header.B": "integration.request.body.nested.value",
            "method.response.querystring.C": "'ignored'",
        },
        '{"nested": {"value": 5}}',
    )
    assert headers == {"A": "integration.response.body.missing", "B": "5"}


class TestProxyResponse:
    def test_proxy_output_becomes_response(self, mapper):
        integration = IntegrationDefinition(type="aws_proxy", uri="x")
        result = ExecutionResult.succeeded(
            {
                "statusCode": 201,
                "headers": {"Content-Type": "text/plain", "X-Count": 3},
                "multiValueHeaders": {"Set-Cookie": ["a=1", "b=2"]},
                "body": "created",
            }
        )
        response = mapper.render(result, integration, CONTEXT)
        assert response.status_code == 201
        assert response.body == "created"
        assert response.content_type == "text/plain"
        assert response.headers["X-Count"] == "3"
        assert response.headers["Set-Cookie"] == "a=1, b=2"

    def test_object_body_is_json_encoded(self, mapper):
        integration = IntegrationDefinition(type="aws_proxy", uri="x")
        result = ExecutionResult.succeeded({"statusCode": 200, "body": {"ok": True}})
        assert json.loads(mapper.render(result, integration, CONTEXT).body) == {"ok": True}

    def test_base64_body(self, mapper):
        integration = IntegrationDefinition(type="aws_proxy", uri="x")
        encoded = base64.b64encode(b"\x00\x01").decode()
        result = ExecutionResult.succeeded(
            {"statusCode": 200, "body": encoded, "isBase64Encoded": True}
        )
        response = mapper.render(result, integration, CONTEXT)
        assert response.is_base64_encoded is True
        assert response.body == encoded

    def test_non_proxy_output_passes_through(self, mapper):
        integration = IntegrationDefinition(type="aws_proxy", uri="x")
        response = mapper.render(ExecutionResult.succeeded({"a": 1}), integration, CONTEXT)
        assert response.status_code == 200
        assert response.body == '{"a":1}'

    def test_failure_is_502(self, mapper):
        integration = IntegrationDefinition(type="aws_proxy", uri="x")
        response = mapper.render(
            ExecutionResult.handler_failure("boom", error_type="ValueError"), integration, CONTEXT
        )
        assert response.status_code == 502
        assert json.loads(response.body)["handlerErrorType"] == "ValueError"


def test_failure_template_reads_error_object(mapper):
    integration = IntegrationDefinition.model_validate(
        {
            "uri": "x",
            "responses": {
                "default": {"statusCode": 200},
                "Invalid.*": {
                    "statusCode": 400,
                    "responseTemplates": {
                        "application/json": '{"reason": "$input.path(\'$.errorMessage\')", '
                        '"type": "$input.path(\'$.errorType\')"}'
                    },
                },
            },
        }
    )
    result = ExecutionResult.handler_failure("Invalid id", error_type="ValueError")
    response = mapper.render(result, integration, CONTEXT)
    assert response.status_code == 400
    assert json.loads(response.body) == {"reason": "Invalid id", "type": "ValueError"}
