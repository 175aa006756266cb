import json

import pytest
import yaml

from lambda_local.gateway.core.exceptions import ApiSpecError, RouteNotFoundError
from lambda_local.gateway.models.api_spec import IntegrationDefinition
from lambda_local.gateway.services.api_spec_loader import build_api_spec, load_api_spec
from lambda_local.gateway.services.route_matcher import RouteMatcher


def test_load_json_document(api_file):
    spec = load_api_spec(str(api_file))
    assert spec.title == "Test API"
    assert [(r.method, r.path) for r in spec.routes.routes] == [
        ("GET", "/users/{id}"),
        ("POST", "/echo"),
        ("POST", "/broken"),
        ("ANY", "/proxy/{path+}"),
        ("GET", "/mock"),
        ("GET", "/legacy"),
    ]


def test_load_yaml_document(tmp_path, api_document):
    path = tmp_path / "api.yaml"
    path.write_text(yaml.safe_dump(api_document), encoding="utf-8")
    spec = load_api_spec(str(path))
    assert spec.routes.match("POST", "/echo").integration.uri == "$lEcho"


def test_response_patterns_keep_declaration_order(api_file):
    integration = load_api_spec(str(api_file)).routes.match("GET", "/users/1").integration
    assert [pattern for pattern, _ in integration.response_patterns()] == ["NotFound.*"]
    assert integration.default_response.status_code == 200
    assert integration.responses["NotFound.*"].status_code == 404


def test_missing_responses_synthesize_default():
    integration = IntegrationDefinition.model_validate({"type": "AWS", "uri": "x"})
    assert integration.type == "aws"
    assert integration.default_response.status_code == 200
    assert integration.default_response.response_templates == {}


def test_null_templates_are_empty():
    integration = IntegrationDefinition.model_validate(
        {
            "uri": "x",
            "requestTemplates": {"application/json": None},
            "responses": {"default": {"statusCode": "200", "responseTemplates": None}},
        }
    )
    assert integration.request_templates == {"application/json": ""}
    assert integration.default_response.response_templates == {}


@pytest.mark.parametrize(
    "integration",
    [
        {"uri": "x", "responses": {"2\\d{2}": {"statusCode": 200}}},
        {"uri": "x", "responses": {"default": {}, "([": {"statusCode": 500}}},
        {"type": "lambda", "uri": "x"},
    ],
)
def test_invalid_integrations_rejected(integration):
    document = {"paths": {"/a": {"get": {"x-amazon-apigateway-integration": integration}}}}
    with pytest.raises(ApiSpecError):
        build_api_spec(document)


def test_duplicate_paths_rejected():
    operation = {"get": {"x-amazon-apigateway-integration": {"uri": "x"}}}
    document = {"paths": {"/a": operation, "/a/": operation}}
    with pytest.raises(ApiSpecError, match="Duplicate route"):
        build_api_spec(document)


def test_operations_without_integration_are_skipped():
    document = {"paths": {"/a": {"get": {"summary": "nothing"}, "parameters": []}}}
    assert len(build_api_spec(document).routes) == 0


def test_unreadable_documents(tmp_path):
    with pytest.raises(ApiSpecError):
        load_api_spec(str(tmp_path / "missing.json"))

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(ApiSpecError):
        load_api_spec(str(broken))

    listing = tmp_path / "list.yaml"
    listing.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ApiSpecError):
        load_api_spec(str(listing))


class TestRouteMatcher:
    def test_lazy_load_and_match(self, api_file):
        matcher = RouteMatcher(str(api_file))
        assert matcher.spec is None
        match = matcher.match_route("GET", "/users/5")
        assert match.path_params == {"id": "5"}
        assert matcher.spec is not None

    def test_reload_swaps_routes(self, api_file, api_document):
        matcher = RouteMatcher(str(api_file))
        matcher.load_api_spec()

        api_document["paths"]["/new"] = {"get": {"x-amazon-apigateway-integration": {"uri": "n"}}}
        api_file.write_text(json.dumps(api_document), encoding="utf-8")

        assert matcher.reload() is True
        assert matcher.match_route("GET", "/new").integration.uri == "n"

    def test_invalid_reload_keeps_previous_routes(self, api_file):
        matcher = RouteMatcher(str(api_file))
        previous = matcher.load_api_spec()

        api_file.write_text("{broken", encoding="utf-8")

        assert matcher.reload() is False
        assert matcher.spec is previous
        with pytest.raises(RouteNotFoundError):
            matcher.match_route("GET", "/new")
