import json

import pytest

from lambda_local.gateway.core.exceptions import HandlerResolutionError
from lambda_local.gateway.core.handler_uri import kebab_case, parse_handler_uri
from lambda_local.gateway.services.handler_registry import HandlerRegistry


class TestHandlerUri:
    @pytest.mark.parametrize(
        "value,expected",
        [("GetItem", "get-item"), ("list_items", "list-items"), ("getHTTPThing", "get-httpthing")],
    )
    def test_kebab_case(self, value, expected):
        assert kebab_case(value) == expected

    def test_local_reference(self):
        parsed = parse_handler_uri("$lGetUser")
        assert parsed.name == "get-user"
        assert parsed.local is True

    def test_invocation_uri(self):
        uri = (
            "arn:aws:apigateway:eu-west-1:lambda:path/2015-03-31/functions/"
            "arn:aws:lambda:eu-west-1:123456789012:function:orders:live/invocations"
        )
        parsed = parse_handler_uri(uri)
        assert parsed.name == "orders"
        assert parsed.qualifier == "live"

    def test_partial_arn_and_plain_name(self):
        assert parse_handler_uri("123456789012:function:orders").name == "orders"
        assert parse_handler_uri("orders").name == "orders"

    def test_empty_uri(self):
        with pytest.raises(ValueError):
            parse_handler_uri("  ")


@pytest.fixture
def registry_root(tmp_path):
    (tmp_path / "plain").mkdir()
    (tmp_path / "plain" / "lambda_function.py").write_text("def lambda_handler(e, c): pass\n")

    yml = tmp_path / "with-yaml"
    yml.mkdir()
    (yml / "function.yml").write_text(
        "handler: app.main\n"
        "timeout: 2.5\n"
        "memory_size: 256\n"
        "environment:\n"
        "  TABLE: ${TEST_TABLE_NAME}\n"
        "  RETRIES: 3\n"
    )

    cf = tmp_path / "with-cf"
    cf.mkdir()
    (cf / "cf.json").write_text(
        json.dumps(
            {
                "Properties": {
                    "Handler": "pkg.handler.run",
                    "Timeout": 10,
                    "MemorySize": 512,
                    "Environment": {"Variables": {"MODE": "cf"}},
                }
            }
        )
    )
    return tmp_path


def test_defaults_without_descriptor(registry_root):
    target = HandlerRegistry(str(registry_root)).resolve("plain")
    assert target.name == "plain"
    assert target.handler_path == str(registry_root.resolve() / "plain" / "lambda_function.py")
    assert target.function_name == "lambda_handler"
    assert target.timeout_ms == 6000
    assert target.memory_size == 1024
    assert target.environment == {}


def test_yaml_descriptor(registry_root, monkeypatch):
    monkeypatch.setenv("TEST_TABLE_NAME", "users")
    target = HandlerRegistry(str(registry_root)).resolve("$lWithYaml")
    assert target.handler_path.endswith("with-yaml/app.py")
    assert target.function_name == "main"
    assert target.timeout_ms == 2500
    assert target.memory_size == 256
    assert target.environment == {"TABLE": "users", "RETRIES": "3"}


def test_cf_descriptor(registry_root):
    target = HandlerRegistry(str(registry_root)).resolve(
        "arn:aws:lambda:us-east-1:123456789012:function:with-cf"
    )
    assert target.handler_path.endswith("with-cf/pkg/handler.py")
    assert target.function_name == "run"
    assert target.timeout_ms == 10000
    assert target.memory_size == 512
    assert target.environment == {"MODE": "cf"}


def test_timeout_override(registry_root):
    registry = HandlerRegistry(str(registry_root), timeout_override=1)
    assert registry.resolve("with-cf").timeout_ms == 1000


def test_missing_directory(registry_root):
    with pytest.raises(HandlerResolutionError) as exc_info:
        HandlerRegistry(str(registry_root)).resolve("$lNope")
    assert exc_info.value.uri == "$lNope"


def test_missing_uri(registry_root):
    with pytest.raises(HandlerResolutionError):
        HandlerRegistry(str(registry_root)).resolve(None)


def test_invalid_descriptor(registry_root):
    (registry_root / "plain" / "function.yml").write_text("handler: [unclosed\n")
    with pytest.raises(HandlerResolutionError):
        HandlerRegistry(str(registry_root)).resolve("plain")


@pytest.mark.parametrize(
    "filename, content",
    [
        ("function.yml", "- handler: app.main\n"),
        ("function.yml", "just a string\n"),
        ("function.yml", "handler: 42\n"),
        ("function.yml", "environment: [A, B]\n"),
        ("cf.json", "[1, 2]"),
        ("cf.json", '{"Properties": "app.main"}'),
    ],
)
def test_descriptor_with_wrong_shape(registry_root, filename, content):
    (registry_root / "plain" / filename).write_text(content)

    with pytest.raises(HandlerResolutionError):
        HandlerRegistry(str(registry_root)).resolve("plain")
