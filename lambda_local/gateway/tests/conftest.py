import json
import os
import textwrap

import pytest

# Config is initialized at import time, so set the environment at module level.
os.environ["LOG_CONFIG_PATH"] = "/nonexistent/gateway_log.yaml"
os.environ["CONFIG_RELOAD_ENABLED"] = "false"
os.environ["STAGE"] = "test"


@pytest.fixture
def api_document():
    """Minimal Swagger document with one route per integration flavour."""
    return {
        "swagger": "2.0",
        "info": {"title": "Test API", "version": "1"},
        "paths": {
            "/users/{id}": {
                "get": {
                    "x-amazon-apigateway-integration": {
                        "type": "aws",
                        "uri": "$lGetUser",
                        "requestTemplates": {
                            "application/json": textwrap.dedent(
                                """\
                                {
                                  "id": "$input.params('id')",
                                  "query": $input.params().querystring,
                                  "requestId": "$context.requestId"
                                }"""
                            )
                        },
                        "responses": {
                            "default": {
                                "statusCode": "200",
                                "responseParameters": {
                                    "method.response.header.X-User": "integration.response.body.name"
                                },
                            },
                            "NotFound.*": {
                                "statusCode": "404",
                                "responseTemplates": {
                                    "application/json": '{"error": "$input.path(\'$.errorMessage\')"}'
                                },
                            },
                        },
                    }
                }
            },
            "/echo": {
                "post": {
                    "x-amazon-apigateway-integration": {
                        "type": "aws",
                        "uri": "$lEcho",
                        "requestTemplates": {"application/json": "$input.json('$')"},
                    }
                }
            },
            "/broken": {
                "post": {
                    "x-amazon-apigateway-integration": {
                        "type": "aws",
                        "uri": "$lEcho",
                        "requestTemplates": {"application/json": '{"value": $input.body}'},
                    }
                }
            },
            "/proxy/{path+}": {
                "x-amazon-apigateway-any-method": {
                    "x-amazon-apigateway-integration": {"type": "aws_proxy", "uri": "$lProxy"}
                }
            },
            "/mock": {
                "get": {
                    "x-amazon-apigateway-integration": {
                        "type": "mock",
                        "responses": {
                            "default": {
                                "statusCode": "200",
                                "responseTemplates": {"application/json": '{"mocked": true}'},
                            }
                        },
                    }
                }
            },
            "/legacy": {
                "get": {"x-amazon-apigateway-integration": {"type": "http", "uri": "http://x"}}
            },
        },
    }


@pytest.fixture
def api_file(tmp_path, api_document):
    path = tmp_path / "api.json"
    path.write_text(json.dumps(api_document), encoding="utf-8")
    return path


HANDLERS = {
    "get-user": """
def lambda_handler(event, context):
    if event["id"] == "missing":
        raise LookupError("NotFound: no user " + event["id"])
    return {"id": event["id"], "name": "user-" + event["id"], "query": event["query"]}
""",
    "echo": """
import os

def lambda_handler(event, context):
    return {"event": event, "stage": os.environ.get("AWS_STAGE"), "fn": context.function_name}
""",
    "proxy": """
import json

def lambda_handler(event, context):
    return {
        "statusCode": 201,
        "headers": {"Content-Type": "application/json", "X-Path": event["path"]},
        "body": json.dumps({"proxy": event["pathParameters"]["path"], "method": event["httpMethod"]}),
    }
""",
}


@pytest.fixture
def functions_root(tmp_path):
    root = tmp_path / "lambdas"
    for name, source in HANDLERS.items():
        directory = root / name
        directory.mkdir(parents=True)
        (directory / "lambda_function.py").write_text(source, encoding="utf-8")
    return root
