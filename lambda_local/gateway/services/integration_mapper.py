"""
Integration Mapper

Turns an incoming request into the event and context handed to a handler.
`aws` integrations render a request template; `aws_proxy` integrations get
the Lambda proxy event.
"""

import base64
import json
import logging
import uuid
from typing import Any, Dict, Optional

from lambda_local.common.core.request_context import get_request_id

from ..core.exceptions import EventBuildError
from ..mapping import InputBinding, RequestScope, TemplateInterpreter
from ..models.api_spec import IntegrationDefinition
from ..models.aws_v1 import (
    ApiGatewayIdentity,
    APIGatewayProxyEvent,
    ApiGatewayRequestContext,
)
from ..models.context import InputContext, MappedEvent

logger = logging.getLogger("gateway.integration_mapper")

DEFAULT_CONTENT_TYPE = "application/json"
DESTINATION_PREFIX = "integration.request."
SOURCE_PREFIX = "method.request."
LOCATIONS = ("path", "querystring", "header")


def media_type(value: Optional[str], default: str = DEFAULT_CONTENT_TYPE) -> str:
    """`text/plain; charset=utf-8` -> `text/plain`"""
    if not value:
        return default
    return value.split(";", 1)[0].strip().lower() or default


def select_template(templates: Dict[str, str], content_type: str) -> Optional[str]:
    """Exact content-type match, else the first declared template."""
    if not templates:
        return None
    if content_type in templates:
        return templates[content_type]
    for key, template in templates.items():
        if key.lower() == content_type:
            return template
    return next(iter(templates.values()))


def _split_location(expression: str):
    location, _, name = expression.partition(".")
    location = location.lower()
    if location == "header":
        name = name.lower()
    return location, name


class IntegrationMapper:
    def __init__(
        self,
        stage: str = "dev",
        api_id: str = "local-lambda",
        stage_variables: Optional[Dict[str, str]] = None,
        interpreter: Optional[TemplateInterpreter] = None,
    ):
        self.stage = stage
        self.api_id = api_id
        self.stage_variables = dict(stage_variables or {})
        self.interpreter = interpreter or TemplateInterpreter()

    def build(self, request: InputContext, integration: IntegrationDefinition) -> MappedEvent:
        """
        Build the handler event and context for a matched request.

        Raises:
            EventBuildError: the rendered request template is not valid JSON
        """
        context = self.build_context(request)
        if integration.type == "aws_proxy":
            return MappedEvent(event=self.build_proxy_event(request, context), context=context)

        params = self.build_integration(request, integration.request_parameters)
        template = select_template(
            integration.request_templates, media_type(request.content_type)
        )
        if template is None or not template.strip():
            return MappedEvent(event={}, context=context)

        body = request.body.decode("utf-8", errors="replace")
        if body:
            binding = InputBinding.from_text(
                body, path=params["path"], querystring=params["querystring"], header=params["header"]
            )
        else:
            binding = InputBinding(
                payload=params,
                path=params["path"],
                querystring=params["querystring"],
                header=params["header"],
            )

        scope = RequestScope(input=binding, context=context, stage_variables=self.stage_variables)
        rendered = self.interpreter.evaluate(template, scope)
        try:
            event = json.loads(rendered)
        except ValueError as e:
            logger.error(
                "Request template did not produce valid JSON",
                extra={"route": context["resourceId"], "snippet": rendered[:200]},
            )
            raise EventBuildError(str(e), rendered) from e
        return MappedEvent(event=event, context=context)

    def build_context(self, request: InputContext) -> Dict[str, Any]:
        route_path = request.route_path or request.path
        return {
            "apiId": self.api_id,
            "httpMethod": request.method,
            "identity": {},
            "requestId": get_request_id() or str(uuid.uuid4()),
            "resourceId": f"{request.method} {route_path}",
            "resourcePath": route_path,
            "stage": self.stage,
        }

    def build_integration(
        self, request: InputContext, parameters: Dict[str, str]
    ) -> Dict[str, Any]:
        """
        `{params, path, querystring, header}` with requestParameters applied.
        """
        source = {
            "path": dict(request.path_params),
            "querystring": dict(request.query_params),
            "header": {key.lower(): value for key, value in request.headers.items()},
        }
        integration: Dict[str, Any] = {location: dict(source[location]) for location in LOCATIONS}

        for destination, expression in parameters.items():
            if destination.lower().startswith(DESTINATION_PREFIX):
                destination = destination[len(DESTINATION_PREFIX) :]
            location, name = _split_location(destination)
            if location not in LOCATIONS or not name:
                logger.warning(f"Ignoring request parameter mapping to '{destination}'")
                continue
            integration[location][name] = self._resolve_parameter(expression, source)

        merged: Dict[str, Any] = {}
        for location in LOCATIONS:
            merged.update(integration[location])
        integration["params"] = merged
        return integration

    def _resolve_parameter(self, expression: str, source: Dict[str, Dict[str, str]]) -> Any:
        expression = expression.strip()
        if len(expression) >= 2 and expression[0] == expression[-1] == "'":
            return expression[1:-1]
        if expression.lower().startswith(SOURCE_PREFIX):
            expression = expression[len(SOURCE_PREFIX) :]
        location, name = _split_location(expression)
        return source.get(location, {}).get(name)

    def build_proxy_event(self, request: InputContext, context: Dict[str, Any]) -> Dict[str, Any]:
        """
        Build an API Gateway Lambda Proxy Integration-compatible event object.
        """
        body = request.body

        # gzip bodies are always passed base64 encoded.
        is_base64 = "gzip" in request.headers.get("content-encoding", "").lower()
        if is_base64:
            body_content = base64.b64encode(body).decode("utf-8")
        else:
            try:
                body_content = body.decode("utf-8")
            except UnicodeDecodeError:
                body_content = base64.b64encode(body).decode("utf-8")
                is_base64 = True

        event_model = APIGatewayProxyEvent(
            resource=context["resourcePath"],
            path=request.path,
            httpMethod=request.method,
            headers=request.headers,
            multiValueHeaders=request.multi_headers,
            queryStringParameters=request.query_params or None,
            multiValueQueryStringParameters=request.multi_query_params or None,
            pathParameters=request.path_params or None,
            stageVariables=self.stage_variables or None,
            requestContext=ApiGatewayRequestContext(
                identity=ApiGatewayIdentity(
                    sourceIp=request.headers.get("x-forwarded-for", request.source_ip),
                    userAgent=request.headers.get("user-agent"),
                ),
                requestId=context["requestId"],
                resourceId=context["resourceId"],
                resourcePath=context["resourcePath"],
                httpMethod=request.method,
                apiId=self.api_id,
                stage=self.stage,
                path=request.path,
            ),
            body=body_content or None,
            isBase64Encoded=is_base64,
        )
        return event_model.model_dump(exclude_none=True)
