"""
Response Mapper

Selects the integration response matching a handler result and renders the
HTTP response body from its template.
"""

import base64
import binascii
import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from lambda_local.sandbox.models import ExecutionResult

from ..core.exceptions import ResponseTemplateError
from ..mapping import InputBinding, RequestScope, TemplateInterpreter
from ..models.api_spec import IntegrationDefinition, ResponseDefinition
from ..models.aws_v1 import APIGatewayProxyResponse
from ..models.response import MappedResponse
from .integration_mapper import DEFAULT_CONTENT_TYPE, media_type

logger = logging.getLogger("gateway.response_mapper")

HEADER_PREFIX = "method.response.header."
# The older `integration.request.body.` spelling is still found in API definitions.
BODY_PREFIXES = ("integration.response.body.", "integration.request.body.")


def select_response(
    integration: IntegrationDefinition, result_text: str
) -> Optional[ResponseDefinition]:
    """
    First pattern (in declaration order) matching the start of `result_text`.

    Returns None when only `default` would apply.
    """
    for pattern, response in integration.response_patterns():
        if re.match(pattern, result_text):
            return response
    return None


def accept_candidates(accept: Optional[str]) -> List[str]:
    if not accept:
        return [DEFAULT_CONTENT_TYPE]
    candidates = [media_type(part, default="") for part in accept.split(",")]
    return [candidate for candidate in candidates if candidate] or [DEFAULT_CONTENT_TYPE]


def select_response_template(
    templates: Dict[str, str], accept: Optional[str]
) -> Tuple[str, Optional[str]]:
    """(content type, template) for the Accept header; template is None for pass-through."""
    for candidate in accept_candidates(accept):
        if candidate in templates:
            return candidate, templates[candidate] or None
    if DEFAULT_CONTENT_TYPE in templates:
        return DEFAULT_CONTENT_TYPE, templates[DEFAULT_CONTENT_TYPE] or None
    return DEFAULT_CONTENT_TYPE, None


def _dig(document: Any, dotted: str) -> Any:
    value = document
    for part in dotted.split("."):
        if isinstance(value, dict) and part in value:
            value = value[part]
        elif isinstance(value, list) and part.lstrip("-").isdigit():
            try:
                value = value[int(part)]
            except IndexError:
                return None
        else:
            return None
    return value


def map_response_parameters(parameters: Dict[str, str], body: str) -> Dict[str, str]:
    """
    Header values from `method.response.header.<Name>` mappings.

    Sources are `'constant'` or `integration.response.body.<field>`; a body
    field that cannot be read leaves the source expression as the value.
    """
    headers: Dict[str, str] = {}
    parsed: Any = None
    for key, source in parameters.items():
        if not key.startswith(HEADER_PREFIX):
            continue
        name = key[len(HEADER_PREFIX) :]
        value = source
        prefix = next((p for p in BODY_PREFIXES if source.startswith(p)), None)
        if prefix is not None:
            if parsed is None:
                try:
                    parsed = json.loads(body)
                except ValueError:
                    parsed = {}
            found = _dig(parsed, source[len(prefix) :])
            if found not in (None, "", False):
                value = found if isinstance(found, str) else json.dumps(found)
        headers[name] = value.strip("'")
    return headers


def error_response(status_code: int, message: str, error_type: str) -> MappedResponse:
    return MappedResponse(
        status_code=status_code,
        body=json.dumps({"message": message, "errorType": error_type}),
    )


class ResponseMapper:
    def __init__(
        self,
        stage_variables: Optional[Dict[str, str]] = None,
        interpreter: Optional[TemplateInterpreter] = None,
    ):
        self.stage_variables = dict(stage_variables or {})
        self.interpreter = interpreter or TemplateInterpreter(error_class=ResponseTemplateError)

    def render(
        self,
        result: ExecutionResult,
        integration: IntegrationDefinition,
        context: Dict[str, Any],
        accept: Optional[str] = None,
    ) -> MappedResponse:
        if integration.type == "aws_proxy":
            return self.render_proxy(result)

        result_text = result.as_text()
        response = select_response(integration, result_text)
        if response is None:
            if not result.success:
                logger.warning(
                    f"Unmatched handler failure: {result.kind.value}",
                    extra={"result_kind": result.kind.value, "error_detail": result.message},
                )
                body = result.error_body()
                return MappedResponse(status_code=500, body=json.dumps(body))
            response = integration.default_response

        content_type, template = select_response_template(response.response_templates, accept)
        body = result_text
        if template is not None:
            # Failures expose the Lambda error object to the template.
            input_text = result_text if result.success else json.dumps(result.error_document())
            scope = RequestScope(
                input=InputBinding.from_text(input_text),
                context=context,
                stage_variables=self.stage_variables,
            )
            body = self.interpreter.evaluate(template, scope)

        return MappedResponse(
            status_code=response.status_code,
            body=body,
            headers=map_response_parameters(response.response_parameters, body),
            content_type=content_type,
        )

    def render_proxy(self, result: ExecutionResult) -> MappedResponse:
        """
        Convert a proxy-integration handler output into the HTTP response.
        """
        if not result.success:
            logger.warning(
                f"Proxy handler failed: {result.kind.value}",
                extra={"result_kind": result.kind.value, "error_detail": result.message},
            )
            return MappedResponse(status_code=502, body=json.dumps(result.error_body()))

        payload = result.payload
        if isinstance(payload, str):
            try:
                payload = json.loads(payload)
            except ValueError:
                pass

        # Outputs without statusCode are returned as-is.
        if not (isinstance(payload, dict) and "statusCode" in payload):
            return MappedResponse(status_code=200, body=result.as_text())

        payload = dict(payload)
        if payload.get("body") is not None and not isinstance(payload["body"], str):
            payload["body"] = json.dumps(payload["body"])
        if isinstance(payload.get("headers"), dict):
            payload["headers"] = {key: str(value) for key, value in payload["headers"].items()}

        try:
            proxy = APIGatewayProxyResponse.model_validate(payload)
        except ValueError as e:
            logger.error(f"Malformed proxy response: {e}")
            return error_response(502, "Malformed Lambda proxy response", "ProxyResponseError")

        body = proxy.body
        if proxy.isBase64Encoded and body:
            try:
                base64.b64decode(body, validate=True)
            except binascii.Error:
                return error_response(502, "Malformed Lambda proxy response", "ProxyResponseError")

        headers = {key: ", ".join(values) for key, values in proxy.multiValueHeaders.items()}
        headers.update(proxy.headers)
        content_type = next(
            (value for key, value in headers.items() if key.lower() == "content-type"),
            DEFAULT_CONTENT_TYPE,
        )
        return MappedResponse(
            status_code=proxy.statusCode,
            body=body or "",
            headers=headers,
            content_type=content_type,
            is_base64_encoded=proxy.isBase64Encoded,
        )
