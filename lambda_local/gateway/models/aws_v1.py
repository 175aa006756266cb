# lambda_local/gateway/models/aws_v1.py

"""
Pydantic models for AWS API Gateway v1 (REST API) event structure.

Reference: https://docs.aws.amazon.com/apigateway/latest/developerguide/set-up-lambda-proxy-integrations.html#api-gateway-simple-proxy-for-lambda-input-format

This module provides Pydantic models to build API Gateway Lambda Proxy Integration
event structures in a type-safe manner, and to read the proxy response a
handler returns.
"""

from typing import Dict, Optional, List
from pydantic import BaseModel, Field


class ApiGatewayIdentity(BaseModel):
    """API Gateway Identity object."""

    sourceIp: str
    userAgent: Optional[str] = None


class ApiGatewayRequestContext(BaseModel):
    """API Gateway Request Context object."""

    identity: ApiGatewayIdentity
    requestId: str
    resourceId: str
    resourcePath: str
    httpMethod: str
    apiId: str
    stage: str = "dev"
    path: Optional[str] = None
    protocol: str = "HTTP/1.1"


class APIGatewayProxyEvent(BaseModel):
    """
    AWS API Gateway Proxy Integration (v1) Event Structure

    Defines the structure of the event object received by handler functions.
    Use model_dump(exclude_none=True) to convert to a dict.
    """

    resource: str
    path: str
    httpMethod: str
    headers: Dict[str, str]
    multiValueHeaders: Dict[str, List[str]]
    queryStringParameters: Optional[Dict[str, str]] = None
    multiValueQueryStringParameters: Optional[Dict[str, List[str]]] = None
    pathParameters: Optional[Dict[str, str]] = None
    stageVariables: Optional[Dict[str, str]] = None
    requestContext: ApiGatewayRequestContext
    body: Optional[str] = None
    isBase64Encoded: bool = False


class APIGatewayProxyResponse(BaseModel):
    """Response object a proxy-integrated handler is expected to return."""

    statusCode: int = 200
    headers: Dict[str, str] = Field(default_factory=dict)
    multiValueHeaders: Dict[str, List[str]] = Field(default_factory=dict)
    body: Optional[str] = None
    isBase64Encoded: bool = False
