"""Order HTTP API: response envelope, actor middleware, and routes."""

from api.base import APIResponse, ErrorCodes, error_response, respond, success_response
