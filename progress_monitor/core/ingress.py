"""Thin ingress boundary helpers for Azure Functions entrypoints.

Keeps ``function_app.py`` limited to trigger bindings and handoff:

- **parse_json_body**: decodes an HTTP request body into a dict, raising
  ``ContractError`` for malformed or non-object payloads.
- **json_response**: serialises a dict into an ``HttpResponse``.
- **get_blob_service_client**: creates an ``azure.storage.blob`` client
  from the ``AzureWebJobsStorage`` environment variable, failing fast
  with a structured error if unconfigured.
"""

from __future__ import annotations

import json
import logging
import os
from typing import TYPE_CHECKING, Any

import azure.functions as func

from progress_monitor.core.exceptions import ContractError

if TYPE_CHECKING:
    from azure.storage.blob import BlobServiceClient

logger = logging.getLogger("progress_monitor.core.ingress")


# ---------------------------------------------------------------------------
# HTTP request / response
# ---------------------------------------------------------------------------


def parse_json_body(req: func.HttpRequest, *, allow_empty: bool = False) -> dict[str, Any]:
    """Return the request body as a dict.

    Args:
        req: The incoming HTTP request.
        allow_empty: Treat an empty body as ``{}`` instead of an error.

    Raises:
        ContractError: If the body is not valid JSON or not an object.
    """
    raw = req.get_body()
    if not raw and allow_empty:
        return {}
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError, ValueError) as exc:
        msg = f"Request body is not valid JSON: {exc}"
        raise ContractError(msg, stage="ingress", code="INVALID_JSON") from exc
    if not isinstance(parsed, dict):
        msg = f"Request body must be a JSON object, got {type(parsed).__name__}"
        raise ContractError(msg, stage="ingress", code="INVALID_INPUT_TYPE")
    return parsed


def json_response(payload: dict[str, Any], status_code: int = 200) -> func.HttpResponse:
    """Return *payload* as an ``application/json`` response."""
    return func.HttpResponse(
        body=json.dumps(payload, default=str),
        status_code=status_code,
        mimetype="application/json",
    )


# ---------------------------------------------------------------------------
# Blob service client factory
# ---------------------------------------------------------------------------


def get_blob_service_client() -> BlobServiceClient:
    """Create a ``BlobServiceClient`` from the ``AzureWebJobsStorage`` env var.

    Raises:
        ContractError: If the environment variable is not set.
    """
    from azure.storage.blob import BlobServiceClient

    connection_string = os.environ.get("AzureWebJobsStorage", "")  # noqa: SIM112
    if not connection_string:
        msg = "AzureWebJobsStorage environment variable is not set"
        raise ContractError(msg, stage="ingress", code="MISSING_CONNECTION_STRING")

    return BlobServiceClient.from_connection_string(connection_string)
