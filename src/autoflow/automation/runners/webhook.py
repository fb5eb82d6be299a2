"""HTTP webhook runner (``http.webhook``).

Sends one HTTP request built from the node config.  ``url``, header
values and ``body`` are rendered as templates against the context's
template data; a body that renders to a mapping or list is sent as JSON.

Output schema::

    {"response": {"status": int, "body": Any, "headers": {str: str}}}

A non-2xx response or a transport error is reported as a failed result,
not raised, so the executor records the response on the node run.
"""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

from autoflow.automation.context import AutomationContext
from autoflow.automation.result import NodeResult
from autoflow.automation.runners.base import NodeRunner
from autoflow.automation.templates import render_string, render_structure
from autoflow.framework.logging import get_logger

logger = get_logger(__name__)

ALLOWED_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})


class WebhookConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str = Field(min_length=1)
    method: str = "POST"
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None

    @field_validator("method")
    @classmethod
    def validate_method(cls, v: str) -> str:
        upper = v.upper()
        if upper not in ALLOWED_METHODS:
            raise ValueError(f"method must be one of {sorted(ALLOWED_METHODS)}")
        return upper


def _response_body(response: httpx.Response) -> Any:
    content_type = response.headers.get("content-type", "")
    if "json" in content_type:
        try:
            return response.json()
        except ValueError:
            pass
    return response.text


class HttpWebhookRunner(NodeRunner):
    """Runner for outbound webhooks.

    Args:
        client: Shared ``httpx.Client``; one is created lazily if omitted
        timeout: Per-request timeout in seconds
    """

    type = "http.webhook"
    config_model = WebhookConfig

    def __init__(self, client: httpx.Client | None = None, timeout: float = 15.0):
        self._client = client
        self.timeout = timeout

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout)
        return self._client

    def run(
        self,
        context: AutomationContext,
        config: WebhookConfig,
        input: dict[str, Any],
    ) -> NodeResult:
        data = context.to_template_data(input)
        url = render_string(config.url, data)
        headers = {name: render_string(value, data) for name, value in config.headers.items()}
        body = render_structure(config.body, data)

        request_kwargs: dict[str, Any] = {"headers": headers, "timeout": self.timeout}
        if isinstance(body, (dict, list)):
            request_kwargs["json"] = body
        elif body is not None:
            request_kwargs["content"] = str(body)

        try:
            response = self.client.request(config.method, url, **request_kwargs)
        except httpx.TimeoutException as e:
            logger.warning("automation.webhook.timeout", url=url, error=str(e))
            return NodeResult.fail(f"Webhook request timed out: {e}", {"error": str(e), "url": url})
        except httpx.HTTPError as e:
            logger.warning("automation.webhook.transport_error", url=url, error=str(e))
            return NodeResult.fail(f"Webhook request failed: {e}", {"error": str(e), "url": url})

        output = {
            "response": {
                "status": response.status_code,
                "body": _response_body(response),
                "headers": dict(response.headers),
            }
        }
        logger.info(
            "automation.webhook.sent",
            url=url,
            method=config.method,
            status=response.status_code,
        )
        if response.is_success:
            return NodeResult.ok(output)
        return NodeResult.fail(f"Webhook responded with HTTP {response.status_code}", output)


__all__ = ["WebhookConfig", "HttpWebhookRunner"]
