"""HTTP client for a running sdcpp-server."""

from __future__ import annotations

import base64
from typing import Any

import httpx


class SdClientError(Exception):
    """Error from SdClient operations."""


def _error_message(response: httpx.Response) -> str:
    """Pull the message out of the server's error envelope if there is one."""
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return str(body["error"].get("message", response.text))
    return response.text


class SdClient:
    """HTTP client wrapper for the image generation API.

    Usage:
        with SdClient("http://gpu-box:8080", token="secret") as client:
            png = client.generate_image("a cat", model="sd-v1.ckpt")
    """

    def __init__(self, base_url: str, token: str | None = None, timeout: float = 300.0) -> None:
        """Initialize client with server URL and bearer token."""
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._client: httpx.Client | None = None

    def __enter__(self) -> SdClient:
        self._client = self._make_client()
        return self

    def __exit__(self, *exc: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    def _make_client(self) -> httpx.Client:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        return httpx.Client(base_url=self.base_url, timeout=self.timeout, headers=headers)

    @property
    def client(self) -> httpx.Client:
        """Get the HTTP client, creating if needed."""
        if self._client is None:
            self._client = self._make_client()
        return self._client

    def _request(self, method: str, path: str, json: dict[str, Any] | None = None) -> Any:
        try:
            resp = self.client.request(method, path, json=json)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as e:
            raise SdClientError(f"HTTP {e.response.status_code}: {_error_message(e.response)}") from e
        except httpx.RequestError as e:
            raise SdClientError(f"Request failed: {e}") from e

    def health(self) -> dict[str, Any]:
        """Get server health."""
        return dict(self._request("GET", "/health"))

    def generate(
        self,
        prompt: str,
        model: str,
        *,
        size: str = "512x512",
        negative_prompt: str | None = None,
        steps: int = 20,
        cfg_scale: float = 7.0,
        seed: int = -1,
    ) -> dict[str, Any]:
        """Request one image; returns the raw ``{created, data}`` response."""
        body: dict[str, Any] = {
            "prompt": prompt,
            "model": model,
            "size": size,
            "steps": steps,
            "cfg_scale": cfg_scale,
            "seed": seed,
        }
        if negative_prompt is not None:
            body["negative_prompt"] = negative_prompt
        return dict(self._request("POST", "/v1/images/generations", json=body))

    def generate_image(self, prompt: str, model: str, **kwargs: Any) -> bytes:
        """Request one image and return the decoded PNG bytes."""
        result = self.generate(prompt, model, **kwargs)
        data = result.get("data") or []
        if not data or "b64_json" not in data[0]:
            raise SdClientError("Response contained no image data")
        return base64.b64decode(data[0]["b64_json"])
