import json
import re
import time
from typing import Any, Dict, Optional, Callable
from urllib.parse import urlparse, urlunparse
import requests


JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
ENDPOINT_SUFFIXES = ("/chat/completions", "/v1")


class LLMClient:
    """Chat-completions client that asks for, and parses, a JSON object reply."""

    def __init__(
        self,
        provider: str,
        model: str,
        api_key: str,
        base_url: str,
        timeout: int = 60,
        max_retries: int = 0,
        api_version: str = "2024-10-21",
        post_fn: Optional[Callable[..., Any]] = None,
    ) -> None:
        self.provider = provider
        self.model = model
        self.api_key = api_key
        self.base_url = _normalize_base_url(base_url)
        self.timeout = timeout
        self.max_retries = max_retries
        self.api_version = api_version
        self._post = post_fn or requests.post

    def generate_json(
        self,
        system_prompt: str,
        user_prompt: str,
        schema: Optional[Dict[str, Any]] = None,
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        provider = self.provider.lower().strip()
        if provider in {"openai", "deepseek"}:
            url = f"{self.base_url}/v1/chat/completions"
            headers = {
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            }
            params = None
        elif provider == "azure":
            url = f"{self.base_url}/openai/deployments/{self.model}/chat/completions"
            headers = {
                "api-key": self.api_key,
                "Content-Type": "application/json",
            }
            params = {"api-version": self.api_version}
        else:
            raise ValueError(f"Unsupported provider: {self.provider}")

        payload = _build_payload(self.model, system_prompt, user_prompt, schema, temperature, max_tokens)
        data = self._post_with_retry(url, headers, payload, params)
        content = data["choices"][0]["message"]["content"]
        return _parse_json_object(content or "")

    def _post_with_retry(
        self,
        url: str,
        headers: Dict[str, Any],
        payload: Dict[str, Any],
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        resp = None
        last_err = None
        for attempt in range(self.max_retries + 1):
            try:
                resp = self._post(url, headers=headers, json=payload, params=params, timeout=self.timeout)
                resp.raise_for_status()
                return resp.json()
            except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as exc:
                last_err = exc
                if attempt < self.max_retries:
                    time.sleep(min(2 ** attempt, 4))
        if last_err is not None:
            raise last_err
        raise RuntimeError("LLM request failed without response payload")


def _build_payload(
    model: str,
    system_prompt: str,
    user_prompt: str,
    schema: Optional[Dict[str, Any]],
    temperature: float,
    max_tokens: Optional[int],
) -> Dict[str, Any]:
    schema_hint = ""
    if schema:
        schema_hint = (
            "\n\nReturn JSON only that matches this schema (no markdown):\n"
            + json.dumps(schema, ensure_ascii=False)
        )
    payload: Dict[str, Any] = {
        "model": model,
        "temperature": temperature,
        "response_format": {"type": "json_object"},
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt + schema_hint},
        ],
    }
    if max_tokens:
        payload["max_tokens"] = max_tokens
    return payload


def _parse_json_object(text: str) -> Dict[str, Any]:
    """An empty reply is an empty object; prose or code fences around the object are ignored."""
    text = text.strip() or "{}"
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        match = JSON_OBJECT.search(text)
        if match is None:
            raise
        return json.loads(match.group(0))


def _normalize_base_url(base_url: str) -> str:
    """Reduce `/v1` or `/v1/chat/completions` endpoints to the API root."""
    raw = (base_url or "").strip().rstrip("/")
    parsed = urlparse(raw)
    if not parsed.scheme or not parsed.netloc:
        return raw
    path = parsed.path.rstrip("/")
    for suffix in ENDPOINT_SUFFIXES:
        if path.lower().endswith(suffix):
            path = path[: -len(suffix)]
    return urlunparse((parsed.scheme, parsed.netloc, path, "", "", ""))
