"""Optional LLM-based expense category classifier (feature-flagged).

The LLM is only asked to pick one category from the closed set and report a confidence. Its output
is validated before use; anything unexpected raises `LLMClassifierError` and the caller falls back
to keyword matching.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from lumine.intent.schema import Category


class LLMClassifierError(RuntimeError):
    """Raised when the LLM classifier fails to return a usable answer."""


@dataclass(frozen=True)
class LLMConfig:
    """Configuration for the OpenAI-style Chat Completions API call."""

    api_key: str
    model: str = "gpt-4o-mini"
    api_base: str = "https://api.openai.com/v1"
    timeout_s: float = 10.0


@dataclass(frozen=True)
class CategoryGuess:
    category: Category
    confidence: int
    reason: str = ""


def _load_prompt() -> str:
    prompt_path = Path(__file__).resolve().parent / "prompt_category_v1.md"
    return prompt_path.read_text(encoding="utf-8")


def _strip_code_fences(text: str) -> str:
    value = (text or "").strip()
    if value.startswith("```"):
        value = value.strip("`")
        value = value.removeprefix("json").strip()
    return value


def _chat_completions_url(api_base: str) -> str:
    return api_base.rstrip("/") + "/chat/completions"


def guess_from_obj(obj: Any) -> CategoryGuess:
    """Validate the decoded `{kategori, confidence, reason}` object."""

    if not isinstance(obj, dict):
        raise LLMClassifierError("LLM answer is not a JSON object")

    raw_category = str(obj.get("kategori") or obj.get("category") or "").strip().capitalize()
    if raw_category == "Tagihan":
        raw_category = Category.utilitas.value
    try:
        category = Category(raw_category)
    except ValueError as exc:
        raise LLMClassifierError(f"LLM returned unknown category: {raw_category!r}") from exc

    try:
        confidence = int(float(obj.get("confidence", 0)))
    except (TypeError, ValueError) as exc:
        raise LLMClassifierError("LLM returned a non-numeric confidence") from exc

    return CategoryGuess(
        category=category,
        confidence=max(0, min(100, confidence)),
        reason=str(obj.get("reason") or ""),
    )


def _build_request(description: str, config: LLMConfig) -> Request:
    body = {
        "model": config.model,
        "temperature": 0,
        "response_format": {"type": "json_object"},
        "messages": [
            {"role": "system", "content": _load_prompt()},
            {"role": "user", "content": description},
        ],
    }
    return Request(
        _chat_completions_url(config.api_base),
        method="POST",
        headers={
            "Authorization": f"Bearer {config.api_key}",
            "Content-Type": "application/json",
        },
        data=json.dumps(body).encode("utf-8"),
    )


def _content_from_response(raw: bytes) -> Any:
    """Pull the first choice's message out of a chat completions body and decode it as JSON."""

    try:
        content = json.loads(raw)["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError) as exc:
        raise LLMClassifierError("Unexpected LLM response format") from exc

    try:
        return json.loads(_strip_code_fences(content))
    except (json.JSONDecodeError, TypeError) as exc:
        raise LLMClassifierError("LLM did not return valid JSON") from exc


def classify_category_via_llm(description: str, *, config: LLMConfig) -> CategoryGuess:
    """Ask an OpenAI-compatible `/chat/completions` endpoint for a category guess.

    Raises:
        LLMClassifierError: On transport failures or any answer that does not validate.
    """

    request = _build_request(description, config)
    try:
        with urlopen(request, timeout=config.timeout_s) as resp:  # noqa: S310
            raw = resp.read()
    except HTTPError as exc:
        raise LLMClassifierError(f"LLM HTTP error: {exc.code}") from exc
    except (URLError, TimeoutError) as exc:
        raise LLMClassifierError("LLM connection error") from exc

    return guess_from_obj(_content_from_response(raw))


class LLMCategoryClassifier:
    """`CategoryClassifier` implementation backed by the chat completions call above."""

    def __init__(self, config: LLMConfig) -> None:
        self.config = config

    def classify(self, description: str) -> CategoryGuess:
        return classify_category_via_llm(description, config=self.config)
