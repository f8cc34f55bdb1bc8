from __future__ import annotations

import re

import httpx
from pydantic import (
    BaseModel,
    Field,
    StrictStr,
    TypeAdapter,
    ValidationError,
    field_validator,
)


CODE_FENCE_PATTERN = re.compile(r"^```[a-zA-Z]*\s*(.*?)\s*```$", re.DOTALL)

MATCHED_IDS_ADAPTER = TypeAdapter(list[StrictStr])


class AISearchError(Exception):
    pass


class ModelNotConfiguredError(AISearchError):
    pass


class SearchCandidate(BaseModel):
    id: StrictStr
    title: str = ""
    url: str = ""


class AISearchRequest(BaseModel):
    query: str = ""
    bookmarks: list[SearchCandidate] = Field(default_factory=list)

    @field_validator("query", "bookmarks", mode="before")
    @classmethod
    def _null_is_blank(cls, value, info):
        if value is None:
            return "" if info.field_name == "query" else []
        return value

    def is_empty(self) -> bool:
        return not self.query.strip() or not self.bookmarks


class _Part(BaseModel):
    text: str | None = None


class _Content(BaseModel):
    parts: list[_Part] = Field(default_factory=list)


class _Candidate(BaseModel):
    content: _Content | None = None


class GenerateContentResponse(BaseModel):
    candidates: list[_Candidate] = Field(default_factory=list)

    def first_text(self, default: str = "[]") -> str:
        if not self.candidates:
            return default
        content = self.candidates[0].content
        if content is None or not content.parts:
            return default
        text = content.parts[0].text
        return default if text is None else text


def build_prompt(query: str, candidates: list[SearchCandidate]) -> str:
    bookmark_list = "\n".join(
        f'{index}. [{candidate.id}] "{candidate.title}" - {candidate.url}'
        for index, candidate in enumerate(candidates, start=1)
    )
    return (
        "You are a bookmark search assistant.\n\n"
        f"Bookmarks:\n{bookmark_list}\n\n"
        f'User query:\n"{query}"\n\n'
        "Return ONLY a JSON array of bookmark IDs that match.\n"
        "If nothing matches, return [].\n"
    )


def parse_matched_ids(text: str) -> list[str]:
    """Validate model output as a JSON array of strings; anything else is ``[]``."""
    cleaned = (text or "").strip()
    fenced = CODE_FENCE_PATTERN.match(cleaned)
    if fenced:
        cleaned = fenced.group(1).strip()
    try:
        return MATCHED_IDS_ADAPTER.validate_json(cleaned)
    except ValidationError:
        return []


def generate_content(
    prompt: str,
    *,
    api_key: str,
    model: str,
    endpoint: str,
    temperature: float,
    max_output_tokens: int,
    timeout: float | None = None,
    transport: httpx.BaseTransport | None = None,
) -> str:
    body = {
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        "generationConfig": {
            "temperature": temperature,
            "maxOutputTokens": max_output_tokens,
        },
    }
    url = f"{endpoint.rstrip('/')}/models/{model}:generateContent"
    try:
        with httpx.Client(timeout=timeout, transport=transport) as client:
            response = client.post(
                url, json=body, headers={"x-goog-api-key": api_key}
            )
            response.raise_for_status()
            envelope = GenerateContentResponse.model_validate_json(response.content)
    except (httpx.HTTPError, ValidationError) as exc:
        raise AISearchError(str(exc) or exc.__class__.__name__) from exc
    return envelope.first_text()


def search_bookmarks(
    request: AISearchRequest,
    *,
    api_key: str | None,
    model: str,
    endpoint: str,
    temperature: float,
    max_output_tokens: int,
    timeout: float | None = None,
    transport: httpx.BaseTransport | None = None,
) -> list[str]:
    if request.is_empty():
        return []
    if not api_key:
        raise ModelNotConfiguredError("Gemini API key not configured")

    text = generate_content(
        build_prompt(request.query, request.bookmarks),
        api_key=api_key,
        model=model,
        endpoint=endpoint,
        temperature=temperature,
        max_output_tokens=max_output_tokens,
        timeout=timeout,
        transport=transport,
    )
    return parse_matched_ids(text)
