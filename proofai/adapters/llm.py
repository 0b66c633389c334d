from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from openai import AsyncOpenAI, OpenAIError

from proofai.report.normalize import normalize_report_input
from proofai.types import ReportInput


logger = logging.getLogger(__name__)

INCIDENT_SYSTEM_PROMPT = """\
You are a legal analyst. You are reviewing a video from the workplace and have access to its transcript and metadata.

Your job is to extract specific, factual, and professional insights from the recording. Respond with a fully
filled-out report. DO NOT repeat instructions. DO NOT return template headers. NEVER mention AI.

Return a single JSON object with exactly these keys:
  "summary": string, the main event narrative,
  "participants": list of strings, "Name: Role / Involvement",
  "keyEvents": list of strings, "[Timestamp] Event description",
  "context": {"time": string, "location": string, "environmentalFactors": string},
  "notableQuotes": list of exact quotes from the transcript,
  "reportRelevance": {"legal": bool, "hr": bool, "safety": bool, "explanation": string}
Use an empty string or empty list when the transcript does not say."""

_CODE_FENCE = re.compile(r'^```(?:json)?\s*|\s*```$', re.IGNORECASE)


@dataclass
class BasicLLMConfig:
    base_url: str | None
    api_key: str | None
    model: str
    timeout_seconds: int
    temperature: float = 0.3
    max_tokens: int = 1500


class BasicLLMClient:
    """Minimal async OpenAI client helper."""

    def __init__(self, cfg: BasicLLMConfig):
        self.cfg = cfg
        self._client: AsyncOpenAI | None = None

    @property
    def configured(self) -> bool:
        return bool(self.cfg.api_key)

    def client(self) -> AsyncOpenAI:
        if not self.configured:
            raise RuntimeError('LLM client is not configured')
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.cfg.api_key,
                base_url=self.cfg.base_url,
                timeout=max(30, int(self.cfg.timeout_seconds)),
            )
        return self._client


def parse_summary_json(content: str) -> dict[str, Any]:
    text = _CODE_FENCE.sub('', str(content or '').strip()).strip()
    if not text:
        raise RuntimeError('No summary generated')
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise RuntimeError(f'Summary response is not valid JSON: {exc}') from exc
    if not isinstance(payload, dict):
        raise RuntimeError(f'Summary response must be a JSON object, got {type(payload).__name__}')
    return payload


class IncidentSummarizer:
    def __init__(self, llm: BasicLLMClient):
        self.llm = llm

    async def summarize(self, transcript: str, *, video_url: str | None = None) -> ReportInput:
        transcript = str(transcript or '').strip()
        if not transcript:
            raise RuntimeError('Invalid or missing transcript')

        prompt = f'Transcript:\n{transcript}'
        if video_url:
            prompt = f'Video URL: {video_url}\n\n{prompt}'

        try:
            response = await self.llm.client().chat.completions.create(
                model=self.llm.cfg.model,
                messages=[
                    {'role': 'system', 'content': INCIDENT_SYSTEM_PROMPT},
                    {'role': 'user', 'content': prompt},
                ],
                temperature=self.llm.cfg.temperature,
                max_tokens=self.llm.cfg.max_tokens,
                response_format={'type': 'json_object'},
            )
        except OpenAIError as exc:
            logger.warning('Summary request failed: %s', exc)
            raise RuntimeError(f'Summary request failed: {exc}') from exc
        choices = getattr(response, 'choices', None) or []
        content = choices[0].message.content if choices else None
        payload = parse_summary_json(content or '')
        logger.debug('Summary payload keys: %s', sorted(payload))

        payload.setdefault('transcriptText', transcript)
        if video_url:
            payload.setdefault('videoUrl', video_url)
        return normalize_report_input(payload)
