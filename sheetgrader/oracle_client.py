"""
Vision-model oracle that reads handwritten answers from an answer-sheet image.

Sends the sheet to an OpenAI-compatible chat completions endpoint, parses
the JSON it returns and scores the extracted answers against the key.
"""

import base64
import json
import logging
import mimetypes
import netrc
import os
import re
from pathlib import Path
from typing import Any, Protocol

import openai
from openai import AsyncOpenAI

from .config import MAX_TOKENS, ORACLE_MODEL
from .errors import (
    InvalidImageError,
    OracleError,
    OracleResponseError,
    OracleTransportError,
    QuotaExhaustedError,
    RateLimitedError,
)
from .models import AnswerKeyConfig, OracleResult
from .scoring import normalize_answers, overall_confidence, score_answers

logger = logging.getLogger(__name__)


class OracleClient(Protocol):
    """Anything that turns an image and an answer key into an oracle result."""

    async def evaluate(self, image: str, config: AnswerKeyConfig) -> OracleResult | dict[str, Any]:
        ...


def encode_image(image_path: Path) -> str:
    """
    Read an image file into a base64 data URL.

    Args:
        image_path: Path to the image file.

    Returns:
        data: URL suitable for the image_url content part.

    Raises:
        InvalidImageError: If the file is missing or empty.
    """
    try:
        data = image_path.read_bytes()
    except OSError as e:
        raise InvalidImageError(f"Cannot read {image_path}: {e}") from e
    if not data:
        raise InvalidImageError(f"Image file is empty: {image_path}")

    mime_type = mimetypes.guess_type(image_path.name)[0] or "image/jpeg"
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('utf-8')}"


def _resolve_api_key(api_key: str | None) -> str | None:
    # Priority: 1. Argument, 2. .netrc (machine OPENAI), 3. Environment variable
    if api_key is None:
        try:
            secrets = netrc.netrc()
            auth = secrets.authenticators("OPENAI")
            if auth:
                api_key = auth[0]
        except (FileNotFoundError, netrc.NetrcParseError):
            pass
    return api_key or os.environ.get("OPENAI_API_KEY")


class OpenAIOracleClient:
    """
    Oracle backed by a vision-capable chat model.
    """

    def __init__(
        self,
        model: str = ORACLE_MODEL,
        api_key: str | None = None,
        base_url: str | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        """
        Initialize the oracle client.

        Args:
            model: Vision-capable model name.
            api_key: API key. Falls back to .netrc and OPENAI_API_KEY.
            base_url: Optional OpenAI-compatible gateway URL.
            client: Preconfigured AsyncOpenAI client (mainly for tests).

        Raises:
            ValueError: If no API key is provided or found.
        """
        self.model = model

        if client is not None:
            self.client = client
            return

        api_key = _resolve_api_key(api_key)
        if not api_key:
            raise ValueError(
                "OpenAI API key required. Set OPENAI_API_KEY environment variable, "
                "add machine OPENAI to your .netrc file, or pass api_key parameter."
            )
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)

    async def evaluate(self, image: str, config: AnswerKeyConfig) -> OracleResult:
        """
        Extract and score the answers on one sheet.

        Args:
            image: Image as a data URL (see encode_image) or an https URL.
            config: Answer key and detection flags.

        Returns:
            Validated OracleResult.

        Raises:
            OracleError: Subclass describing why the call failed.
        """
        if not image:
            raise InvalidImageError("No image data supplied")

        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": self._build_prompt(config)},
                            {"type": "image_url", "image_url": {"url": image}},
                        ],
                    }
                ],
                response_format={"type": "json_object"},
                max_tokens=MAX_TOKENS,
            )
        except openai.APIError as e:
            raise map_api_error(e) from e

        content = completion.choices[0].message.content or ""
        logger.debug("Oracle raw response: %s", content[:2000])
        return self.parse_response(content, config)

    def parse_response(self, content: str, config: AnswerKeyConfig) -> OracleResult:
        """
        Turn the model's JSON text into a scored OracleResult.

        Answer arrays of the wrong length are padded or truncated to the key
        length and the mismatch is logged.

        Raises:
            OracleResponseError: If no answers can be found in the text.
        """
        parsed = _extract_json(content)
        answers = parsed.get("answers")
        if not isinstance(answers, list):
            raise OracleResponseError(f"Response has no answers array: {content[:200]}")

        key = list(config.answers)
        if len(answers) != len(key):
            logger.warning("Expected %d answers but the oracle returned %d", len(key), len(answers))
        extracted = normalize_answers([str(a) if a is not None else "" for a in answers], len(key))

        confidences = parsed.get("confidence") or []
        if not isinstance(confidences, list):
            confidences = []
        notes = parsed.get("notes") or []
        if not isinstance(notes, list):
            notes = []

        score, accuracy, detailed = score_answers(extracted, key, confidences, notes)
        low_count = sum(1 for r in detailed if r.confidence == "low")

        return OracleResult(
            extracted_answers=extracted,
            correct_answers=key,
            roll_number=parsed.get("rollNumber") if config.detect_roll_number else None,
            subject_code=parsed.get("subjectCode") if config.detect_subject_code else None,
            score=score,
            total_questions=len(key),
            accuracy=accuracy,
            confidence=overall_confidence(low_count, len(key)),
            low_confidence_count=low_count,
            detailed_results=detailed,
            quality_issues=[str(q) for q in parsed.get("qualityIssues") or []],
            image_quality=_image_quality(parsed.get("imageQuality")),
        )

    def _build_prompt(self, config: AnswerKeyConfig) -> str:
        total = config.total_questions
        layout = "Process answers in sequential order (1, 2, 3, ...)."
        if config.grid_config is not None:
            grid = config.grid_config
            layout = (
                f"Answers are laid out in a grid of {grid.rows} rows and {grid.columns} columns. "
                f"Number questions row by row: row 1 holds questions 1-{grid.columns}, "
                f"row 2 holds questions {grid.columns + 1}-{2 * grid.columns}, and so on."
            )

        extra_fields = []
        if config.detect_roll_number:
            extra_fields.append('"rollNumber": "roll / registration number written on the sheet, or null"')
        if config.detect_subject_code:
            extra_fields.append('"subjectCode": "subject code written on the sheet, or null"')
        extra = "".join(f",\n  {field}" for field in extra_fields)

        return f"""You are an advanced OCR system with expert-level handwriting recognition.

TASK: Analyze this answer sheet image and extract the handwritten answers.

CONTEXT:
- Total questions: {total}
- Answer format: single letters (A, B, C, D, E)
- {layout}

For each answer give the letter, a confidence level ("high" 90-100%,
"medium" 70-89%, "low" below 70%) and a short note about any ambiguity.
Also rate the overall image quality as "poor", "fair" or "good" and list
any quality issues (blur, shadows, skew, cut-off areas).

Return a JSON object with this exact structure:
{{
  "answers": ["A", "B", ...],
  "confidence": ["high", "medium", ...],
  "notes": ["clear", "corrected answer", ...],
  "imageQuality": "good",
  "qualityIssues": []{extra}
}}

RULES:
- Array lengths must be exactly {total}
- Use "?" only if the answer area is blank or completely illegible
- Mark uncertain answers with "low" confidence, not "?"
- Return ONLY valid JSON"""


def map_api_error(error: openai.APIError) -> OracleError:
    """
    Translate an OpenAI SDK error into the oracle error taxonomy.

    Args:
        error: Error raised by the SDK.

    Returns:
        OracleError subclass instance carrying the original detail.
    """
    detail = str(error)
    code = getattr(error, "code", None)
    status = getattr(error, "status_code", None)

    if code == "insufficient_quota" or status == 402:
        return QuotaExhaustedError(detail)
    if status == 429:
        return RateLimitedError(detail)
    if status in (400, 413, 415, 422):
        return InvalidImageError(detail)
    return OracleTransportError(detail)


def _extract_json(content: str) -> dict[str, Any]:
    try:
        parsed = json.loads(content)
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        pass

    # Models sometimes wrap the object in prose or a code fence
    match = re.search(r"\{[\s\S]*\}", content)
    if match:
        try:
            parsed = json.loads(match.group(0))
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass

    match = re.search(r"\[[\s\S]*?\]", content)
    if match:
        try:
            answers = json.loads(match.group(0))
            if isinstance(answers, list):
                return {"answers": answers}
        except json.JSONDecodeError:
            pass

    raise OracleResponseError(f"Could not parse oracle response: {content[:200]}")


def _image_quality(value: Any) -> str | None:
    if isinstance(value, str) and value.strip().lower() in ("poor", "fair", "good"):
        return value.strip().lower()
    return None
