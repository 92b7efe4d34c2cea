"""Advisory check of a stated borrow purpose against the club rules.

The verdict comes from a language model behind an HTTP API. Callers gate
on :func:`screen_purpose`, which is fail-closed: an unsafe verdict and a
failed call both produce a warning that blocks the issue form.
"""
from __future__ import annotations

import json
import logging
from typing import Optional, Protocol

import requests

from config import Config
from models import MIN_PURPOSE_LENGTH, SanityCheckResult

logger = logging.getLogger("app.sanity_check")

DEBOUNCE_MS = 1000
FALLBACK_WARNING = "Could not verify purpose. Please try again."

PROMPT_TEMPLATE = """You review the stated purpose for borrowing a component and decide whether it is safe and follows the rules of {club_name}.

Component Name: {component_name}
Purpose: {purpose}

Rules:
- Components should be used for educational and robotics-related projects only.
- Components should not be used in a way that could cause harm to people or property.
- Components should not be modified without permission.
- Components should be returned in the same condition they were borrowed.

If the purpose is unsafe or breaks a rule, set isSafe to false and give a short warning message.
If the purpose is safe and compliant, set isSafe to true and warningMessage to an empty string.

Respond in JSON format:
{{
  "isSafe": boolean,
  "warningMessage": string
}}"""


class SanityCheckUnavailable(RuntimeError):
    pass


class PurposeChecker(Protocol):
    def check(self, purpose: str, component_name: str) -> SanityCheckResult: ...


def build_prompt(purpose: str, component_name: str, club_name: str = Config.CLUB_NAME) -> str:
    return PROMPT_TEMPLATE.format(
        club_name=club_name,
        component_name=component_name,
        purpose=purpose,
    )


class GeminiPurposeChecker:
    def __init__(
        self,
        api_key: Optional[str],
        *,
        model: str = Config.SANITY_CHECK_MODEL,
        base_url: str = Config.SANITY_CHECK_URL,
        timeout: float = Config.SANITY_CHECK_TIMEOUT,
        club_name: str = Config.CLUB_NAME,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.club_name = club_name
        self.session = session or requests.Session()

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def check(self, purpose: str, component_name: str) -> SanityCheckResult:
        if not self.api_key:
            raise SanityCheckUnavailable("GEMINI_API_KEY is not configured")

        body = {
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": build_prompt(purpose, component_name, self.club_name)}],
                }
            ],
            "generationConfig": {
                "responseMimeType": "application/json",
                "temperature": 0,
            },
        }
        resp = self.session.post(
            self.endpoint,
            headers={"x-goog-api-key": self.api_key, "Content-Type": "application/json"},
            json=body,
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return parse_verdict(resp.json())


class AllowAllChecker:
    """Used when SANITY_CHECK_MODE=off."""

    def check(self, purpose: str, component_name: str) -> SanityCheckResult:
        return SanityCheckResult(is_safe=True, warning_message="")


def parse_verdict(payload: dict) -> SanityCheckResult:
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as e:
        raise ValueError(f"unexpected classifier response shape: {e!r}") from e
    return SanityCheckResult.model_validate(json.loads(text))


def screen_purpose(checker: PurposeChecker, purpose: str, component_name: str) -> Optional[str]:
    """Return the warning that should block submission, or None.

    Purposes shorter than the minimum are not sent; the form's own
    validation rejects them.
    """
    purpose = (purpose or "").strip()
    if len(purpose) < MIN_PURPOSE_LENGTH:
        return None

    try:
        verdict = checker.check(purpose, component_name or "component")
    except Exception:
        logger.warning("sanity check failed component=%s", component_name, exc_info=True)
        return FALLBACK_WARNING

    if verdict.is_safe:
        return None

    logger.info("purpose flagged component=%s", component_name)
    return verdict.warning_message or FALLBACK_WARNING


def build_checker() -> PurposeChecker:
    if Config.SANITY_CHECK_MODE == "off":
        logger.warning("sanity check disabled, all purposes pass")
        return AllowAllChecker()
    return GeminiPurposeChecker(Config.SANITY_CHECK_API_KEY)
