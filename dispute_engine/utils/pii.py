"""PII masking for free text that ends up in the audit trail.

Masking is two-pass: compiled regexes for well-formed identifiers, then
optionally Microsoft Presidio for names, locations and anything the regexes
miss.
"""

import hashlib
import re
from functools import lru_cache
from typing import Any

from presidio_analyzer import AnalyzerEngine, RecognizerResult
from presidio_anonymizer import AnonymizerEngine
from presidio_anonymizer.entities import OperatorConfig


# Order matters: card numbers before the generic account pattern
REGEX_RULES: list[tuple[re.Pattern, str]] = [
    (re.compile(r'\b(?:\d{4}[-\s]?){3}\d{4}\b'), "[REDACTED_CREDIT_CARD]"),
    (re.compile(r'\b\d{3}-\d{2}-\d{4}\b'), "[REDACTED_SSN]"),
    (re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b'), "[REDACTED_EMAIL]"),
    (re.compile(r'\b(?:\+1[-.\s]?)?\(?[0-9]{3}\)?[-.\s]?[0-9]{3}[-.\s]?[0-9]{4}\b'), "[REDACTED_PHONE]"),
    (re.compile(r'\b\d{9,17}\b'), "[REDACTED_ACCOUNT]"),
]

# Presidio entity -> replacement token
PRESIDIO_TOKENS = {
    "CREDIT_CARD": "[REDACTED_CREDIT_CARD]",
    "IBAN_CODE": "[REDACTED_IBAN]",
    "US_BANK_NUMBER": "[REDACTED_ACCOUNT]",
    "US_SSN": "[REDACTED_SSN]",
    "EMAIL_ADDRESS": "[REDACTED_EMAIL]",
    "PHONE_NUMBER": "[REDACTED_PHONE]",
    "IP_ADDRESS": "[REDACTED_IP]",
    "PERSON": "[REDACTED_PERSON]",
    "LOCATION": "[REDACTED_LOCATION]",
}

PII_ENTITIES = list(PRESIDIO_TOKENS)

SENSITIVE_KEYS = {
    "card_number", "bank_account", "ssn", "email", "phone",
    "password", "api_key", "token", "secret", "file_url",
}


@lru_cache(maxsize=1)
def _engines() -> tuple[AnalyzerEngine, AnonymizerEngine]:
    """Presidio engines, built on first use."""
    return AnalyzerEngine(), AnonymizerEngine()


def _operators() -> dict[str, OperatorConfig]:
    operators = {
        entity: OperatorConfig("replace", {"new_value": token})
        for entity, token in PRESIDIO_TOKENS.items()
    }
    operators["DEFAULT"] = OperatorConfig("replace", {"new_value": "[REDACTED]"})
    return operators


def hash_user_id(user_id: str) -> str:
    """Stable short pseudonym for a user id."""
    return hashlib.sha256(user_id.encode()).hexdigest()[:12]


def _mask_pii_regex(text: str) -> str:
    for pattern, token in REGEX_RULES:
        text = pattern.sub(token, text)
    return text


def _mask_pii_presidio(text: str) -> str:
    if not text:
        return text

    analyzer, anonymizer = _engines()
    results: list[RecognizerResult] = analyzer.analyze(
        text=text, entities=PII_ENTITIES, language="en"
    )
    if not results:
        return text

    return anonymizer.anonymize(
        text=text, analyzer_results=results, operators=_operators()
    ).text


def mask_pii(text: str | None, use_presidio: bool = True) -> str | None:
    """Mask PII in ``text``: regex rules first, then Presidio if enabled.

    Args:
        text: Free text typed by a party or arbitrator
        use_presidio: Run the NLP pass after the regexes

    Returns:
        The masked text (empty or None input is returned as is)
    """
    if not text:
        return text

    masked = _mask_pii_regex(text)
    if use_presidio:
        masked = _mask_pii_presidio(masked)
    return masked


def redact_for_logging(data: dict[str, Any]) -> dict[str, Any]:
    """Copy of ``data`` with values under sensitive keys replaced, at any depth."""

    def redact(value: Any) -> Any:
        if isinstance(value, dict):
            return {
                key: "[REDACTED]" if key.lower() in SENSITIVE_KEYS else redact(item)
                for key, item in value.items()
            }
        if isinstance(value, list):
            return [redact(item) for item in value]
        return value

    return redact(data)
