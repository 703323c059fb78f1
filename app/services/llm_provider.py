"""
LLM provider for explaining mistake patterns and polishing feedback using Gemini.
"""
import json
import logging
import time
from typing import Any, Dict, List, Optional

import requests

from app.services.config_service import config_service

logger = logging.getLogger("app.llm")

BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"


class LLMNotConfiguredError(RuntimeError):
    """Raised when an LLM call is requested without an API key."""


class LLMProvider:
    def __init__(self):
        self.api_key = config_service.get_setting("GEMINI_API_KEY", "")
        self.model = config_service.get_setting("GEMINI_MODEL", "gemini-1.5-flash")
        self.timeout = config_service.get_int("GEMINI_TIMEOUT", 30)
        self.max_retries = config_service.get_int("GEMINI_MAX_RETRIES", 3)
        self.temperature = config_service.get_float("GEMINI_TEMPERATURE", 0.7)

    def is_ready(self) -> bool:
        """Whether an API key is configured."""
        return bool(self.api_key)

    def _make_request(self, prompt: str) -> Optional[Dict[str, Any]]:
        """Make request to the Gemini generateContent endpoint."""
        if not self.is_ready():
            raise LLMNotConfiguredError("Gemini API key not configured")

        url = f"{BASE_URL}/{self.model}:generateContent"
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": self.temperature},
        }

        for attempt in range(self.max_retries):
            try:
                logger.info(f"Making LLM request (attempt {attempt + 1}/{self.max_retries})")
                response = requests.post(
                    url,
                    params={"key": self.api_key},
                    headers={"Content-Type": "application/json"},
                    json=payload,
                    timeout=self.timeout,
                )

                if response.status_code == 200:
                    logger.info("LLM request successful")
                    return response.json()
                logger.warning(f"LLM request failed with status {response.status_code}: {response.text[:200]}")

            except requests.exceptions.Timeout:
                logger.warning(f"LLM request timeout (attempt {attempt + 1})")
            except requests.exceptions.RequestException as e:
                logger.warning(f"LLM request error (attempt {attempt + 1}): {e}")

            if attempt < self.max_retries - 1:
                time.sleep(2 ** attempt)  # Exponential backoff

        logger.error("All LLM request attempts failed")
        return None

    def _extract_text(self, response: Optional[Dict[str, Any]]) -> Optional[str]:
        """Pull the first candidate's text out of a generateContent response."""
        if not response:
            return None
        try:
            parts = response["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError) as e:
            logger.error(f"Unexpected LLM response shape: {e}")
            return None
        text = "".join(part.get("text", "") for part in parts).strip()
        return text or None

    def explain_mistake(self, question: str, phrase: str, examples: List[str]) -> Optional[str]:
        """
        Explain why students produce a given mistake pattern.

        Args:
            question: Question prompt
            phrase: Mistake phrase found by the mistake miner
            examples: Example answers containing the phrase

        Returns:
            Explanation text, or None if the provider could not answer
        """
        logger.info(f"Explaining mistake pattern '{phrase}'")
        prompt = "\n".join([
            "As an expert educator, explain why students are making this specific mistake in their answer.",
            "",
            f"Question: {question}",
            f'Mistake Pattern Found: "{phrase}"',
            f"Examples of student answers containing this: {json.dumps(examples, ensure_ascii=False)}",
            "",
            "Provide:",
            "1. A concise explanation of the conceptual gap (2-3 sentences).",
            "2. A specific teaching suggestion to address this mistake (1-2 sentences).",
        ])
        return self._extract_text(self._make_request(prompt))

    def generate_feedback(self, assignment_title: str, subject: Optional[str], report: Dict[str, Any]) -> Optional[str]:
        """Draft class feedback from the report's headline numbers and mistake patterns."""
        logger.info(f"Generating LLM feedback for '{assignment_title}'")
        insights = {
            "questionStats": report.get("questionStats", []),
            "mistakes": [
                {"question": m["question"], "phrases": [p["phrase"] for p in m["mistakes"]]}
                for m in report.get("mistakesByQuestion", [])
                if m["mistakes"]
            ],
        }
        prompt = "\n".join([
            "Generate insightful, professional, and encouraging feedback for a teacher to share with their class.",
            "",
            f"Assignment: {assignment_title}",
            f"Subject: {subject or 'n/a'}",
            f"Class Average: {report.get('classAvg', 0)}%",
            "",
            "Key Insights:",
            json.dumps(insights, ensure_ascii=False),
            "",
            "Format:",
            "- Class Summary (A high-level overview of performance and general themes)",
            "- Actionable Advice (What the class should focus on next)",
            "Keep it professional but supportive.",
        ])
        return self._extract_text(self._make_request(prompt))
