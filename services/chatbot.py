# services/chatbot.py
"""
Scripted FAQ chatbot with an LLM fallback.

Replies are produced by a flat decision chain: date questions are answered
locally, exact FAQ matches return a canned answer, and everything else is sent
to a completion client. The completion client is an interface so tests and
alternative providers can be swapped in.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, Optional, Protocol

import requests

from core.errors import CompletionError, InvalidCompletionResponse

logger = logging.getLogger(__name__)

FAQ_RESPONSES: Dict[str, str] = {
    "what services do you offer?": (
        "We offer Telecom Infrastructure, Geospatial & GIS Solutions, "
        "Skill Development, and Consultancy & Business Incubation."
    ),
    "what are your business hours?": "Our business hours are Monday - Sunday, from 9:00 AM to 8:00 PM.",
    "how do i contact support?": (
        "You can contact our support team via email at info@digitalindian.co.in "
        "or by calling +91 7908735132."
    ),
    "how can i book a meeting?": (
        "You can book a meeting by using the 'View Calendar' option on our contact "
        "page to schedule a time that works for you."
    ),
}

# Substring match: "update" also gets the date reply
DATE_KEYWORDS = ("date", "today")

SYSTEM_PREAMBLE = (
    "You are an AI assistant for the company 'Digital Indian'. Your goal is to be "
    "friendly and helpful. Digital Indian works in telecom infrastructure, "
    "geospatial & GIS solutions, skill development, and consultancy & business "
    "incubation. If a user asks a question, provide a concise and professional response."
)

MISSING_KEY_REPLY = "I'm sorry, my API key is not configured. Please contact the administrator."
INVALID_RESPONSE_REPLY = "I'm sorry, I received an invalid response. Please try again."
UNAVAILABLE_REPLY = "I'm sorry, I couldn't process that request right now. Please try again later."


@dataclass
class ChatReply:
    text: str
    ok: bool = True

    @property
    def status_code(self) -> int:
        return 200 if self.ok else 500


class CompletionClient(Protocol):
    """Anything that turns a preamble + user message into reply text"""

    @property
    def available(self) -> bool: ...

    def complete(self, system_prompt: str, message: str) -> str: ...


class GeminiClient:
    """Google Gemini generateContent over its REST endpoint"""

    API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

    def __init__(self, api_key: Optional[str], model: str, timeout: int = 30,
                 session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    def complete(self, system_prompt: str, message: str) -> str:
        payload = {
            "systemInstruction": {"parts": [{"text": system_prompt}]},
            "contents": [{"role": "user", "parts": [{"text": message}]}],
        }

        try:
            response = self.session.post(
                self.API_URL.format(model=self.model),
                params={"key": self.api_key},
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except ValueError as e:
            raise InvalidCompletionResponse(f"Response was not JSON: {e}") from e
        except requests.RequestException as e:
            raise CompletionError(str(e)) from e

        return self.extract_text(data)

    @staticmethod
    def extract_text(data) -> str:
        """First candidate's first text part, or InvalidCompletionResponse"""
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise InvalidCompletionResponse(f"Unexpected response shape: {data!r:.200}") from e
        if not isinstance(text, str):
            raise InvalidCompletionResponse("Candidate text is not a string")
        return text


def normalize(message: str) -> str:
    return message.strip().lower()


def date_reply(today: date) -> str:
    return f"Hello! Today is {today:%A, %B} {today.day}, {today.year}."


class ChatbotResponder:

    def __init__(self,
                 completion_client: CompletionClient,
                 faq: Optional[Dict[str, str]] = None,
                 today: Callable[[], date] = date.today):
        self.completion_client = completion_client
        self.faq = FAQ_RESPONSES if faq is None else faq
        self._today = today

    def reply(self, message: str) -> ChatReply:
        normalized = normalize(message)

        if any(keyword in normalized for keyword in DATE_KEYWORDS):
            return ChatReply(date_reply(self._today()))

        if normalized in self.faq:
            return ChatReply(self.faq[normalized])

        return self._complete(message.strip())

    def _complete(self, message: str) -> ChatReply:
        if not self.completion_client.available:
            logger.error("Completion API key is not configured")
            return ChatReply(MISSING_KEY_REPLY, ok=False)

        try:
            text = self.completion_client.complete(SYSTEM_PREAMBLE, message)
        except InvalidCompletionResponse as e:
            logger.error(f"Invalid response from completion API: {e}")
            return ChatReply(INVALID_RESPONSE_REPLY, ok=False)
        except CompletionError as e:
            logger.error(f"Error with AI model call: {e}")
            return ChatReply(UNAVAILABLE_REPLY, ok=False)

        return ChatReply(text)
