"""AI text enhancement for finished dictations (OpenAI chat completions)."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

import aiohttp

logger = logging.getLogger(__name__)

SYSTEM_PROMPT_TEMPLATE = """You are a precise text editor for voice transcriptions. Apply these rules:

FILLER REMOVAL
Remove all filler words and verbal pauses: uh, um, like, you know, I mean, so yeah, basically, \
este, ehm, mmm, pues, o sea, bueno (as filler), etc. The output must read as if the speaker never hesitated.

MIND CHANGES
When the speaker corrects themselves mid-sentence, keep ONLY the corrected version. \
Examples: "Let's meet at 2 actually 3" -> "Let's meet at 3." \
"Send it to Juan no wait to María" -> "Send it to María." \
"The budget is 500 I mean 5000 dollars" -> "The budget is 5000 dollars."

AUTO PUNCTUATION
Add proper punctuation (periods, commas, question marks, exclamation marks) based on sentence \
structure and natural pauses. Ensure every sentence ends with appropriate punctuation. \
Capitalize after sentence boundaries.

NUMBERED LISTS
When the speaker enumerates items (first, second, third / uno, dos, tres / number one, number two), \
format as a clean numbered list with line breaks:
1. First item
2. Second item

GENERAL RULES
- Fix grammar and spelling errors.
- Make rambling sentences concise and clear.
- Preserve the original meaning, tone, and intent exactly.
- Keep proper nouns, technical terms, and numbers unchanged.
- Maintain paragraph breaks if present.
- Do NOT add information, opinions, or commentary.
- Do NOT wrap the text in quotes or add prefixes.

{language_instruction}

Return ONLY the cleaned text. Nothing else."""


class TextEnhancerError(Exception):
    """Base class for enhancement failures."""


class NoAPIKeyError(TextEnhancerError):
    def __init__(self):
        super().__init__("No API key configured for text enhancement")


class EmptyInputError(TextEnhancerError):
    def __init__(self):
        super().__init__("Empty input text")


class InvalidResponseError(TextEnhancerError):
    def __init__(self, detail: str = "Invalid API response"):
        super().__init__(detail)


class EnhancerAPIError(TextEnhancerError):
    def __init__(self, status: int, body: str = ""):
        self.status = status
        self.body = body
        super().__init__(f"HTTP {status}")


class TextEnhancer(ABC):
    """Rewrites a raw transcript into clean text."""

    @abstractmethod
    async def enhance(self, text: str, language: Optional[str] = None) -> str:
        """Return the enhanced text.

        Raises:
            TextEnhancerError: On any failure; callers fall back to ``text``
        """
        pass


def build_system_prompt(language: Optional[str]) -> str:
    if language and language != "auto":
        instruction = (f"The text is in language code '{language}'. "
                       f"Keep the output in the same language.")
    else:
        instruction = "Detect the language and keep the output in the same language."
    return SYSTEM_PROMPT_TEMPLATE.format(language_instruction=instruction)


class ChatGPTTextEnhancer(TextEnhancer):
    """Sends transcripts to the ChatGPT API for cleanup."""

    def __init__(self,
                 api_key: Optional[str],
                 model: str = "gpt-4o-mini",
                 temperature: float = 0.3,
                 timeout: float = 30.0,
                 base_url: str = "https://api.openai.com/v1/chat/completions"):
        """Initialize ChatGPT enhancer.

        Args:
            api_key: OpenAI API key
            model: ChatGPT model to use
            temperature: Sampling temperature
            timeout: Total request timeout in seconds
            base_url: Chat completions endpoint
        """
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.timeout = timeout
        self.base_url = base_url

        logger.info(f"ChatGPTTextEnhancer initialized with model: {model}")

    async def enhance(self, text: str, language: Optional[str] = None) -> str:
        if not self.api_key:
            raise NoAPIKeyError()

        trimmed = text.strip()
        if not trimmed:
            raise EmptyInputError()

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }
        data = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": build_system_prompt(language)},
                {"role": "user", "content": trimmed},
            ],
            "temperature": self.temperature,
        }

        timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.base_url, headers=headers, json=data) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        logger.error(f"ChatGPT API error {response.status}: {error_text}")
                        raise EnhancerAPIError(response.status, error_text)
                    try:
                        result = await response.json()
                    except ValueError as e:
                        raise InvalidResponseError(f"Response is not JSON: {e}") from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise EnhancerAPIError(0, str(e)) from e

        try:
            content = result["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise InvalidResponseError(f"Unexpected response shape: {e}") from e

        enhanced = (content or "").strip()
        if not enhanced:
            raise InvalidResponseError("Empty completion")

        logger.info(f"✨ Enhanced {len(trimmed)} -> {len(enhanced)} chars")
        return enhanced
