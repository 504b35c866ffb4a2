# LLM Client Module
# Wraps the OpenAI chat completions API for schema-constrained text generation

import json
import logging
import re
from typing import Any, Dict, List, Optional, Type, TypeVar

import openai
from openai import OpenAI
from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

logger = logging.getLogger(__name__)

OutputModel = TypeVar("OutputModel", bound=BaseModel)


class LLMError(Exception):
    """Raised when LLM operations fail."""
    pass


class InvalidAPIKeyError(Exception):
    """Raised when API key is invalid or missing."""
    pass


class LLMClient:
    """
    Client for schema-constrained generation against OpenAI's API.

    Every call is a single request: the SDK's automatic retries are disabled
    so a failure reaches the caller immediately.
    """

    DEFAULT_MODEL = "gpt-4o-mini"

    DEFAULT_TEMPERATURE = 0.7
    DEFAULT_MAX_TOKENS = 1000
    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize the LLM client.

        Args:
            api_key: OpenAI API key. If None, the client is not configured and
                     every generation call raises LLMError.
            model: Chat model name. Default gpt-4o-mini.
            temperature: Sampling temperature (0.0-2.0). Default 0.7.
            max_tokens: Maximum tokens in a response. Default 1000.
            timeout: Request timeout in seconds. Default 30.
        """
        self.api_key = api_key
        self.client = None
        self.logger = logging.getLogger(__name__)

        self.model = model or self.DEFAULT_MODEL
        self.temperature = temperature if temperature is not None else self.DEFAULT_TEMPERATURE
        self.max_tokens = max_tokens if max_tokens is not None else self.DEFAULT_MAX_TOKENS
        self.timeout = timeout if timeout is not None else self.DEFAULT_TIMEOUT

        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError("Temperature must be between 0.0 and 2.0")
        if self.max_tokens <= 0:
            raise ValueError("Max tokens must be positive")
        if self.timeout <= 0:
            raise ValueError("Timeout must be positive")

        if api_key:
            try:
                self.client = OpenAI(api_key=api_key, timeout=self.timeout, max_retries=0)
                self.logger.info(
                    f"LLM client initialized (model: {self.model}, "
                    f"temperature: {self.temperature}, max_tokens: {self.max_tokens})"
                )
            except Exception as e:
                self.logger.error(f"Failed to initialize OpenAI client: {e}")
                raise LLMError(f"Failed to initialize LLM client: {str(e)}")
        else:
            self.logger.warning("LLM client initialized without API key; AI features disabled")

    @classmethod
    def from_settings(cls, settings) -> "LLMClient":
        return cls(
            api_key=settings.openai_api_key,
            model=settings.llm_model,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
            timeout=settings.llm_timeout_seconds,
        )

    def is_configured(self) -> bool:
        """
        Check if the client is properly configured with an API key.

        Returns:
            bool: True if API key is set, False otherwise
        """
        return self.api_key is not None and self.client is not None

    def generate(
        self,
        prompt: str,
        output_schema: Type[OutputModel],
        *,
        name: str = "structured_output",
        system_prompt: Optional[str] = None,
    ) -> OutputModel:
        """
        Send one prompt and return the response validated against a schema.

        Args:
            prompt: User prompt text
            output_schema: Pydantic model the response must conform to
            name: Schema name reported to the API
            system_prompt: Optional system message

        Returns:
            An instance of output_schema

        Raises:
            InvalidAPIKeyError: If the API rejects the key
            LLMError: If the call fails or the response does not match the schema
        """
        messages: List[Dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        response_format = {
            "type": "json_schema",
            "json_schema": {
                "name": name,
                "schema": _strict_schema(output_schema),
                "strict": True,
            },
        }
        response_text = self._make_llm_call(messages, response_format=response_format)
        payload = self._parse_json_response(response_text, name)
        try:
            return output_schema.model_validate(payload)
        except SchemaValidationError as exc:
            self.logger.error(f"Response for {name} did not match schema: {exc}")
            raise LLMError(f"The AI response did not match the expected format: {exc.errors()[0]['msg']}")

    def _make_llm_call(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        response_format: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Make a call to the LLM API using configured defaults.

        Args:
            messages: List of message dicts with 'role' and 'content'
            model: Model to use
            max_tokens: Maximum tokens in response (defaults to self.max_tokens)
            temperature: Temperature for response generation (defaults to self.temperature)
            response_format: Optional structured output constraint

        Returns:
            str: LLM response content

        Raises:
            LLMError: If API call fails
        """
        if not self.is_configured():
            raise LLMError("LLM client is not configured with an API key")

        kwargs: Dict[str, Any] = {
            "model": model or self.model,
            "messages": messages,
            "max_tokens": max_tokens if max_tokens is not None else self.max_tokens,
            "temperature": temperature if temperature is not None else self.temperature,
        }
        if response_format is not None:
            kwargs["response_format"] = response_format

        try:
            response = self.client.chat.completions.create(**kwargs)
        except Exception as e:
            raise self._classify_error(e)

        if response and response.choices:
            content = response.choices[0].message.content
            if content:
                return content.strip()
        raise LLMError("Empty response from API")

    @staticmethod
    def _classify_error(e: Exception) -> Exception:
        error_msg = str(e).lower()

        # Check error message content to determine error type
        if (
            isinstance(e, openai.AuthenticationError)
            or "authentication" in error_msg
            or "api key" in error_msg
            or "unauthorized" in error_msg
            or "invalid key" in error_msg
        ):
            return InvalidAPIKeyError("Invalid API key. Please verify your OpenAI API key is correct.")
        if isinstance(e, openai.APITimeoutError) or "timeout" in error_msg or "timed out" in error_msg:
            return LLMError(f"Request timed out. Please check your internet connection and try again: {str(e)}")
        if isinstance(e, openai.APIConnectionError) or "connection" in error_msg or "network" in error_msg:
            return LLMError(f"Connection error. Please check your internet connection and try again: {str(e)}")
        if isinstance(e, openai.RateLimitError) or "rate limit" in error_msg or "quota" in error_msg:
            return LLMError(f"Rate limit exceeded. Please wait a moment and try again, or check your API quota: {str(e)}")
        if isinstance(e, openai.APIError) or "api error" in error_msg:
            return LLMError(f"API error: {str(e)}")
        return LLMError(f"LLM call failed: {str(e)}")

    def _parse_json_response(self, response: str, name: str) -> Dict[str, Any]:
        """
        Parse a JSON object out of an LLM response.

        Strategies:
        1. Parse the response as-is
        2. Strip markdown code fences
        3. Extract the first {...} block from surrounding text
        """
        # Strategy 1: Try direct parsing
        try:
            return _require_object(json.loads(response.strip()))
        except json.JSONDecodeError:
            self.logger.debug(f"Direct JSON parsing failed for {name}")

        # Strategy 2: Strip markdown code fences
        response_text = response.strip()
        response_text = re.sub(r'^```(?:json)?\s*\n?', '', response_text)  # Opening ```
        response_text = re.sub(r'\n?```\s*$', '', response_text)           # Closing ```
        response_text = response_text.strip()

        try:
            return _require_object(json.loads(response_text))
        except json.JSONDecodeError:
            self.logger.debug(f"Markdown stripping didn't help for {name}")

        # Strategy 3: Extract JSON block from text
        json_match = re.search(r'\{[\s\S]*\}', response_text)
        if json_match:
            try:
                return _require_object(json.loads(json_match.group(0)))
            except json.JSONDecodeError:
                self.logger.debug(f"Extracted JSON was invalid for {name}")

        self.logger.error(f"All JSON parsing strategies failed for {name}")
        raise LLMError("Failed to parse the AI response as JSON")


def _require_object(value: Any) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise LLMError("The AI response was not a JSON object")
    return value


def _strict_schema(model: Type[BaseModel]) -> Dict[str, Any]:
    """JSON schema for a flat pydantic model in the form strict mode accepts."""
    schema = model.model_json_schema()
    schema["additionalProperties"] = False
    schema["required"] = list(schema.get("properties", {}).keys())
    return schema
