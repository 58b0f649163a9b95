"""
Model proxy - stateless request/response bridge to the hosted language model.

``complete`` is what the turn orchestrator awaits; ``handle`` serves the same
call through the JSON contract used by the HTTP route.
"""

from typing import Any, Dict, List, Literal, Optional, Tuple, Union
import openai
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from config.app_config import LLMConfig, get_config
from infrastructure.external.groq_client import GroqClient, get_groq_client
from services.errors import UpstreamError, ValidationError, VoiceAssistantError
from utils.logging_config import get_logger, log_execution_time, log_model_usage

EMPTY_REPLY = "I apologize, but I couldn't generate a response. Please try again."
EMPTY_MESSAGES = "Messages array is required and must not be empty"

RATE_LIMITED = "Rate limit exceeded. Please wait a moment and try again."
AUTH_FAILED = "Authentication failed. Please check API key."
INVALID_REQUEST = "Invalid request. Please check your input."
NETWORK_ERROR = "Network error. Please check your connection."
TIMEOUT_ERROR = "Request timeout. Please try again."
UPSTREAM_FAILED = "Failed to get response from AI"
UNEXPECTED_FAILURE = "Failed to process chat request"


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(min_length=1)
    model: Optional[str] = None


class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatResponse(BaseModel):
    message: str
    model: str
    usage: Usage = Field(default_factory=Usage)


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None


class ModelProxy:
    """
    Client-side face of the model proxy.
    No retries: every failure is mapped to an ``UpstreamError`` and returned to the caller.
    """

    def __init__(self, client: Optional[GroqClient] = None, llm_config: Optional[LLMConfig] = None):
        self.logger = get_logger(__name__)
        self.llm_config = llm_config or get_config().llm
        self.client = client or get_groq_client()

    def select_model(self, requested: Optional[str]) -> str:
        """Requested model if recommended, otherwise the default"""
        if requested and requested in self.llm_config.recommended_models:
            return requested
        if requested:
            self.logger.warning(
                f"Model {requested} not in recommended list, using {self.llm_config.default_model}"
            )
        return self.llm_config.default_model

    def _map_error(self, error: Exception, model: str) -> UpstreamError:
        """Translate SDK exceptions into the proxy's status codes"""
        if isinstance(error, openai.RateLimitError):
            return UpstreamError(429, RATE_LIMITED, str(error))
        if isinstance(error, openai.AuthenticationError):
            return UpstreamError(401, AUTH_FAILED, str(error))
        if isinstance(error, openai.BadRequestError):
            if getattr(error, "code", None) == "model_decommissioned":
                self.logger.error(f"Decommissioned model detected: {model}")
                return UpstreamError(
                    400, f"Model is no longer available. Using {self.llm_config.default_model} instead.",
                    str(error)
                )
            return UpstreamError(400, INVALID_REQUEST, str(error))
        # Timeout is a subclass of the connection error
        if isinstance(error, openai.APITimeoutError):
            return UpstreamError(504, TIMEOUT_ERROR, str(error))
        if isinstance(error, openai.APIConnectionError):
            return UpstreamError(503, NETWORK_ERROR, str(error))
        if isinstance(error, openai.APIStatusError):
            return UpstreamError(500, UPSTREAM_FAILED, f"Status: {error.status_code}")
        return UpstreamError(500, UNEXPECTED_FAILURE, str(error) or type(error).__name__)

    async def complete(self, messages: List[Union[Dict[str, str], ChatMessage]],
                       model: Optional[str] = None) -> ChatResponse:
        """
        Send the conversation to the model and return its reply

        Args:
            messages: Ordered role/content pairs, oldest first
            model: Optional model id; unknown ids fall back to the default

        Returns:
            ChatResponse with the reply text, model used and token usage

        Raises:
            ValidationError: empty or malformed message list
            ConfigurationError: no API key configured
            UpstreamError: the remote call failed
        """
        try:
            request = ChatRequest(messages=messages, model=model)
        except PydanticValidationError as e:
            raise ValidationError(EMPTY_MESSAGES, details=str(e))

        selected_model = self.select_model(request.model)
        chat_client = self.client.get_chat_client()

        payload = [{"role": "system", "content": self.llm_config.system_prompt}]
        payload.extend(m.model_dump() for m in request.messages)

        try:
            with log_execution_time(self.logger, "chat completion", model=selected_model,
                                    message_count=len(request.messages)):
                completion = await chat_client.chat.completions.create(
                    model=selected_model,
                    messages=payload,
                    temperature=self.llm_config.temperature,
                    max_tokens=self.llm_config.max_tokens,
                    top_p=self.llm_config.top_p,
                    stream=False,
                )
        except openai.OpenAIError as e:
            mapped = self._map_error(e, selected_model)
            self.logger.error(f"Groq API error: {mapped.status_code} {mapped.details}")
            raise mapped

        content = None
        if completion.choices:
            content = completion.choices[0].message.content
        usage = completion.usage

        response = ChatResponse(
            message=content or EMPTY_REPLY,
            model=selected_model,
            usage=Usage(
                prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
                total_tokens=getattr(usage, "total_tokens", 0) or 0,
            ),
        )
        log_model_usage(self.logger, selected_model, response.usage.total_tokens,
                        prompt_tokens=response.usage.prompt_tokens,
                        completion_tokens=response.usage.completion_tokens)
        return response

    async def handle(self, payload: Any) -> Tuple[int, Dict[str, Any]]:
        """
        Serve one proxy request

        Args:
            payload: Decoded JSON body ``{messages: [{role, content}], model?}``

        Returns:
            (HTTP status, JSON body)
        """
        try:
            request = ChatRequest.model_validate(payload)
        except PydanticValidationError as e:
            return 400, ErrorResponse(error=EMPTY_MESSAGES, details=str(e)).model_dump(exclude_none=True)

        try:
            response = await self.complete(request.messages, request.model)
        except VoiceAssistantError as e:
            status = getattr(e, "status_code", 500)
            return status, ErrorResponse(error=e.user_message, details=e.details).model_dump(exclude_none=True)
        except Exception as e:
            self.logger.error(f"Error in chat API: {e}", exc_info=True)
            return 500, ErrorResponse(error=UNEXPECTED_FAILURE, details=str(e) or "Unknown error").model_dump()

        return 200, response.model_dump()


# Global proxy instance
_model_proxy: Optional[ModelProxy] = None


def get_model_proxy() -> ModelProxy:
    """Get the global model proxy instance"""
    global _model_proxy
    if _model_proxy is None:
        _model_proxy = ModelProxy()
    return _model_proxy
