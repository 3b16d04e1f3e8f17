from typing import Any, Dict, List, Optional
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage, AIMessage, HumanMessage, SystemMessage
from langchain_core.outputs import ChatGeneration, ChatResult
from groq import Groq
from contract_scanner.core.config import settings


class LLMInvocationError(RuntimeError):
    """Raised when the Groq completion can not be obtained."""


class MissingAPIKeyError(LLMInvocationError):
    """Raised when no Groq API key is configured."""


class GroqChatModel(BaseChatModel):
    """Custom LLM class for Groq integration.

    The SDK client is created with retries disabled so every call is a
    single attempt bounded by ``timeout`` seconds.
    """

    client: Any = None
    api_key: str = ""
    model_name: str = "llama-3.3-70b-versatile"
    temperature: float = 0.3
    max_tokens: int = 4000
    timeout: float = 60.0
    response_format: Optional[Dict[str, str]] = None

    def __init__(self, **kwargs):
        """Initialize the Groq chat model."""
        kwargs.setdefault("api_key", settings.GROQ_API_KEY)
        kwargs.setdefault("model_name", settings.LLM_MODEL)
        kwargs.setdefault("max_tokens", settings.LLM_MAX_TOKENS)
        kwargs.setdefault("timeout", settings.LLM_TIMEOUT_SECONDS)
        super().__init__(**kwargs)
        if self.api_key and self.client is None:
            self.client = Groq(api_key=self.api_key, timeout=self.timeout, max_retries=0)

    @property
    def has_credentials(self) -> bool:
        return self.client is not None

    def _convert_messages_to_prompt(self, messages: List[BaseMessage]) -> List[dict]:
        """Convert messages to Groq chat format.

        Args:
            messages: List of messages

        Returns:
            List of message dictionaries in Groq format
        """
        groq_messages = []
        for message in messages:
            if isinstance(message, SystemMessage):
                role = "system"
            elif isinstance(message, HumanMessage):
                role = "user"
            elif isinstance(message, AIMessage):
                role = "assistant"
            else:
                role = "user"

            groq_messages.append({
                "role": role,
                "content": message.content
            })
        return groq_messages

    def _generate(
        self,
        messages: List[BaseMessage],
        stop: Optional[List[str]] = None,
        run_manager: Optional[Any] = None,
        **kwargs: Any,
    ) -> ChatResult:
        """Generate a response using Groq.

        Args:
            messages: List of messages
            stop: Optional stop sequences
            run_manager: Optional run manager
            **kwargs: Additional arguments

        Returns:
            ChatResult containing the generated response

        Raises:
            MissingAPIKeyError: If no API key is configured
            LLMInvocationError: If the completion request fails
        """
        if self.client is None:
            raise MissingAPIKeyError("GROQ_API_KEY is not configured")

        request = {
            "model": self.model_name,
            "messages": self._convert_messages_to_prompt(messages),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "stream": False,
        }
        if stop:
            request["stop"] = stop
        if self.response_format:
            request["response_format"] = self.response_format

        try:
            completion = self.client.chat.completions.create(**request)
        except Exception as e:
            raise LLMInvocationError(f"Error in Groq chat completion: {str(e)}") from e

        # Create ChatGeneration object
        message = AIMessage(content=completion.choices[0].message.content or "")
        gen = ChatGeneration(message=message)

        # Return ChatResult
        return ChatResult(generations=[gen])

    @property
    def _llm_type(self) -> str:
        """Return the type of LLM."""
        return "groq"
