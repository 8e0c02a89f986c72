"""Abstract base class for text-generation providers.

Defines the contract for any large-language-model backend used to turn a
budgeted prompt into a recommendation list.  Implementations may wrap the
Anthropic API, OpenAI (or an OpenAI-compatible host), or a local Ollama
server.  The dispatcher only ever talks to this interface, so swapping the
backend never touches recommendation logic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: AnthropicLLMProvider, OpenAILLMProvider, OllamaLLMProvider
# Located in: src/providers/llm/
class ILLMProvider(ABC):
    """Contract for the opaque "submit a bounded prompt, get text back" capability.

    Any call may fail or time out; callers treat every failure the same
    way (fall back to the local catalog).
    """

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1500,
    ) -> str:
        """Generate a text completion from the model.

        Parameters
        ----------
        system_prompt:
            The system/instruction message that sets the model's behaviour.
        user_prompt:
            The assembled recommendation request.
        temperature:
            Sampling temperature (0.0 = deterministic, 1.0 = creative).
        max_tokens:
            Upper bound on the number of tokens in the response.

        Returns
        -------
        str
            The model's text response.  Always a plain string, whatever
            shape the vendor API uses internally.

        Raises
        ------
        src.utils.errors.LLMError
            If the API call fails, returns a non-success status, or
            returns no text.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider.

        Example return values: ``"openai"``, ``"anthropic"``, ``"ollama"``.
        """

    @abstractmethod
    def get_model_name(self) -> str:
        """Return the model identifier recorded in usage tracking."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured.

        Implementations check credentials are present without making an
        inference call.
        """

    @abstractmethod
    async def validate_credentials(self) -> bool:
        """Perform a lightweight API call to confirm credentials are valid.

        Returns
        -------
        bool
            ``True`` if the provider accepted the credentials; ``False``
            otherwise.  Unlike :meth:`is_available`, this method actively
            contacts the remote service.
        """
