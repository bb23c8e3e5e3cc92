# docmemory/llm/client.py
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Protocol

from openai import AzureOpenAI

from docmemory.errors import ProviderError
from docmemory.prompts.prompt_builder import render_template

logger = logging.getLogger(__name__)


@dataclass
class CompletionResult:

    text: str
    usage: Optional[Dict[str, Any]] = None


class CompletionEngine(Protocol):
    """Capability: complete a prompt template under a token/temperature budget."""

    def complete(
        self,
        template: str,
        variables: Optional[Mapping[str, str]] = None,
        max_tokens: int = 256,
        temperature: float = 0.0,
    ) -> CompletionResult:
        ...


class LLMClient:
    """
    Client for an Azure OpenAI chat deployment.

    Renders the template, sends it as a single user message and returns the
    generated text with the provider's usage report. No retries: provider
    failures are raised as ProviderError.
    """

    def __init__(
        self,
        deployment: str,
        endpoint: str,
        api_key: str,
        api_version: str,
        client: Optional[AzureOpenAI] = None,
    ):
        """
        Args:
            deployment: chat model deployment name
            endpoint: Azure OpenAI resource endpoint
            api_key: resource key
            api_version: Azure OpenAI API version
            client: preconfigured SDK client (tests)
        """
        self.deployment = deployment
        self.client = client or AzureOpenAI(
            azure_endpoint=endpoint,
            api_key=api_key,
            api_version=api_version,
        )

    def complete(
        self,
        template: str,
        variables: Optional[Mapping[str, str]] = None,
        max_tokens: int = 256,
        temperature: float = 0.0,
    ) -> CompletionResult:

        if max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive, got {max_tokens}")

        prompt = render_template(template, variables)

        start = time.time()

        try:

            response = self.client.chat.completions.create(
                model=self.deployment,
                messages=[
                    {
                        "role": "user",
                        "content": prompt
                    }
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )

        except Exception as e:

            logger.error(
                "Completion failed",
                extra={
                    "deployment": self.deployment,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )

            raise ProviderError(
                f"Completion call failed: {e}", provider="completion"
            ) from e

        text = response.choices[0].message.content or ""

        usage = response.usage.model_dump() if response.usage else None

        logger.info(
            "Completion succeeded",
            extra={
                "deployment": self.deployment,
                "prompt_length": len(prompt),
                "latency_seconds": round(time.time() - start, 3),
                "usage": usage,
            },
        )

        return CompletionResult(text=text, usage=usage)
