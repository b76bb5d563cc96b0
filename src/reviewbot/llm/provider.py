"""LLM provider abstraction using LangChain."""

from dataclasses import dataclass

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from pydantic import BaseModel


@dataclass
class Message:
    """A message in the conversation."""

    role: str  # "system", "user", "assistant"
    content: str

    def to_langchain(self) -> BaseMessage:
        """Convert to LangChain message format."""
        if self.role == "system":
            return SystemMessage(content=self.content)
        elif self.role == "assistant":
            return AIMessage(content=self.content)
        else:
            return HumanMessage(content=self.content)


class LLMProvider:
    """LLM provider wrapper using LangChain."""

    def __init__(
        self,
        model: BaseChatModel,
        model_name: str = "unknown",
        provider_name: str = "unknown",
    ):
        """Initialize the provider.

        Args:
            model: LangChain chat model instance
            model_name: Name of the model for logging
            provider_name: Provider variant that built the model
        """
        self.model = model
        self.model_name = model_name
        self.provider_name = provider_name

    async def complete_structured(
        self,
        messages: list[Message],
        output_schema: type[BaseModel],
    ) -> BaseModel:
        """Generate a structured output from the LLM.

        Args:
            messages: List of messages in the conversation
            output_schema: Pydantic model for structured output

        Returns:
            Parsed Pydantic model instance
        """
        langchain_messages = [msg.to_langchain() for msg in messages]

        structured_model = self.model.with_structured_output(output_schema)
        return await structured_model.ainvoke(langchain_messages)
