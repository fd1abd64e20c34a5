# text_generators/__init__.py
from historybot import settings

from .base import ModelClass, TextGeneratorAPI
from .anthropic import AnthropicTextGenerator
from .openai_chatgpt import OpenAIChatTextGenerator

__all__ = [
    "ModelClass",
    "TextGeneratorAPI",
    "AnthropicTextGenerator",
    "OpenAIChatTextGenerator",
    "get_text_generator",
    "model_for_class",
]


def get_text_generator(api: str, model: str) -> TextGeneratorAPI:
    """Return an appropriate text-generator instance for the given API."""
    if api == "anthropic":
        return AnthropicTextGenerator(model)
    if api in ("openai", "chatgpt"):
        return OpenAIChatTextGenerator(model)
    raise ValueError(f"Unknown API: {api}")


def model_for_class(model_class: ModelClass) -> str:
    """Map a size class onto the configured summary model."""
    if model_class is ModelClass.LARGE:
        return settings.SUMMARY_MODEL_LARGE
    return settings.SUMMARY_MODEL_SMALL
