from .deepseek import DeepSeekCompletionClient
from .gemini import GeminiCompletionClient
from .openai import OpenAICompletionClient

__all__ = ["DeepSeekCompletionClient", "GeminiCompletionClient", "OpenAICompletionClient"]
