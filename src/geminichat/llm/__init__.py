from .base import CompletionClient
from .errors import AuthError, EmptyResponseError, NetworkError, RemoteError, ServiceError
from .factory import SUPPORTED_PROVIDERS, create_completion_client
from .models import Message
from .providers import DeepSeekCompletionClient, GeminiCompletionClient, OpenAICompletionClient

__all__ = [
    "CompletionClient",
    "create_completion_client",
    "SUPPORTED_PROVIDERS",
    "Message",
    "ServiceError",
    "NetworkError",
    "AuthError",
    "RemoteError",
    "EmptyResponseError",
    "DeepSeekCompletionClient",
    "GeminiCompletionClient",
    "OpenAICompletionClient",
]
