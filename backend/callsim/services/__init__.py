from callsim.services.openai_service import OpenAIService

__all__ = [
    'OpenAIService',
]
