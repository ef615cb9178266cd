"""
Clients for the generation, synthesis and recognition backends.
"""

from .base import BackendClient
from .generation import GenerationClient
from .recognition import RecognitionClient
from .synthesis import SynthesisClient

__all__ = ["BackendClient", "GenerationClient", "RecognitionClient", "SynthesisClient"]
