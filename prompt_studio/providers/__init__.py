from prompt_studio.providers.analysis import build_analysis_result
from prompt_studio.providers.gemini import GeminiImageAnalyzer, GeminiImageGenerator
from prompt_studio.providers.images import fetch_image_base64
from prompt_studio.providers.pollinations import PollinationsImageGenerator

__all__ = [
    "GeminiImageAnalyzer",
    "GeminiImageGenerator",
    "PollinationsImageGenerator",
    "build_analysis_result",
    "fetch_image_base64",
]
