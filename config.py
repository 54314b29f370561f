import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

# -------------------- AI GATEWAY --------------------
OPENAI_BASE_URL: str = os.getenv("OPENAI_BASE_URL", "https://ai.gateway.lovable.dev/v1")
OPENAI_MODEL_VISION: str = os.getenv("OPENAI_MODEL_VISION", "google/gemini-2.5-pro")

AI_MAX_TOKENS: int = int(os.getenv("AI_MAX_TOKENS", "4096"))
AI_TEMPERATURE: float = float(os.getenv("AI_TEMPERATURE", "0.3"))
AI_TIMEOUT_SECONDS: float = float(os.getenv("AI_TIMEOUT_SECONDS", "120"))
AI_TIMEOUT_RETRIES: int = int(os.getenv("AI_TIMEOUT_RETRIES", "1"))

# -------------------- CLIENT --------------------
ANALYZE_SCAN_URL: str = os.getenv("ANALYZE_SCAN_URL", "http://localhost:8000/analyze-scan")
CLIENT_TIMEOUT_SECONDS: float = float(os.getenv("CLIENT_TIMEOUT_SECONDS", "150"))

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


def openai_api_key() -> Optional[str]:
    # read per request so a missing key only fails that request
    return os.getenv("OPENAI_API_KEY")
