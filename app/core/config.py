"""
Application configuration (env, settings, constants).

Responsibility: Centralize config loading, environment variables, and app-wide
constants. Only the orchestrator factory reads these; providers receive their
credentials and models as constructor arguments.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


# Google Gemini (primary provider + visual aids)
GEMINI_API_KEY: str = (
    os.getenv("GEMINI_API_KEY", "").strip() or os.getenv("GOOGLE_API_KEY", "").strip()
)
GEMINI_TEXT_MODEL: str = (
    os.getenv("GEMINI_TEXT_MODEL", "gemini-2.0-flash").strip() or "gemini-2.0-flash"
)
# Image model only accepts TEXT+IMAGE response modalities, never IMAGE alone.
GEMINI_IMAGE_MODEL: str = (
    os.getenv("GEMINI_IMAGE_MODEL", "gemini-2.0-flash-preview-image-generation").strip()
    or "gemini-2.0-flash-preview-image-generation"
)

# Hugging Face router chat (secondary provider)
HF_API_KEY: str = os.getenv("HF_API_KEY", "").strip()
HF_CHAT_URL: str = (
    os.getenv("HF_CHAT_URL", "https://router.huggingface.co/v1/chat/completions").strip()
    or "https://router.huggingface.co/v1/chat/completions"
)
HF_LLM_MODEL: str = (
    os.getenv("HF_LLM_MODEL", "meta-llama/Llama-3.2-3B-Instruct").strip()
    or "meta-llama/Llama-3.2-3B-Instruct"
)

# API timeouts (seconds)
LLM_API_TIMEOUT: float = 60.0

# Flow variant
USE_TOOL_AWARE_PRIMARY: bool = _env_flag("USE_TOOL_AWARE_PRIMARY", False)
USE_VISUAL_AID_DECIDER: bool = _env_flag("USE_VISUAL_AID_DECIDER", True)
VISUAL_AIDS_ENABLED: bool = _env_flag("VISUAL_AIDS_ENABLED", True)

# Prompts
TUTOR_PROMPT_TEMPLATE: str = """You are an expert tutor. Provide a perfect, structured answer to the following academic question.
Use formatting like markdown, lists, and bold text to make the answer clear.
Provide a comprehensive explanation. If the topic requires a detailed answer, provide one.
Question:
{question}"""

TOOL_AWARE_PROMPT_TEMPLATE: str = """You are an expert tutor. Provide a perfect, structured answer to the following academic question.
Use formatting like markdown, lists, and bold text to make the answer clear.
If a diagram, chart, or illustration would make the explanation clearer, you may call
decide_visual_aid or generate_visual_aid once before writing your final answer.
Question:
{question}"""

FALLBACK_SYSTEM_PROMPT: str = (
    "You are an expert tutor. Answer the student's academic question clearly and accurately. "
    "Use markdown formatting (headings, lists, bold text) where it helps."
)
