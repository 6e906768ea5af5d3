"""
Chat title generation service using LLM
"""
from typing import Optional

from config import Config
from modules.agent.llm_config import LLMConfig
from modules.agent.llm_handler import LLMHandler
from modules.agent.prompts import TITLE_PROMPT
from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TITLE = "New Chat"
MAX_TITLE_LENGTH = 30


def clean_title(raw: str) -> str:
    """Strip quotes and colons, cap the length"""
    title = raw.strip().strip('"').strip("'").replace(":", "").replace('"', "").strip()
    if len(title) > MAX_TITLE_LENGTH:
        title = title[:MAX_TITLE_LENGTH].rstrip()
    return title or DEFAULT_TITLE


async def generate_chat_title(first_message: str, api_key: Optional[str] = None, completion_fn=None) -> str:
    """
    Generate a title for a chat based on the first message.

    Args:
        first_message: The first user message in the chat
        api_key: Model API key (falls back to OPENAI_API_KEY)

    Returns:
        Title text; "New Chat" if generation fails
    """
    llm_config = LLMConfig.from_config(model=Config.TITLE_MODEL, api_key=api_key, max_tokens=30)
    kwargs = llm_config.to_litellm_kwargs()
    kwargs["messages"] = [
        {"role": "system", "content": TITLE_PROMPT},
        {"role": "user", "content": first_message[:500]}
    ]

    try:
        completion = completion_fn or LLMHandler().acompletion
        response = await completion(**kwargs)
        title = clean_title(response.choices[0].message.content or "")
        logger.info(f"Generated chat title: {title}")
        return title
    except Exception as e:
        logger.error(f"Error generating chat title: {e}")
        return DEFAULT_TITLE
