"""
Catalog of the chat models a client may select.

Usage:
    from models.llm_models import get_model

    model = get_model("gpt-4o")
    model.api_identifier  # what LiteLLM is called with
"""
from enum import StrEnum
from typing import Dict, List, Optional

from pydantic import BaseModel

from config import Config


class Models(StrEnum):
    GPT_4_1_NANO = "gpt-4.1-nano-2025-04-14"
    GPT_4_1_MINI = "gpt-4.1-mini-2025-04-14"
    GPT_4_1 = "gpt-4.1-2025-04-14"
    GPT_4O = "gpt-4o"
    GPT_4O_MINI = "gpt-4o-mini"


class ModelInfo(BaseModel):
    id: str
    label: str
    api_identifier: str
    description: str


MODELS: List[ModelInfo] = [
    ModelInfo(
        id="gpt-4.1-nano",
        label="GPT 4.1 nano",
        api_identifier=Models.GPT_4_1_NANO,
        description="Fastest and cheapest, good for quick lookups",
    ),
    ModelInfo(
        id="gpt-4.1-mini",
        label="GPT 4.1 mini",
        api_identifier=Models.GPT_4_1_MINI,
        description="Balanced speed and quality",
    ),
    ModelInfo(
        id="gpt-4.1",
        label="GPT 4.1",
        api_identifier=Models.GPT_4_1,
        description="Best for multi-step financial analysis",
    ),
    ModelInfo(
        id="gpt-4o",
        label="GPT 4o",
        api_identifier=Models.GPT_4O,
        description="General purpose default",
    ),
]

DEFAULT_MODEL_ID = Config.DEFAULT_MODEL_ID

_MODELS_BY_ID: Dict[str, ModelInfo] = {model.id: model for model in MODELS}


def get_model(model_id: str) -> Optional[ModelInfo]:
    """Look up a catalog entry; None for unknown ids"""
    return _MODELS_BY_ID.get(model_id)
