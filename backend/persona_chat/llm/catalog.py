"""
Model catalog - display metadata for allow-listed model ids.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class ModelInfo:
    id: str
    name: str
    description: str


KNOWN_MODELS: Dict[str, ModelInfo] = {
    m.id: m for m in [
        ModelInfo(
            id="google/gemini-2.0-flash-001",
            name="Gemini Flash",
            description="Fast & balanced. Great for everyday conversations",
        ),
        ModelInfo(
            id="anthropic/claude-3.5-sonnet",
            name="Claude Sonnet",
            description="Thoughtful & nuanced. Excels at complex reasoning",
        ),
        ModelInfo(
            id="openai/gpt-4o-mini",
            name="GPT-4o Mini",
            description="Versatile & reliable. Good all-around performance",
        ),
        ModelInfo(
            id="meta-llama/llama-3.1-70b-instruct",
            name="Llama 3.1",
            description="Open & direct. Community-driven intelligence",
        ),
    ]
}


def available_models(allowed_ids: List[str]) -> List[ModelInfo]:
    """Catalog entries for the allow-list, in allow-list order.

    Ids configured without catalog metadata get their id as display name.
    """
    return [KNOWN_MODELS.get(model_id) or ModelInfo(id=model_id, name=model_id, description="")
            for model_id in allowed_ids]


def get_model_by_id(model_id: str, allowed_ids: List[str]) -> Optional[ModelInfo]:
    if model_id not in allowed_ids:
        return None
    return KNOWN_MODELS.get(model_id) or ModelInfo(id=model_id, name=model_id, description="")
