"""
Task Planner - decomposes a user query into short progress labels

The labels are purely cosmetic: the client shows them while the agent works.
A planning failure never aborts the turn; it degrades to an empty plan.
"""
from typing import List, Optional, Callable, Awaitable, Any
import json

from pydantic import BaseModel, Field, ValidationError

from config import Config
from .llm_config import LLMConfig
from .llm_handler import LLMHandler
from .prompts import PLANNER_PROMPT
from utils.logger import get_logger

logger = get_logger(__name__)


class SubTask(BaseModel):
    """One planned step, e.g. {"task_name": "Getting AAPL price", "class": "prices"}"""
    task_name: str
    class_: str = Field(default="", alias="class", description="The name of the sub-task")

    class Config:
        populate_by_name = True


class TaskPlan(BaseModel):
    """Structured planner output"""
    tasks: List[SubTask] = Field(default_factory=list)


CompletionFn = Callable[..., Awaitable[Any]]


class TaskPlanner:
    """
    One structured-generation call per turn.

    Usage:
        planner = TaskPlanner(api_key=model_api_key)
        tasks = await planner.plan("What is the current price of AAPL?")
        labels = [t.task_name for t in tasks]
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        completion_fn: Optional[CompletionFn] = None,
        user_id: Optional[str] = None,
        chat_id: Optional[str] = None
    ):
        self.llm_config = LLMConfig.from_config(
            model=model or Config.PLANNER_MODEL,
            api_key=api_key,
            response_format={"type": "json_object"}
        )
        self._completion_fn = completion_fn or LLMHandler(user_id=user_id, chat_id=chat_id).acompletion

    @staticmethod
    def parse_plan(raw: str) -> List[SubTask]:
        """Parse the model's JSON answer; accepts a bare array or {"tasks": [...]}"""
        data = json.loads(raw)
        if isinstance(data, list):
            data = {"tasks": data}
        return TaskPlan.model_validate(data).tasks

    async def plan(self, user_text: str) -> List[SubTask]:
        kwargs = self.llm_config.to_litellm_kwargs()
        kwargs["messages"] = [
            {"role": "user", "content": PLANNER_PROMPT.format(query=user_text)}
        ]

        try:
            response = await self._completion_fn(**kwargs)
            raw = response.choices[0].message.content or ""
            tasks = self.parse_plan(raw)
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Planner returned an invalid plan, continuing without tasks: {e}")
            return []
        except Exception as e:
            logger.error(f"Planner call failed, continuing without tasks: {e}", exc_info=True)
            return []

        logger.info(f"Planned {len(tasks)} task(s): {[t.task_name for t in tasks]}")
        return tasks
