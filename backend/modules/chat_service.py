"""
Chat service - runs one user turn from persisted user message to annotated reply

A turn runs in its own task and writes its progress into an EventChannel the
HTTP response reads from:

    user-message-id -> query-loading ... -> text-delta / tool-* ... -> finish
    -> (flush acknowledged) -> persist -> message-annotation -> close
"""
from typing import Dict, Optional, Callable, Any, Set
import asyncio
import uuid

from config import Config
from models.chat import ChatRequest, PersistedMessage
from models.chat_history import ChatHistory
from models.llm_models import ModelInfo
from models.sse import SSEEvent, UserMessageIdEvent, MessageAnnotationEvent, ErrorEvent
from modules.agent.agent_loop import AgentLoop, AgentState
from modules.agent.context import AgentContext
from modules.agent.llm_config import LLMConfig
from modules.agent.planner import TaskPlanner
from modules.event_channel import EventChannel
from modules.persistence import PersistenceFinalizer
from modules.tools.clients.financial_datasets import FinancialDatasetsClient
from modules.tools.executor import ToolExecutor, create_default_executor
from services.chat_title import generate_chat_title
from utils.logger import get_logger
from utils.tracing import get_tracer, add_span_attributes

logger = get_logger(__name__)
tracer = get_tracer(__name__)


class ChatService:
    """
    Service for handling chat turns.

    Collaborators are injectable so a turn can run against stubs:
        data_client_factory(api_key) -> object with the gateway methods
        planner_factory(api_key, user_id, chat_id) -> object with async plan(text)
        llm_streamer -> async generator with stream_llm_response's signature
        title_generator(first_message, api_key) -> awaitable title
    """

    def __init__(
        self,
        store,
        data_client_factory: Optional[Callable[[str], Any]] = None,
        planner_factory: Optional[Callable[..., Any]] = None,
        llm_streamer: Optional[Callable[..., Any]] = None,
        title_generator: Optional[Callable[..., Any]] = None,
        flush_timeout: Optional[float] = None,
        max_steps: Optional[int] = None
    ):
        self.store = store
        self.finalizer = PersistenceFinalizer(store)
        self.data_client_factory = data_client_factory or (lambda api_key: FinancialDatasetsClient(api_key=api_key))
        self.planner_factory = planner_factory or (
            lambda api_key, user_id, chat_id: TaskPlanner(api_key=api_key, user_id=user_id, chat_id=chat_id)
        )
        self.llm_streamer = llm_streamer
        self.title_generator = title_generator or generate_chat_title
        self.flush_timeout = Config.STREAM_FLUSH_TIMEOUT if flush_timeout is None else flush_timeout
        self.max_steps = max_steps

        # chat_id -> stop event of the turn currently running in that chat
        self._active_turns: Dict[str, asyncio.Event] = {}
        self._tasks: Set[asyncio.Task] = set()

    def is_active(self, chat_id: str) -> bool:
        return chat_id in self._active_turns

    async def wait_idle(self):
        """Wait until every launched turn, including its cleanup, has ended"""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def stop(self, chat_id: str) -> bool:
        """Request cancellation of the chat's running turn. False if none is running."""
        stop_event = self._active_turns.get(chat_id)
        if stop_event is None:
            return False
        logger.info(f"Stop requested for chat {chat_id}")
        stop_event.set()
        return True

    async def ensure_conversation(self, chat_id: str, user_id: str, first_message: str, api_key: str):
        conversation = await self.store.get_conversation(chat_id)
        if conversation is None:
            title = await self.title_generator(first_message, api_key)
            conversation = await self.store.create_conversation(chat_id, user_id, title=title)
        return conversation

    async def load_history(self, chat_id: str) -> ChatHistory:
        stored = await self.store.get_messages(chat_id)
        return ChatHistory.from_persisted(stored)

    async def start_turn(
        self,
        request: ChatRequest,
        user_id: str,
        model: ModelInfo,
        model_api_key: str,
        financial_datasets_api_key: str
    ) -> EventChannel:
        """
        Persist the user message and launch the turn.

        Returns the channel the turn writes to. The first event on it is
        user-message-id; the last is finish (or error), followed by any
        message annotations.
        """
        user_message = request.latest_user_message()
        chat_id = request.id

        await self.ensure_conversation(chat_id, user_id, user_message.content, model_api_key)
        history = await self.load_history(chat_id)

        user_record = PersistedMessage(
            id=str(uuid.uuid4()),
            chat_id=chat_id,
            role="user",
            content=user_message.content
        )
        await self.store.append_messages(chat_id, [user_record])
        history.add_user_message(user_message.content)

        # A new turn supersedes whatever was still running in this chat
        self.stop(chat_id)
        stop_event = asyncio.Event()
        self._active_turns[chat_id] = stop_event

        channel = EventChannel()
        channel.write(SSEEvent(
            event="user-message-id",
            data=UserMessageIdEvent(message_id=user_record.id).model_dump()
        ))

        task = asyncio.create_task(self._run_turn(
            channel=channel,
            history=history,
            user_text=user_message.content,
            user_id=user_id,
            chat_id=chat_id,
            model=model,
            model_api_key=model_api_key,
            financial_datasets_api_key=financial_datasets_api_key,
            stop_event=stop_event
        ))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return channel

    async def _run_turn(
        self,
        channel: EventChannel,
        history: ChatHistory,
        user_text: str,
        user_id: str,
        chat_id: str,
        model: ModelInfo,
        model_api_key: str,
        financial_datasets_api_key: str,
        stop_event: asyncio.Event
    ):
        data_client = self.data_client_factory(financial_datasets_api_key)
        executor = create_default_executor()
        try:
            with tracer.start_as_current_span("chat_turn"):
                add_span_attributes({"user.id": user_id, "chat.id": chat_id, "llm.model": model.id})

                context = AgentContext(user_id=user_id, chat_id=chat_id, data_client=data_client)
                loop = AgentLoop(
                    context=context,
                    llm_config=LLMConfig.from_config(
                        model=model.api_identifier,
                        api_key=model_api_key,
                        stream=True
                    ),
                    planner=self.planner_factory(model_api_key, user_id, chat_id),
                    executor=executor,
                    max_steps=self.max_steps,
                    stop_event=stop_event,
                    llm_streamer=self.llm_streamer
                )

                async for event in loop.run(history.to_openai_format(limit=Config.CHAT_HISTORY_LIMIT), user_text):
                    channel.write(event)

                if loop.state == AgentState.ABORTED:
                    logger.info(f"Turn aborted for chat {chat_id}, nothing persisted")
                    return

                await channel.wait_flushed(self.flush_timeout)
                saved = await self.finalizer.finalize(chat_id, loop.response_messages)
                for message in saved:
                    if message.role == "assistant":
                        channel.write(SSEEvent(
                            event="message-annotation",
                            data=MessageAnnotationEvent(message_id_from_server=message.id).model_dump()
                        ))

        except Exception as e:
            logger.error(f"Chat turn failed for chat {chat_id}: {e}", exc_info=True)
            if not channel.closed:
                channel.write(SSEEvent(
                    event="error",
                    data=ErrorEvent(error="An error occurred while processing your request").model_dump()
                ))
        finally:
            if self._active_turns.get(chat_id) is stop_event:
                del self._active_turns[chat_id]
            channel.close()
            await self._release(executor, data_client)

    async def _release(self, executor: ToolExecutor, data_client):
        """Close the data client once no abandoned tool call is still using it"""
        await executor.drain()
        aclose = getattr(data_client, "aclose", None)
        if aclose is not None:
            await aclose()


_chat_service: Optional[ChatService] = None


def get_chat_service() -> ChatService:
    """FastAPI dependency returning the process-wide chat service"""
    global _chat_service
    if _chat_service is None:
        from modules.conversation_store import get_conversation_store
        _chat_service = ChatService(store=get_conversation_store())
    return _chat_service
