# app/agents/pipeline.py
"""
Prompt -> model -> normalize -> validate, for one request.

Stages run strictly in order and the first failure stops the run. The raised
PipelineError carries the stage it came from.
"""
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from app.agents.llm.base import LLMClient
from app.agents.normalizer import normalize_reply
from app.agents.prompts import build_messages, generation_params
from app.agents.schemas import GenerationTask, ModelMessage, ModelReply
from app.agents.validator import validate_result
from app.errors import SchemaViolation
from app.log import get_logger

logger = get_logger(__name__)

ResultT = TypeVar("ResultT", bound=BaseModel)


@dataclass
class StructuredRun(Generic[ResultT]):
    result: ResultT
    reply: ModelReply

    @property
    def tokens_used(self) -> int | None:
        return self.reply.usage.total_tokens if self.reply.usage else None


def invoke(
    llm: LLMClient,
    task: GenerationTask,
    *,
    messages: list[ModelMessage] | None = None,
    params: dict[str, Any] | None = None,
) -> ModelReply:
    messages = messages if messages is not None else build_messages(task)
    params = params if params is not None else generation_params(task)
    return llm.complete(messages, **params)


def run_structured(
    llm: LLMClient,
    task: GenerationTask,
    *,
    messages: list[ModelMessage] | None = None,
    params: dict[str, Any] | None = None,
) -> StructuredRun:
    reply = invoke(llm, task, messages=messages, params=params)

    normalized = normalize_reply(reply.text)
    if not normalized.ok:
        logger.warning(
            "Unparsable %s reply (%s): %r",
            task.task_type.value,
            normalized.error.parse_error,
            reply.text[:2000],
        )
    value = normalized.unwrap()

    try:
        result = validate_result(task.task_type, value)
    except SchemaViolation as e:
        e.raw_text = reply.text
        logger.warning(
            "%s reply failed validation at '%s': %s", task.task_type.value, e.field_path, e.expected
        )
        raise

    return StructuredRun(result=result, reply=reply)
