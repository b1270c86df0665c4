"""Advisory check of successful task output against operator directives."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from taskfleet.adapters.base import AgentExecutor, ExecutorRequest
from taskfleet.adapters.parsing import parse_json_output
from taskfleet.protocol.models import ComplianceResult, Task, TaskResult
from taskfleet.protocol.schemas import COMPLIANCE_CHECK_SCHEMA

log = logging.getLogger(__name__)

COMPLIANCE_SYSTEM_PROMPT = (
    "You are a compliance checker. Evaluate whether a task output complies with the "
    "given directives. Output valid JSON matching the provided schema."
)


def should_check(result: TaskResult, directives: Sequence[str]) -> bool:
    return result.status == "success" and len(directives) > 0


class ComplianceChecker:
    def __init__(self, executor: AgentExecutor) -> None:
        self.executor = executor

    async def check(
        self,
        result: TaskResult,
        task: Task,
        directives: Sequence[str],
    ) -> ComplianceResult | None:
        """Judge *result* against *directives*.

        Returns ``None`` when the check is skipped (failed result or no
        directives) or when the judgment itself could not be obtained.
        """
        if not should_check(result, directives):
            return None
        try:
            run = await self.executor.run(
                ExecutorRequest(
                    prompt=self.build_prompt(result, task, directives),
                    system_prompt=COMPLIANCE_SYSTEM_PROMPT,
                    json_schema=COMPLIANCE_CHECK_SCHEMA,
                    max_turns=1,
                )
            )
            if run.exit_code != 0:
                log.warning("Compliance check failed with exit code %d", run.exit_code)
                return None
            parsed = parse_json_output(run.output)
            if not isinstance(parsed, dict):
                log.warning("Compliance check returned %s, ignoring", type(parsed).__name__)
                return None
            return ComplianceResult.from_dict(parsed)
        except Exception as exc:
            log.warning("Compliance check error: %s", exc)
            return None

    def build_prompt(self, result: TaskResult, task: Task, directives: Sequence[str]) -> str:
        directive_list = "\n".join(f"{i}. {d}" for i, d in enumerate(directives, start=1))
        return "\n".join(
            [
                "## Directives",
                directive_list,
                "",
                "## Task",
                f"Title: {task.title}",
                f"Description: {task.description}",
                "",
                "## Task Output",
                result.output,
                "",
                "## Instructions",
                "Check whether the task output complies with ALL of the directives above.",
                "For each violated directive, provide the directive text and reason for violation.",
                "If all directives are satisfied, set compliant to true with an empty violations array.",
            ]
        )
