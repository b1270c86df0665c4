"""Routes free-form operator input to the coordinator or to the workers."""

from __future__ import annotations

import logging

from taskfleet.adapters.base import AgentExecutor, ExecutorRequest
from taskfleet.adapters.parsing import parse_json_output
from taskfleet.protocol.models import InputClassification, TeamConfig
from taskfleet.protocol.schemas import INPUT_CLASSIFICATION_SCHEMA

log = logging.getLogger(__name__)

CLASSIFIER_SYSTEM_PROMPT = "\n".join(
    [
        "You are an input classifier for a multi-agent orchestration system.",
        "Determine whether user input is directed at the coordinator (the orchestration "
        "system itself) or should be dispatched to workers (AI agents that perform "
        "development tasks).",
        "",
        "Classify as 'coordinator' when the user:",
        "- Asks about the current session, team configuration, or task status",
        "- Asks a general question not related to a specific coding task",
        "- Wants to change settings or configuration",
        "- Asks about how the system works or what it can do",
        "",
        "Classify as 'worker' when the user:",
        "- Requests code changes, implementation, refactoring, or bug fixes",
        "- Asks for code investigation or analysis",
        "- Requests tests to be written or run",
        "- Gives any instruction that requires working with the codebase",
        "",
        "When target is 'coordinator', provide a helpful response in the same language as the user's input.",
        "When target is 'worker', set response to an empty string.",
        "Output valid JSON matching the provided schema.",
    ]
)


class InputClassifier:
    def __init__(self, executor: AgentExecutor) -> None:
        self.executor = executor

    async def classify(
        self,
        text: str,
        *,
        team: TeamConfig | None = None,
        task_summary: str | None = None,
        project_instructions: str | None = None,
    ) -> InputClassification:
        """Classify *text*; any failure routes it to the workers."""
        try:
            run = await self.executor.run(
                ExecutorRequest(
                    prompt=self.build_prompt(text, team, task_summary, project_instructions),
                    system_prompt=CLASSIFIER_SYSTEM_PROMPT,
                    json_schema=INPUT_CLASSIFICATION_SCHEMA,
                    max_turns=1,
                )
            )
            if run.exit_code != 0:
                log.warning("Classification failed with exit code %d, defaulting to worker", run.exit_code)
                return InputClassification()
            parsed = parse_json_output(run.output)
        except Exception as exc:
            log.warning("Classification error: %s, defaulting to worker", exc)
            return InputClassification()
        if not isinstance(parsed, dict) or parsed.get("target") not in {"coordinator", "worker"}:
            log.warning("Unrecognised classification %r, defaulting to worker", parsed)
            return InputClassification()
        return InputClassification(target=parsed["target"], response=str(parsed.get("response", "")))

    def build_prompt(
        self,
        text: str,
        team: TeamConfig | None,
        task_summary: str | None,
        project_instructions: str | None,
    ) -> str:
        parts = ["## User Input", text]
        if team is not None:
            parts.extend(
                [
                    "",
                    "## Current Team Configuration",
                    f"investigators: {team.investigators}, implementers: {team.implementers}, "
                    f"testers: {team.testers}",
                ]
            )
        if task_summary:
            parts.extend(["", "## Current Task Status", task_summary])
        if project_instructions:
            parts.extend(["", "## Project Directives (CLAUDE.md)", project_instructions])
        return "\n".join(parts)
