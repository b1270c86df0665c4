"""Prompt construction for task execution and planning."""

from __future__ import annotations

from taskfleet.protocol.models import SharedContext, Task

ROLE_SYSTEM_PROMPTS: dict[str, str] = {
    "investigator": (
        "You are an Investigator agent in a multi-agent development team.\n"
        "Your job is to analyze code, research project structure, and gather information.\n"
        "You should:\n"
        "- Read and understand code thoroughly\n"
        "- Report findings clearly and concisely\n"
        "- Identify key patterns, dependencies, and architectural decisions\n"
        "- Provide actionable information for implementers\n"
        "Do NOT modify any files. Only read and analyze."
    ),
    "implementer": (
        "You are an Implementer agent in a multi-agent development team.\n"
        "Your job is to write and modify code based on instructions and context from investigators.\n"
        "You should:\n"
        "- Write clean, well-structured code\n"
        "- Follow existing project conventions\n"
        "- Create or modify only the files needed\n"
        "- Report what files you created or changed\n"
        "Focus on implementation quality and correctness."
    ),
    "tester": (
        "You are a Tester agent in a multi-agent development team.\n"
        "Your job is to write tests and verify implementations.\n"
        "You should:\n"
        "- Write comprehensive test cases\n"
        "- Run existing tests and report results\n"
        "- Identify edge cases and potential issues\n"
        "- Verify that implementations match requirements\n"
        "Focus on test coverage and finding bugs."
    ),
}

PLANNING_SYSTEM_PROMPT = (
    "You are a task planning coordinator. Break user requests into concrete, actionable "
    "tasks for a development team. Output valid JSON matching the provided schema."
)


class PromptBuilder:
    def get_system_prompt(self, role: str) -> str:
        try:
            return ROLE_SYSTEM_PROMPTS[role]
        except KeyError:
            raise ValueError(f"Unknown worker role: {role!r}") from None

    def build_task_prompt(
        self,
        task: Task,
        shared_context: SharedContext | None = None,
        directives: list[str] | None = None,
    ) -> str:
        parts = [f"# Task: {task.title}", "", task.description]

        if task.context:
            parts.extend(["", "## Additional Context", task.context])

        if shared_context is not None and shared_context.entries:
            parts.extend(["", "## Shared Context from Other Agents"])
            for entry in shared_context.entries:
                parts.extend(["", f"### From {entry.contributor} ({entry.task_id})", entry.summary])

        if directives:
            parts.extend(["", "## Coordinator Directives", "Your output must satisfy all of these:"])
            parts.extend(f"- {d}" for d in directives)

        return "\n".join(parts) + "\n"

    def build_planning_prompt(
        self,
        user_request: str,
        context_summary: str | None = None,
        directives: list[str] | None = None,
    ) -> str:
        parts = [
            "# User Request",
            "",
            user_request,
            "",
            "Break this request into concrete tasks for a development team.",
            "Available roles:",
            "- investigator: Code analysis, research, information gathering (read-only)",
            "- implementer: Code writing and modification",
            "- tester: Test writing and execution",
            "",
            "Consider task dependencies - investigation should come before implementation, "
            "and testing after implementation.",
            "Use the exact task title in the dependencies array to reference dependent tasks.",
        ]
        if context_summary:
            parts.extend(["", "## Current Project Context", context_summary])
        if directives:
            parts.extend(["", "## Coordinator Directives"])
            parts.extend(f"- {d}" for d in directives)
        return "\n".join(parts) + "\n"
