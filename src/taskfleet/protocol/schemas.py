"""JSON schemas handed to the agent executor to constrain structured output."""

from __future__ import annotations

from typing import Any

from taskfleet.protocol.models import WORKER_ROLES

TASK_PLAN_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "tasks": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "title": {"type": "string", "description": "Short task title"},
                    "description": {
                        "type": "string",
                        "description": "Detailed task description with instructions",
                    },
                    "role": {
                        "type": "string",
                        "enum": list(WORKER_ROLES),
                        "description": "Worker role to assign this task to",
                    },
                    "dependencies": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Titles of tasks that must complete before this one (use exact titles)",
                    },
                },
                "required": ["title", "description", "role", "dependencies"],
            },
            "description": "List of tasks to execute",
        },
        "summary": {"type": "string", "description": "Brief summary of the overall plan"},
    },
    "required": ["tasks", "summary"],
}

TASK_RESULT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "output": {"type": "string", "description": "Main output/result of the task"},
        "artifacts": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "path": {"type": "string", "description": "File path"},
                    "action": {"type": "string", "enum": ["created", "modified", "deleted"]},
                },
                "required": ["path", "action"],
            },
            "description": "Files created, modified, or deleted",
        },
        "context_contribution": {
            "type": "string",
            "description": "Key information discovered that other workers should know about",
        },
    },
    "required": ["output", "artifacts", "context_contribution"],
}

COMPLIANCE_CHECK_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "compliant": {"type": "boolean"},
        "violations": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "directive": {"type": "string"},
                    "reason": {"type": "string"},
                },
                "required": ["directive", "reason"],
            },
        },
        "summary": {"type": "string"},
    },
    "required": ["compliant", "violations", "summary"],
}

INPUT_CLASSIFICATION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "target": {"type": "string", "enum": ["coordinator", "worker"]},
        "response": {"type": "string"},
    },
    "required": ["target", "response"],
}
