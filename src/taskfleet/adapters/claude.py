"""Claude Code CLI executor (``claude -p``)."""

from __future__ import annotations

import json

from taskfleet.adapters.base import ExecutorRequest, SubprocessExecutor


class ClaudeExecutor(SubprocessExecutor):
    def __init__(self, binary: str = "claude", **kwargs) -> None:  # type: ignore[no-untyped-def]
        super().__init__(backend="claude", binary=binary, **kwargs)

    def build_args(self, request: ExecutorRequest) -> list[str]:
        args = ["-p", "--output-format", "json"]
        if request.system_prompt:
            args.extend(["--system-prompt", request.system_prompt])
        if request.json_schema:
            args.extend(["--json-schema", json.dumps(request.json_schema)])
        if request.max_turns:
            args.extend(["--max-turns", str(request.max_turns)])
        if self.model:
            args.extend(["--model", self.model])
        args.extend(self.extra_args)
        return args
