"""Test doubles and builders."""

from collections.abc import AsyncIterator
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

from coding_agent_chat.models import Language, ProjectFile


class ScriptedAgent:
    """Agent double that streams canned replies in small chunks."""

    def __init__(self, *responses: str, chunk_size: int = 7) -> None:
        self.responses = list(responses)
        self.chunk_size = chunk_size
        self.prompts: list[str] = []

    async def stream_text(self, prompt: str) -> AsyncIterator[str]:
        self.prompts.append(prompt)
        text = self.responses.pop(0) if self.responses else ""
        for i in range(0, len(text), self.chunk_size):
            yield text[i : i + self.chunk_size]


def make_file(path: str, content: str, language: Language = Language.JAVASCRIPT) -> ProjectFile:
    return ProjectFile(name=Path(path).name, path=path, content=content, language=language)


def make_stream(*chunks: bytes) -> MagicMock:
    """Stream double returning the chunks, then EOF."""
    stream = MagicMock()
    stream.read = AsyncMock(side_effect=[*chunks, b""])
    return stream


def make_process(pid: int = 12345, stdout=(), stderr=()) -> MagicMock:
    """Process double that exits as soon as it is waited on."""
    process = MagicMock()
    process.pid = pid
    process.returncode = None
    process.stdout = make_stream(*stdout)
    process.stderr = make_stream(*stderr)
    process.wait = AsyncMock(return_value=0)
    process.terminate = MagicMock()
    process.kill = MagicMock()
    return process
