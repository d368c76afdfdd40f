"""Extract file edits from raw agent replies.

The agent is instructed to emit every created or modified file as a fenced
block whose info string is ``language:path``::

    ```js:src/index.js
    console.log("hello");
    ```

Everything outside fenced blocks is the human-readable explanation.
"""

from dataclasses import dataclass, field
from pathlib import PurePosixPath
import re

from .models import Language, ProjectFile

_LANGUAGE_ALIASES: dict[str, Language] = {
    "js": Language.JAVASCRIPT,
    "javascript": Language.JAVASCRIPT,
    "ts": Language.TYPESCRIPT,
    "typescript": Language.TYPESCRIPT,
    "py": Language.PYTHON,
    "python": Language.PYTHON,
    "json": Language.JSON,
    "html": Language.HTML,
    "css": Language.CSS,
    "md": Language.MARKDOWN,
    "markdown": Language.MARKDOWN,
    "text": Language.TEXT,
}


def normalize_language(tag: str | None) -> Language:
    """Map a fence language tag to its canonical Language.

    Total and idempotent: unknown or empty tags become ``Language.TEXT`` and
    canonical names map to themselves.
    """
    if not tag:
        return Language.TEXT
    return _LANGUAGE_ALIASES.get(tag.strip().lower(), Language.TEXT)


@dataclass
class ParsedResponse:
    """Files and explanation extracted from one agent reply."""

    files: list[ProjectFile] = field(default_factory=list)
    explanation: str = ""

    @property
    def has_files(self) -> bool:
        return bool(self.files)


class ResponseParser:
    """Parses agent replies into file edits plus explanation text.

    Every opening fence is paired with the next closing fence first; only
    then is the info string read as ``language:path``. Blocks without a path
    (plain ``python`` fences, ``js src/a.js``) or with empty content are
    dropped so that placeholders never reach the disk. Duplicate paths are
    kept in order; the project store applies them last-write-wins.
    """

    _FENCED_BLOCK_PATTERN = re.compile(r"```([^\n`]*)\r?\n(.*?)```", re.DOTALL)
    _ANY_BLOCK_PATTERN = re.compile(r"```.*?```", re.DOTALL)

    @classmethod
    def parse(cls, text: str) -> ParsedResponse:
        return ParsedResponse(
            files=cls.extract_files(text),
            explanation=cls.extract_explanation(text),
        )

    @classmethod
    def extract_files(cls, text: str) -> list[ProjectFile]:
        files: list[ProjectFile] = []
        for match in cls._FENCED_BLOCK_PATTERN.finditer(text):
            info, raw_content = match.groups()
            tag, separator, raw_path = info.strip().partition(":")
            path = raw_path.strip()
            content = raw_content.strip()
            if not separator or not path or not content:
                continue

            files.append(
                ProjectFile(
                    name=PurePosixPath(path.replace("\\", "/")).name or path,
                    path=path,
                    content=content,
                    language=normalize_language(tag),
                )
            )
        return files

    @classmethod
    def extract_explanation(cls, text: str) -> str:
        """Reply text with every fenced block removed."""
        return cls._ANY_BLOCK_PATTERN.sub("", text).strip()
