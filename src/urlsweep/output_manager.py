"""Output aggregation and rendering of discovered URLs."""

import json
import logging
import os
import sys
import tempfile
from enum import Enum
from pathlib import Path
from typing import List, Optional, Set, TextIO

from urlsweep.constants import JSON_INDENT, JSON_OUTPUT_EXTENSIONS, TEXT_OUTPUT_EXTENSIONS
from urlsweep.discovery import DiscoveryRecord
from urlsweep.errors import OutputError

logger = logging.getLogger(__name__)


class OutputFormat(str, Enum):
    """The two supported output encodings."""
    TEXT = "text"
    JSON = "json"


def resolve_output_format(path: str, json_flag: bool = False) -> OutputFormat:
    """Pick the encoding for ``path``.

    The JSON flag selects structured output unless the path explicitly
    asks for text. Without the flag the extension decides.

    Raises:
        OutputError: If the flag and extension disagree, or the extension
            is neither ``.txt`` nor ``.json`` without the flag
    """
    suffix = Path(path).suffix.lower()

    if json_flag:
        if suffix in TEXT_OUTPUT_EXTENSIONS:
            raise OutputError(f"--json conflicts with text output file {path}")
        return OutputFormat.JSON

    if suffix in JSON_OUTPUT_EXTENSIONS:
        return OutputFormat.JSON
    if suffix in TEXT_OUTPUT_EXTENSIONS:
        return OutputFormat.TEXT

    raise OutputError(
        f"Unsupported output file extension {suffix or '(none)'!r} for {path}; "
        f"use .txt, .json or --json"
    )


def render_text(records: List[DiscoveryRecord]) -> str:
    """Deduplicated, ascending, newline-joined URLs."""
    return "\n".join(sorted({record.url for record in records}))


def render_json(records: List[DiscoveryRecord]) -> str:
    """Indented array of records in acceptance order."""
    return json.dumps([record.to_dict() for record in records], indent=JSON_INDENT)


class OutputAggregator:
    """Accumulates Discovery Records for a run and writes them once at the end.

    Nothing is appended to the output file while crawling; ``flush`` renders
    the complete result through a temporary sibling file and renames it into
    place, so an interrupted run never leaves a partial file behind.
    """

    def __init__(
        self,
        output_path: Optional[str] = None,
        json_output: bool = False,
        echo: bool = True,
        stream: Optional[TextIO] = None,
    ):
        """Initialize output aggregator.

        Args:
            output_path: Destination file, or None to only echo URLs
            json_output: Render structured records instead of plain URLs
            echo: Print each accepted URL as it is discovered
            stream: Where echoed URLs go (defaults to stdout)
        """
        self.output_path = output_path
        self.json_output = json_output
        self.echo = echo
        self._stream = stream
        self._records: List[DiscoveryRecord] = []
        self._urls: Set[str] = set()

    @property
    def records(self) -> List[DiscoveryRecord]:
        return list(self._records)

    @property
    def urls(self) -> List[str]:
        return [record.url for record in self._records]

    def __len__(self) -> int:
        return len(self._records)

    def add(self, record: DiscoveryRecord) -> bool:
        """Keep ``record`` unless its URL was already recorded for another target."""
        if record.url in self._urls:
            return False
        self._urls.add(record.url)
        self._records.append(record)

        if self.echo:
            stream = self._stream or sys.stdout
            print(record.url, file=stream, flush=True)
        return True

    def render(self, output_format: OutputFormat) -> str:
        if output_format is OutputFormat.JSON:
            return render_json(self._records)
        return render_text(self._records)

    def flush(self) -> Optional[Path]:
        """Write the results to the output file, if one was configured.

        Returns:
            Path written, or None when there is no output file

        Raises:
            OutputError: If the format cannot be resolved or writing fails
        """
        if not self.output_path:
            return None

        output_format = resolve_output_format(self.output_path, self.json_output)
        content = self.render(output_format)
        if output_format is OutputFormat.TEXT and content:
            content += "\n"

        path = Path(self.output_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(content)
                os.replace(tmp_name, path)
            except BaseException:
                os.unlink(tmp_name)
                raise
        except OSError as e:
            raise OutputError(f"Failed to write {path}: {e}") from e

        logger.info(f"Results written to {path} ({len(self._records)} URLs, {output_format.value})")
        return path
