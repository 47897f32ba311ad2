"""Decode unified-diff hunks into DiffHunk/DiffLine records."""
import re
from dataclasses import dataclass, field
from typing import List, Optional, Union

from schema.diff_schema import DiffHunk, DiffLine, LineType

HUNK_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")


@dataclass
class ParsedPatch:
    hunks: List[DiffHunk] = field(default_factory=list)
    insertions: int = 0
    deletions: int = 0


def _count(value: Optional[str]) -> int:
    # "@@ -3 +3 @@" omits the length when it is 1
    return int(value) if value is not None else 1


def parse_patch(patch: Union[bytes, str, None]) -> ParsedPatch:
    """Parse the hunk section of one file's patch.

    Anything before the first hunk header (binary markers, file headers) is
    ignored. Insertions and deletions are tallied while lines are visited.
    """
    parsed = ParsedPatch()
    if not patch:
        return parsed
    text = patch.decode("utf-8", errors="replace") if isinstance(patch, bytes) else patch

    hunk: Optional[DiffHunk] = None
    old_no = new_no = 0

    # split on "\n" only; content may carry other line separators
    for raw in text.split("\n"):
        match = HUNK_HEADER_RE.match(raw)
        if match:
            old_no = int(match.group(1))
            new_no = int(match.group(3))
            hunk = DiffHunk(
                old_start=old_no,
                old_lines=_count(match.group(2)),
                new_start=new_no,
                new_lines=_count(match.group(4)),
                header=raw,
            )
            parsed.hunks.append(hunk)
            continue

        if hunk is None or not raw:
            continue

        origin, content = raw[0], raw[1:]
        if origin == "+":
            hunk.lines.append(DiffLine(line_type=LineType.ADDITION, new_lineno=new_no, content=content))
            new_no += 1
            parsed.insertions += 1
        elif origin == "-":
            hunk.lines.append(DiffLine(line_type=LineType.DELETION, old_lineno=old_no, content=content))
            old_no += 1
            parsed.deletions += 1
        elif origin == " ":
            hunk.lines.append(
                DiffLine(line_type=LineType.CONTEXT, old_lineno=old_no, new_lineno=new_no, content=content)
            )
            old_no += 1
            new_no += 1
        else:
            # "\ No newline at end of file"
            hunk.lines.append(DiffLine(line_type=LineType.HEADER, content=content.strip()))

    return parsed


def added_file_patch(text: str) -> ParsedPatch:
    """Patch for a file that did not exist before (every line an addition)."""
    if not text:
        return ParsedPatch()
    lines = text.split("\n")
    missing_newline = not text.endswith("\n")
    if not missing_newline:
        lines = lines[:-1]
    if not lines:
        return ParsedPatch()

    body = [f"@@ -0,0 +1{'' if len(lines) == 1 else f',{len(lines)}'} @@"]
    body.extend(f"+{line}" for line in lines)
    if missing_newline:
        body.append("\\ No newline at end of file")
    return parse_patch("\n".join(body) + "\n")
