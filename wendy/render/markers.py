"""Out-of-band outcome markers emitted by the renderer.

The renderer prints ``xsynx completed xsynx`` on stdout when the output file
has been written, and ``xsynxerror <reason> xsynxerror`` for every error it
wants surfaced. Exit codes alone are not trusted.
"""

from typing import Iterable, List, Optional

COMPLETION_MARKER = "xsynx"
ERROR_MARKER = "xsynxerror"
COMPLETED = "completed"


def has_error(line: str) -> bool:
    return ERROR_MARKER in line


def _payload(line: str, marker: str) -> str:
    # Text between the first marker and the next one (or end of line)
    return line.split(marker)[1].strip()


def error_payloads(lines: Iterable[str]) -> List[str]:
    """Reasons carried by every error-marker line, in output order."""
    return [_payload(line, ERROR_MARKER) for line in lines if has_error(line)]


def parse_error(lines: Iterable[str]) -> str:
    """Join all error payloads with commas. Empty string when there are none."""
    return ", ".join(error_payloads(lines))


def completion_payload(lines: Iterable[str]) -> Optional[str]:
    """Payload of the first completion-marker line, or None if absent."""
    for line in lines:
        if has_error(line):
            continue
        if COMPLETION_MARKER in line:
            return _payload(line, COMPLETION_MARKER)
    return None


def check_completed(lines: List[str]) -> Optional[str]:
    """Return None when stdout proves a completed render, else a failure reason."""
    errors = parse_error(lines)
    if errors:
        return errors
    if not lines:
        return "No results to read"
    payload = completion_payload(lines)
    if payload is None:
        return "Renderer output is missing the completion marker"
    if payload != COMPLETED:
        return f"Renderer reported '{payload}' instead of '{COMPLETED}'"
    return None
