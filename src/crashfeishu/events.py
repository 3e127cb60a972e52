"""Process state events and allow-list matching."""

from dataclasses import dataclass
from typing import Sequence, Union

from crashfeishu.errors import TokenSetError
from crashfeishu.tokenset import TokenSet, parse_token_set

__all__ = [
    "PROCESS_STATE_EXITED",
    "MalformedEvent",
    "ProcessEvent",
    "ProcessExitedEvent",
    "parse_event",
    "render_message",
    "should_monitor",
]

PROCESS_STATE_EXITED = "PROCESS_STATE_EXITED"

# Payload tokens supervisord sends with PROCESS_STATE_EXITED
REQUIRED_FIELDS = ("expected", "groupname", "processname", "pid", "from_state")


# ============================================================================
# Event Types
# ============================================================================


@dataclass(frozen=True)
class ProcessExitedEvent:
    """A well-formed process exit notification."""

    eventname: str  # from the header line
    expected: bool  # exit code was listed in the program's exitcodes
    groupname: str
    processname: str
    pid: str
    from_state: str  # e.g., "RUNNING"

    @property
    def full_name(self) -> str:
        """Qualified ``group:process`` name."""
        return f"{self.groupname}:{self.processname}"


@dataclass(frozen=True)
class MalformedEvent:
    """An event body that could not be classified."""

    reason: str


ProcessEvent = Union[ProcessExitedEvent, MalformedEvent]


# ============================================================================
# Parsing
# ============================================================================


def parse_event(headers: TokenSet, payload: bytes) -> ProcessEvent:
    """Build a process exit event from a frame.

    Args:
        headers: Decoded header line (carries ``eventname``).
        payload: Raw event body.

    Returns:
        ProcessExitedEvent when every required field is present and valid,
        otherwise MalformedEvent describing the first problem found.
    """
    eventname = headers.get("eventname")
    if eventname is None:
        return MalformedEvent("header has no eventname")

    try:
        body = payload.decode("utf-8")
    except UnicodeDecodeError as e:
        return MalformedEvent(f"payload is not valid UTF-8: {e}")

    try:
        pset = parse_token_set(body)
    except TokenSetError as e:
        return MalformedEvent(f"payload is not a token set: {e}")

    missing = [name for name in REQUIRED_FIELDS if name not in pset]
    if missing:
        return MalformedEvent(f"payload is missing {', '.join(missing)}")

    try:
        expected = int(pset["expected"]) == 1
    except ValueError:
        return MalformedEvent(f"invalid expected value: {pset['expected']!r}")

    return ProcessExitedEvent(
        eventname=eventname,
        expected=expected,
        groupname=pset["groupname"],
        processname=pset["processname"],
        pid=pset["pid"],
        from_state=pset["from_state"],
    )


# ============================================================================
# Filtering
# ============================================================================


def should_monitor(full_name: str, programs: Sequence[str]) -> bool:
    """Check a qualified process name against the allow-list.

    An entry with a colon must equal ``full_name``. A bare entry ``name``
    matches ``name:name`` (a program that is its own group). An empty
    allow-list matches everything.
    """
    if not programs:
        return True

    for program in programs:
        if ":" in program:
            if program == full_name:
                return True
        elif f"{program}:{program}" == full_name:
            return True
    return False


def render_message(event: ProcessExitedEvent) -> str:
    """Render the alert text for an unexpected exit."""
    return (
        f"Process {event.processname} in group {event.groupname} "
        f"exited unexpectedly (pid {event.pid}) from state {event.from_state}"
    )
