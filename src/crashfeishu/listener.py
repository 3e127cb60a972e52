"""Event loop that turns supervisor exit events into Feishu alerts."""

import logging
from enum import Enum
from typing import Optional, Sequence

from crashfeishu.events import (
    PROCESS_STATE_EXITED,
    MalformedEvent,
    parse_event,
    render_message,
    should_monitor,
)
from crashfeishu.notifier import Notifier
from crashfeishu.protocol import EventListenerProtocol, Frame

logger = logging.getLogger(__name__)


class Outcome(Enum):
    """How a single event was handled."""

    IGNORED = "ignored"  # not a PROCESS_STATE_EXITED event
    MALFORMED = "malformed"  # could not be classified, acknowledged FAIL
    EXPECTED = "expected"  # exit was expected
    UNMONITORED = "unmonitored"  # process not in the allow-list
    NOTIFIED = "notified"
    NOTIFY_FAILED = "notify_failed"
    NOTIFY_SKIPPED = "notify_skipped"  # no webhook configured

    @property
    def acknowledged_ok(self) -> bool:
        """Whether supervisord receives OK for this outcome."""
        return self is not Outcome.MALFORMED


class EventListener:
    """Reads events from supervisord and alerts on unexpected exits.

    Each cycle is strictly sequential: READY, read one event, classify,
    optionally notify, acknowledge. Notification failures never turn into a
    FAIL reply; the event itself was processed.

    Usage:
        listener = EventListener(protocol, programs=["web:web"], notifier=n)
        listener.run()  # returns only by raising ProtocolError
    """

    def __init__(
        self,
        protocol: EventListenerProtocol,
        programs: Sequence[str] = (),
        notifier: Optional[Notifier] = None,
    ):
        """Initialize EventListener.

        Args:
            protocol: Protocol driver bound to supervisord's pipes.
            programs: Allow-list of ``name`` or ``group:name`` entries.
            notifier: Alert sink, or None when no webhook is configured.
        """
        self._protocol = protocol
        self._programs = list(programs)
        self._notifier = notifier

    def run(self) -> None:
        """Process events forever.

        Raises:
            ProtocolError: When the channel to supervisord breaks.
        """
        logger.info(
            "Listening for process exits (programs: %s)",
            ", ".join(self._programs) or "all",
        )
        while True:
            self.run_once()

    def run_once(self) -> Outcome:
        """Wait for one event, handle it and acknowledge it."""
        frame = self._protocol.wait()
        outcome = self.handle(frame)
        if outcome.acknowledged_ok:
            self._protocol.ok()
        else:
            self._protocol.fail()
        return outcome

    def handle(self, frame: Frame) -> Outcome:
        """Classify an event and send an alert if it is interesting.

        Args:
            frame: Event received from supervisord.

        Returns:
            The outcome, which decides the RESULT reply.
        """
        logger.debug("Event token set: %s", frame.headers)

        eventname = frame.headers.get("eventname")
        if eventname is None:
            logger.error("Malformed event: header has no eventname")
            return Outcome.MALFORMED
        if eventname != PROCESS_STATE_EXITED:
            return Outcome.IGNORED

        event = parse_event(frame.headers, frame.payload)
        if isinstance(event, MalformedEvent):
            logger.error("Malformed %s event: %s", eventname, event.reason)
            return Outcome.MALFORMED
        logger.debug("Process event: %s", event)

        if event.expected:
            return Outcome.EXPECTED

        if not should_monitor(event.full_name, self._programs):
            return Outcome.UNMONITORED

        message = render_message(event)
        logger.info(message)
        return self._notify(message)

    def _notify(self, message: str) -> Outcome:
        if self._notifier is None:
            logger.warning(
                "No webhook specified (no --webhook argument, CRASHFEISHU_WEBHOOK "
                "environment variable or config file webhook), "
                "message will not be pushed to Feishu"
            )
            return Outcome.NOTIFY_SKIPPED

        try:
            self._notifier.notify(message)
        except Exception as e:
            logger.error("Failed to push message to Feishu: %s", e)
            return Outcome.NOTIFY_FAILED
        return Outcome.NOTIFIED
