"""Pytest configuration and shared fixtures."""

import io

import pytest


@pytest.fixture(autouse=True)
def reset_logging_state():
    """Reset logging state before each test."""
    from crashfeishu.logging import reset_logging

    reset_logging()
    yield
    reset_logging()


def _make_event(payload: str, eventname: str = "PROCESS_STATE_EXITED") -> bytes:
    body = payload.encode("utf-8")
    header = (
        f"ver:3.0 server:supervisor serial:21 pool:crashfeishu poolserial:10 "
        f"eventname:{eventname} len:{len(body)}\n"
    )
    return header.encode("utf-8") + body


@pytest.fixture
def make_event():
    """Encode one supervisor event (header line plus payload)."""
    return _make_event


@pytest.fixture
def exited_payload():
    """Payload of an unexpected exit of web:web."""
    return "processname:web groupname:web from_state:RUNNING expected:0 pid:2766"


@pytest.fixture
def stdout():
    """Captures bytes written to supervisord."""
    return io.BytesIO()
