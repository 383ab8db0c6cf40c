import asyncio
import logging
import os
import signal

import pytest

from amaru.exit import hook_exit_event


@pytest.mark.asyncio
@pytest.mark.parametrize("signum", [signal.SIGINT, signal.SIGTERM])
async def test_signal_sets_event(signum, caplog):
    caplog.set_level(logging.WARNING, logger="amaru.exit")
    event = hook_exit_event()
    assert event.is_set() is False
    os.kill(os.getpid(), signum)
    await asyncio.wait_for(event.wait(), timeout=5)
    assert event.is_set() is True
    assert f"{signum.name} detected" in caplog.text


@pytest.mark.asyncio
async def test_handlers_removed_after_first_signal():
    event = hook_exit_event()
    assert event.is_set() is False
    os.kill(os.getpid(), signal.SIGTERM)
    await asyncio.wait_for(event.wait(), timeout=5)
    assert event.is_set() is True
    loop = asyncio.get_running_loop()
    assert loop.remove_signal_handler(signal.SIGTERM) is False
    assert loop.remove_signal_handler(signal.SIGINT) is False


def test_requires_running_loop():
    with pytest.raises(RuntimeError):
        hook_exit_event()