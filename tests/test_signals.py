import io
import os
import signal
import subprocess

import pytest

from aisha.signals import SignalForwarder


@pytest.fixture
def out():
    return io.StringIO()


@pytest.fixture
def sleeper():
    proc = subprocess.Popen(["sleep", "30"])
    yield proc
    if proc.poll() is None:
        proc.kill()
        proc.wait()


def test_sigint_without_foreground_writes_newline(out):
    forwarder = SignalForwarder(out)
    forwarder.handle_sigint(signal.SIGINT, None)
    assert out.getvalue() == "\n"
    assert forwarder.foreground_pid == -1


def test_sigint_forwarded(out, sleeper):
    forwarder = SignalForwarder(out)
    with forwarder.foreground(sleeper.pid):
        forwarder.handle_sigint(signal.SIGINT, None)
    assert sleeper.wait(timeout=10) == -signal.SIGINT
    assert out.getvalue() == "\n"


def test_foreground_resets_after_error(out):
    forwarder = SignalForwarder(out)
    with pytest.raises(RuntimeError):
        with forwarder.foreground(1234) as pid:
            assert forwarder.foreground_pid == pid
            raise RuntimeError("boom")
    assert forwarder.foreground_pid == -1


def test_install_sets_handlers(out):
    saved = {
        signum: signal.getsignal(signum)
        for signum in (signal.SIGINT, signal.SIGTSTP, signal.SIGQUIT)
    }
    forwarder = SignalForwarder(out)
    try:
        forwarder.install()
        assert signal.getsignal(signal.SIGINT) == forwarder.handle_sigint
        assert signal.getsignal(signal.SIGTSTP) == forwarder.handle_sigtstp
        assert signal.getsignal(signal.SIGQUIT) == signal.SIG_IGN
    finally:
        for signum, handler in saved.items():
            signal.signal(signum, handler)