import io
import os
import sys
from types import SimpleNamespace

import pytest

from aisha.command import Command, Pipeline
from aisha.execute import Executor, has_and_or, has_sequential_or_background
from aisha.jobs import JobTable
from aisha.parser import tokenize
from aisha.signals import SignalForwarder

PY = sys.executable


def _py(code):
    return f'"{PY}" -c "{code}"'


@pytest.fixture
def env():
    calls = []
    statuses = []
    variables = {}
    bg_pids = []
    jobs_out = io.StringIO()

    def ok(argv):
        calls.append(argv)
        return 0

    def code(argv):
        return int(argv[1])

    def greet(argv):
        os.write(1, b"from builtin\n")
        return 0

    forwarder = SignalForwarder(out=io.StringIO())
    jobs = JobTable(out=jobs_out)
    executor = Executor(
        {"ok": ok, "code": code, "greet": greet},
        jobs,
        lambda name, value: variables.__setitem__(name, value),
        statuses.append,
        bg_pids.append,
        forwarder,
    )
    return SimpleNamespace(
        ex=executor,
        calls=calls,
        statuses=statuses,
        variables=variables,
        bg_pids=bg_pids,
        jobs=jobs,
        jobs_out=jobs_out,
        forwarder=forwarder,
    )


def test_has_and_or():
    assert has_and_or(tokenize("a && b")) is True
    assert has_and_or(tokenize("a || b")) is True
    assert has_and_or(tokenize("a | b")) is False


def test_has_sequential_or_background():
    assert has_sequential_or_background(tokenize("a ; b")) is True
    assert has_sequential_or_background(tokenize("a &")) is True
    assert has_sequential_or_background(tokenize("a && b")) is False


def test_builtin_receives_argv(env):
    assert env.ex.run(tokenize("ok one two")) == 0
    assert env.calls == [["ok", "one", "two"]]
    assert env.statuses == [0]


def test_builtin_status_propagates(env):
    assert env.ex.run(tokenize("code 7")) == 7
    assert env.statuses == [7]


def test_variable_assignment(env):
    assert env.ex.run(tokenize("FOO=bar")) == 0
    assert env.variables == {"FOO": "bar"}
    assert env.calls == []


def test_external_exit_code(env):
    assert env.ex.run(tokenize(_py("raise SystemExit(3)"))) == 3
    assert env.statuses[-1] == 3
    assert env.forwarder.foreground_pid == -1


def test_command_not_found(env):
    assert env.ex.run(tokenize("definitely-not-a-command-aisha")) == 127


def test_external_output_redirect(env, tmp_path):
    out = tmp_path / "out.txt"
    assert env.ex.run(tokenize(_py("print('hello')") + f" > {out}")) == 0
    assert out.read_text() == "hello\n"


def test_external_append_redirect(env, tmp_path):
    out = tmp_path / "out.txt"
    line = tokenize(_py("print('hello')") + f" >> {out}")
    env.ex.run(line)
    env.ex.run(line)
    assert out.read_text() == "hello\nhello\n"


def test_builtin_output_redirect(env, tmp_path):
    out = tmp_path / "out.txt"
    assert env.ex.run(tokenize(f"greet > {out}")) == 0
    assert out.read_text() == "from builtin\n"


def test_missing_input_redirect_fails(env, tmp_path):
    missing = tmp_path / "missing"
    assert env.ex.run(tokenize(f"ok < {missing}")) == 1
    assert env.calls == []


def test_pipeline_builtin_into_external(env, tmp_path):
    out = tmp_path / "out.txt"
    upper = _py("import sys; sys.stdout.write(sys.stdin.read().upper())")
    assert env.ex.run(tokenize(f"greet | {upper} > {out}")) == 0
    assert out.read_text() == "FROM BUILTIN\n"


def test_pipeline_status_from_failing_stage(env):
    line = _py("raise SystemExit(2)") + " | " + _py("raise SystemExit(0)")
    assert env.ex.run(tokenize(line)) == 2
    assert env.statuses[-1] == 2


def test_and_short_circuits(env):
    assert env.ex.run(tokenize("code 1 && ok a")) == 1
    assert env.calls == []


def test_or_runs_on_failure(env):
    assert env.ex.run(tokenize("code 1 || ok a")) == 0
    assert env.calls == [["ok", "a"]]


def test_or_skips_to_and(env):
    env.ex.run(tokenize("ok a || ok b && ok c"))
    assert env.calls == [["ok", "a"], ["ok", "c"]]


def test_failed_and_skips_to_or(env):
    env.ex.run(tokenize("code 1 && ok a || ok b"))
    assert env.calls == [["ok", "b"]]


def test_sequence_runs_all(env):
    assert env.ex.run(tokenize("ok a ; code 4 ; ok b")) == 0
    assert env.calls == [["ok", "a"], ["ok", "b"]]
    assert env.ex.run(tokenize("ok a ; code 4")) == 4


def test_background_job(env):
    assert env.ex.run(tokenize(_py("raise SystemExit(5)") + " &")) == 0
    assert len(env.jobs) == 1
    job = next(iter(env.jobs))
    assert env.bg_pids == [job.pid]
    assert env.jobs_out.getvalue() == f"[1] {job.pid}\n"
    _, status = os.waitpid(job.pid, 0)
    assert os.WEXITSTATUS(status) == 5


def test_subshell_runs_in_child(env):
    assert env.ex.run_subshell(tokenize("ok a ; code 6")) == 6
    assert env.calls == []


def test_empty_inputs_fail(env):
    assert env.ex.run([]) == 1
    assert env.ex.run_pipeline(Pipeline()) == 1
    assert env.ex.run_single(Command()) == 1
    assert env.ex.run_simple([]) == 1


def test_run_single_command_object(env):
    assert env.ex.run_single(Command(argv=["ok", "x"])) == 0
    assert env.calls == [["ok", "x"]]