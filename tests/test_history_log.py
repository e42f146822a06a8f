from aisha.history_log import MAX_COMMAND_LENGTH, MAX_ENTRIES, CommandLog, default_log_path


def test_default_path(tmp_path):
    assert default_log_path(tmp_path) == str(tmp_path / ".shell_history")


def test_default_path_uses_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert default_log_path() == str(tmp_path / ".shell_history")


def test_add_and_persist(tmp_path):
    path = tmp_path / "log"
    log = CommandLog(path)
    log.add("ls")
    log.add("pwd")
    assert list(log) == ["ls", "pwd"]
    assert path.read_text() == "ls\npwd\n"


def test_reload_round_trip(tmp_path):
    path = tmp_path / "log"
    first = CommandLog(path)
    for command in ("echo a", "echo b", "cd /"):
        first.add(command)
    second = CommandLog(path)
    assert list(second) == list(first)


def test_skips_empty_and_consecutive_duplicates(tmp_path):
    log = CommandLog(tmp_path / "log")
    log.add("")
    log.add("ls")
    log.add("ls")
    log.add("pwd")
    log.add("ls")
    assert list(log) == ["ls", "pwd", "ls"]


def test_capacity_keeps_latest(tmp_path):
    log = CommandLog(tmp_path / "log")
    commands = [f"cmd{n}" for n in range(MAX_ENTRIES + 5)]
    for command in commands:
        log.add(command)
    assert len(log) == MAX_ENTRIES
    assert list(log) == commands[-MAX_ENTRIES:]


def test_custom_capacity(tmp_path):
    log = CommandLog(tmp_path / "log", max_entries=2)
    for command in ("a", "b", "c"):
        log.add(command)
    assert list(log) == ["b", "c"]


def test_load_reads_at_most_max_entries(tmp_path):
    path = tmp_path / "log"
    lines = [f"line{n}" for n in range(MAX_ENTRIES + 3)]
    path.write_text("".join(f"{line}\n" for line in lines))
    log = CommandLog(path)
    assert list(log) == lines[:MAX_ENTRIES]


def test_missing_file_gives_empty_log(tmp_path):
    log = CommandLog(tmp_path / "absent")
    assert len(log) == 0


def test_long_command_truncated(tmp_path):
    log = CommandLog(tmp_path / "log")
    log.add("x" * (MAX_COMMAND_LENGTH + 100))
    (entry,) = list(log)
    assert len(entry) == MAX_COMMAND_LENGTH - 1


def test_unwritable_path_does_not_raise_and_keeps_entry(tmp_path):
    log = CommandLog(tmp_path / "no-such-dir" / "log")
    log.add("ls")
    assert list(log) == ["ls"]