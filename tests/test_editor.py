import pytest

from aisha.editor import HISTORY_SIZE, LINE_BUFFER_SIZE, History, LineEditor


def make_editor(text="", cursor=None, entries=()):
    history = History()
    for entry in entries:
        history.add(entry)
    editor = LineEditor(history)
    editor.reset()
    editor.replace(text, cursor)
    return editor


def test_history_skips_empty_and_consecutive_duplicates():
    history = History()
    history.add("")
    history.add("ls")
    history.add("ls")
    history.add("pwd")
    history.add("ls")
    assert list(history) == ["ls", "pwd", "ls"]
    assert len(history) == 3


def test_history_get_out_of_range():
    history = History()
    history.add("echo hi")
    assert history.get(0) == "echo hi"
    assert history.get(1) is None
    assert history.get(-1) is None


def test_history_drops_oldest_when_full():
    history = History(capacity=3)
    for word in ["a", "b", "c", "d"]:
        history.add(word)
    assert list(history) == ["b", "c", "d"]


def test_history_default_capacity_and_clear():
    history = History()
    for n in range(HISTORY_SIZE + 5):
        history.add(str(n))
    assert len(history) == HISTORY_SIZE
    assert history.get(0) == "5"
    history.clear()
    assert len(history) == 0


def test_history_rejects_bad_capacity():
    with pytest.raises(ValueError):
        History(capacity=0)


def test_insert_in_middle():
    editor = make_editor("held", cursor=2)
    assert editor.insert("xy")
    assert editor.line == "he" + "xy" + "ld"
    assert editor.cursor == 4


def test_insert_stops_at_buffer_limit():
    editor = make_editor()
    editor.insert("a" * (LINE_BUFFER_SIZE + 10))
    assert len(editor.line) == LINE_BUFFER_SIZE - 1
    assert editor.insert("b") is False


def test_delete_and_backspace():
    editor = make_editor("abc", cursor=1)
    assert editor.delete()
    assert editor.line == "ac"
    assert editor.backspace()
    assert editor.line == "c"
    assert editor.cursor == 0
    assert editor.backspace() is False
    editor.end()
    assert editor.delete() is False


def test_cursor_movement_bounds():
    editor = make_editor("ab")
    assert editor.move_right() is False
    assert editor.move_left()
    assert editor.cursor == 1
    editor.home()
    assert editor.cursor == 0
    assert editor.move_left() is False
    editor.end()
    assert editor.cursor == 2


def test_kill_to_end_and_yank_round_trip():
    editor = make_editor("hello world", cursor=5)
    assert editor.kill_to_end()
    assert editor.line == "hello"
    assert editor.killed == " world"
    assert editor.yank()
    assert editor.line == "hello world"
    assert editor.cursor == len("hello world")


def test_kill_to_start():
    editor = make_editor("hello world", cursor=6)
    assert editor.kill_to_start()
    assert editor.line == "world"
    assert editor.killed == "hello "
    assert editor.cursor == 0
    assert editor.kill_to_start() is False


def test_kill_word_takes_trailing_spaces():
    editor = make_editor("git commit  ")
    assert editor.kill_word()
    assert editor.killed == "commit  "
    assert editor.line == "git "
    assert editor.cursor == len("git ")


def test_yank_with_empty_kill_buffer():
    editor = make_editor("abc")
    assert editor.yank() is False
    assert editor.line == "abc"


def test_transpose_swaps_and_advances():
    editor = make_editor("abcd", cursor=1)
    assert editor.transpose()
    assert editor.line == "bacd"
    assert editor.cursor == 2
    assert sorted(editor.line) == sorted("abcd")


def test_transpose_needs_characters_on_both_sides():
    editor = make_editor("ab")
    assert editor.transpose() is False
    editor.home()
    assert editor.transpose() is False
    assert editor.line == "ab"


def test_history_navigation():
    editor = make_editor(entries=["first", "second"])
    assert editor.history_previous()
    assert editor.line == "second"
    assert editor.history_previous()
    assert editor.line == "first"
    assert editor.cursor == len("first")
    assert editor.history_previous() is False
    assert editor.history_next()
    assert editor.line == "second"
    assert editor.history_next()
    assert editor.line == ""
    assert editor.cursor == 0
    assert editor.history_next() is False


def test_reset_returns_to_end_of_history():
    editor = make_editor(entries=["one"])
    editor.history_previous()
    editor.reset()
    assert editor.line == ""
    assert editor.history_index == len(editor.history)


def test_replace_clamps_cursor():
    editor = make_editor()
    editor.replace("abc", 10)
    assert editor.cursor == 3
    editor.replace("abc", -4)
    assert editor.cursor == 0