# aisha

The pieces of an interactive Unix shell, as a plain Python library:

- `aisha.parser`: turns a command line into `Token`s (words, quoted strings,
  `|`, `;`, `&`, `&&`, `||`, `<`, `>`, `>>`, `<<`, `<<<`, parentheses,
  newlines, comments) and checks its grammar with `validate_syntax`.
- `aisha.command`: groups tokens into a `Command` (arguments plus input and
  output redirection) or a `Pipeline` of commands.
- `aisha.execute`: an `Executor` that runs single commands, pipelines,
  `&&`/`||` lists, `;`-separated sequences, background jobs and subshells.
- `aisha.jobs`: a `JobTable` of background and stopped jobs, with reaping,
  listing and signalling.
- `aisha.signals`: a `SignalForwarder` that passes Ctrl+C and Ctrl+Z on to
  the foreground process instead of the shell itself.
- `aisha.history_log`: a `CommandLog`, a small history of the last commands
  kept in a file.
- `aisha.completion`: tab completion for command names, file paths and
  variable names.
- `aisha.editor`: a `LineEditor` and a `History` holding the editing state of
  a line (cursor moves, kill and yank, transpose, history browsing).
- `aisha.terminal`: raw terminal mode (`RawMode`), key decoding and the
  interactive `read_line` loop built on the editor.

The package needs no third-party libraries and runs on Python 3.10 or later on
POSIX systems.

## Tokenizing and checking a line

```python
from aisha.parser import tokenize, validate_syntax, ShellSyntaxError, TokenType

tokens = tokenize('grep "a b" < in.txt | wc -l', 1024)
print([t.value for t in tokens if t.type is TokenType.WORD])

try:
    validate_syntax("ls | | wc")
except ShellSyntaxError as exc:
    print("syntax error:", exc)
```

The token list always ends with an `EOF` token. Double-quoted strings
understand `\n`, `\t`, `\r`, `\\`, `\"`, `\$` and `` \` ``; single-quoted
strings are taken literally; `#` starts a comment. `validate_syntax` returns
the tokens when the line is well formed, raises `TooManyTokensError` when the
line reaches the token limit (1024) and `ShellSyntaxError` otherwise.

`preprocess(text, expand_aliases, expand_variables)` applies two expansion
functions that you supply, in that order; if either returns `None` the
original text comes back unchanged.

## Commands and pipelines

```python
from aisha.parser import tokenize
from aisha.command import parse_command, parse_pipeline, has_pipes

tokens = tokenize("sort < names.txt | uniq > out.txt", 1024)
if has_pipes(tokens):
    pipeline = parse_pipeline(tokens)
    for command in pipeline:
        print(command.argv, command.input_file, command.output_file)
```

Redirection targets are checked before a command is built, and output files
are created (or truncated, for `>`) at that point. `parse_command` raises
`RedirectionError` when an input file cannot be opened or an output file
cannot be created; `parse_pipeline` prints that error to standard error and
leaves the failing part out of the pipeline. `open_redirections(command)`
opens a command's files and returns `(input, output)`, each `None` when not
redirected.

## Running commands

```python
from aisha.execute import Executor
from aisha.parser import tokenize

def hello(argv):
    print("hello", *argv[1:])
    return 0

executor = Executor(builtins={"hello": hello})
status = executor.run(tokenize("hello world && ls | wc -l; sleep 5 &", 1024))
```

`Executor.run` dispatches on the operators in the line: `;` and `&`
sequences go to `run_sequence`, `&&`/`||` lists to `run_and_or`, and the
rest to `run_simple`. Builtins are callables taking the argument list and
returning an exit status (or `None` for 0); they run in the shell process,
with their redirections applied to file descriptors 0 and 1. Anything else is
started with `fork` and `execvp`; a missing program gives status 127, and a
process killed by a signal gives 128 plus the signal number. A single word of
the form `NAME=value` is passed to the `set_variable` callback. A process
stopped by Ctrl+Z is added to the `JobTable` as a stopped job; background
jobs are added as running ones and their pid is passed to
`on_background_pid`. Every exit status is reported to `on_exit_status`.

## Jobs and signals

```python
from aisha.jobs import JobTable
from aisha.signals import SignalForwarder

jobs = JobTable()
jobs.check()            # reap finished jobs, printing how they exited
jobs.list_activities()  # "[pid] command: Running|Stopped", sorted by command

forwarder = SignalForwarder()
forwarder.install()     # forward SIGINT and SIGTSTP, ignore SIGQUIT
```

`JobTable.ping(pid, signum)` sends a signal to a tracked job and raises
`JobNotFoundError`, `InvalidSignalError` or `PingError` when it cannot.
Pass the forwarder to `Executor` so it knows which process is in the
foreground.

## History

```python
from aisha.history_log import CommandLog, default_log_path

log = CommandLog(default_log_path("."), 15)
log.add("make test")
print(list(log))
```

The log is read from its file when created, keeps the newest `max_entries`
commands, skips empty commands and a repeat of the last one, and is saved to
the file after every addition. `default_log_path()` puts `.shell_history` in
the working directory.

## Line editing and completion

```python
from aisha.editor import History, LineEditor

history = History(1000)
editor = LineEditor(history)
editor.insert("echo hello world")
editor.kill_word()
editor.yank()
```

`aisha.terminal.read_line(prompt, editor, builtin_names)` puts the terminal
in raw mode, reads keys and drives a `LineEditor` until Enter (returning the
line), Ctrl+C (returning an empty string) or Ctrl+D on an empty line
(returning `None`). Tab completes the word before the cursor using
`aisha.completion.get_completions`: variables after `$`, builtins and
executables on `PATH` for the first word of a command, and file paths
otherwise. When standard input is not a terminal, `read_line` simply reads
one line.

## What the package does not do

There is no shell program to start: the package has no command-line entry
point and no main loop tying reading, parsing and running together. It
brings no builtin commands of its own (such as `cd`, `export` or `alias`),
no alias or variable expansion (`preprocess` only calls the functions you
give it), no prompt formatting and no configuration file. The `<<`, `<<<`,
`(` and `)` tokens are recognised by the tokenizer but not run as here
documents or subshells by `Executor.run`; `run_subshell` must be called
directly.

## Running the tests

Install the `test` extra and run `pytest` from the project directory.