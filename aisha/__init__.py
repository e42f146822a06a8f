"""Building blocks of an interactive Unix shell: tokenizing, parsing, running commands, jobs, history and line editing."""

__version__ = "3.0.0"