"""Watch mode: re-verify exercises when their files change."""

from __future__ import annotations

import os
import queue
import subprocess
import sys
import threading
from collections.abc import Iterable
from enum import Enum, auto
from pathlib import Path
from typing import TextIO

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .exercise import Exercise
from .verify import ExerciseFailed, verify

EXERCISES_DIR = "./exercises"
POLL_SECONDS = 1.0
DEBOUNCE_SECONDS = 1.0
CLEAR_SEQUENCE = "\x1b[2J\x1b[1;1H"
RESET_SEQUENCE = "\x1bc"

HELP_TEXT = "\n".join(
    [
        "Commands available to you in watch mode:",
        "  hint   - prints the current exercise's hint",
        "  clear  - clears the screen",
        "  quit   - quits watch mode",
        "  !<cmd> - executes a command, like `!rustc --explain E0381`",
        "  help   - displays this help message",
        "",
        "Watch mode automatically re-evaluates the current exercise",
        "when you edit a file's contents.",
    ]
)


class WatchStatus(Enum):
    """How watch mode ended."""

    FINISHED = auto()
    UNFINISHED = auto()


class WatchShell:
    """Interprets the commands typed while watch mode is running."""

    def __init__(self, hint: str | None = None) -> None:
        self.hint = hint
        self.should_quit = threading.Event()

    def handle(self, command: str) -> str | None:
        """Carry out one command line; print and return its reply, if any."""
        command = command.strip()
        reply: str | None
        if command == "hint":
            reply = self.hint
        elif command == "clear":
            reply = CLEAR_SEQUENCE
        elif command == "quit":
            self.should_quit.set()
            reply = "Bye!"
        elif command == "help":
            reply = HELP_TEXT
        elif command.startswith("!"):
            reply = self._execute(command[1:])
        else:
            reply = f"unknown command: {command}"
        if reply is not None:
            print(reply)
        return reply

    @staticmethod
    def _execute(cmd: str) -> str | None:
        parts = cmd.split()
        if not parts:
            return "no command provided"
        try:
            subprocess.run(parts)
        except OSError as exc:
            return f"failed to execute command `{cmd}`: {exc}"
        return None

    def _serve(self, stream: TextIO | None = None) -> None:
        stream = stream if stream is not None else sys.stdin
        while True:
            try:
                line = stream.readline()
            except (OSError, ValueError) as exc:
                print(f"error reading command: {exc}")
                continue
            if not line:
                return
            self.handle(line)

    def _start(self) -> threading.Thread:
        print(
            "Welcome to watch mode! You can type 'help' to get an overview "
            "of the commands you can use here."
        )
        thread = threading.Thread(target=self._serve, daemon=True)
        thread.start()
        return thread


def _ends_with(path: Path, suffix: Path) -> bool:
    tail = suffix.parts
    parts = path.parts
    return len(tail) <= len(parts) and parts[len(parts) - len(tail):] == tail


def pending_order(
    exercises: Iterable[Exercise], changed_path: str | os.PathLike
) -> list[Exercise]:
    """The changed exercise first, then every other exercise still pending."""
    exercises = list(exercises)
    changed = Path(changed_path)
    first = next((e for e in exercises if _ends_with(changed, e.path)), None)
    rest = [
        e for e in exercises if not _ends_with(changed, e.path) and not e.looks_done()
    ]
    return ([first] if first is not None else []) + rest


class _ChangeForwarder(FileSystemEventHandler):
    def __init__(self, changes: queue.Queue[Path]) -> None:
        super().__init__()
        self._changes = changes

    def on_created(self, event: FileSystemEvent) -> None:
        self._forward(event)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._forward(event)

    def _forward(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._changes.put(Path(os.fsdecode(event.src_path)))


def _next_changes(changes: queue.Queue[Path]) -> list[Path]:
    try:
        paths = [changes.get(timeout=POLL_SECONDS)]
    except queue.Empty:
        return []
    while True:
        try:
            paths.append(changes.get(timeout=DEBOUNCE_SECONDS))
        except queue.Empty:
            break
    return list(dict.fromkeys(paths))


def _clear_screen() -> None:
    print(RESET_SEQUENCE)


def watch(
    exercises: list[Exercise], verbose: bool = False, success_hints: bool = False
) -> WatchStatus:
    """Verify, then re-verify on every change until all are done or the user quits."""
    if not Path(EXERCISES_DIR).is_dir():
        raise FileNotFoundError(f"cannot watch {EXERCISES_DIR}: no such directory")

    changes: queue.Queue[Path] = queue.Queue()
    observer = Observer()
    observer.schedule(_ChangeForwarder(changes), EXERCISES_DIR, recursive=True)
    observer.start()
    try:
        _clear_screen()
        try:
            verify(exercises, (0, len(exercises)), verbose, success_hints)
            return WatchStatus.FINISHED
        except ExerciseFailed as failed:
            shell = WatchShell(failed.exercise.hint)
        shell._start()

        while True:
            for changed in _next_changes(changes):
                if changed.suffix != ".rs" or not changed.exists():
                    continue
                pending = pending_order(exercises, changed.resolve())
                num_done = sum(1 for e in exercises if e.looks_done())
                _clear_screen()
                try:
                    verify(pending, (num_done, len(exercises)), verbose, success_hints)
                    return WatchStatus.FINISHED
                except ExerciseFailed as failed:
                    shell.hint = failed.exercise.hint
            if shell.should_quit.is_set():
                return WatchStatus.UNFINISHED
    finally:
        observer.stop()
        observer.join()