"""Exercise definitions, compilation, running and completion state."""

from __future__ import annotations

import os
import re
import subprocess
import threading
import tomllib
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .ui import no_emoji

RUSTC_COLOR_ARGS = ("--color", "always")
RUSTC_EDITION_ARGS = ("--edition", "2021")
I_AM_DONE_REGEX = re.compile(r"^\s*///?\s*I\s+AM\s+NOT\s+DONE", re.MULTILINE)
CONTEXT = 2
CLIPPY_CARGO_TOML_PATH = "./exercises/clippy/Cargo.toml"
BUILD_SCRIPT_CARGO_TOML_PATH = "./exercises/tests/Cargo.toml"


def temp_file_path() -> str:
    """Return a temporary binary path unique to this process and thread."""
    thread_id = f"ThreadId{threading.get_ident()}"
    return f"./temp_{os.getpid()}_{thread_id}"


def _clean() -> None:
    try:
        os.remove(temp_file_path())
    except OSError:
        pass


def _decode(data: bytes | None) -> str:
    return (data or b"").decode("utf-8", errors="replace")


def _execute(args: list[str]) -> subprocess.CompletedProcess:
    return subprocess.run(args, capture_output=True)


def _lines(text: str) -> list[str]:
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


class Mode(Enum):
    """How an exercise is checked."""

    COMPILE = "compile"
    TEST = "test"
    CLIPPY = "clippy"
    BUILDSCRIPT = "buildscript"


@dataclass(frozen=True)
class ContextLine:
    """A source line shown around the pending marker."""

    line: str
    number: int
    important: bool


@dataclass(frozen=True)
class ExerciseState:
    """Completion state; a pending exercise carries the lines around its marker."""

    context: tuple[ContextLine, ...] = ()

    @property
    def done(self) -> bool:
        return not self.context

    @property
    def pending(self) -> bool:
        return bool(self.context)


@dataclass(frozen=True)
class ExerciseOutput:
    """Captured output of a compiler or an exercise binary."""

    stdout: str = ""
    stderr: str = ""
    success: bool = True


class CompileError(Exception):
    """Raised when an exercise fails to compile."""

    def __init__(self, output: ExerciseOutput) -> None:
        super().__init__("compilation failed")
        self.output = output


def _cargo_manifest(name: str) -> str:
    return (
        "[package]\n"
        f'name = "{name}"\n'
        'version = "0.0.1"\n'
        'edition = "2021"\n'
        "[[bin]]\n"
        f'name = "{name}"\n'
        f'path = "{name}.rs"'
    )


def _write_manifest(path: str, name: str) -> None:
    message = (
        "Failed to write Clippy Cargo.toml file."
        if no_emoji()
        else "Failed to write 📎 Clippy 📎 Cargo.toml file."
    )
    try:
        Path(path).write_text(_cargo_manifest(name), encoding="utf-8")
    except OSError as exc:
        raise OSError(message) from exc


@dataclass
class Exercise:
    """One exercise as described in info.toml."""

    name: str
    path: Path
    mode: Mode
    hint: str = ""

    def __post_init__(self) -> None:
        self.path = Path(self.path)
        self.mode = Mode(self.mode)

    def __str__(self) -> str:
        return str(self.path)

    def compile(self) -> CompiledExercise:
        """Build the exercise; raise CompileError with the compiler output on failure."""
        temp = temp_file_path()
        source = str(self.path)
        match self.mode:
            case Mode.COMPILE:
                result = _execute(
                    ["rustc", source, "-o", temp, *RUSTC_COLOR_ARGS, *RUSTC_EDITION_ARGS]
                )
            case Mode.TEST:
                result = _execute(
                    ["rustc", "--test", source, "-o", temp,
                     *RUSTC_COLOR_ARGS, *RUSTC_EDITION_ARGS]
                )
            case Mode.CLIPPY:
                _write_manifest(CLIPPY_CARGO_TOML_PATH, self.name)
                # Build a binary too so the exercise can be run afterwards.
                _execute(
                    ["rustc", source, "-o", temp, *RUSTC_COLOR_ARGS, *RUSTC_EDITION_ARGS]
                )
                # A clean is needed for clippy to report every lint.
                _execute(
                    ["cargo", "clean", "--manifest-path", CLIPPY_CARGO_TOML_PATH,
                     *RUSTC_COLOR_ARGS]
                )
                result = _execute(
                    ["cargo", "clippy", "--manifest-path", CLIPPY_CARGO_TOML_PATH,
                     *RUSTC_COLOR_ARGS, "--", "-D", "warnings", "-D", "clippy::float_cmp"]
                )
            case Mode.BUILDSCRIPT:
                _write_manifest(BUILD_SCRIPT_CARGO_TOML_PATH, self.name)
                result = _execute(
                    ["cargo", "test", "--manifest-path", BUILD_SCRIPT_CARGO_TOML_PATH]
                )

        if result.returncode == 0:
            return CompiledExercise(self)
        _clean()
        raise CompileError(
            ExerciseOutput(_decode(result.stdout), _decode(result.stderr), success=False)
        )

    def _run(self) -> ExerciseOutput:
        if self.mode is Mode.BUILDSCRIPT:
            return ExerciseOutput()
        arg = "--show-output" if self.mode is Mode.TEST else ""
        result = _execute([temp_file_path(), arg])
        return ExerciseOutput(
            _decode(result.stdout), _decode(result.stderr), success=result.returncode == 0
        )

    def state(self) -> ExerciseState:
        """Return whether the pending marker is still present, with its context."""
        source = self.path.read_text(encoding="utf-8")
        if not I_AM_DONE_REGEX.search(source):
            return ExerciseState()

        lines = _lines(source)
        matched = next(
            (i for i, line in enumerate(lines) if I_AM_DONE_REGEX.search(line)), None
        )
        if matched is None:
            raise RuntimeError(f"pending marker in {self.path} spans several lines")

        low = max(matched - CONTEXT, 0)
        high = matched + CONTEXT
        context = tuple(
            ContextLine(line=line, number=i + 1, important=i == matched)
            for i, line in enumerate(lines)
            if low <= i <= high
        )
        return ExerciseState(context)

    def looks_done(self) -> bool:
        """True when the pending marker has been removed from the source."""
        return self.state().done


class CompiledExercise:
    """A built exercise whose binary is removed on close."""

    def __init__(self, exercise: Exercise) -> None:
        self.exercise = exercise
        self._closed = False

    def run(self) -> ExerciseOutput:
        """Run the built binary; the result's success flag reflects its exit status."""
        return self.exercise._run()

    def close(self) -> None:
        """Remove the temporary binary."""
        if not self._closed:
            self._closed = True
            _clean()

    def __enter__(self) -> CompiledExercise:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def load_exercises(path: str | os.PathLike = "info.toml") -> list[Exercise]:
    """Read the list of exercises from a TOML file."""
    data = tomllib.loads(Path(path).read_text(encoding="utf-8"))
    if "exercises" not in data:
        raise ValueError(f"{path}: missing field `exercises`")
    exercises = []
    for entry in data["exercises"]:
        try:
            exercises.append(
                Exercise(
                    name=entry["name"],
                    path=Path(entry["path"]),
                    mode=Mode(entry["mode"]),
                    hint=entry["hint"],
                )
            )
        except KeyError as exc:
            raise ValueError(f"{path}: missing field `{exc.args[0]}`") from exc
    return exercises