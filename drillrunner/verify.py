"""Verification of exercises with progress reporting and completion prompts."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum, auto

from rich.console import Console
from rich.text import Text

from .exercise import CompileError, CompiledExercise, Exercise, Mode
from .ui import no_emoji, success, warn

SEPARATOR = "===================="
BAR_WIDTH = 60


class ExerciseFailed(Exception):
    """Raised by verify for the first exercise that is not finished."""

    def __init__(self, exercise: Exercise) -> None:
        super().__init__(f"exercise {exercise} is not finished")
        self.exercise = exercise


class VerificationError(Exception):
    """Raised when an exercise fails to compile, run or pass its tests."""


class _RunMode(Enum):
    INTERACTIVE = auto()
    NON_INTERACTIVE = auto()


def _console() -> Console:
    return Console(highlight=False, markup=False, emoji=False, soft_wrap=True)


def _progress_line(position: int, total: int, percentage: float) -> str:
    if total and position >= total:
        bar = "#" * BAR_WIDTH
    else:
        filled = BAR_WIDTH * position // total if total else 0
        bar = "#" * filled + ">" + "-" * (BAR_WIDTH - filled - 1)
    return f"Progress: [{bar}] {position}/{total} ({percentage:.1f} %)"


def verify(
    exercises: Iterable[Exercise],
    progress: tuple[int, int],
    verbose: bool = False,
    success_hints: bool = False,
) -> None:
    """Check exercises in order; raise ExerciseFailed at the first one not finished."""
    num_done, total = progress
    position = num_done
    percentage = num_done / total * 100 if total else float("nan")
    print(_progress_line(position, total, percentage))

    for exercise in exercises:
        try:
            passed = _check(exercise, verbose, success_hints)
        except VerificationError:
            passed = False
        if not passed:
            raise ExerciseFailed(exercise)
        if total:
            percentage += 100 / total
        position += 1
        print(_progress_line(position, total, percentage))


def _check(exercise: Exercise, verbose: bool, success_hints: bool) -> bool:
    match exercise.mode:
        case Mode.TEST | Mode.BUILDSCRIPT:
            return _compile_and_test(exercise, _RunMode.INTERACTIVE, verbose, success_hints)
        case Mode.COMPILE:
            return _compile_and_run_interactively(exercise, success_hints)
        case Mode.CLIPPY:
            return _compile_only(exercise, success_hints)
    raise ValueError(f"unknown mode {exercise.mode!r}")


def test(exercise: Exercise, verbose: bool = False) -> None:
    """Build and run the exercise's test harness; raise VerificationError on failure."""
    _compile_and_test(exercise, _RunMode.NON_INTERACTIVE, verbose, False)


def _compile(exercise: Exercise) -> CompiledExercise:
    try:
        return exercise.compile()
    except CompileError as exc:
        warn(f"Compiling of {exercise} failed! Please try again. Here's the output:")
        print(exc.output.stderr)
        raise VerificationError(f"compiling {exercise} failed") from exc


def _compile_only(exercise: Exercise, success_hints: bool) -> bool:
    _compile(exercise).close()
    return prompt_for_completion(exercise, None, success_hints)


def _compile_and_run_interactively(exercise: Exercise, success_hints: bool) -> bool:
    with _compile(exercise) as compiled:
        output = compiled.run()
    if not output.success:
        warn(f"Ran {exercise} with errors")
        print(output.stdout)
        print(output.stderr)
        raise VerificationError(f"running {exercise} failed")
    return prompt_for_completion(exercise, output.stdout, success_hints)


def _compile_and_test(
    exercise: Exercise, run_mode: _RunMode, verbose: bool, success_hints: bool
) -> bool:
    with _compile(exercise) as compiled:
        output = compiled.run()
    if not output.success:
        warn(f"Testing of {exercise} failed! Please try again. Here's the output:")
        print(output.stdout)
        raise VerificationError(f"testing {exercise} failed")
    if verbose:
        print(output.stdout)
    if run_mode is _RunMode.INTERACTIVE:
        return prompt_for_completion(exercise, None, success_hints)
    return True


def _success_message(mode: Mode, emoji_off: bool) -> str:
    match mode:
        case Mode.COMPILE:
            return "The code is compiling!"
        case Mode.TEST:
            return "The code is compiling, and the tests pass!"
        case Mode.CLIPPY:
            if emoji_off:
                return "The code is compiling, and Clippy is happy!"
            return "The code is compiling, and 📎 Clippy 📎 is happy!"
        case Mode.BUILDSCRIPT:
            return "Build script works!"
    raise ValueError(f"unknown mode {mode!r}")


def prompt_for_completion(
    exercise: Exercise, prompt_output: str | None = None, success_hints: bool = False
) -> bool:
    """Return True if the exercise is done, else print the pending context and return False."""
    state = exercise.state()
    if state.done:
        return True

    match exercise.mode:
        case Mode.COMPILE:
            success(f"Successfully ran {exercise}!")
        case Mode.TEST:
            success(f"Successfully tested {exercise}!")
        case Mode.CLIPPY | Mode.BUILDSCRIPT:
            success(f"Successfully compiled {exercise}!")

    emoji_off = no_emoji()
    message = _success_message(exercise.mode, emoji_off)
    console = _console()
    separator = Text(SEPARATOR, style="bold")

    print()
    if emoji_off:
        print(f"~*~ {message} ~*~")
    else:
        print(f"🎉 🎉  {message} 🎉 🎉")
    print()

    if prompt_output is not None:
        print("Output:")
        console.print(separator)
        print(prompt_output)
        console.print(separator)
        print()
    if success_hints:
        print("Hints:")
        console.print(separator)
        print(exercise.hint)
        console.print(separator)
        print()

    print("You can keep working on this exercise,")
    console.print(
        Text.assemble(
            "or jump into the next one by removing the ",
            ("`I AM NOT DONE`", "bold"),
            " comment:",
        )
    )
    print()
    for context_line in state.context:
        console.print(
            Text.assemble(
                (f"{context_line.number:>2}", "bold blue"),
                " ",
                ("|", "blue"),
                "  ",
                (context_line.line, "bold" if context_line.important else ""),
            )
        )
    return False