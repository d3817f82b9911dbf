"""Running a single exercise and resetting it."""

from __future__ import annotations

import subprocess

from .exercise import CompileError, Exercise, Mode
from .ui import success, warn
from .verify import VerificationError, test


def run(exercise: Exercise, verbose: bool = False) -> None:
    """Compile and run, or test, one exercise; raise VerificationError on failure."""
    match exercise.mode:
        case Mode.TEST | Mode.BUILDSCRIPT:
            test(exercise, verbose)
        case Mode.COMPILE | Mode.CLIPPY:
            _compile_and_run(exercise)


def reset(exercise: Exercise) -> subprocess.Popen:
    """Stash the changes to the exercise file with git; OSError if git cannot start."""
    return subprocess.Popen(["git", "stash", "--", str(exercise.path)])


def _compile_and_run(exercise: Exercise) -> None:
    try:
        compiled = exercise.compile()
    except CompileError as exc:
        warn(f"Compilation of {exercise} failed!, Compiler error message:\n")
        print(exc.output.stderr)
        raise VerificationError(f"compiling {exercise} failed") from exc

    with compiled:
        output = compiled.run()

    if output.success:
        print(output.stdout)
        success(f"Successfully ran {exercise}")
        return
    print(output.stdout)
    print(output.stderr)
    warn(f"Ran {exercise} with errors")
    raise VerificationError(f"running {exercise} failed")