"""Command line entry point."""

from __future__ import annotations

import argparse
import subprocess
import sys
from collections.abc import Sequence
from pathlib import Path

from .checklist import REPORT_PATH, check_all, write_report
from .exercise import Exercise, load_exercises
from .project import RustAnalyzerProject
from .run import reset, run
from .ui import no_emoji
from .verify import ExerciseFailed, VerificationError, verify
from .watch import WatchStatus, watch

VERSION = "5.5.1"
PROG = "drillrunner"
INFO_FILE = "info.toml"

WELCOME = "\n".join(
    [
        "       welcome to...",
        "   ___  ___  ___ _    _    ___ _   _ _  _ _  _ ___ ___",
        "  |   \\| _ \\|_ _| |  | |  | _ \\ | | | \\| | \\| | __| _ \\",
        "  | |) |   / | || |__| |__|   / |_| | .` | .` | _||   /",
        "  |___/|_|_\\|___|____|____|_|_\\\\___/|_|\\_|_|\\_|___|_|_\\",
    ]
)

DEFAULT_OUT = """Thanks for installing drillrunner!

Here is how it works:

1. You solve small exercises. Each one holds an error that makes it fail to
   compile or to pass its tests. Find the error and fix it; once the exercise
   compiles and passes, you can move on to the next one.
2. Watch mode starts with the first exercise and checks it again every time
   you save a file. The first error you see is part of the exercise, so open
   the file in an editor and start investigating!
3. If you are stuck, type 'hint' in watch mode, or run
   `drillrunner hint exercise_name`.
4. To get editor support from rust-analyzer, run `drillrunner lsp`.

Ready? Run `drillrunner watch` to get the first exercise."""

FINISH_LINE = """+----------------------------------------------------+
|          You made it to the finish line!           |
+----------------------------------------------------+

We hope you enjoyed the exercises!
If you noticed any issues, please report them so they can be fixed."""


class _Parser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        prefix = "the following arguments are required:"
        if message.startswith(prefix):
            missing = message[len(prefix):].strip()
            message = f"Required positional arguments not provided:\n    {missing}"
        self.print_usage(sys.stderr)
        sys.stderr.write(f"{message}\n")
        raise SystemExit(1)


def _build_parser() -> argparse.ArgumentParser:
    parser = _Parser(
        prog=PROG,
        description="A collection of small exercises for reading and writing Rust code.",
    )
    parser.add_argument(
        "--nocapture", action="store_true", help="show outputs from the test exercises"
    )
    parser.add_argument(
        "-v", "--version", action="store_true", help="show the executable version"
    )
    commands = parser.add_subparsers(dest="command")
    commands.add_parser("verify", help="verify all exercises in the recommended order")
    watch_parser = commands.add_parser("watch", help="rerun verify when files are edited")
    watch_parser.add_argument(
        "--success-hints", action="store_true", help="show hints on success"
    )
    for name, help_text in (
        ("run", "run or test a single exercise"),
        ("reset", 'reset a single exercise using "git stash -- <filename>"'),
        ("hint", "show the hint for the given exercise"),
    ):
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument("name", help="the name of the exercise")
    list_parser = commands.add_parser("list", help="list the available exercises")
    list_parser.add_argument(
        "-p", "--paths", action="store_true", help="show only the paths of the exercises"
    )
    list_parser.add_argument(
        "-n", "--names", action="store_true", help="show only the names of the exercises"
    )
    list_parser.add_argument(
        "-f",
        "--filter",
        help="comma separated patterns to match exercise names or paths",
    )
    list_parser.add_argument(
        "-u", "--unsolved", action="store_true", help="show only unsolved exercises"
    )
    list_parser.add_argument(
        "-s", "--solved", action="store_true", help="show only solved exercises"
    )
    commands.add_parser("lsp", help="enable rust-analyzer for the exercises")
    commands.add_parser("cicvverify", help="check all exercises and write a report")
    return parser


def rustc_exists() -> bool:
    """True when `rustc --version` can be run successfully."""
    try:
        result = subprocess.run(["rustc", "--version"], stdout=subprocess.DEVNULL)
    except OSError:
        return False
    return result.returncode == 0


def find_exercise(name: str, exercises: Sequence[Exercise]) -> Exercise:
    """Find an exercise by name, or the first unfinished one for "next"."""
    if name == "next":
        found = next((e for e in exercises if not e.looks_done()), None)
        if found is None:
            raise LookupError(
                "🎉 Congratulations! You have done all the exercises!\n"
                "🔚 There are no more exercises to do next!"
            )
        return found
    found = next((e for e in exercises if e.name == name), None)
    if found is None:
        raise LookupError(f"No exercise found for '{name}'!")
    return found


def list_lines(
    exercises: Sequence[Exercise],
    paths: bool = False,
    names: bool = False,
    filter_text: str | None = None,
    unsolved: bool = False,
    solved: bool = False,
) -> list[str]:
    """The lines of the exercise listing, ending with the progress summary."""
    lines = []
    if not paths and not names:
        lines.append(f"{'Name':<17}\t{'Path':<46}\t{'Status':<7}")
    filters = [f for f in (filter_text or "").lower().split(",") if f.strip()]
    done_count = 0
    for exercise in exercises:
        fname = str(exercise.path)
        done = exercise.looks_done()
        done_count += done
        status = "Done" if done else "Pending"
        matches = any(f in exercise.name or f in fname for f in filters)
        wanted = (done and solved) or (not done and unsolved) or (not solved and not unsolved)
        if not wanted or not (matches or filter_text is None):
            continue
        if paths:
            lines.append(fname)
        elif names:
            lines.append(exercise.name)
        else:
            lines.append(f"{exercise.name:<17}\t{fname:<46}\t{status:<7}")
    total = len(exercises)
    percentage = done_count / total * 100 if total else float("nan")
    lines.append(
        f"Progress: You completed {done_count} / {total} exercises ({percentage:.1f} %)."
    )
    return lines


def _exit_code(code: object) -> int:
    if code is None:
        return 0
    return code if isinstance(code, int) else 1


def _list(args: argparse.Namespace, exercises: list[Exercise]) -> int:
    lines = list_lines(
        exercises, args.paths, args.names, args.filter, args.unsolved, args.solved
    )
    try:
        for line in lines:
            sys.stdout.write(f"{line}\n")
        sys.stdout.flush()
    except BrokenPipeError:
        return 0
    return 0


def _check_all(exercises: list[Exercise], verbose: bool) -> int:
    check_list = check_all(exercises, True)
    Path(REPORT_PATH).parent.mkdir(parents=True, exist_ok=True)
    write_report(check_list, REPORT_PATH)
    return 0


def _lsp() -> int:
    project = RustAnalyzerProject()
    try:
        project.get_sysroot_src()
    except OSError:
        print("Couldn't find toolchain path, do you have `rustc` installed?", file=sys.stderr)
        return 1
    project.exercises_to_json()
    if not project.crates:
        print("Failed find any exercises, make sure you're in the exercises folder")
        return 0
    try:
        project.write_to_disk()
    except OSError:
        print("Failed to write rust-project.json to disk for rust-analyzer")
        return 0
    print("Successfully generated rust-project.json")
    print("rust-analyzer will now parse exercises, restart your language server or editor")
    return 0


def _watch(exercises: list[Exercise], verbose: bool, success_hints: bool) -> int:
    try:
        status = watch(exercises, verbose, success_hints)
    except OSError as exc:
        print(f"Error: Could not watch your progress. Error message was {exc!r}.")
        print(
            "Most likely you've run out of disk space or your "
            "'inotify limit' has been reached."
        )
        return 1
    if status is WatchStatus.FINISHED:
        emoji = "★" if no_emoji() else "🎉"
        print(f"{emoji} All exercises completed! {emoji}")
        print(f"\n{FINISH_LINE}\n")
    else:
        print("We hope you're enjoying learning about Rust!")
        print(
            "If you want to continue working on the exercises at a later point, "
            f"you can simply run `{PROG} watch` again"
        )
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line; return the exit status."""
    try:
        args = _build_parser().parse_args(argv)
    except SystemExit as exc:
        return _exit_code(exc.code)

    if args.version:
        print(f"v{VERSION}")
        return 0
    if args.command is None:
        print(f"\n{WELCOME}\n")

    if not Path(INFO_FILE).exists():
        print(f"{PROG} must be run from the directory that holds {INFO_FILE}")
        print(f"Try `cd` into the directory with {INFO_FILE}!")
        return 1
    if not rustc_exists():
        print("We cannot find `rustc`.")
        print("Try running `rustc --version` to diagnose your problem.")
        print("For instructions on how to install Rust, check the README.")
        return 1

    exercises = load_exercises(INFO_FILE)
    verbose = args.nocapture

    match args.command:
        case None:
            print(f"{DEFAULT_OUT}\n")
            return 0
        case "list":
            return _list(args, exercises)
        case "run" | "reset" | "hint":
            try:
                exercise = find_exercise(args.name, exercises)
            except LookupError as exc:
                print(exc)
                return 1
            if args.command == "hint":
                print(exercise.hint)
                return 0
            try:
                if args.command == "run":
                    run(exercise, verbose)
                else:
                    reset(exercise)
            except (VerificationError, OSError):
                return 1
            return 0
        case "verify":
            try:
                verify(exercises, (0, len(exercises)), verbose, False)
            except ExerciseFailed:
                return 1
            return 0
        case "cicvverify":
            return _check_all(exercises, verbose)
        case "lsp":
            return _lsp()
        case "watch":
            return _watch(exercises, verbose, args.success_hints)
    return 1


if __name__ == "__main__":
    sys.exit(main())